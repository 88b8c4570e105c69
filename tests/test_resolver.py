import pytest
from prompt_toolkit.completion import DummyCompleter, PathCompleter

from argscope.cache import ResultCache
from argscope.exceptions import MatchError
from argscope.parser import (
    WILDCARD,
    ArgAction,
    MatchContext,
    MatchRecord,
    argument,
    make_argspecs,
    option,
    parse_arguments,
)
from argscope.resolver import CompletionProvider, CompletionResolver, flatten_history
from argscope.sources import Dynamic, Guess, Literal, NoCompletion, Static


def history_for(tokens, entries):
    _, _, history = parse_arguments(tokens, make_argspecs(entries))
    return history


def record_with(source, stub="", name="--opt", context=MatchContext.OPTION, **kwargs):
    return MatchRecord(
        context=context,
        name=name,
        spec=None,
        action=ArgAction("VALUE", source),
        stub=stub,
        slot=0,
        **kwargs,
    )


@pytest.fixture
def resolver():
    return CompletionResolver()


def test_flatten_history():
    history = history_for(
        ["-o", "a", "--output", "b", "-v", ""],
        [option("-o, --output FILE", repeat=True), option("-v"), argument(WILDCARD)],
    )
    assert flatten_history(history) == {
        "-o": [["a"], ["b"]],
        "--output": [["a"], ["b"]],
        "-v": [[]],
    }


def test_flatten_history_skips_stub_and_unknowns():
    history = history_for(["--bogus", "x", "y"], [option("-v"), argument(0)])
    assert flatten_history(history) == {0: [["x"]]}


def test_empty_history_completes_files(resolver):
    provider = resolver.resolve([])
    assert isinstance(provider.completer, PathCompleter)
    assert provider.paths
    assert provider.fallback


def test_literal(resolver):
    provider = resolver.resolve([record_with(Literal(("dev", "staging", "prod")), "st")])
    assert provider.candidates() == ["staging"]
    assert provider.stub == "st"
    assert provider.terminator("staging") == " "


def test_literal_annotations(resolver):
    source = Literal(("-a", "--all"), annotations={"--all": "show everything"})
    provider = resolver.resolve([record_with(source, "--")])
    (completion,) = provider.complete()
    assert completion.text == "--all"
    assert completion.display_meta_text == "show everything"


def test_annotations_truncated():
    resolver = CompletionResolver(annotation_width=10)
    source = Literal(("-a",), annotations={"-a": "a rather long description"})
    (completion,) = resolver.resolve([record_with(source, "-")]).complete()
    assert completion.display_meta_text == "a rather…"


def test_annotations_disabled():
    resolver = CompletionResolver(annotate=False)
    source = Literal(("-a",), annotations={"-a": "all"})
    (completion,) = resolver.resolve([record_with(source, "-")]).complete()
    assert completion.display_meta_text == ""


def test_suffixes(resolver):
    source = Literal(("--color", "-v"), suffixes={"--color": "="})
    provider = resolver.resolve([record_with(source, "-")])
    assert provider.terminator("--color") == "="
    assert provider.terminator("-v") == " "


def test_action_suffix_overrides_source_suffix(resolver):
    record = MatchRecord(
        context=MatchContext.OPTION,
        name="--tags",
        spec=None,
        action=ArgAction("TAG", Literal(("a",), suffix=";"), suffix=","),
        slot=0,
    )
    assert resolver.resolve([record]).terminator("a") == ","
    record = record_with(Literal(("a",), suffix=";"))
    assert resolver.resolve([record]).terminator("a") == ";"


def test_no_completion_disables_fallback(resolver):
    provider = resolver.resolve([record_with(NoCompletion(), "x")])
    assert isinstance(provider.completer, DummyCompleter)
    assert provider.complete() == []
    assert provider.fallback is False


def test_static_completer(resolver):
    provider = resolver.resolve([record_with(Static(PathCompleter()))])
    assert provider.paths
    assert provider.fallback


def test_static_callable(resolver):
    provider = resolver.resolve([record_with(Static(lambda: ["alpha", "beta"]), "b")])
    assert provider.candidates() == ["beta"]


def test_static_callable_cached():
    calls = []

    def names():
        calls.append(1)
        return ["alice", "bob"]

    resolver = CompletionResolver(cache=ResultCache())
    source = Static(names, cache_duration=30)
    resolver.resolve([record_with(source, "a")])
    provider = resolver.resolve([record_with(source, "b")])
    assert provider.candidates() == ["bob"]
    assert len(calls) == 1


def test_static_callables_cached_separately():
    resolver = CompletionResolver(cache=ResultCache())
    first = resolver.resolve([record_with(Static(lambda: ["alpha"], cache_duration=60))])
    second = resolver.resolve([record_with(Static(lambda: ["beta"], cache_duration=60))])
    assert first.candidates() == ["alpha"]
    assert second.candidates() == ["beta"]


def test_static_callable_uncached_without_duration():
    calls = []

    def names():
        calls.append(1)
        return ["alice"]

    resolver = CompletionResolver(cache=ResultCache())
    resolver.resolve([record_with(Static(names))])
    resolver.resolve([record_with(Static(names))])
    assert len(calls) == 2


def test_dynamic_sees_previous_values(resolver):
    regions = {"prod": ["eu-1", "us-1"], "dev": ["local"]}
    seen_args = []

    def region_names(seen):
        seen_args.append(seen)
        return regions[seen["--env"][-1][0]]

    entries = [
        option("--env ENV", Literal(("prod", "dev"))),
        option("--region REGION", Dynamic(region_names)),
    ]
    history = history_for(["--env", "prod", "--region", ""], entries)
    provider = resolver.resolve(history)
    assert provider.candidates() == ["eu-1", "us-1"]
    assert seen_args[0]["--env"] == [["prod"]]


def test_dynamic_generator_result_and_suffix(resolver):
    source = Dynamic(lambda seen: (name for name in ("x", "y")), suffix=",")
    provider = resolver.resolve([record_with(source)])
    assert provider.candidates() == ["x", "y"]
    assert provider.terminator("x") == ","


def test_dynamic_chain(resolver):
    source = Dynamic(lambda seen: Dynamic(lambda seen: ["deep"]))
    assert resolver.resolve([record_with(source)]).candidates() == ["deep"]


def test_dynamic_depth_limit():
    resolver = CompletionResolver(max_dynamic_depth=3)

    def forever(seen):
        return Dynamic(forever)

    with pytest.raises(MatchError, match="did not settle"):
        resolver.resolve([record_with(Dynamic(forever))])


def test_dynamic_returning_none_guesses(resolver):
    provider = resolver.resolve([record_with(Dynamic(lambda seen: None), name="--dir")])
    assert isinstance(provider.completer, PathCompleter)


def test_guess_at_resolution_time(resolver):
    record = record_with(Guess(), name="--directory")
    provider = resolver.resolve([record])
    assert isinstance(provider.completer, PathCompleter)
    assert provider.completer.only_directories


def test_unknown_positional_adds_files(resolver):
    record = record_with(
        Literal(("-v",)), stub="wor", name="wor", context=MatchContext.UNKNOWN_POSITIONAL
    )
    provider = resolver.resolve([record])
    assert provider.paths
    assert provider.context is MatchContext.UNKNOWN_POSITIONAL


def test_record_without_action_completes_files(resolver):
    record = MatchRecord(MatchContext.POSITIONAL, 0, None, None, stub="sr")
    provider = resolver.resolve([record])
    assert provider.stub == "sr"
    assert isinstance(provider.completer, PathCompleter)


def test_path_terminators(tmp_path):
    (tmp_path / "sub").mkdir()
    (tmp_path / "file.txt").write_text("x")
    provider = CompletionProvider(PathCompleter(), paths=True)
    assert provider.terminator(f"{tmp_path}/sub") == "/"
    assert provider.terminator(f"{tmp_path}/sub/") == ""
    assert provider.terminator(f"{tmp_path}/file.txt") == " "


def test_candidates_with_prefix(resolver):
    provider = resolver.resolve([record_with(Literal(("one", "two")))])
    assert provider.candidates() == ["one", "two"]
    assert provider.candidates("t") == ["two"]
