# ArgScope — (c) 2025 rtj.dev LLC — MIT Licensed
"""
Turns the last record of a match trace into a `CompletionProvider`.

Resolution follows the record's action:

- `Dynamic` sources are called with `flatten_history()` of the whole trace and
  their result is resolved in turn.
- `Guess` sources left unresolved at compile time are guessed now.
- `Literal` sources become an enumeration, annotated with help text when
  annotation is enabled.
- `Static` sources are used as is; callable providers are memoized in the
  session's `ResultCache` when they declare a `cache_duration`.
- `NoCompletion` yields nothing and disables the host's filename fallback.

Records for unknown positionals also offer file names next to the option names.

`CompletionProvider` is a prompt_toolkit `Completer`, so the host can use it
directly, and it carries the stub, the text preceding the stub in the same token,
and the termination string for each candidate (`=` for `--opt=ARG` flags,
nothing for glued short options, a space otherwise).
"""
from __future__ import annotations

import os
from collections.abc import Iterable as IterableABC
from typing import Any, Iterable, Mapping

from prompt_toolkit.completion import (
    CompleteEvent,
    Completer,
    Completion,
    DummyCompleter,
    PathCompleter,
    WordCompleter,
    merge_completers,
)
from prompt_toolkit.document import Document

from argscope.cache import ResultCache
from argscope.exceptions import MatchError
from argscope.logger import logger
from argscope.parser.guess import guess
from argscope.parser.parser_types import MatchContext, MatchRecord
from argscope.providers import FILES
from argscope.sources import (
    CompletionSource,
    Dynamic,
    Guess,
    Literal,
    NoCompletion,
    Static,
    as_source,
)
from argscope.utils import truncate

DEFAULT_TERMINATOR = " "


def flatten_history(
    history: Iterable[MatchRecord],
) -> dict[str | int, list[list[str]]]:
    """
    Index the values of every completed match by name.

    Each match contributes one list of the values it consumed, stored under the
    spec's name and every alias. The last record is the one being completed and
    is left out.

    Example:
        `-o a --output b -v` gives
        `{"-o": [["a"], ["b"]], "--output": [["a"], ["b"]], "-v": [[]]}`
    """
    records = list(history)[:-1]
    matches: dict[int, tuple[Any, list[str]]] = {}
    for record in records:
        if record.spec is None:
            continue
        _, values = matches.setdefault(record.match_index, (record.spec, []))
        if record.slot is not None:
            values.append(record.stub)
    flattened: dict[str | int, list[list[str]]] = {}
    for spec, values in matches.values():
        for name in spec.names:
            flattened.setdefault(name, []).append(list(values))
    return flattened


class CompletionProvider(Completer):
    """
    Completions for one stub, with termination metadata for the host.

    Args:
        completer (Completer): Where candidates come from.
        stub (str): The partial text being completed.
        stub_prefix (str): Text of the same token before the stub (`--output=`).
        suffix (str | None): Terminator for every candidate; `None` means a space.
        suffixes (Mapping[str, str]): Per-candidate terminators.
        fallback (bool): Whether the host may fall back to file names.
        paths (bool): Candidates are file system paths; directories end in `/`.
        context (MatchContext | None): Context of the record this came from.
    """

    def __init__(
        self,
        completer: Completer,
        stub: str = "",
        stub_prefix: str = "",
        suffix: str | None = None,
        suffixes: Mapping[str, str] | None = None,
        fallback: bool = True,
        context: MatchContext | None = None,
        paths: bool = False,
    ) -> None:
        self.completer = completer
        self.stub = stub
        self.stub_prefix = stub_prefix
        self.suffix = suffix
        self.suffixes = dict(suffixes or {})
        self.fallback = fallback
        self.context = context
        self.paths = paths

    def get_completions(
        self, document: Document, complete_event: CompleteEvent
    ) -> Iterable[Completion]:
        yield from self.completer.get_completions(document, complete_event)

    def complete(self, prefix: str | None = None) -> list[Completion]:
        """Return the completions for `prefix`, the stub by default."""
        text = self.stub if prefix is None else prefix
        return list(
            self.get_completions(
                Document(text, len(text)), CompleteEvent(completion_requested=True)
            )
        )

    def candidates(self, prefix: str | None = None) -> list[str]:
        """Return each completion as the full text that replaces the stub."""
        text = self.stub if prefix is None else prefix
        candidates = []
        for completion in self.complete(text):
            start = len(text) + completion.start_position
            candidates.append(f"{text[:start]}{completion.text}")
        return list(dict.fromkeys(candidates))

    def terminator(self, candidate: str) -> str:
        """Return the string the host should insert after `candidate`."""
        if candidate in self.suffixes:
            return self.suffixes[candidate]
        if self.suffix is not None:
            return self.suffix
        if self.paths and candidate.endswith(os.sep):
            return ""
        if self.paths and os.path.isdir(os.path.expanduser(candidate)):
            return os.sep
        return DEFAULT_TERMINATOR

    def __str__(self) -> str:
        return (
            f"CompletionProvider(stub={self.stub!r}, stub_prefix={self.stub_prefix!r}, "
            f"suffix={self.suffix!r}, fallback={self.fallback})"
        )


class CompletionResolver:
    """
    Resolves the most recent match record into a `CompletionProvider`.

    Args:
        cache (ResultCache | None): Memoizes callable providers with a cache duration.
        annotate (bool): Attach help text beside candidates.
        annotation_width (int): Annotations are cut to this many characters.
        max_dynamic_depth (int): How many `Dynamic` sources may chain.
    """

    def __init__(
        self,
        cache: ResultCache | None = None,
        annotate: bool = True,
        annotation_width: int = 40,
        max_dynamic_depth: int = 8,
    ) -> None:
        self.cache = cache
        self.annotate = annotate
        self.annotation_width = annotation_width
        self.max_dynamic_depth = max_dynamic_depth

    def resolve(self, history: Iterable[MatchRecord]) -> CompletionProvider:
        """
        Build the provider for the last record of `history`.

        Raises:
            MatchError: If `Dynamic` sources keep producing `Dynamic` sources.
        """
        history = list(history)
        if not history or history[-1].action is None:
            stub = history[-1].stub if history else ""
            return CompletionProvider(FILES.provider, stub=stub, paths=True)

        record = history[-1]
        action = record.action
        assert action is not None
        source = self.settle(record, history)
        completer, fallback = self.completer_for(source)
        paths = isinstance(completer, PathCompleter)
        if record.context is MatchContext.UNKNOWN_POSITIONAL:
            completer = merge_completers([completer, FILES.provider])
            paths = True
        suffix = action.suffix if action.suffix is not None else source.suffix
        suffixes = source.suffixes if isinstance(source, Literal) else {}
        logger.debug(
            "Resolved %s record %r to %s", record.context, record.name, type(source).__name__
        )
        return CompletionProvider(
            completer,
            stub=record.stub,
            stub_prefix=record.stub_prefix,
            suffix=suffix,
            suffixes=suffixes,
            fallback=fallback,
            context=record.context,
            paths=paths,
        )

    def settle(self, record: MatchRecord, history: list[MatchRecord]) -> CompletionSource:
        """Resolve `Dynamic` and `Guess` sources down to a concrete source."""
        assert record.action is not None
        source = record.action.source
        flattened: dict[str | int, list[list[str]]] | None = None
        for _ in range(self.max_dynamic_depth):
            if isinstance(source, Dynamic):
                if flattened is None:
                    flattened = flatten_history(history)
                source = self.coerce(source.generator(flattened), source.suffix)
            elif isinstance(source, Guess):
                name = record.name if record.name is not None else ""
                guessed = guess(name, record.action.metavar, source.hints)
                source = guessed.with_suffix(source.suffix) if source.suffix else guessed
            else:
                return source
        raise MatchError(
            f"Completion source for {record.name!r} did not settle after "
            f"{self.max_dynamic_depth} dynamic steps"
        )

    @staticmethod
    def coerce(value: Any, suffix: str | None = None) -> CompletionSource:
        """Turn whatever a `Dynamic` generator returned into a source."""
        if (
            isinstance(value, IterableABC)
            and not isinstance(
                value, (str, CompletionSource, Completer, tuple, list, set, frozenset)
            )
        ):
            value = tuple(value)
        source = as_source(value)
        if suffix is not None and source.suffix is None:
            return source.with_suffix(suffix)
        return source

    def completer_for(self, source: CompletionSource) -> tuple[Completer, bool]:
        """Return the completer for a settled source and whether fallback is allowed."""
        if isinstance(source, NoCompletion):
            return DummyCompleter(), False
        if isinstance(source, Literal):
            return self.literal_completer(source), True
        if isinstance(source, Static):
            if isinstance(source.provider, Completer):
                return source.provider, True
            values = self.call_provider(source)
            return WordCompleter(values, sentence=True), True
        raise MatchError(f"Unsettled completion source: {source!r}")

    def call_provider(self, source: Static) -> list[str]:
        provider = source.provider
        assert callable(provider)
        if self.cache is None or source.cache_duration <= 0:
            return [str(value) for value in provider()]
        return self.cache.cached(
            ("source", provider),
            lambda: [str(value) for value in provider()],
            source.cache_duration,
        )

    def literal_completer(self, source: Literal) -> WordCompleter:
        values = list(source.values)
        if not self.annotate or not source.annotations:
            return WordCompleter(values, sentence=True)
        column = max((len(value) for value in values), default=0)
        return WordCompleter(
            values,
            sentence=True,
            display_dict={value: value.ljust(column) for value in values},
            meta_dict={
                value: truncate(text, self.annotation_width)
                for value, text in source.annotations.items()
                if value in source.values
            },
        )
