import pytest

from argscope.exceptions import GrammarError
from argscope.parser import (
    WILDCARD,
    ArgAction,
    ArgKind,
    OptionStyle,
    RawArgSpec,
    argspecs_from_help,
    argspecs_from_options,
    argument,
    make_argspecs,
    option,
)
from argscope.parser.compiler import parse_flag, split_option_descriptor
from argscope.providers import DIRECTORIES, FILES
from argscope.sources import Guess, Literal, NoCompletion, Static


def by_name(specs):
    return {spec.name: spec for spec in specs}


@pytest.mark.parametrize(
    "text, style, delimiter, suffix, optional, metavars",
    [
        ("-v", None, "", None, False, ()),
        ("-o FILE", OptionStyle.SEPARATE, "", None, False, ("FILE",)),
        ("-o <FILE>", OptionStyle.SEPARATE, "", None, False, ("FILE",)),
        ("--output=FILE", OptionStyle.SEPARATE_OR_INLINE, "=", "=", False, ("FILE",)),
        ("--color[=WHEN]", OptionStyle.INLINE, "=", "=", True, ("WHEN",)),
        ("-O[LEVEL]", OptionStyle.INLINE, "", None, True, ("LEVEL",)),
        ("-W<WARN>", OptionStyle.INLINE, "", "", False, ("WARN",)),
        ("--pair A B", OptionStyle.SEPARATE, "", None, False, ("A", "B")),
    ],
)
def test_parse_flag(text, style, delimiter, suffix, optional, metavars):
    parsed = parse_flag(text)
    assert parsed.style is style
    assert parsed.delimiter == delimiter
    assert parsed.suffix == suffix
    assert parsed.value_optional is optional
    assert parsed.metavars == metavars


def test_parse_flag_rejects_garbage():
    with pytest.raises(GrammarError):
        parse_flag("--opt[x")


def test_split_option_descriptor():
    flags, help_text = split_option_descriptor("-o, --output=FILE   write   to  FILE")
    assert [flag.flag for flag in flags] == ["-o", "--output"]
    assert help_text == "write to FILE"


def test_split_option_descriptor_or_separator():
    flags, _ = split_option_descriptor("-h or --help")
    assert [flag.flag for flag in flags] == ["-h", "--help"]


@pytest.mark.parametrize("descriptor", ["", "   ", None, 3])
def test_split_option_descriptor_invalid(descriptor):
    with pytest.raises(GrammarError):
        split_option_descriptor(descriptor)


def test_aliases_share_actions_across_length_classes():
    specs = by_name(make_argspecs([option("-o, --output=FILE")]))
    short, long = specs["-o"], specs["--output"]
    assert long.style is OptionStyle.SEPARATE_OR_INLINE
    assert long.delimiter == "=" and long.suffix == "="
    assert short.style is OptionStyle.SEPARATE_OR_INLINE
    assert short.delimiter == ""
    assert short.suffix is None
    assert short.actions == long.actions
    assert short.aliases == ("--output",)
    assert long.aliases == ("-o",)


def test_short_carrier_restyles_long_alias():
    specs = by_name(make_argspecs([option("-W<WARN>, --warn")]))
    assert specs["--warn"].style is OptionStyle.INLINE
    assert specs["--warn"].delimiter == "="
    assert specs["--warn"].suffix == "="
    assert specs["-W"].suffix == ""


def test_separate_carrier_is_copied():
    specs = by_name(make_argspecs([option("-f, --file ARCHIVE")]))
    assert specs["-f"].style is OptionStyle.SEPARATE
    assert specs["-f"].delimiter == ""
    assert specs["-f"].suffix is None


def test_same_length_class_copies_verbatim():
    specs = by_name(make_argspecs([option("--output=FILE, --out")]))
    assert specs["--out"].delimiter == "="
    assert specs["--out"].style is OptionStyle.SEPARATE_OR_INLINE


def test_shared_args_disabled():
    specs = by_name(make_argspecs([option("-o, --output=FILE")], shared_args=False))
    assert specs["-o"].actions == ()
    assert specs["-o"].style is None


def test_independent_aliases():
    specs = by_name(make_argspecs([option("-o, --output=FILE", independent=True)]))
    assert specs["-o"].actions == ()
    assert specs["-o"].aliases == ()
    assert specs["--output"].aliases == ()


def test_guesses_resolved_at_compile_time():
    specs = by_name(make_argspecs([option("-C, --directory=DIR"), option("-o FILE")]))
    assert specs["--directory"].actions[0].source is DIRECTORIES
    assert specs["-C"].actions[0].source is DIRECTORIES
    assert specs["-o"].actions[0].source is FILES


def test_extra_guesses():
    specs = make_argspecs(
        [option("--style=NAME")], guesses=[("^--style=", ["plain", "fancy"])]
    )
    assert specs[0].actions[0].source == Literal(("plain", "fancy"))


def test_explicit_actions():
    specs = by_name(
        make_argspecs(
            [
                option("--env ENV", Literal(("dev", "prod")), help="Target"),
                option("--pair A B", [("LEFT", ["x"]), ("RIGHT", NoCompletion(), ",")]),
                option("--cmd", DIRECTORIES),
            ]
        )
    )
    env = specs["--env"]
    assert env.actions == (ArgAction("ENV", Literal(("dev", "prod"))),)
    assert env.help == "Target"
    pair = specs["--pair"]
    assert pair.actions[0] == ArgAction("LEFT", Literal(("x",)))
    assert pair.actions[1].suffix == ","
    cmd = specs["--cmd"]
    assert cmd.style is OptionStyle.SEPARATE
    assert cmd.actions[0].source is DIRECTORIES


def test_callable_action_becomes_static():
    def names():
        return ["a", "b"]

    spec = make_argspecs([option("--name NAME", names)])[0]
    assert spec.actions[0].source == Static(names)


def test_actions_string_lists_metavars():
    spec = make_argspecs([argument(0, "SRC")])[0]
    assert spec.actions[0].metavar == "SRC"
    assert spec.actions[0].source is FILES


def test_inline_help_and_property_help():
    specs = by_name(make_argspecs([option("-v, --verbose   be chatty")]))
    assert specs["-v"].help == "be chatty"
    spec = make_argspecs([option("-q   inline", help="explicit")])[0]
    assert spec.help == "explicit"


def test_positionals():
    specs = make_argspecs(
        [
            argument(0, [DIRECTORIES], help="where"),
            argument("1", "FILE"),
            argument("*", excludes=["-"], repeat=True),
        ]
    )
    assert specs[0].name == 0 and specs[0].help == "where"
    assert specs[1].name == 1
    assert specs[2].is_wildcard and specs[2].repeatable
    assert isinstance(specs[2].actions[0].source, Guess)


@pytest.mark.parametrize("name", [-1, "x", True, 1.5])
def test_positional_invalid_name(name):
    with pytest.raises(GrammarError):
        make_argspecs([argument(name)])


def test_excludes_and_repeat():
    spec = make_argspecs([option("--", excludes="-", repeat=True)])[0]
    assert spec.repeatable
    assert {str(exclusion) for exclusion in spec.excludes} == {"-"}


@pytest.mark.parametrize(
    "entry",
    [
        "not-an-entry",
        ("option",),
        ("switch", "-v"),
        ("option", "-v", None, {"bogus": 1}),
        ("option", "-v", None, {"subparser": "not callable"}),
        ("option", "-v", None, {"help": 3}),
        ("option", "-v", None, "properties"),
        ("argument", 0, None, {"independent": True}),
        ("option", "-v", 42),
        ("option", "-v", [("FILE", object())]),
    ],
)
def test_malformed_entries(entry):
    with pytest.raises(GrammarError):
        make_argspecs([entry])


def test_duplicate_option_rejected():
    with pytest.raises(GrammarError, match="Duplicate"):
        make_argspecs([option("-v"), option("-v, --verbose")])


def test_dedupe_keeps_first():
    specs = make_argspecs(
        [option("-v", help="first"), option("-v", help="second")], dedupe=True
    )
    assert len(specs) == 1
    assert specs[0].help == "first"


def test_compiling_twice_is_a_no_op():
    specs = make_argspecs([option("-o, --output=FILE"), argument(WILDCARD)])
    assert make_argspecs(specs) == specs


def test_raw_argspec_mapping_entries():
    specs = by_name(
        make_argspecs(
            [
                {"option": "-e, --env=ENV", "actions": [["ENV", ["dev", "prod"]]]},
                {"option": "--dir", "actions": "@directories"},
                {"argument": "*", "actions": "@files", "excludes": ["-"]},
            ]
        )
    )
    assert specs["--env"].actions[0].source == Literal(("dev", "prod"))
    assert specs["-e"].actions == specs["--env"].actions
    assert specs["--dir"].actions[0].source is DIRECTORIES
    assert specs[WILDCARD].actions[0].source is FILES


@pytest.mark.parametrize(
    "entry",
    [
        {"option": "-v", "argument": 0},
        {"help": "neither"},
        {"option": "-v", "colour": "red"},
        {"option": "-v FILE", "actions": "@nonsense"},
    ],
)
def test_raw_argspec_invalid(entry):
    with pytest.raises(GrammarError):
        make_argspecs([entry])


def test_raw_argspec_to_entry():
    raw = RawArgSpec(option="-v", help="verbose", repeat=True)
    kind, descriptor, actions, properties = raw.to_entry()
    assert kind is ArgKind.OPTION
    assert descriptor == "-v"
    assert actions is None
    assert properties == {"help": "verbose", "repeat": True}


def test_argspecs_from_options_skips_unparsable_and_duplicates():
    specs = argspecs_from_options(
        [
            ("-a, --all", "show all"),
            ("--bad[x", "broken"),
            ("-a", "again"),
            ("--color[=WHEN]", "colorize"),
        ]
    )
    names = [spec.name for spec in specs]
    assert names == ["-a", "--all", "--color"]
    assert by_name(specs)["-a"].help == "show all"


def test_argspecs_from_help():
    text = """
Options:
  -o, --output=FILE   write output to FILE
  -v                  verbose
"""
    specs = by_name(argspecs_from_help(text))
    assert set(specs) == {"-o", "--output", "-v"}
    assert specs["--output"].help == "write output to FILE"
