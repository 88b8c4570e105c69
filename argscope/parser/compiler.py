# ArgScope — (c) 2025 rtj.dev LLC — MIT Licensed
"""
Compiles declarative grammar entries into a normalized list of `ArgSpec` records.

A grammar is written as a list of entries, each one of:

- a tuple `(kind, descriptor, [actions], [properties])`, where `kind` is
  `"option"` or `"argument"`;
- a mapping such as `{"option": "-o, --output FILE", "help": "..."}` (the form
  used by YAML/TOML grammar files, validated by `RawArgSpec`);
- an already compiled `ArgSpec`, passed through unchanged so compiling twice is
  a no-op.

Option descriptors bundle every spelling of an option, the value placeholder
and optional inline help separated by two or more spaces:

    "-o, --output=FILE   write output to FILE"

Value placeholders decide how the value attaches:

    "--opt ARG"     separate (next token)
    "--opt=ARG"     separate or inline, delimiter "="
    "--opt[=ARG]"   optional inline, delimiter "="
    "--opt[ARG]"    optional inline, no delimiter
    "--opt<ARG>"    required inline, no delimiter

Spellings that carry no placeholder of their own inherit the actions of a
spelling that does (see `share_aliases`), unless the entry is `independent` or
the grammar is compiled with `shared_args=False`.

Example:
    specs = make_argspecs(
        [
            option("-o, --output FILE", help="Write output to FILE"),
            option("-v"),
            argument("*", "FILE"),
        ]
    )
"""
from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import Any, Iterable, Mapping

from prompt_toolkit.completion import Completer
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from argscope.exceptions import GrammarError
from argscope.logger import logger
from argscope.parser.argspec import (
    WILDCARD,
    ArgAction,
    ArgKind,
    ArgSpec,
    Exclusion,
    OptionStyle,
)
from argscope.parser.extractor import extract_options
from argscope.parser.guess import guess
from argscope.providers import (
    COMMANDS,
    DIRECTORIES,
    ENVIRONMENT,
    FILES,
    GROUPS,
    USERS,
)
from argscope.sources import CompletionSource, Guess, NoCompletion, as_source

OPTION_PROPERTIES = frozenset({"help", "excludes", "repeat", "subparser", "independent"})
POSITIONAL_PROPERTIES = frozenset({"help", "excludes", "repeat", "subparser"})

HELP_SPLIT_RE = re.compile(r"\s{2,}|\t")
FLAG_SPLIT_RE = re.compile(r"(?:\s*,\s*|\s+or\s+|\s+)(?=[-+])")
FLAG_RE = re.compile(r"^(?P<flag>[^\s=\[<{]+)(?P<value>.*)$")

NAMED_SOURCES: dict[str, CompletionSource] = {
    "files": FILES,
    "directories": DIRECTORIES,
    "users": USERS,
    "groups": GROUPS,
    "commands": COMMANDS,
    "environment": ENVIRONMENT,
    "none": NoCompletion(),
    "guess": Guess(),
}


@dataclass(frozen=True)
class ParsedFlag:
    """One flag spelling split from an option descriptor."""

    flag: str
    style: OptionStyle | None = None
    delimiter: str = ""
    suffix: str | None = None
    value_optional: bool = False
    metavars: tuple[str, ...] = ()
    actions: tuple[ArgAction, ...] = ()

    @property
    def is_short(self) -> bool:
        return len(self.flag) == 2 and self.flag[0] in "-+" and self.flag[1] not in "-+"


def option(descriptor: str, actions: Any = None, **properties: Any) -> tuple:
    """Build an option entry tuple."""
    return (ArgKind.OPTION, descriptor, actions, properties)


def argument(index: int | str, actions: Any = None, **properties: Any) -> tuple:
    """Build a positional entry tuple; `index` is a position or `"*"`."""
    return (ArgKind.POSITIONAL, index, actions, properties)


def _strip_angles(token: str) -> str:
    if len(token) >= 2 and token[0] == "<" and token[-1] == ">":
        return token[1:-1]
    return token


def parse_flag(text: str) -> ParsedFlag:
    """
    Split one flag spelling from its value placeholder.

    Raises:
        GrammarError: If the text does not start with a flag.
    """
    match = FLAG_RE.match(text.strip())
    if not match:
        raise GrammarError(f"Malformed option descriptor: {text!r}")
    flag, value = match.group("flag"), match.group("value")
    if not value:
        return ParsedFlag(flag)
    if value[0].isspace():
        metavars = tuple(_strip_angles(token) for token in value.split())
        return ParsedFlag(flag, OptionStyle.SEPARATE, "", None, False, metavars)
    if value.startswith("[") and value.endswith("]"):
        inner = value[1:-1]
        delimiter = "=" if inner.startswith("=") else ""
        metavars = tuple(inner[len(delimiter) :].split()) or ("",)
        return ParsedFlag(
            flag, OptionStyle.INLINE, delimiter, delimiter or None, True, metavars
        )
    if value.startswith("="):
        metavars = tuple(_strip_angles(token) for token in value[1:].split()) or ("",)
        return ParsedFlag(flag, OptionStyle.SEPARATE_OR_INLINE, "=", "=", False, metavars)
    if value.startswith(("<", "{")):
        metavars = tuple(_strip_angles(token) for token in value.split())
        return ParsedFlag(flag, OptionStyle.INLINE, "", "", False, metavars)
    raise GrammarError(f"Malformed value placeholder {value!r} in {text!r}")


def split_option_descriptor(descriptor: str) -> tuple[list[ParsedFlag], str]:
    """
    Split a combined option descriptor into flag spellings and inline help.

    Returns:
        tuple[list[ParsedFlag], str]: The parsed spellings and the help text.

    Raises:
        GrammarError: If the descriptor holds no flag.
    """
    if not isinstance(descriptor, str) or not descriptor.strip():
        raise GrammarError(f"Option descriptor must be a non-empty string: {descriptor!r}")
    parts = HELP_SPLIT_RE.split(descriptor.strip(), maxsplit=1)
    help_text = " ".join(parts[1].split()) if len(parts) > 1 else ""
    flags = [
        parse_flag(chunk)
        for chunk in FLAG_SPLIT_RE.split(parts[0].strip().rstrip(","))
        if chunk.strip()
    ]
    if not flags:
        raise GrammarError(f"No flags found in option descriptor: {descriptor!r}")
    return flags, help_text


def _restyle(flag: ParsedFlag, carrier: ParsedFlag) -> ParsedFlag:
    """Adapt a carrier's value style to a spelling of the other length class."""
    if carrier.style is OptionStyle.SEPARATE:
        delimiter, suffix = carrier.delimiter, carrier.suffix
    elif flag.is_short:
        delimiter = ""
        optional = carrier.value_optional or carrier.style is OptionStyle.SEPARATE_OR_INLINE
        suffix = None if optional else ""
    else:
        delimiter = suffix = "="
    return replace(
        flag,
        style=carrier.style,
        delimiter=delimiter,
        suffix=suffix,
        value_optional=carrier.value_optional,
        actions=carrier.actions,
    )


def share_aliases(flags: list[ParsedFlag], shared_args: bool = True) -> list[ParsedFlag]:
    """
    Let spellings without actions inherit them from a spelling that has some.

    A spelling inherits from the first carrier of its own length class (short
    `-x` vs. anything longer) when there is one, copying style, delimiter and
    suffix verbatim; otherwise it inherits from the first carrier overall and
    the delimiter/suffix are recomputed for its length class.
    """
    if not shared_args:
        return list(flags)
    carriers = [flag for flag in flags if flag.actions]
    if not carriers:
        return list(flags)
    shared = []
    for flag in flags:
        if flag.actions:
            shared.append(flag)
            continue
        same_class = next(
            (carrier for carrier in carriers if carrier.is_short == flag.is_short), None
        )
        if same_class is not None:
            shared.append(
                replace(
                    flag,
                    style=same_class.style,
                    delimiter=same_class.delimiter,
                    suffix=same_class.suffix,
                    value_optional=same_class.value_optional,
                    actions=same_class.actions,
                )
            )
        else:
            shared.append(_restyle(flag, carriers[0]))
    return shared


def _coerce_action(item: Any, metavar: str) -> ArgAction:
    if isinstance(item, ArgAction):
        return item
    if isinstance(item, str):
        return ArgAction(item, Guess())
    if isinstance(item, (CompletionSource, Completer)) or callable(item):
        return ArgAction(metavar, as_source(item))
    if isinstance(item, (tuple, list)) and len(item) in (2, 3):
        metavar_text, source = item[0], item[1]
        if not isinstance(metavar_text, str):
            raise GrammarError(f"Action metavar must be a string: {metavar_text!r}")
        suffix = item[2] if len(item) == 3 else None
        if suffix is not None and not isinstance(suffix, str):
            raise GrammarError(f"Action suffix must be a string: {suffix!r}")
        return ArgAction(metavar_text, as_source(source), suffix)
    raise GrammarError(f"Invalid action: {item!r}")


def coerce_actions(raw: Any, metavars: tuple[str, ...] = ()) -> tuple[ArgAction, ...]:
    """
    Normalize the authoring forms of an actions list.

    `None` derives one `Guess` action per metavar; a string is a space-separated
    list of metavars; a single source, `Completer` or callable is one action; a
    list holds one item per value slot.
    """
    if raw is None:
        return tuple(ArgAction(metavar, Guess()) for metavar in metavars)
    if isinstance(raw, str):
        return tuple(ArgAction(metavar, Guess()) for metavar in raw.split())
    if isinstance(raw, (ArgAction, CompletionSource, Completer)) or callable(raw):
        return (_coerce_action(raw, metavars[0] if metavars else ""),)
    if isinstance(raw, (tuple, list)):
        return tuple(
            _coerce_action(item, metavars[index] if index < len(metavars) else "")
            for index, item in enumerate(raw)
        )
    raise GrammarError(f"Invalid actions: {raw!r}")


def _resolve_guesses(
    name: str | int,
    actions: tuple[ArgAction, ...],
    hints: tuple[tuple[str, CompletionSource], ...],
    defer: bool = False,
) -> tuple[ArgAction, ...]:
    resolved = []
    for action in actions:
        source = action.source
        if isinstance(source, Guess):
            if defer:
                source = Guess(hints + source.hints, source.suffix)
            else:
                guessed = guess(name, action.metavar, source.hints + hints)
                source = guessed.with_suffix(source.suffix) if source.suffix else guessed
        resolved.append(replace(action, source=source))
    return tuple(resolved)


def _parse_excludes(raw: Any) -> frozenset[Exclusion]:
    if raw is None:
        return frozenset()
    if isinstance(raw, (str, int)):
        raw = [raw]
    try:
        tokens = list(raw)
    except TypeError:
        raise GrammarError(f"excludes must be a token or a list of tokens: {raw!r}")
    return frozenset(Exclusion.parse(token) for token in tokens)


def _validate_properties(properties: Mapping, allowed: frozenset[str]) -> dict[str, Any]:
    for key in properties:
        if not isinstance(key, str):
            raise GrammarError(f"Property keys must be keywords, got {key!r}")
        if key not in allowed:
            raise GrammarError(
                f"Unknown property '{key}'. Must be one of: {', '.join(sorted(allowed))}"
            )
    subparser = properties.get("subparser")
    if subparser is not None and not callable(subparser):
        raise GrammarError(f"subparser must be callable, got {subparser!r}")
    if not isinstance(properties.get("help", ""), str):
        raise GrammarError(f"help must be a string, got {properties['help']!r}")
    return dict(properties)


def _normalize_entry(entry: Any) -> tuple[ArgKind, Any, Any, dict[str, Any]]:
    if isinstance(entry, Mapping):
        try:
            entry = RawArgSpec.model_validate(entry).to_entry()
        except ValidationError as error:
            raise GrammarError(f"Invalid grammar entry {entry!r}: {error}") from error
    if not isinstance(entry, (tuple, list)) or not 2 <= len(entry) <= 4:
        raise GrammarError(f"Malformed grammar entry: {entry!r}")
    try:
        kind = ArgKind(entry[0])
    except ValueError as error:
        raise GrammarError(f"Malformed entry kind in {entry!r}: {error}") from error
    rest = list(entry[2:])
    properties: Mapping = {}
    if rest and isinstance(rest[-1], Mapping):
        properties = rest.pop()
    elif len(rest) == 2:
        raise GrammarError(f"Properties must be a mapping in {entry!r}")
    actions = rest[0] if rest else None
    return kind, entry[1], actions, dict(properties)


def _compile_positional(
    descriptor: Any,
    actions: Any,
    properties: dict[str, Any],
    hints: tuple[tuple[str, CompletionSource], ...],
) -> ArgSpec:
    properties = _validate_properties(properties, POSITIONAL_PROPERTIES)
    if isinstance(descriptor, str) and descriptor.isdigit():
        descriptor = int(descriptor)
    if descriptor != WILDCARD and (
        isinstance(descriptor, bool) or not isinstance(descriptor, int) or descriptor < 0
    ):
        raise GrammarError(
            f"Positional name must be a non-negative index or '*': {descriptor!r}"
        )
    compiled = coerce_actions(actions) or (ArgAction("", Guess()),)
    deferred = descriptor == WILDCARD and all(not action.metavar for action in compiled)
    return ArgSpec(
        kind=ArgKind.POSITIONAL,
        name=descriptor,
        actions=_resolve_guesses(descriptor, compiled, hints, defer=deferred),
        excludes=_parse_excludes(properties.get("excludes")),
        repeatable=bool(properties.get("repeat", False)),
        subparser=properties.get("subparser"),
        help=properties.get("help", ""),
    )


def _compile_option(
    descriptor: Any,
    actions: Any,
    properties: dict[str, Any],
    hints: tuple[tuple[str, CompletionSource], ...],
    shared_args: bool,
) -> list[ArgSpec]:
    properties = _validate_properties(properties, OPTION_PROPERTIES)
    flags, inline_help = split_option_descriptor(descriptor)
    independent = bool(properties.get("independent", False))

    if actions is not None:
        carriers = [flag for flag in flags if flag.metavars] or [
            replace(flags[0], style=OptionStyle.SEPARATE)
        ]
        carrier_names = {flag.flag for flag in carriers}
        explicit = {flag.flag: flag for flag in carriers}
        flags = [
            (
                replace(
                    explicit[flag.flag],
                    actions=coerce_actions(actions, explicit[flag.flag].metavars),
                )
                if flag.flag in carrier_names
                else flag
            )
            for flag in flags
        ]
    else:
        flags = [
            replace(flag, actions=coerce_actions(None, flag.metavars)) for flag in flags
        ]

    flags = [
        replace(flag, actions=_resolve_guesses(flag.flag, flag.actions, hints))
        for flag in flags
    ]
    flags = share_aliases(flags, shared_args=shared_args and not independent)

    names = [flag.flag for flag in flags]
    excludes = _parse_excludes(properties.get("excludes"))
    compiled = []
    for flag in flags:
        has_value = bool(flag.actions)
        compiled.append(
            ArgSpec(
                kind=ArgKind.OPTION,
                name=flag.flag,
                aliases=() if independent else tuple(n for n in names if n != flag.flag),
                style=flag.style if has_value else None,
                delimiter=flag.delimiter if has_value else "",
                suffix=flag.suffix if has_value else None,
                actions=flag.actions,
                excludes=excludes,
                repeatable=bool(properties.get("repeat", False)),
                subparser=properties.get("subparser"),
                help=properties.get("help") or inline_help,
                value_optional=flag.value_optional if has_value else False,
            )
        )
    return compiled


def make_argspecs(
    entries: Iterable[Any],
    *,
    guesses: Iterable[tuple[str, Any]] = (),
    shared_args: bool = True,
    dedupe: bool = False,
) -> list[ArgSpec]:
    """
    Compile grammar entries into a normalized `ArgSpec` list.

    Args:
        entries: Entry tuples, mappings, or compiled `ArgSpec`s.
        guesses: Extra `(pattern, source)` pairs consulted before the guess table.
        shared_args: Let co-declared spellings share one set of actions.
        dedupe: Keep the first spec for a repeated option name instead of
            rejecting the grammar (used for extracted help text).

    Returns:
        list[ArgSpec]: The compiled grammar.

    Raises:
        GrammarError: On any malformed entry, property or descriptor.
    """
    hints = tuple((pattern, as_source(source)) for pattern, source in guesses)
    specs: list[ArgSpec] = []
    seen: set[str | int] = set()
    for entry in entries:
        if isinstance(entry, ArgSpec):
            compiled = [entry]
        else:
            kind, descriptor, actions, properties = _normalize_entry(entry)
            if kind is ArgKind.POSITIONAL:
                compiled = [_compile_positional(descriptor, actions, properties, hints)]
            else:
                compiled = _compile_option(
                    descriptor, actions, properties, hints, shared_args
                )
        for spec in compiled:
            if spec.is_option:
                if spec.name in seen:
                    if dedupe:
                        logger.debug("Skipping duplicate option %s", spec.name)
                        continue
                    raise GrammarError(f"Duplicate option name: {spec.name}")
                seen.add(spec.name)
            specs.append(spec)
    return specs


def argspecs_from_options(
    pairs: Iterable[tuple[str, str]],
    *,
    guesses: Iterable[tuple[str, Any]] = (),
) -> list[ArgSpec]:
    """
    Compile extractor output. Pairs whose option string does not parse are
    skipped and later duplicates of an option name are dropped.
    """
    guesses = tuple(guesses)
    specs: list[ArgSpec] = []
    for options, description in pairs:
        try:
            specs.extend(make_argspecs([option(options, help=description)], guesses=guesses))
        except GrammarError as error:
            logger.debug("Ignoring unparsable extracted option %r: %s", options, error)
    return make_argspecs(specs, dedupe=True)


def argspecs_from_help(
    text: str,
    *,
    guesses: Iterable[tuple[str, Any]] = (),
    **extract_kwargs: Any,
) -> list[ArgSpec]:
    """Compile the options the extractor finds in help or manual text."""
    return argspecs_from_options(extract_options(text, **extract_kwargs), guesses=guesses)


def _resolve_named_source(value: Any) -> Any:
    if isinstance(value, str) and value.startswith("@"):
        try:
            return NAMED_SOURCES[value[1:]]
        except KeyError:
            raise GrammarError(
                f"Unknown named source '{value}'. "
                f"Must be one of: {', '.join('@' + name for name in NAMED_SOURCES)}"
            ) from None
    return value


class RawArgSpec(BaseModel):
    """Mapping form of a grammar entry, as written in YAML/TOML grammar files."""

    model_config = ConfigDict(extra="forbid", arbitrary_types_allowed=True)

    option: str | None = None
    argument: int | str | None = None
    actions: Any = None
    help: str = ""
    excludes: list[str | int] = Field(default_factory=list)
    repeat: bool = False
    subparser: Any = None
    independent: bool = False

    @model_validator(mode="after")
    def check_kind(self) -> RawArgSpec:
        if (self.option is None) == (self.argument is None):
            raise ValueError("exactly one of 'option' or 'argument' must be given")
        return self

    def _actions(self) -> Any:
        if isinstance(self.actions, list):
            return [
                (
                    [item[0], _resolve_named_source(item[1]), *item[2:]]
                    if isinstance(item, (list, tuple))
                    else _resolve_named_source(item)
                )
                for item in self.actions
            ]
        if isinstance(self.actions, str) and self.actions.startswith("@"):
            return _resolve_named_source(self.actions)
        return self.actions

    def to_entry(self) -> tuple:
        properties: dict[str, Any] = {"help": self.help, "repeat": self.repeat}
        if self.excludes:
            properties["excludes"] = self.excludes
        if self.subparser is not None:
            properties["subparser"] = self.subparser
        if self.option is not None:
            if self.independent:
                properties["independent"] = True
            return (ArgKind.OPTION, self.option, self._actions(), properties)
        if self.independent:
            raise GrammarError("'independent' only applies to options")
        return (ArgKind.POSITIONAL, self.argument, self._actions(), properties)
