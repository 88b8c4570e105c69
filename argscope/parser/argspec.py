# ArgScope — (c) 2025 rtj.dev LLC — MIT Licensed
"""
Defines the normalized grammar records produced by the compiler and consumed by
the matcher.

Each `ArgSpec` describes one option spelling or one positional slot in a fixed
set of fields. Options declared together (`-o, --output FILE`) compile to one
record per spelling; the records list each other in `aliases` and share one
`actions` tuple.

Key Types:
- `ArgKind`: option or positional.
- `OptionStyle`: how an option's value is attached (`separate`, `inline`,
  `separate-or-inline`).
- `ArgAction`: one value slot, `(metavar, source, suffix)`.
- `Exclusion`: a name, or every option (`-`), or every positional (`*`), made
  unavailable once a spec has matched.
- `ArgSpec`: the record itself.

Example:
    ArgSpec(
        kind=ArgKind.OPTION,
        name="--output",
        aliases=("-o",),
        style=OptionStyle.SEPARATE_OR_INLINE,
        delimiter="=",
        suffix="=",
        actions=(ArgAction("FILE", Guess()),),
    )
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from argscope.exceptions import GrammarError
from argscope.sources import CompletionSource, Guess

if TYPE_CHECKING:
    from argscope.parser.parser_types import Subparser

WILDCARD = "*"


class ArgKind(Enum):
    """Whether a spec describes an option or a positional argument."""

    OPTION = "option"
    POSITIONAL = "argument"

    @classmethod
    def _missing_(cls, value: object) -> ArgKind:
        if isinstance(value, str):
            normalized = value.strip().lower()
            if normalized in ("positional", "arg", "argument"):
                return cls.POSITIONAL
            if normalized in ("opt", "option", "flag"):
                return cls.OPTION
        valid = ", ".join(member.value for member in cls)
        raise ValueError(f"Invalid {cls.__name__}: {value!r}. Must be one of: {valid}")

    def __str__(self) -> str:
        return self.value


class OptionStyle(Enum):
    """
    How an option takes its value.

    Members:
        SEPARATE: The value is the next token (`--opt ARG`).
        INLINE: The value is glued to the flag (`--opt=ARG`, `-OLEVEL`).
        SEPARATE_OR_INLINE: Either form is accepted.
    """

    SEPARATE = "separate"
    INLINE = "inline"
    SEPARATE_OR_INLINE = "separate-or-inline"

    @classmethod
    def _missing_(cls, value: object) -> OptionStyle:
        if isinstance(value, str):
            normalized = value.strip().lower().replace("_", "-")
            for member in cls:
                if member.value == normalized:
                    return member
        valid = ", ".join(member.value for member in cls)
        raise ValueError(f"Invalid {cls.__name__}: {value!r}. Must be one of: {valid}")

    def __str__(self) -> str:
        return self.value


class ExclusionKind(Enum):
    ALL_OPTIONS = "-"
    ALL_POSITIONALS = "*"
    NAME = "name"


@dataclass(frozen=True)
class Exclusion:
    """One entry of an `excludes` set."""

    kind: ExclusionKind
    name: str | int | None = None

    @classmethod
    def parse(cls, token: Any) -> Exclusion:
        """
        Convert an authoring token into an `Exclusion`.

        `"-"` excludes every option, `"*"` every positional, a non-negative
        integer or any other non-empty string excludes that one name.

        Raises:
            GrammarError: If the token is not one of the above.
        """
        if isinstance(token, Exclusion):
            return token
        if token == "-":
            return cls(ExclusionKind.ALL_OPTIONS)
        if token == WILDCARD:
            return cls(ExclusionKind.ALL_POSITIONALS)
        if isinstance(token, bool):
            raise GrammarError(f"Invalid exclusion token: {token!r}")
        if isinstance(token, int):
            if token < 0:
                raise GrammarError(f"Invalid exclusion index: {token}")
            return cls(ExclusionKind.NAME, token)
        if isinstance(token, str) and token.strip():
            return cls(ExclusionKind.NAME, token.strip())
        raise GrammarError(f"Invalid exclusion token: {token!r}")

    def matches(self, spec: ArgSpec) -> bool:
        if self.kind is ExclusionKind.ALL_OPTIONS:
            return spec.is_option
        if self.kind is ExclusionKind.ALL_POSITIONALS:
            return spec.is_positional
        return self.name == spec.name or self.name in spec.aliases

    def __str__(self) -> str:
        if self.kind is ExclusionKind.NAME:
            return str(self.name)
        return self.kind.value


@dataclass(frozen=True)
class ArgAction:
    """One value slot: its metavar, where completions come from, and a suffix."""

    metavar: str = ""
    source: CompletionSource = field(default_factory=Guess)
    suffix: str | None = None

    def __str__(self) -> str:
        return self.metavar or "ARG"


@dataclass(frozen=True)
class ArgSpec:
    """
    Represents one option spelling or one positional slot.

    Attributes:
        kind (ArgKind): Option or positional.
        name (str | int): The flag string, a positional index, or `WILDCARD`.
        aliases (tuple[str, ...]): Other spellings of the same option.
        style (OptionStyle | None): How the value attaches; `None` without values.
        delimiter (str): Text joining flag and inline value (`=` or empty).
        suffix (str | None): Terminator inserted after completing the flag itself.
        actions (tuple[ArgAction, ...]): One entry per value slot.
        excludes (frozenset[Exclusion]): What becomes unavailable after a match.
        repeatable (bool): Whether the spec may match more than once.
        subparser (Subparser | None): Continuation taking over the remaining tokens.
        help (str): Description shown beside completions.
        value_optional (bool): Inline value may be omitted (`--color[=WHEN]`).
    """

    kind: ArgKind
    name: str | int
    aliases: tuple[str, ...] = ()
    style: OptionStyle | None = None
    delimiter: str = ""
    suffix: str | None = None
    actions: tuple[ArgAction, ...] = ()
    excludes: frozenset[Exclusion] = frozenset()
    repeatable: bool = False
    subparser: Subparser | None = None
    help: str = ""
    value_optional: bool = False

    @property
    def is_option(self) -> bool:
        return self.kind is ArgKind.OPTION

    @property
    def is_positional(self) -> bool:
        return self.kind is ArgKind.POSITIONAL

    @property
    def is_wildcard(self) -> bool:
        return self.is_positional and self.name == WILDCARD

    @property
    def is_long(self) -> bool:
        return isinstance(self.name, str) and self.name.startswith("--")

    @property
    def accepts_inline(self) -> bool:
        return bool(self.actions) and self.style in (
            OptionStyle.INLINE,
            OptionStyle.SEPARATE_OR_INLINE,
        )

    @property
    def accepts_separate(self) -> bool:
        return bool(self.actions) and self.style in (
            OptionStyle.SEPARATE,
            OptionStyle.SEPARATE_OR_INLINE,
        )

    @property
    def names(self) -> tuple[str | int, ...]:
        return (self.name, *self.aliases)

    def position_key(self) -> tuple[int, int]:
        """Sort key placing positional indices in order and the wildcard last."""
        if self.is_wildcard:
            return (1, 0)
        assert isinstance(self.name, int), "positional name must be an index"
        return (0, self.name)

    def get_metavar_text(self) -> str:
        """Render the value descriptor, e.g. `=FILE`, ` A B`, `[=WHEN]`."""
        metavars = " ".join(str(action) for action in self.actions)
        if not metavars:
            return ""
        if self.is_positional:
            return metavars
        if self.style is OptionStyle.SEPARATE:
            return f" {metavars}"
        text = f"{self.delimiter}{metavars}"
        if self.value_optional:
            return f"[{text}]"
        if self.style is OptionStyle.INLINE and not self.delimiter:
            return f"<{metavars}>"
        return text

    def get_usage_text(self) -> str:
        if self.is_positional:
            return self.get_metavar_text() or str(self.name)
        return f"{self.name}{self.get_metavar_text()}"

    def __str__(self) -> str:
        return f"ArgSpec({self.kind}, {self.get_usage_text()!r})"
