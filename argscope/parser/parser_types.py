# ArgScope — (c) 2025 rtj.dev LLC — MIT Licensed
"""
Match-trace types shared by the matcher, subparsers and the resolver.

Contents:
- `MatchContext`: what kind of thing a token was matched as.
- `MatchRecord`: one token's worth of matching, the unit of the match trace.
- `Subparser`: the continuation protocol for nested command lines.
- `ParseState`: the `(tokens, specs, history)` triple threaded through parsing.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol, runtime_checkable

from argscope.parser.argspec import ArgAction, ArgSpec


class MatchContext(Enum):
    OPTION = "option"
    POSITIONAL = "positional"
    UNKNOWN_OPTION = "unknown-option"
    UNKNOWN_POSITIONAL = "unknown-positional"

    @property
    def is_unknown(self) -> bool:
        return self in (MatchContext.UNKNOWN_OPTION, MatchContext.UNKNOWN_POSITIONAL)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class MatchRecord:
    """
    One completed or in-progress match.

    Attributes:
        context (MatchContext): Option, positional, or one of the unknown contexts.
        name (str | int | None): The matched spec's name, or the raw token when unknown.
        spec (ArgSpec | None): The matched spec.
        action (ArgAction | None): The value slot (or flag-name slot) in play.
        values (tuple[str, ...]): Values this match consumed before the stub.
        stub (str): The partial text being completed at this point.
        stub_prefix (str): Text of the same token preceding the stub (`--output=`).
        match_index (int): Records with equal indices belong to one match.
        slot (int | None): Value slot number, `None` for the flag token itself.
    """

    context: MatchContext
    name: str | int | None
    spec: ArgSpec | None
    action: ArgAction | None
    values: tuple[str, ...] = ()
    stub: str = ""
    stub_prefix: str = ""
    match_index: int = 0
    slot: int | None = None

    @property
    def is_flag(self) -> bool:
        return self.slot is None

    def __str__(self) -> str:
        return (
            f"MatchRecord({self.context}, name={self.name!r}, "
            f"action={str(self.action) if self.action else None!r}, stub={self.stub!r})"
        )


ParseState = tuple[list[str], list[ArgSpec], list[MatchRecord]]


@runtime_checkable
class Subparser(Protocol):
    """Continuation that may consume any number of the remaining tokens."""

    def __call__(
        self,
        tokens: list[str],
        specs: list[ArgSpec],
        history: list[MatchRecord],
    ) -> ParseState: ...


def next_match_index(history: list[MatchRecord]) -> int:
    return history[-1].match_index + 1 if history else 0


@dataclass
class MatchTrace:
    """The final result of matching a whole command line."""

    program: str
    history: list[MatchRecord] = field(default_factory=list)
    remaining: list[ArgSpec] = field(default_factory=list)

    @property
    def last(self) -> MatchRecord | None:
        return self.history[-1] if self.history else None
