# ArgScope — (c) 2025 rtj.dev LLC — MIT Licensed
"""
Defines the completion-source model: a closed set of value types describing
"what can go here" for one option value or positional slot.

Variants:
- `Literal`: a fixed enumeration of candidate strings.
- `Guess`: infer a source from the option name and metavar (see `parser.guess`).
- `NoCompletion`: explicitly nothing, which also suppresses filename fallback.
- `Dynamic`: a generator called at resolution time with every value seen so far.
- `Static`: an already resolvable provider (a prompt_toolkit `Completer` or a
  zero-argument callable returning candidate strings).

Every source may carry a `suffix`, the literal string inserted after a successful
completion (e.g. `"="` or `","`). `None` means the host's default terminator.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping

from prompt_toolkit.completion import Completer

from argscope.exceptions import GrammarError


class CompletionSource:
    """Base class of every completion source."""

    suffix: str | None = None

    def with_suffix(self, suffix: str | None) -> CompletionSource:
        raise NotImplementedError


@dataclass(frozen=True)
class Literal(CompletionSource):
    """A fixed enumeration of candidates, optionally annotated."""

    values: tuple[str, ...] = ()
    suffix: str | None = None
    annotations: Mapping[str, str] = field(default_factory=dict, compare=False)
    suffixes: Mapping[str, str] = field(default_factory=dict, compare=False)

    def __post_init__(self) -> None:
        # dict.fromkeys keeps first occurrence order
        object.__setattr__(
            self, "values", tuple(dict.fromkeys(str(value) for value in self.values))
        )

    def with_suffix(self, suffix: str | None) -> Literal:
        return Literal(self.values, suffix, self.annotations, self.suffixes)


@dataclass(frozen=True)
class Guess(CompletionSource):
    """Infer the source from name/metavar heuristics when resolved."""

    hints: tuple[tuple[str, CompletionSource], ...] = ()
    suffix: str | None = None

    def with_suffix(self, suffix: str | None) -> Guess:
        return Guess(self.hints, suffix)


@dataclass(frozen=True)
class NoCompletion(CompletionSource):
    """Offer nothing, not even file names."""

    suffix: str | None = None

    def with_suffix(self, suffix: str | None) -> NoCompletion:
        return NoCompletion(suffix)


@dataclass(frozen=True)
class Dynamic(CompletionSource):
    """
    Produce a source at resolution time.

    The generator receives a mapping from every option name (and positional index)
    seen so far to the list of value lists consumed by each of its matches.
    """

    generator: Callable[[Mapping[str | int, list[list[str]]]], Any]
    suffix: str | None = None

    def with_suffix(self, suffix: str | None) -> Dynamic:
        return Dynamic(self.generator, suffix)


@dataclass(frozen=True)
class Static(CompletionSource):
    """
    An already resolvable provider.

    `cache_duration` > 0 lets the resolver memoize callable providers in the
    session's result cache.
    """

    provider: Completer | Callable[[], Iterable[str]]
    suffix: str | None = None
    cache_duration: float = 0.0

    def with_suffix(self, suffix: str | None) -> Static:
        return Static(self.provider, suffix, self.cache_duration)


def as_source(value: Any) -> CompletionSource:
    """
    Coerce a grammar author's value into a `CompletionSource`.

    - `None` becomes `Guess()`
    - a `CompletionSource` is returned unchanged
    - a prompt_toolkit `Completer` or any callable becomes `Static`
    - a string becomes a one-element `Literal`
    - any other iterable becomes a `Literal`

    Raises:
        GrammarError: If the value cannot describe a completion source.
    """
    if value is None:
        return Guess()
    if isinstance(value, CompletionSource):
        return value
    if isinstance(value, Completer) or callable(value):
        return Static(value)
    if isinstance(value, str):
        return Literal((value,))
    if isinstance(value, (set, frozenset)):
        return Literal(tuple(sorted(value)))
    if isinstance(value, (list, tuple)):
        return Literal(tuple(value))
    raise GrammarError(
        f"Cannot use {type(value).__name__} {value!r} as a completion source"
    )
