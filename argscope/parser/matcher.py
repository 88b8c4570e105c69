# ArgScope — (c) 2025 rtj.dev LLC — MIT Licensed
"""
This module implements `ArgumentMatcher`, which walks a tokenized command line
against a compiled grammar and produces a match trace: one `MatchRecord` per
flag token and per value, the last of which describes the stub being completed.

Matching never fails on user input. Tokens that fit no spec, or prefix-match
several specs equally well, are recorded with an `unknown-option` or
`unknown-positional` context and a catch-all action that enumerates the option
names still active. Only a corrupt spec list or a misbehaving subparser raises
`MatchError`.

Key Features:
- Exact option names win, then the longest `name + delimiter` prefix among
  options accepting inline values (`-file=x` picks `-file=` over `-f`)
- POSIX-style clusters for single-character flags (`-vxf FILE`, `-ofile`)
- Positional slots ordered by index with the wildcard last, actions cycling by
  position and clamped to the last one
- `excludes` propagation after every match (`-` for all options, `*` for all
  positionals, or a single name)
- Subparser hand-off for nested command lines

Example:
    specs = make_argspecs([option("-o, --output FILE"), option("-v"), argument("*")])
    tokens, specs, history = ArgumentMatcher().parse(["-v", "--output", "ou"], specs)
    history[-1].stub   # -> "ou"
"""
from __future__ import annotations

from typing import Iterable, Sequence

from argscope.exceptions import MatchError
from argscope.logger import logger
from argscope.parser.argspec import ArgAction, ArgSpec
from argscope.parser.parser_types import (
    MatchContext,
    MatchRecord,
    ParseState,
    Subparser,
    next_match_index,
)
from argscope.sources import Literal

OPTION_METAVAR = "OPTION"


def option_names_action(specs: Iterable[ArgSpec]) -> ArgAction:
    """Enumerate the active option names, annotated with help and their suffixes."""
    options = [spec for spec in specs if spec.is_option]
    return ArgAction(
        OPTION_METAVAR,
        Literal(
            tuple(str(spec.name) for spec in options),
            annotations={str(spec.name): spec.help for spec in options if spec.help},
            suffixes={
                str(spec.name): spec.suffix for spec in options if spec.suffix is not None
            },
        ),
    )


class ArgumentMatcher:
    """
    Token-by-token matcher over a compiled `ArgSpec` list.

    The matcher keeps no state between calls; every step threads the
    `(tokens, specs, history)` triple through and returns the updated triple.
    """

    def parse(
        self,
        tokens: Sequence[str],
        specs: Iterable[ArgSpec],
        history: Iterable[MatchRecord] = (),
    ) -> ParseState:
        """
        Match every token.

        Args:
            tokens: Argument tokens, excluding the program name. The last one is
                the stub being completed.
            specs: The active grammar.
            history: Records from an enclosing parse, if any.

        Returns:
            ParseState: `([], remaining specs, full history)`.

        Raises:
            MatchError: If the spec list is corrupt or a subparser misbehaves.
        """
        state: ParseState = (list(tokens), self.validate_specs(specs), list(history))
        while state[0]:
            state = self.step(*state)
        return state

    def step(
        self, tokens: list[str], specs: list[ArgSpec], history: list[MatchRecord]
    ) -> ParseState:
        """Match the token at the head of `tokens`."""
        token = tokens[0]
        options = [spec for spec in specs if spec.is_option]
        has_positionals = any(spec.is_positional for spec in specs)
        if options and (
            self.looks_like_flag(token, options, is_last=len(tokens) == 1)
            or not has_positionals
            or self.find_exact(token, options) is not None
            or self.find_bare_prefix(token, options) is not None
        ):
            return self.match_option(tokens, specs, history)
        return self.match_positional(tokens, specs, history)

    @staticmethod
    def validate_specs(specs: Iterable[ArgSpec]) -> list[ArgSpec]:
        validated = list(specs)
        for spec in validated:
            if not isinstance(spec, ArgSpec):
                raise MatchError(f"Spec list holds a non-ArgSpec value: {spec!r}")
        return validated

    @staticmethod
    def looks_like_flag(token: str, options: list[ArgSpec], is_last: bool = False) -> bool:
        """
        `-x` style tokens look like flags; a lone `-` only when it is the stub,
        and `+x` only when the grammar has `+` options.
        """
        if token.startswith("-"):
            return token != "-" or is_last
        if token.startswith("+") and len(token) > 1:
            return any(str(spec.name).startswith("+") for spec in options)
        return False

    @staticmethod
    def find_exact(token: str, options: list[ArgSpec]) -> ArgSpec | None:
        return next((spec for spec in options if spec.name == token), None)

    @staticmethod
    def find_prefix(token: str, options: list[ArgSpec]) -> tuple[ArgSpec | None, bool]:
        """
        Return the option whose `name + delimiter` is the longest prefix of
        `token`, and whether several options tie for that length.
        """
        candidates = [
            spec
            for spec in options
            if spec.accepts_inline and token.startswith(f"{spec.name}{spec.delimiter}")
        ]
        if not candidates:
            return None, False
        longest = max(len(f"{spec.name}{spec.delimiter}") for spec in candidates)
        best = [
            spec for spec in candidates if len(f"{spec.name}{spec.delimiter}") == longest
        ]
        if len(best) > 1:
            return None, True
        return best[0], False

    @staticmethod
    def find_bare_prefix(token: str, options: list[ArgSpec]) -> ArgSpec | None:
        """Prefix match among dash-less option names such as dd's `if=`."""
        bare = [spec for spec in options if not str(spec.name).startswith(("-", "+"))]
        if not bare:
            return None
        return ArgumentMatcher.find_prefix(token, bare)[0]

    @staticmethod
    def split_cluster(
        token: str, options: list[ArgSpec]
    ) -> list[tuple[ArgSpec, int, str | None]] | None:
        """
        Split a POSIX cluster such as `-vxfFILE` into `(spec, offset, inline)`
        parts. The first option taking values ends the cluster and the rest of
        the token becomes its inline value. Returns `None` when any character is
        not a known single-character option.
        """
        if len(token) <= 2 or token[0] != "-" or token[1] in "-+":
            return None
        parts: list[tuple[ArgSpec, int, str | None]] = []
        offset = 1
        while offset < len(token):
            spec = ArgumentMatcher.find_exact(f"-{token[offset]}", options)
            if spec is None:
                return None
            if spec.actions:
                parts.append((spec, offset, token[offset + 1 :] or None))
                return parts
            parts.append((spec, offset, None))
            offset += 1
        return parts

    def filter_specs(self, specs: list[ArgSpec], matched: ArgSpec) -> list[ArgSpec]:
        """
        Drop the matched spec, its aliases, other positionals claiming the same
        index and everything it excludes.
        """
        keep_matched = matched.is_wildcard or matched.repeatable

        def removed(spec: ArgSpec) -> bool:
            if spec == matched:
                return not keep_matched
            if (
                matched.is_positional
                and not matched.is_wildcard
                and spec.is_positional
                and spec.name == matched.name
            ):
                return True
            if matched.is_option and spec.is_option and spec.name in matched.aliases:
                return not matched.repeatable
            return any(exclusion.matches(spec) for exclusion in matched.excludes)

        return [spec for spec in specs if not removed(spec)]

    def _unknown(
        self,
        tokens: list[str],
        specs: list[ArgSpec],
        history: list[MatchRecord],
        context: MatchContext,
    ) -> ParseState:
        token = tokens[0]
        logger.debug("Unmatched token %r (%s)", token, context)
        record = MatchRecord(
            context=context,
            name=token,
            spec=None,
            action=option_names_action(specs),
            stub=token,
            match_index=next_match_index(history),
        )
        return tokens[1:], specs, [*history, record]

    def match_option(
        self, tokens: list[str], specs: list[ArgSpec], history: list[MatchRecord]
    ) -> ParseState:
        token = tokens[0]
        options = [spec for spec in specs if spec.is_option]
        unknown = (
            MatchContext.UNKNOWN_OPTION
            if self.looks_like_flag(token, options, is_last=len(tokens) == 1)
            else MatchContext.UNKNOWN_POSITIONAL
        )

        spec = self.find_exact(token, options)
        if spec is not None:
            return self._consume_option(
                spec, tokens, specs, history, flag_action=option_names_action(specs)
            )

        spec, ambiguous = self.find_prefix(token, options)
        if spec is not None:
            inline = token[len(f"{spec.name}{spec.delimiter}") :]
            return self._consume_option(
                spec,
                tokens,
                specs,
                history,
                flag_action=option_names_action(specs),
                inline=inline,
                inline_offset=len(token) - len(inline),
            )
        if ambiguous:
            logger.debug("Ambiguous option prefix %r", token)
            return self._unknown(tokens, specs, history, unknown)

        parts = self.split_cluster(token, options)
        if parts is None:
            return self._unknown(tokens, specs, history, unknown)

        cluster_action = ArgAction(
            OPTION_METAVAR,
            Literal(
                (token,),
                suffixes=(
                    {token: parts[-1][0].suffix}
                    if parts[-1][0].suffix is not None and parts[-1][2] is None
                    else {}
                ),
            ),
        )
        for part, _, _ in parts[:-1]:
            _, specs, history = self._consume_option(
                part, [token], specs, history, flag_action=cluster_action
            )
        part, offset, inline = parts[-1]
        if inline is None:
            return self._consume_option(
                part, tokens, specs, history, flag_action=cluster_action
            )
        return self._consume_option(
            part,
            tokens,
            specs,
            history,
            flag_action=cluster_action,
            inline=inline,
            inline_offset=offset + 1,
            allow_separate=False,
        )

    def _consume_option(
        self,
        spec: ArgSpec,
        tokens: list[str],
        specs: list[ArgSpec],
        history: list[MatchRecord],
        flag_action: ArgAction,
        inline: str | None = None,
        inline_offset: int = 0,
        allow_separate: bool = True,
    ) -> ParseState:
        token = tokens[0]
        index = next_match_index(history)
        logger.debug("Option %s matched by %r", spec.name, token)
        records = [
            MatchRecord(
                context=MatchContext.OPTION,
                name=spec.name,
                spec=spec,
                action=flag_action,
                stub=token if inline is None else token[:inline_offset],
                match_index=index,
            )
        ]
        values: list[str] = []
        if inline is not None:
            records.append(
                MatchRecord(
                    context=MatchContext.OPTION,
                    name=spec.name,
                    spec=spec,
                    action=spec.actions[0],
                    stub=inline,
                    stub_prefix=token[:inline_offset],
                    match_index=index,
                    slot=0,
                )
            )
            values.append(inline)

        remaining = tokens[1:]
        separate = allow_separate and spec.accepts_separate
        while separate and remaining and len(values) < len(spec.actions):
            slot = len(values)
            records.append(
                MatchRecord(
                    context=MatchContext.OPTION,
                    name=spec.name,
                    spec=spec,
                    action=spec.actions[slot],
                    values=tuple(values),
                    stub=remaining[0],
                    match_index=index,
                    slot=slot,
                )
            )
            values.append(remaining[0])
            remaining = remaining[1:]

        history = [*history, *records]
        specs = self.filter_specs(specs, spec)
        if spec.subparser is not None and remaining:
            return self.call_subparser(spec, spec.subparser, remaining, specs, history)
        return remaining, specs, history

    def match_positional(
        self, tokens: list[str], specs: list[ArgSpec], history: list[MatchRecord]
    ) -> ParseState:
        positionals = sorted(
            (spec for spec in specs if spec.is_positional),
            key=lambda spec: spec.position_key(),
        )
        if not positionals:
            return self._unknown(tokens, specs, history, MatchContext.UNKNOWN_POSITIONAL)
        spec = positionals[0]

        if spec.subparser is not None:
            logger.debug("Positional %s hands %d tokens to its subparser", spec.name, len(tokens))
            return self.call_subparser(
                spec, spec.subparser, tokens, self.filter_specs(specs, spec), history
            )

        index = next_match_index(history)
        position = sum(1 for record in history if record.spec == spec)
        values: list[str] = []
        records: list[MatchRecord] = []
        remaining = list(tokens)
        specs = self.filter_specs(specs, spec)
        while remaining:
            action = (
                spec.actions[min(position, len(spec.actions) - 1)] if spec.actions else None
            )
            records.append(
                MatchRecord(
                    context=MatchContext.POSITIONAL,
                    name=spec.name,
                    spec=spec,
                    action=action,
                    values=tuple(values),
                    stub=remaining[0],
                    match_index=index,
                    slot=position,
                )
            )
            values.append(remaining[0])
            remaining = remaining[1:]
            position += 1
            if not spec.is_wildcard or not remaining:
                break
            options = [option for option in specs if option.is_option]
            if options and (
                self.looks_like_flag(remaining[0], options, is_last=len(remaining) == 1)
                or self.find_exact(remaining[0], options) is not None
                or self.find_bare_prefix(remaining[0], options) is not None
            ):
                break
        logger.debug("Positional %s consumed %r", spec.name, values)
        return remaining, specs, [*history, *records]

    def call_subparser(
        self,
        owner: ArgSpec,
        subparser: Subparser,
        tokens: list[str],
        specs: list[ArgSpec],
        history: list[MatchRecord],
    ) -> ParseState:
        """
        Hand the remaining tokens to a continuation and validate what it returns.

        A positional's subparser must consume at least one token; an option's
        subparser must consume a token or add a record.
        """
        result = subparser(list(tokens), list(specs), list(history))
        if not isinstance(result, tuple) or len(result) != 3:
            raise MatchError(
                f"Subparser for {owner.name!r} must return (tokens, specs, history), "
                f"got {result!r}"
            )
        new_tokens, new_specs, new_history = result
        if not isinstance(new_tokens, list) or not isinstance(new_history, list):
            raise MatchError(f"Subparser for {owner.name!r} returned a malformed state")
        consumed = len(new_tokens) < len(tokens)
        recorded = len(new_history) > len(history)
        if not consumed and (owner.is_positional or not recorded):
            raise MatchError(f"Subparser for {owner.name!r} made no progress")
        return list(new_tokens), self.validate_specs(new_specs), new_history


def parse_arguments(
    tokens: Sequence[str],
    specs: Iterable[ArgSpec],
    history: Iterable[MatchRecord] = (),
) -> ParseState:
    """Match `tokens` against `specs` with a fresh `ArgumentMatcher`."""
    return ArgumentMatcher().parse(tokens, specs, history)
