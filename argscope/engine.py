# ArgScope — (c) 2025 rtj.dev LLC — MIT Licensed
"""
Provides `ArgScope`, the session object that ties the grammar registry, the
extractor, the matcher, the resolver and the result cache together.

A session owns its `ResultCache`; there is no module-level state. Use it as a
context manager, or call `close()`, to drop everything it cached.

Grammars are looked up by the program's base name:

1. A registered grammar (an entry list, or a callable taking the session and
   returning one, compiled on demand and memoized in the cache).
2. Otherwise the program's own `--help` output, falling back to its manual page,
   plus a wildcard positional. Extraction results are memoized per program.

Example:
    with ArgScope() as scope:
        scope.register(
            "find",
            lambda scope: [
                option("-name PATTERN"),
                option("-exec", subparser=scope.command_subparser(";")),
                argument("*", [DIRECTORIES]),
            ],
        )
        provider = scope.complete(["find", ".", "-exec", "gr"])
        provider.candidates()   # executables starting with "gr"
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Callable, Iterable, Sequence, Union

from argscope.cache import ResultCache
from argscope.config import (
    ArgScopeSettings,
    convert_grammars,
    import_object,
    load_grammar_file,
)
from argscope.logger import logger
from argscope.parser.argspec import WILDCARD, ArgAction, ArgSpec
from argscope.parser.compiler import argspecs_from_options, argument, make_argspecs
from argscope.parser.extractor import extract_program_options
from argscope.parser.matcher import ArgumentMatcher
from argscope.parser.parser_types import (
    MatchContext,
    MatchRecord,
    MatchTrace,
    ParseState,
    Subparser,
    next_match_index,
)
from argscope.providers import COMMANDS
from argscope.resolver import CompletionProvider, CompletionResolver
from argscope.sources import Literal

Grammar = Union[Iterable[Any], Callable[["ArgScope"], Iterable[Any]]]

COMMAND_SUBPARSER = "@command"


class ArgScope:
    """
    Completion session.

    Args:
        settings (ArgScopeSettings | None): Session settings; defaults apply when omitted.
        cache (ResultCache | None): Cache to use; one is built from the settings
            when omitted.
    """

    def __init__(
        self,
        settings: ArgScopeSettings | None = None,
        cache: ResultCache | None = None,
    ) -> None:
        self.settings = settings or ArgScopeSettings()
        self.cache = (
            cache
            if cache is not None
            else ResultCache(
                max_duration=self.settings.cache_max_duration,
                default_duration=self.settings.cache_default_duration,
            )
        )
        self.matcher = ArgumentMatcher()
        self.resolver = CompletionResolver(
            cache=self.cache,
            annotate=self.settings.annotate,
            annotation_width=self.settings.annotation_width,
        )
        self._grammars: dict[str, list[ArgSpec] | Callable[[ArgScope], Iterable[Any]]] = {}
        for path in self.settings.grammar_files:
            self.register_file(path)
        if self.settings.grammars:
            grammars = convert_grammars(self.settings.grammars, self.resolve_subparser)
            for program, entries in grammars.items():
                self.register(program, entries)

    def __enter__(self) -> ArgScope:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        """Drop every cached grammar, extraction and provider result."""
        self.cache.flush(force=True)

    @property
    def programs(self) -> list[str]:
        return sorted(self._grammars)

    def register(self, program: str, grammar: Grammar) -> None:
        """
        Register the grammar for `program`.

        Entry lists are compiled immediately so authoring errors surface here;
        callables are compiled on first use.

        Raises:
            GrammarError: If an entry list does not compile.
        """
        name = os.path.basename(program)
        if callable(grammar):
            self._grammars[name] = grammar
        else:
            self._grammars[name] = make_argspecs(grammar)
        self.cache.discard(("grammar", name))
        self.cache.discard(("extracted", name))
        logger.debug("Registered grammar for %s", name)

    def register_file(self, file_path: Path | str) -> list[str]:
        """
        Register every grammar in a YAML or TOML grammar file.

        Returns:
            list[str]: The programs registered.
        """
        grammars = load_grammar_file(file_path, self.resolve_subparser)
        for program, entries in grammars.items():
            self.register(program, entries)
        return list(grammars)

    def resolve_subparser(self, value: str) -> Subparser:
        """
        Resolve a subparser named in a grammar file: `@command` or
        `@command:TERMINATOR` for a nested command line, otherwise a dotted
        import path.
        """
        if value == COMMAND_SUBPARSER:
            return self.command_subparser()
        if value.startswith(f"{COMMAND_SUBPARSER}:"):
            return self.command_subparser(value.partition(":")[2] or None)
        return import_object(value)

    def grammar_for(self, program: str) -> list[ArgSpec]:
        """Return the compiled grammar for `program`."""
        name = os.path.basename(program)
        registered = self._grammars.get(name)
        if isinstance(registered, list):
            return registered
        if registered is not None:
            build = registered
            return self.cache.cached(("grammar", name), lambda: make_argspecs(build(self)))
        return self.cache.cached(("extracted", name), lambda: self.extract(program))

    def extract(self, program: str) -> list[ArgSpec]:
        """Build a grammar from the program's help or manual text."""
        pairs = extract_program_options(
            program,
            help_flags=self.settings.help_flags,
            timeout=self.settings.help_timeout,
            use_man_pages=self.settings.use_man_pages,
            man_width=self.settings.man_width,
        )
        specs = argspecs_from_options(pairs)
        logger.debug("Extracted %d options for %s", len(specs), program)
        return [*specs, *make_argspecs([argument(WILDCARD)])]

    def trace(self, argv: Sequence[str]) -> MatchTrace:
        """
        Match a whole command line.

        Args:
            argv: Program name followed by its arguments; the last element is
                the stub being completed.

        Raises:
            ValueError: If `argv` is empty.
            MatchError: If the grammar or a subparser is corrupt.
        """
        if not argv:
            raise ValueError("argv must contain at least the program name")
        program, *tokens = argv
        if not tokens:
            return MatchTrace(program, [command_record(program, [])], [])
        _, specs, history = self.matcher.parse(tokens, self.grammar_for(program))
        return MatchTrace(program, history, specs)

    def parse(self, argv: Sequence[str]) -> list[MatchRecord]:
        """Return the match history for `argv`."""
        return self.trace(argv).history

    def complete(self, argv: Sequence[str]) -> CompletionProvider:
        """Return the completion provider for the last element of `argv`."""
        return self.resolver.resolve(self.parse(argv))

    def command_subparser(self, terminator: str | None = None) -> Subparser:
        """
        Build a subparser for a nested command line such as `find -exec CMD ;`
        or `sudo CMD`.

        One inner token completes executable names; with two or more, the rest
        of the inner command is matched against the inner program's own grammar.
        When `terminator` is given and present, the nested command ends there and
        the outer grammar resumes after it.
        """

        def parse_command(
            tokens: list[str], specs: list[ArgSpec], history: list[MatchRecord]
        ) -> ParseState:
            if terminator is not None and terminator in tokens:
                end = tokens.index(terminator)
                inner, rest, terminated = tokens[:end], tokens[end + 1 :], True
            else:
                inner, rest, terminated = list(tokens), [], False

            records = list(history)
            if inner:
                records.append(command_record(inner[0], records))
                if len(inner) > 1:
                    logger.debug("Nested command: %s", inner)
                    _, _, records = self.matcher.parse(
                        inner[1:], self.grammar_for(inner[0]), records
                    )
            if terminated:
                assert terminator is not None
                records.append(
                    MatchRecord(
                        context=MatchContext.POSITIONAL,
                        name=terminator,
                        spec=None,
                        action=ArgAction("TERMINATOR", Literal((terminator,))),
                        stub=terminator,
                        match_index=next_match_index(records),
                    )
                )
            return rest, specs, records

        return parse_command

    def __str__(self) -> str:
        return f"ArgScope(programs={self.programs}, cache={self.cache})"


def command_record(token: str, history: list[MatchRecord]) -> MatchRecord:
    """Record `token` as a command name completed from the executables on `PATH`."""
    return MatchRecord(
        context=MatchContext.POSITIONAL,
        name="command",
        spec=None,
        action=ArgAction("COMMAND", COMMANDS),
        stub=token,
        match_index=next_match_index(history),
    )
