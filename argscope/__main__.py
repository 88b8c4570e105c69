"""
ArgScope

Copyright (c) 2025 rtj.dev LLC.
Licensed under the MIT License. See LICENSE file for details.
"""

import logging
import sys
from argparse import REMAINDER, ArgumentParser, Namespace, _SubParsersAction
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Sequence

from prompt_toolkit import PromptSession
from rich.markup import escape
from rich.table import Table

from argscope.completer import ArgScopeCompleter
from argscope.config import ArgScopeSettings, find_config, load_settings
from argscope.console import console
from argscope.engine import ArgScope
from argscope.exceptions import ArgScopeError
from argscope.logger import logger
from argscope.parser.compiler import argspecs_from_options
from argscope.parser.extractor import (
    extract_options,
    extract_program_options,
    man_text,
)
from argscope.parser.parser_types import MatchContext
from argscope.utils import setup_logging

CONTEXT_STYLES = {
    MatchContext.OPTION: "option",
    MatchContext.POSITIONAL: "positional",
    MatchContext.UNKNOWN_OPTION: "unknown",
    MatchContext.UNKNOWN_POSITIONAL: "unknown",
}


@dataclass
class ArgScopeParsers:
    """Defines the argument parsers for the ArgScope CLI."""

    root: ArgumentParser
    subparsers: _SubParsersAction
    complete: ArgumentParser
    trace: ArgumentParser
    extract: ArgumentParser
    shell: ArgumentParser

    def parse_args(self, args: Sequence[str] | None = None) -> Namespace:
        """Parse the command line arguments."""
        return self.root.parse_args(args)


def get_root_parser(prog: str = "argscope") -> ArgumentParser:
    parser = ArgumentParser(
        prog=prog,
        description="ArgScope - command-line grammar engine for shell completion.",
        epilog="Tip: quote an empty last argument to complete a new word, e.g. "
        "'argscope complete ls \"\"'.",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help=f"Enable debug logging for {prog}."
    )
    parser.add_argument(
        "--config", type=Path, help="Settings file (YAML or TOML) to use."
    )
    parser.add_argument(
        "--grammar",
        type=Path,
        action="append",
        default=[],
        help="Extra grammar file to register (repeatable).",
    )
    return parser


def get_arg_parsers(prog: str = "argscope") -> ArgScopeParsers:
    root = get_root_parser(prog)
    subparsers = root.add_subparsers(
        title="ArgScope Commands",
        description="Available commands for the ArgScope CLI.",
        dest="command",
    )

    complete = subparsers.add_parser(
        "complete",
        help="Print completion candidates for a command line",
        description="The last argument is the word being completed.",
    )
    complete.add_argument(
        "--annotate", action="store_true", help="Print annotations beside candidates."
    )
    complete.add_argument("argv", nargs=REMAINDER, help="Program and its arguments.")

    trace = subparsers.add_parser(
        "trace", help="Show how each argument of a command line was matched"
    )
    trace.add_argument("argv", nargs=REMAINDER, help="Program and its arguments.")

    extract = subparsers.add_parser(
        "extract", help="Show the options extracted from a program's help text"
    )
    extract.add_argument("program", help="Program to inspect.")
    source = extract.add_mutually_exclusive_group()
    source.add_argument(
        "--man", action="store_true", help="Read the manual page instead of --help."
    )
    source.add_argument("--file", type=Path, help="Read help text from a file.")

    shell = subparsers.add_parser(
        "shell", help="Interactive prompt with command-line completion"
    )
    return ArgScopeParsers(root, subparsers, complete, trace, extract, shell)


def build_settings(args: Namespace) -> ArgScopeSettings:
    config_path = args.config or find_config()
    settings = load_settings(config_path) if config_path else ArgScopeSettings()
    settings.grammar_files = [*settings.grammar_files, *args.grammar]
    return settings


def run_complete(scope: ArgScope, args: Namespace) -> int:
    if not args.argv:
        console.print("[unknown]complete needs a program name[/]")
        return 2
    provider = scope.complete(args.argv)
    completions = provider.complete()
    stub = provider.stub
    for completion in completions:
        candidate = f"{stub[: len(stub) + completion.start_position]}{completion.text}"
        line = f"{provider.stub_prefix}{candidate}"
        if args.annotate and completion.display_meta_text:
            line = f"{line}\t{completion.display_meta_text}"
        print(line)
    if not completions:
        logger.debug("No candidates for %r (fallback=%s)", args.argv, provider.fallback)
    return 0


def run_trace(scope: ArgScope, args: Namespace) -> int:
    if not args.argv:
        console.print("[unknown]trace needs a program name[/]")
        return 2
    match_trace = scope.trace(args.argv)
    table = Table(title=f"Match trace: {escape(match_trace.program)}", show_lines=False)
    for column in ("#", "Context", "Name", "Slot", "Values", "Stub", "Source"):
        table.add_column(column)
    for record in match_trace.history:
        style = CONTEXT_STYLES[record.context]
        source = type(record.action.source).__name__ if record.action else ""
        table.add_row(
            str(record.match_index),
            f"[{style}]{record.context}[/]",
            escape(str(record.name)),
            "" if record.slot is None else str(record.slot),
            escape(" ".join(record.values)),
            f"[stub]{escape(record.stub_prefix + record.stub)}[/]",
            source,
        )
    console.print(table)
    provider = scope.resolver.resolve(match_trace.history)
    console.print(f"[help]Resolved:[/] {escape(str(provider))}")
    return 0


def run_extract(scope: ArgScope, args: Namespace) -> int:
    if args.file:
        try:
            text = args.file.read_text(encoding="UTF-8", errors="replace")
        except OSError as error:
            console.print(f"[unknown]❌ Cannot read {escape(str(args.file))}: {error}[/]")
            return 1
        pairs = extract_options(text)
    elif args.man:
        text = man_text(args.program, scope.settings.help_timeout, scope.settings.man_width)
        pairs = extract_options(text)
    else:
        pairs = extract_program_options(
            args.program,
            help_flags=scope.settings.help_flags,
            timeout=scope.settings.help_timeout,
            use_man_pages=scope.settings.use_man_pages,
            man_width=scope.settings.man_width,
        )
    specs = argspecs_from_options(pairs)
    table = Table(title=f"Options: {escape(args.program)}")
    table.add_column("Option", style="option")
    table.add_column("Aliases")
    table.add_column("Style")
    table.add_column("Completes")
    table.add_column("Help", style="help")
    for spec in specs:
        table.add_row(
            escape(spec.get_usage_text()),
            escape(", ".join(spec.aliases)),
            str(spec.style or ""),
            ", ".join(type(action.source).__name__ for action in spec.actions),
            escape(spec.help),
        )
    console.print(table)
    return 0


def run_shell(scope: ArgScope, args: Namespace) -> int:
    session: PromptSession = PromptSession(
        "argscope> ", completer=ArgScopeCompleter(scope), complete_while_typing=False
    )
    while True:
        try:
            line = session.prompt()
        except (EOFError, KeyboardInterrupt):
            return 0
        if line.strip():
            console.print(f"[help]{escape(line)}[/]")


def main(argv: Sequence[str] | None = None) -> Any:
    parsers = get_arg_parsers()
    args = parsers.parse_args(argv)
    setup_logging(console_log_level=logging.DEBUG if args.verbose else logging.WARNING)

    if not args.command:
        parsers.root.print_help()
        return 2

    commands = {
        "complete": run_complete,
        "trace": run_trace,
        "extract": run_extract,
        "shell": run_shell,
    }
    try:
        with ArgScope(build_settings(args)) as scope:
            return commands[args.command](scope, args)
    except ArgScopeError as error:
        logger.debug("Command failed", exc_info=True)
        console.print(f"[unknown]❌ {escape(str(error))}[/]")
        return 1


if __name__ == "__main__":
    sys.exit(main())
