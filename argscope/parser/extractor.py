# ArgScope — (c) 2025 rtj.dev LLC — MIT Licensed
"""
Mines `(option-string, description)` pairs out of free-form help or manual text.

Scanning is line based and indentation sensitive:

1. A line is an option line when it is indented no deeper than `max_indent`
   columns and starts with one or more flag tokens (joined by `,`, `or` or a
   space), each optionally followed by an uppercase placeholder, a bracketed
   or angled placeholder, or a `key=value` placeholder.
2. The description starts after two or more spaces on the same line, or on the
   next line indented deeper than the option. Further lines are absorbed while
   they stay at least as deep as the first description line and do not start a
   new option. A blank line is skipped when the description resumes after it.
3. Options with an empty description borrow the next non-empty description
   found later in the output. This is a best-effort heuristic for help texts that
   list a bare alias right before the fully described entry.

Backspace overstrike and ANSI escapes left by manual renderers are stripped
before scanning. No match is not an error: the result is simply empty.

`help_text()` and `man_text()` capture a program's own output; they raise
`ExtractionError` on timeout or failure, and `extract_program_options()` turns
that into an empty result.
"""
from __future__ import annotations

import os
import re
import subprocess
from typing import Any, Callable, Iterable, Sequence, Union

from argscope.exceptions import ExtractionError
from argscope.logger import logger
from argscope.utils import strip_overstrike

Filter = Union[Callable[[str], str], tuple[str, str]]

FLAG = r"[-+]{1,2}[A-Za-z0-9?#@][\w.?#@+-]*(?:=\S*|\[[^\]\s]*\]|<[^>\s]*>|\{[^}\s]*\})?"
PLACEHOLDER = (
    r"(?:[A-Z][A-Z0-9_.:-]*|<[^>]*>|\[[^\]]*\]|\{[^}]*\}|[\w.-]+=[\w.<>|-]+)"
    r"(?:\.\.\.|…)?(?=[\s,]|$)"
)
OPTIONS_RE = re.compile(
    rf"{FLAG}(?:(?:,\s*|\s+or\s+)(?:{FLAG})| (?:{FLAG}|{PLACEHOLDER}))*,?"
)
OR_SEPARATOR_RE = re.compile(r"\s+or\s+(?=[-+])")


def _indent(line: str) -> int:
    return len(line) - len(line.lstrip())


def _parse_option_line(line: str, max_indent: int) -> tuple[int, str, str, int] | None:
    """Return `(indent, options, description, description_column)` or `None`."""
    indent = _indent(line)
    if indent > max_indent:
        return None
    body = line[indent:].rstrip()
    match = OPTIONS_RE.match(body)
    if not match:
        return None
    rest = body[match.end() :]
    if rest and not rest[0].isspace():
        return None
    options = OR_SEPARATOR_RE.sub(", ", match.group(0).rstrip(",").strip())
    description = rest.strip()
    column = indent + len(body) - len(rest.lstrip()) if description else 0
    return indent, options, description, column


def _apply_filters(text: str, filters: Iterable[Filter]) -> str:
    for text_filter in filters:
        if callable(text_filter):
            text = text_filter(text)
        elif isinstance(text_filter, (tuple, list)) and len(text_filter) == 2:
            pattern, replacement = text_filter
            try:
                text = re.sub(pattern, replacement, text, flags=re.MULTILINE)
            except re.error as error:
                logger.warning("Ignoring malformed filter %r: %s", pattern, error)
        else:
            logger.warning("Ignoring malformed filter %r", text_filter)
    return text


def _search(pattern: str, text: str) -> re.Match[str] | None:
    try:
        return re.search(pattern, text, re.MULTILINE)
    except re.error as error:
        logger.warning("Ignoring malformed boundary %r: %s", pattern, error)
        return None


def _slice_boundaries(text: str, start: str | None, end: str | None) -> str:
    if start:
        match = _search(start, text)
        if match:
            text = text[match.end() :]
        else:
            logger.debug("Start boundary %r not found, scanning full text", start)
    if end:
        match = _search(end, text)
        if match:
            text = text[: match.start()]
    return text


def extract_options(
    text: str,
    filters: Sequence[Filter] = (),
    start: str | None = None,
    end: str | None = None,
    max_indent: int = 24,
) -> list[tuple[str, str]]:
    """
    Scan help or manual text for option listings.

    Args:
        text: The raw text to scan.
        filters: Transforms applied first, each a `str -> str` callable or a
            `(pattern, replacement)` pair for `re.sub`.
        start: Regex; scanning begins after its first match.
        end: Regex; scanning stops at its first match after `start`.
        max_indent: Deepest indentation at which an option line may start.

    Returns:
        list[tuple[str, str]]: `(option-string, description)` pairs in order.
    """
    text = strip_overstrike(text)
    text = _apply_filters(text, filters)
    text = _slice_boundaries(text, start, end)
    lines = text.expandtabs(8).splitlines()

    entries: list[tuple[str, str]] = []
    index = 0
    while index < len(lines):
        parsed = _parse_option_line(lines[index], max_indent)
        index += 1
        if parsed is None:
            continue
        option_indent, options, description, column = parsed
        parts = [description] if description else []
        description_indent = column if description else None
        while index < len(lines):
            line = lines[index]
            if not line.strip():
                resume = next(
                    (i for i in range(index + 1, len(lines)) if lines[i].strip()), None
                )
                if (
                    resume is None
                    or description_indent is None
                    or _indent(lines[resume]) < description_indent
                    or _parse_option_line(lines[resume], max_indent) is not None
                ):
                    break
                index = resume
                continue
            indent = _indent(line)
            if indent <= option_indent or _parse_option_line(line, max_indent):
                break
            if description_indent is None:
                description_indent = indent
            elif indent < description_indent:
                break
            parts.append(line.strip())
            index += 1
        entries.append((options, " ".join(" ".join(parts).split())))

    backfilled = []
    for position, (options, description) in enumerate(entries):
        if not description:
            description = next(
                (later for _, later in entries[position + 1 :] if later), ""
            )
        backfilled.append((options, description))
    logger.debug("Extracted %d option lines", len(backfilled))
    return backfilled


def _capture(
    command: list[str], timeout: float, env: dict[str, str] | None = None
) -> subprocess.CompletedProcess[str]:
    try:
        return subprocess.run(
            command,
            capture_output=True,
            text=True,
            errors="replace",
            timeout=timeout,
            stdin=subprocess.DEVNULL,
            env={**os.environ, "PAGER": "cat", **(env or {})},
        )
    except subprocess.TimeoutExpired as error:
        raise ExtractionError(
            f"'{' '.join(command)}' timed out after {timeout} seconds"
        ) from error
    except OSError as error:
        raise ExtractionError(f"Cannot run '{command[0]}': {error}") from error


def help_text(
    program: str, flags: Sequence[str] = ("--help",), timeout: float = 5.0
) -> str:
    """
    Run `<program> --help` and return what it printed.

    Programs that print usage on stderr are accepted too.

    Raises:
        ExtractionError: On timeout, a missing program, or empty output.
    """
    result = _capture([program, *flags], timeout)
    output = result.stdout or result.stderr
    if not output.strip():
        raise ExtractionError(
            f"'{program}' printed no help (exit status {result.returncode})"
        )
    return output


def man_text(program: str, timeout: float = 5.0, width: int = 1000) -> str:
    """
    Render the manual page for `program` as plain text, wide enough to avoid
    wrapping descriptions.

    Raises:
        ExtractionError: On timeout, no `man`, or no manual entry.
    """
    result = _capture(
        ["man", program],
        timeout,
        env={
            "MANWIDTH": str(width),
            "MANPAGER": "cat",
            "MAN_KEEP_FORMATTING": "",
        },
    )
    if result.returncode != 0 or not result.stdout.strip():
        raise ExtractionError(
            f"No manual entry for '{program}': {result.stderr.strip() or result.returncode}"
        )
    return strip_overstrike(result.stdout)


def extract_program_options(
    program: str,
    help_flags: Sequence[str] = ("--help",),
    timeout: float = 5.0,
    use_man_pages: bool = True,
    man_width: int = 1000,
    **extract_kwargs: Any,
) -> list[tuple[str, str]]:
    """
    Extract options from a program's help output, falling back to its manual.

    Capture failures are logged and yield an empty list.
    """
    captures: list[tuple[str, Callable[[], str]]] = [
        ("help", lambda: help_text(program, help_flags, timeout))
    ]
    if use_man_pages:
        captures.append(("man", lambda: man_text(program, timeout, man_width)))
    for label, capture in captures:
        try:
            text = capture()
        except ExtractionError as error:
            logger.debug("No %s text for %s: %s", label, program, error)
            continue
        options = extract_options(text, **extract_kwargs)
        if options:
            logger.debug("Extracted %d options for %s from %s", len(options), program, label)
            return options
    return []
