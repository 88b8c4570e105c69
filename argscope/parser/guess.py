# ArgScope — (c) 2025 rtj.dev LLC — MIT Licensed
"""
Guesses a completion source from an option name and its metavar.

Two rules, in order:

1. A metavar spelling an enumeration, `{a|b|c}` or `{a,b,c}`, becomes
   `Literal(("a", "b", "c"))`.
2. Otherwise the metavar, stripped of `[]`, `<>` and `=` decoration, is joined to
   the name as `name=METAVAR` and searched, case-sensitively, against an ordered
   table of `(pattern, source)` pairs. Caller-supplied hints come first; the
   first match wins and file names are the catch-all.

Example:
    guess("--directory", "DIR")      # -> DIRECTORIES
    guess("--color", "{auto,never}") # -> Literal(("auto", "never"))
    guess("-o", "FILE")              # -> FILES
"""
from __future__ import annotations

import re
from typing import Iterable

from argscope.providers import COMMANDS, DIRECTORIES, ENVIRONMENT, FILES, GROUPS, USERS
from argscope.sources import CompletionSource, Literal

ENUMERATION_RE = re.compile(r"^\{([^{}]*)\}$")

GUESS_TABLE: tuple[tuple[str, CompletionSource], ...] = (
    (r"=.*(?:DIR|DIRECTORY|FOLDER|dir|directory|folder)S?$", DIRECTORIES),
    (r"^-+(?:directory|dir|chdir|cwd|workdir)=", DIRECTORIES),
    (r"=(?:USER|USERNAME|LOGIN|OWNER|user|username|login|owner)S?$", USERS),
    (r"^-+(?:user|owner|login)=", USERS),
    (r"=(?:GROUP|GROUPNAME|group|groupname)S?$", GROUPS),
    (r"^-+group=", GROUPS),
    (r"=(?:COMMAND|CMD|PROGRAM|PROG|command|program)$", COMMANDS),
    (r"=(?:VAR|VARNAME|VARIABLE|ENVVAR)$", ENVIRONMENT),
)


def strip_metavar(metavar: str) -> str:
    """Remove bracket, angle and `=` decoration and trailing ellipses."""
    text = metavar.strip()
    while True:
        stripped = text.lstrip("=")
        if len(stripped) >= 2 and stripped[0] + stripped[-1] in ("[]", "<>"):
            stripped = stripped[1:-1]
        stripped = stripped.removesuffix("...").removesuffix("…")
        if stripped == text:
            return text
        text = stripped


def enumerated_values(metavar: str) -> tuple[str, ...] | None:
    """Return the members of a `{a|b|c}` / `{a,b,c}` metavar, or `None`."""
    match = ENUMERATION_RE.match(strip_metavar(metavar))
    if not match:
        return None
    members = (member.strip() for member in re.split(r"[|,]", match.group(1)))
    return tuple(dict.fromkeys(member for member in members if member))


def guess(
    name: str | int,
    metavar: str = "",
    hints: Iterable[tuple[str, CompletionSource]] = (),
) -> CompletionSource:
    """
    Infer a completion source for one value slot.

    Args:
        name: The option name or positional index.
        metavar: The placeholder text describing the value.
        hints: Extra `(pattern, source)` pairs consulted before the built-in table.

    Returns:
        CompletionSource: The first matching source.
    """
    values = enumerated_values(metavar)
    if values is not None:
        return Literal(values)
    key = f"{name}={strip_metavar(metavar)}"
    for pattern, source in (*hints, *GUESS_TABLE):
        if re.search(pattern, key):
            return source
    return FILES
