# ArgScope — (c) 2025 rtj.dev LLC — MIT Licensed
"""
Concrete value providers used by the guess table and by hand-written grammars.

Path-like values are completed with prompt_toolkit's `PathCompleter`; everything
else is a plain callable returning candidate strings, wrapped in `Static` with a
cache duration so the resolver memoizes it in the session cache.

Providers:
- `FILES`, `DIRECTORIES`: file system paths.
- `USERS`, `GROUPS`: account and group names from the system databases.
- `COMMANDS`: executable names found on `PATH`.
- `ENVIRONMENT`: environment variable names.
"""
from __future__ import annotations

import os

from prompt_toolkit.completion import PathCompleter

from argscope.logger import logger
from argscope.sources import Static


def user_names() -> list[str]:
    """Return every user name known to the password database."""
    try:
        import pwd
    except ImportError:
        logger.debug("pwd module unavailable, no user names")
        return []
    return sorted({entry.pw_name for entry in pwd.getpwall()})


def group_names() -> list[str]:
    """Return every group name known to the group database."""
    try:
        import grp
    except ImportError:
        logger.debug("grp module unavailable, no group names")
        return []
    return sorted({entry.gr_name for entry in grp.getgrall()})


def executables(path: str | None = None) -> list[str]:
    """Return the names of executable files in every directory on `PATH`."""
    if path is None:
        path = os.environ.get("PATH", "")
    names: set[str] = set()
    for directory in path.split(os.pathsep):
        if not directory:
            continue
        try:
            with os.scandir(directory) as entries:
                for entry in entries:
                    try:
                        if entry.is_file() and os.access(entry.path, os.X_OK):
                            names.add(entry.name)
                    except OSError:
                        continue
        except OSError:
            continue
    return sorted(names)


def environment_variables() -> list[str]:
    return sorted(os.environ)


FILES = Static(PathCompleter(expanduser=True))
DIRECTORIES = Static(PathCompleter(only_directories=True, expanduser=True))
USERS = Static(user_names, cache_duration=300.0)
GROUPS = Static(group_names, cache_duration=300.0)
COMMANDS = Static(executables, cache_duration=60.0)
ENVIRONMENT = Static(environment_variables)
