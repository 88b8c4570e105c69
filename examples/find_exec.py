#!/usr/bin/env python
"""find_exec.py

Nested command lines: `find ... -exec CMD ARGS ;` completes CMD from PATH and
its arguments from CMD's own grammar, then resumes `find` after the `;`.
"""
from argscope import ArgScope, argument, option
from argscope.providers import DIRECTORIES
from argscope.utils import setup_logging

setup_logging()

scope = ArgScope()
scope.register(
    "find",
    lambda scope: [
        option("-name PATTERN", help="Base of file name matches PATTERN"),
        option("-type {f,d,l}", help="File is of the given type"),
        option("-exec", subparser=scope.command_subparser(";"), repeat=True),
        argument("*", [DIRECTORIES]),
    ],
)
scope.register("grep", [option("-r, --recursive"), option("-i, --ignore-case")])

for argv in (
    ["find", ".", "-ty"],
    ["find", ".", "-type", ""],
    ["find", ".", "-exec", "grep", "--re"],
    ["find", ".", "-exec", "grep", "-r", ";", "-na"],
):
    provider = scope.complete(argv)
    print(f"{' '.join(argv)!r:45} -> {provider.candidates()}")
