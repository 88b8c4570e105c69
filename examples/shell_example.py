#!/usr/bin/env python
"""shell_example.py

An interactive prompt that completes whole command lines.
"""
from pathlib import Path

from prompt_toolkit import PromptSession

from argscope import ArgScope, ArgScopeCompleter
from argscope.config import load_settings

settings = load_settings(Path(__file__).parent / "argscope.yaml")

with ArgScope(settings) as scope:
    session: PromptSession = PromptSession(
        "$ ", completer=ArgScopeCompleter(scope), complete_while_typing=False
    )
    while True:
        try:
            line = session.prompt()
        except (EOFError, KeyboardInterrupt):
            break
        print(scope.trace(line.split() or [""]).history[-1])
