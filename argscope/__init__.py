"""
ArgScope

Copyright (c) 2025 rtj.dev LLC.
Licensed under the MIT License. See LICENSE file for details.
"""

from .cache import ResultCache
from .completer import ArgScopeCompleter
from .config import ArgScopeSettings, load_settings
from .engine import ArgScope
from .parser import ArgSpec, MatchRecord, argument, make_argspecs, option
from .resolver import CompletionProvider, CompletionResolver, flatten_history
from .sources import Dynamic, Guess, Literal, NoCompletion, Static

__all__ = [
    "ArgScope",
    "ArgScopeCompleter",
    "ArgScopeSettings",
    "ArgSpec",
    "CompletionProvider",
    "CompletionResolver",
    "Dynamic",
    "Guess",
    "Literal",
    "MatchRecord",
    "NoCompletion",
    "ResultCache",
    "Static",
    "argument",
    "flatten_history",
    "load_settings",
    "make_argspecs",
    "option",
]
