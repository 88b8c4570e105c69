"""
ArgScope

Copyright (c) 2025 rtj.dev LLC.
Licensed under the MIT License. See LICENSE file for details.
"""

from .argspec import (
    WILDCARD,
    ArgAction,
    ArgKind,
    ArgSpec,
    Exclusion,
    ExclusionKind,
    OptionStyle,
)
from .compiler import (
    RawArgSpec,
    argspecs_from_help,
    argspecs_from_options,
    argument,
    make_argspecs,
    option,
    share_aliases,
)
from .extractor import extract_options, extract_program_options, help_text, man_text
from .guess import guess
from .matcher import ArgumentMatcher, parse_arguments
from .parser_types import MatchContext, MatchRecord, MatchTrace, ParseState, Subparser

__all__ = [
    "WILDCARD",
    "ArgAction",
    "ArgKind",
    "ArgSpec",
    "ArgumentMatcher",
    "Exclusion",
    "ExclusionKind",
    "MatchContext",
    "MatchRecord",
    "MatchTrace",
    "OptionStyle",
    "ParseState",
    "RawArgSpec",
    "Subparser",
    "argspecs_from_help",
    "argspecs_from_options",
    "argument",
    "extract_options",
    "extract_program_options",
    "guess",
    "help_text",
    "make_argspecs",
    "man_text",
    "option",
    "parse_arguments",
    "share_aliases",
]
