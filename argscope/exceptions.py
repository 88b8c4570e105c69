# ArgScope — (c) 2025 rtj.dev LLC — MIT Licensed
"""
Defines all custom exception classes used by ArgScope.

The taxonomy follows how each failure is meant to surface:

- Authoring errors in a declarative grammar are fatal at compile time and are
  never swallowed (`GrammarError`).
- Extraction misses are non-fatal; `ExtractionError` is raised by the help/man
  capture helpers and caught at the extractor boundary, which then yields an
  empty option list.
- Runtime ambiguity is recorded in the match trace, not raised. Only a broken
  internal invariant aborts a completion request (`MatchError`).

Exception Hierarchy:
- ArgScopeError
    ├── GrammarError
    ├── ExtractionError
    ├── MatchError
    └── ConfigError
"""


class ArgScopeError(Exception):
    """Base exception for ArgScope."""


class GrammarError(ArgScopeError):
    """Exception raised when a declarative grammar cannot be compiled."""


class ExtractionError(ArgScopeError):
    """Exception raised when help or manual text cannot be obtained."""


class MatchError(ArgScopeError):
    """Exception raised when the matcher detects a corrupt spec list or history."""


class ConfigError(ArgScopeError):
    """Exception raised when a settings or grammar file cannot be loaded."""
