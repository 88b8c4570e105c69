# ArgScope — (c) 2025 rtj.dev LLC — MIT Licensed
"""
Provides `ArgScopeCompleter`, a prompt_toolkit completer for whole shell-style
command lines backed by an `ArgScope` session.

The buffer before the cursor is split with `shlex`; the first word is the
program, a trailing space starts a new empty stub, and the session resolves the
completion provider for the last word. Candidates keep the text that precedes
the stub inside the same word (`--output=`), so they replace the whole word.

Behavior:
- A single candidate is inserted together with its terminator (`=`, `/`, a space
  or nothing).
- Several candidates sharing a longer common prefix insert that prefix and list
  every candidate.
- Candidates containing whitespace are quoted.
- When nothing matches and the provider allows it, file names are offered.
- Errors raised by the session are logged and produce no completions.
"""
from __future__ import annotations

import os
import shlex
from typing import TYPE_CHECKING, Iterable

from prompt_toolkit.completion import CompleteEvent, Completer, Completion
from prompt_toolkit.document import Document

from argscope.exceptions import ArgScopeError
from argscope.logger import logger
from argscope.providers import FILES
from argscope.resolver import CompletionProvider

if TYPE_CHECKING:
    from argscope.engine import ArgScope


class ArgScopeCompleter(Completer):
    """
    Prompt Toolkit completer for command lines.

    Args:
        scope (ArgScope): The session providing grammars and resolution.
    """

    def __init__(self, scope: "ArgScope"):
        self.scope = scope

    def get_completions(
        self, document: Document, complete_event: CompleteEvent
    ) -> Iterable[Completion]:
        """
        Yield completions for the word under the cursor.

        Args:
            document (Document): The current Prompt Toolkit document (input buffer & cursor).
            complete_event: The triggering event (TAB key, menu display, etc.). Not used.
        """
        text = document.text_before_cursor
        try:
            tokens = shlex.split(text)
        except ValueError:
            return
        cursor_at_end_of_token = not tokens or text.endswith((" ", "\t"))
        argv = tokens + [""] if cursor_at_end_of_token else tokens

        try:
            provider = self.scope.complete(argv)
        except ArgScopeError as error:
            logger.debug("No completions for %r: %s", argv, error)
            return

        word = argv[-1]
        suggestions, metas = self._collect(provider)
        if not suggestions and provider.fallback:
            provider = CompletionProvider(
                FILES.provider,
                stub=provider.stub,
                stub_prefix=provider.stub_prefix,
                paths=True,
            )
            suggestions, metas = self._collect(provider)
        yield from self._yield_lcp_completions(suggestions, word, provider, metas)

    @staticmethod
    def _collect(provider: CompletionProvider) -> tuple[list[str], dict[str, str]]:
        prefix = provider.stub_prefix
        stub = provider.stub
        suggestions: list[str] = []
        metas: dict[str, str] = {}
        for completion in provider.complete():
            candidate = f"{stub[: len(stub) + completion.start_position]}{completion.text}"
            suggestion = f"{prefix}{candidate}"
            if suggestion not in metas:
                suggestions.append(suggestion)
                metas[suggestion] = completion.display_meta_text
        return suggestions, metas

    def _ensure_quote(self, text: str) -> str:
        """
        Ensure that a suggestion is shell-safe by quoting if needed.

        Args:
            text (str): The input text to quote.

        Returns:
            str: The quoted text, suitable for shell command usage.
        """
        if " " in text or "\t" in text:
            return f'"{text}"'
        return text

    def _yield_lcp_completions(
        self,
        suggestions: list[str],
        word: str,
        provider: CompletionProvider,
        metas: dict[str, str],
    ) -> Iterable[Completion]:
        """
        Yield completions for the current word using longest-common-prefix logic.

        Behavior:
        - If only one match → yield it fully, followed by its terminator.
        - If multiple matches share a longer prefix → insert the prefix, but also
            display all matches in the menu.
        - If no shared prefix → list all matches individually.
        """
        matches = [s for s in suggestions if s.startswith(word)]
        if not matches:
            return

        lcp = os.path.commonprefix(matches)
        prefix_length = len(provider.stub_prefix)

        if len(matches) == 1:
            match = matches[0]
            yield Completion(
                self._ensure_quote(match) + provider.terminator(match[prefix_length:]),
                start_position=-len(word),
                display=match,
                display_meta=metas.get(match) or None,
            )
        elif len(lcp) > len(word) and not lcp[prefix_length:].startswith("-"):
            yield Completion(lcp, start_position=-len(word), display=lcp)
            for match in matches:
                yield Completion(
                    self._ensure_quote(match),
                    start_position=-len(word),
                    display=match,
                    display_meta=metas.get(match) or None,
                )
        else:
            for match in matches:
                yield Completion(
                    self._ensure_quote(match),
                    start_position=-len(word),
                    display=match,
                    display_meta=metas.get(match) or None,
                )
