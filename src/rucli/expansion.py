# rucli — Interactive and Script-Driven Command Shell
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Variable expansion and command substitution.

Expansion never raises: malformed syntax is kept verbatim and a failing
substitution yields the empty string. A single left-to-right scan handles
$NAME, ${NAME} and $(...); substituted values are not scanned again.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable

from .errors import IncompleteInput, RucliError
from .interfaces import VariableSource
from .lexer import skip_quoted, skip_substitution

logger = logging.getLogger(__name__)

# Runs command text and returns its output, or None when it failed
CaptureRunner = Callable[[str], "str | None"]

_NAME_RE = re.compile(r"[A-Za-z0-9_]+")


def is_quoted(raw: str) -> bool:
    """True if a raw word carries any quoting or escaping."""
    return any(ch in raw for ch in ("'", '"', "\\"))


class Expander:
    """Expands words against an environment.

    Args:
        env: Variable source (session tier shadows system tier)
        run_capture: Executes $(...) text; None disables substitution
    """

    def __init__(
        self,
        env: VariableSource,
        run_capture: CaptureRunner | None = None,
    ) -> None:
        self.env = env
        self.run_capture = run_capture

    # -----------------------
    # Plain text
    # -----------------------

    def expand(self, text: str) -> str:
        """Expand variables and substitutions in text without quote rules."""
        if "$" not in text:
            return text

        out: list[str] = []
        i = 0
        n = len(text)
        while i < n:
            ch = text[i]
            if ch != "$":
                out.append(ch)
                i += 1
                continue
            i, value = self._expand_dollar(text, i)
            out.append(value)
        return "".join(out)

    def _expand_dollar(self, text: str, i: int) -> tuple[int, str]:
        """Expand the '$' form at text[i]; return (next_index, value)."""
        n = len(text)
        nxt = text[i + 1] if i + 1 < n else ""

        if nxt == "(":
            try:
                end = skip_substitution(text, i)
            except IncompleteInput:
                return n, text[i:]
            return end, self.substitute(text[i + 2:end - 1])

        if nxt == "{":
            close = text.find("}", i + 2)
            if close == -1:
                return n, text[i:]
            name = text[i + 2:close]
            if not _NAME_RE.fullmatch(name):
                return close + 1, text[i:close + 1]
            return close + 1, self.lookup(name)

        m = _NAME_RE.match(text, i + 1)
        if m:
            return m.end(), self.lookup(m.group(0))

        return i + 1, "$"

    def lookup(self, name: str) -> str:
        value = self.env.get(name)
        return value if value is not None else ""

    def substitute(self, command: str) -> str:
        """Run command text and return its output minus one trailing newline."""
        if not command.strip() or self.run_capture is None:
            return ""
        try:
            output = self.run_capture(command)
        except RucliError as e:
            logger.debug("substitution %r failed: %s", command, e)
            return ""
        if output is None:
            return ""
        if output.endswith("\n"):
            output = output[:-1]
        return output

    # -----------------------
    # Raw words
    # -----------------------

    def expand_word(self, raw: str) -> str:
        """Expand one raw word, honouring quotes and removing them.

        Single quotes are literal; double quotes expand; a backslash
        outside single quotes makes the next character literal.
        """
        if not is_quoted(raw):
            return self.expand(raw)

        out: list[str] = []
        pending: list[str] = []

        def flush() -> None:
            if pending:
                out.append(self.expand("".join(pending)))
                pending.clear()

        i = 0
        n = len(raw)
        while i < n:
            ch = raw[i]
            if ch == "\\":
                flush()
                if i + 1 < n:
                    out.append(raw[i + 1])
                i += 2
            elif ch == "'":
                flush()
                try:
                    end = skip_quoted(raw, i, "'")
                except IncompleteInput:
                    end = n + 1
                out.append(raw[i + 1:end - 1])
                i = end
            elif ch == '"':
                flush()
                i = self._expand_double_quoted(raw, i, out)
            elif raw.startswith("$(", i):
                try:
                    end = skip_substitution(raw, i)
                except IncompleteInput:
                    end = n
                pending.append(raw[i:end])
                i = end
            else:
                pending.append(ch)
                i += 1
        flush()
        return "".join(out)

    def _expand_double_quoted(
        self, raw: str, i: int, out: list[str]
    ) -> int:
        """Expand a "..." section starting at raw[i]; return the next index."""
        pending: list[str] = []
        j = i + 1
        n = len(raw)
        while j < n:
            ch = raw[j]
            if ch == "\\" and j + 1 < n and raw[j + 1] in '$"\\`':
                out.append(self.expand("".join(pending)))
                pending.clear()
                out.append(raw[j + 1])
                j += 2
                continue
            if raw.startswith("$(", j):
                try:
                    end = skip_substitution(raw, j)
                except IncompleteInput:
                    end = n
                pending.append(raw[j:end])
                j = end
                continue
            if ch == '"':
                j += 1
                break
            pending.append(ch)
            j += 1
        out.append(self.expand("".join(pending)))
        return j

    def expand_words(self, raws: list[str]) -> list[str]:
        """Expand a list of raw words into argument strings.

        Unquoted words that contain an expansion are split on whitespace,
        and dropped entirely when they expand to nothing.
        """
        words: list[str] = []
        for raw in raws:
            value = self.expand_word(raw)
            if is_quoted(raw) or "$" not in raw:
                words.append(value)
            else:
                words.extend(value.split())
        return words
