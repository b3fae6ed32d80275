# rucli — Interactive and Script-Driven Command Shell
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Quote-aware tokenizer.

Words keep their raw text (quotes, escapes, $(...) and ${...} included) so
the expansion engine can honour quoting at execution time. Operators and
newlines become their own tokens.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto

from .errors import IncompleteInput
from .utils import LexerState

# Longest operators first so "<<-" wins over "<<" and "<"
OPERATORS: tuple[str, ...] = (
    "<<-", "<<", ">>", "|", ">", "<", "&", ";", "(", ")",
)
REDIRECT_OPERATORS = frozenset({">", ">>", "<", "<<", "<<-"})

_WORD_BREAK = frozenset(" \t\n|&;<>()")


class TokenKind(Enum):
    WORD = auto()
    OP = auto()
    NEWLINE = auto()
    EOF = auto()


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    value: str
    start: int
    end: int

    def is_word(self, value: str | None = None) -> bool:
        return self.kind is TokenKind.WORD and (
            value is None or self.value == value
        )

    def is_op(self, value: str | None = None) -> bool:
        return self.kind is TokenKind.OP and (
            value is None or self.value == value
        )

    def describe(self) -> str:
        """Token text as shown in syntax error messages."""
        if self.kind is TokenKind.EOF:
            return "end of input"
        if self.kind is TokenKind.NEWLINE:
            return "newline"
        return self.value


def skip_quoted(text: str, i: int, quote: str) -> int:
    """Return the index just past the quote closing the one at text[i]."""
    j = i + 1
    while j < len(text):
        ch = text[j]
        if quote == '"' and ch == "\\":
            j += 2
            continue
        if quote == '"' and text.startswith("$(", j):
            j = skip_substitution(text, j)
            continue
        if ch == quote:
            return j + 1
        j += 1
    raise IncompleteInput(quote)


def skip_substitution(text: str, i: int) -> int:
    """Return the index just past the ')' that closes the '$(' at text[i]."""
    depth = 1
    j = i + 2
    while j < len(text):
        ch = text[j]
        if ch == "\\":
            j += 2
            continue
        if ch in ("'", '"'):
            j = skip_quoted(text, j, ch)
            continue
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                return j + 1
        j += 1
    raise IncompleteInput(")")


def _read_word(text: str, i: int) -> tuple[str, int]:
    """Read one raw word starting at text[i]; return (raw, next_index)."""
    parts: list[str] = []
    state = LexerState.NORMAL
    n = len(text)

    while i < n:
        ch = text[i]

        if state == LexerState.ESCAPE:
            if ch == "\n":
                # Line continuation: drop the backslash-newline pair
                parts.pop()
            else:
                parts.append(ch)
            state = LexerState.NORMAL
            i += 1
            continue

        if ch in _WORD_BREAK:
            break

        if ch == "\\":
            parts.append(ch)
            state = LexerState.ESCAPE
            i += 1
        elif ch in ("'", '"'):
            end = skip_quoted(text, i, ch)
            parts.append(text[i:end])
            i = end
        elif text.startswith("$(", i):
            end = skip_substitution(text, i)
            parts.append(text[i:end])
            i = end
        else:
            parts.append(ch)
            i += 1

    if state == LexerState.ESCAPE:
        raise IncompleteInput("\\")

    return "".join(parts), i


def tokenize(text: str) -> list[Token]:
    """Split shell text into word, operator and newline tokens.

    Raises:
        IncompleteInput: an unterminated quote, $( or trailing backslash
    """
    tokens: list[Token] = []
    i = 0
    n = len(text)

    while i < n:
        ch = text[i]

        if ch in (" ", "\t", "\r"):
            i += 1
            continue

        if text.startswith("\\\n", i):
            i += 2
            continue

        if ch == "\n":
            tokens.append(Token(TokenKind.NEWLINE, "\n", i, i + 1))
            i += 1
            continue

        op = next((o for o in OPERATORS if text.startswith(o, i)), None)
        if op is not None:
            tokens.append(Token(TokenKind.OP, op, i, i + len(op)))
            i += len(op)
            continue

        raw, end = _read_word(text, i)
        if raw:
            tokens.append(Token(TokenKind.WORD, raw, i, end))
        i = max(end, i + 1)

    tokens.append(Token(TokenKind.EOF, "", n, n))
    return tokens
