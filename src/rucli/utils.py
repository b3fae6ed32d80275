# rucli — Interactive and Script-Driven Command Shell
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Utility functions for rucli.
"""

from __future__ import annotations

from enum import Enum, auto
from typing import Any


def format_table(
    headers: list[str],
    rows: list[list[Any]],
    title: str = ""
) -> str:
    """
    Format data as a simple text table without external dependencies.

    Args:
        headers: List of column header names
        rows: List of rows, where each row is a list of values
        title: Optional title to display above the table

    Returns:
        Formatted table as a string
    """
    if not rows:
        return ""

    str_headers = [str(h) for h in headers]
    str_rows = [[str(val) for val in row] for row in rows]

    col_widths = []
    for i, header in enumerate(str_headers):
        max_width = len(header)
        for row in str_rows:
            if i < len(row):
                max_width = max(max_width, len(row[i]))
        col_widths.append(max_width)

    lines = []
    if title:
        lines.append(title)

    lines.append(
        "  ".join(h.ljust(col_widths[i]) for i, h in enumerate(str_headers))
        .rstrip()
    )
    for row in str_rows:
        lines.append(
            "  ".join(v.ljust(col_widths[i]) for i, v in enumerate(row))
            .rstrip()
        )

    return "\n".join(lines)


class LexerState(Enum):
    """States for quote-aware scanning."""
    NORMAL = auto()
    SINGLE_QUOTE = auto()
    DOUBLE_QUOTE = auto()
    ESCAPE = auto()


def _scan_state(text: str) -> LexerState:
    """Run the quote state machine over text and return the final state."""
    state = LexerState.NORMAL
    i = 0

    while i < len(text):
        ch = text[i]

        if state == LexerState.ESCAPE:
            state = LexerState.NORMAL
        elif state == LexerState.NORMAL:
            if ch == '\\':
                state = LexerState.ESCAPE
            elif ch == "'":
                state = LexerState.SINGLE_QUOTE
            elif ch == '"':
                state = LexerState.DOUBLE_QUOTE
        elif state == LexerState.SINGLE_QUOTE:
            if ch == "'":
                state = LexerState.NORMAL
        elif state == LexerState.DOUBLE_QUOTE:
            if ch == '\\' and i + 1 < len(text):
                i += 2
                continue
            if ch == '"':
                state = LexerState.NORMAL
        i += 1

    return state


def is_quote_balanced(text: str) -> bool:
    """Check if quotes are balanced in a shell command string.

    Handles single quotes, double quotes and backslash escapes (both in
    normal and double-quote contexts). A trailing backslash does not
    unbalance quotes.
    """
    return _scan_state(text) in (LexerState.NORMAL, LexerState.ESCAPE)


def has_trailing_backslash(text: str) -> bool:
    """Check if text ends with an unescaped backslash (line continuation).

    Args:
        text: Shell command text to check

    Returns:
        True if text ends with unescaped backslash, False otherwise
    """
    if not text:
        return False
    state = _scan_state(text)
    if state == LexerState.ESCAPE:
        return True
    return state == LexerState.DOUBLE_QUOTE and text.endswith("\\")


def is_shell_input_incomplete(text: str) -> bool:
    """Check if shell input is incomplete at the quoting level.

    Input is incomplete if quotes are unbalanced or the text ends with an
    unescaped backslash. Block structure is judged by the parser.
    """
    return not is_quote_balanced(text) or has_trailing_backslash(text)


def is_comment_or_blank(line: str) -> bool:
    """True for blank lines and lines whose first non-space char is '#'."""
    stripped = line.strip()
    return not stripped or stripped.startswith("#")


# Keywords after which a collected block continues on the same line
_OPENING_WORDS = ("do", "then", "else", "{")


def join_block_lines(lines: list[str]) -> str:
    """Join the physical lines of a multi-line block into one history line.

    Lines are separated with "; " except after an opening keyword
    (do, then, else, {), where a plain space keeps the text parseable.
    """
    out = ""
    for raw in lines:
        line = raw.strip()
        if not line:
            continue
        if not out:
            out = line
            continue
        last_word = out.rsplit(None, 1)[-1]
        if out.endswith((";", "|", "&")) or last_word in _OPENING_WORDS:
            out = f"{out} {line}"
        else:
            out = f"{out}; {line}"
    return out


def leading_tabs(line: str) -> int:
    return len(line) - len(line.lstrip("\t"))


def strip_common_tabs(lines: list[str]) -> list[str]:
    """Strip the smallest common run of leading tabs from every line.

    Empty lines do not take part in computing the common run. Leading
    spaces are never stripped.
    """
    counts = [leading_tabs(line) for line in lines if line]
    common = min(counts) if counts else 0
    if common == 0:
        return list(lines)
    return [line[min(common, leading_tabs(line)):] for line in lines]
