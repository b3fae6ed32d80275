# rucli — Interactive and Script-Driven Command Shell
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Command history: recording, bash-style expansion, search, persistence.

Expansion runs on the raw line before that line is recorded, so "the
current input" is never a candidate for !!, !N, !-N or !prefix.
"""

from __future__ import annotations

import logging
import re
import threading
from collections import deque
from dataclasses import dataclass

from .errors import HistoryNotFound
from .interfaces import HistoryStore
from .utils import LexerState

logger = logging.getLogger(__name__)

DEFAULT_MAX_ENTRIES = 1000

# !! with optional suffix, !N / !-N with optional suffix, or !prefix
_EVENT_RE = re.compile(r"!(?:!|-?\d+|[^\s;|&()=!\"'][^\s;|&()]*)")
_WORD_START_AFTER = frozenset(" \t;|&(")


@dataclass(frozen=True)
class HistoryEntry:
    number: int
    text: str


class History:
    """Bounded, numbered command history."""

    def __init__(
        self,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        store: HistoryStore | None = None,
    ) -> None:
        self.max_entries = max_entries
        self.store = store
        self._entries: deque[str] = deque(maxlen=max_entries)
        self._lock = threading.Lock()

    # -----------------------
    # Recording
    # -----------------------

    def record(self, text: str) -> bool:
        """Append text unless blank or equal to the previous entry."""
        if not text or not text.strip():
            return False
        with self._lock:
            if self._entries and self._entries[-1] == text:
                return False
            self._entries.append(text)
        return True

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def entries(self) -> list[HistoryEntry]:
        with self._lock:
            return [
                HistoryEntry(i, text)
                for i, text in enumerate(self._entries, start=1)
            ]

    def get(self, number: int) -> str | None:
        """Entry text by 1-based number, or None when out of range."""
        with self._lock:
            if 1 <= number <= len(self._entries):
                return self._entries[number - 1]
        return None

    # -----------------------
    # Expansion
    # -----------------------

    def expand(self, token: str) -> str:
        """Resolve one history event: !!, !N, !-N or !prefix.

        Raises:
            HistoryNotFound: nothing matches
        """
        if len(token) < 2 or not token.startswith("!"):
            raise HistoryNotFound(token)

        body = token[1:]
        with self._lock:
            entries = list(self._entries)

        if body == "!":
            if entries:
                return entries[-1]
        elif body.isdigit():
            n = int(body)
            if 1 <= n <= len(entries):
                return entries[n - 1]
        elif body.startswith("-") and body[1:].isdigit():
            n = int(body[1:])
            if 1 <= n <= len(entries):
                return entries[-n]
        else:
            for text in reversed(entries):
                if text.startswith(body):
                    return text

        raise HistoryNotFound(token)

    def expand_line(self, line: str) -> tuple[str, bool]:
        """Replace history events that start a word outside single quotes.

        Returns:
            (expanded_line, changed)

        Raises:
            HistoryNotFound: an event in the line matches nothing
        """
        if "!" not in line:
            return line, False

        out: list[str] = []
        state = LexerState.NORMAL
        changed = False
        i = 0
        n = len(line)

        while i < n:
            ch = line[i]

            if state == LexerState.SINGLE_QUOTE:
                if ch == "'":
                    state = LexerState.NORMAL
                out.append(ch)
                i += 1
                continue

            if ch == "\\" and i + 1 < n:
                out.append(line[i:i + 2])
                i += 2
                continue

            if ch == "'" and state == LexerState.NORMAL:
                state = LexerState.SINGLE_QUOTE
            elif ch == '"':
                state = (
                    LexerState.NORMAL
                    if state == LexerState.DOUBLE_QUOTE
                    else LexerState.DOUBLE_QUOTE
                )
            elif ch == "!" and (i == 0 or line[i - 1] in _WORD_START_AFTER
                                or line[i - 1] == '"'):
                m = _EVENT_RE.match(line, i)
                if m:
                    out.append(self.expand(m.group(0)))
                    changed = True
                    i = m.end()
                    continue

            out.append(ch)
            i += 1

        return "".join(out), changed

    # -----------------------
    # Search
    # -----------------------

    def search(
        self, query: str, exclude_latest: bool = True
    ) -> list[HistoryEntry]:
        """Case-insensitive substring search, oldest first.

        The newest entry is the search command itself and is skipped
        unless exclude_latest is False.
        """
        needle = query.lower()
        entries = self.entries()
        if exclude_latest and entries:
            entries = entries[:-1]
        return [e for e in entries if needle in e.text.lower()]

    # -----------------------
    # Persistence
    # -----------------------

    def load(self) -> bool:
        """Load persisted entries ahead of the in-memory ones.

        Store failures are logged and leave history as it was.
        """
        if self.store is None:
            return False
        try:
            lines = self.store.load()
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("could not load history: %s", e)
            return False

        loaded = [line.strip() for line in lines if line.strip()]
        with self._lock:
            current = list(self._entries)
            self._entries = deque(loaded + current, maxlen=self.max_entries)
        logger.debug("loaded %d history entries", len(loaded))
        return True

    def persist(self) -> bool:
        """Write all entries to the store; failures are logged, not raised."""
        if self.store is None:
            return False
        with self._lock:
            entries = list(self._entries)
        try:
            self.store.save(entries)
        except OSError as e:
            logger.warning("could not save history: %s", e)
            return False
        logger.debug("saved %d history entries", len(entries))
        return True
