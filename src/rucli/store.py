# rucli — Interactive and Script-Driven Command Shell
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
File-backed history storage for rucli.

Format: one command per line, oldest first, UTF-8, newline-terminated.
A newline inside an entry (from a quote spanning lines) is written as
"\\n" and a literal backslash as "\\\\", so every entry reloads exactly.
"""

from __future__ import annotations

from pathlib import Path


def escape_entry(entry: str) -> str:
    return entry.replace("\\", "\\\\").replace("\n", "\\n")


def unescape_entry(line: str) -> str:
    """Reverse escape_entry; an unknown escape keeps its backslash."""
    out: list[str] = []
    i = 0
    while i < len(line):
        ch = line[i]
        if ch == "\\" and i + 1 < len(line):
            nxt = line[i + 1]
            if nxt == "n":
                out.append("\n")
                i += 2
                continue
            if nxt == "\\":
                out.append("\\")
                i += 2
                continue
        out.append(ch)
        i += 1
    return "".join(out)


class FileHistoryStore:
    """Line-oriented implementation of the HistoryStore protocol."""

    def __init__(self, path: Path | str):
        """Initialize store with the history file path.

        Args:
            path: History file location; it is created on first save

        Note:
            The parent directory is created on save, never on construction,
            so a read-only session leaves the filesystem untouched.
        """
        self.path = Path(path)

    def load(self) -> list[str]:
        """Return stored lines, or an empty list when the file is absent."""
        if not self.path.exists():
            return []
        with self.path.open("r", encoding="utf-8") as f:
            return [unescape_entry(line.rstrip("\r\n")) for line in f]

    def save(self, entries: list[str]) -> None:
        """Overwrite the file with entries, one per line."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", encoding="utf-8") as f:
            for entry in entries:
                f.write(escape_entry(entry) + "\n")
