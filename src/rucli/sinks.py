# rucli — Interactive and Script-Driven Command Shell
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Output sinks.

The terminal sink forwards to the output/error callables wired by the CLI
(prompt_toolkit UI or plain stdout). A capture sink buffers output for
pipelines, redirects and command substitution while passing error lines
through to its parent so they still reach the user.
"""

from __future__ import annotations

import sys
import threading
from collections.abc import Callable

from .interfaces import OutputSink


def _stdout_write(text: str) -> None:
    sys.stdout.write(text)
    sys.stdout.flush()


def _stderr_write(text: str) -> None:
    sys.stderr.write(text)
    sys.stderr.flush()


class TerminalSink:
    """Thread-safe sink writing to the terminal callables."""

    def __init__(
        self,
        output_fn: Callable[[str], None] | None = None,
        error_fn: Callable[[str], None] | None = None,
    ) -> None:
        self.output_fn = output_fn or _stdout_write
        self.error_fn = error_fn or _stderr_write
        self._lock = threading.Lock()

    def write(self, text: str) -> None:
        if not text:
            return
        with self._lock:
            self.output_fn(text)

    def error(self, text: str) -> None:
        if not text:
            return
        if not text.endswith("\n"):
            text += "\n"
        with self._lock:
            self.error_fn(text)


class CaptureSink:
    """Buffers written output; errors go to the parent sink."""

    def __init__(self, parent: OutputSink | None = None) -> None:
        self.parent = parent
        self._parts: list[str] = []
        self._lock = threading.Lock()

    def write(self, text: str) -> None:
        with self._lock:
            self._parts.append(text)

    def error(self, text: str) -> None:
        if self.parent is not None:
            self.parent.error(text)

    def getvalue(self) -> str:
        with self._lock:
            return "".join(self._parts)
