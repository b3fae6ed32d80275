# rucli — Interactive and Script-Driven Command Shell
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Protocol definitions for dependency injection.

These interfaces keep the interpreter core separate from persistence,
terminal output and the built-in command handlers.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from .context import ShellContext  # pragma: no cover
    from .results import CommandResult  # pragma: no cover


class OutputSink(Protocol):
    """Destination for command output and error lines."""

    def write(self, text: str) -> None:
        """Write command output exactly as given."""
        ...

    def error(self, text: str) -> None:
        """Write one error line."""
        ...


class VariableSource(Protocol):
    """Read access to shell variables."""

    def get(self, name: str) -> str | None:
        """Return the value of name, or None when unset."""
        ...


class HistoryStore(Protocol):
    """Protocol for history persistence."""

    def load(self) -> list[str]:
        """Return stored entries, oldest first."""
        ...

    def save(self, entries: list[str]) -> None:
        """Replace stored entries with the given ones."""
        ...


class CommandHandler(Protocol):
    """A built-in command.

    Returns the output text (or a CommandResult carrying an explicit
    outcome) and raises CommandError or OSError to report failure.
    """

    def __call__(
        self, ctx: ShellContext, args: list[str], stdin: str | None
    ) -> str | CommandResult:
        ...


class ConfigModel(Protocol):
    """Protocol for configuration access."""

    @property
    def system(self) -> dict[str, Any]:
        """System configuration."""
        ...

    def get_path(self, path: str, default: Any = None) -> Any:
        """Nested lookup using a dot-separated path."""
        ...
