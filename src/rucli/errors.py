# rucli — Interactive and Script-Driven Command Shell
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Exception taxonomy for rucli.

Only ShellSyntaxError aborts an input unit. Everything else is reported
as an error line and the session carries on with the next command.
"""

from __future__ import annotations


class RucliError(Exception):
    """Base class for all rucli errors."""


class ShellSyntaxError(RucliError):
    """Input could not be parsed. Fatal to the current input unit only."""

    def __init__(self, message: str, token: str | None = None) -> None:
        super().__init__(message)
        self.token = token


class IncompleteInput(ShellSyntaxError):
    """Input ended inside an open construct; more lines are needed."""

    def __init__(self, expected: str) -> None:
        super().__init__(f"unexpected end of input, expected '{expected}'")
        self.expected = expected


class CommandError(RucliError):
    """A built-in reported failure (missing file, bad argument, ...)."""


class InvalidArguments(CommandError):
    """Argument count or shape rejected before dispatch."""


class HistoryNotFound(RucliError):
    """A history expansion token matched no entry."""

    def __init__(self, token: str) -> None:
        super().__init__(f"{token}: event not found")
        self.token = token


class JobNotFound(RucliError):
    """A job status query named an id that is not tracked."""

    def __init__(self, job_id: int | None = None) -> None:
        if job_id is None:
            super().__init__("no current job")
        else:
            super().__init__(f"no such job: {job_id}")
        self.job_id = job_id
