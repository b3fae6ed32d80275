# rucli — Interactive and Script-Driven Command Shell
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto


class Outcome(Enum):
    """Result of executing a command node."""

    SUCCESS = auto()
    FAILURE = auto()
    # exit/quit: the REPL flushes state and stops
    TERMINATE = auto()

    @classmethod
    def from_bool(cls, ok: bool) -> Outcome:
        return cls.SUCCESS if ok else cls.FAILURE


@dataclass
class CommandResult:
    """What a built-in handler produced: output text plus outcome."""

    output: str = ""
    outcome: Outcome = Outcome.SUCCESS
