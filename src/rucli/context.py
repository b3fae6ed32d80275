# rucli — Interactive and Script-Driven Command Shell
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING

from .environment import AliasTable, Environment, FunctionTable
from .history import History
from .jobs import JobRegistry

if TYPE_CHECKING:
    from .executor import Executor  # pragma: no cover
    from .interfaces import OutputSink  # pragma: no cover


@dataclass
class ShellContext:
    """Owned session state handed to the executor and built-ins."""

    env: Environment = field(default_factory=Environment)
    functions: FunctionTable = field(default_factory=FunctionTable)
    aliases: AliasTable = field(default_factory=AliasTable)
    jobs: JobRegistry = field(default_factory=JobRegistry)
    history: History = field(default_factory=History)

    # Wired by the kernel once constructed
    executor: Executor | None = None
    # Where nested runs (history N) send error lines
    sink: OutputSink | None = None

    background: bool = False
    call_depth: int = 0
    alias_stack: list[str] = field(default_factory=list)

    def for_background(self) -> ShellContext:
        """Copy for a background job: snapshot variables, fresh counters."""
        return replace(
            self,
            env=self.env.snapshot(),
            background=True,
            call_depth=0,
            alias_stack=list(self.alias_stack),
        )
