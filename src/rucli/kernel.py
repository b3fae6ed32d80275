# rucli — Interactive and Script-Driven Command Shell
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
rucli kernel.

The session engine:
- owns the session state (environment, functions, aliases, jobs, history)
- receives input one physical line at a time via feed()
- resolves history events, collects multi-line blocks and heredoc bodies
- parses and hands complete units to the executor
- flushes history on clean shutdown

Important boundary:
- Kernel does not load YAML or read terminal input.
- Kernel consumes the injected ConfigModel and HistoryStore; the CLI owns
  the read loop and wiring.
"""

from __future__ import annotations

import logging
import sys
import traceback
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, auto

from . import config as cfg_module
from .config import YAMLConfig, colorize
from .context import ShellContext
from .environment import AliasTable, Environment, FunctionTable
from .errors import HistoryNotFound, IncompleteInput, ShellSyntaxError
from .executor import Executor
from .history import DEFAULT_MAX_ENTRIES, History
from .interfaces import ConfigModel, HistoryStore
from .jobs import JobRegistry
from .nodes import Node, RedirectKind, RedirectSpec, pending_heredocs
from .parser import parse
from .results import Outcome
from .sinks import TerminalSink
from .utils import (
    is_comment_or_blank,
    is_quote_balanced,
    is_shell_input_incomplete,
    join_block_lines,
    strip_common_tabs,
)

logger = logging.getLogger(__name__)


def write_crash_log(error: Exception, raw_command: str = "") -> None:
    """Write an entry to the crash log.

    Logs unhandled exceptions. Only creates the log directory when
    actually needed. Appends to crash.log (never overwrites).
    """
    try:
        logs_dir = cfg_module.get_data_root() / "rucli" / "logs"
        logs_dir.mkdir(parents=True, exist_ok=True)

        lines = [datetime.now().isoformat()]
        if raw_command:
            lines.append(f"raw={raw_command}")
        lines.append(f"error={type(error).__name__}: {error}")
        lines.append("traceback:")
        lines.append(traceback.format_exc())
        lines.append("----")

        with (logs_dir / "crash.log").open("a", encoding="utf-8") as f:
            f.write("\n".join(lines) + "\n")
    except OSError:
        # Already handling a failure; the crash log is best effort
        logger.exception("could not write crash log")


class FeedStatus(Enum):
    COMPLETE = auto()
    NEEDS_MORE = auto()


@dataclass
class Kernel:
    """rucli session engine."""

    config: ConfigModel = field(default_factory=YAMLConfig)
    history_store: HistoryStore | None = None
    executor: Executor | None = None

    env: Environment = field(default_factory=Environment)
    functions: FunctionTable = field(default_factory=FunctionTable)
    aliases: AliasTable = field(default_factory=AliasTable)
    jobs: JobRegistry = field(default_factory=JobRegistry)
    history: History | None = None

    running: bool = False
    # Interactive sessions load and persist history
    interactive: bool = True
    # ANSI-colored prompt and banner (interactive terminal UI only)
    color: bool = False
    last_outcome: Outcome = Outcome.SUCCESS

    # ---- Output hooks (wired by UI/CLI) ----
    output_fn: Callable[[str], None] | None = None
    error_fn: Callable[[str], None] | None = None

    # Pending multi-line input
    _lines: list[str] = field(default_factory=list)
    _pending_node: Node | None = None
    _heredocs: list[RedirectSpec] = field(default_factory=list)
    _heredoc_lines: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.history is None:
            max_entries = int(self.config.get_path(
                "history.max_entries", DEFAULT_MAX_ENTRIES
            ))
            self.history = History(max_entries, store=self.history_store)

        if self.executor is None:
            self.executor = Executor(
                while_limit=int(self.config.get_path(
                    "limits.while_max_iterations", 1000
                )),
                max_alias_depth=int(self.config.get_path(
                    "limits.max_alias_depth", 10
                )),
                max_call_depth=int(self.config.get_path(
                    "limits.max_call_depth", 100
                )),
            )

        self.sink = TerminalSink(self._write_output, self._write_error)
        self.ctx = ShellContext(
            env=self.env,
            functions=self.functions,
            aliases=self.aliases,
            jobs=self.jobs,
            history=self.history,
            executor=self.executor,
            sink=self.sink,
        )

    # -----------------------
    # Output plumbing
    # -----------------------

    def _write_output(self, text: str) -> None:
        if self.output_fn is not None:
            self.output_fn(text)
        else:
            sys.stdout.write(text)
            sys.stdout.flush()

    def _write_error(self, text: str) -> None:
        if self.error_fn is not None:
            self.error_fn(text)
        elif self.output_fn is not None:
            self.output_fn(text)
        else:
            sys.stderr.write(text)
            sys.stderr.flush()

    # -----------------------
    # Session lifecycle
    # -----------------------

    def start(self) -> str:
        """Start a session; returns the welcome banner."""
        self.running = True
        if self.interactive:
            self.history.load()

        sys_cfg = self.config.system or {}
        welcome = sys_cfg.get("welcome") or {}
        msg = welcome.get("message") if isinstance(welcome, dict) else None
        if not isinstance(msg, str) or not msg.strip():
            return ""
        msg = msg.strip()
        if self.color:
            name = str(sys_cfg.get("name", "rucli"))
            branded = colorize(name, str(welcome.get("color", "cyan")))
            msg = msg.replace(name, branded, 1)
        return msg

    def shutdown(self) -> None:
        """Stop the session and flush history."""
        if self.interactive:
            self.history.persist()
        self.running = False

    def prompt(self) -> str:
        """Prompt text for the next line, based on what is pending."""
        if self._heredocs:
            key, default = "prompt.heredoc", "heredoc> "
        elif self._lines:
            key, default = "prompt.continuation", ">> "
        else:
            key, default = "prompt.primary", "> "
        text = str(self.config.get_path(key, default))
        if self.color:
            color = str(self.config.get_path("prompt.color", "pink"))
            stripped = text.rstrip(" ")
            text = colorize(stripped, color) + text[len(stripped):]
        return text

    @property
    def needs_more(self) -> bool:
        return bool(self._lines or self._heredocs)

    def cancel_pending(self) -> None:
        """Drop any partially collected block or heredoc."""
        self._lines = []
        self._pending_node = None
        self._heredocs = []
        self._heredoc_lines = []

    # -----------------------
    # Input handling
    # -----------------------

    def feed(self, line: str) -> FeedStatus:
        """Accept one physical input line.

        Returns NEEDS_MORE while a block, quote or heredoc is still open;
        COMPLETE once the accumulated input has been executed or rejected.
        """
        if self._heredocs:
            return self._feed_heredoc(line)

        if is_comment_or_blank(line):
            if self._lines and is_shell_input_incomplete(
                "\n".join(self._lines)
            ):
                # Inside an open quote the line is literal text
                self._lines.append(line)
                return FeedStatus.NEEDS_MORE
            return (
                FeedStatus.NEEDS_MORE if self._lines
                else FeedStatus.COMPLETE
            )

        try:
            line, changed = self.history.expand_line(line)
        except HistoryNotFound as e:
            self.sink.error(f"rucli: {e}")
            self.cancel_pending()
            self.last_outcome = Outcome.FAILURE
            return FeedStatus.COMPLETE
        if changed:
            logger.debug("history expanded to %r", line)

        self._lines.append(line)
        text = "\n".join(self._lines)
        if is_shell_input_incomplete(text):
            return FeedStatus.NEEDS_MORE

        try:
            node = parse(text)
        except IncompleteInput:
            return FeedStatus.NEEDS_MORE
        except ShellSyntaxError as e:
            self.history.record(self._history_text())
            self.sink.error(f"rucli: {e}")
            self.cancel_pending()
            self.last_outcome = Outcome.FAILURE
            return FeedStatus.COMPLETE

        self.history.record(self._history_text())
        self._lines = []

        heredocs = pending_heredocs(node)
        if heredocs:
            self._pending_node = node
            self._heredocs = heredocs
            return FeedStatus.NEEDS_MORE

        self._run(node)
        return FeedStatus.COMPLETE

    def _history_text(self) -> str:
        text = "\n".join(self._lines).replace("\\\n", "")
        if "\n" not in text:
            return text
        lines = text.split("\n")
        if not all(is_quote_balanced(line) for line in lines):
            # A newline inside quotes is part of a word
            return text
        return join_block_lines(lines)

    def _feed_heredoc(self, line: str) -> FeedStatus:
        spec = self._heredocs[0]
        strip_tabs = spec.kind is RedirectKind.HEREDOC_STRIP_TABS
        terminator = line.lstrip("\t") if strip_tabs else line
        if terminator != spec.target:
            self._heredoc_lines.append(line)
            return FeedStatus.NEEDS_MORE

        self._close_heredoc()
        if self._heredocs:
            return FeedStatus.NEEDS_MORE

        node = self._pending_node
        self._pending_node = None
        if node is not None:
            self._run(node)
        return FeedStatus.COMPLETE

    def _close_heredoc(self) -> None:
        spec = self._heredocs.pop(0)
        body = self._heredoc_lines
        if spec.kind is RedirectKind.HEREDOC_STRIP_TABS:
            body = strip_common_tabs(body)
        spec.body = body
        self._heredoc_lines = []

    def finish(self) -> bool:
        """Signal end of input.

        An open heredoc is closed with what was collected (with a warning).
        An open block is a fatal syntax error: it is reported and False is
        returned.
        """
        if self._heredocs:
            wanted = self._heredocs[0].target
            self.sink.error(
                f"rucli: warning: here-document delimited by end of file "
                f"(wanted '{wanted}')"
            )
            while self._heredocs:
                self._close_heredoc()
            node = self._pending_node
            self._pending_node = None
            if node is not None:
                self._run(node)
            return True

        if self._lines:
            self.sink.error("rucli: syntax error: unterminated block")
            self.cancel_pending()
            self.last_outcome = Outcome.FAILURE
            return False

        return True

    def handle_command(self, text: str) -> Outcome:
        """Run a complete command text (no continuation collection)."""
        self.history.record(text)
        try:
            node = parse(text)
        except ShellSyntaxError as e:
            self.sink.error(f"rucli: {e}")
            self.last_outcome = Outcome.FAILURE
            return self.last_outcome
        return self._run(node)

    def _run(self, node: Node) -> Outcome:
        outcome = self.executor.execute(node, self.ctx, self.sink)
        self.last_outcome = outcome
        if outcome is Outcome.TERMINATE:
            self.shutdown()
        return outcome

    # -----------------------
    # Completion helpers (UI)
    # -----------------------

    def command_names(self) -> list[str]:
        """Names valid in command position: built-ins, functions, aliases."""
        names = set(self.executor.builtins)
        names.update(self.functions.names())
        names.update(name for name, _ in self.aliases.items())
        return sorted(names)
