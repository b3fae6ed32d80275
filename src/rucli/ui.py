# rucli — Interactive and Script-Driven Command Shell
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

from __future__ import annotations

import os
from collections.abc import Iterable
from typing import TYPE_CHECKING

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.formatted_text import ANSI
from prompt_toolkit.history import InMemoryHistory
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.patch_stdout import patch_stdout
from prompt_toolkit.shortcuts import clear as pt_clear
from prompt_toolkit.shortcuts import print_formatted_text
from prompt_toolkit.styles import Style

if TYPE_CHECKING:
    from .kernel import Kernel  # pragma: no cover


# ----------------------------
# Config helpers (read through kernel.config.get_path)
# ----------------------------


def _cfg_get_path(kernel: Kernel | None, path: str, default):
    if kernel is None:
        return default
    cfg = getattr(kernel, "config", None)
    if cfg is None or not hasattr(cfg, "get_path"):
        return default
    return cfg.get_path(path, default)


def _cfg_bool(kernel: Kernel | None, path: str, default: bool) -> bool:
    return bool(_cfg_get_path(kernel, path, default))


def _cfg_dict(kernel: Kernel | None, path: str, default: dict) -> dict:
    val = _cfg_get_path(kernel, path, default)
    return val if isinstance(val, dict) else default


# ----------------------------
# Theme / Style
# ----------------------------


def _default_style_dict() -> dict[str, str]:
    return {
        # completion menu
        "completion-menu": "bg:#111111 #d0d0d0",
        "completion-menu.completion": "bg:#111111 #d0d0d0",
        "completion-menu.completion.current": "bg:#303030 #ffffff bold",
        "completion-menu.meta.completion": "bg:#111111 #808080",
        "completion-menu.meta.completion.current": "bg:#303030 #a0a0a0",
        "scrollbar.background": "bg:#202020",
        "scrollbar.button": "bg:#505050",
        "bottom-toolbar": "bg:#0b0b0b #d0d0d0",
        # job counter in the toolbar
        "rucli.jobs": "bg:#0b0b0b #a0a0a0",
        "rucli.jobs.active": "bg:#0b0b0b #d7af00 bold",
    }


def _build_style(kernel: Kernel | None) -> Style:
    base = _default_style_dict()
    overrides = _cfg_dict(kernel, "ui.theme.style", {})
    for k, v in list(overrides.items()):
        if isinstance(k, str) and isinstance(v, str):
            base[k] = v
    return Style.from_dict(base)


# ----------------------------
# Completion
# ----------------------------


class PathCompleter(Completer):
    """Filesystem path completion for the word under the cursor."""

    def _current_arg_token(self, text: str) -> tuple[str | None, int]:
        """Return (token, replace_len), or (None, 0) on the command word."""
        stripped = text.lstrip()
        if " " not in stripped:
            return (None, 0)
        if stripped.endswith(" "):
            return ("", 0)
        token = stripped.split()[-1]
        return (token, len(token))

    def _list_dir(self, directory: str) -> list[str]:
        try:
            return sorted(os.listdir(directory))
        except OSError:
            return []

    def get_completions(
        self, document, complete_event
    ) -> Iterable[Completion]:
        token, replace_len = self._current_arg_token(
            document.text_before_cursor or ""
        )
        if token is None:
            return

        expanded = os.path.expanduser(token)
        if token == "":
            base_dir, prefix, insert_prefix = ".", "", ""
        elif expanded.endswith("/") or expanded.endswith(os.sep):
            base_dir, prefix, insert_prefix = expanded, "", token
        else:
            base_dir = os.path.dirname(expanded) or "."
            prefix = os.path.basename(expanded)
            insert_prefix = os.path.dirname(token)
            if insert_prefix and not insert_prefix.endswith("/"):
                insert_prefix += "/"

        for name in self._list_dir(base_dir):
            if not name.startswith(prefix):
                continue
            if name.startswith(".") and not prefix.startswith("."):
                continue
            is_dir = os.path.isdir(os.path.join(base_dir, name))
            ins = f"{insert_prefix}{name}" + ("/" if is_dir else "")
            yield Completion(
                ins,
                start_position=-replace_len,
                display_meta="dir" if is_dir else "file",
            )


class ShellCompleter(Completer):
    """Command names on the first word; paths after it."""

    # Tokens after which a new command word starts
    _COMMAND_BREAKS = (";", "|", "&", "then", "do", "else", "{")

    def __init__(self, kernel: Kernel | None) -> None:
        self.kernel = kernel
        self._path = PathCompleter()

    def _command_meta(self, name: str) -> str:
        k = self.kernel
        if k is None:
            return ""
        if name in k.aliases:
            return f"alias: {k.aliases.get(name)}"
        if name in k.functions:
            return "function"
        builtin = k.executor.builtins.get(name)
        return builtin.description if builtin is not None else ""

    def _command_word(self, before: str) -> str | None:
        """The partial command word under the cursor, or None in args."""
        words = before.split()
        if before.endswith((" ", "\t")) or not words:
            last = ""
            previous = words[-1] if words else None
        else:
            last = words[-1]
            previous = words[-2] if len(words) > 1 else None
        if previous is None or previous in self._COMMAND_BREAKS:
            return last
        if previous.endswith((";", "|", "&")):
            return last
        return None

    def get_completions(
        self, document, complete_event
    ) -> Iterable[Completion]:
        before = document.text_before_cursor or ""
        word = self._command_word(before)
        if word is None:
            yield from self._path.get_completions(document, complete_event)
            return
        if not word or self.kernel is None:
            return
        for name in self.kernel.command_names():
            if name.startswith(word):
                yield Completion(
                    name,
                    start_position=-len(word),
                    display_meta=self._command_meta(name),
                )


# ----------------------------
# PromptSession UI + bottom toolbar
# ----------------------------


class PromptToolkitUI:
    """
    Terminal-friendly UI:
      - Keeps normal terminal scrollback and drag-select copy.
      - PromptSession with command and path completion.
      - Bottom toolbar showing the number of running background jobs.
      - Ctrl+L clears the screen.
      - Output written while a prompt is active goes through patch_stdout,
        so background job output does not mangle the prompt line.
    """

    def __init__(self, kernel: Kernel | None = None) -> None:
        self.kernel = kernel
        self.session: PromptSession[str] | None = None
        self._completer: ShellCompleter | None = None
        self._style = _build_style(kernel)

        # Track whether we ended on a newline (to prevent prompt mangling)
        self._needs_newline_before_prompt = False

    # ---------- toolbar rendering ----------

    def _bottom_toolbar(self):
        if not _cfg_bool(self.kernel, "ui.toolbar.enabled", True):
            return ""
        if self.kernel is None:
            return ""
        running = self.kernel.jobs.running_count()
        if not running:
            return [("class:rucli.jobs", " jobs: 0 ")]
        noun = "job" if running == 1 else "jobs"
        return [("class:rucli.jobs.active", f" {running} {noun} running ")]

    # ---------- session ----------

    def _seed_history(self) -> InMemoryHistory:
        """Up-arrow history starting from the session's loaded entries."""
        history = InMemoryHistory()
        if self.kernel is not None and self.kernel.history is not None:
            for entry in self.kernel.history.entries():
                history.append_string(entry.text)
        return history

    def _ensure_session(self) -> None:
        if self.session is not None:
            return

        self._completer = ShellCompleter(self.kernel)
        self.session = PromptSession(
            history=self._seed_history(),
            key_bindings=self.build_key_bindings(),
            completer=self._completer,
            complete_while_typing=False,
            style=self._style,
            bottom_toolbar=self._bottom_toolbar,
        )

    # ---------- public API ----------

    def read(self, prompt: str) -> str:
        self._ensure_session()
        assert self.session is not None

        # If last output didn't end with newline, insert one
        # before prompt redraw
        if self._needs_newline_before_prompt:
            print_formatted_text(ANSI("\n"), style=self._style, end="")
            self._needs_newline_before_prompt = False

        with patch_stdout():
            # prompt may carry ANSI colors from kernel.prompt()
            return self.session.prompt(ANSI(prompt))

    def write(self, text: str) -> None:
        """Write EXACTLY what we receive (no extra newline)."""
        if not text:
            return
        print_formatted_text(ANSI(text), style=self._style, end="")
        self._needs_newline_before_prompt = not text.endswith("\n")

    def clear(self) -> None:
        pt_clear()

    # ---------- keybindings ----------

    def build_key_bindings(self) -> KeyBindings:
        kb = KeyBindings()

        @kb.add("c-l")
        def _(event):
            event.app.renderer.clear()
            event.app.invalidate()

        return kb
