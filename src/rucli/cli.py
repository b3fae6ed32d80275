# rucli — Interactive and Script-Driven Command Shell
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
rucli CLI entry point, REPL loop and script runner.

Design:
- CLI owns process startup: argument handling, logging setup, config and
  history store wiring.
- Kernel is the session engine (config+store injected); it is fed one
  physical line at a time by either the REPL or the script runner.
- UI is terminal-friendly PromptSession (keeps scrollback + copy/select).
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Callable
from pathlib import Path

from . import config
from .kernel import Kernel, write_crash_log
from .store import FileHistoryStore
from .ui import PromptToolkitUI

logger = logging.getLogger(__name__)

USAGE = "usage: rucli [SCRIPT] [--debug]"


def run_repl(
    kernel: Kernel,
    ui: PromptToolkitUI | None = None,
    input_fn: Callable[[str], str] = input,
    output_fn: Callable[[str], None] = print,
) -> None:
    """Run the interactive rucli REPL loop."""

    def say(msg: str) -> None:
        if ui is not None:
            ui.write(msg)
        else:
            output_fn(msg)

    while kernel.running:
        prompt = kernel.prompt()
        try:
            if ui is not None:
                line = ui.read(prompt)
            else:
                line = input_fn(prompt)
        except KeyboardInterrupt:
            if kernel.needs_more:
                # Ctrl-C inside a block only drops the block
                kernel.cancel_pending()
                say("\n[Cancelled]\n")
                continue
            say("\nBye!\n")
            kernel.shutdown()
            break
        except EOFError:
            kernel.finish()
            say("\nBye!\n")
            kernel.shutdown()
            break

        try:
            kernel.feed(line or "")
        except Exception as e:
            # Unhandled exception - write crash log
            write_crash_log(e, raw_command=line or "")
            kernel.cancel_pending()
            say(
                f"[ERROR] Unhandled exception: "
                f"{type(e).__name__}: {e}\n"
            )
            # Continue session


def run_script(kernel: Kernel, path: Path | str) -> int:
    """Run a script file line by line; returns the process exit status."""
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        kernel.sink.error(f"rucli: {path}: {e.strerror or e}")
        return 1

    lines = text.splitlines()
    if lines and lines[0].startswith("#!"):
        lines = lines[1:]

    logger.debug("running script %s (%d lines)", path, len(lines))
    for line in lines:
        if not kernel.running:
            break
        kernel.feed(line)

    ok = kernel.finish() if kernel.running else True
    kernel.jobs.wait_all()
    if kernel.running:
        kernel.shutdown()
    return 0 if ok else 1


def _parse_args(argv: list[str]) -> tuple[str | None, bool]:
    script: str | None = None
    debug = False
    for arg in argv:
        if arg == "--debug":
            debug = True
        elif arg in ("-h", "--help"):
            print(USAGE)
            raise SystemExit(0)
        elif arg.startswith("-") or script is not None:
            print(USAGE, file=sys.stderr)
            raise SystemExit(2)
        else:
            script = arg
    return script, debug


def main() -> None:
    """Main entry point for rucli."""
    script, debug = _parse_args(sys.argv[1:])
    if debug:
        logging.basicConfig(
            level=logging.DEBUG,
            stream=sys.stderr,
            format="%(asctime)s %(name)s %(levelname)s %(message)s",
        )

    cfg = config.load_system_config()

    if script is not None:
        kernel = Kernel(config=cfg, interactive=False)
        kernel.start()
        raise SystemExit(run_script(kernel, script))

    # Explicit wiring: config + history store injected into kernel
    store = FileHistoryStore(config.history_file_path(cfg))

    # Plain input() when asked for, or when stdin is not a terminal
    if os.environ.get("RUCLI_LEGACY_UI") == "1" or not sys.stdin.isatty():
        kernel = Kernel(config=cfg, history_store=store)
        start_output = kernel.start()
        if start_output:
            print(start_output)
        run_repl(kernel)
        return

    # Default: PromptToolkitUI (keeps terminal scrollback/copy/select)
    kernel = Kernel(config=cfg, history_store=store, color=True)
    ui = PromptToolkitUI(kernel)

    # Route streaming output through UI (executor/jobs call these)
    kernel.output_fn = ui.write
    kernel.error_fn = ui.write

    start_output = kernel.start()
    if start_output:
        ui.write(start_output + "\n")

    run_repl(kernel, ui=ui)
