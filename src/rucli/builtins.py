# rucli — Interactive and Script-Driven Command Shell
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Built-in command handlers.

Every handler has the signature (ctx, args, stdin) and returns its output
text, or a CommandResult when the outcome is not plain success. Failures
are raised as CommandError (or OSError) and reported by the executor.
"""

from __future__ import annotations

import fnmatch
import os
import re
import shutil
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from .errors import CommandError, InvalidArguments, JobNotFound
from .interfaces import CommandHandler
from .jobs import JobStatus, format_job
from .results import CommandResult, Outcome
from .utils import format_table

if TYPE_CHECKING:
    from .context import ShellContext  # pragma: no cover


@dataclass(frozen=True)
class Builtin:
    """A named handler plus the metadata `help` shows."""

    name: str
    handler: CommandHandler
    description: str
    usage: str
    min_args: int = 0
    max_args: int | None = None

    def validate(self, args: list[str]) -> None:
        if len(args) < self.min_args or (
            self.max_args is not None and len(args) > self.max_args
        ):
            raise InvalidArguments(f"usage: {self.usage}")

    def __call__(
        self, ctx: ShellContext, args: list[str], stdin: str | None
    ) -> str | CommandResult:
        return self.handler(ctx, args, stdin)


_REGISTRY: dict[str, Builtin] = {}


def builtin(
    name: str,
    description: str,
    usage: str,
    min_args: int = 0,
    max_args: int | None = None,
    aliases: tuple[str, ...] = (),
) -> Callable[[CommandHandler], CommandHandler]:
    """Register a handler under name (and any aliases)."""

    def deco(fn: CommandHandler) -> CommandHandler:
        for n in (name, *aliases):
            _REGISTRY[n] = Builtin(
                n, fn, description, usage, min_args, max_args
            )
        return fn

    return deco


def default_builtins() -> dict[str, Builtin]:
    return dict(_REGISTRY)


def _split_flags(
    args: list[str], allowed: str
) -> tuple[set[str], list[str]]:
    """Separate single-letter flags (e.g. -r, -rf) from operands."""
    flags: set[str] = set()
    rest: list[str] = []
    for arg in args:
        if arg.startswith("-") and len(arg) > 1 and not rest:
            for letter in arg[1:]:
                if letter not in allowed:
                    raise InvalidArguments(f"invalid option: -{letter}")
                flags.add(letter)
        else:
            rest.append(arg)
    return flags, rest


def _read_text(path: str) -> str:
    p = Path(path)
    if p.is_dir():
        raise CommandError(f"{path}: Is a directory")
    if not p.exists():
        raise CommandError(f"{path}: No such file or directory")
    return p.read_text(encoding="utf-8")


# ----------------------------------------------------------------
# Utility commands
# ----------------------------------------------------------------


@builtin("help", "Show available commands", "help [command]", max_args=1)
def cmd_help(ctx, args, stdin):
    registry = ctx.executor.builtins if ctx.executor else _REGISTRY
    if args:
        b = registry.get(args[0])
        if b is None:
            raise CommandError(f"no help for '{args[0]}'")
        return f"{b.usage}\n  {b.description}"
    rows = [
        [b.name, b.description]
        for _, b in sorted(registry.items())
    ]
    return format_table(["Command", "Description"], rows, title="Commands:")


@builtin("echo", "Print arguments", "echo [text...]")
def cmd_echo(ctx, args, stdin):
    return " ".join(args) + "\n"


@builtin("true", "Succeed without output", "true")
def cmd_true(ctx, args, stdin):
    return ""


@builtin("false", "Fail without output", "false")
def cmd_false(ctx, args, stdin):
    return CommandResult("", Outcome.FAILURE)


@builtin("version", "Show version", "version", max_args=0)
def cmd_version(ctx, args, stdin):
    from . import __version__

    return f"rucli {__version__}"


@builtin("sleep", "Sleep for N seconds", "sleep <seconds>",
         min_args=1, max_args=1)
def cmd_sleep(ctx, args, stdin):
    try:
        seconds = float(args[0])
    except ValueError:
        raise CommandError(f"invalid time interval '{args[0]}'") from None
    if seconds < 0:
        raise CommandError(f"invalid time interval '{args[0]}'")
    time.sleep(seconds)
    return ""


@builtin("repeat", "Print a message N times", "repeat <count> <message...>",
         min_args=2)
def cmd_repeat(ctx, args, stdin):
    try:
        count = int(args[0])
    except ValueError:
        raise CommandError(f"{args[0]} isn't a valid number") from None
    if count <= 0:
        raise CommandError("count must be positive")
    message = " ".join(args[1:])
    return "\n".join([message] * count)


@builtin("exit", "Exit the shell", "exit", max_args=1, aliases=("quit",))
def cmd_exit(ctx, args, stdin):
    return CommandResult("good bye", Outcome.TERMINATE)


# ----------------------------------------------------------------
# Variables and aliases
# ----------------------------------------------------------------


@builtin("env", "Show or set environment variables",
         "env [VAR | VAR=value]", max_args=1)
def cmd_env(ctx, args, stdin):
    if not args:
        return "\n".join(f"{k}={v}" for k, v in ctx.env.items())
    arg = args[0]
    if "=" in arg:
        name, value = arg.split("=", 1)
        if not name:
            raise CommandError(f"invalid assignment '{arg}'")
        ctx.env.set(name, value)
        return ""
    value = ctx.env.get(arg)
    if value is None:
        raise CommandError(f"Environment variable '{arg}' not found")
    return value


@builtin("alias", "Define or list aliases", "alias [name=command]")
def cmd_alias(ctx, args, stdin):
    if not args:
        return "\n".join(
            f"alias {name}='{value}'" for name, value in ctx.aliases.items()
        )
    lines: list[str] = []
    for arg in args:
        if "=" in arg:
            name, value = arg.split("=", 1)
            if not name:
                raise CommandError(f"invalid alias '{arg}'")
            ctx.aliases.set(name, value)
        else:
            value = ctx.aliases.get(arg)
            if value is None:
                raise CommandError(f"{arg}: not found")
            lines.append(f"alias {arg}='{value}'")
    return "\n".join(lines)


@builtin("unalias", "Remove an alias", "unalias <name>", min_args=1)
def cmd_unalias(ctx, args, stdin):
    for name in args:
        if not ctx.aliases.remove(name):
            raise CommandError(f"{name}: not found")
    return ""


# ----------------------------------------------------------------
# Jobs and history
# ----------------------------------------------------------------


@builtin("jobs", "List background jobs", "jobs", max_args=0)
def cmd_jobs(ctx, args, stdin):
    views = ctx.jobs.list()
    if not views:
        return "No jobs"
    return "\n".join(format_job(v) for v in views)


@builtin("fg", "Show the status of a background job", "fg [job_id]",
         max_args=1)
def cmd_fg(ctx, args, stdin):
    job_id = None
    if args:
        try:
            job_id = int(args[0].lstrip("%"))
        except ValueError:
            raise CommandError(f"invalid job id '{args[0]}'") from None
    try:
        view = ctx.jobs.status(job_id)
    except JobNotFound as e:
        raise CommandError(str(e)) from None
    if view.status is JobStatus.RUNNING:
        return f"Job [{view.id}] ({view.text}) is still running"
    return f"Job [{view.id}] ({view.text}) has completed"


@builtin("history", "Show, search or re-run history",
         "history [N | search <query>]")
def cmd_history(ctx, args, stdin):
    if not args:
        return "\n".join(
            f"{e.number:4}  {e.text}" for e in ctx.history.entries()
        )

    if args[0] == "search":
        if len(args) < 2:
            raise InvalidArguments("usage: history search <query>")
        query = " ".join(args[1:])
        matches = ctx.history.search(query)
        if not matches:
            return f"No matches found for '{query}'"
        return "\n".join(f"{e.number:4}  {e.text}" for e in matches)

    if len(args) > 1:
        raise InvalidArguments("usage: history [N | search <query>]")
    try:
        number = int(args[0])
    except ValueError:
        raise CommandError(f"{args[0]}: numeric argument required") from None
    text = ctx.history.get(number)
    if text is None:
        raise CommandError(f"{number}: history position out of range")
    output, outcome = ctx.executor.capture(text, ctx, stdin)
    return CommandResult(output, outcome)


# ----------------------------------------------------------------
# Filesystem commands
# ----------------------------------------------------------------


@builtin("cat", "Display file contents", "cat [file...]")
def cmd_cat(ctx, args, stdin):
    if not args:
        if stdin is None:
            raise InvalidArguments("usage: cat <file...>")
        return stdin
    return "".join(_read_text(path) for path in args)


@builtin("write", "Write text to a file", "write <file> [text...]",
         min_args=1)
def cmd_write(ctx, args, stdin):
    filename = args[0]
    content = " ".join(args[1:]) if len(args) > 1 else (stdin or "")
    Path(filename).write_text(content, encoding="utf-8")
    return f"File written successfully: {filename}"


@builtin("ls", "List directory contents", "ls [dir]", max_args=1)
def cmd_ls(ctx, args, stdin):
    target = Path(args[0]) if args else Path(".")
    if not target.exists():
        raise CommandError(f"{target}: No such file or directory")
    if not target.is_dir():
        return str(target)
    names = sorted(
        p.name + ("/" if p.is_dir() else "") for p in target.iterdir()
    )
    return "\n".join(names)


@builtin("cd", "Change directory", "cd [dir | - | ~]", max_args=1)
def cmd_cd(ctx, args, stdin):
    arg = args[0] if args else "~"
    announce = False
    if arg == "-":
        previous = ctx.env.get("OLDPWD")
        if not previous:
            raise CommandError("OLDPWD not set")
        target = previous
        announce = True
    else:
        target = os.path.expanduser(arg)

    if not os.path.isdir(target):
        raise CommandError(f"{arg}: No such file or directory")

    old = os.getcwd()
    os.chdir(target)
    ctx.env.set("OLDPWD", old)
    ctx.env.set("PWD", os.getcwd())
    return os.getcwd() if announce else ""


@builtin("pwd", "Print working directory", "pwd", max_args=0)
def cmd_pwd(ctx, args, stdin):
    return os.getcwd()


@builtin("mkdir", "Create directories", "mkdir [-p] <dir...>", min_args=1)
def cmd_mkdir(ctx, args, stdin):
    flags, dirs = _split_flags(args, "p")
    if not dirs:
        raise InvalidArguments("usage: mkdir [-p] <dir...>")
    for d in dirs:
        try:
            Path(d).mkdir(parents="p" in flags, exist_ok="p" in flags)
        except FileExistsError:
            raise CommandError(f"{d}: File exists") from None
        except FileNotFoundError:
            raise CommandError(f"{d}: No such file or directory") from None
    return ""


@builtin("rm", "Remove files or directories", "rm [-r] [-f] <path...>",
         min_args=1)
def cmd_rm(ctx, args, stdin):
    flags, paths = _split_flags(args, "rf")
    if not paths:
        raise InvalidArguments("usage: rm [-r] [-f] <path...>")
    for raw in paths:
        p = Path(raw)
        if not p.exists() and not p.is_symlink():
            if "f" in flags:
                continue
            raise CommandError(f"{raw}: No such file or directory")
        if p.is_dir() and not p.is_symlink():
            if "r" not in flags:
                raise CommandError(f"{raw}: Is a directory")
            shutil.rmtree(p)
        else:
            p.unlink()
    return ""


@builtin("cp", "Copy files or directories", "cp [-r] <src> <dst>",
         min_args=2)
def cmd_cp(ctx, args, stdin):
    flags, paths = _split_flags(args, "r")
    if len(paths) != 2:
        raise InvalidArguments("usage: cp [-r] <src> <dst>")
    src, dst = Path(paths[0]), Path(paths[1])
    if not src.exists():
        raise CommandError(f"{src}: No such file or directory")
    if dst.is_dir():
        dst = dst / src.name
    if src.is_dir():
        if "r" not in flags:
            raise CommandError(f"{src}: Is a directory (use -r)")
        shutil.copytree(src, dst)
    else:
        shutil.copy2(src, dst)
    return ""


@builtin("mv", "Move or rename files", "mv <src> <dst>",
         min_args=2, max_args=2)
def cmd_mv(ctx, args, stdin):
    src = Path(args[0])
    if not src.exists():
        raise CommandError(f"{src}: No such file or directory")
    shutil.move(str(src), args[1])
    return ""


@builtin("find", "Find files by name pattern", "find [dir] <pattern>",
         min_args=1, max_args=2)
def cmd_find(ctx, args, stdin):
    root, pattern = (args[0], args[1]) if len(args) == 2 else (".", args[0])
    if not os.path.isdir(root):
        raise CommandError(f"{root}: No such file or directory")
    found: list[str] = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        for name in sorted(dirnames + filenames):
            if fnmatch.fnmatchcase(name, pattern):
                found.append(os.path.join(dirpath, name))
    return "\n".join(found)


@builtin("grep", "Search for a regex pattern", "grep <pattern> [file...]",
         min_args=1)
def cmd_grep(ctx, args, stdin):
    try:
        regex = re.compile(args[0])
    except re.error as e:
        raise CommandError(f"invalid regex '{args[0]}': {e}") from None

    files = args[1:]
    matches: list[str] = []

    if not files:
        if stdin is None:
            raise InvalidArguments("usage: grep <pattern> [file...]")
        # Piped input: bare lines, no decoration
        matches = [ln for ln in stdin.splitlines() if regex.search(ln)]
    else:
        decorate_name = len(files) > 1
        for path in files:
            for n, line in enumerate(_read_text(path).splitlines(), start=1):
                if not regex.search(line):
                    continue
                if decorate_name:
                    matches.append(f"{path}:{n}: {line}")
                else:
                    matches.append(f"{n}: {line}")

    return CommandResult(
        "\n".join(matches), Outcome.from_bool(bool(matches))
    )
