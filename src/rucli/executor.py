# rucli — Interactive and Script-Driven Command Shell
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Execution engine for rucli command nodes.

Design:
- Every node runs against a ShellContext and writes to an OutputSink.
- Pipelines and redirects run inner nodes into a CaptureSink and pass the
  captured text on; only the final stage writes to the real sink.
- Words are expanded at execution time, so loops and repeated calls see
  the current environment.
- Handler failures become error lines plus Outcome.FAILURE; only
  unexpected exceptions propagate to the caller.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from .builtins import Builtin, default_builtins
from .context import ShellContext
from .errors import CommandError, ShellSyntaxError
from .expansion import Expander
from .interfaces import OutputSink
from .nodes import (
    Background,
    Compound,
    Conditional,
    ForLoop,
    FunctionDef,
    Node,
    Pipeline,
    Redirected,
    RedirectKind,
    Sequence,
    Simple,
    WhileLoop,
    pending_heredocs,
)
from .parser import parse
from .results import CommandResult, Outcome
from .sinks import CaptureSink

logger = logging.getLogger(__name__)

DEFAULT_WHILE_LIMIT = 1000
DEFAULT_ALIAS_DEPTH = 10
DEFAULT_CALL_DEPTH = 100


def emit(sink: OutputSink, text: str) -> None:
    """Write command output, terminating it with a newline if needed."""
    if not text:
        return
    sink.write(text if text.endswith("\n") else text + "\n")


class Executor:
    """Walks command nodes and dispatches to built-ins."""

    def __init__(
        self,
        builtins: Mapping[str, Builtin] | None = None,
        while_limit: int = DEFAULT_WHILE_LIMIT,
        max_alias_depth: int = DEFAULT_ALIAS_DEPTH,
        max_call_depth: int = DEFAULT_CALL_DEPTH,
    ) -> None:
        self.builtins: dict[str, Builtin] = dict(
            default_builtins() if builtins is None else builtins
        )
        self.while_limit = while_limit
        self.max_alias_depth = max_alias_depth
        self.max_call_depth = max_call_depth

    # -----------------------
    # Text entry points
    # -----------------------

    def run_text(
        self,
        text: str,
        ctx: ShellContext,
        sink: OutputSink,
        stdin: str | None = None,
    ) -> Outcome:
        """Parse and execute text that is already complete.

        Raises:
            ShellSyntaxError: the text does not parse, or needs heredoc
                bodies that were never collected
        """
        node = parse(text)
        missing = pending_heredocs(node)
        if missing:
            raise ShellSyntaxError(
                f"here-document body missing (wanted '{missing[0].target}')"
            )
        return self.execute(node, ctx, sink, stdin)

    def capture(
        self,
        text: str,
        ctx: ShellContext,
        stdin: str | None = None,
    ) -> tuple[str, Outcome]:
        """Run text into a capture sink; syntax errors become failures."""
        buf = CaptureSink(ctx.sink)
        try:
            outcome = self.run_text(text, ctx, buf, stdin)
        except ShellSyntaxError as e:
            buf.error(f"rucli: {e}")
            return buf.getvalue(), Outcome.FAILURE
        return buf.getvalue(), outcome

    def expander(self, ctx: ShellContext, sink: OutputSink) -> Expander:
        def run_capture(text: str) -> str | None:
            buf = CaptureSink(sink)
            try:
                outcome = self.run_text(text, ctx, buf)
            except ShellSyntaxError as e:
                sink.error(f"rucli: {e}")
                return None
            if outcome is not Outcome.SUCCESS:
                return None
            return buf.getvalue()

        return Expander(ctx.env, run_capture)

    # -----------------------
    # Node dispatch
    # -----------------------

    def execute(
        self,
        node: Node,
        ctx: ShellContext,
        sink: OutputSink,
        stdin: str | None = None,
    ) -> Outcome:
        if isinstance(node, Simple):
            return self._exec_simple(node, ctx, sink, stdin)
        if isinstance(node, Pipeline):
            return self._exec_pipeline(node, ctx, sink, stdin)
        if isinstance(node, Redirected):
            return self._exec_redirected(node, ctx, sink, stdin)
        if isinstance(node, Background):
            return self._exec_background(node, ctx, sink)
        if isinstance(node, (Sequence, Compound)):
            return self._exec_items(node.items, ctx, sink, stdin)
        if isinstance(node, Conditional):
            return self._exec_conditional(node, ctx, sink, stdin)
        if isinstance(node, WhileLoop):
            return self._exec_while(node, ctx, sink, stdin)
        if isinstance(node, ForLoop):
            return self._exec_for(node, ctx, sink, stdin)
        if isinstance(node, FunctionDef):
            ctx.functions.define(node.name, node.body)
            logger.debug("defined function %s", node.name)
            return Outcome.SUCCESS
        raise TypeError(f"unknown node type: {type(node).__name__}")

    # -----------------------
    # Simple commands
    # -----------------------

    def _exec_simple(
        self,
        node: Simple,
        ctx: ShellContext,
        sink: OutputSink,
        stdin: str | None,
    ) -> Outcome:
        if not node.words:
            return Outcome.SUCCESS

        raw_name = node.words[0]
        if raw_name in ctx.aliases and raw_name not in ctx.alias_stack:
            return self._exec_alias(raw_name, node.args, ctx, sink, stdin)

        words = self.expander(ctx, sink).expand_words(node.words)
        if not words:
            return Outcome.SUCCESS
        name, args = words[0], words[1:]

        body = ctx.functions.get(name)
        if body is not None:
            return self._call_function(name, body, args, ctx, sink, stdin)

        handler = self.builtins.get(name)
        if handler is not None:
            return self._dispatch(handler, args, ctx, sink, stdin)

        sink.error(f"rucli: unknown command: {name}")
        return Outcome.FAILURE

    def _dispatch(
        self,
        handler: Builtin,
        args: list[str],
        ctx: ShellContext,
        sink: OutputSink,
        stdin: str | None,
    ) -> Outcome:
        logger.debug("dispatch %s %r", handler.name, args)
        try:
            handler.validate(args)
            result = handler(ctx, args, stdin)
        except CommandError as e:
            sink.error(f"rucli: {handler.name}: {e}")
            return Outcome.FAILURE
        except OSError as e:
            detail = e.strerror or str(e)
            where = f"{e.filename}: " if e.filename else ""
            sink.error(f"rucli: {handler.name}: {where}{detail}")
            return Outcome.FAILURE

        if isinstance(result, CommandResult):
            emit(sink, result.output)
            return result.outcome
        emit(sink, result or "")
        return Outcome.SUCCESS

    def _exec_alias(
        self,
        name: str,
        raw_args: list[str],
        ctx: ShellContext,
        sink: OutputSink,
        stdin: str | None,
    ) -> Outcome:
        if len(ctx.alias_stack) >= self.max_alias_depth:
            chain = " -> ".join([*ctx.alias_stack, name])
            sink.error(f"rucli: alias expansion too deep: {chain}")
            return Outcome.FAILURE

        text = " ".join([ctx.aliases.get(name) or "", *raw_args])
        ctx.alias_stack.append(name)
        try:
            return self.run_text(text, ctx, sink, stdin)
        except ShellSyntaxError as e:
            sink.error(f"rucli: {name}: {e}")
            return Outcome.FAILURE
        finally:
            ctx.alias_stack.pop()

    def _call_function(
        self,
        name: str,
        body: Node,
        args: list[str],
        ctx: ShellContext,
        sink: OutputSink,
        stdin: str | None,
    ) -> Outcome:
        if ctx.call_depth >= self.max_call_depth:
            sink.error(f"rucli: {name}: maximum function nesting exceeded")
            return Outcome.FAILURE

        ctx.call_depth += 1
        try:
            with ctx.env.bind_positional(args):
                outcome = self.execute(body, ctx, sink, stdin)
        finally:
            ctx.call_depth -= 1

        # exit inside a function body does not end the session
        if outcome is Outcome.TERMINATE:
            return Outcome.SUCCESS
        return outcome

    # -----------------------
    # Pipelines and redirects
    # -----------------------

    def _exec_pipeline(
        self,
        node: Pipeline,
        ctx: ShellContext,
        sink: OutputSink,
        stdin: str | None,
    ) -> Outcome:
        data = stdin
        outcome = Outcome.SUCCESS
        last = len(node.stages) - 1
        for i, stage in enumerate(node.stages):
            if i == last:
                outcome = self.execute(stage, ctx, sink, data)
            else:
                buf = CaptureSink(sink)
                self.execute(stage, ctx, buf, data)
                data = buf.getvalue()
        return outcome

    def _exec_redirected(
        self,
        node: Redirected,
        ctx: ShellContext,
        sink: OutputSink,
        stdin: str | None,
    ) -> Outcome:
        spec = node.redirect
        expander = self.expander(ctx, sink)

        if spec.kind.is_heredoc:
            if spec.body is None:
                sink.error(
                    f"rucli: here-document body missing "
                    f"(wanted '{spec.target}')"
                )
                return Outcome.FAILURE
            lines = (
                spec.body if spec.quoted
                else [expander.expand(line) for line in spec.body]
            )
            data = "".join(line + "\n" for line in lines)
            return self.execute(node.inner, ctx, sink, data)

        target = expander.expand_word(spec.target)
        if not target:
            sink.error(f"rucli: {spec.target}: ambiguous redirect")
            return Outcome.FAILURE

        if spec.kind is RedirectKind.IN:
            try:
                with open(target, encoding="utf-8") as f:
                    data = f.read()
            except OSError as e:
                sink.error(f"rucli: {target}: {e.strerror or e}")
                return Outcome.FAILURE
            return self.execute(node.inner, ctx, sink, data)

        inner = self._open_shadowed_outputs(node.inner, expander, sink)
        if inner is None:
            return Outcome.FAILURE

        buf = CaptureSink(sink)
        outcome = self.execute(inner, ctx, buf, stdin)
        mode = "w" if spec.kind is RedirectKind.OVERWRITE_OUT else "a"
        try:
            with open(target, mode, encoding="utf-8") as f:
                f.write(buf.getvalue())
        except OSError as e:
            sink.error(f"rucli: {target}: {e.strerror or e}")
            return Outcome.FAILURE
        return outcome

    def _open_shadowed_outputs(
        self, node: Node, expander: Expander, sink: OutputSink
    ) -> Node | None:
        """Drop output redirects overridden by a later one.

        Their files are still created (or truncated) left to right, and the
        command's output goes to the last output redirect only. Returns
        None when one of those files cannot be opened.
        """
        if not isinstance(node, Redirected):
            return node
        inner = self._open_shadowed_outputs(node.inner, expander, sink)
        if inner is None:
            return None
        spec = node.redirect
        if not spec.kind.is_output:
            return node if inner is node.inner else Redirected(inner, spec)

        target = expander.expand_word(spec.target)
        if not target:
            sink.error(f"rucli: {spec.target}: ambiguous redirect")
            return None
        mode = "w" if spec.kind is RedirectKind.OVERWRITE_OUT else "a"
        try:
            with open(target, mode, encoding="utf-8"):
                pass
        except OSError as e:
            sink.error(f"rucli: {target}: {e.strerror or e}")
            return None
        return inner

    def _exec_background(
        self,
        node: Background,
        ctx: ShellContext,
        sink: OutputSink,
    ) -> Outcome:
        bg_ctx = ctx.for_background()
        text = node.text or "job"

        def run() -> Outcome:
            return self.execute(node.inner, bg_ctx, sink)

        job_id = ctx.jobs.submit(run, text)
        sink.write(f"[{job_id}] {text}\n")
        return Outcome.SUCCESS

    # -----------------------
    # Control flow
    # -----------------------

    def _exec_items(
        self,
        items: list[Node],
        ctx: ShellContext,
        sink: OutputSink,
        stdin: str | None,
    ) -> Outcome:
        outcome = Outcome.SUCCESS
        for item in items:
            outcome = self.execute(item, ctx, sink, stdin)
            if outcome is Outcome.TERMINATE:
                break
        return outcome

    def _exec_conditional(
        self,
        node: Conditional,
        ctx: ShellContext,
        sink: OutputSink,
        stdin: str | None,
    ) -> Outcome:
        cond = self.execute(node.condition, ctx, sink, stdin)
        if cond is Outcome.TERMINATE:
            return cond
        if cond is Outcome.SUCCESS:
            return self.execute(node.then_branch, ctx, sink, stdin)
        if node.else_branch is not None:
            return self.execute(node.else_branch, ctx, sink, stdin)
        return Outcome.SUCCESS

    def _exec_while(
        self,
        node: WhileLoop,
        ctx: ShellContext,
        sink: OutputSink,
        stdin: str | None,
    ) -> Outcome:
        outcome = Outcome.SUCCESS
        for _ in range(self.while_limit):
            cond = self.execute(node.condition, ctx, sink, stdin)
            if cond is Outcome.TERMINATE:
                return cond
            if cond is Outcome.FAILURE:
                return outcome
            outcome = self.execute(node.body, ctx, sink, stdin)
            if outcome is Outcome.TERMINATE:
                return outcome
        logger.debug("while loop stopped after %d iterations",
                     self.while_limit)
        return outcome

    def _exec_for(
        self,
        node: ForLoop,
        ctx: ShellContext,
        sink: OutputSink,
        stdin: str | None,
    ) -> Outcome:
        items = self.expander(ctx, sink).expand_words(node.items)
        outcome = Outcome.SUCCESS
        with ctx.env.preserve([node.variable]):
            for item in items:
                ctx.env.set(node.variable, item)
                outcome = self.execute(node.body, ctx, sink, stdin)
                if outcome is Outcome.TERMINATE:
                    break
        return outcome
