# rucli — Interactive and Script-Driven Command Shell
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Command node types produced by the parser and walked by the executor.

Words are stored raw (quotes included); expansion happens at execution
time so the same node can yield different text on every evaluation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Union


class RedirectKind(Enum):
    OVERWRITE_OUT = ">"
    APPEND_OUT = ">>"
    IN = "<"
    HEREDOC = "<<"
    HEREDOC_STRIP_TABS = "<<-"

    @property
    def is_heredoc(self) -> bool:
        return self in (RedirectKind.HEREDOC, RedirectKind.HEREDOC_STRIP_TABS)

    @property
    def is_output(self) -> bool:
        return self in (RedirectKind.OVERWRITE_OUT, RedirectKind.APPEND_OUT)


@dataclass
class RedirectSpec:
    """One redirect: a kind plus a file path or heredoc terminator."""

    kind: RedirectKind
    target: str
    body: list[str] | None = None
    # Quoted heredoc terminators disable body expansion
    quoted: bool = False


@dataclass
class Simple:
    words: list[str]

    @property
    def name(self) -> str:
        return self.words[0]

    @property
    def args(self) -> list[str]:
        return self.words[1:]


@dataclass
class Pipeline:
    stages: list[Node]


@dataclass
class Redirected:
    inner: Node
    redirect: RedirectSpec


@dataclass
class Background:
    inner: Node
    text: str = ""


@dataclass
class Sequence:
    items: list[Node] = field(default_factory=list)


@dataclass
class Compound:
    items: list[Node] = field(default_factory=list)


@dataclass
class Conditional:
    condition: Node
    then_branch: Node
    else_branch: Node | None = None


@dataclass
class WhileLoop:
    condition: Node
    body: Node


@dataclass
class ForLoop:
    variable: str
    items: list[str]
    body: Node


@dataclass
class FunctionDef:
    name: str
    body: Node


Node = Union[
    Simple,
    Pipeline,
    Redirected,
    Background,
    Sequence,
    Compound,
    Conditional,
    WhileLoop,
    ForLoop,
    FunctionDef,
]


def iter_redirects(node: Node):
    """Yield every RedirectSpec in a node tree, in source order."""
    if isinstance(node, Redirected):
        yield from iter_redirects(node.inner)
        yield node.redirect
    elif isinstance(node, Pipeline):
        for stage in node.stages:
            yield from iter_redirects(stage)
    elif isinstance(node, Background):
        yield from iter_redirects(node.inner)
    elif isinstance(node, (Sequence, Compound)):
        for item in node.items:
            yield from iter_redirects(item)
    elif isinstance(node, Conditional):
        yield from iter_redirects(node.condition)
        yield from iter_redirects(node.then_branch)
        if node.else_branch is not None:
            yield from iter_redirects(node.else_branch)
    elif isinstance(node, WhileLoop):
        yield from iter_redirects(node.condition)
        yield from iter_redirects(node.body)
    elif isinstance(node, (ForLoop, FunctionDef)):
        yield from iter_redirects(node.body)


def pending_heredocs(node: Node) -> list[RedirectSpec]:
    """Heredoc redirects whose bodies have not been collected yet."""
    return [
        r for r in iter_redirects(node)
        if r.kind.is_heredoc and r.body is None
    ]
