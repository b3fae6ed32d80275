# tests/test_parser.py
"""
Structural parser tests: node shapes, keyword handling, redirect hoisting,
incomplete input vs. syntax errors.
"""
from __future__ import annotations

import pytest

from rucli.errors import IncompleteInput, ShellSyntaxError
from rucli.nodes import (
    Background,
    Compound,
    Conditional,
    ForLoop,
    FunctionDef,
    Pipeline,
    Redirected,
    RedirectKind,
    Sequence,
    Simple,
    WhileLoop,
    pending_heredocs,
)
from rucli.parser import parse

# ----------------------------------------------------------------
# Simple commands and lists
# ----------------------------------------------------------------


def test_simple_command() -> None:
    node = parse("echo hello world")
    assert node == Simple(["echo", "hello", "world"])
    assert node.name == "echo"
    assert node.args == ["hello", "world"]


def test_sequence_on_semicolons_and_newlines() -> None:
    node = parse("echo a; echo b\necho c")
    assert isinstance(node, Sequence)
    assert [item.words[1] for item in node.items] == ["a", "b", "c"]


def test_trailing_semicolon_is_allowed() -> None:
    assert parse("echo a;") == Simple(["echo", "a"])


def test_background_keeps_display_text() -> None:
    node = parse("sleep 5 &")
    assert isinstance(node, Background)
    assert node.text == "sleep 5"
    assert node.inner == Simple(["sleep", "5"])


def test_background_then_foreground() -> None:
    node = parse("sleep 1 & echo ok")
    assert isinstance(node, Sequence)
    assert isinstance(node.items[0], Background)
    assert node.items[1] == Simple(["echo", "ok"])


def test_keywords_are_plain_words_in_argument_position() -> None:
    assert parse("echo if then done") == Simple(
        ["echo", "if", "then", "done"]
    )


# ----------------------------------------------------------------
# Pipelines and redirects
# ----------------------------------------------------------------


def test_pipeline_stages() -> None:
    node = parse("echo hi | grep h | cat")
    assert isinstance(node, Pipeline)
    assert [s.name for s in node.stages] == ["echo", "grep", "cat"]


def test_redirect_nesting_order() -> None:
    node = parse("cat < in.txt > out.txt")
    assert isinstance(node, Redirected)
    assert node.redirect.kind is RedirectKind.OVERWRITE_OUT
    assert node.redirect.target == "out.txt"
    assert node.inner.redirect.kind is RedirectKind.IN
    assert node.inner.inner == Simple(["cat"])


def test_output_redirect_on_last_stage_wraps_pipeline() -> None:
    node = parse("echo hi | grep h >> log.txt")
    assert isinstance(node, Redirected)
    assert node.redirect.kind is RedirectKind.APPEND_OUT
    assert isinstance(node.inner, Pipeline)
    assert node.inner.stages[-1] == Simple(["grep", "h"])


def test_heredoc_terminator_quoting() -> None:
    plain = parse("cat << EOF")
    assert plain.redirect.kind is RedirectKind.HEREDOC
    assert (plain.redirect.target, plain.redirect.quoted) == ("EOF", False)

    quoted = parse("cat <<- 'END'")
    assert quoted.redirect.kind is RedirectKind.HEREDOC_STRIP_TABS
    assert (quoted.redirect.target, quoted.redirect.quoted) == ("END", True)


def test_pending_heredocs_in_source_order() -> None:
    node = parse("cat << A; cat << B")
    assert [r.target for r in pending_heredocs(node)] == ["A", "B"]


def test_redirect_needs_a_target() -> None:
    with pytest.raises(ShellSyntaxError):
        parse("echo hi > ;")


# ----------------------------------------------------------------
# Control flow
# ----------------------------------------------------------------


def test_if_else() -> None:
    node = parse("if true; then echo y; else echo n; fi")
    assert isinstance(node, Conditional)
    assert node.condition == Simple(["true"])
    assert node.then_branch == Simple(["echo", "y"])
    assert node.else_branch == Simple(["echo", "n"])


def test_elif_nests_conditionals() -> None:
    node = parse("if a; then b; elif c; then d; else e; fi")
    assert isinstance(node.else_branch, Conditional)
    assert node.else_branch.else_branch == Simple(["e"])


def test_multi_line_if_body_is_compound() -> None:
    node = parse("if true\nthen\necho a\necho b\nfi")
    assert isinstance(node.then_branch, Compound)
    assert len(node.then_branch.items) == 2
    assert node.else_branch is None


def test_while_loop() -> None:
    node = parse("while check; do step; done")
    assert node == WhileLoop(Simple(["check"]), Simple(["step"]))


def test_for_loop() -> None:
    node = parse("for i in a b c; do echo $i; done")
    assert isinstance(node, ForLoop)
    assert node.variable == "i"
    assert node.items == ["a", "b", "c"]
    assert node.body == Simple(["echo", "$i"])


def test_nested_blocks() -> None:
    node = parse(
        "for i in 1 2; do if true; then echo $i; fi; done"
    )
    assert isinstance(node.body, Conditional)


def test_function_forms() -> None:
    a = parse("greet() { echo hi $1; }")
    b = parse("function greet { echo hi $1; }")
    assert isinstance(a, FunctionDef)
    assert a == b
    assert a.body == Simple(["echo", "hi", "$1"])


@pytest.mark.parametrize(
    "text",
    [
        "function greet() { echo Hello }",
        "function greet() { echo Hello; }",
        "greet() { echo Hello }",
    ],
)
def test_one_line_function_closes_on_brace(text: str) -> None:
    node = parse(text)
    assert node == FunctionDef("greet", Simple(["echo", "Hello"]))


def test_brace_is_an_argument_outside_groups() -> None:
    assert parse("echo }") == Simple(["echo", "}"])
    node = parse("f() { echo a }; echo }")
    assert isinstance(node, Sequence)
    assert node.items[1] == Simple(["echo", "}"])


def test_group_redirect_applies_to_block() -> None:
    node = parse("for i in a; do echo $i; done > out.txt")
    assert isinstance(node, Redirected)
    assert isinstance(node.inner, ForLoop)


# ----------------------------------------------------------------
# Incomplete vs. malformed
# ----------------------------------------------------------------


@pytest.mark.parametrize(
    "text,expected",
    [
        ("if true; then", "fi"),
        ("if true", "then"),
        ("while true; do echo", "done"),
        ("for i in a b", "do"),
        ("echo a |", "command"),
        ("greet() {", "}"),
    ],
)
def test_open_blocks_are_incomplete(text: str, expected: str) -> None:
    with pytest.raises(IncompleteInput) as exc:
        parse(text)
    assert exc.value.expected == expected


@pytest.mark.parametrize(
    "text", ["fi", "done", "echo a; then", "| grep", "for 1x in a; do b; done"]
)
def test_malformed_input_is_syntax_error(text: str) -> None:
    with pytest.raises(ShellSyntaxError) as exc:
        parse(text)
    assert not isinstance(exc.value, IncompleteInput)


def test_syntax_error_names_token() -> None:
    with pytest.raises(ShellSyntaxError) as exc:
        parse("if true; then echo a; done")
    assert "'done'" in str(exc.value)
    assert "'fi'" in str(exc.value)
