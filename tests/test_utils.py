# tests/test_utils.py
"""
Tests for text helpers: quote balance, continuation detection, block
joining for history, and heredoc tab stripping.
"""
from __future__ import annotations

import pytest

from rucli.utils import (
    format_table,
    has_trailing_backslash,
    is_comment_or_blank,
    is_quote_balanced,
    is_shell_input_incomplete,
    join_block_lines,
    strip_common_tabs,
)

# ----------------------------------------------------------------
# Quote balance
# ----------------------------------------------------------------


@pytest.mark.parametrize(
    "text",
    [
        "echo hi",
        "echo 'a b'",
        'echo "a b"',
        "echo \"it's\"",
        "echo 'say \"x\"'",
        'echo "esc \\" quote"',
        "echo \\'",
        "echo trailing\\",
    ],
)
def test_balanced_quotes(text: str) -> None:
    assert is_quote_balanced(text)


@pytest.mark.parametrize(
    "text",
    ["echo 'open", 'echo "open', "echo \"a' b", 'echo "x \\"'],
)
def test_unbalanced_quotes(text: str) -> None:
    assert not is_quote_balanced(text)


def test_trailing_backslash_detection() -> None:
    assert has_trailing_backslash("echo a \\")
    assert not has_trailing_backslash("echo a \\\\")
    assert not has_trailing_backslash("echo 'a \\'")
    assert not has_trailing_backslash("")


def test_shell_input_incomplete_combines_quotes_and_continuation() -> None:
    assert is_shell_input_incomplete("echo 'x")
    assert is_shell_input_incomplete("echo x \\")
    assert not is_shell_input_incomplete("echo x")
    # Block structure is the parser's job
    assert not is_shell_input_incomplete("if true; then")


# ----------------------------------------------------------------
# Comments and history joining
# ----------------------------------------------------------------


def test_comment_or_blank() -> None:
    assert is_comment_or_blank("")
    assert is_comment_or_blank("   ")
    assert is_comment_or_blank("  # note")
    assert not is_comment_or_blank("echo # not a comment line")


def test_join_block_lines_uses_space_after_openers() -> None:
    lines = ["for i in a b", "do", "  echo $i", "done"]
    assert join_block_lines(lines) == "for i in a b; do echo $i; done"


def test_join_block_lines_if_else() -> None:
    lines = ["if true", "then", "echo y", "else", "echo n", "fi"]
    assert join_block_lines(lines) == "if true; then echo y; else echo n; fi"


def test_join_block_lines_after_pipe_and_semicolon() -> None:
    assert join_block_lines(["echo a |", "grep a"]) == "echo a | grep a"
    assert join_block_lines(["echo a;", "echo b"]) == "echo a; echo b"


# ----------------------------------------------------------------
# Heredoc tabs
# ----------------------------------------------------------------


def test_strip_common_tabs_uses_minimal_run() -> None:
    body = ["\t\tone", "\tTwo", "", "\t\t\tthree"]
    assert strip_common_tabs(body) == ["\tone", "Two", "", "\t\tthree"]


def test_strip_common_tabs_keeps_spaces() -> None:
    assert strip_common_tabs(["  a", "\tb"]) == ["  a", "\tb"]


# ----------------------------------------------------------------
# Tables
# ----------------------------------------------------------------


def test_format_table_aligns_columns() -> None:
    out = format_table(["Name", "Desc"], [["a", "first"], ["long", "x"]])
    lines = out.splitlines()
    assert lines[0] == "Name  Desc"
    assert lines[1] == "a     first"
    assert lines[2] == "long  x"


def test_format_table_title_and_empty() -> None:
    assert format_table(["A"], []) == ""
    assert format_table(["A"], [["1"]], title="T").splitlines()[0] == "T"
