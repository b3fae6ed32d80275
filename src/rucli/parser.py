# rucli — Interactive and Script-Driven Command Shell
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Recursive-descent parser for rucli command text.

Grammar (keywords are only recognised in command position):

    program   := list EOF
    list      := item ((';' | '&' | NEWLINE) item)*
    item      := pipeline ['&']
    pipeline  := command ('|' NEWLINE* command)*
    command   := if | while | for | function | group | simple
    if        := 'if' list 'then' list ('elif' list 'then' list)*
                 ['else' list] 'fi'
    while     := 'while' list 'do' list 'done'
    for       := 'for' NAME 'in' WORD* (';' | NEWLINE) 'do' list 'done'
    function  := 'function' NAME ['(' ')'] group | NAME '(' ')' group
    group     := '{' list '}'
    simple    := (WORD | redirect)+
    redirect  := ('>' | '>>' | '<' | '<<' | '<<-') WORD

Running out of tokens inside an open construct raises IncompleteInput so
the caller can keep collecting lines; anything else malformed raises
ShellSyntaxError naming the offending token.
"""

from __future__ import annotations

import logging
import re

from .errors import IncompleteInput, ShellSyntaxError
from .lexer import REDIRECT_OPERATORS, Token, TokenKind, tokenize
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
    RedirectSpec,
    Sequence,
    Simple,
    WhileLoop,
)

logger = logging.getLogger(__name__)

# Words that close or continue a construct and can never start a command
CLOSING_WORDS = frozenset(
    {"then", "else", "elif", "fi", "do", "done", "}", "in"}
)

_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _unexpected(tok: Token, expected: str | None = None) -> ShellSyntaxError:
    msg = f"syntax error near unexpected token '{tok.describe()}'"
    if expected:
        msg += f", expected '{expected}'"
    return ShellSyntaxError(msg, token=tok.value)


def _unquote_terminator(raw: str) -> tuple[str, bool]:
    """Strip quoting from a heredoc terminator; report whether it had any."""
    quoted = any(q in raw for q in ("'", '"', "\\"))
    if not quoted:
        return raw, False
    out = []
    i = 0
    while i < len(raw):
        ch = raw[i]
        if ch == "\\" and i + 1 < len(raw):
            out.append(raw[i + 1])
            i += 2
            continue
        if ch not in ("'", '"'):
            out.append(ch)
        i += 1
    return "".join(out), True


class Parser:
    """Single-use parser over one logical input."""

    def __init__(self, text: str) -> None:
        self.text = text
        self.tokens = tokenize(text)
        self.pos = 0
        # Open { ... } groups; inside one a bare "}" word closes the group
        self.group_depth = 0

    # -----------------------
    # Token helpers
    # -----------------------

    def peek(self, offset: int = 0) -> Token:
        idx = min(self.pos + offset, len(self.tokens) - 1)
        return self.tokens[idx]

    def advance(self) -> Token:
        tok = self.peek()
        if tok.kind is not TokenKind.EOF:
            self.pos += 1
        return tok

    def skip_newlines(self) -> None:
        while self.peek().kind is TokenKind.NEWLINE:
            self.advance()

    def expect_word(self, word: str) -> Token:
        self.skip_newlines()
        tok = self.peek()
        if tok.kind is TokenKind.EOF:
            raise IncompleteInput(word)
        if not tok.is_word(word):
            raise _unexpected(tok, word)
        return self.advance()

    # -----------------------
    # Entry point
    # -----------------------

    def parse(self) -> Node:
        items = self.parse_list(stop_words=frozenset())
        tok = self.peek()
        if tok.kind is not TokenKind.EOF:
            raise _unexpected(tok)
        if len(items) == 1:
            return items[0]
        return Sequence(items)

    # -----------------------
    # Lists and pipelines
    # -----------------------

    def parse_list(
        self, stop_words: frozenset[str], expected: str | None = None
    ) -> list[Node]:
        items: list[Node] = []
        self.skip_newlines()

        while True:
            tok = self.peek()
            if tok.kind is TokenKind.EOF:
                break
            if tok.kind is TokenKind.WORD and tok.value in stop_words:
                break
            if tok.kind is TokenKind.WORD and tok.value in CLOSING_WORDS:
                raise _unexpected(tok, expected)

            start = tok.start
            item = self.parse_pipeline()
            sep = self.peek()

            if sep.is_op("&"):
                self.advance()
                text = self.text[start:sep.start].strip()
                item = Background(item, text=text)
            elif sep.is_op(";") or sep.kind is TokenKind.NEWLINE:
                self.advance()
            items.append(item)

            self.skip_newlines()
            if not (sep.is_op("&") or sep.is_op(";")
                    or sep.kind is TokenKind.NEWLINE):
                # A keyword may directly follow a compound command
                break

        return items

    def parse_pipeline(self) -> Node:
        stages = [self.parse_command()]
        while self.peek().is_op("|"):
            self.advance()
            self.skip_newlines()
            if self.peek().kind is TokenKind.EOF:
                raise IncompleteInput("command")
            stages.append(self.parse_command())

        if len(stages) == 1:
            return stages[0]

        # Output redirects on the final stage apply to the pipeline as a
        # whole
        last = stages[-1]
        hoisted: list[RedirectSpec] = []
        while isinstance(last, Redirected) and last.redirect.kind.is_output:
            hoisted.insert(0, last.redirect)
            last = last.inner
        stages[-1] = last

        node: Node = Pipeline(stages)
        for spec in hoisted:
            node = Redirected(node, spec)
        return node

    # -----------------------
    # Commands
    # -----------------------

    def parse_command(self) -> Node:
        tok = self.peek()

        if tok.kind is TokenKind.EOF:
            raise IncompleteInput("command")

        if tok.kind is TokenKind.WORD:
            word = tok.value
            if word == "if":
                return self._with_redirects(self.parse_if())
            if word == "while":
                return self._with_redirects(self.parse_while())
            if word == "for":
                return self._with_redirects(self.parse_for())
            if word == "function":
                return self.parse_function()
            if word == "{":
                return self._with_redirects(self.parse_group())
            if word in CLOSING_WORDS:
                raise _unexpected(tok)
            if self.peek(1).is_op("(") and self.peek(2).is_op(")"):
                return self.parse_function(keyword=False)
            return self.parse_simple()

        if tok.kind is TokenKind.OP and tok.value in REDIRECT_OPERATORS:
            return self.parse_simple()

        raise _unexpected(tok)

    def parse_simple(self) -> Node:
        words: list[str] = []
        redirects: list[RedirectSpec] = []

        while True:
            tok = self.peek()
            if tok.kind is TokenKind.WORD:
                if tok.value == "}" and words and self.group_depth:
                    break
                words.append(self.advance().value)
            elif tok.kind is TokenKind.OP and tok.value in REDIRECT_OPERATORS:
                redirects.append(self.parse_redirect())
            else:
                break

        node: Node = Simple(words)
        for spec in redirects:
            node = Redirected(node, spec)
        return node

    def parse_redirect(self) -> RedirectSpec:
        op = self.advance()
        target = self.peek()
        if target.kind is not TokenKind.WORD:
            raise _unexpected(target, "file name")
        self.advance()

        kind = RedirectKind(op.value)
        if kind.is_heredoc:
            terminator, quoted = _unquote_terminator(target.value)
            return RedirectSpec(kind, terminator, quoted=quoted)
        return RedirectSpec(kind, target.value)

    def _with_redirects(self, node: Node) -> Node:
        while (self.peek().kind is TokenKind.OP
               and self.peek().value in REDIRECT_OPERATORS):
            node = Redirected(node, self.parse_redirect())
        return node

    def parse_body(self, stop_words: frozenset[str], expected: str) -> Node:
        items = self.parse_list(stop_words, expected)
        if not items:
            tok = self.peek()
            if tok.kind is TokenKind.EOF:
                raise IncompleteInput(expected)
            raise _unexpected(tok)
        if len(items) == 1:
            return items[0]
        return Compound(items)

    # -----------------------
    # Control structures
    # -----------------------

    def parse_if(self) -> Node:
        self.expect_word("if")
        return self._parse_if_rest()

    def _parse_if_rest(self) -> Node:
        condition = self.parse_body(frozenset({"then"}), "then")
        self.expect_word("then")
        then_branch = self.parse_body(
            frozenset({"elif", "else", "fi"}), "fi"
        )

        self.skip_newlines()
        tok = self.peek()
        if tok.is_word("elif"):
            self.advance()
            return Conditional(condition, then_branch, self._parse_if_rest())
        if tok.is_word("else"):
            self.advance()
            else_branch = self.parse_body(frozenset({"fi"}), "fi")
            self.expect_word("fi")
            return Conditional(condition, then_branch, else_branch)

        self.expect_word("fi")
        return Conditional(condition, then_branch)

    def parse_while(self) -> Node:
        self.expect_word("while")
        condition = self.parse_body(frozenset({"do"}), "do")
        self.expect_word("do")
        body = self.parse_body(frozenset({"done"}), "done")
        self.expect_word("done")
        return WhileLoop(condition, body)

    def parse_for(self) -> Node:
        self.expect_word("for")
        name_tok = self.peek()
        if name_tok.kind is TokenKind.EOF:
            raise IncompleteInput("in")
        if not name_tok.is_word() or not _NAME_RE.match(name_tok.value):
            raise _unexpected(name_tok, "loop variable")
        self.advance()
        self.expect_word("in")

        items: list[str] = []
        while self.peek().kind is TokenKind.WORD:
            items.append(self.advance().value)

        sep = self.peek()
        if sep.kind is TokenKind.EOF:
            raise IncompleteInput("do")
        if not (sep.is_op(";") or sep.kind is TokenKind.NEWLINE):
            raise _unexpected(sep, "do")
        self.advance()

        self.expect_word("do")
        body = self.parse_body(frozenset({"done"}), "done")
        self.expect_word("done")
        return ForLoop(name_tok.value, items, body)

    def parse_function(self, keyword: bool = True) -> Node:
        if keyword:
            self.expect_word("function")
        name_tok = self.peek()
        if name_tok.kind is TokenKind.EOF:
            raise IncompleteInput("{")
        if not name_tok.is_word() or name_tok.value in CLOSING_WORDS:
            raise _unexpected(name_tok, "function name")
        self.advance()

        if self.peek().is_op("("):
            self.advance()
            close = self.peek()
            if close.kind is TokenKind.EOF:
                raise IncompleteInput(")")
            if not close.is_op(")"):
                raise _unexpected(close, ")")
            self.advance()

        body = self.parse_group()
        return FunctionDef(name_tok.value, body)

    def parse_group(self) -> Node:
        self.expect_word("{")
        self.group_depth += 1
        try:
            body = self.parse_body(frozenset({"}"}), "}")
        finally:
            self.group_depth -= 1
        self.expect_word("}")
        return body


def parse(text: str) -> Node:
    """Parse one logical input into a command node.

    Raises:
        IncompleteInput: the input ends inside an open construct
        ShellSyntaxError: the input is malformed
    """
    node = Parser(text).parse()
    logger.debug("parsed %r -> %r", text, node)
    return node
