# rucli — Interactive and Script-Driven Command Shell
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Session state tables: variables, functions and aliases.

Environment is two-tier. The session tier (set by `env NAME=value`, loop
variables and positional parameters) shadows a read-only snapshot of the
process environment taken at construction.
"""

from __future__ import annotations

import os
import threading
from collections.abc import Iterable, Iterator, Mapping
from contextlib import contextmanager
from types import MappingProxyType
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .nodes import Node  # pragma: no cover

_MISSING = object()


class Environment:
    """Two-tier variable store."""

    def __init__(
        self,
        system: Mapping[str, str] | None = None,
        session: Mapping[str, str] | None = None,
    ) -> None:
        base = os.environ if system is None else system
        self._system: Mapping[str, str] = MappingProxyType(dict(base))
        self._session: dict[str, str] = dict(session or {})
        self._lock = threading.RLock()

    def get(self, name: str) -> str | None:
        with self._lock:
            if name in self._session:
                return self._session[name]
        return self._system.get(name)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.get(name) is not None

    def set(self, name: str, value: str) -> None:
        with self._lock:
            self._session[name] = value

    def unset(self, name: str) -> None:
        """Remove a session-tier value; system values are untouched."""
        with self._lock:
            self._session.pop(name, None)

    def session_value(self, name: str) -> str | None:
        with self._lock:
            return self._session.get(name)

    def items(self) -> list[tuple[str, str]]:
        """Merged view, session tier winning, sorted by name."""
        with self._lock:
            merged = dict(self._system)
            merged.update(self._session)
        return sorted(merged.items())

    def snapshot(self) -> Environment:
        """Independent copy for a background job."""
        with self._lock:
            return Environment(system=self._system, session=self._session)

    @contextmanager
    def preserve(self, names: Iterable[str]) -> Iterator[None]:
        """Restore the session-tier values of names on exit.

        Names that had no session value are removed again, so a loop or
        function binding never leaks into the surrounding scope.
        """
        with self._lock:
            prior = {n: self._session.get(n, _MISSING) for n in names}
        try:
            yield
        finally:
            with self._lock:
                for name, value in prior.items():
                    if value is _MISSING:
                        self._session.pop(name, None)
                    else:
                        self._session[name] = value

    @contextmanager
    def bind_positional(self, args: Iterable[str]) -> Iterator[None]:
        """Bind $1..$N to args and hide any higher positional values."""
        bindings = {str(i): arg for i, arg in enumerate(args, start=1)}
        with self._lock:
            stale = [
                n for n in self._session
                if n.isdigit() and n not in bindings
            ]
        with self.preserve([*bindings, *stale]):
            with self._lock:
                for name in stale:
                    self._session.pop(name, None)
                self._session.update(bindings)
            yield


class FunctionTable:
    """Shell function definitions: name -> stored body node."""

    def __init__(self) -> None:
        self._functions: dict[str, Node] = {}
        self._lock = threading.Lock()

    def define(self, name: str, body: Node) -> None:
        with self._lock:
            self._functions[name] = body

    def get(self, name: str) -> Node | None:
        with self._lock:
            return self._functions.get(name)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._functions

    def names(self) -> list[str]:
        with self._lock:
            return sorted(self._functions)


class AliasTable:
    """Alias storage: name -> replacement text."""

    def __init__(self, aliases: Mapping[str, str] | None = None) -> None:
        self._aliases: dict[str, str] = dict(aliases or {})

    def set(self, name: str, value: str) -> None:
        self._aliases[name] = value

    def get(self, name: str) -> str | None:
        return self._aliases.get(name)

    def remove(self, name: str) -> bool:
        return self._aliases.pop(name, None) is not None

    def __contains__(self, name: object) -> bool:
        return name in self._aliases

    def items(self) -> list[tuple[str, str]]:
        return sorted(self._aliases.items())
