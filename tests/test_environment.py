# tests/test_environment.py
"""
Two-tier environment, scoped bindings, and the function/alias tables.
"""
from __future__ import annotations

import pytest

from rucli.environment import AliasTable, Environment, FunctionTable
from rucli.nodes import Simple


@pytest.fixture
def env() -> Environment:
    return Environment(system={"HOME": "/home/u", "X": "sys"})


def test_session_tier_shadows_system(env: Environment) -> None:
    assert env.get("X") == "sys"
    env.set("X", "1")
    assert env.get("X") == "1"
    env.unset("X")
    assert env.get("X") == "sys"


def test_system_tier_is_read_only_snapshot() -> None:
    source = {"A": "1"}
    env = Environment(system=source)
    source["A"] = "2"
    assert env.get("A") == "1"


def test_missing_variable(env: Environment) -> None:
    assert env.get("NOPE") is None
    assert "NOPE" not in env
    assert "HOME" in env


def test_items_merges_tiers_sorted(env: Environment) -> None:
    env.set("A", "a")
    env.set("X", "session")
    assert env.items() == [("A", "a"), ("HOME", "/home/u"), ("X", "session")]


def test_bind_positional_restores_prior_values(env: Environment) -> None:
    env.set("1", "outer")
    with env.bind_positional(["inner", "two"]):
        assert env.get("1") == "inner"
        assert env.get("2") == "two"
    assert env.get("1") == "outer"
    assert env.get("2") is None


def test_bind_positional_hides_higher_parameters(env: Environment) -> None:
    env.set("1", "a")
    env.set("2", "b")
    env.set("NAME", "kept")
    with env.bind_positional(["x"]):
        assert env.get("1") == "x"
        assert env.get("2") is None
        assert env.get("NAME") == "kept"
    assert (env.get("1"), env.get("2")) == ("a", "b")


def test_bind_positional_restores_on_exception(env: Environment) -> None:
    env.set("3", "c")
    with pytest.raises(RuntimeError):
        with env.bind_positional(["tmp"]):
            raise RuntimeError("boom")
    assert env.get("1") is None
    assert env.get("3") == "c"


def test_preserve_unshadows_system_value(env: Environment) -> None:
    with env.preserve(["X"]):
        env.set("X", "loop")
    assert env.get("X") == "sys"
    assert env.session_value("X") is None


def test_snapshot_is_independent(env: Environment) -> None:
    env.set("A", "1")
    snap = env.snapshot()
    env.set("A", "2")
    snap.set("B", "b")
    assert snap.get("A") == "1"
    assert env.get("B") is None


def test_function_table_redefinition_replaces() -> None:
    table = FunctionTable()
    table.define("f", Simple(["echo", "a"]))
    table.define("f", Simple(["echo", "b"]))
    assert table.get("f") == Simple(["echo", "b"])
    assert "f" in table
    assert table.names() == ["f"]


def test_alias_table() -> None:
    aliases = AliasTable({"ll": "ls"})
    aliases.set("g", "grep")
    assert aliases.items() == [("g", "grep"), ("ll", "ls")]
    assert aliases.remove("g") is True
    assert aliases.remove("g") is False
    assert "g" not in aliases
