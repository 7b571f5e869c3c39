# tests/test_registry.py
from __future__ import annotations

import pytest

from linedispatch.registry import (
    Alias,
    BranchCommand,
    Command,
    Param,
    Registry,
)


def _noop(instruction, args, command) -> None:
    return None


@pytest.fixture
def registry() -> Registry:
    r = Registry()
    r.register(Command(name="ls", action=_noop))
    r.register(Command(name="status", action=_noop, aliases=["st", "stat"]))
    return r


# ----------------------------------------------------------------
# Lookup
# ----------------------------------------------------------------


def test_lookup_returns_registered_descriptor_and_its_aliases(
    registry: Registry,
) -> None:
    for command in list(registry):
        found = registry.lookup(command.name)
        assert found is not None and found.command is command
        for alias in command.aliases:
            via_alias = registry.lookup(alias)
            assert via_alias is not None
            assert via_alias.command is command
            assert via_alias.alias == alias


def test_lookup_unknown_returns_none(registry: Registry) -> None:
    assert registry.lookup("nope") is None
    assert registry.lookup("") is None


def test_register_none_is_noop(registry: Registry) -> None:
    before = registry.names()
    assert registry.register(None) is None
    assert registry.names() == before


def test_register_overwrites_by_name(registry: Registry) -> None:
    replacement = Command(name="ls", action=_noop, description="new")
    registry.register(replacement)
    assert registry.get("ls") is replacement
    assert registry.names() == ["ls", "status"]


def test_has_command_checks_names_and_descriptor_aliases(
    registry: Registry,
) -> None:
    assert registry.has_command("ls")
    assert registry.has_command("st")
    assert not registry.has_command("zz")


def test_takes_are_normalized_into_params() -> None:
    command = Command(name="cp", action=_noop, takes=["source", "dest"])
    assert command.takes == (Param("source", "s"), Param("dest", "d"))
    assert command.param_names == ["source", "dest"]
    assert command.takes_args


def test_takes_args_for_plain_variadic_and_branch() -> None:
    assert not Command(name="a", action=_noop).takes_args
    assert Command(name="b", action=_noop, variadic=True).takes_args
    branch = BranchCommand(name="c", registry=Registry())
    assert branch.takes_args


# ----------------------------------------------------------------
# Aliases with extra args
# ----------------------------------------------------------------


def test_add_alias_splits_target_and_extra_args(registry: Registry) -> None:
    record = registry.add_alias("ll", "ls -l -a")
    assert record == Alias(target="ls", extra_args=("-l", "-a"))
    assert record.expansion == "ls -l -a"

    found = registry.lookup("ll")
    assert found is not None
    assert found.command.name == "ls"
    assert found.extra_args == ("-l", "-a")


def test_add_alias_rejects_empty_expansion(registry: Registry) -> None:
    with pytest.raises(ValueError):
        registry.add_alias("x", "   ")


def test_alias_to_missing_target_does_not_resolve(registry: Registry) -> None:
    registry.add_alias("gone", "missing arg")
    assert registry.lookup("gone") is None


def test_remove_alias(registry: Registry) -> None:
    registry.add_alias("ll", "ls -l")
    assert registry.remove_alias("ll") is True
    assert registry.remove_alias("ll") is False
    assert registry.lookup("ll") is None


# ----------------------------------------------------------------
# Tree construction
# ----------------------------------------------------------------


def test_branch_builds_nested_registry_top_down() -> None:
    root = Registry()
    vcs = root.branch("vcs", default="status", aliases=["v"])
    vcs.register(Command(name="status", action=_noop))

    branch = root.get("vcs")
    assert isinstance(branch, BranchCommand)
    assert branch.registry is vcs
    assert branch.default == "status"
    assert vcs.parent is root
    assert vcs.root is root
    assert vcs.path == "vcs"
    assert root.path == ""
    assert root.lookup("v").command is branch


def test_register_adopts_detached_branch_registry() -> None:
    root = Registry()
    nested = Registry()
    root.register(BranchCommand(name="db", registry=nested))
    assert nested.parent is root
    assert nested.name == "db"
    assert nested.path == "db"


def test_nested_path_joins_every_level() -> None:
    root = Registry()
    inner = root.branch("a").branch("b")
    assert inner.path == "a b"


def test_register_all_accepts_names_from_root_catalogue() -> None:
    root = Registry()
    echo = Command(name="echo", action=_noop)
    root.register(echo)
    nested = root.branch("tools")

    nested.register_all(["echo", "missing", None])
    assert nested.get("echo") is echo
    assert nested.names() == ["echo"]


def test_command_decorator_registers_leaf(registry: Registry) -> None:
    @registry.command("greet", takes=["name"], usage="<name>")
    def greet(instruction, args, command):
        return None

    command = registry.get("greet")
    assert isinstance(command, Command)
    assert command.action is greet
    assert command.usage == "<name>"


def test_walk_yields_full_paths() -> None:
    root = Registry()
    root.register(Command(name="help", action=_noop))
    hist = root.branch("history")
    hist.register(Command(name="list", action=_noop))

    assert [path for path, _ in root.walk()] == [
        "help",
        "history",
        "history list",
    ]


def test_container_protocol(registry: Registry) -> None:
    assert "ls" in registry
    assert "st" not in registry
    assert len(registry) == 2
    assert [c.name for c in registry] == ["ls", "status"]
