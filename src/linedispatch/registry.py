# LineDispatch — Command Dispatch and Line-Interpreter Core
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Command registry.

A Registry maps command names to descriptors and alias strings to Alias
records. Descriptors come in two shapes:

- Command: a leaf that owns an action and an optional parameter list
- BranchCommand: a node that only dispatches into a nested Registry

Subcommand trees are built top-down with Registry.branch(), which creates
the nested registry and registers the branch descriptor in one step.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .instruction import Instruction  # pragma: no cover

Action = Callable[["Instruction", Any, "Command"], Any]


@dataclass(frozen=True)
class Param:
    """A declared parameter. ``short`` is only used for display."""

    name: str
    short: str


def normalize_takes(takes: Iterable[str] | None) -> tuple[Param, ...]:
    """Expand a plain list of parameter names into Param records."""
    if not takes:
        return ()
    return tuple(Param(name=str(n), short=str(n)[:1]) for n in takes)


# ----------------------------
# Descriptors
# ----------------------------


@dataclass
class CommandDescriptor:
    """Common base for leaf and branch commands."""

    name: str

    @property
    def takes_args(self) -> bool:
        raise NotImplementedError


@dataclass
class Command(CommandDescriptor):
    """A directly executable command."""

    action: Action
    takes: tuple[Param, ...] = ()
    variadic: bool = False
    aliases: tuple[str, ...] = ()
    usage: str = ""
    description: str = ""
    complete_text: str = ""
    complete: Callable[[str], str] | None = None
    with_key: str | None = None

    def __post_init__(self) -> None:
        takes = tuple(self.takes or ())
        if all(isinstance(p, Param) for p in takes):
            self.takes = takes
        else:
            self.takes = normalize_takes(takes)  # type: ignore[arg-type]
        self.aliases = tuple(self.aliases)

    @property
    def param_names(self) -> list[str]:
        return [p.name for p in self.takes]

    @property
    def takes_args(self) -> bool:
        return bool(self.takes) or self.variadic


@dataclass
class BranchCommand(CommandDescriptor):
    """A command whose arguments name a subcommand in ``registry``."""

    registry: Registry
    default: str | None = None
    aliases: tuple[str, ...] = ()
    usage: str = ""
    description: str = ""
    with_key: str | None = None

    def __post_init__(self) -> None:
        self.aliases = tuple(self.aliases)

    @property
    def takes_args(self) -> bool:
        return True


@dataclass(frozen=True)
class Alias:
    """An alias for ``target``, optionally carrying leading arguments."""

    target: str
    extra_args: tuple[str, ...] = ()

    @property
    def expansion(self) -> str:
        return " ".join((self.target,) + self.extra_args)


@dataclass(frozen=True)
class Lookup:
    """Result of Registry.lookup()."""

    command: CommandDescriptor
    extra_args: tuple[str, ...] = ()
    alias: str | None = None


# ----------------------------
# Registry
# ----------------------------


@dataclass(eq=False)
class Registry:
    """Name -> descriptor and alias -> Alias mappings for one level."""

    name: str | None = None
    parent: Registry | None = field(default=None, repr=False)
    commands: dict[str, CommandDescriptor] = field(default_factory=dict)
    aliases: dict[str, Alias] = field(default_factory=dict)

    # -----------------------
    # Population
    # -----------------------

    def register(
        self, descriptor: CommandDescriptor | None
    ) -> CommandDescriptor | None:
        """Insert or overwrite ``descriptor`` by name.

        Descriptor aliases are added to the alias map. A branch whose
        nested registry is still detached gets adopted by this registry.
        ``None`` is ignored.
        """
        if descriptor is None:
            return None

        self.commands[descriptor.name] = descriptor
        for alias in getattr(descriptor, "aliases", ()) or ():
            self.aliases[alias] = Alias(target=descriptor.name)

        if isinstance(descriptor, BranchCommand):
            nested = descriptor.registry
            if nested.parent is None and nested is not self:
                nested.parent = self
            if nested.name is None:
                nested.name = descriptor.name

        return descriptor

    def register_all(
        self,
        items: Iterable[CommandDescriptor | str | None],
        catalogue: Registry | None = None,
    ) -> None:
        """Register descriptors, or names looked up in ``catalogue``.

        ``catalogue`` defaults to the root registry. Unknown names are
        skipped the same way ``register(None)`` is.
        """
        source = catalogue if catalogue is not None else self.root
        for item in items:
            if isinstance(item, str):
                item = source.get(item)
            self.register(item)

    def command(
        self, name: str, **options: Any
    ) -> Callable[[Action], Action]:
        """Decorator variant of register() for leaf commands."""

        def decorator(func: Action) -> Action:
            self.register(Command(name=name, action=func, **options))
            return func

        return decorator

    def branch(
        self,
        name: str,
        *,
        default: str | None = None,
        aliases: Iterable[str] = (),
        usage: str = "",
        description: str = "",
        with_key: str | None = None,
    ) -> Registry:
        """Create a nested registry and register a branch pointing at it."""
        nested = Registry(name=name, parent=self)
        self.register(
            BranchCommand(
                name=name,
                registry=nested,
                default=default,
                aliases=tuple(aliases),
                usage=usage,
                description=description,
                with_key=with_key,
            )
        )
        return nested

    def add_alias(self, alias: str, expansion: str) -> Alias:
        """Add a registry-level alias, e.g. ``add_alias("ll", "ls -l")``.

        Raises:
            ValueError: If the expansion is empty
        """
        words = expansion.split()
        if not words:
            raise ValueError(f"Alias '{alias}' has an empty expansion")
        record = Alias(target=words[0], extra_args=tuple(words[1:]))
        self.aliases[alias] = record
        return record

    def remove_alias(self, alias: str) -> bool:
        return self.aliases.pop(alias, None) is not None

    # -----------------------
    # Queries
    # -----------------------

    def get(self, name: str) -> CommandDescriptor | None:
        return self.commands.get(name)

    def lookup(self, name: str) -> Lookup | None:
        """Find ``name`` directly, else through one alias indirection."""
        command = self.commands.get(name)
        if command is not None:
            return Lookup(command=command)

        alias = self.aliases.get(name)
        if alias is None:
            return None

        target = self.commands.get(alias.target)
        if target is None:
            return None
        return Lookup(command=target, extra_args=alias.extra_args, alias=name)

    def has_command(self, name: str) -> bool:
        if name in self.commands:
            return True
        for command in self.commands.values():
            if name in (getattr(command, "aliases", ()) or ()):
                return True
        return False

    def names(self) -> list[str]:
        return list(self.commands)

    def walk(
        self, prefix: str = ""
    ) -> Iterator[tuple[str, CommandDescriptor]]:
        """Yield ``(path, descriptor)`` for every command in the tree."""
        for name, command in self.commands.items():
            path = f"{prefix} {name}".strip()
            yield path, command
            if isinstance(command, BranchCommand):
                yield from command.registry.walk(path)

    @property
    def root(self) -> Registry:
        current = self
        while current.parent is not None:
            current = current.parent
        return current

    @property
    def path(self) -> str:
        """Space-joined branch names from the root ("" at the root)."""
        names: list[str] = []
        current: Registry | None = self
        while current is not None and current.parent is not None:
            names.append(current.name or "")
            current = current.parent
        return " ".join(reversed(names))

    def __contains__(self, name: object) -> bool:
        return name in self.commands

    def __len__(self) -> int:
        return len(self.commands)

    def __iter__(self) -> Iterator[CommandDescriptor]:
        return iter(list(self.commands.values()))
