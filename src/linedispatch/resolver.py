# LineDispatch — Command Dispatch and Line-Interpreter Core
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Command resolution.

Maps typed text to a leaf command and its bound arguments, descending
through branch commands. Failure is returned as an UnknownCommand value
on the Resolution, never raised.
"""

from __future__ import annotations

from dataclasses import dataclass

from .exceptions import UnknownCommand
from .registry import BranchCommand, Command, Registry
from .tokenizer import BoundArguments, bind, split_words

# Above this many commands the "Try one of" list is left out
SUGGESTION_LIMIT = 30

# Substituted when a branch is invoked without a subcommand
DEFAULT_SUBCOMMAND = "help"


@dataclass
class Resolution:
    command: Command | None = None
    args: BoundArguments = None
    error: UnknownCommand | None = None

    @property
    def ok(self) -> bool:
        return self.command is not None


def unknown_command(
    name: str,
    registry: Registry,
    parent: BranchCommand | None = None,
    suggestion_limit: int = SUGGESTION_LIMIT,
) -> UnknownCommand:
    names = registry.names()
    return UnknownCommand(
        name,
        parent_path=registry.path if parent is not None else None,
        candidates=names,
        show_candidates=len(names) <= suggestion_limit,
    )


def resolve(
    typed: str,
    registry: Registry,
    parent: BranchCommand | None = None,
    suggestion_limit: int = SUGGESTION_LIMIT,
) -> Resolution:
    """Resolve ``typed`` against ``registry``.

    Args:
        typed: Text after any enclosing branch names
        registry: Registry for the current nesting level
        parent: Branch that led here (None at the root)
        suggestion_limit: Max commands to enumerate in an error

    Returns:
        Resolution with either ``command`` or ``error`` set
    """
    words = split_words(typed)
    name = words[0] if words else ""
    rest = words[1:]

    found = registry.lookup(name) if name else None
    if found is None:
        return Resolution(
            error=unknown_command(name, registry, parent, suggestion_limit)
        )

    rest = list(found.extra_args) + rest
    command = found.command

    if isinstance(command, BranchCommand):
        if not rest:
            rest = split_words(command.default or DEFAULT_SUBCOMMAND)
        return resolve(
            " ".join(rest),
            command.registry,
            parent=command,
            suggestion_limit=suggestion_limit,
        )

    assert isinstance(command, Command)
    return Resolution(command=command, args=bind(" ".join(rest), command))
