# LineDispatch — Command Dispatch and Line-Interpreter Core
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Prefix completion over a Registry tree.

Matching is an ordinary case-sensitive prefix match: command names first,
then aliases, in registry order. Text after a branch name is completed
against the branch's nested registry and the branch names are carried in
``root`` so the suggestion can be re-prefixed.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .registry import BranchCommand, Command, Registry


@dataclass
class Completions:
    matches: list[str] = field(default_factory=list)
    root: str = ""
    registry: Registry | None = None


@dataclass
class Suggestion:
    """What the caller should offer for a partially typed line.

    ``value`` is only set for a single match; otherwise the caller decides
    how to present ``matches``.
    """

    matches: list[str] = field(default_factory=list)
    root: str = ""
    value: str | None = None
    hint: str | None = None
    alias_for: str | None = None
    registry: Registry | None = None

    @property
    def ambiguous(self) -> bool:
        return len(self.matches) > 1


def find_completions(
    value: str, registry: Registry, root: str = ""
) -> Completions:
    """Collect names in ``registry`` or a nested branch matching ``value``."""
    if " " in value:
        head, _, remainder = value.partition(" ")
        command = registry.get(head)
        if isinstance(command, BranchCommand):
            return find_completions(
                remainder.lstrip(),
                command.registry,
                root=f"{root}{head} ",
            )

    matches: list[str] = []
    if value in registry.aliases and value not in registry.commands:
        # An exactly typed alias is unambiguous
        matches.append(value)
    elif value:
        matches.extend(n for n in registry.commands if n.startswith(value))
        matches.extend(a for a in registry.aliases if a.startswith(value))

    return Completions(matches=matches, root=root, registry=registry)


def complete(value: str, registry: Registry) -> Suggestion:
    """Turn the matches for ``value`` into a suggestion."""
    found = find_completions(value, registry)
    suggestion = Suggestion(
        matches=found.matches, root=found.root, registry=found.registry
    )

    if len(found.matches) != 1 or found.registry is None:
        return suggestion

    match = found.matches[0]
    level = found.registry

    if match in level.aliases and match not in level.commands:
        alias = level.aliases[match]
        suggestion.alias_for = alias.target
        suggestion.hint = f"{match} is an alias for: {alias.expansion}"
        suggestion.value = f"{found.root}{alias.expansion} "
        return suggestion

    command = level.get(match)
    text = match
    if command is not None and command.takes_args:
        text += " "
    suggestion.value = found.root + text

    if isinstance(command, Command):
        if command.complete_text:
            suggestion.hint = command.complete_text
        if command.complete is not None:
            suggestion.hint = command.complete(value)

    return suggestion
