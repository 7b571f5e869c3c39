# LineDispatch — Command Dispatch and Line-Interpreter Core
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Protocol definitions for dependency injection.

These interfaces keep the dispatch core independent of persistence,
configuration and the runtime that owns the "currently executing" slot.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from .instruction import Instruction  # pragma: no cover


class HistoryStore(Protocol):
    """Pluggable persistence strategy for History."""

    def load(self) -> list[Instruction]:
        """Return previously saved instructions (historical, oldest first)."""
        ...

    def save(self, instructions: Sequence[Instruction]) -> None:
        """Persist the full retained sequence (fire-and-forget)."""
        ...


class ExecutionContext(Protocol):
    """The runtime an Instruction executes in.

    Owns the single "currently executing" slot and the lock that
    serializes execution and continuations.
    """

    executing: Instruction | None

    @property
    def lock(self) -> Any:
        """Re-entrant lock held while an instruction runs."""
        ...

    def resume(
        self,
        instruction: Instruction,
        action: Callable[..., Any],
        args: tuple[Any, ...],
        kwargs: dict[str, Any],
    ) -> Any:
        """Run a linked continuation with ``instruction`` executing."""
        ...


class ConfigModel(Protocol):
    """Protocol for configuration access."""

    @property
    def system(self) -> dict[str, Any]:
        """System configuration."""
        ...

    @property
    def history(self) -> dict[str, Any]:
        """History size and persistence configuration."""
        ...

    @property
    def completion(self) -> dict[str, Any]:
        """Completion configuration."""
        ...

    def get_path(self, path: str, default: Any = None) -> Any:
        """Dotted nested lookup."""
        ...
