# LineDispatch — Command Dispatch and Line-Interpreter Core
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Bounded, navigable command history.

The cursor sits one past the end after every insertion or restore, so the
first previous() call lands on the most recent entry. Persistence is
delegated to a HistoryStore; store failures go to the crash log and never
reach the caller.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from .crash import write_crash_log
from .instruction import Instruction
from .interfaces import HistoryStore

DEFAULT_MAX_ENTRIES = 50


class History:
    """Ordered instructions, oldest first, with a navigation cursor."""

    def __init__(
        self,
        store: HistoryStore | None = None,
        max_entries: int = DEFAULT_MAX_ENTRIES,
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.store = store
        self.max_entries = max_entries
        self.instructions: list[Instruction] = []
        self.pointer = 0

    def _trim(self) -> None:
        excess = len(self.instructions) - self.max_entries
        if excess > 0:
            del self.instructions[:excess]

    def _reset_pointer(self) -> None:
        self.pointer = len(self.instructions)

    # -----------------------
    # Mutation
    # -----------------------

    def add(self, instruction: Instruction) -> None:
        """Append, trim to max_entries, reset the cursor and persist."""
        self.instructions.append(instruction)
        self._trim()
        self._reset_pointer()
        self.persist()

    def remove(self, instruction: Instruction) -> bool:
        """Remove the first entry that *is* ``instruction``.

        Entries removed before the cursor shift it left by one so it keeps
        pointing at the same instruction. The cursor is then clamped to
        one past the end.
        """
        for i, current in enumerate(self.instructions):
            if current is instruction:
                del self.instructions[i]
                if i < self.pointer:
                    self.pointer -= 1
                self.pointer = min(self.pointer, len(self.instructions))
                return True
        return False

    def set_instructions(
        self, instructions: Iterable[Instruction] | None
    ) -> None:
        """Replace all entries (``None`` clears), trim and reset the cursor."""
        self.instructions = list(instructions) if instructions else []
        self._trim()
        self._reset_pointer()

    def resize(self, max_entries: int) -> None:
        """Change the bound, dropping the oldest entries past it."""
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        excess = max(0, len(self.instructions) - max_entries)
        self._trim()
        # Keep the cursor on the same entry where it survives
        self.pointer = max(0, self.pointer - excess)

    def seed(self, typed_lines: Iterable[str]) -> None:
        """Replace all entries with historical instructions for each line."""
        self.set_instructions(
            Instruction.historical_from(line)
            for line in typed_lines
            if line and line.strip()
        )

    def clear(self) -> None:
        self.set_instructions(None)
        self.persist()

    # -----------------------
    # Navigation
    # -----------------------

    def next(self) -> Instruction | None:
        """Move the cursor forward; None at the newest entry."""
        if self.pointer < len(self.instructions) - 1:
            self.pointer += 1
            return self.instructions[self.pointer]
        return None

    def previous(self) -> Instruction | None:
        """Move the cursor back; None at the oldest entry."""
        if 0 < self.pointer <= len(self.instructions):
            self.pointer -= 1
            return self.instructions[self.pointer]
        return None

    def first(self) -> Instruction | None:
        return self.instructions[0] if self.instructions else None

    def last(self) -> Instruction | None:
        return self.instructions[-1] if self.instructions else None

    def get_instructions(self) -> list[Instruction]:
        return list(self.instructions)

    # -----------------------
    # Persistence
    # -----------------------

    def persist(self) -> None:
        """Hand the retained entries to the store (fire-and-forget)."""
        if self.store is None:
            return
        try:
            self.store.save(list(self.instructions))
        except Exception as e:
            write_crash_log(e, where="history.save")

    def restore(self) -> None:
        """Load entries from the store.

        A failing load leaves the history empty.
        """
        if self.store is None:
            return
        try:
            loaded = self.store.load()
        except Exception as e:
            write_crash_log(e, where="history.load")
            loaded = []
        self.set_instructions(loaded)

    def __len__(self) -> int:
        return len(self.instructions)

    def __iter__(self) -> Iterator[Instruction]:
        return iter(list(self.instructions))
