# LineDispatch — Command Dispatch and Line-Interpreter Core
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
History store implementations.

- MemoryHistoryStore: a seed list, nothing survives the process
- FileHistoryStore: one typed line per line in a per-user file
- SQLiteHistoryStore: full serialized instructions in a SQLite table
"""

from __future__ import annotations

import sqlite3
from collections.abc import Iterable, Sequence
from pathlib import Path

from .instruction import Instruction


class MemoryHistoryStore:
    """In-memory store, loading from a fixed list of typed lines."""

    def __init__(self, seed: Iterable[str] | None = None):
        self.seed = [str(line) for line in (seed or [])]
        self.saved: list[dict] = []

    def load(self) -> list[Instruction]:
        if self.saved:
            return [Instruction.from_dict(d) for d in self.saved]
        return [Instruction.historical_from(line) for line in self.seed]

    def save(self, instructions: Sequence[Instruction]) -> None:
        self.saved = [i.to_dict() for i in instructions]


class FileHistoryStore:
    """Store the typed text of each instruction, one per line."""

    def __init__(self, path: Path):
        self.path = path

    def load(self) -> list[Instruction]:
        if not self.path.exists():
            return []

        with self.path.open("r", encoding="utf-8") as f:
            return [
                Instruction.historical_from(line)
                for line in f.read().splitlines()
                if line.strip()
            ]

    def save(self, instructions: Sequence[Instruction]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        lines = [i.typed for i in instructions if i.typed]
        with self.path.open("w", encoding="utf-8") as f:
            f.write("\n".join(lines) + ("\n" if lines else ""))


class SQLiteHistoryStore:
    """SQLite implementation of the HistoryStore protocol."""

    def __init__(self, db_path: Path):
        """Initialize store with database path.

        Args:
            db_path: Path to SQLite database file (must have schema)

        Note:
            Store does NOT create schema. Schema must be created by
            db.ensure_schema() before constructing SQLiteHistoryStore.
        """
        self.db_path = db_path

        # Ensure parent directory exists
        db_path.parent.mkdir(parents=True, exist_ok=True)

    def load(self) -> list[Instruction]:
        """Load all stored instructions, oldest first."""
        conn = sqlite3.connect(str(self.db_path))
        try:
            cur = conn.execute(
                """
                SELECT typed, output, error, started_at, ended_at
                FROM history
                ORDER BY position
                """
            )
            rows = cur.fetchall()
        finally:
            conn.close()

        return [
            Instruction.from_dict(
                {
                    "typed": row[0],
                    "output": row[1] or "",
                    "error": bool(row[2]),
                    "start": row[3],
                    "end": row[4],
                }
            )
            for row in rows
        ]

    def save(self, instructions: Sequence[Instruction]) -> None:
        """Replace the stored history with ``instructions``."""
        conn = sqlite3.connect(str(self.db_path))
        try:
            conn.execute("DELETE FROM history")
            for position, instruction in enumerate(instructions):
                data = instruction.to_dict()
                conn.execute(
                    """
                    INSERT INTO history (
                        position, typed, output, error,
                        started_at, ended_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (
                        position,
                        data["typed"],
                        data["output"],
                        1 if data["error"] else 0,
                        data["start"],
                        data["end"],
                    ),
                )
            conn.commit()
        finally:
            conn.close()
