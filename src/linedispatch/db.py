# LineDispatch — Command Dispatch and Line-Interpreter Core
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Database schema for the SQLite history store.

This module is the only place that creates tables. SQLiteHistoryStore
assumes ensure_schema() has already run against its database.
"""

from __future__ import annotations

import sqlite3
from pathlib import Path


def ensure_schema(db_path: Path) -> None:
    """Create the history table if it doesn't exist.

    Handles migration from the first schema, which had no ``error``
    column.

    Args:
        db_path: Path to SQLite database file

    This function is idempotent - safe to call multiple times.
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(str(db_path))
    try:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS history (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                position INTEGER NOT NULL,
                typed TEXT NOT NULL,
                output TEXT NOT NULL DEFAULT '',
                error INTEGER NOT NULL DEFAULT 0,
                started_at TEXT,
                ended_at TEXT
            )
            """
        )

        cur = conn.execute("PRAGMA table_info(history)")
        cols = {row[1] for row in cur.fetchall()}
        if "error" not in cols:
            conn.execute(
                "ALTER TABLE history "
                "ADD COLUMN error INTEGER NOT NULL DEFAULT 0"
            )

        conn.commit()
    finally:
        conn.close()
