# LineDispatch — Command Dispatch and Line-Interpreter Core
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Crash log.

Action faults, failed history persistence and unhandled REPL errors are
appended to <data_root>/linedispatch/logs/crash.log.
"""

from __future__ import annotations

import traceback
from datetime import datetime

from . import config as cfg_module


def write_crash_log(
    error: BaseException,
    typed: str = "",
    command: str = "",
    where: str = "",
) -> None:
    """Write an entry to the crash log.

    Only creates the log directory when actually needed.
    Appends to crash.log (never overwrites) and never raises.
    """
    try:
        data_root = cfg_module.get_data_root()
        log_path = cfg_module.crash_log_path(data_root)

        # Create logs directory only when we need to write
        log_path.parent.mkdir(parents=True, exist_ok=True)

        timestamp = datetime.now().isoformat()
        lines = [f"{timestamp}"]

        if where:
            lines.append(f"where={where}")
        if typed:
            lines.append(f"typed={typed}")
        if command:
            lines.append(f"command={command}")

        lines.append(f"error={type(error).__name__}: {error}")
        lines.append("traceback:")
        lines.append(
            "".join(
                traceback.format_exception(
                    type(error), error, error.__traceback__
                )
            ).rstrip()
        )
        lines.append("----")

        with log_path.open("a", encoding="utf-8") as f:
            f.write("\n".join(lines) + "\n")

    except Exception:
        # If we can't write the crash log, fail silently
        # (we're already in an error state)
        pass
