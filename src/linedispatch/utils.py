# LineDispatch — Command Dispatch and Line-Interpreter Core
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Text rendering helpers for LineDispatch.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from typing import TYPE_CHECKING, Any

from .config import ANSI_COLORS, TAG_COLORS

if TYPE_CHECKING:
    from .instruction import Instruction, OutputChunk  # pragma: no cover

TIME_MODES = ("history", "time", "blank")


def format_table(
    headers: list[str],
    rows: list[list[Any]],
    title: str = ""
) -> str:
    """
    Format data as a simple text table without external dependencies.

    Args:
        headers: List of column header names
        rows: List of rows, where each row is a list of values
        title: Optional title to display above the table

    Returns:
        Formatted table as a string
    """
    if not rows:
        return ""

    str_headers = [str(h) for h in headers]
    str_rows = [[str(val) for val in row] for row in rows]

    col_widths = [
        max([len(header)] + [len(r[i]) for r in str_rows if i < len(r)])
        for i, header in enumerate(str_headers)
    ]

    lines = []
    if title:
        lines.append(title)

    lines.append(
        "  ".join(h.ljust(col_widths[i]) for i, h in enumerate(str_headers))
        .rstrip()
    )
    for row in str_rows:
        lines.append(
            "  ".join(v.ljust(col_widths[i]) for i, v in enumerate(row))
            .rstrip()
        )

    return "\n".join(lines)


def _colored(tag: str, text: str) -> str:
    color = ANSI_COLORS[TAG_COLORS[tag]]
    return f"{color}{text}{ANSI_COLORS['reset']}"


def format_time(value: datetime | None) -> str:
    """H:MM:SS, hours unpadded."""
    if value is None:
        return ""
    return f"{value.hour}:{value.minute:02d}:{value.second:02d}"


def format_duration(instruction: Instruction) -> str:
    """Execution time as "<seconds> sec", or "" while unknown."""
    seconds = instruction.duration
    if seconds is None:
        return ""
    return f"{seconds:.3f} sec"


def format_chunk(chunk: OutputChunk) -> str:
    """Render one output chunk for the terminal."""
    text = chunk.text if chunk.complete else chunk.text + "\n"
    if chunk.error:
        text = _colored("ERR", text)
    if not text.endswith("\n"):
        text += "\n"
    return text


def _open_column(
    instruction: Instruction, number: int, mode: str
) -> str:
    if mode == "history":
        return str(number)
    if mode == "time" and instruction.start is not None:
        return format_time(instruction.start)
    return ""


def format_instructions(
    instructions: Iterable[Instruction],
    mode: str = "history",
    show_output: bool = True,
) -> str:
    """Render a history listing.

    Each entry is an opening column (history number, start time or blank
    depending on ``mode``), the typed text and, once finished, the
    duration. Unfinished entries carry a "Working ..." marker. Output is
    indented under its entry unless the entry's output is hidden.

    Raises:
        ValueError: If ``mode`` is not a known time mode
    """
    if mode not in TIME_MODES:
        raise ValueError(
            f"Unknown history time mode '{mode}' "
            f"(expected one of: {', '.join(TIME_MODES)})"
        )

    entries = list(instructions)
    width = max(
        (len(_open_column(i, n, mode)) for n, i in enumerate(entries, 1)),
        default=0,
    )

    lines: list[str] = []
    for number, instruction in enumerate(entries, 1):
        opening = _open_column(instruction, number, mode).rjust(width)
        line = f"{opening} > {instruction.typed}" if width else (
            f"> {instruction.typed}"
        )

        if not instruction.complete:
            line += "  " + _colored("WORKING", "Working ...")
        else:
            duration = format_duration(instruction)
            if duration:
                line += f"  ({duration})"

        lines.append(_colored("HIST", line) if instruction.historical
                     else line)

        if show_output and not instruction.hide_output:
            for out in instruction.output.splitlines():
                text = f"{' ' * width}   {out}"
                lines.append(
                    _colored("ERR", text) if instruction.error else text
                )

    return "\n".join(lines)
