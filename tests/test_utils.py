"""
Tests for linedispatch.utils module.
"""

import pytest

from linedispatch.config import ANSI_COLORS
from linedispatch.instruction import Instruction, OutputChunk
from linedispatch.registry import Command, Registry
from linedispatch.utils import (
    format_chunk,
    format_duration,
    format_instructions,
    format_table,
    format_time,
)


def _entry(typed, output="", error=False, start=None, end=None):
    return Instruction.from_dict(
        {
            "typed": typed,
            "output": output,
            "error": error,
            "start": start,
            "end": end,
        }
    )


# -----------------------
# format_table
# -----------------------


def test_format_table_empty_rows():
    """Test format_table with no rows returns empty string."""
    assert format_table(["Header1", "Header2"], []) == ""


def test_format_table_multiple_rows():
    """Test format_table with multiple rows."""
    headers = ["name", "usage", "description"]
    rows = [
        ["help", "[command]", "List commands"],
        ["wait", "<seconds>", "Complete after a delay"],
    ]
    result = format_table(headers, rows)

    lines = result.split("\n")
    assert len(lines) == 3
    assert lines[0].startswith("name")
    assert "wait" in lines[2]


def test_format_table_with_title():
    """Test format_table with a title."""
    result = format_table(["alias"], [["ll"]], title="Commands:")
    assert result.startswith("Commands:\n")


def test_format_table_column_width_calculation():
    """Columns are aligned on the widest value."""
    result = format_table(["a", "b"], [["x", "1"], ["longer", "2"]])
    lines = result.split("\n")
    positions = [line.index(val) for line, val in zip(lines, "b12")]
    assert len(set(positions)) == 1


def test_format_table_strips_trailing_spaces():
    result = format_table(["a", "b"], [["x", ""]])
    assert all(line == line.rstrip() for line in result.split("\n"))


def test_format_table_shorter_rows():
    """Rows with fewer cells than headers are rendered as-is."""
    result = format_table(["a", "b", "c"], [["1"]])
    assert result.split("\n")[1] == "1"


# -----------------------
# Times and chunks
# -----------------------


def test_format_time_and_duration():
    entry = _entry(
        "x",
        start="2024-01-02T03:04:05",
        end="2024-01-02T03:04:06.250000",
    )
    assert format_time(entry.start) == "3:04:05"
    assert format_time(None) == ""
    assert format_duration(entry) == "1.250 sec"
    assert format_duration(_entry("y")) == ""


def test_format_chunk_terminates_lines():
    assert format_chunk(OutputChunk("done")) == "done\n"
    assert format_chunk(OutputChunk("step", complete=False)) == "step\n"


def test_format_chunk_colors_errors():
    text = format_chunk(OutputChunk("bad", error=True))
    assert text.startswith(ANSI_COLORS["red"])
    assert "bad" in text
    assert text.endswith("\n")


# -----------------------
# format_instructions
# -----------------------


def test_format_instructions_history_mode_numbers_entries():
    entries = [_entry(f"cmd{n}") for n in range(1, 11)]
    lines = format_instructions(entries, show_output=False).split("\n")

    assert len(lines) == 10
    assert " 1 > cmd1" in lines[0]
    assert "10 > cmd10" in lines[9]


def test_format_instructions_time_and_blank_modes():
    entry = _entry("ls", start="2024-01-02T13:04:05")

    assert "13:04:05 > ls" in format_instructions([entry], mode="time")
    blank = format_instructions([entry], mode="blank")
    assert "> ls" in blank
    assert "13:04:05" not in blank


def test_format_instructions_indents_output():
    entry = _entry(
        "echo hi",
        output="hi\nthere",
        start="2024-01-02T03:04:05",
        end="2024-01-02T03:04:05.500000",
    )
    lines = format_instructions([entry]).split("\n")

    assert "(0.500 sec)" in lines[0]
    assert lines[1].endswith("    hi")
    assert lines[2].endswith("    there")


def test_format_instructions_skips_hidden_output():
    entry = _entry("clear", output="gone")
    entry.hide_output = True
    assert "gone" not in format_instructions([entry])


def test_format_instructions_marks_unfinished_entries():
    registry = Registry()
    registry.register(Command(name="slow", action=lambda i, a, c: None))
    pending = Instruction("slow", registry)

    assert "Working ..." in format_instructions([pending])


def test_format_instructions_unknown_mode_raises():
    with pytest.raises(ValueError, match="time mode"):
        format_instructions([], mode="calendar")
