# LineDispatch — Command Dispatch and Line-Interpreter Core
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Exception hierarchy for LineDispatch.

Three failure kinds exist at the dispatch boundary:

- UnknownCommand: a name or alias was not found at some registry level.
  Recoverable. The resolver returns it as a value and the instruction
  renders it as error output.
- MultiplyLinkedInstruction: a second top-level continuation was requested
  while one was still outstanding. A programming error; it is raised and
  never converted into output.
- ActionFault: anything raised inside a command action. Caught at the
  execution boundary, recorded on the instruction and the crash log.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any


class LineDispatchError(Exception):
    """Base exception for all LineDispatch errors.

    Attributes:
        message: Headline of the error
        context: Contextual key/value pairs (typed text, command name, ...)
        suggestions: Actionable hints shown after the message
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        suggestions: list[str] | None = None,
    ):
        self.message = message
        self.context = context or {}
        self.suggestions = suggestions or []
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        parts = [self.message]

        if self.context:
            parts.append("\n\nContext:")
            for key, value in self.context.items():
                parts.append(f"\n  {key}: {value}")

        if self.suggestions:
            parts.append("\n\nSuggestions:")
            for suggestion in self.suggestions:
                parts.append(f"\n  - {suggestion}")

        return "".join(parts)

    def __str__(self) -> str:
        return self._format_message()


class UnknownCommand(LineDispatchError):
    """A command name (or alias) did not resolve in a registry.

    The rendered text varies with nesting depth:

        Sorry, no such command 'badcmd'.
        Try one of: help, history, echo
        Or use 'help'.

    Args:
        name: The candidate name that failed ("" when nothing was typed)
        parent_path: Space-joined path of the enclosing branch, or None
            at the root
        candidates: Command names available at the failing level
        show_candidates: False when the level holds too many commands
            to enumerate
    """

    def __init__(
        self,
        name: str,
        parent_path: str | None = None,
        candidates: Sequence[str] = (),
        show_candidates: bool = True,
    ):
        self.name = name
        self.parent_path = parent_path
        self.candidates = list(candidates)
        self.show_candidates = show_candidates
        super().__init__(self._headline())

    @property
    def kind(self) -> str:
        return "command" if self.parent_path is None else "subcommand"

    @property
    def help_command(self) -> str:
        if self.parent_path is None:
            return "help"
        return f"{self.parent_path} help"

    def _headline(self) -> str:
        if self.name == "":
            return f"Missing {self.kind}."
        return f"Sorry, no such {self.kind} '{self.name}'."

    def _format_message(self) -> str:
        lines = [self._headline()]
        if self.show_candidates:
            lines.append("Try one of: " + ", ".join(self.candidates))
            lines.append(f"Or use '{self.help_command}'.")
        else:
            lines.append(
                f"Use '{self.help_command}' to enumerate commands."
            )
        return "\n".join(lines)


class MultiplyLinkedInstruction(LineDispatchError):
    """A second top-level link was requested for the same instruction."""

    def __init__(self, typed: str):
        self.typed = typed
        super().__init__(
            "Multiply linked instruction",
            context={"typed": typed},
            suggestions=[
                "Chain further continuations from inside the first one",
                "Use Instruction.link() for nested continuations",
            ],
        )


class ActionFault(LineDispatchError):
    """Wraps an exception raised by a command action."""

    def __init__(self, command: str, original: BaseException):
        self.command = command
        self.original = original
        super().__init__(f"{type(original).__name__}: {original}")

    def _format_message(self) -> str:
        # Rendered as instruction output, so keep it to a single line.
        return self.message
