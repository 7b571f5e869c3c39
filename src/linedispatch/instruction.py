# LineDispatch — Command Dispatch and Line-Interpreter Core
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Instruction: one typed line, its resolution, output and completion state.

Lifecycle:
- pending: created and resolved, ``complete`` is False
- executing: the action runs with the instruction in the context's
  "currently executing" slot
- complete: when the action returns with no outstanding link, or when the
  last outstanding linked continuation has fired

``error`` is sticky and does not stop further output capture. Historical
instructions (restored from persistence) are created complete and are
never resolved or executed.
"""

from __future__ import annotations

import warnings
from collections.abc import Callable
from contextlib import nullcontext
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any

from .crash import write_crash_log
from .exceptions import ActionFault, MultiplyLinkedInstruction
from .resolver import SUGGESTION_LIMIT, resolve

if TYPE_CHECKING:
    from .interfaces import ExecutionContext  # pragma: no cover
    from .registry import Command, Registry  # pragma: no cover

# Appended after incomplete output so later output starts on its own line
SEPARATOR = "\n"


@dataclass(frozen=True)
class OutputChunk:
    text: str
    error: bool = False
    complete: bool = True


OutputCallback = Callable[[OutputChunk], None]
CompleteCallback = Callable[["Instruction"], None]


def _parse_time(value: Any) -> datetime | None:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        return None


class Instruction:
    """Wrapper for something that the user typed."""

    def __init__(
        self,
        typed: str,
        registry: Registry | None = None,
        suggestion_limit: int = SUGGESTION_LIMIT,
    ):
        self.typed = (typed or "").strip()
        self.chunks: list[OutputChunk] = []
        self.command: Command | None = None
        self.args: Any = None
        self.resolution_error = None
        self.fault: ActionFault | None = None
        self.error = False
        self.element: Any = None
        self.hide_output = False
        self.end: datetime | None = None
        self.linked: Callable[..., Any] | None = None

        self._callbacks: list[OutputCallback] = []
        self._complete_callbacks: list[CompleteCallback] = []
        self._outstanding = 0
        self._context: ExecutionContext | None = None

        # Without a registry there is nothing to resolve against: this is
        # a history entry restored from storage.
        if registry is not None:
            self.start: datetime | None = datetime.now()
            self.complete = False
            self.historical = False

            resolution = resolve(
                self.typed, registry, suggestion_limit=suggestion_limit
            )
            if resolution.ok:
                self.command = resolution.command
                self.args = resolution.args
            else:
                self.resolution_error = resolution.error
                self.error = True
        else:
            self.start = None
            self.complete = True
            self.historical = True

    # -----------------------
    # Serialization
    # -----------------------

    @classmethod
    def historical_from(cls, typed: str) -> Instruction:
        return cls(typed)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Instruction:
        """Build a historical instruction from its serialized form."""
        instruction = cls(str(data.get("typed") or ""))
        output = data.get("output") or ""
        if output:
            instruction.chunks.append(
                OutputChunk(str(output), error=bool(data.get("error")))
            )
        instruction.error = bool(data.get("error"))
        instruction.start = _parse_time(data.get("start"))
        instruction.end = _parse_time(data.get("end"))
        return instruction

    def to_dict(self) -> dict[str, Any]:
        """A version of this instruction suitable for serialization."""
        return {
            "typed": self.typed,
            "output": self.output,
            "error": self.error,
            "start": self.start.isoformat() if self.start else None,
            "end": self.end.isoformat() if self.end else None,
        }

    # -----------------------
    # Output
    # -----------------------

    @property
    def output(self) -> str:
        return "".join(
            chunk.text + ("" if chunk.complete else SEPARATOR)
            for chunk in self.chunks
        )

    @property
    def duration(self) -> float | None:
        """Seconds between start and end, when both are known."""
        if self.start is None or self.end is None:
            return None
        return (self.end - self.start).total_seconds()

    def add_output(self, text: Any) -> None:
        """Complete the instruction with successful output."""
        self._add_output(text, error=False, complete=True)

    def add_error_output(self, text: Any) -> None:
        """Complete the instruction with error output."""
        self._add_output(text, error=True, complete=True)

    def add_incomplete_output(self, text: Any) -> None:
        """Add successful output without completing the instruction."""
        self._add_output(text, error=False, complete=False)

    def add_usage_output(self, command: Command) -> None:
        """Complete the instruction with the command's usage text."""
        usage = command.usage or (
            f"no usage information found for {command.name}"
        )
        self._add_output(
            f"Usage: {command.name} {usage}", error=True, complete=True
        )

    def _add_output(self, text: Any, error: bool, complete: bool) -> None:
        if self.element is not None:
            # The display element replaces textual output
            return

        chunk = OutputChunk(str(text), error=error, complete=complete)
        self.chunks.append(chunk)
        self.hide_output = False
        if error:
            self.error = True

        newly_complete = complete and self._set_complete()

        for callback in list(self._callbacks):
            callback(chunk)

        if newly_complete:
            self._notify_complete()

    def on_output(self, callback: OutputCallback) -> Callable[[], None]:
        """Monitor output that goes to this instruction.

        The output so far is replayed chunk by chunk before the callback is
        registered for live output.

        Returns:
            A function that unregisters the callback
        """
        for chunk in list(self.chunks):
            callback(chunk)

        self._callbacks.append(callback)

        def unregister() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return unregister

    def on_complete(self, callback: CompleteCallback) -> None:
        """Call ``callback`` once the instruction completes."""
        if self.complete:
            callback(self)
        else:
            self._complete_callbacks.append(callback)

    def set_element(self, element: Any) -> None:
        """Hand the instruction a display element instead of text output.

        Commands doing this are assumed to provide their own progress
        indicators, so the instruction completes immediately.
        """
        self.element = element
        self.hide_output = False
        self.error = False
        if self._set_complete():
            self._notify_complete()

    # -----------------------
    # Completion
    # -----------------------

    def _set_complete(self) -> bool:
        if self.complete:
            return False
        self.complete = True
        self.end = datetime.now()
        return True

    def _notify_complete(self) -> None:
        callbacks, self._complete_callbacks = self._complete_callbacks, []
        for callback in callbacks:
            callback(self)

    def _finish(self) -> None:
        if self._set_complete():
            self._notify_complete()

    @property
    def outstanding(self) -> int:
        """Number of linked continuations that have not fired yet."""
        return self._outstanding

    # -----------------------
    # Execution
    # -----------------------

    def execute(self, context: ExecutionContext) -> None:
        """Run the resolved action inside ``context``.

        Faults raised by the action become error output. Only
        MultiplyLinkedInstruction propagates.
        """
        if self.historical:
            return

        self._context = context

        with context.lock:
            if self.resolution_error is not None:
                self.add_error_output(str(self.resolution_error))
                return

            assert self.command is not None
            previous = context.executing
            context.executing = self
            try:
                self.command.action(self, self.args, self.command)
            except MultiplyLinkedInstruction:
                raise
            except Exception as e:
                self.record_fault(e)
            finally:
                context.executing = previous
                if self._outstanding == 0:
                    self._finish()

    def record_fault(self, error: Exception) -> ActionFault:
        """Convert an exception raised by the action into error output."""
        name = self.command.name if self.command is not None else ""
        fault = ActionFault(name, error)
        fault.__cause__ = error
        self.fault = fault
        write_crash_log(error, typed=self.typed, command=name)
        self.add_error_output(str(fault))
        return fault

    def link(
        self, action: Callable[..., Any], top_level: bool = False
    ) -> Callable[..., Any]:
        """Make ``action`` part of this instruction's thread of execution.

        Each call adds one to the outstanding count. The returned
        continuation runs ``action`` with this instruction restored as
        "currently executing" and completes the instruction when the count
        drops to zero. It fires at most once.
        """
        self._outstanding += 1
        fired = False

        def linked(*args: Any, **kwargs: Any) -> Any:
            nonlocal fired
            context = self._context
            # Inner links may fire from several threads
            guard = context.lock if context is not None else nullcontext()
            with guard:
                if fired:
                    warnings.warn(
                        f"Continuation for '{self.typed}' fired twice",
                        RuntimeWarning,
                        stacklevel=3,
                    )
                    return None
                fired = True
                if self.linked is linked:
                    self.linked = None

                try:
                    if context is None:
                        return action(*args, **kwargs)
                    return context.resume(self, action, args, kwargs)
                finally:
                    self._outstanding -= 1
                    if self._outstanding == 0:
                        self._finish()

        if top_level:
            self.linked = linked
        return linked

    def __repr__(self) -> str:
        state = "complete" if self.complete else "pending"
        if self.error:
            state += ", error"
        return f"Instruction({self.typed!r}, {state})"
