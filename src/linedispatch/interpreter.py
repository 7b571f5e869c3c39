# LineDispatch — Command Dispatch and Line-Interpreter Core
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
LineDispatch interpreter.

The session engine: owns the registry, the history and the single
"currently executing" slot that instructions and their continuations run
in.

Important boundary:
- Interpreter does not load YAML or discover defaults.
- Interpreter consumes the injected ConfigModel.
- Rendering is pushed out through output_fn / hint_fn, wired by UI/CLI.

Threading:
- Continuations may be fired from timer or worker threads. execute() and
  every continuation body run under ``lock`` so at most one instruction
  is executing at a time.
"""

from __future__ import annotations

import threading
import time
import warnings
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from .completion import Suggestion, complete, find_completions
from .config import ANSI_COLORS, cfg_get_path
from .exceptions import MultiplyLinkedInstruction
from .history import DEFAULT_MAX_ENTRIES, History
from .instruction import Instruction, OutputChunk
from .interfaces import ConfigModel
from .registry import CommandDescriptor, Registry
from .resolver import SUGGESTION_LIMIT

MESSAGE_KINDS = ("output", "error", "hint")


@dataclass(eq=False)
class Interpreter:
    """LineDispatch session engine."""

    registry: Registry = field(default_factory=Registry)
    history: History = field(default_factory=History)
    config: ConfigModel | None = None

    running: bool = False
    executing: Instruction | None = None

    # Transient hint state
    hint: str | None = None
    _hint_at: float = 0.0

    # Derived from config
    suggestion_limit: int = SUGGESTION_LIMIT
    hint_timeout: float = 4.6
    autocomplete: bool = False

    # ---- Rendering hooks (wired by UI/CLI) ----
    output_fn: Callable[[Instruction, OutputChunk], None] | None = None
    hint_fn: Callable[[str | None], None] | None = None

    lock: Any = field(default_factory=threading.RLock, repr=False)

    def __post_init__(self) -> None:
        if self.config is None:
            return

        self.suggestion_limit = int(
            cfg_get_path(
                self.config,
                "completion.suggestion_limit",
                self.suggestion_limit,
            )
        )
        self.autocomplete = bool(
            cfg_get_path(
                self.config, "completion.autocomplete", self.autocomplete
            )
        )
        self.hint_timeout = float(
            cfg_get_path(self.config, "ui.hint_timeout", self.hint_timeout)
        )
        max_entries = int(
            cfg_get_path(
                self.config, "history.max_entries", DEFAULT_MAX_ENTRIES
            )
        )
        self.history.resize(max(1, max_entries))

    # -----------------------
    # Session
    # -----------------------

    def start(self) -> str:
        """Start a session: restore history, return the welcome text."""
        self.running = True
        self.history.restore()

        welcome = cfg_get_path(self.config, "system.welcome.message", "")
        return welcome.strip() if isinstance(welcome, str) else ""

    def stop(self) -> str:
        """End the session, returning the exit text."""
        self.running = False
        message = cfg_get_path(self.config, "system.exit.message", "Bye!")
        return str(message)

    def prompt(self) -> str:
        """Return the current prompt string with ANSI colors."""
        text = str(cfg_get_path(self.config, "system.prompt", ">"))
        color_name = str(
            cfg_get_path(self.config, "system.prompt_color", "cyan")
        )
        color = ANSI_COLORS.get(color_name, ANSI_COLORS["reset"])
        reset = ANSI_COLORS["reset"]
        return f"{color}{text}{reset}"

    # -----------------------
    # Dispatch
    # -----------------------

    def submit(self, typed: str, hidden: bool = False) -> Instruction | None:
        """Resolve and execute one line.

        Args:
            typed: The line as typed
            hidden: Execute without recording in history

        Returns:
            The Instruction, or None for an empty line
        """
        if not typed or not typed.strip():
            return None

        instruction = Instruction(
            typed, self.registry, suggestion_limit=self.suggestion_limit
        )

        if not hidden:
            self.history.add(instruction)
            # Save again once the output is known
            instruction.on_complete(lambda _i: self.history.persist())

        def _forward(chunk: OutputChunk) -> None:
            self.hide_hint()
            if self.output_fn is not None:
                self.output_fn(instruction, chunk)

        instruction.on_output(_forward)
        instruction.execute(self)
        return instruction

    def execute_event(
        self, name: str, args: str | None = None
    ) -> Instruction | None:
        """Dispatch ``name`` with literal argument text (key bindings)."""
        typed = f"{name} {args}" if args else name
        return self.submit(typed)

    @property
    def key_bindings(self) -> dict[str, str]:
        """Map of key -> command path for every descriptor with with_key."""
        bindings: dict[str, str] = {}
        for path, descriptor in self.registry.walk():
            key = getattr(descriptor, "with_key", None)
            if key:
                bindings[key] = path
        return bindings

    # -----------------------
    # Completion + hints
    # -----------------------

    def complete(self, partial: str) -> Suggestion:
        """Complete ``partial``, showing any hint the match carries."""
        suggestion = complete(partial, self.registry)
        if suggestion.hint:
            self.show_hint(suggestion.hint)
        return suggestion

    def tab_complete(self, text: str) -> str:
        """Return the line after pressing Tab on ``text``."""
        suggestion = self.complete(text)
        if suggestion.value is not None:
            return suggestion.value
        if suggestion.ambiguous:
            self.show_hint(", ".join(suggestion.matches))
        return text

    def typing_hint(self, text: str) -> str | None:
        """React to a keystroke.

        Returns:
            A replacement line when autocomplete fills it, else None
        """
        found = find_completions(text, self.registry)
        matches = found.matches
        if not matches:
            return None

        if len(matches) == 1 and self.autocomplete:
            suggestion = self.complete(text)
            if not suggestion.hint:
                self.hide_hint()
            return suggestion.value

        if len(matches) == 1:
            typed_word = text[len(found.root):].strip()
            if matches[0] != typed_word:
                self.show_hint(", ".join(matches))
                return None
            command = (
                found.registry.get(matches[0]) if found.registry else None
            )
            if command is not None and command.takes_args:
                return self.complete(text).value
            self.hide_hint()
            return None

        self.show_hint(", ".join(matches))
        return None

    def show_hint(self, text: str) -> None:
        self.hint = text
        self._hint_at = time.monotonic()
        if self.hint_fn is not None:
            self.hint_fn(text)

    def hide_hint(self) -> None:
        if self.hint is None:
            return
        self.hint = None
        if self.hint_fn is not None:
            self.hint_fn(None)

    def current_hint(self) -> str | None:
        """The visible hint, dropping it once hint_timeout has passed."""
        if self.hint is None:
            return None
        if time.monotonic() - self._hint_at > self.hint_timeout:
            self.hide_hint()
        return self.hint

    def show_usage(self, command: CommandDescriptor) -> None:
        """Show the usage of ``command`` as a hint."""
        usage = getattr(command, "usage", "") or (
            f"no usage information found for {command.name}"
        )
        self.show_hint(f"Usage: {command.name} {usage}")

    # -----------------------
    # Output forwarding
    # -----------------------

    def _target(self, operation: str) -> Instruction | None:
        if self.executing is None:
            warnings.warn(
                f"{operation}() called with no executing instruction",
                RuntimeWarning,
                stacklevel=3,
            )
        return self.executing

    def add_output(self, text: Any) -> None:
        target = self._target("add_output")
        if target is not None:
            target.add_output(text)

    def add_error_output(self, text: Any) -> None:
        target = self._target("add_error_output")
        if target is not None:
            target.add_error_output(text)

    def add_incomplete_output(self, text: Any) -> None:
        target = self._target("add_incomplete_output")
        if target is not None:
            target.add_incomplete_output(text)

    def set_element(self, element: Any) -> None:
        target = self._target("set_element")
        if target is not None:
            target.set_element(element)

    def message(
        self, msg: Any, kind: str = "output", incomplete: bool = False
    ) -> None:
        """Route a message event to output, error output or the hint."""
        if kind not in MESSAGE_KINDS:
            raise ValueError(
                f"Unknown message kind '{kind}' "
                f"(expected one of: {', '.join(MESSAGE_KINDS)})"
            )
        if msg is None or msg == "":
            warnings.warn(
                f"Empty {kind} message dropped", RuntimeWarning, stacklevel=2
            )
            return

        if kind == "hint":
            self.show_hint(str(msg))
        elif kind == "error":
            self.add_error_output(msg)
        elif incomplete:
            self.add_incomplete_output(msg)
        else:
            self.add_output(msg)

    # -----------------------
    # Linking
    # -----------------------

    def link(self, action: Callable[..., Any]) -> Callable[..., Any]:
        """Bind ``action`` to the executing instruction's lifetime.

        Raises:
            MultiplyLinkedInstruction: If the executing instruction
                already has an outstanding top-level continuation
        """
        instruction = self.executing
        if instruction is None:
            return action

        if instruction.linked is not None:
            raise MultiplyLinkedInstruction(instruction.typed)

        return instruction.link(action, top_level=True)

    def resume(
        self,
        instruction: Instruction,
        action: Callable[..., Any],
        args: tuple[Any, ...],
        kwargs: dict[str, Any],
    ) -> Any:
        """Run a continuation with ``instruction`` executing."""
        with self.lock:
            previous = self.executing
            if previous is not None and previous is not instruction:
                warnings.warn(
                    f"Nested instruction contexts: '{instruction.typed}' "
                    f"resumed while '{previous.typed}' is executing",
                    RuntimeWarning,
                    stacklevel=3,
                )

            self.executing = instruction
            try:
                return action(*args, **kwargs)
            except MultiplyLinkedInstruction:
                raise
            except Exception as e:
                instruction.record_fault(e)
                return None
            finally:
                self.executing = previous

