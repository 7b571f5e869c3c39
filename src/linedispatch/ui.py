# LineDispatch — Command Dispatch and Line-Interpreter Core
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from typing import TYPE_CHECKING

from prompt_toolkit import PromptSession
from prompt_toolkit.application import run_in_terminal
from prompt_toolkit.application.current import set_app
from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.filters import has_completions
from prompt_toolkit.formatted_text import ANSI
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.patch_stdout import patch_stdout
from prompt_toolkit.shortcuts import clear as pt_clear
from prompt_toolkit.shortcuts import print_formatted_text
from prompt_toolkit.styles import Style

from .completion import find_completions
from .config import UI_CLEAR, cfg_get_path

if TYPE_CHECKING:
    from .interpreter import Interpreter  # pragma: no cover


# ----------------------------
# Config helpers
# ----------------------------


def _cfg_get_path(interpreter: Interpreter | None, path: str, default):
    if interpreter is None:
        return default
    return cfg_get_path(getattr(interpreter, "config", None), path, default)


def _cfg_bool(
    interpreter: Interpreter | None, path: str, default: bool
) -> bool:
    return bool(_cfg_get_path(interpreter, path, default))


def _cfg_dict(
    interpreter: Interpreter | None, path: str, default: dict
) -> dict:
    val = _cfg_get_path(interpreter, path, default)
    return val if isinstance(val, dict) else default


# ----------------------------
# Theme / Style
# ----------------------------


def _default_style_dict() -> dict[str, str]:
    return {
        # completion menu
        "completion-menu": "bg:#111111 #d0d0d0",
        "completion-menu.completion": "bg:#111111 #d0d0d0",
        "completion-menu.completion.current": "bg:#303030 #ffffff bold",
        "completion-menu.meta.completion": "bg:#111111 #808080",
        "completion-menu.meta.completion.current": "bg:#303030 #a0a0a0",
        "scrollbar.background": "bg:#202020",
        "scrollbar.button": "bg:#505050",
        # toolbar base (prompt_toolkit uses this class name)
        "bottom-toolbar": "bg:#0b0b0b #d0d0d0",
        # hint line
        "linedispatch.hint": "bg:#0b0b0b #a0a0a0",
        "linedispatch.hint.label": "bg:#0b0b0b #808080",
    }


def _build_style(interpreter: Interpreter | None) -> Style:
    base = _default_style_dict()
    overrides = _cfg_dict(interpreter, "ui.theme.style", {})
    # only keep string->string
    for k, v in list(overrides.items()):
        if isinstance(k, str) and isinstance(v, str):
            base[k] = v
    return Style.from_dict(base)


# ----------------------------
# Command completer
# ----------------------------


class RegistryCompleter(Completer):
    """Completes command names, aliases and subcommands from the registry."""

    def __init__(self, interpreter: Interpreter | None) -> None:
        self.interpreter = interpreter

    def get_completions(
        self, document, complete_event
    ) -> Iterable[Completion]:
        if self.interpreter is None:
            return

        before = (document.text_before_cursor or "").lstrip()
        if not before:
            return

        found = find_completions(before, self.interpreter.registry)
        level = found.registry
        if level is None:
            return

        token = before[len(found.root):].lstrip()
        # Only the word under the cursor is completed, never arguments
        if " " in token:
            return

        for match in found.matches:
            alias = level.aliases.get(match)
            command = level.get(match)
            if command is not None:
                meta = command.description
            elif alias is not None:
                meta = f"→ {alias.expansion}"
            else:
                meta = ""
            yield Completion(
                match, start_position=-len(token), display_meta=meta
            )


# ----------------------------
# PromptSession UI + hint toolbar
# ----------------------------


class PromptToolkitUI:
    """
    Terminal UI on a PromptSession:
      - Keeps normal terminal scrollback + drag-select copy.
      - Completion menu from the command registry.
      - Bottom toolbar showing the interpreter's current hint.
      - Hotkeys:
          * Tab: apply the single suggestion, else cycle the menu
          * Ctrl+N / Ctrl+P: next / previous history entry
          * Ctrl+U: clear the line
          * Escape: hide the hint
          * every with_key binding declared by a command
    """

    def __init__(self, interpreter: Interpreter | None = None) -> None:
        self.interpreter = interpreter
        self.session: PromptSession[str] | None = None
        self._completer: RegistryCompleter | None = None
        self._style = _build_style(interpreter)

        # Track whether we ended on a newline (to prevent prompt mangling)
        self._needs_newline_before_prompt = False

        # Line text before the latest change
        self._last_text = ""

    # ---------- toolbar rendering ----------

    def _bottom_toolbar(self):
        if not _cfg_bool(self.interpreter, "ui.toolbar.enabled", True):
            return ""
        if self.interpreter is None:
            return ""

        hint = self.interpreter.current_hint()
        if not hint:
            return ""

        return [
            ("class:linedispatch.hint.label", "  "),
            ("class:linedispatch.hint", hint),
            ("class:linedispatch.hint.label", "  "),
        ]

    # ---------- session ----------

    def _ensure_session(self) -> None:
        if self.session is not None:
            return

        key_bindings = (
            self.build_key_bindings(self.interpreter)
            if self.interpreter else None
        )
        self._completer = RegistryCompleter(self.interpreter)

        self.session = PromptSession(
            key_bindings=key_bindings,
            completer=self._completer,
            complete_while_typing=True,
            style=self._style,
            bottom_toolbar=self._bottom_toolbar,
        )

        if self.interpreter is not None:
            self.session.default_buffer.on_text_changed += (
                self._on_text_changed
            )

    def _on_text_changed(self, buf) -> None:
        assert self.interpreter is not None
        previous, self._last_text = self._last_text, buf.text
        # Only typing reacts; deleting must not re-append a completion
        if len(buf.text) <= len(previous):
            return
        value = self.interpreter.typing_hint(buf.text)
        if value is not None and value != buf.text:
            self._set_line(buf, value)

    # ---------- public API ----------

    def read(self, prompt: str) -> str:
        self._ensure_session()
        assert self.session is not None

        # If last output didn't end with newline, insert one
        # before prompt redraw
        if self._needs_newline_before_prompt:
            print_formatted_text(
                ANSI("\n"), style=self._style, end=""
            )
            self._needs_newline_before_prompt = False

        with patch_stdout():
            # prompt contains ANSI from interpreter.prompt(),
            # so preserve it
            return self.session.prompt(ANSI(prompt + " "))

    def write(self, text: str) -> None:
        """Write EXACTLY what we receive (no extra newline).

        Track prompt safety.
        """
        if not text:
            return

        app = self._app_running_elsewhere()
        if app is not None:
            # Continuations fire on worker threads while the prompt is
            # live. Print from the app loop, above the prompt.
            def _print_above_prompt() -> None:
                with set_app(app):
                    run_in_terminal(lambda: self._print(text))

            app.loop.call_soon_threadsafe(_print_above_prompt)
            return

        self._print(text)

    def _print(self, text: str) -> None:
        print_formatted_text(ANSI(text), style=self._style, end="")
        self._needs_newline_before_prompt = not text.endswith("\n")

    def _app_running_elsewhere(self):
        """The prompt app when it runs on a loop other than this thread's."""
        app = getattr(self.session, "app", None)
        if app is None or not app.is_running or app.loop is None:
            return None
        try:
            current = asyncio.get_running_loop()
        except RuntimeError:
            current = None
        return None if current is app.loop else app

    def clear(self) -> None:
        pt_clear()

    # ---------- keybindings ----------

    def _set_line(self, buf, text: str) -> None:
        # Programmatic edits are not typing
        self._last_text = text
        buf.text = text
        buf.cursor_position = len(text)

    def build_key_bindings(self, interpreter: Interpreter) -> KeyBindings:
        kb = KeyBindings()

        def _history_next(event) -> None:
            entry = interpreter.history.next()
            if entry is not None:
                self._set_line(event.current_buffer, entry.typed)

        def _history_previous(event) -> None:
            entry = interpreter.history.previous()
            if entry is not None:
                self._set_line(event.current_buffer, entry.typed)

        kb.add("c-n")(_history_next)
        kb.add("c-p")(_history_previous)
        kb.add("down", filter=~has_completions)(_history_next)
        kb.add("up", filter=~has_completions)(_history_previous)

        @kb.add("c-u")
        def _(event):
            event.current_buffer.reset()

        @kb.add("escape", eager=True)
        def _(event):
            interpreter.hide_hint()
            event.app.invalidate()

        @kb.add("tab")
        def _(event):
            buf = event.current_buffer
            text = buf.text
            value = interpreter.tab_complete(text)
            if value != text:
                self._set_line(buf, value)
            else:
                buf.complete_next()
            event.app.invalidate()

        for key, path in interpreter.key_bindings.items():

            @kb.add(key)
            def _(event, path=path):
                def _run() -> None:
                    instruction = interpreter.execute_event(path)
                    if (instruction is not None and
                            instruction.element == UI_CLEAR):
                        self.clear()

                run_in_terminal(_run)

        return kb
