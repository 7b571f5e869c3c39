# LineDispatch — Command Dispatch and Line-Interpreter Core
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
LineDispatch CLI entry point and REPL loop.

Design:
- CLI owns process startup and history store selection.
- Interpreter is the session engine (config+registry+history injected).
- UI is terminal-friendly PromptSession (keeps scrollback + copy/select).
"""

from __future__ import annotations

import os
from collections.abc import Callable
from typing import Any

from . import config
from .builtins import install_builtins
from .crash import write_crash_log
from .db import ensure_schema
from .history import DEFAULT_MAX_ENTRIES, History
from .instruction import Instruction, OutputChunk
from .interfaces import HistoryStore
from .interpreter import Interpreter
from .store import FileHistoryStore, MemoryHistoryStore, SQLiteHistoryStore
from .ui import PromptToolkitUI
from .utils import format_chunk

PLAIN_UI_ENV = "LINEDISPATCH_PLAIN_UI"


def build_store(cfg: Any) -> HistoryStore:
    """Create the history store named by ``history.store``.

    Raises:
        ValueError: If the configured store kind is unknown
    """
    kind = str(config.cfg_get_path(cfg, "history.store", "file"))

    if kind == "memory":
        seed = config.cfg_get_path(cfg, "history.seed", [])
        return MemoryHistoryStore(seed if isinstance(seed, list) else [])

    data_root = config.get_data_root()

    if kind == "file":
        filename = str(
            config.cfg_get_path(cfg, "history.filename", "command.history")
        )
        return FileHistoryStore(config.history_file_path(data_root, filename))

    if kind == "sqlite":
        db_path = config.history_db_path(data_root)
        ensure_schema(db_path)
        return SQLiteHistoryStore(db_path)

    raise ValueError(
        f"Unknown history store '{kind}' (expected memory, file or sqlite)"
    )


def run_repl(
    interpreter: Interpreter,
    ui: PromptToolkitUI | None = None,
    input_fn: Callable[[str], str] = input,
    output_fn: Callable[[str], None] = print,
) -> None:
    """Run the standard LineDispatch REPL loop."""

    def write(text: str) -> None:
        if ui is not None:
            ui.write(text)
        else:
            output_fn(text.rstrip("\n"))

    def render(instruction: Instruction, chunk: OutputChunk) -> None:
        write(format_chunk(chunk))

    if interpreter.output_fn is None:
        interpreter.output_fn = render

    while interpreter.running:
        try:
            prompt = interpreter.prompt()

            if ui is not None:
                line = ui.read(prompt)
            else:
                line = input_fn(prompt + " ")

            line = (line or "").strip()
            if not line:
                continue

            try:
                instruction = interpreter.submit(line)

                if (instruction is not None and
                        instruction.element == config.UI_CLEAR):
                    if ui is not None:
                        ui.clear()
                    else:
                        output_fn("\033[2J\033[H")

            except Exception as e:
                # Unhandled exception - write crash log
                write_crash_log(e, typed=line, where="repl")
                # Show error to user
                write(
                    f"[ERROR] Unhandled exception: "
                    f"{type(e).__name__}: {e}\n"
                )
                # Continue session

        except (KeyboardInterrupt, EOFError):
            write("\nBye!\n")
            break


def main() -> None:
    """Main entry point for LineDispatch CLI."""
    cfg = config.load_system_config()

    max_entries = int(
        config.cfg_get_path(cfg, "history.max_entries", DEFAULT_MAX_ENTRIES)
    )
    history = History(store=build_store(cfg), max_entries=max_entries)

    # Explicit wiring: config + history injected into interpreter
    interpreter = Interpreter(history=history, config=cfg)
    install_builtins(interpreter)

    start_output = interpreter.start()

    # If user explicitly disables prompt_toolkit UI:
    if os.environ.get(PLAIN_UI_ENV) == "1":
        if start_output:
            print(start_output)
        run_repl(interpreter)
        return

    # Default: PromptToolkitUI (keeps terminal scrollback/copy/select)
    ui = PromptToolkitUI(interpreter)

    # Print startup message into the UI (ensure it ends cleanly)
    if start_output:
        ui.write(start_output)
        if not start_output.endswith("\n"):
            ui.write("\n")

    run_repl(interpreter, ui=ui)
