# LineDispatch — Command Dispatch and Line-Interpreter Core
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Built-in commands.

install_builtins() registers the session commands every interpreter
ships with:

    help [command]          list commands, or describe one
    history [list]          numbered history listing (default)
    history show <n>        one entry with its output
    history remove <n>      drop one entry
    history clear           drop every entry
    alias [name expansion]  list, show or define aliases
    unalias <name>          remove an alias
    echo <text...>          print the text
    wait <seconds> [msg]    finish after a delay (runs in the background)
    clear                   clear the screen
    exit | quit             end the session
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Any

from .config import UI_CLEAR, cfg_get_path
from .registry import BranchCommand, Command, Registry
from .resolver import unknown_command
from .tokenizer import split_words
from .utils import format_instructions, format_table

if TYPE_CHECKING:
    from .instruction import Instruction  # pragma: no cover
    from .interpreter import Interpreter  # pragma: no cover


# ----------------------------
# Help
# ----------------------------


def describe_registry(registry: Registry) -> str:
    """Table of the commands at one registry level."""
    rows = []
    for command in registry:
        name = command.name
        if command.aliases:
            name += f" ({', '.join(command.aliases)})"
        rows.append([name, command.usage, command.description])

    title = f"Commands for '{registry.path}':" if registry.path else (
        "Commands:"
    )
    return format_table(["name", "usage", "description"], rows, title=title)


def describe_command(command: Command | BranchCommand) -> str:
    lines = [f"Usage: {command.name} {command.usage}".rstrip()]
    if command.description:
        lines.append(command.description)
    if command.aliases:
        lines.append(f"Aliases: {', '.join(command.aliases)}")
    if isinstance(command, BranchCommand):
        lines.append("")
        lines.append(describe_registry(command.registry))
    return "\n".join(lines)


def add_help(registry: Registry) -> Command:
    """Register a ``help`` command listing the commands of ``registry``."""

    def _help(instruction: Instruction, args: Any, command: Command) -> None:
        instruction.add_output(describe_registry(registry))

    return registry.register(  # type: ignore[return-value]
        Command(
            name="help",
            action=_help,
            description=f"List the '{registry.path}' subcommands",
        )
    )


def _help_action(registry: Registry):
    def _help(instruction: Instruction, args: Any, command: Command) -> None:
        words = split_words(args)
        if not words:
            instruction.add_output(describe_registry(registry))
            return

        level = registry
        parent = None
        found = None
        for word in words:
            lookup = level.lookup(word)
            if lookup is None:
                error = unknown_command(word, level, parent)
                instruction.add_error_output(str(error))
                return
            found = lookup.command
            if not isinstance(found, BranchCommand):
                break
            parent = found
            level = found.registry

        instruction.add_output(describe_command(found))

    return _help


# ----------------------------
# History
# ----------------------------


def _entry_at(
    interpreter: Interpreter, instruction: Instruction, raw: Any
) -> Instruction | None:
    """Resolve a 1-based history number, reporting failures as errors."""
    try:
        number = int(str(raw).strip())
    except ValueError:
        instruction.add_usage_output(instruction.command)
        return None

    entries = interpreter.history.get_instructions()
    if number < 1 or number > len(entries):
        instruction.add_error_output(f"No history entry {number}.")
        return None
    return entries[number - 1]


def _install_history(interpreter: Interpreter) -> None:
    history = interpreter.history
    nested = interpreter.registry.branch(
        "history",
        default="list",
        usage="[list|show <n>|remove <n>|clear]",
        description="Show and edit the command history",
    )

    @nested.command("list", description="List previous commands")
    def _list(instruction: Instruction, args: Any, command: Command) -> None:
        entries = [i for i in history if i is not instruction]
        if not entries:
            instruction.add_output("No history yet.")
            return
        mode = cfg_get_path(
            interpreter.config, "history.time_mode", "history"
        )
        instruction.add_output(
            format_instructions(entries, mode=mode, show_output=False)
        )

    @nested.command(
        "show",
        takes=["number"],
        usage="<n>",
        description="Show one history entry with its output",
    )
    def _show(instruction: Instruction, args: Any, command: Command) -> None:
        entry = _entry_at(interpreter, instruction, args)
        if entry is None:
            return
        detail = format_instructions([entry], mode="blank")
        instruction.add_output(detail)

    @nested.command(
        "remove",
        takes=["number"],
        usage="<n>",
        description="Remove one history entry",
    )
    def _remove(
        instruction: Instruction, args: Any, command: Command
    ) -> None:
        entry = _entry_at(interpreter, instruction, args)
        if entry is None:
            return
        history.remove(entry)
        history.persist()
        instruction.add_output(f"Removed '{entry.typed}'.")

    @nested.command("clear", description="Forget every history entry")
    def _clear(instruction: Instruction, args: Any, command: Command) -> None:
        history.clear()
        instruction.add_output("History cleared.")

    add_help(nested)


# ----------------------------
# Aliases
# ----------------------------


def _install_aliases(interpreter: Interpreter) -> None:
    registry = interpreter.registry

    @registry.command(
        "alias",
        takes=["alias", "expansion"],
        variadic=True,
        usage="[name [command args...]]",
        description="List, show or define command aliases",
        complete_text="alias name command [args...]",
    )
    def _alias(instruction: Instruction, args: Any, command: Command) -> None:
        words = list(args.varargs or [])

        if not words:
            if not registry.aliases:
                instruction.add_output("No aliases defined.")
                return
            rows = [[a, r.expansion] for a, r in registry.aliases.items()]
            instruction.add_output(
                format_table(["alias", "expansion"], rows)
            )
            return

        name = words[0]
        if len(words) == 1:
            record = registry.aliases.get(name)
            if record is None:
                instruction.add_error_output(f"No alias '{name}'.")
            else:
                instruction.add_output(f"{name}: {record.expansion}")
            return

        target = words[1]
        if name in registry.commands:
            instruction.add_error_output(
                f"'{name}' is a command and cannot be an alias."
            )
            return
        if target == name or target not in registry.commands:
            instruction.add_error_output(
                str(unknown_command(target, registry))
            )
            return

        record = registry.add_alias(name, " ".join(words[1:]))
        instruction.add_output(f"Saved alias {name} -> {record.expansion}")

    @registry.command(
        "unalias",
        takes=["alias"],
        usage="<name>",
        description="Remove an alias",
    )
    def _unalias(
        instruction: Instruction, args: Any, command: Command
    ) -> None:
        name = (args or "").strip()
        if not name:
            instruction.add_usage_output(command)
            return
        if registry.remove_alias(name):
            instruction.add_output(f"Removed alias {name}")
        else:
            instruction.add_error_output(f"No alias '{name}'.")


# ----------------------------
# Misc
# ----------------------------


def _install_misc(interpreter: Interpreter) -> None:
    registry = interpreter.registry

    @registry.command(
        "echo",
        variadic=True,
        usage="<text...>",
        description="Print the given text",
    )
    def _echo(instruction: Instruction, args: Any, command: Command) -> None:
        instruction.add_output(args.rawinput or "")

    @registry.command(
        "wait",
        takes=["seconds", "message"],
        variadic=True,
        usage="<seconds> [message...]",
        description="Complete after a delay",
    )
    def _wait(instruction: Instruction, args: Any, command: Command) -> None:
        words = list(args.varargs or [])
        try:
            seconds = float(words[0])
        except (IndexError, ValueError):
            instruction.add_usage_output(command)
            return
        if seconds < 0:
            instruction.add_usage_output(command)
            return

        message = " ".join(words[1:]) or f"Waited {seconds:g} sec"
        instruction.add_incomplete_output(f"Waiting {seconds:g} sec ...")

        done = interpreter.link(lambda: interpreter.add_output(message))
        timer = threading.Timer(seconds, done)
        timer.daemon = True
        timer.start()

    @registry.command(
        "clear",
        description="Clear the screen",
        with_key="c-l",
    )
    def _clear(instruction: Instruction, args: Any, command: Command) -> None:
        instruction.set_element(UI_CLEAR)

    @registry.command(
        "exit",
        aliases=["quit"],
        description="End the session",
    )
    def _exit(instruction: Instruction, args: Any, command: Command) -> None:
        instruction.add_output(interpreter.stop())


def install_builtins(interpreter: Interpreter) -> Registry:
    """Register the built-in commands on ``interpreter.registry``."""
    registry = interpreter.registry
    registry.register(
        Command(
            name="help",
            action=_help_action(registry),
            takes=["command"],
            usage="[command]",
            description="List commands, or describe one",
            complete_text="help [command]",
            with_key="f1",
        )
    )
    _install_history(interpreter)
    _install_aliases(interpreter)
    _install_misc(interpreter)
    return registry
