# tests/test_interpreter.py
"""
Interpreter tests with dependency injection.
Interpreter only dispatches - commands and stores are injected.
"""
from __future__ import annotations

import threading
from pathlib import Path
from typing import Any

import pytest

import linedispatch.interpreter as interpreter_mod
from linedispatch.config import YAMLConfig
from linedispatch.exceptions import MultiplyLinkedInstruction
from linedispatch.history import History
from linedispatch.instruction import Instruction, OutputChunk
from linedispatch.interpreter import Interpreter
from linedispatch.registry import Command, Registry

# ----------------------------------------------------------------
# Boundary tests (hard gates)
# ----------------------------------------------------------------


def test_interpreter_module_does_not_touch_schema_or_yaml() -> None:
    """
    HARD BOUNDARY:
    - Interpreter must not create/ensure/migrate schema.
    - Interpreter must not load YAML; it consumes the injected config.
    """
    text = Path(interpreter_mod.__file__).read_text(encoding="utf-8")

    forbidden_substrings = [
        "from .db import",
        "import sqlite3",
        "CREATE TABLE",
        "import yaml",
        "load_system_config",
    ]
    hits = [s for s in forbidden_substrings if s in text]
    assert not hits, f"Interpreter crossed a boundary: {hits}"


# ----------------------------------------------------------------
# Fakes
# ----------------------------------------------------------------


class FakeStore:
    def __init__(self, loaded: list[Instruction] | None = None):
        self.loaded = loaded or []
        self.saves: list[list[dict]] = []

    def load(self) -> list[Instruction]:
        return list(self.loaded)

    def save(self, instructions) -> None:
        self.saves.append([i.to_dict() for i in instructions])


def _noop(instruction, args, command) -> None:
    return None


def _five_command_registry() -> Registry:
    registry = Registry()
    for name in ("ls", "cd", "pwd", "cat", "echo"):
        registry.register(Command(name=name, action=_noop))
    return registry


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def interp(store: FakeStore) -> Interpreter:
    registry = Registry()

    @registry.command("say", takes=["text"])
    def say(instruction, args, command):
        instruction.add_output(args)

    @registry.command("boom")
    def boom(instruction, args, command):
        raise ValueError("broken")

    return Interpreter(registry=registry, history=History(store=store))


# ----------------------------------------------------------------
# Submit
# ----------------------------------------------------------------


def test_submit_empty_returns_none_and_history_unchanged(
    interp: Interpreter, store: FakeStore
) -> None:
    interp.submit("say one")
    before = interp.history.get_instructions()

    assert interp.submit("") is None
    assert interp.submit("   ") is None
    assert interp.history.get_instructions() == before
    assert len(store.saves) == 2


def test_submit_unknown_command_against_five_commands() -> None:
    interp = Interpreter(registry=_five_command_registry())
    instruction = interp.submit("badcmd")

    assert instruction is not None
    assert instruction.error
    assert instruction.complete
    assert "no such command 'badcmd'" in instruction.output
    for name in ("ls", "cd", "pwd", "cat", "echo"):
        assert name in instruction.output
    assert interp.history.last() is instruction


def test_submit_runs_action_and_records_history(
    interp: Interpreter, store: FakeStore
) -> None:
    instruction = interp.submit("say hello world")

    assert instruction.output == "hello world"
    assert interp.history.last() is instruction
    assert interp.executing is None
    # once on add, once on completion
    assert store.saves[-1][-1]["output"] == "hello world"


def test_hidden_submit_is_not_recorded(interp: Interpreter) -> None:
    instruction = interp.submit("say secret", hidden=True)
    assert instruction.output == "secret"
    assert len(interp.history) == 0


def test_action_fault_never_escapes_submit(interp: Interpreter) -> None:
    instruction = interp.submit("boom")
    assert instruction.error
    assert instruction.output == "ValueError: broken"


def test_output_fn_receives_chunks_and_hides_hint(
    interp: Interpreter,
) -> None:
    seen: list[tuple[str, str]] = []

    def output_fn(instruction: Instruction, chunk: OutputChunk) -> None:
        seen.append((instruction.typed, chunk.text))

    interp.output_fn = output_fn
    interp.show_hint("stale")
    interp.submit("say hi")

    assert seen == [("say hi", "hi")]
    assert interp.hint is None


def test_execute_event_submits_name_and_args(interp: Interpreter) -> None:
    instruction = interp.execute_event("say", "from a key")
    assert instruction.output == "from a key"
    assert interp.execute_event("say").typed == "say"


# ----------------------------------------------------------------
# Linking
# ----------------------------------------------------------------


def test_link_outside_execution_returns_action_unchanged(
    interp: Interpreter,
) -> None:
    action = lambda: None  # noqa: E731
    assert interp.link(action) is action


def test_second_top_level_link_raises(interp: Interpreter) -> None:
    @interp.registry.command("twice")
    def twice(instruction, args, command):
        interp.link(lambda: None)
        interp.link(lambda: None)

    with pytest.raises(MultiplyLinkedInstruction):
        interp.submit("twice")
    assert interp.executing is None


def test_chained_link_from_inside_continuation_is_allowed(
    interp: Interpreter,
) -> None:
    steps: list[Any] = []

    @interp.registry.command("chain")
    def chain(instruction, args, command):
        def second():
            interp.add_output("second")

        def first():
            interp.add_incomplete_output("first")
            steps.append(interp.link(second))

        steps.append(interp.link(first))

    instruction = interp.submit("chain")
    assert not instruction.complete

    steps[0]()
    assert not instruction.complete
    steps[1]()
    assert instruction.complete
    assert instruction.output == "first\nsecond"


def test_continuation_from_timer_thread_completes(
    interp: Interpreter,
) -> None:
    timers: list[threading.Timer] = []

    @interp.registry.command("later")
    def later(instruction, args, command):
        timer = threading.Timer(
            0.01, interp.link(lambda: interp.add_output("done"))
        )
        timers.append(timer)
        timer.start()

    instruction = interp.submit("later")
    timers[0].join(5)

    assert instruction.complete
    assert instruction.output == "done"
    assert interp.executing is None


def test_continuation_fault_becomes_error_output(
    interp: Interpreter,
) -> None:
    links: list[Any] = []

    @interp.registry.command("fails-later")
    def fails_later(instruction, args, command):
        def broken():
            raise KeyError("gone")

        links.append(interp.link(broken))

    instruction = interp.submit("fails-later")
    links[0]()

    assert instruction.complete
    assert instruction.error
    assert "KeyError" in instruction.output


def test_resume_warns_about_nested_contexts(interp: Interpreter) -> None:
    links: list[Any] = []

    @interp.registry.command("first")
    def first(instruction, args, command):
        links.append(interp.link(lambda: interp.add_output("resumed")))

    @interp.registry.command("second")
    def second(instruction, args, command):
        links[0]()
        instruction.add_output("second done")

    first_instruction = interp.submit("first")
    with pytest.warns(RuntimeWarning, match="Nested instruction contexts"):
        second_instruction = interp.submit("second")

    assert first_instruction.output == "resumed"
    assert second_instruction.output == "second done"
    assert interp.executing is None


# ----------------------------------------------------------------
# Output forwarding + messages
# ----------------------------------------------------------------


def test_orphan_output_warns(interp: Interpreter) -> None:
    with pytest.warns(RuntimeWarning):
        interp.add_output("nobody listens")


def test_message_routes_by_kind(interp: Interpreter) -> None:
    @interp.registry.command("msg")
    def msg(instruction, args, command):
        interp.message("step", incomplete=True)
        interp.message("failed", kind="error")
        interp.message("hint text", kind="hint")

    instruction = interp.submit("msg")
    assert instruction.output == "step\nfailed"
    assert instruction.error
    assert interp.hint == "hint text"


def test_message_rejects_unknown_kind_and_warns_on_empty(
    interp: Interpreter,
) -> None:
    with pytest.raises(ValueError):
        interp.message("x", kind="shout")
    with pytest.warns(RuntimeWarning):
        interp.message("")


def test_set_element_forwarded(interp: Interpreter) -> None:
    @interp.registry.command("widget")
    def widget(instruction, args, command):
        interp.set_element({"kind": "table"})

    instruction = interp.submit("widget")
    assert instruction.complete
    assert instruction.element == {"kind": "table"}


# ----------------------------------------------------------------
# Completion + hints
# ----------------------------------------------------------------


@pytest.fixture
def status_interp() -> Interpreter:
    registry = Registry()
    registry.register(Command(name="ls", action=_noop))
    registry.register(
        Command(name="status", action=_noop, aliases=["st"], takes=["path"])
    )
    registry.register(Command(name="stash", action=_noop))
    return Interpreter(registry=registry)


def test_complete_shows_alias_hint(status_interp: Interpreter) -> None:
    suggestion = status_interp.complete("st")
    assert suggestion.matches == ["st"]
    assert suggestion.value == "status "
    assert status_interp.hint == "st is an alias for: status"


def test_tab_complete(status_interp: Interpreter) -> None:
    assert status_interp.tab_complete("l") == "ls"
    assert status_interp.tab_complete("sta") == "sta"
    assert status_interp.hint == "stash, status"


def test_typing_hint_lists_matches_without_autocomplete(
    status_interp: Interpreter,
) -> None:
    assert status_interp.typing_hint("sta") is None
    assert status_interp.hint == "stash, status"

    assert status_interp.typing_hint("l") is None
    assert status_interp.hint == "ls"

    assert status_interp.typing_hint("ls") is None
    assert status_interp.hint is None

    assert status_interp.typing_hint("nothing") is None


def test_typing_hint_completes_exact_command_that_takes_args(
    status_interp: Interpreter,
) -> None:
    assert status_interp.typing_hint("status") == "status "


def test_typing_hint_autocomplete_fills_single_match(
    status_interp: Interpreter,
) -> None:
    status_interp.autocomplete = True
    assert status_interp.typing_hint("l") == "ls"
    assert status_interp.typing_hint("sta") is None


def test_hint_expires_after_timeout(
    status_interp: Interpreter, monkeypatch: pytest.MonkeyPatch
) -> None:
    now = [100.0]
    monkeypatch.setattr(interpreter_mod.time, "monotonic", lambda: now[0])
    status_interp.hint_timeout = 4.6

    hints: list[str | None] = []
    status_interp.hint_fn = hints.append
    status_interp.show_hint("hello")
    assert status_interp.current_hint() == "hello"

    now[0] += 5
    assert status_interp.current_hint() is None
    assert hints == ["hello", None]


def test_show_usage(status_interp: Interpreter) -> None:
    command = Command(name="cp", action=_noop, usage="<src> <dst>")
    status_interp.show_usage(command)
    assert status_interp.hint == "Usage: cp <src> <dst>"


def test_key_bindings_collected_from_tree() -> None:
    registry = Registry()
    registry.register(Command(name="help", action=_noop, with_key="f1"))
    nested = registry.branch("history", with_key="c-h")
    nested.register(Command(name="clear", action=_noop, with_key="c-k"))

    interp = Interpreter(registry=registry)
    assert interp.key_bindings == {
        "f1": "help",
        "c-h": "history",
        "c-k": "history clear",
    }


# ----------------------------------------------------------------
# Session + config
# ----------------------------------------------------------------


def test_config_values_are_applied() -> None:
    cfg = YAMLConfig(
        {
            "completion": {"suggestion_limit": 2, "autocomplete": True},
            "history": {"max_entries": 7},
            "ui": {"hint_timeout": 1.5},
        }
    )
    interp = Interpreter(config=cfg)

    assert interp.suggestion_limit == 2
    assert interp.autocomplete is True
    assert interp.hint_timeout == 1.5
    assert interp.history.max_entries == 7


def test_configured_max_entries_trims_existing_history() -> None:
    history = History()
    history.seed(["one", "two", "three"])

    interp = Interpreter(
        history=history,
        config=YAMLConfig({"history": {"max_entries": 2}}),
    )

    assert [i.typed for i in interp.history] == ["two", "three"]
    assert interp.history.pointer == 2


def test_suggestion_limit_reaches_error_text() -> None:
    cfg = YAMLConfig({"completion": {"suggestion_limit": 2}})
    interp = Interpreter(registry=_five_command_registry(), config=cfg)
    instruction = interp.submit("nope")
    assert "Try one of" not in instruction.output
    assert "Use 'help' to enumerate commands." in instruction.output


def test_start_restores_history_and_returns_welcome() -> None:
    store = FakeStore([Instruction.historical_from("old")])
    cfg = YAMLConfig({"system": {"welcome": {"message": "  Hi!  "}}})
    interp = Interpreter(history=History(store=store), config=cfg)

    assert interp.start() == "Hi!"
    assert interp.running
    assert [i.typed for i in interp.history] == ["old"]


def test_stop_and_prompt() -> None:
    cfg = YAMLConfig({"system": {"prompt": "ld>", "exit": {"message": "Ciao"}}})
    interp = Interpreter(config=cfg)
    interp.running = True

    assert "ld>" in interp.prompt()
    assert interp.stop() == "Ciao"
    assert not interp.running
