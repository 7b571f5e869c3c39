# LineDispatch — Command Dispatch and Line-Interpreter Core
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Argument binding.

The shape of the bound arguments depends only on the command:

- no declared parameters      -> None
- variadic                    -> TokenizedArgs with varargs + rawinput
- exactly one parameter       -> the raw argument string
- two or more parameters      -> TokenizedArgs, bound left to right

Binding never fails. Missing values are "", extra words are dropped.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Union

from .registry import Command

BoundArguments = Union[None, str, "TokenizedArgs"]


class TokenizedArgs(Mapping[str, str]):
    """Named argument values plus, for variadic commands, the raw words."""

    def __init__(
        self,
        values: dict[str, str] | None = None,
        varargs: list[str] | None = None,
        rawinput: str | None = None,
    ):
        self.named = dict(values or {})
        self.varargs = varargs
        self.rawinput = rawinput

    def __getitem__(self, key: str) -> str:
        return self.named[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self.named)

    def __len__(self) -> int:
        return len(self.named)

    def __repr__(self) -> str:
        return (
            f"TokenizedArgs(named={self.named!r}, "
            f"varargs={self.varargs!r}, rawinput={self.rawinput!r})"
        )


def split_words(text: str | None) -> list[str]:
    """Split on runs of whitespace."""
    return (text or "").split()


def bind_params(words: list[str], names: list[str]) -> dict[str, str]:
    """Assign words to names left to right; unmatched names get ""."""
    values: dict[str, str] = {}
    for i, name in enumerate(names):
        values[name] = words[i] if i < len(words) else ""
    return values


def bind(raw: str | None, command: Command) -> BoundArguments:
    """Bind ``raw`` against the parameters declared by ``command``."""
    raw = (raw or "").strip()

    if not command.takes and not command.variadic:
        return None

    words = split_words(raw)

    if command.variadic:
        return TokenizedArgs(
            values=bind_params(words, command.param_names),
            varargs=words,
            rawinput=raw,
        )

    if len(command.takes) == 1:
        return raw

    return TokenizedArgs(
        values=bind_params(words, command.param_names),
        rawinput=raw,
    )
