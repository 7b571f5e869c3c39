# LineDispatch — Command Dispatch and Line-Interpreter Core
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
LineDispatch core package.

Command registry, resolver, completion engine, instruction execution and
history for line-oriented command interpreters.
"""
from .history import History as History  # noqa: F401 (re-export)
from .instruction import Instruction as Instruction  # noqa: F401
from .interpreter import Interpreter as Interpreter  # noqa: F401
from .registry import BranchCommand as BranchCommand  # noqa: F401
from .registry import Command as Command  # noqa: F401
from .registry import Registry as Registry  # noqa: F401
