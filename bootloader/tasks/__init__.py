#!/usr/bin/env python3
# bootloader/tasks/__init__.py
from __future__ import annotations

"""
Package for boot task management.

Provides:
- Data structures and protocols (`Task`, `TaskInfo`, `TaskCallable`).
- Lifecycle enums (`TaskPhase`, `RunPhase`) and errors.
- The sequential runner (`TaskExecutor`).
"""


from .task_types import (
    RegistrationClosedError,
    RunPhase,
    Task,
    TaskCallable,
    TaskInfo,
    TaskPhase,
    TaskStateError,
)
from .executor import ExecutorState, TaskExecutor

__all__ = [
    "ExecutorState",
    "RegistrationClosedError",
    "RunPhase",
    "Task",
    "TaskCallable",
    "TaskExecutor",
    "TaskInfo",
    "TaskPhase",
    "TaskStateError",
]
