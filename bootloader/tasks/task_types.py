#!/usr/bin/env python3
# bootloader/tasks/task_types.py
from __future__ import annotations

"""
Task data structures and protocols.

This module defines:
- TaskCallable: the zero-argument protocol every boot task implements.
- TaskPhase / RunPhase: lifecycle of a single task and of a whole run.
- Task: a registered task owning its callable until it executes.
- TaskInfo: an immutable snapshot handed out to readers (the renderer).
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Protocol


class TaskStateError(RuntimeError):
    """Illegal lifecycle transition (e.g. running a task twice). Always fatal."""


class RegistrationClosedError(RuntimeError):
    """Raised when a task is registered after the run has started."""


class TaskCallable(Protocol):
    """Protocol for any boot task: no arguments, boolean outcome."""

    def __call__(self) -> bool:  # pragma: no cover - signature only
        ...


class TaskPhase(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"


class RunPhase(str, Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    FINISHED = "finished"


@dataclass(slots=True)
class Task:
    """
    A registered boot step.

    Important fields:
        descriptor: Human-readable label shown by the renderer.
        callable: The work itself; taken out exactly once by `begin()`.
        phase: PENDING -> RUNNING -> COMPLETED, never backwards.
        success: None until the task completes, then its boolean outcome.
    """

    descriptor: str
    callable: Optional[TaskCallable] = field(default=None, repr=False)
    phase: TaskPhase = TaskPhase.PENDING
    success: Optional[bool] = None

    def begin(self) -> TaskCallable:
        """Move to RUNNING and hand over the callable."""
        if self.phase is not TaskPhase.PENDING or self.callable is None:
            raise TaskStateError(
                f"Task {self.descriptor!r} cannot start from phase {self.phase.value}"
            )
        func = self.callable
        self.callable = None
        self.phase = TaskPhase.RUNNING
        return func

    def finish(self, success: bool) -> None:
        """Move to COMPLETED and record the outcome."""
        if self.phase is not TaskPhase.RUNNING:
            raise TaskStateError(
                f"Task {self.descriptor!r} cannot complete from phase {self.phase.value}"
            )
        self.phase = TaskPhase.COMPLETED
        self.success = bool(success)

    def snapshot(self) -> "TaskInfo":
        return TaskInfo(descriptor=self.descriptor, success=self.success, phase=self.phase)


@dataclass(frozen=True, slots=True)
class TaskInfo:
    descriptor: str
    success: Optional[bool]
    phase: TaskPhase = TaskPhase.PENDING

    @property
    def concluded(self) -> bool:
        return self.success is not None
