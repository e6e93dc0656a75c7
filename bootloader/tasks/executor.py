#!/usr/bin/env python3
# bootloader/tasks/executor.py
from __future__ import annotations

"""
Sequential task executor.

This module provides:
- TaskExecutor: ordered registry of boot tasks, a runner that executes them
  one at a time on the calling thread, and read-only projections of the
  registry for concurrent observers (the renderer).

Rules:
- Tasks run in registration order and stop at the first failure.
- A task's callable is invoked with no lock held.
- Registration is closed once `run()` begins.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from bootloader.helpers import SharedState
from bootloader.tasks.task_types import (
    RegistrationClosedError,
    RunPhase,
    Task,
    TaskCallable,
    TaskInfo,
    TaskStateError,
)

logger = logging.getLogger(__name__)

CompletionListener = Callable[[int], None]


@dataclass(slots=True)
class ExecutorState:
    tasks: List[Task] = field(default_factory=list)
    # Index of the task currently executing (or next to execute).
    current: int = 0
    phase: RunPhase = RunPhase.NOT_STARTED
    last_outcome: Optional[bool] = None


class TaskExecutor:
    """Owns, sequences and reports on boot tasks."""

    def __init__(self) -> None:
        self._state: SharedState[ExecutorState] = SharedState(ExecutorState)
        self._listeners: List[CompletionListener] = []

    # ---------------- Registration ----------------

    def register(self, descriptor: str, task: TaskCallable) -> int:
        """Append a task and return its index."""
        with self._state.write() as state:
            if state.phase is not RunPhase.NOT_STARTED:
                raise RegistrationClosedError(
                    f"Cannot register {descriptor!r}: the run has already started."
                )
            state.tasks.append(Task(descriptor=descriptor, callable=task))
            return len(state.tasks) - 1

    def subscribe(self, listener: CompletionListener) -> None:
        """Call `listener(task_id)` after every task completes."""
        self._listeners.append(listener)

    # ---------------- Execution ----------------

    def run(self) -> bool:
        """
        Execute every registered task in order.

        Returns True when all tasks succeeded. Tasks after the first failure
        are never invoked and keep `success=None`.
        """
        with self._state.write() as state:
            if state.phase is not RunPhase.NOT_STARTED:
                raise TaskStateError("The task executor can only run once.")
            state.phase = RunPhase.RUNNING
            count = len(state.tasks)

        all_ok = True
        try:
            for task_id in range(count):
                with self._state.write() as state:
                    func = state.tasks[task_id].begin()
                    descriptor = state.tasks[task_id].descriptor

                result = self._invoke(descriptor, func)

                with self._state.write() as state:
                    state.tasks[task_id].finish(result)
                    state.last_outcome = result
                    if result:
                        state.current = task_id + 1

                for listener in self._listeners:
                    listener(task_id)

                if not result:
                    logger.warning("Task %d (%s) failed; stopping.", task_id, descriptor)
                    all_ok = False
                    break
        finally:
            with self._state.write() as state:
                state.phase = RunPhase.FINISHED
        return all_ok

    # Kept for callers used to the start() spelling.
    start = run

    @staticmethod
    def _invoke(descriptor: str, func: TaskCallable) -> bool:
        logger.debug("Running task: %s", descriptor)
        try:
            return bool(func())
        except TaskStateError:
            raise
        except Exception:
            logger.exception("Task %r raised", descriptor)
            return False

    # ---------------- Queries ----------------

    def running(self) -> bool:
        """True while a run is in progress."""
        with self._state.read() as state:
            return state.phase is RunPhase.RUNNING

    def phase(self) -> RunPhase:
        with self._state.read() as state:
            return state.phase

    def last_outcome(self) -> Optional[bool]:
        """Outcome of the most recently completed task, None if nothing ran."""
        with self._state.read() as state:
            return state.last_outcome

    def info(self, task_id: int) -> Optional[TaskInfo]:
        with self._state.read() as state:
            if not 0 <= task_id < len(state.tasks):
                return None
            return state.tasks[task_id].snapshot()

    def current_info(self) -> Optional[TaskInfo]:
        with self._state.read() as state:
            if state.current >= len(state.tasks):
                return None
            return state.tasks[state.current].snapshot()

    def current(self) -> int:
        with self._state.read() as state:
            return state.current

    def descriptor(self, task_id: int) -> Optional[str]:
        info = self.info(task_id)
        return None if info is None else info.descriptor

    def completed_tasks(self) -> list[int]:
        """Indices of every task that has an outcome (a contiguous prefix)."""
        with self._state.read() as state:
            return [i for i, task in enumerate(state.tasks) if task.success is not None]

    def __len__(self) -> int:
        with self._state.read() as state:
            return len(state.tasks)
