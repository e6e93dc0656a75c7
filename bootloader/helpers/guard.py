#!/usr/bin/env python3
# bootloader/helpers/guard.py
from __future__ import annotations

"""
Shared-state guard.

A `SharedState` owns exactly one state object behind a readers/writer lock:
- the object is built lazily, exactly once, by the factory it was given
- `read()` allows any number of concurrent readers
- `write()` is exclusive; waiting writers block new readers
- `try_write()` makes a single non-blocking attempt

All waits block on a condition variable; nothing spins.
"""

import threading
from contextlib import contextmanager
from typing import Callable, Generic, Iterator, Optional, TypeVar

T = TypeVar("T")


class RWLock:
    """Writer-preferring readers/writer lock."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    def acquire_read(self) -> None:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1

    def release_read(self) -> None:
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self, blocking: bool = True) -> bool:
        with self._cond:
            if not blocking:
                if self._writer or self._readers:
                    return False
                self._writer = True
                return True
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
            return True

    def release_write(self) -> None:
        with self._cond:
            self._writer = False
            self._cond.notify_all()


class SharedState(Generic[T]):
    """A lazily initialized state object guarded by an `RWLock`."""

    def __init__(self, factory: Callable[[], T]) -> None:
        self._factory = factory
        self._init_lock = threading.Lock()
        self._value: Optional[T] = None
        self._initialized = False
        self._lock = RWLock()

    @property
    def initialized(self) -> bool:
        return self._initialized

    def _get(self) -> T:
        if not self._initialized:
            with self._init_lock:
                if not self._initialized:
                    self._value = self._factory()
                    self._initialized = True
        return self._value  # type: ignore[return-value]

    @contextmanager
    def read(self) -> Iterator[T]:
        """Shared access; blocks while a writer holds or waits for the lock."""
        value = self._get()
        self._lock.acquire_read()
        try:
            yield value
        finally:
            self._lock.release_read()

    @contextmanager
    def write(self) -> Iterator[T]:
        """Exclusive access; blocks until every other holder has released."""
        value = self._get()
        self._lock.acquire_write()
        try:
            yield value
        finally:
            self._lock.release_write()

    @contextmanager
    def try_write(self) -> Iterator[Optional[T]]:
        """Single non-blocking attempt. Yields None when the lock is busy."""
        value = self._get()
        if not self._lock.acquire_write(blocking=False):
            yield None
            return
        try:
            yield value
        finally:
            self._lock.release_write()
