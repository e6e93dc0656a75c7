#!/usr/bin/env python3
# bootloader/rootfs/buffer.py
from __future__ import annotations

import threading
from typing import Optional


class RootfsBuffer:
    """
    In-memory copy of the fetched rootfs archive.

    Fetch is the only writer, extract the only reader. The byte storage is
    created on first use and replaced wholesale by every `set()`.
    """

    def __init__(self) -> None:
        self._init_lock = threading.Lock()
        self._lock = threading.Lock()
        self._data: Optional[bytearray] = None

    def _storage(self) -> bytearray:
        if self._data is None:
            with self._init_lock:
                if self._data is None:
                    self._data = bytearray()
        return self._data

    def set(self, value: bytes) -> None:
        """Clear the buffer and copy `value` in."""
        storage = self._storage()
        with self._lock:
            storage.clear()
            storage.extend(value)

    def try_snapshot(self) -> Optional[bytes]:
        """One non-blocking attempt to copy the bytes out; None if the lock is held."""
        storage = self._storage()
        if not self._lock.acquire(blocking=False):
            return None
        try:
            return bytes(storage)
        finally:
            self._lock.release()

    def __len__(self) -> int:
        with self._lock:
            return len(self._storage())
