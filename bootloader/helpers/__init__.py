#!/usr/bin/env python3
# bootloader/helpers/__init__.py
from __future__ import annotations

from .guard import RWLock, SharedState

__all__ = [
    "RWLock",
    "SharedState",
]
