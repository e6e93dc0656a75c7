#!/usr/bin/env python3
# bootloader/boot/__init__.py
from __future__ import annotations
"""
Boot sequence package.

Exports:
- boot_sequence: mount, fetch and extract, with a live progress renderer.
- BootState: dataclass with the executor, renderer, buffer and mounted drive.
- main: command-line entry point.
"""


from .boot import BootState, boot_sequence, main

__all__ = ["boot_sequence", "BootState", "main"]
