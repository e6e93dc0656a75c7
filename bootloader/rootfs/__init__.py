#!/usr/bin/env python3
# bootloader/rootfs/__init__.py
from __future__ import annotations

"""
Rootfs pipeline.

Exports:
- RootfsBuffer: owned in-memory archive bytes shared by fetch and extract.
- fetch_rootfs / make_fetch_task: network round-trip into the buffer.
- extract_rootfs / make_extract_task: unpack the buffer onto the drive.
- ExtractReport: structured extract outcome.
"""


from .buffer import RootfsBuffer
from .extract import ExtractReport, extract_rootfs, make_extract_task
from .fetch import ROOTFS_RESOURCE, fetch_rootfs, make_fetch_task, sha256_hex

__all__ = [
    "ExtractReport",
    "ROOTFS_RESOURCE",
    "RootfsBuffer",
    "extract_rootfs",
    "fetch_rootfs",
    "make_extract_task",
    "make_fetch_task",
    "sha256_hex",
]
