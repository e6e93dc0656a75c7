#!/usr/bin/env python3
# bootloader/fs/__init__.py
from __future__ import annotations

from .ramfs import (
    FileHandle,
    FileSystem,
    FsError,
    FsLabel,
    HostFileSystem,
    RamFileSystem,
    mount,
    split_drive,
)

__all__ = [
    "FileHandle",
    "FileSystem",
    "FsError",
    "FsLabel",
    "HostFileSystem",
    "RamFileSystem",
    "mount",
    "split_drive",
]
