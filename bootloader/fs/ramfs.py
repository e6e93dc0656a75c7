#!/usr/bin/env python3
# bootloader/fs/ramfs.py
from __future__ import annotations

"""
Virtual filesystems for the guest.

Paths are drive-style: '<label>:/dir/file'. Both implementations expose the
same narrow surface used by the boot tasks:
- create_file(path) -> FileHandle, with write(offset, data)
- create_dir(path)
- exists / is_dir / read / listdir
- cwd / set_cwd (the process working directory)
"""

import threading
from dataclasses import dataclass
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Dict, Optional, Protocol


class FsError(OSError):
    """Raised for invalid paths or operations on the virtual filesystem."""


class FsLabel(str, Enum):
    A = "A"
    B = "B"
    C = "C"
    D = "D"

    @property
    def root(self) -> str:
        return f"{self.value}:/"


class FileHandle(Protocol):
    def write(self, offset: int, data: bytes) -> int:  # pragma: no cover - interface
        ...


class FileSystem(Protocol):
    label: FsLabel

    def create_file(self, path: str) -> FileHandle:  # pragma: no cover - interface
        ...

    def create_dir(self, path: str) -> None:  # pragma: no cover - interface
        ...


def split_drive(path: str, label: FsLabel) -> PurePosixPath:
    """Validate the drive prefix and return the path relative to the root."""
    prefix = f"{label.value}:"
    if not path.upper().startswith(prefix):
        raise FsError(f"Path {path!r} is not on drive {label.root}")
    rel = PurePosixPath("/" + path[len(prefix):].lstrip("/"))
    if ".." in rel.parts:
        raise FsError(f"Path {path!r} escapes the drive root")
    return rel


def _splice(buf: bytearray, offset: int, data: bytes) -> None:
    if offset < 0:
        raise FsError("Negative write offset")
    end = offset + len(data)
    if len(buf) < offset:
        buf.extend(b"\x00" * (offset - len(buf)))
    buf[offset:end] = data


# ---------------- RAM ----------------

@dataclass(slots=True)
class _RamFile:
    fs: "RamFileSystem"
    key: PurePosixPath

    def write(self, offset: int, data: bytes) -> int:
        with self.fs._lock:
            _splice(self.fs._files[self.key], offset, data)
        return len(data)


class RamFileSystem:
    """In-memory drive. Created empty; lives as long as the object."""

    def __init__(self, label: FsLabel = FsLabel.C) -> None:
        self.label = label
        self._lock = threading.Lock()
        self._files: Dict[PurePosixPath, bytearray] = {}
        self._dirs: set[PurePosixPath] = {PurePosixPath("/")}
        self.cwd = label.root

    def set_cwd(self, path: str) -> None:
        if not self.is_dir(path):
            raise FsError(f"No such directory: {path}")
        self.cwd = path

    def _ensure_parents(self, key: PurePosixPath, path: str) -> None:
        for parent in key.parents:
            if parent in self._files:
                raise FsError(f"Parent of {path!r} is a file")
            self._dirs.add(parent)

    def create_dir(self, path: str) -> None:
        key = split_drive(path, self.label)
        with self._lock:
            if key in self._files:
                raise FsError(f"A file already exists at {path!r}")
            self._ensure_parents(key, path)
            self._dirs.add(key)

    def create_file(self, path: str) -> _RamFile:
        """Create (or truncate) a file and return a writable handle."""
        key = split_drive(path, self.label)
        with self._lock:
            if key in self._dirs:
                raise FsError(f"A directory already exists at {path!r}")
            self._ensure_parents(key, path)
            self._files[key] = bytearray()
        return _RamFile(self, key)

    def exists(self, path: str) -> bool:
        key = split_drive(path, self.label)
        with self._lock:
            return key in self._files or key in self._dirs

    def is_dir(self, path: str) -> bool:
        key = split_drive(path, self.label)
        with self._lock:
            return key in self._dirs

    def read(self, path: str) -> bytes:
        key = split_drive(path, self.label)
        with self._lock:
            if key not in self._files:
                raise FsError(f"No such file: {path}")
            return bytes(self._files[key])

    def listdir(self) -> list[str]:
        """Every path on the drive, directories with a trailing slash."""
        with self._lock:
            dirs = [f"{self.label.value}:{d}/" for d in self._dirs if d != PurePosixPath("/")]
            files = [f"{self.label.value}:{f}" for f in self._files]
        return sorted(dirs + files)


# ---------------- Host-backed ----------------

@dataclass(slots=True)
class _HostFile:
    target: Path

    def write(self, offset: int, data: bytes) -> int:
        with self.target.open("r+b") as fh:
            fh.seek(offset)
            return fh.write(data)


class HostFileSystem:
    """Drive whose root is a directory on the host."""

    def __init__(self, base: str | Path, label: FsLabel = FsLabel.C) -> None:
        self.label = label
        self.base = Path(base).resolve()
        self.base.mkdir(parents=True, exist_ok=True)
        self.cwd = label.root

    def _host(self, path: str) -> Path:
        rel = split_drive(path, self.label)
        return self.base.joinpath(*rel.parts[1:])

    def set_cwd(self, path: str) -> None:
        if not self._host(path).is_dir():
            raise FsError(f"No such directory: {path}")
        self.cwd = path

    def create_dir(self, path: str) -> None:
        target = self._host(path)
        if target.is_file():
            raise FsError(f"A file already exists at {path!r}")
        target.mkdir(parents=True, exist_ok=True)

    def create_file(self, path: str) -> _HostFile:
        target = self._host(path)
        if target.is_dir():
            raise FsError(f"A directory already exists at {path!r}")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(b"")
        return _HostFile(target)

    def exists(self, path: str) -> bool:
        return self._host(path).exists()

    def is_dir(self, path: str) -> bool:
        return self._host(path).is_dir()

    def read(self, path: str) -> bytes:
        target = self._host(path)
        if not target.is_file():
            raise FsError(f"No such file: {path}")
        return target.read_bytes()

    def listdir(self) -> list[str]:
        out: list[str] = []
        for p in self.base.rglob("*"):
            rel = p.relative_to(self.base).as_posix()
            out.append(f"{self.label.value}:/{rel}/" if p.is_dir() else f"{self.label.value}:/{rel}")
        return sorted(out)


def mount(label: FsLabel = FsLabel.C, host_path: Optional[str | Path] = None):
    """Create the drive: host-backed when a path is given, RAM otherwise."""
    if host_path:
        return HostFileSystem(host_path, label)
    return RamFileSystem(label)
