#!/usr/bin/env python3
# bootloader/rootfs/extract.py
from __future__ import annotations

"""
Extract the in-memory rootfs archive onto the mounted drive.

Failure model:
- Buffer busy (single try) or not a zip at all: the task fails.
- An entry that cannot be opened or written: logged, skipped.
- Bytes that fail to decode inside an entry, or a CRC mismatch: the decoded
  bytes are written and the entry is reported as damaged.

`extract_rootfs` returns an `ExtractReport`; whether skipped or damaged entries
count as failure is decided by the caller through
`ExtractReport.succeeded(strict=...)`.
"""

import copy
import io
import logging
import time
import zipfile
import zlib
from dataclasses import dataclass, field
from typing import Callable, Optional

from bootloader.fs import FileSystem
from bootloader.rootfs.buffer import RootfsBuffer
from bootloader.ui.utils import ANSI

logger = logging.getLogger(__name__)

LogFn = Callable[[str], None]

EXTRACT_DELAY = 0.2
CHUNK_SIZE = 1024

# Errors a single entry can raise while being opened or decoded.
_ENTRY_ERRORS = (zipfile.BadZipFile, zlib.error, NotImplementedError, RuntimeError, EOFError, OSError)


@dataclass(slots=True)
class ExtractReport:
    ok: bool
    extracted: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    damaged: list[str] = field(default_factory=list)
    error: Optional[str] = None

    def succeeded(self, *, strict: bool = False) -> bool:
        """Hard failures always fail; with `strict`, so does any skipped or damaged entry."""
        if not self.ok:
            return False
        return not (strict and (self.skipped or self.damaged))


def _read_entry(archive: zipfile.ZipFile, info: zipfile.ZipInfo) -> tuple[bytes, bool]:
    """
    Return (bytes, intact). Opening errors propagate; a decode error part way
    through keeps what was read so far and reports the entry as not intact.

    The entry is read through a copy of its ZipInfo without a CRC, so zipfile
    does not discard the last read on a checksum mismatch. The CRC is checked
    here instead, once every byte is in.
    """
    unchecked = copy.copy(info)
    del unchecked.CRC

    chunks: list[bytes] = []
    with archive.open(unchecked) as stream:
        try:
            while True:
                chunk = stream.read(CHUNK_SIZE)
                if not chunk:
                    break
                chunks.append(chunk)
        except (zipfile.BadZipFile, zlib.error, EOFError) as exc:
            logger.debug("Dropped undecodable bytes in %s: %s", info.filename, exc)
            return b"".join(chunks), False

    content = b"".join(chunks)
    if zlib.crc32(content) != info.CRC:
        logger.debug("CRC mismatch in %s", info.filename)
        return content, False
    return content, True


def extract_rootfs(
    buffer: RootfsBuffer,
    fs: FileSystem,
    log: LogFn,
    *,
    root: Optional[str] = None,
    delay: float = EXTRACT_DELAY,
    sleep: Callable[[float], None] = time.sleep,
) -> ExtractReport:
    """Unpack every entry of the buffered archive under `root`."""
    root = root or fs.label.root

    snapshot = buffer.try_snapshot()
    if snapshot is None:
        log("Could not acquire rootfs lock: buffer is busy")
        return ExtractReport(ok=False, error="rootfs buffer is busy")

    try:
        archive = zipfile.ZipFile(io.BytesIO(snapshot))
    except (zipfile.BadZipFile, OSError, ValueError) as exc:
        log(f"{ANSI['red']}Could not open rootfs archive: {ANSI['bright_white']}{exc}")
        return ExtractReport(ok=False, error=str(exc))

    report = ExtractReport(ok=True)
    with archive:
        entries = archive.infolist()
        for index in range(len(entries)):
            info = entries[index]
            path = f"{root}{info.filename}"
            try:
                if info.is_dir():
                    fs.create_dir(path)
                else:
                    content, intact = _read_entry(archive, info)
                    handle = fs.create_file(path)
                    handle.write(0, content)
                    if not intact:
                        log(f"{ANSI['yellow']}Part is damaged: {ANSI['bright_white']}{info.filename}")
                        report.damaged.append(path)
            except _ENTRY_ERRORS as exc:
                log(f"{ANSI['red']}Failed to read part: {ANSI['bright_white']}{info.filename}: {exc}")
                report.skipped.append(info.filename)
                continue

            if delay > 0:
                sleep(delay)
            log(f'Extracted "{path}"')
            report.extracted.append(path)

    logger.debug(
        "Extracted %d entries (%d skipped, %d damaged)",
        len(report.extracted), len(report.skipped), len(report.damaged),
    )
    return report


def make_extract_task(
    buffer: RootfsBuffer,
    fs: FileSystem,
    log: LogFn,
    *,
    strict: bool = False,
    **kwargs,
) -> Callable[[], bool]:
    """Bind the arguments and return a zero-argument task callable."""

    def _task() -> bool:
        report = extract_rootfs(buffer, fs, log, **kwargs)
        if report.ok and report.skipped:
            log(f"{len(report.skipped)} archive entries were skipped")
        if report.ok and report.damaged:
            log(f"{len(report.damaged)} archive entries were damaged")
        return report.succeeded(strict=strict)

    return _task
