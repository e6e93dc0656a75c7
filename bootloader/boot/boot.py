#!/usr/bin/env python3
# bootloader/boot/boot.py
from __future__ import annotations
"""
Boot sequence for the guest.

Steps, in order:
- Mount the root drive and make it the process working directory.
- Fetch the rootfs archive into memory.
- Extract it onto the drive.

The renderer draws progress from its own thread while the executor runs the
steps on the calling thread.
"""

import argparse
import logging
import sys
import time
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from bootloader.config import BootConfig, load_config
from bootloader.fs import FileSystem, RamFileSystem, mount
from bootloader.net import HttpTransport
from bootloader.rootfs import RootfsBuffer, make_extract_task, make_fetch_task
from bootloader.rootfs.fetch import Transport
from bootloader.tasks import TaskExecutor
from bootloader.ui import (
    BufferDisplay,
    Display,
    Renderer,
    TerminalDisplay,
    colorize,
    format_log,
    init_logger,
    print_line,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class BootState:
    config: BootConfig
    executor: TaskExecutor
    renderer: Renderer
    buffer: RootfsBuffer
    fs: Optional[FileSystem]
    ok: bool


def _make_display(config: BootConfig) -> Display:
    return BufferDisplay() if config.headless else TerminalDisplay()


def boot_sequence(
    config: BootConfig,
    *,
    display: Optional[Display] = None,
    transport: Optional[Transport] = None,
    fs: Optional[FileSystem] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> BootState:
    display = display or _make_display(config)
    transport = transport or HttpTransport(config.rootfs_base_url, timeout=config.timeout)
    label = fs.label if fs is not None else config.mount_label
    root = label.root
    resource = config.rootfs_resource

    executor = TaskExecutor()
    renderer = Renderer(display, executor, frame_interval=config.frame_delay)
    executor.subscribe(renderer.register_completed)
    buffer = RootfsBuffer()
    drives: dict[str, FileSystem] = {}

    def _mount_drive() -> bool:
        drive = fs if fs is not None else mount(label, config.mount_path)
        drive.set_cwd(root)
        drives[root] = drive
        renderer.log(f"Process CWD is now {label.value}:")
        return True

    def _extract() -> bool:
        drive = drives.get(root)
        if drive is None:
            renderer.log(f"Drive {root} is not mounted")
            return False
        task = make_extract_task(
            buffer,
            drive,
            renderer.log,
            strict=config.strict_extract,
            root=root,
            delay=config.extract_delay,
            sleep=sleep,
        )
        return task()

    in_ram = isinstance(fs, RamFileSystem) or (fs is None and config.mount_path is None)
    kind = "ramdisk" if in_ram else "drive"

    display.assume_control()
    try:
        renderer.start()
        executor.register(f"Mounting {kind} at {root}", _mount_drive)
        executor.register(
            f"Fetching {resource}",
            make_fetch_task(
                transport,
                buffer,
                renderer.log,
                resource=resource,
                expected_sha256=config.rootfs_sha256,
            ),
        )
        executor.register(f"Extracting {resource}", _extract)
        ok = executor.run()

        sleep(config.release_delay)
    finally:
        renderer.stop()
        display.release_control()

    return BootState(
        config=config,
        executor=executor,
        renderer=renderer,
        buffer=buffer,
        fs=drives.get(root),
        ok=ok,
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bootloader",
        description="Mount a drive, fetch the rootfs archive and unpack it.",
    )
    parser.add_argument("--headless", action="store_true", default=None,
                        help="do not take over the terminal; print the log at the end")
    parser.add_argument("--base-url", dest="rootfs_base_url",
                        help="base URL the rootfs resource is resolved against")
    parser.add_argument("--resource", dest="rootfs_resource",
                        help="name of the rootfs archive to fetch")
    parser.add_argument("--mount-path", dest="mount_path",
                        help="back the drive with this host directory instead of RAM")
    parser.add_argument("--strict", dest="strict_extract", action="store_true", default=None,
                        help="fail extraction when any archive entry is skipped")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _build_parser().parse_args(argv)

    try:
        config = load_config(vars(args))
    except ValueError as exc:
        print_line(colorize(f"[FAILED] Invalid configuration: {exc}", "red"), file=sys.stderr)
        return 2

    default_level = logging.INFO if config.headless else logging.WARNING
    level = getattr(logging, config.log_level) if config.log_level else default_level
    init_logger(
        "bootloader",
        level=level,
        logfile=str(config.log_file_path) if config.log_file_path else None,
    )

    state = boot_sequence(config)
    if config.headless:
        print_line(format_log(state.renderer.raw_log()).rstrip("\n"), file=sys.stdout, flush=True)

    if not state.ok:
        logger.error("Boot sequence stopped at task %d", state.executor.current())
        return 1
    return 0
