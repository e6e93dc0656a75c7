# tests/conftest.py

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from bootloader.config import BootConfig, load_config
from bootloader.fs import RamFileSystem
from bootloader.rootfs import RootfsBuffer
from bootloader.tasks import TaskExecutor
from bootloader.ui import BufferDisplay, Renderer

from .fakes import RecordingLog


@pytest.fixture(autouse=True)
def _reset_package_logger():
    """main() installs handlers bound to the captured streams; drop them after each test."""
    yield
    pkg_logger = logging.getLogger("bootloader")
    for handler in list(pkg_logger.handlers):
        pkg_logger.removeHandler(handler)
        handler.close()
    pkg_logger.propagate = True
    pkg_logger.setLevel(logging.NOTSET)


@pytest.fixture()
def config(tmp_path: Path) -> BootConfig:
    """
    Config built from an empty directory and an empty environment, with every
    delay set so tests never wait.
    """
    return load_config(
        {
            "HEADLESS": True,
            "EXTRACT_DELAY": 0,
            "RELEASE_DELAY": 0,
            "FRAME_DELAY": 0.01,
        },
        base=tmp_path,
        environ={},
    )


@pytest.fixture()
def executor() -> TaskExecutor:
    return TaskExecutor()


@pytest.fixture()
def display() -> BufferDisplay:
    return BufferDisplay()


@pytest.fixture()
def renderer(display: BufferDisplay, executor: TaskExecutor) -> Renderer:
    r = Renderer(display, executor, frame_interval=0.01, timestamp=lambda: "T")
    executor.subscribe(r.register_completed)
    return r


@pytest.fixture()
def ramfs() -> RamFileSystem:
    return RamFileSystem()


@pytest.fixture()
def buffer() -> RootfsBuffer:
    return RootfsBuffer()


@pytest.fixture()
def log() -> RecordingLog:
    return RecordingLog()
