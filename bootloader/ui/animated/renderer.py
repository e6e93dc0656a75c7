#!/usr/bin/env python3
# bootloader/ui/animated/renderer.py
from __future__ import annotations

"""
Progress renderer.

A background thread redraws, once per frame interval, the accumulated
scrollback log followed by an animated line for the task in flight.
Log text is kept in a newline-delimited string where every entry starts
with the separator, so the first split segment is always empty.
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from bootloader.helpers import SharedState
from bootloader.tasks import RunPhase, TaskExecutor
from bootloader.ui.display import Display
from bootloader.ui.utils import ANSI, strip_ansi

logger = logging.getLogger(__name__)

_W = ANSI["bright_white"]
_R = ANSI["red"]
_BR = ANSI["bright_red"]
_G = ANSI["green"]

LOADING_FRAMES: tuple[str, ...] = (
    f"{_W}[{_BR}*{_R}*{_W}    ]{_W}",
    f"{_W}[{_R}*{_BR}*{_R}*{_W}   ]",
    f"{_W}[ {_R}*{_BR}*{_R}*{_W}  ]",
    f"{_W}[  {_R}*{_BR}*{_R}*{_W} ]",
    f"{_W}[   {_R}*{_BR}*{_R}*{_W}]",
    f"{_W}[    {_R}*{_BR}*{_W}]",
    f"{_W}[   {_R}*{_BR}*{_R}*{_W}]",
    f"{_W}[  {_R}*{_BR}*{_R}*{_W} ]",
    f"{_W}[ {_R}*{_BR}*{_R}*{_W}  ]",
    f"{_W}[{_R}*{_BR}*{_R}*{_W}   ]",
)

OK_FRAME = f"{_W}[  {_G}ok  {_W}]"
FAIL_FRAME = f"{_W}[ {_BR}fail {_W}]"

FRAME_DELAY = 0.1


def format_log(log: str) -> str:
    """Transform the raw log string into its displayed form."""
    if not log:
        return ""
    return "".join(
        f"{ANSI['white']}{line}{ANSI['bright_white']}\n" for line in log.split("\n")[1:]
    )


def rfc3339_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


@dataclass(slots=True)
class RendererState:
    log: str = ""
    running: bool = False


class Renderer:
    """Draws boot progress to a display from a background thread."""

    def __init__(
        self,
        display: Display,
        executor: TaskExecutor,
        *,
        frame_interval: float = FRAME_DELAY,
        timestamp: Callable[[], str] = rfc3339_now,
    ) -> None:
        self.display = display
        self.executor = executor
        self.frame_interval = frame_interval
        self._timestamp = timestamp
        self._state: SharedState[RendererState] = SharedState(RendererState)
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._frame_index = 0
        self._last_text = ""

    # ---------------- Log ----------------

    def log(self, message: str) -> None:
        """Append a timestamped entry to the scrollback."""
        line = f"\n{self._timestamp()}: {message}"
        with self._state.write() as state:
            state.log += line
        logger.info("%s", strip_ansi(message))

    def register_completed(self, task_id: int) -> None:
        """
        Append an ok/fail line for a finished task.
        Does nothing if the task is unknown or has not concluded.
        """
        info = self.executor.info(task_id)
        if info is None or info.success is None:
            return
        marker = OK_FRAME if info.success else FAIL_FRAME
        with self._state.write() as state:
            state.log += f"\n{marker} {info.descriptor}"

    def raw_log(self) -> str:
        with self._state.read() as state:
            return state.log

    # ---------------- Lifecycle ----------------

    @property
    def running(self) -> bool:
        with self._state.read() as state:
            return state.running

    def start(self) -> None:
        """Start the draw thread; a no-op when already running."""
        with self._state.write() as state:
            if state.running:
                return
            state.running = True
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="renderer", daemon=True)
        self._thread.start()

    def stop(self, *, join: bool = True) -> None:
        """Stop the draw thread; it pushes one last frame on its way out."""
        with self._state.write() as state:
            if not state.running:
                return
            state.running = False
        self._stop_event.set()
        thread, self._thread = self._thread, None
        if join and thread is not None and thread.is_alive():
            thread.join()

    def _run(self) -> None:
        while True:
            self.render_frame()
            if self._stop_event.wait(self.frame_interval) or not self.running:
                break
        self.render_frame()

    # ---------------- Drawing ----------------

    def draw_current_task(self, frame_index: int) -> str:
        """Spinner line for the task in flight, or an empty string."""
        if self.executor.phase() is not RunPhase.RUNNING:
            return ""
        info = self.executor.current_info()
        if info is None or info.concluded:
            return ""
        return f"{LOADING_FRAMES[frame_index]} {info.descriptor}"

    def render_frame(self) -> str:
        """Compose one frame, push it to the display and return it."""
        current_task = self.draw_current_task(self._frame_index)
        self._frame_index = (self._frame_index + 1) % len(LOADING_FRAMES)

        text = f"{ANSI['bright_white']}{format_log(self.raw_log())}{current_task}"
        self.display.set_text(text)
        self._last_text = text
        return text

    def text(self) -> str:
        return self._last_text
