#!/usr/bin/env python3
# bootloader/ui/display.py
from __future__ import annotations

"""
Display surfaces.

A display accepts a full replacement of the shown text; there are no partial
updates. Two implementations:
- TerminalDisplay: full-screen redraw through a prompt_toolkit Output.
- BufferDisplay: keeps the last text in memory (headless runs).
"""

import threading
from typing import Optional, Protocol

from prompt_toolkit.output import Output, create_output

from bootloader.ui.utils import PRINT_MUTEX, enable_windows_vt


class Display(Protocol):
    def set_text(self, text: str) -> None:  # pragma: no cover - interface
        ...

    def assume_control(self) -> None:  # pragma: no cover - interface
        ...

    def release_control(self) -> None:  # pragma: no cover - interface
        ...


class TerminalDisplay:
    """Owns the terminal while the boot sequence runs."""

    def __init__(self, output: Optional[Output] = None) -> None:
        self._output = output
        self._in_control = False

    @property
    def output(self) -> Output:
        if self._output is None:
            self._output = create_output()
        return self._output

    def assume_control(self) -> None:
        enable_windows_vt()
        out = self.output
        with PRINT_MUTEX:
            out.enter_alternate_screen()
            out.hide_cursor()
            out.erase_screen()
            out.flush()
        self._in_control = True

    def release_control(self) -> None:
        if not self._in_control:
            return
        out = self.output
        with PRINT_MUTEX:
            out.reset_attributes()
            out.show_cursor()
            out.quit_alternate_screen()
            out.flush()
        self._in_control = False

    def set_text(self, text: str) -> None:
        out = self.output
        with PRINT_MUTEX:
            out.erase_screen()
            out.cursor_goto(0, 0)
            # The text carries its own SGR sequences; newlines need a CR on raw ttys.
            out.write_raw(text.replace("\n", "\r\n"))
            out.flush()


class BufferDisplay:
    """In-memory display; remembers the last text pushed to it."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._text = ""
        self.frames = 0
        self.in_control = False

    def assume_control(self) -> None:
        self.in_control = True

    def release_control(self) -> None:
        self.in_control = False

    def set_text(self, text: str) -> None:
        with self._lock:
            self._text = text
            self.frames += 1

    @property
    def text(self) -> str:
        with self._lock:
            return self._text
