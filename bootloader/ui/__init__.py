#!/usr/bin/env python3
# bootloader/ui/__init__.py
from __future__ import annotations
# Re-export convenient top-level API
from .utils import (
    ANSI,
    strip_ansi,
    enable_windows_vt,
    colorize,
    PRINT_MUTEX,
    print_line,
)
from .static import (
    init_logger,
    ColorizingStreamHandler,
    PlainFormatter,
)
from .display import BufferDisplay, Display, TerminalDisplay
from .animated import FAIL_FRAME, LOADING_FRAMES, OK_FRAME, Renderer, format_log

__all__ = [
    "ANSI",
    "strip_ansi",
    "enable_windows_vt",
    "colorize",
    "PRINT_MUTEX",
    "print_line",
    "init_logger",
    "ColorizingStreamHandler",
    "PlainFormatter",
    "BufferDisplay",
    "Display",
    "TerminalDisplay",
    "FAIL_FRAME",
    "LOADING_FRAMES",
    "OK_FRAME",
    "Renderer",
    "format_log",
]
