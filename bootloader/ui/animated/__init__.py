#!/usr/bin/env python3
# bootloader/ui/animated/__init__.py
from __future__ import annotations
from .renderer import (
    FAIL_FRAME,
    LOADING_FRAMES,
    OK_FRAME,
    Renderer,
    RendererState,
    format_log,
)

__all__ = [
    "FAIL_FRAME",
    "LOADING_FRAMES",
    "OK_FRAME",
    "Renderer",
    "RendererState",
    "format_log",
]
