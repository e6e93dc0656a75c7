#!/usr/bin/env python3
# bootloader/ui/utils/console.py
from __future__ import annotations

import sys
import threading

# Single shared print mutex for all terminal output (renderer frames + logging).
PRINT_MUTEX = threading.Lock()


def print_line(text: str = "", *, file=sys.stdout, flush: bool = False) -> None:
    """Thread-safe single-line print that cooperates with the renderer."""
    with PRINT_MUTEX:
        file.write(f"{text}\n")
        if flush:
            file.flush()
