#!/usr/bin/env python3
# bootloader/__main__.py
from __future__ import annotations

import sys

from bootloader.boot import main

if __name__ == "__main__":
    sys.exit(main())
