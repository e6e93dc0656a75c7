#!/usr/bin/env python3
# bootloader/config/__init__.py
from __future__ import annotations

"""
Boot configuration.

Provides:
- Configuration loader with file and environment overrides (`config`).
"""


from .config import DEFAULTS, BootConfig, load_config

__all__ = [
    "DEFAULTS",
    "BootConfig",
    "load_config",
]
