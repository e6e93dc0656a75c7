#!/usr/bin/env python3
# bootloader/__init__.py
from __future__ import annotations
"""
Guest boot-sequence orchestrator.

Keep this module free of imports: subpackages expose their APIs through their
own __init__.py files, and `bootloader.boot` pulls in the whole stack.
"""

__version__ = "0.1.0"
