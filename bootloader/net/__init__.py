#!/usr/bin/env python3
# bootloader/net/__init__.py
from __future__ import annotations

from .request import (
    HttpTransport,
    Request,
    RequestError,
    RequestMethod,
    RequestStatus,
)

__all__ = [
    "HttpTransport",
    "Request",
    "RequestError",
    "RequestMethod",
    "RequestStatus",
]
