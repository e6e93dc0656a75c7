#!/usr/bin/env python3
# bootloader/rootfs/fetch.py
from __future__ import annotations

"""
Fetch the rootfs archive into memory.

One request for one fixed resource; the task blocks until the transport
reports a terminal state. Success replaces the buffer contents with the full
payload, failure leaves the buffer untouched.
"""

import logging
from typing import Callable, Optional, Protocol

from cryptography.hazmat.primitives import hashes

from bootloader.net import RequestError, RequestMethod, RequestStatus
from bootloader.rootfs.buffer import RootfsBuffer

logger = logging.getLogger(__name__)

LogFn = Callable[[str], None]

ROOTFS_RESOURCE = "rootfs.zip"


class RequestHandle(Protocol):
    def wait(self) -> None:  # pragma: no cover - interface
        ...

    def status(self) -> RequestStatus:  # pragma: no cover - interface
        ...

    def data(self) -> bytes:  # pragma: no cover - interface
        ...


class Transport(Protocol):
    def request(self, resource: str, method: RequestMethod, body: str) -> RequestHandle:  # pragma: no cover
        ...


def sha256_hex(data: bytes) -> str:
    digest = hashes.Hash(hashes.SHA256())
    digest.update(data)
    return digest.finalize().hex()


def fetch_rootfs(
    transport: Transport,
    buffer: RootfsBuffer,
    log: LogFn,
    *,
    resource: str = ROOTFS_RESOURCE,
    expected_sha256: Optional[str] = None,
) -> bool:
    """Download `resource` into `buffer`. Returns the task outcome."""
    try:
        request = transport.request(resource, RequestMethod.GET, "{}")
        request.wait()
        status = request.status()
    except (RequestError, OSError) as exc:
        log(f"Request for {resource} could not complete: {exc}")
        return False

    if status is RequestStatus.FAIL:
        log("Request exited with status `RequestStatus.FAIL`")
        return False

    data = request.data()

    if expected_sha256:
        actual = sha256_hex(data)
        if actual != expected_sha256.strip().lower():
            log(f"Checksum mismatch for {resource}: got {actual}")
            return False

    buffer.set(data)
    logger.debug("Fetched %s (%d bytes)", resource, len(data))
    return True


def make_fetch_task(
    transport: Transport,
    buffer: RootfsBuffer,
    log: LogFn,
    **kwargs,
) -> Callable[[], bool]:
    """Bind the arguments and return a zero-argument task callable."""
    return lambda: fetch_rootfs(transport, buffer, log, **kwargs)
