#!/usr/bin/env python3
# bootloader/net/request.py
from __future__ import annotations

"""
Network transport for boot tasks.

A `Request` starts its HTTP round-trip on a background thread as soon as it is
created; `wait()` blocks until the transfer is over. The outcome is binary
(`RequestStatus.OK` / `RequestStatus.FAIL`) and the payload is all-or-nothing.

Notes:
- Any 2xx answer is OK; HTTP errors, socket errors and timeouts are FAIL.
- `file://` URLs work too (urllib handles them), which is handy offline.
"""

import logging
import threading
import urllib.error
import urllib.parse
import urllib.request
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)

USER_AGENT = "bootloader/0.1 (+https://local)"


class RequestError(RuntimeError):
    """Transport misuse, e.g. asking for data before the request finished."""


class RequestMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"


class RequestStatus(str, Enum):
    OK = "ok"
    FAIL = "fail"


class Request:
    """One in-flight network request."""

    def __init__(
        self,
        url: str,
        method: RequestMethod = RequestMethod.GET,
        body: str = "",
        *,
        timeout: float = 30.0,
    ) -> None:
        self.url = url
        self.method = method
        self.body = body
        self.timeout = timeout
        self._done = threading.Event()
        self._status: Optional[RequestStatus] = None
        self._data: bytes = b""
        self.error: Optional[str] = None
        self._thread = threading.Thread(target=self._perform, name="request", daemon=True)
        self._thread.start()

    def _perform(self) -> None:
        data = self.body.encode("utf-8") if self.method is not RequestMethod.GET and self.body else None
        request = urllib.request.Request(
            self.url,
            data=data,
            method=self.method.value,
            headers={"User-Agent": USER_AGENT},
        )
        try:
            with urllib.request.urlopen(request, timeout=self.timeout) as response:
                payload = response.read()
                code = getattr(response, "status", None)
            if code is not None and not 200 <= code < 300:
                self.error = f"HTTP {code}"
                self._status = RequestStatus.FAIL
            else:
                self._data = payload
                self._status = RequestStatus.OK
        except urllib.error.HTTPError as exc:
            self.error = f"HTTP {exc.code}: {exc.reason}"
            self._status = RequestStatus.FAIL
        except (urllib.error.URLError, OSError, ValueError) as exc:
            self.error = str(exc)
            self._status = RequestStatus.FAIL
        finally:
            if self._status is None:
                self._status = RequestStatus.FAIL
            self._done.set()
        if self.error:
            logger.debug("%s %s failed: %s", self.method.value, self.url, self.error)

    def wait(self) -> None:
        """Block until the request reaches a terminal state."""
        self._done.wait()

    @property
    def finished(self) -> bool:
        return self._done.is_set()

    def status(self) -> RequestStatus:
        if not self._done.is_set():
            raise RequestError("Request has not finished; call wait() first.")
        return self._status  # type: ignore[return-value]

    def data(self) -> bytes:
        if not self._done.is_set():
            raise RequestError("Request has not finished; call wait() first.")
        if self._status is not RequestStatus.OK:
            raise RequestError(f"No data: request failed ({self.error}).")
        return self._data


class HttpTransport:
    """Builds requests for resource names relative to a base URL."""

    def __init__(self, base_url: str, *, timeout: float = 30.0) -> None:
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self.timeout = timeout

    def request(self, resource: str, method: RequestMethod = RequestMethod.GET, body: str = "") -> Request:
        url = urllib.parse.urljoin(self.base_url, resource)
        return Request(url, method, body, timeout=self.timeout)
