"""Ownership and draining of streamed response bodies.

A ``ResponseBody`` is produced on the accessor's transport loop but usually
consumed from another thread, so its synchronous methods hop onto that loop
for every read and for the final close.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from concurrent.futures import TimeoutError as FutureTimeoutError
from contextlib import closing
from typing import Any, Coroutine, Iterator, Protocol, TypeVar

import httpx

from actioncore.errors import AccessorClosedError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_READ_ERRORS = (httpx.HTTPError, httpx.StreamError, OSError, AccessorClosedError)


class ByteStream(Protocol):
    def iter_bytes(self, deadline: float | None = None) -> Iterator[bytes]: ...

    def close(self) -> None: ...


async def _next_chunk(iterator: Any) -> bytes | None:
    try:
        return await iterator.__anext__()
    except StopAsyncIteration:
        return None


class ResponseBody:
    """Open body of a successful response; the holder must close it once."""

    def __init__(self, response: httpx.Response, loop: asyncio.AbstractEventLoop) -> None:
        self._response = response
        self._loop = loop
        self._lock = threading.Lock()
        self._closed = False

    @property
    def status_code(self) -> int:
        return self._response.status_code

    @property
    def url(self) -> str:
        return str(self._response.url)

    @property
    def closed(self) -> bool:
        return self._closed

    def _run(self, coro: Coroutine[Any, Any, T], deadline: float | None = None) -> T:
        if self._loop.is_closed():
            coro.close()
            raise AccessorClosedError("Transport loop is closed; the body can no longer be read")
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is self._loop:
            coro.close()
            raise RuntimeError("Blocking reads are not allowed on the transport loop")
        future = asyncio.run_coroutine_threadsafe(coro, self._loop)
        if deadline is None:
            return future.result()
        try:
            return future.result(timeout=max(deadline - time.monotonic(), 0))
        except FutureTimeoutError:
            future.cancel()
            raise

    def iter_bytes(self, deadline: float | None = None) -> Iterator[bytes]:
        """Yield body chunks; past ``deadline`` (a ``time.monotonic()`` value) raise ``TimeoutError``."""

        if self._closed:
            raise httpx.StreamClosed()
        iterator = self._response.aiter_bytes()
        while True:
            chunk = self._run(_next_chunk(iterator), deadline)
            if chunk is None:
                return
            yield chunk

    def read(self) -> bytes:
        return b"".join(self.iter_bytes())

    def _mark_closed(self) -> bool:
        with self._lock:
            if self._closed:
                return False
            self._closed = True
            return True

    def close(self) -> None:
        if not self._mark_closed() or self._loop.is_closed():
            return
        try:
            self._run(self._response.aclose())
        except _READ_ERRORS as exc:
            logger.warning("Failed to close http-client - provided stream: %s", exc)

    async def aclose(self) -> None:
        if not self._mark_closed():
            return
        try:
            await self._response.aclose()
        except (httpx.HTTPError, OSError) as exc:
            logger.warning("Failed to close http-client - provided stream: %s", exc)

    def __enter__(self) -> ResponseBody:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"<ResponseBody [{self.status_code}] {self.url} {state}>"


def drain_and_close(
    body: ByteStream | None,
    encoding: str = "utf-8",
    deadline: float | None = None,
) -> str | None:
    """Read ``body`` to the end and decode it; the body is closed on every path.

    ``deadline`` is a ``time.monotonic()`` value bounding the whole read.

    Returns ``None`` when there is no body or when reading/decoding fails, so a
    partially read document never reaches the parser.
    """

    if body is None:
        return None
    with closing(body):
        try:
            payload = b"".join(body.iter_bytes(deadline=deadline))
        except TimeoutError:
            logger.warning("Timeout: response body was not received before the deadline")
            return None
        except _READ_ERRORS as exc:
            logger.warning("Failed to read from stream %s", exc)
            return None
    try:
        return payload.decode(encoding)
    except UnicodeDecodeError as exc:
        logger.warning("Response body is not valid %s: %s", encoding, exc)
        return None


__all__ = ["ByteStream", "ResponseBody", "drain_and_close"]
