"""Client for the action-core REST service.

``ActionAccessor`` owns one ``httpx.AsyncClient`` driven by an asyncio loop
on a private daemon thread. The asynchronous methods hand back
``concurrent.futures.Future`` objects immediately; ``get_path`` is the
blocking facade that waits on such a future for a bounded time and decodes
the body.
"""

from __future__ import annotations

import asyncio
import logging
import os
import threading
import time
from contextlib import suppress
from concurrent.futures import CancelledError, Future, InvalidStateError
from concurrent.futures import TimeoutError as FutureTimeoutError
from pathlib import Path
from typing import Any, AsyncIterator, BinaryIO, Coroutine, TypeVar

import httpx

from actioncore.common import (
    ACTION_CORE_API_VERSION,
    DEFAULT_TIMEOUT_SECONDS,
    USER_AGENT,
    build_async_client,
    json_url,
    service_url,
)
from actioncore.errors import AccessorClosedError
from actioncore.model import DecodeFormat, EventBatch, FieldSchema, PathRequest
from actioncore.parser import ActionCoreParser
from actioncore.streams import ResponseBody, drain_and_close

logger = logging.getLogger(__name__)

T = TypeVar("T")

UPLOAD_CHUNK_SIZE = 64 * 1024
DEFAULT_PERMISSION = "u=rw,go=r"


async def _iter_file(handle: BinaryIO, chunk_size: int = UPLOAD_CHUNK_SIZE) -> AsyncIterator[bytes]:
    while True:
        chunk = await asyncio.to_thread(handle.read, chunk_size)
        if not chunk:
            return
        yield chunk


def _settle(handle: Future, body: ResponseBody | None) -> bool:
    try:
        handle.set_result(body)
    except InvalidStateError:
        # The caller cancelled the handle while the request was completing.
        return False
    return True


class ActionAccessor:
    """Fetch event paths from, and upload files to, one action-core host."""

    def __init__(
        self,
        host: str,
        port: int,
        *,
        api_version: str = ACTION_CORE_API_VERSION,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        user_agent: str = USER_AGENT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.host = host
        self.port = port
        self.timeout = timeout
        self.url = json_url(host, port, api_version)
        self.upload_url = service_url(host, port, api_version)

        self._client = build_async_client(timeout=timeout, user_agent=user_agent, transport=transport)
        self._lock = threading.Lock()
        self._closed = False
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(
            target=self._loop.run_forever,
            name=f"action-core-{host}:{port}",
            daemon=True,
        )
        self._thread.start()

    @property
    def closed(self) -> bool:
        return self._closed

    def _submit(self, coro: Coroutine[Any, Any, T]) -> Future[T]:
        with self._lock:
            if self._closed:
                coro.close()
                raise AccessorClosedError(f"Accessor for {self.host}:{self.port} is closed")
            return asyncio.run_coroutine_threadsafe(coro, self._loop)

    # ------------------------------------------------------------------
    # Path fetching
    # ------------------------------------------------------------------

    async def _fetch(self, request: PathRequest, full_url: str) -> ResponseBody | None:
        try:
            response = await self._client.send(
                self._client.build_request("GET", full_url, headers={"Accept": "application/json"}),
                stream=True,
            )
        except (httpx.HTTPError, httpx.InvalidURL, OSError) as exc:
            logger.warning("Failed to contact action-core for path %s (%s): %s", request.path, full_url, exc)
            return None

        if response.status_code != httpx.codes.OK:
            logger.warning(
                "Failed to fetch path %s from %s got http status %s",
                request.path,
                self.url,
                response.status_code,
            )
            await response.aclose()
            return None
        return ResponseBody(response, self._loop)

    async def _complete(self, handle: Future, request: PathRequest, full_url: str) -> None:
        try:
            body = await self._fetch(request, full_url)
        except Exception as exc:
            logger.error("Unexpected error while fetching %s: %s", full_url, exc)
            with suppress(InvalidStateError):
                handle.set_exception(exc)
            return
        if not _settle(handle, body) and body is not None:
            await body.aclose()

    def get_path_async(self, path: str, recursive: bool = False, raw: bool = False) -> Future[ResponseBody | None]:
        """Start fetching ``path``; the future resolves to an open body or ``None``.

        The caller owns a returned body and must close it. Non-200 statuses and
        transport failures resolve to ``None`` and are only logged.
        """

        request = PathRequest(path=path, recursive=recursive, raw=raw)
        full_url = request.to_url(self.url)
        logger.debug("ActionAccessor fetching %s", full_url)

        handle: Future[ResponseBody | None] = Future()
        try:
            inner = self._submit(self._complete(handle, request, full_url))
        except AccessorClosedError as exc:
            logger.warning("Error getting path %s from %s:%s (%s)", path, self.host, self.port, exc)
            handle.set_result(None)
            return handle

        # Cancelling either side cancels the other: a caller giving up stops the
        # request, and a request cancelled by close() releases waiting callers.
        handle.add_done_callback(lambda done: inner.cancel() if done.cancelled() else None)
        inner.add_done_callback(lambda done: handle.cancel() if done.cancelled() else None)
        return handle

    @staticmethod
    def _abandon(handle: Future[ResponseBody | None]) -> None:
        if handle.cancel():
            return
        # Resolved right after the deadline: nobody will read the body.
        if handle.exception() is None:
            body = handle.result()
            if body is not None:
                body.close()

    def get_path(
        self,
        path: str,
        format: DecodeFormat | str,
        fields: FieldSchema,
        recursive: bool = False,
        raw: bool = False,
        timeout: float | None = None,
    ) -> EventBatch | None:
        """Fetch ``path`` and decode it, waiting at most ``timeout`` seconds.

        The bound covers the whole exchange, headers and body alike.

        Every runtime failure (transport, HTTP status, timeout, stream or
        document errors) is logged and reported as ``None``. Only an unknown
        ``format`` raises, before any request is sent.
        """

        parser = ActionCoreParser(format, fields)
        wait = self.timeout if timeout is None else timeout
        deadline = time.monotonic() + wait
        full_url = PathRequest(path=path, recursive=recursive, raw=raw).to_url(self.url)

        try:
            handle = self.get_path_async(path, recursive, raw)
            try:
                body = handle.result(timeout=wait)
            except FutureTimeoutError:
                logger.warning(
                    "Timeout: Failed to connect to action core within %s sec, url = %s",
                    wait,
                    full_url,
                )
                self._abandon(handle)
                return None
            except CancelledError:
                logger.warning("Fetch of %s was cancelled before it completed", full_url)
                return None

            if body is None:
                return None
            document = drain_and_close(body, deadline=deadline)
            if document is None:
                if time.monotonic() >= deadline:
                    logger.warning(
                        "Timeout: Failed to read response from action core within %s sec, url = %s",
                        wait,
                        full_url,
                    )
                return None
            if not document.strip():
                logger.warning("Empty document returned for %s", full_url)
                return None
            return parser.parse(document)
        except Exception as exc:
            logger.error(
                "Unexpected exception while connecting to action core, url = %s, error = %s",
                full_url,
                exc,
            )
            return None

    # ------------------------------------------------------------------
    # Upload
    # ------------------------------------------------------------------

    async def _post_file(self, handle: BinaryIO, params: dict[str, str], size: int) -> httpx.Response:
        try:
            return await self._client.post(
                self.upload_url,
                params=params,
                content=_iter_file(handle),
                headers={"Content-Type": "application/octet-stream", "Content-Length": str(size)},
            )
        finally:
            handle.close()

    def upload(
        self,
        local_file: str | os.PathLike[str],
        remote_path: str,
        overwrite: bool = False,
        replication: int = 3,
        block_size: int = -1,
        permission: str = DEFAULT_PERMISSION,
    ) -> Future[httpx.Response]:
        """Send ``local_file`` to ``remote_path`` on the service.

        Raises ``OSError`` straight away when the file cannot be opened. The
        returned future carries the raw response; interpreting its status is
        up to the caller.
        """

        local_path = Path(local_file)
        handle = local_path.open("rb")
        size = os.fstat(handle.fileno()).st_size
        params = {
            "path": remote_path,
            "overwrite": "true" if overwrite else "false",
            "replication": str(replication),
            "blocksize": str(block_size),
            "permission": permission,
        }
        logger.info("Sending local file to action core: %s", local_path.resolve())
        try:
            return self._submit(self._post_file(handle, params, size))
        except AccessorClosedError:
            handle.close()
            raise

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def _shutdown(self) -> None:
        current = asyncio.current_task()
        pending = [task for task in asyncio.all_tasks() if task is not current]
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        await self._client.aclose()
        await self._loop.shutdown_asyncgens()

    def close(self) -> None:
        """Shut down the HTTP client and its loop; further calls are no-ops."""

        with self._lock:
            if self._closed:
                return
            self._closed = True
        try:
            asyncio.run_coroutine_threadsafe(self._shutdown(), self._loop).result()
        finally:
            self._loop.call_soon_threadsafe(self._loop.stop)
            self._thread.join()
            self._loop.close()

    def __enter__(self) -> ActionAccessor:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"ActionAccessor(host={self.host!r}, port={self.port!r})"


__all__ = ["ActionAccessor", "DEFAULT_PERMISSION"]
