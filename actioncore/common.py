"""Shared transport settings and URL helpers for the action-core service."""

from __future__ import annotations

import httpx

ACTION_CORE_API_VERSION = "1.0"
USER_AGENT = "action-access/1.0"
# Uploads of several hundred MB per minute need generous per-request bounds.
DEFAULT_TIMEOUT_SECONDS = 5 * 60.0


def service_url(host: str, port: int, api_version: str = ACTION_CORE_API_VERSION) -> str:
    """Root of the REST API, used as the upload target."""

    return f"http://{host}:{port}/rest/{api_version}"


def json_url(host: str, port: int, api_version: str = ACTION_CORE_API_VERSION) -> str:
    """Prefix of every path lookup; the path itself is appended verbatim."""

    return f"{service_url(host, port, api_version)}/json?path="


def build_async_client(
    *,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    user_agent: str = USER_AGENT,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Create the pooled client shared by every request of one accessor.

    The pool does not cap connections per host: a caller fanning out many
    concurrent path lookups should never queue behind the pool.
    """

    return httpx.AsyncClient(
        timeout=httpx.Timeout(timeout),
        limits=httpx.Limits(max_connections=None, max_keepalive_connections=None),
        headers={"User-Agent": user_agent},
        transport=transport,
    )


__all__ = [
    "ACTION_CORE_API_VERSION",
    "DEFAULT_TIMEOUT_SECONDS",
    "USER_AGENT",
    "build_async_client",
    "json_url",
    "service_url",
]
