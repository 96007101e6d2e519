"""Environment-driven settings for applications embedding the accessor."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

from dotenv import load_dotenv

from actioncore.accessor import ActionAccessor
from actioncore.common import ACTION_CORE_API_VERSION, DEFAULT_TIMEOUT_SECONDS, USER_AGENT

HOST_ENV = "ACTION_CORE_HOST"
PORT_ENV = "ACTION_CORE_PORT"
API_VERSION_ENV = "ACTION_CORE_API_VERSION"
TIMEOUT_ENV = "ACTION_CORE_TIMEOUT"
USER_AGENT_ENV = "ACTION_CORE_USER_AGENT"

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8080


@dataclass(frozen=True)
class AccessorConfig:
    """Connection settings for one action-core service."""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    api_version: str = ACTION_CORE_API_VERSION
    timeout: float = DEFAULT_TIMEOUT_SECONDS
    user_agent: str = USER_AGENT

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> AccessorConfig:
        """Read settings from ``environ`` (defaults to ``os.environ`` after ``.env``)."""

        if environ is None:
            load_dotenv()
            environ = os.environ

        raw_port = environ.get(PORT_ENV, str(DEFAULT_PORT))
        raw_timeout = environ.get(TIMEOUT_ENV, str(DEFAULT_TIMEOUT_SECONDS))
        try:
            port = int(raw_port)
        except ValueError as exc:
            raise ValueError(f"{PORT_ENV} must be an integer, got {raw_port!r}.") from exc
        try:
            timeout = float(raw_timeout)
        except ValueError as exc:
            raise ValueError(f"{TIMEOUT_ENV} must be a number of seconds, got {raw_timeout!r}.") from exc
        if timeout <= 0:
            raise ValueError(f"{TIMEOUT_ENV} must be positive, got {raw_timeout!r}.")

        return cls(
            host=environ.get(HOST_ENV, DEFAULT_HOST),
            port=port,
            api_version=environ.get(API_VERSION_ENV, ACTION_CORE_API_VERSION),
            timeout=timeout,
            user_agent=environ.get(USER_AGENT_ENV, USER_AGENT),
        )


def build_accessor(config: AccessorConfig, **kwargs) -> ActionAccessor:
    return ActionAccessor(
        config.host,
        config.port,
        api_version=config.api_version,
        timeout=config.timeout,
        user_agent=config.user_agent,
        **kwargs,
    )


__all__ = ["AccessorConfig", "build_accessor"]
