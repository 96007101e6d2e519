"""Exceptions raised by the action-core access client."""

from __future__ import annotations


class ActionCoreError(Exception):
    """Base class for errors surfaced by this package."""


class DecodeError(ActionCoreError, ValueError):
    """The response document does not have the expected top-level shape."""


class UnsupportedFormatError(DecodeError):
    """A decode format tag that the parser does not know about."""

    def __init__(self, value: object) -> None:
        super().__init__(f"Format {value!r} not supported")
        self.value = value


class AccessorClosedError(ActionCoreError, RuntimeError):
    """The accessor was used after ``close()``."""


__all__ = [
    "ActionCoreError",
    "DecodeError",
    "UnsupportedFormatError",
    "AccessorClosedError",
]
