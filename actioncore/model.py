"""Data model shared by the fetcher, the parser and the synchronous facade."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Sequence

from pydantic import BaseModel, ConfigDict, Field

from actioncore.errors import UnsupportedFormatError

EventRecord = dict[str, Any]
EventBatch = tuple[EventRecord, ...]
FieldSchema = Sequence[str]


class DecodeFormat(str, Enum):
    """Encoding of the events inside each entry's ``content`` array."""

    MR = "MR"
    DEFAULT = "DEFAULT"

    @classmethod
    def from_value(cls, value: DecodeFormat | str) -> DecodeFormat:
        """Resolve a member or a tag such as ``"mr"``; unknown tags raise."""

        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().upper())
            except ValueError:
                pass
        raise UnsupportedFormatError(value)


@dataclass(frozen=True)
class PathRequest:
    """One logical path lookup against the ``/json`` endpoint."""

    path: str
    recursive: bool = False
    raw: bool = False

    def to_url(self, base_url: str) -> str:
        # The path is appended verbatim; the service expects it unencoded.
        return (
            f"{base_url}{self.path}"
            f"&recursive={'true' if self.recursive else 'false'}"
            f"&raw={'true' if self.raw else 'false'}"
        )


class EventDocument(BaseModel):
    """Top-level envelope returned by the ``/json`` endpoint."""

    entries: list[Any] = Field(
        ...,
        description="One item per directory/path segment, each carrying a 'content' payload.",
    )

    model_config = ConfigDict(frozen=True, extra="allow")


__all__ = [
    "DecodeFormat",
    "EventBatch",
    "EventDocument",
    "EventRecord",
    "FieldSchema",
    "PathRequest",
]
