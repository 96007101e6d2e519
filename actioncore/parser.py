"""Decoding of action-core JSON documents into flat event records.

The service returns the same logical event stream in two shapes:

``DEFAULT``
    every event is a JSON object keyed by field name.
``MR``
    every event is ``{"record": "<tab separated line>"}`` as written by the
    map-reduce jobs; columns are matched to field names by position.

Both shapes share the ``{"entries": [{"content": "" | [...]}, ...]}``
envelope. A malformed entry or event is logged and skipped so that one bad
directory does not cost the caller the whole batch.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterator, Mapping, Optional, Sequence

from pydantic import ValidationError

from actioncore.errors import DecodeError
from actioncore.model import DecodeFormat, EventBatch, EventDocument, EventRecord, FieldSchema

logger = logging.getLogger(__name__)

MR_DELIMITER = "\t"

EventDecoder = Callable[[Any, Sequence[str]], Optional[EventRecord]]


def _decode_default_event(event: Any, fields: Sequence[str]) -> EventRecord | None:
    if not isinstance(event, Mapping):
        logger.error("Failed to deserialize the event %s", event)
        return None

    record: EventRecord = {}
    for key in fields:
        if key not in event:
            logger.warning("Event %s is missing key %s", event, key)
            continue
        record[key] = event[key]
    return record


def _decode_mr_event(event: Any, fields: Sequence[str]) -> EventRecord | None:
    line = event.get("record") if isinstance(event, Mapping) else None
    if not isinstance(line, str):
        logger.error("Failed to deserialize the event %s", event)
        return None

    parts = line.split(MR_DELIMITER)
    if len(parts) != len(fields):
        logger.warning("Unexpected event content size = %s", len(parts))
        return None
    return dict(zip(fields, parts))


_DECODERS: Mapping[DecodeFormat, EventDecoder] = {
    DecodeFormat.DEFAULT: _decode_default_event,
    DecodeFormat.MR: _decode_mr_event,
}


def load_document(document: str | bytes | Mapping[str, Any]) -> EventDocument:
    """Validate the top-level envelope, parsing JSON text when needed."""

    try:
        if isinstance(document, (str, bytes, bytearray)):
            return EventDocument.model_validate_json(document)
        return EventDocument.model_validate(document)
    except ValidationError as exc:
        raise DecodeError(f"Malformed action-core document: {exc}") from exc


def _iter_entry_events(entries: Sequence[Any]) -> Iterator[Any]:
    for entry in entries:
        if not isinstance(entry, Mapping):
            logger.error("Failed to deserialize the entry %s", entry)
            continue
        content = entry.get("content")
        if content is None or content == "":
            continue
        if not isinstance(content, list):
            logger.error("Failed to deserialize the content of entry %s", entry)
            continue
        yield from content


def parse_events(
    document: str | bytes | Mapping[str, Any],
    format: DecodeFormat | str,
    fields: FieldSchema,
) -> EventBatch:
    """Decode ``document`` into records holding only the requested ``fields``.

    Records keep the order of ``entries[*].content[*]``. Raises
    ``UnsupportedFormatError`` for an unknown format and ``DecodeError`` when
    the document is not JSON or has no ``entries`` list.
    """

    decode_event = _DECODERS[DecodeFormat.from_value(format)]
    fields = tuple(fields)
    parsed = load_document(document)

    records: list[EventRecord] = []
    for event in _iter_entry_events(parsed.entries):
        record = decode_event(event, fields)
        if record is not None:
            records.append(record)
    return tuple(records)


class ActionCoreParser:
    """Parser bound to one format and field list, reusable across documents."""

    def __init__(self, format: DecodeFormat | str, fields: FieldSchema) -> None:
        self.format = DecodeFormat.from_value(format)
        self.fields = tuple(fields)

    def parse(self, document: str | bytes | Mapping[str, Any]) -> EventBatch:
        return parse_events(document, self.format, self.fields)

    def __repr__(self) -> str:
        return f"ActionCoreParser(format={self.format.value!r}, fields={list(self.fields)!r})"


__all__ = ["ActionCoreParser", "MR_DELIMITER", "load_document", "parse_events"]
