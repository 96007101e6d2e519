import logging

import httpx

from actioncore.streams import drain_and_close


class FakeStream:
    def __init__(self, chunks, error=None):
        self.chunks = chunks
        self.error = error
        self.close_calls = 0

    def iter_bytes(self, deadline=None):
        self.deadline = deadline
        yield from self.chunks
        if self.error is not None:
            raise self.error

    def close(self):
        self.close_calls += 1


def test_drain_joins_chunks_and_closes_once():
    stream = FakeStream([b'{"entries": ', "[]}".encode("utf-8")])

    assert drain_and_close(stream) == '{"entries": []}'
    assert stream.close_calls == 1


def test_drain_decodes_multibyte_characters_split_across_chunks():
    encoded = '{"city": "Zürich"}'.encode("utf-8")
    split = encoded.index(b"\xc3") + 1
    stream = FakeStream([encoded[:split], encoded[split:]])

    assert drain_and_close(stream) == '{"city": "Zürich"}'


def test_drain_returns_none_on_read_error(caplog):
    stream = FakeStream([b'{"entries": ['], error=httpx.ReadError("connection reset"))

    with caplog.at_level(logging.WARNING, logger="actioncore.streams"):
        assert drain_and_close(stream) is None

    assert stream.close_calls == 1
    assert "Failed to read from stream" in caplog.text


def test_drain_returns_none_on_invalid_utf8():
    stream = FakeStream([b"\xff\xfe\x00"])

    assert drain_and_close(stream) is None
    assert stream.close_calls == 1


def test_drain_accepts_missing_body():
    assert drain_and_close(None) is None


def test_drain_returns_none_when_deadline_passes(caplog):
    stream = FakeStream([b'{"entries": '], error=TimeoutError())

    with caplog.at_level(logging.WARNING, logger="actioncore.streams"):
        assert drain_and_close(stream, deadline=123.0) is None

    assert stream.deadline == 123.0
    assert stream.close_calls == 1
    assert "before the deadline" in caplog.text
