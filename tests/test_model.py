import pytest

from actioncore.errors import DecodeError, UnsupportedFormatError
from actioncore.model import DecodeFormat, EventDocument, PathRequest

BASE_URL = "http://example.test:8080/rest/1.0/json?path="


def test_path_request_renders_literal_query_flags():
    request = PathRequest(path="/events/2011/06", recursive=True, raw=False)

    assert request.to_url(BASE_URL) == (
        "http://example.test:8080/rest/1.0/json?path=/events/2011/06&recursive=true&raw=false"
    )


def test_path_request_defaults_and_immutability():
    request = PathRequest(path="/a")

    assert request.to_url(BASE_URL).endswith("/a&recursive=false&raw=false")
    with pytest.raises(AttributeError):
        request.path = "/b"


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("MR", DecodeFormat.MR),
        ("mr", DecodeFormat.MR),
        (" default ", DecodeFormat.DEFAULT),
        (DecodeFormat.DEFAULT, DecodeFormat.DEFAULT),
    ],
)
def test_decode_format_from_value(value, expected):
    assert DecodeFormat.from_value(value) is expected


@pytest.mark.parametrize("value", ["CSV", "", None, 3])
def test_decode_format_rejects_unknown_tags(value):
    with pytest.raises(UnsupportedFormatError) as excinfo:
        DecodeFormat.from_value(value)

    assert isinstance(excinfo.value, DecodeError)
    assert excinfo.value.value == value


def test_event_document_keeps_entries_verbatim():
    document = EventDocument.model_validate({"entries": [{"content": ""}, "junk"], "path": "/a"})

    assert document.entries == [{"content": ""}, "junk"]
