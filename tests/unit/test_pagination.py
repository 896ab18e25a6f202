import base64

import pytest

from platform_pod_logs.base import LogEntry, Source
from platform_pod_logs.pagination import (
    decode_token,
    encode_token,
    generate_token,
    get_cursor,
)


class TestDecodeToken:
    def test_empty(self) -> None:
        assert decode_token("") == {}

    def test_decode(self) -> None:
        token = base64.b64encode(b'{"pod-uid":"2025-09-04T15:24:34.944759409Z"}')
        assert decode_token(token.decode()) == {
            "pod-uid": "2025-09-04T15:24:34.944759409Z"
        }

    @pytest.mark.parametrize(
        "token",
        [
            "not base64!",
            "%%%%",
            base64.b64encode(b"not json").decode(),
            base64.b64encode(b'["a", "b"]').decode(),
            base64.b64encode(b'"string"').decode(),
            base64.b64encode(b'{"pod-uid": 1}').decode(),
            base64.b64encode(b'{"pod-uid": {"nested": "x"}}').decode(),
            base64.b64encode(b"\xff\xfe").decode(),
        ],
    )
    def test_garbage(self, token: str) -> None:
        assert decode_token(token) == {}

    def test_null_values_dropped(self) -> None:
        token = base64.b64encode(b'{"a": null, "b": "2025-09-04T15:24:34Z"}')
        assert decode_token(token.decode()) == {"b": "2025-09-04T15:24:34Z"}


class TestEncodeToken:
    def test_empty(self) -> None:
        assert encode_token({}) == ""

    def test_compact_and_sorted(self) -> None:
        token = encode_token({"b": "2", "a": "1"})
        assert base64.b64decode(token) == b'{"a":"1","b":"2"}'

    def test_round_trip(self) -> None:
        cursors = {
            "9d2f6a3e-0000-0000-0000-000000000001": "2025-09-04T15:24:34.944759409Z",
            "9d2f6a3e-0000-0000-0000-000000000002": "2025-09-04T15:24:35Z",
        }
        assert decode_token(encode_token(cursors)) == cursors


class TestGetCursor:
    def test_missing(self) -> None:
        assert get_cursor({}, "pod") is None

    @pytest.mark.parametrize("value", ["", "null", "empty"])
    def test_sentinels(self, value: str) -> None:
        assert get_cursor({"pod": value}, "pod") is None

    def test_present(self) -> None:
        assert get_cursor({"pod": "2025-09-04T15:24:34Z"}, "pod") == (
            "2025-09-04T15:24:34Z"
        )


class TestGenerateToken:
    def test_no_entries(self) -> None:
        assert generate_token([]) == ""

    def test_last_entry_per_source_wins(self) -> None:
        pod1 = Source(name="pod1", id="uid1")
        pod2 = Source(name="pod2", id="uid2")
        entries = [
            LogEntry(message="a", timestamp="2025-09-04T15:24:01Z", source=pod1),
            LogEntry(message="b", timestamp="2025-09-04T15:24:02Z", source=pod2),
            LogEntry(message="c", timestamp="2025-09-04T15:24:03Z", source=pod1),
        ]

        token = generate_token(entries)

        assert decode_token(token) == {
            "uid1": "2025-09-04T15:24:03Z",
            "uid2": "2025-09-04T15:24:02Z",
        }
