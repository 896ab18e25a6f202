from datetime import UTC, datetime, timedelta, timezone

import pytest

from platform_pod_logs.utils import format_date, parse_rfc3339


class TestParseRFC3339:
    def test_nano(self) -> None:
        assert parse_rfc3339("2025-09-04T15:24:34.944759409Z") == datetime(
            2025, 9, 4, 15, 24, 34, 944759, UTC
        )

    def test_offset(self) -> None:
        assert parse_rfc3339("2025-09-04T15:24:34-05:00") == datetime(
            2025, 9, 4, 15, 24, 34, tzinfo=timezone(timedelta(hours=-5))
        )

    @pytest.mark.parametrize(
        "value",
        [
            "",
            "2025-09-04",
            "2025-09-04T15:24:34",
            "2025-09-04 15:24:34Z",
            "2025-02-30T15:24:34Z",
            "2025-09-04T15:24:34Z trailing",
        ],
    )
    def test_invalid(self, value: str) -> None:
        with pytest.raises(ValueError):
            parse_rfc3339(value)


def test_format_date() -> None:
    dt = datetime(2025, 9, 4, 17, 24, 34, 944759, timezone(timedelta(hours=2)))
    assert format_date(dt) == "2025-09-04T15:24:34Z"
