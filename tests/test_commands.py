from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from shiftclock.commands import parse_local_instant


def test_parse_time_of_day_uses_local_today() -> None:
    tz = ZoneInfo("America/New_York")
    # 02:00 UTC on Jan 2 is still Jan 1 in New York.
    now = datetime(2024, 1, 2, 2, 0, tzinfo=timezone.utc)

    assert parse_local_instant("21:15", tz, now) == datetime(2024, 1, 1, 21, 15, tzinfo=tz)


def test_parse_full_local_datetime() -> None:
    tz = ZoneInfo("Europe/Berlin")
    now = datetime(2024, 1, 2, 2, 0, tzinfo=timezone.utc)

    parsed = parse_local_instant(" 2024-06-01 08:30 ", tz, now)

    assert parsed == datetime(2024, 6, 1, 6, 30, tzinfo=timezone.utc)


@pytest.mark.parametrize("value", ["", "25:00", "8.30", "2024-06-01"])
def test_parse_rejects_garbage(value) -> None:
    with pytest.raises(ValueError):
        parse_local_instant(value, ZoneInfo("UTC"), datetime(2024, 1, 1, tzinfo=timezone.utc))
