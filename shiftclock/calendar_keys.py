from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

Instant = datetime | int

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def from_ms(ms: int) -> datetime:
    return _EPOCH + timedelta(milliseconds=ms)


def to_ms(value: datetime) -> int:
    if value.tzinfo is None:
        raise ValueError("Datetime must be timezone-aware")
    return (value - _EPOCH) // timedelta(milliseconds=1)


def _local(instant: Instant, tz: ZoneInfo) -> datetime:
    if isinstance(instant, datetime):
        if instant.tzinfo is None:
            raise ValueError("Datetime must be timezone-aware")
        return instant.astimezone(tz)
    return from_ms(instant).astimezone(tz)


def day_key(instant: Instant, tz: ZoneInfo) -> str:
    """Local calendar day as YYYY-MM-DD."""
    return _local(instant, tz).date().isoformat()


def week_key(instant: Instant, tz: ZoneInfo) -> str:
    """Monday-based ISO week as YYYY-Www.

    The week-year is the year holding the week's Thursday, so a week that
    straddles New Year belongs to whichever year has four or more of its days.
    """
    week_year, week, _ = _local(instant, tz).date().isocalendar()
    return f"{week_year}-W{week:02}"


def month_key(instant: Instant, tz: ZoneInfo) -> str:
    local = _local(instant, tz)
    return f"{local.year}-{local.month:02}"


def quarter_key(month: str) -> str:
    year, month_number = month.split("-")
    return f"{year} Q{(int(month_number) - 1) // 3 + 1}"


def parse_day_key(value: str) -> date:
    try:
        parsed = date.fromisoformat(value)
    except ValueError as exc:
        raise ValueError(f"Invalid day key: {value!r}") from exc
    if parsed.isoformat() != value:
        raise ValueError(f"Invalid day key: {value!r}")
    return parsed


def local_midnight(day_value: date, tz: ZoneInfo) -> datetime:
    return datetime.combine(day_value, time.min, tzinfo=tz).astimezone(timezone.utc)


def next_local_midnight(instant: Instant, tz: ZoneInfo) -> datetime:
    """First local midnight strictly after the instant's local day, in UTC."""
    local_day = _local(instant, tz).date()
    return local_midnight(local_day + timedelta(days=1), tz)


def week_days(instant: Instant, tz: ZoneInfo) -> list[date]:
    """Monday..Sunday of the local week containing the instant."""
    local_day = _local(instant, tz).date()
    monday = local_day - timedelta(days=local_day.weekday())
    return [monday + timedelta(days=offset) for offset in range(7)]
