from datetime import datetime
from zoneinfo import ZoneInfo

from shiftclock.calendar_keys import to_ms
from shiftclock.models import Rollups, Session, SessionKind
from shiftclock.rollups import DayChunk, RollupAggregator, split_interval_by_local_day
from shiftclock.store import ROLLUP_DAY_KEY, MemoryStore


def _session(start: datetime, end: datetime, session_id: str = "s1") -> Session:
    return Session(
        id=session_id,
        start_ms=to_ms(start),
        end_ms=to_ms(end),
        duration_sec=(to_ms(end) - to_ms(start)) // 1000,
        day_key=start.date().isoformat(),
        week_key="unused",
        month_key="unused",
        kind=SessionKind.RECORDED,
    )


def test_split_interval_crosses_local_midnight() -> None:
    tz = ZoneInfo("America/New_York")

    chunks = split_interval_by_local_day(
        to_ms(datetime(2024, 1, 1, 23, 30, tzinfo=tz)),
        to_ms(datetime(2024, 1, 2, 0, 30, tzinfo=tz)),
        tz,
    )

    assert chunks == [
        DayChunk("2024-01-01", "2024-W01", "2024-01", 1800),
        DayChunk("2024-01-02", "2024-W01", "2024-01", 1800),
    ]


def test_split_interval_empty_or_reversed() -> None:
    tz = ZoneInfo("UTC")
    start = to_ms(datetime(2024, 1, 1, 10, 0, tzinfo=tz))

    assert split_interval_by_local_day(start, start, tz) == []
    assert split_interval_by_local_day(start, start - 1000, tz) == []


def test_split_interval_spanning_several_days() -> None:
    tz = ZoneInfo("UTC")

    chunks = split_interval_by_local_day(
        to_ms(datetime(2024, 3, 1, 22, 0, tzinfo=tz)),
        to_ms(datetime(2024, 3, 3, 2, 0, tzinfo=tz)),
        tz,
    )

    assert [(chunk.day_key, chunk.seconds) for chunk in chunks] == [
        ("2024-03-01", 7200),
        ("2024-03-02", 86400),
        ("2024-03-03", 7200),
    ]


def test_split_interval_on_short_dst_day() -> None:
    tz = ZoneInfo("America/New_York")

    # 2024-03-10 has only 23 hours in New York.
    chunks = split_interval_by_local_day(
        to_ms(datetime(2024, 3, 9, 23, 0, tzinfo=tz)),
        to_ms(datetime(2024, 3, 10, 23, 0, tzinfo=tz)),
        tz,
    )

    assert [(chunk.day_key, chunk.seconds) for chunk in chunks] == [
        ("2024-03-09", 3600),
        ("2024-03-10", 79200),
    ]


def test_credit_splits_week_and_month_per_day() -> None:
    tz = ZoneInfo("UTC")
    aggregator = RollupAggregator(MemoryStore(), tz)

    # Sunday night into Monday morning, also crossing a month boundary.
    session = _session(datetime(2024, 3, 31, 23, 0, tzinfo=tz), datetime(2024, 4, 1, 1, 0, tzinfo=tz))
    rollups = aggregator.credit(session, Rollups())

    assert rollups.day == {"2024-03-31": 3600, "2024-04-01": 3600}
    assert rollups.week == {"2024-W13": 3600, "2024-W14": 3600}
    assert rollups.month == {"2024-03": 3600, "2024-04": 3600}


def test_week_totals_match_day_totals() -> None:
    tz = ZoneInfo("UTC")
    aggregator = RollupAggregator(MemoryStore(), tz)
    sessions = [
        _session(datetime(2024, 1, 7, 22, 0, tzinfo=tz), datetime(2024, 1, 8, 3, 0, tzinfo=tz), "a"),
        _session(datetime(2024, 1, 9, 9, 0, tzinfo=tz), datetime(2024, 1, 9, 17, 0, tzinfo=tz), "b"),
    ]

    rollups = aggregator.build(sessions)

    assert rollups.week["2024-W01"] == rollups.day["2024-01-07"]
    assert rollups.week["2024-W02"] == rollups.day["2024-01-08"] + rollups.day["2024-01-09"]


def test_read_clamps_corrupt_values() -> None:
    store = MemoryStore({ROLLUP_DAY_KEY: '{"2024-01-01": -5, "2024-01-02": NaN, "2024-01-03": 10, "2024-01-04": "x"}'})
    aggregator = RollupAggregator(store, ZoneInfo("UTC"))

    rollups = aggregator.read()

    assert rollups.day == {"2024-01-01": 0, "2024-01-02": 0, "2024-01-03": 10, "2024-01-04": 0}
    assert rollups.week == {}


def test_read_recovers_from_unreadable_payload() -> None:
    store = MemoryStore({ROLLUP_DAY_KEY: "{not json", "tt:rollup:week": "[1, 2]"})
    aggregator = RollupAggregator(store, ZoneInfo("UTC"))

    rollups = aggregator.read()

    assert rollups.day == {}
    assert rollups.week == {}


def test_rebuild_replaces_stale_maps() -> None:
    tz = ZoneInfo("UTC")
    store = MemoryStore({ROLLUP_DAY_KEY: '{"1999-01-01": 500}'})
    aggregator = RollupAggregator(store, tz)
    session = _session(datetime(2024, 1, 2, 9, 0, tzinfo=tz), datetime(2024, 1, 2, 10, 0, tzinfo=tz))

    aggregator.rebuild([session])

    assert aggregator.read().day == {"2024-01-02": 3600}
