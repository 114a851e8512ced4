from __future__ import annotations

import json
import logging
import math
from collections.abc import Iterable
from typing import NamedTuple
from zoneinfo import ZoneInfo

from .calendar_keys import day_key, month_key, next_local_midnight, to_ms, week_key
from .models import Rollups, RollupMap, Session
from .store import ROLLUP_DAY_KEY, ROLLUP_MONTH_KEY, ROLLUP_WEEK_KEY, KeyValueStore

logger = logging.getLogger(__name__)


class DayChunk(NamedTuple):
    day_key: str
    week_key: str
    month_key: str
    seconds: int


def split_interval_by_local_day(start_ms: int, end_ms: int, tz: ZoneInfo) -> list[DayChunk]:
    """Cut [start_ms, end_ms) at each local midnight.

    Every chunk carries the keys of its own start instant, so week and month
    credit always follows the per-day decomposition.
    """
    if end_ms <= start_ms:
        return []

    chunks: list[DayChunk] = []
    cursor = start_ms

    while cursor < end_ms:
        chunk_end = min(end_ms, to_ms(next_local_midnight(cursor, tz)))
        chunk_seconds = (chunk_end - cursor) // 1000

        if chunk_seconds > 0:
            chunks.append(
                DayChunk(
                    day_key(cursor, tz),
                    week_key(cursor, tz),
                    month_key(cursor, tz),
                    chunk_seconds,
                )
            )

        cursor = chunk_end

    return chunks


def _clamp_seconds(value) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    if not math.isfinite(value) or value <= 0:
        return 0
    return int(value)


def _parse_rollup(raw: str | None, name: str) -> RollupMap:
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except ValueError:
        logger.warning("Discarding unreadable %s rollup", name)
        return {}
    if not isinstance(parsed, dict):
        logger.warning("Discarding %s rollup with unexpected shape", name)
        return {}
    return {str(key): _clamp_seconds(value) for key, value in parsed.items()}


class RollupAggregator:
    """Day/week/month totals derived from the session ledger."""

    def __init__(self, store: KeyValueStore, tz: ZoneInfo) -> None:
        self.store = store
        self.tz = tz

    def read(self) -> Rollups:
        return Rollups(
            day=_parse_rollup(self.store.get(ROLLUP_DAY_KEY), "day"),
            week=_parse_rollup(self.store.get(ROLLUP_WEEK_KEY), "week"),
            month=_parse_rollup(self.store.get(ROLLUP_MONTH_KEY), "month"),
        )

    def read_day(self) -> RollupMap:
        return _parse_rollup(self.store.get(ROLLUP_DAY_KEY), "day")

    def credit(self, session: Session, rollups: Rollups) -> Rollups:
        """Add one session's seconds to the maps in place."""
        for chunk in split_interval_by_local_day(session.start_ms, session.end_ms, self.tz):
            rollups.day[chunk.day_key] = rollups.day.get(chunk.day_key, 0) + chunk.seconds
            rollups.week[chunk.week_key] = rollups.week.get(chunk.week_key, 0) + chunk.seconds
            rollups.month[chunk.month_key] = rollups.month.get(chunk.month_key, 0) + chunk.seconds
            logger.debug("Credited %ss to %s for session %s", chunk.seconds, chunk.day_key, session.id)
        return rollups

    def build(self, sessions: Iterable[Session]) -> Rollups:
        rollups = Rollups()
        for session in sessions:
            self.credit(session, rollups)
        return rollups

    def serialize(self, rollups: Rollups) -> dict[str, str]:
        return {
            ROLLUP_DAY_KEY: json.dumps(rollups.day, sort_keys=True),
            ROLLUP_WEEK_KEY: json.dumps(rollups.week, sort_keys=True),
            ROLLUP_MONTH_KEY: json.dumps(rollups.month, sort_keys=True),
        }

    def write(self, rollups: Rollups) -> None:
        self.store.set_many(self.serialize(rollups))

    def rebuild(self, sessions: Iterable[Session]) -> Rollups:
        """Discard the stored maps and fold every session from scratch."""
        sessions = list(sessions)
        rollups = self.build(sessions)
        self.write(rollups)
        logger.info("Rebuilt rollups from %d sessions", len(sessions))
        return rollups
