from __future__ import annotations

import json
import logging
import math
import uuid
from collections.abc import Callable
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from .calendar_keys import day_key, month_key, to_ms, week_key
from .errors import AlreadyRunningError, ClockSkewError, NoRunningShiftError
from .ledger import SessionLedger
from .models import Rollups, RunningShift, Session, SessionKind, Snapshot, Totals
from .rollups import RollupAggregator
from .store import RUNNING_KEY, SESSIONS_KEY, VERSION_KEY, KeyValueStore

SCHEMA_VERSION = 1

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _running_from_json(raw: str | None) -> RunningShift | None:
    if not raw:
        return None
    try:
        data = json.loads(raw)
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None

    start_ms = data.get("startMs")
    if isinstance(start_ms, bool) or not isinstance(start_ms, (int, float)):
        return None
    if not math.isfinite(start_ms) or start_ms <= 0:
        return None

    started_at_day_key = data.get("startedAtDayKey")
    if not isinstance(started_at_day_key, str):
        return None

    base = data.get("baseTodaySec", 0)
    if isinstance(base, bool) or not isinstance(base, (int, float)) or not math.isfinite(base) or base < 0:
        base = 0

    return RunningShift(
        start_ms=int(start_ms),
        started_at_day_key=started_at_day_key,
        base_today_sec=int(base),
    )


def _running_to_json(running: RunningShift) -> str:
    return json.dumps(
        {
            "startMs": running.start_ms,
            "startedAtDayKey": running.started_at_day_key,
            "baseTodaySec": running.base_today_sec,
        }
    )


class ShiftTracker:
    """Owns the running shift and keeps the ledger and rollups in step with it."""

    def __init__(
        self,
        store: KeyValueStore,
        tz: ZoneInfo,
        clock: Clock = utc_now,
        logger: logging.Logger | None = None,
    ) -> None:
        self.store = store
        self.tz = tz
        self.clock = clock
        self.logger = logger or logging.getLogger(__name__)
        self.ledger = SessionLedger(store, tz)
        self.rollups = RollupAggregator(store, tz)
        self._schema_checked = False

    def ensure_schema(self) -> None:
        if self._schema_checked:
            return

        raw = self.store.get(VERSION_KEY)
        try:
            version = int(raw) if raw else 0
        except ValueError:
            version = 0

        # No migrations exist yet; any other version is stamped to the current one.
        if version != SCHEMA_VERSION:
            self.logger.info("Stamping schema version %s (found %s)", SCHEMA_VERSION, version)
            self.store.set(VERSION_KEY, str(SCHEMA_VERSION))
        self._schema_checked = True

    def now_ms(self) -> int:
        return to_ms(self.clock())

    def get_running(self) -> RunningShift | None:
        self.ensure_schema()
        raw = self.store.get(RUNNING_KEY)
        running = _running_from_json(raw)
        if running is None and raw:
            self.logger.warning("Ignoring malformed running shift record")
        return running

    def start_shift(self, at: datetime | None = None) -> RunningShift:
        start_ms = to_ms(at) if at is not None else self.now_ms()
        if start_ms <= 0:
            raise ValueError(f"Shift start must be after the Unix epoch, got {start_ms} ms")

        if self.get_running() is not None:
            raise AlreadyRunningError()

        today_key = day_key(start_ms, self.tz)
        day_totals = self.rollups.read_day()

        running = RunningShift(
            start_ms=start_ms,
            started_at_day_key=today_key,
            base_today_sec=day_totals.get(today_key, 0),
        )
        self.store.set(RUNNING_KEY, _running_to_json(running))
        self.logger.info("Shift started: day=%s base=%ss", today_key, running.base_today_sec)
        return running

    def end_shift(self, at: datetime | None = None) -> Session:
        running = self.get_running()
        if running is None:
            raise NoRunningShiftError()

        end_ms = to_ms(at) if at is not None else self.now_ms()
        if end_ms < running.start_ms:
            # Drop the shift so it cannot stay stuck in the running state.
            self.store.remove(RUNNING_KEY)
            self.logger.warning(
                "Clock skew: end %s precedes start %s, shift discarded", end_ms, running.start_ms
            )
            raise ClockSkewError(running.start_ms, end_ms)

        session = self.build_session(running.start_ms, end_ms, SessionKind.RECORDED)

        sessions = self.ledger.read()
        rollups = self.rollups.read()
        sessions.append(session)
        self.rollups.credit(session, rollups)

        # Insertion order is ledger, rollups, running shift: a store that cannot
        # commit atomically still leaves "session saved, shift running", which a
        # rebuild repairs.
        batch: dict[str, str | None] = {SESSIONS_KEY: self.ledger.serialize(sessions)}
        batch.update(self.rollups.serialize(rollups))
        batch[RUNNING_KEY] = None
        self.store.set_many(batch)

        self.logger.info("Shift ended: session=%s duration=%ss", session.id, session.duration_sec)
        return session

    def cancel_running_shift(self) -> None:
        self.ensure_schema()
        self.store.remove(RUNNING_KEY)
        self.logger.info("Running shift cancelled")

    def build_session(self, start_ms: int, end_ms: int, kind: SessionKind, session_id: str | None = None) -> Session:
        return Session(
            id=session_id or uuid.uuid4().hex,
            start_ms=start_ms,
            end_ms=end_ms,
            duration_sec=max(0, (end_ms - start_ms) // 1000),
            day_key=day_key(start_ms, self.tz),
            week_key=week_key(start_ms, self.tz),
            month_key=month_key(start_ms, self.tz),
            kind=kind,
        )

    def elapsed_sec(self, running: RunningShift | None, day_totals: dict[str, int], now_ms: int) -> int:
        if running is not None:
            return running.base_today_sec + max(0, (now_ms - running.start_ms) // 1000)
        return day_totals.get(day_key(now_ms, self.tz), 0)

    def get_snapshot(self) -> Snapshot:
        running = self.get_running()
        rollups = self.rollups.read()
        now_ms = self.now_ms()

        return Snapshot(
            running=running,
            elapsed_sec=self.elapsed_sec(running, rollups.day, now_ms),
            totals=Totals(
                today_sec=rollups.day.get(day_key(now_ms, self.tz), 0),
                this_week_sec=rollups.week.get(week_key(now_ms, self.tz), 0),
                this_month_sec=rollups.month.get(month_key(now_ms, self.tz), 0),
            ),
        )

    def get_all_rollups(self) -> Rollups:
        self.ensure_schema()
        return self.rollups.read()

    def get_sessions(self) -> list[Session]:
        self.ensure_schema()
        return self.ledger.read()

    def rebuild_rollups_from_sessions(self) -> Rollups:
        self.ensure_schema()
        return self.rollups.rebuild(self.ledger.read())
