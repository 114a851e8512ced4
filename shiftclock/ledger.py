from __future__ import annotations

import json
import logging
import math
from collections.abc import Iterable
from zoneinfo import ZoneInfo

from .calendar_keys import day_key, month_key, week_key
from .models import Session, SessionKind
from .store import SESSIONS_KEY, KeyValueStore

logger = logging.getLogger(__name__)


def session_to_dict(session: Session) -> dict:
    return {
        "id": session.id,
        "startMs": session.start_ms,
        "endMs": session.end_ms,
        "durationSec": session.duration_sec,
        "dayKey": session.day_key,
        "weekKey": session.week_key,
        "monthKey": session.month_key,
        "kind": session.kind.value,
    }


def _is_finite_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def session_from_dict(raw, tz: ZoneInfo) -> Session | None:
    """Build a Session from a persisted record, or None if the record is malformed.

    Missing or non-string calendar keys are derived again from startMs.
    """
    if not isinstance(raw, dict):
        return None

    session_id = raw.get("id")
    start_ms = raw.get("startMs")
    end_ms = raw.get("endMs")
    duration_sec = raw.get("durationSec")
    if not isinstance(session_id, str):
        return None
    if not all(_is_finite_number(value) for value in (start_ms, end_ms, duration_sec)):
        return None
    if end_ms < start_ms or duration_sec < 0:
        return None

    derived = (day_key, week_key, month_key)
    keys = [
        value if isinstance(value, str) else derive(int(start_ms), tz)
        for value, derive in zip((raw.get("dayKey"), raw.get("weekKey"), raw.get("monthKey")), derived)
    ]

    try:
        kind = SessionKind(raw.get("kind", SessionKind.RECORDED.value))
    except ValueError:
        return None

    return Session(
        id=session_id,
        start_ms=int(start_ms),
        end_ms=int(end_ms),
        duration_sec=int(duration_sec),
        day_key=keys[0],
        week_key=keys[1],
        month_key=keys[2],
        kind=kind,
    )


class SessionLedger:
    """Ordered collection of completed sessions persisted under one key."""

    def __init__(self, store: KeyValueStore, tz: ZoneInfo) -> None:
        self.store = store
        self.tz = tz

    def read(self) -> list[Session]:
        raw = self.store.get(SESSIONS_KEY)
        if not raw:
            return []

        try:
            records = json.loads(raw)
        except ValueError:
            logger.warning("Discarding unreadable session ledger")
            return []

        if not isinstance(records, list):
            logger.warning("Discarding session ledger with unexpected shape")
            return []

        sessions: list[Session] = []
        for record in records:
            session = session_from_dict(record, self.tz)
            if session is None:
                logger.warning("Dropping malformed session record: %r", record)
                continue
            sessions.append(session)
        return sessions

    def serialize(self, sessions: Iterable[Session]) -> str:
        return json.dumps([session_to_dict(session) for session in sessions])

    @staticmethod
    def without_day(sessions: Iterable[Session], day_key: str) -> list[Session]:
        return [session for session in sessions if session.day_key != day_key]
