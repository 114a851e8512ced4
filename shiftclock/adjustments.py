from __future__ import annotations

import math
from datetime import datetime, time, timedelta, timezone

from .calendar_keys import local_midnight, parse_day_key, to_ms
from .models import Session, SessionKind
from .store import SESSIONS_KEY
from .tracker import ShiftTracker

MANUAL_START_TIME = time(9, 0)


def _commit(tracker: ShiftTracker, sessions: list[Session]) -> None:
    # Ledger and rebuilt rollups land in one batch.
    batch = {SESSIONS_KEY: tracker.ledger.serialize(sessions)}
    batch.update(tracker.rollups.serialize(tracker.rollups.build(sessions)))
    tracker.store.set_many(batch)


def change_day_hours(tracker: ShiftTracker, day_key: str, hours: float) -> None:
    """Replace everything recorded for a local day with a single manual entry.

    Sessions are matched on the day their start falls on. A positive amount is
    stored as one manual-adjustment session starting at 09:00 local time,
    moved earlier when needed so that it ends by the next midnight.
    """
    day_value = parse_day_key(day_key)
    if isinstance(hours, bool) or not math.isfinite(hours) or hours < 0:
        raise ValueError(f"Hours must be a non-negative number, got {hours!r}")

    tracker.ensure_schema()
    new_sec = math.floor(hours * 3600)
    sessions = tracker.ledger.without_day(tracker.ledger.read(), day_key)

    if new_sec > 0:
        day_start_ms = to_ms(local_midnight(day_value, tracker.tz))
        day_end_ms = to_ms(local_midnight(day_value + timedelta(days=1), tracker.tz))
        duration_ms = new_sec * 1000
        if duration_ms > day_end_ms - day_start_ms:
            raise ValueError(f"{hours} hours do not fit in {day_key}")

        preferred = datetime.combine(day_value, MANUAL_START_TIME, tzinfo=tracker.tz)
        start_ms = min(to_ms(preferred.astimezone(timezone.utc)), day_end_ms - duration_ms)
        sessions.append(
            tracker.build_session(
                start_ms,
                start_ms + duration_ms,
                SessionKind.MANUAL_ADJUSTMENT,
                session_id=f"manual-{day_key}",
            )
        )

    _commit(tracker, sessions)
    tracker.logger.info("Set %s to %ss", day_key, new_sec)


def delete_day_hours(tracker: ShiftTracker, day_key: str) -> None:
    parse_day_key(day_key)
    tracker.ensure_schema()

    sessions = tracker.ledger.without_day(tracker.ledger.read(), day_key)
    _commit(tracker, sessions)
    tracker.logger.info("Cleared %s", day_key)
