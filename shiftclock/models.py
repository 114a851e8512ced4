from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

RollupMap = dict[str, int]


class SessionKind(str, Enum):
    RECORDED = "recorded"
    MANUAL_ADJUSTMENT = "manual_adjustment"


@dataclass(frozen=True, slots=True)
class RunningShift:
    start_ms: int
    started_at_day_key: str
    base_today_sec: int


@dataclass(frozen=True, slots=True)
class Session:
    id: str
    start_ms: int
    end_ms: int
    duration_sec: int
    # Keys derived from start_ms, used for ledger lookups only.
    day_key: str
    week_key: str
    month_key: str
    kind: SessionKind = SessionKind.RECORDED


@dataclass(slots=True)
class Rollups:
    day: RollupMap = field(default_factory=dict)
    week: RollupMap = field(default_factory=dict)
    month: RollupMap = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class Totals:
    today_sec: int
    this_week_sec: int
    this_month_sec: int


@dataclass(frozen=True, slots=True)
class Snapshot:
    running: RunningShift | None
    elapsed_sec: int
    totals: Totals


@dataclass(frozen=True, slots=True)
class ReportRow:
    label: str
    seconds: int
