from __future__ import annotations

from datetime import datetime
from typing import Literal

from .calendar_keys import from_ms, quarter_key, to_ms, week_days
from .models import ReportRow, Snapshot
from .tracker import ShiftTracker

ReportMode = Literal["daily", "weekly", "monthly", "quarterly"]
WEEKDAY_LABELS = ("MON", "TUE", "WED", "THU", "FRI", "SAT", "SUN")


def _safe_seconds(total_seconds: float) -> int:
    try:
        return max(0, int(total_seconds // 1))
    except (OverflowError, ValueError):
        return 0


def format_hms(total_seconds: float) -> str:
    """Render a duration as HH:MM:SS."""
    hours, remainder = divmod(_safe_seconds(total_seconds), 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours:02}:{minutes:02}:{seconds:02}"


def format_hm(total_seconds: float) -> str:
    """Render a duration as H:MM, e.g. weekly hours like 40:45."""
    hours, remainder = divmod(_safe_seconds(total_seconds), 3600)
    return f"{hours}:{remainder // 60:02}"


class Reporter:
    def __init__(self, tracker: ShiftTracker) -> None:
        self.tracker = tracker

    def rows(self, mode: ReportMode) -> list[ReportRow]:
        rollups = self.tracker.get_all_rollups()

        if mode == "daily":
            totals = rollups.day
        elif mode == "weekly":
            totals = rollups.week
        elif mode == "monthly":
            totals = rollups.month
        elif mode == "quarterly":
            totals = {}
            for month, seconds in rollups.month.items():
                key = quarter_key(month)
                totals[key] = totals.get(key, 0) + seconds
        else:
            raise ValueError(f"Unknown report mode: {mode}")

        # Keys sort chronologically as strings; newest first.
        return [
            ReportRow(label=key, seconds=seconds)
            for key, seconds in sorted(totals.items(), reverse=True)
            if seconds > 0
        ]

    def week_breakdown(self, now: datetime | None = None) -> list[ReportRow]:
        instant = to_ms(now) if now is not None else self.tracker.now_ms()
        day_totals = self.tracker.get_all_rollups().day
        return [
            ReportRow(label=label, seconds=day_totals.get(day.isoformat(), 0))
            for label, day in zip(WEEKDAY_LABELS, week_days(instant, self.tracker.tz))
        ]

    def build_status_content(self, snapshot: Snapshot) -> str:
        if snapshot.running is None:
            state_line = "Clocked out"
        else:
            started = from_ms(snapshot.running.start_ms).astimezone(self.tracker.tz)
            state_line = f"Clocked in since {started:%Y-%m-%d %H:%M}"

        totals = snapshot.totals
        lines = [
            f"**{state_line}**",
            f"Elapsed today: `{format_hms(snapshot.elapsed_sec)}`",
            f"Today: `{format_hm(totals.today_sec)}`",
            f"This week: `{format_hm(totals.this_week_sec)}`",
            f"This month: `{format_hm(totals.this_month_sec)}`",
        ]
        return "\n".join(lines)

    def build_summary_line(self, mode: str, rows: list[ReportRow]) -> str:
        """Total, average per record and peak record over all rows."""
        if not rows:
            return f"Total: `0:00` (0 {mode} records) | Average: `0:00` | Peak: `0:00` (—)"

        total = sum(row.seconds for row in rows)
        peak = max(rows, key=lambda row: row.seconds)
        return (
            f"Total: `{format_hm(total)}` ({len(rows)} {mode} records)"
            f" | Average: `{format_hm(total // len(rows))}`"
            f" | Peak: `{format_hm(peak.seconds)}` ({peak.label})"
        )

    def build_report_content(self, mode: str, rows: list[ReportRow], limit: int = 14) -> str:
        header = f"**{mode.capitalize()} hours**\n{self.build_summary_line(mode, rows)}"
        if not rows:
            return f"{header}\nNo tracked time yet."

        lines = [f"- {row.label}: `{format_hm(row.seconds)}`" for row in rows[:limit]]
        if len(rows) > limit:
            lines.append(f"... and {len(rows) - limit} more")
        return f"{header}\n" + "\n".join(lines)

    def build_week_content(self, rows: list[ReportRow]) -> str:
        total = sum(row.seconds for row in rows)
        lines = [f"- {row.label}: `{format_hm(row.seconds)}`" for row in rows]
        average = total // len(rows) if rows else 0
        return "\n".join(
            ["**This week**", *lines, f"Total: `{format_hm(total)}` | Daily average: `{format_hm(average)}`"]
        )
