from __future__ import annotations


class ShiftError(Exception):
    """Base class for shift state violations surfaced to callers."""


class AlreadyRunningError(ShiftError):
    def __init__(self) -> None:
        super().__init__("Shift already running.")


class NoRunningShiftError(ShiftError):
    def __init__(self) -> None:
        super().__init__("No running shift to end.")


class ClockSkewError(ShiftError):
    """The end instant precedes the start; the running shift has already been discarded."""

    def __init__(self, start_ms: int, end_ms: int) -> None:
        super().__init__(
            "Device time appears to have moved backwards. Shift was stopped for safety."
        )
        self.start_ms = start_ms
        self.end_ms = end_ms
