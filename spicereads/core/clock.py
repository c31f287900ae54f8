"""Calendar clock used by the gamification engine.

Every "today" the engine reasons about comes from one injected clock, so
streak and challenge logic is deterministic under test.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Protocol


class Clock(Protocol):
    def today(self) -> date: ...

    def now(self) -> datetime: ...


class SystemClock:
    """Wall clock, UTC calendar days."""

    def today(self) -> date:
        return self.now().date()

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """Clock pinned to a calendar day; `advance` moves it forward for scenario tests."""

    def __init__(self, day: date):
        self._day = day

    def today(self) -> date:
        return self._day

    def now(self) -> datetime:
        return datetime(self._day.year, self._day.month, self._day.day, 12, 0, tzinfo=timezone.utc)

    def set(self, day: date) -> None:
        self._day = day

    def advance(self, days: int = 1) -> date:
        self._day = self._day + timedelta(days=days)
        return self._day
