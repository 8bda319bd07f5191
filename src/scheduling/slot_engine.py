"""Enumerate bookable slot starts for a date and service duration."""

from dataclasses import dataclass
from datetime import date
from typing import Iterator, Optional

from src.scheduling.conflict_checker import ConflictChecker
from src.utils import minutes_to_time


@dataclass(frozen=True, order=True)
class Slot:
    """A candidate booking start; meaningful only with a duration."""
    date: date
    start_minutes: int

    @property
    def time(self) -> str:
        return minutes_to_time(self.start_minutes)


class SlotEngine:
    """Walks the slot grid and keeps the starts the checker accepts."""

    def __init__(self, checker: ConflictChecker) -> None:
        self._checker = checker
        self.granularity = checker.granularity

    def candidate_starts(self, day: date, duration: int) -> range:
        """Grid starts between opening (or now, for today) and close - duration."""
        hours = self._checker.resolver.hours_for(day)
        if hours is None or not self._checker.covers(day) or day < self._checker.today:
            return range(0)
        last_start = hours.close_minutes - duration
        if last_start < hours.open_minutes:
            return range(0)
        lower = hours.open_minutes
        if day == self._checker.today:
            lower = max(lower, self._checker.earliest_start_today)
        return range(lower, last_start + 1, self.granularity)

    def _free_starts(self, day: date, duration: int) -> Iterator[int]:
        for start in self.candidate_starts(day, duration):
            if self._checker.is_bookable(day, start, duration).bookable:
                yield start

    def available_slots(self, day: date, duration: int) -> list[Slot]:
        """All free starts on ``day``, ascending."""
        return [Slot(day, start) for start in self._free_starts(day, duration)]

    def first_available_slot(self, day: date, duration: int) -> Optional[Slot]:
        """First free start on ``day``, or None when the day is fully booked."""
        start = next(self._free_starts(day, duration), None)
        return Slot(day, start) if start is not None else None
