"""
Alternative-slot search for rejected booking requests.

Four independent probes, nearest first:
1. same_day_before     : closest free start before the request
2. same_day_after      : first free start after whatever blocks the request
3. next_day_first_open : opening time (or first free start) of the next working day
4. next_day_same_time  : the requested clock time on the next working day

The caller decides presentation; same-day suggestions come first.
"""

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

from src.scheduling.conflict_checker import ConflictChecker
from src.scheduling.occupied_index import find_conflicts
from src.scheduling.slot_engine import Slot, SlotEngine
from src.utils import round_up

logger = logging.getLogger(__name__)

# How far past the requested date to look for the next working day
MAX_NEXT_DAY_LOOKAHEAD = 7


@dataclass(frozen=True)
class Alternatives:
    same_day_before: Optional[Slot] = None
    same_day_after: Optional[Slot] = None
    next_day_first_open: Optional[Slot] = None
    next_day_same_time: Optional[Slot] = None

    @property
    def same_day(self) -> list[Slot]:
        return [s for s in (self.same_day_before, self.same_day_after) if s is not None]

    @property
    def next_day(self) -> list[Slot]:
        return [s for s in (self.next_day_first_open, self.next_day_same_time) if s is not None]

    @property
    def none_found(self) -> bool:
        return not self.same_day and not self.next_day


class AlternativeSlotFinder:
    """Searches around a rejected request using the shared checker."""

    def __init__(self, checker: ConflictChecker, slot_engine: SlotEngine) -> None:
        self._checker = checker
        self._slots = slot_engine
        self._granularity = checker.granularity

    def find_alternatives(self, day: date, start: int, duration: int) -> Alternatives:
        first_open, same_time = self._next_day(day, start, duration)
        alternatives = Alternatives(
            same_day_before=self._same_day_before(day, start, duration),
            same_day_after=self._same_day_after(day, start, duration),
            next_day_first_open=first_open,
            next_day_same_time=same_time,
        )
        logger.debug("Alternatives for %s %d (%d min): %s", day, start, duration, alternatives)
        return alternatives

    def _bookable(self, day: date, start: int, duration: int) -> bool:
        return self._checker.is_bookable(day, start, duration).bookable

    def _same_day_before(self, day: date, start: int, duration: int) -> Optional[Slot]:
        hours = self._checker.resolver.hours_for(day)
        if hours is None:
            return None
        for candidate in range(start - self._granularity, hours.open_minutes - 1, -self._granularity):
            if self._bookable(day, candidate, duration):
                return Slot(day, candidate)
        return None

    def _same_day_after(self, day: date, start: int, duration: int) -> Optional[Slot]:
        hours = self._checker.resolver.hours_for(day)
        if hours is None:
            return None
        # Every start before the end of a blocking range still collides with it
        blocking = find_conflicts(self._checker.ranges_for(day), start, start + duration)
        if blocking:
            search_from = round_up(max(r.end_minutes for r in blocking), self._granularity)
        else:
            search_from = start + self._granularity
        for candidate in range(search_from, hours.close_minutes - duration + 1, self._granularity):
            if self._bookable(day, candidate, duration):
                return Slot(day, candidate)
        return None

    def _next_working_day(self, day: date) -> Optional[date]:
        for offset in range(1, MAX_NEXT_DAY_LOOKAHEAD + 1):
            candidate = day + timedelta(days=offset)
            if not self._checker.covers(candidate):
                return None
            if self._checker.resolver.is_working_day(candidate):
                return candidate
        return None

    def _next_day(
        self, day: date, start: int, duration: int
    ) -> tuple[Optional[Slot], Optional[Slot]]:
        next_day = self._next_working_day(day)
        if next_day is None:
            return None, None
        hours = self._checker.resolver.hours_for(next_day)
        if hours is None:
            return None, None

        if self._bookable(next_day, hours.open_minutes, duration):
            first_open: Optional[Slot] = Slot(next_day, hours.open_minutes)
        else:
            first_open = self._slots.first_available_slot(next_day, duration)

        same_time = None
        if self._bookable(next_day, start, duration) and (
            first_open is None or first_open.start_minutes != start
        ):
            same_time = Slot(next_day, start)
        return first_open, same_time
