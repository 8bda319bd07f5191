"""
Conflict checker: the single bookability predicate.

The Slot Engine and the Alternative-Slot Finder both ask this class whether
a start is free, so the availability advertised to customers and the
decision taken at booking time cannot drift apart.

Usage:
    checker = ConflictChecker(resolver, index, window_start, window_end, now)
    decision = checker.is_bookable(date(2025, 3, 18), 600, 30)
    if not decision.bookable:
        print(decision.reason, decision.conflict_with)
"""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Optional

from src.scheduling.business_hours import BusinessHoursResolver
from src.scheduling.occupied_index import OccupiedIndex, OccupiedRange, find_conflicts
from src.utils import round_up


class RejectionReason(str, Enum):
    """Why a start cannot be booked, in evaluation order."""
    CLOSED_DAY = "closed_day"
    IN_PAST = "in_past"
    OUTSIDE_WINDOW = "outside_window"
    BEFORE_OPEN = "before_open"
    EXCEEDS_CLOSING = "exceeds_closing"
    CONFLICT = "conflict"


@dataclass(frozen=True)
class BookingDecision:
    """Bookable, or rejected with a reason."""
    bookable: bool
    reason: Optional[RejectionReason] = None
    conflicts: tuple[OccupiedRange, ...] = ()

    @property
    def conflict_with(self) -> Optional[str]:
        if not self.conflicts:
            return None
        first = self.conflicts[0]
        return f"{first.display} ({first.label})"


BOOKABLE = BookingDecision(bookable=True)


def rejected(reason: RejectionReason, conflicts: tuple[OccupiedRange, ...] = ()) -> BookingDecision:
    return BookingDecision(bookable=False, reason=reason, conflicts=conflicts)


class ConflictChecker:
    """Answers 'can this exact (date, start, duration) be booked?'.

    ``window_start``/``window_end`` bound the dates whose commitments were
    loaded; anything outside is refused rather than assumed free.
    """

    def __init__(
        self,
        resolver: BusinessHoursResolver,
        index: OccupiedIndex,
        window_start: date,
        window_end: date,
        now: datetime,
        granularity: int,
    ) -> None:
        self.resolver = resolver
        self._index = index
        self.window_start = window_start
        self.window_end = window_end
        self.today = now.date()
        self.granularity = granularity
        # A start already under way this minute is past
        elapsed = now.hour * 60 + now.minute + (1 if now.second or now.microsecond else 0)
        self.earliest_start_today = round_up(elapsed, granularity)

    def ranges_for(self, day: date) -> list[OccupiedRange]:
        return self._index.get(day, [])

    def covers(self, day: date) -> bool:
        return self.window_start <= day <= self.window_end

    def is_past(self, day: date, start: int) -> bool:
        if day < self.today:
            return True
        return day == self.today and start < self.earliest_start_today

    def is_bookable(self, day: date, start: int, duration: int) -> BookingDecision:
        hours = self.resolver.hours_for(day)
        if hours is None:
            return rejected(RejectionReason.CLOSED_DAY)
        if self.is_past(day, start):
            return rejected(RejectionReason.IN_PAST)
        if not self.covers(day):
            return rejected(RejectionReason.OUTSIDE_WINDOW)
        if start < hours.open_minutes:
            return rejected(RejectionReason.BEFORE_OPEN)
        end = start + duration
        if end > hours.close_minutes:
            return rejected(RejectionReason.EXCEEDS_CLOSING)
        conflicts = find_conflicts(self.ranges_for(day), start, end)
        if conflicts:
            return rejected(RejectionReason.CONFLICT, tuple(conflicts))
        return BOOKABLE
