"""Immutable engine state, replaced wholesale on every refresh."""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from src.schemas.commitment_schema import Commitment
from src.schemas.tenant_schema import Product, TenantConfig
from src.scheduling.business_hours import DayHours
from src.scheduling.occupied_index import OccupiedIndex, OccupiedRange
from src.scheduling.slot_engine import Slot


@dataclass(frozen=True)
class DayAvailability:
    """Precomputed availability for one date of the rolling window."""
    date: date
    hours: Optional[DayHours]
    duration_minutes: int
    slots: tuple[Slot, ...] = ()
    first_by_service: tuple[tuple[Product, Optional[Slot]], ...] = ()

    @property
    def is_closed(self) -> bool:
        return self.hours is None

    @property
    def is_fully_booked(self) -> bool:
        if self.is_closed:
            return False
        if self.first_by_service:
            return all(slot is None for _, slot in self.first_by_service)
        return not self.slots


@dataclass(frozen=True)
class EngineSnapshot:
    """Everything a query needs, captured at one refresh."""
    tenant_id: str
    config: TenantConfig
    commitments: tuple[Commitment, ...]
    occupied: OccupiedIndex
    days: tuple[DayAvailability, ...]
    window_start: date
    window_end: date
    granularity: int
    built_at: datetime
    external_degraded: bool = False

    def day(self, day: date) -> Optional[DayAvailability]:
        for availability in self.days:
            if availability.date == day:
                return availability
        return None

    def ranges_for(self, day: date) -> list[OccupiedRange]:
        return self.occupied.get(day, [])

    def same_state(self, other: "EngineSnapshot") -> bool:
        """Equal apart from build time."""
        return (
            self.config == other.config
            and self.commitments == other.commitments
            and self.occupied == other.occupied
            and self.days == other.days
            and self.window_start == other.window_start
            and self.window_end == other.window_end
            and self.external_degraded == other.external_degraded
        )
