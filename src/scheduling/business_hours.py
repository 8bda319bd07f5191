"""Resolve the effective opening hours of a tenant for a calendar date."""

from dataclasses import dataclass
from datetime import date
from typing import Optional

from src.schemas.tenant_schema import TenantConfig
from src.utils import minutes_to_time, weekday_index


@dataclass(frozen=True)
class DayHours:
    """Opening bounds for one date, in minutes from midnight."""
    open_minutes: int
    close_minutes: int

    @property
    def label(self) -> str:
        return f"{minutes_to_time(self.open_minutes)}-{minutes_to_time(self.close_minutes)}"


class BusinessHoursResolver:
    """Per-weekday override, else global hours; ``None`` on closed days."""

    def __init__(self, config: TenantConfig) -> None:
        self._config = config

    def is_working_day(self, day: date) -> bool:
        return weekday_index(day) in self._config.working_days

    def hours_for(self, day: date) -> Optional[DayHours]:
        weekday = weekday_index(day)
        if weekday not in self._config.working_days:
            return None
        hours = self._config.per_weekday_hours.get(weekday, self._config.global_hours)
        return DayHours(open_minutes=hours.open * 60, close_minutes=hours.close * 60)
