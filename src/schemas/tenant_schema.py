"""Tenant scheduling configuration models."""

from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from src.config import settings


class BusinessHours(BaseModel):
    """Opening and closing bounds in whole hours."""

    model_config = ConfigDict(frozen=True)

    open: int = Field(ge=0, le=24)
    close: int = Field(ge=0, le=24)

    @model_validator(mode="after")
    def _open_before_close(self) -> "BusinessHours":
        if self.open >= self.close:
            raise ValueError(f"open ({self.open}) must be before close ({self.close})")
        return self


class Product(BaseModel):
    """A bookable service with its own duration."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    duration_minutes: int = Field(gt=0)
    price: Optional[float] = None


class FixedDuration(BaseModel):
    """Every booking takes the same number of minutes."""

    model_config = ConfigDict(frozen=True)

    mode: Literal["fixed"] = "fixed"
    minutes: int = Field(gt=0)


class PerService(BaseModel):
    """Each service carries its own duration."""

    model_config = ConfigDict(frozen=True)

    mode: Literal["per_service"] = "per_service"
    services: list[Product] = Field(min_length=1)


DurationMode = Union[FixedDuration, PerService]


def _default_duration_mode() -> FixedDuration:
    return FixedDuration(minutes=settings.scheduling.default_service_duration)


def _default_hours() -> BusinessHours:
    return BusinessHours(
        open=settings.scheduling.default_open_hour,
        close=settings.scheduling.default_close_hour,
    )


class TenantConfig(BaseModel):
    """Per-tenant business-hours model and service durations.

    Weekday keys use Sunday-first indices (0 = Sunday ... 6 = Saturday).
    ``global_hours`` is always present; an entry in ``per_weekday_hours``
    overrides it for that weekday only.
    """

    model_config = ConfigDict(frozen=True)

    duration_mode: DurationMode = Field(
        default_factory=_default_duration_mode, discriminator="mode"
    )
    per_weekday_hours: dict[int, BusinessHours] = Field(default_factory=dict)
    working_days: frozenset[int] = frozenset(range(7))
    global_hours: BusinessHours = Field(default_factory=_default_hours)
    buffer_minutes: int = Field(default=0, ge=0)

    @field_validator("working_days")
    @classmethod
    def _valid_working_days(cls, value: frozenset[int]) -> frozenset[int]:
        bad = [d for d in value if not 0 <= d <= 6]
        if bad:
            raise ValueError(f"working_days must be within 0-6, got {sorted(bad)}")
        return value

    @field_validator("per_weekday_hours")
    @classmethod
    def _valid_weekday_keys(cls, value: dict[int, BusinessHours]) -> dict[int, BusinessHours]:
        bad = [d for d in value if not 0 <= d <= 6]
        if bad:
            raise ValueError(f"per_weekday_hours keys must be within 0-6, got {sorted(bad)}")
        return value

    @property
    def services(self) -> list[Product]:
        if isinstance(self.duration_mode, PerService):
            return list(self.duration_mode.services)
        return []

    @property
    def is_per_service(self) -> bool:
        return isinstance(self.duration_mode, PerService)

    def effective_duration(self, product_id: Optional[str] = None) -> int:
        """Duration to plan with.

        A known ``product_id`` wins; otherwise per-service tenants plan with
        their shortest service so no bookable window is hidden, and fixed
        tenants use their fixed duration.
        """
        mode = self.duration_mode
        if isinstance(mode, PerService):
            if product_id is not None:
                for product in mode.services:
                    if product.id == product_id:
                        return product.duration_minutes
            return min(p.duration_minutes for p in mode.services)
        return mode.minutes

    @classmethod
    def from_profile(
        cls,
        profile: dict[str, Any],
        products: Optional[list[dict[str, Any]]] = None,
    ) -> "TenantConfig":
        """Build a config from a stored profile row and its product rows.

        ``availability_hour_*`` columns take precedence over
        ``business_hour_*``; per-day entries lacking open or close are ignored.
        """
        sched = settings.scheduling

        open_hour = _first_not_none(
            profile.get("availability_hour_open"),
            profile.get("business_hour_open"),
            sched.default_open_hour,
        )
        close_hour = _first_not_none(
            profile.get("availability_hour_close"),
            profile.get("business_hour_close"),
            sched.default_close_hour,
        )

        per_day: dict[int, BusinessHours] = {}
        for key, hours in (profile.get("hours_per_day") or {}).items():
            if not hours or hours.get("open") is None or hours.get("close") is None:
                continue
            per_day[int(key)] = BusinessHours(open=int(hours["open"]), close=int(hours["close"]))

        raw_days = profile.get("working_days")
        working_days = (
            frozenset(int(d) for d in raw_days) if raw_days else frozenset(range(7))
        )

        duration_mode: DurationMode = FixedDuration(
            minutes=profile.get("fixed_service_duration") or sched.default_service_duration
        )
        if profile.get("product_duration_enabled"):
            services = [
                Product(
                    id=str(p["id"]),
                    name=p.get("name") or "Serviço",
                    duration_minutes=int(p["duration"]),
                    price=p.get("price"),
                )
                for p in (products or [])
                if p.get("duration") and p.get("active", True)
            ]
            if services:
                duration_mode = PerService(services=services)

        return cls(
            duration_mode=duration_mode,
            per_weekday_hours=per_day,
            working_days=working_days,
            global_hours=BusinessHours(open=int(open_hour), close=int(close_hour)),
            buffer_minutes=profile.get("buffer_minutes") or 0,
        )


def _first_not_none(*values: Any) -> Any:
    for value in values:
        if value is not None:
            return value
    return None
