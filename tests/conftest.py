"""Shared test fixtures and helpers."""

from datetime import date, datetime, timedelta
from typing import Iterable, Optional
from zoneinfo import ZoneInfo

import pytest

from src.config import SchedulingConfig
from src.schemas.commitment_schema import Commitment, CommitmentSource
from src.schemas.tenant_schema import (
    BusinessHours,
    FixedDuration,
    PerService,
    Product,
    TenantConfig,
)
from src.scheduling.engine import Planner, SchedulingEngine
from src.scheduling.occupied_index import build_occupied_index
from src.tools.appointments import InMemoryAppointmentStore
from src.tools.calendar_feed import InMemoryCalendarFeed
from src.tools.tenant_config import InMemoryTenantConfigStore
from src.utils import time_to_minutes

LISBON = ZoneInfo("Europe/Lisbon")

# Monday, before opening
NOW = datetime(2025, 3, 17, 8, 0, tzinfo=LISBON)
TODAY = NOW.date()
TOMORROW = TODAY + timedelta(days=1)

TENANT = "tenant-1"

SCHEDULING = SchedulingConfig(
    slot_granularity_minutes=10,
    window_days=7,
    default_service_duration=60,
    default_open_hour=9,
    default_close_hour=18,
    engine_cache_ttl_sec=60.0,
    timezone="Europe/Lisbon",
)


class MutableClock:
    """Clock whose current time tests can move."""

    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class FailingStore:
    """Local store that cannot be reached."""

    def __init__(self) -> None:
        self.calls = 0

    async def list_commitments(self, tenant_id, date_from, date_to):
        self.calls += 1
        raise ConnectionError("database unreachable")

    async def insert_commitment(self, tenant_id, day, start_time, duration_minutes, label,
                                phone=None, notes=None):
        raise ConnectionError("database unreachable")


class FailingConfigStore:
    async def get_config(self, tenant_id):
        raise ConnectionError("profile table unreachable")


def make_config(
    open_hour: int = 9,
    close_hour: int = 18,
    duration: int = 30,
    working_days: Iterable[int] = range(7),
    per_weekday: Optional[dict[int, tuple[int, int]]] = None,
    services: Optional[list[tuple[str, int]]] = None,
    buffer_minutes: int = 0,
) -> TenantConfig:
    """Helper to create a TenantConfig; ``services`` switches to per-service mode."""
    if services:
        mode = PerService(
            services=[
                Product(id=name.lower(), name=name, duration_minutes=minutes)
                for name, minutes in services
            ]
        )
    else:
        mode = FixedDuration(minutes=duration)
    return TenantConfig(
        duration_mode=mode,
        per_weekday_hours={
            day: BusinessHours(open=o, close=c) for day, (o, c) in (per_weekday or {}).items()
        },
        working_days=frozenset(working_days),
        global_hours=BusinessHours(open=open_hour, close=close_hour),
        buffer_minutes=buffer_minutes,
    )


def make_commitment(
    day: date,
    start: str,
    duration: int = 30,
    label: str = "Ocupado",
    source: CommitmentSource = CommitmentSource.LOCAL,
) -> Commitment:
    """Helper to create a Commitment from an HH:MM start."""
    return Commitment(
        date=day,
        start_minutes=time_to_minutes(start),
        duration_minutes=duration,
        source=source,
        label=label,
    )


def make_planner(
    config: Optional[TenantConfig] = None,
    commitments: Iterable[Commitment] = (),
    now: datetime = NOW,
    window_days: int = 7,
    granularity: int = 10,
) -> Planner:
    """Wire resolver, checker, slot engine and finder over fixed commitments."""
    config = config or make_config()
    index = build_occupied_index(commitments, config.buffer_minutes)
    return Planner.build(
        config, index, now.date(), now.date() + timedelta(days=window_days), now, granularity
    )


def profile_row(**overrides) -> dict:
    """Helper to create a stored profile row."""
    row = {
        "business_hour_open": 9,
        "business_hour_close": 18,
        "working_days": [1, 2, 3, 4, 5],
        "fixed_service_duration": 30,
    }
    row.update(overrides)
    return row


@pytest.fixture
def clock():
    return MutableClock()


@pytest.fixture
def appointment_store():
    return InMemoryAppointmentStore()


@pytest.fixture
def calendar_feed():
    return InMemoryCalendarFeed()


@pytest.fixture
def config_store():
    store = InMemoryTenantConfigStore()
    store.set_profile(TENANT, profile_row())
    return store


@pytest.fixture
def engine_factory(appointment_store, config_store, calendar_feed, clock):
    """Build engines sharing the test stores and clock."""

    def factory(tenant_id: str = TENANT, **kwargs) -> SchedulingEngine:
        kwargs.setdefault("clock", clock)
        kwargs.setdefault("scheduling", SCHEDULING)
        kwargs.setdefault("feed_timeout_sec", 1.0)
        return SchedulingEngine(
            tenant_id,
            kwargs.pop("local_store", appointment_store),
            kwargs.pop("config_store", config_store),
            kwargs.pop("external_feed", calendar_feed),
            **kwargs,
        )

    return factory
