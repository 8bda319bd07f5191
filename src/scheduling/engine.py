"""
Scheduling engine façade: one instance per tenant.

Owns the tenant's configuration and an immutable ``EngineSnapshot``.
``refresh()`` builds a complete new snapshot and swaps the reference; every
query reads the reference once, so readers see either the old or the new
state, never a mix. A refresh that fails on the local store keeps the last
good snapshot.

Usage:
    engine = SchedulingEngine("user-123", appointment_store, config_store, calendar_feed)
    await engine.initialize()
    engine.available_slots(date(2025, 3, 18), 30)
    decision = engine.is_bookable(date(2025, 3, 18), 600, 30)
    context = engine.generate_ai_context()
"""

import asyncio
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable, Optional, Protocol
from zoneinfo import ZoneInfo

from src.config import SchedulingConfig, settings
from src.logging_context import get_tenant_logger, set_tenant_id, tenant_context
from src.prompts.system_prompts import SCHEDULING_INSTRUCTIONS
from src.schemas.tenant_schema import TenantConfig
from src.scheduling.aggregator import (
    AggregationResult,
    CommitmentAggregator,
    ExternalCalendarFeed,
    LocalCommitmentStore,
)
from src.scheduling.alternatives import AlternativeSlotFinder, Alternatives
from src.scheduling.business_hours import BusinessHoursResolver, DayHours
from src.scheduling.conflict_checker import BookingDecision, ConflictChecker
from src.scheduling.context_formatter import render
from src.scheduling.errors import EngineNotInitializedError, SourceUnavailableError
from src.scheduling.occupied_index import OccupiedIndex, build_occupied_index
from src.scheduling.slot_engine import Slot, SlotEngine
from src.scheduling.snapshot import DayAvailability, EngineSnapshot

logger = get_tenant_logger(__name__)

Clock = Callable[[], datetime]


class TenantConfigStore(Protocol):
    async def get_config(self, tenant_id: str) -> TenantConfig:
        ...


def tenant_clock(zone: ZoneInfo) -> Clock:
    """Wall clock pinned to the configured time zone."""
    return lambda: datetime.now(zone)


@dataclass(frozen=True)
class Planner:
    """The pure components wired over one snapshot and one 'now'."""
    resolver: BusinessHoursResolver
    checker: ConflictChecker
    slots: SlotEngine
    finder: AlternativeSlotFinder

    @classmethod
    def build(
        cls,
        config: TenantConfig,
        index: OccupiedIndex,
        window_start: date,
        window_end: date,
        now: datetime,
        granularity: int,
    ) -> "Planner":
        resolver = BusinessHoursResolver(config)
        checker = ConflictChecker(resolver, index, window_start, window_end, now, granularity)
        slots = SlotEngine(checker)
        return cls(resolver, checker, slots, AlternativeSlotFinder(checker, slots))

    @classmethod
    def for_snapshot(cls, snapshot: EngineSnapshot, now: datetime) -> "Planner":
        return cls.build(
            snapshot.config, snapshot.occupied, snapshot.window_start,
            snapshot.window_end, now, snapshot.granularity,
        )


class SchedulingEngine:
    """Availability and conflict resolution for a single tenant."""

    def __init__(
        self,
        tenant_id: str,
        local_store: LocalCommitmentStore,
        config_store: Optional[TenantConfigStore] = None,
        external_feed: Optional[ExternalCalendarFeed] = None,
        *,
        clock: Optional[Clock] = None,
        scheduling: Optional[SchedulingConfig] = None,
        feed_timeout_sec: Optional[float] = None,
    ) -> None:
        self._tenant_id = tenant_id
        self._sched = scheduling or settings.scheduling
        zone = ZoneInfo(self._sched.timezone)
        self._clock = clock or tenant_clock(zone)
        self._config_store = config_store
        self._aggregator = CommitmentAggregator(
            local_store,
            external_feed,
            zone,
            feed_timeout_sec if feed_timeout_sec is not None else settings.calendar.timeout_sec,
        )
        self._config: Optional[TenantConfig] = None
        self._snapshot: Optional[EngineSnapshot] = None
        self._refresh_task: Optional[asyncio.Task] = None

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    @property
    def tenant_id(self) -> str:
        return self._tenant_id

    @property
    def initialized(self) -> bool:
        return self._snapshot is not None

    @property
    def snapshot(self) -> EngineSnapshot:
        snapshot = self._snapshot
        if snapshot is None:
            raise EngineNotInitializedError(
                f"Scheduling engine for {self._tenant_id} has no snapshot yet"
            )
        return snapshot

    @property
    def config(self) -> TenantConfig:
        return self._config if self._config is not None else TenantConfig()

    async def initialize(self) -> "SchedulingEngine":
        """Load configuration, then build the first snapshot.

        Raises:
            SourceUnavailableError: If the local store cannot be read.
        """
        with tenant_context(self._tenant_id):
            logger.info("Initializing scheduling engine for %s", self._tenant_id)
            await self.load_config()
            await self.refresh()
            logger.info("Scheduling engine ready for %s", self._tenant_id)
        return self

    async def load_config(self) -> TenantConfig:
        """Fetch tenant configuration, falling back to defaults on failure."""
        if self._config_store is None:
            logger.warning("No config store for %s, using defaults", self._tenant_id)
            self._config = TenantConfig()
            return self._config
        try:
            self._config = await self._config_store.get_config(self._tenant_id)
        except Exception as exc:
            logger.warning(
                "Config unavailable for %s (%s), using defaults", self._tenant_id, exc
            )
            self._config = TenantConfig()
        return self._config

    async def refresh(self) -> EngineSnapshot:
        """Rebuild the snapshot; concurrent callers share one in-flight refresh."""
        if self._refresh_task is None or self._refresh_task.done():
            self._refresh_task = asyncio.ensure_future(self._do_refresh())
        return await asyncio.shield(self._refresh_task)

    async def _do_refresh(self) -> EngineSnapshot:
        set_tenant_id(self._tenant_id)
        config = self.config
        now = self._clock()
        try:
            result = await self._aggregator.load(
                self._tenant_id, now.date(), self._sched.window_days
            )
        except SourceUnavailableError:
            if self._snapshot is not None:
                logger.error(
                    "Refresh failed for %s; keeping snapshot built at %s",
                    self._tenant_id, self._snapshot.built_at.isoformat(),
                )
            raise
        snapshot = self.build_snapshot(config, result, now)
        self._snapshot = snapshot
        logger.debug(
            "Snapshot swapped for %s: %d commitment(s), %s..%s",
            self._tenant_id, len(snapshot.commitments),
            snapshot.window_start, snapshot.window_end,
        )
        return snapshot

    def build_snapshot(
        self, config: TenantConfig, result: AggregationResult, now: datetime
    ) -> EngineSnapshot:
        """Index commitments and precompute every date of the rolling window."""
        index = build_occupied_index(result.commitments, config.buffer_minutes)
        window_start = now.date()
        window_end = window_start + timedelta(days=self._sched.window_days)
        granularity = self._sched.slot_granularity_minutes
        planner = Planner.build(config, index, window_start, window_end, now, granularity)

        duration = config.effective_duration()
        days = []
        day = window_start
        while day <= window_end:
            hours = planner.resolver.hours_for(day)
            if hours is None:
                days.append(DayAvailability(date=day, hours=None, duration_minutes=duration))
            else:
                first_by_service = tuple(
                    (product, planner.slots.first_available_slot(day, product.duration_minutes))
                    for product in config.services
                )
                days.append(
                    DayAvailability(
                        date=day,
                        hours=hours,
                        duration_minutes=duration,
                        slots=tuple(planner.slots.available_slots(day, duration)),
                        first_by_service=first_by_service,
                    )
                )
            day += timedelta(days=1)

        return EngineSnapshot(
            tenant_id=self._tenant_id,
            config=config,
            commitments=result.commitments,
            occupied=index,
            days=tuple(days),
            window_start=window_start,
            window_end=window_end,
            granularity=granularity,
            built_at=now,
            external_degraded=result.external_degraded,
        )

    # ------------------------------------------------------------------ #
    # Queries: each reads the snapshot reference exactly once
    # ------------------------------------------------------------------ #

    def _planner(self) -> tuple[EngineSnapshot, Planner]:
        snapshot = self.snapshot
        return snapshot, Planner.for_snapshot(snapshot, self._clock())

    def _duration(self, snapshot: EngineSnapshot, duration: Optional[int]) -> int:
        if duration is None:
            return snapshot.config.effective_duration()
        if duration <= 0:
            raise ValueError(f"Duration must be positive, got {duration}")
        return duration

    def effective_duration(self, product_id: Optional[str] = None) -> int:
        return self.snapshot.config.effective_duration(product_id)

    def hours_for(self, day: date) -> Optional[DayHours]:
        _, planner = self._planner()
        return planner.resolver.hours_for(day)

    def available_slots(self, day: date, duration: Optional[int] = None) -> list[Slot]:
        snapshot, planner = self._planner()
        return planner.slots.available_slots(day, self._duration(snapshot, duration))

    def first_available_slot(self, day: date, duration: Optional[int] = None) -> Optional[Slot]:
        snapshot, planner = self._planner()
        return planner.slots.first_available_slot(day, self._duration(snapshot, duration))

    def is_bookable(
        self, day: date, start_minutes: int, duration: Optional[int] = None
    ) -> BookingDecision:
        snapshot, planner = self._planner()
        return planner.checker.is_bookable(day, start_minutes, self._duration(snapshot, duration))

    def find_alternatives(
        self, day: date, start_minutes: int, duration: Optional[int] = None
    ) -> Alternatives:
        snapshot, planner = self._planner()
        return planner.finder.find_alternatives(
            day, start_minutes, self._duration(snapshot, duration)
        )

    def generate_context(self) -> str:
        return render(self.snapshot)

    def generate_ai_context(self) -> str:
        """Availability summary followed by the booking instructions for the AI."""
        return self.generate_context() + "\n" + SCHEDULING_INSTRUCTIONS
