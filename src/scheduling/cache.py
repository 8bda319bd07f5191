"""
Per-tenant engine cache with time-to-live and single-flight creation.

Expiry refreshes the existing engine instead of rebuilding it, so the
already-loaded configuration survives. ``invalidate()`` forces the next
access to refresh (or, after a configuration change, to rebuild). Engines
left untouched for ``IDLE_EVICTION_TTLS`` lifetimes are dropped.

Bookings hold ``lock(tenant_id)`` from the forced refresh through the insert,
so two conversations cannot both claim the same slot.

Usage:
    cache = EngineCache(lambda tenant_id: SchedulingEngine(tenant_id, store, configs, feed))
    engine = await cache.get("user-123")
    ...
    async with cache.lock("user-123"):
        engine = await cache.get("user-123", force_refresh=True)
        ...
    cache.invalidate("user-123")   # after a booking
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Callable, Optional

from src.config import settings
from src.logging_context import get_tenant_logger
from src.scheduling.engine import SchedulingEngine
from src.scheduling.errors import SourceUnavailableError

logger = get_tenant_logger(__name__)

EngineFactory = Callable[[str], SchedulingEngine]

# Idle engines are evicted after this many TTLs without a ``get``
IDLE_EVICTION_TTLS = 10


@dataclass
class _CacheEntry:
    engine: SchedulingEngine
    refreshed_at: float
    last_used: float
    stale: bool = False


class EngineCache:
    """Keyed cache of initialized SchedulingEngine instances."""

    def __init__(
        self,
        factory: EngineFactory,
        ttl_sec: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._factory = factory
        self._ttl = ttl_sec if ttl_sec is not None else settings.scheduling.engine_cache_ttl_sec
        self._clock = clock
        self._entries: dict[str, _CacheEntry] = {}
        self._pending: dict[str, asyncio.Task] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def __contains__(self, tenant_id: str) -> bool:
        return tenant_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def lock(self, tenant_id: str) -> asyncio.Lock:
        """The tenant's booking lock; serializes check-then-insert sequences."""
        lock = self._locks.get(tenant_id)
        if lock is None:
            lock = self._locks[tenant_id] = asyncio.Lock()
        return lock

    async def get(self, tenant_id: str, force_refresh: bool = False) -> SchedulingEngine:
        """Return a ready engine for ``tenant_id``.

        An expired or invalidated engine whose refresh fails is served with
        its last good snapshot. A forced refresh never falls back: callers
        that force one are about to act on the result.

        Raises:
            SourceUnavailableError: If the engine has never loaded
                successfully, or a forced refresh could not reach the local
                store.
        """
        now = self._clock()
        self._evict_idle(now)
        entry = self._entries.get(tenant_id)
        if entry is None:
            return await self._create(tenant_id)

        entry.last_used = now
        expired = now - entry.refreshed_at >= self._ttl
        if not (expired or entry.stale or force_refresh):
            return entry.engine

        try:
            await entry.engine.refresh()
        except SourceUnavailableError as exc:
            if force_refresh:
                raise
            logger.warning("Serving stale snapshot for %s: %s", tenant_id, exc)
            return entry.engine
        entry.refreshed_at = self._clock()
        entry.stale = False
        return entry.engine

    async def _create(self, tenant_id: str) -> SchedulingEngine:
        task = self._pending.get(tenant_id)
        if task is None:
            task = asyncio.ensure_future(self._build(tenant_id))
            self._pending[tenant_id] = task
            task.add_done_callback(lambda _: self._pending.pop(tenant_id, None))
        return await asyncio.shield(task)

    async def _build(self, tenant_id: str) -> SchedulingEngine:
        logger.info("Creating scheduling engine for %s", tenant_id)
        engine = self._factory(tenant_id)
        await engine.initialize()
        now = self._clock()
        self._entries[tenant_id] = _CacheEntry(engine=engine, refreshed_at=now, last_used=now)
        return engine

    def _evict_idle(self, now: float) -> None:
        cutoff = now - self._ttl * IDLE_EVICTION_TTLS
        idle = [t for t, entry in self._entries.items() if entry.last_used < cutoff]
        for tenant_id in idle:
            del self._entries[tenant_id]
            lock = self._locks.get(tenant_id)
            if lock is not None and not lock.locked():
                del self._locks[tenant_id]
        if idle:
            logger.info("Evicted %d idle engine(s): %s", len(idle), ", ".join(idle))

    def invalidate(self, tenant_id: str, reload_config: bool = False) -> None:
        """Force the next ``get`` to refresh, or rebuild when config changed."""
        if reload_config:
            if self._entries.pop(tenant_id, None) is not None:
                logger.info("Dropped cached engine for %s (configuration changed)", tenant_id)
            return
        entry = self._entries.get(tenant_id)
        if entry is not None:
            entry.stale = True
            logger.debug("Marked cached engine for %s stale", tenant_id)

    def clear(self) -> None:
        self._entries.clear()
