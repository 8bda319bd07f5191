"""
Commitment aggregation across the local appointment store and the external
calendar feed.

Both sources are fetched concurrently. The local store is authoritative:
its failure aborts the load, and an external event that starts at the same
(date, time) as a local appointment is treated as the same booking seen
through a second channel and dropped. External feed failures degrade to
"no external commitments" and are reported through ``external_degraded``.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Any, Optional, Protocol
from zoneinfo import ZoneInfo

from pydantic import ValidationError

from src.logging_context import get_tenant_logger
from src.schemas.commitment_schema import Commitment, CommitmentSource
from src.scheduling.errors import SourceUnavailableError
from src.utils import time_to_minutes

logger = get_tenant_logger(__name__)

DEFAULT_COMMITMENT_DURATION = 60
DEFAULT_LABEL = "Ocupado"


class LocalCommitmentStore(Protocol):
    async def list_commitments(
        self, tenant_id: str, date_from: date, date_to: date
    ) -> list[dict[str, Any]]:
        """Rows with ``date``, ``start_time`` (HH:MM), ``duration_minutes``, ``label``."""
        ...

    async def insert_commitment(
        self,
        tenant_id: str,
        day: date,
        start_time: str,
        duration_minutes: int,
        label: str,
        phone: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> str:
        ...


class ExternalCalendarFeed(Protocol):
    async def list_events(
        self, tenant_id: str, time_min: datetime, time_max: datetime
    ) -> list[dict[str, Any]]:
        """Events with ``start``, optional ``end``, ``all_day`` and ``title``."""
        ...


@dataclass(frozen=True)
class AggregationResult:
    commitments: tuple[Commitment, ...]
    external_degraded: bool = False


def _parse_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def _parse_timestamp(value: Any, zone: ZoneInfo) -> Optional[datetime]:
    """Parse an ISO timestamp and express it in the tenant's time zone."""
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=zone)
    return parsed.astimezone(zone)


def local_commitment(row: dict[str, Any]) -> Commitment:
    """Map a local appointment row to a Commitment."""
    return Commitment(
        date=_parse_date(row["date"]),
        start_minutes=time_to_minutes(str(row["start_time"])[:5]),
        duration_minutes=row.get("duration_minutes") or DEFAULT_COMMITMENT_DURATION,
        source=CommitmentSource.LOCAL,
        label=row.get("label") or DEFAULT_LABEL,
    )


def external_commitment(event: dict[str, Any], zone: ZoneInfo) -> Optional[Commitment]:
    """Map an external calendar event, or None when it cannot occupy a slot."""
    if event.get("all_day"):
        return None
    start = _parse_timestamp(event.get("start"), zone)
    if start is None:
        return None
    duration = DEFAULT_COMMITMENT_DURATION
    end = _parse_timestamp(event.get("end"), zone)
    if end is not None:
        minutes = round((end - start).total_seconds() / 60)
        if minutes > 0:
            duration = minutes
    return Commitment(
        date=start.date(),
        start_minutes=start.hour * 60 + start.minute,
        duration_minutes=duration,
        source=CommitmentSource.EXTERNAL,
        label=event.get("title") or DEFAULT_LABEL,
    )


def merge_commitments(
    local: list[Commitment], external: list[Commitment]
) -> tuple[Commitment, ...]:
    """Local first; drop external entries whose (date, start) is already taken."""
    merged = list(local)
    seen = {(c.date, c.start_minutes) for c in local}
    for commitment in external:
        key = (commitment.date, commitment.start_minutes)
        if key in seen:
            continue
        seen.add(key)
        merged.append(commitment)
    merged.sort(key=lambda c: (c.date, c.start_minutes, c.source.value, c.label))
    return tuple(merged)


class CommitmentAggregator:
    """Collects every time-occupying event for a tenant's rolling window."""

    def __init__(
        self,
        local_store: LocalCommitmentStore,
        external_feed: Optional[ExternalCalendarFeed],
        zone: ZoneInfo,
        feed_timeout_sec: float,
    ) -> None:
        self._local = local_store
        self._external = external_feed
        self._zone = zone
        self._feed_timeout = feed_timeout_sec

    async def load(
        self, tenant_id: str, window_start: date, window_days: int
    ) -> AggregationResult:
        """Load commitments dated within [window_start, window_start + window_days].

        Raises:
            SourceUnavailableError: If the local appointment store fails.
        """
        window_end = window_start + timedelta(days=window_days)
        local_result, external_result = await asyncio.gather(
            self._load_local(tenant_id, window_start, window_end),
            self._load_external(tenant_id, window_start, window_end),
            return_exceptions=True,
        )
        if isinstance(local_result, BaseException):
            raise local_result
        if isinstance(external_result, BaseException):
            raise external_result

        external, degraded = external_result
        commitments = merge_commitments(local_result, external)
        logger.info(
            "Loaded %d commitment(s) for %s (%d local, %d external%s)",
            len(commitments), tenant_id, len(local_result), len(external),
            ", external feed degraded" if degraded else "",
        )
        return AggregationResult(commitments=commitments, external_degraded=degraded)

    async def _load_local(
        self, tenant_id: str, window_start: date, window_end: date
    ) -> list[Commitment]:
        try:
            rows = await self._local.list_commitments(tenant_id, window_start, window_end)
        except Exception as exc:
            logger.error("Local store failed for %s: %s", tenant_id, exc)
            raise SourceUnavailableError("local", str(exc)) from exc

        commitments = []
        for row in rows:
            try:
                commitment = local_commitment(row)
            except (KeyError, ValueError, ValidationError) as exc:
                logger.warning("Skipping malformed appointment row %r: %s", row, exc)
                continue
            if window_start <= commitment.date <= window_end:
                commitments.append(commitment)
        return commitments

    async def _load_external(
        self, tenant_id: str, window_start: date, window_end: date
    ) -> tuple[list[Commitment], bool]:
        if self._external is None:
            return [], False

        time_min = datetime.combine(window_start, time.min, tzinfo=self._zone)
        time_max = datetime.combine(window_end, time.max, tzinfo=self._zone)
        try:
            events = await asyncio.wait_for(
                self._external.list_events(tenant_id, time_min, time_max),
                timeout=self._feed_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "External calendar timed out after %.1fs for %s; continuing without it",
                self._feed_timeout, tenant_id,
            )
            return [], True
        except Exception as exc:
            logger.warning(
                "External calendar unavailable for %s (%s); continuing without it",
                tenant_id, exc,
            )
            return [], True

        commitments = []
        for event in events:
            try:
                commitment = external_commitment(event, self._zone)
            except (ValueError, ValidationError) as exc:
                logger.warning("Skipping malformed calendar event %r: %s", event, exc)
                continue
            if commitment is not None and window_start <= commitment.date <= window_end:
                commitments.append(commitment)
        return commitments, False
