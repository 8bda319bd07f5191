"""
External calendar feed clients.

``HttpCalendarFeed`` talks to the calendar bridge service
(``GET {base_url}/events/{tenant_id}?timeMin=...&timeMax=...``), which
returns ``{"events": [{"start", "end", "allDay", "summary"}, ...]}`` or an
``error`` field when the tenant has not connected a calendar.
``InMemoryCalendarFeed`` serves fixed events for demos and tests.
"""

import logging
from datetime import datetime
from typing import Any, Optional

import httpx

from src.config import settings
from src.scheduling.errors import CalendarFeedError

logger = logging.getLogger(__name__)


def normalize_event(raw: dict[str, Any]) -> dict[str, Any]:
    """Map a bridge event to the keys the aggregator reads."""
    return {
        "start": raw.get("start"),
        "end": raw.get("end"),
        "all_day": bool(raw.get("allDay", raw.get("all_day", False))),
        "title": raw.get("summary") or raw.get("title"),
    }


class HttpCalendarFeed:
    """Async HTTP client for the external calendar bridge."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout_sec: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._base_url = (base_url or settings.calendar.base_url).rstrip("/")
        self._timeout = timeout_sec if timeout_sec is not None else settings.calendar.timeout_sec
        self._client = client

    async def list_events(
        self, tenant_id: str, time_min: datetime, time_max: datetime
    ) -> list[dict[str, Any]]:
        """Fetch non-normalized events for the window.

        Raises:
            CalendarFeedError: On transport errors, non-2xx responses, or an
                ``error`` field in the payload.
        """
        url = f"{self._base_url}/events/{tenant_id}"
        params = {"timeMin": time_min.isoformat(), "timeMax": time_max.isoformat()}
        try:
            if self._client is not None:
                response = await self._client.get(url, params=params, timeout=self._timeout)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.get(url, params=params)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as exc:
            raise CalendarFeedError(
                f"Calendar bridge returned {exc.response.status_code} for {tenant_id}"
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise CalendarFeedError(f"Calendar bridge request failed for {tenant_id}: {exc}") from exc

        if payload.get("error"):
            raise CalendarFeedError(f"Calendar bridge error for {tenant_id}: {payload['error']}")

        events = [normalize_event(e) for e in payload.get("events") or []]
        logger.debug("Calendar bridge returned %d event(s) for %s", len(events), tenant_id)
        return events


class InMemoryCalendarFeed:
    """Fixed per-tenant events; ``fail`` simulates an unreachable feed."""

    def __init__(self, events: Optional[dict[str, list[dict[str, Any]]]] = None) -> None:
        self._events = events or {}
        self.fail = False
        self.calls = 0

    def add_event(self, tenant_id: str, event: dict[str, Any]) -> None:
        self._events.setdefault(tenant_id, []).append(normalize_event(event))

    async def list_events(
        self, tenant_id: str, time_min: datetime, time_max: datetime
    ) -> list[dict[str, Any]]:
        self.calls += 1
        if self.fail:
            raise CalendarFeedError(f"Calendar unavailable for {tenant_id}")
        return list(self._events.get(tenant_id, []))

    def reset(self) -> None:
        self._events.clear()
        self.fail = False
        self.calls = 0
