"""
Booking flow on top of the scheduling engine.

The AI model confirms a booking by embedding a command in its reply:

    [AGENDAR: 2025-03-18 10:00 30 "Maria Silva" "Serviço: Corte"]

``handle_ai_reply`` extracts it, re-checks the slot against a freshly
refreshed engine, and either stores the appointment or swaps the reply for
a message offering alternatives.
"""

import logging
import re
from datetime import date
from typing import Optional

from src.logging_context import tenant_context
from src.prompts.prompt_templates import (
    build_confirmation_message,
    build_unavailable_message,
)
from src.schemas.booking_schema import BookingCommand, BookingResponse, SuggestedSlot
from src.scheduling.aggregator import LocalCommitmentStore
from src.scheduling.cache import EngineCache
from src.scheduling.engine import SchedulingEngine
from src.scheduling.errors import SourceUnavailableError
from src.tools.appointments import DEFAULT_CLIENT_LABEL
from src.utils import time_to_minutes

logger = logging.getLogger(__name__)

BOOKING_COMMAND_RE = re.compile(
    r'\[AGENDAR:\s*(\d{4}-\d{2}-\d{2})\s+(\d{2}:\d{2})\s+(\d+)\s+"([^"]+)"(?:\s+"([^"]*)")?\]'
)

BOOKING_ERROR_MESSAGE = (
    "Houve um erro ao criar o agendamento. Por favor, tenta novamente "
    "ou contacta-nos diretamente."
)


def parse_booking_command(reply: str) -> Optional[BookingCommand]:
    """Return the first well-formed booking command in ``reply``, if any."""
    match = BOOKING_COMMAND_RE.search(reply)
    if not match:
        return None
    day, start_time, duration, client, notes = match.groups()
    try:
        time_to_minutes(start_time)
        return BookingCommand(
            raw=match.group(0),
            date=date.fromisoformat(day),
            start_time=start_time,
            duration_minutes=int(duration),
            client=client.strip(),
            notes=notes or None,
        )
    except ValueError as exc:
        logger.warning("Ignoring malformed booking command %r: %s", match.group(0), exc)
        return None


async def book_appointment(
    cache: EngineCache,
    store: LocalCommitmentStore,
    tenant_id: str,
    day: Optional[date],
    start_time: str,
    duration: Optional[int],
    client: str,
    phone: Optional[str] = None,
    notes: Optional[str] = None,
) -> BookingResponse:
    """Book ``start_time`` on ``day`` if it is still free.

    The engine is refreshed before checking so a booking made a moment ago
    by another conversation is seen. Refresh, check and insert run under the
    tenant's booking lock; if the refresh fails nothing is stored. On success
    the tenant's cache entry is invalidated.
    """
    missing = [
        field_name
        for field_name, value in [("date", day), ("start_time", start_time)]
        if not value
    ]
    if missing:
        return BookingResponse(
            success=False,
            message=f"Cannot create booking - missing required fields: {', '.join(missing)}.",
        )

    try:
        start = time_to_minutes(start_time)
    except ValueError as exc:
        return BookingResponse(success=False, message=str(exc))

    with tenant_context(tenant_id):
        async with cache.lock(tenant_id):
            try:
                engine = await cache.get(tenant_id, force_refresh=True)
            except SourceUnavailableError as exc:
                logger.error(
                    "Cannot verify slot for %s on %s at %s: %s", tenant_id, day, start_time, exc
                )
                return BookingResponse(
                    success=False,
                    message=BOOKING_ERROR_MESSAGE,
                    date=day,
                    time=start_time,
                )
            return await _check_and_insert(
                cache, engine, store, tenant_id, day, start, start_time, duration, client, phone, notes
            )


async def _check_and_insert(
    cache: EngineCache,
    engine: SchedulingEngine,
    store: LocalCommitmentStore,
    tenant_id: str,
    day: date,
    start: int,
    start_time: str,
    duration: Optional[int],
    client: str,
    phone: Optional[str],
    notes: Optional[str],
) -> BookingResponse:
    # Caller holds cache.lock(tenant_id)
    minutes = duration if duration else engine.effective_duration()
    today = engine.snapshot.window_start

    decision = engine.is_bookable(day, start, minutes)
    if not decision.bookable:
        alternatives = engine.find_alternatives(day, start, minutes)
        logger.info(
            "Booking rejected for %s on %s at %s: %s (conflict with %s)",
            tenant_id, day, start_time, decision.reason.value, decision.conflict_with,
        )
        suggestions = alternatives.same_day or alternatives.next_day
        return BookingResponse(
            success=False,
            message=build_unavailable_message(day, start, alternatives, today),
            date=day,
            time=start_time,
            duration_minutes=minutes,
            reason=decision.reason.value,
            alternatives=[SuggestedSlot(date=s.date, time=s.time) for s in suggestions],
        )

    label = client.strip() if client and client.strip() else DEFAULT_CLIENT_LABEL
    try:
        appointment_id = await store.insert_commitment(
            tenant_id, day, start_time, minutes, label, phone=phone, notes=notes
        )
    except Exception:
        logger.exception("Failed to store appointment for %s on %s at %s", tenant_id, day, start_time)
        return BookingResponse(
            success=False,
            message=BOOKING_ERROR_MESSAGE,
            date=day,
            time=start_time,
            duration_minutes=minutes,
        )

    cache.invalidate(tenant_id)
    return BookingResponse(
        success=True,
        message=build_confirmation_message(day, start, minutes, label, today),
        appointment_id=appointment_id,
        date=day,
        time=start_time,
        duration_minutes=minutes,
    )


async def handle_ai_reply(
    cache: EngineCache,
    store: LocalCommitmentStore,
    tenant_id: str,
    reply: str,
    phone: Optional[str] = None,
) -> str:
    """Execute any booking command in ``reply`` and return the text to send."""
    command = parse_booking_command(reply)
    if command is None:
        return reply

    result = await book_appointment(
        cache,
        store,
        tenant_id,
        command.date,
        command.start_time,
        command.duration_minutes,
        command.client,
        phone=phone,
        notes=command.notes,
    )
    if result.success:
        return reply.replace(command.raw, "").strip()
    return result.message
