"""
In-memory appointment store.

In production, this is the hosted appointments table queried per tenant;
the engine only needs the list/insert pair defined by
``LocalCommitmentStore``.
"""

import logging
import uuid
from datetime import date, datetime, timezone
from typing import Optional, TypedDict

from src.utils import time_to_minutes

logger = logging.getLogger(__name__)

DEFAULT_CLIENT_LABEL = "Cliente WhatsApp"
DEFAULT_NOTES = "Agendado via WhatsApp AI"


class AppointmentRecord(TypedDict):
    """Full appointment record stored in the system."""

    id: str
    tenant_id: str
    date: str
    start_time: str
    duration_minutes: int
    label: str
    phone: Optional[str]
    notes: str
    source: str
    created_at: str


class InMemoryAppointmentStore:
    """Keeps appointments per tenant; satisfies ``LocalCommitmentStore``."""

    def __init__(self) -> None:
        self._appointments: dict[str, list[AppointmentRecord]] = {}

    async def list_commitments(
        self, tenant_id: str, date_from: date, date_to: date
    ) -> list[dict]:
        rows = []
        for record in self._appointments.get(tenant_id, []):
            day = date.fromisoformat(record["date"])
            if date_from <= day <= date_to:
                rows.append(
                    {
                        "date": record["date"],
                        "start_time": record["start_time"],
                        "duration_minutes": record["duration_minutes"],
                        "label": record["label"],
                    }
                )
        return rows

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
        """Store an appointment and return its id."""
        time_to_minutes(start_time)  # reject malformed times before storing
        appointment_id = f"APT-{uuid.uuid4().hex[:8].upper()}"
        record: AppointmentRecord = {
            "id": appointment_id,
            "tenant_id": tenant_id,
            "date": day.isoformat(),
            "start_time": start_time,
            "duration_minutes": duration_minutes,
            "label": label or DEFAULT_CLIENT_LABEL,
            "phone": phone,
            "notes": notes or DEFAULT_NOTES,
            "source": "whatsapp_ai",
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
        self._appointments.setdefault(tenant_id, []).append(record)
        logger.info(
            "Appointment created: %s for %s on %s at %s (%d min)",
            appointment_id, tenant_id, record["date"], start_time, duration_minutes,
        )
        return appointment_id

    def get_appointment(self, tenant_id: str, appointment_id: str) -> Optional[AppointmentRecord]:
        for record in self._appointments.get(tenant_id, []):
            if record["id"] == appointment_id:
                return record
        return None

    def all_for(self, tenant_id: str) -> list[AppointmentRecord]:
        return list(self._appointments.get(tenant_id, []))

    def reset(self) -> None:
        """Clear all appointments. Used by test fixtures for isolation."""
        self._appointments.clear()
