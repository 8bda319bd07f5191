"""Booking command and result data models."""

import datetime
from typing import Optional

from pydantic import BaseModel, Field


class BookingCommand(BaseModel):
    """Booking request emitted by the AI model inside its reply."""
    raw: str
    date: datetime.date
    start_time: str
    duration_minutes: int = Field(gt=0)
    client: str
    notes: Optional[str] = None


class SuggestedSlot(BaseModel):
    """One alternative offered to the customer."""
    date: datetime.date
    time: str


class BookingResponse(BaseModel):
    """Booking attempt result."""
    success: bool
    message: str
    appointment_id: Optional[str] = None
    date: Optional[datetime.date] = None
    time: str = ""
    duration_minutes: int = 0
    reason: Optional[str] = None
    alternatives: list[SuggestedSlot] = Field(default_factory=list)
