"""Commitment models: anything that occupies time on a tenant's calendar."""

from datetime import date
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from src.utils import minutes_to_time


class CommitmentSource(str, Enum):
    LOCAL = "local"
    EXTERNAL = "external"


class Commitment(BaseModel):
    """A normalized, immutable time-occupying event."""

    model_config = ConfigDict(frozen=True)

    date: date
    start_minutes: int = Field(ge=0, le=1439)
    duration_minutes: int = Field(gt=0)
    source: CommitmentSource
    label: str = "Ocupado"

    @property
    def start_time(self) -> str:
        return minutes_to_time(self.start_minutes)

    @property
    def end_minutes(self) -> int:
        return self.start_minutes + self.duration_minutes
