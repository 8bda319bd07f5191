"""
Occupied-range index and the overlap predicate shared by every
availability decision.

Ranges are grouped per date and sorted by start. Overlapping ranges are
kept separate: a conflict names the commitment it collides with, and days
hold few enough commitments that a linear scan is enough.
"""

from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from typing import Iterable

from src.schemas.commitment_schema import Commitment, CommitmentSource
from src.utils import minutes_to_time


@dataclass(frozen=True)
class OccupiedRange:
    """Half-open interval [start_minutes, end_minutes) on one date."""
    date: date
    start_minutes: int
    end_minutes: int
    label: str
    source: CommitmentSource = CommitmentSource.LOCAL

    @property
    def display(self) -> str:
        return f"{minutes_to_time(self.start_minutes)}-{minutes_to_time(self.end_minutes)}"


OccupiedIndex = dict[date, list[OccupiedRange]]


def overlaps(start: int, end: int, occupied: OccupiedRange) -> bool:
    """True when [start, end) intersects the occupied range."""
    return start < occupied.end_minutes and end > occupied.start_minutes


def find_conflicts(
    ranges: Iterable[OccupiedRange], start: int, end: int
) -> list[OccupiedRange]:
    """All ranges that [start, end) collides with, in index order."""
    return [r for r in ranges if overlaps(start, end, r)]


def build_occupied_index(
    commitments: Iterable[Commitment], buffer_minutes: int = 0
) -> OccupiedIndex:
    """Group commitments into sorted per-date occupied ranges.

    Each range spans the commitment's duration plus the tenant's buffer.
    """
    index: dict[date, list[OccupiedRange]] = defaultdict(list)
    for commitment in commitments:
        index[commitment.date].append(
            OccupiedRange(
                date=commitment.date,
                start_minutes=commitment.start_minutes,
                end_minutes=commitment.end_minutes + buffer_minutes,
                label=commitment.label,
                source=commitment.source,
            )
        )
    for ranges in index.values():
        ranges.sort(key=lambda r: (r.start_minutes, r.end_minutes))
    return dict(index)
