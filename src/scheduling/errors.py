"""Exceptions raised by the scheduling engine and its data sources.

A rejected slot is not an error: the Conflict Checker returns a
``BookingDecision`` value and callers branch on it.
"""


class SchedulingError(Exception):
    """Base class for scheduling engine failures."""


class ConfigUnavailableError(SchedulingError):
    """Raised when a tenant's configuration could not be fetched."""

    def __init__(self, tenant_id: str, detail: str = "") -> None:
        self.tenant_id = tenant_id
        super().__init__(f"Configuration unavailable for tenant {tenant_id}: {detail}")


class SourceUnavailableError(SchedulingError):
    """Raised when a commitment source could not be read."""

    def __init__(self, source: str, detail: str = "") -> None:
        self.source = source
        super().__init__(f"Commitment source '{source}' unavailable: {detail}")


class CalendarFeedError(SchedulingError):
    """Raised by the external calendar client on transport or API errors."""


class EngineNotInitializedError(SchedulingError):
    """Raised when an engine is queried before its first successful load."""
