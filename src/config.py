"""
Centralized configuration with environment variable overrides.

Slot granularity, the rolling availability window, cache lifetimes and the
external calendar endpoint are configurable here. Nothing is hardcoded in the
scheduling engine or tool logic.
"""

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from src.logging_context import configure_logging

load_dotenv()

logger = logging.getLogger(__name__)


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


def _safe_float(env_var: str, default: str) -> float:
    """Parse a float from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return float(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid float for {env_var}: {raw!r}"
        ) from None


def _safe_bool(env_var: str, default: str) -> bool:
    raw = os.getenv(env_var, default)
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class SchedulingConfig:
    """Availability engine settings loaded from environment or defaults."""

    slot_granularity_minutes: int = _safe_int("SLOT_GRANULARITY_MINUTES", "10")
    window_days: int = _safe_int("AVAILABILITY_WINDOW_DAYS", "7")
    default_service_duration: int = _safe_int("DEFAULT_SERVICE_DURATION", "60")
    default_open_hour: int = _safe_int("DEFAULT_OPEN_HOUR", "9")
    default_close_hour: int = _safe_int("DEFAULT_CLOSE_HOUR", "18")
    engine_cache_ttl_sec: float = _safe_float("ENGINE_CACHE_TTL", "60.0")
    timezone: str = os.getenv("SCHEDULING_TIMEZONE", "Europe/Lisbon")


@dataclass(frozen=True)
class CalendarFeedConfig:
    """External calendar feed endpoint settings."""

    enabled: bool = _safe_bool("CALENDAR_FEED_ENABLED", "true")
    base_url: str = os.getenv(
        "CALENDAR_API_URL", "https://calendario-production-003b.up.railway.app"
    )
    timeout_sec: float = _safe_float("CALENDAR_FEED_TIMEOUT", "5.0")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    scheduling: SchedulingConfig = field(default_factory=SchedulingConfig)
    calendar: CalendarFeedConfig = field(default_factory=CalendarFeedConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    app_name: str = os.getenv("APP_NAME", "agenda-engine")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    sched = config.scheduling
    if sched.slot_granularity_minutes < 1 or 60 % sched.slot_granularity_minutes:
        raise ValueError(
            "SLOT_GRANULARITY_MINUTES must divide 60, "
            f"got {sched.slot_granularity_minutes}"
        )
    if sched.window_days < 1:
        raise ValueError(
            f"AVAILABILITY_WINDOW_DAYS must be >= 1, got {sched.window_days}"
        )
    if sched.default_service_duration < 1:
        raise ValueError(
            "DEFAULT_SERVICE_DURATION must be >= 1, "
            f"got {sched.default_service_duration}"
        )
    if not 0 <= sched.default_open_hour < sched.default_close_hour <= 24:
        raise ValueError(
            "DEFAULT_OPEN_HOUR/DEFAULT_CLOSE_HOUR must satisfy 0 <= open < close <= 24, "
            f"got {sched.default_open_hour}-{sched.default_close_hour}"
        )
    if sched.engine_cache_ttl_sec <= 0:
        raise ValueError(
            f"ENGINE_CACHE_TTL must be > 0, got {sched.engine_cache_ttl_sec}"
        )
    if config.calendar.timeout_sec <= 0:
        raise ValueError(
            f"CALENDAR_FEED_TIMEOUT must be > 0, got {config.calendar.timeout_sec}"
        )


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    configure_logging(config.log_level)
    logger.info("Configuration loaded for '%s'", config.app_name)
    return config


# Singleton instance
settings = load_config()
