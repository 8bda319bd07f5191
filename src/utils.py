"""Shared clock-time and date helpers used across the scheduling engine."""

import re
from datetime import date

_TIME_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})(?::\d{2})?\s*$")

# Sunday-first, matching the weekday indices stored in tenant profiles
DAY_NAMES = [
    "domingo", "segunda-feira", "terça-feira", "quarta-feira",
    "quinta-feira", "sexta-feira", "sábado",
]
MONTH_NAMES = [
    "janeiro", "fevereiro", "março", "abril", "maio", "junho",
    "julho", "agosto", "setembro", "outubro", "novembro", "dezembro",
]


def time_to_minutes(value: str) -> int:
    """Convert an ``HH:MM`` (or ``HH:MM:SS``) string to minutes from midnight.

    Examples:
        >>> time_to_minutes("09:30")
        570
        >>> time_to_minutes("14:05:00")
        845
    """
    match = _TIME_RE.match(value or "")
    if not match:
        raise ValueError(f"Invalid clock time: {value!r}")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise ValueError(f"Invalid clock time: {value!r}")
    return hours * 60 + minutes


def minutes_to_time(minutes: int) -> str:
    """Convert minutes from midnight to ``HH:MM``.

    Examples:
        >>> minutes_to_time(570)
        '09:30'
        >>> minutes_to_time(1080)
        '18:00'
    """
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def round_up(minutes: int, granularity: int) -> int:
    """Round ``minutes`` up to the next multiple of ``granularity``."""
    return -(-minutes // granularity) * granularity


def weekday_index(day: date) -> int:
    """Sunday-first weekday index (0 = Sunday ... 6 = Saturday)."""
    return (day.weekday() + 1) % 7


def day_name(day: date) -> str:
    return DAY_NAMES[weekday_index(day)]


def format_date_for_display(day: date, today: date) -> str:
    """Natural pt-PT label for a date relative to today.

    'hoje', 'amanhã', the weekday name within the next five days,
    otherwise '25 de março'.
    """
    diff = (day - today).days
    if diff == 0:
        return "hoje"
    if diff == 1:
        return "amanhã"
    if 1 < diff <= 5:
        return day_name(day)
    return f"{day.day} de {MONTH_NAMES[day.month - 1]}"


def format_time_for_display(minutes: int) -> str:
    """Spoken-style time, e.g. 16:30 -> '16h30', 09:00 -> '09h00'."""
    return minutes_to_time(minutes).replace(":", "h")
