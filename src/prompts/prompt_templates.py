"""Customer-facing booking messages built from engine results."""

from datetime import date

from src.scheduling.alternatives import Alternatives
from src.scheduling.slot_engine import Slot
from src.utils import format_date_for_display, format_time_for_display

ASK_FOR_FREE_TIMES = "Por favor, pergunta-me quais horários tenho livres!"


def _slot_phrase(slot: Slot, today: date) -> str:
    return f"{format_time_for_display(slot.start_minutes)} {format_date_for_display(slot.date, today)}"


def build_suggestion_lines(requested_date: date, alternatives: Alternatives, today: date) -> list[str]:
    """Same-day suggestions first; next-day ones only when the day has none."""
    requested_label = format_date_for_display(requested_date, today)
    if alternatives.same_day:
        times = " ou às ".join(format_time_for_display(s.start_minutes) for s in alternatives.same_day)
        return [f"Mas tenho disponível às {times} {requested_label}!"]
    if alternatives.next_day:
        phrases = " ou às ".join(_slot_phrase(s, today) for s in alternatives.next_day)
        return [f"Infelizmente {requested_label} está sem vagas. Mas tenho disponível às {phrases}!"]
    return [ASK_FOR_FREE_TIMES]


def build_unavailable_message(
    requested_date: date,
    requested_start: int,
    alternatives: Alternatives,
    today: date,
) -> str:
    """Reply sent when a requested slot cannot be booked."""
    header = (
        f"Peço desculpa, mas o horário das {format_time_for_display(requested_start)} "
        f"de {format_date_for_display(requested_date, today)} já não está disponível."
    )
    lines = [header, *build_suggestion_lines(requested_date, alternatives, today)]
    if not alternatives.none_found:
        lines.append("Qual preferes?")
    return "\n\n".join(lines)


def build_confirmation_message(day: date, start: int, duration: int, client: str, today: date) -> str:
    return (
        f"Marcação confirmada para {client}: {format_date_for_display(day, today)} "
        f"às {format_time_for_display(start)} ({duration} min)."
    )
