"""
Render an engine snapshot as the availability summary handed to the AI.

Pure projection: no I/O, no clock reads. Occupied ranges are listed
explicitly and fully booked or closed days are spelled out, so the model
never has to infer availability from gaps.
"""

from src.scheduling.snapshot import DayAvailability, EngineSnapshot
from src.scheduling.slot_engine import Slot
from src.utils import DAY_NAMES, MONTH_NAMES, day_name, minutes_to_time

FULLY_BOOKED = "LOTADO"
CLOSED = "FECHADO"


def free_windows(slots: tuple[Slot, ...], duration: int, granularity: int) -> list[tuple[int, int]]:
    """Collapse consecutive slot starts into (window_start, window_end) intervals.

    A run of starts s0..sk means the service can occupy anything within
    [s0, sk + duration).
    """
    windows: list[tuple[int, int]] = []
    if not slots:
        return windows
    run_start = prev = slots[0].start_minutes
    for slot in slots[1:]:
        if slot.start_minutes - prev > granularity:
            windows.append((run_start, prev + duration))
            run_start = slot.start_minutes
        prev = slot.start_minutes
    windows.append((run_start, prev + duration))
    return windows


def _format_price(price: float) -> str:
    return f"{price:g}€"


def _render_day(snapshot: EngineSnapshot, day: DayAvailability) -> list[str]:
    label = f"- {day_name(day.date)} ({day.date.isoformat()})"
    if day.hours is None:
        return [f"{label}: {CLOSED}"]

    lines = [f"{label} [{day.hours.label}]"]
    ranges = snapshot.ranges_for(day.date)
    if ranges:
        occupied = ", ".join(f"{r.display} ({r.label})" for r in ranges)
        lines.append(f"  OCUPADO: {occupied}")

    if day.first_by_service:
        for product, slot in day.first_by_service:
            first = slot.time if slot is not None else FULLY_BOOKED
            lines.append(f"  -> {product.name}: {first}")
        return lines

    if day.is_fully_booked:
        lines.append(f"  {FULLY_BOOKED}")
        return lines
    windows = free_windows(day.slots, day.duration_minutes, snapshot.granularity)
    rendered = ", ".join(f"{minutes_to_time(s)}-{minutes_to_time(e)}" for s, e in windows)
    lines.append(f"  LIVRE: {rendered} (primeiro livre {day.slots[0].time})")
    return lines


def render(snapshot: EngineSnapshot) -> str:
    """Build the scheduling context text for ``snapshot``."""
    config = snapshot.config
    now = snapshot.built_at
    today = now.date()
    lines = [
        "=== SISTEMA DE AGENDAMENTOS ===",
        "",
        f"HOJE: {day_name(today)}, {today.day} de {MONTH_NAMES[today.month - 1]} de {today.year}",
        f"HORA ACTUAL: {now.strftime('%H:%M')}",
        f"DURAÇÃO SERVIÇO: {config.effective_duration()} minutos",
    ]
    if config.buffer_minutes:
        lines.append(f"INTERVALO ENTRE MARCAÇÕES: {config.buffer_minutes} minutos")

    if config.services:
        lines.extend(["", "SERVIÇOS DISPONÍVEIS:"])
        for product in config.services:
            price = f" - {_format_price(product.price)}" if product.price else ""
            lines.append(f"- {product.name} ({product.duration_minutes} min){price}")

    if snapshot.external_degraded:
        lines.extend([
            "",
            "AVISO: calendário externo indisponível nesta actualização; "
            "podem existir compromissos não listados.",
        ])

    lines.extend(["", "DISPONIBILIDADE (nunca sobrepor horários OCUPADOS):"])
    if all(day.is_closed or day.is_fully_booked for day in snapshot.days):
        lines.append("Sem horários disponíveis nos próximos dias.")
    for day in snapshot.days:
        lines.extend(_render_day(snapshot, day))

    closed = [DAY_NAMES[d] for d in range(7) if d not in config.working_days]
    if closed:
        lines.extend(["", f"DIAS FECHADOS: {', '.join(closed)}"])

    return "\n".join(lines) + "\n"
