"""
Command-line entry point for the scheduling engine.

Runs against an in-memory demo tenant, or against the calendar bridge when
``--live-calendar`` is given.

Usage:
    python main.py context
    python main.py check --date 2025-03-18 --time 10:00 --duration 30
    python main.py book --date 2025-03-18 --time 11:00 --client "Maria Silva"
"""

import argparse
import asyncio
import logging
import sys
from datetime import date, timedelta

from src.config import settings
from src.scheduling import EngineCache, SchedulingEngine
from src.scheduling.aggregator import ExternalCalendarFeed
from src.tools.appointments import InMemoryAppointmentStore
from src.tools.booking import book_appointment
from src.tools.calendar_feed import HttpCalendarFeed, InMemoryCalendarFeed
from src.tools.tenant_config import InMemoryTenantConfigStore
from src.utils import minutes_to_time, time_to_minutes

logger = logging.getLogger(__name__)

DEMO_TENANT = "demo-tenant"

DEMO_PROFILE = {
    "business_hour_open": 9,
    "business_hour_close": 18,
    "working_days": [1, 2, 3, 4, 5, 6],
    "fixed_service_duration": 30,
    "product_duration_enabled": True,
}

DEMO_PRODUCTS = [
    {"id": "corte", "name": "Corte", "duration": 30, "price": 15, "active": True},
    {"id": "barba", "name": "Barba", "duration": 20, "price": 10, "active": True},
    {"id": "coloracao", "name": "Coloração", "duration": 90, "price": 45, "active": True},
]


async def _seed_demo(store: InMemoryAppointmentStore, today: date) -> None:
    tomorrow = today + timedelta(days=1)
    await store.insert_commitment(DEMO_TENANT, tomorrow, "10:00", 30, "João")
    await store.insert_commitment(DEMO_TENANT, tomorrow, "14:00", 90, "Ana")


def _build_cache(args: argparse.Namespace, store: InMemoryAppointmentStore) -> EngineCache:
    configs = InMemoryTenantConfigStore()
    configs.set_profile(DEMO_TENANT, DEMO_PROFILE, DEMO_PRODUCTS)
    feed: ExternalCalendarFeed
    if args.live_calendar and settings.calendar.enabled:
        feed = HttpCalendarFeed()
    else:
        feed = InMemoryCalendarFeed()

    def factory(tenant_id: str) -> SchedulingEngine:
        return SchedulingEngine(tenant_id, store, configs, feed)

    return EngineCache(factory)


async def _run(args: argparse.Namespace) -> int:
    store = InMemoryAppointmentStore()
    cache = _build_cache(args, store)
    engine = await cache.get(args.tenant)
    await _seed_demo(store, engine.snapshot.window_start)
    engine = await cache.get(args.tenant, force_refresh=True)

    if args.command == "context":
        sys.stdout.write(engine.generate_ai_context())
        return 0

    day = date.fromisoformat(args.date)
    start = time_to_minutes(args.time)

    if args.command == "check":
        decision = engine.is_bookable(day, start, args.duration)
        if decision.bookable:
            sys.stdout.write(f"{args.date} {args.time}: livre\n")
            return 0
        sys.stdout.write(f"{args.date} {args.time}: {decision.reason.value}")
        if decision.conflict_with:
            sys.stdout.write(f" ({decision.conflict_with})")
        sys.stdout.write("\n")
        alternatives = engine.find_alternatives(day, start, args.duration)
        for name, slot in [
            ("same_day_before", alternatives.same_day_before),
            ("same_day_after", alternatives.same_day_after),
            ("next_day_first_open", alternatives.next_day_first_open),
            ("next_day_same_time", alternatives.next_day_same_time),
        ]:
            if slot is not None:
                sys.stdout.write(f"  {name}: {slot.date} {minutes_to_time(slot.start_minutes)}\n")
        return 1

    result = await book_appointment(
        cache, store, args.tenant, day, args.time, args.duration, args.client
    )
    sys.stdout.write(result.message + "\n")
    return 0 if result.success else 1


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Inspect availability and test bookings for a tenant."
    )
    parser.add_argument("--tenant", default=DEMO_TENANT, help="Tenant id (default: demo).")
    parser.add_argument(
        "--live-calendar",
        action="store_true",
        help="Read external events from the calendar bridge instead of the demo feed.",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging output.")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("context", help="Print the availability context given to the AI.")
    for name, help_text in [
        ("check", "Check whether a slot is bookable and list alternatives."),
        ("book", "Try to book a slot."),
    ]:
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("--date", required=True, help="Date as YYYY-MM-DD.")
        cmd.add_argument("--time", required=True, help="Start time as HH:MM.")
        cmd.add_argument("--duration", type=int, default=None, help="Duration in minutes.")
        if name == "book":
            cmd.add_argument("--client", default="", help="Client name.")

    args = parser.parse_args()
    logging.getLogger().setLevel(logging.DEBUG if args.verbose else settings.log_level.upper())

    try:
        code = asyncio.run(_run(args))
    except ValueError as exc:
        logger.error("%s", exc)
        sys.exit(2)
    sys.exit(code)


if __name__ == "__main__":
    main()
