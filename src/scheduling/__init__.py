from src.scheduling.alternatives import AlternativeSlotFinder, Alternatives
from src.scheduling.business_hours import BusinessHoursResolver, DayHours
from src.scheduling.cache import EngineCache
from src.scheduling.conflict_checker import BookingDecision, ConflictChecker, RejectionReason
from src.scheduling.engine import SchedulingEngine
from src.scheduling.slot_engine import Slot, SlotEngine
from src.scheduling.snapshot import EngineSnapshot

__all__ = [
    "SchedulingEngine", "EngineCache", "EngineSnapshot",
    "BusinessHoursResolver", "DayHours", "SlotEngine", "Slot",
    "ConflictChecker", "BookingDecision", "RejectionReason",
    "AlternativeSlotFinder", "Alternatives",
]
