from booking_engine.scheduling.availability import AvailabilityService, check_booking_policy
from booking_engine.scheduling.booking_service import BookingService
from booking_engine.scheduling.locks import SlotLockRegistry
from booking_engine.scheduling.matching import RankedProfessional, rank_professionals
from booking_engine.scheduling.reminders import ReminderSweep
from booking_engine.scheduling.state_machine import BookingAction, BookingStateMachine

__all__ = [
    "AvailabilityService",
    "BookingService",
    "BookingStateMachine",
    "BookingAction",
    "ReminderSweep",
    "SlotLockRegistry",
    "RankedProfessional",
    "rank_professionals",
    "check_booking_policy",
]
