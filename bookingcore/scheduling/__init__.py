from bookingcore.scheduling.assignment import AssignmentEngine
from bookingcore.scheduling.availability import AvailabilityEngine
from bookingcore.scheduling.booking_service import BookingService, parse_request
from bookingcore.scheduling.transitions import BookingLifecycle, Operation, Transition

__all__ = [
    "AssignmentEngine",
    "AvailabilityEngine",
    "BookingLifecycle",
    "BookingService",
    "Operation",
    "Transition",
    "parse_request",
]
