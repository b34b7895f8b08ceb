"""Auto-assignment sweep: give unassigned shop bookings to a free provider."""

from datetime import timedelta
from typing import Optional

from bookingcore.config import settings
from bookingcore.logging_context import booking_scope, get_booking_logger
from bookingcore.scheduling.assignment import AssignmentEngine
from bookingcore.schemas.booking_schema import Booking, BookingStatus
from bookingcore.store.base import BookingStore

logger = get_booking_logger(__name__)

# Rescheduled shop requests that never got a provider are still assignable.
SWEEP_STATUSES = frozenset({BookingStatus.PENDING, BookingStatus.RESCHEDULED})


class AutoAssignTask:
    """One sweep over unassigned shop bookings. Failures are per booking."""

    name = "auto-assign"

    def __init__(
        self,
        engine: AssignmentEngine,
        store: BookingStore,
        grace_minutes: Optional[int] = None,
    ) -> None:
        self._engine = engine
        self._store = store
        if grace_minutes is None:
            grace_minutes = settings.workflow.auto_assign_grace_minutes
        self.grace = timedelta(minutes=grace_minutes)

    def _eligible(self, booking: Booking, cutoff) -> bool:
        return (
            booking.is_shop_based
            and booking.provider_id is None
            and booking.created_at <= cutoff
        )

    async def run(self) -> int:
        """Returns how many bookings were newly assigned."""
        cutoff = self._engine.now() - self.grace
        bookings = [
            b for b in await self._store.list_bookings(statuses=SWEEP_STATUSES)
            if self._eligible(b, cutoff)
        ]

        assigned = 0
        for booking in bookings:
            with booking_scope(booking.id):
                try:
                    updated = await self._engine.assign(booking.id)
                except Exception as e:
                    logger.warning("Auto-assign failed for %s: %s", booking.code, e)
                    continue
            if updated.status == BookingStatus.ASSIGNED:
                assigned += 1

        logger.info("Auto-assign sweep: %d of %d booking(s) assigned", assigned, len(bookings))
        return assigned
