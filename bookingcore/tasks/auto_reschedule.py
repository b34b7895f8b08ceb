"""
Auto-reschedule sweep.

Bookings waiting on a provider or shop owner past their stored response
deadline are pushed back by the reschedule offset and marked
``rescheduled``. The deadline restarts with the new status, so a booking
that keeps timing out moves again on a later sweep.
"""

from bookingcore.logging_context import booking_scope, get_booking_logger
from bookingcore.scheduling.booking_service import BookingService
from bookingcore.schemas.actor_schema import Actor
from bookingcore.schemas.booking_schema import NEEDS_RESPONSE_STATUSES, Booking
from bookingcore.store.base import BookingStore

logger = get_booking_logger(__name__)


class AutoRescheduleTask:
    name = "auto-reschedule"

    def __init__(self, service: BookingService, store: BookingStore) -> None:
        self._service = service
        self._store = store

    async def due(self) -> list[Booking]:
        now = self._service.now()
        return [
            b for b in await self._store.list_bookings(statuses=NEEDS_RESPONSE_STATUSES)
            if b.response_deadline is not None and b.response_deadline <= now
        ]

    async def run(self) -> int:
        """Returns how many bookings were rescheduled."""
        bookings = await self.due()
        actor = Actor.system()

        moved = 0
        for booking in bookings:
            with booking_scope(booking.id):
                try:
                    await self._service.reschedule(booking.id, actor, automatic=True)
                except Exception as e:
                    logger.warning("Auto-reschedule failed for %s: %s", booking.code, e)
                    continue
            moved += 1

        logger.info("Auto-reschedule sweep: %d of %d overdue booking(s) moved", moved, len(bookings))
        return moved
