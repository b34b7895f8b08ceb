"""
Assignment engine for shop-based bookings without a committed provider.

Manual assignment validates the shop owner's pick and hands it to the
state machine. Automatic assignment walks the shop's providers in roster
order (the customer's preferred provider first) and takes the first one
that offers the service and is free at exactly the requested time. When
nobody qualifies the booking stays where it is for the next sweep.
"""

from typing import Optional

from bookingcore.errors import NoAvailableProviderError, SlotUnavailableError
from bookingcore.logging_context import booking_scope, get_booking_logger
from bookingcore.scheduling.booking_service import BookingService
from bookingcore.scheduling.transitions import Operation
from bookingcore.schemas.actor_schema import Actor
from bookingcore.schemas.booking_schema import Booking
from bookingcore.schemas.provider_schema import Provider
from bookingcore.store.base import BookingStore

logger = get_booking_logger(__name__)


class AssignmentEngine:
    """Selects providers for shop bookings and applies the ``assign`` transition."""

    def __init__(self, service: BookingService, store: BookingStore) -> None:
        self._service = service
        self._store = store

    def now(self):
        return self._service.now()

    async def candidates(self, booking: Booking) -> list[Provider]:
        """Qualifying shop providers for the booking's exact date and time.

        Raises:
            NoAvailableProviderError: If no provider qualifies.
        """
        availability = self._service.availability
        qualified: list[Provider] = []
        for provider in await self._store.list_shop_providers(booking.shop_id):
            if not provider.is_active or not provider.offers(booking.service_id):
                continue
            if provider.user_id == booking.customer_id:
                continue
            if await availability.is_bookable(
                provider, booking.booking_date, booking.booking_time, booking.duration,
                exclude_booking_id=booking.id,
            ):
                qualified.append(provider)

        if not qualified:
            raise NoAvailableProviderError(
                f"No provider in shop {booking.shop_id} can take "
                f"{booking.booking_date.isoformat()} {booking.booking_time}"
            )
        qualified.sort(key=lambda p: p.id != booking.preferred_provider_id)
        return qualified

    async def assign(
        self,
        booking_id: str,
        candidate_provider_id: Optional[str] = None,
        actor: Optional[Actor] = None,
    ) -> Booking:
        """Assign a provider, picking one automatically when no candidate is given.

        Returns the updated booking, or the unchanged booking when the
        automatic path finds nobody (a no-op, not an error).
        """
        actor = actor or Actor.system()
        if candidate_provider_id is not None:
            return await self._service.assign(booking_id, actor, candidate_provider_id)

        with booking_scope(booking_id):
            booking = await self._service.get_booking(booking_id)
            self._service.lifecycle.check(booking, Operation.ASSIGN)
            if not booking.is_shop_based or booking.shop_id is None:
                logger.debug("Skipping auto-assign for home-based booking %s", booking.code)
                return booking

            try:
                providers = await self.candidates(booking)
            except NoAvailableProviderError as e:
                logger.info("%s; booking %s stays %s", e, booking.code, booking.status.value)
                return booking

            for provider in providers:
                try:
                    return await self._service.assign(
                        booking.id, actor, provider.id, automatic=True
                    )
                except SlotUnavailableError as e:
                    logger.info("Provider %s lost the slot (%s); trying next", provider.id, e)

            logger.info("Every candidate for %s was taken; booking stays %s", booking.code, booking.status.value)
            return booking
