"""
In-memory booking store.

In production, this would be a MongoDB collection updated with
``find_one_and_update({"_id": id, "status": expected, "version": v}, ...)`` plus a unique
index on the reservation keys, or the relational equivalent. Every call
yields to the event loop once so concurrent callers interleave the way
they would against a real database.
"""

import asyncio
import logging
from datetime import date
from typing import Iterable, Optional

from bookingcore.schemas.booking_schema import Booking, BookingStatus
from bookingcore.schemas.provider_schema import Provider, Service, Shop
from bookingcore.store.base import SlotConflictError, SlotKey, StaleWriteError

logger = logging.getLogger(__name__)


class InMemoryStore:
    """Async store with conditional booking updates and provider slot reservations."""

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._bookings: dict[str, Booking] = {}
        self._reservations: dict[SlotKey, str] = {}
        self._providers: dict[str, Provider] = {}
        self._shops: dict[str, Shop] = {}
        self._services: dict[str, Service] = {}

    # ------------------------------------------------------------------ #
    # Seeding (providers, shops and services are owned elsewhere)
    # ------------------------------------------------------------------ #

    def add_provider(self, provider: Provider) -> Provider:
        self._providers[provider.id] = provider
        if provider.shop_id and provider.shop_id in self._shops:
            shop = self._shops[provider.shop_id]
            if provider.id not in shop.provider_ids:
                shop.provider_ids.append(provider.id)
        return provider

    def add_shop(self, shop: Shop) -> Shop:
        self._shops[shop.id] = shop
        for provider in self._providers.values():
            if provider.shop_id == shop.id and provider.id not in shop.provider_ids:
                shop.provider_ids.append(provider.id)
        return shop

    def add_service(self, service: Service) -> Service:
        self._services[service.id] = service
        return service

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #

    async def get_booking(self, booking_id: str) -> Optional[Booking]:
        await asyncio.sleep(0)
        booking = self._bookings.get(booking_id)
        return booking.model_copy(deep=True) if booking else None

    async def get_booking_by_code(self, code: str) -> Optional[Booking]:
        await asyncio.sleep(0)
        for booking in self._bookings.values():
            if booking.code == code:
                return booking.model_copy(deep=True)
        return None

    async def list_bookings(
        self,
        *,
        statuses: Optional[Iterable[BookingStatus]] = None,
        provider_id: Optional[str] = None,
        shop_ids: Optional[Iterable[str]] = None,
        customer_id: Optional[str] = None,
        booking_date: Optional[date] = None,
    ) -> list[Booking]:
        await asyncio.sleep(0)
        wanted = set(statuses) if statuses is not None else None
        shops = set(shop_ids) if shop_ids is not None else None
        results = []
        for booking in self._bookings.values():
            if wanted is not None and booking.status not in wanted:
                continue
            if provider_id is not None and booking.provider_id != provider_id:
                continue
            if shops is not None and booking.shop_id not in shops:
                continue
            if customer_id is not None and booking.customer_id != customer_id:
                continue
            if booking_date is not None and booking.booking_date != booking_date:
                continue
            results.append(booking.model_copy(deep=True))
        results.sort(key=lambda b: (b.created_at, b.id))
        return results

    async def get_provider(self, provider_id: str) -> Optional[Provider]:
        await asyncio.sleep(0)
        provider = self._providers.get(provider_id)
        return provider.model_copy(deep=True) if provider else None

    async def get_shop(self, shop_id: str) -> Optional[Shop]:
        await asyncio.sleep(0)
        shop = self._shops.get(shop_id)
        return shop.model_copy(deep=True) if shop else None

    async def get_service(self, service_id: str) -> Optional[Service]:
        await asyncio.sleep(0)
        service = self._services.get(service_id)
        return service.model_copy(deep=True) if service else None

    async def list_shop_providers(self, shop_id: str) -> list[Provider]:
        await asyncio.sleep(0)
        shop = self._shops.get(shop_id)
        if shop is None:
            return []
        return [
            self._providers[pid].model_copy(deep=True)
            for pid in shop.provider_ids
            if pid in self._providers
        ]

    async def list_shops_by_owner(self, owner_id: str) -> list[Shop]:
        await asyncio.sleep(0)
        return [s.model_copy(deep=True) for s in self._shops.values() if s.owner_id == owner_id]

    def reservations_of(self, booking_id: str) -> list[SlotKey]:
        """Slot keys currently held by a booking, sorted."""
        return sorted(k for k, holder in self._reservations.items() if holder == booking_id)

    # ------------------------------------------------------------------ #
    # Writes
    # ------------------------------------------------------------------ #

    async def insert_booking(self, booking: Booking, slot_keys: list[SlotKey]) -> Booking:
        await asyncio.sleep(0)
        async with self._lock:
            if booking.id in self._bookings:
                raise ValueError(f"Booking {booking.id} already exists")
            self._claim(booking.id, slot_keys)
            self._bookings[booking.id] = booking.model_copy(deep=True)
        logger.debug("Inserted booking %s (%s)", booking.id, booking.status.value)
        return booking.model_copy(deep=True)

    async def compare_and_set(
        self,
        booking: Booking,
        expected_status: BookingStatus,
        slot_keys: list[SlotKey],
    ) -> Booking:
        """Persist ``booking`` only if the stored status still equals ``expected_status``
        and nobody wrote the booking since it was read (same ``version``).

        Slot keys are claimed in the same critical section; keys the booking
        held before and no longer needs are released.

        Raises:
            KeyError: If the booking does not exist.
            StaleWriteError: If the stored status or version differs.
            SlotConflictError: If another booking holds one of ``slot_keys``.
        """
        await asyncio.sleep(0)
        async with self._lock:
            current = self._bookings.get(booking.id)
            if current is None:
                raise KeyError(booking.id)
            if current.status != expected_status or current.version != booking.version:
                raise StaleWriteError(booking.id, current.status)
            self._claim(booking.id, slot_keys)
            saved = booking.model_copy(update={"version": booking.version + 1}, deep=True)
            self._bookings[booking.id] = saved
        return saved.model_copy(deep=True)

    def _claim(self, booking_id: str, slot_keys: list[SlotKey]) -> None:
        """Swap a booking's reservations for ``slot_keys``. Caller holds the lock."""
        for key in slot_keys:
            holder = self._reservations.get(key)
            if holder is not None and holder != booking_id:
                raise SlotConflictError(key, holder)
        wanted = set(slot_keys)
        stale = [k for k, holder in self._reservations.items() if holder == booking_id and k not in wanted]
        for key in stale:
            del self._reservations[key]
        for key in wanted:
            self._reservations[key] = booking_id

    def reset(self) -> None:
        """Clear bookings and reservations. Used by test fixtures for isolation."""
        self._bookings.clear()
        self._reservations.clear()
