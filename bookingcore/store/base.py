"""
Persistent-store contract required by the booking core.

Any backend (document or relational) must offer point lookup by id,
filtered scans, and an atomic conditional update on a single booking that
also claims the provider's slot keys in the same step.
"""

from datetime import date, timedelta
from typing import Iterable, Optional, Protocol

from bookingcore.schemas.booking_schema import Booking, BookingStatus
from bookingcore.schemas.provider_schema import Provider, Service, Shop
from bookingcore.utils import MINUTES_PER_DAY, covering_ticks

# (provider_id, date, tick start in minutes)
SlotKey = tuple[str, date, int]


class StaleWriteError(Exception):
    """The stored status no longer matches the status the write was based on."""

    def __init__(self, booking_id: str, current_status: BookingStatus) -> None:
        self.booking_id = booking_id
        self.current_status = current_status
        super().__init__(
            f"Booking {booking_id} changed concurrently; now '{current_status.value}'"
        )


class SlotConflictError(Exception):
    """A slot key is already claimed by a different booking."""

    def __init__(self, key: SlotKey, holder_id: str) -> None:
        self.key = key
        self.holder_id = holder_id
        provider_id, on, tick = key
        super().__init__(
            f"Provider {provider_id} is already reserved on {on.isoformat()} "
            f"at {tick // 60:02d}:{tick % 60:02d} by booking {holder_id}"
        )


def slot_keys_for(booking: Booking, interval: int) -> list[SlotKey]:
    """Reservation keys a booking must hold; empty when it holds no slot."""
    if not booking.holds_slot:
        return []
    keys: list[SlotKey] = []
    for tick in covering_ticks(booking.booking_time.minutes, booking.duration, interval):
        on = booking.booking_date + timedelta(days=tick // MINUTES_PER_DAY)
        keys.append((booking.provider_id, on, tick % MINUTES_PER_DAY))
    return keys


class BookingStore(Protocol):
    async def get_booking(self, booking_id: str) -> Optional[Booking]: ...

    async def get_booking_by_code(self, code: str) -> Optional[Booking]: ...

    async def list_bookings(
        self,
        *,
        statuses: Optional[Iterable[BookingStatus]] = None,
        provider_id: Optional[str] = None,
        shop_ids: Optional[Iterable[str]] = None,
        customer_id: Optional[str] = None,
        booking_date: Optional[date] = None,
    ) -> list[Booking]: ...

    async def insert_booking(self, booking: Booking, slot_keys: list[SlotKey]) -> Booking: ...

    async def compare_and_set(
        self,
        booking: Booking,
        expected_status: BookingStatus,
        slot_keys: list[SlotKey],
    ) -> Booking: ...

    async def get_provider(self, provider_id: str) -> Optional[Provider]: ...

    async def get_shop(self, shop_id: str) -> Optional[Shop]: ...

    async def get_service(self, service_id: str) -> Optional[Service]: ...

    async def list_shop_providers(self, shop_id: str) -> list[Provider]: ...

    async def list_shops_by_owner(self, owner_id: str) -> list[Shop]: ...
