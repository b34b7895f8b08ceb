"""
Availability engine: free start times for a provider, service and date.

The provider's weekly window for the requested weekday is cut into fixed
ticks. A tick is offered when the whole service fits before closing, it is
not already in the past, and it does not overlap any booking of the same
provider that currently holds a slot. Pure read computation; safe to call
concurrently.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Callable, Optional, Union

from bookingcore.config import settings
from bookingcore.errors import NotFoundError, ValidationError
from bookingcore.schemas.booking_schema import (
    SLOT_HOLDING_STATUSES,
    BookingTime,
    ShopSlot,
    Slot,
)
from bookingcore.schemas.provider_schema import Provider, ProviderKind, Service
from bookingcore.store.base import BookingStore
from bookingcore.utils import MINUTES_PER_DAY, combine, day_name, overlaps

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]
DateLike = Union[date, str]


def coerce_date(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError:
        raise ValidationError(f"Invalid booking date: {value!r} (expected YYYY-MM-DD)") from None


class AvailabilityEngine:
    """Computes bookable start times from schedules and slot-holding bookings."""

    def __init__(
        self,
        store: BookingStore,
        *,
        slot_interval: Optional[int] = None,
        default_duration: Optional[int] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._store = store
        self.slot_interval = slot_interval or settings.scheduling.slot_interval_minutes
        self.default_duration = default_duration or settings.scheduling.default_service_duration
        self._clock = clock or datetime.now

    def now(self) -> datetime:
        return self._clock()

    # ------------------------------------------------------------------ #
    # Lookups
    # ------------------------------------------------------------------ #

    async def load_provider(
        self, provider_id: str, kind: Optional[ProviderKind] = None
    ) -> Provider:
        provider = await self._store.get_provider(provider_id)
        if provider is None or (kind is not None and provider.kind != kind):
            raise NotFoundError(kind.value if kind else "provider", provider_id)
        return provider

    async def load_service(self, service_id: str) -> Service:
        service = await self._store.get_service(service_id)
        if service is None:
            raise NotFoundError("service", service_id)
        return service

    def duration_of(self, service: Service) -> int:
        return service.duration or self.default_duration

    # ------------------------------------------------------------------ #
    # Queries
    # ------------------------------------------------------------------ #

    async def free_slots(
        self,
        provider_id: str,
        booking_date: DateLike,
        service_id: str,
        provider_kind: Optional[ProviderKind] = None,
    ) -> list[Slot]:
        """Ordered free start times for one provider.

        A missing or unavailable day yields an empty list, not an error.

        Raises:
            NotFoundError: Unknown provider (or kind mismatch) or service.
            ValidationError: Unparseable date.
        """
        on = coerce_date(booking_date)
        provider = await self.load_provider(provider_id, provider_kind)
        duration = self.duration_of(await self.load_service(service_id))
        ticks = await self._free_ticks(provider, on, duration)
        logger.debug(
            "Provider %s has %d free slot(s) on %s for %d min",
            provider_id, len(ticks), on.isoformat(), duration,
        )
        return [Slot(hour=t // 60, minute=t % 60) for t in ticks]

    async def shop_free_slots(
        self, shop_id: str, booking_date: DateLike, service_id: str
    ) -> list[ShopSlot]:
        """Union of free start times over the shop's active providers offering the service."""
        on = coerce_date(booking_date)
        shop = await self._store.get_shop(shop_id)
        if shop is None:
            raise NotFoundError("shop", shop_id)
        duration = self.duration_of(await self.load_service(service_id))

        by_tick: dict[int, list[str]] = {}
        for provider in await self._store.list_shop_providers(shop_id):
            if not provider.is_active or not provider.offers(service_id):
                continue
            for tick in await self._free_ticks(provider, on, duration):
                by_tick.setdefault(tick, []).append(provider.id)

        return [
            ShopSlot(hour=t // 60, minute=t % 60, provider_ids=by_tick[t])
            for t in sorted(by_tick)
        ]

    async def is_bookable(
        self,
        provider: Provider,
        booking_date: date,
        booking_time: BookingTime,
        duration: int,
        exclude_booking_id: Optional[str] = None,
    ) -> bool:
        """Exact-time check with the same rules ``free_slots`` applies to each tick."""
        if not provider.is_active:
            return False
        window = provider.window_for(day_name(booking_date))
        if window is None:
            return False
        start = booking_time.minutes
        if start < window[0] or start + duration > window[1]:
            return False
        if combine(booking_date, booking_time.hour, booking_time.minute) <= self.now():
            return False
        busy = await self._busy_intervals(provider.id, booking_date, exclude_booking_id)
        return not any(overlaps(start, start + duration, s, e) for s, e in busy)

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    async def _free_ticks(self, provider: Provider, on: date, duration: int) -> list[int]:
        if not provider.is_active:
            return []
        window = provider.window_for(day_name(on))
        if window is None:
            return []
        open_at, close_at = window

        now = self.now()
        if on < now.date():
            return []
        busy = await self._busy_intervals(provider.id, on)

        free = []
        for tick in range(open_at, close_at, self.slot_interval):
            end = tick + duration
            if end > close_at:
                break
            if on == now.date() and combine(on, tick // 60, tick % 60) <= now:
                continue
            if any(overlaps(tick, end, s, e) for s, e in busy):
                continue
            free.append(tick)
        return free

    async def _busy_intervals(
        self, provider_id: str, on: date, exclude_booking_id: Optional[str] = None
    ) -> list[tuple[int, int]]:
        """Slot-holding intervals on ``on``, including spill-over from the previous evening."""
        intervals: list[tuple[int, int]] = []
        for offset in (0, -1):
            day = on + timedelta(days=offset)
            bookings = await self._store.list_bookings(
                statuses=SLOT_HOLDING_STATUSES, provider_id=provider_id, booking_date=day
            )
            for booking in bookings:
                if booking.id == exclude_booking_id:
                    continue
                start = booking.booking_time.minutes + offset * MINUTES_PER_DAY
                end = start + booking.duration
                if end > 0:
                    intervals.append((max(start, 0), end))
        return intervals
