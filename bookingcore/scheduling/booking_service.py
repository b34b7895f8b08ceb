"""
Booking state machine service.

Every status change goes through here, whether it comes from a customer,
provider or shop-owner request or from a background sweep. Each operation
loads the booking, validates the transition against ``BookingLifecycle``,
checks who is asking, applies the change and persists it with a
compare-and-set on the status (and version) it read. Of two concurrent
operations from the same starting state only one commits; the loser gets
``InvalidTransitionError`` carrying the status it lost to.

Notifications are sent after the write and never undo it.
"""

import functools
from datetime import date, timedelta
from typing import Optional, Union

import pydantic

from bookingcore.config import WorkflowConfig, settings
from bookingcore.errors import (
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    SlotUnavailableError,
    ValidationError,
)
from bookingcore.logging_context import booking_scope, get_booking_logger
from bookingcore.notifications import messages
from bookingcore.notifications.emitter import LoggingNotifier, NotificationEmitter, safe_notify
from bookingcore.permissions import PermissionCache
from bookingcore.scheduling.availability import AvailabilityEngine, DateLike, coerce_date
from bookingcore.scheduling.transitions import BookingLifecycle, Operation
from bookingcore.schemas.actor_schema import Actor, Role
from bookingcore.schemas.booking_schema import (
    LIVE_STATUSES,
    NEEDS_RESPONSE_STATUSES,
    Booking,
    BookingRequest,
    BookingStatus,
    BookingTime,
    ServiceType,
)
from bookingcore.schemas.provider_schema import Provider, Shop
from bookingcore.store.base import (
    BookingStore,
    SlotConflictError,
    StaleWriteError,
    slot_keys_for,
)
from bookingcore.utils import MINUTES_PER_DAY, combine, parse_hhmm, shift

logger = get_booking_logger(__name__)

TimeLike = Union[BookingTime, str]

SHOP_QUEUE_STATUSES = frozenset({
    BookingStatus.PENDING,
    BookingStatus.ASSIGNED,
    BookingStatus.REJECTED_BARBER,
})


def coerce_time(value: TimeLike) -> BookingTime:
    if isinstance(value, BookingTime):
        return value
    try:
        minutes = parse_hhmm(str(value))
    except ValueError as e:
        raise ValidationError(str(e)) from None
    if minutes >= MINUTES_PER_DAY:
        raise ValidationError(f"Invalid booking time: {value!r}")
    return BookingTime(hour=minutes // 60, minute=minutes % 60)


def parse_request(data: dict) -> BookingRequest:
    """Build a ``BookingRequest`` from raw input.

    Constructing the model directly raises ``pydantic.ValidationError`` on
    bad input (an hour of 25, a blank service id); this raises the booking
    core's ``ValidationError`` instead so callers handle one error kind.
    """
    try:
        return BookingRequest.model_validate(data)
    except pydantic.ValidationError as e:
        raise ValidationError(f"Invalid booking request: {e}") from None


def _append_note(notes: str, text: str) -> str:
    return f"{notes}\n{text}" if notes else text


def _scoped(func):
    """Bind the booking id (first argument) to log records for the whole call."""

    @functools.wraps(func)
    async def wrapper(self, booking_id: str, *args, **kwargs):
        with booking_scope(booking_id):
            return await func(self, booking_id, *args, **kwargs)

    return wrapper


class BookingService:
    """Named lifecycle operations over the booking store."""

    def __init__(
        self,
        store: BookingStore,
        availability: AvailabilityEngine,
        notifier: Optional[NotificationEmitter] = None,
        *,
        lifecycle: Optional[BookingLifecycle] = None,
        permissions: Optional[PermissionCache] = None,
        workflow: Optional[WorkflowConfig] = None,
        min_advance_minutes: Optional[int] = None,
    ) -> None:
        self._store = store
        self.availability = availability
        self.notifier = notifier or LoggingNotifier()
        self.workflow = workflow or settings.workflow
        self.lifecycle = lifecycle or BookingLifecycle(
            self.workflow.allow_shop_pending_self_confirm
        )
        self._permissions = permissions
        if min_advance_minutes is None:
            min_advance_minutes = settings.scheduling.min_advance_minutes
        self.min_advance = timedelta(minutes=min_advance_minutes)
        self.response_window = timedelta(minutes=self.workflow.response_window_minutes)
        if self.workflow.reschedule_offset_minutes % availability.slot_interval:
            raise ValueError(
                "RESCHEDULE_OFFSET_MINUTES must be a multiple of the slot interval "
                f"({availability.slot_interval}), got {self.workflow.reschedule_offset_minutes}"
            )

    def now(self):
        return self.availability.now()

    # ------------------------------------------------------------------ #
    # Create
    # ------------------------------------------------------------------ #

    async def create(self, request: BookingRequest, actor: Actor) -> Booking:
        """Create a booking for a shop or a freelance provider.

        Home-based requests start ``pending`` addressed to the provider.
        Shop-based requests start ``assigned`` when the caller picked a shop
        provider, otherwise ``pending`` for the shop or the auto-assign sweep.

        Raises:
            ForbiddenError: Caller is not the customer (or an admin).
            NotFoundError: Unknown service, shop or provider.
            ValidationError: Missing target, a time off the slot grid, too
                little notice, a provider who does not offer the service,
                duplicate or self booking.
            SlotUnavailableError: Nobody can take the requested time.
        """
        if not actor.is_privileged and actor.user_id != request.customer_id:
            raise ForbiddenError("Bookings can only be created by the customer they are for")
        await self._authorize(actor, "create")

        service = await self.availability.load_service(request.service_id)
        duration = self.availability.duration_of(service)
        now = self.now()
        starts_at = combine(
            request.booking_date, request.booking_time.hour, request.booking_time.minute
        )
        self._require_on_grid(request.booking_time)
        if starts_at < now + self.min_advance:
            minutes = int(self.min_advance.total_seconds() // 60)
            raise ValidationError(f"Bookings must be made at least {minutes} minutes in advance")

        shop: Optional[Shop] = None
        provider: Optional[Provider] = None
        if request.service_type == ServiceType.HOME_BASED:
            if not request.provider_id:
                raise ValidationError("Home-based bookings require a provider")
            provider = await self.availability.load_provider(request.provider_id)
            if not provider.serves_home:
                raise ValidationError(f"Provider {provider.id} does not offer home visits")
            status = BookingStatus.PENDING
        else:
            shop = await self._load_shop(request.shop_id)
            if request.provider_id:
                provider = await self._shop_provider(shop, request.provider_id)
            if request.preferred_provider_id:
                preferred = await self._shop_provider(shop, request.preferred_provider_id)
                self._check_can_serve(preferred, request.service_id, request.customer_id)
            status = BookingStatus.ASSIGNED if provider else BookingStatus.PENDING

        if provider is not None:
            self._check_can_serve(provider, request.service_id, request.customer_id)
            await self._require_bookable(
                provider, request.booking_date, request.booking_time, duration
            )
        else:
            await self._require_shop_capacity(
                shop, request.service_id, request.booking_date, request.booking_time, duration
            )

        existing = await self._store.list_bookings(
            statuses=LIVE_STATUSES,
            customer_id=request.customer_id,
            booking_date=request.booking_date,
        )
        if any(b.booking_time == request.booking_time for b in existing):
            raise ValidationError("You already have a booking at this date and time")

        booking = Booking(
            customer_id=request.customer_id,
            provider_id=provider.id if provider else None,
            preferred_provider_id=request.preferred_provider_id,
            shop_id=shop.id if shop else None,
            service_id=service.id,
            service_name=service.title,
            service_type=request.service_type,
            booking_date=request.booking_date,
            booking_time=request.booking_time,
            duration=duration,
            price=service.price,
            notes=request.notes,
            country_id=request.country_id,
            currency=request.currency,
            created_at=now,
            updated_at=now,
            status_changed_at=now,
        )
        self._stamp(booking, status, now)

        with booking_scope(booking.id):
            try:
                saved = await self._store.insert_booking(
                    booking, slot_keys_for(booking, self.availability.slot_interval)
                )
            except SlotConflictError as e:
                raise SlotUnavailableError(str(e)) from None
            logger.info(
                "Created booking %s (%s, %s) for %s at %s",
                saved.code, saved.service_type.value, saved.status.value,
                saved.booking_date.isoformat(), saved.booking_time,
            )
            await self._notify_created(saved, provider, shop)
        return saved

    # ------------------------------------------------------------------ #
    # Shop triage
    # ------------------------------------------------------------------ #

    @_scoped
    async def assign(
        self, booking_id: str, actor: Actor, provider_id: str, *, automatic: bool = False
    ) -> Booking:
        """Give an unassigned shop booking to one of the shop's providers."""
        booking = await self._load(booking_id)
        self.lifecycle.check(booking, Operation.ASSIGN)
        allowed = actor.is_privileged or await self._owns_shop(actor, booking.shop_id)
        self._require(allowed, "Only the owning shop can assign this booking")
        await self._authorize(actor, Operation.ASSIGN.value)
        if not booking.is_shop_based:
            raise ValidationError("Home-based bookings are addressed to a provider directly")

        shop = await self._load_shop(booking.shop_id)
        provider = await self._shop_provider(shop, provider_id)
        self._check_can_serve(provider, booking.service_id, booking.customer_id)
        await self._require_bookable(
            provider, booking.booking_date, booking.booking_time, booking.duration,
            exclude_booking_id=booking.id,
        )

        booking.provider_id = provider.id
        saved = await self._transition(booking, Operation.ASSIGN, BookingStatus.ASSIGNED)

        window = self.workflow.response_window_minutes
        await self._notify(provider.user_id, messages.assigned_to_provider(saved, automatic, window), saved)
        await self._notify(saved.customer_id, messages.assigned_for_customer(saved, provider.name), saved)
        if automatic:
            await self._notify(shop.owner_id, messages.auto_assigned_for_owner(saved, provider.name), saved)
        return saved

    @_scoped
    async def approve(self, booking_id: str, actor: Actor) -> Booking:
        """Shop-owner approval of a pending booking that already names a provider.

        Shop-based bookings go straight to ``confirmed``; home-based ones go
        to ``assigned`` and still wait for the freelancer.
        """
        booking = await self._load(booking_id)
        self.lifecycle.check(booking, Operation.APPROVE)
        allowed = actor.is_privileged or await self._owns_shop(actor, booking.shop_id)
        self._require(allowed, "Only the owning shop can approve this booking")
        await self._authorize(actor, Operation.APPROVE.value)

        provider_id = booking.provider_id or booking.preferred_provider_id
        if not provider_id:
            raise ValidationError("Only bookings with a pre-selected provider can be approved")
        if booking.is_shop_based:
            provider = await self._shop_provider(await self._load_shop(booking.shop_id), provider_id)
        else:
            provider = await self.availability.load_provider(provider_id)
        self._check_can_serve(provider, booking.service_id, booking.customer_id)
        await self._require_bookable(
            provider, booking.booking_date, booking.booking_time, booking.duration,
            exclude_booking_id=booking.id,
        )

        target = BookingStatus.CONFIRMED if booking.is_shop_based else BookingStatus.ASSIGNED
        booking.provider_id = provider.id
        saved = await self._transition(booking, Operation.APPROVE, target)

        if target == BookingStatus.CONFIRMED:
            await self._notify(saved.customer_id, messages.approved_for_customer(saved), saved)
            await self._notify(provider.user_id, messages.approved_for_provider(saved), saved)
        else:
            window = self.workflow.response_window_minutes
            await self._notify(saved.customer_id, messages.assigned_for_customer(saved, provider.name), saved)
            await self._notify(provider.user_id, messages.assigned_to_provider(saved, False, window), saved)
        return saved

    @_scoped
    async def reassign(
        self,
        booking_id: str,
        actor: Actor,
        provider_id: str,
        new_date: Optional[DateLike] = None,
        new_time: Optional[TimeLike] = None,
    ) -> Booking:
        """Hand a rejected booking to another provider, optionally at a new time.

        The earlier ``reject_reason`` is kept for audit.
        """
        booking = await self._load(booking_id)
        self.lifecycle.check(booking, Operation.REASSIGN)
        allowed = actor.is_privileged or await self._owns_shop(actor, booking.shop_id)
        self._require(allowed, "Only the owning shop can reassign this booking")
        await self._authorize(actor, Operation.REASSIGN.value)

        if booking.is_shop_based:
            provider = await self._shop_provider(await self._load_shop(booking.shop_id), provider_id)
        else:
            provider = await self.availability.load_provider(provider_id)
            if not provider.serves_home:
                raise ValidationError(f"Provider {provider.id} does not offer home visits")
        self._check_can_serve(provider, booking.service_id, booking.customer_id)

        on = coerce_date(new_date) if new_date is not None else booking.booking_date
        at = coerce_time(new_time) if new_time is not None else booking.booking_time
        self._require_on_grid(at)
        await self._require_bookable(provider, on, at, booking.duration, exclude_booking_id=booking.id)

        booking.provider_id = provider.id
        booking.booking_date = on
        booking.booking_time = at
        saved = await self._transition(booking, Operation.REASSIGN, BookingStatus.ASSIGNED)

        await self._notify(provider.user_id, messages.reassigned_to_provider(saved), saved)
        await self._notify(saved.customer_id, messages.reassigned_for_customer(saved, provider.name), saved)
        return saved

    # ------------------------------------------------------------------ #
    # Provider response
    # ------------------------------------------------------------------ #

    @_scoped
    async def accept(self, booking_id: str, actor: Actor, note: Optional[str] = None) -> Booking:
        booking = await self._load(booking_id)
        self.lifecycle.check(booking, Operation.ACCEPT)
        responder = self._responder_id(booking)
        self._require(
            actor.provider_id is not None and actor.provider_id == responder,
            "Only the assigned provider can accept this booking",
        )
        await self._authorize(actor, Operation.ACCEPT.value)

        booking.provider_id = responder
        if note and note.strip():
            booking.notes = _append_note(booking.notes, note.strip())
        saved = await self._transition(booking, Operation.ACCEPT, BookingStatus.CONFIRMED)

        provider, shop = await self._parties(saved)
        name = provider.name if provider else "your provider"
        await self._notify(saved.customer_id, messages.accepted_for_customer(saved, name), saved)
        if shop is not None:
            await self._notify(shop.owner_id, messages.accepted_for_owner(saved, name), saved)
        return saved

    @_scoped
    async def reject(self, booking_id: str, actor: Actor, reason: Optional[str]) -> Booking:
        """Decline a booking. Shop-based rejections land on ``rejected_barber`` for reassignment."""
        booking = await self._load(booking_id)
        self.lifecycle.check(booking, Operation.REJECT)
        responder = self._responder_id(booking)
        self._require(
            actor.provider_id is not None and actor.provider_id == responder,
            "Only the assigned provider can reject this booking",
        )
        await self._authorize(actor, Operation.REJECT.value)
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("A reason is required to reject a booking")

        target = BookingStatus.REJECTED_BARBER if booking.is_shop_based else BookingStatus.REJECTED
        booking.provider_id = responder
        booking.reject_reason = reason
        booking.notes = _append_note(booking.notes, f"Rejected: {reason}")
        saved = await self._transition(booking, Operation.REJECT, target)

        provider, shop = await self._parties(saved)
        name = provider.name if provider else "the provider"
        await self._notify(saved.customer_id, messages.rejected_for_customer(saved, name), saved)
        if shop is not None:
            reassignable = target == BookingStatus.REJECTED_BARBER
            await self._notify(shop.owner_id, messages.rejected_for_owner(saved, name, reassignable), saved)
        return saved

    @_scoped
    async def reschedule(
        self,
        booking_id: str,
        actor: Actor,
        new_date: Optional[DateLike] = None,
        new_time: Optional[TimeLike] = None,
        *,
        automatic: bool = False,
    ) -> Booking:
        """Move a booking awaiting a response and mark it ``rescheduled``.

        Without an explicit date or time the booking advances by the
        configured offset, rolling over midnight. Manual moves must fit the
        provider's schedule; automatic moves are only held to the slot
        reservation guard.
        """
        booking = await self._load(booking_id)
        self.lifecycle.check(booking, Operation.RESCHEDULE)
        allowed = (
            actor.is_privileged
            or self._is_provider_of(actor, booking)
            or await self._owns_shop(actor, booking.shop_id)
        )
        self._require(allowed, "Only the assigned provider or the owning shop can reschedule this booking")
        await self._authorize(actor, Operation.RESCHEDULE.value)

        if new_date is None and new_time is None:
            on, hour, minute = shift(
                booking.booking_date,
                booking.booking_time.hour,
                booking.booking_time.minute,
                self.workflow.reschedule_offset_minutes,
            )
            at = BookingTime(hour=hour, minute=minute)
        else:
            on = coerce_date(new_date) if new_date is not None else booking.booking_date
            at = coerce_time(new_time) if new_time is not None else booking.booking_time
            self._require_on_grid(at)

        if booking.provider_id and not automatic:
            provider = await self.availability.load_provider(booking.provider_id)
            await self._require_bookable(provider, on, at, booking.duration, exclude_booking_id=booking.id)

        previous = f"{booking.booking_date.isoformat()} {booking.booking_time}"
        booking.booking_date = on
        booking.booking_time = at
        booking.reschedule_count += 1
        saved = await self._transition(booking, Operation.RESCHEDULE, BookingStatus.RESCHEDULED)
        logger.info("Moved from %s to %s %s", previous, on.isoformat(), at)

        message = messages.rescheduled(saved, automatic)
        provider, shop = await self._parties(saved)
        await self._notify(saved.customer_id, message, saved)
        if provider is not None:
            await self._notify(provider.user_id, message, saved)
        if shop is not None:
            await self._notify(shop.owner_id, message, saved)
        return saved

    # ------------------------------------------------------------------ #
    # Fulfilment
    # ------------------------------------------------------------------ #

    @_scoped
    async def complete(self, booking_id: str, actor: Actor) -> Booking:
        return await self._finish(booking_id, actor, Operation.COMPLETE, BookingStatus.COMPLETED)

    @_scoped
    async def mark_no_show(self, booking_id: str, actor: Actor) -> Booking:
        return await self._finish(booking_id, actor, Operation.NO_SHOW, BookingStatus.NO_SHOW)

    async def _finish(
        self, booking_id: str, actor: Actor, operation: Operation, target: BookingStatus
    ) -> Booking:
        booking = await self._load(booking_id)
        self.lifecycle.check(booking, operation)
        allowed = (
            actor.is_privileged
            or self._is_provider_of(actor, booking)
            or await self._owns_shop(actor, booking.shop_id)
        )
        self._require(allowed, f"Only the provider or the owning shop can {operation.value} this booking")
        await self._authorize(actor, operation.value)

        saved = await self._transition(booking, operation, target)
        message = messages.completed(saved) if target == BookingStatus.COMPLETED else messages.no_show(saved)
        await self._notify(saved.customer_id, message, saved)
        return saved

    @_scoped
    async def rate(
        self, booking_id: str, actor: Actor, rating: int, review: Optional[str] = None
    ) -> Booking:
        """Attach the customer's one-time rating to a completed booking."""
        booking = await self._load(booking_id)
        self.lifecycle.check(booking, Operation.RATE)
        self._require(actor.user_id == booking.customer_id, "Only the customer can rate this booking")
        await self._authorize(actor, Operation.RATE.value)
        if booking.rating is not None:
            raise ValidationError("This booking has already been rated")
        if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
            raise ValidationError(f"Rating must be an integer from 1 to 5, got {rating!r}")

        booking.rating = rating
        booking.review = review.strip() if review else None
        try:
            saved = await self._transition(booking, Operation.RATE, BookingStatus.COMPLETED, stamp=False)
        except InvalidTransitionError:
            current = await self._load(booking_id)
            if current.rating is not None:
                raise ValidationError("This booking has already been rated") from None
            raise

        provider, _ = await self._parties(saved)
        if provider is not None:
            await self._notify(provider.user_id, messages.new_review(saved), saved)
        return saved

    @_scoped
    async def cancel(self, booking_id: str, actor: Actor, reason: Optional[str] = None) -> Booking:
        """Cancel from any non-terminal status. Releases the provider's slot."""
        booking = await self._load(booking_id)
        self.lifecycle.check(booking, Operation.CANCEL)
        by_customer = actor.user_id == booking.customer_id
        self._require(by_customer or actor.is_privileged, "Only the customer or an admin can cancel this booking")
        await self._authorize(actor, Operation.CANCEL.value)

        booking.cancellation_reason = reason.strip() if reason and reason.strip() else None
        saved = await self._transition(booking, Operation.CANCEL, BookingStatus.CANCELLED)

        message = messages.cancelled(saved, by_customer)
        provider, shop = await self._parties(saved)
        if provider is not None:
            await self._notify(provider.user_id, message, saved)
        if shop is not None:
            await self._notify(shop.owner_id, message, saved)
        if not by_customer:
            await self._notify(saved.customer_id, message, saved)
        return saved

    # ------------------------------------------------------------------ #
    # Queries
    # ------------------------------------------------------------------ #

    async def get_booking(self, booking_id: str) -> Booking:
        return await self._load(booking_id)

    async def get_booking_by_code(self, code: str) -> Booking:
        booking = await self._store.get_booking_by_code(code.strip().upper())
        if booking is None:
            raise NotFoundError("booking", code)
        return booking

    async def list_customer_bookings(
        self, customer_id: str, statuses: Optional[set[BookingStatus]] = None
    ) -> list[Booking]:
        return await self._store.list_bookings(statuses=statuses, customer_id=customer_id)

    async def list_provider_requests(self, provider_id: str) -> list[Booking]:
        """Bookings waiting on this provider's answer."""
        return await self._store.list_bookings(
            statuses=NEEDS_RESPONSE_STATUSES, provider_id=provider_id
        )

    async def list_shop_queue(self, owner_id: str) -> list[Booking]:
        """Pending, assigned and barber-rejected bookings across an owner's shops."""
        shops = await self._store.list_shops_by_owner(owner_id)
        if not shops:
            return []
        return await self._store.list_bookings(
            statuses=SHOP_QUEUE_STATUSES, shop_ids=[s.id for s in shops]
        )

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    async def _load(self, booking_id: str) -> Booking:
        booking = await self._store.get_booking(booking_id)
        if booking is None:
            raise NotFoundError("booking", booking_id)
        return booking

    async def _load_shop(self, shop_id: Optional[str]) -> Shop:
        if not shop_id:
            raise ValidationError("Shop-based bookings require a shop")
        shop = await self._store.get_shop(shop_id)
        if shop is None:
            raise NotFoundError("shop", shop_id)
        if not shop.is_active:
            raise ValidationError(f"Shop {shop_id} is not accepting bookings")
        return shop

    async def _shop_provider(self, shop: Shop, provider_id: str) -> Provider:
        provider = await self.availability.load_provider(provider_id)
        if provider.shop_id != shop.id and provider.id not in shop.provider_ids:
            raise ValidationError(f"Provider {provider_id} does not belong to shop {shop.id}")
        return provider

    @staticmethod
    def _check_can_serve(provider: Provider, service_id: str, customer_id: str) -> None:
        if provider.user_id == customer_id:
            raise ValidationError("You cannot book yourself")
        if not provider.offers(service_id):
            raise ValidationError(f"Provider {provider.id} does not offer service {service_id}")

    def _require_on_grid(self, at: BookingTime) -> None:
        interval = self.availability.slot_interval
        if at.minutes % interval:
            raise ValidationError(
                f"Booking times must fall on a {interval}-minute boundary, got {at}"
            )

    async def _require_bookable(
        self,
        provider: Provider,
        on: date,
        at: BookingTime,
        duration: int,
        exclude_booking_id: Optional[str] = None,
    ) -> None:
        if not await self.availability.is_bookable(provider, on, at, duration, exclude_booking_id):
            raise SlotUnavailableError(
                f"{provider.name} is not available on {on.isoformat()} at {at}"
            )

    async def _require_shop_capacity(
        self, shop: Shop, service_id: str, on: date, at: BookingTime, duration: int
    ) -> None:
        for provider in await self._store.list_shop_providers(shop.id):
            if not provider.offers(service_id):
                continue
            if await self.availability.is_bookable(provider, on, at, duration):
                return
        raise SlotUnavailableError(
            f"No provider at {shop.name} is available on {on.isoformat()} at {at}"
        )

    async def _owns_shop(self, actor: Actor, shop_id: Optional[str]) -> bool:
        if not shop_id:
            return False
        shop = await self._store.get_shop(shop_id)
        return shop is not None and shop.owner_id == actor.user_id

    @staticmethod
    def _is_provider_of(actor: Actor, booking: Booking) -> bool:
        return actor.provider_id is not None and actor.provider_id == booking.provider_id

    @staticmethod
    def _responder_id(booking: Booking) -> Optional[str]:
        """Provider expected to accept or reject; a pending shop request falls back to the preferred one."""
        if booking.provider_id:
            return booking.provider_id
        if booking.status == BookingStatus.PENDING:
            return booking.preferred_provider_id
        return None

    @staticmethod
    def _require(allowed: bool, message: str) -> None:
        if not allowed:
            raise ForbiddenError(message)

    async def _authorize(self, actor: Actor, permission: str) -> None:
        if self._permissions is None or actor.role == Role.SYSTEM:
            return
        if not await self._permissions.allows(actor.role.value, permission):
            raise ForbiddenError(f"Role '{actor.role.value}' may not {permission} bookings")

    def _stamp(self, booking: Booking, status: BookingStatus, now) -> None:
        booking.status = status
        booking.updated_at = now
        booking.status_changed_at = now
        if status in NEEDS_RESPONSE_STATUSES:
            booking.response_deadline = now + self.response_window
        else:
            booking.response_deadline = None

    async def _transition(
        self,
        booking: Booking,
        operation: Operation,
        target: BookingStatus,
        stamp: bool = True,
    ) -> Booking:
        """Persist ``booking`` in ``target`` if nobody changed it since it was loaded."""
        expected = booking.status
        now = self.now()
        if stamp:
            self._stamp(booking, target, now)
        else:
            booking.updated_at = now
        try:
            saved = await self._store.compare_and_set(
                booking, expected, slot_keys_for(booking, self.availability.slot_interval)
            )
        except KeyError:
            raise NotFoundError("booking", booking.id) from None
        except StaleWriteError as e:
            logger.info(
                "Lost concurrent %s; booking is now '%s'", operation.value, e.current_status.value
            )
            raise InvalidTransitionError(
                operation.value,
                e.current_status.value,
                self.lifecycle.sources(operation),
                detail="The booking was changed concurrently",
            ) from None
        except SlotConflictError as e:
            raise SlotUnavailableError(str(e)) from None

        logger.info(
            "Booking %s %s: %s -> %s", saved.code, operation.value, expected.value, saved.status.value
        )
        return saved

    async def _parties(self, booking: Booking) -> tuple[Optional[Provider], Optional[Shop]]:
        """Provider and shop records of a booking, for notification routing."""
        provider = await self._store.get_provider(booking.provider_id) if booking.provider_id else None
        shop = await self._store.get_shop(booking.shop_id) if booking.shop_id else None
        return provider, shop

    async def _notify(self, user_id: Optional[str], message: messages.Message, booking: Booking) -> None:
        await safe_notify(self.notifier, user_id, message.title, message.body, booking.id)

    async def _notify_created(
        self, booking: Booking, provider: Optional[Provider], shop: Optional[Shop]
    ) -> None:
        await self._notify(booking.customer_id, messages.booking_created(booking), booking)
        if booking.status == BookingStatus.ASSIGNED and provider is not None:
            window = self.workflow.response_window_minutes
            await self._notify(provider.user_id, messages.assigned_to_provider(booking, False, window), booking)
        elif provider is not None:
            await self._notify(provider.user_id, messages.new_request(booking), booking)
        if shop is not None and booking.status == BookingStatus.PENDING:
            await self._notify(shop.owner_id, messages.approval_required(booking), booking)
        elif shop is not None:
            await self._notify(shop.owner_id, messages.booked_with_provider(booking), booking)
