"""Tests for notification emission and message text."""

import logging

import pytest

from bookingcore.app import build_core
from bookingcore.notifications import messages
from bookingcore.notifications.emitter import (
    LoggingNotifier,
    NotificationCategory,
    RecordingNotifier,
    safe_notify,
)
from bookingcore.schemas.booking_schema import Booking, BookingStatus, BookingTime, ServiceType
from tests.conftest import ALI, CUSTOMER, MONDAY, OWNER, START, make_request, make_workflow


class _BrokenNotifier:
    def __init__(self):
        self.attempts = 0

    async def notify(self, user_id, title, message, category, related_booking_id):
        self.attempts += 1
        raise ConnectionError("push gateway down")


class TestEmitters:
    @pytest.mark.asyncio
    async def test_recording_notifier(self):
        notifier = RecordingNotifier()
        assert await safe_notify(notifier, "cust-1", "Hello", "Body", "b-1")
        sent = notifier.sent[0]
        assert sent.user_id == "cust-1"
        assert sent.category == NotificationCategory.BOOKING
        assert sent.related_booking_id == "b-1"

    @pytest.mark.asyncio
    async def test_empty_recipient_skipped(self):
        notifier = RecordingNotifier()
        assert not await safe_notify(notifier, None, "Hello", "Body", "b-1")
        assert not await safe_notify(notifier, "", "Hello", "Body", "b-1")
        assert notifier.sent == []

    @pytest.mark.asyncio
    async def test_failure_is_swallowed(self, caplog):
        with caplog.at_level(logging.WARNING, logger="bookingcore.notifications.emitter"):
            assert not await safe_notify(_BrokenNotifier(), "cust-1", "Hello", "Body", "b-1")
        assert "push gateway down" in caplog.text

    @pytest.mark.asyncio
    async def test_logging_notifier(self, caplog):
        with caplog.at_level(logging.INFO, logger="bookingcore.notifications.emitter"):
            await LoggingNotifier().notify(
                "cust-1", "Booking Accepted", "Body", NotificationCategory.SYSTEM, "b-1"
            )
        assert "Notify cust-1 [system] Booking Accepted" in caplog.text


class TestEmitterFailureDoesNotRollBack:
    @pytest.mark.asyncio
    async def test_transition_commits(self, store, clock):
        broken = _BrokenNotifier()
        core = build_core(
            store, broken, clock=clock, slot_interval=30,
            workflow=make_workflow(), min_advance_minutes=60,
        )
        booking = await core.service.create(make_request(provider_id="barber-ali"), CUSTOMER)
        confirmed = await core.service.accept(booking.id, ALI)
        assert confirmed.status == BookingStatus.CONFIRMED
        assert (await core.service.get_booking(booking.id)).status == BookingStatus.CONFIRMED
        assert broken.attempts > 0


class TestMessages:
    @pytest.mark.asyncio
    async def test_bodies_name_booking_and_time(self, service, notifier):
        booking = await service.create(make_request(), CUSTOMER)
        body = notifier.for_user(CUSTOMER.user_id)[0].message
        assert f"#{booking.code}" in body
        assert "2025-03-17 at 10:00" in body
        assert "Haircut" in body

    @pytest.mark.asyncio
    async def test_assignment_mentions_response_window(self, service, notifier):
        await service.create(make_request(provider_id="barber-ali"), CUSTOMER)
        body = notifier.for_user(ALI.user_id)[0].message
        assert "within 30 minutes" in body

    @pytest.mark.asyncio
    async def test_rejection_carries_reason(self, service, notifier):
        booking = await service.create(make_request(provider_id="barber-ali"), CUSTOMER)
        notifier.clear()
        await service.reject(booking.id, ALI, "Fully booked")
        assert notifier.for_user(CUSTOMER.user_id)[0].message.endswith("Reason: Fully booked")
        assert "reassign" in notifier.for_user(OWNER.user_id)[0].message

    @pytest.mark.asyncio
    async def test_automatic_reschedule_says_so(self, core, service, notifier, clock):
        await service.create(make_request(provider_id="barber-ali"), CUSTOMER)
        notifier.clear()
        clock.advance(30)
        await core.run_auto_reschedule()
        body = notifier.for_user(CUSTOMER.user_id)[0].message
        assert "automatically rescheduled to 2025-03-17 at 10:30" in body

    @pytest.mark.asyncio
    async def test_cancel_by_customer_wording(self, service):
        booking = await service.create(make_request(provider_id="barber-ali"), CUSTOMER)
        cancelled = await service.cancel(booking.id, CUSTOMER, "Sick")
        msg = messages.cancelled(cancelled, by_customer=True)
        assert msg.title == "Booking Cancelled"
        assert msg.body.endswith("cancelled by the customer. Reason: Sick")

    def test_rejected_for_owner_without_reassignment(self):
        booking = _fake_booking()
        msg = messages.rejected_for_owner(booking, "Lee", reassignable=False)
        assert "reassign" not in msg.body
        assert msg.body == "Booking #BKTEST000001 has been rejected by Lee. Reason: Too far"


def _fake_booking():
    return Booking(
        code="BKTEST000001",
        customer_id="cust-1",
        provider_id="free-lee",
        service_id="svc-cut",
        service_name="Haircut",
        service_type=ServiceType.HOME_BASED,
        booking_date=MONDAY,
        booking_time=BookingTime(hour=10, minute=0),
        duration=30,
        status=BookingStatus.REJECTED,
        reject_reason="Too far",
        created_at=START,
        updated_at=START,
        status_changed_at=START,
    )
