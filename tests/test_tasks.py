"""Tests for the background sweeps and the sweep runner."""

import logging

import pytest

from bookingcore.app import build_core
from bookingcore.schemas.booking_schema import BookingStatus
from bookingcore.tasks.runner import SweepRunner
from tests.conftest import (
    ALI,
    CUSTOMER,
    MONDAY,
    OTHER_CUSTOMER,
    at,
    make_request,
    make_workflow,
)

S = BookingStatus


class _Sweep:
    def __init__(self, name, result=0, calls=None):
        self.name = name
        self.result = result
        self.calls = calls if calls is not None else []

    async def run(self):
        self.calls.append(self.name)
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


class TestAutoAssignSweep:
    @pytest.mark.asyncio
    async def test_assigns_pending_shop_bookings(self, core, service, clock):
        first = await service.create(make_request(), CUSTOMER)
        clock.advance(1)
        second = await service.create(
            make_request(customer_id=OTHER_CUSTOMER.user_id), OTHER_CUSTOMER
        )
        assert await core.run_auto_assign() == 2
        assert (await service.get_booking(first.id)).provider_id == "barber-ali"
        assert (await service.get_booking(second.id)).provider_id == "barber-sam"

    @pytest.mark.asyncio
    async def test_ignores_bookings_with_provider(self, core, service):
        await service.create(make_request(provider_id="barber-ali"), CUSTOMER)
        assert await core.run_auto_assign() == 0

    @pytest.mark.asyncio
    async def test_grace_period(self, store, notifier, clock):
        core = build_core(
            store, notifier, clock=clock, slot_interval=30,
            workflow=make_workflow(auto_assign_grace_minutes=10), min_advance_minutes=60,
        )
        booking = await core.service.create(make_request(), CUSTOMER)
        assert await core.run_auto_assign() == 0
        clock.advance(10)
        assert await core.run_auto_assign() == 1
        assert (await core.service.get_booking(booking.id)).status == S.ASSIGNED

    @pytest.mark.asyncio
    async def test_one_failure_does_not_stop_the_sweep(self, core, service, monkeypatch):
        broken = await service.create(make_request(), CUSTOMER)
        healthy = await service.create(
            make_request(customer_id=OTHER_CUSTOMER.user_id, booking_time=at(11)), OTHER_CUSTOMER
        )
        real_assign = core.assignment.assign

        async def flaky(booking_id, *args, **kwargs):
            if booking_id == broken.id:
                raise RuntimeError("store timeout")
            return await real_assign(booking_id, *args, **kwargs)

        monkeypatch.setattr(core.assignment, "assign", flaky)
        assert await core.run_auto_assign() == 1
        assert (await service.get_booking(broken.id)).status == S.PENDING
        assert (await service.get_booking(healthy.id)).status == S.ASSIGNED


class TestAutoRescheduleSweep:
    @pytest.mark.asyncio
    async def test_nothing_due_before_deadline(self, core, service, clock):
        await service.create(make_request(provider_id="barber-ali"), CUSTOMER)
        clock.advance(29)
        assert await core.run_auto_reschedule() == 0

    @pytest.mark.asyncio
    async def test_moves_overdue_booking(self, core, service, store, clock, notifier):
        booking = await service.create(make_request(provider_id="barber-ali"), CUSTOMER)
        notifier.clear()
        clock.advance(30)
        assert await core.run_auto_reschedule() == 1

        moved = await service.get_booking(booking.id)
        assert moved.status == S.RESCHEDULED
        assert str(moved.booking_time) == "10:30"
        assert moved.reschedule_count == 1
        assert moved.response_deadline == clock() + service.response_window
        assert store.reservations_of(booking.id) == [("barber-ali", MONDAY, 630)]
        assert notifier.titles_for(CUSTOMER.user_id) == ["Booking Rescheduled"]
        assert notifier.titles_for(ALI.user_id) == ["Booking Rescheduled"]

    @pytest.mark.asyncio
    async def test_repeated_timeouts_compound(self, core, service, clock):
        booking = await service.create(make_request(provider_id="barber-ali"), CUSTOMER)
        clock.advance(30)
        await core.run_auto_reschedule()
        assert await core.run_auto_reschedule() == 0
        clock.advance(30)
        assert await core.run_auto_reschedule() == 1
        moved = await service.get_booking(booking.id)
        assert str(moved.booking_time) == "11:00"
        assert moved.reschedule_count == 2

    @pytest.mark.asyncio
    async def test_confirmed_booking_untouched(self, core, service, clock):
        booking = await service.create(make_request(provider_id="barber-ali"), CUSTOMER)
        await service.accept(booking.id, ALI)
        clock.advance(120)
        assert await core.run_auto_reschedule() == 0
        assert (await service.get_booking(booking.id)).status == S.CONFIRMED

    @pytest.mark.asyncio
    async def test_unassigned_reschedule_can_still_be_assigned(self, core, service, clock):
        booking = await service.create(make_request(), CUSTOMER)
        clock.advance(30)
        assert await core.run_auto_reschedule() == 1
        rescheduled = await service.get_booking(booking.id)
        assert rescheduled.status == S.RESCHEDULED
        assert rescheduled.provider_id is None

        assert await core.run_auto_assign() == 1
        assigned = await service.get_booking(booking.id)
        assert assigned.status == S.ASSIGNED
        assert assigned.provider_id == "barber-ali"
        assert str(assigned.booking_time) == "10:30"

    @pytest.mark.asyncio
    async def test_slot_conflict_skipped(self, core, service, store, clock, caplog):
        waiting = await service.create(make_request(provider_id="barber-ali"), CUSTOMER)
        holder = await service.create(
            make_request(customer_id=OTHER_CUSTOMER.user_id, provider_id="barber-ali",
                         booking_time=at(10, 30)),
            OTHER_CUSTOMER,
        )
        await service.accept(holder.id, ALI)
        clock.advance(30)

        with caplog.at_level(logging.WARNING, logger="bookingcore.tasks.auto_reschedule"):
            assert await core.run_auto_reschedule() == 0
        assert any("Auto-reschedule failed" in r.getMessage() for r in caplog.records)

        unchanged = await service.get_booking(waiting.id)
        assert unchanged.status == S.ASSIGNED
        assert str(unchanged.booking_time) == "10:00"
        assert store.reservations_of(waiting.id) == [("barber-ali", MONDAY, 600)]


class TestRunnerCycle:
    @pytest.mark.asyncio
    async def test_fresh_request_assigned_before_deadline_check(self, core, service):
        await service.create(make_request(), CUSTOMER)
        assert await core.runner.run_once() == {"auto-assign": 1, "auto-reschedule": 0}

    @pytest.mark.asyncio
    async def test_late_sweep_assigns_instead_of_moving(self, core, service, clock):
        booking = await service.create(make_request(), CUSTOMER)
        clock.advance(30)
        assert await core.runner.run_once() == {"auto-assign": 1, "auto-reschedule": 0}
        assigned = await service.get_booking(booking.id)
        assert assigned.status == S.ASSIGNED
        assert str(assigned.booking_time) == "10:00"


class TestSweepRunner:
    @pytest.mark.asyncio
    async def test_runs_sweeps_in_order(self):
        calls = []
        runner = SweepRunner([_Sweep("first", 2, calls), _Sweep("second", 0, calls)])
        assert await runner.run_once() == {"first": 2, "second": 0}
        assert calls == ["first", "second"]
        assert runner.cycles == 1

    @pytest.mark.asyncio
    async def test_failing_sweep_reported_and_skipped(self):
        calls = []
        runner = SweepRunner([_Sweep("broken", RuntimeError("boom"), calls), _Sweep("fine", 3, calls)])
        assert await runner.run_once() == {"broken": -1, "fine": 3}
        assert calls == ["broken", "fine"]

