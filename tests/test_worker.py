"""Tests for the ARQ worker settings and cron jobs."""

import pytest

from bookingcore.schemas.booking_schema import BookingStatus
from bookingcore.tasks.worker import (
    WorkerSettings,
    auto_assign_job,
    auto_reschedule_job,
    startup,
    sweep_minutes,
)
from tests.conftest import CUSTOMER, make_request


class TestCronSchedule:
    def test_sweep_minutes(self):
        assert sweep_minutes(5) == {0, 5, 10, 15, 20, 25, 30, 35, 40, 45, 50, 55}
        assert sweep_minutes(60) == {0}

    def test_both_sweeps_registered(self):
        coroutines = [job.coroutine for job in WorkerSettings.cron_jobs]
        assert coroutines == [auto_assign_job, auto_reschedule_job]
        assert WorkerSettings.functions == [auto_assign_job, auto_reschedule_job]

    def test_assign_fires_before_reschedule(self):
        assign, reschedule = WorkerSettings.cron_jobs
        assert assign.minute == reschedule.minute
        assert assign.second < reschedule.second

    def test_redis_from_env_default(self):
        assert WorkerSettings.redis_settings.host == "localhost"
        assert WorkerSettings.redis_settings.port == 6379


class TestJobs:
    @pytest.mark.asyncio
    async def test_startup_builds_core(self):
        ctx = {}
        await startup(ctx)
        assert ctx["core"].runner.sweeps[0].name == "auto-assign"

    @pytest.mark.asyncio
    async def test_jobs_run_the_sweeps(self, core, service, clock):
        ctx = {"core": core}
        booking = await service.create(make_request(), CUSTOMER)
        assert await auto_assign_job(ctx) == 1
        assert (await service.get_booking(booking.id)).status == BookingStatus.ASSIGNED
        clock.advance(30)
        assert await auto_reschedule_job(ctx) == 1
        assert (await service.get_booking(booking.id)).status == BookingStatus.RESCHEDULED
