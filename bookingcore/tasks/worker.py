"""
ARQ worker for the periodic booking sweeps.

Both sweeps run as cron jobs every ``SWEEP_INTERVAL_MINUTES``: auto-assign
on the minute, auto-reschedule thirty seconds later so a booking that just
got a provider is not moved in the same cycle.

Run with:
    arq bookingcore.tasks.worker.WorkerSettings
or:
    python main.py worker
"""

import logging

from arq.connections import RedisSettings
from arq.cron import cron

from bookingcore.app import build_core
from bookingcore.config import settings

logger = logging.getLogger(__name__)


def get_redis_settings() -> RedisSettings:
    """Redis connection for the ARQ job queue, from ``REDIS_URL``."""
    return RedisSettings.from_dsn(settings.tasks.redis_url)


def sweep_minutes(interval: int) -> set[int]:
    """Minutes of the hour on which the sweeps fire."""
    return set(range(0, 60, interval))


async def startup(ctx) -> None:
    ctx["core"] = build_core()
    logger.info("%s worker started", settings.service_name)


async def auto_assign_job(ctx) -> int:
    """Cron job: give unassigned shop bookings to a free provider."""
    return await ctx["core"].run_auto_assign()


async def auto_reschedule_job(ctx) -> int:
    """Cron job: move bookings past their response deadline."""
    return await ctx["core"].run_auto_reschedule()


class WorkerSettings:
    """ARQ worker settings for the booking sweeps."""

    functions = [auto_assign_job, auto_reschedule_job]
    on_startup = startup
    redis_settings = get_redis_settings()

    # The next cron tick retries; no per-job retries.
    max_tries = 1

    cron_jobs = [
        cron(auto_assign_job, minute=sweep_minutes(settings.tasks.sweep_interval_minutes), second=0),
        cron(auto_reschedule_job, minute=sweep_minutes(settings.tasks.sweep_interval_minutes), second=30),
    ]
