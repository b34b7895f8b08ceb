"""
Booking core process entry point.

Runs the ARQ worker that fires the auto-assign / auto-reschedule cron jobs,
or the offline console demo for development.

Usage:
    Worker:       python main.py worker
    Console mode: python main.py demo [--scenario timeout]
"""

import logging
import sys

from bookingcore.config import settings

logger = logging.getLogger(__name__)


def _run_worker() -> None:
    """Start the ARQ worker; it handles SIGINT/SIGTERM itself."""
    from arq.worker import run_worker

    from bookingcore.tasks.worker import WorkerSettings

    logger.info(
        "%s worker: sweeps every %d minute(s)",
        settings.service_name, settings.tasks.sweep_interval_minutes,
    )
    run_worker(WorkerSettings)


def _run_console_mode(argv: list[str]) -> None:
    """Start the offline console demo."""
    from console_demo import main as demo_main

    demo_main(argv)


if __name__ == "__main__":
    if len(sys.argv) > 1 and sys.argv[1] == "demo":
        _run_console_mode(sys.argv[2:])
    else:
        _run_worker()
