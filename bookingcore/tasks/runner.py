"""
One ordered pass over the background sweeps.

Auto-assign runs before auto-reschedule, so a fresh shop request gets a
provider before its deadline is considered. A failing sweep is logged and
the next one still runs. Scheduling lives in ``bookingcore.tasks.worker``;
this is what the console demo and the tests drive directly.
"""

import logging
from typing import Protocol, Sequence

logger = logging.getLogger(__name__)


class Sweep(Protocol):
    name: str

    async def run(self) -> int: ...


class SweepRunner:
    def __init__(self, sweeps: Sequence[Sweep]) -> None:
        self.sweeps = list(sweeps)
        self.cycles = 0

    async def run_once(self) -> dict[str, int]:
        """Run every sweep once, in order. Returns counts by sweep name (-1 on failure)."""
        results: dict[str, int] = {}
        for sweep in self.sweeps:
            try:
                results[sweep.name] = await sweep.run()
            except Exception:
                logger.exception("Sweep '%s' failed", sweep.name)
                results[sweep.name] = -1
        self.cycles += 1
        return results
