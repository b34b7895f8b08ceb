"""Wires the store, engines, state machine and sweeps into one object."""

from dataclasses import dataclass
from typing import Optional

from bookingcore.notifications.emitter import LoggingNotifier, NotificationEmitter
from bookingcore.permissions import PermissionCache
from bookingcore.scheduling.assignment import AssignmentEngine
from bookingcore.scheduling.availability import AvailabilityEngine, Clock
from bookingcore.scheduling.booking_service import BookingService
from bookingcore.store.base import BookingStore
from bookingcore.store.memory import InMemoryStore
from bookingcore.tasks.auto_assign import AutoAssignTask
from bookingcore.tasks.auto_reschedule import AutoRescheduleTask
from bookingcore.tasks.runner import SweepRunner


@dataclass
class BookingCore:
    store: BookingStore
    availability: AvailabilityEngine
    service: BookingService
    assignment: AssignmentEngine
    auto_assign: AutoAssignTask
    auto_reschedule: AutoRescheduleTask
    runner: SweepRunner

    async def run_auto_assign(self) -> int:
        return await self.auto_assign.run()

    async def run_auto_reschedule(self) -> int:
        return await self.auto_reschedule.run()


def build_core(
    store: Optional[BookingStore] = None,
    notifier: Optional[NotificationEmitter] = None,
    *,
    clock: Optional[Clock] = None,
    slot_interval: Optional[int] = None,
    permissions: Optional[PermissionCache] = None,
    **service_options,
) -> BookingCore:
    """Build a fully wired core. ``service_options`` go to ``BookingService``."""
    store = store if store is not None else InMemoryStore()
    availability = AvailabilityEngine(store, slot_interval=slot_interval, clock=clock)
    service = BookingService(
        store,
        availability,
        notifier or LoggingNotifier(),
        permissions=permissions,
        **service_options,
    )
    assignment = AssignmentEngine(service, store)
    auto_assign = AutoAssignTask(
        assignment, store, grace_minutes=service.workflow.auto_assign_grace_minutes
    )
    auto_reschedule = AutoRescheduleTask(service, store)
    return BookingCore(
        store=store,
        availability=availability,
        service=service,
        assignment=assignment,
        auto_assign=auto_assign,
        auto_reschedule=auto_reschedule,
        runner=SweepRunner([auto_assign, auto_reschedule]),
    )
