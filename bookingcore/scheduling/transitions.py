"""
Booking lifecycle transition table.

Every status change a booking can make is listed explicitly. An operation
attempted from a status with no matching row is rejected with an error
naming the statuses it would have been valid from.

Usage:
    lifecycle = BookingLifecycle()
    row = lifecycle.check(booking, Operation.ACCEPT)
    assert BookingStatus.CONFIRMED in row.targets
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from bookingcore.errors import InvalidTransitionError
from bookingcore.schemas.booking_schema import Booking, BookingStatus, ServiceType

logger = logging.getLogger(__name__)

S = BookingStatus


class Operation(str, Enum):
    """Named state-machine entry points."""
    ASSIGN = "assign"
    ACCEPT = "accept"
    REJECT = "reject"
    REASSIGN = "reassign"
    RESCHEDULE = "reschedule"
    APPROVE = "approve"
    RATE = "rate"
    CANCEL = "cancel"
    COMPLETE = "complete"
    NO_SHOW = "no_show"


Guard = Callable[[Booking, bool], bool]


def _self_confirmable(booking: Booking, allow_shop_pending: bool) -> bool:
    """Freelancers confirm their own pending requests; shop staff wait for triage."""
    return booking.service_type == ServiceType.HOME_BASED or allow_shop_pending


def _unassigned(booking: Booking, _allow_shop_pending: bool) -> bool:
    return booking.provider_id is None


@dataclass(frozen=True)
class Transition:
    """A single valid transition row."""
    from_status: BookingStatus
    operation: Operation
    targets: frozenset[BookingStatus]
    guard: Optional[Guard] = None
    guard_hint: str = ""


def _row(
    src: BookingStatus,
    op: Operation,
    *targets: BookingStatus,
    guard: Optional[Guard] = None,
    hint: str = "",
) -> Transition:
    return Transition(src, op, frozenset(targets), guard, hint)


_PENDING_HINT = "Shop-based pending bookings must be assigned by the shop owner first"
_UNASSIGNED_HINT = "Only rescheduled bookings without a provider can be assigned"

_NON_TERMINAL = (
    S.PENDING, S.ASSIGNED, S.CONFIRMED, S.RESCHEDULED,
    S.REJECTED, S.REJECTED_BARBER, S.REASSIGNED,
)


class BookingLifecycle:
    """Validates operations against the transition table."""

    TRANSITIONS: list[Transition] = [
        # --- Shop triage ---
        _row(S.PENDING, Operation.ASSIGN, S.ASSIGNED),
        _row(S.RESCHEDULED, Operation.ASSIGN, S.ASSIGNED,
             guard=_unassigned, hint=_UNASSIGNED_HINT),
        _row(S.PENDING, Operation.APPROVE, S.CONFIRMED, S.ASSIGNED),

        # --- Provider response ---
        _row(S.ASSIGNED, Operation.ACCEPT, S.CONFIRMED),
        _row(S.RESCHEDULED, Operation.ACCEPT, S.CONFIRMED),
        _row(S.PENDING, Operation.ACCEPT, S.CONFIRMED,
             guard=_self_confirmable, hint=_PENDING_HINT),
        _row(S.ASSIGNED, Operation.REJECT, S.REJECTED, S.REJECTED_BARBER),
        _row(S.RESCHEDULED, Operation.REJECT, S.REJECTED, S.REJECTED_BARBER),
        _row(S.PENDING, Operation.REJECT, S.REJECTED, S.REJECTED_BARBER,
             guard=_self_confirmable, hint=_PENDING_HINT),

        # --- Recovery loops ---
        _row(S.REJECTED, Operation.REASSIGN, S.ASSIGNED),
        _row(S.REJECTED_BARBER, Operation.REASSIGN, S.ASSIGNED),
        _row(S.ASSIGNED, Operation.RESCHEDULE, S.RESCHEDULED),
        _row(S.PENDING, Operation.RESCHEDULE, S.RESCHEDULED),
        _row(S.RESCHEDULED, Operation.RESCHEDULE, S.RESCHEDULED),

        # --- Fulfilment ---
        _row(S.CONFIRMED, Operation.COMPLETE, S.COMPLETED),
        _row(S.CONFIRMED, Operation.NO_SHOW, S.NO_SHOW),
        _row(S.COMPLETED, Operation.RATE, S.COMPLETED),

        # --- Cancellation ---
        *[_row(src, Operation.CANCEL, S.CANCELLED) for src in _NON_TERMINAL],
    ]

    def __init__(self, allow_shop_pending_self_confirm: bool = False) -> None:
        self.allow_shop_pending_self_confirm = allow_shop_pending_self_confirm

    def sources(self, operation: Operation) -> set[str]:
        """Status values an operation can start from (ignoring guards)."""
        return {t.from_status.value for t in self.TRANSITIONS if t.operation == operation}

    def check(self, booking: Booking, operation: Operation) -> Transition:
        """
        Find the row allowing ``operation`` from the booking's current status.

        Raises:
            InvalidTransitionError: If no row matches or its guard refuses.
        """
        hint = None
        for t in self.TRANSITIONS:
            if t.from_status != booking.status or t.operation != operation:
                continue
            if t.guard is not None and not t.guard(booking, self.allow_shop_pending_self_confirm):
                hint = t.guard_hint
                continue
            return t

        logger.debug(
            "Rejected %s from %s (booking %s)", operation.value, booking.status.value, booking.id
        )
        raise InvalidTransitionError(
            operation.value, booking.status.value, self.sources(operation), detail=hint
        )

    def valid_operations(self, booking: Booking) -> list[Operation]:
        """Operations currently allowed for the booking, in table order."""
        ops: list[Operation] = []
        for t in self.TRANSITIONS:
            if t.from_status != booking.status or t.operation in ops:
                continue
            if t.guard is not None and not t.guard(booking, self.allow_shop_pending_self_confirm):
                continue
            ops.append(t.operation)
        return ops
