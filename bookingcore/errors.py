"""Error kinds raised by the booking core.

Request-path errors propagate to the caller with enough context to retry
correctly. Background sweeps catch them per booking.
"""

from typing import Iterable, Optional


class BookingError(Exception):
    """Base class for every error raised by the booking core."""


class NotFoundError(BookingError):
    """A booking, provider, shop or service does not exist."""

    def __init__(self, kind: str, identifier: str) -> None:
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} '{identifier}' not found")


class InvalidTransitionError(BookingError):
    """Raised when an operation is not valid from the booking's current status."""

    def __init__(
        self,
        operation: str,
        current_status: str,
        expected_statuses: Iterable[str],
        detail: Optional[str] = None,
    ) -> None:
        self.operation = operation
        self.current_status = current_status
        self.expected_statuses = sorted(expected_statuses)
        message = (
            f"Cannot {operation} booking in status '{current_status}'. "
            f"Expected one of: {self.expected_statuses}"
        )
        if detail:
            message = f"{message}. {detail}"
        super().__init__(message)


class ForbiddenError(BookingError):
    """The actor is not the assigned provider, the owning shop or the customer."""


class ValidationError(BookingError):
    """Malformed or incomplete operation payload."""


class SlotUnavailableError(ValidationError):
    """The requested provider slot is outside the schedule or already taken."""


class NoAvailableProviderError(BookingError):
    """No shop provider qualifies for a booking. Never surfaced by the sweeps."""
