"""Notification title/message construction for booking lifecycle events."""

from typing import NamedTuple, Optional

from bookingcore.schemas.booking_schema import Booking


class Message(NamedTuple):
    title: str
    body: str


def _when(booking: Booking) -> str:
    return f"{booking.booking_date.isoformat()} at {booking.booking_time}"


def _with_reason(text: str, reason: Optional[str]) -> str:
    return f"{text}. Reason: {reason}" if reason else text


def booking_created(booking: Booking) -> Message:
    return Message(
        "Booking Created Successfully",
        f"Your booking #{booking.code} for {booking.service_name} on {_when(booking)} "
        "has been created. We'll notify you once a provider accepts your request.",
    )


def new_request(booking: Booking) -> Message:
    return Message(
        "New Booking Request",
        f"You have a new booking request for {booking.service_name} on {_when(booking)}. "
        "Please accept or reject this request.",
    )


def approval_required(booking: Booking) -> Message:
    return Message(
        "New Booking Approval Required",
        f"Booking #{booking.code} for {booking.service_name} on {_when(booking)} "
        "needs a provider. Assign one or approve the requested provider.",
    )


def booked_with_provider(booking: Booking) -> Message:
    return Message(
        "New Booking",
        f"Booking #{booking.code} for {booking.service_name} on {_when(booking)} "
        "was booked with one of your providers.",
    )


def assigned_to_provider(booking: Booking, automatic: bool, window_minutes: int) -> Message:
    how = "automatically assigned" if automatic else "assigned"
    return Message(
        "New Booking Assigned",
        f"Booking #{booking.code} for {booking.service_name} has been {how} to you "
        f"for {_when(booking)}. Please accept or reject within {window_minutes} minutes.",
    )


def assigned_for_customer(booking: Booking, provider_name: str) -> Message:
    return Message(
        "Booking Update",
        f"Your booking #{booking.code} for {booking.service_name} has been assigned to "
        f"{provider_name}. They will confirm shortly.",
    )


def auto_assigned_for_owner(booking: Booking, provider_name: str) -> Message:
    return Message(
        "Booking Auto-Assigned",
        f"Booking #{booking.code} has been automatically assigned to {provider_name}.",
    )


def accepted_for_customer(booking: Booking, provider_name: str) -> Message:
    return Message(
        "Booking Accepted",
        f"Great news! Your booking #{booking.code} for {booking.service_name} on "
        f"{_when(booking)} has been accepted by {provider_name}.",
    )


def accepted_for_owner(booking: Booking, provider_name: str) -> Message:
    return Message(
        "Booking Accepted",
        f"Booking #{booking.code} has been accepted by {provider_name}.",
    )


def rejected_for_customer(booking: Booking, provider_name: str) -> Message:
    return Message(
        "Booking Rejected",
        _with_reason(
            f"We're sorry, but your booking #{booking.code} for {booking.service_name} "
            f"has been rejected by {provider_name}",
            booking.reject_reason,
        ),
    )


def rejected_for_owner(booking: Booking, provider_name: str, reassignable: bool) -> Message:
    body = _with_reason(
        f"Booking #{booking.code} has been rejected by {provider_name}", booking.reject_reason
    )
    if reassignable:
        body += ". You can reassign it to another provider."
    return Message("Booking Update", body)


def reassigned_to_provider(booking: Booking) -> Message:
    return Message(
        "Booking Reassigned",
        f"Booking #{booking.code} for {booking.service_name} on {_when(booking)} has been "
        "reassigned to you. Please accept or reject.",
    )


def reassigned_for_customer(booking: Booking, provider_name: str) -> Message:
    return Message(
        "Booking Update",
        f"Your booking #{booking.code} has been reassigned to {provider_name}.",
    )


def rescheduled(booking: Booking, automatic: bool) -> Message:
    how = "automatically rescheduled" if automatic else "rescheduled"
    return Message(
        "Booking Rescheduled",
        f"Booking #{booking.code} for {booking.service_name} has been {how} to {_when(booking)}.",
    )


def approved_for_customer(booking: Booking) -> Message:
    return Message(
        "Booking Confirmed",
        f"Your booking #{booking.code} for {booking.service_name} has been confirmed. "
        f"We'll see you on {_when(booking)}.",
    )


def approved_for_provider(booking: Booking) -> Message:
    return Message(
        "Booking Confirmed",
        f"Booking #{booking.code} for {booking.service_name} on {_when(booking)} has been "
        "confirmed by the shop and added to your schedule.",
    )


def cancelled(booking: Booking, by_customer: bool) -> Message:
    suffix = " by the customer" if by_customer else ""
    return Message(
        "Booking Cancelled",
        _with_reason(
            f"Booking #{booking.code} for {booking.service_name} has been cancelled{suffix}",
            booking.cancellation_reason,
        ),
    )


def completed(booking: Booking) -> Message:
    return Message(
        "Booking Completed",
        f"Your booking #{booking.code} for {booking.service_name} is complete. "
        "You can now rate your experience.",
    )


def no_show(booking: Booking) -> Message:
    return Message(
        "Booking Marked No-Show",
        f"Booking #{booking.code} on {_when(booking)} was marked as a no-show.",
    )


def new_review(booking: Booking) -> Message:
    return Message(
        "New Review",
        f"You received a {booking.rating}-star review for booking #{booking.code}.",
    )