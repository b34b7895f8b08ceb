"""Booking data models, statuses and request payloads."""

import uuid
from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from bookingcore.utils import combine, generate_short_code


class BookingStatus(str, Enum):
    """Every status a booking can be in. Exactly one holds at any time."""

    PENDING = "pending"
    ASSIGNED = "assigned"
    CONFIRMED = "confirmed"
    RESCHEDULED = "rescheduled"
    REJECTED = "rejected"
    REJECTED_BARBER = "rejected_barber"
    REASSIGNED = "reassigned"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "noShow"


# Statuses whose booking occupies the provider's time.
SLOT_HOLDING_STATUSES: frozenset[BookingStatus] = frozenset({
    BookingStatus.ASSIGNED,
    BookingStatus.CONFIRMED,
    BookingStatus.RESCHEDULED,
})

# Statuses that wait on a provider or shop owner and time out.
NEEDS_RESPONSE_STATUSES: frozenset[BookingStatus] = frozenset({
    BookingStatus.PENDING,
    BookingStatus.ASSIGNED,
    BookingStatus.RESCHEDULED,
})

TERMINAL_STATUSES: frozenset[BookingStatus] = frozenset({
    BookingStatus.COMPLETED,
    BookingStatus.CANCELLED,
    BookingStatus.NO_SHOW,
})

# Live bookings a customer may not double up on.
LIVE_STATUSES: frozenset[BookingStatus] = frozenset({
    BookingStatus.PENDING,
    BookingStatus.ASSIGNED,
    BookingStatus.CONFIRMED,
    BookingStatus.RESCHEDULED,
})


class ServiceType(str, Enum):
    SHOP_BASED = "shopBased"
    HOME_BASED = "homeBased"


class BookingTime(BaseModel):
    """Wall-clock time of day local to the provider."""

    hour: int = Field(ge=0, le=23)
    minute: int = Field(ge=0, le=59)

    @property
    def minutes(self) -> int:
        return self.hour * 60 + self.minute

    def __str__(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"


class Booking(BaseModel):
    """A customer's appointment request and its lifecycle state."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    code: str = Field(default_factory=generate_short_code)
    customer_id: str
    provider_id: Optional[str] = None
    preferred_provider_id: Optional[str] = None
    shop_id: Optional[str] = None
    service_id: str
    service_name: str = ""
    service_type: ServiceType
    booking_date: date
    booking_time: BookingTime
    duration: int = Field(ge=5)
    price: float = Field(default=0.0, ge=0)
    status: BookingStatus = BookingStatus.PENDING
    reject_reason: Optional[str] = None
    cancellation_reason: Optional[str] = None
    notes: str = ""
    rating: Optional[int] = Field(default=None, ge=1, le=5)
    review: Optional[str] = None
    country_id: Optional[str] = None
    currency: Optional[str] = None
    reschedule_count: int = 0
    version: int = 0
    created_at: datetime
    updated_at: datetime
    status_changed_at: datetime
    response_deadline: Optional[datetime] = None

    @property
    def starts_at(self) -> datetime:
        return combine(self.booking_date, self.booking_time.hour, self.booking_time.minute)

    @property
    def holds_slot(self) -> bool:
        return self.status in SLOT_HOLDING_STATUSES and self.provider_id is not None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def is_shop_based(self) -> bool:
        return self.service_type == ServiceType.SHOP_BASED


class BookingRequest(BaseModel):
    """Validated customer-facing create payload."""

    customer_id: str
    service_id: str
    service_type: ServiceType
    booking_date: date
    booking_time: BookingTime
    shop_id: Optional[str] = None
    provider_id: Optional[str] = None
    preferred_provider_id: Optional[str] = None
    notes: str = ""
    country_id: Optional[str] = None
    currency: Optional[str] = None

    @field_validator("customer_id", "service_id")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("must not be blank")
        return value.strip()


class Slot(BaseModel):
    """A free start time returned by the availability queries."""

    hour: int
    minute: int

    def __str__(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"


class ShopSlot(Slot):
    """A free start time in a shop, with the providers free at that time."""

    provider_ids: list[str] = Field(default_factory=list)
