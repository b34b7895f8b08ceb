"""Provider, shop and service records. Read-only inputs to the booking core."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from bookingcore.utils import parse_hhmm

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


class ProviderKind(str, Enum):
    BARBER = "barber"
    FREELANCER = "freelancer"


class EmploymentType(str, Enum):
    EMPLOYEE = "employee"
    CONTRACTOR = "contractor"
    INDEPENDENT = "independent"


class DaySchedule(BaseModel):
    """One day's open window, e.g. ``{"from": "09:00", "to": "17:00", "status": "available"}``."""

    model_config = {"populate_by_name": True}

    from_time: str = Field(alias="from")
    to_time: str = Field(alias="to")
    status: str = "available"

    @field_validator("from_time", "to_time")
    @classmethod
    def _valid_hhmm(cls, value: str) -> str:
        parse_hhmm(value)
        return value

    @field_validator("status")
    @classmethod
    def _valid_status(cls, value: str) -> str:
        if value not in ("available", "unavailable"):
            raise ValueError(f"status must be 'available' or 'unavailable', got {value!r}")
        return value

    @property
    def is_available(self) -> bool:
        return self.status == "available"

    def window(self) -> tuple[int, int]:
        """(open, close) in minutes since midnight."""
        return parse_hhmm(self.from_time), parse_hhmm(self.to_time)


class Service(BaseModel):
    id: str
    title: str
    duration: Optional[int] = Field(default=None, ge=5)
    price: float = Field(default=0.0, ge=0)


class Provider(BaseModel):
    """A shop-employed barber or an independent freelancer."""

    id: str
    user_id: str
    name: str
    kind: ProviderKind = ProviderKind.BARBER
    shop_id: Optional[str] = None
    is_freelancer: bool = False
    employment_type: EmploymentType = EmploymentType.EMPLOYEE
    services: set[str] = Field(default_factory=set)
    schedule: dict[str, DaySchedule] = Field(default_factory=dict)
    is_active: bool = True

    @field_validator("schedule")
    @classmethod
    def _known_days(cls, value: dict[str, DaySchedule]) -> dict[str, DaySchedule]:
        unknown = [day for day in value if day.lower() not in WEEKDAYS]
        if unknown:
            raise ValueError(f"Unknown schedule day(s): {unknown}")
        return {day.lower(): window for day, window in value.items()}

    @property
    def serves_home(self) -> bool:
        return self.is_freelancer or self.kind == ProviderKind.FREELANCER

    def offers(self, service_id: str) -> bool:
        return service_id in self.services

    def window_for(self, day: str) -> Optional[tuple[int, int]]:
        """Open window for a weekday name, or None when closed or unconfigured."""
        entry = self.schedule.get(day)
        if entry is None or not entry.is_available:
            return None
        return entry.window()


class Shop(BaseModel):
    id: str
    owner_id: str
    name: str
    provider_ids: list[str] = Field(default_factory=list)
    is_active: bool = True
