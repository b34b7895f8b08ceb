"""Shared test fixtures and helpers."""

from datetime import date, datetime, timedelta

import pytest

from bookingcore.app import build_core
from bookingcore.config import WorkflowConfig
from bookingcore.notifications.emitter import RecordingNotifier
from bookingcore.schemas.actor_schema import Actor
from bookingcore.schemas.booking_schema import BookingRequest, BookingTime, ServiceType
from bookingcore.schemas.provider_schema import (
    DaySchedule,
    Provider,
    ProviderKind,
    Service,
    Shop,
)
from bookingcore.store.memory import InMemoryStore

# 2025-03-17 is a Monday. The clock starts at 07:00 that morning.
MONDAY = date(2025, 3, 17)
START = datetime(2025, 3, 17, 7, 0)

CUSTOMER = Actor.customer("cust-1")
OTHER_CUSTOMER = Actor.customer("cust-2")
OWNER = Actor.shop_owner("owner-1")
OTHER_OWNER = Actor.shop_owner("owner-2")
ADMIN = Actor.admin("admin-1")
ALI = Actor.provider("user-ali", "barber-ali")
SAM = Actor.provider("user-sam", "barber-sam")
ZOE = Actor.provider("user-zoe", "barber-zoe")
LEE = Actor.provider("user-lee", "free-lee")


class FixedClock:
    """Deterministic clock; tests move it explicitly."""

    def __init__(self, start: datetime = START) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, minutes: int) -> None:
        self.current += timedelta(minutes=minutes)


def weekday_schedule(open_at: str = "09:00", close_at: str = "17:00") -> dict[str, DaySchedule]:
    """Mon-Fri open, Saturday marked unavailable, Sunday not configured."""
    days = {
        day: DaySchedule(from_time=open_at, to_time=close_at)
        for day in ("monday", "tuesday", "wednesday", "thursday", "friday")
    }
    days["saturday"] = DaySchedule(from_time=open_at, to_time=close_at, status="unavailable")
    return days


def seed_marketplace(store: InMemoryStore) -> InMemoryStore:
    store.add_service(Service(id="svc-cut", title="Haircut", duration=30, price=25.0))
    store.add_service(Service(id="svc-beard", title="Beard Trim", duration=45, price=18.0))
    store.add_service(Service(id="svc-color", title="Colouring", duration=None, price=60.0))

    store.add_shop(Shop(id="shop-1", owner_id=OWNER.user_id, name="Fade Street"))
    store.add_shop(Shop(id="shop-2", owner_id=OTHER_OWNER.user_id, name="Clip Joint"))

    store.add_provider(Provider(
        id="barber-ali", user_id="user-ali", name="Ali", shop_id="shop-1",
        services={"svc-cut", "svc-beard", "svc-color"}, schedule=weekday_schedule(),
    ))
    store.add_provider(Provider(
        id="barber-sam", user_id="user-sam", name="Sam", shop_id="shop-1",
        services={"svc-cut"}, schedule=weekday_schedule(),
    ))
    store.add_provider(Provider(
        id="barber-zoe", user_id="user-zoe", name="Zoe", shop_id="shop-2",
        services={"svc-cut"}, schedule=weekday_schedule(),
    ))
    store.add_provider(Provider(
        id="free-lee", user_id="user-lee", name="Lee", kind=ProviderKind.FREELANCER,
        is_freelancer=True, employment_type="independent",
        services={"svc-cut"}, schedule=weekday_schedule("10:00", "16:00"),
    ))
    return store


def make_request(**overrides) -> BookingRequest:
    """Shop-based haircut at Fade Street, Monday 10:00, unless overridden."""
    fields = dict(
        customer_id=CUSTOMER.user_id,
        service_id="svc-cut",
        service_type=ServiceType.SHOP_BASED,
        shop_id="shop-1",
        booking_date=MONDAY,
        booking_time=BookingTime(hour=10, minute=0),
    )
    fields.update(overrides)
    return BookingRequest(**fields)


def at(hour: int, minute: int = 0) -> BookingTime:
    return BookingTime(hour=hour, minute=minute)


def make_workflow(**overrides) -> WorkflowConfig:
    fields = dict(
        reschedule_offset_minutes=30,
        response_window_minutes=30,
        auto_assign_grace_minutes=0,
        allow_shop_pending_self_confirm=False,
    )
    fields.update(overrides)
    return WorkflowConfig(**fields)


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def store():
    return seed_marketplace(InMemoryStore())


@pytest.fixture
def core(store, notifier, clock):
    return build_core(
        store,
        notifier,
        clock=clock,
        slot_interval=30,
        workflow=make_workflow(),
        min_advance_minutes=60,
    )


@pytest.fixture
def service(core):
    return core.service


@pytest.fixture
def availability(core):
    return core.availability
