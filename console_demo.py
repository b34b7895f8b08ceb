"""
Offline console demo: drives the booking lifecycle end to end in memory.

Seeds one shop with two barbers plus a freelancer, then walks a scenario
through the real state machine, assignment engine and background sweeps.
A simulated clock stands in for waiting on response deadlines. No database,
no network calls.

Usage:
    python console_demo.py
    python console_demo.py --scenario timeout
    python console_demo.py --scenario freelancer
"""

import argparse
import asyncio
import sys
from datetime import date, datetime, timedelta

from bookingcore.app import BookingCore, build_core
from bookingcore.config import settings
from bookingcore.errors import BookingError
from bookingcore.notifications.emitter import RecordingNotifier
from bookingcore.schemas.actor_schema import Actor
from bookingcore.scheduling import parse_request
from bookingcore.schemas.booking_schema import Booking, BookingTime, ServiceType
from bookingcore.schemas.provider_schema import DaySchedule, Provider, ProviderKind, Service, Shop
from bookingcore.store.memory import InMemoryStore

BLUE = "\033[94m"
GREEN = "\033[92m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"

OWNER = Actor.shop_owner("owner-1")
CUSTOMER = Actor.customer("cust-1")
ALI = Actor.provider("user-ali", "barber-ali")
SAM = Actor.provider("user-sam", "barber-sam")
LEE = Actor.provider("user-lee", "free-lee")


class DemoClock:
    """Wall clock that only moves when the demo says so."""

    def __init__(self, start: datetime) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, minutes: int) -> None:
        self.current += timedelta(minutes=minutes)


def _next_monday(today: date) -> date:
    return today + timedelta(days=7 - today.weekday())


def seed(store: InMemoryStore) -> None:
    week = {
        day: DaySchedule(from_time="09:00", to_time="18:00")
        for day in ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday")
    }
    store.add_service(Service(id="svc-cut", title="Haircut", duration=30, price=25.0))
    store.add_service(Service(id="svc-beard", title="Beard Trim", duration=45, price=18.0))
    store.add_shop(Shop(id="shop-1", owner_id=OWNER.user_id, name="Fade Street"))
    store.add_provider(Provider(
        id="barber-ali", user_id="user-ali", name="Ali", shop_id="shop-1",
        services={"svc-cut", "svc-beard"}, schedule=week,
    ))
    store.add_provider(Provider(
        id="barber-sam", user_id="user-sam", name="Sam", shop_id="shop-1",
        services={"svc-cut"}, schedule=week,
    ))
    store.add_provider(Provider(
        id="free-lee", user_id="user-lee", name="Lee", kind=ProviderKind.FREELANCER,
        is_freelancer=True, services={"svc-cut"}, schedule=week,
    ))


class ConsoleSession:
    """Runs one scripted scenario and prints every transition."""

    def __init__(self) -> None:
        self.day = _next_monday(date.today())
        self.clock = DemoClock(datetime.combine(self.day, datetime.min.time()).replace(hour=7))
        self.notifier = RecordingNotifier()
        store = InMemoryStore()
        seed(store)
        self.core: BookingCore = build_core(store, self.notifier, clock=self.clock)

    def step(self, text: str) -> None:
        print(f"\n{BLUE}{BOLD}>>{RESET} {BLUE}{text}{RESET}")

    def show(self, booking: Booking) -> None:
        provider = booking.provider_id or "-"
        print(
            f"{GREEN}   {booking.code}  {booking.status.value:<16}{RESET}"
            f"{DIM} provider={provider} at {booking.booking_date.isoformat()} "
            f"{booking.booking_time}{RESET}"
        )

    def system_log(self, text: str) -> None:
        print(f"{DIM}  >> {text}{RESET}")

    def flush_notifications(self) -> None:
        for note in self.notifier.sent:
            self.system_log(f"notify {note.user_id}: {note.title}")
        self.notifier.clear()

    async def create(self, **overrides) -> Booking:
        fields = dict(
            customer_id=CUSTOMER.user_id,
            service_id="svc-cut",
            service_type=ServiceType.SHOP_BASED,
            shop_id="shop-1",
            booking_date=self.day,
            booking_time=BookingTime(hour=10, minute=0),
        )
        fields.update(overrides)
        booking = await self.core.service.create(parse_request(fields), CUSTOMER)
        self.show(booking)
        self.flush_notifications()
        return booking

    # ------------------------------------------------------------------ #
    # Scenarios
    # ------------------------------------------------------------------ #

    async def scenario_shop(self) -> None:
        svc = self.core.service
        slots = await self.core.availability.shop_free_slots("shop-1", self.day, "svc-cut")
        self.step(f"Shop has {len(slots)} free haircut slot(s); first is {slots[0]}")

        self.step("Customer books a haircut at the shop without picking a barber")
        booking = await self.create()

        self.step("Auto-assign sweep runs")
        assigned = await self.core.run_auto_assign()
        self.system_log(f"{assigned} booking(s) assigned")
        booking = await svc.get_booking(booking.id)
        self.show(booking)
        self.flush_notifications()

        barber = ALI if booking.provider_id == ALI.provider_id else SAM
        self.step("Assigned barber accepts")
        self.show(await svc.accept(booking.id, barber, note="See you then"))
        self.flush_notifications()

        self.step("Appointment happens")
        self.clock.advance(4 * 60)
        self.show(await svc.complete(booking.id, barber))
        self.show(await svc.rate(booking.id, CUSTOMER, 5, "Great cut"))
        self.flush_notifications()

    async def scenario_timeout(self) -> None:
        svc = self.core.service
        self.step("Customer books Ali directly; nobody answers")
        booking = await self.create(provider_id="barber-ali", booking_time=BookingTime(hour=11, minute=0))

        for _ in range(2):
            self.clock.advance(settings.workflow.response_window_minutes)
            self.step(f"{settings.workflow.response_window_minutes} minutes pass; sweeps run")
            self.system_log(f"sweep results: {await self.core.runner.run_once()}")
            booking = await svc.get_booking(booking.id)
            self.show(booking)
            self.flush_notifications()

        self.step("Ali rejects the moved booking")
        self.show(await svc.reject(booking.id, ALI, "Fully booked after lunch"))
        self.flush_notifications()

        self.step("Shop owner reassigns to Sam")
        self.show(await svc.reassign(booking.id, OWNER, "barber-sam"))
        self.show(await svc.accept(booking.id, SAM))
        self.flush_notifications()

    async def scenario_freelancer(self) -> None:
        svc = self.core.service
        slots = await self.core.availability.free_slots("free-lee", self.day, "svc-cut")
        self.step(f"Lee has {len(slots)} free slot(s)")

        self.step("Customer requests a home visit from Lee")
        booking = await self.create(
            service_type=ServiceType.HOME_BASED, shop_id=None, provider_id="free-lee",
            booking_time=BookingTime(hour=14, minute=30),
        )
        self.step("Lee confirms straight from pending")
        self.show(await svc.accept(booking.id, LEE))
        self.flush_notifications()

        self.step("Customer cancels")
        self.show(await svc.cancel(booking.id, CUSTOMER, "Plans changed"))
        self.flush_notifications()

    SCENARIOS = {
        "shop": scenario_shop,
        "timeout": scenario_timeout,
        "freelancer": scenario_freelancer,
    }

    async def run_scenario(self, scenario: str) -> None:
        handler = self.SCENARIOS.get(scenario)
        if handler is None:
            print(f"{RED}Unknown scenario: {scenario}{RESET}")
            return

        print()
        print(f"{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  BOOKING CORE - Scenario: {scenario}{RESET}")
        print(f"{BOLD}  Service: {settings.service_name}  Day: {self.day.isoformat()}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")

        try:
            await handler(self)
        except BookingError as e:
            print(f"{RED}{type(e).__name__}: {e}{RESET}")

        print(f"\n{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  Scenario '{scenario}' complete.{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(description="Booking core console demo")
    parser.add_argument(
        "--scenario",
        choices=sorted(ConsoleSession.SCENARIOS),
        default="shop",
        help="Scripted walkthrough to run",
    )
    args = parser.parse_args(argv)
    asyncio.run(ConsoleSession().run_scenario(args.scenario))


if __name__ == "__main__":
    main(sys.argv[1:])
