"""Tests for import chains and module integrity.

Ensures all public modules can be imported without errors and
that re-exports from __init__.py files work correctly.
"""


class TestSchemaImports:
    def test_import_booking_schema(self):
        from bookingcore.schemas.booking_schema import (
            Booking, BookingRequest, BookingStatus, ServiceType,
        )
        assert BookingStatus.REJECTED_BARBER == "rejected_barber"
        assert ServiceType.HOME_BASED == "homeBased"
        assert Booking is not None and BookingRequest is not None

    def test_import_provider_schema(self):
        from bookingcore.schemas.provider_schema import DaySchedule, Provider, Shop
        assert DaySchedule(from_time="09:00", to_time="17:00").status == "available"
        assert Provider is not None and Shop is not None

    def test_import_actor_schema(self):
        from bookingcore.schemas.actor_schema import Actor, Role
        assert Actor.system().role == Role.SYSTEM
        assert Actor.system().is_privileged


class TestPackageExports:
    def test_store_package(self):
        from bookingcore.store import InMemoryStore, slot_keys_for
        assert callable(slot_keys_for)
        assert InMemoryStore() is not None

    def test_scheduling_package(self):
        from bookingcore.scheduling import (
            AssignmentEngine, AvailabilityEngine, BookingLifecycle, BookingService, Operation,
        )
        assert Operation.NO_SHOW == "no_show"
        assert BookingLifecycle().sources(Operation.COMPLETE) == {"confirmed"}

    def test_notifications_package(self):
        from bookingcore.notifications import RecordingNotifier, safe_notify
        assert RecordingNotifier().sent == []
        assert callable(safe_notify)

    def test_tasks_package(self):
        from bookingcore.tasks import AutoAssignTask, AutoRescheduleTask, SweepRunner
        assert AutoAssignTask.name == "auto-assign"
        assert AutoRescheduleTask.name == "auto-reschedule"
        assert SweepRunner([]).cycles == 0


class TestConfigImport:
    def test_import_config(self):
        from bookingcore.config import settings
        assert settings.service_name
        assert settings.scheduling.slot_interval_minutes > 0
        assert settings.workflow.response_window_minutes > 0


class TestWiring:
    def test_build_core_defaults(self):
        from bookingcore.app import build_core
        core = build_core()
        assert [s.name for s in core.runner.sweeps] == ["auto-assign", "auto-reschedule"]
        assert core.service.availability is core.availability


class TestConsoleDemo:
    def test_console_session_imports(self):
        from console_demo import ConsoleSession
        session = ConsoleSession()
        assert session.day.weekday() == 0
        assert set(ConsoleSession.SCENARIOS) == {"shop", "timeout", "freelancer"}
