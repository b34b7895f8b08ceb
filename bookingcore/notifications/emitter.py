"""
Notification emitter boundary.

The booking core only produces events; delivery (push, email, in-app) is
owned by another subsystem. Emission is fire-and-forget: a failing
emitter never rolls back the transition that triggered it.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Protocol

logger = logging.getLogger(__name__)


class NotificationCategory(str, Enum):
    BOOKING = "booking"
    SYSTEM = "system"


@dataclass(frozen=True)
class Notification:
    """One emitted event, as handed to the delivery subsystem."""
    user_id: str
    title: str
    message: str
    category: NotificationCategory
    related_booking_id: Optional[str]
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class NotificationEmitter(Protocol):
    async def notify(
        self,
        user_id: str,
        title: str,
        message: str,
        category: NotificationCategory,
        related_booking_id: Optional[str],
    ) -> None: ...


class LoggingNotifier:
    """Writes notifications to the log. Default emitter for the worker process."""

    async def notify(
        self,
        user_id: str,
        title: str,
        message: str,
        category: NotificationCategory,
        related_booking_id: Optional[str],
    ) -> None:
        logger.info(
            "Notify %s [%s] %s: %s (booking %s)",
            user_id, category.value, title, message, related_booking_id,
        )


class RecordingNotifier:
    """Keeps every notification in memory. Used by tests and the console demo."""

    def __init__(self) -> None:
        self.sent: list[Notification] = []

    async def notify(
        self,
        user_id: str,
        title: str,
        message: str,
        category: NotificationCategory,
        related_booking_id: Optional[str],
    ) -> None:
        self.sent.append(Notification(user_id, title, message, category, related_booking_id))

    def for_user(self, user_id: str) -> list[Notification]:
        return [n for n in self.sent if n.user_id == user_id]

    def titles_for(self, user_id: str) -> list[str]:
        return [n.title for n in self.for_user(user_id)]

    def clear(self) -> None:
        self.sent.clear()


async def safe_notify(
    emitter: NotificationEmitter,
    user_id: Optional[str],
    title: str,
    message: str,
    related_booking_id: Optional[str],
    category: NotificationCategory = NotificationCategory.BOOKING,
) -> bool:
    """Emit one notification; failures are logged and swallowed."""
    if not user_id:
        return False
    try:
        await emitter.notify(user_id, title, message, category, related_booking_id)
    except Exception as e:
        logger.warning("Notification '%s' to %s failed: %s", title, user_id, e)
        return False
    return True
