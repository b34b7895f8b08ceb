from bookingcore.notifications.emitter import (
    LoggingNotifier,
    Notification,
    NotificationCategory,
    NotificationEmitter,
    RecordingNotifier,
    safe_notify,
)

__all__ = [
    "LoggingNotifier",
    "Notification",
    "NotificationCategory",
    "NotificationEmitter",
    "RecordingNotifier",
    "safe_notify",
]
