from bookingcore.store.base import (
    BookingStore,
    SlotConflictError,
    SlotKey,
    StaleWriteError,
    slot_keys_for,
)
from bookingcore.store.memory import InMemoryStore

__all__ = [
    "BookingStore",
    "InMemoryStore",
    "SlotConflictError",
    "SlotKey",
    "StaleWriteError",
    "slot_keys_for",
]
