"""
Time-bounded role-permission cache.

Role permissions live in the surrounding access-control layer. The booking
core only asks "may this role perform this operation?" and tolerates
answers up to ``ttl`` seconds stale. Role mutations call ``invalidate``.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Iterable, Optional

from bookingcore.config import settings

logger = logging.getLogger(__name__)

PermissionLoader = Callable[[str], Awaitable[Iterable[str]]]


class PermissionCache:
    """Read-through cache of role id -> permission names."""

    def __init__(
        self,
        loader: PermissionLoader,
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._loader = loader
        self.ttl = settings.tasks.permission_cache_ttl_seconds if ttl_seconds is None else ttl_seconds
        self._clock = clock
        self._entries: dict[str, tuple[float, frozenset[str]]] = {}
        self._lock = asyncio.Lock()

    async def get(self, role_id: str) -> frozenset[str]:
        """Permissions for ``role_id``, loading them on a miss or after expiry."""
        entry = self._entries.get(role_id)
        if entry is not None and self._clock() < entry[0]:
            logger.debug("Permission cache HIT: %s", role_id)
            return entry[1]

        async with self._lock:
            entry = self._entries.get(role_id)
            if entry is not None and self._clock() < entry[0]:
                return entry[1]
            logger.debug("Permission cache MISS: %s", role_id)
            permissions = frozenset(await self._loader(role_id))
            self._entries[role_id] = (self._clock() + self.ttl, permissions)
            return permissions

    async def allows(self, role_id: str, permission: str) -> bool:
        return permission in await self.get(role_id)

    def invalidate(self, role_id: str) -> None:
        """Drop one role's entry after its permissions change."""
        if self._entries.pop(role_id, None) is not None:
            logger.debug("Permission cache DELETE: %s", role_id)

    def clear(self) -> None:
        self._entries.clear()
