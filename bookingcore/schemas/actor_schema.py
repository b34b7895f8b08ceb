"""Authenticated caller identity passed into every state-machine operation."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Role(str, Enum):
    CUSTOMER = "customer"
    PROVIDER = "provider"
    SHOP_OWNER = "shop_owner"
    ADMIN = "admin"
    SYSTEM = "system"


@dataclass(frozen=True)
class Actor:
    """
    Who is calling, as resolved once by the auth boundary.

    Providers arrive with ``provider_id`` already resolved, so the core
    never branches on role strings to find the provider record.
    """

    user_id: str
    role: Role
    provider_id: Optional[str] = None

    @classmethod
    def system(cls) -> "Actor":
        return cls(user_id="system", role=Role.SYSTEM)

    @classmethod
    def customer(cls, user_id: str) -> "Actor":
        return cls(user_id=user_id, role=Role.CUSTOMER)

    @classmethod
    def provider(cls, user_id: str, provider_id: str) -> "Actor":
        return cls(user_id=user_id, role=Role.PROVIDER, provider_id=provider_id)

    @classmethod
    def shop_owner(cls, user_id: str) -> "Actor":
        return cls(user_id=user_id, role=Role.SHOP_OWNER)

    @classmethod
    def admin(cls, user_id: str) -> "Actor":
        return cls(user_id=user_id, role=Role.ADMIN)

    @property
    def is_privileged(self) -> bool:
        return self.role in (Role.ADMIN, Role.SYSTEM)
