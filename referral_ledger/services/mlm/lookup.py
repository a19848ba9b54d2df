"""
User lookup capability used by the commission calculator.
"""

from dataclasses import dataclass
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from referral_ledger.models.enums import UserRole
from referral_ledger.models.user import User
from referral_ledger.repositories.user_repository import UserRepository


@dataclass(frozen=True)
class UserInfo:
    """Minimal view of a user needed to walk the referral chain."""

    id: int
    role: str
    referrer_id: int | None = None
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None

    @property
    def is_master(self) -> bool:
        """Check if user can receive commissions."""
        return self.role == UserRole.MASTER

    @classmethod
    def from_model(cls, user: User) -> "UserInfo":
        """Build from ORM user."""
        return cls(
            id=user.id,
            role=user.role,
            referrer_id=user.referrer_id,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
        )

    def public_dict(self) -> dict:
        """Fields safe to show in commission previews."""
        return {
            "id": self.id,
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
        }


class UserLookup(Protocol):
    """Anything able to resolve a user by ID."""

    async def get_user(self, user_id: int) -> UserInfo | None:
        ...


class SqlUserLookup:
    """UserLookup backed by the users table."""

    def __init__(self, session: AsyncSession) -> None:
        self.user_repo = UserRepository(session)

    async def get_user(self, user_id: int) -> UserInfo | None:
        user = await self.user_repo.get_by_id(user_id)
        return UserInfo.from_model(user) if user else None
