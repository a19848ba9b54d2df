"""
User repository.

Data access layer for User model.
"""

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from referral_ledger.models.user import User
from referral_ledger.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """User repository with referral specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize user repository."""
        super().__init__(User, session)

    async def set_referrer_if_unset(
        self, user_id: int, referrer_id: int
    ) -> bool:
        """
        Set the direct referrer unless one is already recorded.

        Args:
            user_id: Referred user ID
            referrer_id: Referrer user ID

        Returns:
            True if the referrer was set by this call
        """
        stmt = (
            update(User)
            .where(User.id == user_id, User.referrer_id.is_(None))
            .values(referrer_id=referrer_id)
        )
        result = await self.session.execute(stmt)
        return result.rowcount > 0
