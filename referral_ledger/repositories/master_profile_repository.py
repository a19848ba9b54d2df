"""
MasterProfile repository.

Data access layer for the per-master ledger record.
"""

from decimal import Decimal

from loguru import logger
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from referral_ledger.models.master_profile import MasterProfile
from referral_ledger.repositories.base import BaseRepository


class MasterProfileRepository(BaseRepository[MasterProfile]):
    """MasterProfile repository with row locking helpers."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize master profile repository."""
        super().__init__(MasterProfile, session)

    async def get_by_user_id(self, user_id: int) -> MasterProfile | None:
        """
        Get ledger record of a user.

        Args:
            user_id: User ID

        Returns:
            MasterProfile or None
        """
        return await self.get_by(user_id=user_id)

    async def get_for_update(self, user_id: int) -> MasterProfile | None:
        """
        Get ledger record with a row lock (SELECT FOR UPDATE).

        Args:
            user_id: User ID

        Returns:
            Locked MasterProfile or None
        """
        stmt = (
            select(MasterProfile)
            .where(MasterProfile.user_id == user_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_or_create_for_update(self, user_id: int) -> MasterProfile:
        """
        Get locked ledger record, creating an empty one lazily.

        Args:
            user_id: User ID

        Returns:
            Locked MasterProfile
        """
        profile = await self.get_for_update(user_id)
        if profile:
            return profile

        try:
            async with self.session.begin_nested():
                self.session.add(
                    MasterProfile(
                        user_id=user_id,
                        referrals_count=0,
                        total_earnings=Decimal("0"),
                        total_commissions=Decimal("0"),
                        available_balance=Decimal("0"),
                        withdrawn_amount=Decimal("0"),
                    )
                )
        except IntegrityError:
            logger.debug(
                "Master profile created concurrently",
                extra={"user_id": user_id},
            )

        profile = await self.get_for_update(user_id)
        if profile is None:
            raise RuntimeError(f"Master profile for user {user_id} vanished")

        logger.debug("Master profile ready", extra={"user_id": user_id})
        return profile
