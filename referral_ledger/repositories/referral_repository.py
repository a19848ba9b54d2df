"""
Referral repository.

Data access layer for Referral model (the referral graph).
"""

from decimal import Decimal

from loguru import logger
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from referral_ledger.models.referral import Referral
from referral_ledger.repositories.base import BaseRepository


class ReferralRepository(BaseRepository[Referral]):
    """Referral repository with graph queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize referral repository."""
        super().__init__(Referral, session)

    async def get_edge(
        self, referrer_id: int, referred_id: int
    ) -> Referral | None:
        """
        Get edge for a (referrer, referred) pair.

        Args:
            referrer_id: Referrer user ID
            referred_id: Referred user ID

        Returns:
            Referral or None
        """
        return await self.get_by(
            referrer_id=referrer_id, referred_id=referred_id
        )

    async def get_or_create(
        self, referrer_id: int, referred_id: int
    ) -> tuple[Referral, bool]:
        """
        Get existing edge or create it.

        A concurrent insert of the same pair loses on the unique constraint
        inside a savepoint and falls back to the existing row.

        Args:
            referrer_id: Referrer user ID
            referred_id: Referred user ID

        Returns:
            Tuple of (edge, created)
        """
        existing = await self.get_edge(referrer_id, referred_id)
        if existing:
            return existing, False

        try:
            async with self.session.begin_nested():
                edge = Referral(
                    referrer_id=referrer_id,
                    referred_id=referred_id,
                    total_earned=Decimal("0"),
                    orders_count=0,
                    is_active=True,
                )
                self.session.add(edge)
        except IntegrityError:
            logger.debug(
                "Referral edge created concurrently, reusing existing row",
                extra={"referrer_id": referrer_id, "referred_id": referred_id},
            )
            existing = await self.get_edge(referrer_id, referred_id)
            if existing is None:
                raise
            return existing, False

        await self.session.refresh(edge)
        return edge, True

    async def get_by_referrer(self, referrer_id: int) -> list[Referral]:
        """
        Get direct referrals of a referrer with referred users loaded.

        Args:
            referrer_id: Referrer user ID

        Returns:
            List of edges ordered by creation
        """
        stmt = (
            select(Referral)
            .options(selectinload(Referral.referred))
            .where(Referral.referrer_id == referrer_id)
            .order_by(Referral.created_at, Referral.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def add_order_stats(
        self, referrer_id: int, referred_id: int, amount: Decimal
    ) -> bool:
        """
        Atomically bump edge stats for one commissioned order.

        Args:
            referrer_id: Referrer user ID
            referred_id: Referred user ID
            amount: Commission credited via this edge

        Returns:
            True if an edge was updated
        """
        stmt = (
            update(Referral)
            .where(
                Referral.referrer_id == referrer_id,
                Referral.referred_id == referred_id,
            )
            .values(
                total_earned=Referral.total_earned + amount,
                orders_count=Referral.orders_count + 1,
            )
        )
        result = await self.session.execute(stmt)
        return result.rowcount > 0

    async def get_referrer_ids(self, referred_id: int) -> list[int]:
        """
        Get users holding an edge to referred_id.

        Args:
            referred_id: Referred user ID

        Returns:
            Referrer user IDs
        """
        stmt = select(Referral.referrer_id).where(
            Referral.referred_id == referred_id
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def count_by_referrer(self, referrer_id: int) -> int:
        """
        Count direct referrals.

        Args:
            referrer_id: Referrer user ID

        Returns:
            Number of edges
        """
        return await self.count(referrer_id=referrer_id)
