"""
Bonus repository.

Data access layer for the bonus journal.
"""

from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from referral_ledger.models.bonus import Bonus
from referral_ledger.models.enums import BonusStatus, BonusType
from referral_ledger.repositories.base import BaseRepository


class BonusRepository(BaseRepository[Bonus]):
    """Bonus repository with journal queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize bonus repository."""
        super().__init__(Bonus, session)

    async def get_for_update(self, bonus_id: int) -> Bonus | None:
        """
        Get bonus with a row lock.

        Args:
            bonus_id: Bonus ID

        Returns:
            Locked Bonus or None
        """
        stmt = (
            select(Bonus)
            .where(Bonus.id == bonus_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_order_commissions(self, order_id: str) -> list[Bonus]:
        """
        Get commission entries already recorded for an order.

        Args:
            order_id: External order ID

        Returns:
            Entries ordered by level
        """
        stmt = (
            select(Bonus)
            .where(
                Bonus.order_id == order_id,
                Bonus.type == BonusType.ORDER_COMMISSION.value,
            )
            .order_by(Bonus.level, Bonus.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_recent(
        self,
        user_id: int,
        limit: int = 10,
        status: BonusStatus | None = None,
    ) -> list[Bonus]:
        """
        Get most recent journal entries of a user.

        Args:
            user_id: Beneficiary user ID
            limit: Max number of entries
            status: Optional status filter

        Returns:
            Entries, newest first
        """
        stmt = select(Bonus).where(Bonus.user_id == user_id)
        if status is not None:
            stmt = stmt.where(Bonus.status == status.value)
        stmt = stmt.order_by(Bonus.created_at.desc(), Bonus.id.desc()).limit(
            limit
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def sum_amount(
        self,
        user_id: int | None = None,
        status: BonusStatus | None = None,
        bonus_type: BonusType | None = None,
    ) -> Decimal:
        """
        Sum journal amounts with optional filters.

        Args:
            user_id: Optional beneficiary filter
            status: Optional status filter
            bonus_type: Optional type filter

        Returns:
            Sum of amounts (0 when nothing matches)
        """
        stmt = select(func.coalesce(func.sum(Bonus.amount), 0))
        if user_id is not None:
            stmt = stmt.where(Bonus.user_id == user_id)
        if status is not None:
            stmt = stmt.where(Bonus.status == status.value)
        if bonus_type is not None:
            stmt = stmt.where(Bonus.type == bonus_type.value)
        result = await self.session.execute(stmt)
        return Decimal(str(result.scalar() or 0))

    async def get_level_counts(self) -> list[dict[str, int]]:
        """
        Count commission entries grouped by chain level.

        Returns:
            List of {"level": n, "count": m} ordered by level
        """
        stmt = (
            select(Bonus.level, func.count(Bonus.id).label("count"))
            .where(Bonus.level.is_not(None))
            .group_by(Bonus.level)
            .order_by(Bonus.level)
        )
        result = await self.session.execute(stmt)
        return [
            {"level": row.level, "count": row.count} for row in result.all()
        ]
