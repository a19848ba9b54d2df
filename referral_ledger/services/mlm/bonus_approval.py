"""
Bonus approval.

Transitions a journal entry to paid and realizes it in total_earnings.
"""

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from referral_ledger.models.bonus import Bonus
from referral_ledger.models.enums import BonusStatus, BonusType
from referral_ledger.repositories.bonus_repository import BonusRepository
from referral_ledger.repositories.master_profile_repository import (
    MasterProfileRepository,
)
from referral_ledger.utils.exceptions import LedgerError, NotFoundError
from referral_ledger.utils.money import to_money


class BonusApprovalManager:
    """Approves pending bonuses."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize approval manager."""
        self.session = session
        self.bonus_repo = BonusRepository(session)
        self.profile_repo = MasterProfileRepository(session)

    async def approve(self, bonus_id: int) -> Bonus:
        """
        Mark bonus as paid.

        total_commissions was already accrued when the bonus was created, so
        only total_earnings grows here. Approving an already paid bonus is a
        no-op.

        Args:
            bonus_id: Bonus ID

        Returns:
            Paid Bonus

        Raises:
            NotFoundError: Bonus does not exist
            LedgerError: Bonus was cancelled
        """
        bonus = await self.bonus_repo.get_for_update(bonus_id)
        if bonus is None:
            raise NotFoundError("Bonus", bonus_id)

        if bonus.status == BonusStatus.PAID:
            logger.debug("Bonus already paid", extra={"bonus_id": bonus_id})
            return bonus

        if bonus.status == BonusStatus.CANCELLED:
            raise LedgerError(f"Bonus {bonus_id} is cancelled and cannot be paid")

        if bonus.type == BonusType.WITHDRAWAL:
            # Withdrawals are created paid; a pending one is not expected
            bonus.status = BonusStatus.PAID.value
            await self.session.flush()
            return bonus

        profile = await self.profile_repo.get_or_create_for_update(bonus.user_id)

        bonus.status = BonusStatus.PAID.value
        profile.total_earnings = to_money(profile.total_earnings + bonus.amount)

        await self.session.flush()

        logger.info(
            "Bonus approved and paid",
            extra={
                "bonus_id": bonus.id,
                "user_id": bonus.user_id,
                "amount": str(bonus.amount),
                "total_earnings": str(profile.total_earnings),
            },
        )
        return bonus
