"""
Payout processor.

Converts available balance into a recorded withdrawal.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from referral_ledger.config.business_constants import CURRENCY_SYMBOL, ZERO_MONEY
from referral_ledger.models.bonus import Bonus
from referral_ledger.models.enums import BonusStatus, BonusType
from referral_ledger.repositories.master_profile_repository import (
    MasterProfileRepository,
)
from referral_ledger.utils.exceptions import NotFoundError
from referral_ledger.utils.money import format_money, to_money


INSUFFICIENT_FUNDS_MESSAGE = "Insufficient funds for payout"


@dataclass
class PayoutResult:
    """Result of a payout request."""

    success: bool
    payout_amount: Decimal
    new_balance: Decimal
    message: str
    bonus_id: int | None = None

    def to_dict(self) -> dict:
        """Serialize result."""
        return {
            "success": self.success,
            "payout_amount": str(self.payout_amount),
            "new_balance": str(self.new_balance),
            "message": self.message,
            "bonus_id": self.bonus_id,
        }


class PayoutProcessor:
    """Executes withdrawals against a master's available balance."""

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize payout processor.

        Args:
            session: Async database session with an open transaction
        """
        self.session = session
        self.profile_repo = MasterProfileRepository(session)

    @staticmethod
    def resolve_payout_amount(
        available: Decimal, requested: Decimal | None
    ) -> Decimal:
        """
        Decide how much to pay out.

        The requested amount is used when given, non-zero and covered by the
        available balance; otherwise the whole available balance is paid.
        A positive request below one cent rounds to 0.00 and is rejected by
        the caller, it never falls back to the full balance.

        Args:
            available: Current available balance
            requested: Optional requested amount

        Returns:
            Amount to pay (may be <= 0, meaning nothing to pay)
        """
        if requested is not None and requested != 0:
            amount = to_money(requested)
            if amount <= available:
                return amount
        return to_money(available)

    async def payout(
        self, master_id: int, requested: Decimal | None = None
    ) -> PayoutResult:
        """
        Pay out available balance of a master.

        Args:
            master_id: Master user ID
            requested: Optional amount; defaults to the full balance

        Returns:
            PayoutResult (success=False when there is nothing to pay)

        Raises:
            NotFoundError: Master has no ledger record
        """
        profile = await self.profile_repo.get_for_update(master_id)
        if profile is None:
            raise NotFoundError("MasterProfile", master_id)

        available = to_money(profile.available_balance)
        payout_amount = self.resolve_payout_amount(available, requested)

        if payout_amount <= 0:
            logger.info(
                "Payout rejected: insufficient funds",
                extra={
                    "master_id": master_id,
                    "available": str(available),
                    "requested": str(requested) if requested is not None else None,
                },
            )
            return PayoutResult(
                success=False,
                payout_amount=ZERO_MONEY,
                new_balance=available,
                message=INSUFFICIENT_FUNDS_MESSAGE,
            )

        bonus = Bonus(
            user_id=master_id,
            type=BonusType.WITHDRAWAL.value,
            status=BonusStatus.PAID.value,
            amount=payout_amount,
            description=f"Automatic payout {datetime.now(UTC):%d.%m.%Y}",
        )
        self.session.add(bonus)

        new_balance = to_money(available - payout_amount)
        profile.available_balance = new_balance
        profile.withdrawn_amount = to_money(profile.withdrawn_amount + payout_amount)

        await self.session.flush()

        logger.info(
            "Payout processed",
            extra={
                "master_id": master_id,
                "bonus_id": bonus.id,
                "amount": str(payout_amount),
                "balance_before": str(available),
                "balance_after": str(new_balance),
            },
        )

        return PayoutResult(
            success=True,
            payout_amount=payout_amount,
            new_balance=new_balance,
            message=f"Successfully paid out {format_money(payout_amount, CURRENCY_SYMBOL)}",
            bonus_id=bonus.id,
        )
