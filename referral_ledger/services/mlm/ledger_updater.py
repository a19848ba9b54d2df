"""
Ledger updater.

Applies commission lines to the bonus journal and the masters' ledger
records inside the caller's transaction.
"""

from dataclasses import dataclass, field
from decimal import Decimal

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from referral_ledger.models.bonus import Bonus
from referral_ledger.models.enums import BonusStatus, BonusType
from referral_ledger.repositories.bonus_repository import BonusRepository
from referral_ledger.repositories.master_profile_repository import (
    MasterProfileRepository,
)
from referral_ledger.repositories.referral_repository import ReferralRepository
from referral_ledger.services.mlm.commission_calculator import CommissionLine
from referral_ledger.utils.money import to_money


@dataclass
class ApplyResult:
    """Result of applying an order's commissions."""

    bonuses: list[Bonus] = field(default_factory=list)
    duplicate: bool = False

    @property
    def total_amount(self) -> Decimal:
        """Sum of the entries' amounts."""
        return to_money(sum((b.amount for b in self.bonuses), Decimal("0")))


class LedgerUpdater:
    """
    Writes commission entries and balance credits.

    Does not commit: callers run it inside one transaction so a journal
    entry never exists without its balance credit, or vice versa.
    """

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize ledger updater.

        Args:
            session: Async database session with an open transaction
        """
        self.session = session
        self.bonus_repo = BonusRepository(session)
        self.profile_repo = MasterProfileRepository(session)
        self.referral_repo = ReferralRepository(session)

    async def apply(
        self, order_id: str, lines: list[CommissionLine]
    ) -> ApplyResult:
        """
        Persist commission lines of one order.

        An order that already has commission entries is not processed again;
        the existing entries are returned with duplicate=True.

        Args:
            order_id: External order ID
            lines: Lines produced by CommissionCalculator

        Returns:
            ApplyResult with created (or existing) entries
        """
        existing = await self.bonus_repo.get_order_commissions(order_id)
        if existing:
            logger.info(
                "Order commissions already recorded, skipping",
                extra={"order_id": order_id, "entries": len(existing)},
            )
            return ApplyResult(bonuses=existing, duplicate=True)

        if not lines:
            return ApplyResult()

        # Lock ledger rows in ascending user order so concurrent orders
        # touching the same masters cannot deadlock
        profiles = {}
        for master_id in sorted({line.master_id for line in lines}):
            profiles[master_id] = (
                await self.profile_repo.get_or_create_for_update(master_id)
            )

        bonuses: list[Bonus] = []
        for line in sorted(lines, key=lambda item: item.level):
            amount = to_money(line.amount)

            bonus = Bonus(
                user_id=line.master_id,
                type=BonusType.ORDER_COMMISSION.value,
                status=BonusStatus.PENDING.value,
                amount=amount,
                description=f"Level {line.level} commission for order {order_id}",
                order_id=order_id,
                level=line.level,
                commission_rate=line.rate,
            )
            self.session.add(bonus)

            profile = profiles[line.master_id]
            profile.total_commissions = to_money(profile.total_commissions + amount)
            profile.available_balance = to_money(profile.available_balance + amount)

            edge_updated = await self.referral_repo.add_order_stats(
                line.master_id, line.source_user_id, amount
            )
            if not edge_updated:
                logger.debug(
                    "No referral edge for commission line",
                    extra={
                        "referrer_id": line.master_id,
                        "referred_id": line.source_user_id,
                        "order_id": order_id,
                    },
                )

            bonuses.append(bonus)

        await self.session.flush()

        for bonus in bonuses:
            logger.info(
                "Order commission recorded",
                extra={
                    "bonus_id": bonus.id,
                    "master_id": bonus.user_id,
                    "order_id": order_id,
                    "level": bonus.level,
                    "rate": str(bonus.commission_rate),
                    "amount": str(bonus.amount),
                },
            )

        return ApplyResult(bonuses=bonuses)

    async def record_bonus(
        self,
        user_id: int,
        bonus_type: BonusType,
        amount: Decimal,
        description: str | None = None,
        referral_id: int | None = None,
    ) -> Bonus:
        """
        Record a pending non-order bonus and accrue it.

        Referral, level and monthly bonuses accrue exactly like commissions:
        total_commissions and available_balance grow now, total_earnings
        grows on approval.

        Args:
            user_id: Beneficiary
            bonus_type: Any type except WITHDRAWAL and ORDER_COMMISSION
            amount: Positive amount
            description: Optional description
            referral_id: Optional referral edge reference

        Returns:
            Created pending Bonus
        """
        if bonus_type in (BonusType.WITHDRAWAL, BonusType.ORDER_COMMISSION):
            raise ValueError(f"Bonus type {bonus_type} has a dedicated flow")

        amount = to_money(amount)
        if amount <= 0:
            raise ValueError("Bonus amount must be positive")

        profile = await self.profile_repo.get_or_create_for_update(user_id)

        bonus = Bonus(
            user_id=user_id,
            type=bonus_type.value,
            status=BonusStatus.PENDING.value,
            amount=amount,
            description=description,
            referral_id=referral_id,
        )
        self.session.add(bonus)

        profile.total_commissions = to_money(profile.total_commissions + amount)
        profile.available_balance = to_money(profile.available_balance + amount)

        await self.session.flush()

        logger.info(
            "Bonus recorded",
            extra={
                "bonus_id": bonus.id,
                "user_id": user_id,
                "type": bonus_type.value,
                "amount": str(amount),
            },
        )
        return bonus
