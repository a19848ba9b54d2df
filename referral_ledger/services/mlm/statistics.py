"""
MLM statistics and summaries.

Read-only aggregates for dashboards. All values are JSON-serializable so
they can be cached as-is.
"""

from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from referral_ledger.config.business_constants import (
    RECENT_BONUSES_LIMIT,
    REFERRAL_TREE_DEPTH,
    ZERO_MONEY,
)
from referral_ledger.models.enums import BonusStatus
from referral_ledger.repositories.bonus_repository import BonusRepository
from referral_ledger.repositories.master_profile_repository import (
    MasterProfileRepository,
)
from referral_ledger.repositories.referral_repository import ReferralRepository
from referral_ledger.services.mlm.config import CommissionRateTable
from referral_ledger.services.mlm.structure_reader import StructureReader
from referral_ledger.utils.money import to_money


def _empty_profile(user_id: int) -> dict:
    return {
        "user_id": user_id,
        "specialization": None,
        "rating": "0.00",
        "referrals_count": 0,
        "total_earnings": str(ZERO_MONEY),
        "total_commissions": str(ZERO_MONEY),
        "available_balance": str(ZERO_MONEY),
        "withdrawn_amount": str(ZERO_MONEY),
    }


class MlmStatisticsManager:
    """Provides MLM summaries and overall statistics."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize statistics manager."""
        self.session = session
        self.bonus_repo = BonusRepository(session)
        self.profile_repo = MasterProfileRepository(session)
        self.referral_repo = ReferralRepository(session)
        self.structure_reader = StructureReader(session)

    async def get_ledger_summary(self, user_id: int) -> dict:
        """
        Get ledger summary of a master.

        Users without a ledger record get a zeroed profile.

        Args:
            user_id: Master user ID

        Returns:
            Dict with profile, referrals_count, structure, recent_bonuses,
            statistics
        """
        profile = await self.profile_repo.get_by_user_id(user_id)
        profile_data = profile.to_dict() if profile else _empty_profile(user_id)

        referrals_count = await self.referral_repo.count_by_referrer(user_id)
        structure = await self.structure_reader.build_tree(
            user_id, REFERRAL_TREE_DEPTH
        )
        recent = await self.bonus_repo.get_recent(user_id, RECENT_BONUSES_LIMIT)

        return {
            "profile": profile_data,
            "referrals_count": referrals_count,
            "structure": [node.to_dict() for node in structure],
            "recent_bonuses": [bonus.to_dict() for bonus in recent],
            "statistics": {
                "total_referrals": referrals_count,
                "total_earnings": profile_data["total_earnings"],
                "total_commissions": profile_data["total_commissions"],
                "available_balance": profile_data["available_balance"],
                "withdrawn_amount": profile_data["withdrawn_amount"],
            },
        }

    async def get_overall_stats(self, rate_table: CommissionRateTable) -> dict:
        """
        Get program-wide statistics.

        Args:
            rate_table: Active commission schedule (echoed in the output)

        Returns:
            Dict with total_referrals, total_bonuses, total_paid_amount,
            stats_by_level, commission_rates
        """
        total_referrals = await self.referral_repo.count()
        total_bonuses = await self.bonus_repo.count()
        total_paid = await self.bonus_repo.sum_amount(status=BonusStatus.PAID)
        stats_by_level = await self.bonus_repo.get_level_counts()

        return {
            "total_referrals": total_referrals,
            "total_bonuses": total_bonuses,
            "total_paid_amount": str(to_money(total_paid)),
            "stats_by_level": stats_by_level,
            "commission_rates": rate_table.to_list(),
        }

    async def get_realtime_commissions(self, user_id: int) -> dict:
        """
        Get live commission data of a user.

        Args:
            user_id: User ID

        Returns:
            Dict with pending_commissions, recent_commissions,
            estimated_next_payout
        """
        pending_total = await self.bonus_repo.sum_amount(
            user_id=user_id, status=BonusStatus.PENDING
        )
        recent = await self.bonus_repo.get_recent(user_id, RECENT_BONUSES_LIMIT)

        profile = await self.profile_repo.get_by_user_id(user_id)
        available = profile.available_balance if profile else Decimal("0")

        return {
            "pending_commissions": str(to_money(pending_total)),
            "recent_commissions": [
                {
                    "id": bonus.id,
                    "amount": str(bonus.amount),
                    "level": bonus.level or 0,
                    "order_id": bonus.order_id,
                    "created_at": (
                        bonus.created_at.isoformat() if bonus.created_at else None
                    ),
                    "status": bonus.status,
                }
                for bonus in recent
            ],
            "estimated_next_payout": str(to_money(available)),
        }
