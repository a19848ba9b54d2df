"""
MLM service.

Entry point of the referral commission ledger used by the rest of the
marketplace. Each mutating operation runs as one transaction (retried on
concurrent-update conflicts); notifications and cache invalidation happen
after commit and never affect the ledger.
"""

from decimal import Decimal

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from referral_ledger.config.business_constants import (
    RECENT_BONUSES_LIMIT,
    REFERRAL_TREE_DEPTH,
)
from referral_ledger.config.settings import settings
from referral_ledger.models.bonus import Bonus
from referral_ledger.models.enums import BonusType
from referral_ledger.models.referral import Referral
from referral_ledger.repositories.bonus_repository import BonusRepository
from referral_ledger.services.mlm.bonus_approval import BonusApprovalManager
from referral_ledger.services.mlm.cache import (
    OVERALL_STATS_KEY,
    MlmCache,
    NullMlmCache,
    structure_key,
)
from referral_ledger.services.mlm.commission_calculator import (
    CommissionCalculator,
    CommissionPreview,
)
from referral_ledger.services.mlm.config import (
    DEFAULT_RATE_TABLE,
    CommissionRateTable,
)
from referral_ledger.services.mlm.events import (
    COMMISSION_UPDATED,
    NETWORK_UPDATED,
    EventEmitter,
    NullEventEmitter,
    emit_safely,
)
from referral_ledger.services.mlm.ledger_updater import ApplyResult, LedgerUpdater
from referral_ledger.services.mlm.lookup import SqlUserLookup
from referral_ledger.services.mlm.network_manager import (
    ReferralNetworkManager,
    generate_referral_code,
)
from referral_ledger.services.mlm.payout_processor import (
    PayoutProcessor,
    PayoutResult,
)
from referral_ledger.services.mlm.statistics import MlmStatisticsManager
from referral_ledger.services.mlm.structure_reader import StructureReader
from referral_ledger.utils.db_decorators import run_in_transaction
from referral_ledger.utils.money import to_money


class MlmService:
    """
    Referral commission ledger facade.

    Operations:
    - compute_preview_commissions: what an order would pay (no writes)
    - apply_order_commissions: persist commissions of a paid order
    - approve_bonus: pending -> paid
    - request_payout: available balance -> withdrawal
    - get_ledger_summary / build_referral_tree: dashboards
    - create_referral / assign_referral_code: network management
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        emitter: EventEmitter | None = None,
        cache: MlmCache | None = None,
        rate_table: CommissionRateTable = DEFAULT_RATE_TABLE,
        max_hops: int | None = None,
        max_attempts: int | None = None,
        cache_ttl: int | None = None,
    ) -> None:
        """
        Initialize MLM service.

        Args:
            session_maker: Factory of database sessions
            emitter: Outbound event emitter (logs only when omitted)
            cache: Read cache (disabled when omitted)
            rate_table: Commission schedule
            max_hops: Ancestor hop cap (settings default)
            max_attempts: Transaction attempts on conflicts (settings default)
            cache_ttl: Summary cache TTL in seconds (settings default)
        """
        self.session_maker = session_maker
        self.emitter = emitter or NullEventEmitter()
        self.cache = cache or NullMlmCache()
        self.rate_table = rate_table
        self.max_hops = max_hops or settings.mlm_max_chain_hops
        self.max_attempts = max_attempts or settings.mlm_max_conflict_retries
        self.cache_ttl = (
            cache_ttl if cache_ttl is not None else settings.mlm_cache_ttl_seconds
        )
        self.logger = logger.bind(service=self.__class__.__name__)

    def _calculator(self, session: AsyncSession) -> CommissionCalculator:
        return CommissionCalculator(
            SqlUserLookup(session),
            rate_table=self.rate_table,
            max_hops=self.max_hops,
        )

    # Commissions

    async def compute_preview_commissions(
        self, order_amount: Decimal, client_id: int
    ) -> dict:
        """
        Preview commissions an order would generate, without persisting.

        Args:
            order_amount: Order amount
            client_id: Paying client

        Returns:
            Dict with commissions list and total_commissions
        """
        order_amount = self._validate_amount(order_amount)

        async with self.session_maker() as session:
            preview: CommissionPreview = await self._calculator(session).preview(
                client_id, order_amount
            )

        return preview.to_dict()

    async def apply_order_commissions(
        self, order_id: str, order_amount: Decimal, client_id: int
    ) -> list[Bonus]:
        """
        Persist commissions for a confirmed payment.

        Safe under at-least-once delivery: a repeated order_id returns the
        entries created the first time.

        Args:
            order_id: External order ID
            order_amount: Paid amount
            client_id: Paying client

        Returns:
            Order commission entries (0..3)
        """
        if not order_id:
            raise ValueError("order_id is required")
        order_amount = self._validate_amount(order_amount)

        async def operation(
            session: AsyncSession,
        ) -> tuple[ApplyResult, int | None]:
            preview = await self._calculator(session).preview(
                client_id, order_amount
            )
            applied = await LedgerUpdater(session).apply(order_id, preview.lines)
            return applied, preview.direct_referrer_id

        result, direct_referrer_id = await run_in_transaction(
            self.session_maker,
            operation,
            name="apply_order_commissions",
            attempts=self.max_attempts,
        )

        if result.duplicate or not result.bonuses:
            return result.bonuses

        self.logger.info(
            "Order commissions applied",
            extra={
                "order_id": order_id,
                "client_id": client_id,
                "entries": len(result.bonuses),
                "total": str(result.total_amount),
            },
        )

        for bonus in result.bonuses:
            await emit_safely(
                self.emitter,
                COMMISSION_UPDATED,
                bonus.user_id,
                {
                    "bonus_id": bonus.id,
                    "amount": str(bonus.amount),
                    "level": bonus.level,
                    "order_id": order_id,
                    "status": bonus.status,
                },
            )
            await self._invalidate_cache(bonus.user_id)

        if direct_referrer_id is not None:
            await self._publish_network(direct_referrer_id)

        return result.bonuses

    async def approve_bonus(self, bonus_id: int) -> Bonus:
        """
        Approve and pay a pending bonus.

        Args:
            bonus_id: Bonus ID

        Returns:
            Paid Bonus

        Raises:
            NotFoundError: Unknown bonus
        """

        async def operation(session: AsyncSession) -> Bonus:
            return await BonusApprovalManager(session).approve(bonus_id)

        bonus = await run_in_transaction(
            self.session_maker,
            operation,
            name="approve_bonus",
            attempts=self.max_attempts,
        )
        await self._invalidate_cache(bonus.user_id)
        return bonus

    async def create_bonus(
        self,
        user_id: int,
        bonus_type: BonusType,
        amount: Decimal,
        description: str | None = None,
        referral_id: int | None = None,
    ) -> Bonus:
        """
        Record a referral, level or monthly bonus (pending).

        Args:
            user_id: Beneficiary
            bonus_type: REFERRAL, LEVEL_BONUS or MONTHLY_BONUS
            amount: Positive amount
            description: Optional description
            referral_id: Optional referral edge

        Returns:
            Pending Bonus
        """

        async def operation(session: AsyncSession) -> Bonus:
            return await LedgerUpdater(session).record_bonus(
                user_id, bonus_type, amount, description, referral_id
            )

        bonus = await run_in_transaction(
            self.session_maker,
            operation,
            name="create_bonus",
            attempts=self.max_attempts,
        )
        await emit_safely(
            self.emitter,
            COMMISSION_UPDATED,
            user_id,
            {
                "bonus_id": bonus.id,
                "amount": str(bonus.amount),
                "status": bonus.status,
                "type": bonus.type,
            },
        )
        await self._invalidate_cache(user_id)
        return bonus

    # Payouts

    async def request_payout(
        self, master_id: int, amount: Decimal | None = None
    ) -> PayoutResult:
        """
        Pay out a master's available balance.

        Args:
            master_id: Master user ID
            amount: Optional amount (full balance when omitted or too large)

        Returns:
            PayoutResult

        Raises:
            NotFoundError: Master has no ledger record
        """

        async def operation(session: AsyncSession) -> PayoutResult:
            return await PayoutProcessor(session).payout(master_id, amount)

        result = await run_in_transaction(
            self.session_maker,
            operation,
            name="request_payout",
            attempts=self.max_attempts,
        )

        if not result.success:
            return result

        await emit_safely(
            self.emitter,
            COMMISSION_UPDATED,
            master_id,
            {
                "bonus_id": result.bonus_id,
                "amount": str(result.payout_amount),
                "status": "paid",
                "type": BonusType.WITHDRAWAL.value,
            },
        )
        await self._invalidate_cache(master_id)
        await self._publish_network(master_id)

        return result

    # Network

    async def create_referral(self, referrer_id: int, referred_id: int) -> Referral:
        """
        Create referral edge (idempotent).

        Args:
            referrer_id: Inviting user
            referred_id: Invited user

        Returns:
            New or existing edge
        """

        async def operation(
            session: AsyncSession,
        ) -> tuple[Referral, bool, list[int]]:
            manager = ReferralNetworkManager(session)
            edge, created = await manager.create_referral(referrer_id, referred_id)
            owners = await manager.get_tree_owner_ids(referrer_id) if created else []
            return edge, created, owners

        edge, created, tree_owner_ids = await run_in_transaction(
            self.session_maker,
            operation,
            name="create_referral",
            attempts=self.max_attempts,
        )

        if created:
            # The new edge shows up in the cached trees of referrer's ancestors
            for owner_id in tree_owner_ids:
                await self._invalidate_cache(owner_id)
            await self._publish_network(referrer_id)

        return edge

    def generate_referral_code(self) -> str:
        """Generate a fresh referral code (not persisted)."""
        return generate_referral_code()

    async def assign_referral_code(self, user_id: int) -> str:
        """Return user's referral code, creating one if missing."""

        async def operation(session: AsyncSession) -> str:
            return await ReferralNetworkManager(session).assign_referral_code(
                user_id
            )

        return await run_in_transaction(
            self.session_maker,
            operation,
            name="assign_referral_code",
            attempts=self.max_attempts,
        )

    # Read side

    async def build_referral_tree(
        self, master_id: int, depth: int = REFERRAL_TREE_DEPTH
    ) -> list[dict]:
        """
        Build referral tree below a master.

        Args:
            master_id: Root user
            depth: Levels to expand (at most 3)

        Returns:
            Serialized tree nodes
        """
        async with self.session_maker() as session:
            nodes = await StructureReader(session).build_tree(master_id, depth)
        return [node.to_dict() for node in nodes]

    async def get_ledger_summary(self, master_id: int) -> dict:
        """
        Get cached ledger summary of a master.

        Args:
            master_id: Master user ID

        Returns:
            Dict with profile, referrals_count, structure, recent_bonuses,
            statistics
        """

        async def factory() -> dict:
            async with self.session_maker() as session:
                return await MlmStatisticsManager(session).get_ledger_summary(
                    master_id
                )

        return await self.cache.get_or_set(
            structure_key(master_id), factory, self.cache_ttl
        )

    async def get_user_bonuses(
        self, user_id: int, limit: int = RECENT_BONUSES_LIMIT
    ) -> list[dict]:
        """Most recent journal entries of a user."""
        async with self.session_maker() as session:
            bonuses = await BonusRepository(session).get_recent(user_id, limit)
        return [bonus.to_dict() for bonus in bonuses]

    async def get_overall_stats(self) -> dict:
        """Get cached program-wide statistics."""

        async def factory() -> dict:
            async with self.session_maker() as session:
                return await MlmStatisticsManager(session).get_overall_stats(
                    self.rate_table
                )

        return await self.cache.get_or_set(
            OVERALL_STATS_KEY, factory, self.cache_ttl
        )

    async def get_realtime_commissions(self, user_id: int) -> dict:
        """Get pending total, recent entries and next payout estimate."""
        async with self.session_maker() as session:
            return await MlmStatisticsManager(session).get_realtime_commissions(
                user_id
            )

    # Helpers

    @staticmethod
    def _validate_amount(order_amount: Decimal) -> Decimal:
        amount = to_money(order_amount)
        if amount <= 0:
            raise ValueError("Order amount must be positive")
        return amount

    async def _invalidate_cache(self, user_id: int) -> None:
        try:
            await self.cache.invalidate(user_id)
        except Exception as e:
            self.logger.warning(
                "MLM cache invalidation failed",
                extra={"user_id": user_id, "error": str(e)},
            )

    async def _publish_network(self, user_id: int) -> None:
        """Rebuild a user's tree and emit it; failures are only logged."""
        try:
            tree = await self.build_referral_tree(user_id)
        except Exception as e:
            self.logger.warning(
                "Failed to rebuild referral tree for event",
                extra={"user_id": user_id, "error": str(e)},
            )
            return
        await emit_safely(self.emitter, NETWORK_UPDATED, user_id, tree)
