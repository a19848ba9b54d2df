"""
Commission calculator.

Walks the referral chain above a paying client and produces the commission
lines owed to master ancestors. Pure traversal: nothing is persisted here,
the same code serves the preview and the persisting path.
"""

from dataclasses import dataclass, field
from decimal import Decimal

from loguru import logger

from referral_ledger.services.mlm.config import (
    DEFAULT_RATE_TABLE,
    CommissionRateTable,
)
from referral_ledger.services.mlm.lookup import UserInfo, UserLookup
from referral_ledger.utils.money import to_money


# Default cap on ancestors visited per calculation
DEFAULT_MAX_HOPS = 10


@dataclass(frozen=True)
class CommissionLine:
    """
    One commission owed to an ancestor master.

    Attributes:
        master_id: Rewarded master
        level: Chain level (1 = payer's direct referrer)
        rate: Applied rate
        amount: order_amount * rate, 2-digit fixed point
        source_user_id: Chain member directly below the master; the
            (master_id, source_user_id) referral edge carried the order
    """

    master_id: int
    level: int
    rate: Decimal
    amount: Decimal
    source_user_id: int

    def to_dict(self) -> dict:
        """Serialize line."""
        return {
            "user_id": self.master_id,
            "level": self.level,
            "commission_rate": str(self.rate),
            "amount": str(self.amount),
        }


@dataclass
class CommissionPreview:
    """Commissions an order would generate, with ancestor details."""

    lines: list[CommissionLine] = field(default_factory=list)
    masters: dict[int, UserInfo] = field(default_factory=dict)
    direct_referrer_id: int | None = None

    @property
    def total_commissions(self) -> Decimal:
        """Sum of line amounts."""
        return to_money(sum((line.amount for line in self.lines), Decimal("0")))

    def to_dict(self) -> dict:
        """Serialize preview for API callers."""
        commissions = []
        for line in self.lines:
            item = line.to_dict()
            master = self.masters.get(line.master_id)
            item["user"] = master.public_dict() if master else None
            commissions.append(item)
        return {
            "commissions": commissions,
            "total_commissions": str(self.total_commissions),
        }


class CommissionCalculator:
    """
    Computes tiered referral commissions for an order.

    Non-master ancestors are skipped but still consume a level, so a chain
    client -> non-master -> master pays the master at level 2. The walk stops
    at the first missing ancestor, after the deepest paid level, or after
    max_hops ancestors, whichever comes first.
    """

    def __init__(
        self,
        lookup: UserLookup,
        rate_table: CommissionRateTable = DEFAULT_RATE_TABLE,
        max_hops: int = DEFAULT_MAX_HOPS,
    ) -> None:
        """
        Initialize calculator.

        Args:
            lookup: User lookup capability
            rate_table: Commission schedule
            max_hops: Maximum number of ancestors visited
        """
        if max_hops < 1:
            raise ValueError("max_hops must be >= 1")
        self.lookup = lookup
        self.rate_table = rate_table
        self.max_hops = max_hops

    async def compute(
        self, client_id: int, order_amount: Decimal
    ) -> list[CommissionLine]:
        """
        Compute commission lines for an order paid by client_id.

        Args:
            client_id: Paying client
            order_amount: Order amount

        Returns:
            0..N commission lines ordered by level
        """
        preview = await self.preview(client_id, order_amount)
        return preview.lines

    async def preview(
        self, client_id: int, order_amount: Decimal
    ) -> CommissionPreview:
        """
        Compute commission lines and keep the rewarded masters' details.

        Args:
            client_id: Paying client
            order_amount: Order amount

        Returns:
            CommissionPreview (empty when the client has no referrer)
        """
        order_amount = to_money(order_amount)
        preview = CommissionPreview()

        client = await self.lookup.get_user(client_id)
        if client is None or client.referrer_id is None:
            logger.debug(
                "No referrer for paying client",
                extra={"client_id": client_id},
            )
            return preview

        preview.direct_referrer_id = client.referrer_id
        below_id = client.id
        current_id: int | None = client.referrer_id
        level = 1
        hops = 0
        visited = {client.id}

        while current_id is not None and level <= self.rate_table.max_level:
            rate = self.rate_table.rate_for(level)
            if rate is None:
                break

            if hops >= self.max_hops:
                logger.warning(
                    "Referral chain hop limit reached",
                    extra={
                        "client_id": client_id,
                        "max_hops": self.max_hops,
                        "level": level,
                    },
                )
                break

            if current_id in visited:
                logger.warning(
                    "Referral cycle detected, stopping traversal",
                    extra={"client_id": client_id, "user_id": current_id},
                )
                break

            visited.add(current_id)
            hops += 1

            ancestor = await self.lookup.get_user(current_id)
            if ancestor is None:
                break

            if ancestor.is_master:
                amount = to_money(order_amount * rate)
                if amount > 0:
                    preview.lines.append(
                        CommissionLine(
                            master_id=ancestor.id,
                            level=level,
                            rate=rate,
                            amount=amount,
                            source_user_id=below_id,
                        )
                    )
                    preview.masters[ancestor.id] = ancestor

            below_id = ancestor.id
            current_id = ancestor.referrer_id
            level += 1

        logger.debug(
            "Commission chain computed",
            extra={
                "client_id": client_id,
                "order_amount": str(order_amount),
                "lines": len(preview.lines),
                "hops": hops,
                "rate_table": self.rate_table.version,
            },
        )
        return preview
