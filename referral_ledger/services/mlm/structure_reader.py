"""
Referral structure reader.

Builds the depth-limited referral tree shown on MLM dashboards.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from referral_ledger.config.business_constants import REFERRAL_TREE_DEPTH
from referral_ledger.repositories.referral_repository import ReferralRepository


@dataclass
class ReferralNode:
    """One referred user in the tree, with stats of the edge leading to it."""

    id: int
    email: str
    first_name: str | None
    last_name: str | None
    level: int
    total_earned: Decimal
    orders_count: int
    created_at: datetime | None
    children: list["ReferralNode"] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Serialize node recursively."""
        return {
            "id": self.id,
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "level": self.level,
            "total_earned": str(self.total_earned),
            "orders_count": self.orders_count,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "children": [child.to_dict() for child in self.children],
        }


class StructureReader:
    """Read-only view over the referral graph."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize structure reader."""
        self.session = session
        self.referral_repo = ReferralRepository(session)

    async def build_tree(
        self, user_id: int, max_depth: int = REFERRAL_TREE_DEPTH
    ) -> list[ReferralNode]:
        """
        Build referral tree below a user.

        Edges whose referred user no longer resolves are skipped.

        Args:
            user_id: Root user (not included in the result)
            max_depth: Levels to expand, clamped to 1..REFERRAL_TREE_DEPTH

        Returns:
            Direct referrals with nested children
        """
        max_depth = max(1, min(max_depth, REFERRAL_TREE_DEPTH))
        return await self._build_level(user_id, 1, max_depth, {user_id})

    async def _build_level(
        self,
        user_id: int,
        level: int,
        max_depth: int,
        path: set[int],
    ) -> list[ReferralNode]:
        edges = await self.referral_repo.get_by_referrer(user_id)

        nodes = []
        for edge in edges:
            referred = edge.referred
            if referred is None or referred.id in path:
                continue

            children = []
            if level < max_depth:
                children = await self._build_level(
                    referred.id, level + 1, max_depth, path | {referred.id}
                )

            nodes.append(
                ReferralNode(
                    id=referred.id,
                    email=referred.email,
                    first_name=referred.first_name,
                    last_name=referred.last_name,
                    level=level,
                    total_earned=edge.total_earned,
                    orders_count=edge.orders_count,
                    created_at=edge.created_at,
                    children=children,
                )
            )

        return nodes
