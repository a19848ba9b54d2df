"""
Referral model.

Represents a direct referral edge: the referrer introduced the referred user.
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from referral_ledger.models.base import Base
from referral_ledger.models.types import MoneyType

if TYPE_CHECKING:
    from referral_ledger.models.user import User


class Referral(Base):
    """
    Referral entity.

    One row per (referrer, referred) pair. Carries cumulative stats of the
    commissions the referrer earned through this edge.

    Attributes:
        id: Primary key
        referrer_id: User who invited
        referred_id: User who was invited
        total_earned: Commissions credited to the referrer via this edge
        orders_count: Number of commissioned orders that passed this edge
        is_active: Whether the relationship is active
        created_at: Edge creation timestamp
        updated_at: Last stats update
    """

    __tablename__ = "referrals"
    __table_args__ = (
        UniqueConstraint(
            "referrer_id", "referred_id", name="uq_referrals_referrer_referred"
        ),
        CheckConstraint(
            "referrer_id <> referred_id", name="check_referral_not_self"
        ),
        CheckConstraint(
            "total_earned >= 0", name="check_referral_total_earned_non_negative"
        ),
    )

    # Primary key
    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )

    # Referrer (who invited)
    referrer_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Referred (who was invited)
    referred_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Cumulative stats
    total_earned: Mapped[Decimal] = mapped_column(
        MoneyType, nullable=False, default=Decimal("0")
    )
    orders_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    # Relationships
    referrer: Mapped["User"] = relationship(
        "User",
        foreign_keys=[referrer_id],
    )
    referred: Mapped["User"] = relationship(
        "User",
        foreign_keys=[referred_id],
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Referral(id={self.id}, referrer_id={self.referrer_id}, "
            f"referred_id={self.referred_id}, orders={self.orders_count})>"
        )
