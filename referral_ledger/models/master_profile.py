"""
MasterProfile model.

The ledger record of a user acting as a master: running balances of the
referral program plus profile fields that do not take part in the money
invariant.
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from referral_ledger.models.base import Base
from referral_ledger.models.types import MoneyType, RatingType

if TYPE_CHECKING:
    from referral_ledger.models.user import User


class MasterProfile(Base):
    """
    MasterProfile entity.

    Balance semantics:
    - total_commissions: lifetime accrued commissions regardless of status
      (bumped once, when the commission is created)
    - total_earnings: lifetime amount realized as paid (bumped once, when a
      commission is approved)
    - available_balance: total_commissions - withdrawn_amount
    - withdrawn_amount: lifetime payouts

    Attributes:
        id: Primary key
        user_id: Owner user (unique)
        specialization: Repair specialization
        experience: Years of experience
        bio: Free-form description
        rating: Average review rating
        reviews_count: Number of reviews
        referrals_count: Number of direct referrals
        total_earnings: Lifetime paid commissions
        total_commissions: Lifetime accrued commissions
        available_balance: Balance available for payout
        withdrawn_amount: Lifetime payouts
        created_at: Creation timestamp
        updated_at: Last update timestamp
    """

    __tablename__ = "master_profiles"
    __table_args__ = (
        CheckConstraint(
            "available_balance >= 0",
            name="check_master_available_balance_non_negative",
        ),
        CheckConstraint(
            "total_commissions >= 0",
            name="check_master_total_commissions_non_negative",
        ),
        CheckConstraint(
            "total_earnings >= 0",
            name="check_master_total_earnings_non_negative",
        ),
        CheckConstraint(
            "withdrawn_amount >= 0",
            name="check_master_withdrawn_amount_non_negative",
        ),
    )

    # Primary key
    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )

    # Owner
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )

    # Profile (not part of the ledger)
    specialization: Mapped[str | None] = mapped_column(
        String(255), nullable=True
    )
    experience: Mapped[int | None] = mapped_column(Integer, nullable=True)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    rating: Mapped[Decimal] = mapped_column(
        RatingType, nullable=False, default=Decimal("0")
    )
    reviews_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )

    # MLM statistics
    referrals_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    total_earnings: Mapped[Decimal] = mapped_column(
        MoneyType, nullable=False, default=Decimal("0")
    )
    total_commissions: Mapped[Decimal] = mapped_column(
        MoneyType, nullable=False, default=Decimal("0")
    )
    available_balance: Mapped[Decimal] = mapped_column(
        MoneyType, nullable=False, default=Decimal("0")
    )
    withdrawn_amount: Mapped[Decimal] = mapped_column(
        MoneyType, nullable=False, default=Decimal("0")
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
    user: Mapped["User"] = relationship(
        "User",
        back_populates="master_profile",
    )

    @property
    def is_balanced(self) -> bool:
        """Check available == accrued - withdrawn."""
        return (
            self.available_balance
            == self.total_commissions - self.withdrawn_amount
        )

    def to_dict(self) -> dict:
        """Serialize ledger fields for summaries."""
        return {
            "user_id": self.user_id,
            "specialization": self.specialization,
            "rating": str(self.rating),
            "referrals_count": self.referrals_count,
            "total_earnings": str(self.total_earnings),
            "total_commissions": str(self.total_commissions),
            "available_balance": str(self.available_balance),
            "withdrawn_amount": str(self.withdrawn_amount),
        }

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<MasterProfile(user_id={self.user_id}, "
            f"available={self.available_balance}, "
            f"withdrawn={self.withdrawn_amount})>"
        )
