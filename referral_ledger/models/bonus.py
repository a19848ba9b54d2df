"""
Bonus model.

One entry of the bonus journal: a commission, a withdrawal or another
monetary event with its status lifecycle.
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from referral_ledger.models.base import Base
from referral_ledger.models.enums import BonusStatus
from referral_ledger.models.types import MoneyType, RateType

if TYPE_CHECKING:
    from referral_ledger.models.referral import Referral
    from referral_ledger.models.user import User


class Bonus(Base):
    """
    Bonus entity.

    Append-only in spirit: rows change only through a status transition.
    Order commissions are unique per (order_id, user_id, level) so a
    payment confirmation delivered twice cannot credit twice.

    Attributes:
        id: Primary key
        user_id: Beneficiary
        type: BonusType value
        status: BonusStatus value
        amount: Positive amount
        description: Human readable description
        order_id: External order reference (order commissions)
        referral_id: Referral edge reference (referral bonuses)
        level: Chain level 1-3 (order commissions)
        commission_rate: Applied rate (order commissions)
        created_at: Creation timestamp
        updated_at: Last status transition
    """

    __tablename__ = "bonuses"
    __table_args__ = (
        UniqueConstraint(
            "order_id", "user_id", "level", name="uq_bonuses_order_user_level"
        ),
        CheckConstraint("amount > 0", name="check_bonus_amount_positive"),
        Index("idx_bonuses_user_status", "user_id", "status"),
        Index("idx_bonuses_user_created", "user_id", "created_at"),
    )

    # Primary key
    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )

    # Beneficiary
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    type: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=BonusStatus.PENDING.value,
        index=True,
    )
    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Links
    order_id: Mapped[str | None] = mapped_column(
        String(64), nullable=True, index=True
    )
    referral_id: Mapped[int | None] = mapped_column(
        ForeignKey("referrals.id", ondelete="SET NULL"),
        nullable=True,
    )

    # Commission details
    level: Mapped[int | None] = mapped_column(Integer, nullable=True)
    commission_rate: Mapped[Decimal | None] = mapped_column(
        RateType, nullable=True
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
    user: Mapped["User"] = relationship("User")
    referral: Mapped["Referral | None"] = relationship("Referral")

    def to_dict(self) -> dict:
        """Serialize for summaries and events."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "type": self.type,
            "status": self.status,
            "amount": str(self.amount),
            "description": self.description,
            "order_id": self.order_id,
            "level": self.level,
            "commission_rate": (
                str(self.commission_rate)
                if self.commission_rate is not None
                else None
            ),
            "created_at": (
                self.created_at.isoformat() if self.created_at else None
            ),
        }

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Bonus(id={self.id}, user_id={self.user_id}, type={self.type}, "
            f"status={self.status}, amount={self.amount})>"
        )
