"""
User model.

Represents a marketplace account (client, master or admin).
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from referral_ledger.models.base import Base
from referral_ledger.models.enums import UserRole

if TYPE_CHECKING:
    from referral_ledger.models.master_profile import MasterProfile


class User(Base):
    """User model - marketplace accounts and their direct referrer."""

    __tablename__ = "users"

    # Primary key
    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )

    # Contact data
    email: Mapped[str] = mapped_column(
        String(255), unique=True, index=True, nullable=False
    )
    first_name: Mapped[str | None] = mapped_column(
        String(100), nullable=True
    )
    last_name: Mapped[str | None] = mapped_column(
        String(100), nullable=True
    )

    # Marketplace role (client / master / admin)
    role: Mapped[str] = mapped_column(
        String(20), default=UserRole.CLIENT.value, nullable=False, index=True
    )

    # Referral
    referral_code: Mapped[str | None] = mapped_column(
        String(20), nullable=True, unique=True, index=True
    )
    referrer_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
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
    referrer: Mapped[Optional["User"]] = relationship(
        "User",
        remote_side=[id],
        foreign_keys=[referrer_id],
    )
    master_profile: Mapped[Optional["MasterProfile"]] = relationship(
        "MasterProfile",
        back_populates="user",
        uselist=False,
    )

    @property
    def is_master(self) -> bool:
        """Check if user can receive commissions."""
        return self.role == UserRole.MASTER

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<User(id={self.id}, email={self.email!r}, role={self.role}, "
            f"referrer_id={self.referrer_id})>"
        )
