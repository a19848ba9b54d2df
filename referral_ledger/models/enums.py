"""
Enumerations shared by ledger models.
"""

from enum import StrEnum


class UserRole(StrEnum):
    """Marketplace role of a user."""

    CLIENT = "client"
    MASTER = "master"
    ADMIN = "admin"


class BonusType(StrEnum):
    """Kind of monetary event recorded in the bonus journal."""

    REFERRAL = "referral"
    ORDER_COMMISSION = "order_commission"
    LEVEL_BONUS = "level_bonus"
    MONTHLY_BONUS = "monthly_bonus"
    WITHDRAWAL = "withdrawal"


class BonusStatus(StrEnum):
    """Lifecycle status of a journal entry."""

    PENDING = "pending"
    APPROVED = "approved"
    PAID = "paid"
    CANCELLED = "cancelled"
