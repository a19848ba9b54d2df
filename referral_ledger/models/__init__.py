"""
Database models.

Exports all SQLAlchemy models for easy imports.
"""

from referral_ledger.models.base import Base
from referral_ledger.models.bonus import Bonus
from referral_ledger.models.enums import BonusStatus, BonusType, UserRole
from referral_ledger.models.master_profile import MasterProfile
from referral_ledger.models.referral import Referral
from referral_ledger.models.user import User

__all__ = [
    # Base
    "Base",
    # Enums
    "BonusStatus",
    "BonusType",
    "UserRole",
    # Models
    "User",
    "Referral",
    "MasterProfile",
    "Bonus",
]
