"""
Services package.

Business logic of the referral commission ledger.
"""

from referral_ledger.services.mlm_service import MlmService

__all__ = [
    "MlmService",
]
