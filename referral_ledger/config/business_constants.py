"""
Business logic constants for the referral ledger.

Central location for business rules shared by repositories and services.
"""

from decimal import Decimal


# All ledger money is fixed-point with two fractional digits
MONEY_QUANT = Decimal("0.01")
ZERO_MONEY = Decimal("0.00")

# Referral tree shown on dashboards (levels below the master)
REFERRAL_TREE_DEPTH = 3

# Number of journal entries shown in summaries
RECENT_BONUSES_LIMIT = 10

# Length of generated referral codes
REFERRAL_CODE_LENGTH = 8

# Currency suffix used in payout messages
CURRENCY_SYMBOL = "₽"
