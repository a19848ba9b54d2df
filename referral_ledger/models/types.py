"""
Standard type definitions for database models.

Provides consistent types for monetary and rate fields across all models.
"""

from sqlalchemy import DECIMAL

# Standard money type for amounts and balances
# Precision: 12 digits total, 2 after decimal point
# Range: up to 9,999,999,999.99
MoneyType = DECIMAL(12, 2)

# Commission rate as a fraction of the order amount
# Precision: 5 digits total, 4 after decimal point
# Range: 0.0000 to 9.9999 (valid rates are 0 < rate <= 1)
RateType = DECIMAL(5, 4)

# Master rating (0.00 - 5.00)
RatingType = DECIMAL(3, 2)
