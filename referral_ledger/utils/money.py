"""
Fixed-point money helpers.

Every amount that enters the ledger passes through to_money().
"""

from decimal import ROUND_HALF_UP, Decimal

from referral_ledger.config.business_constants import MONEY_QUANT


def to_money(value: Decimal | int | str | float | None) -> Decimal:
    """
    Convert a value to a 2-digit fixed-point Decimal.

    Floats are converted through str() so binary artifacts are not carried
    into the ledger.

    Args:
        value: Amount in any numeric form (None is treated as 0)

    Returns:
        Decimal quantized to 0.01 (ROUND_HALF_UP)

    Example:
        >>> to_money("10.005")
        Decimal('10.01')
    """
    if value is None:
        return Decimal("0").quantize(MONEY_QUANT)
    if isinstance(value, float):
        value = str(value)
    return Decimal(value).quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)


def format_money(amount: Decimal, currency: str = "") -> str:
    """
    Format amount with two decimals and optional currency suffix.

    Args:
        amount: Amount
        currency: Currency symbol appended after a space

    Returns:
        Formatted string, e.g. "1000.00 ₽"
    """
    text = f"{to_money(amount):.2f}"
    return f"{text} {currency}" if currency else text
