"""Platform fee calculator.

Pure-function module. The fee is a tiered percentage of the transaction
amount, evaluated top-down against descending thresholds, so a larger
amount never pays a higher percentage.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Union

# (exclusive lower bound, percent), highest threshold first
FEE_TIERS: tuple[tuple[Decimal, int], ...] = (
    (Decimal("100000"), 5),
    (Decimal("50000"), 6),
    (Decimal("10000"), 8),
)
BASE_FEE_PERCENT = 10

_CENT = Decimal("0.01")

Amount = Union[Decimal, int, float, str]


def _to_decimal(amount: Amount) -> Decimal:
    if isinstance(amount, Decimal):
        return amount
    # via str() so 0.1 stays 0.1
    return Decimal(str(amount))


def fee_percent(amount: Amount) -> int:
    """Return the fee percentage (5, 6, 8 or 10) for *amount*."""
    value = _to_decimal(amount)
    for threshold, percent in FEE_TIERS:
        if value > threshold:
            return percent
    return BASE_FEE_PERCENT


def platform_fee(amount: Amount) -> Decimal:
    """Return ``amount * fee_percent(amount) / 100`` rounded half-up to cents."""
    value = _to_decimal(amount)
    fee = value * fee_percent(value) / Decimal(100)
    return fee.quantize(_CENT, rounding=ROUND_HALF_UP)
