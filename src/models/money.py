"""
Money helpers.

All monetary values are Decimal. Derived amounts (averages, monthly
equivalents, totals) are quantized to two decimal places with ROUND_HALF_UP.
Amounts are single-currency (KRW).
"""
from decimal import Decimal, ROUND_HALF_UP, ROUND_DOWN
from typing import Any, Iterable, Optional

MONEY_QUANTUM = Decimal("0.01")
CURRENCY_SYMBOL = "₩"


def to_decimal(value: Any) -> Decimal:
    """Convert a number or numeric string to Decimal without float rounding."""
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except Exception as e:
        raise ValueError(f"Invalid amount value: {value}. Could not convert to Decimal.") from e


def quantize_amount(value: Decimal) -> Decimal:
    """Round a monetary value to the configured scale (2 places, half-up)."""
    return value.quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


def divide_amount(value: Decimal, divisor: int) -> Decimal:
    if divisor == 0:
        raise ValueError("Cannot divide by zero")
    return quantize_amount(value / Decimal(divisor))


def sum_amounts(values: Iterable[Optional[Decimal]]) -> Decimal:
    """Sum amounts, ignoring missing values."""
    total = Decimal(0)
    for value in values:
        if value is not None:
            total += value
    return total


def format_amount(amount: Optional[Decimal]) -> Optional[str]:
    """
    Format an amount as whole won with thousands separators, e.g. ``₩10,000``.

    The fractional part is truncated toward zero.
    """
    if amount is None:
        return None
    whole = int(amount.to_integral_value(rounding=ROUND_DOWN))
    if whole < 0:
        return f"-{CURRENCY_SYMBOL}{abs(whole):,}"
    return f"{CURRENCY_SYMBOL}{whole:,}"
