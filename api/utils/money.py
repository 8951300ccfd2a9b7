"""Money helpers for labour and material costs.

Costs are Decimal end to end:
- hourly_cost and material amounts are stored as Numeric(…, 2)
- worked hours are derived from whole seconds as Decimal, never float
- results are rounded half-up to cents only at the edge (API output)
"""

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Optional, Union


CURRENCY_SYMBOL = "$"
CENTS = Decimal("0.01")
SECONDS_PER_HOUR = Decimal(3600)


def ensure_decimal(x) -> Decimal:
    """Strict Decimal conversion without binary float artefacts.

    Raises:
        TypeError: unsupported type
        ValueError: string is not a number
    """
    if isinstance(x, Decimal):
        return x
    if isinstance(x, bool):
        raise TypeError("ensure_decimal: bool is not a number")
    if isinstance(x, (int, str)):
        try:
            return Decimal(str(x))
        except InvalidOperation as e:
            raise ValueError(f"Cannot convert to Decimal: {x!r}") from e
    if isinstance(x, float):
        # float → repr() for determinism
        return Decimal(repr(x))
    raise TypeError(f"ensure_decimal: unsupported type {type(x)}")


def to_money(amount: Union[Decimal, str, int, float, None]) -> Decimal:
    """Round to cents (half-up). None counts as zero."""
    if amount is None:
        return Decimal("0.00")
    return ensure_decimal(amount).quantize(CENTS, rounding=ROUND_HALF_UP)


def hours_from_seconds(seconds: int) -> Decimal:
    return Decimal(seconds) / SECONDS_PER_HOUR


def labour_cost(seconds: int, hourly_cost: Optional[Decimal]) -> Decimal:
    """hours × hourly_cost, unrounded; a missing rate costs nothing."""
    if not hourly_cost:
        return Decimal("0")
    return hours_from_seconds(seconds) * ensure_decimal(hourly_cost)


def fmt_money(amount: Union[Decimal, str, int]) -> str:
    """
    Format monetary amount for display.

    Examples:
        >>> fmt_money(Decimal("1234.5"))
        '$ 1,234.50'
        >>> fmt_money(0)
        '$ 0.00'
    """
    if isinstance(amount, float):
        raise ValueError(
            f"Float not allowed in money operations. Got: {amount}. "
            "Use Decimal or string instead."
        )
    dec_amount = to_money(amount)
    return f"{CURRENCY_SYMBOL} {dec_amount:,.2f}"
