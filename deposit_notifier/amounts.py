"""Currency helpers: decimal coercion and the derived cash amount."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

_CENTS = Decimal("0.01")


def to_decimal(raw: Any) -> Decimal:
    """Coerce an upstream numeric value (int/float/str/Decimal) to ``Decimal``.

    Floats go through ``str()`` so ``12000.555`` stays ``12000.555`` rather
    than its binary expansion.
    """

    if isinstance(raw, Decimal):
        return raw
    if raw is None or isinstance(raw, bool):
        raise ValueError(f"not a currency amount: {raw!r}")
    try:
        return Decimal(str(raw).strip())
    except InvalidOperation as e:
        raise ValueError(f"not a currency amount: {raw!r}") from e


def round_half_up(value: Decimal) -> Decimal:
    return value.quantize(_CENTS, rounding=ROUND_HALF_UP)


def derive_cash_amount(balance: Any, credit_facility: Any) -> Decimal:
    """Return ``balance - credit_facility`` rounded half-up to 2 decimals.

    A missing balance (``None``) is a precondition failure and raises
    ``ValueError``.
    """

    if balance is None:
        raise ValueError("available balance is missing; cannot derive cash amount")
    return round_half_up(to_decimal(balance) - to_decimal(credit_facility))


def format_rand(value: Decimal) -> str:
    """Render an amount the way notifications show it (``R1234.50``)."""

    return f"R{round_half_up(value):.2f}"


__all__ = ["derive_cash_amount", "format_rand", "round_half_up", "to_decimal"]
