from __future__ import annotations

from decimal import Decimal


def format_money(value: Decimal) -> str:
    """Dollar amount with thousands separators, cents only when present."""
    cents = value.quantize(Decimal("0.01"))
    if cents == cents.to_integral():
        return f"${cents:,.0f}"
    return f"${cents:,.2f}"
