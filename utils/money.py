"""
Display-time money helpers.

The core keeps monetary values as exact Decimals. Rounding to minor units
only happens here, when a value leaves the core for humans.
"""

from decimal import Decimal, ROUND_HALF_UP

_CENT = Decimal("0.01")

# ISO 4217 codes mapped to display symbols. Unknown codes render as the code.
_SYMBOLS = {
    "USD": "$",
    "ZAR": "R",
    "EUR": "€",
    "GBP": "£",
}


def round_money(amount: Decimal) -> Decimal:
    """Round to two decimal places, half away from zero."""
    return Decimal(amount).quantize(_CENT, rounding=ROUND_HALF_UP)


def format_currency(amount: Decimal, currency: str = "ZAR") -> str:
    """
    Format an amount for display, e.g. R1,234.50 or -$15.00.

    Negative totals (discount larger than subtotal) keep their sign.
    """
    rounded = round_money(amount)
    symbol = _SYMBOLS.get(currency.upper(), f"{currency.upper()} ")
    sign = "-" if rounded < 0 else ""
    return f"{sign}{symbol}{abs(rounded):,.2f}"
