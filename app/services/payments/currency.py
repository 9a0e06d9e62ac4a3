from decimal import Decimal, ROUND_HALF_UP
from typing import Union

Number = Union[Decimal, int, float, str]

CURRENCY_SYMBOLS = {
    "INR": "₹",
    "USD": "$",
}


def to_minor_units(amount: Number) -> int:
    """convert a major-unit amount (rupees, dollars) to the provider's minor unit (paise, cents)."""
    value = Decimal(str(amount)) * 100
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_minor_units(minor: int) -> Decimal:
    return (Decimal(int(minor)) / 100).quantize(Decimal("0.01"))


def format_amount(amount: Number, currency: str = "INR") -> str:
    symbol = CURRENCY_SYMBOLS.get(currency.upper(), currency.upper() + " ")
    value = Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return f"{symbol}{value:,.2f}"
