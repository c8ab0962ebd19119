# storefront/core/currency.py
"""Display currencies. Prices are stored in USD and converted for display."""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal


@dataclass(frozen=True)
class Currency:
    code: str
    name: str
    symbol: str
    rate: Decimal  # units per 1 USD


CURRENCIES: dict[str, Currency] = {
    c.code: c
    for c in (
        Currency("USD", "US Dollar", "$", Decimal("1")),
        Currency("EUR", "Euro", "€", Decimal("0.92")),
        Currency("GBP", "British Pound", "£", Decimal("0.79")),
        Currency("JPY", "Japanese Yen", "¥", Decimal("150.27")),
        Currency("PHP", "Philippine Peso", "₱", Decimal("56.94")),
        Currency("AUD", "Australian Dollar", "A$", Decimal("1.53")),
        Currency("CAD", "Canadian Dollar", "C$", Decimal("1.38")),
        Currency("SGD", "Singapore Dollar", "S$", Decimal("1.34")),
        Currency("CNY", "Chinese Yuan", "¥", Decimal("7.24")),
        Currency("INR", "Indian Rupee", "₹", Decimal("83.23")),
    )
}

# Shown without decimals
WHOLE_UNIT_CURRENCIES = frozenset({"JPY", "PHP", "INR"})

CENTS = Decimal("0.01")


def get_currency(code: str) -> Currency:
    """Look up a currency by code, falling back to USD for unknown codes."""
    return CURRENCIES.get(code.upper(), CURRENCIES["USD"])


def from_usd(amount: Decimal, currency: Currency) -> Decimal:
    return amount * currency.rate


def to_usd(amount: Decimal, currency: Currency) -> Decimal:
    return amount / currency.rate


def format_amount(amount: Decimal, currency: Currency) -> str:
    """
    Format a USD amount in the given display currency.

    >>> format_amount(Decimal("999.99"), get_currency("USD"))
    '$999.99'
    >>> format_amount(Decimal("10"), get_currency("JPY"))
    '¥1,503'
    """
    converted = from_usd(amount, currency)
    if currency.code in WHOLE_UNIT_CURRENCIES:
        whole = converted.quantize(Decimal("1"), rounding=ROUND_HALF_UP)
        return f"{currency.symbol}{whole:,}"
    return f"{currency.symbol}{converted.quantize(CENTS, rounding=ROUND_HALF_UP):,.2f}"
