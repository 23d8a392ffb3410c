"""Minor-unit money helpers."""
from decimal import Decimal, DecimalException
from typing import Union

from wallet.core.errors import InvalidAmountError

MINOR_UNITS = 100

# Balances are stored as Mongo int64
MAX_AMOUNT_CENTS = 2 ** 63 - 1
MAX_AMOUNT_DIGITS = 17

CURRENCY_SYMBOLS = {
    "PHP": "₱",
    "USD": "$",
    "EUR": "€",
}


def to_minor_units(amount: Union[Decimal, int, str]) -> int:
    """
    Convert a major-unit amount ("250.00") to integer minor units (25000).

    Raises InvalidAmountError for non-numeric values, more than two
    decimal places, or a magnitude beyond MAX_AMOUNT_CENTS. Sign is
    preserved; positivity is the engine's check.
    """
    try:
        value = Decimal(str(amount))
    except (DecimalException, ValueError):
        raise InvalidAmountError(f"Invalid amount: {amount}")

    if not value.is_finite():
        raise InvalidAmountError(f"Invalid amount: {amount}")

    # Reject huge exponents before doing any arithmetic on them
    if value and value.adjusted() > MAX_AMOUNT_DIGITS:
        raise InvalidAmountError("Amount is too large")

    try:
        cents = value * MINOR_UNITS
        if cents != cents.to_integral_value():
            raise InvalidAmountError("Amount cannot have more than two decimal places")
    except DecimalException:
        raise InvalidAmountError(f"Invalid amount: {amount}")

    if abs(cents) > MAX_AMOUNT_CENTS:
        raise InvalidAmountError("Amount is too large")
    return int(cents)


def from_minor_units(cents: int) -> Decimal:
    return (Decimal(cents) / MINOR_UNITS).quantize(Decimal("0.01"))


def format_amount(cents: int, currency: str) -> str:
    """Format minor units for user-facing messages, e.g. ₱1,000.00."""
    value = from_minor_units(cents)
    symbol = CURRENCY_SYMBOLS.get(currency.upper())
    if symbol:
        return f"{symbol}{value:,.2f}"
    return f"{value:,.2f} {currency.upper()}"
