"""
Currency Converter.

Maps a local-currency amount to the reference currency (EUR) using a
static rate table. Pure functions, no I/O.

Unknown but well-formed currency codes fall back to a rate of 1.00, i.e.
the amount is treated as already being in euros. This is a lenient default,
not a correct conversion; every fallback is logged so it can be spotted.
"""

import logging
import re
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List

from salary_backend.app.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

REFERENCE_CURRENCY = "EUR"

CENT = Decimal("0.01")

# Units of EUR per one unit of the local currency.
EXCHANGE_RATES: Dict[str, Decimal] = {
    "USD": Decimal("0.85"),
    "GBP": Decimal("1.15"),
    "EUR": Decimal("1.00"),
    "CAD": Decimal("0.65"),
    "AUD": Decimal("0.60"),
    "JPY": Decimal("0.0065"),
    "CHF": Decimal("0.95"),
    "SEK": Decimal("0.085"),
    "NOK": Decimal("0.082"),
    "DKK": Decimal("0.134"),
}

FALLBACK_RATE = Decimal("1.00")

_CODE_PATTERN = re.compile(r"^[A-Z]{3}$")


def round_money(value: Decimal) -> Decimal:
    """Round half-up to two decimal places."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def normalize_currency_code(code: str) -> str:
    """
    Strip and upper-case a currency code.

    Raises:
        ValidationError: If the code is not three letters.
    """
    if not isinstance(code, str):
        raise ValidationError("Currency code must be a string", field="currency_code")

    normalized = code.strip().upper()
    if not _CODE_PATTERN.match(normalized):
        raise ValidationError(
            f"Currency code '{code}' must be exactly 3 letters",
            field="currency_code"
        )
    return normalized


def is_supported(code: str) -> bool:
    return code.strip().upper() in EXCHANGE_RATES


def supported_currencies() -> List[str]:
    return sorted(EXCHANGE_RATES)


def rate_for(code: str) -> Decimal:
    """Rate to the reference currency, FALLBACK_RATE for unknown codes."""
    normalized = normalize_currency_code(code)
    rate = EXCHANGE_RATES.get(normalized)
    if rate is None:
        logger.warning(
            "No exchange rate for %s, treating amount as %s",
            normalized,
            REFERENCE_CURRENCY,
        )
        return FALLBACK_RATE
    return rate


def to_reference(amount: Decimal, currency_code: str) -> Decimal:
    """
    Convert a local amount to the reference currency.

    Args:
        amount: Amount in the local currency
        currency_code: ISO-like 3-letter code

    Returns:
        Reference-currency amount rounded half-up to 2 decimal places
    """
    return round_money(Decimal(amount) * rate_for(currency_code))


def displayed_total(reference_amount: Decimal, commission: Decimal) -> Decimal:
    """Headline figure shown to admins: reference amount plus commission."""
    return round_money(Decimal(reference_amount) + Decimal(commission))
