"""
Input validation for salary ledger writes.

The HTTP schemas already reject most bad input; these checks hold for
every caller of the ledger, including scripts and bulk jobs.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from salary_backend.app.core.config import settings
from salary_backend.app.core.exceptions import ValidationError

CENT = Decimal("0.01")


def coerce_amount(value: Any, field: str, maximum: Optional[Decimal] = None) -> Decimal:
    """
    Convert a caller-supplied amount to a non-negative Decimal with at most 2 places.

    Floats go through str() so 0.1 stays 0.1.

    Raises:
        ValidationError: On missing, non-numeric, negative, over-precise or too large values.
    """
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} is required and must be numeric", field=field)

    try:
        amount = Decimal(str(value)) if isinstance(value, float) else Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"{field} must be a valid number", field=field)

    if not amount.is_finite():
        raise ValidationError(f"{field} must be a finite number", field=field)
    if amount < 0:
        raise ValidationError(f"{field} cannot be negative", field=field)
    # Range first: quantize overflows the decimal context on huge inputs
    if maximum is not None and amount > maximum:
        raise ValidationError(f"{field} cannot exceed {maximum:,.2f}", field=field)

    try:
        rounded = amount.quantize(CENT)
    except InvalidOperation:
        raise ValidationError(f"{field} is too large", field=field)
    if amount.as_tuple().exponent < -2 and amount != rounded:
        raise ValidationError(f"{field} may have at most 2 decimal places", field=field)

    return rounded


def validate_local_amount(value: Any) -> Decimal:
    return coerce_amount(value, "local_amount", settings.max_local_amount)


def validate_commission(value: Any) -> Decimal:
    return coerce_amount(value, "commission", settings.max_commission)


def require_text(value: Optional[str], field: str, max_length: int = 255) -> str:
    """Strip a required text field; blank or over-long values are rejected."""
    if value is None or not str(value).strip():
        raise ValidationError(f"{field} is required", field=field)
    text = str(value).strip()
    if len(text) > max_length:
        raise ValidationError(f"{field} may not be longer than {max_length} characters", field=field)
    return text


def normalize_email(email: Optional[str]) -> str:
    """Lower-cased, stripped e-mail; case-insensitive matching relies on this."""
    normalized = require_text(email, "email").lower()
    local, _, domain = normalized.partition("@")
    if not local or not domain or "@" in domain:
        raise ValidationError(f"'{email}' is not a valid email address", field="email")
    return normalized
