"""Validation utilities for invoice and payment input."""

import re
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from app.core.errors import InvalidInput


def validate_email(email: str) -> bool:
    """Validate email address format."""
    if not email or not isinstance(email, str):
        return False

    pattern = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"
    return bool(re.match(pattern, email))


def validate_invoice_id(invoice_id: Any) -> str:
    """Return a stripped invoice id or raise InvalidInput."""
    if invoice_id is None or not str(invoice_id).strip():
        raise InvalidInput("invoiceId is required")
    return str(invoice_id).strip()


def parse_amount(value: Any) -> Optional[Decimal]:
    """Parse a user-entered amount; None when it is not a finite number."""
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite():
        return None
    return amount


def validate_payment_amount(value: Any) -> Decimal:
    """Validate a payment amount is a finite positive number."""
    amount = parse_amount(value)
    if amount is None or amount <= 0:
        raise InvalidInput("Enter a valid payment amount")
    return amount


def parse_cc_list(raw: str | None) -> list[str]:
    """Split a comma-separated cc field, dropping blanks."""
    if not raw:
        return []
    addresses = [part.strip() for part in raw.split(",")]
    addresses = [address for address in addresses if address]
    for address in addresses:
        if not validate_email(address):
            raise InvalidInput(f"Invalid cc address: {address}")
    return addresses


def sanitize_string(value: Any, max_length: Optional[int] = None) -> Optional[str]:
    """Return None for blank input, otherwise the stripped (and truncated) string."""
    if value is None:
        return None
    sanitized = str(value).strip()
    if max_length:
        sanitized = sanitized[:max_length]
    return sanitized or None
