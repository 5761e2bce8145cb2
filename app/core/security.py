"""Credential parsing and payment-link token fingerprinting."""

import json
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from typing import Any

from cryptography.hazmat.primitives import hashes

from app.core.errors import Unauthorized

_HASH_ALGORITHMS = {
    "SHA256": hashes.SHA256,
    "SHA384": hashes.SHA384,
    "SHA512": hashes.SHA512,
}


def extract_bearer_token(authorization: str | None) -> str:
    """Return the credential carried by an Authorization header."""
    if not authorization:
        raise Unauthorized("Missing authorization header")
    token = authorization.strip()
    scheme, _, credential = token.partition(" ")
    if scheme.lower() == "bearer":
        token = credential.strip()
    if not token:
        raise Unauthorized("Unauthorized")
    return token


def compute_hash(data: bytes, algorithm: str = "SHA256") -> bytes:
    """Compute hash of data using specified algorithm."""
    if algorithm not in _HASH_ALGORITHMS:
        raise ValueError(f"Unsupported hash algorithm: {algorithm}")

    digest = hashes.Hash(_HASH_ALGORITHMS[algorithm]())
    digest.update(data)
    return digest.finalize()


def _json_number(value: Decimal | float | int | None) -> float | int | None:
    """Render amounts the way a JSON number literal would: 100, not 100.0."""
    if value is None:
        return None
    as_decimal = Decimal(str(value))
    if as_decimal == as_decimal.to_integral_value():
        return int(as_decimal)
    return float(as_decimal)


def build_token_payload(
    invoice_id: str,
    customer_id: str | None,
    amount: Decimal | float | int | None,
    issued_at: datetime,
    ttl: timedelta,
) -> dict[str, Any]:
    """Build the payload a payment token is derived from.

    Key order is part of the token: the fingerprint is taken over the
    serialized payload, so ``invoiceId, customerId, amount, exp`` must stay
    in this order.
    """
    return {
        "invoiceId": invoice_id,
        "customerId": customer_id,
        "amount": _json_number(amount),
        "exp": int(issued_at.timestamp()) + int(ttl.total_seconds()),
    }


def serialize_payload(payload: dict[str, Any]) -> bytes:
    """Compact, whitespace-free JSON encoding of a token payload."""
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def fingerprint_payload(payload: dict[str, Any], algorithm: str = "SHA256") -> str:
    """Lowercase hex digest of the serialized payload."""
    return compute_hash(serialize_payload(payload), algorithm).hex()


def payload_expiry(payload: dict[str, Any]) -> datetime:
    return datetime.fromtimestamp(payload["exp"], tz=UTC)


def format_expiry(moment: datetime) -> str:
    """ISO-8601 UTC timestamp with millisecond precision, e.g. 2024-01-15T10:00:00.000Z."""
    moment = moment.astimezone(UTC)
    return moment.strftime("%Y-%m-%dT%H:%M:%S") + f".{moment.microsecond // 1000:03d}Z"
