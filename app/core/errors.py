"""Error taxonomy shared by the payment functions and the client."""

from collections.abc import Mapping
from typing import Any


class InvoicingError(Exception):
    """Base class for failures scoped to a single invoicing operation."""

    pass


class Unauthorized(InvoicingError):
    """Raised when a credential is missing or does not resolve to a user."""

    pass


class NotFound(InvoicingError):
    """Raised when a referenced invoice does not exist."""

    pass


class InvalidInput(InvoicingError):
    """Raised when request input fails validation."""

    pass


class UpstreamFailure(InvoicingError):
    """Raised when the data store or a hosted function call fails."""

    pass


def error_message(error: Any, fallback: str) -> str:
    """Best user-facing message for an error of unknown shape."""
    if not error:
        return fallback
    if isinstance(error, str):
        return error
    if isinstance(error, Exception):
        return str(error) or fallback
    if isinstance(error, Mapping):
        data = error.get("data")
        nested = data if isinstance(data, Mapping) else {}
        candidate = (
            error.get("message")
            or error.get("error")
            or nested.get("message")
            or nested.get("error")
        )
        if candidate:
            return str(candidate)
    return fallback
