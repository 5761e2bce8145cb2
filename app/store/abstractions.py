"""Abstract interfaces for the hosted store and auth provider.

Rows cross these interfaces in the store's own shape (snake_case dicts);
``app.store.mapping`` turns them into entities.
"""

from abc import ABC, abstractmethod
from typing import Any

from app.models.invoice import AuthUser

Row = dict[str, Any]


class IInvoiceStore(ABC):
    """Read/write access to invoice, payment and audit log records."""

    @abstractmethod
    async def get_invoice(self, invoice_id: str) -> Row | None:
        """Return the invoice row, or None when it does not exist."""
        pass

    @abstractmethod
    async def update_invoice(self, invoice_id: str, fields: Row) -> Row:
        """Apply ``fields`` to one invoice row and return the updated row."""
        pass

    @abstractmethod
    async def list_payments(self, invoice_id: str) -> list[Row]:
        """Payment rows for an invoice, newest payment date first."""
        pass

    @abstractmethod
    async def insert_payment(self, row: Row) -> Row:
        pass

    @abstractmethod
    async def list_audit_logs(self, invoice_id: str) -> list[Row]:
        """Audit rows for an invoice, newest first."""
        pass

    @abstractmethod
    async def insert_audit_log(self, row: Row) -> Row:
        pass


class IAuthProvider(ABC):
    """Resolves bearer credentials issued by the hosted auth provider."""

    @abstractmethod
    async def get_user(self, access_token: str) -> AuthUser | None:
        """Return the user for ``access_token``, or None if it is not valid."""
        pass
