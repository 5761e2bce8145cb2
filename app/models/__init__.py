"""Invoice data models."""

from app.models.invoice import (
    AuditLogEntry,
    AuthSession,
    AuthUser,
    Invoice,
    InvoiceStatus,
    LineItem,
    PartialPaymentPolicy,
    Payment,
    PaymentLinkToken,
    TaxType,
)

__all__ = [
    "Invoice",
    "InvoiceStatus",
    "LineItem",
    "TaxType",
    "PartialPaymentPolicy",
    "Payment",
    "AuditLogEntry",
    "PaymentLinkToken",
    "AuthUser",
    "AuthSession",
]
