"""Audit trail helpers: building entries and rendering them for people."""

from datetime import UTC, datetime

from app.models.invoice import AuditLogEntry, AuthUser

MANUAL_PAYMENT = "manual_payment"
LINK_COPIED = "link_copied"
PAYMENT_PAGE_OPENED = "payment_page_opened"
PAYMENT_DRAWER_OPENED = "payment_drawer_opened"


def build_entry(
    invoice_id: str,
    action: str,
    user: AuthUser | None = None,
    details: str | None = None,
    field_name: str | None = None,
    old_value: str | None = None,
    new_value: str | None = None,
) -> AuditLogEntry:
    """Create an audit entry stamped with the acting user and current time."""
    return AuditLogEntry(
        invoice_id=invoice_id,
        action=action,
        details=details,
        field_name=field_name,
        old_value=old_value,
        new_value=new_value,
        user_id=user.id if user else None,
        user_name=user.label if user else None,
        user_email=user.email if user else None,
        created_at=datetime.now(UTC),
    )


def _field_change(entry: AuditLogEntry) -> str:
    return f"Updated {entry.field_name}: {entry.old_value} → {entry.new_value}"


def describe_action(entry: AuditLogEntry) -> str:
    """Human-readable line for an audit entry."""
    action = entry.action
    if action in ("created", "invoice_created", "record_created"):
        return "Invoice created"
    if action in ("invoice_updated", "updated"):
        return _field_change(entry) if entry.field_name else "Invoice updated"
    if action == "field_updated":
        return _field_change(entry) if entry.field_name else entry.details or "Field updated"
    if action == "invoice_sent":
        return "Invoice sent to customer"
    if action == "invoice_cancelled":
        return "Invoice cancelled"
    if action == "due_date_changed":
        return f"Due date changed: {entry.old_value} → {entry.new_value}"
    if action == "email_sent":
        return "Email sent to customer"
    if action == MANUAL_PAYMENT:
        return "Manual payment recorded"
    if action == "payment_received":
        return f"Payment received: ${entry.new_value}"
    if action == "status_changed":
        return f"Status changed: {entry.old_value} → {entry.new_value}"
    if action == LINK_COPIED:
        return "Payment link copied"
    if action == "pdf_downloaded":
        return "PDF downloaded"
    return entry.details or action
