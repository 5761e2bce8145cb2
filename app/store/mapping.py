"""Typed adapter between store rows and domain entities.

This is the only place that knows the store's column names.
"""

import json
from typing import Any

from pydantic import ValidationError

from app.core.errors import UpstreamFailure
from app.models.invoice import (
    AuditLogEntry,
    Invoice,
    LineItem,
    PartialPaymentPolicy,
    Payment,
)
from app.store.abstractions import Row
from app.utils.logger import get_logger

log = get_logger("mapping")

_LINE_ITEM_FIELDS = {
    "description": "description",
    "quantity": "quantity",
    "rate": "rate",
    "unit_price": "rate",
    "taxRate": "tax_rate",
    "tax_rate": "tax_rate",
    "taxType": "tax_type",
    "tax_type": "tax_type",
}


def _line_items(raw: Any) -> list[LineItem]:
    """Items are stored either as a JSON string or as a JSON array."""
    if raw is None or raw == "":
        return []
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError:
            log.warning("Ignoring unparseable invoice items")
            return []
    if not isinstance(raw, list):
        return []

    items = []
    for entry in raw:
        if not isinstance(entry, dict):
            continue
        fields = {
            target: entry[source]
            for source, target in _LINE_ITEM_FIELDS.items()
            if entry.get(source) is not None
        }
        items.append(LineItem.model_validate(fields))
    return items


def _flag(value: Any) -> bool:
    """Boolean columns may come back as the strings "true"/"false"."""
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return bool(value)


def invoice_from_row(row: Row) -> Invoice:
    amount = row.get("total_amount")
    if amount is None:
        amount = row.get("amount")
    try:
        return Invoice(
            id=str(row["id"]),
            invoice_number=row.get("invoice_number") or "",
            customer_id=row.get("customer_id"),
            customer_name=row.get("customer_name"),
            amount=amount if amount is not None else 0,
            paid_amount=row.get("paid_amount") or 0,
            status=(row.get("status") or "draft").lower(),
            issue_date=row.get("issue_date") or row.get("invoice_date"),
            due_date=row.get("due_date"),
            created_at=row.get("created_at"),
            items=_line_items(row.get("items")),
            notes=row.get("notes"),
            partial_payment=PartialPaymentPolicy(
                allowed=_flag(row.get("allow_partial")),
                minimum_amount=row.get("minimum_amount"),
            ),
            payment_plan=row.get("payment_plan"),
        )
    except (KeyError, ValidationError) as exc:
        raise UpstreamFailure(f"Malformed invoice record: {exc}") from exc


def invoice_update_row(invoice: Invoice) -> Row:
    """Columns written back after a settlement."""
    return {
        "paid_amount": float(invoice.paid_amount),
        "status": invoice.status.value,
    }


def payment_from_row(row: Row) -> Payment:
    try:
        return Payment(
            id=str(row["id"]) if row.get("id") is not None else None,
            invoice_id=str(row["invoice_id"]),
            customer_id=row.get("customer_id"),
            amount=row["amount"],
            method=row.get("payment_method") or "card",
            payment_date=row.get("payment_date"),
            status=row.get("status") or "completed",
            reference_number=row.get("reference_number"),
            transaction_id=row.get("authorize_net_transaction_id"),
        )
    except (KeyError, ValidationError) as exc:
        raise UpstreamFailure(f"Malformed payment record: {exc}") from exc


def payment_to_row(payment: Payment) -> Row:
    row: Row = {
        "invoice_id": payment.invoice_id,
        "customer_id": payment.customer_id,
        "amount": float(payment.amount),
        "payment_method": payment.method,
        "payment_date": payment.payment_date.isoformat() if payment.payment_date else None,
        "status": payment.status,
        "reference_number": payment.reference_number,
    }
    if payment.transaction_id:
        row["authorize_net_transaction_id"] = payment.transaction_id
    return row


def audit_entry_from_row(row: Row) -> AuditLogEntry:
    try:
        return AuditLogEntry(
            id=str(row["id"]) if row.get("id") is not None else None,
            invoice_id=str(row["invoice_id"]),
            action=row.get("action") or "unknown",
            field_name=row.get("field_name"),
            old_value=row.get("old_value"),
            new_value=row.get("new_value"),
            details=row.get("details"),
            user_id=row.get("user_id"),
            user_name=row.get("user_name"),
            user_email=row.get("user_email"),
            created_at=row["created_at"],
        )
    except (KeyError, ValidationError) as exc:
        raise UpstreamFailure(f"Malformed audit log record: {exc}") from exc


def audit_entry_to_row(entry: AuditLogEntry) -> Row:
    return {
        "invoice_id": entry.invoice_id,
        "user_id": entry.user_id,
        "action": entry.action,
        "field_name": entry.field_name,
        "old_value": entry.old_value,
        "new_value": entry.new_value,
        "details": entry.details,
        "user_name": entry.user_name,
        "user_email": entry.user_email,
        "created_at": entry.created_at.isoformat(),
    }
