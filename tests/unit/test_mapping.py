"""Unit tests for the store row adapter."""

from datetime import UTC, datetime
from decimal import Decimal

import pytest

from app.core.errors import UpstreamFailure
from app.models.invoice import InvoiceStatus, Payment, TaxType
from app.store.mapping import (
    audit_entry_from_row,
    audit_entry_to_row,
    invoice_from_row,
    invoice_update_row,
    payment_from_row,
    payment_to_row,
)
from app.utils.audit import build_entry


class TestInvoiceFromRow:
    """Test cases for invoice row mapping."""

    def test_maps_snake_case_columns(self, invoice_row):
        invoice = invoice_from_row(invoice_row)

        assert invoice.id == "inv-1"
        assert invoice.invoice_number == "INV-001"
        assert invoice.customer_id == "cust-1"
        assert invoice.amount == Decimal("100")
        assert invoice.paid_amount == 0
        assert invoice.status is InvoiceStatus.SENT
        assert invoice.partial_payment.allowed is True
        assert invoice.partial_payment.minimum_amount == Decimal("20")

    def test_items_from_json_string(self, invoice_row):
        invoice = invoice_from_row(invoice_row)

        assert len(invoice.items) == 1
        assert invoice.items[0].description == "Consulting"
        assert invoice.items[0].amount == Decimal("100")

    def test_items_from_list_with_camel_case_tax(self, invoice_row):
        invoice_row["items"] = [
            {"description": "Mowing", "quantity": 2, "rate": 50, "taxRate": 10, "taxType": "percentage"}
        ]

        item = invoice_from_row(invoice_row).items[0]

        assert item.tax_type is TaxType.PERCENTAGE
        assert item.amount == Decimal("110")

    def test_unparseable_items_are_dropped(self, invoice_row):
        invoice_row["items"] = "{not json"
        assert invoice_from_row(invoice_row).items == []

    def test_total_amount_fallback_and_missing_paid(self):
        invoice = invoice_from_row({"id": 7, "total_amount": 250.5, "status": "DRAFT"})

        assert invoice.id == "7"
        assert invoice.amount == Decimal("250.5")
        assert invoice.paid_amount == 0
        assert invoice.status is InvoiceStatus.DRAFT

    def test_total_amount_wins_over_amount(self, invoice_row):
        invoice_row["total_amount"] = 110
        assert invoice_from_row(invoice_row).amount == Decimal("110")

    @pytest.mark.parametrize(
        "stored, expected", [("false", False), ("true", True), ("TRUE", True), (False, False), (None, False)]
    )
    def test_allow_partial_flag(self, invoice_row, stored, expected):
        invoice_row["allow_partial"] = stored
        assert invoice_from_row(invoice_row).partial_payment.allowed is expected

    def test_invariant_violation_is_upstream_failure(self, invoice_row):
        invoice_row["paid_amount"] = 150
        with pytest.raises(UpstreamFailure, match="Malformed invoice record"):
            invoice_from_row(invoice_row)

    def test_update_row(self, invoice_row):
        settled = invoice_from_row(invoice_row).settle(Decimal("40"))
        assert invoice_update_row(settled) == {"paid_amount": 40.0, "status": "partial"}


def test_payment_row_mapping():
    payment = payment_from_row(
        {
            "id": "pay-1",
            "invoice_id": "inv-1",
            "amount": 40,
            "payment_method": "check",
            "payment_date": "2024-01-15T00:00:00+00:00",
            "status": "completed",
            "reference_number": "CHK-1001",
            "authorize_net_transaction_id": "txn-9",
        }
    )

    assert payment.method == "check"
    assert payment.transaction_id == "txn-9"
    assert payment.payment_date == datetime(2024, 1, 15, tzinfo=UTC)


def test_payment_to_row_uses_store_columns():
    row = payment_to_row(
        Payment(invoice_id="inv-1", amount=Decimal("40"), method="cash", reference_number="R-1")
    )

    assert row["payment_method"] == "cash"
    assert row["amount"] == 40.0
    assert "authorize_net_transaction_id" not in row


def test_audit_row_mapping(owner):
    row = audit_entry_to_row(build_entry("inv-1", "manual_payment", user=owner, details="Paid by check"))
    entry = audit_entry_from_row({**row, "id": "log-1"})

    assert row["user_email"] == "owner@example.com"
    assert entry.action == "manual_payment"
    assert entry.details == "Paid by check"
    assert entry.id == "log-1"


def test_refund_payment_row_is_upstream_failure():
    with pytest.raises(UpstreamFailure, match="Malformed payment record"):
        payment_from_row({"id": "pay-9", "invoice_id": "inv-1", "amount": -10})


def test_audit_row_without_timestamp_is_upstream_failure():
    with pytest.raises(UpstreamFailure, match="Malformed audit log record"):
        audit_entry_from_row({"id": "log-9", "invoice_id": "inv-1", "action": "invoice_sent"})
