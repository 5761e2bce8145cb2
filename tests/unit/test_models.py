"""Unit tests for invoice models and audit rendering."""

from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest
from pydantic import ValidationError

from app.core.errors import InvalidInput
from app.models.invoice import (
    AuditLogEntry,
    Invoice,
    InvoiceStatus,
    LineItem,
    Payment,
    PaymentLinkToken,
    TaxType,
)
from app.utils.audit import build_entry, describe_action


def _invoice(**overrides) -> Invoice:
    fields = {"id": "inv-1", "amount": Decimal("100"), "status": InvoiceStatus.SENT}
    fields.update(overrides)
    return Invoice(**fields)


class TestLineItem:
    """Test cases for line item amounts."""

    def test_untaxed(self):
        item = LineItem(description="Hours", quantity=Decimal("3"), rate=Decimal("50"))
        assert item.amount == Decimal("150")
        assert item.tax_amount == 0

    def test_percentage_tax(self):
        item = LineItem(
            quantity=Decimal("2"), rate=Decimal("50"), tax_rate=Decimal("10"), tax_type=TaxType.PERCENTAGE
        )
        assert item.tax_amount == Decimal("10")
        assert item.amount == Decimal("110")

    def test_fixed_tax(self):
        item = LineItem(quantity=Decimal("1"), rate=Decimal("100"), tax_rate=Decimal("5"), tax_type="fixed")
        assert item.amount == Decimal("105")

    def test_tax_rate_without_type_is_ignored(self):
        item = LineItem(quantity=Decimal("1"), rate=Decimal("100"), tax_rate=Decimal("5"))
        assert item.amount == Decimal("100")


class TestInvoice:
    """Test cases for invoice invariants and derived values."""

    def test_paid_cannot_exceed_amount(self):
        with pytest.raises(ValidationError, match="paid_amount cannot exceed amount"):
            _invoice(paid_amount=Decimal("120"))

    def test_remaining_and_edit_permission(self):
        unpaid = _invoice()
        partly_paid = _invoice(paid_amount=Decimal("40"))

        assert unpaid.remaining_amount == Decimal("100")
        assert unpaid.can_edit is True
        assert partly_paid.remaining_amount == Decimal("60")
        assert partly_paid.can_edit is False

    def test_settle_partial(self):
        settled = _invoice().settle(Decimal("40"))

        assert settled.paid_amount == Decimal("40")
        assert settled.status is InvoiceStatus.PARTIAL
        assert settled.remaining_amount == Decimal("60")

    def test_settle_in_full(self):
        settled = _invoice(paid_amount=Decimal("40"), status=InvoiceStatus.PARTIAL).settle(Decimal("60"))

        assert settled.status is InvoiceStatus.PAID
        assert settled.remaining_amount == 0

    def test_settle_rejects_overpayment(self):
        with pytest.raises(InvalidInput, match="remaining balance of 60.00"):
            _invoice(paid_amount=Decimal("40")).settle(Decimal("61"))

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-5"), Decimal("NaN")])
    def test_settle_rejects_non_positive(self, amount):
        with pytest.raises(InvalidInput, match="Enter a valid payment amount"):
            _invoice().settle(amount)


class TestPaymentLinkToken:
    """Test cases for link freshness."""

    NOW = datetime(2024, 1, 15, 12, 0, tzinfo=UTC)

    def test_without_expiry_is_fresh(self):
        assert PaymentLinkToken(invoice_id="inv-1", url="u").is_fresh(self.NOW)

    def test_far_expiry_is_fresh(self):
        token = PaymentLinkToken(invoice_id="inv-1", url="u", expires_at=self.NOW + timedelta(minutes=5))
        assert token.is_fresh(self.NOW)

    def test_expiry_within_margin_is_stale(self):
        token = PaymentLinkToken(invoice_id="inv-1", url="u", expires_at=self.NOW + timedelta(seconds=60))
        assert not token.is_fresh(self.NOW, margin_seconds=60)


def test_payment_is_immutable():
    payment = Payment(invoice_id="inv-1", amount=Decimal("10"))
    with pytest.raises(ValidationError):
        payment.amount = Decimal("20")


class TestDescribeAction:
    """Test cases for audit entry rendering."""

    def _entry(self, action, **fields) -> AuditLogEntry:
        return AuditLogEntry(invoice_id="inv-1", action=action, **fields)

    def test_manual_payment(self):
        assert describe_action(self._entry("manual_payment")) == "Manual payment recorded"

    def test_field_change(self):
        entry = self._entry("field_updated", field_name="notes", old_value="a", new_value="b")
        assert describe_action(entry) == "Updated notes: a → b"

    def test_status_change(self):
        entry = self._entry("status_changed", old_value="sent", new_value="partial")
        assert describe_action(entry) == "Status changed: sent → partial"

    def test_payment_received(self):
        assert describe_action(self._entry("payment_received", new_value="40")) == "Payment received: $40"

    def test_unknown_falls_back_to_details_then_action(self):
        assert describe_action(self._entry("payment_drawer_opened", details="Drawer opened")) == "Drawer opened"
        assert describe_action(self._entry("mystery")) == "mystery"


def test_build_entry_stamps_user(owner):
    entry = build_entry("inv-1", "link_copied", user=owner, details="copied")

    assert entry.user_id == "user-1"
    assert entry.user_name == "Owner"
    assert entry.user_email == "owner@example.com"
    assert entry.created_at.tzinfo is not None
