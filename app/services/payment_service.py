"""Manual payment recording: the server side of ``invoice-mark-paid``."""

import time
from datetime import UTC, date, datetime, time as dt_time
from decimal import Decimal
from typing import Any

from app.core.errors import InvalidInput, NotFound
from app.models.invoice import Invoice, Payment
from app.services.token_minter import authenticate
from app.store.abstractions import IAuthProvider, IInvoiceStore
from app.store.mapping import (
    audit_entry_to_row,
    invoice_from_row,
    invoice_update_row,
    payment_to_row,
)
from app.utils.audit import MANUAL_PAYMENT, build_entry
from app.utils.logger import logger
from app.utils.validators import sanitize_string, validate_invoice_id, validate_payment_amount


def _payment_timestamp(payment_date: date | datetime | str | None) -> datetime:
    if payment_date is None or payment_date == "":
        return datetime.now(UTC)
    if isinstance(payment_date, str):
        try:
            payment_date = date.fromisoformat(payment_date[:10])
        except ValueError as exc:
            raise InvalidInput("paymentDate must be an ISO date") from exc
    if isinstance(payment_date, datetime):
        return payment_date if payment_date.tzinfo else payment_date.replace(tzinfo=UTC)
    return datetime.combine(payment_date, dt_time.min, tzinfo=UTC)


class PaymentService:
    """Applies a manually recorded payment to an invoice."""

    def __init__(self, store: IInvoiceStore, auth: IAuthProvider):
        self.store = store
        self.auth = auth

    async def record_manual_payment(
        self,
        authorization: str | None,
        invoice_id: Any,
        amount: Any,
        payment_method: str | None = None,
        payment_date: date | datetime | str | None = None,
        reference: str | None = None,
        note: str | None = None,
    ) -> Invoice:
        """Append a payment, move the invoice balance and status, and audit it.

        The invoice is re-read from the store immediately before settling;
        there is no transaction around the three writes.
        """
        user = await authenticate(self.auth, authorization)
        invoice_id = validate_invoice_id(invoice_id)
        value: Decimal = validate_payment_amount(amount)

        row = await self.store.get_invoice(invoice_id)
        if not row:
            raise NotFound("Invoice not found")
        invoice = invoice_from_row(row)
        settled = invoice.settle(value)

        reference = sanitize_string(reference, max_length=100) or f"PAY-{int(time.time() * 1000)}"
        payment = Payment(
            invoice_id=invoice.id,
            customer_id=invoice.customer_id,
            amount=value,
            method=sanitize_string(payment_method, max_length=50) or "check",
            payment_date=_payment_timestamp(payment_date),
            status="completed",
            reference_number=reference,
        )
        await self.store.insert_payment(payment_to_row(payment))
        await self.store.update_invoice(invoice.id, invoice_update_row(settled))
        await self.store.insert_audit_log(
            audit_entry_to_row(
                build_entry(
                    invoice.id,
                    MANUAL_PAYMENT,
                    user=user,
                    details=sanitize_string(note, max_length=500) or f"Payment {reference} recorded",
                    field_name="paid_amount",
                    old_value=str(invoice.paid_amount),
                    new_value=str(settled.paid_amount),
                )
            )
        )

        logger.info(
            f"Manual payment recorded | invoice={invoice.id} amount={value} "
            f"status={settled.status.value} user={user.id}"
        )
        return settled
