"""Invoice Reconciliation: keeps a client's view of one invoice in step with the store."""

from collections.abc import Callable
from datetime import UTC, date, datetime
from decimal import Decimal
from typing import Any, List, Optional

from pydantic import BaseModel, Field

from app.client.events import INVOICES_REFRESH, EventEmitter
from app.client.functions import FunctionsClient
from app.client.link_cache import PaymentLinkCache
from app.core.errors import InvalidInput, InvoicingError, NotFound, UpstreamFailure, error_message
from app.models.invoice import AuditLogEntry, AuthUser, Invoice, Payment
from app.store.abstractions import IInvoiceStore
from app.store.mapping import (
    audit_entry_from_row,
    audit_entry_to_row,
    invoice_from_row,
    payment_from_row,
)
from app.utils.audit import LINK_COPIED, PAYMENT_PAGE_OPENED, build_entry
from app.utils.logger import get_logger
from app.utils.validators import parse_cc_list, sanitize_string, validate_payment_amount

log = get_logger("reconciliation")

_EPOCH = datetime.min.replace(tzinfo=UTC)


def _map_rows(rows: list, mapper: Callable[[Any], Any]) -> list:
    """Map store rows, skipping the ones that do not fit the model."""
    mapped = []
    for row in rows:
        try:
            mapped.append(mapper(row))
        except UpstreamFailure as e:
            log.warning(f"Skipping record: {e}")
    return mapped


def _newest_first(moment: Optional[datetime]) -> datetime:
    if moment is None:
        return _EPOCH
    return moment if moment.tzinfo else moment.replace(tzinfo=UTC)


class InvoiceSnapshot(BaseModel):
    """Invoice, audit trail and payment history loaded together."""

    invoice: Invoice
    audit_log: List[AuditLogEntry] = Field(default_factory=list)
    payments: List[Payment] = Field(default_factory=list)

    @property
    def remaining_amount(self) -> Decimal:
        return self.invoice.remaining_amount

    @property
    def can_edit(self) -> bool:
        return self.invoice.can_edit


class InvoiceReconciler:
    """Re-fetches invoice state after anything that may change what is owed."""

    def __init__(
        self,
        invoice_id: str,
        store: IInvoiceStore,
        functions: FunctionsClient,
        events: EventEmitter | None = None,
        link_cache: PaymentLinkCache | None = None,
        today: Callable[[], date] = date.today,
    ):
        self.invoice_id = invoice_id
        self.store = store
        self.functions = functions
        self.events = events or EventEmitter()
        self.link_cache = link_cache or PaymentLinkCache(functions.mint_payment_token)
        self.today = today
        self.snapshot: InvoiceSnapshot | None = None

    @property
    def invoice(self) -> Invoice | None:
        return self.snapshot.invoice if self.snapshot else None

    @property
    def user(self) -> AuthUser | None:
        session = self.functions.session
        return session.user if session else None

    async def reload(self) -> InvoiceSnapshot:
        """Load invoice, audit log and payments, then swap them in together."""
        row = await self.store.get_invoice(self.invoice_id)
        if not row:
            raise NotFound("Invoice not found")
        invoice = invoice_from_row(row)

        audit_log = await self._load_audit_log()
        payments = await self._load_payments()

        self.snapshot = InvoiceSnapshot(invoice=invoice, audit_log=audit_log, payments=payments)
        return self.snapshot

    async def refresh(self) -> InvoiceSnapshot | None:
        """Reload, reporting failures as toasts instead of raising."""
        try:
            return await self.reload()
        except NotFound as e:
            self.events.error(str(e))
        except InvoicingError as e:
            log.error(f"Failed to load invoice details: {e}")
            self.events.error("Failed to load invoice details")
        return None

    async def _load_audit_log(self) -> list[AuditLogEntry]:
        try:
            rows = await self.store.list_audit_logs(self.invoice_id)
        except InvoicingError as e:
            log.error(f"Failed to load audit logs: {e}")
            return []
        entries = _map_rows(rows, audit_entry_from_row)
        return sorted(entries, key=lambda entry: _newest_first(entry.created_at), reverse=True)

    async def _load_payments(self) -> list[Payment]:
        try:
            rows = await self.store.list_payments(self.invoice_id)
        except InvoicingError as e:
            log.error(f"Failed to load payments: {e}")
            return []
        payments = _map_rows(rows, payment_from_row)
        return sorted(payments, key=lambda payment: _newest_first(payment.payment_date), reverse=True)

    def default_manual_amount(self) -> str:
        """Outstanding balance used to pre-fill the manual payment form."""
        if self.invoice is None:
            return ""
        outstanding = self.invoice.remaining_amount
        return f"{outstanding:.2f}" if outstanding > 0 else ""

    async def record_manual_payment(
        self,
        amount: Any,
        method: str = "check",
        payment_date: date | None = None,
        reference: str | None = None,
        note: str | None = None,
    ) -> bool:
        """Validate locally, submit through ``invoice-mark-paid``, then reload."""
        try:
            value = validate_payment_amount(amount)
        except InvalidInput as e:
            self.events.error(str(e))
            return False

        body: dict[str, Any] = {
            "invoiceId": self.invoice_id,
            "amount": float(value),
            "paymentMethod": method,
            "paymentDate": (payment_date or self.today()).isoformat(),
        }
        if sanitize_string(reference):
            body["reference"] = sanitize_string(reference)
        if sanitize_string(note):
            body["note"] = sanitize_string(note)

        try:
            await self.functions.mark_paid(body)
        except InvoicingError as e:
            log.error(f"Failed to record manual payment: {e}")
            self.events.error("Failed to record payment")
            return False

        self.events.success("Payment recorded and invoice updated")
        self.events.emit(INVOICES_REFRESH)
        await self.refresh()
        return True

    async def send_invoice(self, note: str | None = None, cc: str | None = None) -> bool:
        """Dispatch the invoice email through ``send-invoice`` and reload."""
        try:
            cc_list = parse_cc_list(cc)
        except InvalidInput as e:
            self.events.error(str(e))
            return False

        body: dict[str, Any] = {"invoiceId": self.invoice_id}
        if sanitize_string(note):
            body["note"] = sanitize_string(note)
        if cc_list:
            body["cc"] = cc_list

        self.events.info("Sending invoice...")
        try:
            await self.functions.send_invoice(body)
        except InvoicingError as e:
            log.error(f"Failed to send invoice: {e}")
            self.events.error("Failed to send invoice")
            return False

        self.events.success("Invoice email sent successfully!")
        await self.refresh()
        return True

    async def copy_payment_link(self) -> str | None:
        """Payment URL for sharing; the caller puts it on the clipboard."""
        return await self._share_link(
            LINK_COPIED, "Payment link copied to clipboard", "Failed to copy payment link"
        )

    async def open_payment_page(self) -> str | None:
        return await self._share_link(
            PAYMENT_PAGE_OPENED, "Payment page opened in new tab", "Failed to open payment page"
        )

    async def _share_link(self, action: str, details: str, fallback: str) -> str | None:
        if self.invoice is None:
            return None
        try:
            url = await self.link_cache.ensure_link(self.invoice)
        except InvoicingError as e:
            self.events.error(error_message(e, fallback))
            return None

        if action == LINK_COPIED:
            self.events.success(details)
        await self.log_audit_entry(action, details)
        return url

    async def log_audit_entry(
        self,
        action: str,
        details: str | None = None,
        field_name: str | None = None,
        old_value: str | None = None,
        new_value: str | None = None,
    ) -> None:
        """Append an audit entry; a failure here never fails the user's action."""
        if self.user is None:
            return
        entry = build_entry(
            self.invoice_id,
            action,
            user=self.user,
            details=details,
            field_name=field_name,
            old_value=old_value,
            new_value=new_value,
        )
        try:
            await self.store.insert_audit_log(audit_entry_to_row(entry))
        except InvoicingError as e:
            log.error(f"Failed to log audit entry: {e}")
