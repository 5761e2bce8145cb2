"""Invoice, payment and audit data models."""

from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator

from app.core.errors import InvalidInput

CENT = Decimal("0.01")


class InvoiceStatus(str, Enum):
    """Invoice lifecycle status."""

    DRAFT = "draft"
    SENT = "sent"
    PARTIAL = "partial"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class TaxType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class LineItem(BaseModel):
    """Invoice line item; the amount is derived from quantity, rate and tax."""

    description: str = Field(default="", max_length=500)
    quantity: Decimal = Field(default=Decimal("1"), ge=0)
    rate: Decimal = Field(default=Decimal("0"), ge=0)
    tax_rate: Optional[Decimal] = Field(default=None, ge=0)
    tax_type: Optional[TaxType] = None

    @computed_field
    @property
    def base_amount(self) -> Decimal:
        return self.quantity * self.rate

    @computed_field
    @property
    def tax_amount(self) -> Decimal:
        if not self.tax_rate or self.tax_type is None:
            return Decimal("0")
        if self.tax_type is TaxType.PERCENTAGE:
            return self.base_amount * self.tax_rate / Decimal("100")
        return self.tax_rate

    @computed_field
    @property
    def amount(self) -> Decimal:
        return self.base_amount + self.tax_amount


class PartialPaymentPolicy(BaseModel):
    """Whether a customer may pay less than the balance, and the floor if so."""

    allowed: bool = False
    minimum_amount: Optional[Decimal] = Field(default=None, ge=0)


class Invoice(BaseModel):
    """A billing document owed by a customer."""

    id: str
    invoice_number: str = ""
    customer_id: Optional[str] = None
    customer_name: Optional[str] = None
    amount: Decimal = Field(..., ge=0)
    paid_amount: Decimal = Field(default=Decimal("0"), ge=0)
    status: InvoiceStatus = InvoiceStatus.DRAFT
    issue_date: Optional[date] = None
    due_date: Optional[date] = None
    created_at: Optional[datetime] = None
    items: List[LineItem] = Field(default_factory=list)
    notes: Optional[str] = None
    partial_payment: PartialPaymentPolicy = Field(default_factory=PartialPaymentPolicy)
    payment_plan: Optional[str] = None

    @model_validator(mode="after")
    def check_paid_within_total(self) -> "Invoice":
        if self.paid_amount > self.amount:
            raise ValueError("paid_amount cannot exceed amount")
        return self

    @property
    def remaining_amount(self) -> Decimal:
        return max(Decimal("0"), self.amount - self.paid_amount)

    @property
    def can_edit(self) -> bool:
        """Invoices are editable only until the first payment lands."""
        return self.paid_amount == 0

    @property
    def is_draft(self) -> bool:
        return self.status is InvoiceStatus.DRAFT

    def settle(self, amount: Decimal) -> "Invoice":
        """Return a copy of the invoice with ``amount`` applied to its balance."""
        if not amount.is_finite() or amount <= 0:
            raise InvalidInput("Enter a valid payment amount")
        remaining = self.remaining_amount
        if amount > remaining:
            raise InvalidInput(
                f"Amount cannot exceed remaining balance of {remaining.quantize(CENT)}"
            )
        paid = self.paid_amount + amount
        status = InvoiceStatus.PAID if paid >= self.amount else InvoiceStatus.PARTIAL
        return self.model_copy(update={"paid_amount": paid, "status": status})


class Payment(BaseModel):
    """A payment recorded against an invoice; never modified after creation."""

    model_config = ConfigDict(frozen=True)

    id: Optional[str] = None
    invoice_id: str
    customer_id: Optional[str] = None
    amount: Decimal = Field(..., gt=0)
    method: str = "card"
    payment_date: Optional[datetime] = None
    status: str = "completed"
    reference_number: Optional[str] = None
    transaction_id: Optional[str] = None


class AuditLogEntry(BaseModel):
    """An immutable record of an action taken against an invoice."""

    model_config = ConfigDict(frozen=True)

    id: Optional[str] = None
    invoice_id: str
    action: str
    field_name: Optional[str] = None
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    details: Optional[str] = None
    user_id: Optional[str] = None
    user_name: Optional[str] = None
    user_email: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class PaymentLinkToken(BaseModel):
    """A minted payment link; derived on demand and never persisted."""

    invoice_id: str
    url: str
    expires_at: Optional[datetime] = None

    def is_fresh(self, now: datetime, margin_seconds: int = 60) -> bool:
        """True when the link has no expiry or expires more than ``margin_seconds`` from now."""
        if self.expires_at is None:
            return True
        return (self.expires_at - now).total_seconds() > margin_seconds


class AuthUser(BaseModel):
    """The caller a bearer credential resolves to."""

    id: str
    email: Optional[str] = None
    display_name: Optional[str] = None

    @property
    def label(self) -> Optional[str]:
        return self.display_name or self.email


class AuthSession(BaseModel):
    """A signed-in client session: the bearer credential and who it belongs to."""

    access_token: str
    user: Optional[AuthUser] = None
