"""Token Minter: derives a bounded-lifetime payment link for an invoice."""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from app.config import settings
from app.core.errors import NotFound, Unauthorized
from app.core.security import (
    build_token_payload,
    extract_bearer_token,
    fingerprint_payload,
    payload_expiry,
)
from app.models.invoice import AuthUser, PaymentLinkToken
from app.store.abstractions import IAuthProvider, IInvoiceStore
from app.store.mapping import invoice_from_row
from app.utils.logger import logger
from app.utils.validators import validate_invoice_id


def _utcnow() -> datetime:
    return datetime.now(UTC)


async def authenticate(auth: IAuthProvider, authorization: str | None) -> AuthUser:
    """Resolve an Authorization header to a user or raise Unauthorized."""
    token = extract_bearer_token(authorization)
    user = await auth.get_user(token)
    if user is None:
        raise Unauthorized("Unauthorized")
    return user


class TokenMinterService:
    """Computes payment-link tokens; stateless across calls.

    The token is a fingerprint of ``{invoiceId, customerId, amount, exp}``.
    Nothing is stored, so a token stays valid until ``exp`` and cannot be
    revoked early.
    """

    def __init__(
        self,
        store: IInvoiceStore,
        auth: IAuthProvider,
        ttl: timedelta | None = None,
        algorithm: str | None = None,
        default_origin: str | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.auth = auth
        self.ttl = ttl or timedelta(days=settings.payment_token_ttl_days)
        self.algorithm = algorithm or settings.payment_token_algorithm
        self.default_origin = (default_origin or settings.supabase_url).rstrip("/")
        self.clock = clock

    async def mint(
        self,
        authorization: str | None,
        invoice_id: str | None,
        origin: str | None = None,
    ) -> PaymentLinkToken:
        """Validate the caller and invoice, then derive the payment link."""
        user = await authenticate(self.auth, authorization)
        invoice_id = validate_invoice_id(invoice_id)

        row = await self.store.get_invoice(invoice_id)
        if not row:
            raise NotFound("Invoice not found")
        invoice = invoice_from_row(row)

        payload = build_token_payload(
            invoice_id=invoice.id,
            customer_id=invoice.customer_id,
            amount=invoice.amount,
            issued_at=self.clock(),
            ttl=self.ttl,
        )
        fingerprint = fingerprint_payload(payload, self.algorithm)

        base = (origin or self.default_origin).rstrip("/")
        url = f"{base}/pay/{invoice.id}?token={fingerprint}"

        logger.info(f"Minted payment link | invoice={invoice.id} user={user.id}")
        return PaymentLinkToken(
            invoice_id=invoice.id,
            url=url,
            expires_at=payload_expiry(payload),
        )
