"""Payment Link Cache: reuse minted links until they are close to expiry."""

from collections.abc import Awaitable, Callable, Mapping
from datetime import UTC, datetime
from typing import Any

from app.config import settings
from app.core.errors import InvalidInput, UpstreamFailure
from app.models.invoice import Invoice, PaymentLinkToken
from app.utils.logger import get_logger

log = get_logger("link_cache")

DRAFT_LINK_ERROR = "Send the invoice before sharing a payment link."

Minter = Callable[[str], Awaitable[Mapping[str, Any]]]


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _parse_expiry(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        moment = value
    else:
        moment = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    return moment if moment.tzinfo else moment.replace(tzinfo=UTC)


class PaymentLinkCache:
    """Per-invoice memo of minted payment links.

    Concurrent ``ensure_link`` calls for one invoice may each mint; tokens are
    derived, so the extra mint only costs a round trip.
    """

    def __init__(
        self,
        minter: Minter,
        refresh_margin_seconds: int | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._minter = minter
        self._links: dict[str, PaymentLinkToken] = {}
        self.refresh_margin_seconds = (
            settings.payment_link_refresh_margin_seconds
            if refresh_margin_seconds is None
            else refresh_margin_seconds
        )
        self.clock = clock

    def get(self, invoice_id: str) -> PaymentLinkToken | None:
        return self._links.get(invoice_id)

    def invalidate(self, invoice_id: str) -> None:
        self._links.pop(invoice_id, None)

    async def ensure_link(self, invoice: Invoice, force: bool = False) -> str:
        """Return a usable payment URL for ``invoice``, minting only when needed."""
        if invoice.is_draft:
            raise InvalidInput(DRAFT_LINK_ERROR)

        cached = self._links.get(invoice.id)
        if not force and cached and cached.url:
            if cached.is_fresh(self.clock(), self.refresh_margin_seconds):
                return cached.url
            log.debug(f"Payment link for {invoice.id} is near expiry, re-minting")

        try:
            link = await self._mint(invoice.id)
        except Exception:
            self.invalidate(invoice.id)
            raise

        self._links[invoice.id] = link
        return link.url

    async def _mint(self, invoice_id: str) -> PaymentLinkToken:
        payload = await self._minter(invoice_id)
        if not payload or not payload.get("url"):
            error = payload.get("error") if payload else None
            raise UpstreamFailure(error or "Failed to mint payment link")

        try:
            expires_at = _parse_expiry(payload.get("expiresAt"))
        except ValueError:
            # An unreadable expiry is treated as already stale
            log.warning(f"Unreadable payment link expiry for {invoice_id}: {payload.get('expiresAt')!r}")
            expires_at = self.clock()

        log.info(f"Minted payment link for invoice {invoice_id}")
        return PaymentLinkToken(invoice_id=invoice_id, url=payload["url"], expires_at=expires_at)
