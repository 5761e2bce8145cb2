"""Payment Drawer Controller: hosts the embedded payment form and reacts to its signals."""

from collections.abc import Mapping
from enum import Enum
from typing import Any
from urllib.parse import urlsplit

from app.client.events import PAYMENTS_REFRESH
from app.client.reconciliation import InvoiceReconciler
from app.config import settings
from app.core.errors import InvoicingError, error_message
from app.utils.audit import PAYMENT_DRAWER_OPENED
from app.utils.logger import get_logger

log = get_logger("drawer")

FRAME_READY = "payment-frame-ready"
PAYMENT_LOADING = "payment-loading"
FALLBACK_OPENED = "payment-fallback-opened"
PAYMENT_COMPLETE = "payment-complete"
PAYMENT_ERROR = "payment-error"

PAYMENT_FAILED_MESSAGE = "We were unable to process the payment. Please try again."


class DrawerState(str, Enum):
    CLOSED = "closed"
    LAUNCHING = "launching"
    LOADING = "loading"
    READY = "ready"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


def embed_url(url: str) -> str:
    """Append ``embed=1`` to a payment URL."""
    return f"{url}{'&' if '?' in url else '?'}embed=1"


def url_origin(url: str) -> str | None:
    parts = urlsplit(url)
    if not parts.scheme or not parts.netloc:
        return None
    return f"{parts.scheme}://{parts.netloc}"


class PaymentDrawerController:
    """Drives one drawer session from launch to completion.

    Frame signals can arrive duplicated or out of order; each handler only
    sets state, and the processing flag is last-write-wins.
    """

    def __init__(
        self,
        reconciler: InvoiceReconciler,
        message_prefix: str | None = None,
        expected_origin: str | None = None,
    ):
        self.reconciler = reconciler
        self.events = reconciler.events
        self.link_cache = reconciler.link_cache
        self.message_prefix = message_prefix or settings.payment_frame_message_prefix
        self.configured_origin = expected_origin or settings.payment_frame_origin

        self.state = DrawerState.CLOSED
        self.is_open = False
        self.frame_url: str | None = None
        self.processing = False
        self._frame_origin: str | None = None

    @property
    def expected_origin(self) -> str | None:
        return self.configured_origin or self._frame_origin

    async def open(self) -> bool:
        """Ensure a payment link and show it in the drawer."""
        invoice = self.reconciler.invoice
        if invoice is None:
            return False

        self.state = DrawerState.LAUNCHING
        try:
            url = await self.link_cache.ensure_link(invoice)
        except InvoicingError as e:
            self.events.error(error_message(e, "Failed to start payment"))
            self._reset()
            return False

        self.frame_url = embed_url(url)
        self._frame_origin = url_origin(url)
        self.processing = True
        self.is_open = True
        self.state = DrawerState.LOADING
        await self.reconciler.log_audit_entry(PAYMENT_DRAWER_OPENED, "Payment drawer opened in app")
        return True

    def cancel(self) -> None:
        """Close the drawer; in-flight requests are left to finish on their own."""
        self._reset()

    async def handle_message(self, data: Any, origin: str | None = None) -> bool:
        """Apply one cross-frame message. Returns True when it changed drawer state."""
        if not isinstance(data, Mapping):
            return False
        message_type = data.get("type")
        if not isinstance(message_type, str) or not message_type.startswith(self.message_prefix):
            return False

        if not self.is_open:
            log.debug(f"Ignoring {message_type}: drawer is not open")
            return False
        if self.expected_origin is None or origin != self.expected_origin:
            log.warning(f"Ignoring {message_type} from unexpected origin {origin!r}")
            return False

        signal = message_type[len(self.message_prefix):]
        if signal == FRAME_READY:
            self.processing = False
            self.state = DrawerState.READY
        elif signal in (PAYMENT_LOADING, FALLBACK_OPENED):
            self.processing = True
            self.state = DrawerState.PROCESSING
        elif signal == PAYMENT_COMPLETE:
            await self._complete()
        elif signal == PAYMENT_ERROR:
            self.processing = False
            self.state = DrawerState.ERROR
            self.events.error(PAYMENT_FAILED_MESSAGE)
        else:
            log.debug(f"Ignoring unrecognized frame message {message_type}")
            return False
        return True

    async def _complete(self) -> None:
        self.processing = False
        self.is_open = False
        self.frame_url = None
        self.state = DrawerState.COMPLETED
        self.events.success("Payment submitted successfully")
        await self.reconciler.refresh()
        self.events.emit(PAYMENTS_REFRESH)

    def _reset(self) -> None:
        self.state = DrawerState.CLOSED
        self.is_open = False
        self.frame_url = None
        self.processing = False
