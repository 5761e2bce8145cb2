"""Client-side payment flow: link caching, the payment drawer and reconciliation."""

from app.client.drawer import DrawerState, PaymentDrawerController
from app.client.events import EventEmitter, Toast, ToastLevel
from app.client.functions import FunctionsClient
from app.client.link_cache import PaymentLinkCache
from app.client.reconciliation import InvoiceReconciler, InvoiceSnapshot

__all__ = [
    "DrawerState",
    "PaymentDrawerController",
    "EventEmitter",
    "Toast",
    "ToastLevel",
    "FunctionsClient",
    "PaymentLinkCache",
    "InvoiceReconciler",
    "InvoiceSnapshot",
]
