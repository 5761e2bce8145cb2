"""Explicit event emission for client-side components.

Views subscribe to the events they render (toasts, refresh requests) instead
of listening on a global dispatcher.
"""

from collections import defaultdict
from collections.abc import Callable
from enum import Enum
from typing import Any

from pydantic import BaseModel

from app.utils.logger import get_logger

log = get_logger("events")

TOAST = "toast"
PAYMENTS_REFRESH = "payments:refresh"
INVOICES_REFRESH = "invoices:refresh"

Handler = Callable[[Any], None]


class ToastLevel(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"


class Toast(BaseModel):
    """A short user-facing notice."""

    level: ToastLevel
    message: str


class EventEmitter:
    """Synchronous publish/subscribe keyed by event name."""

    def __init__(self):
        self._handlers: dict[str, list[Handler]] = defaultdict(list)

    def subscribe(self, event: str, handler: Handler) -> Callable[[], None]:
        """Register ``handler`` for ``event``; returns a function that unsubscribes it."""
        self._handlers[event].append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers[event]:
                self._handlers[event].remove(handler)

        return unsubscribe

    def emit(self, event: str, payload: Any = None) -> None:
        for handler in list(self._handlers.get(event, ())):
            try:
                handler(payload)
            except Exception as e:
                # One broken view must not abort the operation that emitted
                log.error(f"Handler for {event} failed: {e}", exc_info=True)

    def toast(self, level: ToastLevel, message: str) -> None:
        self.emit(TOAST, Toast(level=level, message=message))

    def info(self, message: str) -> None:
        self.toast(ToastLevel.INFO, message)

    def success(self, message: str) -> None:
        self.toast(ToastLevel.SUCCESS, message)

    def error(self, message: str) -> None:
        self.toast(ToastLevel.ERROR, message)
