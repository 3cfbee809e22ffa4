"""
In-process pub/sub for invoicing events.

Publishing is synchronous: handlers run in the publisher's thread, after the
invoice write and its audit row. A failing handler is logged and skipped so
the remaining handlers still run and the caller still gets its invoice.
"""

import logging
from collections import defaultdict
from typing import Callable

from core.events import InvoicingEvent

logger = logging.getLogger(__name__)

Handler = Callable[[InvoicingEvent], None]


def _event_name(event_type: str | type) -> str:
    return event_type if isinstance(event_type, str) else event_type.__name__


class EventBus:
    """
    Handlers subscribe by event class or class name.

    Subscribing to a base class receives every subclass, so a handler on
    "InvoiceEvent" sees created, sent, viewed, paid, cancelled and fallback
    events. Handlers run in subscription order, most specific class first.
    """

    def __init__(self):
        self._subscribers: dict[str, list[Handler]] = defaultdict(list)

    def subscribe(self, event_type: str | type, callback: Handler) -> None:
        self._subscribers[_event_name(event_type)].append(callback)

    def unsubscribe(self, event_type: str | type, callback: Handler) -> None:
        """Remove one subscription. Unknown callbacks are ignored."""
        handlers = self._subscribers.get(_event_name(event_type), [])
        if callback in handlers:
            handlers.remove(callback)

    def _handlers_for(self, event: InvoicingEvent) -> list[Handler]:
        handlers = []
        for cls in type(event).__mro__:
            if issubclass(cls, InvoicingEvent):
                handlers.extend(self._subscribers.get(cls.__name__, []))
        return handlers

    def publish(self, event: InvoicingEvent) -> None:
        for callback in self._handlers_for(event):
            try:
                callback(event)
            except Exception:
                logger.exception(
                    "Handler %s failed for %s (event_id=%s)",
                    getattr(callback, "__name__", repr(callback)),
                    type(event).__name__,
                    event.event_id,
                )
