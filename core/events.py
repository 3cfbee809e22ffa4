"""
Domain events for invoicing.

Immutable event objects describing invoice lifecycle changes. The PDF and
share layers subscribe to these instead of being called by the service,
so InvoiceService never needs to know who renders or delivers invoices.

Events carry the full Invoice as persisted, so handlers don't re-fetch.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import uuid4

from utils.timezone import now_utc


@dataclass(frozen=True, kw_only=True)
class InvoicingEvent:
    """Base class for all invoicing domain events."""
    event_id: str = field(default_factory=lambda: str(uuid4()))
    occurred_at: datetime = field(default_factory=now_utc)


@dataclass(frozen=True)
class InvoiceEvent(InvoicingEvent):
    """Events related to invoice lifecycle."""
    invoice: Any = None  # Invoice

    @classmethod
    def create(cls, invoice: Any) -> "InvoiceEvent":
        return cls(invoice=invoice)


@dataclass(frozen=True)
class InvoiceCreated(InvoiceEvent):
    """A new draft was saved with its number allocated."""


@dataclass(frozen=True)
class InvoiceSent(InvoiceEvent):
    """Invoice was sent to the customer."""


@dataclass(frozen=True)
class InvoiceViewed(InvoiceEvent):
    """Customer opened the invoice."""


@dataclass(frozen=True)
class InvoicePaid(InvoiceEvent):
    """Invoice was marked as fully paid."""


@dataclass(frozen=True)
class InvoiceCancelled(InvoiceEvent):
    """Invoice was cancelled."""


@dataclass(frozen=True)
class FallbackNumberIssued(InvoiceEvent):
    """
    Invoice got a timestamp-based number because the counter was unavailable.

    Subscribers can flag the invoice for review; its number is not sequential.
    """
