"""
Invoice lifecycle state machine.

Two independent axes:

    status:          draft -> sent -> viewed -> paid
                     draft | sent | viewed -> paid      (mark as paid)
                     any non-terminal      -> cancelled
    payment_status:  unpaid -> partial -> paid, or unpaid -> paid

Overdue is never written. It is inferred on read from the due date
(see is_overdue / effective_status). Stored 'overdue' values from older
records are still accepted and behave like 'sent'.

All operations are pure: they return an updated copy, or raise
InvalidTransition and leave the input untouched.
"""

from datetime import date, datetime
from enum import Enum
from typing import Dict, Set

from core.errors import InvalidTransition
from core.models import Invoice, InvoiceStatus, PaymentStatus
from utils.timezone import now_utc, today_utc


class TransitionTrigger(str, Enum):
    """Who may move an invoice into a status."""

    USER = "user"  # send, mark paid, cancel
    RECIPIENT = "recipient"  # customer opened the shared invoice
    DERIVED = "derived"  # inferred at read time, never stored


VALID_STATUS_TRANSITIONS: Dict[InvoiceStatus, Set[InvoiceStatus]] = {
    InvoiceStatus.DRAFT: {
        InvoiceStatus.SENT,
        InvoiceStatus.PAID,  # cash sale recorded after the fact
        InvoiceStatus.CANCELLED,
    },
    InvoiceStatus.SENT: {
        InvoiceStatus.VIEWED,
        InvoiceStatus.PAID,
        InvoiceStatus.CANCELLED,
    },
    InvoiceStatus.VIEWED: {
        InvoiceStatus.PAID,
        InvoiceStatus.CANCELLED,
    },
    InvoiceStatus.OVERDUE: {
        InvoiceStatus.PAID,
        InvoiceStatus.CANCELLED,
    },
    InvoiceStatus.PAID: set(),
    InvoiceStatus.CANCELLED: set(),
}

VALID_PAYMENT_TRANSITIONS: Dict[PaymentStatus, Set[PaymentStatus]] = {
    PaymentStatus.UNPAID: {PaymentStatus.PARTIAL, PaymentStatus.PAID},
    PaymentStatus.PARTIAL: {PaymentStatus.PAID},
    PaymentStatus.OVERDUE: {PaymentStatus.PARTIAL, PaymentStatus.PAID},
    PaymentStatus.PAID: set(),
}

TRANSITION_TRIGGERS: Dict[InvoiceStatus, TransitionTrigger] = {
    InvoiceStatus.SENT: TransitionTrigger.USER,
    InvoiceStatus.VIEWED: TransitionTrigger.RECIPIENT,
    InvoiceStatus.PAID: TransitionTrigger.USER,
    InvoiceStatus.CANCELLED: TransitionTrigger.USER,
    InvoiceStatus.OVERDUE: TransitionTrigger.DERIVED,
}


def is_valid_transition(from_status: InvoiceStatus, to_status: InvoiceStatus) -> bool:
    """Whether the status table allows from_status -> to_status."""
    return to_status in VALID_STATUS_TRANSITIONS.get(from_status, set())


def allowed_transitions(invoice: Invoice) -> Set[InvoiceStatus]:
    """Statuses the invoice can move to from where it is now."""
    return set(VALID_STATUS_TRANSITIONS.get(invoice.status, set()))


def _require(invoice: Invoice, to_status: InvoiceStatus) -> None:
    if TRANSITION_TRIGGERS.get(to_status) == TransitionTrigger.DERIVED:
        raise InvalidTransition(
            invoice.status, to_status,
            "Overdue is derived from the due date and cannot be set",
        )
    if not is_valid_transition(invoice.status, to_status):
        raise InvalidTransition(invoice.status, to_status)


def mark_sent(invoice: Invoice, at: datetime | None = None) -> Invoice:
    """
    draft -> sent. Sets sent_at.

    Raises:
        InvalidTransition: invoice is not a draft (re-sending is rejected)
    """
    if invoice.status != InvoiceStatus.DRAFT:
        raise InvalidTransition(
            invoice.status, InvoiceStatus.SENT,
            f"Only draft invoices can be sent (invoice is {invoice.status.value})",
        )
    at = at or now_utc()
    return invoice.model_copy(update={
        "status": InvoiceStatus.SENT,
        "sent_at": at,
        "updated_at": at,
    })


def mark_viewed(invoice: Invoice, at: datetime | None = None) -> Invoice:
    """sent -> viewed. Viewing a viewed invoice again is a no-op."""
    if invoice.status == InvoiceStatus.VIEWED:
        return invoice
    _require(invoice, InvoiceStatus.VIEWED)
    at = at or now_utc()
    return invoice.model_copy(update={
        "status": InvoiceStatus.VIEWED,
        "viewed_at": at,
        "updated_at": at,
    })


def mark_paid(invoice: Invoice, at: datetime | None = None) -> Invoice:
    """
    Any non-cancelled status -> paid. Forces payment_status=paid, sets paid_at.

    Already paid invoices are returned unchanged, keeping the original paid_at.

    Raises:
        InvalidTransition: invoice is cancelled
    """
    if invoice.status == InvoiceStatus.PAID and invoice.payment_status == PaymentStatus.PAID:
        return invoice
    if invoice.status != InvoiceStatus.PAID:
        _require(invoice, InvoiceStatus.PAID)
    at = at or now_utc()
    return invoice.model_copy(update={
        "status": InvoiceStatus.PAID,
        "payment_status": PaymentStatus.PAID,
        "paid_at": invoice.paid_at or at,
        "updated_at": at,
    })


def cancel(invoice: Invoice, at: datetime | None = None) -> Invoice:
    """
    Non-terminal status -> cancelled. Terminal.

    Raises:
        InvalidTransition: invoice is paid or already cancelled
    """
    _require(invoice, InvoiceStatus.CANCELLED)
    at = at or now_utc()
    return invoice.model_copy(update={
        "status": InvoiceStatus.CANCELLED,
        "cancelled_at": at,
        "updated_at": at,
    })


def record_partial_payment(invoice: Invoice, at: datetime | None = None) -> Invoice:
    """
    unpaid -> partial on the payment axis. Workflow status is unchanged.

    Raises:
        InvalidTransition: invoice is cancelled, or payment is already partial/paid
    """
    if invoice.status == InvoiceStatus.CANCELLED:
        raise InvalidTransition(
            invoice.payment_status, PaymentStatus.PARTIAL,
            "Cannot record a payment on a cancelled invoice",
        )
    if PaymentStatus.PARTIAL not in VALID_PAYMENT_TRANSITIONS.get(invoice.payment_status, set()):
        raise InvalidTransition(invoice.payment_status, PaymentStatus.PARTIAL)
    at = at or now_utc()
    return invoice.model_copy(update={
        "payment_status": PaymentStatus.PARTIAL,
        "updated_at": at,
    })


_OPERATIONS = {
    InvoiceStatus.SENT: mark_sent,
    InvoiceStatus.VIEWED: mark_viewed,
    InvoiceStatus.PAID: mark_paid,
    InvoiceStatus.CANCELLED: cancel,
}


def transition(invoice: Invoice, to_status: InvoiceStatus, at: datetime | None = None) -> Invoice:
    """
    Move an invoice to to_status through the matching operation.

    Raises:
        InvalidTransition: target not reachable (draft and overdue never are)
    """
    operation = _OPERATIONS.get(to_status)
    if operation is None:
        _require(invoice, to_status)
        raise InvalidTransition(invoice.status, to_status)
    return operation(invoice, at)


# =============================================================================
# READ-TIME INFERENCE
# =============================================================================


def is_overdue(invoice: Invoice, today: date | None = None) -> bool:
    """
    Due date passed and money not received in full.

    Cancelled invoices are never overdue.
    """
    today = today or today_utc()
    if invoice.status == InvoiceStatus.CANCELLED:
        return False
    return invoice.due_date < today and invoice.payment_status != PaymentStatus.PAID


def effective_status(invoice: Invoice, today: date | None = None) -> InvoiceStatus:
    """Status to display: overdue when inferred, otherwise the stored status."""
    if is_overdue(invoice, today):
        return InvoiceStatus.OVERDUE
    if invoice.status == InvoiceStatus.OVERDUE:
        # Legacy stored value that no longer holds (e.g. due date moved).
        return InvoiceStatus.SENT
    return invoice.status


def effective_payment_status(invoice: Invoice, today: date | None = None) -> PaymentStatus:
    """Payment status to display: overdue for unpaid/partial past the due date."""
    if is_overdue(invoice, today):
        return PaymentStatus.OVERDUE
    if invoice.payment_status == PaymentStatus.OVERDUE:
        return PaymentStatus.UNPAID
    return invoice.payment_status
