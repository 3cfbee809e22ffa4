"""Typed exceptions for invoice computation, numbering and lifecycle failures."""


class InvoicingError(Exception):
    """Base class for invoicing domain errors."""


class InvalidInput(InvoicingError, ValueError):
    """
    Malformed invoice data (negative quantity, discount over 100%, ...).

    The calculator never raises this. Models and services validate before
    they compute.
    """


class InvoiceNotFound(InvoicingError, ValueError):
    """No invoice with this id exists for the current user."""

    def __init__(self, invoice_id):
        self.invoice_id = invoice_id
        super().__init__(f"Invoice {invoice_id} not found")


class InvalidTransition(InvoicingError, ValueError):
    """
    A lifecycle operation was requested from a status that does not allow it.

    The invoice is left untouched. Callers show a rejection instead of
    overwriting state.
    """

    def __init__(self, from_status, to_status, message: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        from_value = getattr(from_status, "value", from_status)
        to_value = getattr(to_status, "value", to_status)
        super().__init__(message or f"Invalid status transition: {from_value} -> {to_value}")


class CounterUnavailable(InvoicingError):
    """
    The sequence counter could not be read or written.

    Recovered locally by the allocator with a timestamp-based number.
    Never surfaced to the end user.
    """


class ConcurrentAllocationConflict(InvoicingError):
    """The counter store detected a race on increment. Retry once, then fall back."""
