"""Sequence counter models for per-tenant invoice numbering."""

from pydantic import BaseModel, Field


class SequenceCounter(BaseModel):
    """Prefix plus the next number to hand out. Never decremented except by reset."""

    prefix: str = Field(..., min_length=1, max_length=20)
    next_number: int = Field(..., ge=1)


class InvoiceNumberAllocation(BaseModel):
    """
    Result of asking for a new invoice number.

    sequential=False marks a timestamp-based fallback number. No ordering
    holds between fallback numbers and sequential ones.
    """

    invoice_number: str
    sequential: bool
    counter: SequenceCounter | None = None
