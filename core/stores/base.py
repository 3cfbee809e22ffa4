"""
Storage contracts the invoicing core depends on.

The core holds no shared mutable state of its own. Counters and invoices
live behind these protocols. Implementations must make claim_next atomic
per tenant: two tabs creating invoices at once must never get the same
number.
"""

from typing import Protocol
from uuid import UUID

from core.models import Invoice, SequenceCounter


class CounterStore(Protocol):
    """Per-tenant invoice sequence counter."""

    def read_counter(self, tenant_id: UUID) -> SequenceCounter | None:
        """Current counter, or None if the tenant has none yet."""
        ...

    def write_counter(self, tenant_id: UUID, counter: SequenceCounter) -> None:
        """Overwrite the counter. Used for explicit resets."""
        ...

    def claim_next(
        self,
        tenant_id: UUID,
        initial: SequenceCounter,
        timeout: float | None = None,
    ) -> SequenceCounter:
        """
        Atomically read-increment-write the counter.

        Creates the counter from `initial` if missing. Returns the counter
        state that was claimed (its next_number is the number now owned by
        the caller); the stored counter has moved on by one.

        Raises:
            CounterUnavailable: store unreachable or timed out
            ConcurrentAllocationConflict: store detected a racing increment
        """
        ...


class InvoiceStore(Protocol):
    """Tenant-scoped invoice persistence."""

    def get(self, tenant_id: UUID, invoice_id: UUID) -> Invoice | None:
        ...

    def insert(self, invoice: Invoice) -> Invoice:
        ...

    def update(self, invoice: Invoice) -> Invoice:
        ...

    def delete(self, tenant_id: UUID, invoice_id: UUID) -> bool:
        """True if the invoice existed and was deleted."""
        ...

    def list_for_user(self, tenant_id: UUID, limit: int | None = None) -> list[Invoice]:
        """Invoices ordered by created_at, newest first."""
        ...
