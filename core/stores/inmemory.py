"""
In-memory counter and invoice stores.

Process-local and lock-protected. Good for single-process deployments,
local development and tests; anything multi-process needs the Postgres or
Valkey stores.
"""

import threading
from uuid import UUID

from core.models import Invoice, SequenceCounter


class InMemoryCounterStore:
    """Counters keyed by tenant id. claim_next is serialized by a lock."""

    def __init__(self):
        self._counters: dict[UUID, SequenceCounter] = {}
        self._lock = threading.Lock()

    def read_counter(self, tenant_id: UUID) -> SequenceCounter | None:
        with self._lock:
            return self._counters.get(tenant_id)

    def write_counter(self, tenant_id: UUID, counter: SequenceCounter) -> None:
        with self._lock:
            self._counters[tenant_id] = counter

    def claim_next(
        self,
        tenant_id: UUID,
        initial: SequenceCounter,
        timeout: float | None = None,
    ) -> SequenceCounter:
        with self._lock:
            claimed = self._counters.get(tenant_id, initial)
            self._counters[tenant_id] = SequenceCounter(
                prefix=claimed.prefix,
                next_number=claimed.next_number + 1,
            )
            return claimed


class InMemoryInvoiceStore:
    """Invoices keyed by (tenant id, invoice id)."""

    def __init__(self):
        self._invoices: dict[tuple[UUID, UUID], Invoice] = {}
        self._lock = threading.Lock()

    def get(self, tenant_id: UUID, invoice_id: UUID) -> Invoice | None:
        with self._lock:
            return self._invoices.get((tenant_id, invoice_id))

    def insert(self, invoice: Invoice) -> Invoice:
        key = (invoice.user_id, invoice.id)
        with self._lock:
            if key in self._invoices:
                raise ValueError(f"Invoice {invoice.id} already exists")
            self._invoices[key] = invoice
        return invoice

    def update(self, invoice: Invoice) -> Invoice:
        key = (invoice.user_id, invoice.id)
        with self._lock:
            if key not in self._invoices:
                raise ValueError(f"Invoice {invoice.id} not found")
            self._invoices[key] = invoice
        return invoice

    def delete(self, tenant_id: UUID, invoice_id: UUID) -> bool:
        with self._lock:
            return self._invoices.pop((tenant_id, invoice_id), None) is not None

    def list_for_user(self, tenant_id: UUID, limit: int | None = None) -> list[Invoice]:
        with self._lock:
            invoices = [inv for (owner, _), inv in self._invoices.items() if owner == tenant_id]
        invoices.sort(key=lambda inv: inv.created_at, reverse=True)
        return invoices if limit is None else invoices[:limit]
