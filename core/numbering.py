"""
Per-tenant invoice numbering.

Sequential numbers look like INV-001, INV-1001: prefix, dash, sequence
zero-padded to at least three digits. Each successful allocation consumes
exactly one sequence slot.

When the counter store is unreachable, slow, or keeps racing, invoice
creation must still succeed. The allocator then hands out a timestamp
number (INV-<last 6 digits of the Unix time in ms>), flagged
sequential=False. Those numbers are unique by time, not ordered, and
never feed back into the counter.

Allocation is at-least-once: if the store increments but the
acknowledgement is lost, the retry (or fallback) skips that number.
Gaps are accepted; duplicates are not.
"""

import logging
from datetime import datetime
from uuid import UUID

from core.config import InvoicingConfig
from core.errors import ConcurrentAllocationConflict, CounterUnavailable
from core.models import InvoiceNumberAllocation, SequenceCounter
from core.stores.base import CounterStore
from utils.timezone import unix_millis

logger = logging.getLogger(__name__)

_MIN_DIGITS = 3
_FALLBACK_DIGITS = 6


def format_invoice_number(prefix: str, number: int) -> str:
    """INV + 7 -> INV-007. Wider numbers are not truncated: INV-1001."""
    return f"{prefix}-{number:0{_MIN_DIGITS}d}"


def allocate_next_invoice_number(counter: SequenceCounter) -> tuple[str, SequenceCounter]:
    """
    Format the counter's next number and return the advanced counter.

    Pure. Persisting the advanced counter is the caller's job, and must be
    atomic with the read (see CounterStore.claim_next).
    """
    invoice_number = format_invoice_number(counter.prefix, counter.next_number)
    updated = SequenceCounter(prefix=counter.prefix, next_number=counter.next_number + 1)
    return invoice_number, updated


def fallback_invoice_number(now: datetime | None = None, prefix: str = "INV") -> str:
    """Timestamp-based number for when the counter store is unavailable."""
    millis = str(unix_millis(now))
    return f"{prefix}-{millis[-_FALLBACK_DIGITS:]}"


class InvoiceNumberAllocator:
    """
    Hands out invoice numbers for a tenant from a CounterStore.

    Never raises for storage trouble: a conflict is retried once, anything
    else (or a second conflict) degrades to a fallback number.
    """

    def __init__(self, store: CounterStore, config: InvoicingConfig | None = None):
        self.store = store
        self.config = config or InvoicingConfig()

    def initial_counter(self) -> SequenceCounter:
        """Counter a tenant starts with on first allocation."""
        return SequenceCounter(
            prefix=self.config.invoice_prefix,
            next_number=self.config.start_number,
        )

    def allocate(self, tenant_id: UUID) -> InvoiceNumberAllocation:
        """
        Allocate the next invoice number for a tenant.

        Returns:
            InvoiceNumberAllocation. sequential=False (and counter=None)
            when the fallback path was used.
        """
        for attempt in (1, 2):
            try:
                claimed = self.store.claim_next(
                    tenant_id,
                    self.initial_counter(),
                    timeout=self.config.allocation_timeout_seconds,
                )
            except ConcurrentAllocationConflict:
                if attempt == 1:
                    logger.info("Counter conflict for tenant %s, retrying once", tenant_id)
                    continue
                logger.warning(
                    "Counter conflict persisted for tenant %s, using fallback number",
                    tenant_id,
                )
                break
            except CounterUnavailable as e:
                logger.warning(
                    "Counter unavailable for tenant %s (%s), using fallback number",
                    tenant_id, e,
                )
                break

            invoice_number, updated = allocate_next_invoice_number(claimed)
            logger.info("Allocated %s for tenant %s", invoice_number, tenant_id)
            return InvoiceNumberAllocation(
                invoice_number=invoice_number,
                sequential=True,
                counter=updated,
            )

        return InvoiceNumberAllocation(
            invoice_number=fallback_invoice_number(prefix=self.config.fallback_prefix),
            sequential=False,
        )

    def peek(self, tenant_id: UUID) -> str | None:
        """
        Preview the number the next allocation would get, without consuming it.

        Returns None if the counter cannot be read. A preview is advisory:
        another tab may allocate first.
        """
        try:
            counter = self.store.read_counter(tenant_id)
        except CounterUnavailable as e:
            logger.warning("Counter unavailable for tenant %s (%s), no preview", tenant_id, e)
            return None

        counter = counter or self.initial_counter()
        return format_invoice_number(counter.prefix, counter.next_number)

    def reset(
        self,
        tenant_id: UUID,
        start_number: int = 1,
        prefix: str | None = None,
    ) -> SequenceCounter:
        """
        Restart a tenant's numbering. The only way next_number goes down.

        Raises:
            CounterUnavailable: the store could not be written. A reset is an
                explicit admin action, so unlike allocate() it does not degrade.
        """
        if prefix is None:
            current = self.store.read_counter(tenant_id)
            prefix = current.prefix if current is not None else self.config.invoice_prefix

        counter = SequenceCounter(prefix=prefix, next_number=start_number)
        self.store.write_counter(tenant_id, counter)
        logger.info("Reset numbering for tenant %s to %s", tenant_id, counter.next_number)
        return counter
