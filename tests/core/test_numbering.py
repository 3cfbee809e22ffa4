"""Tests for per-tenant invoice numbering."""

import logging
import re
import threading
from datetime import datetime, timezone
from unittest.mock import Mock
from uuid import uuid4

import pytest

from core.config import InvoicingConfig
from core.errors import ConcurrentAllocationConflict, CounterUnavailable
from core.models import SequenceCounter
from core.numbering import (
    InvoiceNumberAllocator,
    allocate_next_invoice_number,
    fallback_invoice_number,
    format_invoice_number,
)
from core.stores.base import CounterStore


FALLBACK_PATTERN = re.compile(r"^INV-\d{6}$")


# =============================================================================
# PURE HELPERS
# =============================================================================


class TestFormatInvoiceNumber:

    def test_pads_to_three_digits(self):
        assert format_invoice_number("INV", 7) == "INV-007"

    def test_wider_numbers_not_truncated(self):
        assert format_invoice_number("INV", 1001) == "INV-1001"

    def test_custom_prefix(self):
        assert format_invoice_number("ACME", 42) == "ACME-042"


class TestAllocateNextInvoiceNumber:

    def test_formats_and_advances(self):
        number, updated = allocate_next_invoice_number(SequenceCounter(prefix="INV", next_number=1001))

        assert number == "INV-1001"
        assert updated == SequenceCounter(prefix="INV", next_number=1002)

    def test_does_not_mutate_input(self):
        counter = SequenceCounter(prefix="INV", next_number=5)

        allocate_next_invoice_number(counter)

        assert counter.next_number == 5


class TestFallbackInvoiceNumber:

    def test_matches_fallback_pattern(self):
        assert FALLBACK_PATTERN.match(fallback_invoice_number())

    def test_uses_last_six_digits_of_millis(self):
        moment = datetime(2024, 1, 1, 0, 0, 0, 123000, tzinfo=timezone.utc)
        millis = str(int(moment.timestamp() * 1000))

        assert fallback_invoice_number(moment) == f"INV-{millis[-6:]}"

    def test_custom_prefix(self):
        assert fallback_invoice_number(prefix="TMP").startswith("TMP-")


# =============================================================================
# ALLOCATOR
# =============================================================================


@pytest.fixture
def tenant():
    return uuid4()


@pytest.fixture
def flaky_store():
    """CounterStore stand-in whose claim_next behavior each test scripts."""
    return Mock(spec=CounterStore)


class TestAllocate:

    def test_first_allocation_uses_start_number(self, allocator, tenant):
        allocation = allocator.allocate(tenant)

        assert allocation.invoice_number == "INV-1001"
        assert allocation.sequential is True
        assert allocation.counter == SequenceCounter(prefix="INV", next_number=1002)

    def test_successive_allocations_are_monotonic(self, allocator, tenant):
        numbers = [allocator.allocate(tenant).invoice_number for _ in range(3)]

        assert numbers == ["INV-1001", "INV-1002", "INV-1003"]

    def test_counter_advances_by_one_per_allocation(self, allocator, counter_store, tenant):
        allocator.allocate(tenant)
        allocator.allocate(tenant)

        assert counter_store.read_counter(tenant).next_number == 1003

    def test_tenants_are_independent(self, allocator):
        a, b = uuid4(), uuid4()

        allocator.allocate(a)
        allocator.allocate(a)

        assert allocator.allocate(b).invoice_number == "INV-1001"

    def test_existing_counter_prefix_wins(self, allocator, counter_store, tenant):
        counter_store.write_counter(tenant, SequenceCounter(prefix="ACME", next_number=7))

        assert allocator.allocate(tenant).invoice_number == "ACME-007"

    def test_concurrent_allocations_never_duplicate(self, allocator, tenant):
        results = []
        lock = threading.Lock()

        def worker():
            for _ in range(25):
                number = allocator.allocate(tenant).invoice_number
                with lock:
                    results.append(number)

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(results) == 100
        assert len(set(results)) == 100

    def test_passes_configured_timeout(self, flaky_store, tenant):
        flaky_store.claim_next.return_value = SequenceCounter(prefix="INV", next_number=1)
        allocator = InvoiceNumberAllocator(flaky_store, InvoicingConfig(allocation_timeout_seconds=0.5))

        allocator.allocate(tenant)

        assert flaky_store.claim_next.call_args.kwargs["timeout"] == 0.5


class TestAllocateFallback:

    def test_unavailable_store_falls_back(self, flaky_store, tenant):
        flaky_store.claim_next.side_effect = CounterUnavailable("down")
        allocator = InvoiceNumberAllocator(flaky_store)

        allocation = allocator.allocate(tenant)

        assert allocation.sequential is False
        assert allocation.counter is None
        assert FALLBACK_PATTERN.match(allocation.invoice_number)

    def test_unavailable_store_is_not_retried(self, flaky_store, tenant):
        flaky_store.claim_next.side_effect = CounterUnavailable("down")

        InvoiceNumberAllocator(flaky_store).allocate(tenant)

        assert flaky_store.claim_next.call_count == 1

    def test_conflict_is_retried_once(self, flaky_store, tenant):
        flaky_store.claim_next.side_effect = [
            ConcurrentAllocationConflict("race"),
            SequenceCounter(prefix="INV", next_number=1002),
        ]

        allocation = InvoiceNumberAllocator(flaky_store).allocate(tenant)

        assert allocation.invoice_number == "INV-1002"
        assert allocation.sequential is True
        assert flaky_store.claim_next.call_count == 2

    def test_second_conflict_falls_back(self, flaky_store, tenant):
        flaky_store.claim_next.side_effect = ConcurrentAllocationConflict("race")

        allocation = InvoiceNumberAllocator(flaky_store).allocate(tenant)

        assert allocation.sequential is False
        assert flaky_store.claim_next.call_count == 2

    def test_fallback_logs_warning(self, flaky_store, tenant, caplog):
        flaky_store.claim_next.side_effect = CounterUnavailable("timeout")

        with caplog.at_level(logging.WARNING, logger="core.numbering"):
            InvoiceNumberAllocator(flaky_store).allocate(tenant)

        assert any("fallback" in r.getMessage() for r in caplog.records)

    def test_fallback_uses_configured_prefix(self, flaky_store, tenant):
        flaky_store.claim_next.side_effect = CounterUnavailable("down")
        allocator = InvoiceNumberAllocator(flaky_store, InvoicingConfig(fallback_prefix="TMP"))

        assert allocator.allocate(tenant).invoice_number.startswith("TMP-")

    def test_lost_acknowledgement_skips_a_number(self, counter_store, tenant):
        """Store incremented but the caller never heard back: gap, no duplicate."""
        calls = {"n": 0}
        real_claim = counter_store.claim_next

        def claim_then_drop_first_ack(*args, **kwargs):
            calls["n"] += 1
            claimed = real_claim(*args, **kwargs)
            if calls["n"] == 1:
                raise ConcurrentAllocationConflict("ack lost")
            return claimed

        counter_store.claim_next = claim_then_drop_first_ack
        allocator = InvoiceNumberAllocator(counter_store)

        allocation = allocator.allocate(tenant)

        assert allocation.invoice_number == "INV-1002"
        assert counter_store.read_counter(tenant).next_number == 1003


# =============================================================================
# PEEK AND RESET
# =============================================================================


class TestPeek:

    def test_new_tenant_previews_start_number(self, allocator, tenant):
        assert allocator.peek(tenant) == "INV-1001"

    def test_peek_does_not_consume(self, allocator, tenant):
        allocator.peek(tenant)
        allocator.peek(tenant)

        assert allocator.allocate(tenant).invoice_number == "INV-1001"

    def test_peek_follows_allocations(self, allocator, tenant):
        allocator.allocate(tenant)

        assert allocator.peek(tenant) == "INV-1002"

    def test_unavailable_store_returns_none(self, flaky_store, tenant):
        flaky_store.read_counter.side_effect = CounterUnavailable("down")

        assert InvoiceNumberAllocator(flaky_store).peek(tenant) is None


class TestReset:

    def test_reset_lowers_next_number(self, allocator, tenant):
        for _ in range(3):
            allocator.allocate(tenant)

        allocator.reset(tenant, start_number=1)

        assert allocator.allocate(tenant).invoice_number == "INV-001"

    def test_reset_keeps_existing_prefix(self, allocator, counter_store, tenant):
        counter_store.write_counter(tenant, SequenceCounter(prefix="ACME", next_number=50))

        counter = allocator.reset(tenant, start_number=10)

        assert counter == SequenceCounter(prefix="ACME", next_number=10)

    def test_reset_can_change_prefix(self, allocator, tenant):
        allocator.reset(tenant, start_number=1, prefix="NEW")

        assert allocator.allocate(tenant).invoice_number == "NEW-001"

    def test_reset_propagates_store_failure(self, flaky_store, tenant):
        flaky_store.read_counter.return_value = None
        flaky_store.write_counter.side_effect = CounterUnavailable("down")

        with pytest.raises(CounterUnavailable):
            InvoiceNumberAllocator(flaky_store).reset(tenant)

    def test_start_number_must_be_positive(self, allocator, tenant):
        with pytest.raises(ValueError):
            allocator.reset(tenant, start_number=0)
