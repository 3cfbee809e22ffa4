"""Tests for invoicing domain events."""

import dataclasses

import pytest

from core.events import (
    FallbackNumberIssued,
    InvoiceCancelled,
    InvoiceCreated,
    InvoiceEvent,
    InvoicePaid,
    InvoiceSent,
    InvoiceViewed,
    InvoicingEvent,
)


class TestInvoiceEvents:

    @pytest.mark.parametrize("event_cls", [
        InvoiceCreated, InvoiceSent, InvoiceViewed, InvoicePaid,
        InvoiceCancelled, FallbackNumberIssued,
    ])
    def test_create_sets_payload_and_metadata(self, event_cls):
        payload = object()

        event = event_cls.create(invoice=payload)

        assert isinstance(event, event_cls)
        assert isinstance(event, InvoiceEvent)
        assert isinstance(event, InvoicingEvent)
        assert event.invoice is payload
        assert event.event_id
        assert event.occurred_at.tzinfo is not None

    def test_events_are_immutable(self):
        event = InvoiceSent.create(invoice=None)

        with pytest.raises(dataclasses.FrozenInstanceError):
            event.invoice = "changed"

    def test_each_event_gets_unique_id(self):
        a = InvoicePaid.create(invoice=None)
        b = InvoicePaid.create(invoice=None)

        assert a.event_id != b.event_id
