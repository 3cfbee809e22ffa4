"""Tests for dashboard summary figures."""

from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from core.models import Invoice, InvoiceStatus, PaymentStatus
from core.stats import compute_dashboard_stats
from utils.timezone import now_utc


@pytest.fixture
def make_invoice(today):
    def _make(total, status=InvoiceStatus.SENT, payment_status=PaymentStatus.UNPAID,
              due_in_days=30, created_offset_minutes=0):
        created = now_utc() + timedelta(minutes=created_offset_minutes)
        return Invoice(
            id=uuid4(),
            user_id=uuid4(),
            invoice_number="INV-1001",
            issue_date=today,
            due_date=today + timedelta(days=due_in_days),
            total=Decimal(str(total)),
            status=status,
            payment_status=payment_status,
            created_at=created,
            updated_at=created,
        )
    return _make


class TestComputeDashboardStats:

    def test_empty(self, today):
        stats = compute_dashboard_stats([], today)

        assert stats.total_invoices == 0
        assert stats.total_revenue == 0
        assert stats.pending_amount == 0
        assert stats.overdue_amount == 0
        assert stats.recent_invoices == []

    def test_buckets_by_payment_and_due_date(self, make_invoice, today):
        invoices = [
            make_invoice(100, status=InvoiceStatus.PAID, payment_status=PaymentStatus.PAID),
            make_invoice(50),
            make_invoice(30, payment_status=PaymentStatus.PARTIAL),
            make_invoice(70, due_in_days=-5),
        ]

        stats = compute_dashboard_stats(invoices, today)

        assert stats.total_invoices == 4
        assert stats.total_revenue == Decimal("100")
        assert stats.pending_amount == Decimal("80")
        assert stats.overdue_amount == Decimal("70")
        assert stats.paid_invoices == 1
        assert stats.unpaid_invoices == 3

    def test_cancelled_only_counted_in_total(self, make_invoice, today):
        invoices = [make_invoice(500, status=InvoiceStatus.CANCELLED, due_in_days=-5)]

        stats = compute_dashboard_stats(invoices, today)

        assert stats.total_invoices == 1
        assert stats.pending_amount == 0
        assert stats.overdue_amount == 0
        assert stats.unpaid_invoices == 0

    def test_recent_newest_first_and_limited(self, make_invoice, today):
        invoices = [make_invoice(1, created_offset_minutes=i) for i in range(7)]

        stats = compute_dashboard_stats(invoices, today, recent_limit=5)

        assert len(stats.recent_invoices) == 5
        assert stats.recent_invoices[0] is invoices[6]
        assert stats.recent_invoices[-1] is invoices[2]

    def test_overdue_depends_on_today(self, make_invoice, today):
        invoice = make_invoice(40, due_in_days=3)

        before = compute_dashboard_stats([invoice], today)
        after = compute_dashboard_stats([invoice], today + timedelta(days=4))

        assert before.overdue_amount == 0
        assert after.overdue_amount == Decimal("40")
