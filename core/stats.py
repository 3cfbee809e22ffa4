"""Dashboard summary figures, computed from a tenant's invoice list."""

from datetime import date
from decimal import Decimal
from typing import Iterable

from core.lifecycle import is_overdue
from core.models import DashboardStats, Invoice, InvoiceStatus, PaymentStatus
from utils.timezone import today_utc


def compute_dashboard_stats(
    invoices: Iterable[Invoice],
    today: date | None = None,
    recent_limit: int = 5,
) -> DashboardStats:
    """
    Summarize invoices for the dashboard.

    - revenue: totals of paid invoices
    - pending: totals of unpaid/partial invoices that are not yet overdue
    - overdue: totals of invoices overdue as of `today` (inferred, not stored)

    Cancelled invoices count towards total_invoices only.
    """
    today = today or today_utc()
    invoices = list(invoices)

    total_revenue = Decimal(0)
    pending_amount = Decimal(0)
    overdue_amount = Decimal(0)
    paid_count = 0
    unpaid_count = 0

    for invoice in invoices:
        if invoice.status == InvoiceStatus.CANCELLED:
            continue
        if invoice.payment_status == PaymentStatus.PAID:
            total_revenue += invoice.total
            paid_count += 1
            continue

        unpaid_count += 1
        if is_overdue(invoice, today):
            overdue_amount += invoice.total
        else:
            pending_amount += invoice.total

    recent = sorted(invoices, key=lambda inv: inv.created_at, reverse=True)[:recent_limit]

    return DashboardStats(
        total_invoices=len(invoices),
        total_revenue=total_revenue,
        pending_amount=pending_amount,
        overdue_amount=overdue_amount,
        paid_invoices=paid_count,
        unpaid_invoices=unpaid_count,
        recent_invoices=recent,
    )
