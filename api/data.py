"""GET /api/data - unified read endpoint."""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Query, Request

from api.base import success_response
from core.lifecycle import effective_payment_status, effective_status
from core.models import InvoiceStatus
from utils.money import format_currency


VALID_TYPES = {"invoices", "stats", "next_number"}
VALID_FILTERS = {"all", "overdue", "recent"} | {s.value for s in InvoiceStatus}


def create_data_router(services: dict) -> APIRouter:
    router = APIRouter()

    invoice_svc = services["invoice"]
    currency = invoice_svc.config.currency

    @router.get("/data")
    async def get_data(
        request: Request,
        type: str | None = Query(None),
        id: str | None = Query(None),
        filter: str | None = Query(None),
        today: date | None = Query(None),
        limit: int = Query(50, ge=1, le=500),
    ):
        if type is None:
            raise ValueError("'type' query parameter is required")

        if type not in VALID_TYPES:
            raise ValueError(f"Unknown type '{type}'. Valid types: {', '.join(sorted(VALID_TYPES))}")

        if type == "invoices":
            return _handle_invoices(request, invoice_svc, id, filter, today, limit, currency)

        if type == "stats":
            stats = invoice_svc.dashboard_stats(today)
            data = stats.to_record()
            data["recentInvoices"] = [_present(i, today, currency) for i in stats.recent_invoices]
            return success_response(data, request).model_dump(mode="json")

        if type == "next_number":
            return success_response(
                {"invoiceNumber": invoice_svc.next_invoice_number()}, request
            ).model_dump(mode="json")

    return router


def _present(invoice, today: date | None, currency: str) -> dict:
    """Stored record with overdue inferred and the total formatted for display."""
    data = invoice.to_record()
    data["status"] = effective_status(invoice, today).value
    data["paymentStatus"] = effective_payment_status(invoice, today).value
    data["formattedTotal"] = format_currency(invoice.total, currency)
    return data


def _handle_invoices(request, invoice_svc, id, filter, today, limit, currency):
    if id:
        invoice = invoice_svc.get_by_id(UUID(id))
        if invoice is None:
            raise ValueError(f"Invoice {id} not found")
        return success_response(_present(invoice, today, currency), request).model_dump(mode="json")

    filter = filter or "all"
    if filter not in VALID_FILTERS:
        raise ValueError(f"Unknown filter '{filter}'. Valid filters: {', '.join(sorted(VALID_FILTERS))}")

    if filter == "all":
        invoices = invoice_svc.list_all(limit)
    elif filter == "recent":
        invoices = invoice_svc.recent()
    elif filter == "overdue":
        invoices = invoice_svc.list_overdue(today)
    else:
        invoices = invoice_svc.list_by_status(InvoiceStatus(filter), today)

    return success_response(
        [_present(i, today, currency) for i in invoices[:limit]], request
    ).model_dump(mode="json")
