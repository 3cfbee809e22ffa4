"""POST /api/actions - unified mutation endpoint."""

from uuid import UUID

from fastapi import APIRouter, Request
from pydantic import BaseModel

from api.base import success_response
from core.models import InvoiceCreate, InvoiceUpdate


class ActionRequest(BaseModel):
    domain: str
    action: str
    data: dict


def create_actions_router(services: dict) -> APIRouter:
    router = APIRouter()

    handlers = {
        "invoice": InvoiceHandler(services["invoice"]),
        "numbering": NumberingHandler(services["invoice"]),
    }

    @router.post("/actions")
    async def perform_action(request: Request, body: ActionRequest):
        handler = handlers.get(body.domain)
        if handler is None:
            raise ValueError(
                f"Unknown domain '{body.domain}'. "
                f"Valid domains: {', '.join(sorted(handlers.keys()))}"
            )

        if body.action not in handler.ALLOWED_ACTIONS:
            raise ValueError(
                f"Action '{body.action}' not allowed on '{body.domain}'. "
                f"Allowed: {', '.join(sorted(handler.ALLOWED_ACTIONS))}"
            )

        method = getattr(handler, f"_handle_{body.action}", None)
        result = method(body.data)
        return success_response(result, request).model_dump(mode="json")

    return router


# =============================================================================
# HANDLER CLASSES
# =============================================================================


def _invoice_id(data: dict) -> UUID:
    if "id" not in data:
        raise ValueError("'id' is required")
    return UUID(str(data["id"]))


class InvoiceHandler:
    ALLOWED_ACTIONS = {
        "create", "update", "delete", "duplicate",
        "send", "view", "mark_paid", "record_partial_payment", "cancel",
    }

    def __init__(self, service):
        self.service = service

    def _handle_create(self, data: dict):
        invoice = self.service.create(InvoiceCreate(**data))
        return invoice.to_record()

    def _handle_update(self, data: dict):
        invoice_id = _invoice_id(data)
        data.pop("id")
        invoice = self.service.update(invoice_id, InvoiceUpdate(**data))
        return invoice.to_record()

    def _handle_delete(self, data: dict):
        invoice_id = _invoice_id(data)
        deleted = self.service.delete(invoice_id)
        if not deleted:
            raise ValueError(f"Invoice {invoice_id} not found")
        return {"deleted": True}

    def _handle_duplicate(self, data: dict):
        invoice = self.service.duplicate(_invoice_id(data))
        return invoice.to_record()

    def _handle_send(self, data: dict):
        invoice = self.service.send(_invoice_id(data))
        return invoice.to_record()

    def _handle_view(self, data: dict):
        invoice = self.service.mark_viewed(_invoice_id(data))
        return invoice.to_record()

    def _handle_mark_paid(self, data: dict):
        invoice = self.service.mark_paid(_invoice_id(data))
        return invoice.to_record()

    def _handle_record_partial_payment(self, data: dict):
        invoice = self.service.record_partial_payment(_invoice_id(data))
        return invoice.to_record()

    def _handle_cancel(self, data: dict):
        invoice = self.service.cancel(_invoice_id(data))
        return invoice.to_record()


class NumberingHandler:
    ALLOWED_ACTIONS = {"reset"}

    def __init__(self, service):
        self.service = service

    def _handle_reset(self, data: dict):
        start_number = int(data.get("startNumber", data.get("start_number", 1)))
        if start_number < 1:
            raise ValueError("startNumber must be at least 1")
        counter = self.service.reset_numbering(start_number, data.get("prefix"))
        return {"prefix": counter.prefix, "nextNumber": counter.next_number}
