"""Application wiring: stores, services and the FastAPI app."""

import logging
import math

from fastapi import FastAPI

from api.actions import create_actions_router
from api.data import create_data_router
from api.errors import register_error_handlers
from api.middleware import RequestIDMiddleware, TenantMiddleware
from clients.postgres_client import PostgresClient
from clients.valkey_client import ValkeyClient
from clients.vault_client import get_database_url, get_valkey_url
from core.audit import AuditLogger
from core.config import InvoicingConfig
from core.event_bus import EventBus
from core.numbering import InvoiceNumberAllocator
from core.services.invoice_service import InvoiceService
from core.stores.postgres import PostgresCounterStore, PostgresInvoiceStore
from core.stores.valkey import ValkeyCounterStore

logger = logging.getLogger(__name__)


def build_services(config: InvoicingConfig | None = None, event_bus: EventBus | None = None) -> dict:
    """
    Build the service dict from Vault-provided connection URLs.

    Invoices and the audit log live in Postgres. Counters live in Postgres
    or Valkey depending on config.counter_store.
    """
    config = config or InvoicingConfig.from_env()
    # Connect and TCP timeouts follow the allocation budget.
    postgres = PostgresClient(
        get_database_url(),
        connect_timeout=math.ceil(config.allocation_timeout_seconds),
        tcp_timeout_seconds=config.allocation_timeout_seconds,
    )

    if config.counter_store == "valkey":
        counter_store = ValkeyCounterStore(
            ValkeyClient(get_valkey_url(), socket_timeout=config.allocation_timeout_seconds)
        )
    else:
        counter_store = PostgresCounterStore(postgres)

    logger.info("Invoice counters stored in %s", config.counter_store)

    invoice_service = InvoiceService(
        store=PostgresInvoiceStore(postgres),
        allocator=InvoiceNumberAllocator(counter_store, config),
        audit=AuditLogger(postgres),
        event_bus=event_bus or EventBus(),
        config=config,
    )
    return {"invoice": invoice_service}


def create_app(services: dict) -> FastAPI:
    """FastAPI app with tenant middleware, error handlers, and data/actions routes."""
    app = FastAPI(title="Invoicing")
    # Last added runs first: request ids wrap the tenant check.
    app.add_middleware(TenantMiddleware)
    app.add_middleware(RequestIDMiddleware)
    register_error_handlers(app)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    app.include_router(create_data_router(services), prefix="/api")
    app.include_router(create_actions_router(services), prefix="/api")

    return app
