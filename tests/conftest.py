"""Shared test fixtures for the invoicing test suite."""

import pytest
from datetime import date
from decimal import Decimal
from pathlib import Path
from unittest.mock import Mock
from uuid import UUID

from dotenv import load_dotenv

# Load .env file BEFORE any other imports that might use env vars
load_dotenv(Path(__file__).parent.parent / ".env", override=True)

# Reset vault client singleton to pick up env vars
import clients.vault_client as vault_module
vault_module._vault_client_instance = None
vault_module._secret_cache.clear()

from core.audit import AuditLogger
from core.config import InvoicingConfig
from core.event_bus import EventBus
from core.models import LineItem
from core.numbering import InvoiceNumberAllocator
from core.services.invoice_service import InvoiceService
from core.stores.inmemory import InMemoryCounterStore, InMemoryInvoiceStore
from utils.user_context import user_context, clear_current_user_id


# =============================================================================
# TEST USER CONSTANTS
# =============================================================================

# Primary test user - use for single-user tests
TEST_USER_ID = UUID("00000000-0000-0000-0000-000000000001")

# Secondary test user - use for tenant isolation tests
TEST_USER_B_ID = UUID("00000000-0000-0000-0000-000000000002")

# Fixed "today" so due-date logic is deterministic
TODAY = date(2024, 6, 15)


# =============================================================================
# USER CONTEXT FIXTURES
# =============================================================================


@pytest.fixture(autouse=True)
def reset_user_context():
    """Ensure clean user context before and after each test."""
    clear_current_user_id()
    yield
    clear_current_user_id()


@pytest.fixture
def test_user_id() -> UUID:
    """The primary test user's ID."""
    return TEST_USER_ID


@pytest.fixture
def test_user_b_id() -> UUID:
    """The secondary test user's ID (for isolation tests)."""
    return TEST_USER_B_ID


@pytest.fixture
def as_test_user(test_user_id):
    """Run the test as the primary test user."""
    with user_context(test_user_id):
        yield test_user_id


@pytest.fixture
def today() -> date:
    return TODAY


# =============================================================================
# STORE & SERVICE FIXTURES
# =============================================================================


@pytest.fixture
def config() -> InvoicingConfig:
    return InvoicingConfig()


@pytest.fixture
def counter_store() -> InMemoryCounterStore:
    return InMemoryCounterStore()


@pytest.fixture
def invoice_store() -> InMemoryInvoiceStore:
    return InMemoryInvoiceStore()


@pytest.fixture
def allocator(counter_store, config) -> InvoiceNumberAllocator:
    return InvoiceNumberAllocator(counter_store, config)


@pytest.fixture
def audit():
    """Audit logger stand-in. Records calls, writes nothing."""
    return Mock(spec=AuditLogger)


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def invoice_service(invoice_store, allocator, audit, event_bus, config) -> InvoiceService:
    return InvoiceService(invoice_store, allocator, audit, event_bus, config)


# =============================================================================
# DATA HELPERS
# =============================================================================


@pytest.fixture
def make_items():
    """make_items((2, "50.00"), (1, "100")) -> two line items."""
    def _make(*pairs) -> list[LineItem]:
        return [
            LineItem(description=f"Item {i}", quantity=Decimal(str(q)), unit_price=Decimal(str(p)))
            for i, (q, p) in enumerate(pairs, start=1)
        ]
    return _make
