"""API test fixtures: TestClient over in-memory stores."""

import pytest
from starlette.testclient import TestClient

from api.app import create_app


@pytest.fixture
def app(invoice_service):
    return create_app({"invoice": invoice_service})


@pytest.fixture
def client(app, test_user_id):
    """TestClient that sends the primary test user's tenant header."""
    client = TestClient(app, raise_server_exceptions=False)
    client.headers.update({"X-User-ID": str(test_user_id)})
    return client


@pytest.fixture
def client_b(app, test_user_b_id):
    """TestClient acting as the secondary test user."""
    client = TestClient(app, raise_server_exceptions=False)
    client.headers.update({"X-User-ID": str(test_user_b_id)})
    return client


@pytest.fixture
def unauthed_client(app):
    """TestClient with no tenant header."""
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def create_invoice(client):
    """POST a create action and return the created invoice record."""
    def _create(**data):
        payload = {
            "date": "2024-06-01",
            "dueDate": "2024-07-01",
            "to": {"name": "Acme Ltd"},
            "items": [
                {"description": "Design", "quantity": 2, "unitPrice": 50},
                {"description": "Build", "quantity": 1, "unitPrice": 100},
            ],
            "taxRate": 15,
            "discountType": "percentage",
            "discountValue": 10,
        }
        payload.update(data)
        response = client.post("/api/actions", json={
            "domain": "invoice",
            "action": "create",
            "data": payload,
        })
        assert response.status_code == 200, response.text
        return response.json()["data"]
    return _create
