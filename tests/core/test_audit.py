"""Tests for the audit trail."""

from unittest.mock import Mock
from uuid import uuid4

import pytest
from psycopg2.extras import Json

from clients.postgres_client import PostgresClient
from core.audit import AuditAction, AuditEntity, AuditLogger, compute_changes, status_changes


class TestAuditAction:
    """Tests for AuditAction enum."""

    def test_action_values(self):
        assert AuditAction.CREATE.value == "create"
        assert AuditAction.UPDATE.value == "update"
        assert AuditAction.DELETE.value == "delete"
        assert AuditAction.TRANSITION.value == "transition"
        assert AuditAction.RESET.value == "reset"

    def test_entities_compare_as_strings(self):
        assert AuditEntity.INVOICE == "invoice"
        assert AuditEntity.INVOICE_COUNTER == "invoice_counter"


class TestComputeChanges:
    """Tests for compute_changes utility function."""

    def test_detects_changed_fields(self):
        """Different values for same key detected."""
        old = {"status": "draft", "total": 210.0}
        new = {"status": "sent", "total": 210.0}

        changes = compute_changes(old, new)

        assert changes == {"status": {"old": "draft", "new": "sent"}}

    def test_detects_added_and_removed_fields(self):
        old = {"notes": "x"}
        new = {"sentAt": "2024-06-01T00:00:00Z"}

        changes = compute_changes(old, new)

        assert changes["notes"] == {"old": "x", "new": None}
        assert changes["sentAt"] == {"old": None, "new": "2024-06-01T00:00:00Z"}

    def test_excludes_updated_at_by_default(self):
        """updatedAt not reported as change."""
        old = {"total": 1, "updatedAt": "a"}
        new = {"total": 1, "updatedAt": "b"}

        assert compute_changes(old, new) == {}

    def test_custom_exclude_fields(self):
        """Can exclude additional fields."""
        old = {"total": 1, "subTotal": 1}
        new = {"total": 2, "subTotal": 2}

        changes = compute_changes(old, new, exclude_fields={"updatedAt", "subTotal"})

        assert "total" in changes
        assert "subTotal" not in changes


class TestStatusChanges:

    def test_only_lifecycle_axes_reported(self):
        old = {"status": "draft", "paymentStatus": "unpaid", "sentAt": None}
        new = {"status": "sent", "paymentStatus": "unpaid", "sentAt": "2024-06-01T00:00:00Z"}

        assert status_changes(old, new) == {"status": {"old": "draft", "new": "sent"}}

    def test_both_axes(self):
        old = {"status": "sent", "paymentStatus": "unpaid"}
        new = {"status": "paid", "paymentStatus": "paid"}

        assert set(status_changes(old, new)) == {"status", "paymentStatus"}


class TestAuditLogger:
    """Tests for AuditLogger class."""

    @pytest.fixture
    def postgres(self):
        return Mock(spec=PostgresClient)

    def test_log_change_inserts_row(self, postgres, as_test_user, test_user_id):
        """Insert carries entity, action and the context user."""
        entity_id = uuid4()

        AuditLogger(postgres).log_change(
            entity_type="invoice",
            entity_id=entity_id,
            action=AuditAction.CREATE,
            changes={"created": {"invoiceNumber": "INV-1001"}}
        )

        query, params = postgres.execute.call_args.args
        assert "INSERT INTO audit_log" in query
        assert params[1] == test_user_id
        assert params[2] == "invoice"
        assert params[3] == entity_id
        assert params[4] == "create"

    def test_changes_wrapped_as_json(self, postgres, as_test_user):
        changes = {"status": {"old": "draft", "new": "sent"}}

        AuditLogger(postgres).log_change("invoice", uuid4(), AuditAction.UPDATE, changes)

        params = postgres.execute.call_args.args[1]
        assert isinstance(params[5], Json)
        assert params[5].adapted == changes

    def test_explicit_user_overrides_context(self, postgres, as_test_user, test_user_b_id):
        AuditLogger(postgres).log_change(
            "invoice", uuid4(), AuditAction.DELETE, {"deleted": {}}, user_id=test_user_b_id
        )

        assert postgres.execute.call_args.args[1][1] == test_user_b_id

    def test_requires_user_context(self, postgres):
        with pytest.raises(RuntimeError):
            AuditLogger(postgres).log_change("invoice", uuid4(), AuditAction.CREATE, {})

        postgres.execute.assert_not_called()

    def test_get_entity_history_filters_by_entity(self, postgres):
        entity_id = uuid4()
        postgres.execute.return_value = [{"action": "create"}]

        history = AuditLogger(postgres).get_entity_history("invoice", entity_id)

        assert history == [{"action": "create"}]
        assert postgres.execute.call_args.args[1] == ("invoice", entity_id, 100)

    def test_enum_entity_stored_as_plain_value(self, postgres, as_test_user):
        AuditLogger(postgres).log_change(
            AuditEntity.INVOICE_COUNTER, uuid4(), AuditAction.RESET, {"reset": {}}
        )

        params = postgres.execute.call_args.args[1]
        assert type(params[2]) is str
        assert params[2] == "invoice_counter"
        assert params[4] == "reset"

    def test_unknown_entity_rejected(self, postgres, as_test_user):
        with pytest.raises(ValueError):
            AuditLogger(postgres).log_change("customer", uuid4(), AuditAction.CREATE, {})

        postgres.execute.assert_not_called()
