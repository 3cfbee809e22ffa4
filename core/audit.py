"""
Audit trail for invoices and numbering counters.

Rows in audit_log are append-only and attributed to the tenant that made the
change. Invoice payloads are stored as camelCase records, the same shape the
API returns, with money as exact decimal strings.
"""

import logging
from enum import Enum
from typing import Any, Iterable
from uuid import UUID, uuid4

from psycopg2.extras import Json

from clients.postgres_client import PostgresClient
from utils.user_context import get_current_user_id
from utils.timezone import now_utc

logger = logging.getLogger(__name__)

# Bookkeeping fields that change on every write.
IGNORED_FIELDS = frozenset({"updatedAt"})

_INSERT_SQL = """
    INSERT INTO audit_log (id, user_id, entity_type, entity_id, action, changes, created_at)
    VALUES (%s, %s, %s, %s, %s, %s, %s)
"""

_HISTORY_SQL = """
    SELECT id, user_id, entity_type, entity_id, action, changes, created_at
    FROM audit_log
    WHERE entity_type = %s AND entity_id = %s
    ORDER BY created_at DESC
    LIMIT %s
"""


class AuditEntity(str, Enum):
    INVOICE = "invoice"
    # Keyed by tenant id; one counter per tenant.
    INVOICE_COUNTER = "invoice_counter"


class AuditAction(Enum):
    """What happened to the entity."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    TRANSITION = "transition"
    RESET = "reset"


def compute_changes(
    old: dict[str, Any],
    new: dict[str, Any],
    exclude_fields: Iterable[str] | None = None,
) -> dict[str, dict[str, Any]]:
    """
    Field-level diff of two records: {field: {"old": ..., "new": ...}}.

    Fields in exclude_fields (IGNORED_FIELDS by default) never appear.
    Identical records give {}.
    """
    skip = IGNORED_FIELDS if exclude_fields is None else frozenset(exclude_fields)
    return {
        key: {"old": old.get(key), "new": new.get(key)}
        for key in sorted(old.keys() | new.keys())
        if key not in skip and old.get(key) != new.get(key)
    }


def status_changes(old: dict[str, Any], new: dict[str, Any]) -> dict[str, dict[str, Any]]:
    """compute_changes restricted to the two lifecycle axes."""
    tracked = {"status", "paymentStatus"}
    return compute_changes(
        {k: v for k, v in old.items() if k in tracked},
        {k: v for k, v in new.items() if k in tracked},
    )


class AuditLogger:
    """
    Writes invoice and counter changes to audit_log.

    Change payloads by action:
        CREATE      {"created": <record>}
        UPDATE      compute_changes(old, new)
        TRANSITION  status_changes(old, new)
        DELETE      {"deleted": <record>}
        RESET       {"reset": {"prefix": ..., "next_number": ...}}
    """

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    def log_change(
        self,
        entity_type: AuditEntity | str,
        entity_id: UUID,
        action: AuditAction,
        changes: dict[str, Any],
        user_id: UUID | None = None,
    ) -> None:
        """
        Append one audit row.

        user_id defaults to the current user context; with no context this
        raises before anything is written.
        """
        if user_id is None:
            user_id = get_current_user_id()

        entity = AuditEntity(entity_type)
        self.postgres.execute(
            _INSERT_SQL,
            (uuid4(), user_id, entity.value, entity_id, action.value, Json(changes), now_utc()),
        )
        logger.debug("Audited %s %s %s", action.value, entity.value, entity_id)

    def get_entity_history(
        self,
        entity_type: AuditEntity | str,
        entity_id: UUID,
        limit: int = 100,
    ) -> list[dict[str, Any]]:
        """Audit rows for one entity, newest first."""
        return self.postgres.execute(
            _HISTORY_SQL,
            (AuditEntity(entity_type).value, entity_id, limit),
        )
