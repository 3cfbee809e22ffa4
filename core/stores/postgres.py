"""
PostgreSQL-backed counter and invoice stores.

Schema (RLS on both tables, keyed on app.current_user_id):

    invoice_counters(user_id uuid primary key, prefix text,
                     next_number integer check (next_number >= 1),
                     updated_at timestamptz)

    invoices(id uuid primary key, user_id uuid, invoice_number text,
             status text, payment_status text, due_date date,
             record jsonb, created_at timestamptz, updated_at timestamptz)

The invoice record is stored whole, in its camelCase shape, in `record`.
The scalar columns duplicate the fields queries filter and sort on.
"""

import logging
from uuid import UUID

import psycopg2
import psycopg2.errors
from psycopg2.extras import Json

from clients.postgres_client import PostgresClient
from core.errors import ConcurrentAllocationConflict, CounterUnavailable
from core.models import Invoice, SequenceCounter
from utils.timezone import now_utc

logger = logging.getLogger(__name__)


class PostgresCounterStore:
    """Sequence counters in invoice_counters, one row per tenant."""

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    def read_counter(self, tenant_id: UUID) -> SequenceCounter | None:
        try:
            row = self.postgres.execute_single(
                "SELECT prefix, next_number FROM invoice_counters WHERE user_id = %s",
                (tenant_id,)
            )
        except psycopg2.Error as e:
            raise CounterUnavailable(f"Could not read counter for {tenant_id}: {e}") from e

        if row is None:
            return None
        return SequenceCounter(prefix=row["prefix"], next_number=row["next_number"])

    def write_counter(self, tenant_id: UUID, counter: SequenceCounter) -> None:
        try:
            self.postgres.execute_returning(
                """
                INSERT INTO invoice_counters (user_id, prefix, next_number, updated_at)
                VALUES (%s, %s, %s, %s)
                ON CONFLICT (user_id) DO UPDATE
                SET prefix = EXCLUDED.prefix,
                    next_number = EXCLUDED.next_number,
                    updated_at = EXCLUDED.updated_at
                RETURNING user_id
                """,
                (tenant_id, counter.prefix, counter.next_number, now_utc())
            )
        except psycopg2.Error as e:
            raise CounterUnavailable(f"Could not write counter for {tenant_id}: {e}") from e

    def claim_next(
        self,
        tenant_id: UUID,
        initial: SequenceCounter,
        timeout: float | None = None,
    ) -> SequenceCounter:
        """
        Single-statement upsert-and-increment.

        The row lock taken by ON CONFLICT DO UPDATE serializes concurrent
        claims for the same tenant. A new tenant's row is created already
        advanced past `initial.next_number`, which is returned as claimed.
        """
        timeout_ms = int(timeout * 1000) if timeout is not None else None

        try:
            rows = self.postgres.execute_returning(
                """
                INSERT INTO invoice_counters (user_id, prefix, next_number, updated_at)
                VALUES (%s, %s, %s, %s)
                ON CONFLICT (user_id) DO UPDATE
                SET next_number = invoice_counters.next_number + 1,
                    updated_at = EXCLUDED.updated_at
                RETURNING prefix, next_number - 1 AS claimed_number
                """,
                (tenant_id, initial.prefix, initial.next_number + 1, now_utc()),
                statement_timeout_ms=timeout_ms,
            )
        except (psycopg2.errors.SerializationFailure, psycopg2.errors.DeadlockDetected) as e:
            raise ConcurrentAllocationConflict(
                f"Concurrent counter increment for {tenant_id}"
            ) from e
        except psycopg2.errors.QueryCanceled as e:
            raise CounterUnavailable(
                f"Counter increment for {tenant_id} exceeded {timeout_ms}ms"
            ) from e
        except psycopg2.Error as e:
            raise CounterUnavailable(f"Could not increment counter for {tenant_id}: {e}") from e

        row = rows[0]
        return SequenceCounter(prefix=row["prefix"], next_number=row["claimed_number"])


class PostgresInvoiceStore:
    """Invoices in the invoices table, whole record as JSONB."""

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    def get(self, tenant_id: UUID, invoice_id: UUID) -> Invoice | None:
        row = self.postgres.execute_single(
            "SELECT record FROM invoices WHERE id = %s AND user_id = %s",
            (invoice_id, tenant_id)
        )
        if row is None:
            return None
        return Invoice.model_validate(row["record"])

    def insert(self, invoice: Invoice) -> Invoice:
        row = self.postgres.execute_returning(
            """
            INSERT INTO invoices (
                id, user_id, invoice_number, status, payment_status,
                due_date, record, created_at, updated_at
            ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING record
            """,
            (
                invoice.id, invoice.user_id, invoice.invoice_number,
                invoice.status.value, invoice.payment_status.value,
                invoice.due_date, Json(invoice.to_stored_record()),
                invoice.created_at, invoice.updated_at,
            )
        )[0]
        return Invoice.model_validate(row["record"])

    def update(self, invoice: Invoice) -> Invoice:
        rows = self.postgres.execute_returning(
            """
            UPDATE invoices
            SET invoice_number = %s, status = %s, payment_status = %s,
                due_date = %s, record = %s, updated_at = %s
            WHERE id = %s AND user_id = %s
            RETURNING record
            """,
            (
                invoice.invoice_number, invoice.status.value, invoice.payment_status.value,
                invoice.due_date, Json(invoice.to_stored_record()), invoice.updated_at,
                invoice.id, invoice.user_id,
            )
        )
        if not rows:
            raise ValueError(f"Invoice {invoice.id} not found")
        return Invoice.model_validate(rows[0]["record"])

    def delete(self, tenant_id: UUID, invoice_id: UUID) -> bool:
        rows = self.postgres.execute_returning(
            "DELETE FROM invoices WHERE id = %s AND user_id = %s RETURNING id",
            (invoice_id, tenant_id)
        )
        return len(rows) > 0

    def list_for_user(self, tenant_id: UUID, limit: int | None = None) -> list[Invoice]:
        query = "SELECT record FROM invoices WHERE user_id = %s ORDER BY created_at DESC"
        params: tuple = (tenant_id,)
        if limit is not None:
            query += " LIMIT %s"
            params = (tenant_id, limit)

        rows = self.postgres.execute(query, params)
        return [Invoice.model_validate(row["record"]) for row in rows]
