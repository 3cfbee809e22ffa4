"""
Invoice service: numbering, totals and lifecycle for the current user.

Every write goes through the calculator, so the derived totals on a stored
invoice always match its items, tax rate and discount. Status changes go
through core.lifecycle and are rejected (not overwritten) when illegal.
Overdue is never stored; listings and stats infer it from the due date.
"""

import logging
from datetime import date, timedelta
from uuid import UUID, uuid4

from core.audit import AuditAction, AuditEntity, AuditLogger, compute_changes, status_changes
from core.calculator import apply_totals
from core.config import InvoicingConfig
from core.errors import InvalidInput, InvoiceNotFound
from core.event_bus import EventBus
from core.events import (
    FallbackNumberIssued,
    InvoiceCancelled,
    InvoiceCreated,
    InvoicePaid,
    InvoiceSent,
    InvoiceViewed,
)
from core import lifecycle
from core.models import (
    DashboardStats,
    DiscountType,
    Invoice,
    InvoiceCreate,
    InvoiceStatus,
    InvoiceUpdate,
    SequenceCounter,
)
from core.numbering import InvoiceNumberAllocator
from core.stats import compute_dashboard_stats
from core.stores.base import InvoiceStore
from utils.user_context import get_current_user_id
from utils.timezone import now_utc, today_utc

logger = logging.getLogger(__name__)

_NULLABLE_FIELDS = {"customer_id", "banking_details"}


class InvoiceService:
    """Service for invoice operations."""

    def __init__(
        self,
        store: InvoiceStore,
        allocator: InvoiceNumberAllocator,
        audit: AuditLogger,
        event_bus: EventBus,
        config: InvoicingConfig | None = None,
    ):
        self.store = store
        self.allocator = allocator
        self.audit = audit
        self.event_bus = event_bus
        self.config = config or InvoicingConfig()

    # =========================================================================
    # CRUD
    # =========================================================================

    def create(self, data: InvoiceCreate, today: date | None = None) -> Invoice:
        """
        Create a draft invoice.

        Omitted fields fall back to config: tax rate, discount type, and a
        due date `default_payment_terms_days` after the invoice date. A
        caller-supplied invoice number is kept as-is and does not consume
        the counter; otherwise the allocator hands one out.

        Returns:
            Created invoice in DRAFT / UNPAID status with totals computed
        """
        user_id = get_current_user_id()
        today = today or today_utc()

        if data.invoice_number is not None:
            invoice_number = data.invoice_number
            sequential = False
        else:
            allocation = self.allocator.allocate(user_id)
            invoice_number = allocation.invoice_number
            sequential = allocation.sequential

        issue_date = data.issue_date or today
        due_date = data.due_date or issue_date + timedelta(days=self.config.default_payment_terms_days)
        tax_rate = data.tax_rate if data.tax_rate is not None else self.config.default_tax_rate
        discount_type = data.discount_type or self.config.default_discount_type
        self._check_discount(discount_type, data.discount_value)

        now = now_utc()
        invoice = Invoice(
            id=uuid4(),
            user_id=user_id,
            invoice_number=invoice_number,
            number_is_sequential=sequential,
            issue_date=issue_date,
            due_date=due_date,
            from_party=data.from_party,
            to_party=data.to_party,
            customer_id=data.customer_id,
            items=data.items,
            notes=data.notes,
            payment_type=data.payment_type,
            tax_rate=tax_rate,
            discount_type=discount_type,
            discount_value=data.discount_value,
            banking_details=data.banking_details,
            include_banking_details=data.include_banking_details,
            template_id=data.template_id,
            created_at=now,
            updated_at=now,
        )
        invoice = self.store.insert(apply_totals(invoice))

        self.audit.log_change(
            entity_type=AuditEntity.INVOICE,
            entity_id=invoice.id,
            action=AuditAction.CREATE,
            changes={"created": invoice.to_stored_record()}
        )

        self.event_bus.publish(InvoiceCreated.create(invoice=invoice))
        if not sequential and data.invoice_number is None:
            logger.warning("Invoice %s created with fallback number %s", invoice.id, invoice_number)
            self.event_bus.publish(FallbackNumberIssued.create(invoice=invoice))

        return invoice

    def get_by_id(self, invoice_id: UUID) -> Invoice | None:
        """Get invoice by ID. None if it does not exist for the current user."""
        return self.store.get(get_current_user_id(), invoice_id)

    def update(self, invoice_id: UUID, data: InvoiceUpdate) -> Invoice:
        """
        Update editable fields and recompute totals.

        Raises:
            InvoiceNotFound: no such invoice
            InvalidInput: resulting discount is an over-100% percentage
        """
        current = self._get_or_raise(invoice_id)

        # Explicit None means "leave as is", except where None is a real value
        fields = {
            name: getattr(data, name)
            for name in data.model_fields_set
            if getattr(data, name) is not None or name in _NULLABLE_FIELDS
        }
        if not fields:
            return current

        discount_type = fields.get("discount_type", current.discount_type)
        discount_value = fields.get("discount_value", current.discount_value)
        self._check_discount(discount_type, discount_value)

        if "invoice_number" in fields and fields["invoice_number"] != current.invoice_number:
            fields["number_is_sequential"] = False

        fields["updated_at"] = now_utc()
        updated = self.store.update(apply_totals(current.model_copy(update=fields)))

        changes = compute_changes(current.to_stored_record(), updated.to_stored_record())
        if changes:
            self.audit.log_change(
                entity_type=AuditEntity.INVOICE,
                entity_id=invoice_id,
                action=AuditAction.UPDATE,
                changes=changes
            )

        return updated

    def delete(self, invoice_id: UUID) -> bool:
        """
        Delete an invoice. Its number is not returned to the counter.

        Returns:
            True if deleted, False if not found
        """
        current = self.get_by_id(invoice_id)
        if current is None:
            return False

        deleted = self.store.delete(current.user_id, invoice_id)
        if deleted:
            self.audit.log_change(
                entity_type=AuditEntity.INVOICE,
                entity_id=invoice_id,
                action=AuditAction.DELETE,
                changes={"deleted": current.to_stored_record()}
            )

        return deleted

    def duplicate(self, invoice_id: UUID, today: date | None = None) -> Invoice:
        """
        Copy an invoice into a new draft.

        The copy gets a new number, today's date, a due date per the
        configured payment terms, draft/unpaid status and no lifecycle
        timestamps. Items, parties, tax and discount carry over.

        Raises:
            InvoiceNotFound: no such invoice
        """
        source = self._get_or_raise(invoice_id)
        today = today or today_utc()

        copy = InvoiceCreate(
            issue_date=today,
            due_date=today + timedelta(days=self.config.default_payment_terms_days),
            from_party=source.from_party,
            to_party=source.to_party,
            customer_id=source.customer_id,
            items=[item.model_copy(update={"id": str(uuid4())}) for item in source.items],
            notes=source.notes,
            payment_type=source.payment_type,
            tax_rate=source.tax_rate,
            discount_type=source.discount_type,
            discount_value=source.discount_value,
            banking_details=source.banking_details,
            include_banking_details=source.include_banking_details,
            template_id=source.template_id,
        )
        duplicate = self.create(copy, today=today)
        logger.info("Duplicated invoice %s as %s", invoice_id, duplicate.invoice_number)
        return duplicate

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def send(self, invoice_id: UUID) -> Invoice:
        """
        draft -> sent.

        Raises:
            InvoiceNotFound: no such invoice
            InvalidTransition: invoice is not a draft
        """
        current = self._get_or_raise(invoice_id)
        updated = self._save_transition(current, lifecycle.mark_sent(current))
        self.event_bus.publish(InvoiceSent.create(invoice=updated))
        return updated

    def mark_viewed(self, invoice_id: UUID) -> Invoice:
        """
        sent -> viewed. Repeat views are a no-op.

        Raises:
            InvoiceNotFound: no such invoice
            InvalidTransition: invoice was never sent, or is paid/cancelled
        """
        current = self._get_or_raise(invoice_id)
        updated = lifecycle.mark_viewed(current)
        if updated is current:
            return current
        updated = self._save_transition(current, updated)
        self.event_bus.publish(InvoiceViewed.create(invoice=updated))
        return updated

    def mark_paid(self, invoice_id: UUID) -> Invoice:
        """
        Mark as fully paid. Idempotent: a paid invoice is returned unchanged.

        Raises:
            InvoiceNotFound: no such invoice
            InvalidTransition: invoice is cancelled
        """
        current = self._get_or_raise(invoice_id)
        updated = lifecycle.mark_paid(current)
        if updated is current:
            return current
        updated = self._save_transition(current, updated)
        self.event_bus.publish(InvoicePaid.create(invoice=updated))
        return updated

    def record_partial_payment(self, invoice_id: UUID) -> Invoice:
        """
        unpaid -> partial on the payment axis.

        Raises:
            InvoiceNotFound: no such invoice
            InvalidTransition: invoice is cancelled, or already partial/paid
        """
        current = self._get_or_raise(invoice_id)
        return self._save_transition(current, lifecycle.record_partial_payment(current))

    def cancel(self, invoice_id: UUID) -> Invoice:
        """
        Cancel an invoice. Terminal.

        Raises:
            InvoiceNotFound: no such invoice
            InvalidTransition: invoice is paid or already cancelled
        """
        current = self._get_or_raise(invoice_id)
        updated = self._save_transition(current, lifecycle.cancel(current))
        self.event_bus.publish(InvoiceCancelled.create(invoice=updated))
        return updated

    # =========================================================================
    # LISTINGS
    # =========================================================================

    def list_all(self, limit: int | None = None) -> list[Invoice]:
        """Current user's invoices, newest first."""
        return self.store.list_for_user(get_current_user_id(), limit)

    def list_by_status(self, status: InvoiceStatus, today: date | None = None) -> list[Invoice]:
        """
        Invoices whose effective status is `status`.

        Overdue is matched by inference, so a sent invoice past its due date
        is listed under OVERDUE and not under SENT.
        """
        return [
            invoice for invoice in self.list_all()
            if lifecycle.effective_status(invoice, today) == status
        ]

    def list_overdue(self, today: date | None = None) -> list[Invoice]:
        """Invoices past due and not fully paid. Read-only: nothing is written."""
        return [invoice for invoice in self.list_all() if lifecycle.is_overdue(invoice, today)]

    def recent(self, limit: int | None = None) -> list[Invoice]:
        """Most recently created invoices."""
        return self.list_all(limit or self.config.recent_invoices_limit)

    def dashboard_stats(self, today: date | None = None) -> DashboardStats:
        return compute_dashboard_stats(
            self.list_all(),
            today=today,
            recent_limit=self.config.recent_invoices_limit,
        )

    # =========================================================================
    # NUMBERING
    # =========================================================================

    def next_invoice_number(self) -> str | None:
        """Preview of the next sequential number, for pre-filling forms."""
        return self.allocator.peek(get_current_user_id())

    def reset_numbering(self, start_number: int = 1, prefix: str | None = None) -> SequenceCounter:
        """
        Restart the current user's numbering.

        Raises:
            CounterUnavailable: the counter store could not be written
        """
        user_id = get_current_user_id()
        counter = self.allocator.reset(user_id, start_number=start_number, prefix=prefix)

        self.audit.log_change(
            entity_type=AuditEntity.INVOICE_COUNTER,
            entity_id=user_id,
            action=AuditAction.RESET,
            changes={"reset": counter.model_dump(mode="json")}
        )

        return counter

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _get_or_raise(self, invoice_id: UUID) -> Invoice:
        invoice = self.get_by_id(invoice_id)
        if invoice is None:
            raise InvoiceNotFound(invoice_id)
        return invoice

    @staticmethod
    def _check_discount(discount_type: DiscountType, discount_value) -> None:
        if discount_type == DiscountType.PERCENTAGE and discount_value > 100:
            raise InvalidInput("Percentage discount must be between 0 and 100")

    def _save_transition(self, current: Invoice, updated: Invoice) -> Invoice:
        saved = self.store.update(updated)

        self.audit.log_change(
            entity_type=AuditEntity.INVOICE,
            entity_id=saved.id,
            action=AuditAction.TRANSITION,
            changes=status_changes(current.to_stored_record(), saved.to_stored_record()),
        )

        logger.info(
            "Invoice %s: %s/%s -> %s/%s",
            saved.invoice_number,
            current.status.value, current.payment_status.value,
            saved.status.value, saved.payment_status.value,
        )
        return saved
