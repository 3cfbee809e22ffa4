"""Invoice domain models.

Monetary values are exact Decimals (see core.models.base.Money). Tax rate
and percentage discounts are percents: 15 = 15%.

subTotal, taxAmount, discountAmount and total are derived from the line
items and the tax/discount policy. They are always recomputed by the
calculator and never accepted from callers.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from pydantic import ConfigDict, Field, model_validator

from core.models.base import CamelModel, Money
from core.models.line_item import DiscountPolicy, DiscountType, InvoiceTotals, LineItem


class InvoiceStatus(str, Enum):
    """Document workflow status."""

    DRAFT = "draft"
    SENT = "sent"
    VIEWED = "viewed"
    PAID = "paid"
    # Accepted on read for legacy records. The core derives overdue, it never stores it.
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    """Money-received status, independent of the workflow status."""

    UNPAID = "unpaid"
    PARTIAL = "partial"
    PAID = "paid"
    # Read-time label only, like InvoiceStatus.OVERDUE.
    OVERDUE = "overdue"


class PaymentType(str, Enum):
    ONCE_OFF = "once-off"
    MONTHLY = "monthly"


class TemplateId(str, Enum):
    """Visual template the PDF/share layer renders the invoice with."""

    CLASSIC = "classic"
    MODERN = "modern"
    CREATIVE = "creative"
    WRITENOW = "writenow"
    PREMIUM = "premium"


class PartyDetails(CamelModel):
    """Sender or recipient snapshot, copied at creation time."""

    name: str = ""
    address: str = ""
    email: str = ""
    phone: str = ""


class BankingDetails(CamelModel):
    bank_name: str
    account_name: str
    account_number: str
    routing_number: str
    swift: str | None = None
    reference: str | None = None


def _check_discount(discount_type: DiscountType | None, discount_value: Decimal | None) -> None:
    if discount_type == DiscountType.PERCENTAGE and discount_value is not None and discount_value > 100:
        raise ValueError("Percentage discount must be between 0 and 100")


def _check_item_ids(items: list[LineItem] | None) -> None:
    """Line item ids are unique within an invoice."""
    seen: set[str] = set()
    for item in items or ():
        if item.id in seen:
            raise ValueError(f"Duplicate line item id '{item.id}'")
        seen.add(item.id)


class InvoiceCreate(CamelModel):
    """
    A caller's draft. Anything omitted falls back to the configured defaults
    (tax rate, payment terms, discount type) when the invoice is created.
    """

    invoice_number: str | None = Field(None, min_length=1, max_length=50)
    issue_date: date | None = Field(None, alias="date")
    due_date: date | None = None
    from_party: PartyDetails = Field(default_factory=PartyDetails, alias="from")
    to_party: PartyDetails = Field(default_factory=PartyDetails, alias="to")
    customer_id: str | None = None
    items: list[LineItem] = Field(default_factory=list)
    notes: str = Field("", max_length=2000)
    payment_type: PaymentType = PaymentType.ONCE_OFF
    tax_rate: Money | None = Field(None, ge=0)
    discount_type: DiscountType | None = None
    discount_value: Money = Field(Decimal("0"), ge=0)
    banking_details: BankingDetails | None = None
    include_banking_details: bool = False
    template_id: TemplateId = TemplateId.CLASSIC

    @model_validator(mode="after")
    def check_discount(self) -> "InvoiceCreate":
        _check_discount(self.discount_type, self.discount_value)
        return self

    @model_validator(mode="after")
    def check_item_ids(self) -> "InvoiceCreate":
        _check_item_ids(self.items)
        return self


class InvoiceUpdate(CamelModel):
    """
    Editable invoice fields. All optional.

    Derived totals and lifecycle fields are rejected: totals are recomputed,
    status only changes through lifecycle operations.
    """

    model_config = ConfigDict(extra="forbid")

    invoice_number: str | None = Field(None, min_length=1, max_length=50)
    issue_date: date | None = Field(None, alias="date")
    due_date: date | None = None
    from_party: PartyDetails | None = Field(None, alias="from")
    to_party: PartyDetails | None = Field(None, alias="to")
    customer_id: str | None = None
    items: list[LineItem] | None = None
    notes: str | None = Field(None, max_length=2000)
    payment_type: PaymentType | None = None
    tax_rate: Money | None = Field(None, ge=0)
    discount_type: DiscountType | None = None
    discount_value: Money | None = Field(None, ge=0)
    banking_details: BankingDetails | None = None
    include_banking_details: bool | None = None
    template_id: TemplateId | None = None

    @model_validator(mode="after")
    def check_item_ids(self) -> "InvoiceUpdate":
        _check_item_ids(self.items)
        return self


class Invoice(CamelModel):
    """Full invoice record as stored."""

    id: UUID
    user_id: UUID
    invoice_number: str
    number_is_sequential: bool = True
    issue_date: date = Field(..., alias="date")
    due_date: date
    from_party: PartyDetails = Field(default_factory=PartyDetails, alias="from")
    to_party: PartyDetails = Field(default_factory=PartyDetails, alias="to")
    customer_id: str | None = None
    items: list[LineItem] = Field(default_factory=list)
    notes: str = ""
    payment_type: PaymentType = PaymentType.ONCE_OFF
    tax_rate: Money = Decimal("0")
    discount_type: DiscountType = DiscountType.FIXED
    discount_value: Money = Decimal("0")
    sub_total: Money = Decimal("0")
    tax_amount: Money = Decimal("0")
    discount_amount: Money = Decimal("0")
    total: Money = Decimal("0")
    status: InvoiceStatus = InvoiceStatus.DRAFT
    payment_status: PaymentStatus = PaymentStatus.UNPAID
    banking_details: BankingDetails | None = None
    include_banking_details: bool = False
    template_id: TemplateId = TemplateId.CLASSIC
    created_at: datetime
    updated_at: datetime
    sent_at: datetime | None = None
    viewed_at: datetime | None = None
    paid_at: datetime | None = None
    cancelled_at: datetime | None = None

    @model_validator(mode="after")
    def check_item_ids(self) -> "Invoice":
        _check_item_ids(self.items)
        return self

    @property
    def discount(self) -> DiscountPolicy:
        """The invoice's discount as a policy object."""
        return DiscountPolicy.model_construct(type=self.discount_type, value=self.discount_value)

    @property
    def totals(self) -> InvoiceTotals:
        return InvoiceTotals(
            sub_total=self.sub_total,
            tax_amount=self.tax_amount,
            discount_amount=self.discount_amount,
            total=self.total,
        )

    @property
    def is_paid(self) -> bool:
        """Whether the money has been received in full."""
        return self.payment_status == PaymentStatus.PAID


class DashboardStats(CamelModel):
    """Summary figures for a tenant's invoice list."""

    total_invoices: int
    total_revenue: Money
    pending_amount: Money
    overdue_amount: Money
    paid_invoices: int
    unpaid_invoices: int
    recent_invoices: list[Invoice]
