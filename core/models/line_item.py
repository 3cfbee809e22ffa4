"""
Line item and discount models.

Amounts are exact Decimals. Quantities may be fractional (1.5 hours),
so they are Decimals too.
"""

from decimal import Decimal
from enum import Enum
from uuid import uuid4

from pydantic import Field, model_validator

from core.models.base import CamelModel, Money


class DiscountType(str, Enum):
    """How an invoice discount value is interpreted."""

    PERCENTAGE = "percentage"
    FIXED = "fixed"


class LineItem(CamelModel):
    """One billable row: description x quantity x unit price."""

    id: str = Field(default_factory=lambda: str(uuid4()), min_length=1)
    description: str = Field("", max_length=500)
    quantity: Money = Field(Decimal("1"), ge=0)
    unit_price: Money = Field(Decimal("0"), ge=0)

    @property
    def line_total(self) -> Decimal:
        """quantity * unit_price, exact."""
        return self.quantity * self.unit_price


class DiscountPolicy(CamelModel):
    """Flat amount or percentage of the subtotal."""

    type: DiscountType = DiscountType.FIXED
    value: Money = Field(Decimal("0"), ge=0)

    @model_validator(mode="after")
    def check_percentage_range(self) -> "DiscountPolicy":
        """Percentage discounts are expressed as 0-100."""
        if self.type == DiscountType.PERCENTAGE and self.value > 100:
            raise ValueError("Percentage discount must be between 0 and 100")
        return self


class InvoiceTotals(CamelModel):
    """The four derived monetary fields of an invoice."""

    sub_total: Money
    tax_amount: Money
    discount_amount: Money
    total: Money
