"""
Invoice totals.

Pure functions, no I/O. Callers (or InvoiceService on their behalf) must
recompute whenever items, tax rate, discount type or discount value change.

Policy, kept as-is because changing it changes totals of existing invoices:
- tax is charged on the subtotal BEFORE discount
- a fixed discount is applied verbatim, even when larger than the subtotal
  (the total can go negative; deciding whether that is an error is up to
  the caller)

Decimal arithmetic keeps every derived field exact, so recomputing with the
same input is bit-for-bit identical.
"""

from decimal import Decimal
from typing import Iterable

from core.models import DiscountPolicy, DiscountType, Invoice, InvoiceTotals, LineItem

_HUNDRED = Decimal(100)


def _as_decimal(value) -> Decimal:
    # str() first so 0.1 becomes Decimal("0.1"), not its binary expansion
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def compute_subtotal(items: Iterable[LineItem]) -> Decimal:
    """Sum of quantity * unit_price. Empty item list -> 0."""
    return sum((item.line_total for item in items), Decimal(0))


def compute_discount(sub_total: Decimal, discount: DiscountPolicy) -> Decimal:
    """Percentage of the subtotal, or the fixed value uncapped."""
    if discount.type == DiscountType.PERCENTAGE:
        return sub_total * _as_decimal(discount.value) / _HUNDRED
    return _as_decimal(discount.value)


def compute_tax(sub_total: Decimal, tax_rate: Decimal) -> Decimal:
    """Tax on the pre-discount subtotal."""
    return sub_total * _as_decimal(tax_rate) / _HUNDRED


def compute_totals(
    items: Iterable[LineItem],
    tax_rate: Decimal,
    discount: DiscountPolicy,
) -> InvoiceTotals:
    """
    Derive subtotal, tax, discount and grand total.

    Args:
        items: Invoice line items
        tax_rate: Tax percent (15 = 15%)
        discount: Discount policy

    Returns:
        InvoiceTotals with total = sub_total + tax_amount - discount_amount

    Does not validate. Negative inputs produce whatever the arithmetic says.
    """
    sub_total = compute_subtotal(items)
    tax_amount = compute_tax(sub_total, tax_rate)
    discount_amount = compute_discount(sub_total, discount)

    return InvoiceTotals(
        sub_total=sub_total,
        tax_amount=tax_amount,
        discount_amount=discount_amount,
        total=sub_total + tax_amount - discount_amount,
    )


def apply_totals(invoice: Invoice) -> Invoice:
    """Copy of invoice with its four derived fields recomputed."""
    totals = compute_totals(invoice.items, invoice.tax_rate, invoice.discount)
    return invoice.model_copy(update={
        "sub_total": totals.sub_total,
        "tax_amount": totals.tax_amount,
        "discount_amount": totals.discount_amount,
        "total": totals.total,
    })
