"""Core domain models."""

from core.models.base import CamelModel, Money
from core.models.line_item import LineItem, DiscountPolicy, DiscountType, InvoiceTotals
from core.models.invoice import (
    Invoice, InvoiceCreate, InvoiceUpdate, InvoiceStatus, PaymentStatus,
    PaymentType, TemplateId, PartyDetails, BankingDetails, DashboardStats,
)
from core.models.counter import SequenceCounter, InvoiceNumberAllocation

__all__ = [
    # Base
    "CamelModel", "Money",
    # LineItem
    "LineItem", "DiscountPolicy", "DiscountType", "InvoiceTotals",
    # Invoice
    "Invoice", "InvoiceCreate", "InvoiceUpdate", "InvoiceStatus", "PaymentStatus",
    "PaymentType", "TemplateId", "PartyDetails", "BankingDetails", "DashboardStats",
    # Counter
    "SequenceCounter", "InvoiceNumberAllocation",
]
