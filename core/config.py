"""Invoicing configuration."""

import os
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field

from core.models.line_item import DiscountType

_ENV_PREFIX = "INVOICING_"


class InvoicingConfig(BaseModel):
    """
    Per-deployment invoicing defaults.

    These seed a tenant's counter and new drafts. A tenant's own counter,
    once created, is the source of truth for numbering.
    """

    # Numbering
    invoice_prefix: str = Field(
        default="INV",
        description="Prefix for sequential invoice numbers",
        min_length=1,
        max_length=20,
    )
    start_number: int = Field(
        default=1001,
        description="First sequence number for a new tenant counter",
        ge=1,
    )
    fallback_prefix: str = Field(
        default="INV",
        description="Prefix for timestamp-based numbers when the counter is unavailable",
        min_length=1,
    )
    allocation_timeout_seconds: float = Field(
        default=2.0,
        description="Upper bound on a counter store round trip before falling back",
        gt=0,
        le=30,
    )
    counter_store: Literal["postgres", "valkey"] = Field(
        default="postgres",
        description="Where per-tenant sequence counters live",
    )

    # Draft defaults
    default_tax_rate: Decimal = Field(
        default=Decimal("15"),
        description="Tax rate (percent) applied to new drafts",
        ge=0,
        le=100,
    )
    default_payment_terms_days: int = Field(
        default=30,
        description="Days between invoice date and due date for new drafts",
        ge=0,
        le=365,
    )
    default_discount_type: DiscountType = Field(
        default=DiscountType.FIXED,
        description="Discount type applied to new drafts",
    )
    currency: str = Field(
        default="ZAR",
        description="ISO 4217 currency code used for display",
        min_length=3,
        max_length=3,
    )

    # Listing
    recent_invoices_limit: int = Field(
        default=5,
        description="How many invoices the dashboard shows as recent",
        ge=1,
        le=100,
    )

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "InvoicingConfig":
        """
        Build config from INVOICING_* environment variables.

        INVOICING_INVOICE_PREFIX=ACME overrides invoice_prefix, and so on.
        Unset variables keep their defaults. Values are validated by pydantic.
        """
        environ = os.environ if environ is None else environ
        overrides = {}
        for name in cls.model_fields:
            value = environ.get(f"{_ENV_PREFIX}{name.upper()}")
            if value is not None:
                overrides[name] = value
        return cls(**overrides)
