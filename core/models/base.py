"""
Shared model configuration and field types.

Invoices are persisted and rendered in camelCase (subTotal, invoiceNumber,
paymentStatus, ...). Renderers depend on those names, so every model
serializes by alias while Python code uses snake_case attributes.
"""

from decimal import Decimal
from typing import Annotated

from pydantic import BaseModel, ConfigDict, PlainSerializer, SerializationInfo
from pydantic.alias_generators import to_camel

# Set in the serialization context by to_stored_record().
EXACT_MONEY = "exact_money"


def _money_to_json(value: Decimal, info: SerializationInfo) -> float | str:
    if info.context and info.context.get(EXACT_MONEY):
        return str(value)
    return float(value)


# Exact decimal in Python. JSON number on the wire, decimal string when stored.
Money = Annotated[
    Decimal,
    PlainSerializer(_money_to_json, when_used="json"),
]


class CamelModel(BaseModel):
    """Base for persisted invoicing records."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    def to_record(self) -> dict:
        """JSON-compatible dict in the camelCase API shape."""
        return self.model_dump(mode="json", by_alias=True)

    def to_stored_record(self) -> dict:
        """
        Like to_record, but money fields are decimal strings.

        Validating the result gives back the same Decimals, digit for digit.
        Use it wherever a record is written to storage.
        """
        return self.model_dump(mode="json", by_alias=True, context={EXACT_MONEY: True})
