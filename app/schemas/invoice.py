"""
Invoice schemas for request/response validation.
"""

from decimal import Decimal
from typing import Optional
from pydantic import Field

from app.schemas.base import (
    BaseSchema,
    CurrencyCode,
    DateInput,
    DecimalInput,
    TimestampSchema,
    UTCDateTime,
)
from app.schemas.client import ClientResponse
from app.models.invoice import InvoiceStatus


class InvoiceItemCreate(BaseSchema):
    """
    Schema for an invoice line.

    `amount` may be sent by the client but is always recomputed
    as quantity * rate.
    """

    description: str = Field(..., min_length=1)
    quantity: DecimalInput = Decimal("1")
    rate: DecimalInput
    amount: DecimalInput | None = None


class InvoiceItemResponse(BaseSchema):
    """Invoice item response schema."""

    id: str
    invoice_id: str
    description: str
    quantity: Decimal
    rate: Decimal
    amount: Decimal
    created_at: UTCDateTime


class InvoiceCreate(BaseSchema):
    """
    Schema for creating an invoice with its items.

    Omitted currency, tax rate, due date and invoice number are filled
    from the business profile defaults.
    """

    client_id: str
    invoice_number: str | None = Field(None, min_length=1, max_length=50)
    currency: CurrencyCode | None = None
    tax_rate: DecimalInput | None = None
    notes: str | None = None
    invoice_date: DateInput
    due_date: DateInput | None = None
    items: list[InvoiceItemCreate] = Field(default_factory=list)


class InvoiceUpdate(BaseSchema):
    """
    Schema for updating the scalar fields of an invoice.

    Items are replaced through a separate operation and the status
    through the status transition.
    """

    client_id: str | None = None
    invoice_number: str | None = Field(None, min_length=1, max_length=50)
    currency: CurrencyCode | None = None
    tax_rate: DecimalInput | None = None
    notes: str | None = None
    invoice_date: DateInput | None = None
    due_date: DateInput | None = None
    expected_version: int | None = Field(None, exclude=True)


class InvoiceItemsReplace(BaseSchema):
    """Schema for replacing the whole item set of an invoice."""

    items: list[InvoiceItemCreate] = Field(default_factory=list)
    expected_version: int | None = None


class InvoiceStatusUpdate(BaseSchema):
    """Schema for a status transition."""

    status: str
    expected_version: int | None = None


class InvoiceFilters(BaseSchema):
    """
    Invoice listing filters.

    `status` may be the sentinel "all". `search` is accepted but does not
    filter results.
    """

    status: str | None = None
    search: str | None = None


class InvoiceResponse(TimestampSchema):
    """Invoice response schema."""

    id: str
    user_id: str
    client_id: str
    invoice_number: str
    status: InvoiceStatus
    currency: str
    subtotal: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    total: Decimal
    notes: str | None = None
    invoice_date: UTCDateTime
    due_date: UTCDateTime
    paid_at: Optional[UTCDateTime] = None
    version: int
    item_batch: str | None = Field(None, exclude=True)


class InvoiceWithDetails(InvoiceResponse):
    """Invoice joined with its client and ordered items."""

    client: ClientResponse
    items: list[InvoiceItemResponse] = Field(default_factory=list)
