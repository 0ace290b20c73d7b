"""
Invoice and InvoiceItem models for billing.
Supports pending, paid and overdue statuses.
"""

from typing import Optional, List, TYPE_CHECKING
from decimal import Decimal
from datetime import datetime
from enum import Enum
from sqlalchemy import String, Text, ForeignKey, Integer, Numeric, DateTime, Index, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.clock import utcnow
from app.core.database import Base
from app.models.base import BaseModel, generate_id

if TYPE_CHECKING:
    from app.models.user import User
    from app.models.client import Client


class InvoiceStatus(str, Enum):
    """Invoice status enumeration."""
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"


class Invoice(BaseModel):
    """
    Invoice model.

    Attributes:
        user_id: Foreign key to the business owner
        client_id: Foreign key to the client
        invoice_number: Invoice number chosen by the tenant
        status: Current invoice status
        currency: ISO 4217 currency code
        subtotal: Sum of item amounts
        tax_rate: Tax percentage applied to the subtotal
        tax_amount: subtotal * tax_rate / 100
        total: subtotal + tax_amount
        invoice_date: Date of the invoice
        due_date: Payment due date
        paid_at: Set when the invoice is marked as paid
        version: Incremented on every write (optimistic concurrency)
        item_batch: Token of the visible item set, NULL while unpublished
    """

    __tablename__ = "invoices"
    __table_args__ = (
        Index("ix_invoices_user_id_status", "user_id", "status"),
    )

    # Relationships
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    client_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("clients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Invoice info
    invoice_number: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )
    status: Mapped[str] = mapped_column(
        String(20),
        default=InvoiceStatus.PENDING.value,
        nullable=False,
    )
    currency: Mapped[str] = mapped_column(
        String(3),
        default="USD",
        nullable=False,
    )

    # Totals (derived from items)
    subtotal: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2),
        default=Decimal("0.00"),
        nullable=False,
    )
    tax_rate: Mapped[Decimal] = mapped_column(
        Numeric(precision=5, scale=2),
        default=Decimal("0.00"),
        nullable=False,
    )
    tax_amount: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2),
        default=Decimal("0.00"),
        nullable=False,
    )
    total: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2),
        default=Decimal("0.00"),
        nullable=False,
    )

    notes: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )

    # Dates
    invoice_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    due_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    paid_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Consistency bookkeeping
    version: Mapped[int] = mapped_column(
        Integer,
        default=1,
        nullable=False,
    )
    item_batch: Mapped[Optional[str]] = mapped_column(
        String(36),
        nullable=True,
    )

    # Relationships
    owner: Mapped["User"] = relationship(
        "User",
        back_populates="invoices",
    )
    client: Mapped["Client"] = relationship(
        "Client",
        back_populates="invoices",
    )
    items: Mapped[List["InvoiceItem"]] = relationship(
        "InvoiceItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Invoice(id={self.id}, number='{self.invoice_number}', total={self.total})>"


class InvoiceItem(Base):
    """
    Invoice line item model.

    Attributes:
        invoice_id: Foreign key to the invoice
        batch: Item set this line belongs to
        position: Insertion order inside the batch
        description: Item description
        quantity: Number of units
        rate: Price per unit
        amount: quantity * rate
    """

    __tablename__ = "invoice_items"
    __table_args__ = (
        Index("ix_invoice_items_invoice_id_batch", "invoice_id", "batch"),
    )

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=generate_id,
    )
    invoice_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("invoices.id", ondelete="CASCADE"),
        nullable=False,
    )
    batch: Mapped[str] = mapped_column(
        String(36),
        nullable=False,
    )
    position: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )

    description: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    quantity: Mapped[Decimal] = mapped_column(
        Numeric(precision=10, scale=2),
        default=Decimal("1.00"),
        nullable=False,
    )
    rate: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2),
        default=Decimal("0.00"),
        nullable=False,
    )
    amount: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2),
        default=Decimal("0.00"),
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    # Relationships
    invoice: Mapped["Invoice"] = relationship(
        "Invoice",
        back_populates="items",
    )

    def __repr__(self) -> str:
        return f"<InvoiceItem(id={self.id}, description='{self.description[:30]}', amount={self.amount})>"
