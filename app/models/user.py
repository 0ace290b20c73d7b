"""
User model for business profiles.
Each user is a tenant: the owner of its clients and invoices.
"""

from decimal import Decimal
from typing import Optional, List, TYPE_CHECKING
from sqlalchemy import String, Text, Integer, Numeric
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import BaseModel

if TYPE_CHECKING:
    from app.models.client import Client
    from app.models.invoice import Invoice


class User(BaseModel):
    """
    User model representing a business profile.
    
    Attributes:
        email: Unique contact email
        business_name: Name of the business/company
        contact_person: Person to contact at the business
        phone: Contact phone number
        address: Physical address of the business
        default_currency: Currency used for new invoices (ISO 4217)
        default_tax_rate: Tax percentage used for new invoices
        default_payment_terms: Days between invoice date and due date
        external_id: Subject of the identity provider account
    """
    
    __tablename__ = "users"
    
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False,
    )
    business_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    contact_person: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    phone: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
    )
    address: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )
    
    # Invoice defaults
    default_currency: Mapped[str] = mapped_column(
        String(3),
        default="USD",
        nullable=False,
    )
    default_tax_rate: Mapped[Decimal] = mapped_column(
        Numeric(precision=5, scale=2),
        default=Decimal("0.00"),
        nullable=False,
    )
    default_payment_terms: Mapped[int] = mapped_column(
        Integer,
        default=30,
        nullable=False,
    )
    
    # Identity provider
    external_id: Mapped[str] = mapped_column(
        String(128),
        unique=True,
        index=True,
        nullable=False,
    )
    
    # Relationships
    clients: Mapped[List["Client"]] = relationship(
        "Client",
        back_populates="owner",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    invoices: Mapped[List["Invoice"]] = relationship(
        "Invoice",
        back_populates="owner",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    
    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}', business='{self.business_name}')>"
