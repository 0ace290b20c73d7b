"""
Client model for managing customers.
Each client belongs to a user (business owner).
"""

from typing import Optional, List, TYPE_CHECKING
from sqlalchemy import String, Text, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import BaseModel

if TYPE_CHECKING:
    from app.models.user import User
    from app.models.invoice import Invoice


class Client(BaseModel):
    """
    Client model representing a customer.
    
    Attributes:
        user_id: Foreign key to the business owner
        name: Client's full name or company name
        email: Client's email address
        phone: Client's phone number
        address: Client's physical address
    """
    
    __tablename__ = "clients"
    
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    email: Mapped[str] = mapped_column(
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
    
    # Relationships
    owner: Mapped["User"] = relationship(
        "User",
        back_populates="clients",
    )
    invoices: Mapped[List["Invoice"]] = relationship(
        "Invoice",
        back_populates="client",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    
    def __repr__(self) -> str:
        return f"<Client(id={self.id}, name='{self.name}', user_id={self.user_id})>"
