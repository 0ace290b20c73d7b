"""
Client schemas for request/response validation.
"""

from pydantic import EmailStr, Field

from app.schemas.base import BaseSchema, TimestampSchema


class ClientBase(BaseSchema):
    """Base client schema with common fields."""
    
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    phone: str | None = Field(None, max_length=50)
    address: str | None = None


class ClientCreate(ClientBase):
    """Schema for creating a new client."""
    pass


class ClientUpdate(BaseSchema):
    """Schema for updating a client."""
    
    name: str | None = Field(None, min_length=1, max_length=255)
    email: EmailStr | None = None
    phone: str | None = Field(None, max_length=50)
    address: str | None = None


class ClientResponse(ClientBase, TimestampSchema):
    """Client response schema."""
    
    id: str
    user_id: str


class ClientWithStats(ClientResponse):
    """Client with the count and total of its invoices."""
    
    invoice_count: int = 0
    total_amount: str = "0.00"
