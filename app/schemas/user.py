"""
User (business profile) schemas.
"""

from decimal import Decimal
from pydantic import EmailStr, Field

from app.schemas.base import BaseSchema, CurrencyCode, DecimalInput, TimestampSchema


class UserBase(BaseSchema):
    """Base user schema with common fields."""
    
    email: EmailStr
    business_name: str = Field(..., min_length=1, max_length=255)
    contact_person: str = Field(..., min_length=1, max_length=255)
    phone: str | None = Field(None, max_length=50)
    address: str | None = None
    default_currency: CurrencyCode = "USD"
    default_tax_rate: DecimalInput = Field(default=Decimal("0.00"), ge=0, le=100)
    default_payment_terms: int = Field(default=30, ge=0)


class UserCreate(UserBase):
    """
    Schema for creating a business profile.

    The external identity reference is taken from the verified token,
    never from the request body.
    """
    pass


class UserUpdate(BaseSchema):
    """Schema for updating a business profile."""
    
    email: EmailStr | None = None
    business_name: str | None = Field(None, min_length=1, max_length=255)
    contact_person: str | None = Field(None, min_length=1, max_length=255)
    phone: str | None = Field(None, max_length=50)
    address: str | None = None
    default_currency: CurrencyCode | None = None
    default_tax_rate: DecimalInput | None = Field(None, ge=0, le=100)
    default_payment_terms: int | None = Field(None, ge=0)


class UserResponse(UserBase, TimestampSchema):
    """User response schema."""
    
    id: str
    external_id: str
