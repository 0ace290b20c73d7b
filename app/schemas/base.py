"""
Base schema configuration and shared field types.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Any
from pydantic import AfterValidator, BaseModel, BeforeValidator, ConfigDict
from pydantic.alias_generators import to_camel

from app.core.clock import as_utc
from app.core.exceptions import ValidationError
from app.services.pricing import to_decimal


def _parse_decimal(value: Any) -> Any:
    if value is None:
        return value
    try:
        return to_decimal(value)
    except ValidationError as exc:
        raise ValueError(exc.message) from exc


def _parse_date(value: Any) -> Any:
    if isinstance(value, str) and len(value.strip()) == 10:
        try:
            return as_utc(date.fromisoformat(value.strip()))
        except ValueError:
            return value
    if isinstance(value, date) and not isinstance(value, datetime):
        return as_utc(value)
    return value


def _currency_code(value: str) -> str:
    code = value.strip().upper()
    if len(code) != 3 or not code.isalpha():
        raise ValueError("Currency must be a 3-letter code")
    return code


# Aware UTC datetime (naive values are read as UTC)
UTCDateTime = Annotated[datetime, AfterValidator(as_utc)]

# Accepts ISO-8601 strings, dates and datetimes
DateInput = Annotated[datetime, BeforeValidator(_parse_date), AfterValidator(as_utc)]

# Accepts decimal strings, ints and floats with at most 2 decimals
DecimalInput = Annotated[Decimal, BeforeValidator(_parse_decimal)]

CurrencyCode = Annotated[str, AfterValidator(_currency_code)]


class BaseSchema(BaseModel):
    """Base schema with common configuration."""
    
    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        str_strip_whitespace=True,
        alias_generator=to_camel,
    )


class TimestampSchema(BaseSchema):
    """Schema with timestamp fields."""
    
    created_at: UTCDateTime
    updated_at: UTCDateTime


class MessageResponse(BaseSchema):
    """Simple message response."""
    
    message: str
    success: bool = True
