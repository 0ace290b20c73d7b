"""
Pydantic schemas for request/response validation.
"""

from app.schemas.user import (
    UserCreate,
    UserUpdate,
    UserResponse,
)
from app.schemas.client import (
    ClientCreate,
    ClientUpdate,
    ClientResponse,
    ClientWithStats,
)
from app.schemas.invoice import (
    InvoiceCreate,
    InvoiceUpdate,
    InvoiceResponse,
    InvoiceWithDetails,
    InvoiceItemCreate,
    InvoiceItemResponse,
    InvoiceItemsReplace,
    InvoiceStatusUpdate,
    InvoiceFilters,
)
from app.schemas.dashboard import DashboardMetrics

__all__ = [
    # User
    "UserCreate",
    "UserUpdate",
    "UserResponse",
    # Client
    "ClientCreate",
    "ClientUpdate",
    "ClientResponse",
    "ClientWithStats",
    # Invoice
    "InvoiceCreate",
    "InvoiceUpdate",
    "InvoiceResponse",
    "InvoiceWithDetails",
    "InvoiceItemCreate",
    "InvoiceItemResponse",
    "InvoiceItemsReplace",
    "InvoiceStatusUpdate",
    "InvoiceFilters",
    # Dashboard
    "DashboardMetrics",
]
