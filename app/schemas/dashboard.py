"""
Dashboard schemas.
"""

from app.schemas.base import BaseSchema


class DashboardMetrics(BaseSchema):
    """
    Tenant-wide metrics.

    Amounts are fixed two-decimal strings. The prev_month_* values cover
    records created during the previous calendar month.
    """
    
    total_invoices: int
    pending_amount: str
    total_clients: int
    total_revenue: str
    prev_month_invoices: int | None = None
    prev_month_clients: int | None = None
    prev_month_revenue: str | None = None
