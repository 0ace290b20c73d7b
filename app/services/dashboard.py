"""
Dashboard Service.
Provides tenant-wide invoice and client statistics.
"""

from datetime import datetime
from typing import Callable, Optional

from app.core.clock import previous_month_window, utcnow
from app.models.invoice import InvoiceStatus
from app.repositories.base import StatusTotals, StorageBackend
from app.schemas.dashboard import DashboardMetrics
from app.services.pricing import format_amount


class DashboardService:
    """Service for dashboard statistics."""

    def __init__(self, storage: StorageBackend, clock: Callable[[], datetime] = utcnow):
        self.storage = storage
        self.clock = clock

    async def get_metrics(self, user_id: str, now: Optional[datetime] = None) -> DashboardMetrics:
        """
        Get business overview statistics.

        Current figures cover every published invoice. The prev_month_*
        figures only count records created during the calendar month
        before `now`, as a month-over-month baseline.

        Returns:
            Invoice count, pending amount, revenue (paid amount) and client count
        """
        now = now or self.clock()
        start, end = previous_month_window(now)

        totals = await self.storage.invoice_totals_by_status(user_id)
        total_clients = await self.storage.count_clients(user_id)

        prev_totals = await self.storage.invoice_totals_by_status(
            user_id, created_from=start, created_before=end
        )
        prev_clients = await self.storage.count_clients(
            user_id, created_from=start, created_before=end
        )

        return DashboardMetrics(
            total_invoices=sum(t.count for t in totals.values()),
            pending_amount=_amount(totals, InvoiceStatus.PENDING),
            total_clients=total_clients,
            total_revenue=_amount(totals, InvoiceStatus.PAID),
            prev_month_invoices=sum(t.count for t in prev_totals.values()),
            prev_month_clients=prev_clients,
            prev_month_revenue=_amount(prev_totals, InvoiceStatus.PAID),
        )


def _amount(totals: dict[InvoiceStatus, StatusTotals], status: InvoiceStatus) -> str:
    return format_amount(totals.get(status, StatusTotals()).amount)
