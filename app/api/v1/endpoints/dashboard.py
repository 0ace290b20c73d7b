"""
Dashboard endpoints.
Tenant metrics and recent activity.
"""

from fastapi import APIRouter, Query

from app.api.deps import AppSettings, CurrentUser, DashboardServiceDep, QueryServiceDep
from app.schemas.dashboard import DashboardMetrics
from app.schemas.invoice import InvoiceWithDetails
from app.services.query import MAX_RECENT_LIMIT


router = APIRouter()


@router.get(
    "/metrics",
    response_model=DashboardMetrics,
    summary="Dashboard metrics",
    description="Invoice and client totals with previous-month baselines",
)
async def get_metrics(
    current_user: CurrentUser,
    service: DashboardServiceDep,
) -> DashboardMetrics:
    """Get dashboard metrics."""
    return await service.get_metrics(current_user.id)


@router.get(
    "/recent-invoices",
    response_model=list[InvoiceWithDetails],
    summary="Recent invoices",
    description="Most recently created invoices with client and items",
)
async def get_recent_invoices(
    current_user: CurrentUser,
    service: QueryServiceDep,
    settings: AppSettings,
    limit: int | None = Query(None, ge=1, le=MAX_RECENT_LIMIT),
) -> list[InvoiceWithDetails]:
    """Get recent invoices."""
    return await service.list_recent_invoices(
        current_user.id,
        limit or settings.RECENT_INVOICES_LIMIT,
    )
