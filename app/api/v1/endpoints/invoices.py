"""
Invoice management endpoints.
Creation, updates, item replacement, status changes and PDF export.
"""

from fastapi import APIRouter, Query, Response, status

from app.api.deps import CurrentUser, InvoiceServiceDep, PDFServiceDep, QueryServiceDep
from app.schemas.invoice import (
    InvoiceCreate,
    InvoiceFilters,
    InvoiceItemsReplace,
    InvoiceResponse,
    InvoiceStatusUpdate,
    InvoiceUpdate,
    InvoiceWithDetails,
)
from app.schemas.base import MessageResponse


router = APIRouter()


@router.post(
    "",
    response_model=InvoiceWithDetails,
    status_code=status.HTTP_201_CREATED,
    summary="Create an invoice",
    description="Create a new invoice with its items",
)
async def create_invoice(
    data: InvoiceCreate,
    current_user: CurrentUser,
    service: InvoiceServiceDep,
) -> InvoiceWithDetails:
    """Create a new invoice."""
    return await service.create_invoice(current_user.id, data)


@router.get(
    "",
    response_model=list[InvoiceWithDetails],
    summary="List invoices",
    description="List invoices with client and items, newest first",
)
async def list_invoices(
    current_user: CurrentUser,
    service: QueryServiceDep,
    status: str | None = Query(None, description="pending, paid, overdue or all"),
    search: str | None = Query(None, description="Search term (currently not applied)"),
) -> list[InvoiceWithDetails]:
    """List invoices with filters."""
    return await service.list_invoices(
        current_user.id,
        InvoiceFilters(status=status, search=search),
    )


@router.get(
    "/{invoice_id}",
    response_model=InvoiceWithDetails,
    summary="Invoice details",
    description="Get an invoice with its client and items",
)
async def get_invoice(
    invoice_id: str,
    current_user: CurrentUser,
    service: InvoiceServiceDep,
) -> InvoiceWithDetails:
    """Get invoice by ID."""
    return await service.get_invoice(current_user.id, invoice_id)


@router.put(
    "/{invoice_id}",
    response_model=InvoiceResponse,
    summary="Update an invoice",
    description="Update invoice fields (items and status have their own endpoints)",
)
async def update_invoice(
    invoice_id: str,
    data: InvoiceUpdate,
    current_user: CurrentUser,
    service: InvoiceServiceDep,
) -> InvoiceResponse:
    """Update an invoice."""
    return await service.update_invoice(current_user.id, invoice_id, data)


@router.delete(
    "/{invoice_id}",
    response_model=MessageResponse,
    summary="Delete an invoice",
    description="Delete an invoice and its items",
)
async def delete_invoice(
    invoice_id: str,
    current_user: CurrentUser,
    service: InvoiceServiceDep,
) -> MessageResponse:
    """Delete an invoice."""
    await service.delete_invoice(current_user.id, invoice_id)
    return MessageResponse(message="Invoice deleted")


@router.put(
    "/{invoice_id}/items",
    response_model=InvoiceWithDetails,
    summary="Replace invoice items",
    description="Replace the whole item set and recompute the totals",
)
async def replace_invoice_items(
    invoice_id: str,
    data: InvoiceItemsReplace,
    current_user: CurrentUser,
    service: InvoiceServiceDep,
) -> InvoiceWithDetails:
    """Replace all items of an invoice."""
    await service.replace_invoice_items(
        current_user.id,
        invoice_id,
        data.items,
        expected_version=data.expected_version,
    )
    return await service.get_invoice(current_user.id, invoice_id)


@router.patch(
    "/{invoice_id}/status",
    response_model=InvoiceResponse,
    summary="Change invoice status",
    description="Set the status to pending, paid or overdue",
)
async def update_invoice_status(
    invoice_id: str,
    data: InvoiceStatusUpdate,
    current_user: CurrentUser,
    service: InvoiceServiceDep,
) -> InvoiceResponse:
    """Change the status of an invoice."""
    return await service.update_invoice_status(
        current_user.id,
        invoice_id,
        data.status,
        expected_version=data.expected_version,
    )


@router.get(
    "/{invoice_id}/pdf",
    summary="Download the PDF",
    description="Render the invoice as a PDF document",
    response_class=Response,
)
async def download_invoice_pdf(
    invoice_id: str,
    current_user: CurrentUser,
    service: InvoiceServiceDep,
    pdf_service: PDFServiceDep,
) -> Response:
    """Generate and download invoice PDF."""
    invoice = await service.get_invoice(current_user.id, invoice_id)
    content = pdf_service.render_invoice(invoice, current_user)

    filename = f"invoice_{invoice.invoice_number.replace('/', '-')}.pdf"
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
