"""
Invoice query service.
Builds invoice listings joined with their client and items.
"""

import logging
from typing import Sequence

from app.core.exceptions import ConflictError, ValidationError
from app.models.invoice import InvoiceStatus
from app.repositories.base import StorageBackend
from app.schemas.client import ClientResponse
from app.schemas.invoice import (
    InvoiceFilters,
    InvoiceItemResponse,
    InvoiceResponse,
    InvoiceWithDetails,
)


logger = logging.getLogger(__name__)

MAX_READ_ATTEMPTS = 3
MAX_RECENT_LIMIT = 50


def parse_status_filter(status: str | None) -> InvoiceStatus | None:
    """Map a listing status filter to a status, None meaning every status."""
    if status is None or status == "" or status == "all":
        return None
    try:
        return InvoiceStatus(status)
    except ValueError:
        raise ValidationError("Invalid invoice status")


def with_details(
    invoice: InvoiceResponse,
    client: ClientResponse,
    items: list[InvoiceItemResponse],
) -> InvoiceWithDetails:
    return InvoiceWithDetails.model_validate({
        **invoice.model_dump(),
        "item_batch": invoice.item_batch,
        "client": client,
        "items": items,
    })


async def attach_details(
    storage: StorageBackend,
    invoices: Sequence[InvoiceResponse],
) -> list[InvoiceWithDetails]:
    """
    Join invoices with their client and visible items.

    Clients and items are fetched in one batch each. An invoice whose item
    set was swapped or whose client vanished between the reads is read
    again; one deleted in the meantime is dropped from the result.

    Raises:
        ConflictError: If an invoice keeps changing while being read
    """
    pending = list(invoices)
    loaded: dict[str, InvoiceWithDetails] = {}

    for _ in range(MAX_READ_ATTEMPTS):
        clients = await storage.get_clients({i.client_id for i in pending})
        items = await storage.list_items(pending)

        stale = []
        for invoice in pending:
            client = clients.get(invoice.client_id)
            if client is None or not items[invoice.id]:
                stale.append(invoice.id)
                continue
            loaded[invoice.id] = with_details(invoice, client, items[invoice.id])

        pending = []
        for invoice_id in stale:
            invoice = await storage.get_invoice(invoice_id)
            if invoice is not None:
                pending.append(invoice)
        if not pending:
            break
    else:
        raise ConflictError("Invoice changed while being read, retry")

    return [loaded[i.id] for i in invoices if i.id in loaded]


class InvoiceQueryService:
    """Read-side service for invoice listings."""

    def __init__(self, storage: StorageBackend):
        self.storage = storage

    async def list_invoices(
        self,
        user_id: str,
        filters: InvoiceFilters | None = None,
    ) -> list[InvoiceWithDetails]:
        """
        List the tenant's invoices with client and items, newest first.

        Args:
            user_id: Owning tenant
            filters: Optional status filter ("all" or absent for every status)
                and search term

        Returns:
            List of invoices with details
        """
        filters = filters or InvoiceFilters()
        status = parse_status_filter(filters.status)

        if filters.search:
            logger.debug(f"Search term {filters.search!r} accepted but not applied")

        invoices = await self.storage.list_invoices(user_id, status=status)
        return await attach_details(self.storage, invoices)

    async def list_recent_invoices(self, user_id: str, limit: int = 5) -> list[InvoiceWithDetails]:
        """The `limit` most recently created invoices, with full details."""
        if limit < 1 or limit > MAX_RECENT_LIMIT:
            raise ValidationError(f"limit must be between 1 and {MAX_RECENT_LIMIT}")

        invoices = await self.storage.list_invoices(user_id, limit=limit)
        return await attach_details(self.storage, invoices)
