"""
Client service.
Handles client CRUD operations for a tenant.
"""

import logging
from datetime import datetime
from typing import Callable

from app.core.clock import utcnow
from app.core.exceptions import NotFoundError, ValidationError
from app.repositories.base import StorageBackend
from app.schemas.client import ClientCreate, ClientResponse, ClientUpdate, ClientWithStats
from app.services.invoice import purge_invoice


logger = logging.getLogger(__name__)


class ClientService:
    """Service for client operations."""

    def __init__(self, storage: StorageBackend, clock: Callable[[], datetime] = utcnow):
        self.storage = storage
        self.clock = clock

    async def create_client(self, user_id: str, data: ClientCreate) -> ClientResponse:
        """
        Create a new client.

        Args:
            user_id: Owning tenant
            data: Client data

        Returns:
            Created client
        """
        now = self.clock()
        client = await self.storage.insert_client({
            **data.model_dump(),
            "user_id": user_id,
            "created_at": now,
            "updated_at": now,
        })

        logger.info(f"Client created: {client.id} for user {user_id}")
        return client

    async def get_client(self, user_id: str, client_id: str) -> ClientResponse:
        """
        Get a client owned by the tenant.

        Raises:
            NotFoundError: If the client does not exist or belongs to another tenant
        """
        client = await self.storage.get_client(client_id)
        if client is None or client.user_id != user_id:
            raise NotFoundError("Client not found")
        return client

    async def list_clients(self, user_id: str) -> list[ClientWithStats]:
        """List the tenant's clients with invoice count and total, newest first."""
        return await self.storage.list_clients_with_stats(user_id)

    async def update_client(
        self,
        user_id: str,
        client_id: str,
        data: ClientUpdate,
    ) -> ClientResponse:
        """
        Update client.

        Args:
            user_id: Owning tenant
            client_id: Client to update
            data: Fields to change (unset fields are left alone)

        Returns:
            Updated client
        """
        await self.get_client(user_id, client_id)

        changes = data.model_dump(exclude_unset=True)
        for field in ("name", "email"):
            if field in changes and changes[field] is None:
                raise ValidationError(f"{field} cannot be null")

        changes["updated_at"] = self.clock()
        client = await self.storage.update_client(client_id, changes)
        if client is None:
            raise NotFoundError("Client not found")
        return client

    async def delete_client(self, user_id: str, client_id: str) -> None:
        """
        Delete a client and every invoice billed to it.

        Invoices go first so that no invoice ever points at a missing client.
        """
        await self.get_client(user_id, client_id)

        async with self.storage.unit_of_work():
            invoice_ids = await self.storage.list_invoice_ids(client_id)
            for invoice_id in invoice_ids:
                await purge_invoice(self.storage, invoice_id)
            await self.storage.delete_client(client_id)

        logger.info(f"Client deleted: {client_id} ({len(invoice_ids)} invoice(s) removed)")
