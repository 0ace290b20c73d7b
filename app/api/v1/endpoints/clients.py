"""
Client management endpoints.
CRUD operations for clients.
"""

from fastapi import APIRouter, status

from app.api.deps import ClientServiceDep, CurrentUser
from app.schemas.client import (
    ClientCreate,
    ClientUpdate,
    ClientResponse,
    ClientWithStats,
)
from app.schemas.base import MessageResponse


router = APIRouter()


@router.post(
    "",
    response_model=ClientResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a client",
    description="Create a new client",
)
async def create_client(
    data: ClientCreate,
    current_user: CurrentUser,
    service: ClientServiceDep,
) -> ClientResponse:
    """Create a new client."""
    return await service.create_client(current_user.id, data)


@router.get(
    "",
    response_model=list[ClientWithStats],
    summary="List clients",
    description="List clients with their invoice count and total, newest first",
)
async def list_clients(
    current_user: CurrentUser,
    service: ClientServiceDep,
) -> list[ClientWithStats]:
    """List all clients with statistics."""
    return await service.list_clients(current_user.id)


@router.get(
    "/{client_id}",
    response_model=ClientResponse,
    summary="Client details",
    description="Get a client",
)
async def get_client(
    client_id: str,
    current_user: CurrentUser,
    service: ClientServiceDep,
) -> ClientResponse:
    """Get client by ID."""
    return await service.get_client(current_user.id, client_id)


@router.put(
    "/{client_id}",
    response_model=ClientResponse,
    summary="Update a client",
    description="Update a client's information",
)
async def update_client(
    client_id: str,
    data: ClientUpdate,
    current_user: CurrentUser,
    service: ClientServiceDep,
) -> ClientResponse:
    """Update a client."""
    return await service.update_client(current_user.id, client_id, data)


@router.delete(
    "/{client_id}",
    response_model=MessageResponse,
    summary="Delete a client",
    description="Delete a client together with all of its invoices",
)
async def delete_client(
    client_id: str,
    current_user: CurrentUser,
    service: ClientServiceDep,
) -> MessageResponse:
    """Delete a client."""
    await service.delete_client(current_user.id, client_id)
    return MessageResponse(message="Client deleted")
