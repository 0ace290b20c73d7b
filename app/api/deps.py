"""
API Dependencies.
Storage, services and caller identity resolution.
"""

import logging
from typing import Annotated
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from app.core.config import Settings
from app.core.exceptions import AuthenticationError
from app.core.security import IdentityVerifier, TokenData
from app.repositories.base import StorageBackend
from app.schemas.user import UserResponse
from app.services.client import ClientService
from app.services.dashboard import DashboardService
from app.services.invoice import InvoiceService
from app.services.pdf import PDFService
from app.services.query import InvoiceQueryService
from app.services.user import UserService


# Logger
logger = logging.getLogger(__name__)

# Bearer token scheme
security = HTTPBearer(auto_error=False)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_storage(request: Request) -> StorageBackend:
    """The process-wide storage backend built at startup."""
    return request.app.state.storage


def get_identity_verifier(request: Request) -> IdentityVerifier:
    return request.app.state.identity_verifier


AppSettings = Annotated[Settings, Depends(get_app_settings)]
Storage = Annotated[StorageBackend, Depends(get_storage)]


async def get_identity(
    verifier: Annotated[IdentityVerifier, Depends(get_identity_verifier)],
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> TokenData:
    """
    Verify the bearer token against the identity provider.

    Raises:
        AuthenticationError: If the token is missing or invalid
    """
    if not credentials:
        logger.warning("Request without bearer token")
        raise AuthenticationError("Not authenticated")

    try:
        return verifier.verify(credentials.credentials)
    except AuthenticationError as e:
        logger.warning(f"Token rejected: {e.message}")
        raise


Identity = Annotated[TokenData, Depends(get_identity)]


async def get_current_user(identity: Identity, storage: Storage) -> UserResponse:
    """
    Resolve the verified identity to its business profile (the tenant).

    Raises:
        AuthenticationError: If no profile is registered for the identity
    """
    user = await storage.get_user_by_external_id(identity.subject)
    if user is None:
        logger.warning(f"No profile for identity {identity.subject}")
        raise AuthenticationError("No business profile registered for this account")

    logger.debug(f"Authenticated user: {user.email}")
    return user


CurrentUser = Annotated[UserResponse, Depends(get_current_user)]


def get_user_service(storage: Storage) -> UserService:
    return UserService(storage)


def get_client_service(storage: Storage) -> ClientService:
    return ClientService(storage)


def get_invoice_service(storage: Storage, settings: AppSettings) -> InvoiceService:
    return InvoiceService(storage, paid_at_policy=settings.PAID_AT_POLICY)


def get_query_service(storage: Storage) -> InvoiceQueryService:
    return InvoiceQueryService(storage)


def get_dashboard_service(storage: Storage) -> DashboardService:
    return DashboardService(storage)


def get_pdf_service() -> PDFService:
    return PDFService()


# Type aliases for cleaner route signatures
UserServiceDep = Annotated[UserService, Depends(get_user_service)]
ClientServiceDep = Annotated[ClientService, Depends(get_client_service)]
InvoiceServiceDep = Annotated[InvoiceService, Depends(get_invoice_service)]
QueryServiceDep = Annotated[InvoiceQueryService, Depends(get_query_service)]
DashboardServiceDep = Annotated[DashboardService, Depends(get_dashboard_service)]
PDFServiceDep = Annotated[PDFService, Depends(get_pdf_service)]
