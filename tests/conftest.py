"""
Pytest configuration and fixtures.

Service and API tests run against both storage backends through the
parametrized `storage` fixture.
"""

from typing import AsyncGenerator
import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool

from app.core.config import Settings
from app.core.database import create_session_factory, init_db
from app.main import create_app
from app.repositories.base import StorageBackend
from app.repositories.document import DocumentStorage
from app.repositories.sql import SqlAlchemyStorage
from app.schemas.client import ClientCreate, ClientResponse
from app.schemas.user import UserCreate, UserResponse
from app.services.client import ClientService
from app.services.dashboard import DashboardService
from app.services.invoice import InvoiceService
from app.services.query import InvoiceQueryService
from app.services.user import UserService
from factories import (
    OTHER_TENANT_SUBJECT,
    TENANT_SUBJECT,
    TEST_IDENTITY_SECRET,
    FakeClock,
)


@pytest.fixture(params=["sql", "document"])
async def storage(request, tmp_path) -> AsyncGenerator[StorageBackend, None]:
    """Storage backend under test (SQLite file database or documents)."""
    if request.param == "sql":
        engine = create_async_engine(
            f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
            poolclass=NullPool,
            echo=False,
        )
        await init_db(engine)
        backend = SqlAlchemyStorage(create_session_factory(engine), engine=engine)
    else:
        backend = DocumentStorage()

    yield backend

    await backend.close()

@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()

@pytest.fixture
def user_service(storage, clock) -> UserService:
    return UserService(storage, clock=clock)

@pytest.fixture
def client_service(storage, clock) -> ClientService:
    return ClientService(storage, clock=clock)

@pytest.fixture
def invoice_service(storage, clock) -> InvoiceService:
    return InvoiceService(storage, clock=clock)

@pytest.fixture
def query_service(storage) -> InvoiceQueryService:
    return InvoiceQueryService(storage)

@pytest.fixture
def dashboard_service(storage, clock) -> DashboardService:
    return DashboardService(storage, clock=clock)

@pytest.fixture
async def tenant(user_service) -> UserResponse:
    """Business profile of the caller."""
    return await user_service.create_user(
        TENANT_SUBJECT,
        UserCreate(
            email="owner@acme.com",
            business_name="Acme Repairs",
            contact_person="Ada Owner",
            default_currency="EUR",
            default_tax_rate="20",
            default_payment_terms=14,
        ),
    )

@pytest.fixture
async def other_tenant(user_service) -> UserResponse:
    """A second, unrelated business profile."""
    return await user_service.create_user(
        OTHER_TENANT_SUBJECT,
        UserCreate(
            email="owner@globex.com",
            business_name="Globex",
            contact_person="Hank Scorpio",
        ),
    )

@pytest.fixture
async def customer(client_service, tenant) -> ClientResponse:
    """A client of the tenant."""
    return await client_service.create_client(
        tenant.id,
        ClientCreate(name="Jane Customer", email="jane@customer.com"),
    )

@pytest.fixture
async def client(storage) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client for the API, backed by the storage under test."""
    settings = Settings(
        ENVIRONMENT="testing",
        IDENTITY_SECRET_KEY=TEST_IDENTITY_SECRET,
    )
    app = create_app(settings=settings, storage=storage)

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
