"""
Relational storage backend (SQLAlchemy async).

A unit of work opens one session and binds it to the running task, so
every port call made inside the scope joins the same transaction.
Outside a unit of work each call runs in its own short transaction.
"""

import logging
from contextlib import asynccontextmanager
from contextvars import ContextVar
from datetime import datetime
from decimal import Decimal
from typing import AsyncIterator, Collection, Optional, Sequence

from sqlalchemy import and_, delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from app.core.database import close_db, init_db
from app.core.exceptions import ConflictError, StorageError
from app.models.client import Client
from app.models.invoice import Invoice, InvoiceItem, InvoiceStatus
from app.models.user import User
from app.repositories.base import StatusTotals, StorageBackend, UnitOfWork, highest_sequence
from app.schemas.client import ClientResponse, ClientWithStats
from app.schemas.invoice import InvoiceItemResponse, InvoiceResponse
from app.schemas.user import UserResponse
from app.services.pricing import format_amount


logger = logging.getLogger(__name__)

_current_session: ContextVar[Optional[AsyncSession]] = ContextVar(
    "storage_session", default=None
)


class SqlAlchemyUnitOfWork(UnitOfWork):
    """
    Native transaction scope.

    Commits on success and rolls back on error. Registered compensations
    are never needed here and are discarded. A nested scope joins the
    outer transaction.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        super().__init__()
        self._session_factory = session_factory
        self._session: Optional[AsyncSession] = None
        self._token = None

    async def __aenter__(self) -> "SqlAlchemyUnitOfWork":
        if _current_session.get() is None:
            self._session = self._session_factory()
            self._token = _current_session.set(self._session)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.release_compensations()
        if self._session is None:
            return

        session = self._session
        try:
            if exc_type is None:
                await session.commit()
            else:
                await session.rollback()
        except SQLAlchemyError as e:
            if exc_type is None:
                raise StorageError("Failed to commit transaction") from e
            logger.error("Rollback failed", exc_info=True)
        finally:
            _current_session.reset(self._token)
            self._session = None
            await session.close()


class SqlAlchemyStorage(StorageBackend):
    """Storage Port adapter for PostgreSQL/SQLite through SQLAlchemy."""

    supports_transactions = True

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        engine: Optional[AsyncEngine] = None,
    ):
        self._session_factory = session_factory
        self._engine = engine

    def unit_of_work(self) -> SqlAlchemyUnitOfWork:
        return SqlAlchemyUnitOfWork(self._session_factory)

    async def initialize(self) -> None:
        if self._engine is not None:
            await init_db(self._engine)

    async def close(self) -> None:
        if self._engine is not None:
            await close_db(self._engine)

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        """Yield the unit-of-work session, or a short-lived one."""
        current = _current_session.get()
        if current is not None:
            try:
                yield current
            except SQLAlchemyError as e:
                raise StorageError("Storage operation failed") from e
            return

        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                raise StorageError("Storage operation failed") from e

    # ===== Users =====

    async def get_user(self, user_id: str) -> Optional[UserResponse]:
        return await self._get_user_where(User.id == user_id)

    async def get_user_by_external_id(self, external_id: str) -> Optional[UserResponse]:
        return await self._get_user_where(User.external_id == external_id)

    async def get_user_by_email(self, email: str) -> Optional[UserResponse]:
        return await self._get_user_where(User.email == email)

    async def _get_user_where(self, condition) -> Optional[UserResponse]:
        async with self._session() as session:
            result = await session.execute(select(User).where(condition))
            user = result.scalar_one_or_none()
            return UserResponse.model_validate(user) if user else None

    async def insert_user(self, data: dict) -> UserResponse:
        async with self._session() as session:
            user = User(**data)
            session.add(user)
            await session.flush()
            return UserResponse.model_validate(user)

    async def update_user(self, user_id: str, changes: dict) -> Optional[UserResponse]:
        async with self._session() as session:
            result = await session.execute(
                update(User)
                .where(User.id == user_id)
                .values(**changes)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                return None
            user = await self._reload(session, User, user_id)
            return UserResponse.model_validate(user)

    # ===== Clients =====

    async def get_client(self, client_id: str) -> Optional[ClientResponse]:
        async with self._session() as session:
            result = await session.execute(select(Client).where(Client.id == client_id))
            client = result.scalar_one_or_none()
            return ClientResponse.model_validate(client) if client else None

    async def get_clients(self, client_ids: Collection[str]) -> dict[str, ClientResponse]:
        if not client_ids:
            return {}
        async with self._session() as session:
            result = await session.execute(
                select(Client).where(Client.id.in_(list(client_ids)))
            )
            return {
                client.id: ClientResponse.model_validate(client)
                for client in result.scalars().all()
            }

    async def list_clients_with_stats(self, user_id: str) -> list[ClientWithStats]:
        query = (
            select(
                Client,
                func.count(Invoice.id).label("invoice_count"),
                func.coalesce(func.sum(Invoice.total), 0).label("total_amount"),
            )
            .outerjoin(
                Invoice,
                and_(
                    Invoice.client_id == Client.id,
                    Invoice.item_batch.is_not(None),
                ),
            )
            .where(Client.user_id == user_id)
            .group_by(Client.id)
            .order_by(Client.created_at.desc(), Client.id.desc())
        )

        async with self._session() as session:
            result = await session.execute(query)
            clients = []
            for client, invoice_count, total_amount in result.all():
                data = ClientResponse.model_validate(client).model_dump()
                clients.append(
                    ClientWithStats(
                        **data,
                        invoice_count=invoice_count,
                        total_amount=format_amount(total_amount),
                    )
                )
            return clients

    async def count_clients(
        self,
        user_id: str,
        created_from: Optional[datetime] = None,
        created_before: Optional[datetime] = None,
    ) -> int:
        query = select(func.count(Client.id)).where(Client.user_id == user_id)
        if created_from is not None:
            query = query.where(Client.created_at >= created_from)
        if created_before is not None:
            query = query.where(Client.created_at < created_before)

        async with self._session() as session:
            result = await session.execute(query)
            return result.scalar() or 0

    async def insert_client(self, data: dict) -> ClientResponse:
        async with self._session() as session:
            client = Client(**data)
            session.add(client)
            await session.flush()
            return ClientResponse.model_validate(client)

    async def update_client(self, client_id: str, changes: dict) -> Optional[ClientResponse]:
        async with self._session() as session:
            result = await session.execute(
                update(Client)
                .where(Client.id == client_id)
                .values(**changes)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                return None
            client = await self._reload(session, Client, client_id)
            return ClientResponse.model_validate(client)

    async def delete_client(self, client_id: str) -> bool:
        async with self._session() as session:
            result = await session.execute(delete(Client).where(Client.id == client_id))
            return result.rowcount > 0

    # ===== Invoices =====

    async def get_invoice(self, invoice_id: str) -> Optional[InvoiceResponse]:
        async with self._session() as session:
            result = await session.execute(
                select(Invoice).where(
                    Invoice.id == invoice_id,
                    Invoice.item_batch.is_not(None),
                )
            )
            invoice = result.scalar_one_or_none()
            return InvoiceResponse.model_validate(invoice) if invoice else None

    async def list_invoices(
        self,
        user_id: str,
        status: Optional[InvoiceStatus] = None,
        limit: Optional[int] = None,
    ) -> list[InvoiceResponse]:
        query = select(Invoice).where(
            Invoice.user_id == user_id,
            Invoice.item_batch.is_not(None),
        )
        if status is not None:
            query = query.where(Invoice.status == status.value)
        query = query.order_by(Invoice.created_at.desc(), Invoice.id.desc())
        if limit is not None:
            query = query.limit(limit)

        async with self._session() as session:
            result = await session.execute(query)
            return [InvoiceResponse.model_validate(i) for i in result.scalars().all()]

    async def list_invoice_ids(self, client_id: str) -> list[str]:
        async with self._session() as session:
            result = await session.execute(
                select(Invoice.id).where(Invoice.client_id == client_id)
            )
            return list(result.scalars().all())

    async def max_invoice_number(self, user_id: str, prefix: str) -> int:
        async with self._session() as session:
            result = await session.execute(
                select(Invoice.invoice_number).where(
                    Invoice.user_id == user_id,
                    Invoice.invoice_number.like(f"{prefix}%"),
                )
            )
            return highest_sequence(result.scalars().all(), prefix)

    async def insert_invoice(self, data: dict) -> InvoiceResponse:
        async with self._session() as session:
            invoice = Invoice(**data, version=1, item_batch=None)
            session.add(invoice)
            await session.flush()
            return InvoiceResponse.model_validate(invoice)

    async def update_invoice(
        self,
        invoice_id: str,
        changes: dict,
        expected_version: int,
    ) -> Optional[InvoiceResponse]:
        async with self._session() as session:
            result = await session.execute(
                update(Invoice)
                .where(Invoice.id == invoice_id, Invoice.version == expected_version)
                .values(**changes, version=Invoice.version + 1)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                current = await session.execute(
                    select(Invoice.version).where(Invoice.id == invoice_id)
                )
                if current.scalar_one_or_none() is None:
                    return None
                logger.warning(f"Version conflict on invoice {invoice_id} (expected {expected_version})")
                raise ConflictError("Invoice was modified concurrently")

            invoice = await self._reload(session, Invoice, invoice_id)
            return InvoiceResponse.model_validate(invoice)

    async def delete_invoice(self, invoice_id: str) -> bool:
        async with self._session() as session:
            result = await session.execute(delete(Invoice).where(Invoice.id == invoice_id))
            return result.rowcount > 0

    # ===== Invoice items =====

    async def insert_items(
        self,
        invoice_id: str,
        batch: str,
        items: Sequence[dict],
    ) -> list[InvoiceItemResponse]:
        async with self._session() as session:
            rows = [
                InvoiceItem(**item, invoice_id=invoice_id, batch=batch, position=position)
                for position, item in enumerate(items)
            ]
            session.add_all(rows)
            await session.flush()
            return [InvoiceItemResponse.model_validate(row) for row in rows]

    async def list_items(
        self,
        invoices: Sequence[InvoiceResponse],
    ) -> dict[str, list[InvoiceItemResponse]]:
        visible = {i.id: i.item_batch for i in invoices if i.item_batch is not None}
        items: dict[str, list[InvoiceItemResponse]] = {i.id: [] for i in invoices}
        if not visible:
            return items

        async with self._session() as session:
            result = await session.execute(
                select(InvoiceItem)
                .where(InvoiceItem.invoice_id.in_(list(visible)))
                .order_by(InvoiceItem.invoice_id, InvoiceItem.position)
            )
            for row in result.scalars().all():
                if row.batch == visible[row.invoice_id]:
                    items[row.invoice_id].append(InvoiceItemResponse.model_validate(row))
        return items

    async def delete_items(self, invoice_id: str, batch: Optional[str] = None) -> int:
        query = delete(InvoiceItem).where(InvoiceItem.invoice_id == invoice_id)
        if batch is not None:
            query = query.where(InvoiceItem.batch == batch)

        async with self._session() as session:
            result = await session.execute(query)
            return result.rowcount

    # ===== Aggregation =====

    async def invoice_totals_by_status(
        self,
        user_id: str,
        created_from: Optional[datetime] = None,
        created_before: Optional[datetime] = None,
    ) -> dict[InvoiceStatus, StatusTotals]:
        query = select(
            Invoice.status,
            func.count(Invoice.id),
            func.coalesce(func.sum(Invoice.total), 0),
        ).where(
            Invoice.user_id == user_id,
            Invoice.item_batch.is_not(None),
        )
        if created_from is not None:
            query = query.where(Invoice.created_at >= created_from)
        if created_before is not None:
            query = query.where(Invoice.created_at < created_before)
        query = query.group_by(Invoice.status)

        async with self._session() as session:
            result = await session.execute(query)
            return {
                InvoiceStatus(status): StatusTotals(
                    count=count,
                    amount=Decimal(format_amount(amount)),
                )
                for status, count, amount in result.all()
            }

    @staticmethod
    async def _reload(session: AsyncSession, model, record_id: str):
        result = await session.execute(
            select(model)
            .where(model.id == record_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()
