"""
Document storage backend.

Records live as JSON-like documents in named collections: decimals and
timestamps are stored as strings, enums as their values. Each single
document write is atomic, but there are no multi-document transactions,
so the unit of work undoes partial writes through compensating actions.
"""

import copy
import logging
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Collection, Iterator, Optional, Sequence

from app.core.exceptions import ConflictError
from app.models.base import generate_id
from app.models.invoice import InvoiceStatus
from app.repositories.base import StatusTotals, StorageBackend, UnitOfWork, highest_sequence
from app.schemas.client import ClientResponse, ClientWithStats
from app.schemas.invoice import InvoiceItemResponse, InvoiceResponse
from app.schemas.user import UserResponse
from app.services.pricing import ZERO, quantize


logger = logging.getLogger(__name__)

Document = dict[str, Any]


def encode_value(value: Any) -> Any:
    """Convert a Python value to its stored document representation."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def encode(data: dict) -> Document:
    return {key: encode_value(value) for key, value in data.items()}


class DocumentCollection:
    """A named set of documents keyed by `id`."""

    def __init__(self, name: str):
        self.name = name
        self._documents: dict[str, Document] = {}

    def insert_one(self, document: Document) -> Document:
        self._documents[document["id"]] = copy.deepcopy(document)
        return copy.deepcopy(document)

    def find_one(self, doc_id: str) -> Optional[Document]:
        document = self._documents.get(doc_id)
        return copy.deepcopy(document) if document is not None else None

    def find(self, predicate: Callable[[Document], bool] = lambda d: True) -> Iterator[Document]:
        for document in list(self._documents.values()):
            if predicate(document):
                yield copy.deepcopy(document)

    def update_one(self, doc_id: str, changes: Document) -> Optional[Document]:
        document = self._documents.get(doc_id)
        if document is None:
            return None
        document.update(changes)
        return copy.deepcopy(document)

    def delete_one(self, doc_id: str) -> bool:
        return self._documents.pop(doc_id, None) is not None

    def delete_many(self, predicate: Callable[[Document], bool]) -> int:
        doomed = [doc_id for doc_id, d in self._documents.items() if predicate(d)]
        for doc_id in doomed:
            del self._documents[doc_id]
        return len(doomed)


class DocumentUnitOfWork(UnitOfWork):
    """
    Compensation scope.

    On error the registered compensations run newest first and the
    original error propagates unchanged.
    """

    async def __aenter__(self) -> "DocumentUnitOfWork":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.release_compensations()
            return
        if self._compensations:
            logger.warning(
                "Running %d compensating action(s) after %s",
                len(self._compensations),
                exc_type.__name__,
            )
        await self.run_compensations()


class DocumentStorage(StorageBackend):
    """Storage Port adapter over document collections."""

    supports_transactions = False

    def __init__(self):
        self.users = DocumentCollection("users")
        self.clients = DocumentCollection("clients")
        self.invoices = DocumentCollection("invoices")
        self.invoice_items = DocumentCollection("invoice_items")

    def unit_of_work(self) -> DocumentUnitOfWork:
        return DocumentUnitOfWork()

    # ===== Users =====

    async def get_user(self, user_id: str) -> Optional[UserResponse]:
        document = self.users.find_one(user_id)
        return UserResponse.model_validate(document) if document else None

    async def get_user_by_external_id(self, external_id: str) -> Optional[UserResponse]:
        return self._first_user(lambda d: d["external_id"] == external_id)

    async def get_user_by_email(self, email: str) -> Optional[UserResponse]:
        return self._first_user(lambda d: d["email"] == email)

    def _first_user(self, predicate) -> Optional[UserResponse]:
        for document in self.users.find(predicate):
            return UserResponse.model_validate(document)
        return None

    async def insert_user(self, data: dict) -> UserResponse:
        document = self.users.insert_one(encode({"id": generate_id(), **data}))
        return UserResponse.model_validate(document)

    async def update_user(self, user_id: str, changes: dict) -> Optional[UserResponse]:
        document = self.users.update_one(user_id, encode(changes))
        return UserResponse.model_validate(document) if document else None

    # ===== Clients =====

    async def get_client(self, client_id: str) -> Optional[ClientResponse]:
        document = self.clients.find_one(client_id)
        return ClientResponse.model_validate(document) if document else None

    async def get_clients(self, client_ids: Collection[str]) -> dict[str, ClientResponse]:
        wanted = set(client_ids)
        return {
            d["id"]: ClientResponse.model_validate(d)
            for d in self.clients.find(lambda d: d["id"] in wanted)
        }

    async def list_clients_with_stats(self, user_id: str) -> list[ClientWithStats]:
        clients = sorted(
            self.clients.find(lambda d: d["user_id"] == user_id),
            key=lambda d: (datetime.fromisoformat(d["created_at"]), d["id"]),
            reverse=True,
        )

        # One pass over the tenant's invoices, grouped by client
        stats: dict[str, tuple[int, Decimal]] = {}
        for invoice in self.invoices.find(lambda d: _is_published(d) and d["user_id"] == user_id):
            count, amount = stats.get(invoice["client_id"], (0, ZERO))
            stats[invoice["client_id"]] = (count + 1, amount + Decimal(invoice["total"]))

        result = []
        for document in clients:
            count, amount = stats.get(document["id"], (0, ZERO))
            result.append(
                ClientWithStats.model_validate(
                    {**document, "invoice_count": count, "total_amount": str(quantize(amount))}
                )
            )
        return result

    async def count_clients(
        self,
        user_id: str,
        created_from: Optional[datetime] = None,
        created_before: Optional[datetime] = None,
    ) -> int:
        return sum(
            1
            for d in self.clients.find(lambda d: d["user_id"] == user_id)
            if _created_within(d, created_from, created_before)
        )

    async def insert_client(self, data: dict) -> ClientResponse:
        document = self.clients.insert_one(encode({"id": generate_id(), **data}))
        return ClientResponse.model_validate(document)

    async def update_client(self, client_id: str, changes: dict) -> Optional[ClientResponse]:
        document = self.clients.update_one(client_id, encode(changes))
        return ClientResponse.model_validate(document) if document else None

    async def delete_client(self, client_id: str) -> bool:
        return self.clients.delete_one(client_id)

    # ===== Invoices =====

    async def get_invoice(self, invoice_id: str) -> Optional[InvoiceResponse]:
        document = self.invoices.find_one(invoice_id)
        if document is None or not _is_published(document):
            return None
        return InvoiceResponse.model_validate(document)

    async def list_invoices(
        self,
        user_id: str,
        status: Optional[InvoiceStatus] = None,
        limit: Optional[int] = None,
    ) -> list[InvoiceResponse]:
        def matches(d: Document) -> bool:
            if not _is_published(d) or d["user_id"] != user_id:
                return False
            return status is None or d["status"] == status.value

        documents = sorted(
            self.invoices.find(matches),
            key=lambda d: (datetime.fromisoformat(d["created_at"]), d["id"]),
            reverse=True,
        )
        if limit is not None:
            documents = documents[:limit]
        return [InvoiceResponse.model_validate(d) for d in documents]

    async def list_invoice_ids(self, client_id: str) -> list[str]:
        return [d["id"] for d in self.invoices.find(lambda d: d["client_id"] == client_id)]

    async def max_invoice_number(self, user_id: str, prefix: str) -> int:
        return highest_sequence(
            (d["invoice_number"] for d in self.invoices.find(lambda d: d["user_id"] == user_id)),
            prefix,
        )

    async def insert_invoice(self, data: dict) -> InvoiceResponse:
        document = encode({"id": generate_id(), **data, "version": 1, "item_batch": None})
        return InvoiceResponse.model_validate(self.invoices.insert_one(document))

    async def update_invoice(
        self,
        invoice_id: str,
        changes: dict,
        expected_version: int,
    ) -> Optional[InvoiceResponse]:
        current = self.invoices.find_one(invoice_id)
        if current is None:
            return None
        if current["version"] != expected_version:
            logger.warning(f"Version conflict on invoice {invoice_id} (expected {expected_version})")
            raise ConflictError("Invoice was modified concurrently")

        document = self.invoices.update_one(
            invoice_id,
            {**encode(changes), "version": expected_version + 1},
        )
        return InvoiceResponse.model_validate(document)

    async def delete_invoice(self, invoice_id: str) -> bool:
        return self.invoices.delete_one(invoice_id)

    # ===== Invoice items =====

    async def insert_items(
        self,
        invoice_id: str,
        batch: str,
        items: Sequence[dict],
    ) -> list[InvoiceItemResponse]:
        inserted = []
        for position, item in enumerate(items):
            document = encode({
                "id": generate_id(),
                **item,
                "invoice_id": invoice_id,
                "batch": batch,
                "position": position,
            })
            inserted.append(InvoiceItemResponse.model_validate(self.invoice_items.insert_one(document)))
        return inserted

    async def list_items(
        self,
        invoices: Sequence[InvoiceResponse],
    ) -> dict[str, list[InvoiceItemResponse]]:
        visible = {i.id: i.item_batch for i in invoices if i.item_batch is not None}
        grouped: dict[str, list[Document]] = {i.id: [] for i in invoices}
        for document in self.invoice_items.find(
            lambda d: visible.get(d["invoice_id"]) == d["batch"]
        ):
            grouped[document["invoice_id"]].append(document)

        return {
            invoice_id: [
                InvoiceItemResponse.model_validate(d)
                for d in sorted(documents, key=lambda d: d["position"])
            ]
            for invoice_id, documents in grouped.items()
        }

    async def delete_items(self, invoice_id: str, batch: Optional[str] = None) -> int:
        return self.invoice_items.delete_many(
            lambda d: d["invoice_id"] == invoice_id and (batch is None or d["batch"] == batch)
        )

    # ===== Aggregation =====

    async def invoice_totals_by_status(
        self,
        user_id: str,
        created_from: Optional[datetime] = None,
        created_before: Optional[datetime] = None,
    ) -> dict[InvoiceStatus, StatusTotals]:
        totals: dict[InvoiceStatus, StatusTotals] = {}
        for document in self.invoices.find(
            lambda d: _is_published(d) and d["user_id"] == user_id
        ):
            if not _created_within(document, created_from, created_before):
                continue
            status = InvoiceStatus(document["status"])
            current = totals.get(status, StatusTotals())
            totals[status] = StatusTotals(
                count=current.count + 1,
                amount=current.amount + Decimal(document["total"]),
            )
        return totals


def _is_published(document: Document) -> bool:
    return document.get("item_batch") is not None


def _created_within(
    document: Document,
    created_from: Optional[datetime],
    created_before: Optional[datetime],
) -> bool:
    created_at = datetime.fromisoformat(document["created_at"])
    if created_from is not None and created_at < created_from:
        return False
    if created_before is not None and created_at >= created_before:
        return False
    return True
