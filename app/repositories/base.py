"""
Storage Port.

Defines the persistence contract every backend must satisfy. The invoicing
services are written once against this interface; adapters only store and
fetch records.

Consistency contract for invoices:
- an invoice is invisible to readers until its `item_batch` is set
- readers only see the items whose batch equals the invoice's `item_batch`
- `update_invoice` is a compare-and-set on `version` and bumps it
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Awaitable, Callable, Collection, Iterable, Optional, Sequence

from app.models.invoice import InvoiceStatus
from app.schemas.client import ClientResponse, ClientWithStats
from app.schemas.invoice import InvoiceItemResponse, InvoiceResponse
from app.schemas.user import UserResponse


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StatusTotals:
    """Count and summed total of the invoices in one status."""
    count: int = 0
    amount: Decimal = Decimal("0.00")


def highest_sequence(numbers: Iterable[str], prefix: str) -> int:
    """Largest integer suffix after `prefix` in `numbers`, 0 when none."""
    highest = 0
    for number in numbers:
        suffix = number[len(prefix):]
        if number.startswith(prefix) and suffix.isdigit():
            highest = max(highest, int(suffix))
    return highest


class UnitOfWork(ABC):
    """
    Scope for a multi-record write.

    Services register compensating actions while they write. Backends with
    native transactions roll back instead and ignore them; backends without
    run them in reverse order when the scope exits with an error.
    """

    def __init__(self):
        self._compensations: list[tuple[Callable[..., Awaitable[Any]], tuple]] = []

    def on_rollback(self, action: Callable[..., Awaitable[Any]], *args: Any) -> None:
        """Register an action that undoes a write made inside this scope."""
        self._compensations.append((action, args))

    def release_compensations(self) -> None:
        """Forget registered actions once the aggregate is consistent again."""
        self._compensations.clear()

    async def run_compensations(self) -> None:
        """
        Undo registered writes, newest first.

        A failing compensation is logged and the remaining ones still run;
        the error that aborted the scope is re-raised by the caller.
        """
        while self._compensations:
            action, args = self._compensations.pop()
            try:
                await action(*args)
            except Exception:
                logger.error(
                    "Compensating action %s%s failed",
                    getattr(action, "__name__", action),
                    args,
                    exc_info=True,
                )

    @abstractmethod
    async def __aenter__(self) -> "UnitOfWork":
        pass

    @abstractmethod
    async def __aexit__(self, exc_type, exc, tb) -> None:
        pass


class StorageBackend(ABC):
    """
    Persistence contract shared by the relational and document backends.

    All monetary values are Decimals and all timestamps aware UTC datetimes.
    Record identifiers are assigned by the backend.
    """

    #: Whether a unit of work is an all-or-nothing native transaction
    supports_transactions: bool = False

    @abstractmethod
    def unit_of_work(self) -> UnitOfWork:
        """Open a scope for a multi-record write."""

    async def initialize(self) -> None:
        """Prepare the backend schema (development only)."""

    async def close(self) -> None:
        """Release backend resources."""

    # ===== Users =====

    @abstractmethod
    async def get_user(self, user_id: str) -> Optional[UserResponse]:
        pass

    @abstractmethod
    async def get_user_by_external_id(self, external_id: str) -> Optional[UserResponse]:
        pass

    @abstractmethod
    async def get_user_by_email(self, email: str) -> Optional[UserResponse]:
        pass

    @abstractmethod
    async def insert_user(self, data: dict) -> UserResponse:
        pass

    @abstractmethod
    async def update_user(self, user_id: str, changes: dict) -> Optional[UserResponse]:
        """Apply changes, returning None if the user does not exist."""

    # ===== Clients =====

    @abstractmethod
    async def get_client(self, client_id: str) -> Optional[ClientResponse]:
        pass

    @abstractmethod
    async def get_clients(self, client_ids: Collection[str]) -> dict[str, ClientResponse]:
        """Fetch several clients at once, keyed by id."""

    @abstractmethod
    async def list_clients_with_stats(self, user_id: str) -> list[ClientWithStats]:
        """
        List a tenant's clients with invoice count and summed total.

        Computed in a single grouped pass, newest client first.
        """

    @abstractmethod
    async def count_clients(
        self,
        user_id: str,
        created_from: Optional[datetime] = None,
        created_before: Optional[datetime] = None,
    ) -> int:
        pass

    @abstractmethod
    async def insert_client(self, data: dict) -> ClientResponse:
        pass

    @abstractmethod
    async def update_client(self, client_id: str, changes: dict) -> Optional[ClientResponse]:
        pass

    @abstractmethod
    async def delete_client(self, client_id: str) -> bool:
        pass

    # ===== Invoices =====

    @abstractmethod
    async def get_invoice(self, invoice_id: str) -> Optional[InvoiceResponse]:
        """Fetch a published invoice."""

    @abstractmethod
    async def list_invoices(
        self,
        user_id: str,
        status: Optional[InvoiceStatus] = None,
        limit: Optional[int] = None,
    ) -> list[InvoiceResponse]:
        """List a tenant's published invoices, newest first."""

    @abstractmethod
    async def list_invoice_ids(self, client_id: str) -> list[str]:
        """Ids of every invoice of a client, published or not."""

    @abstractmethod
    async def max_invoice_number(self, user_id: str, prefix: str) -> int:
        """
        Highest numeric suffix among a tenant's invoice numbers starting
        with prefix (0 when there is none).

        Numbers whose suffix is not an integer are ignored.
        """

    @abstractmethod
    async def insert_invoice(self, data: dict) -> InvoiceResponse:
        """Insert an unpublished invoice (version 1, no item batch)."""

    @abstractmethod
    async def update_invoice(
        self,
        invoice_id: str,
        changes: dict,
        expected_version: int,
    ) -> Optional[InvoiceResponse]:
        """
        Apply changes if the stored version still equals expected_version.

        Returns:
            The updated invoice, or None if it does not exist

        Raises:
            ConflictError: If the version changed since it was read
        """

    @abstractmethod
    async def delete_invoice(self, invoice_id: str) -> bool:
        pass

    # ===== Invoice items =====

    @abstractmethod
    async def insert_items(
        self,
        invoice_id: str,
        batch: str,
        items: Sequence[dict],
    ) -> list[InvoiceItemResponse]:
        """Insert an item set under the given batch, keeping its order."""

    @abstractmethod
    async def list_items(
        self,
        invoices: Sequence[InvoiceResponse],
    ) -> dict[str, list[InvoiceItemResponse]]:
        """Visible items of several invoices, keyed by invoice id, in insertion order."""

    @abstractmethod
    async def delete_items(self, invoice_id: str, batch: Optional[str] = None) -> int:
        """Delete one batch of items, or all of them when batch is None."""

    # ===== Aggregation =====

    @abstractmethod
    async def invoice_totals_by_status(
        self,
        user_id: str,
        created_from: Optional[datetime] = None,
        created_before: Optional[datetime] = None,
    ) -> dict[InvoiceStatus, StatusTotals]:
        """Count and sum published invoices per status."""
