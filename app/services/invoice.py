"""
Invoice service.
Handles invoice creation, updates, item replacement and status changes.

An invoice and its items form one aggregate. Writes go through a unit of
work and publish new item sets by flipping the invoice's `item_batch`
with a version-checked update, so readers never see totals that disagree
with the visible items.
"""

import logging
from datetime import datetime, timedelta
from typing import Callable, Literal, Optional, Sequence

from app.core.clock import utcnow
from app.core.exceptions import ConflictError, NotFoundError, StorageError, ValidationError
from app.models.base import generate_id
from app.models.invoice import InvoiceStatus
from app.repositories.base import StorageBackend
from app.schemas.client import ClientResponse
from app.schemas.invoice import (
    InvoiceCreate,
    InvoiceItemCreate,
    InvoiceResponse,
    InvoiceUpdate,
    InvoiceWithDetails,
)
from app.services.pricing import (
    compute_totals,
    line_amount,
    quantize,
    validate_quantity,
    validate_rate,
    validate_tax_rate,
)
from app.services.query import attach_details, with_details


logger = logging.getLogger(__name__)

PaidAtPolicy = Literal["keep", "clear"]

# Fields an update may change but never clear
REQUIRED_FIELDS = ("client_id", "invoice_number", "currency", "tax_rate", "invoice_date", "due_date")


async def purge_invoice(storage: StorageBackend, invoice_id: str) -> bool:
    """
    Delete an invoice and all of its items.

    The invoice record goes first: once it is gone the aggregate is no
    longer visible, and the leftover items are unreachable.
    """
    async with storage.unit_of_work():
        deleted = await storage.delete_invoice(invoice_id)
        await storage.delete_items(invoice_id)
    return deleted


class InvoiceService:
    """Service for invoice operations."""

    def __init__(
        self,
        storage: StorageBackend,
        clock: Callable[[], datetime] = utcnow,
        paid_at_policy: PaidAtPolicy = "keep",
    ):
        self.storage = storage
        self.clock = clock
        self.paid_at_policy = paid_at_policy

    async def _get_owned_client(self, user_id: str, client_id: str) -> ClientResponse:
        client = await self.storage.get_client(client_id)
        if client is None or client.user_id != user_id:
            raise ValidationError("Client not found")
        return client

    async def _get_owned_invoice(self, user_id: str, invoice_id: str) -> InvoiceResponse:
        invoice = await self.storage.get_invoice(invoice_id)
        if invoice is None or invoice.user_id != user_id:
            raise NotFoundError("Invoice not found")
        return invoice

    def _price_items(self, items: Sequence[InvoiceItemCreate], now: datetime) -> list[dict]:
        """Validate items and compute their amounts."""
        if not items:
            raise ValidationError("An invoice needs at least one item")

        priced = []
        for item in items:
            quantity = validate_quantity(item.quantity)
            rate = validate_rate(item.rate)
            amount = line_amount(quantity, rate)

            if item.amount is not None and quantize(item.amount) != amount:
                logger.debug(
                    f"Item amount {item.amount} replaced by {amount} ({quantity} x {rate})"
                )

            priced.append({
                "description": item.description,
                "quantity": quantity,
                "rate": rate,
                "amount": amount,
                "created_at": now,
            })
        return priced

    async def _generate_invoice_number(self, user_id: str, now: datetime) -> str:
        """
        Generate an invoice number.
        Format: INV-{year}-{sequence}, continuing after the highest
        sequence in use so deleted invoices never free a number.
        """
        prefix = f"INV-{now.year}-"
        highest = await self.storage.max_invoice_number(user_id, prefix)
        return f"{prefix}{str(highest + 1).zfill(5)}"

    async def create_invoice(self, user_id: str, data: InvoiceCreate) -> InvoiceWithDetails:
        """
        Create an invoice with its items.

        Currency, tax rate, due date and number fall back to the tenant's
        profile defaults when omitted.

        Args:
            user_id: Owning tenant
            data: Invoice data with items

        Returns:
            Created invoice with client and items

        Raises:
            ValidationError: If the client is unknown, there are no items
                or an amount is out of range
        """
        owner = await self.storage.get_user(user_id)
        if owner is None:
            raise NotFoundError("User not found")

        client = await self._get_owned_client(user_id, data.client_id)

        now = self.clock()
        items = self._price_items(data.items, now)
        tax_rate = validate_tax_rate(
            data.tax_rate if data.tax_rate is not None else owner.default_tax_rate
        )
        totals = compute_totals((item["amount"] for item in items), tax_rate)

        due_date = data.due_date
        if due_date is None:
            due_date = data.invoice_date + timedelta(days=owner.default_payment_terms)

        invoice_number = data.invoice_number
        if not invoice_number:
            invoice_number = await self._generate_invoice_number(user_id, now)

        batch = generate_id()
        async with self.storage.unit_of_work() as uow:
            invoice = await self.storage.insert_invoice({
                "user_id": user_id,
                "client_id": client.id,
                "invoice_number": invoice_number,
                "status": InvoiceStatus.PENDING.value,
                "currency": data.currency or owner.default_currency,
                "tax_rate": tax_rate,
                **totals.as_dict(),
                "notes": data.notes,
                "invoice_date": data.invoice_date,
                "due_date": due_date,
                "paid_at": None,
                "created_at": now,
                "updated_at": now,
            })
            uow.on_rollback(self.storage.delete_invoice, invoice.id)
            uow.on_rollback(self.storage.delete_items, invoice.id)

            created_items = await self.storage.insert_items(invoice.id, batch, items)
            invoice = await self.storage.update_invoice(
                invoice.id,
                {"item_batch": batch},
                expected_version=invoice.version,
            )
            if invoice is None:
                raise NotFoundError("Invoice not found")

        logger.info(
            f"Invoice created: {invoice.id} ({invoice.invoice_number}) "
            f"for user {user_id}, total {invoice.total}"
        )
        return with_details(invoice, client, created_items)

    async def get_invoice(self, user_id: str, invoice_id: str) -> InvoiceWithDetails:
        """
        Get an invoice with its client and ordered items.

        Raises:
            NotFoundError: If the invoice does not exist or belongs to another tenant
        """
        invoice = await self._get_owned_invoice(user_id, invoice_id)
        details = await attach_details(self.storage, [invoice])
        if not details:
            raise NotFoundError("Invoice not found")
        return details[0]

    async def update_invoice(
        self,
        user_id: str,
        invoice_id: str,
        data: InvoiceUpdate,
    ) -> InvoiceResponse:
        """
        Update the scalar fields of an invoice.

        Items are left alone. A new tax rate recomputes the tax amount and
        total from the current subtotal.
        """
        current = await self._get_owned_invoice(user_id, invoice_id)
        changes = data.model_dump(exclude_unset=True)

        for field in REQUIRED_FIELDS:
            if field in changes and changes[field] is None:
                raise ValidationError(f"{field} cannot be null")

        if "client_id" in changes and changes["client_id"] != current.client_id:
            await self._get_owned_client(user_id, changes["client_id"])

        if "tax_rate" in changes:
            tax_rate = validate_tax_rate(changes["tax_rate"])
            changes["tax_rate"] = tax_rate
            changes.update(compute_totals([current.subtotal], tax_rate).as_dict())

        changes["updated_at"] = self.clock()
        invoice = await self.storage.update_invoice(
            invoice_id,
            changes,
            expected_version=data.expected_version or current.version,
        )
        if invoice is None:
            raise NotFoundError("Invoice not found")
        return invoice

    async def replace_invoice_items(
        self,
        user_id: str,
        invoice_id: str,
        items: Sequence[InvoiceItemCreate],
        expected_version: Optional[int] = None,
    ) -> None:
        """
        Replace the whole item set of an invoice and recompute its totals.

        The new items are staged under a fresh batch, then published
        together with the new totals in one version-checked update. The
        previous batch is removed afterwards.
        Without native transactions a failure to remove it is only logged,
        since the new set is already live and the old batch is unreachable.
        """
        current = await self._get_owned_invoice(user_id, invoice_id)
        version = expected_version or current.version
        if version != current.version:
            logger.warning(f"Version conflict on invoice {invoice_id} (expected {version})")
            raise ConflictError("Invoice was modified concurrently")

        now = self.clock()
        priced = self._price_items(items, now)
        totals = compute_totals((item["amount"] for item in priced), current.tax_rate)

        batch = generate_id()
        async with self.storage.unit_of_work() as uow:
            uow.on_rollback(self.storage.delete_items, invoice_id, batch)
            await self.storage.insert_items(invoice_id, batch, priced)

            invoice = await self.storage.update_invoice(
                invoice_id,
                {**totals.as_dict(), "item_batch": batch, "updated_at": now},
                expected_version=version,
            )
            if invoice is None:
                raise NotFoundError("Invoice not found")

            uow.release_compensations()
            try:
                await self.storage.delete_items(invoice_id, current.item_batch)
            except StorageError:
                if self.storage.supports_transactions:
                    raise
                # The new set is already published and the old batch is unreachable
                logger.error(
                    f"Failed to delete replaced items of invoice {invoice_id} "
                    f"(batch {current.item_batch})",
                    exc_info=True,
                )

        logger.info(f"Invoice {invoice_id} items replaced ({len(priced)} item(s), total {totals.total})")

    async def update_invoice_status(
        self,
        user_id: str,
        invoice_id: str,
        status: str,
        expected_version: Optional[int] = None,
    ) -> InvoiceResponse:
        """
        Move an invoice to another status.

        Entering `paid` stamps `paid_at` unless it is already set. Leaving
        `paid` keeps or clears it depending on the paid-at policy.

        Raises:
            ValidationError: If the status is not pending, paid or overdue
        """
        try:
            new_status = InvoiceStatus(status)
        except ValueError:
            raise ValidationError("Invalid invoice status")

        current = await self._get_owned_invoice(user_id, invoice_id)
        now = self.clock()

        changes = {"status": new_status.value, "updated_at": now}
        if new_status == InvoiceStatus.PAID:
            if current.paid_at is None:
                changes["paid_at"] = now
        elif self.paid_at_policy == "clear" and current.paid_at is not None:
            changes["paid_at"] = None

        invoice = await self.storage.update_invoice(
            invoice_id,
            changes,
            expected_version=expected_version or current.version,
        )
        if invoice is None:
            raise NotFoundError("Invoice not found")

        logger.info(f"Invoice {invoice_id} status: {current.status.value} -> {new_status.value}")
        return invoice

    async def delete_invoice(self, user_id: str, invoice_id: str) -> None:
        """Delete an invoice and its items."""
        await self._get_owned_invoice(user_id, invoice_id)
        await purge_invoice(self.storage, invoice_id)
        logger.info(f"Invoice deleted: {invoice_id}")
