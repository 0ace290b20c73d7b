"""
Storage backend tests.

Exercise the persistence contract directly: version checks, batch
visibility and unit-of-work behaviour.
"""

import logging
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from app.core.exceptions import ConflictError, StorageError
from app.models.invoice import InvoiceStatus
from app.repositories.document import DocumentStorage, DocumentUnitOfWork, encode
from app.services.pricing import ZERO


def invoice_data(user_id: str, client_id: str, now, **overrides) -> dict:
    data = {
        "user_id": user_id,
        "client_id": client_id,
        "invoice_number": "INV-RAW",
        "status": InvoiceStatus.PENDING.value,
        "currency": "USD",
        "tax_rate": ZERO,
        "subtotal": Decimal("9.00"),
        "tax_amount": ZERO,
        "total": Decimal("9.00"),
        "notes": None,
        "invoice_date": now,
        "due_date": now,
        "paid_at": None,
        "created_at": now,
        "updated_at": now,
    }
    data.update(overrides)
    return data


def item_data(description: str, now) -> dict:
    return {
        "description": description,
        "quantity": Decimal("1.00"),
        "rate": Decimal("9.00"),
        "amount": Decimal("9.00"),
        "created_at": now,
    }


async def test_update_invoice_checks_version(storage, tenant, customer, clock):
    invoice = await storage.insert_invoice(invoice_data(tenant.id, customer.id, clock()))
    assert invoice.version == 1
    assert invoice.item_batch is None

    updated = await storage.update_invoice(invoice.id, {"item_batch": "b1"}, expected_version=1)
    assert updated.version == 2
    assert updated.item_batch == "b1"

    with pytest.raises(ConflictError):
        await storage.update_invoice(invoice.id, {"notes": "late"}, expected_version=1)

    current = await storage.get_invoice(invoice.id)
    assert current.notes is None
    assert current.version == 2


async def test_update_missing_invoice_returns_none(storage):
    assert await storage.update_invoice("missing", {"notes": "x"}, expected_version=1) is None


async def test_max_invoice_number(storage, tenant, other_tenant, customer, clock):
    now = clock()
    for user_id, number in [
        (tenant.id, "INV-2026-00002"),
        (tenant.id, "INV-2026-00011"),
        (tenant.id, "INV-2026-draft"),
        (tenant.id, "INV-2025-00040"),
        (other_tenant.id, "INV-2026-00099"),
    ]:
        await storage.insert_invoice(
            invoice_data(user_id, customer.id, now, invoice_number=number)
        )

    assert await storage.max_invoice_number(tenant.id, "INV-2026-") == 11
    assert await storage.max_invoice_number(tenant.id, "INV-2027-") == 0


async def test_only_published_batch_is_visible(storage, tenant, customer, clock):
    now = clock()
    invoice = await storage.insert_invoice(invoice_data(tenant.id, customer.id, now))
    await storage.insert_items(invoice.id, "old", [item_data("old", now)])
    await storage.insert_items(invoice.id, "new", [item_data("new 1", now), item_data("new 2", now)])

    assert await storage.get_invoice(invoice.id) is None

    invoice = await storage.update_invoice(invoice.id, {"item_batch": "new"}, expected_version=1)
    items = await storage.list_items([invoice])

    assert [i.description for i in items[invoice.id]] == ["new 1", "new 2"]
    assert await storage.delete_items(invoice.id, "old") == 1


async def test_unit_of_work_discards_writes_on_error(storage, tenant, customer, clock):
    with pytest.raises(StorageError):
        async with storage.unit_of_work() as uow:
            invoice = await storage.insert_invoice(invoice_data(tenant.id, customer.id, clock()))
            uow.on_rollback(storage.delete_invoice, invoice.id)
            raise StorageError("boom")

    assert await storage.list_invoice_ids(customer.id) == []


async def test_nested_unit_of_work_joins_outer_scope(storage, tenant, customer, clock):
    with pytest.raises(StorageError):
        async with storage.unit_of_work() as outer:
            async with storage.unit_of_work() as inner:
                invoice = await storage.insert_invoice(invoice_data(tenant.id, customer.id, clock()))
                inner.on_rollback(storage.delete_invoice, invoice.id)
            outer.on_rollback(storage.delete_invoice, invoice.id)
            raise StorageError("boom")

    assert await storage.list_invoice_ids(customer.id) == []


async def test_invoice_totals_by_status(storage, tenant, customer, clock):
    for status, total in [("pending", "9.00"), ("pending", "1.50"), ("paid", "4.00")]:
        invoice = await storage.insert_invoice(
            invoice_data(tenant.id, customer.id, clock(), status=status, total=Decimal(total))
        )
        await storage.update_invoice(invoice.id, {"item_batch": "b"}, expected_version=1)

    totals = await storage.invoice_totals_by_status(tenant.id)

    assert totals[InvoiceStatus.PENDING].count == 2
    assert totals[InvoiceStatus.PENDING].amount == Decimal("10.50")
    assert totals[InvoiceStatus.PAID].amount == Decimal("4.00")
    assert InvoiceStatus.OVERDUE not in totals


async def test_compensations_run_newest_first(caplog):
    calls = []

    async def record(name):
        calls.append(name)

    failing = AsyncMock(side_effect=RuntimeError("unavailable"))

    with caplog.at_level(logging.WARNING):
        with pytest.raises(ValueError):
            async with DocumentUnitOfWork() as uow:
                uow.on_rollback(record, "first")
                uow.on_rollback(failing)
                uow.on_rollback(record, "last")
                raise ValueError("abort")

    assert calls == ["last", "first"]
    failing.assert_awaited_once()
    assert "compensating action" in caplog.text


async def test_released_compensations_do_not_run():
    calls = []

    async def record(name):
        calls.append(name)

    with pytest.raises(ValueError):
        async with DocumentUnitOfWork() as uow:
            uow.on_rollback(record, "staged")
            uow.release_compensations()
            raise ValueError("abort")

    assert calls == []


def test_documents_store_plain_values():
    document = encode({
        "status": InvoiceStatus.PAID,
        "total": Decimal("12.50"),
        "count": 3,
    })

    assert document == {"status": "paid", "total": "12.50", "count": 3}


async def test_document_reads_are_copies():
    storage = DocumentStorage()
    document = storage.clients.insert_one({"id": "c1", "name": "Original"})
    document["name"] = "Changed"

    assert storage.clients.find_one("c1")["name"] == "Original"
