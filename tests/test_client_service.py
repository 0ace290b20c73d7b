"""
Client service tests.
"""

import pytest

from app.core.exceptions import NotFoundError, ValidationError
from app.schemas.client import ClientCreate, ClientUpdate
from factories import make_invoice


async def test_create_and_get_client(client_service, tenant):
    created = await client_service.create_client(
        tenant.id,
        ClientCreate(name="Bob", email="bob@northwind.com", phone="555-0100"),
    )

    fetched = await client_service.get_client(tenant.id, created.id)

    assert fetched.name == "Bob"
    assert fetched.phone == "555-0100"
    assert fetched.user_id == tenant.id


async def test_list_clients_with_stats(client_service, invoice_service, tenant, customer):
    """
    Given one client with two invoices and one without any
    When clients are listed
    Then each carries its invoice count and total, newest client first
    """
    idle = await client_service.create_client(
        tenant.id, ClientCreate(name="Idle", email="idle@northwind.com")
    )
    await invoice_service.create_invoice(tenant.id, make_invoice(customer.id))
    await invoice_service.create_invoice(tenant.id, make_invoice(customer.id))

    clients = await client_service.list_clients(tenant.id)

    assert [c.id for c in clients] == [idle.id, customer.id]
    assert clients[0].invoice_count == 0
    assert clients[0].total_amount == "0.00"
    assert clients[1].invoice_count == 2
    assert clients[1].total_amount == "55.00"


async def test_list_clients_is_scoped_to_tenant(client_service, tenant, other_tenant, customer):
    await client_service.create_client(
        other_tenant.id, ClientCreate(name="Foreign", email="foreign@globex.com")
    )

    clients = await client_service.list_clients(tenant.id)

    assert [c.id for c in clients] == [customer.id]


async def test_update_client(client_service, tenant, customer):
    updated = await client_service.update_client(
        tenant.id, customer.id, ClientUpdate(address="1 Main Street")
    )

    assert updated.address == "1 Main Street"
    assert updated.name == customer.name
    assert updated.updated_at > customer.updated_at


async def test_update_client_rejects_null_name(client_service, tenant, customer):
    with pytest.raises(ValidationError):
        await client_service.update_client(tenant.id, customer.id, ClientUpdate(name=None))


async def test_delete_client_removes_its_invoices(
    client_service, invoice_service, query_service, storage, tenant, customer
):
    other = await client_service.create_client(
        tenant.id, ClientCreate(name="Kept", email="kept@northwind.com")
    )
    doomed = await invoice_service.create_invoice(tenant.id, make_invoice(customer.id))
    kept = await invoice_service.create_invoice(tenant.id, make_invoice(other.id))

    await client_service.delete_client(tenant.id, customer.id)

    with pytest.raises(NotFoundError):
        await client_service.get_client(tenant.id, customer.id)
    with pytest.raises(NotFoundError):
        await invoice_service.get_invoice(tenant.id, doomed.id)
    assert await storage.delete_items(doomed.id) == 0

    invoices = await query_service.list_invoices(tenant.id)
    assert [i.id for i in invoices] == [kept.id]


async def test_foreign_client_is_not_found(client_service, tenant, other_tenant, customer):
    with pytest.raises(NotFoundError):
        await client_service.get_client(other_tenant.id, customer.id)
    with pytest.raises(NotFoundError):
        await client_service.update_client(other_tenant.id, customer.id, ClientUpdate(name="X"))
    with pytest.raises(NotFoundError):
        await client_service.delete_client(other_tenant.id, customer.id)

    assert (await client_service.get_client(tenant.id, customer.id)).name == customer.name
