"""
Dashboard metrics tests.
"""

from datetime import datetime, timezone

from app.schemas.client import ClientCreate
from app.schemas.invoice import InvoiceItemCreate
from factories import make_invoice


def untaxed(client_id: str, rate: str):
    return make_invoice(
        client_id,
        items=[InvoiceItemCreate(description="Work", quantity=1, rate=rate)],
        tax_rate="0",
    )


async def test_metrics(dashboard_service, invoice_service, tenant, customer):
    """
    Given a paid 100.00 invoice, a pending 50.00 one and an overdue 7.00 one
    When metrics are computed
    Then revenue counts paid invoices and the pending amount only pending ones
    """
    paid = await invoice_service.create_invoice(tenant.id, untaxed(customer.id, "100.00"))
    await invoice_service.update_invoice_status(tenant.id, paid.id, "paid")
    await invoice_service.create_invoice(tenant.id, untaxed(customer.id, "50.00"))
    overdue = await invoice_service.create_invoice(tenant.id, untaxed(customer.id, "7.00"))
    await invoice_service.update_invoice_status(tenant.id, overdue.id, "overdue")

    metrics = await dashboard_service.get_metrics(tenant.id)

    assert metrics.total_invoices == 3
    assert metrics.total_revenue == "100.00"
    assert metrics.pending_amount == "50.00"
    assert metrics.total_clients == 1
    assert metrics.prev_month_invoices == 0
    assert metrics.prev_month_clients == 0
    assert metrics.prev_month_revenue == "0.00"


async def test_metrics_without_data(dashboard_service, tenant):
    metrics = await dashboard_service.get_metrics(tenant.id)

    assert metrics.total_invoices == 0
    assert metrics.total_revenue == "0.00"
    assert metrics.pending_amount == "0.00"
    assert metrics.total_clients == 0


async def test_previous_month_baseline(
    dashboard_service, client_service, invoice_service, clock, tenant, customer
):
    clock.set(datetime(2026, 2, 10, 12, 0, tzinfo=timezone.utc))
    old_client = await client_service.create_client(
        tenant.id, ClientCreate(name="Old", email="old@northwind.com")
    )
    old = await invoice_service.create_invoice(tenant.id, untaxed(old_client.id, "40.00"))
    await invoice_service.update_invoice_status(tenant.id, old.id, "paid")

    clock.set(datetime(2026, 3, 20, 12, 0, tzinfo=timezone.utc))
    await invoice_service.create_invoice(tenant.id, untaxed(customer.id, "10.00"))

    metrics = await dashboard_service.get_metrics(tenant.id)

    assert metrics.total_invoices == 2
    assert metrics.total_clients == 2
    assert metrics.total_revenue == "40.00"
    assert metrics.pending_amount == "10.00"
    assert metrics.prev_month_invoices == 1
    assert metrics.prev_month_clients == 1
    assert metrics.prev_month_revenue == "40.00"


async def test_previous_month_window_is_half_open(
    dashboard_service, invoice_service, clock, tenant, customer
):
    clock.set(datetime(2026, 2, 28, 23, 59, 59, tzinfo=timezone.utc))
    await invoice_service.create_invoice(tenant.id, untaxed(customer.id, "1.00"))
    clock.set(datetime(2026, 3, 1, 0, 0, 0, tzinfo=timezone.utc))
    await invoice_service.create_invoice(tenant.id, untaxed(customer.id, "2.00"))

    metrics = await dashboard_service.get_metrics(
        tenant.id, now=datetime(2026, 3, 31, tzinfo=timezone.utc)
    )

    assert metrics.total_invoices == 2
    assert metrics.prev_month_invoices == 1


async def test_metrics_are_scoped_to_tenant(
    dashboard_service, invoice_service, client_service, tenant, other_tenant, customer
):
    foreign = await client_service.create_client(
        other_tenant.id, ClientCreate(name="Foreign", email="foreign@globex.com")
    )
    await invoice_service.create_invoice(other_tenant.id, untaxed(foreign.id, "500.00"))
    await invoice_service.create_invoice(tenant.id, untaxed(customer.id, "5.00"))

    metrics = await dashboard_service.get_metrics(tenant.id)

    assert metrics.total_invoices == 1
    assert metrics.pending_amount == "5.00"
    assert metrics.total_clients == 1
