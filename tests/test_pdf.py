"""
PDF rendering tests.
"""

from app.schemas.invoice import InvoiceItemCreate
from app.services.pdf import PDFService
from factories import FakeClock, make_invoice


async def test_render_invoice(invoice_service, tenant, customer):
    invoice = await invoice_service.create_invoice(
        tenant.id, make_invoice(customer.id, notes="Payment by <bank transfer> & cheque")
    )

    content = PDFService(clock=FakeClock()).render_invoice(invoice, tenant)

    assert content.startswith(b"%PDF")
    assert len(content) > 1000


async def test_render_invoice_with_many_items(invoice_service, tenant, customer):
    items = [
        InvoiceItemCreate(description=f"Line {n}", quantity=1, rate="1.00")
        for n in range(60)
    ]
    invoice = await invoice_service.create_invoice(
        tenant.id, make_invoice(customer.id, items=items)
    )

    content = PDFService().render_invoice(invoice, tenant)

    assert content.startswith(b"%PDF")
