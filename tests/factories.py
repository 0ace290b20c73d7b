"""
Test helpers shared by the test modules.
"""

from datetime import datetime, timedelta, timezone

from app.core.security import create_identity_token
from app.schemas.invoice import InvoiceCreate, InvoiceItemCreate


TEST_IDENTITY_SECRET = "test-identity-secret-key-for-signing-tokens"
TENANT_SUBJECT = "idp|tenant-a"
OTHER_TENANT_SUBJECT = "idp|tenant-b"


class FakeClock:
    """Clock that advances by `step` on every reading."""

    def __init__(
        self,
        start: datetime = datetime(2026, 3, 15, 9, 0, tzinfo=timezone.utc),
        step: timedelta = timedelta(seconds=1),
    ):
        self.current = start
        self.step = step

    def __call__(self) -> datetime:
        value = self.current
        self.current += self.step
        return value

    def set(self, value: datetime) -> None:
        self.current = value


def auth_headers(subject: str = TENANT_SUBJECT, **kwargs) -> dict[str, str]:
    """Bearer header for a token issued to `subject`."""
    token = create_identity_token(subject, TEST_IDENTITY_SECRET, **kwargs)
    return {"Authorization": f"Bearer {token}"}


def make_invoice(client_id: str, items=None, **overrides) -> InvoiceCreate:
    """Invoice draft with two items (25.00 before tax)."""
    if items is None:
        items = [
            InvoiceItemCreate(description="A", quantity=2, rate="10.00"),
            InvoiceItemCreate(description="B", quantity=1, rate="5.00"),
        ]
    data = {
        "client_id": client_id,
        "invoice_number": "INV-TEST-001",
        "currency": "USD",
        "tax_rate": "10",
        "invoice_date": "2026-03-01",
        "due_date": "2026-03-31",
        "items": items,
    }
    data.update(overrides)
    return InvoiceCreate(**data)
