"""
User (business profile) service tests.
"""

from decimal import Decimal

import pytest

from app.core.exceptions import NotFoundError, ValidationError
from app.schemas.user import UserCreate, UserUpdate
from factories import TENANT_SUBJECT


async def test_create_user_binds_external_identity(user_service, tenant):
    assert tenant.external_id == TENANT_SUBJECT
    assert tenant.default_tax_rate == Decimal("20.00")

    found = await user_service.get_user_by_external_id(TENANT_SUBJECT)
    assert found.id == tenant.id


async def test_one_profile_per_identity(user_service, tenant):
    with pytest.raises(ValidationError) as exc_info:
        await user_service.create_user(
            TENANT_SUBJECT,
            UserCreate(email="second@acme.com", business_name="Acme 2", contact_person="Ada"),
        )
    assert "already exists" in exc_info.value.message


async def test_duplicate_email_rejected(user_service, tenant):
    with pytest.raises(ValidationError) as exc_info:
        await user_service.create_user(
            "idp|someone-else",
            UserCreate(email=tenant.email, business_name="Copycat", contact_person="Eve"),
        )
    assert exc_info.value.message == "Email already registered"


async def test_update_user(user_service, tenant):
    updated = await user_service.update_user(
        tenant.id,
        UserUpdate(business_name="Acme Holdings", default_tax_rate="7.5"),
    )

    assert updated.business_name == "Acme Holdings"
    assert updated.default_tax_rate == Decimal("7.50")
    assert updated.email == tenant.email


async def test_update_user_rejects_taken_email(user_service, tenant, other_tenant):
    with pytest.raises(ValidationError):
        await user_service.update_user(tenant.id, UserUpdate(email=other_tenant.email))


async def test_update_user_rejects_null_required_field(user_service, tenant):
    with pytest.raises(ValidationError):
        await user_service.update_user(tenant.id, UserUpdate(contact_person=None))


async def test_update_unknown_user(user_service):
    with pytest.raises(NotFoundError):
        await user_service.update_user("missing", UserUpdate(phone="123"))
