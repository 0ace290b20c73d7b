"""
User service.
Handles business profile registration and updates.
"""

import logging
from datetime import datetime
from typing import Callable

from app.core.clock import utcnow
from app.core.exceptions import NotFoundError, ValidationError
from app.repositories.base import StorageBackend
from app.schemas.user import UserCreate, UserResponse, UserUpdate
from app.services.pricing import validate_tax_rate


logger = logging.getLogger(__name__)


class UserService:
    """Service for business profile operations."""

    def __init__(self, storage: StorageBackend, clock: Callable[[], datetime] = utcnow):
        self.storage = storage
        self.clock = clock

    async def get_user(self, user_id: str) -> UserResponse | None:
        """Get user by ID."""
        return await self.storage.get_user(user_id)

    async def get_user_by_external_id(self, external_id: str) -> UserResponse | None:
        """Get the profile attached to an identity provider subject."""
        return await self.storage.get_user_by_external_id(external_id)

    async def create_user(self, external_id: str, data: UserCreate) -> UserResponse:
        """
        Register a business profile for a verified identity.

        Args:
            external_id: Identity provider subject
            data: Profile data

        Returns:
            Created user

        Raises:
            ValidationError: If the email or the identity is already registered
        """
        if await self.storage.get_user_by_external_id(external_id):
            raise ValidationError("A profile already exists for this account")

        if await self.storage.get_user_by_email(data.email):
            raise ValidationError("Email already registered")

        now = self.clock()
        values = data.model_dump()
        values["default_tax_rate"] = validate_tax_rate(data.default_tax_rate)

        user = await self.storage.insert_user({
            **values,
            "external_id": external_id,
            "created_at": now,
            "updated_at": now,
        })

        logger.info(f"User created: {user.id} ({user.email})")
        return user

    async def update_user(self, user_id: str, data: UserUpdate) -> UserResponse:
        """
        Update a business profile.

        Args:
            user_id: User to update
            data: Fields to change (unset fields are left alone)

        Returns:
            Updated user
        """
        changes = data.model_dump(exclude_unset=True)

        for field in ("email", "business_name", "contact_person", "default_currency",
                      "default_tax_rate", "default_payment_terms"):
            if field in changes and changes[field] is None:
                raise ValidationError(f"{field} cannot be null")

        if "default_tax_rate" in changes:
            changes["default_tax_rate"] = validate_tax_rate(changes["default_tax_rate"])

        if "email" in changes:
            existing = await self.storage.get_user_by_email(changes["email"])
            if existing and existing.id != user_id:
                raise ValidationError("Email already registered")

        changes["updated_at"] = self.clock()
        user = await self.storage.update_user(user_id, changes)
        if user is None:
            raise NotFoundError("User not found")

        return user
