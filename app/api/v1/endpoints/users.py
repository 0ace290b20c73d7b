"""
User management endpoints.
Business profile registration and update.
"""

from fastapi import APIRouter, status

from app.api.deps import CurrentUser, Identity, UserServiceDep
from app.schemas.user import UserCreate, UserUpdate, UserResponse


router = APIRouter()


@router.post(
    "",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register my profile",
    description="Create the business profile of the authenticated account",
)
async def create_profile(
    data: UserCreate,
    identity: Identity,
    service: UserServiceDep,
) -> UserResponse:
    """Register a profile for the verified identity."""
    return await service.create_user(identity.subject, data)


@router.get(
    "/me",
    response_model=UserResponse,
    summary="My profile",
    description="Get my business profile",
)
async def get_my_profile(
    current_user: CurrentUser,
) -> UserResponse:
    """Get current user's profile."""
    return current_user


@router.put(
    "/me",
    response_model=UserResponse,
    summary="Update my profile",
    description="Update my business profile and invoice defaults",
)
async def update_my_profile(
    data: UserUpdate,
    current_user: CurrentUser,
    service: UserServiceDep,
) -> UserResponse:
    """Update current user's profile."""
    return await service.update_user(current_user.id, data)
