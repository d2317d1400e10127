"""User router — all /api/v1/users/* endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from gatedchat.auth.dependencies import get_caller
from gatedchat.database import get_session
from gatedchat.db.models import PRINCIPAL_MAX_LENGTH
from gatedchat.invalidation import MutationResponse, View, invalidated_by
from gatedchat.staleness import staleness
from gatedchat.users import roles, service
from gatedchat.users.schemas import (
    AssignRoleRequest,
    ChatUserResponse,
    IsAdminResponse,
    ProfileMutationResponse,
    ProfileResponse,
    RegisterRequest,
    RoleResponse,
    SaveProfileRequest,
    UserExistsResponse,
)

router = APIRouter(prefix="/api/v1/users", tags=["Users"])


# ---------------------------------------------------------------------------
# Registration & own profile
# ---------------------------------------------------------------------------


@router.post("/register", response_model=ProfileMutationResponse, status_code=201)
async def register_endpoint(
    body: RegisterRequest,
    caller: str = Depends(get_caller),
    db: AsyncSession = Depends(get_session),
) -> ProfileMutationResponse:
    """Register the caller. Fails with 409 if already registered."""
    profile = await service.register_user(db, caller, body.display_name)
    await db.commit()
    return ProfileMutationResponse(
        profile=ProfileResponse.build(profile),
        invalidates=invalidated_by("register_user"),
    )


@router.get("/me", response_model=ProfileResponse | None)
async def get_my_profile(
    caller: str = Depends(get_caller),
    db: AsyncSession = Depends(get_session),
) -> ProfileResponse | None:
    """The caller's profile, or null if not registered."""
    profile = await service.get_profile(db, caller)
    return ProfileResponse.build(profile) if profile else None


@router.put("/me", response_model=ProfileMutationResponse)
async def save_my_profile(
    body: SaveProfileRequest,
    caller: str = Depends(get_caller),
    db: AsyncSession = Depends(get_session),
) -> ProfileMutationResponse:
    """Save the caller's own profile."""
    profile = await service.save_caller_profile(db, caller, body.principal, body.display_name)
    await db.commit()
    return ProfileMutationResponse(
        profile=ProfileResponse.build(profile),
        invalidates=invalidated_by("save_profile"),
    )


@router.get("/me/exists", response_model=UserExistsResponse)
async def user_exists_endpoint(
    caller: str = Depends(get_caller),
    db: AsyncSession = Depends(get_session),
) -> UserExistsResponse:
    return UserExistsResponse(exists=await service.user_exists(db, caller))


# ---------------------------------------------------------------------------
# Roles
# ---------------------------------------------------------------------------


@router.get("/me/role", response_model=RoleResponse)
async def get_my_role(
    caller: str = Depends(get_caller),
    db: AsyncSession = Depends(get_session),
) -> RoleResponse:
    return RoleResponse(role=await roles.get_role(db, caller))


@router.get("/me/is-admin", response_model=IsAdminResponse)
async def is_admin_endpoint(
    caller: str = Depends(get_caller),
    db: AsyncSession = Depends(get_session),
) -> IsAdminResponse:
    return IsAdminResponse(is_admin=await roles.is_admin(db, caller))


@router.post("/roles", response_model=MutationResponse)
async def assign_role_endpoint(
    body: AssignRoleRequest,
    caller: str = Depends(get_caller),
    db: AsyncSession = Depends(get_session),
) -> MutationResponse:
    """Assign a role to a user (admin only)."""
    await roles.assign_role(db, caller, body.user, body.role)
    await db.commit()
    return MutationResponse(invalidates=invalidated_by("assign_role"))


# ---------------------------------------------------------------------------
# Directory
# ---------------------------------------------------------------------------


@router.get(
    "/chat-users",
    response_model=list[ChatUserResponse],
    dependencies=[Depends(staleness(View.CHAT_USERS))],
)
async def chat_users_endpoint(
    caller: str = Depends(get_caller),
    db: AsyncSession = Depends(get_session),
) -> list[ChatUserResponse]:
    """Users who are currently authorized to chat."""
    users = await service.get_chat_users(db, caller)
    return [ChatUserResponse(principal=p, display_name=name) for p, name in users]


@router.get("/by-id/{principal}", response_model=ProfileResponse | None)
async def get_user_profile_endpoint(
    principal: Annotated[str, Path(min_length=1, max_length=PRINCIPAL_MAX_LENGTH)],
    caller: str = Depends(get_caller),
    db: AsyncSession = Depends(get_session),
) -> ProfileResponse | None:
    """Another user's profile, or null if they never registered."""
    profile = await service.get_user_profile(db, caller, principal)
    return ProfileResponse.build(profile) if profile else None
