"""Block list endpoints — caller-relative, /api/v1/blocks/*."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from gatedchat.auth.dependencies import get_caller
from gatedchat.blocking import service
from gatedchat.blocking.schemas import BlockedUsersResponse, HasBlockedResponse
from gatedchat.database import get_session
from gatedchat.db.models import PRINCIPAL_MAX_LENGTH
from gatedchat.invalidation import MutationResponse, invalidated_by

router = APIRouter(prefix="/api/v1/blocks", tags=["Blocking"])

UserPath = Annotated[str, Path(min_length=1, max_length=PRINCIPAL_MAX_LENGTH)]


@router.get("", response_model=BlockedUsersResponse)
async def get_blocked_users(
    caller: str = Depends(get_caller),
    db: AsyncSession = Depends(get_session),
) -> BlockedUsersResponse:
    """Everyone the caller has blocked."""
    return BlockedUsersResponse(blocked=await service.get_blocked(db, caller))


@router.get("/{user}", response_model=HasBlockedResponse)
async def has_blocked_endpoint(
    user: UserPath,
    caller: str = Depends(get_caller),
    db: AsyncSession = Depends(get_session),
) -> HasBlockedResponse:
    return HasBlockedResponse(user=user, blocked=await service.has_blocked(db, caller, user))


@router.put("/{user}", response_model=MutationResponse)
async def block_user_endpoint(
    user: UserPath,
    caller: str = Depends(get_caller),
    db: AsyncSession = Depends(get_session),
) -> MutationResponse:
    """Block a user. Idempotent."""
    await service.block(db, caller, user)
    await db.commit()
    return MutationResponse(invalidates=invalidated_by("block_user"))


@router.delete("/{user}", response_model=MutationResponse)
async def unblock_user_endpoint(
    user: UserPath,
    caller: str = Depends(get_caller),
    db: AsyncSession = Depends(get_session),
) -> MutationResponse:
    """Unblock a user. Idempotent."""
    await service.unblock(db, caller, user)
    await db.commit()
    return MutationResponse(invalidates=invalidated_by("unblock_user"))
