"""Profile registry and the chat-user directory."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from sqlalchemy import select

from gatedchat import clock
from gatedchat.access import store as entitlement_store
from gatedchat.access.service import has_access
from gatedchat.access.status import DerivedStatus, derive_status
from gatedchat.config import get_settings
from gatedchat.db.models import UserProfile, UserRole
from gatedchat.errors import AlreadyExists, InvalidArgument, Unauthorized
from gatedchat.users.roles import is_admin, set_role

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


def _normalize_display_name(display_name: str | None) -> str | None:
    if display_name is None:
        return None
    cleaned = display_name.strip()
    if not cleaned:
        return None
    if len(cleaned) > get_settings().max_display_name_length:
        msg = f"Display name is limited to {get_settings().max_display_name_length} characters"
        raise InvalidArgument(msg)
    return cleaned


async def get_profile(db: AsyncSession, principal: str) -> UserProfile | None:
    """Fetch a profile by principal."""
    return await db.get(UserProfile, principal)


async def user_exists(db: AsyncSession, principal: str) -> bool:
    return await get_profile(db, principal) is not None


async def register_user(db: AsyncSession, caller: str, display_name: str | None = None) -> UserProfile:
    """
    Register the caller's profile.

    Principals listed in ``bootstrap_admins`` receive the admin role.

    Raises:
        AlreadyExists: If the caller is already registered.
    """
    if await user_exists(db, caller):
        raise AlreadyExists("User is already registered")

    now = clock.now_ns()
    profile = UserProfile(
        principal=caller,
        display_name=_normalize_display_name(display_name),
        created_at=now,
        updated_at=now,
    )
    db.add(profile)
    await db.flush()

    if caller in get_settings().bootstrap_admins:
        await set_role(db, caller, UserRole.ADMIN, assigned_by=None)
        logger.info("bootstrap_admin_registered", user=caller)

    logger.info("user_registered", user=caller)
    return profile


async def save_caller_profile(
    db: AsyncSession,
    caller: str,
    principal: str,
    display_name: str | None,
) -> UserProfile:
    """
    Create or update the caller's own profile.

    Raises:
        Unauthorized: If ``principal`` is not the caller.
    """
    if principal != caller:
        raise Unauthorized("You can only save your own profile")

    now = clock.now_ns()
    profile = await get_profile(db, caller)
    if profile is None:
        profile = UserProfile(principal=caller, created_at=now, updated_at=now)
        db.add(profile)
    profile.display_name = _normalize_display_name(display_name)
    profile.updated_at = now
    await db.flush()
    return profile


async def get_user_profile(db: AsyncSession, caller: str, user: str) -> UserProfile | None:
    """Profile of ``user`` for the caller, admins, or anyone with chat access."""
    if caller != user and not await is_admin(db, caller) and not await has_access(db, caller):
        raise Unauthorized("You do not have permission to view this profile")
    return await get_profile(db, user)


async def get_chat_users(db: AsyncSession, caller: str) -> list[tuple[str, str | None]]:
    """
    List principals who are currently authorized to chat.

    Returns:
        ``(principal, display_name)`` pairs in entitlement order.
    """
    if not await has_access(db, caller) and not await is_admin(db, caller):
        raise Unauthorized("You do not have access to chat")

    now = clock.now_ns()
    authorized = [
        e.user
        for e in await entitlement_store.get_all(db)
        if derive_status(e, now) == DerivedStatus.AUTHORIZED
    ]
    if not authorized:
        return []

    result = await db.execute(select(UserProfile).where(UserProfile.principal.in_(authorized)))
    names = {p.principal: p.display_name for p in result.scalars().all()}
    return [(principal, names.get(principal)) for principal in authorized]
