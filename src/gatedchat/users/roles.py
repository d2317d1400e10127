"""Role lookup and assignment.

A principal with no explicit assignment is a ``user`` once registered and a
``guest`` before that. Only admins may assign roles.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from sqlalchemy import select

from gatedchat import clock
from gatedchat.db.models import UserProfile, UserRole, UserRoleAssignment
from gatedchat.errors import Unauthorized

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


async def get_role(db: AsyncSession, principal: str) -> UserRole:
    """Effective role of ``principal``."""
    result = await db.execute(select(UserRoleAssignment).where(UserRoleAssignment.principal == principal))
    assignment = result.scalar_one_or_none()
    if assignment is not None:
        return assignment.role

    profile = await db.get(UserProfile, principal)
    return UserRole.USER if profile is not None else UserRole.GUEST


async def is_admin(db: AsyncSession, principal: str) -> bool:
    return await get_role(db, principal) == UserRole.ADMIN


async def require_admin(db: AsyncSession, principal: str) -> None:
    """Raise Unauthorized unless ``principal`` is an admin."""
    if not await is_admin(db, principal):
        raise Unauthorized("Only admins can perform this action")


async def set_role(db: AsyncSession, principal: str, role: UserRole, *, assigned_by: str | None) -> None:
    """Store an explicit role without any caller check."""
    existing = await db.get(UserRoleAssignment, principal)
    if existing is None:
        db.add(
            UserRoleAssignment(
                principal=principal,
                role=role,
                assigned_by=assigned_by,
                assigned_at=clock.now_ns(),
            )
        )
    else:
        existing.role = role
        existing.assigned_by = assigned_by
        existing.assigned_at = clock.now_ns()
    await db.flush()


async def assign_role(db: AsyncSession, caller: str, user: str, role: UserRole) -> None:
    """Admin assigns ``role`` to ``user``.

    Raises:
        Unauthorized: If the caller is not already an admin.
    """
    await require_admin(db, caller)
    await set_role(db, user, role, assigned_by=caller)
    logger.info("role_assigned", actor=caller, user=user, role=role.value)
