"""Per-user block lists.

Blocks are directed (blocker -> blocked) and independent of entitlements and
thread membership. Block and unblock are idempotent.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError

from gatedchat import clock
from gatedchat.db.models import BlockRelation

if TYPE_CHECKING:
    from collections.abc import Iterable

    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


async def has_blocked(db: AsyncSession, blocker: str, other: str) -> bool:
    """True if ``blocker`` has blocked ``other``."""
    result = await db.execute(
        select(BlockRelation.id).where(BlockRelation.blocker == blocker, BlockRelation.blocked == other)
    )
    return result.first() is not None


async def get_blocked(db: AsyncSession, blocker: str) -> list[str]:
    """Everyone ``blocker`` has blocked, oldest first."""
    result = await db.execute(
        select(BlockRelation.blocked).where(BlockRelation.blocker == blocker).order_by(BlockRelation.id)
    )
    return list(result.scalars().all())


async def blocked_among(db: AsyncSession, blocker: str, others: Iterable[str]) -> list[str]:
    """Subset of ``others`` that ``blocker`` has blocked."""
    others = list(others)
    if not others:
        return []
    result = await db.execute(
        select(BlockRelation.blocked).where(BlockRelation.blocker == blocker, BlockRelation.blocked.in_(others))
    )
    return list(result.scalars().all())


async def blockers_among(db: AsyncSession, blocked: str, others: Iterable[str]) -> list[str]:
    """Subset of ``others`` that have blocked ``blocked``."""
    others = list(others)
    if not others:
        return []
    result = await db.execute(
        select(BlockRelation.blocker).where(BlockRelation.blocked == blocked, BlockRelation.blocker.in_(others))
    )
    return list(result.scalars().all())


async def block(db: AsyncSession, caller: str, user: str) -> None:
    """Add ``user`` to the caller's block list."""
    if await has_blocked(db, caller, user):
        return
    db.add(BlockRelation(blocker=caller, blocked=user, created_at=clock.now_ns()))
    try:
        await db.flush()
    except IntegrityError:
        # Concurrent block of the same pair already landed
        await db.rollback()
        return
    logger.info("user_blocked", blocker=caller, blocked=user)


async def unblock(db: AsyncSession, caller: str, user: str) -> None:
    """Remove ``user`` from the caller's block list."""
    result = await db.execute(
        delete(BlockRelation).where(BlockRelation.blocker == caller, BlockRelation.blocked == user)
    )
    if result.rowcount:
        logger.info("user_unblocked", blocker=caller, blocked=user)
