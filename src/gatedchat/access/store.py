"""Entitlement persistence.

One live record per principal, replaced wholesale on every write. Each write
also appends a snapshot to the history table so revoked and expired grants
stay auditable. The store does not interpret roles.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import select

from gatedchat import clock
from gatedchat.db.models import AccessEntitlement, AccessEntitlementHistory

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


async def get(db: AsyncSession, user: str, *, for_update: bool = False) -> AccessEntitlement | None:
    """Fetch the entitlement for ``user``, optionally locking the row."""
    stmt = select(AccessEntitlement).where(AccessEntitlement.user == user)
    if for_update:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def get_all(db: AsyncSession) -> list[AccessEntitlement]:
    """All entitlements ordered by request time."""
    result = await db.execute(
        select(AccessEntitlement).order_by(AccessEntitlement.request_timestamp, AccessEntitlement.user)
    )
    return list(result.scalars().all())


async def upsert(
    db: AsyncSession,
    entitlement: AccessEntitlement,
    *,
    action: str,
    actor: str,
) -> AccessEntitlement:
    """Replace the record for ``entitlement.user``. No field merging."""
    existing = await get(db, entitlement.user)
    if existing is None:
        db.add(entitlement)
        record = entitlement
    else:
        existing.entitlement_type = entitlement.entitlement_type
        existing.source = entitlement.source
        existing.status = entitlement.status
        existing.request_timestamp = entitlement.request_timestamp
        existing.start_time = entitlement.start_time
        existing.end_time = entitlement.end_time
        record = existing
    _append_history(db, record, action=action, actor=actor)
    await db.flush()
    return record


async def record_change(db: AsyncSession, entitlement: AccessEntitlement, *, action: str, actor: str) -> None:
    """Persist in-place edits of a loaded record and audit them."""
    _append_history(db, entitlement, action=action, actor=actor)
    await db.flush()


async def get_history(db: AsyncSession, user: str) -> list[AccessEntitlementHistory]:
    result = await db.execute(
        select(AccessEntitlementHistory)
        .where(AccessEntitlementHistory.user == user)
        .order_by(AccessEntitlementHistory.id)
    )
    return list(result.scalars().all())


def _append_history(db: AsyncSession, entitlement: AccessEntitlement, *, action: str, actor: str) -> None:
    db.add(
        AccessEntitlementHistory(
            user=entitlement.user,
            action=action,
            actor=actor,
            entitlement_type=entitlement.entitlement_type.value,
            source=entitlement.source.value,
            status=entitlement.status.value,
            request_timestamp=entitlement.request_timestamp,
            start_time=entitlement.start_time,
            end_time=entitlement.end_time,
            recorded_at=clock.now_ns(),
        )
    )
