"""Access entitlement lifecycle and the chat authorization gate.

Rules:
- One entitlement per principal; requests never overwrite a pending or live grant
- Admin-only mutations fail with Unauthorized before touching any state
- Revocation expires a grant immediately but keeps the record
- ``has_access`` is the single gate consumed by messaging
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from sqlalchemy.exc import IntegrityError

from gatedchat import clock
from gatedchat.access import store
from gatedchat.access.status import DerivedStatus, derive_status, is_past_end
from gatedchat.config import get_settings
from gatedchat.db.models import (
    AccessEntitlement,
    AccessEntitlementHistory,
    AccessRequestStatus,
    EntitlementSource,
    EntitlementType,
)
from gatedchat.errors import InvalidArgument, InvalidState, NotFound, Unauthorized
from gatedchat.users.roles import is_admin, require_admin

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


async def has_access(db: AsyncSession, principal: str) -> bool:
    """True iff the principal's derived status is authorized right now."""
    entitlement = await store.get(db, principal)
    return derive_status(entitlement, clock.now_ns()) == DerivedStatus.AUTHORIZED


async def require_access(db: AsyncSession, principal: str) -> None:
    """Raise Unauthorized unless the principal currently has chat access."""
    if not await has_access(db, principal):
        raise Unauthorized("You do not have access to chat. Request access or contact an administrator.")


async def get_current_entitlement(db: AsyncSession, caller: str) -> AccessEntitlement | None:
    return await store.get(db, caller)


async def get_entitlement(db: AsyncSession, caller: str, user: str) -> AccessEntitlement | None:
    """Entitlement of ``user``, visible to that user and to admins."""
    if caller != user and not await is_admin(db, caller):
        raise Unauthorized("Only admins can view other users' entitlements")
    return await store.get(db, user)


async def get_all_entitlements(db: AsyncSession, caller: str) -> list[AccessEntitlement]:
    """List every entitlement (admin only).

    Approved records whose end time has passed are promoted to the stored
    ``expired`` status on the way out.
    """
    await require_admin(db, caller)
    now = clock.now_ns()
    entitlements = await store.get_all(db)
    for entitlement in entitlements:
        if entitlement.status == AccessRequestStatus.APPROVED and is_past_end(entitlement, now):
            entitlement.status = AccessRequestStatus.EXPIRED
            await store.record_change(db, entitlement, action="expire", actor=caller)
            logger.info("access_expired", user=entitlement.user)
    return entitlements


async def get_entitlement_history(db: AsyncSession, caller: str, user: str) -> list[AccessEntitlementHistory]:
    await require_admin(db, caller)
    return await store.get_history(db, user)


# ---------------------------------------------------------------------------
# Self-service
# ---------------------------------------------------------------------------


async def request_access(db: AsyncSession, caller: str) -> bool:
    """Create a pending request for the caller.

    Returns False without writing when the caller already holds a pending or
    live entitlement. Expired and rejected callers may request again.
    """
    now = clock.now_ns()
    existing = await store.get(db, caller, for_update=True)
    if derive_status(existing, now) in (DerivedStatus.PENDING, DerivedStatus.AUTHORIZED):
        return False

    entitlement = AccessEntitlement(
        user=caller,
        entitlement_type=EntitlementType.TRIAL,
        source=EntitlementSource.PROMOTION,
        status=AccessRequestStatus.PENDING,
        request_timestamp=now,
        start_time=now,
        end_time=None,
    )
    try:
        await store.upsert(db, entitlement, action="request", actor=caller)
    except IntegrityError:
        # A concurrent request for the same principal won the insert
        await db.rollback()
        return False

    logger.info("access_requested", user=caller)
    return True


# ---------------------------------------------------------------------------
# Admin operations
# ---------------------------------------------------------------------------


async def approve_access_request(db: AsyncSession, caller: str, user: str, approve: bool) -> AccessEntitlement:
    """Approve or reject a pending request.

    Approved trial requests run for the configured default trial duration;
    permanent requests get no end time.

    Raises:
        Unauthorized: If the caller is not an admin.
        NotFound: If ``user`` has no entitlement.
        InvalidState: If the entitlement is not pending.
    """
    await require_admin(db, caller)
    entitlement = await store.get(db, user, for_update=True)
    if entitlement is None:
        raise NotFound("No access request found for this user")
    if entitlement.status != AccessRequestStatus.PENDING:
        raise InvalidState("Access request is not pending")

    now = clock.now_ns()
    if approve:
        entitlement.status = AccessRequestStatus.APPROVED
        entitlement.start_time = now
        if entitlement.entitlement_type == EntitlementType.PERMANENT:
            entitlement.end_time = None
        else:
            duration = get_settings().default_trial_duration_seconds
            entitlement.end_time = now + clock.seconds_to_ns(duration)
    else:
        entitlement.status = AccessRequestStatus.REJECTED

    await store.record_change(db, entitlement, action="approve" if approve else "reject", actor=caller)
    logger.info("access_request_decided", actor=caller, user=user, approved=approve)
    return entitlement


async def grant_access(
    db: AsyncSession,
    caller: str,
    user: str,
    entitlement_type: EntitlementType,
    source: EntitlementSource,
    duration_seconds: int | None,
) -> AccessEntitlement:
    """Create or overwrite an approved entitlement for ``user``.

    A missing duration grants permanent access.
    """
    await require_admin(db, caller)
    if duration_seconds is not None and duration_seconds < 0:
        raise InvalidArgument("Duration must not be negative")

    now = clock.now_ns()
    end_time = None if duration_seconds is None else now + clock.seconds_to_ns(duration_seconds)
    if end_time is not None and not clock.fits_int64(end_time):
        raise InvalidArgument("Duration is too long")

    entitlement = AccessEntitlement(
        user=user,
        entitlement_type=entitlement_type,
        source=source,
        status=AccessRequestStatus.APPROVED,
        request_timestamp=now,
        start_time=now,
        end_time=end_time,
    )
    record = await store.upsert(db, entitlement, action="grant", actor=caller)
    logger.info(
        "access_granted",
        actor=caller,
        user=user,
        entitlement_type=entitlement_type.value,
        source=source.value,
        duration_seconds=duration_seconds,
    )
    return record


async def revoke_access(db: AsyncSession, caller: str, user: str) -> AccessEntitlement | None:
    """Expire ``user``'s entitlement now. No-op when none exists."""
    await require_admin(db, caller)
    entitlement = await store.get(db, user, for_update=True)
    if entitlement is None:
        return None

    now = clock.now_ns()
    if entitlement.end_time is None or entitlement.end_time > now:
        entitlement.end_time = max(now, entitlement.start_time)
    if entitlement.status in (AccessRequestStatus.APPROVED, AccessRequestStatus.PENDING):
        entitlement.status = AccessRequestStatus.EXPIRED

    await store.record_change(db, entitlement, action="revoke", actor=caller)
    logger.info("access_revoked", actor=caller, user=user)
    return entitlement


async def switch_to_temporary_access(
    db: AsyncSession,
    caller: str,
    user: str,
    duration_seconds: int,
) -> AccessEntitlement:
    """Time-box an entitlement to end ``duration_seconds`` from now."""
    await require_admin(db, caller)
    if duration_seconds <= 0:
        raise InvalidArgument("Duration must be positive")
    now = clock.now_ns()
    end_time = now + clock.seconds_to_ns(duration_seconds)
    if not clock.fits_int64(end_time):
        raise InvalidArgument("Duration is too long")

    entitlement = await store.get(db, user, for_update=True)
    if entitlement is None:
        raise NotFound("No entitlement found for this user")
    entitlement.end_time = max(end_time, entitlement.start_time)
    await store.record_change(db, entitlement, action="switch_temporary", actor=caller)
    logger.info("access_made_temporary", actor=caller, user=user, duration_seconds=duration_seconds)
    return entitlement
