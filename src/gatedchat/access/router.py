"""Access entitlement router — all /api/v1/access/* endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from gatedchat import clock
from gatedchat.access import service
from gatedchat.access.schemas import (
    ApproveAccessRequest,
    EntitlementHistoryEntry,
    EntitlementMutationResponse,
    EntitlementResponse,
    GrantAccessRequest,
    HasAccessResponse,
    RequestAccessResponse,
    SwitchTemporaryRequest,
    UserTargetRequest,
)
from gatedchat.auth.dependencies import get_caller
from gatedchat.database import get_session
from gatedchat.db.models import AccessEntitlement
from gatedchat.invalidation import View, invalidated_by
from gatedchat.staleness import staleness

router = APIRouter(prefix="/api/v1/access", tags=["Access"])


def _entitlement_response(entitlement: AccessEntitlement | None) -> EntitlementResponse | None:
    if entitlement is None:
        return None
    return EntitlementResponse.build(entitlement, clock.now_ns())


# ---------------------------------------------------------------------------
# Caller
# ---------------------------------------------------------------------------


@router.post("/request", response_model=RequestAccessResponse)
async def request_access_endpoint(
    caller: str = Depends(get_caller),
    db: AsyncSession = Depends(get_session),
) -> RequestAccessResponse:
    """Request chat access. Returns requested=false if a request or grant is already live."""
    requested = await service.request_access(db, caller)
    await db.commit()
    return RequestAccessResponse(
        requested=requested,
        invalidates=invalidated_by("request_access") if requested else [],
    )


@router.get(
    "/has-access",
    response_model=HasAccessResponse,
    dependencies=[Depends(staleness(View.ACCESS))],
)
async def has_access_endpoint(
    caller: str = Depends(get_caller),
    db: AsyncSession = Depends(get_session),
) -> HasAccessResponse:
    """Whether the caller may chat right now."""
    return HasAccessResponse(has_access=await service.has_access(db, caller))


@router.get(
    "/me",
    response_model=EntitlementResponse | None,
    dependencies=[Depends(staleness(View.ENTITLEMENT))],
)
async def get_my_entitlement(
    caller: str = Depends(get_caller),
    db: AsyncSession = Depends(get_session),
) -> EntitlementResponse | None:
    """The caller's entitlement, or null."""
    return _entitlement_response(await service.get_current_entitlement(db, caller))


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------


@router.get(
    "/entitlements",
    response_model=list[EntitlementResponse],
    dependencies=[Depends(staleness(View.ENTITLEMENTS))],
)
async def list_entitlements(
    caller: str = Depends(get_caller),
    db: AsyncSession = Depends(get_session),
) -> list[EntitlementResponse]:
    """All entitlements (admin only). Promotes lapsed grants to expired."""
    entitlements = await service.get_all_entitlements(db, caller)
    await db.commit()
    now = clock.now_ns()
    return [EntitlementResponse.build(e, now) for e in entitlements]


@router.get(
    "/entitlements/{user}",
    response_model=EntitlementResponse | None,
    dependencies=[Depends(staleness(View.ENTITLEMENT))],
)
async def get_entitlement_endpoint(
    user: str,
    caller: str = Depends(get_caller),
    db: AsyncSession = Depends(get_session),
) -> EntitlementResponse | None:
    """A user's entitlement (admin, or the user themself)."""
    return _entitlement_response(await service.get_entitlement(db, caller, user))


@router.get("/entitlements/{user}/history", response_model=list[EntitlementHistoryEntry])
async def get_entitlement_history_endpoint(
    user: str,
    caller: str = Depends(get_caller),
    db: AsyncSession = Depends(get_session),
) -> list[EntitlementHistoryEntry]:
    """Audit trail of every entitlement write for a user (admin only)."""
    rows = await service.get_entitlement_history(db, caller, user)
    return [EntitlementHistoryEntry.build(row) for row in rows]


@router.post("/grant", response_model=EntitlementMutationResponse)
async def grant_access_endpoint(
    body: GrantAccessRequest,
    caller: str = Depends(get_caller),
    db: AsyncSession = Depends(get_session),
) -> EntitlementMutationResponse:
    """Grant access; omit duration_seconds for permanent access."""
    entitlement = await service.grant_access(
        db,
        caller,
        body.user,
        body.entitlement_type,
        body.source,
        body.duration_seconds,
    )
    await db.commit()
    return EntitlementMutationResponse(
        entitlement=_entitlement_response(entitlement),
        invalidates=invalidated_by("grant_access"),
    )


@router.post("/revoke", response_model=EntitlementMutationResponse)
async def revoke_access_endpoint(
    body: UserTargetRequest,
    caller: str = Depends(get_caller),
    db: AsyncSession = Depends(get_session),
) -> EntitlementMutationResponse:
    """Expire a user's access immediately."""
    entitlement = await service.revoke_access(db, caller, body.user)
    await db.commit()
    return EntitlementMutationResponse(
        entitlement=_entitlement_response(entitlement),
        invalidates=invalidated_by("revoke_access") if entitlement is not None else [],
    )


@router.post("/approve", response_model=EntitlementMutationResponse)
async def approve_access_endpoint(
    body: ApproveAccessRequest,
    caller: str = Depends(get_caller),
    db: AsyncSession = Depends(get_session),
) -> EntitlementMutationResponse:
    """Approve or reject a pending access request."""
    entitlement = await service.approve_access_request(db, caller, body.user, body.approve)
    await db.commit()
    return EntitlementMutationResponse(
        entitlement=_entitlement_response(entitlement),
        invalidates=invalidated_by("approve_access_request"),
    )


@router.post("/switch-temporary", response_model=EntitlementMutationResponse)
async def switch_to_temporary_endpoint(
    body: SwitchTemporaryRequest,
    caller: str = Depends(get_caller),
    db: AsyncSession = Depends(get_session),
) -> EntitlementMutationResponse:
    """Time-box an entitlement to end duration_seconds from now."""
    entitlement = await service.switch_to_temporary_access(db, caller, body.user, body.duration_seconds)
    await db.commit()
    return EntitlementMutationResponse(
        entitlement=_entitlement_response(entitlement),
        invalidates=invalidated_by("switch_to_temporary_access"),
    )
