"""Request/response schemas for access endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field

from gatedchat.access.status import DerivedStatus, derive_status, status_label
from gatedchat.db.models import (
    PRINCIPAL_MAX_LENGTH,
    AccessEntitlement,
    AccessEntitlementHistory,
    AccessRequestStatus,
    EntitlementSource,
    EntitlementType,
)
from gatedchat.invalidation import MutationResponse


class EntitlementResponse(BaseModel):
    """Stored entitlement facts plus the status derived at response time."""

    user: str
    entitlement_type: EntitlementType
    source: EntitlementSource
    status: AccessRequestStatus
    request_timestamp: int
    start_time: int
    end_time: int | None = None
    derived_status: DerivedStatus
    label: str
    is_permanent: bool

    @classmethod
    def build(cls, entitlement: AccessEntitlement, now: int) -> EntitlementResponse:
        return cls(
            user=entitlement.user,
            entitlement_type=entitlement.entitlement_type,
            source=entitlement.source,
            status=entitlement.status,
            request_timestamp=entitlement.request_timestamp,
            start_time=entitlement.start_time,
            end_time=entitlement.end_time,
            derived_status=derive_status(entitlement, now),
            label=status_label(entitlement, now),
            is_permanent=entitlement.end_time is None,
        )


class EntitlementHistoryEntry(BaseModel):
    action: str
    actor: str
    entitlement_type: str
    source: str
    status: str
    request_timestamp: int
    start_time: int
    end_time: int | None = None
    recorded_at: int

    @classmethod
    def build(cls, row: AccessEntitlementHistory) -> EntitlementHistoryEntry:
        return cls(
            action=row.action,
            actor=row.actor,
            entitlement_type=row.entitlement_type,
            source=row.source,
            status=row.status,
            request_timestamp=row.request_timestamp,
            start_time=row.start_time,
            end_time=row.end_time,
            recorded_at=row.recorded_at,
        )


class HasAccessResponse(BaseModel):
    has_access: bool


class RequestAccessResponse(MutationResponse):
    requested: bool


class EntitlementMutationResponse(MutationResponse):
    entitlement: EntitlementResponse | None = None


class GrantAccessRequest(BaseModel):
    user: str = Field(..., min_length=1, max_length=PRINCIPAL_MAX_LENGTH)
    entitlement_type: EntitlementType
    source: EntitlementSource = EntitlementSource.ADMIN_GRANT
    duration_seconds: int | None = Field(None, ge=0)


class UserTargetRequest(BaseModel):
    user: str = Field(..., min_length=1, max_length=PRINCIPAL_MAX_LENGTH)


class ApproveAccessRequest(BaseModel):
    user: str = Field(..., min_length=1, max_length=PRINCIPAL_MAX_LENGTH)
    approve: bool


class SwitchTemporaryRequest(BaseModel):
    user: str = Field(..., min_length=1, max_length=PRINCIPAL_MAX_LENGTH)
    duration_seconds: int = Field(..., gt=0)
