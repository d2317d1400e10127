"""Derived entitlement status.

The stored ``status`` column is advisory. Whether a principal may chat is
always recomputed from the stored facts and the current time, never cached.
"""

from __future__ import annotations

import enum
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from gatedchat.clock import NANOS_PER_SECOND
from gatedchat.db.models import AccessRequestStatus

if TYPE_CHECKING:
    from gatedchat.db.models import AccessEntitlement


class DerivedStatus(str, enum.Enum):
    NOT_AUTHORIZED = "not_authorized"
    PENDING = "pending"
    EXPIRED = "expired"
    AUTHORIZED = "authorized"


def is_past_end(entitlement: AccessEntitlement, now: int) -> bool:
    """True when a time-boxed entitlement's end time has passed."""
    return entitlement.end_time is not None and entitlement.end_time < now


def derive_status(entitlement: AccessEntitlement | None, now: int) -> DerivedStatus:
    """Compute the live status of an entitlement at ``now`` (nanoseconds)."""
    if entitlement is None or entitlement.status == AccessRequestStatus.REJECTED:
        return DerivedStatus.NOT_AUTHORIZED
    if entitlement.status == AccessRequestStatus.PENDING:
        return DerivedStatus.PENDING
    if entitlement.status == AccessRequestStatus.EXPIRED or is_past_end(entitlement, now):
        return DerivedStatus.EXPIRED
    return DerivedStatus.AUTHORIZED


def status_label(entitlement: AccessEntitlement | None, now: int) -> str:
    """Human-readable label for the derived status."""
    status = derive_status(entitlement, now)
    if status == DerivedStatus.AUTHORIZED and entitlement is not None:
        if entitlement.end_time is None:
            return "Authorized (permanent)"
        end = datetime.fromtimestamp(entitlement.end_time / NANOS_PER_SECOND, tz=timezone.utc)
        return f"Authorized until {end.date().isoformat()}"
    if status == DerivedStatus.PENDING:
        return "Pending approval"
    if status == DerivedStatus.EXPIRED:
        return "Expired"
    if entitlement is not None:
        return "Rejected"
    return "Not authorized"
