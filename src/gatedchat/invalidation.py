"""Read views invalidated by each mutation.

Mutating endpoints return the views a client should refetch instead of
relying on a shared client-side cache. Keys are operation names as exposed
by the API.
"""

from __future__ import annotations

import enum

from pydantic import BaseModel


class View(str, enum.Enum):
    PROFILE = "profile"
    ROLE = "role"
    ACCESS = "access"
    ENTITLEMENT = "entitlement"
    ENTITLEMENTS = "entitlements"
    THREADS = "threads"
    THREAD = "thread"
    MESSAGES = "messages"
    BLOCKLIST = "blocklist"
    CHAT_USERS = "chat_users"


_ACCESS_CHANGE = (View.ACCESS, View.ENTITLEMENT, View.ENTITLEMENTS, View.CHAT_USERS)

INVALIDATES: dict[str, tuple[View, ...]] = {
    "register_user": (View.PROFILE, View.ROLE),
    "save_profile": (View.PROFILE, View.CHAT_USERS),
    "assign_role": (View.ROLE,),
    "request_access": (View.ACCESS, View.ENTITLEMENT, View.ENTITLEMENTS),
    # Access changes also gate every chat read
    "approve_access_request": (*_ACCESS_CHANGE, View.THREADS, View.THREAD, View.MESSAGES),
    "grant_access": (*_ACCESS_CHANGE, View.THREADS, View.THREAD, View.MESSAGES),
    "revoke_access": (*_ACCESS_CHANGE, View.THREADS, View.THREAD, View.MESSAGES),
    "switch_to_temporary_access": _ACCESS_CHANGE,
    "create_thread": (View.THREADS,),
    "delete_thread": (View.THREADS, View.THREAD, View.MESSAGES),
    "send_message": (View.THREAD, View.MESSAGES),
    "edit_message": (View.THREAD, View.MESSAGES),
    "delete_message": (View.THREAD, View.MESSAGES),
    "block_user": (View.BLOCKLIST,),
    "unblock_user": (View.BLOCKLIST,),
}


def invalidated_by(operation: str) -> list[str]:
    """View names a client should refetch after ``operation`` succeeds."""
    return [view.value for view in INVALIDATES[operation]]


class MutationResponse(BaseModel):
    """Base body of every mutating endpoint."""

    invalidates: list[str] = []
