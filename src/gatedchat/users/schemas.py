"""Request/response schemas for user endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field

from gatedchat.db.models import PRINCIPAL_MAX_LENGTH, UserProfile, UserRole
from gatedchat.invalidation import MutationResponse


class ProfileResponse(BaseModel):
    principal: str
    display_name: str | None = None

    @classmethod
    def build(cls, profile: UserProfile) -> ProfileResponse:
        return cls(principal=profile.principal, display_name=profile.display_name)


class RegisterRequest(BaseModel):
    display_name: str | None = Field(None, max_length=256)


class SaveProfileRequest(BaseModel):
    """The caller's own profile. ``principal`` must match the caller."""

    principal: str = Field(..., min_length=1, max_length=PRINCIPAL_MAX_LENGTH)
    display_name: str | None = Field(None, max_length=256)


class ProfileMutationResponse(MutationResponse):
    profile: ProfileResponse


class UserExistsResponse(BaseModel):
    exists: bool


class RoleResponse(BaseModel):
    role: UserRole


class IsAdminResponse(BaseModel):
    is_admin: bool


class AssignRoleRequest(BaseModel):
    user: str = Field(..., min_length=1, max_length=PRINCIPAL_MAX_LENGTH)
    role: UserRole


class ChatUserResponse(BaseModel):
    principal: str
    display_name: str | None = None
