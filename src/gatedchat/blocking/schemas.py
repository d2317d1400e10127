"""Pydantic schemas for block list endpoints."""

from __future__ import annotations

from pydantic import BaseModel


class BlockedUsersResponse(BaseModel):
    blocked: list[str]


class HasBlockedResponse(BaseModel):
    user: str
    blocked: bool
