"""Pydantic schemas for thread and message endpoints."""

from __future__ import annotations

from typing import Annotated

from pydantic import BaseModel, Field

from gatedchat.db.models import PRINCIPAL_MAX_LENGTH, ChatMessage, ChatThread
from gatedchat.invalidation import MutationResponse
from gatedchat.messaging.service import participant_ids, visible_content


class CreateThreadRequest(BaseModel):
    participants: list[Annotated[str, Field(min_length=1, max_length=PRINCIPAL_MAX_LENGTH)]] = Field(..., min_length=1)


class SendMessageRequest(BaseModel):
    content: str


class EditMessageRequest(BaseModel):
    content: str


class MessageResponse(BaseModel):
    id: int
    sender: str
    content: str
    timestamp: int
    deleted: bool

    @classmethod
    def build(cls, message: ChatMessage) -> MessageResponse:
        return cls(
            id=message.message_id,
            sender=message.sender,
            content=visible_content(message),
            timestamp=message.timestamp,
            deleted=message.deleted,
        )


class ThreadResponse(BaseModel):
    id: int
    participants: list[str]
    messages: list[MessageResponse] = []

    @classmethod
    def build(cls, thread: ChatThread, messages: list[ChatMessage]) -> ThreadResponse:
        return cls(
            id=thread.id,
            participants=participant_ids(thread),
            messages=[MessageResponse.build(m) for m in messages],
        )


class ThreadListResponse(BaseModel):
    thread_ids: list[int]


class ThreadCreatedResponse(MutationResponse):
    id: int


class MessageMutationResponse(MutationResponse):
    message: MessageResponse
