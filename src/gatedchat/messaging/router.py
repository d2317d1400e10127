"""Thread and message endpoints — /api/v1/threads/*."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from gatedchat.auth.dependencies import get_caller
from gatedchat.database import get_session
from gatedchat.invalidation import MutationResponse, View, invalidated_by
from gatedchat.messaging import service
from gatedchat.messaging.schemas import (
    CreateThreadRequest,
    EditMessageRequest,
    MessageMutationResponse,
    MessageResponse,
    SendMessageRequest,
    ThreadCreatedResponse,
    ThreadListResponse,
    ThreadResponse,
)
from gatedchat.staleness import staleness

router = APIRouter(prefix="/api/v1/threads", tags=["Messaging"])


# ── Threads ──


@router.post("", response_model=ThreadCreatedResponse, status_code=201)
async def create_thread_endpoint(
    body: CreateThreadRequest,
    caller: str = Depends(get_caller),
    db: AsyncSession = Depends(get_session),
) -> ThreadCreatedResponse:
    """Create a thread with the given participants (caller included automatically)."""
    thread = await service.create_thread(db, caller, body.participants)
    await db.commit()
    return ThreadCreatedResponse(id=thread.id, invalidates=invalidated_by("create_thread"))


@router.get(
    "",
    response_model=ThreadListResponse,
    dependencies=[Depends(staleness(View.THREADS))],
)
async def list_threads_endpoint(
    caller: str = Depends(get_caller),
    db: AsyncSession = Depends(get_session),
) -> ThreadListResponse:
    """Ids of the caller's threads."""
    return ThreadListResponse(thread_ids=await service.get_user_threads(db, caller))


@router.get(
    "/{thread_id}",
    response_model=ThreadResponse,
    dependencies=[Depends(staleness(View.THREAD))],
)
async def get_thread_endpoint(
    thread_id: int,
    caller: str = Depends(get_caller),
    db: AsyncSession = Depends(get_session),
) -> ThreadResponse:
    thread, messages = await service.get_thread(db, caller, thread_id)
    return ThreadResponse.build(thread, messages)


@router.delete("/{thread_id}", response_model=MutationResponse)
async def delete_thread_endpoint(
    thread_id: int,
    caller: str = Depends(get_caller),
    db: AsyncSession = Depends(get_session),
) -> MutationResponse:
    """Delete a thread and all of its messages for every participant."""
    await service.delete_thread(db, caller, thread_id)
    await db.commit()
    return MutationResponse(invalidates=invalidated_by("delete_thread"))


# ── Messages ──


@router.get(
    "/{thread_id}/messages",
    response_model=list[MessageResponse],
    dependencies=[Depends(staleness(View.MESSAGES))],
)
async def get_messages_endpoint(
    thread_id: int,
    caller: str = Depends(get_caller),
    db: AsyncSession = Depends(get_session),
) -> list[MessageResponse]:
    messages = await service.get_messages(db, caller, thread_id)
    return [MessageResponse.build(m) for m in messages]


@router.post("/{thread_id}/messages", response_model=MessageMutationResponse, status_code=201)
async def send_message_endpoint(
    thread_id: int,
    body: SendMessageRequest,
    caller: str = Depends(get_caller),
    db: AsyncSession = Depends(get_session),
) -> MessageMutationResponse:
    message = await service.send_message(db, caller, thread_id, body.content)
    await db.commit()
    return MessageMutationResponse(
        message=MessageResponse.build(message),
        invalidates=invalidated_by("send_message"),
    )


@router.patch("/{thread_id}/messages/{message_id}", response_model=MessageMutationResponse)
async def edit_message_endpoint(
    thread_id: int,
    message_id: int,
    body: EditMessageRequest,
    caller: str = Depends(get_caller),
    db: AsyncSession = Depends(get_session),
) -> MessageMutationResponse:
    message = await service.edit_message(db, caller, thread_id, message_id, body.content)
    await db.commit()
    return MessageMutationResponse(
        message=MessageResponse.build(message),
        invalidates=invalidated_by("edit_message"),
    )


@router.delete("/{thread_id}/messages/{message_id}", response_model=MessageMutationResponse)
async def delete_message_endpoint(
    thread_id: int,
    message_id: int,
    caller: str = Depends(get_caller),
    db: AsyncSession = Depends(get_session),
) -> MessageMutationResponse:
    """Soft-delete a message; its slot stays with a tombstone."""
    message = await service.delete_message(db, caller, thread_id, message_id)
    await db.commit()
    return MessageMutationResponse(
        message=MessageResponse.build(message),
        invalidates=invalidated_by("delete_message"),
    )
