"""Threads and messages.

Rules:
- Every operation requires chat access; the access check runs first
- Only participants can see or act on a thread (participant set is fixed)
- Message ids are per-thread and monotonic; deleted messages keep their slot
- Only the sender may edit or delete a message; deleted messages are terminal
- Sending is refused while the sender has blocked another participant
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from sqlalchemy import delete, select

from gatedchat import clock
from gatedchat.access.service import require_access
from gatedchat.blocking.service import blocked_among, blockers_among
from gatedchat.config import get_settings
from gatedchat.db.models import PRINCIPAL_MAX_LENGTH, ChatMessage, ChatThread, ThreadParticipant
from gatedchat.errors import Blocked, Forbidden, InvalidArgument, InvalidState, NotFound, Unauthorized

if TYPE_CHECKING:
    from collections.abc import Iterable

    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

TOMBSTONE = "Message deleted"


def participant_ids(thread: ChatThread) -> list[str]:
    return [p.user for p in thread.participants]


def visible_content(message: ChatMessage) -> str:
    """Content as shown to readers; deleted messages render as the tombstone."""
    return TOMBSTONE if message.deleted else message.content


def _validate_content(content: str) -> str:
    if not content or not content.strip():
        raise InvalidArgument("Message content must not be empty")
    limit = get_settings().max_message_length
    if len(content) > limit:
        msg = f"Message content is limited to {limit} characters"
        raise InvalidArgument(msg)
    return content


def _normalize_participants(caller: str, participants: Iterable[str]) -> list[str]:
    ordered: list[str] = []
    for raw in participants:
        principal = raw.strip()
        if not principal:
            raise InvalidArgument("Participant ids must not be empty")
        if len(principal) > PRINCIPAL_MAX_LENGTH:
            msg = f"Participant ids are limited to {PRINCIPAL_MAX_LENGTH} characters"
            raise InvalidArgument(msg)
        if principal not in ordered:
            ordered.append(principal)
    if caller not in ordered:
        ordered.insert(0, caller)
    if len(ordered) < 2:
        raise InvalidArgument("A thread needs at least two distinct participants")
    limit = get_settings().max_thread_participants
    if len(ordered) > limit:
        msg = f"A thread is limited to {limit} participants"
        raise InvalidArgument(msg)
    return ordered


async def _load_thread(
    db: AsyncSession,
    caller: str,
    thread_id: int,
    *,
    for_update: bool = False,
) -> ChatThread:
    if not clock.fits_int64(thread_id):
        raise NotFound("Thread not found")
    stmt = select(ChatThread).where(ChatThread.id == thread_id)
    if for_update:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt)
    thread = result.scalar_one_or_none()
    if thread is None:
        raise NotFound("Thread not found")
    if caller not in participant_ids(thread):
        raise Forbidden("You are not a participant in this thread")
    return thread


async def _load_message(
    db: AsyncSession,
    thread_id: int,
    message_id: int,
) -> ChatMessage:
    if not clock.fits_int64(message_id):
        raise NotFound("Message not found")
    result = await db.execute(
        select(ChatMessage)
        .where(ChatMessage.thread_id == thread_id, ChatMessage.message_id == message_id)
        .with_for_update()
    )
    message = result.scalar_one_or_none()
    if message is None:
        raise NotFound("Message not found")
    return message


# ---------------------------------------------------------------------------
# Threads
# ---------------------------------------------------------------------------


async def create_thread(db: AsyncSession, caller: str, participants: Iterable[str]) -> ChatThread:
    """
    Create a thread between the caller and ``participants``.

    The caller is added first if not listed. Duplicates are dropped.

    Raises:
        Unauthorized: If the caller has no chat access.
        InvalidArgument: If fewer than two distinct participants remain.
    """
    await require_access(db, caller)
    members = _normalize_participants(caller, participants)

    thread = ChatThread(
        created_by=caller,
        created_at=clock.now_ns(),
        next_message_id=0,
        participants=[ThreadParticipant(user=user, position=i) for i, user in enumerate(members)],
    )
    db.add(thread)
    await db.flush()
    logger.info("thread_created", thread_id=thread.id, creator=caller, participant_count=len(members))
    return thread


async def get_thread(db: AsyncSession, caller: str, thread_id: int) -> tuple[ChatThread, list[ChatMessage]]:
    """A thread with its messages in id order."""
    await require_access(db, caller)
    thread = await _load_thread(db, caller, thread_id)
    return thread, await _messages_of(db, thread.id)


async def get_messages(db: AsyncSession, caller: str, thread_id: int) -> list[ChatMessage]:
    await require_access(db, caller)
    thread = await _load_thread(db, caller, thread_id)
    return await _messages_of(db, thread.id)


async def get_user_threads(db: AsyncSession, caller: str) -> list[int]:
    """Ids of every thread the caller participates in, oldest first."""
    await require_access(db, caller)
    result = await db.execute(
        select(ThreadParticipant.thread_id)
        .where(ThreadParticipant.user == caller)
        .order_by(ThreadParticipant.thread_id)
    )
    return list(result.scalars().all())


async def delete_thread(db: AsyncSession, caller: str, thread_id: int) -> None:
    """Physically remove a thread and all of its messages. Irreversible."""
    await require_access(db, caller)
    thread = await _load_thread(db, caller, thread_id, for_update=True)
    await db.execute(delete(ChatMessage).where(ChatMessage.thread_id == thread.id))
    await db.delete(thread)
    await db.flush()
    logger.info("thread_deleted", thread_id=thread_id, actor=caller)


async def _messages_of(db: AsyncSession, thread_id: int) -> list[ChatMessage]:
    result = await db.execute(
        select(ChatMessage).where(ChatMessage.thread_id == thread_id).order_by(ChatMessage.message_id)
    )
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------


async def send_message(db: AsyncSession, caller: str, thread_id: int, content: str) -> ChatMessage:
    """
    Append a message to a thread.

    Only the sender's own block list is consulted unless ``mutual_blocking``
    is enabled, in which case participants who blocked the sender also stop
    delivery.

    Raises:
        Unauthorized: If the caller has no chat access.
        NotFound: If the thread does not exist.
        Forbidden: If the caller is not a participant.
        InvalidArgument: If the content is empty or too long.
        Blocked: If a block relation forbids delivery.
    """
    await require_access(db, caller)
    thread = await _load_thread(db, caller, thread_id, for_update=True)
    _validate_content(content)

    others = [user for user in participant_ids(thread) if user != caller]
    if await blocked_among(db, caller, others):
        raise Blocked("You have blocked a participant in this thread. Unblock them to send messages.")
    if get_settings().mutual_blocking and await blockers_among(db, caller, others):
        raise Blocked("A participant in this thread has blocked you.")

    message = ChatMessage(
        thread_id=thread.id,
        message_id=thread.next_message_id,
        sender=caller,
        content=content,
        timestamp=clock.now_ns(),
        deleted=False,
    )
    thread.next_message_id += 1
    db.add(message)
    await db.flush()
    logger.info("message_sent", thread_id=thread.id, message_id=message.message_id, sender=caller)
    return message


async def edit_message(
    db: AsyncSession,
    caller: str,
    thread_id: int,
    message_id: int,
    new_content: str,
) -> ChatMessage:
    """
    Replace a message's content in place. Id and timestamp are unchanged.

    Raises:
        Unauthorized: If the caller lacks access or is not the sender.
        InvalidState: If the message has been deleted.
    """
    await require_access(db, caller)
    await _load_thread(db, caller, thread_id)
    message = await _load_message(db, thread_id, message_id)
    if message.sender != caller:
        raise Unauthorized("Only the sender can edit this message")
    if message.deleted:
        raise InvalidState("Deleted messages cannot be edited")
    message.content = _validate_content(new_content)
    await db.flush()
    logger.info("message_edited", thread_id=thread_id, message_id=message_id, sender=caller)
    return message


async def delete_message(db: AsyncSession, caller: str, thread_id: int, message_id: int) -> ChatMessage:
    """Soft-delete a message. Deleting twice is a no-op."""
    await require_access(db, caller)
    await _load_thread(db, caller, thread_id)
    message = await _load_message(db, thread_id, message_id)
    if message.sender != caller:
        raise Unauthorized("Only the sender can delete this message")
    if message.deleted:
        return message
    message.deleted = True
    message.content = ""
    await db.flush()
    logger.info("message_deleted", thread_id=thread_id, message_id=message_id, sender=caller)
    return message
