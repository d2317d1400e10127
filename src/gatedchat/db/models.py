"""ORM models for profiles, roles, entitlements, blocks, threads and messages.

All timestamps are integer nanoseconds since the Unix epoch.
"""

from __future__ import annotations

import enum

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from gatedchat.db.base import Base, BigIntPK


# Principals are opaque ids issued elsewhere; every principal column is this wide
PRINCIPAL_MAX_LENGTH = 128


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    return [member.value for member in enum_cls]


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class UserRole(str, enum.Enum):
    ADMIN = "admin"
    USER = "user"
    GUEST = "guest"


class EntitlementType(str, enum.Enum):
    TRIAL = "trial"
    PERMANENT = "permanent"
    SUBSCRIPTION = "subscription"
    SPONSORED = "sponsored"


class EntitlementSource(str, enum.Enum):
    PROMOTION = "promotion"
    ADMIN_GRANT = "adminGrant"
    PAYMENT = "payment"


class AccessRequestStatus(str, enum.Enum):
    """Stored entitlement status. Advisory only; see access.status.derive_status."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    EXPIRED = "expired"


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class UserProfile(Base):
    """Registered principal with an optional display name."""

    __tablename__ = "user_profiles"

    principal: Mapped[str] = mapped_column(String(PRINCIPAL_MAX_LENGTH), primary_key=True)
    display_name: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    updated_at: Mapped[int] = mapped_column(BigInteger, nullable=False)


class UserRoleAssignment(Base):
    """Explicit role for a principal. Absence means the default role."""

    __tablename__ = "user_roles"

    principal: Mapped[str] = mapped_column(String(PRINCIPAL_MAX_LENGTH), primary_key=True)
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, name="user_role", native_enum=False, values_callable=_enum_values),
        nullable=False,
    )
    assigned_by: Mapped[str | None] = mapped_column(String(PRINCIPAL_MAX_LENGTH), nullable=True)
    assigned_at: Mapped[int] = mapped_column(BigInteger, nullable=False)


# ---------------------------------------------------------------------------
# Access entitlements
# ---------------------------------------------------------------------------


class AccessEntitlement(Base):
    """The single live entitlement record for a principal."""

    __tablename__ = "access_entitlements"
    __table_args__ = (
        CheckConstraint("end_time IS NULL OR end_time >= start_time", name="ck_entitlement_end_after_start"),
    )

    user: Mapped[str] = mapped_column(String(PRINCIPAL_MAX_LENGTH), primary_key=True)
    entitlement_type: Mapped[EntitlementType] = mapped_column(
        Enum(EntitlementType, name="entitlement_type", native_enum=False, values_callable=_enum_values),
        nullable=False,
    )
    source: Mapped[EntitlementSource] = mapped_column(
        Enum(EntitlementSource, name="entitlement_source", native_enum=False, values_callable=_enum_values),
        nullable=False,
    )
    status: Mapped[AccessRequestStatus] = mapped_column(
        Enum(AccessRequestStatus, name="access_request_status", native_enum=False, values_callable=_enum_values),
        nullable=False,
    )
    request_timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)
    start_time: Mapped[int] = mapped_column(BigInteger, nullable=False)
    end_time: Mapped[int | None] = mapped_column(BigInteger, nullable=True)


class AccessEntitlementHistory(Base):
    """Append-only audit trail of every entitlement write."""

    __tablename__ = "access_entitlement_history"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user: Mapped[str] = mapped_column(String(PRINCIPAL_MAX_LENGTH), nullable=False, index=True)
    action: Mapped[str] = mapped_column(String(32), nullable=False)
    actor: Mapped[str] = mapped_column(String(PRINCIPAL_MAX_LENGTH), nullable=False)
    entitlement_type: Mapped[str] = mapped_column(String(16), nullable=False)
    source: Mapped[str] = mapped_column(String(16), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    request_timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)
    start_time: Mapped[int] = mapped_column(BigInteger, nullable=False)
    end_time: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    recorded_at: Mapped[int] = mapped_column(BigInteger, nullable=False)


# ---------------------------------------------------------------------------
# Blocking
# ---------------------------------------------------------------------------


class BlockRelation(Base):
    """Directed edge: blocker has blocked blocked."""

    __tablename__ = "user_blocks"
    __table_args__ = (UniqueConstraint("blocker", "blocked", name="uq_user_blocks_pair"),)

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    blocker: Mapped[str] = mapped_column(String(PRINCIPAL_MAX_LENGTH), nullable=False, index=True)
    blocked: Mapped[str] = mapped_column(String(PRINCIPAL_MAX_LENGTH), nullable=False)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)


# ---------------------------------------------------------------------------
# Threads & messages
# ---------------------------------------------------------------------------


class ChatThread(Base):
    """A private thread between a fixed set of participants."""

    __tablename__ = "chat_threads"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    created_by: Mapped[str] = mapped_column(String(PRINCIPAL_MAX_LENGTH), nullable=False)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    next_message_id: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    participants: Mapped[list[ThreadParticipant]] = relationship(
        "ThreadParticipant",
        order_by="ThreadParticipant.position",
        lazy="selectin",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class ThreadParticipant(Base):
    __tablename__ = "chat_thread_participants"
    __table_args__ = (UniqueConstraint("thread_id", "user", name="uq_thread_participant"),)

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    thread_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("chat_threads.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user: Mapped[str] = mapped_column(String(PRINCIPAL_MAX_LENGTH), nullable=False, index=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False)


class ChatMessage(Base):
    """A message within a thread. Soft-deleted messages keep their slot."""

    __tablename__ = "chat_messages"
    __table_args__ = (UniqueConstraint("thread_id", "message_id", name="uq_thread_message"),)

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    thread_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("chat_threads.id", ondelete="CASCADE"), nullable=False, index=True
    )
    message_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    sender: Mapped[str] = mapped_column(String(PRINCIPAL_MAX_LENGTH), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)
    deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
