"""Initial schema — profiles, roles, entitlements, blocks, threads, messages.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Users ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_profiles (
            principal VARCHAR(128) PRIMARY KEY,
            display_name VARCHAR(64),
            created_at BIGINT NOT NULL,
            updated_at BIGINT NOT NULL
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_roles (
            principal VARCHAR(128) PRIMARY KEY,
            role VARCHAR(5) NOT NULL CHECK (role IN ('admin', 'user', 'guest')),
            assigned_by VARCHAR(128),
            assigned_at BIGINT NOT NULL
        )
    """)

    # --- Access entitlements ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS access_entitlements (
            "user" VARCHAR(128) PRIMARY KEY,
            entitlement_type VARCHAR(12) NOT NULL,
            source VARCHAR(10) NOT NULL,
            status VARCHAR(8) NOT NULL,
            request_timestamp BIGINT NOT NULL,
            start_time BIGINT NOT NULL,
            end_time BIGINT,
            CHECK (end_time IS NULL OR end_time >= start_time)
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS access_entitlement_history (
            id BIGSERIAL PRIMARY KEY,
            "user" VARCHAR(128) NOT NULL,
            action VARCHAR(32) NOT NULL,
            actor VARCHAR(128) NOT NULL,
            entitlement_type VARCHAR(16) NOT NULL,
            source VARCHAR(16) NOT NULL,
            status VARCHAR(16) NOT NULL,
            request_timestamp BIGINT NOT NULL,
            start_time BIGINT NOT NULL,
            end_time BIGINT,
            recorded_at BIGINT NOT NULL
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_access_entitlement_history_user
        ON access_entitlement_history("user")
    """)

    # --- Blocking ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_blocks (
            id BIGSERIAL PRIMARY KEY,
            blocker VARCHAR(128) NOT NULL,
            blocked VARCHAR(128) NOT NULL,
            created_at BIGINT NOT NULL,
            CONSTRAINT uq_user_blocks_pair UNIQUE (blocker, blocked)
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_user_blocks_blocker ON user_blocks(blocker)")

    # --- Threads & messages ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS chat_threads (
            id BIGSERIAL PRIMARY KEY,
            created_by VARCHAR(128) NOT NULL,
            created_at BIGINT NOT NULL,
            next_message_id BIGINT NOT NULL DEFAULT 0
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS chat_thread_participants (
            id BIGSERIAL PRIMARY KEY,
            thread_id BIGINT NOT NULL REFERENCES chat_threads(id) ON DELETE CASCADE,
            "user" VARCHAR(128) NOT NULL,
            position INTEGER NOT NULL,
            CONSTRAINT uq_thread_participant UNIQUE (thread_id, "user")
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_chat_thread_participants_thread_id
        ON chat_thread_participants(thread_id)
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_chat_thread_participants_user
        ON chat_thread_participants("user")
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS chat_messages (
            id BIGSERIAL PRIMARY KEY,
            thread_id BIGINT NOT NULL REFERENCES chat_threads(id) ON DELETE CASCADE,
            message_id BIGINT NOT NULL,
            sender VARCHAR(128) NOT NULL,
            content TEXT NOT NULL,
            timestamp BIGINT NOT NULL,
            deleted BOOLEAN NOT NULL DEFAULT false,
            CONSTRAINT uq_thread_message UNIQUE (thread_id, message_id)
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_chat_messages_thread_id ON chat_messages(thread_id)")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS chat_messages CASCADE")
    op.execute("DROP TABLE IF EXISTS chat_thread_participants CASCADE")
    op.execute("DROP TABLE IF EXISTS chat_threads CASCADE")
    op.execute("DROP TABLE IF EXISTS user_blocks CASCADE")
    op.execute("DROP TABLE IF EXISTS access_entitlement_history CASCADE")
    op.execute("DROP TABLE IF EXISTS access_entitlements CASCADE")
    op.execute("DROP TABLE IF EXISTS user_roles CASCADE")
    op.execute("DROP TABLE IF EXISTS user_profiles CASCADE")
