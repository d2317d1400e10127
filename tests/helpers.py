"""Test helpers shared by unit and integration tests."""

from __future__ import annotations

from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from gatedchat.auth.jwt import create_access_token

ADMIN = "admin-principal"
ALICE = "alice-principal"
BOB = "bob-principal"
CAROL = "carol-principal"

START_NS = 1_760_000_000 * 1_000_000_000
DAY = 86_400


class FrozenClock:
    """Controllable replacement for gatedchat.clock.now_ns."""

    def __init__(self, start: int = START_NS) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += int(seconds * 1_000_000_000)


def auth(principal: str) -> dict[str, str]:
    """Authorization header for ``principal``."""
    return {"Authorization": f"Bearer {create_access_token(principal)}"}


async def register_admin(db: AsyncSession) -> None:
    """Register the bootstrap admin directly through the service layer."""
    from gatedchat.users.service import register_user

    await register_user(db, ADMIN, "Admin")
    await db.commit()


async def grant_permanent(db: AsyncSession, *users: str) -> None:
    """Give each user permanent chat access (registers the admin if needed)."""
    from gatedchat.access.service import grant_access
    from gatedchat.db.models import EntitlementSource, EntitlementType
    from gatedchat.users.service import user_exists

    if not await user_exists(db, ADMIN):
        await register_admin(db)
    for user in users:
        await grant_access(db, ADMIN, user, EntitlementType.PERMANENT, EntitlementSource.ADMIN_GRANT, None)
    await db.commit()


async def api_register(client: AsyncClient, principal: str, display_name: str | None = None) -> None:
    response = await client.post(
        "/api/v1/users/register",
        json={"display_name": display_name},
        headers=auth(principal),
    )
    assert response.status_code == 201, response.text


async def api_grant(client: AsyncClient, user: str, duration_seconds: int | None = None) -> dict:
    response = await client.post(
        "/api/v1/access/grant",
        json={
            "user": user,
            "entitlement_type": "permanent" if duration_seconds is None else "trial",
            "source": "adminGrant",
            "duration_seconds": duration_seconds,
        },
        headers=auth(ADMIN),
    )
    assert response.status_code == 200, response.text
    return response.json()
