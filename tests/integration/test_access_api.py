"""Integration tests: access lifecycle via API."""

from __future__ import annotations

import pytest
from httpx import AsyncClient

from tests.helpers import ADMIN, ALICE, BOB, DAY, api_grant, api_register, auth


async def _has_access(client: AsyncClient, principal: str) -> bool:
    response = await client.get("/api/v1/access/has-access", headers=auth(principal))
    assert response.status_code == 200
    return response.json()["has_access"]


class TestRequestAndApprove:
    @pytest.mark.asyncio
    async def test_request_then_approve(self, admin_client: AsyncClient):
        await api_register(admin_client, ALICE, "Alice")

        response = await admin_client.post("/api/v1/access/request", headers=auth(ALICE))
        assert response.status_code == 200
        body = response.json()
        assert body["requested"] is True
        assert "access" in body["invalidates"]

        me = (await admin_client.get("/api/v1/access/me", headers=auth(ALICE))).json()
        assert me["status"] == "pending"
        assert me["derived_status"] == "pending"
        assert me["label"] == "Pending approval"
        assert await _has_access(admin_client, ALICE) is False

        response = await admin_client.post(
            "/api/v1/access/approve",
            json={"user": ALICE, "approve": True},
            headers=auth(ADMIN),
        )
        assert response.status_code == 200
        entitlement = response.json()["entitlement"]
        assert entitlement["status"] == "approved"
        assert entitlement["derived_status"] == "authorized"
        assert entitlement["end_time"] is not None
        assert await _has_access(admin_client, ALICE) is True

    @pytest.mark.asyncio
    async def test_duplicate_request_is_noop(self, admin_client: AsyncClient):
        await admin_client.post("/api/v1/access/request", headers=auth(ALICE))
        response = await admin_client.post("/api/v1/access/request", headers=auth(ALICE))
        assert response.json() == {"requested": False, "invalidates": []}

    @pytest.mark.asyncio
    async def test_reject(self, admin_client: AsyncClient):
        await admin_client.post("/api/v1/access/request", headers=auth(ALICE))
        response = await admin_client.post(
            "/api/v1/access/approve",
            json={"user": ALICE, "approve": False},
            headers=auth(ADMIN),
        )
        assert response.json()["entitlement"]["label"] == "Rejected"
        assert await _has_access(admin_client, ALICE) is False

    @pytest.mark.asyncio
    async def test_approve_twice_conflicts(self, admin_client: AsyncClient):
        await admin_client.post("/api/v1/access/request", headers=auth(ALICE))
        body = {"user": ALICE, "approve": True}
        await admin_client.post("/api/v1/access/approve", json=body, headers=auth(ADMIN))
        response = await admin_client.post("/api/v1/access/approve", json=body, headers=auth(ADMIN))
        assert response.status_code == 409
        assert response.json()["code"] == "invalid_state"

    @pytest.mark.asyncio
    async def test_approve_without_request(self, admin_client: AsyncClient):
        response = await admin_client.post(
            "/api/v1/access/approve",
            json={"user": BOB, "approve": True},
            headers=auth(ADMIN),
        )
        assert response.status_code == 404


class TestAdminOperations:
    @pytest.mark.asyncio
    async def test_non_admin_rejected(self, admin_client: AsyncClient):
        await api_register(admin_client, ALICE)
        response = await admin_client.post(
            "/api/v1/access/grant",
            json={"user": ALICE, "entitlement_type": "permanent"},
            headers=auth(ALICE),
        )
        assert response.status_code == 403
        assert response.json()["code"] == "unauthorized"
        assert await _has_access(admin_client, ALICE) is False

    @pytest.mark.asyncio
    async def test_permanent_grant(self, admin_client: AsyncClient):
        body = await api_grant(admin_client, ALICE)
        assert body["entitlement"]["is_permanent"] is True
        assert body["entitlement"]["label"] == "Authorized (permanent)"
        assert set(body["invalidates"]) >= {"access", "entitlement", "entitlements", "chat_users"}

    @pytest.mark.asyncio
    async def test_trial_grant_expires(self, admin_client: AsyncClient, clock):
        await api_grant(admin_client, ALICE, duration_seconds=DAY)
        assert await _has_access(admin_client, ALICE) is True

        clock.advance(DAY)
        assert await _has_access(admin_client, ALICE) is True

        clock.advance(1)
        assert await _has_access(admin_client, ALICE) is False

    @pytest.mark.asyncio
    async def test_listing_promotes_lapsed_grants(self, admin_client: AsyncClient, clock):
        await api_grant(admin_client, ALICE, duration_seconds=DAY)
        await api_grant(admin_client, BOB)
        clock.advance(2 * DAY)

        response = await admin_client.get("/api/v1/access/entitlements", headers=auth(ADMIN))
        assert response.status_code == 200
        assert response.headers["cache-control"] == "private, max-age=5"
        by_user = {e["user"]: e for e in response.json()}
        assert by_user[ALICE]["status"] == "expired"
        assert by_user[ALICE]["derived_status"] == "expired"
        assert by_user[BOB]["derived_status"] == "authorized"

        history = await admin_client.get(f"/api/v1/access/entitlements/{ALICE}/history", headers=auth(ADMIN))
        assert [h["action"] for h in history.json()] == ["grant", "expire"]

    @pytest.mark.asyncio
    async def test_revoke(self, admin_client: AsyncClient):
        await api_grant(admin_client, ALICE)
        response = await admin_client.post("/api/v1/access/revoke", json={"user": ALICE}, headers=auth(ADMIN))
        assert response.status_code == 200
        assert response.json()["entitlement"]["derived_status"] == "expired"
        assert await _has_access(admin_client, ALICE) is False

    @pytest.mark.asyncio
    async def test_revoke_unknown_user_is_noop(self, admin_client: AsyncClient):
        response = await admin_client.post("/api/v1/access/revoke", json={"user": BOB}, headers=auth(ADMIN))
        assert response.status_code == 200
        assert response.json() == {"entitlement": None, "invalidates": []}

    @pytest.mark.asyncio
    async def test_switch_to_temporary(self, admin_client: AsyncClient, clock):
        await api_grant(admin_client, ALICE)
        response = await admin_client.post(
            "/api/v1/access/switch-temporary",
            json={"user": ALICE, "duration_seconds": 60},
            headers=auth(ADMIN),
        )
        assert response.status_code == 200
        assert response.json()["entitlement"]["is_permanent"] is False

        clock.advance(61)
        assert await _has_access(admin_client, ALICE) is False

    @pytest.mark.asyncio
    async def test_switch_rejects_non_positive_duration(self, admin_client: AsyncClient):
        await api_grant(admin_client, ALICE)
        response = await admin_client.post(
            "/api/v1/access/switch-temporary",
            json={"user": ALICE, "duration_seconds": 0},
            headers=auth(ADMIN),
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_duration_past_timestamp_range_rejected(self, admin_client: AsyncClient):
        response = await admin_client.post(
            "/api/v1/access/grant",
            json={
                "user": ALICE,
                "entitlement_type": "trial",
                "source": "adminGrant",
                "duration_seconds": 10**19,
            },
            headers=auth(ADMIN),
        )
        assert response.status_code == 400
        assert response.json()["code"] == "invalid_argument"

        await api_grant(admin_client, ALICE)
        response = await admin_client.post(
            "/api/v1/access/switch-temporary",
            json={"user": ALICE, "duration_seconds": 10**19},
            headers=auth(ADMIN),
        )
        assert response.status_code == 400
        assert response.json()["code"] == "invalid_argument"
        assert await _has_access(admin_client, ALICE) is True


class TestVisibility:
    @pytest.mark.asyncio
    async def test_user_sees_own_entitlement_only(self, admin_client: AsyncClient):
        await api_grant(admin_client, ALICE)
        await api_grant(admin_client, BOB)

        own = await admin_client.get(f"/api/v1/access/entitlements/{ALICE}", headers=auth(ALICE))
        assert own.status_code == 200
        assert own.json()["user"] == ALICE

        other = await admin_client.get(f"/api/v1/access/entitlements/{BOB}", headers=auth(ALICE))
        assert other.status_code == 403

        listing = await admin_client.get("/api/v1/access/entitlements", headers=auth(ALICE))
        assert listing.status_code == 403

    @pytest.mark.asyncio
    async def test_no_entitlement_is_null(self, admin_client: AsyncClient):
        response = await admin_client.get("/api/v1/access/me", headers=auth(ALICE))
        assert response.status_code == 200
        assert response.json() is None
        assert response.headers["cache-control"] == "private, max-age=10"

    @pytest.mark.asyncio
    async def test_missing_token_rejected(self, client: AsyncClient):
        response = await client.get("/api/v1/access/has-access")
        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"
        assert response.json()["code"] == "unauthenticated"

    @pytest.mark.asyncio
    async def test_invalid_token_rejected(self, client: AsyncClient):
        response = await client.get(
            "/api/v1/access/has-access",
            headers={"Authorization": "Bearer not-a-jwt"},
        )
        assert response.status_code == 401
