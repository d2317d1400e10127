"""Unit tests for the access entitlement lifecycle."""

from __future__ import annotations

import pytest
import pytest_asyncio
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from gatedchat.access import service, store
from gatedchat.access.status import DerivedStatus, derive_status
from gatedchat.clock import seconds_to_ns
from gatedchat.config import get_settings
from gatedchat.database import get_session
from gatedchat.db.models import (
    AccessEntitlement,
    AccessRequestStatus,
    EntitlementSource,
    EntitlementType,
)
from gatedchat.errors import InvalidArgument, InvalidState, NotFound, Unauthorized
from tests.helpers import ADMIN, ALICE, BOB, DAY, register_admin


async def _snapshot(db: AsyncSession) -> list[tuple]:
    result = await db.execute(select(AccessEntitlement).order_by(AccessEntitlement.user))
    return [
        (e.user, e.entitlement_type, e.source, e.status, e.request_timestamp, e.start_time, e.end_time)
        for e in result.scalars().all()
    ]


@pytest_asyncio.fixture
async def db(db_session: AsyncSession) -> AsyncSession:
    await register_admin(db_session)
    return db_session


class TestRequestAccess:
    @pytest.mark.asyncio
    async def test_first_request_creates_pending(self, db: AsyncSession, clock):
        assert await service.request_access(db, ALICE) is True

        entitlement = await service.get_current_entitlement(db, ALICE)
        assert entitlement is not None
        assert entitlement.status == AccessRequestStatus.PENDING
        assert entitlement.request_timestamp == clock.now
        assert entitlement.end_time is None
        assert await service.has_access(db, ALICE) is False

    @pytest.mark.asyncio
    async def test_second_request_while_pending_is_noop(self, db: AsyncSession, clock):
        assert await service.request_access(db, ALICE) is True
        first_ts = (await service.get_current_entitlement(db, ALICE)).request_timestamp

        clock.advance(60)
        assert await service.request_access(db, ALICE) is False
        assert (await service.get_current_entitlement(db, ALICE)).request_timestamp == first_ts

    @pytest.mark.asyncio
    async def test_request_while_authorized_is_noop(self, db: AsyncSession):
        await service.grant_access(db, ADMIN, ALICE, EntitlementType.PERMANENT, EntitlementSource.ADMIN_GRANT, None)
        assert await service.request_access(db, ALICE) is False
        entitlement = await service.get_current_entitlement(db, ALICE)
        assert entitlement.status == AccessRequestStatus.APPROVED

    @pytest.mark.asyncio
    async def test_rerequest_after_rejection(self, db: AsyncSession):
        await service.request_access(db, ALICE)
        await service.approve_access_request(db, ADMIN, ALICE, approve=False)

        assert await service.request_access(db, ALICE) is True
        entitlement = await service.get_current_entitlement(db, ALICE)
        assert entitlement.status == AccessRequestStatus.PENDING

    @pytest.mark.asyncio
    async def test_rerequest_after_expiry(self, db: AsyncSession, clock):
        await service.grant_access(db, ADMIN, ALICE, EntitlementType.TRIAL, EntitlementSource.ADMIN_GRANT, 10)
        clock.advance(11)

        assert await service.request_access(db, ALICE) is True
        entitlement = await service.get_current_entitlement(db, ALICE)
        assert entitlement.status == AccessRequestStatus.PENDING
        assert entitlement.end_time is None

    @pytest.mark.asyncio
    async def test_concurrent_first_request_loses_quietly(self, db: AsyncSession, clock, monkeypatch):
        async for other in get_session():
            other.add(
                AccessEntitlement(
                    user=ALICE,
                    entitlement_type=EntitlementType.TRIAL,
                    source=EntitlementSource.PROMOTION,
                    status=AccessRequestStatus.PENDING,
                    request_timestamp=clock.now,
                    start_time=clock.now,
                    end_time=None,
                )
            )
            await other.commit()
            await other.close()
            break

        # Both reads in request_access miss the row committed above
        async def _miss(*args, **kwargs):
            return None

        with monkeypatch.context() as patched:
            patched.setattr(store, "get", _miss)
            assert await service.request_access(db, ALICE) is False

        rows = await _snapshot(db)
        assert len(rows) == 1
        assert rows[0][0] == ALICE
        assert await store.get_history(db, ALICE) == []


class TestApproveAccessRequest:
    @pytest.mark.asyncio
    async def test_approve_applies_default_trial(self, db: AsyncSession, clock):
        await service.request_access(db, ALICE)
        clock.advance(5)
        entitlement = await service.approve_access_request(db, ADMIN, ALICE, approve=True)

        assert entitlement.status == AccessRequestStatus.APPROVED
        assert entitlement.start_time == clock.now
        trial = get_settings().default_trial_duration_seconds
        assert entitlement.end_time == clock.now + seconds_to_ns(trial)
        assert await service.has_access(db, ALICE) is True

    @pytest.mark.asyncio
    async def test_reject(self, db: AsyncSession):
        await service.request_access(db, ALICE)
        entitlement = await service.approve_access_request(db, ADMIN, ALICE, approve=False)

        assert entitlement.status == AccessRequestStatus.REJECTED
        assert derive_status(entitlement, 0) == DerivedStatus.NOT_AUTHORIZED

    @pytest.mark.asyncio
    async def test_missing_request_is_not_found(self, db: AsyncSession):
        with pytest.raises(NotFound):
            await service.approve_access_request(db, ADMIN, ALICE, approve=True)

    @pytest.mark.asyncio
    async def test_non_pending_is_invalid_state(self, db: AsyncSession):
        await service.grant_access(db, ADMIN, ALICE, EntitlementType.PERMANENT, EntitlementSource.ADMIN_GRANT, None)
        with pytest.raises(InvalidState):
            await service.approve_access_request(db, ADMIN, ALICE, approve=True)


class TestGrantAndRevoke:
    @pytest.mark.asyncio
    async def test_permanent_grant(self, db: AsyncSession):
        entitlement = await service.grant_access(
            db, ADMIN, ALICE, EntitlementType.PERMANENT, EntitlementSource.ADMIN_GRANT, None
        )
        assert entitlement.end_time is None
        assert await service.has_access(db, ALICE) is True

    @pytest.mark.asyncio
    async def test_trial_grant_expires(self, db: AsyncSession, clock):
        await service.grant_access(db, ADMIN, ALICE, EntitlementType.TRIAL, EntitlementSource.ADMIN_GRANT, DAY)
        assert await service.has_access(db, ALICE) is True

        clock.advance(DAY)
        assert await service.has_access(db, ALICE) is True

        clock.advance(1)
        assert await service.has_access(db, ALICE) is False
        entitlement = await service.get_current_entitlement(db, ALICE)
        assert derive_status(entitlement, clock.now) == DerivedStatus.EXPIRED

    @pytest.mark.asyncio
    async def test_grant_overwrites_existing(self, db: AsyncSession):
        await service.request_access(db, ALICE)
        entitlement = await service.grant_access(
            db, ADMIN, ALICE, EntitlementType.SPONSORED, EntitlementSource.PAYMENT, 3600
        )
        assert entitlement.status == AccessRequestStatus.APPROVED
        assert entitlement.entitlement_type == EntitlementType.SPONSORED
        assert entitlement.source == EntitlementSource.PAYMENT
        assert len(await _snapshot(db)) == 1

    @pytest.mark.asyncio
    async def test_negative_duration_rejected(self, db: AsyncSession):
        with pytest.raises(InvalidArgument):
            await service.grant_access(db, ADMIN, ALICE, EntitlementType.TRIAL, EntitlementSource.ADMIN_GRANT, -1)

    @pytest.mark.asyncio
    async def test_duration_past_timestamp_range_rejected(self, db: AsyncSession):
        with pytest.raises(InvalidArgument):
            await service.grant_access(db, ADMIN, ALICE, EntitlementType.TRIAL, EntitlementSource.ADMIN_GRANT, 10**19)
        assert await _snapshot(db) == []

        await service.grant_access(db, ADMIN, ALICE, EntitlementType.PERMANENT, EntitlementSource.ADMIN_GRANT, None)
        with pytest.raises(InvalidArgument):
            await service.switch_to_temporary_access(db, ADMIN, ALICE, 10**19)
        assert (await service.get_current_entitlement(db, ALICE)).end_time is None

    @pytest.mark.asyncio
    async def test_revoke_flips_access_immediately(self, db: AsyncSession, clock):
        await service.grant_access(db, ADMIN, ALICE, EntitlementType.PERMANENT, EntitlementSource.ADMIN_GRANT, None)
        entitlement = await service.revoke_access(db, ADMIN, ALICE)

        assert entitlement is not None
        assert entitlement.end_time == clock.now
        assert await service.has_access(db, ALICE) is False
        # Record kept
        assert await service.get_current_entitlement(db, ALICE) is not None

    @pytest.mark.asyncio
    async def test_revoke_without_entitlement_is_noop(self, db: AsyncSession):
        assert await service.revoke_access(db, ADMIN, ALICE) is None
        assert await _snapshot(db) == []

    @pytest.mark.asyncio
    async def test_switch_to_temporary(self, db: AsyncSession, clock):
        await service.grant_access(db, ADMIN, ALICE, EntitlementType.PERMANENT, EntitlementSource.ADMIN_GRANT, None)
        entitlement = await service.switch_to_temporary_access(db, ADMIN, ALICE, 120)
        assert entitlement.end_time == clock.now + seconds_to_ns(120)

        clock.advance(121)
        assert await service.has_access(db, ALICE) is False

    @pytest.mark.asyncio
    async def test_switch_to_temporary_requires_entitlement(self, db: AsyncSession):
        with pytest.raises(NotFound):
            await service.switch_to_temporary_access(db, ADMIN, ALICE, 120)


class TestAdminOnly:
    @pytest.mark.asyncio
    async def test_non_admin_mutations_fail_without_side_effects(self, db: AsyncSession):
        await service.request_access(db, BOB)
        await service.grant_access(db, ADMIN, ALICE, EntitlementType.PERMANENT, EntitlementSource.ADMIN_GRANT, None)
        before = await _snapshot(db)

        with pytest.raises(Unauthorized):
            await service.grant_access(db, ALICE, BOB, EntitlementType.PERMANENT, EntitlementSource.ADMIN_GRANT, None)
        with pytest.raises(Unauthorized):
            await service.revoke_access(db, ALICE, ALICE)
        with pytest.raises(Unauthorized):
            await service.approve_access_request(db, ALICE, BOB, approve=True)
        with pytest.raises(Unauthorized):
            await service.switch_to_temporary_access(db, ALICE, ALICE, 60)
        with pytest.raises(Unauthorized):
            await service.get_all_entitlements(db, ALICE)

        assert await _snapshot(db) == before

    @pytest.mark.asyncio
    async def test_entitlement_visible_to_self_and_admin_only(self, db: AsyncSession):
        await service.request_access(db, ALICE)
        assert await service.get_entitlement(db, ALICE, ALICE) is not None
        assert await service.get_entitlement(db, ADMIN, ALICE) is not None
        with pytest.raises(Unauthorized):
            await service.get_entitlement(db, BOB, ALICE)


class TestListingAndHistory:
    @pytest.mark.asyncio
    async def test_listing_promotes_lapsed_grants(self, db: AsyncSession, clock):
        await service.grant_access(db, ADMIN, ALICE, EntitlementType.TRIAL, EntitlementSource.ADMIN_GRANT, 10)
        await service.grant_access(db, ADMIN, BOB, EntitlementType.PERMANENT, EntitlementSource.ADMIN_GRANT, None)
        clock.advance(11)

        entitlements = {e.user: e for e in await service.get_all_entitlements(db, ADMIN)}
        assert entitlements[ALICE].status == AccessRequestStatus.EXPIRED
        assert entitlements[BOB].status == AccessRequestStatus.APPROVED

    @pytest.mark.asyncio
    async def test_history_records_every_write(self, db: AsyncSession):
        await service.request_access(db, ALICE)
        await service.approve_access_request(db, ADMIN, ALICE, approve=True)
        await service.revoke_access(db, ADMIN, ALICE)

        history = await service.get_entitlement_history(db, ADMIN, ALICE)
        assert [h.action for h in history] == ["request", "approve", "revoke"]
        assert [h.status for h in history] == ["pending", "approved", "expired"]
        assert history[0].actor == ALICE
        assert history[2].actor == ADMIN

    @pytest.mark.asyncio
    async def test_history_is_admin_only(self, db: AsyncSession):
        with pytest.raises(Unauthorized):
            await service.get_entitlement_history(db, ALICE, ALICE)
