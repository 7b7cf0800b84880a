"""
Tests for the join request engine.

Tests:
- Request and invitation creation checks
- Origin-based resolver rules
- Accept creates exactly one membership
- Lost races raise Conflict and leave no partial state
"""

import pytest
from sqlalchemy import func, select

import api.services.join_requests as join_requests_module
from api.services.join_requests import (
    JoinRequestDecision,
    invite_user,
    list_company_requests,
    list_user_requests,
    request_to_join,
    resolve_request,
)
from core.errors import AlreadyMember, Conflict, DuplicateRequest, Forbidden, NotFound
from database.models.companies import (
    CompanyMember,
    CompanyRole,
    JoinRequest,
    JoinRequestOrigin,
    JoinRequestStatus,
)

ACCEPT = JoinRequestDecision.ACCEPT
REJECT = JoinRequestDecision.REJECT


async def _membership_count(session_factory, company_id, user_id) -> int:
    async with session_factory() as session:
        result = await session.execute(
            select(func.count()).select_from(CompanyMember).where(
                CompanyMember.company_id == company_id,
                CompanyMember.user_id == user_id,
            )
        )
        return result.scalar_one()


async def _reload_request(session_factory, request_id) -> JoinRequest:
    async with session_factory() as session:
        return await session.get(JoinRequest, request_id)


class TestRequestToJoin:
    """Test user-initiated requests."""

    @pytest.mark.asyncio
    async def test_creates_pending_user_initiated_request(self, db, world):
        request = await request_to_join(
            db, world.company.id, world.outsider.id, CompanyRole.EMPLOYEE
        )

        assert request.id is not None
        assert request.status == JoinRequestStatus.PENDING
        assert request.origin == JoinRequestOrigin.USER_INITIATED
        assert request.role_title == CompanyRole.EMPLOYEE
        assert request.created_by == world.outsider.id
        assert request.resolved_at is None

    @pytest.mark.asyncio
    async def test_unknown_company(self, db, world):
        with pytest.raises(NotFound):
            await request_to_join(db, 9999, world.outsider.id, CompanyRole.EMPLOYEE)

    @pytest.mark.asyncio
    async def test_unknown_user(self, db, world):
        with pytest.raises(NotFound):
            await request_to_join(db, world.company.id, 9999, CompanyRole.EMPLOYEE)

    @pytest.mark.asyncio
    async def test_candidate_is_forbidden(self, db, world):
        with pytest.raises(Forbidden):
            await request_to_join(
                db, world.company.id, world.candidate.id, CompanyRole.EMPLOYEE
            )

    @pytest.mark.asyncio
    async def test_existing_member(self, db, world):
        with pytest.raises(AlreadyMember):
            await request_to_join(
                db, world.company.id, world.employee.id, CompanyRole.RECRUITER
            )

    @pytest.mark.asyncio
    async def test_duplicate_pending_request(self, db, world):
        await request_to_join(db, world.company.id, world.outsider.id, CompanyRole.EMPLOYEE)

        with pytest.raises(DuplicateRequest):
            await request_to_join(
                db, world.company.id, world.outsider.id, CompanyRole.RECRUITER
            )

    @pytest.mark.asyncio
    async def test_rejected_request_does_not_block_a_new_one(self, db, world):
        first = await request_to_join(
            db, world.company.id, world.outsider.id, CompanyRole.EMPLOYEE
        )
        await resolve_request(db, first.id, world.admin_actor, REJECT)

        second = await request_to_join(
            db, world.company.id, world.outsider.id, CompanyRole.EMPLOYEE
        )

        assert second.id != first.id
        assert second.is_pending

    @pytest.mark.asyncio
    async def test_pending_index_rejects_concurrent_insert(self, db, session_factory, world, monkeypatch):
        """The partial unique index backs up the up-front duplicate check."""
        original = join_requests_module._get_joinable_user

        async def racing_check(session, company_id, user_id):
            user = await original(session, company_id, user_id)
            async with session_factory() as other:
                other.add(JoinRequest(
                    company_id=company_id,
                    user_id=user_id,
                    role_title=CompanyRole.EMPLOYEE,
                    origin=JoinRequestOrigin.USER_INITIATED,
                    status=JoinRequestStatus.PENDING,
                    created_by=user_id,
                ))
                await other.commit()
            return user

        monkeypatch.setattr(join_requests_module, "_get_joinable_user", racing_check)

        with pytest.raises(DuplicateRequest):
            await request_to_join(
                db, world.company.id, world.outsider.id, CompanyRole.EMPLOYEE
            )


class TestInviteUser:
    """Test company-initiated requests."""

    @pytest.mark.asyncio
    async def test_admin_invites(self, db, world):
        invitation = await invite_user(
            db, world.admin_actor, world.company.id, world.outsider.id, CompanyRole.ADMIN
        )

        assert invitation.origin == JoinRequestOrigin.COMPANY_INITIATED
        assert invitation.status == JoinRequestStatus.PENDING
        assert invitation.user_id == world.outsider.id
        assert invitation.created_by == world.admin.id

    @pytest.mark.asyncio
    async def test_recruiter_invites_employee(self, db, world):
        invitation = await invite_user(
            db, world.recruiter_actor, world.company.id, world.outsider.id, CompanyRole.EMPLOYEE
        )
        assert invitation.role_title == CompanyRole.EMPLOYEE

    @pytest.mark.asyncio
    async def test_recruiter_cannot_invite_admin(self, db, world):
        with pytest.raises(Forbidden):
            await invite_user(
                db, world.recruiter_actor, world.company.id, world.outsider.id, CompanyRole.ADMIN
            )

    @pytest.mark.asyncio
    @pytest.mark.parametrize("actor_name", ["employee", "outsider"])
    async def test_non_managers_cannot_invite(self, db, world, actor_name):
        actor = world.actor_of(actor_name)
        with pytest.raises(Forbidden):
            await invite_user(
                db, actor, world.company.id, world.candidate.id, CompanyRole.EMPLOYEE
            )

    @pytest.mark.asyncio
    async def test_cannot_invite_candidate(self, db, world):
        with pytest.raises(Forbidden):
            await invite_user(
                db, world.admin_actor, world.company.id, world.candidate.id, CompanyRole.EMPLOYEE
            )

    @pytest.mark.asyncio
    async def test_cannot_invite_member(self, db, world):
        with pytest.raises(AlreadyMember):
            await invite_user(
                db, world.admin_actor, world.company.id, world.employee.id, CompanyRole.RECRUITER
            )

    @pytest.mark.asyncio
    async def test_invite_while_request_pending(self, db, world):
        await request_to_join(db, world.company.id, world.outsider.id, CompanyRole.EMPLOYEE)

        with pytest.raises(DuplicateRequest):
            await invite_user(
                db, world.admin_actor, world.company.id, world.outsider.id, CompanyRole.EMPLOYEE
            )

    @pytest.mark.asyncio
    async def test_unknown_company(self, db, world):
        with pytest.raises(NotFound):
            await invite_user(
                db, world.admin_actor, 9999, world.outsider.id, CompanyRole.EMPLOYEE
            )


class TestResolveUserInitiated:
    """Admins and recruiters resolve requests users opened."""

    @pytest.fixture
    async def pending(self, db, world):
        return await request_to_join(
            db, world.company.id, world.outsider.id, CompanyRole.EMPLOYEE
        )

    @pytest.mark.asyncio
    async def test_recruiter_accepts(self, db, session_factory, world, pending):
        request, membership = await resolve_request(
            db, pending.id, world.recruiter_actor, ACCEPT
        )

        assert request.status == JoinRequestStatus.ACCEPTED
        assert request.resolved_by == world.recruiter.id
        assert request.resolved_at is not None
        assert membership.company_id == world.company.id
        assert membership.user_id == world.outsider.id
        assert membership.role == CompanyRole.EMPLOYEE
        assert await _membership_count(session_factory, world.company.id, world.outsider.id) == 1

    @pytest.mark.asyncio
    async def test_admin_rejects(self, db, session_factory, world, pending):
        request, membership = await resolve_request(
            db, pending.id, world.admin_actor, REJECT
        )

        assert request.status == JoinRequestStatus.REJECTED
        assert membership is None
        assert await _membership_count(session_factory, world.company.id, world.outsider.id) == 0

    @pytest.mark.asyncio
    async def test_decision_accepts_plain_string(self, db, world, pending):
        request, _ = await resolve_request(db, pending.id, world.admin_actor, "reject")
        assert request.status == JoinRequestStatus.REJECTED

    @pytest.mark.asyncio
    @pytest.mark.parametrize("actor_name", ["employee", "outsider"])
    async def test_others_are_forbidden(self, db, session_factory, world, pending, actor_name):
        with pytest.raises(Forbidden):
            await resolve_request(db, pending.id, world.actor_of(actor_name), ACCEPT)

        assert (await _reload_request(session_factory, pending.id)).is_pending

    @pytest.mark.asyncio
    async def test_requester_cannot_accept_own_request(self, db, world, pending):
        with pytest.raises(Forbidden):
            await resolve_request(db, pending.id, world.outsider_actor, ACCEPT)

    @pytest.mark.asyncio
    async def test_recruiter_cannot_accept_admin_request(self, db, seed, world):
        newcomer = await seed.user("Nina Newcomer")
        pending = await request_to_join(
            db, world.company.id, newcomer.id, CompanyRole.ADMIN
        )

        with pytest.raises(Forbidden):
            await resolve_request(db, pending.id, world.recruiter_actor, ACCEPT)

        # Rejecting needs no assignment right
        request, _ = await resolve_request(db, pending.id, world.recruiter_actor, REJECT)
        assert request.status == JoinRequestStatus.REJECTED

    @pytest.mark.asyncio
    async def test_already_resolved_is_not_found(self, db, world, pending):
        await resolve_request(db, pending.id, world.admin_actor, REJECT)

        with pytest.raises(NotFound):
            await resolve_request(db, pending.id, world.admin_actor, ACCEPT)

    @pytest.mark.asyncio
    async def test_unknown_request(self, db, world):
        with pytest.raises(NotFound):
            await resolve_request(db, 9999, world.admin_actor, ACCEPT)


class TestResolveCompanyInitiated:
    """Only the invited user answers an invitation."""

    @pytest.fixture
    async def invitation(self, db, world):
        return await invite_user(
            db, world.admin_actor, world.company.id, world.outsider.id, CompanyRole.RECRUITER
        )

    @pytest.mark.asyncio
    async def test_invitee_accepts(self, db, world, invitation):
        request, membership = await resolve_request(
            db, invitation.id, world.outsider_actor, ACCEPT
        )

        assert request.status == JoinRequestStatus.ACCEPTED
        assert membership.role == CompanyRole.RECRUITER

    @pytest.mark.asyncio
    async def test_invitee_declines(self, db, world, invitation):
        request, membership = await resolve_request(
            db, invitation.id, world.outsider_actor, REJECT
        )

        assert request.status == JoinRequestStatus.REJECTED
        assert membership is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("actor_name", ["admin", "recruiter", "employee", "candidate"])
    async def test_nobody_else_may_answer(self, db, world, invitation, actor_name):
        with pytest.raises(Forbidden):
            await resolve_request(
                db, invitation.id, world.actor_of(actor_name), ACCEPT
            )


class TestResolveRaces:
    """Concurrent resolutions produce one winner and one Conflict."""

    @pytest.fixture
    async def pending(self, db, world):
        return await request_to_join(
            db, world.company.id, world.outsider.id, CompanyRole.EMPLOYEE
        )

    @pytest.mark.asyncio
    async def test_concurrent_accepts_create_one_membership(
        self, db, session_factory, world, pending, monkeypatch
    ):
        request_id = pending.id
        original = join_requests_module._authorize_resolver
        raced = []

        async def authorize_then_race(session, join_request, actor, decision):
            await original(session, join_request, actor, decision)
            if not raced:
                raced.append(True)
                async with session_factory() as other:
                    await resolve_request(other, join_request.id, world.admin_actor, ACCEPT)

        monkeypatch.setattr(join_requests_module, "_authorize_resolver", authorize_then_race)

        with pytest.raises(Conflict) as exc_info:
            await resolve_request(db, request_id, world.recruiter_actor, ACCEPT)

        assert exc_info.value.retryable is True
        assert await _membership_count(session_factory, world.company.id, world.outsider.id) == 1
        stored = await _reload_request(session_factory, request_id)
        assert stored.status == JoinRequestStatus.ACCEPTED
        assert stored.resolved_by == world.admin.id

    @pytest.mark.asyncio
    async def test_accept_racing_reject(self, db, session_factory, world, pending, monkeypatch):
        request_id = pending.id
        original = join_requests_module._authorize_resolver
        raced = []

        async def authorize_then_race(session, join_request, actor, decision):
            await original(session, join_request, actor, decision)
            if not raced:
                raced.append(True)
                async with session_factory() as other:
                    await resolve_request(other, join_request.id, world.admin_actor, REJECT)

        monkeypatch.setattr(join_requests_module, "_authorize_resolver", authorize_then_race)

        with pytest.raises(Conflict):
            await resolve_request(db, request_id, world.recruiter_actor, ACCEPT)

        assert await _membership_count(session_factory, world.company.id, world.outsider.id) == 0
        assert (await _reload_request(session_factory, request_id)).status == JoinRequestStatus.REJECTED

    @pytest.mark.asyncio
    async def test_membership_created_concurrently_rolls_back(
        self, db, session_factory, world, pending, monkeypatch
    ):
        """A unique violation on insert undoes the status change too."""
        request_id = pending.id
        original = join_requests_module._authorize_resolver

        async def authorize_then_insert(session, join_request, actor, decision):
            await original(session, join_request, actor, decision)
            async with session_factory() as other:
                other.add(CompanyMember(
                    company_id=join_request.company_id,
                    user_id=join_request.user_id,
                    role=CompanyRole.EMPLOYEE,
                ))
                await other.commit()

        monkeypatch.setattr(join_requests_module, "_authorize_resolver", authorize_then_insert)

        with pytest.raises(Conflict):
            await resolve_request(db, request_id, world.admin_actor, ACCEPT)

        assert await _membership_count(session_factory, world.company.id, world.outsider.id) == 1
        assert (await _reload_request(session_factory, request_id)).is_pending


class TestListRequests:
    """Test request listings."""

    @pytest.mark.asyncio
    async def test_company_listing_with_status_filter(self, db, seed, world):
        newcomer = await seed.user("Nina Newcomer")
        first = await request_to_join(db, world.company.id, world.outsider.id, CompanyRole.EMPLOYEE)
        second = await request_to_join(db, world.company.id, newcomer.id, CompanyRole.EMPLOYEE)
        await resolve_request(db, first.id, world.admin_actor, REJECT)

        everything = await list_company_requests(db, world.recruiter_actor, world.company.id)
        pending = await list_company_requests(
            db, world.recruiter_actor, world.company.id, JoinRequestStatus.PENDING
        )

        assert {r.id for r in everything} == {first.id, second.id}
        assert [r.id for r in pending] == [second.id]

    @pytest.mark.asyncio
    async def test_company_listing_requires_manager(self, db, world):
        with pytest.raises(Forbidden):
            await list_company_requests(db, world.employee_actor, world.company.id)

    @pytest.mark.asyncio
    async def test_user_listing_spans_companies(self, db, seed, world):
        other_company = await seed.company("Globex")
        await request_to_join(db, world.company.id, world.outsider.id, CompanyRole.EMPLOYEE)
        await request_to_join(db, other_company.id, world.outsider.id, CompanyRole.RECRUITER)

        requests = await list_user_requests(db, world.outsider.id)

        assert {r.company_id for r in requests} == {world.company.id, other_company.id}
        assert await list_user_requests(db, world.admin.id) == []
