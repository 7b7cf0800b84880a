"""
Join request service functions.

A join request is the only way a company membership comes into existence.
Requests travel in one of two directions, recorded in ``origin``:

    user-initiated     the user asks to join; an admin or recruiter resolves
    company-initiated  the company invites; only the invited user resolves

Resolution is a compare-and-set on ``status = 'pending'``. Accepting inserts
the membership in the same transaction, so two racing accepts can never
produce two memberships: the loser gets Conflict.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Tuple
import logging

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from api.services.memberships import get_actor_role, get_membership
from core.errors import AlreadyMember, Conflict, DuplicateRequest, Forbidden, NotFound
from core.permissions import can_assign_role, can_resolve_user_initiated_request
from core.security import Actor
from database.models.companies import (
    Company,
    CompanyMember,
    CompanyRole,
    JoinRequest,
    JoinRequestOrigin,
    JoinRequestStatus,
)
from database.models.users import User

logger = logging.getLogger(__name__)


class JoinRequestDecision(str, Enum):
    ACCEPT = "accept"
    REJECT = "reject"


async def _get_company(session: AsyncSession, company_id: int) -> Company:
    company = await session.get(Company, company_id)
    if company is None:
        raise NotFound("Company not found")
    return company


async def _get_joinable_user(
    session: AsyncSession, company_id: int, user_id: int
) -> User:
    """Load the subject of a new request and check it can receive one."""
    user = await session.get(User, user_id)
    if user is None:
        raise NotFound("User not found")

    if user.is_candidate:
        raise Forbidden("Candidates cannot join companies")

    if await get_membership(session, company_id, user_id) is not None:
        raise AlreadyMember()

    result = await session.execute(
        select(JoinRequest.id).where(
            JoinRequest.company_id == company_id,
            JoinRequest.user_id == user_id,
            JoinRequest.status == JoinRequestStatus.PENDING,
        )
    )
    if result.first() is not None:
        raise DuplicateRequest()

    return user


async def _create_request(session: AsyncSession, join_request: JoinRequest) -> JoinRequest:
    session.add(join_request)
    try:
        await session.commit()
    except IntegrityError:
        # Partial unique index on pending (company_id, user_id)
        await session.rollback()
        logger.warning(
            f"Concurrent pending request for user {join_request.user_id}",
            extra={"company_id": join_request.company_id},
        )
        raise DuplicateRequest()

    await session.refresh(join_request)
    logger.info(
        f"Join request {join_request.id} opened ({join_request.origin.value}) "
        f"for user {join_request.user_id} as {join_request.role_title.value}",
        extra={"company_id": join_request.company_id},
    )
    return join_request


async def request_to_join(
    session: AsyncSession,
    company_id: int,
    user_id: int,
    role_title: CompanyRole,
) -> JoinRequest:
    """
    Ask to join a company.

    Args:
        session: Database session
        company_id: Company to join
        user_id: Requesting user, normally the caller
        role_title: Role the user asks for

    Returns:
        The new pending, user-initiated request

    Raises:
        NotFound: Unknown company or user
        Forbidden: The user is a candidate
        AlreadyMember: The user already belongs to the company
        DuplicateRequest: A pending request already exists
    """
    await _get_company(session, company_id)
    await _get_joinable_user(session, company_id, user_id)

    return await _create_request(
        session,
        JoinRequest(
            company_id=company_id,
            user_id=user_id,
            role_title=role_title,
            origin=JoinRequestOrigin.USER_INITIATED,
            status=JoinRequestStatus.PENDING,
            created_by=user_id,
        ),
    )


async def invite_user(
    session: AsyncSession,
    actor: Actor,
    company_id: int,
    target_user_id: int,
    role_title: CompanyRole,
) -> JoinRequest:
    """
    Invite a user into a company on its behalf.

    The actor must be able to resolve user requests and to assign the offered
    role, so a recruiter cannot invite someone in as admin.

    Returns:
        The new pending, company-initiated request
    """
    await _get_company(session, company_id)

    actor_role = await get_actor_role(session, actor, company_id)
    if not (
        can_resolve_user_initiated_request(actor_role)
        and can_assign_role(actor_role, role_title)
    ):
        logger.warning(
            f"User {actor.id} denied inviting as {role_title.value}",
            extra={"actor_id": actor.id, "company_id": company_id},
        )
        raise Forbidden("Insufficient permissions to invite users")

    await _get_joinable_user(session, company_id, target_user_id)

    return await _create_request(
        session,
        JoinRequest(
            company_id=company_id,
            user_id=target_user_id,
            role_title=role_title,
            origin=JoinRequestOrigin.COMPANY_INITIATED,
            status=JoinRequestStatus.PENDING,
            created_by=actor.id,
        ),
    )


async def _authorize_resolver(
    session: AsyncSession,
    join_request: JoinRequest,
    actor: Actor,
    decision: JoinRequestDecision,
) -> None:
    if join_request.origin == JoinRequestOrigin.COMPANY_INITIATED:
        if actor.id != join_request.user_id:
            logger.warning(
                f"User {actor.id} tried to resolve invitation {join_request.id}",
                extra={"actor_id": actor.id, "company_id": join_request.company_id},
            )
            raise Forbidden("Only the invited user can respond to this invitation")
        return

    actor_role = await get_actor_role(session, actor, join_request.company_id)
    allowed = can_resolve_user_initiated_request(actor_role)
    if allowed and decision == JoinRequestDecision.ACCEPT:
        allowed = can_assign_role(actor_role, join_request.role_title)

    if not allowed:
        logger.warning(
            f"User {actor.id} denied resolving request {join_request.id}",
            extra={"actor_id": actor.id, "company_id": join_request.company_id},
        )
        raise Forbidden("Insufficient permissions to resolve this request")


async def resolve_request(
    session: AsyncSession,
    request_id: int,
    actor: Actor,
    decision: JoinRequestDecision,
) -> Tuple[JoinRequest, Optional[CompanyMember]]:
    """
    Accept or reject a pending join request.

    Args:
        session: Database session
        request_id: Join request ID
        actor: Caller resolving the request
        decision: accept or reject

    Returns:
        The resolved request and, when accepted, the created membership

    Raises:
        NotFound: Request absent or already resolved
        Forbidden: The actor may not resolve this request
        Conflict: Another resolver won the race
    """
    decision = JoinRequestDecision(decision)

    join_request = await session.get(JoinRequest, request_id)
    if join_request is None or not join_request.is_pending:
        raise NotFound("Join request not found or already handled")

    await _authorize_resolver(session, join_request, actor, decision)

    # A rollback expires join_request; only these are safe to read afterwards
    company_id = join_request.company_id
    user_id = join_request.user_id
    role_title = join_request.role_title

    new_status = (
        JoinRequestStatus.ACCEPTED
        if decision == JoinRequestDecision.ACCEPT
        else JoinRequestStatus.REJECTED
    )
    result = await session.execute(
        update(JoinRequest)
        .where(
            JoinRequest.id == request_id,
            JoinRequest.status == JoinRequestStatus.PENDING,
        )
        .values(
            status=new_status,
            resolved_at=datetime.now(timezone.utc),
            resolved_by=actor.id,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        await session.rollback()
        logger.warning(
            f"Lost race resolving join request {request_id}",
            extra={"actor_id": actor.id, "company_id": company_id},
        )
        raise Conflict("Join request was resolved concurrently")

    membership = None
    if new_status == JoinRequestStatus.ACCEPTED:
        membership = CompanyMember(
            company_id=company_id,
            user_id=user_id,
            role=role_title,
            updated_by=actor.id,
        )
        session.add(membership)
        try:
            await session.flush()
        except IntegrityError:
            await session.rollback()
            logger.warning(
                f"Membership for user {user_id} created concurrently",
                extra={"actor_id": actor.id, "company_id": company_id},
            )
            raise Conflict("User joined the company concurrently")

    await session.commit()
    await session.refresh(join_request)
    if membership is not None:
        await session.refresh(membership)

    logger.info(
        f"Join request {join_request.id} {new_status.value} by user {actor.id}",
        extra={"actor_id": actor.id, "company_id": join_request.company_id},
    )
    return join_request, membership


async def list_company_requests(
    session: AsyncSession,
    actor: Actor,
    company_id: int,
    status: Optional[JoinRequestStatus] = None,
) -> List[JoinRequest]:
    """Requests of a company, newest first. Admin and recruiter only."""
    actor_role = await get_actor_role(session, actor, company_id)
    if not can_resolve_user_initiated_request(actor_role):
        raise Forbidden("Insufficient permissions to view join requests")

    query = select(JoinRequest).where(JoinRequest.company_id == company_id)
    if status is not None:
        query = query.where(JoinRequest.status == status)

    result = await session.execute(
        query.order_by(JoinRequest.requested_at.desc(), JoinRequest.id.desc())
    )
    return list(result.scalars().all())


async def list_user_requests(session: AsyncSession, user_id: int) -> List[JoinRequest]:
    """A user's own requests and invitations across companies, newest first."""
    result = await session.execute(
        select(JoinRequest)
        .where(JoinRequest.user_id == user_id)
        .order_by(JoinRequest.requested_at.desc(), JoinRequest.id.desc())
    )
    return list(result.scalars().all())
