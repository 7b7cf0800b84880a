"""
Membership service functions.

Company members are only ever created by accepting a join request (see
api.services.join_requests); this module reads, re-roles and removes them.
Role changes and removals are compare-and-set on the previously read row so a
concurrent writer is detected instead of overwritten.
"""

from typing import List, Optional
import logging

from sqlalchemy import select, update, delete, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from core.errors import Conflict, Forbidden, NotFound
from core.permissions import can_assign_role, can_manage_membership
from core.security import Actor
from database.models.companies import (
    CompanyMember,
    CompanyRole,
    JoinRequest,
    JoinRequestStatus,
)

logger = logging.getLogger(__name__)

PENDING_ROLE = "pending"


async def get_membership(
    session: AsyncSession, company_id: int, user_id: int
) -> Optional[CompanyMember]:
    result = await session.execute(
        select(CompanyMember).where(
            CompanyMember.company_id == company_id,
            CompanyMember.user_id == user_id,
        )
    )
    return result.scalar_one_or_none()


async def get_actor_role(
    session: AsyncSession, actor: Actor, company_id: int
) -> Optional[CompanyRole]:
    """
    Role the actor holds in the company.

    Returns:
        The CompanyRole, or None if the actor is not a member
    """
    result = await session.execute(
        select(CompanyMember.role).where(
            CompanyMember.company_id == company_id,
            CompanyMember.user_id == actor.id,
        )
    )
    return result.scalar_one_or_none()


async def _authorize_member_change(
    session: AsyncSession,
    actor: Actor,
    company_id: int,
    target_user_id: int,
    new_role: Optional[CompanyRole] = None,
) -> CompanyMember:
    """Shared checks for re-role and removal; returns the target membership."""
    if actor.id == target_user_id:
        logger.warning(
            f"User {actor.id} attempted to manage their own membership",
            extra={"actor_id": actor.id, "company_id": company_id},
        )
        raise Forbidden("You cannot change your own membership")

    actor_role = await get_actor_role(session, actor, company_id)
    if actor_role is None:
        raise NotFound("You are not a member of this company")

    target = await get_membership(session, company_id, target_user_id)
    if target is None:
        raise NotFound("User is not a member of this company")

    allowed = can_manage_membership(actor_role, target.role)
    if allowed and new_role is not None:
        allowed = can_assign_role(actor_role, new_role)

    if not allowed:
        logger.warning(
            f"{actor_role.value} {actor.id} denied managing "
            f"{target.role.value} {target_user_id}",
            extra={"actor_id": actor.id, "company_id": company_id},
        )
        raise Forbidden("Insufficient permissions to manage this member")

    return target


async def update_member_role(
    session: AsyncSession,
    actor: Actor,
    company_id: int,
    target_user_id: int,
    new_role: CompanyRole,
) -> CompanyMember:
    """
    Change another member's role.

    Args:
        session: Database session
        actor: Caller, must be admin or recruiter of the company
        company_id: Company ID
        target_user_id: Member whose role changes
        new_role: Role to assign

    Returns:
        The updated membership

    Raises:
        Forbidden: Self-targeting, or role lattice forbids the change
        NotFound: Actor or target is not a member
        Conflict: The target's role changed concurrently
    """
    target = await _authorize_member_change(
        session, actor, company_id, target_user_id, new_role
    )
    previous_role = target.role
    if previous_role == new_role:
        return target

    result = await session.execute(
        update(CompanyMember)
        .where(
            CompanyMember.id == target.id,
            CompanyMember.role == previous_role,
        )
        .values(role=new_role, updated_by=actor.id, updated_at=func.now())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        await session.rollback()
        logger.warning(
            f"Lost race updating role of user {target_user_id}",
            extra={"actor_id": actor.id, "company_id": company_id},
        )
        raise Conflict("Member role changed concurrently")

    await session.commit()
    await session.refresh(target)

    logger.info(
        f"User {target_user_id} role {previous_role.value} -> {new_role.value}",
        extra={"actor_id": actor.id, "company_id": company_id},
    )
    return target


async def remove_member(
    session: AsyncSession,
    actor: Actor,
    company_id: int,
    target_user_id: int,
) -> None:
    """
    Remove another member from the company.

    Raises:
        Forbidden: Self-targeting, or the actor may not manage the target
        NotFound: Actor or target is not a member, or the row is already gone
        Conflict: The target's role changed between check and delete
    """
    target = await _authorize_member_change(
        session, actor, company_id, target_user_id
    )

    result = await session.execute(
        delete(CompanyMember)
        .where(
            CompanyMember.id == target.id,
            CompanyMember.role == target.role,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        await session.rollback()
        if await get_membership(session, company_id, target_user_id) is not None:
            raise Conflict("Member role changed concurrently")
        raise NotFound("User is not a member of this company")

    await session.commit()
    session.expunge(target)

    logger.info(
        f"User {target_user_id} removed from company",
        extra={"actor_id": actor.id, "company_id": company_id},
    )


async def list_members(session: AsyncSession, company_id: int) -> List[CompanyMember]:
    """All members of a company with their user loaded, oldest first."""
    result = await session.execute(
        select(CompanyMember)
        .options(selectinload(CompanyMember.user))
        .where(CompanyMember.company_id == company_id)
        .order_by(CompanyMember.joined_at, CompanyMember.id)
    )
    return list(result.scalars().all())


async def get_my_company_role(
    session: AsyncSession, actor: Actor, company_id: int
) -> str:
    """
    The actor's standing in a company.

    Returns:
        The member role value, or "pending" while a join request is open

    Raises:
        Forbidden: Neither a member nor a pending request exists
    """
    role = await get_actor_role(session, actor, company_id)
    if role is not None:
        return role.value

    result = await session.execute(
        select(JoinRequest.id).where(
            JoinRequest.company_id == company_id,
            JoinRequest.user_id == actor.id,
            JoinRequest.status == JoinRequestStatus.PENDING,
        )
    )
    if result.first() is not None:
        return PENDING_ROLE

    raise Forbidden("You are not part of this company")
