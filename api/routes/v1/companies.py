"""Company membership and join request endpoints."""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import require_actor
from api.schemas.common import ERROR_RESPONSES
from api.schemas.companies import (
    InvitationCreate,
    JoinRequestCreate,
    JoinRequestResponse,
    MemberResponse,
    MemberRoleUpdate,
    MembershipResponse,
    MyRoleResponse,
    ResolveRequest,
    ResolveResponse,
)
from api.services import join_requests as join_request_service
from api.services import memberships as membership_service
from core.errors import Forbidden
from core.security import Actor
from database.engine import get_db
from database.models.companies import JoinRequestStatus

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/companies", tags=["companies"], responses=ERROR_RESPONSES)


# Fixed paths first so "me" and "requests" are never parsed as company ids


@router.get(
    "/me/requests",
    response_model=List[JoinRequestResponse],
    summary="List my join requests and invitations",
)
async def list_my_requests(
    actor: Actor = Depends(require_actor),
    db: AsyncSession = Depends(get_db),
) -> List[JoinRequestResponse]:
    requests = await join_request_service.list_user_requests(db, actor.id)
    return [JoinRequestResponse.model_validate(r) for r in requests]


@router.post(
    "/requests/{request_id}/resolve",
    response_model=ResolveResponse,
    summary="Accept or reject a join request",
)
async def resolve_join_request(
    request_id: int,
    body: ResolveRequest,
    actor: Actor = Depends(require_actor),
    db: AsyncSession = Depends(get_db),
) -> ResolveResponse:
    """
    Resolve a pending join request.

    - user-initiated requests: company admin or recruiter
    - company-initiated invitations: the invited user only
    """
    join_request, membership = await join_request_service.resolve_request(
        db, request_id, actor, body.decision
    )
    return ResolveResponse(
        request=JoinRequestResponse.model_validate(join_request),
        membership=MembershipResponse.model_validate(membership) if membership else None,
    )


@router.post(
    "/{company_id}/requests",
    response_model=JoinRequestResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Request to join a company",
)
async def request_to_join(
    company_id: int,
    body: JoinRequestCreate,
    actor: Actor = Depends(require_actor),
    db: AsyncSession = Depends(get_db),
) -> JoinRequestResponse:
    join_request = await join_request_service.request_to_join(
        db, company_id, actor.id, body.role_title
    )
    return JoinRequestResponse.model_validate(join_request)


@router.get(
    "/{company_id}/requests",
    response_model=List[JoinRequestResponse],
    summary="List a company's join requests",
)
async def list_company_requests(
    company_id: int,
    status: Optional[JoinRequestStatus] = None,
    actor: Actor = Depends(require_actor),
    db: AsyncSession = Depends(get_db),
) -> List[JoinRequestResponse]:
    requests = await join_request_service.list_company_requests(
        db, actor, company_id, status
    )
    return [JoinRequestResponse.model_validate(r) for r in requests]


@router.post(
    "/{company_id}/invitations",
    response_model=JoinRequestResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Invite a user into a company",
)
async def invite_user(
    company_id: int,
    body: InvitationCreate,
    actor: Actor = Depends(require_actor),
    db: AsyncSession = Depends(get_db),
) -> JoinRequestResponse:
    join_request = await join_request_service.invite_user(
        db, actor, company_id, body.user_id, body.role_title
    )
    return JoinRequestResponse.model_validate(join_request)


@router.get(
    "/{company_id}/members",
    response_model=List[MemberResponse],
    summary="List company members",
)
async def list_members(
    company_id: int,
    actor: Actor = Depends(require_actor),
    db: AsyncSession = Depends(get_db),
) -> List[MemberResponse]:
    """Visible to any member of the company."""
    if await membership_service.get_actor_role(db, actor, company_id) is None:
        raise Forbidden("You are not part of this company")

    members = await membership_service.list_members(db, company_id)
    return [MemberResponse.model_validate(m) for m in members]


@router.get(
    "/{company_id}/me/role",
    response_model=MyRoleResponse,
    summary="Get my role in a company",
)
async def get_my_role(
    company_id: int,
    actor: Actor = Depends(require_actor),
    db: AsyncSession = Depends(get_db),
) -> MyRoleResponse:
    role = await membership_service.get_my_company_role(db, actor, company_id)
    return MyRoleResponse(company_id=company_id, role=role)


@router.put(
    "/{company_id}/members/{user_id}",
    response_model=MembershipResponse,
    summary="Change a member's role",
)
async def update_member_role(
    company_id: int,
    user_id: int,
    body: MemberRoleUpdate,
    actor: Actor = Depends(require_actor),
    db: AsyncSession = Depends(get_db),
) -> MembershipResponse:
    membership = await membership_service.update_member_role(
        db, actor, company_id, user_id, body.role
    )
    return MembershipResponse.model_validate(membership)


@router.delete(
    "/{company_id}/members/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Remove a member",
)
async def remove_member(
    company_id: int,
    user_id: int,
    actor: Actor = Depends(require_actor),
    db: AsyncSession = Depends(get_db),
) -> Response:
    await membership_service.remove_member(db, actor, company_id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
