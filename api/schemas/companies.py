"""Company membership and join request API schemas."""

from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, Field

from api.schemas.common import ORMModel
from database.models.companies import CompanyRole, JoinRequestOrigin, JoinRequestStatus

DecisionType = Literal["accept", "reject"]


class JoinRequestCreate(BaseModel):
    """Body of a request to join a company."""

    role_title: CompanyRole = Field(
        default=CompanyRole.EMPLOYEE, description="Role the user asks for"
    )


class InvitationCreate(BaseModel):
    """Body of a company invitation."""

    user_id: int = Field(..., gt=0, description="User being invited")
    role_title: CompanyRole = Field(
        default=CompanyRole.EMPLOYEE, description="Role offered to the user"
    )


class ResolveRequest(BaseModel):
    decision: DecisionType


class MemberRoleUpdate(BaseModel):
    role: CompanyRole


class JoinRequestResponse(ORMModel):
    id: int
    company_id: int
    user_id: int
    role_title: CompanyRole
    origin: JoinRequestOrigin
    status: JoinRequestStatus
    requested_at: datetime
    resolved_at: Optional[datetime] = None
    created_by: Optional[int] = None
    resolved_by: Optional[int] = None


class MembershipResponse(ORMModel):
    company_id: int
    user_id: int
    role: CompanyRole
    joined_at: datetime
    updated_at: datetime


class MemberUser(ORMModel):
    id: int
    name: str
    email: str


class MemberResponse(MembershipResponse):
    """Membership with the member's profile, used for listings."""

    user: MemberUser


class ResolveResponse(BaseModel):
    """Outcome of resolving a join request."""

    request: JoinRequestResponse
    membership: Optional[MembershipResponse] = None


class MyRoleResponse(BaseModel):
    company_id: int
    role: Literal["admin", "recruiter", "employee", "pending"]
