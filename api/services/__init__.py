"""
API Services Layer.

Workflow operations over an AsyncSession; routers are thin wrappers around
these functions.
"""

from api.services.join_requests import (
    JoinRequestDecision,
    request_to_join,
    invite_user,
    resolve_request,
    list_company_requests,
    list_user_requests,
)

from api.services.memberships import (
    get_membership,
    get_actor_role,
    get_my_company_role,
    update_member_role,
    remove_member,
    list_members,
)

from api.services.applications import (
    submit_application,
    set_application_status,
    withdraw_application,
    get_application,
    get_application_history,
    list_job_applications,
    list_my_applications,
)

__all__ = [
    # Join requests
    "JoinRequestDecision",
    "request_to_join",
    "invite_user",
    "resolve_request",
    "list_company_requests",
    "list_user_requests",
    # Memberships
    "get_membership",
    "get_actor_role",
    "get_my_company_role",
    "update_member_role",
    "remove_member",
    "list_members",
    # Applications
    "submit_application",
    "set_application_status",
    "withdraw_application",
    "get_application",
    "get_application_history",
    "list_job_applications",
    "list_my_applications",
]
