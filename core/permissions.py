"""
Company role permission evaluator.

The whole role lattice of the membership and application workflow is encoded
here as a role-to-permission map plus a handful of pure predicates. Every
predicate accepts ``None`` for "the actor has no membership in the company"
and answers False for it, so callers never need a separate membership check.

    admin      full control, may assign any role and manage any member
    recruiter  may resolve requests, invite, assign employee/recruiter,
               manage non-admin members and move applications
    employee   no management rights
"""

from enum import Enum
from typing import Optional, Set

from database.models.companies import CompanyRole


class Permission(str, Enum):
    """Company-scoped permissions."""

    # Join requests
    REQUEST_RESOLVE = "request:resolve"
    MEMBER_INVITE = "member:invite"

    # Membership management
    MEMBER_MANAGE = "member:manage"
    MEMBER_MANAGE_ADMIN = "member:manage_admin"

    # Role assignment
    ROLE_ASSIGN_EMPLOYEE = "role:assign_employee"
    ROLE_ASSIGN_RECRUITER = "role:assign_recruiter"
    ROLE_ASSIGN_ADMIN = "role:assign_admin"

    # Applications
    APPLICATION_READ = "application:read"
    APPLICATION_UPDATE = "application:update"


ROLE_PERMISSIONS: dict[CompanyRole, Set[Permission]] = {
    CompanyRole.ADMIN: set(Permission),
    CompanyRole.RECRUITER: {
        Permission.REQUEST_RESOLVE,
        Permission.MEMBER_INVITE,
        Permission.MEMBER_MANAGE,
        Permission.ROLE_ASSIGN_EMPLOYEE,
        Permission.ROLE_ASSIGN_RECRUITER,
        Permission.APPLICATION_READ,
        Permission.APPLICATION_UPDATE,
    },
    CompanyRole.EMPLOYEE: set(),
}

_ASSIGN_PERMISSION: dict[CompanyRole, Permission] = {
    CompanyRole.ADMIN: Permission.ROLE_ASSIGN_ADMIN,
    CompanyRole.RECRUITER: Permission.ROLE_ASSIGN_RECRUITER,
    CompanyRole.EMPLOYEE: Permission.ROLE_ASSIGN_EMPLOYEE,
}


def get_role_permissions(role: Optional[CompanyRole]) -> Set[Permission]:
    """Permissions granted to a company role; empty for non-members."""
    if role is None:
        return set()
    return ROLE_PERMISSIONS.get(role, set())


def has_permission(role: Optional[CompanyRole], permission: Permission) -> bool:
    return permission in get_role_permissions(role)


def can_resolve_user_initiated_request(acting_role: Optional[CompanyRole]) -> bool:
    """Whether the role may accept or reject a request a user sent to the company."""
    return has_permission(acting_role, Permission.REQUEST_RESOLVE)


def can_manage_membership(
    acting_role: Optional[CompanyRole], target_role: Optional[CompanyRole]
) -> bool:
    """
    Whether the acting role may change or remove a member holding target_role.

    A None target_role (no membership yet) counts as a non-admin target.

    Self-management is not decided here: callers compare actor and target ids
    before asking.
    """
    if not has_permission(acting_role, Permission.MEMBER_MANAGE):
        return False
    if target_role == CompanyRole.ADMIN:
        return has_permission(acting_role, Permission.MEMBER_MANAGE_ADMIN)
    return True


def can_assign_role(
    acting_role: Optional[CompanyRole], new_role: Optional[CompanyRole]
) -> bool:
    """Whether the acting role may grant new_role to someone."""
    if new_role is None:
        return False
    return has_permission(acting_role, _ASSIGN_PERMISSION[new_role])


def can_change_application_status(acting_role: Optional[CompanyRole]) -> bool:
    return has_permission(acting_role, Permission.APPLICATION_UPDATE)


def can_view_job_applications(acting_role: Optional[CompanyRole]) -> bool:
    return has_permission(acting_role, Permission.APPLICATION_READ)
