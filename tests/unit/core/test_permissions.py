"""
Tests for the company role permission evaluator.

Tests:
- Request resolution rights per role
- Membership management lattice
- Role assignment lattice
- Application status rights
- Non-members (None role) never pass
"""

import pytest

from core.permissions import (
    ROLE_PERMISSIONS,
    Permission,
    can_assign_role,
    can_change_application_status,
    can_manage_membership,
    can_resolve_user_initiated_request,
    can_view_job_applications,
    get_role_permissions,
)
from database.models.companies import CompanyRole

ADMIN = CompanyRole.ADMIN
RECRUITER = CompanyRole.RECRUITER
EMPLOYEE = CompanyRole.EMPLOYEE
ALL_ROLES = [ADMIN, RECRUITER, EMPLOYEE, None]


class TestRolePermissions:
    """Test the role to permission map."""

    def test_admin_has_every_permission(self):
        """Admin is the top of the lattice."""
        assert ROLE_PERMISSIONS[ADMIN] == set(Permission)

    def test_employee_has_no_management_permissions(self):
        assert ROLE_PERMISSIONS[EMPLOYEE] == set()

    def test_recruiter_cannot_touch_admins(self):
        assert Permission.MEMBER_MANAGE_ADMIN not in ROLE_PERMISSIONS[RECRUITER]
        assert Permission.ROLE_ASSIGN_ADMIN not in ROLE_PERMISSIONS[RECRUITER]

    def test_non_member_has_no_permissions(self):
        assert get_role_permissions(None) == set()


class TestResolveUserInitiatedRequest:
    """Test who may resolve a user-initiated join request."""

    @pytest.mark.parametrize("role,expected", [
        (ADMIN, True),
        (RECRUITER, True),
        (EMPLOYEE, False),
        (None, False),
    ])
    def test_resolution_rights(self, role, expected):
        assert can_resolve_user_initiated_request(role) is expected


class TestManageMembership:
    """Test the membership management lattice."""

    @pytest.mark.parametrize("target", [ADMIN, RECRUITER, EMPLOYEE])
    def test_admin_manages_everyone(self, target):
        assert can_manage_membership(ADMIN, target) is True

    @pytest.mark.parametrize("target,expected", [
        (ADMIN, False),
        (RECRUITER, True),
        (EMPLOYEE, True),
    ])
    def test_recruiter_manages_non_admins(self, target, expected):
        assert can_manage_membership(RECRUITER, target) is expected

    @pytest.mark.parametrize("target", [ADMIN, RECRUITER, EMPLOYEE])
    def test_employee_manages_nobody(self, target):
        assert can_manage_membership(EMPLOYEE, target) is False

    @pytest.mark.parametrize("target", [ADMIN, RECRUITER, EMPLOYEE])
    def test_non_member_manages_nobody(self, target):
        assert can_manage_membership(None, target) is False

    @pytest.mark.parametrize("acting", [ADMIN, RECRUITER])
    def test_missing_target_counts_as_non_admin(self, acting):
        assert can_manage_membership(acting, None) is True

    @pytest.mark.parametrize("acting", [EMPLOYEE, None])
    def test_missing_target_needs_manage_right(self, acting):
        assert can_manage_membership(acting, None) is False


class TestAssignRole:
    """Test the role assignment lattice."""

    @pytest.mark.parametrize("new_role", [ADMIN, RECRUITER, EMPLOYEE])
    def test_admin_assigns_any_role(self, new_role):
        assert can_assign_role(ADMIN, new_role) is True

    @pytest.mark.parametrize("new_role,expected", [
        (ADMIN, False),
        (RECRUITER, True),
        (EMPLOYEE, True),
    ])
    def test_recruiter_assigns_up_to_recruiter(self, new_role, expected):
        assert can_assign_role(RECRUITER, new_role) is expected

    @pytest.mark.parametrize("acting", [EMPLOYEE, None])
    @pytest.mark.parametrize("new_role", [ADMIN, RECRUITER, EMPLOYEE])
    def test_others_assign_nothing(self, acting, new_role):
        assert can_assign_role(acting, new_role) is False


class TestApplicationRights:
    """Test application status and visibility rights."""

    @pytest.mark.parametrize("role,expected", [
        (ADMIN, True),
        (RECRUITER, True),
        (EMPLOYEE, False),
        (None, False),
    ])
    def test_change_status(self, role, expected):
        assert can_change_application_status(role) is expected

    @pytest.mark.parametrize("role", ALL_ROLES)
    def test_viewing_matches_changing(self, role):
        """Whoever moves applications can also list them, nobody else."""
        assert can_view_job_applications(role) is can_change_application_status(role)
