"""
Domain errors for the membership and application workflow.

Every error is raised by a service function and recovered at the API
boundary (see core.middleware.error_handling), where it is rendered as a
structured JSON error. Only Conflict is safe to retry: it means another
writer won a race, so the caller should re-fetch and decide again.
"""

from typing import Any, Optional


class WorkflowError(Exception):
    """Base exception for all workflow engine failures."""

    code: str = "WORKFLOW_ERROR"
    http_status: int = 400
    retryable: bool = False
    default_message: str = "The operation could not be completed"

    def __init__(self, message: Optional[str] = None, **context: Any):
        self.message = message or self.default_message
        self.context = context
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the error envelope body."""
        return {
            "code": self.code,
            "message": self.message,
            "retryable": self.retryable,
        }


class Forbidden(WorkflowError):
    """Caller is identified but not permitted to perform the operation."""

    code = "FORBIDDEN"
    http_status = 403
    default_message = "You don't have permission to perform this action"


class NotFound(WorkflowError):
    """Referenced entity is absent, already resolved, or deleted."""

    code = "NOT_FOUND"
    http_status = 404
    default_message = "Resource not found"


class DuplicateRequest(WorkflowError):
    """A pending join request already exists for the company/user pair."""

    code = "DUPLICATE_REQUEST"
    http_status = 409
    default_message = "A pending join request already exists for this user"


class DuplicateApplication(WorkflowError):
    """The applicant already applied to this job."""

    code = "DUPLICATE_APPLICATION"
    http_status = 409
    default_message = "You already applied to this job"


class AlreadyMember(WorkflowError):
    """The user already holds a membership in the company."""

    code = "ALREADY_MEMBER"
    http_status = 409
    default_message = "User is already part of this company"


class Conflict(WorkflowError):
    """Lost a race to another concurrent writer."""

    code = "CONFLICT"
    http_status = 409
    retryable = True
    default_message = "The resource was modified concurrently, re-fetch and retry"


class InvalidTransition(WorkflowError):
    """State machine rule violation."""

    code = "INVALID_TRANSITION"
    http_status = 422
    default_message = "Status transition is not allowed"


class MissingResume(WorkflowError):
    """An application was submitted without a resume reference."""

    code = "MISSING_RESUME"
    http_status = 400
    default_message = "You must upload a resume before applying for a job"
