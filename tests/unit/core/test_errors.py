"""
Tests for the workflow error taxonomy.
"""

import pytest

from core.errors import (
    AlreadyMember,
    Conflict,
    DuplicateApplication,
    DuplicateRequest,
    Forbidden,
    InvalidTransition,
    MissingResume,
    NotFound,
    WorkflowError,
)


class TestWorkflowErrors:
    """Test codes, statuses and retryability."""

    @pytest.mark.parametrize("error_cls,code,http_status,retryable", [
        (Forbidden, "FORBIDDEN", 403, False),
        (NotFound, "NOT_FOUND", 404, False),
        (DuplicateRequest, "DUPLICATE_REQUEST", 409, False),
        (DuplicateApplication, "DUPLICATE_APPLICATION", 409, False),
        (AlreadyMember, "ALREADY_MEMBER", 409, False),
        (Conflict, "CONFLICT", 409, True),
        (InvalidTransition, "INVALID_TRANSITION", 422, False),
        (MissingResume, "MISSING_RESUME", 400, False),
    ])
    def test_error_metadata(self, error_cls, code, http_status, retryable):
        error = error_cls()

        assert isinstance(error, WorkflowError)
        assert error.code == code
        assert error.http_status == http_status
        assert error.retryable is retryable

    def test_default_message(self):
        assert str(MissingResume()) == "You must upload a resume before applying for a job"

    def test_custom_message_and_context(self):
        error = NotFound("Job not found", job_id=3)

        assert error.message == "Job not found"
        assert error.context == {"job_id": 3}

    def test_to_dict(self):
        assert Conflict("raced").to_dict() == {
            "code": "CONFLICT",
            "message": "raced",
            "retryable": True,
        }
