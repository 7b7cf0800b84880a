"""Common Pydantic schemas shared across the API."""

from datetime import datetime
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field


class ORMModel(BaseModel):
    """Base for responses built from ORM rows."""

    model_config = ConfigDict(from_attributes=True)


class TimestampMixin(BaseModel):
    """Mixin for timestamp fields."""

    created_at: datetime = Field(description="Timestamp when the resource was created")
    updated_at: datetime = Field(description="Timestamp when the resource was last updated")


class MessageResponse(BaseModel):
    message: str


class ErrorBody(BaseModel):
    """Body of every error response."""

    code: str = Field(description="Error code for programmatic handling")
    message: str = Field(description="Human readable, sanitized message")
    retryable: bool = Field(default=False, description="Whether re-fetching and retrying may succeed")
    path: Optional[str] = None
    method: Optional[str] = None
    details: Optional[Any] = None


class ErrorResponse(BaseModel):
    """Error response envelope."""

    error: ErrorBody


# OpenAPI documentation for the domain error statuses
ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: {"model": ErrorResponse, "description": "Invalid input"},
    401: {"model": ErrorResponse, "description": "Missing or invalid token"},
    403: {"model": ErrorResponse, "description": "Not permitted"},
    404: {"model": ErrorResponse, "description": "Not found"},
    409: {"model": ErrorResponse, "description": "Duplicate or concurrent modification"},
    422: {"model": ErrorResponse, "description": "Invalid transition or request body"},
}
