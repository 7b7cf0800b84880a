"""Job application API schemas."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, field_validator

from api.schemas.common import ORMModel, TimestampMixin
from database.models.applications import ApplicationStatus


class ApplicationCreate(BaseModel):
    """Schema for applying to a job."""

    resume_ref: Optional[str] = Field(
        None, max_length=1000, description="Reference to the uploaded resume"
    )
    cover_letter: Optional[str] = Field(None, max_length=10000)

    @field_validator("resume_ref", "cover_letter", mode="before")
    @classmethod
    def strip_whitespace(cls, v: Optional[str]) -> Optional[str]:
        """Strip whitespace from text fields."""
        if isinstance(v, str):
            return v.strip()
        return v


class ApplicationStatusUpdate(BaseModel):
    status: ApplicationStatus

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v):
        """Accept any casing, e.g. "Interview"."""
        if isinstance(v, str):
            return ApplicationStatus.try_parse(v) or v
        return v


class ApplicationResponse(ORMModel, TimestampMixin):
    id: int
    job_id: int
    applicant_id: int
    status: ApplicationStatus
    resume_ref: str
    cover_letter: Optional[str] = None


class ApplicationHistoryEntry(ORMModel):
    id: int
    from_status: Optional[ApplicationStatus] = None
    to_status: ApplicationStatus
    changed_by: Optional[int] = None
    changed_at: datetime
