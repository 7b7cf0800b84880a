from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import (
    String,
    Text,
    ForeignKey,
    BigInteger,
    DateTime,
    func,
    Enum as SQLEnum,
    Index,
    UniqueConstraint,
)
from database.engine import Base, BigIntegerPK
from datetime import datetime
from enum import Enum as PyEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from database.models.users import User
    from database.models.jobs import Job


class ApplicationStatus(str, PyEnum):
    """Canonical statuses for a job application."""

    APPLIED = "applied"
    REVIEWED = "reviewed"
    INTERVIEW = "interview"
    HIRED = "hired"
    REJECTED = "rejected"

    def is_terminal(self) -> bool:
        return self in APPLICATION_STATUS_TERMINALS

    def can_transition_to(self, new: "ApplicationStatus") -> bool:
        # Non-terminal states are fully connected, including back to applied
        return not self.is_terminal() and new is not self

    @classmethod
    def try_parse(cls, value: str) -> "ApplicationStatus | None":
        if value is None:
            return None
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None


APPLICATION_STATUS_TERMINALS: frozenset[ApplicationStatus] = frozenset(
    {ApplicationStatus.HIRED, ApplicationStatus.REJECTED}
)


def _status_column_type() -> SQLEnum:
    return SQLEnum(
        ApplicationStatus,
        native_enum=False,
        length=50,
        values_callable=lambda e: [m.value for m in e],
    )


class JobApplication(Base):
    """
    A candidate's application to a job.
    """

    __tablename__: str = "job_applications"
    id: Mapped[int] = mapped_column(
        BigIntegerPK, primary_key=True, nullable=False, autoincrement=True
    )
    job_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("jobs.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    applicant_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    status: Mapped[ApplicationStatus] = mapped_column(
        _status_column_type(),
        nullable=False,
        default=ApplicationStatus.APPLIED,
    )
    resume_ref: Mapped[str] = mapped_column(String(1000), nullable=False)
    cover_letter: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    # Relationships
    job: Mapped["Job"] = relationship("Job", back_populates="applications")
    applicant: Mapped["User"] = relationship("User", back_populates="applications")
    history: Mapped[list["ApplicationStatusHistory"]] = relationship(
        "ApplicationStatusHistory",
        back_populates="application",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ApplicationStatusHistory.id",
    )

    __table_args__ = (
        UniqueConstraint("job_id", "applicant_id", name="uq_job_applications_pair"),
        Index("idx_job_applications_job_status", "job_id", "status"),
    )


class ApplicationStatusHistory(Base):
    """
    History of status changes for applications.
    """

    __tablename__: str = "application_status_history"
    id: Mapped[int] = mapped_column(
        BigIntegerPK, primary_key=True, nullable=False, autoincrement=True
    )
    application_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("job_applications.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    from_status: Mapped[ApplicationStatus | None] = mapped_column(
        _status_column_type()
    )
    to_status: Mapped[ApplicationStatus] = mapped_column(
        _status_column_type(), nullable=False
    )
    changed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    changed_by: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="SET NULL")
    )

    application: Mapped["JobApplication"] = relationship(
        "JobApplication", back_populates="history"
    )
