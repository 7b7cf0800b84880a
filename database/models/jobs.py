"""
Minimal job projection.

Job posting CRUD lives in another service; the workflow engine only needs to
know which company owns a job.
"""

from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import String, ForeignKey, BigInteger, DateTime, func
from database.engine import Base, BigIntegerPK
from datetime import datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from database.models.companies import Company
    from database.models.applications import JobApplication


class Job(Base):
    """Job posting owned by a company."""

    __tablename__: str = "jobs"
    id: Mapped[int] = mapped_column(
        BigIntegerPK, primary_key=True, nullable=False, autoincrement=True
    )
    company_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    # Relationships
    company: Mapped["Company"] = relationship("Company", back_populates="jobs")
    applications: Mapped[list["JobApplication"]] = relationship(
        "JobApplication", back_populates="job", cascade="all, delete-orphan"
    )
