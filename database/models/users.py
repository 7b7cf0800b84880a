from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import (
    String,
    DateTime,
    func,
    Enum as SQLEnum,
    Index,
)
from database.engine import Base, BigIntegerPK
from datetime import datetime
from enum import Enum as PyEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from database.models.companies import CompanyMember, JoinRequest
    from database.models.applications import JobApplication


# ==================== Global Role ===================== #
class GlobalRole(str, PyEnum):
    """Account-level role, independent of any company membership."""

    CANDIDATE = "candidate"  # job seeker, never a company member
    RECRUITER = "recruiter"  # may belong to companies


class User(Base):
    """
    Local projection of directory users.

    Accounts are created by the upstream auth service; this table only keeps
    what the workflow needs: the global role and a contact address for
    status notifications.
    """

    __tablename__: str = "users"
    id: Mapped[int] = mapped_column(
        BigIntegerPK, primary_key=True, nullable=False, autoincrement=True
    )
    email: Mapped[str] = mapped_column(
        String(255), unique=True, nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    global_role: Mapped[GlobalRole] = mapped_column(
        SQLEnum(
            GlobalRole,
            native_enum=False,
            length=20,
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=GlobalRole.CANDIDATE,
    )
    resume_url: Mapped[str | None] = mapped_column(String(1000))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    # Relationships
    memberships: Mapped[list["CompanyMember"]] = relationship(
        "CompanyMember",
        back_populates="user",
        cascade="all, delete-orphan",
        foreign_keys="CompanyMember.user_id",
    )
    join_requests: Mapped[list["JoinRequest"]] = relationship(
        "JoinRequest",
        back_populates="user",
        cascade="all, delete-orphan",
        foreign_keys="JoinRequest.user_id",
    )
    applications: Mapped[list["JobApplication"]] = relationship(
        "JobApplication", back_populates="applicant", cascade="all, delete-orphan"
    )

    __table_args__ = (Index("idx_users_global_role", "global_role"),)

    @property
    def is_candidate(self) -> bool:
        return self.global_role == GlobalRole.CANDIDATE
