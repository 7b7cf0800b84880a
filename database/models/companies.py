"""
Company, membership and join-request models.

A CompanyMember row is the single source of truth for "who belongs to which
company with what role". Rows are only ever inserted when a JoinRequest is
accepted; the join_requests table is therefore the only writer of
company_members.
"""

from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import (
    String,
    ForeignKey,
    BigInteger,
    DateTime,
    func,
    text,
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


def _enum_values(enum_cls: type[PyEnum]) -> list[str]:
    return [member.value for member in enum_cls]


# ==================== Enums ===================== #
class CompanyRole(str, PyEnum):
    """
    Roles within a company.
    """

    ADMIN = "admin"
    RECRUITER = "recruiter"
    EMPLOYEE = "employee"


class JoinRequestOrigin(str, PyEnum):
    """Which side opened the relationship request."""

    USER_INITIATED = "user-initiated"  # user asks to join, company resolves
    COMPANY_INITIATED = "company-initiated"  # company invites, user resolves


class JoinRequestStatus(str, PyEnum):
    """Lifecycle of a join request. accepted and rejected are terminal."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"

    def is_terminal(self) -> bool:
        return self is not JoinRequestStatus.PENDING


class Company(Base):
    """
    Company that owns jobs and memberships.
    """

    __tablename__: str = "companies"
    id: Mapped[int] = mapped_column(
        BigIntegerPK, primary_key=True, nullable=False, autoincrement=True
    )
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    # Relationships
    members: Mapped[list["CompanyMember"]] = relationship(
        "CompanyMember", back_populates="company", cascade="all, delete-orphan"
    )
    join_requests: Mapped[list["JoinRequest"]] = relationship(
        "JoinRequest", back_populates="company", cascade="all, delete-orphan"
    )
    jobs: Mapped[list["Job"]] = relationship(
        "Job", back_populates="company", cascade="all, delete-orphan"
    )


class CompanyMember(Base):
    """
    Association of a user with a company under a role.
    """

    __tablename__: str = "company_members"
    id: Mapped[int] = mapped_column(
        BigIntegerPK, primary_key=True, nullable=False, autoincrement=True
    )
    company_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    role: Mapped[CompanyRole] = mapped_column(
        SQLEnum(
            CompanyRole,
            native_enum=False,
            length=20,
            values_callable=_enum_values,
        ),
        nullable=False,
    )
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
    updated_by: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="SET NULL")
    )

    # Relationships
    company: Mapped["Company"] = relationship("Company", back_populates="members")
    user: Mapped["User"] = relationship(
        "User", back_populates="memberships", foreign_keys=[user_id]
    )

    __table_args__ = (
        UniqueConstraint("company_id", "user_id", name="uq_company_members_pair"),
        Index("idx_company_members_company_role", "company_id", "role"),
    )


class JoinRequest(Base):
    """
    A pending proposal to create a CompanyMember, originated by either side.
    """

    __tablename__: str = "join_requests"
    id: Mapped[int] = mapped_column(
        BigIntegerPK, primary_key=True, nullable=False, autoincrement=True
    )
    company_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    role_title: Mapped[CompanyRole] = mapped_column(
        SQLEnum(
            CompanyRole,
            native_enum=False,
            length=20,
            values_callable=_enum_values,
        ),
        nullable=False,
    )
    origin: Mapped[JoinRequestOrigin] = mapped_column(
        SQLEnum(
            JoinRequestOrigin,
            native_enum=False,
            length=20,
            values_callable=_enum_values,
        ),
        nullable=False,
    )
    status: Mapped[JoinRequestStatus] = mapped_column(
        SQLEnum(
            JoinRequestStatus,
            native_enum=False,
            length=20,
            values_callable=_enum_values,
        ),
        nullable=False,
        default=JoinRequestStatus.PENDING,
    )
    requested_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_by: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="SET NULL")
    )
    resolved_by: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="SET NULL")
    )

    # Relationships
    company: Mapped["Company"] = relationship(
        "Company", back_populates="join_requests"
    )
    user: Mapped["User"] = relationship(
        "User", back_populates="join_requests", foreign_keys=[user_id]
    )

    # At most one pending request per (company, user), regardless of origin
    __table_args__ = (
        Index(
            "uq_join_requests_pending_pair",
            "company_id",
            "user_id",
            unique=True,
            postgresql_where=text("status = 'pending'"),
            sqlite_where=text("status = 'pending'"),
        ),
        Index("idx_join_requests_company_status", "company_id", "status"),
        Index("idx_join_requests_user", "user_id", "requested_at"),
    )

    @property
    def is_pending(self) -> bool:
        return self.status == JoinRequestStatus.PENDING
