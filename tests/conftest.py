"""Shared fixtures and utilities for tests."""

import os

# Settings are read at import time, so the environment is prepared first
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///test.db")
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret-key-min-32-chars-long-for-security")
os.environ.setdefault("JWT_ALGORITHM", "HS256")
os.environ.setdefault("CELERY_BROKER_URL", "redis://localhost:6379/1")
os.environ.setdefault("CELERY_RESULT_BACKEND", "redis://localhost:6379/2")
os.environ.setdefault("AUTO_NOTIFY_STATUS_EMAIL", "false")
os.environ.setdefault("JSON_LOGS", "false")

from dataclasses import dataclass
from typing import Optional

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from core.security import Actor, ActorDirectory
from database.engine import Base, get_db, import_models
from database.models.applications import (
    ApplicationStatus,
    ApplicationStatusHistory,
    JobApplication,
)
from database.models.companies import Company, CompanyMember, CompanyRole
from database.models.jobs import Job
from database.models.users import GlobalRole, User


class RecordingNotifier:
    """Notifier double that records which applications were announced."""

    def __init__(self, fail: bool = False):
        self.sent: list[int] = []
        self.fail = fail

    def send_status_email(self, application_id: int) -> None:
        self.sent.append(application_id)
        if self.fail:
            raise RuntimeError("broker unavailable")


def actor_for(user: User) -> Actor:
    return Actor(id=user.id, global_role=user.global_role)


class Seeder:
    """Inserts rows that other services own (users, companies, jobs)."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self._counter = 0

    def _next(self) -> int:
        self._counter += 1
        return self._counter

    async def _save(self, obj):
        self.session.add(obj)
        await self.session.commit()
        await self.session.refresh(obj)
        return obj

    async def user(
        self,
        name: Optional[str] = None,
        global_role: GlobalRole = GlobalRole.RECRUITER,
        email: Optional[str] = None,
    ) -> User:
        n = self._next()
        return await self._save(
            User(
                name=name or f"User {n}",
                email=email or f"user{n}@example.com",
                global_role=global_role,
            )
        )

    async def candidate(self, name: Optional[str] = None) -> User:
        return await self.user(name=name, global_role=GlobalRole.CANDIDATE)

    async def company(self, name: Optional[str] = None) -> Company:
        return await self._save(Company(name=name or f"Company {self._next()}"))

    async def job(self, company: Company, title: str = "Backend Engineer") -> Job:
        return await self._save(Job(company_id=company.id, title=title))

    async def member(self, company: Company, user: User, role: CompanyRole) -> CompanyMember:
        return await self._save(
            CompanyMember(company_id=company.id, user_id=user.id, role=role)
        )

    async def application(
        self,
        job: Job,
        applicant: User,
        status: ApplicationStatus = ApplicationStatus.APPLIED,
    ) -> JobApplication:
        application = await self._save(
            JobApplication(
                job_id=job.id,
                applicant_id=applicant.id,
                status=status,
                resume_ref="resumes/cv.pdf",
            )
        )
        await self._save(
            ApplicationStatusHistory(
                application_id=application.id,
                from_status=None,
                to_status=status,
                changed_by=applicant.id,
            )
        )
        return application


@dataclass
class CompanyWorld:
    """A company with one member per role, an outsider, a candidate and a job."""

    company: Company
    job: Job
    admin: User
    recruiter: User
    employee: User
    outsider: User
    candidate: User

    def actor_of(self, name: str) -> Actor:
        return actor_for(getattr(self, name))

    @property
    def admin_actor(self) -> Actor:
        return actor_for(self.admin)

    @property
    def recruiter_actor(self) -> Actor:
        return actor_for(self.recruiter)

    @property
    def employee_actor(self) -> Actor:
        return actor_for(self.employee)

    @property
    def outsider_actor(self) -> Actor:
        return actor_for(self.outsider)

    @property
    def candidate_actor(self) -> Actor:
        return actor_for(self.candidate)


@pytest.fixture
async def engine(tmp_path):
    """File-backed SQLite so separate sessions really are separate connections."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'workflow.db'}", echo=False,
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    import_models()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def seed(session_factory):
    async with session_factory() as session:
        yield Seeder(session)


@pytest.fixture
async def world(seed) -> CompanyWorld:
    company = await seed.company("Acme")
    admin = await seed.user("Ada Admin")
    recruiter = await seed.user("Rick Recruiter")
    employee = await seed.user("Emma Employee")
    outsider = await seed.user("Olly Outsider")
    candidate = await seed.candidate("Cora Candidate")

    await seed.member(company, admin, CompanyRole.ADMIN)
    await seed.member(company, recruiter, CompanyRole.RECRUITER)
    await seed.member(company, employee, CompanyRole.EMPLOYEE)
    job = await seed.job(company, "Backend Engineer")

    return CompanyWorld(
        company=company,
        job=job,
        admin=admin,
        recruiter=recruiter,
        employee=employee,
        outsider=outsider,
        candidate=candidate,
    )


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def failing_notifier() -> RecordingNotifier:
    return RecordingNotifier(fail=True)


@pytest.fixture
def token_for():
    """Build Authorization headers for a seeded user."""
    directory = ActorDirectory()

    def _headers(user: User) -> dict:
        token = directory.issue(user.id, user.global_role)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
async def client(session_factory, notifier):
    """FastAPI test client with DB and notifier dependencies overridden."""
    from api.main import app
    from core.integrations.notifier import get_notifier

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
