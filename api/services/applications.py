"""
Application service functions for API endpoints.

Status moves follow ApplicationStatus: any non-terminal status may move to
any other, hired and rejected are final. Each accepted move writes one
ApplicationStatusHistory row in the same transaction and, when enabled, asks
the notifier to email the applicant after the commit.
"""

from typing import List, Optional
import asyncio
import logging

from sqlalchemy import select, update, delete, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from api.services.memberships import get_actor_role
from core.config import settings
from core.errors import (
    Conflict,
    DuplicateApplication,
    Forbidden,
    InvalidTransition,
    MissingResume,
    NotFound,
)
from core.integrations.notifier import Notifier, get_notifier
from core.permissions import can_change_application_status, can_view_job_applications
from core.security import Actor
from database.models.applications import (
    ApplicationStatus,
    ApplicationStatusHistory,
    JobApplication,
)
from database.models.jobs import Job

logger = logging.getLogger(__name__)


async def _get_job(session: AsyncSession, job_id: int) -> Job:
    job = await session.get(Job, job_id)
    if job is None:
        raise NotFound("Job not found")
    return job


async def _get_application(session: AsyncSession, application_id: int) -> JobApplication:
    application = await session.get(JobApplication, application_id)
    if application is None:
        raise NotFound("Application not found")
    return application


async def _dispatch_status_email(
    notifier: Optional[Notifier], application_id: int
) -> None:
    # Broker publishes block, keep them off the event loop
    notifier = notifier or get_notifier()
    await asyncio.to_thread(notifier.send_status_email, application_id)


async def _authorize_status_change(
    session: AsyncSession, actor: Actor, application: JobApplication
) -> None:
    job = await _get_job(session, application.job_id)
    actor_role = await get_actor_role(session, actor, job.company_id)
    if not can_change_application_status(actor_role):
        logger.warning(
            f"User {actor.id} denied changing application status",
            extra={"actor_id": actor.id, "application_id": application.id},
        )
        raise Forbidden("Only company admins or recruiters can update applications")


async def submit_application(
    session: AsyncSession,
    applicant_id: int,
    job_id: int,
    resume_ref: Optional[str],
    cover_letter: Optional[str] = None,
) -> JobApplication:
    """
    Apply to a job.

    Args:
        session: Database session
        applicant_id: Applying user
        job_id: Target job
        resume_ref: Reference to the uploaded resume, required
        cover_letter: Optional cover letter text

    Returns:
        The new application in status applied

    Raises:
        MissingResume: No resume reference given
        NotFound: Unknown job
        DuplicateApplication: The applicant already applied to this job
    """
    if not resume_ref or not resume_ref.strip():
        raise MissingResume()

    await _get_job(session, job_id)

    existing = await session.execute(
        select(JobApplication.id).where(
            JobApplication.job_id == job_id,
            JobApplication.applicant_id == applicant_id,
        )
    )
    if existing.first() is not None:
        raise DuplicateApplication()

    application = JobApplication(
        job_id=job_id,
        applicant_id=applicant_id,
        status=ApplicationStatus.APPLIED,
        resume_ref=resume_ref.strip(),
        cover_letter=cover_letter,
    )
    session.add(application)
    try:
        await session.flush()
        session.add(
            ApplicationStatusHistory(
                application_id=application.id,
                from_status=None,
                to_status=ApplicationStatus.APPLIED,
                changed_by=applicant_id,
            )
        )
        await session.commit()
    except IntegrityError:
        await session.rollback()
        logger.warning(f"Concurrent duplicate application by user {applicant_id}")
        raise DuplicateApplication()

    await session.refresh(application)
    logger.info(
        f"User {applicant_id} applied to job {job_id}",
        extra={"application_id": application.id},
    )
    return application


async def set_application_status(
    session: AsyncSession,
    actor: Actor,
    application_id: int,
    new_status: ApplicationStatus,
    *,
    notifier: Optional[Notifier] = None,
    auto_notify: Optional[bool] = None,
) -> JobApplication:
    """
    Move an application to a new status.

    Setting the current status again is a no-op and sends nothing.

    Args:
        session: Database session
        actor: Caller, must be admin or recruiter of the job's company
        application_id: Application ID
        new_status: Target status
        notifier: Notification sink, defaults to the Celery notifier
        auto_notify: Email the applicant after commit; defaults to settings

    Returns:
        The application as stored after the call

    Raises:
        NotFound: Unknown application
        Forbidden: Actor lacks the company role
        InvalidTransition: Application is already hired or rejected
        Conflict: Status changed concurrently
    """
    new_status = ApplicationStatus(new_status)
    application = await _get_application(session, application_id)
    await _authorize_status_change(session, actor, application)

    previous_status = application.status
    if new_status == previous_status and not previous_status.is_terminal():
        return application

    if not previous_status.can_transition_to(new_status):
        raise InvalidTransition(
            f"Application is already {previous_status.value} and cannot change"
        )

    result = await session.execute(
        update(JobApplication)
        .where(
            JobApplication.id == application.id,
            JobApplication.status == previous_status,
        )
        .values(status=new_status, updated_at=func.now())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        await session.rollback()
        logger.warning(
            f"Lost race moving application from {previous_status.value}",
            extra={"actor_id": actor.id, "application_id": application_id},
        )
        raise Conflict("Application status changed concurrently")

    session.add(
        ApplicationStatusHistory(
            application_id=application.id,
            from_status=previous_status,
            to_status=new_status,
            changed_by=actor.id,
        )
    )
    await session.commit()
    await session.refresh(application)

    logger.info(
        f"Application {previous_status.value} -> {new_status.value}",
        extra={"actor_id": actor.id, "application_id": application_id},
    )

    if auto_notify is None:
        auto_notify = settings.auto_notify_status_email
    if auto_notify:
        try:
            await _dispatch_status_email(notifier, application_id)
        except Exception:
            logger.exception(
                "Status notification failed",
                extra={"application_id": application_id},
            )

    return application


async def send_status_email(
    session: AsyncSession,
    actor: Actor,
    application_id: int,
    *,
    notifier: Optional[Notifier] = None,
) -> None:
    """
    Email the applicant their current status on demand.

    Authorized like a status change. Unlike the automatic email, a failure
    to enqueue propagates to the caller.

    Raises:
        NotFound: Unknown application
        Forbidden: Actor lacks the company role
    """
    application = await _get_application(session, application_id)
    await _authorize_status_change(session, actor, application)

    await _dispatch_status_email(notifier, application_id)
    logger.info(
        f"User {actor.id} requested status email",
        extra={"actor_id": actor.id, "application_id": application_id},
    )


async def withdraw_application(
    session: AsyncSession, actor: Actor, application_id: int
) -> None:
    """
    Delete an application and its history. Applicant only, any status.
    """
    application = await _get_application(session, application_id)
    if application.applicant_id != actor.id:
        raise Forbidden("Only the applicant can withdraw this application")

    await session.execute(
        delete(ApplicationStatusHistory)
        .where(ApplicationStatusHistory.application_id == application_id)
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(
        delete(JobApplication)
        .where(JobApplication.id == application_id)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        await session.rollback()
        raise NotFound("Application not found")

    await session.commit()
    session.expunge(application)
    logger.info(
        f"User {actor.id} withdrew application",
        extra={"application_id": application_id},
    )


async def _ensure_can_view(
    session: AsyncSession, actor: Actor, application: JobApplication
) -> None:
    if application.applicant_id == actor.id:
        return
    job = await _get_job(session, application.job_id)
    actor_role = await get_actor_role(session, actor, job.company_id)
    if not can_view_job_applications(actor_role):
        raise Forbidden("You cannot view this application")


async def get_application(
    session: AsyncSession, actor: Actor, application_id: int
) -> JobApplication:
    application = await _get_application(session, application_id)
    await _ensure_can_view(session, actor, application)
    return application


async def get_application_history(
    session: AsyncSession, actor: Actor, application_id: int
) -> List[ApplicationStatusHistory]:
    """Status trail of an application, oldest first."""
    application = await _get_application(session, application_id)
    await _ensure_can_view(session, actor, application)

    result = await session.execute(
        select(ApplicationStatusHistory)
        .where(ApplicationStatusHistory.application_id == application_id)
        .order_by(ApplicationStatusHistory.id)
    )
    return list(result.scalars().all())


async def list_job_applications(
    session: AsyncSession,
    actor: Actor,
    job_id: int,
    status: Optional[ApplicationStatus] = None,
) -> List[JobApplication]:
    """
    Applications to a job, newest first.

    Args:
        session: Database session
        actor: Caller, must be admin or recruiter of the job's company
        job_id: Job ID
        status: Optional status filter

    Returns:
        List of applications
    """
    job = await _get_job(session, job_id)
    actor_role = await get_actor_role(session, actor, job.company_id)
    if not can_view_job_applications(actor_role):
        raise Forbidden("Only company admins or recruiters can view applications")

    query = select(JobApplication).where(JobApplication.job_id == job_id)
    if status is not None:
        query = query.where(JobApplication.status == status)

    result = await session.execute(
        query.order_by(JobApplication.created_at.desc(), JobApplication.id.desc())
    )
    return list(result.scalars().all())


async def list_company_applications(
    session: AsyncSession,
    actor: Actor,
    company_id: int,
    status: Optional[ApplicationStatus] = None,
) -> List[JobApplication]:
    """Applications to every job of a company, newest first."""
    actor_role = await get_actor_role(session, actor, company_id)
    if not can_view_job_applications(actor_role):
        raise Forbidden("Only company admins or recruiters can view applications")

    query = (
        select(JobApplication)
        .join(Job, Job.id == JobApplication.job_id)
        .where(Job.company_id == company_id)
    )
    if status is not None:
        query = query.where(JobApplication.status == status)

    result = await session.execute(
        query.order_by(JobApplication.created_at.desc(), JobApplication.id.desc())
    )
    return list(result.scalars().all())


async def list_my_applications(
    session: AsyncSession,
    actor: Actor,
    status: Optional[ApplicationStatus] = None,
) -> List[JobApplication]:
    query = select(JobApplication).where(JobApplication.applicant_id == actor.id)
    if status is not None:
        query = query.where(JobApplication.status == status)

    result = await session.execute(
        query.order_by(JobApplication.created_at.desc(), JobApplication.id.desc())
    )
    return list(result.scalars().all())
