"""Email sending tasks."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from celery import Task
from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine, AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.pool import NullPool

from core.config import settings
from core.integrations.email import EmailTemplates, get_email_service
from database.models.applications import JobApplication
from database.models.jobs import Job
from workers.celery_app import celery_app

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StatusEmailContext:
    application_id: int
    applicant_email: Optional[str]
    applicant_name: Optional[str]
    job_title: str
    company_name: str
    status: str


async def load_status_email_context(
    application_id: int,
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
) -> Optional[StatusEmailContext]:
    """
    Load what the status email needs in one query.

    A private engine is used when no factory is given: each task runs its own
    event loop, so pooled connections can't be shared between runs.

    Returns:
        The email context, or None if the application no longer exists
    """
    engine = None
    if session_factory is None:
        engine = create_async_engine(settings.database_url, poolclass=NullPool)
        session_factory = async_sessionmaker(engine, expire_on_commit=False)

    try:
        async with session_factory() as session:
            result = await session.execute(
                select(JobApplication)
                .where(JobApplication.id == application_id)
                .options(
                    selectinload(JobApplication.applicant),
                    selectinload(JobApplication.job).selectinload(Job.company),
                )
            )
            application = result.scalar_one_or_none()
            if application is None:
                return None

            return StatusEmailContext(
                application_id=application.id,
                applicant_email=application.applicant.email,
                applicant_name=application.applicant.name,
                job_title=application.job.title,
                company_name=application.job.company.name,
                status=application.status.value,
            )
    finally:
        if engine is not None:
            await engine.dispose()


@celery_app.task(name="workers.tasks.emails.send_application_status_email", bind=True)
def send_application_status_email(self: Task, application_id: int) -> dict:
    """Notify an applicant that their application status changed.

    Delivery is at-most-once: failures are logged and reported in the result,
    never retried. The current status is read at send time, so a burst of
    changes may produce several emails showing the latest status.

    Args:
        application_id: Application whose status changed

    Returns:
        Dictionary with send status
    """
    log_extra = {"task_id": self.request.id, "application_id": application_id}

    context = asyncio.run(load_status_email_context(application_id))
    if context is None:
        logger.warning("Application vanished before status email", extra=log_extra)
        return {"status": "skipped", "reason": "application_not_found"}

    if not context.applicant_email:
        logger.warning("Applicant email not found", extra=log_extra)
        return {"status": "skipped", "reason": "applicant_email_missing"}

    template = EmailTemplates.application_status_update(
        applicant_name=context.applicant_name,
        job_title=context.job_title,
        company_name=context.company_name,
        status=context.status,
    )
    sent = get_email_service().send_email(
        to_email=context.applicant_email,
        subject=template["subject"],
        body=template["body"],
        html=template["html"],
    )

    if not sent:
        logger.error("Status email delivery failed", extra=log_extra)
        return {"status": "failed", "application_id": application_id}

    logger.info(f"Status email sent ({context.status})", extra=log_extra)
    return {
        "status": "sent",
        "application_id": application_id,
        "application_status": context.status,
    }
