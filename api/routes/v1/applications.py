"""Job application endpoints."""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import require_actor
from api.schemas.applications import (
    ApplicationCreate,
    ApplicationHistoryEntry,
    ApplicationResponse,
    ApplicationStatusUpdate,
)
from api.schemas.common import ERROR_RESPONSES, MessageResponse
from api.services import applications as application_service
from core.integrations.notifier import Notifier, get_notifier
from core.security import Actor
from database.engine import get_db
from database.models.applications import ApplicationStatus

logger = logging.getLogger(__name__)

router = APIRouter(tags=["applications"], responses=ERROR_RESPONSES)


@router.post(
    "/jobs/{job_id}/applications",
    response_model=ApplicationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Apply to a job",
)
async def submit_application(
    job_id: int,
    body: ApplicationCreate,
    actor: Actor = Depends(require_actor),
    db: AsyncSession = Depends(get_db),
) -> ApplicationResponse:
    """
    Apply to a job as the calling user.

    - **resume_ref**: Reference to the uploaded resume (required)
    - **cover_letter**: Optional cover letter
    """
    application = await application_service.submit_application(
        db, actor.id, job_id, body.resume_ref, body.cover_letter
    )
    return ApplicationResponse.model_validate(application)


@router.get(
    "/jobs/{job_id}/applications",
    response_model=List[ApplicationResponse],
    summary="List applications to a job",
)
async def list_job_applications(
    job_id: int,
    status: Optional[ApplicationStatus] = None,
    actor: Actor = Depends(require_actor),
    db: AsyncSession = Depends(get_db),
) -> List[ApplicationResponse]:
    applications = await application_service.list_job_applications(
        db, actor, job_id, status
    )
    return [ApplicationResponse.model_validate(a) for a in applications]


@router.get(
    "/applications/me",
    response_model=List[ApplicationResponse],
    summary="List my applications",
)
async def list_my_applications(
    status: Optional[ApplicationStatus] = None,
    actor: Actor = Depends(require_actor),
    db: AsyncSession = Depends(get_db),
) -> List[ApplicationResponse]:
    applications = await application_service.list_my_applications(db, actor, status)
    return [ApplicationResponse.model_validate(a) for a in applications]


@router.get(
    "/applications/{application_id}",
    response_model=ApplicationResponse,
    summary="Get an application",
)
async def get_application(
    application_id: int,
    actor: Actor = Depends(require_actor),
    db: AsyncSession = Depends(get_db),
) -> ApplicationResponse:
    application = await application_service.get_application(db, actor, application_id)
    return ApplicationResponse.model_validate(application)


@router.get(
    "/applications/{application_id}/history",
    response_model=List[ApplicationHistoryEntry],
    summary="Get an application's status history",
)
async def get_application_history(
    application_id: int,
    actor: Actor = Depends(require_actor),
    db: AsyncSession = Depends(get_db),
) -> List[ApplicationHistoryEntry]:
    history = await application_service.get_application_history(
        db, actor, application_id
    )
    return [ApplicationHistoryEntry.model_validate(h) for h in history]


@router.put(
    "/applications/{application_id}/status",
    response_model=ApplicationResponse,
    summary="Change an application's status",
)
async def update_application_status(
    application_id: int,
    body: ApplicationStatusUpdate,
    actor: Actor = Depends(require_actor),
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
) -> ApplicationResponse:
    """
    Move an application through its pipeline. Admin or recruiter of the
    job's company only; hired and rejected are final.
    """
    application = await application_service.set_application_status(
        db, actor, application_id, body.status, notifier=notifier
    )
    return ApplicationResponse.model_validate(application)


@router.delete(
    "/applications/{application_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Withdraw an application",
)
async def withdraw_application(
    application_id: int,
    actor: Actor = Depends(require_actor),
    db: AsyncSession = Depends(get_db),
) -> Response:
    await application_service.withdraw_application(db, actor, application_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/applications/{application_id}/status-email",
    response_model=MessageResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Email the applicant their current status",
)
async def send_status_email(
    application_id: int,
    actor: Actor = Depends(require_actor),
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
) -> MessageResponse:
    """Queue a status email for the applicant. Admin or recruiter only."""
    await application_service.send_status_email(
        db, actor, application_id, notifier=notifier
    )
    return MessageResponse(message="Status update email queued")


@router.get(
    "/companies/{company_id}/applications",
    response_model=List[ApplicationResponse],
    summary="List applications to all of a company's jobs",
)
async def list_company_applications(
    company_id: int,
    status: Optional[ApplicationStatus] = None,
    actor: Actor = Depends(require_actor),
    db: AsyncSession = Depends(get_db),
) -> List[ApplicationResponse]:
    applications = await application_service.list_company_applications(
        db, actor, company_id, status
    )
    return [ApplicationResponse.model_validate(a) for a in applications]
