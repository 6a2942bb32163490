"""
Applications API - Owner drafts, submission and history
"""

from typing import Optional
from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from ..core.auth import AuthContext, require_auth
from ..core.database import get_db
from ..db.models import Application
from ..schemas.applications import (
    ApplicationCreate,
    ApplicationDetail,
    ApplicationList,
    ApplicationResponse,
    ApplicationUpdate,
    DocumentResponse,
    ResubmitRequest,
)
from ..schemas.workflow import AuditRecordResponse, TimelineResponse
from ..services.drafts import DraftService
from ..services.lifecycle import LifecycleService
from .deps import EffectRunner, get_draft_service, get_lifecycle_service

router = APIRouter(prefix="/api/v1/applications", tags=["applications"])


@router.post("", response_model=ApplicationResponse, status_code=status.HTTP_201_CREATED)
async def create_application(
    payload: ApplicationCreate,
    auth: AuthContext = Depends(require_auth),
    drafts: DraftService = Depends(get_draft_service),
):
    """
    Create a draft application.

    New registrations are limited to one per owner; an existing draft is
    returned instead of a second one. Service requests (add/delete rooms,
    change category, cancellation, renewal) are seeded from the owner's
    approved registration.
    """
    return drafts.create_draft(auth, payload)


@router.get("", response_model=ApplicationList)
async def list_applications(
    status_filter: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    """
    List the caller's applications.

    Admins see every application. Optional filtering by status.
    """
    query = db.query(Application)
    if not auth.is_admin:
        query = query.filter_by(user_id=auth.user_id)
    if status_filter:
        query = query.filter_by(status=status_filter)

    total = query.count()
    applications = query.order_by(Application.created_at.desc()).offset(offset).limit(limit).all()

    return ApplicationList(
        applications=[ApplicationResponse.model_validate(app) for app in applications],
        total=total,
    )


@router.get("/{application_id}", response_model=ApplicationDetail)
async def get_application(
    application_id: str,
    auth: AuthContext = Depends(require_auth),
    lifecycle: LifecycleService = Depends(get_lifecycle_service),
):
    application = lifecycle.get_application(application_id, auth)
    documents = lifecycle.repository.documents(application.id)
    return ApplicationDetail(
        **ApplicationResponse.model_validate(application).model_dump(),
        documents=[DocumentResponse.model_validate(doc) for doc in documents],
    )


@router.patch("/{application_id}", response_model=ApplicationResponse)
async def update_application(
    application_id: str,
    payload: ApplicationUpdate,
    auth: AuthContext = Depends(require_auth),
    drafts: DraftService = Depends(get_draft_service),
):
    """
    Edit a draft.

    Room rows are trimmed to the capacity left by the other rows rather
    than rejected; the hard limits apply at submission.
    """
    return drafts.update_draft(auth, application_id, payload)


@router.delete("/{application_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_application(
    application_id: str,
    auth: AuthContext = Depends(require_auth),
    drafts: DraftService = Depends(get_draft_service),
):
    drafts.delete_draft(auth, application_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{application_id}/submit", response_model=ApplicationResponse)
async def submit_application(
    application_id: str,
    auth: AuthContext = Depends(require_auth),
    lifecycle: LifecycleService = Depends(get_lifecycle_service),
    run: EffectRunner = Depends(),
):
    return run(lifecycle.submit(application_id, auth))


@router.post("/{application_id}/resubmit", response_model=ApplicationResponse)
async def resubmit_application(
    application_id: str,
    payload: Optional[ResubmitRequest] = None,
    auth: AuthContext = Depends(require_auth),
    lifecycle: LifecycleService = Depends(get_lifecycle_service),
    run: EffectRunner = Depends(),
):
    """Send corrections back into review after a send-back, revert or objection."""
    return run(lifecycle.resubmit_correction(application_id, auth, payload))


@router.get("/{application_id}/timeline", response_model=TimelineResponse)
async def get_timeline(
    application_id: str,
    auth: AuthContext = Depends(require_auth),
    lifecycle: LifecycleService = Depends(get_lifecycle_service),
):
    """
    Audit trail of an application, oldest first.

    Visible to the applicant and to district staff.
    """
    actions = lifecycle.get_timeline(application_id, auth)
    return TimelineResponse(
        application_id=application_id,
        actions=[AuditRecordResponse.model_validate(action) for action in actions],
    )
