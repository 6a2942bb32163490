"""
District Tourism Development Officer API - Review, inspection decisions and certificates
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query

from ..core.auth import AuthContext, DTDO_ROLES, require_role
from ..schemas.applications import ApplicationResponse
from ..schemas.enums import ApplicationStatus
from ..schemas.workflow import (
    AcceptRequest,
    CorrectionRequest,
    RemarksRequest,
    RevertRequest,
    ScheduleInspectionRequest,
)
from ..services.lifecycle import LifecycleService
from .deps import EffectRunner, get_lifecycle_service

router = APIRouter(prefix="/api/v1/dtdo", tags=["dtdo"])

require_dtdo = require_role(*sorted(DTDO_ROLES))

DEFAULT_QUEUE = (
    ApplicationStatus.FORWARDED_TO_DTDO,
    ApplicationStatus.DTDO_REVIEW,
    ApplicationStatus.INSPECTION_UNDER_REVIEW,
)


@router.get("/queue", response_model=list[ApplicationResponse])
async def dtdo_queue(
    statuses: Optional[list[ApplicationStatus]] = Query(None, alias="status"),
    auth: AuthContext = Depends(require_dtdo),
    lifecycle: LifecycleService = Depends(get_lifecycle_service),
):
    return lifecycle.district_queue(auth, statuses or DEFAULT_QUEUE)


@router.post("/applications/{application_id}/accept", response_model=ApplicationResponse)
async def accept_application(
    application_id: str,
    payload: AcceptRequest,
    auth: AuthContext = Depends(require_dtdo),
    lifecycle: LifecycleService = Depends(get_lifecycle_service),
    run: EffectRunner = Depends(),
):
    """
    Accept a forwarded application.

    Supplying inspection_date and assigned_to schedules the site visit in
    the same step. Delete-rooms and cancellation requests are decided here
    without an inspection.
    """
    return run(
        lifecycle.accept_and_schedule(
            application_id,
            auth,
            payload.remarks,
            inspection_date=payload.inspection_date,
            assigned_to=payload.assigned_to,
            special_instructions=payload.special_instructions,
        )
    )


@router.post("/applications/{application_id}/schedule-inspection", response_model=ApplicationResponse)
async def schedule_inspection(
    application_id: str,
    payload: ScheduleInspectionRequest,
    auth: AuthContext = Depends(require_dtdo),
    lifecycle: LifecycleService = Depends(get_lifecycle_service),
    run: EffectRunner = Depends(),
):
    return run(
        lifecycle.schedule_inspection(
            application_id,
            auth,
            payload.inspection_date,
            payload.assigned_to,
            payload.special_instructions,
        )
    )


@router.post("/applications/{application_id}/reject", response_model=ApplicationResponse)
async def reject_application(
    application_id: str,
    payload: RemarksRequest,
    auth: AuthContext = Depends(require_dtdo),
    lifecycle: LifecycleService = Depends(get_lifecycle_service),
    run: EffectRunner = Depends(),
):
    return run(lifecycle.reject(application_id, auth, payload.remarks))


@router.post("/applications/{application_id}/revert", response_model=ApplicationResponse)
async def revert_application(
    application_id: str,
    payload: RevertRequest,
    auth: AuthContext = Depends(require_dtdo),
    lifecycle: LifecycleService = Depends(get_lifecycle_service),
    run: EffectRunner = Depends(),
):
    """Return to the applicant; an application already sent back once is rejected."""
    return run(lifecycle.revert(application_id, auth, payload.reason))


@router.post("/applications/{application_id}/inspection/approve", response_model=ApplicationResponse)
async def approve_inspection(
    application_id: str,
    payload: RemarksRequest,
    auth: AuthContext = Depends(require_dtdo),
    lifecycle: LifecycleService = Depends(get_lifecycle_service),
    run: EffectRunner = Depends(),
):
    return run(lifecycle.approve_inspection(application_id, auth, payload.remarks))


@router.post("/applications/{application_id}/inspection/reject", response_model=ApplicationResponse)
async def reject_inspection(
    application_id: str,
    payload: RemarksRequest,
    auth: AuthContext = Depends(require_dtdo),
    lifecycle: LifecycleService = Depends(get_lifecycle_service),
    run: EffectRunner = Depends(),
):
    return run(lifecycle.reject_inspection(application_id, auth, payload.remarks))


@router.post("/applications/{application_id}/inspection/objections", response_model=ApplicationResponse)
async def raise_objections(
    application_id: str,
    payload: RemarksRequest,
    auth: AuthContext = Depends(require_dtdo),
    lifecycle: LifecycleService = Depends(get_lifecycle_service),
    run: EffectRunner = Depends(),
):
    return run(lifecycle.raise_objections(application_id, auth, payload.remarks))


@router.post("/applications/{application_id}/approve-bypass", response_model=ApplicationResponse)
async def approve_bypass(
    application_id: str,
    payload: RemarksRequest,
    auth: AuthContext = Depends(require_dtdo),
    lifecycle: LifecycleService = Depends(get_lifecycle_service),
    run: EffectRunner = Depends(),
):
    return run(lifecycle.approve_bypass(application_id, auth, payload.remarks))


@router.post("/applications/{application_id}/approve-cancellation", response_model=ApplicationResponse)
async def approve_cancellation(
    application_id: str,
    payload: RemarksRequest,
    auth: AuthContext = Depends(require_dtdo),
    lifecycle: LifecycleService = Depends(get_lifecycle_service),
    run: EffectRunner = Depends(),
):
    return run(lifecycle.approve_cancellation(application_id, auth, payload.remarks))


@router.post("/applications/{application_id}/revoke", response_model=ApplicationResponse)
async def revoke_certificate(
    application_id: str,
    payload: RemarksRequest,
    auth: AuthContext = Depends(require_dtdo),
    lifecycle: LifecycleService = Depends(get_lifecycle_service),
    run: EffectRunner = Depends(),
):
    return run(lifecycle.revoke_certificate(application_id, auth, payload.remarks))


@router.post("/applications/{application_id}/correct", response_model=ApplicationResponse)
async def correct_application(
    application_id: str,
    payload: CorrectionRequest,
    auth: AuthContext = Depends(require_dtdo),
    lifecycle: LifecycleService = Depends(get_lifecycle_service),
):
    """Patch allow-listed fields of an approved registration."""
    return lifecycle.correct(application_id, auth, payload.changes, payload.reason).application
