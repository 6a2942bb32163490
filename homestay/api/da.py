"""
Dealing Assistant API - Scrutiny, forwarding, send-back and site inspections
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..core.auth import AuthContext, DA_ROLE, require_role
from ..core.database import get_db
from ..db.models import InspectionOrder
from ..schemas.applications import ApplicationResponse
from ..schemas.enums import ApplicationStatus, InspectionOrderStatus
from ..schemas.workflow import (
    InspectionOrderResponse,
    InspectionReportRequest,
    InspectionReportResponse,
    RemarksRequest,
    ScrutinyRequest,
    SendBackRequest,
)
from ..services.lifecycle import LifecycleService
from .deps import EffectRunner, get_lifecycle_service

router = APIRouter(prefix="/api/v1/da", tags=["dealing-assistant"])

require_da = require_role(DA_ROLE)

DEFAULT_QUEUE = (
    ApplicationStatus.SUBMITTED,
    ApplicationStatus.UNDER_SCRUTINY,
    ApplicationStatus.LEGACY_RC_REVIEW,
)


@router.get("/queue", response_model=list[ApplicationResponse])
async def da_queue(
    statuses: Optional[list[ApplicationStatus]] = Query(None, alias="status"),
    auth: AuthContext = Depends(require_da),
    lifecycle: LifecycleService = Depends(get_lifecycle_service),
):
    """Applications awaiting scrutiny in the caller's district."""
    return lifecycle.district_queue(auth, statuses or DEFAULT_QUEUE)


@router.post("/applications/{application_id}/start-scrutiny", response_model=ApplicationResponse)
async def start_scrutiny(
    application_id: str,
    auth: AuthContext = Depends(require_da),
    lifecycle: LifecycleService = Depends(get_lifecycle_service),
    run: EffectRunner = Depends(),
):
    return run(lifecycle.start_scrutiny(application_id, auth))


@router.post("/applications/{application_id}/scrutiny", response_model=ApplicationResponse)
async def save_scrutiny(
    application_id: str,
    payload: ScrutinyRequest,
    auth: AuthContext = Depends(require_da),
    lifecycle: LifecycleService = Depends(get_lifecycle_service),
    run: EffectRunner = Depends(),
):
    """Save per-document verification verdicts (no status change)."""
    return run(lifecycle.save_scrutiny(application_id, auth, payload.verifications))


@router.post("/applications/{application_id}/forward", response_model=ApplicationResponse)
async def forward_to_dtdo(
    application_id: str,
    payload: RemarksRequest,
    auth: AuthContext = Depends(require_da),
    lifecycle: LifecycleService = Depends(get_lifecycle_service),
    run: EffectRunner = Depends(),
):
    return run(lifecycle.forward_to_dtdo(application_id, auth, payload.remarks))


@router.post("/applications/{application_id}/send-back", response_model=ApplicationResponse)
async def send_back(
    application_id: str,
    payload: SendBackRequest,
    auth: AuthContext = Depends(require_da),
    lifecycle: LifecycleService = Depends(get_lifecycle_service),
    run: EffectRunner = Depends(),
):
    """
    Send the application back to the applicant.

    Answers 400 with requireOtp=true until the OTP has been confirmed; a
    second send-back rejects the application.
    """
    return run(
        lifecycle.send_back(application_id, auth, payload.reason, otp_verified=payload.otp_verified)
    )


@router.get("/inspections", response_model=list[InspectionOrderResponse])
async def my_inspections(
    include_completed: bool = False,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_da),
):
    query = db.query(InspectionOrder).filter_by(assigned_to=auth.user_id)
    if not include_completed:
        query = query.filter_by(status=InspectionOrderStatus.SCHEDULED.value)
    return query.order_by(InspectionOrder.inspection_date.asc()).all()


@router.post("/inspections/{order_id}/report", response_model=InspectionReportResponse)
async def submit_inspection_report(
    order_id: str,
    payload: InspectionReportRequest,
    auth: AuthContext = Depends(require_da),
    lifecycle: LifecycleService = Depends(get_lifecycle_service),
    run: EffectRunner = Depends(),
):
    result = lifecycle.complete_inspection(order_id, auth, payload)
    run(result)
    return result.inspection_report
