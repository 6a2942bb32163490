"""
Payments API - Paid signal from the payment service
"""

from fastapi import APIRouter, Depends

from ..core.auth import AuthContext, SYSTEM_ROLE, ADMIN_ROLES, require_role
from ..schemas.applications import ApplicationResponse
from ..schemas.workflow import PaymentSignal
from ..services.lifecycle import LifecycleService
from .deps import EffectRunner, get_lifecycle_service

router = APIRouter(prefix="/api/v1/payments", tags=["payments"])


@router.post("/applications/{application_id}/paid", response_model=ApplicationResponse)
async def record_payment(
    application_id: str,
    payload: PaymentSignal,
    auth: AuthContext = Depends(require_role(SYSTEM_ROLE, *sorted(ADMIN_ROLES))),
    lifecycle: LifecycleService = Depends(get_lifecycle_service),
    run: EffectRunner = Depends(),
):
    """
    Record a confirmed payment.

    Issues the certificate when the application is verified for payment;
    otherwise records the upfront payment without changing status.
    """
    return run(
        lifecycle.record_payment(
            application_id, auth, payload.payment_reference, amount=payload.amount
        )
    )
