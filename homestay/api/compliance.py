"""
Compliance API - Fee quotes and category checks
"""

from fastapi import APIRouter, Depends

from ..schemas.compliance import (
    CategoryValidation,
    CategoryValidationRequest,
    FeeBreakdown,
    FeeQuoteRequest,
)
from ..services.compliance import calculate_fee, validate_category_selection
from ..services.settings import WorkflowConfig
from .deps import get_workflow_config

router = APIRouter(prefix="/api/v1/compliance", tags=["compliance"])


@router.post("/fee", response_model=FeeBreakdown)
async def fee_quote(payload: FeeQuoteRequest):
    """Registration fee with itemised discounts."""
    return calculate_fee(
        payload.category,
        payload.location_type,
        payload.validity_years,
        payload.owner_gender,
        payload.is_special_subdivision,
    )


@router.post("/category", response_model=CategoryValidation)
async def category_check(
    payload: CategoryValidationRequest,
    config: WorkflowConfig = Depends(get_workflow_config),
):
    """Validate a category against the nightly tariff and suggest one."""
    return validate_category_selection(
        payload.category,
        payload.total_rooms,
        payload.highest_rate,
        config.rate_bands,
        config.max_rooms,
    )
