from pydantic import BaseModel, Field, field_validator
from enum import Enum
from typing import Optional

from .enums import Category, LocationType, OwnerGender


class BandStatus(str, Enum):
    EMPTY = "empty"
    OK = "ok"
    BELOW = "below"
    ABOVE = "above"


class RateBand(BaseModel):
    """Permitted nightly-rate range for a category (inclusive bounds)"""

    min: float = Field(..., ge=0)
    max: Optional[float] = None


class FeeQuoteRequest(BaseModel):
    category: Category
    location_type: LocationType
    validity_years: int = 1
    owner_gender: Optional[OwnerGender] = None
    is_special_subdivision: bool = False

    @field_validator("validity_years")
    @classmethod
    def validate_validity(cls, v: int) -> int:
        """Certificates are issued for one or three years"""
        if v not in (1, 3):
            raise ValueError("validity_years must be 1 or 3")
        return v


class FeeBreakdown(BaseModel):
    """Registration fee with every discount itemised (INR)"""

    base_fee: float
    total_before_discounts: float
    validity_discount: float
    female_owner_discount: float
    subdivision_discount: float
    total_discount: float
    final_fee: float
    savings_amount: float
    savings_percentage: float


class CategoryValidationRequest(BaseModel):
    category: Category
    total_rooms: int = Field(..., ge=0)
    highest_rate: float = 0


class CategoryValidation(BaseModel):
    is_valid: bool
    errors: list[str] = []
    warnings: list[str] = []
    suggested_category: Optional[Category] = None
    band_status: BandStatus = BandStatus.EMPTY
