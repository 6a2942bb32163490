from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import Any, Optional

from .enums import ApplicationKind, Category, LocationType, OwnerGender


class DocumentUpload(BaseModel):
    """Metadata of a file already stored by the upload service"""

    document_type: str = Field(..., min_length=1, max_length=100)
    file_name: str = Field(..., min_length=1, max_length=255)
    file_path: str = Field(..., min_length=1, max_length=1024)
    file_size: int = Field(..., gt=0)
    mime_type: str = Field(..., min_length=1, max_length=255)


class ApplicationFields(BaseModel):
    """Owner-editable application fields; omitted fields are left unchanged"""

    property_name: Optional[str] = Field(None, max_length=255)
    category: Optional[Category] = None
    owner_name: Optional[str] = Field(None, max_length=255)
    owner_gender: Optional[OwnerGender] = None
    owner_mobile: Optional[str] = Field(None, max_length=20)
    owner_email: Optional[str] = Field(None, max_length=255)
    owner_aadhaar: Optional[str] = Field(None, max_length=12)
    guardian_name: Optional[str] = Field(None, max_length=255)
    address: Optional[str] = None
    district: Optional[str] = Field(None, max_length=100)
    tehsil: Optional[str] = Field(None, max_length=100)
    pincode: Optional[str] = Field(None, max_length=6)
    location_type: Optional[LocationType] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    gstin: Optional[str] = Field(None, max_length=15)
    is_special_subdivision: Optional[bool] = None
    certificate_validity_years: Optional[int] = None

    single_bed_rooms: Optional[int] = Field(None, ge=0)
    single_bed_beds: Optional[int] = Field(None, ge=1)
    single_bed_room_rate: Optional[float] = Field(None, ge=0)
    double_bed_rooms: Optional[int] = Field(None, ge=0)
    double_bed_beds: Optional[int] = Field(None, ge=1)
    double_bed_room_rate: Optional[float] = Field(None, ge=0)
    family_suites: Optional[int] = Field(None, ge=0)
    family_suite_beds: Optional[int] = Field(None, ge=1)
    family_suite_rate: Optional[float] = Field(None, ge=0)
    attached_washrooms: Optional[int] = Field(None, ge=0)

    service_context: Optional[dict[str, Any]] = None
    documents: Optional[list[DocumentUpload]] = None


class ApplicationCreate(ApplicationFields):
    """Schema for creating a draft"""

    application_kind: ApplicationKind = ApplicationKind.NEW_REGISTRATION
    parent_application_id: Optional[str] = None


class ApplicationUpdate(ApplicationFields):
    """Schema for editing a draft"""


class ResubmitRequest(ApplicationFields):
    """Corrected fields sent back with a resubmission"""


class DocumentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    document_type: str
    file_name: str
    file_size: int
    mime_type: str
    verification_status: str
    verification_notes: Optional[str]
    verified_by: Optional[str]
    verification_date: Optional[datetime]


class ApplicationResponse(BaseModel):
    """Schema for application response"""

    model_config = ConfigDict(from_attributes=True)

    id: str
    application_number: str
    user_id: str
    application_kind: str
    category: Optional[str]
    status: str
    current_stage: Optional[str]

    parent_application_id: Optional[str]
    parent_application_number: Optional[str]
    parent_certificate_number: Optional[str]
    service_context: Optional[dict[str, Any]]

    property_name: Optional[str]
    owner_name: Optional[str]
    owner_gender: Optional[str]
    owner_mobile: Optional[str]
    owner_email: Optional[str]
    guardian_name: Optional[str]
    address: Optional[str]
    district: Optional[str]
    tehsil: Optional[str]
    pincode: Optional[str]
    location_type: Optional[str]
    gstin: Optional[str]
    is_special_subdivision: bool
    certificate_validity_years: int

    single_bed_rooms: int
    single_bed_beds: Optional[int]
    single_bed_room_rate: Optional[float]
    double_bed_rooms: int
    double_bed_beds: Optional[int]
    double_bed_room_rate: Optional[float]
    family_suites: int
    family_suite_beds: Optional[int]
    family_suite_rate: Optional[float]
    attached_washrooms: int
    total_rooms: int

    base_fee: Optional[float]
    total_before_discounts: Optional[float]
    total_discount: Optional[float]
    total_fee: Optional[float]
    payment_status: str

    da_id: Optional[str]
    da_remarks: Optional[str]
    da_forwarded_date: Optional[datetime]
    dtdo_id: Optional[str]
    dtdo_remarks: Optional[str]
    district_notes: Optional[str]
    rejection_reason: Optional[str]
    clarification_requested: Optional[str]
    revert_count: int
    correction_submission_count: int

    site_inspection_scheduled_date: Optional[datetime]
    site_inspection_outcome: Optional[str]
    site_inspection_completed_date: Optional[datetime]

    certificate_number: Optional[str]
    certificate_issued_date: Optional[datetime]
    certificate_expiry_date: Optional[datetime]
    approved_at: Optional[datetime]

    created_at: datetime
    updated_at: datetime
    submitted_at: Optional[datetime]


class ApplicationDetail(ApplicationResponse):
    documents: list[DocumentResponse] = []


class ApplicationList(BaseModel):
    """Schema for list of applications"""

    applications: list[ApplicationResponse]
    total: int
