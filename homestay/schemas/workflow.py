from pydantic import BaseModel, ConfigDict, Field
from datetime import date, datetime
from typing import Any, Optional

from .enums import Category, DocumentVerificationStatus


class RemarksRequest(BaseModel):
    remarks: str = ""


class SendBackRequest(BaseModel):
    """DA send-back; the first one needs an OTP confirmed out of band"""

    reason: str = ""
    otp_verified: bool = False


class RevertRequest(BaseModel):
    reason: str = ""


class DocumentVerification(BaseModel):
    document_id: str
    status: DocumentVerificationStatus
    notes: Optional[str] = None


class ScrutinyRequest(BaseModel):
    verifications: list[DocumentVerification]


class AcceptRequest(BaseModel):
    """DTDO acceptance, optionally scheduling the inspection in one step"""

    remarks: str = ""
    inspection_date: Optional[datetime] = None
    assigned_to: Optional[str] = None
    special_instructions: Optional[str] = None


class ScheduleInspectionRequest(BaseModel):
    inspection_date: datetime
    assigned_to: str = Field(..., min_length=1)
    special_instructions: Optional[str] = None


class InspectionReportRequest(BaseModel):
    """Site inspection findings submitted by the assigned DA"""

    actual_inspection_date: date
    room_count_verified: bool = False
    actual_room_count: Optional[int] = Field(None, ge=0)
    category_meets_standards: bool = False
    recommended_category: Optional[Category] = None
    mandatory_checklist: Optional[dict[str, Any]] = None
    mandatory_remarks: Optional[str] = None
    desirable_checklist: Optional[dict[str, Any]] = None
    desirable_remarks: Optional[str] = None
    fire_safety_compliant: bool = False
    structural_safety: bool = False
    overall_satisfactory: bool = False
    recommendation: str = "approve"
    detailed_findings: Optional[str] = None
    early_inspection_override: bool = False
    early_inspection_reason: Optional[str] = None


class PaymentSignal(BaseModel):
    payment_reference: str = Field(..., min_length=1, max_length=255)
    amount: Optional[float] = Field(None, ge=0)


class CorrectionRequest(BaseModel):
    """Post-approval field correction by the DTDO"""

    changes: dict[str, Any]
    reason: str = ""


class InspectionOrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    application_id: str
    scheduled_by: str
    assigned_to: str
    inspection_date: datetime
    inspection_address: Optional[str]
    special_instructions: Optional[str]
    status: str
    created_at: datetime


class InspectionReportResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    inspection_order_id: str
    application_id: str
    submitted_by: str
    actual_inspection_date: date
    recommendation: str
    overall_satisfactory: bool
    early_inspection_override: bool
    early_inspection_reason: Optional[str]
    created_at: datetime


class AuditRecordResponse(BaseModel):
    """Single timeline entry"""

    model_config = ConfigDict(from_attributes=True)

    id: int
    application_id: str
    actor_id: Optional[str]
    actor_role: Optional[str]
    action: str
    previous_status: Optional[str]
    new_status: Optional[str]
    feedback: Optional[str]
    details: Optional[dict[str, Any]]
    created_at: datetime


class TimelineResponse(BaseModel):
    application_id: str
    actions: list[AuditRecordResponse]


class WorkflowSettingUpdate(BaseModel):
    value: Any
