from sqlalchemy import (
    Column,
    String,
    Float,
    Integer,
    Boolean,
    Date,
    DateTime,
    JSON,
    Text,
    ForeignKey,
    Index,
    event,
)
from sqlalchemy.orm import declarative_base, validates
from sqlalchemy.sql import func

from ..schemas.enums import (
    ApplicationKind,
    ApplicationStatus,
    DocumentVerificationStatus,
    InspectionOrderStatus,
    PaymentStatus,
)

Base = declarative_base()

ROOM_COUNT_FIELDS = ("single_bed_rooms", "double_bed_rooms", "family_suites")


class User(Base):
    """Owners and district staff as known to the identity provider"""

    __tablename__ = "users"

    id = Column(String, primary_key=True)
    role = Column(String, nullable=False, index=True)
    full_name = Column(String, nullable=False)
    mobile = Column(String, nullable=True)
    email = Column(String, nullable=True)
    district = Column(String, nullable=True, index=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, role={self.role}, district={self.district})>"


class Application(Base):
    """Homestay registration applications and post-approval service requests"""

    __tablename__ = "homestay_applications"

    # Identity
    id = Column(String, primary_key=True)
    application_number = Column(String, nullable=False, unique=True, index=True)
    user_id = Column(String, nullable=False, index=True)

    # Classification
    application_kind = Column(String, nullable=False, default=ApplicationKind.NEW_REGISTRATION.value)
    category = Column(String, nullable=True)

    # Lineage
    parent_application_id = Column(String, ForeignKey("homestay_applications.id"), nullable=True, index=True)
    parent_application_number = Column(String, nullable=True)
    parent_certificate_number = Column(String, nullable=True)
    service_context = Column(JSON, nullable=True)

    # Status tracking
    status = Column(String, nullable=False, default=ApplicationStatus.DRAFT.value, index=True)
    current_stage = Column(String, nullable=True)

    # Owner & property identity
    property_name = Column(String, nullable=True)
    owner_name = Column(String, nullable=True)
    owner_gender = Column(String, nullable=True)
    owner_mobile = Column(String, nullable=True)
    owner_email = Column(String, nullable=True)
    owner_aadhaar = Column(String, nullable=True)
    guardian_name = Column(String, nullable=True)
    address = Column(Text, nullable=True)
    district = Column(String, nullable=True, index=True)
    tehsil = Column(String, nullable=True)
    pincode = Column(String, nullable=True)
    location_type = Column(String, nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    gstin = Column(String, nullable=True)
    is_special_subdivision = Column(Boolean, nullable=False, default=False)
    certificate_validity_years = Column(Integer, nullable=False, default=1)

    # Capacity (total_rooms is derived from the three room counts)
    single_bed_rooms = Column(Integer, nullable=False, default=0)
    single_bed_beds = Column(Integer, nullable=True)
    single_bed_room_rate = Column(Float, nullable=True)
    double_bed_rooms = Column(Integer, nullable=False, default=0)
    double_bed_beds = Column(Integer, nullable=True)
    double_bed_room_rate = Column(Float, nullable=True)
    family_suites = Column(Integer, nullable=False, default=0)
    family_suite_beds = Column(Integer, nullable=True)
    family_suite_rate = Column(Float, nullable=True)
    attached_washrooms = Column(Integer, nullable=False, default=0)
    _total_rooms = Column("total_rooms", Integer, nullable=False, default=0)

    # Fee breakdown (snapshot at submission)
    base_fee = Column(Float, nullable=True)
    total_before_discounts = Column(Float, nullable=True)
    validity_discount = Column(Float, nullable=True)
    female_owner_discount = Column(Float, nullable=True)
    subdivision_discount = Column(Float, nullable=True)
    total_discount = Column(Float, nullable=True)
    total_fee = Column(Float, nullable=True)

    # Payment
    payment_status = Column(String, nullable=False, default=PaymentStatus.PENDING.value)
    payment_reference = Column(String, nullable=True)
    payment_date = Column(DateTime, nullable=True)

    # Review metadata
    da_id = Column(String, nullable=True)
    da_review_date = Column(DateTime, nullable=True)
    da_remarks = Column(Text, nullable=True)
    da_forwarded_date = Column(DateTime, nullable=True)
    dtdo_id = Column(String, nullable=True)
    dtdo_review_date = Column(DateTime, nullable=True)
    dtdo_remarks = Column(Text, nullable=True)
    district_notes = Column(Text, nullable=True)
    rejection_reason = Column(Text, nullable=True)
    clarification_requested = Column(Text, nullable=True)

    # Escalation counters
    revert_count = Column(Integer, nullable=False, default=0)
    correction_submission_count = Column(Integer, nullable=False, default=0)

    # Site inspection
    site_inspection_scheduled_date = Column(DateTime, nullable=True)
    site_inspection_officer_id = Column(String, nullable=True)
    site_inspection_outcome = Column(String, nullable=True)
    site_inspection_notes = Column(Text, nullable=True)
    site_inspection_completed_date = Column(DateTime, nullable=True)
    inspection_report_id = Column(String, nullable=True)

    # Certificate
    certificate_number = Column(String, nullable=True, unique=True, index=True)
    certificate_issued_date = Column(DateTime, nullable=True)
    certificate_expiry_date = Column(DateTime, nullable=True)
    approved_at = Column(DateTime, nullable=True)

    # Timestamps
    created_at = Column(DateTime, server_default=func.now(), nullable=False, index=True)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)
    submitted_at = Column(DateTime, nullable=True)

    # Optimistic concurrency
    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        Index("ix_applications_owner_created", "user_id", "created_at"),
        Index("ix_applications_district_status", "district", "status"),
    )

    @validates(*ROOM_COUNT_FIELDS)
    def _recompute_total_rooms(self, key: str, value):
        value = int(value or 0)
        if value < 0:
            raise ValueError(f"{key} cannot be negative")
        counts = {field: int(getattr(self, field) or 0) for field in ROOM_COUNT_FIELDS}
        counts[key] = value
        self._total_rooms = sum(counts.values())
        return value

    @property
    def total_rooms(self) -> int:
        return self._total_rooms or 0

    @property
    def status_enum(self) -> ApplicationStatus:
        return ApplicationStatus(self.status)

    @property
    def kind_enum(self) -> ApplicationKind:
        return ApplicationKind(self.application_kind)

    def __repr__(self) -> str:
        return f"<Application(id={self.id}, number={self.application_number}, status={self.status})>"


class ApplicationAction(Base):
    """Append-only audit trail of lifecycle transitions"""

    __tablename__ = "application_actions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    application_id = Column(String, ForeignKey("homestay_applications.id"), nullable=False, index=True)
    actor_id = Column(String, nullable=True)  # null for system actions
    actor_role = Column(String, nullable=True)
    action = Column(String, nullable=False, index=True)
    previous_status = Column(String, nullable=True)
    new_status = Column(String, nullable=True)
    feedback = Column(Text, nullable=True)
    details = Column(JSON, nullable=True)
    correlation_id = Column(String, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False, index=True)

    def __repr__(self) -> str:
        return f"<ApplicationAction(id={self.id}, app={self.application_id}, action={self.action})>"


@event.listens_for(ApplicationAction, "before_update")
def _reject_audit_update(mapper, connection, target):
    raise ValueError("Audit records are append-only and cannot be updated")


@event.listens_for(ApplicationAction, "before_delete")
def _reject_audit_delete(mapper, connection, target):
    raise ValueError("Audit records are append-only and cannot be deleted")


class ApplicationDocument(Base):
    """Uploaded supporting documents and their scrutiny verdicts"""

    __tablename__ = "application_documents"

    id = Column(String, primary_key=True)
    application_id = Column(String, ForeignKey("homestay_applications.id"), nullable=False, index=True)
    document_type = Column(String, nullable=False)
    file_name = Column(String, nullable=False)
    file_path = Column(String, nullable=False)
    file_size = Column(Integer, nullable=False)
    mime_type = Column(String, nullable=False)

    verification_status = Column(
        String, nullable=False, default=DocumentVerificationStatus.PENDING.value
    )
    verification_notes = Column(Text, nullable=True)
    verified_by = Column(String, nullable=True)
    verification_date = Column(DateTime, nullable=True)

    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    def __repr__(self) -> str:
        return f"<ApplicationDocument(id={self.id}, type={self.document_type}, status={self.verification_status})>"


class InspectionOrder(Base):
    """Scheduled site visit for an application"""

    __tablename__ = "inspection_orders"

    id = Column(String, primary_key=True)
    application_id = Column(String, ForeignKey("homestay_applications.id"), nullable=False, index=True)
    scheduled_by = Column(String, nullable=False)
    scheduled_date = Column(DateTime, nullable=False)
    assigned_to = Column(String, nullable=False, index=True)
    assigned_date = Column(DateTime, nullable=False)
    inspection_date = Column(DateTime, nullable=False)
    inspection_address = Column(Text, nullable=True)
    special_instructions = Column(Text, nullable=True)
    status = Column(String, nullable=False, default=InspectionOrderStatus.SCHEDULED.value, index=True)

    created_at = Column(DateTime, server_default=func.now(), nullable=False, index=True)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self) -> str:
        return f"<InspectionOrder(id={self.id}, app={self.application_id}, status={self.status})>"


class InspectionReport(Base):
    """Outcome of a completed site inspection (one per order)"""

    __tablename__ = "inspection_reports"

    id = Column(String, primary_key=True)
    inspection_order_id = Column(String, ForeignKey("inspection_orders.id"), nullable=False, unique=True)
    application_id = Column(String, ForeignKey("homestay_applications.id"), nullable=False, index=True)
    submitted_by = Column(String, nullable=False)
    submitted_date = Column(DateTime, nullable=False)
    actual_inspection_date = Column(Date, nullable=False)

    room_count_verified = Column(Boolean, nullable=False, default=False)
    actual_room_count = Column(Integer, nullable=True)
    category_meets_standards = Column(Boolean, nullable=False, default=False)
    recommended_category = Column(String, nullable=True)

    mandatory_checklist = Column(JSON, nullable=True)
    mandatory_remarks = Column(Text, nullable=True)
    desirable_checklist = Column(JSON, nullable=True)
    desirable_remarks = Column(Text, nullable=True)

    fire_safety_compliant = Column(Boolean, nullable=False, default=False)
    structural_safety = Column(Boolean, nullable=False, default=False)
    overall_satisfactory = Column(Boolean, nullable=False, default=False)
    recommendation = Column(String, nullable=False)
    detailed_findings = Column(Text, nullable=True)

    early_inspection_override = Column(Boolean, nullable=False, default=False)
    early_inspection_reason = Column(Text, nullable=True)

    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    def __repr__(self) -> str:
        return f"<InspectionReport(id={self.id}, order={self.inspection_order_id}, recommendation={self.recommendation})>"


class Notification(Base):
    """In-app notification inbox"""

    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String, nullable=False, index=True)
    application_id = Column(String, nullable=True, index=True)
    event = Column(String, nullable=False)
    title = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    notification_metadata = Column("metadata", JSON, nullable=True)  # Renamed to avoid SQLAlchemy reserved word
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False, index=True)

    def __repr__(self) -> str:
        return f"<Notification(id={self.id}, user={self.user_id}, event={self.event})>"


class SystemSetting(Base):
    """Admin-maintained workflow policy overrides"""

    __tablename__ = "system_settings"

    setting_key = Column(String, primary_key=True)
    setting_value = Column(JSON, nullable=False)
    updated_by = Column(String, nullable=True)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self) -> str:
        return f"<SystemSetting(key={self.setting_key})>"
