"""
Application lifecycle engine

Every public operation is one unit of work: load the application (row
locked), check role, district and status guards, mutate, write exactly one
audit entry, commit. Refused attempts leave no trace. Notifications are not
sent here; they are returned as effects for the caller to dispatch after the
commit.
"""
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Optional

from sqlalchemy.orm import Session

from ..core.auth import AuthContext, DA_ROLE
from ..core.errors import (
    CategoryInvalid,
    DuplicateActive,
    Forbidden,
    GuardFailed,
    InvalidState,
    NotFound,
    OtpRequired,
    ValidationFailed,
)
from ..db.models import Application, ApplicationAction, ApplicationDocument, InspectionOrder, InspectionReport
from ..schemas.applications import ResubmitRequest
from ..schemas.enums import (
    ApplicationKind,
    ApplicationStatus,
    Category,
    DocumentVerificationStatus,
    InspectionOrderStatus,
    LocationType,
    OwnerGender,
    PaymentStatus,
    SiteInspectionOutcome,
)
from ..schemas.workflow import DocumentVerification, InspectionReportRequest
from ..utils.clock import utcnow
from ..utils.districts import district_code, districts_match
from .audit import audit_service
from .compliance import (
    calculate_fee,
    check_capacity,
    check_gstin,
    highest_room_rate,
    room_rows,
    ROOM_TYPES,
    validate_category_selection,
)
from .documents import check_documents_reviewed
from .drafts import ONE_APPLICATION_MESSAGE, apply_fields, replace_documents
from .lineage import LineageManager, NO_PARENT_MESSAGE
from .notifications import NotificationEffect
from .repository import ApplicationRepository, transaction
from .settings import WorkflowConfig
from .transitions import Operation, can_apply, check_transition

logger = logging.getLogger(__name__)

AUTO_REJECT_NOTICE = "APPLICATION AUTO-REJECTED: Application was sent back twice."

OUTCOME_BY_RECOMMENDATION = {
    "raise_objections": SiteInspectionOutcome.OBJECTION,
    "approve": SiteInspectionOutcome.RECOMMENDED,
}

# Fields a DTDO may patch on an approved registration
CORRECTABLE_FIELDS = frozenset({
    "owner_name",
    "owner_gender",
    "guardian_name",
    "owner_aadhaar",
    "owner_mobile",
    "owner_email",
    "property_name",
    "address",
    "pincode",
    "tehsil",
    "latitude",
    "longitude",
    "single_bed_rooms",
    "single_bed_beds",
    "single_bed_room_rate",
    "double_bed_rooms",
    "double_bed_beds",
    "double_bed_room_rate",
    "family_suites",
    "family_suite_beds",
    "family_suite_rate",
    "attached_washrooms",
})

# Kinds that do not change rooms or tariffs
_NO_CAPACITY_CHECK_KINDS = frozenset({ApplicationKind.CANCEL_CERTIFICATE})

# Kinds approved without re-validating the tariff band
_NO_REAPPROVAL_CHECK_KINDS = _NO_CAPACITY_CHECK_KINDS | {ApplicationKind.LEGACY_RC}


@dataclass
class TransitionResult:
    """Committed application state plus the notifications it owes"""

    application: Application
    effects: list[NotificationEffect] = field(default_factory=list)
    inspection_order: Optional[InspectionOrder] = None
    inspection_report: Optional[InspectionReport] = None


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _add_years(value: datetime, years: int) -> datetime:
    try:
        return value.replace(year=value.year + years)
    except ValueError:
        # 29 February
        return value.replace(year=value.year + years, day=28)


class LifecycleService:
    """Role-gated transitions over the application state machine"""

    def __init__(
        self,
        db: Session,
        config: WorkflowConfig,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.config = config
        self.clock = clock
        self.repository = ApplicationRepository(db)
        self.lineage = LineageManager(db)

    # ------------------------------------------------------------------
    # Guards
    # ------------------------------------------------------------------

    @staticmethod
    def _require_text(value: Optional[str], label: str) -> str:
        text = (value or "").strip()
        if not text:
            raise ValidationFailed(f"{label} is required")
        return text

    @staticmethod
    def _require_owner(actor: AuthContext, application: Application) -> None:
        if not actor.is_owner or application.user_id != actor.user_id:
            raise Forbidden("Only the applicant can perform this action")

    @staticmethod
    def _require_district(actor: AuthContext, application: Application) -> None:
        if not actor.district:
            raise Forbidden("Your account is not mapped to a district")
        if not districts_match(actor.district, application.district):
            raise Forbidden("This application belongs to another district")

    def _require_da(self, actor: AuthContext, application: Application) -> None:
        if not actor.is_da:
            raise Forbidden("Only a Dealing Assistant can perform this action")
        self._require_district(actor, application)

    def _require_dtdo(self, actor: AuthContext, application: Application) -> None:
        if not actor.is_dtdo:
            raise Forbidden("Only the District Tourism Development Officer can perform this action")
        self._require_district(actor, application)

    @staticmethod
    def _ensure_can(application: Application, operation: Operation) -> None:
        if not can_apply(application.status_enum, operation):
            raise InvalidState(
                f"Operation '{operation.value}' is not allowed while the application is "
                f"'{application.status}'"
            )

    # ------------------------------------------------------------------
    # Mutation helpers
    # ------------------------------------------------------------------

    def _move(
        self,
        application: Application,
        operation: Operation,
        target: ApplicationStatus,
        action: str,
        actor: Optional[AuthContext],
        feedback: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
        stage: Optional[str] = None,
    ) -> ApplicationStatus:
        """Apply a checked status change and its audit entry"""
        previous = application.status_enum
        check_transition(previous, operation, target)
        application.status = target.value
        application.current_stage = stage or target.value
        audit_service.log(
            self.db,
            application,
            action=action,
            previous_status=previous.value,
            new_status=target.value,
            actor=actor,
            feedback=feedback,
            details=details,
        )
        logger.info(
            "Application transitioned",
            extra={
                "application_id": application.id,
                "operation": operation.value,
                "action": action,
                "from_status": previous.value,
                "to_status": target.value,
            },
        )
        return previous

    @staticmethod
    def _notify(application: Application, event: str, recipient_id: Optional[str] = None, **extras) -> NotificationEffect:
        return NotificationEffect(
            event=event,
            application_id=application.id,
            recipient_id=recipient_id or application.user_id,
            extras=extras,
        )

    def _validate_rooms_and_category(self, application: Application, min_rate: Optional[float] = None) -> None:
        """Hard capacity, tariff and category checks for (re)submission"""
        rows = room_rows(application)
        check_capacity(
            rows,
            application.attached_washrooms,
            self.config.max_rooms,
            self.config.max_beds,
            min_rate=min_rate,
        )
        for row in rows:
            beds_field = ROOM_TYPES[row.room_type].beds
            if row.quantity > 0 and getattr(application, beds_field) is None:
                setattr(application, beds_field, row.beds_per_room)

        if not application.category:
            raise ValidationFailed("Select a homestay category before submitting.")

        validation = validate_category_selection(
            Category(application.category),
            application.total_rooms,
            highest_room_rate(rows),
            self.config.rate_bands,
            self.config.max_rooms,
        )
        suggested = validation.suggested_category
        if (
            self.config.category_lock_to_recommended
            and suggested is not None
            and suggested.value != application.category
        ):
            logger.info(
                "Category locked to recommended",
                extra={
                    "application_id": application.id,
                    "selected_category": application.category,
                    "category": suggested.value,
                },
            )
            application.category = suggested.value
        elif not validation.is_valid:
            raise CategoryInvalid(
                validation.errors[0]
                if validation.errors
                else "The selected category does not match the nightly tariffs. "
                "Update the rates or choose a higher category."
            )

        check_gstin(Category(application.category), application.gstin)

    def _apply_fee(self, application: Application) -> None:
        if not application.location_type:
            raise ValidationFailed("Select the location type (MC/TCP/GP) before submitting.")
        fee = calculate_fee(
            Category(application.category),
            LocationType(application.location_type),
            application.certificate_validity_years or self.config.certificate_validity_years,
            OwnerGender(application.owner_gender) if application.owner_gender else None,
            bool(application.is_special_subdivision),
        )
        application.base_fee = fee.base_fee
        application.total_before_discounts = fee.total_before_discounts
        application.validity_discount = fee.validity_discount
        application.female_owner_discount = fee.female_owner_discount
        application.subdivision_discount = fee.subdivision_discount
        application.total_discount = fee.total_discount
        application.total_fee = fee.final_fee

    def _issue_certificate(
        self,
        application: Application,
        actor: AuthContext,
        operation: Operation,
        action: str,
        feedback: Optional[str] = None,
    ) -> list[NotificationEffect]:
        """Approve, stamp the certificate and retire any parent registration"""
        check_transition(application.status_enum, operation, ApplicationStatus.APPROVED)
        if application.kind_enum not in _NO_REAPPROVAL_CHECK_KINDS:
            self._validate_rooms_and_category(application)

        now = self.clock()
        years = application.certificate_validity_years or self.config.certificate_validity_years
        application.certificate_number = self.repository.next_certificate_number(now.year)
        application.certificate_issued_date = now
        application.certificate_expiry_date = _add_years(now, years)
        application.approved_at = now

        self._move(
            application,
            operation,
            ApplicationStatus.APPROVED,
            action,
            actor,
            feedback=feedback,
            details={"certificate_number": application.certificate_number},
            stage="final",
        )
        self.lineage.retire_parent(application, actor, now)
        return [
            self._notify(
                application,
                "application_approved",
                certificate_number=application.certificate_number,
            )
        ]

    def _cancel_certificate(
        self,
        application: Application,
        actor: AuthContext,
        operation: Operation,
        action: str,
        feedback: Optional[str] = None,
    ) -> list[NotificationEffect]:
        """Approve a cancellation request and cascade to the parent"""
        now = self.clock()
        check_transition(application.status_enum, operation, ApplicationStatus.CERTIFICATE_CANCELLED)
        application.approved_at = now
        application.certificate_expiry_date = now

        self._move(
            application,
            operation,
            ApplicationStatus.CERTIFICATE_CANCELLED,
            action,
            actor,
            feedback=feedback,
            stage="final",
        )
        parent = self.lineage.retire_parent(application, actor, now)
        return [
            self._notify(
                application,
                "certificate_cancelled",
                parent_application_number=parent.application_number if parent else None,
            )
        ]

    def _schedule(
        self,
        application: Application,
        actor: AuthContext,
        operation: Operation,
        inspection_date: datetime,
        assigned_to: str,
        special_instructions: Optional[str],
        feedback: Optional[str] = None,
    ) -> TransitionResult:
        check_transition(application.status_enum, operation, ApplicationStatus.INSPECTION_SCHEDULED)
        assignee = self.repository.get_user(assigned_to)
        if (
            assignee is None
            or assignee.role != DA_ROLE
            or not districts_match(assignee.district, application.district)
        ):
            raise ValidationFailed(
                "The inspecting officer must be a Dealing Assistant of the application's district"
            )

        now = self.clock()
        inspection_date = _naive_utc(inspection_date)
        order = InspectionOrder(
            id=f"insp_{uuid.uuid4().hex[:12]}",
            application_id=application.id,
            scheduled_by=actor.user_id,
            scheduled_date=now,
            assigned_to=assignee.id,
            assigned_date=now,
            inspection_date=inspection_date,
            inspection_address=application.address,
            special_instructions=special_instructions,
            status=InspectionOrderStatus.SCHEDULED.value,
        )
        self.db.add(order)

        application.site_inspection_scheduled_date = inspection_date
        application.site_inspection_officer_id = assignee.id
        self._move(
            application,
            operation,
            ApplicationStatus.INSPECTION_SCHEDULED,
            "inspection_scheduled",
            actor,
            feedback=feedback or f"Site inspection scheduled for {inspection_date.date().isoformat()}",
            details={"inspection_order_id": order.id, "assigned_to": assignee.id},
        )

        when = inspection_date.date().isoformat()
        return TransitionResult(
            application=application,
            effects=[
                self._notify(application, "inspection_scheduled", inspection_date=when),
                self._notify(application, "inspection_assigned", recipient_id=assignee.id, inspection_date=when),
            ],
            inspection_order=order,
        )

    def _commit(self, result: TransitionResult) -> TransitionResult:
        self.db.refresh(result.application)
        return result

    # ------------------------------------------------------------------
    # Owner operations
    # ------------------------------------------------------------------

    def submit(self, application_id: str, actor: AuthContext) -> TransitionResult:
        """
        Submit a draft for scrutiny

        Enforces the room/bed ceilings, per-room-type tariffs, category band
        and GSTIN rules, and the one-registration-per-owner rule. Legacy RC
        onboarding goes straight to its own review queue.
        """
        with transaction(self.db, Operation.SUBMIT.value, application_id):
            application = self.repository.get(application_id, for_update=True)
            self._require_owner(actor, application)
            self._ensure_can(application, Operation.SUBMIT)
            kind = application.kind_enum

            if kind in (ApplicationKind.NEW_REGISTRATION, ApplicationKind.LEGACY_RC):
                other = (
                    self.db.query(Application)
                    .filter(
                        Application.user_id == actor.user_id,
                        Application.id != application.id,
                        Application.application_kind.in_(
                            [ApplicationKind.NEW_REGISTRATION.value, ApplicationKind.LEGACY_RC.value]
                        ),
                        Application.status != ApplicationStatus.DRAFT.value,
                    )
                    .first()
                )
                if other:
                    raise DuplicateActive(
                        ONE_APPLICATION_MESSAGE,
                        existing_application_id=other.id,
                        status=other.status,
                    )
            elif not application.parent_application_id:
                raise ValidationFailed(NO_PARENT_MESSAGE)

            if kind not in _NO_CAPACITY_CHECK_KINDS:
                self._validate_rooms_and_category(application)
                self._apply_fee(application)

            expected_code = district_code(application.district)
            if application.application_number.split("-")[3] != expected_code:
                application.application_number = self.repository.next_application_number(
                    application.district, kind, self.clock().year
                )

            target = (
                ApplicationStatus.LEGACY_RC_REVIEW
                if kind == ApplicationKind.LEGACY_RC
                else ApplicationStatus.SUBMITTED
            )
            application.submitted_at = self.clock()
            self._move(
                application,
                Operation.SUBMIT,
                target,
                "owner_submitted",
                actor,
                feedback="Application submitted by owner",
            )
            result = TransitionResult(
                application=application,
                effects=[self._notify(application, "application_submitted")],
            )
        return self._commit(result)

    def resubmit_correction(
        self,
        application_id: str,
        actor: AuthContext,
        payload: Optional[ResubmitRequest] = None,
    ) -> TransitionResult:
        """
        Resubmit after a send-back, revert or objection

        Corrected fields are re-validated with the per-room-type minimum
        tariff. The target queue is the configured one; legacy RC cases go
        back to their own review unless corrections are routed to the DTDO.
        """
        with transaction(self.db, Operation.RESUBMIT_CORRECTION.value, application_id):
            application = self.repository.get(application_id, for_update=True)
            self._require_owner(actor, application)
            self._ensure_can(application, Operation.RESUBMIT_CORRECTION)
            kind = application.kind_enum

            if payload is not None:
                apply_fields(application, payload)
                if payload.documents is not None:
                    replace_documents(self.db, application, payload.documents, self.config)

            if kind not in _NO_CAPACITY_CHECK_KINDS:
                self._validate_rooms_and_category(application, min_rate=self.config.min_room_rate)
                self._apply_fee(application)

            if self.config.correction_resubmit_target == "dtdo":
                target = ApplicationStatus.DTDO_REVIEW
            elif kind == ApplicationKind.LEGACY_RC:
                target = ApplicationStatus.LEGACY_RC_REVIEW
            else:
                target = ApplicationStatus.UNDER_SCRUTINY

            cycle = (application.correction_submission_count or 0) + 1
            application.correction_submission_count = cycle
            application.clarification_requested = None
            application.dtdo_remarks = None
            application.district_notes = None
            application.submitted_at = self.clock()

            self._move(
                application,
                Operation.RESUBMIT_CORRECTION,
                target,
                "correction_resubmitted",
                actor,
                feedback=f"Corrections submitted by the applicant (cycle {cycle})",
            )
            result = TransitionResult(
                application=application,
                effects=[self._notify(application, "application_submitted", cycle=cycle)],
            )
        return self._commit(result)

    # ------------------------------------------------------------------
    # Dealing Assistant operations
    # ------------------------------------------------------------------

    def start_scrutiny(self, application_id: str, actor: AuthContext) -> TransitionResult:
        with transaction(self.db, Operation.START_SCRUTINY.value, application_id):
            application = self.repository.get(application_id, for_update=True)
            self._require_da(actor, application)
            self._ensure_can(application, Operation.START_SCRUTINY)

            application.da_id = actor.user_id
            application.da_review_date = self.clock()
            self._move(
                application,
                Operation.START_SCRUTINY,
                ApplicationStatus.UNDER_SCRUTINY,
                "start_scrutiny",
                actor,
                feedback="Scrutiny started",
            )
            result = TransitionResult(application=application)
        return self._commit(result)

    def save_scrutiny(
        self,
        application_id: str,
        actor: AuthContext,
        verifications: Iterable[DocumentVerification],
    ) -> TransitionResult:
        """Record per-document verdicts; no status change and no audit entry"""
        with transaction(self.db, "save_scrutiny", application_id):
            application = self.repository.get(application_id, for_update=True)
            self._require_da(actor, application)
            if application.status_enum not in (
                ApplicationStatus.UNDER_SCRUTINY,
                ApplicationStatus.LEGACY_RC_REVIEW,
            ):
                raise InvalidState("Documents can only be verified while the application is under scrutiny")

            documents = {doc.id: doc for doc in self.repository.documents(application.id)}
            now = self.clock()
            for verification in verifications:
                document: Optional[ApplicationDocument] = documents.get(verification.document_id)
                if document is None:
                    raise NotFound(f"Document not found: {verification.document_id}")
                if (
                    verification.status != DocumentVerificationStatus.VERIFIED
                    and not (verification.notes or "").strip()
                ):
                    raise ValidationFailed(
                        f"Add a note explaining why {document.file_name} is marked {verification.status.value}"
                    )
                document.verification_status = verification.status.value
                document.verification_notes = verification.notes
                document.verified_by = actor.user_id
                document.verification_date = now

            application.da_id = actor.user_id
            application.da_review_date = now
            result = TransitionResult(application=application)
        return self._commit(result)

    def forward_to_dtdo(self, application_id: str, actor: AuthContext, remarks: str) -> TransitionResult:
        remarks = self._require_text(remarks, "Scrutiny remarks")
        with transaction(self.db, Operation.FORWARD_TO_DTDO.value, application_id):
            application = self.repository.get(application_id, for_update=True)
            self._require_da(actor, application)
            self._ensure_can(application, Operation.FORWARD_TO_DTDO)

            if (
                application.status_enum == ApplicationStatus.LEGACY_RC_REVIEW
                and not self.config.legacy_forward_enabled
            ):
                raise GuardFailed("Forwarding legacy RC verifications to the DTDO is disabled")
            if application.kind_enum != ApplicationKind.CANCEL_CERTIFICATE:
                check_documents_reviewed(
                    self.repository.documents(application.id),
                    self.config.required_document_types,
                )

            now = self.clock()
            application.da_id = actor.user_id
            application.da_review_date = now
            application.da_forwarded_date = now
            application.da_remarks = remarks
            self._move(
                application,
                Operation.FORWARD_TO_DTDO,
                ApplicationStatus.FORWARDED_TO_DTDO,
                "forwarded_to_dtdo",
                actor,
                feedback=remarks,
            )
            result = TransitionResult(
                application=application,
                effects=[self._notify(application, "forwarded_to_dtdo")],
            )
        return self._commit(result)

    def send_back(
        self,
        application_id: str,
        actor: AuthContext,
        reason: str,
        otp_verified: bool = False,
    ) -> TransitionResult:
        """
        DA send-back to the applicant

        The first send-back needs an OTP confirmation; a second one
        auto-rejects the application instead.
        """
        reason = self._require_text(reason, "Reason for sending back")
        with transaction(self.db, Operation.SEND_BACK.value, application_id):
            application = self.repository.get(application_id, for_update=True)
            self._require_da(actor, application)
            self._ensure_can(application, Operation.SEND_BACK)
            result = self._escalate(application, actor, reason, Operation.SEND_BACK, otp_verified)
        return self._commit(result)

    def _escalate(
        self,
        application: Application,
        actor: AuthContext,
        reason: str,
        operation: Operation,
        otp_verified: bool = False,
    ) -> TransitionResult:
        """One correction cycle per application; the second request rejects it"""
        revert_count = application.revert_count or 0
        by_da = operation == Operation.SEND_BACK
        now = self.clock()

        if revert_count >= 1:
            rejection_reason = f"{AUTO_REJECT_NOTICE} Original reason: {reason}"
            application.rejection_reason = rejection_reason
            application.revert_count = revert_count + 1
            application.clarification_requested = None
            if by_da:
                application.da_id = actor.user_id
                application.da_review_date = now
                application.da_remarks = reason
            else:
                application.dtdo_id = actor.user_id
                application.dtdo_review_date = now
                application.dtdo_remarks = reason

            step = "send-back" if by_da else "revert"
            self._move(
                application,
                operation,
                ApplicationStatus.REJECTED,
                "auto_rejected",
                actor,
                feedback=f"Auto-rejected on 2nd {step}. Reason: {reason}",
                details={"revert_count": application.revert_count},
            )
            logger.info(
                "Application auto-rejected after repeated corrections",
                extra={"application_id": application.id, "revert_count": application.revert_count},
            )
            return TransitionResult(
                application=application,
                effects=[self._notify(application, "application_rejected", remarks=rejection_reason)],
            )

        if by_da and not otp_verified:
            raise OtpRequired(
                "OTP verification is required before sending the application back to the applicant",
                revert_count=revert_count,
            )

        application.revert_count = revert_count + 1
        application.clarification_requested = reason
        if by_da:
            target, action, event = ApplicationStatus.REVERTED_TO_APPLICANT, "reverted_by_da", "da_send_back"
            application.da_id = actor.user_id
            application.da_review_date = now
            application.da_remarks = reason
        else:
            target, action, event = ApplicationStatus.REVERTED_BY_DTDO, "dtdo_revert", "dtdo_revert"
            application.dtdo_id = actor.user_id
            application.dtdo_review_date = now
            application.dtdo_remarks = reason

        self._move(application, operation, target, action, actor, feedback=reason)
        return TransitionResult(
            application=application,
            effects=[self._notify(application, event, remarks=reason)],
        )

    def complete_inspection(
        self,
        order_id: str,
        actor: AuthContext,
        report: InspectionReportRequest,
    ) -> TransitionResult:
        """
        File the site inspection report for an order

        Only the assigned DA may file it, once. An inspection held before the
        scheduled date needs an explicit override with a justification and
        may be at most the configured number of days early.
        """
        with transaction(self.db, Operation.COMPLETE_INSPECTION.value, order_id):
            order = (
                self.db.query(InspectionOrder).filter_by(id=order_id).with_for_update().first()
            )
            if not order:
                raise NotFound(f"Inspection order not found: {order_id}")
            if not actor.is_da or order.assigned_to != actor.user_id:
                raise Forbidden("Only the assigned officer can submit this inspection report")

            existing = self.db.query(InspectionReport).filter_by(inspection_order_id=order.id).first()
            if existing or order.status == InspectionOrderStatus.COMPLETED.value:
                raise GuardFailed("An inspection report has already been submitted for this order")

            application = self.repository.get(order.application_id, for_update=True)
            self._ensure_can(application, Operation.COMPLETE_INSPECTION)

            now = self.clock()
            actual = report.actual_inspection_date
            if actual > now.date():
                raise ValidationFailed("The inspection date cannot be in the future")

            findings = report.detailed_findings
            early_reason = None
            scheduled = order.inspection_date.date()
            if actual < scheduled:
                if not report.early_inspection_override:
                    raise ValidationFailed(
                        "The inspection date is earlier than the scheduled date. "
                        "Confirm the early-inspection override and give a reason."
                    )
                early_reason = (report.early_inspection_reason or "").strip()
                minimum = self.config.early_inspection_reason_min_length
                if len(early_reason) < minimum:
                    raise ValidationFailed(
                        f"Explain the early inspection in at least {minimum} characters"
                    )
                window = self.config.early_inspection_window_days
                if (scheduled - actual).days > window:
                    raise ValidationFailed(
                        f"Early inspections are limited to {window} days before the scheduled date"
                    )
                note = f"[Early inspection override] {early_reason}"
                findings = f"{note}\n\n{findings}" if findings else note

            recommendation = (report.recommendation or "").strip() or "approve"
            inspection_report = InspectionReport(
                id=f"rpt_{uuid.uuid4().hex[:12]}",
                inspection_order_id=order.id,
                application_id=application.id,
                submitted_by=actor.user_id,
                submitted_date=now,
                actual_inspection_date=actual,
                room_count_verified=report.room_count_verified,
                actual_room_count=report.actual_room_count,
                category_meets_standards=report.category_meets_standards,
                recommended_category=(
                    report.recommended_category.value if report.recommended_category else None
                ),
                mandatory_checklist=report.mandatory_checklist,
                mandatory_remarks=report.mandatory_remarks,
                desirable_checklist=report.desirable_checklist,
                desirable_remarks=report.desirable_remarks,
                fire_safety_compliant=report.fire_safety_compliant,
                structural_safety=report.structural_safety,
                overall_satisfactory=report.overall_satisfactory,
                recommendation=recommendation,
                detailed_findings=findings,
                early_inspection_override=early_reason is not None,
                early_inspection_reason=early_reason,
            )
            self.db.add(inspection_report)
            order.status = InspectionOrderStatus.COMPLETED.value

            outcome = OUTCOME_BY_RECOMMENDATION.get(recommendation, SiteInspectionOutcome.COMPLETED)
            application.site_inspection_outcome = outcome.value
            application.site_inspection_completed_date = now
            application.site_inspection_notes = findings
            application.inspection_report_id = inspection_report.id
            application.clarification_requested = None
            application.rejection_reason = None

            self._move(
                application,
                Operation.COMPLETE_INSPECTION,
                ApplicationStatus.INSPECTION_UNDER_REVIEW,
                "inspection_completed",
                actor,
                feedback=f"Inspection completed; recommendation: {recommendation}",
                details={"inspection_report_id": inspection_report.id, "outcome": outcome.value},
                stage=ApplicationStatus.INSPECTION_COMPLETED.value,
            )
            result = TransitionResult(application=application, inspection_report=inspection_report)
        return self._commit(result)

    # ------------------------------------------------------------------
    # DTDO operations
    # ------------------------------------------------------------------

    def accept_and_schedule(
        self,
        application_id: str,
        actor: AuthContext,
        remarks: str,
        inspection_date: Optional[datetime] = None,
        assigned_to: Optional[str] = None,
        special_instructions: Optional[str] = None,
    ) -> TransitionResult:
        """
        Accept a forwarded application

        Delete-rooms requests are approved directly and cancellation requests
        are cancelled directly, both without a site visit. Otherwise the
        inspection is scheduled when a date and officer are supplied, or the
        application is parked in dtdo_review.
        """
        remarks = self._require_text(remarks, "Remarks")
        if bool(inspection_date) != bool(assigned_to):
            raise ValidationFailed(
                "Provide both an inspection date and an inspecting officer to schedule the inspection"
            )

        with transaction(self.db, Operation.ACCEPT.value, application_id):
            application = self.repository.get(application_id, for_update=True)
            self._require_dtdo(actor, application)
            self._ensure_can(application, Operation.ACCEPT)

            application.dtdo_id = actor.user_id
            application.dtdo_review_date = self.clock()
            application.dtdo_remarks = remarks
            kind = application.kind_enum

            if kind == ApplicationKind.DELETE_ROOMS:
                effects = self._issue_certificate(
                    application, actor, Operation.ACCEPT, "dtdo_accept", feedback=remarks
                )
                result = TransitionResult(application=application, effects=effects)
            elif kind == ApplicationKind.CANCEL_CERTIFICATE:
                effects = self._cancel_certificate(
                    application, actor, Operation.ACCEPT, "dtdo_accept", feedback=remarks
                )
                result = TransitionResult(application=application, effects=effects)
            elif inspection_date and assigned_to:
                result = self._schedule(
                    application,
                    actor,
                    Operation.ACCEPT,
                    inspection_date,
                    assigned_to,
                    special_instructions,
                    feedback=remarks,
                )
            else:
                self._move(
                    application,
                    Operation.ACCEPT,
                    ApplicationStatus.DTDO_REVIEW,
                    "dtdo_accept",
                    actor,
                    feedback=remarks,
                )
                result = TransitionResult(application=application)
        return self._commit(result)

    def schedule_inspection(
        self,
        application_id: str,
        actor: AuthContext,
        inspection_date: datetime,
        assigned_to: str,
        special_instructions: Optional[str] = None,
    ) -> TransitionResult:
        with transaction(self.db, Operation.SCHEDULE_INSPECTION.value, application_id):
            application = self.repository.get(application_id, for_update=True)
            self._require_dtdo(actor, application)
            self._ensure_can(application, Operation.SCHEDULE_INSPECTION)
            result = self._schedule(
                application,
                actor,
                Operation.SCHEDULE_INSPECTION,
                inspection_date,
                assigned_to,
                special_instructions,
            )
        return self._commit(result)

    def reject(self, application_id: str, actor: AuthContext, remarks: str) -> TransitionResult:
        remarks = self._require_text(remarks, "Reason for rejection")
        with transaction(self.db, Operation.REJECT.value, application_id):
            application = self.repository.get(application_id, for_update=True)
            self._require_dtdo(actor, application)
            self._ensure_can(application, Operation.REJECT)
            result = self._reject(application, actor, Operation.REJECT, "dtdo_reject", remarks)
        return self._commit(result)

    def _reject(
        self,
        application: Application,
        actor: AuthContext,
        operation: Operation,
        action: str,
        remarks: str,
    ) -> TransitionResult:
        application.rejection_reason = remarks
        application.dtdo_id = actor.user_id
        application.dtdo_review_date = self.clock()
        application.dtdo_remarks = remarks
        self._move(application, operation, ApplicationStatus.REJECTED, action, actor, feedback=remarks)
        return TransitionResult(
            application=application,
            effects=[self._notify(application, "application_rejected", remarks=remarks)],
        )

    def revert(self, application_id: str, actor: AuthContext, reason: str) -> TransitionResult:
        """DTDO revert to the applicant, subject to the same one-cycle cap"""
        reason = self._require_text(reason, "Reason for reverting")
        with transaction(self.db, Operation.REVERT.value, application_id):
            application = self.repository.get(application_id, for_update=True)
            self._require_dtdo(actor, application)
            self._ensure_can(application, Operation.REVERT)
            result = self._escalate(application, actor, reason, Operation.REVERT)
        return self._commit(result)

    def approve_inspection(self, application_id: str, actor: AuthContext, remarks: str = "") -> TransitionResult:
        """
        Accept the inspection outcome

        Upfront-paid and legacy RC applications get their certificate now;
        everything else waits for payment in verified_for_payment.
        """
        with transaction(self.db, Operation.APPROVE_INSPECTION.value, application_id):
            application = self.repository.get(application_id, for_update=True)
            self._require_dtdo(actor, application)
            self._ensure_can(application, Operation.APPROVE_INSPECTION)

            remarks = (remarks or "").strip() or None
            application.dtdo_id = actor.user_id
            application.dtdo_review_date = self.clock()
            if remarks:
                application.dtdo_remarks = remarks

            if (
                application.payment_status == PaymentStatus.PAID.value
                or application.kind_enum == ApplicationKind.LEGACY_RC
            ):
                effects = self._issue_certificate(
                    application, actor, Operation.APPROVE_INSPECTION, "approved", feedback=remarks
                )
            else:
                self._move(
                    application,
                    Operation.APPROVE_INSPECTION,
                    ApplicationStatus.VERIFIED_FOR_PAYMENT,
                    "verified_for_payment",
                    actor,
                    feedback=remarks,
                    stage="payment_pending",
                )
                effects = [
                    self._notify(application, "verified_for_payment", amount=application.total_fee)
                ]
            result = TransitionResult(application=application, effects=effects)
        return self._commit(result)

    def reject_inspection(self, application_id: str, actor: AuthContext, remarks: str) -> TransitionResult:
        remarks = self._require_text(remarks, "Reason for rejection")
        with transaction(self.db, Operation.REJECT_INSPECTION.value, application_id):
            application = self.repository.get(application_id, for_update=True)
            self._require_dtdo(actor, application)
            self._ensure_can(application, Operation.REJECT_INSPECTION)
            result = self._reject(
                application, actor, Operation.REJECT_INSPECTION, "inspection_rejected", remarks
            )
        return self._commit(result)

    def raise_objections(self, application_id: str, actor: AuthContext, remarks: str) -> TransitionResult:
        remarks = self._require_text(remarks, "Objections")
        with transaction(self.db, Operation.RAISE_OBJECTIONS.value, application_id):
            application = self.repository.get(application_id, for_update=True)
            self._require_dtdo(actor, application)
            self._ensure_can(application, Operation.RAISE_OBJECTIONS)

            application.dtdo_id = actor.user_id
            application.dtdo_review_date = self.clock()
            application.dtdo_remarks = remarks
            application.clarification_requested = remarks
            self._move(
                application,
                Operation.RAISE_OBJECTIONS,
                ApplicationStatus.OBJECTION_RAISED,
                "objection_raised",
                actor,
                feedback=remarks,
            )
            result = TransitionResult(
                application=application,
                effects=[self._notify(application, "dtdo_objection", remarks=remarks)],
            )
        return self._commit(result)

    def approve_bypass(self, application_id: str, actor: AuthContext, remarks: str = "") -> TransitionResult:
        """Approve without a site inspection for inspection-optional kinds"""
        with transaction(self.db, Operation.APPROVE_BYPASS.value, application_id):
            application = self.repository.get(application_id, for_update=True)
            self._require_dtdo(actor, application)
            self._ensure_can(application, Operation.APPROVE_BYPASS)

            kind = application.kind_enum
            if not self.config.bypass_allowed(kind):
                raise GuardFailed(
                    f"Inspection bypass is not enabled for {kind.value.replace('_', ' ')} applications"
                )

            remarks = (remarks or "").strip() or "Approved without site inspection"
            application.dtdo_id = actor.user_id
            application.dtdo_review_date = self.clock()
            application.dtdo_remarks = remarks

            if kind == ApplicationKind.CANCEL_CERTIFICATE:
                effects = self._cancel_certificate(
                    application, actor, Operation.APPROVE_BYPASS, "cancellation_approved_bypass", remarks
                )
            else:
                effects = self._issue_certificate(
                    application, actor, Operation.APPROVE_BYPASS, "approved_bypass", remarks
                )
            result = TransitionResult(application=application, effects=effects)
        return self._commit(result)

    def approve_cancellation(self, application_id: str, actor: AuthContext, remarks: str = "") -> TransitionResult:
        """Cancel the certificate; the parent registration is cancelled with it"""
        with transaction(self.db, Operation.APPROVE_CANCELLATION.value, application_id):
            application = self.repository.get(application_id, for_update=True)
            self._require_dtdo(actor, application)
            if application.kind_enum != ApplicationKind.CANCEL_CERTIFICATE:
                raise GuardFailed("Only certificate cancellation requests can be approved as cancellations")
            self._ensure_can(application, Operation.APPROVE_CANCELLATION)

            remarks = (remarks or "").strip() or "Cancellation approved"
            application.dtdo_id = actor.user_id
            application.dtdo_review_date = self.clock()
            application.dtdo_remarks = remarks
            effects = self._cancel_certificate(
                application, actor, Operation.APPROVE_CANCELLATION, "cancellation_approved", remarks
            )
            result = TransitionResult(application=application, effects=effects)
        return self._commit(result)

    def revoke_certificate(self, application_id: str, actor: AuthContext, remarks: str) -> TransitionResult:
        remarks = self._require_text(remarks, "Reason for revocation")
        with transaction(self.db, Operation.REVOKE.value, application_id):
            application = self.repository.get(application_id, for_update=True)
            self._require_dtdo(actor, application)
            self._ensure_can(application, Operation.REVOKE)

            application.certificate_expiry_date = self.clock()
            application.district_notes = remarks
            application.dtdo_id = actor.user_id
            application.dtdo_review_date = self.clock()
            self._move(
                application,
                Operation.REVOKE,
                ApplicationStatus.REVOKED,
                "certificate_revoked",
                actor,
                feedback=remarks,
            )
            result = TransitionResult(
                application=application,
                effects=[self._notify(application, "certificate_revoked", remarks=remarks)],
            )
        return self._commit(result)

    def correct(
        self,
        application_id: str,
        actor: AuthContext,
        changes: dict[str, Any],
        reason: str,
    ) -> TransitionResult:
        """
        Patch allow-listed fields of an approved registration

        No status change. The audit entry carries a before/after diff and the
        mandatory reason.
        """
        reason = (reason or "").strip()
        minimum = self.config.correction_reason_min_length
        if len(reason) < minimum:
            raise ValidationFailed(f"Give a reason of at least {minimum} characters for the correction")
        if not changes:
            raise ValidationFailed("No fields to correct")
        disallowed = sorted(set(changes) - CORRECTABLE_FIELDS)
        if disallowed:
            raise ValidationFailed(f"These fields cannot be corrected: {', '.join(disallowed)}")
        if "owner_gender" in changes:
            try:
                changes = {**changes, "owner_gender": OwnerGender(changes["owner_gender"]).value}
            except ValueError:
                raise ValidationFailed(f"Invalid owner gender: {changes['owner_gender']}")

        with transaction(self.db, Operation.CORRECT.value, application_id):
            application = self.repository.get(application_id, for_update=True)
            self._require_dtdo(actor, application)
            self._ensure_can(application, Operation.CORRECT)

            diff: dict[str, dict[str, Any]] = {}
            for name, value in changes.items():
                before = getattr(application, name)
                if before == value:
                    continue
                try:
                    setattr(application, name, value)
                except ValueError as e:
                    raise ValidationFailed(str(e))
                diff[name] = {"before": before, "after": value}
            if not diff:
                raise ValidationFailed("The submitted values match the current record")

            self._move(
                application,
                Operation.CORRECT,
                ApplicationStatus.APPROVED,
                "dtdo_correction",
                actor,
                feedback=reason,
                details={"changes": diff, "reason": reason, "total_rooms": application.total_rooms},
                stage=application.current_stage,
            )
            result = TransitionResult(application=application)
        return self._commit(result)

    # ------------------------------------------------------------------
    # Payment signal
    # ------------------------------------------------------------------

    def record_payment(
        self,
        application_id: str,
        actor: AuthContext,
        payment_reference: str,
        amount: Optional[float] = None,
    ) -> TransitionResult:
        """
        React to the gateway's paid signal

        After verification the certificate is issued immediately; earlier in
        the pipeline the payment is only recorded for the upfront path.
        """
        if not (actor.is_system or actor.is_admin):
            raise Forbidden("Payment confirmations are accepted from the payment service only")

        with transaction(self.db, Operation.RECORD_PAYMENT.value, application_id):
            application = self.repository.get(application_id, for_update=True)
            self._ensure_can(application, Operation.RECORD_PAYMENT)
            if application.payment_status == PaymentStatus.PAID.value:
                raise GuardFailed("Payment has already been recorded for this application")
            if amount is not None and application.total_fee is not None and amount < application.total_fee:
                raise ValidationFailed(
                    f"Amount paid (₹{amount:,.2f}) is less than the fee due (₹{application.total_fee:,.2f})"
                )

            application.payment_status = PaymentStatus.PAID.value
            application.payment_reference = payment_reference
            application.payment_date = self.clock()
            feedback = f"Payment received (reference {payment_reference})"

            if application.status_enum == ApplicationStatus.VERIFIED_FOR_PAYMENT:
                effects = self._issue_certificate(
                    application, actor, Operation.RECORD_PAYMENT, "approved", feedback=feedback
                )
            else:
                current = application.status_enum
                self._move(
                    application,
                    Operation.RECORD_PAYMENT,
                    current,
                    "payment_received",
                    actor,
                    feedback=feedback,
                    stage=application.current_stage,
                )
                effects = []
            result = TransitionResult(application=application, effects=effects)
        return self._commit(result)

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    def get_application(self, application_id: str, actor: AuthContext) -> Application:
        application = self.repository.get(application_id)
        if actor.is_admin:
            return application
        if actor.is_owner and application.user_id == actor.user_id:
            return application
        if actor.is_da or actor.is_dtdo:
            self._require_district(actor, application)
            return application
        raise Forbidden("You are not allowed to view this application")

    def get_timeline(self, application_id: str, actor: AuthContext) -> list[ApplicationAction]:
        """Audit trail, visible to the applicant and to staff"""
        application = self.repository.get(application_id)
        if not (actor.is_staff or (actor.is_owner and application.user_id == actor.user_id)):
            raise Forbidden("You are not allowed to view this application's history")
        return audit_service.timeline(self.db, application.id)

    def district_queue(self, actor: AuthContext, statuses: Iterable[ApplicationStatus]) -> list[Application]:
        """Applications in the given statuses within the actor's district"""
        if not actor.district:
            raise Forbidden("Your account is not mapped to a district")
        candidates = (
            self.db.query(Application)
            .filter(Application.status.in_([status.value for status in statuses]))
            .order_by(Application.submitted_at.asc(), Application.created_at.asc())
            .all()
        )
        return [app for app in candidates if districts_match(actor.district, app.district)]
