"""
Parent/child lineage for post-approval service requests

A service request (add/delete rooms, change category, cancel, renewal) hangs
off the owner's approved registration. Approval of the child retires the
parent: superseded for amendments, certificate_cancelled for cancellations.
"""
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ..core.auth import AuthContext
from ..core.errors import DuplicateActive, ValidationFailed
from ..db.models import Application
from ..schemas.enums import (
    ApplicationKind,
    ApplicationStatus,
    PARENT_KINDS,
    SERVICE_KINDS,
    TERMINAL_STATUSES,
)
from .audit import audit_service
from .repository import ApplicationRepository
from .transitions import Operation, check_transition

logger = logging.getLogger(__name__)

# Seeded from the parent so the owner edits deltas instead of re-entering
LINEAGE_COPY_FIELDS = (
    "property_name",
    "category",
    "owner_name",
    "owner_gender",
    "owner_mobile",
    "owner_email",
    "owner_aadhaar",
    "guardian_name",
    "address",
    "district",
    "tehsil",
    "pincode",
    "location_type",
    "latitude",
    "longitude",
    "gstin",
    "is_special_subdivision",
    "certificate_validity_years",
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
)

NO_PARENT_MESSAGE = (
    "You must have an approved Homestay Registration before applying for amendments or cancellation."
)


class LineageManager:
    def __init__(self, db: Session):
        self.db = db
        self.repository = ApplicationRepository(db)

    def resolve_parent(self, owner_id: str, parent_application_id: Optional[str] = None) -> Application:
        """The owner's current approved registration (or the named one)"""
        query = self.db.query(Application).filter(
            Application.user_id == owner_id,
            Application.status == ApplicationStatus.APPROVED.value,
            Application.application_kind.in_([kind.value for kind in PARENT_KINDS]),
        )
        if parent_application_id:
            query = query.filter(Application.id == parent_application_id)

        parent = query.order_by(Application.approved_at.desc(), Application.created_at.desc()).first()
        if not parent:
            raise ValidationFailed(NO_PARENT_MESSAGE)
        return parent

    def find_open_service_request(self, owner_id: str) -> Optional[Application]:
        return (
            self.db.query(Application)
            .filter(
                Application.user_id == owner_id,
                Application.application_kind != ApplicationKind.NEW_REGISTRATION.value,
                Application.status.notin_([status.value for status in TERMINAL_STATUSES]),
            )
            .order_by(Application.created_at.desc())
            .first()
        )

    def ensure_no_open_service_request(self, owner_id: str) -> None:
        existing = self.find_open_service_request(owner_id)
        if existing:
            kind = existing.application_kind.replace("_", " ")
            raise DuplicateActive(
                f"You already have an open {kind} request ({existing.application_number}) "
                f'in status "{existing.status}". Complete or withdraw it before starting another.',
                existing_application_id=existing.id,
                status=existing.status,
            )

    def seed_child(self, child: Application, parent: Application) -> None:
        for name in LINEAGE_COPY_FIELDS:
            setattr(child, name, getattr(parent, name))
        child.parent_application_id = parent.id
        child.parent_application_number = parent.application_number
        child.parent_certificate_number = parent.certificate_number

    def retire_parent(
        self,
        child: Application,
        actor: Optional[AuthContext],
        now: datetime,
    ) -> Optional[Application]:
        """
        Apply the approval cascade of a service request to its parent

        Writes the parent's own audit entry. Commit is handled by caller.
        """
        kind = child.kind_enum
        if kind not in SERVICE_KINDS or not child.parent_application_id:
            return None

        parent = self.repository.get(child.parent_application_id, for_update=True)
        previous = parent.status_enum

        if kind == ApplicationKind.CANCEL_CERTIFICATE:
            target = check_transition(previous, Operation.CANCEL_PARENT, ApplicationStatus.CERTIFICATE_CANCELLED)
            parent.certificate_expiry_date = now
            parent.district_notes = (
                f"Certificate revoked via cancellation request #{child.application_number}"
            )
            action = "certificate_cancelled"
            feedback = parent.district_notes
        else:
            target = check_transition(previous, Operation.SUPERSEDE, ApplicationStatus.SUPERSEDED)
            action = "superseded"
            feedback = f"Superseded by {child.application_number} ({kind.value})"

        parent.status = target.value
        parent.current_stage = target.value
        audit_service.log(
            self.db,
            parent,
            action=action,
            previous_status=previous.value,
            new_status=target.value,
            actor=actor,
            feedback=feedback,
            details={"child_application_id": child.id},
        )

        logger.info(
            "Parent registration retired",
            extra={
                "application_id": parent.id,
                "child_application_id": child.id,
                "from_status": previous.value,
                "to_status": target.value,
            },
        )
        return parent
