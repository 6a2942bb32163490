import logging
import uuid
from typing import Callable, Optional
from datetime import datetime

from sqlalchemy.orm import Session

from ..core.auth import AuthContext
from ..core.errors import DuplicateActive, Forbidden, InvalidState, ValidationFailed
from ..db.models import Application, ApplicationDocument
from ..schemas.applications import ApplicationCreate, ApplicationFields, DocumentUpload
from ..schemas.enums import ApplicationKind, ApplicationStatus
from ..utils.clock import utcnow
from .compliance import ROOM_TYPES, clamp_room_row, room_rows
from .documents import validate_documents
from .lineage import LineageManager
from .repository import ApplicationRepository, transaction
from .settings import WorkflowConfig

logger = logging.getLogger(__name__)

# Kinds that establish an owner's base registration
BASE_KINDS = (ApplicationKind.NEW_REGISTRATION.value, ApplicationKind.LEGACY_RC.value)

ONE_APPLICATION_MESSAGE = (
    "Only one homestay application is permitted per owner account. Please maintain your existing property."
)

_NON_COLUMN_FIELDS = {"documents", "application_kind", "parent_application_id"}


def apply_fields(application: Application, payload: ApplicationFields) -> set[str]:
    """Copy explicitly supplied fields onto the application; returns their names"""
    changes = payload.model_dump(mode="json", exclude_unset=True, exclude=_NON_COLUMN_FIELDS)
    if "certificate_validity_years" in changes and changes["certificate_validity_years"] not in (1, 3):
        raise ValidationFailed("Certificate validity must be 1 or 3 years")
    for name, value in changes.items():
        setattr(application, name, value)
    return set(changes)


def clamp_rooms(application: Application, edited: set[str], config: WorkflowConfig) -> None:
    """Trim edited room rows to the capacity left by the others"""
    rows = room_rows(application)
    for index, (room_type, fields) in enumerate(ROOM_TYPES.items()):
        if not edited & {fields.count, fields.beds}:
            continue
        clamped = clamp_room_row(
            rows, index, config.max_rooms, config.max_beds, config.max_beds_per_room
        )
        if clamped != rows[index]:
            logger.info(
                "Room row clamped to remaining capacity",
                extra={
                    "application_id": application.id,
                    "room_type": room_type,
                    "requested_quantity": rows[index].quantity,
                    "quantity": clamped.quantity,
                    "beds_per_room": clamped.beds_per_room,
                },
            )
        rows[index] = clamped
        setattr(application, fields.count, clamped.quantity)
        if clamped.quantity > 0 or getattr(application, fields.beds) is not None:
            setattr(application, fields.beds, clamped.beds_per_room)


def replace_documents(
    db: Session,
    application: Application,
    documents: list[DocumentUpload],
    config: WorkflowConfig,
) -> None:
    error = validate_documents(documents, config.upload_limits)
    if error:
        raise ValidationFailed(error)

    db.query(ApplicationDocument).filter_by(application_id=application.id).delete()
    for doc in documents:
        db.add(
            ApplicationDocument(
                id=f"doc_{uuid.uuid4().hex[:12]}",
                application_id=application.id,
                document_type=doc.document_type,
                file_name=doc.file_name,
                file_path=doc.file_path,
                file_size=doc.file_size,
                mime_type=doc.mime_type,
            )
        )


class DraftService:
    """Owner-side draft management"""

    def __init__(self, db: Session, config: WorkflowConfig, clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.config = config
        self.clock = clock
        self.repository = ApplicationRepository(db)
        self.lineage = LineageManager(db)

    def _require_owner(self, actor: AuthContext) -> None:
        if not actor.is_owner:
            raise Forbidden("Only property owners can manage applications")

    def _load_own_draft(self, application_id: str, actor: AuthContext) -> Application:
        application = self.repository.get(application_id, for_update=True)
        if application.user_id != actor.user_id:
            raise Forbidden("You can only modify your own applications")
        if application.status_enum != ApplicationStatus.DRAFT:
            raise InvalidState("Only draft applications can be edited")
        return application

    def _existing_base_application(self, owner_id: str) -> Optional[Application]:
        return (
            self.db.query(Application)
            .filter(Application.user_id == owner_id, Application.application_kind.in_(BASE_KINDS))
            .order_by(Application.created_at.desc())
            .first()
        )

    def create_draft(self, actor: AuthContext, payload: ApplicationCreate) -> Application:
        """
        Create (or resume) a draft

        New registrations and legacy RC onboarding are limited to one per
        owner: an existing draft is handed back, anything else is a conflict.
        Service requests are seeded from the approved parent registration.
        """
        self._require_owner(actor)
        kind = payload.application_kind

        with transaction(self.db, "create_draft"):
            if kind in (ApplicationKind.NEW_REGISTRATION, ApplicationKind.LEGACY_RC):
                existing = self._existing_base_application(actor.user_id)
                if existing:
                    if existing.status_enum == ApplicationStatus.DRAFT and existing.application_kind == kind.value:
                        logger.info("Existing draft resumed", extra={"application_id": existing.id})
                        return existing
                    raise DuplicateActive(
                        ONE_APPLICATION_MESSAGE,
                        existing_application_id=existing.id,
                        status=existing.status,
                    )
                parent = None
            else:
                parent = self.lineage.resolve_parent(actor.user_id, payload.parent_application_id)
                self.lineage.ensure_no_open_service_request(actor.user_id)

            application = Application(
                id=f"app_{uuid.uuid4().hex[:12]}",
                user_id=actor.user_id,
                application_kind=kind.value,
                status=ApplicationStatus.DRAFT.value,
                current_stage=ApplicationStatus.DRAFT.value,
                certificate_validity_years=self.config.certificate_validity_years,
            )
            if parent is not None:
                self.lineage.seed_child(application, parent)

            edited = apply_fields(application, payload)
            application.application_number = self.repository.next_application_number(
                application.district, kind, self.clock().year
            )
            clamp_rooms(application, edited, self.config)
            self.db.add(application)
            self.db.flush()

            if payload.documents:
                replace_documents(self.db, application, payload.documents, self.config)

        self.db.refresh(application)
        logger.info(
            "Draft created",
            extra={
                "application_id": application.id,
                "application_kind": kind.value,
                "parent_application_id": application.parent_application_id,
            },
        )
        return application

    def update_draft(self, actor: AuthContext, application_id: str, payload: ApplicationFields) -> Application:
        self._require_owner(actor)
        with transaction(self.db, "update_draft", application_id):
            application = self._load_own_draft(application_id, actor)
            edited = apply_fields(application, payload)
            clamp_rooms(application, edited, self.config)
            if payload.documents is not None:
                replace_documents(self.db, application, payload.documents, self.config)
        self.db.refresh(application)
        return application

    def delete_draft(self, actor: AuthContext, application_id: str) -> None:
        self._require_owner(actor)
        with transaction(self.db, "delete_draft", application_id):
            application = self._load_own_draft(application_id, actor)
            self.db.query(ApplicationDocument).filter_by(application_id=application.id).delete()
            self.db.delete(application)
        logger.info("Draft deleted", extra={"application_id": application_id})
