import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ..core.errors import ConcurrentModification, NotFound, PersistenceFailure, WorkflowError
from ..db.models import Application, ApplicationDocument, InspectionOrder, User
from ..schemas.enums import ApplicationKind
from ..utils.districts import district_code

logger = logging.getLogger(__name__)


class ApplicationRepository:
    """Row access for the lifecycle services"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, application_id: str, for_update: bool = False) -> Application:
        """
        Load an application or raise NotFound

        With for_update the row is locked (SELECT ... FOR UPDATE) on backends
        that support it; the version column still guards the write.
        """
        query = self.db.query(Application).filter_by(id=application_id)
        if for_update:
            query = query.with_for_update()
        application = query.first()
        if not application:
            raise NotFound(f"Application not found: {application_id}")
        return application

    def get_user(self, user_id: Optional[str]) -> Optional[User]:
        if not user_id:
            return None
        return self.db.query(User).filter_by(id=user_id).first()

    def documents(self, application_id: str) -> list[ApplicationDocument]:
        return (
            self.db.query(ApplicationDocument)
            .filter_by(application_id=application_id)
            .order_by(ApplicationDocument.created_at.asc())
            .all()
        )

    def latest_inspection_order(self, application_id: str) -> Optional[InspectionOrder]:
        return (
            self.db.query(InspectionOrder)
            .filter_by(application_id=application_id)
            .order_by(InspectionOrder.created_at.desc())
            .first()
        )

    def _next_in_series(self, column, prefix: str) -> int:
        """Next suffix after the highest one in use under prefix"""
        latest = (
            self.db.query(func.max(column))
            .filter(column.like(f"{prefix}%"))
            .scalar()
        )
        if not latest:
            return 1
        return int(latest[len(prefix):]) + 1

    def next_application_number(self, district: Optional[str], kind: ApplicationKind, year: int) -> str:
        """HP-HS-{year}-{DST}-{seq:06d}; legacy onboarding uses the LG-HS prefix"""
        series = "LG-HS" if kind == ApplicationKind.LEGACY_RC else "HP-HS"
        prefix = f"{series}-{year}-{district_code(district)}-"
        return f"{prefix}{self._next_in_series(Application.application_number, prefix):06d}"

    def next_certificate_number(self, year: int) -> str:
        """HP-HST-{year}-{seq:05d}, sequential within the year"""
        prefix = f"HP-HST-{year}-"
        return f"{prefix}{self._next_in_series(Application.certificate_number, prefix):05d}"


@contextmanager
def transaction(db: Session, operation: str, application_id: Optional[str] = None) -> Iterator[None]:
    """
    Run one lifecycle operation as a single unit of work

    Commits on success. Any failure rolls the session back so no partial
    status change or orphan audit row survives.
    """
    try:
        yield
        db.commit()
    except WorkflowError as e:
        db.rollback()
        logger.info(
            "Lifecycle operation refused",
            extra={"operation": operation, "application_id": application_id, "code": e.code},
        )
        raise
    except StaleDataError:
        db.rollback()
        logger.warning(
            "Concurrent modification detected",
            extra={"operation": operation, "application_id": application_id},
        )
        raise ConcurrentModification(
            "The application was changed by another user. Reload it and try again."
        )
    except SQLAlchemyError:
        db.rollback()
        logger.error(
            "Persistence failure",
            extra={"operation": operation, "application_id": application_id},
            exc_info=True,
        )
        raise PersistenceFailure("The operation could not be saved. Please retry.")
