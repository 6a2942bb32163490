from typing import Any, Optional
from sqlalchemy.orm import Session

from ..core.auth import AuthContext
from ..core.correlation import get_correlation_id
from ..db.models import Application, ApplicationAction


class AuditService:
    """Append-only application audit trail"""

    def log(
        self,
        db: Session,
        application: Application,
        action: str,
        previous_status: Optional[str],
        new_status: Optional[str],
        actor: Optional[AuthContext] = None,
        feedback: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> ApplicationAction:
        """
        Write audit trail entry

        Args:
            db: Database session
            application: Application the action applies to
            action: Event tag (e.g., "forwarded_to_dtdo", "auto_rejected")
            previous_status: Status before the transition
            new_status: Status after the transition
            actor: Acting user; None for system actions
            feedback: Human-readable remarks
            details: Structured payload (e.g., before/after diff of a correction)
        """
        entry = ApplicationAction(
            application_id=application.id,
            actor_id=actor.user_id if actor and not actor.is_system else None,
            actor_role=actor.role if actor else None,
            action=action,
            previous_status=previous_status,
            new_status=new_status,
            feedback=feedback,
            details=details,
            correlation_id=get_correlation_id() or None,
        )
        db.add(entry)
        # Commit is handled by caller
        return entry

    def timeline(self, db: Session, application_id: str) -> list[ApplicationAction]:
        """Audit entries for an application, oldest first"""
        return (
            db.query(ApplicationAction)
            .filter_by(application_id=application_id)
            .order_by(ApplicationAction.created_at.asc(), ApplicationAction.id.asc())
            .all()
        )


# Singleton
audit_service = AuditService()
