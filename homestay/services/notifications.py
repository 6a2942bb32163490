"""
Notification effects

The lifecycle engine never sends anything itself. It returns a list of
NotificationEffect values alongside the committed application, and the API
layer hands them to NotificationDispatcher as a background task. Delivery is
best-effort: a failure is logged and dropped, never rolled back into the
transition that produced it.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable

from sqlalchemy.orm import Session

from ..core.database import SessionLocal, session_scope
from ..db.models import Application, Notification

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotificationEffect:
    event: str
    application_id: str
    recipient_id: str
    extras: dict[str, Any] = field(default_factory=dict)


# event -> (title, message template)
TEMPLATES: dict[str, tuple[str, str]] = {
    "application_submitted": (
        "Application submitted",
        "Your application {application_number} has been submitted for scrutiny.",
    ),
    "forwarded_to_dtdo": (
        "Forwarded to District Tourism Officer",
        "Application {application_number} has been scrutinised and forwarded to the DTDO.",
    ),
    "da_send_back": (
        "Corrections requested",
        "Application {application_number} was sent back for corrections: {remarks}",
    ),
    "dtdo_revert": (
        "Corrections requested by DTDO",
        "The DTDO has returned application {application_number}: {remarks}",
    ),
    "application_rejected": (
        "Application rejected",
        "Application {application_number} has been rejected. {remarks}",
    ),
    "inspection_scheduled": (
        "Site inspection scheduled",
        "A site inspection for {application_number} is scheduled on {inspection_date}.",
    ),
    "inspection_assigned": (
        "Inspection assigned",
        "You have been assigned the site inspection of {application_number} on {inspection_date}.",
    ),
    "verified_for_payment": (
        "Verified for payment",
        "Application {application_number} has cleared inspection. Please complete the payment.",
    ),
    "application_approved": (
        "Registration approved",
        "Application {application_number} is approved. Certificate {certificate_number} has been issued.",
    ),
    "dtdo_objection": (
        "Objections raised",
        "The DTDO raised objections on application {application_number}: {remarks}",
    ),
    "certificate_cancelled": (
        "Certificate cancelled",
        "The registration certificate for {application_number} has been cancelled.",
    ),
    "certificate_revoked": (
        "Certificate revoked",
        "The registration certificate for {application_number} has been revoked. {remarks}",
    ),
}


class _Defaults(dict):
    def __missing__(self, key: str) -> str:
        return ""


def render(event: str, context: dict[str, Any]) -> tuple[str, str]:
    title, template = TEMPLATES.get(event, (event.replace("_", " ").capitalize(), "{application_number}"))
    return title, template.format_map(_Defaults(context)).strip()


class NotificationDispatcher:
    """Deliver notification effects after the transaction has committed"""

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal):
        self.session_factory = session_factory

    def dispatch(self, effects: Iterable[NotificationEffect]) -> int:
        """
        Persist an in-app notification per effect and hand off email/SMS

        Returns the number of effects delivered. Never raises.
        """
        delivered = 0
        for effect in effects:
            if self._deliver(effect):
                delivered += 1
        return delivered

    def _deliver(self, effect: NotificationEffect) -> bool:
        try:
            with session_scope(self.session_factory) as db:
                application = db.query(Application).filter_by(id=effect.application_id).first()
                context = {
                    "application_number": application.application_number if application else effect.application_id,
                    "certificate_number": application.certificate_number if application else "",
                    **{k: v for k, v in effect.extras.items() if v is not None},
                }
                title, message = render(effect.event, context)

                db.add(
                    Notification(
                        user_id=effect.recipient_id,
                        application_id=effect.application_id,
                        event=effect.event,
                        title=title,
                        message=message,
                        notification_metadata={k: str(v) for k, v in effect.extras.items()},
                    )
                )
        except Exception:
            logger.warning(
                "Notification delivery failed",
                extra={"event": effect.event, "application_id": effect.application_id},
                exc_info=True,
            )
            return False

        # External email/SMS gateways pick up from this log stream
        logger.info(
            "Notification dispatched",
            extra={
                "event": effect.event,
                "application_id": effect.application_id,
                "recipient_id": effect.recipient_id,
            },
        )
        return True


def get_notification_dispatcher() -> NotificationDispatcher:
    """FastAPI dependency"""
    return NotificationDispatcher()
