from fastapi import BackgroundTasks, Depends
from sqlalchemy.orm import Session

from ..core.database import get_db
from ..db.models import Application
from ..services.drafts import DraftService
from ..services.lifecycle import LifecycleService, TransitionResult
from ..services.notifications import NotificationDispatcher, get_notification_dispatcher
from ..services.settings import WorkflowConfig, load_workflow_config


def get_workflow_config(db: Session = Depends(get_db)) -> WorkflowConfig:
    """Effective workflow snapshot for this request"""
    return load_workflow_config(db)


def get_lifecycle_service(
    db: Session = Depends(get_db),
    config: WorkflowConfig = Depends(get_workflow_config),
) -> LifecycleService:
    return LifecycleService(db, config)


def get_draft_service(
    db: Session = Depends(get_db),
    config: WorkflowConfig = Depends(get_workflow_config),
) -> DraftService:
    return DraftService(db, config)


class EffectRunner:
    """Queue a committed transition's notifications as a background task"""

    def __init__(
        self,
        background_tasks: BackgroundTasks,
        dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
    ):
        self.background_tasks = background_tasks
        self.dispatcher = dispatcher

    def __call__(self, result: TransitionResult) -> Application:
        if result.effects:
            self.background_tasks.add_task(self.dispatcher.dispatch, list(result.effects))
        return result.application
