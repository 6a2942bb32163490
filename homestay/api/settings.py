"""
Settings API - Effective workflow policy and admin overrides
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..core.auth import AuthContext, ADMIN_ROLES, require_auth, require_role
from ..core.database import get_db
from ..schemas.workflow import WorkflowSettingUpdate
from ..services.repository import transaction
from ..services.settings import load_workflow_config, update_workflow_setting

router = APIRouter(prefix="/api/v1/settings", tags=["settings"])


@router.get("/workflow")
async def get_workflow_settings(
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    return load_workflow_config(db).as_dict()


@router.put("/workflow/{key}")
async def put_workflow_setting(
    key: str,
    payload: WorkflowSettingUpdate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_role(*sorted(ADMIN_ROLES))),
):
    """Override one workflow policy key; takes effect on the next request."""
    with transaction(db, "update_workflow_setting"):
        update_workflow_setting(db, key, payload.value, auth.user_id)
    return load_workflow_config(db).as_dict()
