from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import audit, models, schemas
from ..auth import get_current_user
from ..database import get_db
from ..rbac import AuthorizationGate, get_gate, require_permission
from .envelope import check_uuid, ok

router = APIRouter(prefix="/api/audit", tags=["audit"])


@router.get("/{target_type}/{target_id}")
def record_history(
    target_type: str,
    target_id: str,
    since: Optional[datetime] = None,
    db: Session = Depends(get_db),
    gate: AuthorizationGate = Depends(get_gate),
    user: models.User = Depends(get_current_user),
):
    check_uuid(target_id)
    require_permission(gate, user, ("view_audit_log",))
    logs = audit.history(db, target_type, target_id, since=since)
    data = [schemas.AuditLogOut.model_validate(log).model_dump(mode="json") for log in logs]
    return ok("Record history", data)
