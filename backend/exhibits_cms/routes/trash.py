from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from .. import audit, models
from ..auth import get_current_user
from ..database import get_db
from ..errors import NotFoundError
from ..rbac import AuthorizationGate, get_gate, require_permission
from ..repository import RecordScope
from ..schemas import PurgeReportOut, dump_record
from ..trash import LISTING_KEYS, TrashManager
from .envelope import check_uuid, ok

router = APIRouter(prefix="/api/trash", tags=["trash"])

TRASH_PERMISSIONS = ("manage_trash",)


def get_trash_manager(db: Session = Depends(get_db)) -> TrashManager:
    return TrashManager(db)


@router.get("")
def list_trashed_records(
    trash: TrashManager = Depends(get_trash_manager),
    gate: AuthorizationGate = Depends(get_gate),
    user: models.User = Depends(get_current_user),
):
    require_permission(gate, user, TRASH_PERMISSIONS)
    listing = trash.list_trashed()
    data = {}
    for kind, key in LISTING_KEYS.items():
        if key in listing:
            data[key] = [dump_record(kind.value, record) for record in listing[key]]
    return ok("Trashed records", data)


@router.delete("")
def purge_all_trashed_records(
    trash: TrashManager = Depends(get_trash_manager),
    gate: AuthorizationGate = Depends(get_gate),
    user: models.User = Depends(get_current_user),
):
    require_permission(gate, user, TRASH_PERMISSIONS)
    report = trash.purge_all()
    audit.log_action(trash.db, user.id, "empty_trash", details={"removed": report.removed, "failed": report.failed})
    trash.db.commit()
    message = "Trash emptied" if not report.failed else "Trash partially emptied"
    return ok(message, PurgeReportOut.model_validate(report).model_dump())


@router.delete("/{record_type}/{exhibit_id}/{record_id}")
def purge_trashed_record(
    record_type: str,
    exhibit_id: str,
    record_id: str,
    trash: TrashManager = Depends(get_trash_manager),
    gate: AuthorizationGate = Depends(get_gate),
    user: models.User = Depends(get_current_user),
):
    require_permission(gate, user, TRASH_PERMISSIONS)
    check_uuid(exhibit_id)
    check_uuid(record_id)
    if not trash.purge(RecordScope(exhibit_id=exhibit_id), record_id, record_type):
        raise NotFoundError("Trashed record not found", data={"uuid": record_id})
    audit.log_action(trash.db, user.id, "purge_record", record_type, record_id)
    trash.db.commit()
    return Response(status_code=204)


@router.post("/restore/{record_type}/{exhibit_id}/{record_id}")
def restore_trashed_record(
    record_type: str,
    exhibit_id: str,
    record_id: str,
    trash: TrashManager = Depends(get_trash_manager),
    gate: AuthorizationGate = Depends(get_gate),
    user: models.User = Depends(get_current_user),
):
    require_permission(gate, user, TRASH_PERMISSIONS)
    check_uuid(exhibit_id)
    check_uuid(record_id)
    if not trash.restore(RecordScope(exhibit_id=exhibit_id), record_id, record_type):
        raise NotFoundError("Record not found", data={"uuid": record_id})
    audit.log_action(trash.db, user.id, "restore_record", record_type, record_id)
    trash.db.commit()
    return Response(status_code=204)
