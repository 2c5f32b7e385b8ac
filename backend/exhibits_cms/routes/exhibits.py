from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Request
from sqlalchemy.orm import Session

from .. import models
from ..auth import get_current_user
from ..database import get_db
from ..indexer import SearchIndex, get_index
from ..rbac import AuthorizationGate, get_gate
from ..schemas import UnlockRequest, dump_record
from ..services.content import ContentService
from ..services.exhibits import ExhibitService
from .envelope import check_uuid, ok, respond

router = APIRouter(prefix="/api/exhibits", tags=["exhibits"])


def get_exhibit_service(
    request: Request,
    db: Session = Depends(get_db),
    gate: AuthorizationGate = Depends(get_gate),
    index: SearchIndex = Depends(get_index),
) -> ExhibitService:
    return ExhibitService(db, request.app.state.settings, gate, index)


def get_content_service(
    request: Request,
    db: Session = Depends(get_db),
    gate: AuthorizationGate = Depends(get_gate),
) -> ContentService:
    return ContentService(db, request.app.state.settings, gate)


def lock_response(kind: str, label: str, outcome):
    data = {
        "record": dump_record(kind, outcome.record),
        "locked": outcome.granted,
        "locked_by_user": outcome.held_by,
    }
    if outcome.granted:
        return ok(f"{label} record", data)
    return ok(f"{label} is being edited by another user", data)


@router.post("")
def create_exhibit(
    payload: Any = Body(default=None),
    service: ExhibitService = Depends(get_exhibit_service),
    user: models.User = Depends(get_current_user),
):
    return respond(service.create(user, payload))


@router.get("")
def list_exhibits(
    service: ExhibitService = Depends(get_exhibit_service),
    user: models.User = Depends(get_current_user),
):
    records = [dump_record("exhibit", record) for record in service.list_exhibits()]
    return ok("Exhibit records", records)


@router.get("/{exhibit_id}")
def get_exhibit(
    exhibit_id: str,
    service: ExhibitService = Depends(get_exhibit_service),
    user: models.User = Depends(get_current_user),
):
    check_uuid(exhibit_id)
    return ok("Exhibit record", dump_record("exhibit", service.get(exhibit_id)))


@router.put("/{exhibit_id}")
def update_exhibit(
    exhibit_id: str,
    payload: Any = Body(default=None),
    expected_version: Optional[int] = None,
    service: ExhibitService = Depends(get_exhibit_service),
    user: models.User = Depends(get_current_user),
):
    check_uuid(exhibit_id)
    return respond(service.update(user, exhibit_id, payload, expected_version=expected_version))


@router.delete("/{exhibit_id}")
def delete_exhibit(
    exhibit_id: str,
    service: ExhibitService = Depends(get_exhibit_service),
    user: models.User = Depends(get_current_user),
):
    check_uuid(exhibit_id)
    return respond(service.delete(user, exhibit_id))


@router.get("/{exhibit_id}/edit")
def edit_exhibit(
    exhibit_id: str,
    service: ExhibitService = Depends(get_exhibit_service),
    user: models.User = Depends(get_current_user),
):
    check_uuid(exhibit_id)
    return lock_response("exhibit", "Exhibit", service.get_edit_record(user, exhibit_id))


@router.post("/{exhibit_id}/unlock")
def unlock_exhibit(
    exhibit_id: str,
    body: Optional[UnlockRequest] = None,
    service: ExhibitService = Depends(get_exhibit_service),
    user: models.User = Depends(get_current_user),
):
    check_uuid(exhibit_id)
    force = body.force if body else False
    return respond(service.unlock(user, exhibit_id, force=force))


@router.post("/{exhibit_id}/publish")
def publish_exhibit(
    exhibit_id: str,
    service: ExhibitService = Depends(get_exhibit_service),
    user: models.User = Depends(get_current_user),
):
    check_uuid(exhibit_id)
    return respond(service.publish(user, exhibit_id))


@router.post("/{exhibit_id}/suppress")
def suppress_exhibit(
    exhibit_id: str,
    service: ExhibitService = Depends(get_exhibit_service),
    user: models.User = Depends(get_current_user),
):
    check_uuid(exhibit_id)
    return respond(service.suppress(user, exhibit_id))


@router.post("/{exhibit_id}/preview")
def build_exhibit_preview(
    exhibit_id: str,
    service: ExhibitService = Depends(get_exhibit_service),
    user: models.User = Depends(get_current_user),
):
    check_uuid(exhibit_id)
    return respond(service.build_preview(user, exhibit_id))
