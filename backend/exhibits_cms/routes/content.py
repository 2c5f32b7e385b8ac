from typing import Any, Optional

from fastapi import APIRouter, Body, Depends

from .. import models
from ..auth import get_current_user
from ..errors import NotFoundError
from ..repository import EntityKind
from ..schemas import ReorderRequest, UnlockRequest, dump_record
from ..services.content import CONTAINED_KIND, ContentService
from .envelope import check_uuid, ok, respond
from .exhibits import get_content_service, lock_response

router = APIRouter(prefix="/api/exhibits", tags=["content"])

KIND_SEGMENTS = {
    "items": EntityKind.ITEM,
    "headings": EntityKind.HEADING,
    "grids": EntityKind.GRID,
    "timelines": EntityKind.TIMELINE,
}

CONTAINER_SEGMENTS = {
    "grids": EntityKind.GRID_ITEM,
    "timelines": EntityKind.TIMELINE_ITEM,
}

_LABELS = {
    EntityKind.ITEM: "Item",
    EntityKind.HEADING: "Heading",
    EntityKind.GRID: "Grid",
    EntityKind.GRID_ITEM: "Grid item",
    EntityKind.TIMELINE: "Timeline",
    EntityKind.TIMELINE_ITEM: "Timeline item",
}


def _kind(segment: str) -> EntityKind:
    try:
        return KIND_SEGMENTS[segment]
    except KeyError as exc:
        raise NotFoundError(f"Unknown content type '{segment}'") from exc


def _contained(segment: str) -> EntityKind:
    try:
        return CONTAINER_SEGMENTS[segment]
    except KeyError as exc:
        raise NotFoundError(f"'{segment}' records do not hold items") from exc


def _dump_with_children(service: ContentService, exhibit_id: str, kind: EntityKind, record) -> dict:
    data = dump_record(kind.value, record)
    contained = CONTAINED_KIND.get(kind)
    if contained is not None:
        data[f"{contained.value}s"] = [
            dump_record(contained.value, child)
            for child in service.list_records(contained, exhibit_id, record.uuid)
        ]
    return data


@router.get("/{exhibit_id}/content")
def list_exhibit_content(
    exhibit_id: str,
    service: ContentService = Depends(get_content_service),
    user: models.User = Depends(get_current_user),
):
    check_uuid(exhibit_id)
    content = [
        _dump_with_children(service, exhibit_id, kind, record)
        for kind, record in service.list_content(exhibit_id)
    ]
    return ok("Exhibit content", content)


@router.post("/{exhibit_id}/content/reorder")
def reorder_exhibit_content(
    exhibit_id: str,
    body: ReorderRequest,
    service: ContentService = Depends(get_content_service),
    user: models.User = Depends(get_current_user),
):
    check_uuid(exhibit_id)
    entries = [entry.model_dump() for entry in body.items]
    return respond(service.reorder(user, exhibit_id, entries))


# -- top-level content: items, headings, grids, timelines -----------------


@router.post("/{exhibit_id}/{segment}")
def create_content(
    exhibit_id: str,
    segment: str,
    payload: Any = Body(default=None),
    service: ContentService = Depends(get_content_service),
    user: models.User = Depends(get_current_user),
):
    check_uuid(exhibit_id)
    return respond(service.create(user, _kind(segment), exhibit_id, payload))


@router.get("/{exhibit_id}/{segment}")
def list_content(
    exhibit_id: str,
    segment: str,
    service: ContentService = Depends(get_content_service),
    user: models.User = Depends(get_current_user),
):
    check_uuid(exhibit_id)
    kind = _kind(segment)
    records = [dump_record(kind.value, record) for record in service.list_records(kind, exhibit_id)]
    return ok(f"{_LABELS[kind]} records", records)


@router.get("/{exhibit_id}/{segment}/{record_id}")
def get_content(
    exhibit_id: str,
    segment: str,
    record_id: str,
    service: ContentService = Depends(get_content_service),
    user: models.User = Depends(get_current_user),
):
    check_uuid(exhibit_id)
    check_uuid(record_id)
    kind = _kind(segment)
    record = service.get(kind, exhibit_id, record_id)
    return ok(f"{_LABELS[kind]} record", _dump_with_children(service, exhibit_id, kind, record))


@router.put("/{exhibit_id}/{segment}/{record_id}")
def update_content(
    exhibit_id: str,
    segment: str,
    record_id: str,
    payload: Any = Body(default=None),
    expected_version: Optional[int] = None,
    service: ContentService = Depends(get_content_service),
    user: models.User = Depends(get_current_user),
):
    check_uuid(exhibit_id)
    check_uuid(record_id)
    outcome = service.update(
        user, _kind(segment), exhibit_id, record_id, payload, expected_version=expected_version
    )
    return respond(outcome)


@router.delete("/{exhibit_id}/{segment}/{record_id}")
def delete_content(
    exhibit_id: str,
    segment: str,
    record_id: str,
    service: ContentService = Depends(get_content_service),
    user: models.User = Depends(get_current_user),
):
    check_uuid(exhibit_id)
    check_uuid(record_id)
    return respond(service.delete(user, _kind(segment), exhibit_id, record_id))


@router.get("/{exhibit_id}/{segment}/{record_id}/edit")
def edit_content(
    exhibit_id: str,
    segment: str,
    record_id: str,
    service: ContentService = Depends(get_content_service),
    user: models.User = Depends(get_current_user),
):
    check_uuid(exhibit_id)
    check_uuid(record_id)
    kind = _kind(segment)
    return lock_response(kind.value, _LABELS[kind], service.get_edit_record(user, kind, exhibit_id, record_id))


@router.post("/{exhibit_id}/{segment}/{record_id}/unlock")
def unlock_content(
    exhibit_id: str,
    segment: str,
    record_id: str,
    body: Optional[UnlockRequest] = None,
    service: ContentService = Depends(get_content_service),
    user: models.User = Depends(get_current_user),
):
    check_uuid(exhibit_id)
    check_uuid(record_id)
    force = body.force if body else False
    return respond(service.unlock(user, _kind(segment), exhibit_id, record_id, force=force))


@router.post("/{exhibit_id}/{segment}/{record_id}/publish")
def publish_content(
    exhibit_id: str,
    segment: str,
    record_id: str,
    service: ContentService = Depends(get_content_service),
    user: models.User = Depends(get_current_user),
):
    check_uuid(exhibit_id)
    check_uuid(record_id)
    return respond(service.publish(user, _kind(segment), exhibit_id, record_id))


@router.post("/{exhibit_id}/{segment}/{record_id}/suppress")
def suppress_content(
    exhibit_id: str,
    segment: str,
    record_id: str,
    service: ContentService = Depends(get_content_service),
    user: models.User = Depends(get_current_user),
):
    check_uuid(exhibit_id)
    check_uuid(record_id)
    return respond(service.suppress(user, _kind(segment), exhibit_id, record_id))


# -- second-level content: grid items and timeline items ------------------


@router.post("/{exhibit_id}/{segment}/{container_id}/items")
def create_contained(
    exhibit_id: str,
    segment: str,
    container_id: str,
    payload: Any = Body(default=None),
    service: ContentService = Depends(get_content_service),
    user: models.User = Depends(get_current_user),
):
    check_uuid(exhibit_id)
    check_uuid(container_id)
    return respond(service.create(user, _contained(segment), exhibit_id, payload, container_id))


@router.get("/{exhibit_id}/{segment}/{container_id}/items")
def list_contained(
    exhibit_id: str,
    segment: str,
    container_id: str,
    service: ContentService = Depends(get_content_service),
    user: models.User = Depends(get_current_user),
):
    check_uuid(exhibit_id)
    check_uuid(container_id)
    kind = _contained(segment)
    records = [
        dump_record(kind.value, record)
        for record in service.list_records(kind, exhibit_id, container_id)
    ]
    return ok(f"{_LABELS[kind]} records", records)


@router.get("/{exhibit_id}/{segment}/{container_id}/items/{record_id}")
def get_contained(
    exhibit_id: str,
    segment: str,
    container_id: str,
    record_id: str,
    service: ContentService = Depends(get_content_service),
    user: models.User = Depends(get_current_user),
):
    check_uuid(exhibit_id)
    check_uuid(container_id)
    check_uuid(record_id)
    kind = _contained(segment)
    record = service.get(kind, exhibit_id, record_id, container_id)
    return ok(f"{_LABELS[kind]} record", dump_record(kind.value, record))


@router.put("/{exhibit_id}/{segment}/{container_id}/items/{record_id}")
def update_contained(
    exhibit_id: str,
    segment: str,
    container_id: str,
    record_id: str,
    payload: Any = Body(default=None),
    expected_version: Optional[int] = None,
    service: ContentService = Depends(get_content_service),
    user: models.User = Depends(get_current_user),
):
    check_uuid(exhibit_id)
    check_uuid(container_id)
    check_uuid(record_id)
    outcome = service.update(
        user,
        _contained(segment),
        exhibit_id,
        record_id,
        payload,
        container_id,
        expected_version=expected_version,
    )
    return respond(outcome)


@router.delete("/{exhibit_id}/{segment}/{container_id}/items/{record_id}")
def delete_contained(
    exhibit_id: str,
    segment: str,
    container_id: str,
    record_id: str,
    service: ContentService = Depends(get_content_service),
    user: models.User = Depends(get_current_user),
):
    check_uuid(exhibit_id)
    check_uuid(container_id)
    check_uuid(record_id)
    return respond(service.delete(user, _contained(segment), exhibit_id, record_id, container_id))


@router.get("/{exhibit_id}/{segment}/{container_id}/items/{record_id}/edit")
def edit_contained(
    exhibit_id: str,
    segment: str,
    container_id: str,
    record_id: str,
    service: ContentService = Depends(get_content_service),
    user: models.User = Depends(get_current_user),
):
    check_uuid(exhibit_id)
    check_uuid(container_id)
    check_uuid(record_id)
    kind = _contained(segment)
    outcome = service.get_edit_record(user, kind, exhibit_id, record_id, container_id)
    return lock_response(kind.value, _LABELS[kind], outcome)


@router.post("/{exhibit_id}/{segment}/{container_id}/items/{record_id}/unlock")
def unlock_contained(
    exhibit_id: str,
    segment: str,
    container_id: str,
    record_id: str,
    body: Optional[UnlockRequest] = None,
    service: ContentService = Depends(get_content_service),
    user: models.User = Depends(get_current_user),
):
    check_uuid(exhibit_id)
    check_uuid(container_id)
    check_uuid(record_id)
    force = body.force if body else False
    outcome = service.unlock(user, _contained(segment), exhibit_id, record_id, container_id, force=force)
    return respond(outcome)


@router.post("/{exhibit_id}/{segment}/{container_id}/items/{record_id}/publish")
def publish_contained(
    exhibit_id: str,
    segment: str,
    container_id: str,
    record_id: str,
    service: ContentService = Depends(get_content_service),
    user: models.User = Depends(get_current_user),
):
    check_uuid(exhibit_id)
    check_uuid(container_id)
    check_uuid(record_id)
    return respond(service.publish(user, _contained(segment), exhibit_id, record_id, container_id))


@router.post("/{exhibit_id}/{segment}/{container_id}/items/{record_id}/suppress")
def suppress_contained(
    exhibit_id: str,
    segment: str,
    container_id: str,
    record_id: str,
    service: ContentService = Depends(get_content_service),
    user: models.User = Depends(get_current_user),
):
    check_uuid(exhibit_id)
    check_uuid(container_id)
    check_uuid(record_id)
    return respond(service.suppress(user, _contained(segment), exhibit_id, record_id, container_id))
