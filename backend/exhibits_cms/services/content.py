from __future__ import annotations

import json
import logging
from typing import Any, Iterable, Mapping

from sqlalchemy.orm import Session

from .. import audit, models, storage
from ..config import Settings
from ..errors import NotFoundError, ValidationError
from ..identifiers import new_uuid
from ..locks import LockManager, LockOutcome
from ..rbac import AuthorizationGate, require_permission
from ..repository import (
    CONTENT_KINDS,
    KIND_SPECS,
    EntityKind,
    RecordRepository,
    RecordScope,
    storage_errors,
)
from ..validation import validate, whitelist
from .outcome import Outcome

LOGGER = logging.getLogger(__name__)

# purpose: create, edit, lock, publish and order the records that make up an exhibit
# status: active
# depends_on: repository, locks, rbac, validation

CHILD_KINDS = (
    EntityKind.HEADING,
    EntityKind.ITEM,
    EntityKind.GRID,
    EntityKind.GRID_ITEM,
    EntityKind.TIMELINE,
    EntityKind.TIMELINE_ITEM,
)

ADD_PERMISSIONS = ("add_item", "add_item_to_any_exhibit")
UPDATE_PERMISSIONS = ("update_item", "update_any_item")
DELETE_PERMISSIONS = ("delete_item", "delete_any_item")
PUBLISH_PERMISSIONS = ("publish_item", "publish_any_item")
SUPPRESS_PERMISSIONS = ("suppress_item", "suppress_any_item")

_LABELS = {
    EntityKind.HEADING: "Heading",
    EntityKind.ITEM: "Item",
    EntityKind.GRID: "Grid",
    EntityKind.GRID_ITEM: "Grid item",
    EntityKind.TIMELINE: "Timeline",
    EntityKind.TIMELINE_ITEM: "Timeline item",
}

_MEDIA_FIELDS = ("media", "thumbnail")

# second-level kinds keyed by the container that owns them
CONTAINED_KIND = {
    EntityKind.GRID: EntityKind.GRID_ITEM,
    EntityKind.TIMELINE: EntityKind.TIMELINE_ITEM,
}


def normalize_styles(value: Any) -> str:
    """Serialize a styles payload; absent styles become an empty object."""

    if value is None or value == "":
        return "{}"
    if isinstance(value, str):
        return value
    return json.dumps(value, sort_keys=True)


def actor_name(user: models.User) -> str:
    return user.full_name or user.email


def ordered_content(db: Session, exhibit_id: str) -> list[tuple[EntityKind, Any]]:
    """Live top-level content of an exhibit, merged across kinds and sorted by order."""

    scope = RecordScope(exhibit_id=exhibit_id)
    merged: list[tuple[EntityKind, Any]] = []
    for kind in CONTENT_KINDS:
        merged.extend((kind, record) for record in RecordRepository(db, kind).read_many(scope))
    merged.sort(key=lambda pair: (pair[1].order or 0, models.as_utc(pair[1].created)))
    return merged


def _raise_on_violations(result: bool | list[dict[str, str]]) -> None:
    if result is not True:
        raise ValidationError(result)


class ContentService:
    def __init__(self, db: Session, settings: Settings, gate: AuthorizationGate):
        self.db = db
        self.settings = settings
        self.gate = gate
        self.locks = LockManager(db, timeout_minutes=settings.lock_timeout_minutes)

    # -- helpers -------------------------------------------------------

    def _check_kind(self, kind: EntityKind | str) -> EntityKind:
        kind = EntityKind(kind)
        if kind not in CHILD_KINDS:
            raise ValueError(f"{kind.value} is not exhibit content")
        return kind

    def _scope(self, kind: EntityKind, exhibit_id: str, container_id: str | None) -> RecordScope:
        if KIND_SPECS[kind].container_field and container_id is None:
            raise ValueError(f"{kind.value} records need a container id")
        return RecordScope(exhibit_id=exhibit_id, container_id=container_id)

    def _live_exhibit(self, exhibit_id: str):
        exhibit = RecordRepository(self.db, EntityKind.EXHIBIT).read(None, exhibit_id)
        if exhibit is None:
            raise NotFoundError("Exhibit not found", data={"uuid": exhibit_id})
        return exhibit

    def _live_container(self, kind: EntityKind, exhibit_id: str, container_id: str):
        container_kind = KIND_SPECS[kind].container_kind
        container = RecordRepository(self.db, container_kind).read(
            RecordScope(exhibit_id=exhibit_id), container_id
        )
        if container is None:
            raise NotFoundError(
                f"{_LABELS[container_kind]} not found in exhibit",
                data={"uuid": container_id, "is_member_of_exhibit": exhibit_id},
            )
        return container

    def _next_order(self, kind: EntityKind, scope: RecordScope) -> int:
        if KIND_SPECS[kind].container_field:
            kinds: Iterable[EntityKind] = (kind,)
        else:
            kinds = CONTENT_KINDS
            scope = RecordScope(exhibit_id=scope.exhibit_id)
        return max(RecordRepository(self.db, sibling).max_order(scope) for sibling in kinds) + 1

    def _record_payload(
        self,
        kind: EntityKind,
        data: Mapping[str, Any],
        *,
        uuid: str,
        exhibit_id: str,
        container_id: str | None,
    ) -> dict[str, Any]:
        # non-mapping or empty payloads are reported before server fields are merged in
        if not isinstance(data, Mapping) or not data:
            _raise_on_violations(validate(data, KIND_SPECS[kind].schema))
        record = dict(data)
        record["uuid"] = uuid
        record["is_member_of_exhibit"] = exhibit_id
        container_field = KIND_SPECS[kind].container_field
        if container_field:
            record[container_field] = container_id
        _raise_on_violations(validate(record, KIND_SPECS[kind].schema))
        record = whitelist(record, KIND_SPECS[kind].schema)
        if "styles" in record or "styles" in data:
            record["styles"] = normalize_styles(record.get("styles"))
        for media_field in _MEDIA_FIELDS:
            if record.get(media_field):
                record[media_field] = storage.adopt_media(
                    self.settings.storage_root, exhibit_id, record[media_field]
                )
        return record

    def _commit(self, operation: str) -> None:
        with storage_errors(self.db, operation):
            self.db.commit()

    # -- reads ---------------------------------------------------------

    def get(self, kind: EntityKind | str, exhibit_id: str, uuid: str, container_id: str | None = None):
        kind = self._check_kind(kind)
        self._live_exhibit(exhibit_id)
        record = RecordRepository(self.db, kind).read(self._scope(kind, exhibit_id, container_id), uuid)
        if record is None:
            raise NotFoundError(f"{_LABELS[kind]} not found", data={"uuid": uuid})
        return record

    def list_records(self, kind: EntityKind | str, exhibit_id: str, container_id: str | None = None) -> list:
        kind = self._check_kind(kind)
        self._live_exhibit(exhibit_id)
        records = RecordRepository(self.db, kind).read_many(self._scope(kind, exhibit_id, container_id))
        return sorted(records, key=lambda record: (record.order or 0, models.as_utc(record.created)))

    def list_content(self, exhibit_id: str) -> list[tuple[EntityKind, Any]]:
        self._live_exhibit(exhibit_id)
        return ordered_content(self.db, exhibit_id)

    # -- writes --------------------------------------------------------

    def create(
        self,
        user: models.User,
        kind: EntityKind | str,
        exhibit_id: str,
        data: Mapping[str, Any],
        container_id: str | None = None,
    ) -> Outcome:
        kind = self._check_kind(kind)
        require_permission(
            self.gate, user, ADD_PERMISSIONS, record_type=kind.value, parent_id=exhibit_id
        )
        scope = self._scope(kind, exhibit_id, container_id)
        self._live_exhibit(exhibit_id)
        if container_id is not None:
            self._live_container(kind, exhibit_id, container_id)

        record = self._record_payload(
            kind, data, uuid=new_uuid(), exhibit_id=exhibit_id, container_id=container_id
        )
        record.setdefault("styles", "{}")
        if record.get("order") is None:
            record["order"] = self._next_order(kind, scope)
        record["owner"] = user.id
        record["created_by"] = actor_name(user)
        record["updated_by"] = actor_name(user)

        stored = RecordRepository(self.db, kind).create(record)
        audit.log_action(self.db, user.id, f"create_{kind.value}", kind.value, stored.uuid)
        self._commit(f"audit create {kind.value}")
        return Outcome(201, f"{_LABELS[kind]} record created", data={"uuid": stored.uuid})

    def get_edit_record(
        self,
        user: models.User,
        kind: EntityKind | str,
        exhibit_id: str,
        uuid: str,
        container_id: str | None = None,
    ) -> LockOutcome:
        kind = self._check_kind(kind)
        require_permission(
            self.gate, user, UPDATE_PERMISSIONS, record_type=kind.value, parent_id=exhibit_id, child_id=uuid
        )
        self._live_exhibit(exhibit_id)
        outcome = self.locks.acquire(user.id, kind, self._scope(kind, exhibit_id, container_id), uuid)
        if outcome is None:
            raise NotFoundError(f"{_LABELS[kind]} not found", data={"uuid": uuid})
        return outcome

    def update(
        self,
        user: models.User,
        kind: EntityKind | str,
        exhibit_id: str,
        uuid: str,
        data: Mapping[str, Any],
        container_id: str | None = None,
        *,
        expected_version: int | None = None,
    ) -> Outcome:
        kind = self._check_kind(kind)
        require_permission(
            self.gate, user, UPDATE_PERMISSIONS, record_type=kind.value, parent_id=exhibit_id, child_id=uuid
        )
        scope = self._scope(kind, exhibit_id, container_id)
        self._live_exhibit(exhibit_id)
        record = self._record_payload(
            kind, data, uuid=uuid, exhibit_id=exhibit_id, container_id=container_id
        )
        repo = RecordRepository(self.db, kind)
        current = repo.read(scope, uuid)
        # publish state only changes through publish() and suppress()
        wants_published = record.pop("is_published", None)
        if "is_locked" in record:
            record.update(self.locks.lock_fields(current, user.id, record.pop("is_locked")))
        record["updated_by"] = actor_name(user)

        matched = repo.update(scope, uuid, record, expected_version=expected_version)
        audit.log_action(self.db, user.id, f"update_{kind.value}", kind.value, uuid)
        self._commit(f"update {kind.value}")

        if matched and wants_published is not None and bool(wants_published) != bool(current.is_published):
            if wants_published:
                transition = self.publish(user, kind, exhibit_id, uuid, container_id)
            else:
                transition = self.suppress(user, kind, exhibit_id, uuid, container_id)
            if transition.refused:
                return transition
        return Outcome(204, f"{_LABELS[kind]} record updated")

    def delete(
        self,
        user: models.User,
        kind: EntityKind | str,
        exhibit_id: str,
        uuid: str,
        container_id: str | None = None,
    ) -> Outcome:
        kind = self._check_kind(kind)
        require_permission(
            self.gate, user, DELETE_PERMISSIONS, record_type=kind.value, parent_id=exhibit_id, child_id=uuid
        )
        self._live_exhibit(exhibit_id)
        repo = RecordRepository(self.db, kind)
        if not repo.soft_delete(self._scope(kind, exhibit_id, container_id), uuid, deleted_by=actor_name(user)):
            raise NotFoundError(f"{_LABELS[kind]} not found", data={"uuid": uuid})
        audit.log_action(self.db, user.id, f"delete_{kind.value}", kind.value, uuid)
        self._commit(f"delete {kind.value}")
        LOGGER.info("%s %s moved to trash by user %s", kind.value, uuid, user.id)
        return Outcome(204, "Record deleted")

    def _set_published(
        self,
        user: models.User,
        kind: EntityKind,
        exhibit_id: str,
        uuid: str,
        container_id: str | None,
        value: int,
    ) -> None:
        scope = self._scope(kind, exhibit_id, container_id)
        repo = RecordRepository(self.db, kind)
        if repo.read(scope, uuid) is None:
            raise NotFoundError(f"{_LABELS[kind]} not found", data={"uuid": uuid})
        repo.set_flags(scope, uuid, is_published=value, updated_by=actor_name(user))
        contained = CONTAINED_KIND.get(kind)
        if contained is not None:
            RecordRepository(self.db, contained).set_published(
                RecordScope(exhibit_id=exhibit_id, container_id=uuid), value
            )

    def publish(
        self,
        user: models.User,
        kind: EntityKind | str,
        exhibit_id: str,
        uuid: str,
        container_id: str | None = None,
    ) -> Outcome:
        kind = self._check_kind(kind)
        require_permission(
            self.gate, user, PUBLISH_PERMISSIONS, record_type=kind.value, parent_id=exhibit_id, child_id=uuid
        )
        exhibit = self._live_exhibit(exhibit_id)
        if not exhibit.is_published:
            LOGGER.warning("Refused to publish %s %s: exhibit %s is not published", kind.value, uuid, exhibit_id)
            return Outcome(
                200,
                "Exhibit must be published before its content",
                data={"uuid": uuid},
                reason="exhibit_not_published",
            )
        self._set_published(user, kind, exhibit_id, uuid, container_id, 1)
        audit.log_action(self.db, user.id, f"publish_{kind.value}", kind.value, uuid)
        self._commit(f"publish {kind.value}")
        LOGGER.info("%s %s published by user %s", kind.value, uuid, user.id)
        return Outcome(200, f"{_LABELS[kind]} published", data={"uuid": uuid})

    def suppress(
        self,
        user: models.User,
        kind: EntityKind | str,
        exhibit_id: str,
        uuid: str,
        container_id: str | None = None,
    ) -> Outcome:
        kind = self._check_kind(kind)
        require_permission(
            self.gate, user, SUPPRESS_PERMISSIONS, record_type=kind.value, parent_id=exhibit_id, child_id=uuid
        )
        self._live_exhibit(exhibit_id)
        self._set_published(user, kind, exhibit_id, uuid, container_id, 0)
        audit.log_action(self.db, user.id, f"suppress_{kind.value}", kind.value, uuid)
        self._commit(f"suppress {kind.value}")
        LOGGER.info("%s %s suppressed by user %s", kind.value, uuid, user.id)
        return Outcome(200, f"{_LABELS[kind]} suppressed", data={"uuid": uuid})

    def unlock(
        self,
        user: models.User,
        kind: EntityKind | str,
        exhibit_id: str,
        uuid: str,
        container_id: str | None = None,
        *,
        force: bool = False,
    ) -> Outcome:
        kind = self._check_kind(kind)
        permissions = ("update_any_item",) if force else UPDATE_PERMISSIONS
        require_permission(
            self.gate, user, permissions, record_type=kind.value, parent_id=exhibit_id, child_id=uuid
        )
        self._live_exhibit(exhibit_id)
        released = self.locks.release(
            user.id, kind, self._scope(kind, exhibit_id, container_id), uuid, force=force
        )
        if not released:
            return Outcome(200, "Record was not unlocked", data={"uuid": uuid}, reason="not_unlocked")
        return Outcome(200, "Record unlocked", data={"uuid": uuid})

    def reorder(self, user: models.User, exhibit_id: str, entries: Iterable[Mapping[str, Any]]) -> Outcome:
        """Rewrite ``order`` on the listed siblings only."""

        require_permission(self.gate, user, UPDATE_PERMISSIONS, record_type="item", parent_id=exhibit_id)
        self._live_exhibit(exhibit_id)
        scope = RecordScope(exhibit_id=exhibit_id)
        updated = 0
        missing: list[str] = []
        for entry in entries:
            kind = EntityKind(entry["type"])
            if kind not in CONTENT_KINDS:
                raise ValidationError([{"field": "type", "message": f"cannot reorder {kind.value} records"}])
            repo = RecordRepository(self.db, kind)
            if repo.read(scope, entry["uuid"]) is None:
                missing.append(entry["uuid"])
                continue
            updated += repo.reorder(scope, entry["uuid"], entry["order"])
        audit.log_action(
            self.db, user.id, "reorder_content", "exhibit", exhibit_id, {"updated": updated, "missing": missing}
        )
        self._commit("reorder content")
        return Outcome(200, "Exhibit content reordered", data={"updated": updated, "missing": missing})
