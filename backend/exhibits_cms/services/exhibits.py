"""Exhibit lifecycle: create, edit, trash, publish, suppress and preview.

Every mutating call checks the authorization gate before it touches
storage. Guard refusals (deleting an exhibit that still has items,
publishing an empty exhibit) come back as ``Outcome`` values with a
``reason``; bad input, missing records and denials are raised.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from sqlalchemy.orm import Session

from .. import audit, models, storage
from ..config import Settings
from ..errors import IndexingError, NotFoundError, ValidationError
from ..identifiers import new_uuid
from ..indexer import SearchIndex, build_exhibit_document
from ..locks import LockManager, LockOutcome
from ..rbac import AuthorizationGate, require_permission
from ..repository import EntityKind, RecordRepository, RecordScope, storage_errors
from ..validation import validate, whitelist
from .content import CHILD_KINDS, actor_name, normalize_styles, ordered_content
from .outcome import Outcome

LOGGER = logging.getLogger(__name__)

# purpose: orchestrate exhibit state changes that span the exhibit and its content
# status: active
# depends_on: repository, locks, indexer, rbac, validation

# kinds that count as publishable content for the publish guard
PUBLISHABLE_KINDS = (EntityKind.ITEM, EntityKind.GRID, EntityKind.TIMELINE)

_MEDIA_FIELDS = ("hero_image", "thumbnail")


def _coerce_state(data: Mapping[str, Any]) -> dict[str, int]:
    """Pull ``is_published`` and ``is_locked`` out of an update payload as ints."""

    missing = [name for name in ("is_published", "is_locked") if data.get(name) in (None, "")]
    if missing:
        raise ValidationError(
            [{"field": name, "message": "is required"} for name in missing], "Missing data"
        )
    state: dict[str, int] = {}
    violations = []
    for name in ("is_published", "is_locked"):
        value = data[name]
        try:
            if isinstance(value, bool):
                raise TypeError(name)
            state[name] = int(value)
        except (TypeError, ValueError):
            violations.append({"field": name, "message": "must be an integer"})
    if violations:
        raise ValidationError(violations)
    return state


class ExhibitService:
    def __init__(
        self,
        db: Session,
        settings: Settings,
        gate: AuthorizationGate,
        index: SearchIndex,
    ):
        self.db = db
        self.settings = settings
        self.gate = gate
        self.index = index
        self.exhibits = RecordRepository(db, EntityKind.EXHIBIT)
        self.locks = LockManager(db, timeout_minutes=settings.lock_timeout_minutes)

    def _commit(self, operation: str) -> None:
        with storage_errors(self.db, operation):
            self.db.commit()

    def _require_live(self, uuid: str):
        exhibit = self.exhibits.read(None, uuid)
        if exhibit is None:
            raise NotFoundError("Exhibit not found", data={"uuid": uuid})
        return exhibit

    def _adopt_media(self, uuid: str, record: dict[str, Any]) -> None:
        for media_field in _MEDIA_FIELDS:
            if record.get(media_field):
                record[media_field] = storage.adopt_media(
                    self.settings.storage_root, uuid, record[media_field]
                )

    def _document(self, uuid: str) -> dict[str, Any]:
        exhibit = self.exhibits.read(None, uuid)
        content = [record for _, record in ordered_content(self.db, uuid)]
        return build_exhibit_document(exhibit, content)

    def _cascade_published(self, uuid: str, value: int) -> None:
        self.exhibits.set_flags(None, uuid, is_published=value)
        scope = RecordScope(exhibit_id=uuid)
        for kind in CHILD_KINDS:
            RecordRepository(self.db, kind).set_published(scope, value)

    def content_count(self, uuid: str) -> int:
        scope = RecordScope(exhibit_id=uuid)
        return sum(RecordRepository(self.db, kind).count(scope) for kind in PUBLISHABLE_KINDS)

    # -- reads ---------------------------------------------------------

    def list_exhibits(self) -> list:
        records = self.exhibits.read_many(None)
        return sorted(records, key=lambda record: models.as_utc(record.created), reverse=True)

    def get(self, uuid: str):
        return self._require_live(uuid)

    def get_edit_record(self, user: models.User, uuid: str) -> LockOutcome:
        require_permission(
            self.gate,
            user,
            ("update_exhibit", "update_any_exhibit"),
            record_type="exhibit",
            parent_id=uuid,
        )
        outcome = self.locks.acquire(user.id, EntityKind.EXHIBIT, None, uuid)
        if outcome is None:
            raise NotFoundError("Exhibit not found", data={"uuid": uuid})
        return outcome

    # -- writes --------------------------------------------------------

    def create(self, user: models.User, data: Mapping[str, Any]) -> Outcome:
        require_permission(self.gate, user, ("add_exhibit",), record_type="exhibit")
        if not isinstance(data, Mapping) or not data:
            raise ValidationError(validate(data, "exhibit_create"))

        record = dict(data)
        record["uuid"] = new_uuid()
        violations = validate(record, "exhibit_create")
        if violations is not True:
            raise ValidationError(violations)
        record = whitelist(record, "exhibit_create")

        storage.provision_namespace(self.settings.storage_root, record["uuid"])
        record["styles"] = normalize_styles(record.get("styles"))
        self._adopt_media(record["uuid"], record)
        record["owner"] = user.id
        record["created_by"] = actor_name(user)
        record["updated_by"] = actor_name(user)

        stored = self.exhibits.create(record)
        audit.log_action(self.db, user.id, "create_exhibit", "exhibit", stored.uuid, {"title": stored.title})
        self._commit("audit create exhibit")
        return Outcome(201, "Exhibit record created", data={"uuid": stored.uuid})

    def update(
        self,
        user: models.User,
        uuid: str,
        data: Mapping[str, Any],
        *,
        expected_version: int | None = None,
    ) -> Outcome:
        require_permission(
            self.gate,
            user,
            ("update_exhibit", "update_any_exhibit"),
            record_type="exhibit",
            parent_id=uuid,
        )
        if not isinstance(data, Mapping) or not data:
            raise ValidationError(validate(data, "exhibit_update"))

        record = dict(data)
        record.update(_coerce_state(data))
        violations = validate(record, "exhibit_update")
        if violations is not True:
            raise ValidationError(violations)
        record = whitelist(record, "exhibit_update")

        current = self.exhibits.read(None, uuid)
        was_published = bool(current is not None and current.is_published)
        # publish state only changes through publish() and suppress()
        wants_published = bool(record.pop("is_published"))
        if current is not None and wants_published and not was_published:
            require_permission(
                self.gate, user, ("publish_exhibit", "publish_any_exhibit"), record_type="exhibit", parent_id=uuid
            )
        elif current is not None and was_published and not wants_published:
            require_permission(
                self.gate, user, ("suppress_exhibit", "suppress_any_exhibit"), record_type="exhibit", parent_id=uuid
            )

        if "styles" in record:
            record["styles"] = normalize_styles(record["styles"])
        self._adopt_media(uuid, record)
        requested_lock = record.pop("is_locked")
        record.update(self.locks.lock_fields(current, user.id, requested_lock))
        record["updated_by"] = actor_name(user)

        matched = self.exhibits.update(None, uuid, record, expected_version=expected_version)
        still_published = matched and was_published and wants_published
        if still_published:
            self._cascade_published(uuid, 1)
        audit.log_action(self.db, user.id, "update_exhibit", "exhibit", uuid)
        self._commit("update exhibit")

        if still_published:
            # edits to a published exhibit are pushed to the index; failure leaves the edit in place
            try:
                self.index.index_exhibit(self._document(uuid))
            except IndexingError:
                LOGGER.error("Exhibit %s updated but not re-indexed", uuid)
        elif matched and wants_published != was_published:
            transition = self.publish(user, uuid) if wants_published else self.suppress(user, uuid)
            if transition.refused:
                return transition
        return Outcome(204, "Exhibit record updated")

    def delete(self, user: models.User, uuid: str) -> Outcome:
        require_permission(
            self.gate,
            user,
            ("delete_exhibit", "delete_any_exhibit"),
            record_type="exhibit",
            parent_id=uuid,
        )
        self._require_live(uuid)

        items = RecordRepository(self.db, EntityKind.ITEM).count(RecordScope(exhibit_id=uuid))
        if items > 0:
            LOGGER.warning("Refused to delete exhibit %s: %s live items", uuid, items)
            return Outcome(200, "Cannot delete exhibit", data={"items": items}, reason="has_children")

        self.exhibits.soft_delete(None, uuid, deleted_by=actor_name(user))
        audit.log_action(self.db, user.id, "delete_exhibit", "exhibit", uuid)
        self._commit("delete exhibit")
        LOGGER.info("Exhibit %s moved to trash by user %s", uuid, user.id)

        try:
            self.index.delete_exhibit(uuid)
        except IndexingError:
            LOGGER.error("Exhibit %s trashed but still present in index", uuid)
        return Outcome(204, "Record deleted")

    def publish(self, user: models.User, uuid: str) -> Outcome:
        require_permission(
            self.gate,
            user,
            ("publish_exhibit", "publish_any_exhibit"),
            record_type="exhibit",
            parent_id=uuid,
        )
        self._require_live(uuid)
        if self.content_count(uuid) == 0:
            LOGGER.info("Publish refused for exhibit %s: no items", uuid)
            return Outcome(
                200,
                "Exhibit must have at least one item to be published",
                data={"uuid": uuid},
                reason="no_items",
            )

        self._cascade_published(uuid, 1)
        try:
            self.index.index_exhibit(self._document(uuid))
        except IndexingError:
            if self.settings.index_required_for_publish:
                self.db.rollback()
                LOGGER.error("Publish of exhibit %s rolled back: indexing failed", uuid)
                raise
            LOGGER.error("Exhibit %s published without a search index entry", uuid)

        published_at = models.utcnow()
        audit.log_action(self.db, user.id, "publish_exhibit", "exhibit", uuid)
        self._commit("publish exhibit")
        LOGGER.info("Exhibit %s published by user %s", uuid, user.id)
        return Outcome(
            200,
            "Exhibit published successfully",
            data={"uuid": uuid, "published_at": published_at.isoformat()},
        )

    def suppress(self, user: models.User, uuid: str) -> Outcome:
        require_permission(
            self.gate,
            user,
            ("suppress_exhibit", "suppress_any_exhibit"),
            record_type="exhibit",
            parent_id=uuid,
        )
        self._require_live(uuid)
        self._cascade_published(uuid, 0)
        audit.log_action(self.db, user.id, "suppress_exhibit", "exhibit", uuid)
        self._commit("suppress exhibit")
        LOGGER.info("Exhibit %s suppressed by user %s", uuid, user.id)

        try:
            self.index.delete_exhibit(uuid)
        except IndexingError:
            LOGGER.error("Exhibit %s suppressed but still present in index", uuid)
        return Outcome(200, "Exhibit suppressed", data={"uuid": uuid})

    def build_preview(self, user: models.User, uuid: str) -> Outcome:
        """Tear down any existing preview, mark the exhibit for preview, index it.

        The steps commit one at a time; a failing index call leaves the
        preview flag set and is reported, not undone.
        """

        require_permission(
            self.gate,
            user,
            ("build_preview", "edit_exhibit"),
            record_type="exhibit",
            parent_id=uuid,
        )
        exhibit = self._require_live(uuid)
        if exhibit.is_preview:
            self.exhibits.set_flags(None, uuid, is_preview=0)
            self._commit("clear exhibit preview")
            self.index.delete_exhibit(uuid)
            LOGGER.info("Existing preview of exhibit %s removed", uuid)

        self.exhibits.set_flags(None, uuid, is_preview=1)
        audit.log_action(self.db, user.id, "build_preview", "exhibit", uuid)
        self._commit("set exhibit preview")
        result = self.index.index_exhibit(self._document(uuid))
        LOGGER.info("Preview of exhibit %s built (%s)", uuid, result["status"])
        return Outcome(200, "Exhibit preview built", data={"uuid": uuid, "index": result["status"]})

    def unlock(self, user: models.User, uuid: str, *, force: bool = False) -> Outcome:
        permissions = ("update_any_exhibit",) if force else ("update_exhibit", "update_any_exhibit")
        require_permission(self.gate, user, permissions, record_type="exhibit", parent_id=uuid)
        if not self.locks.release(user.id, EntityKind.EXHIBIT, None, uuid, force=force):
            return Outcome(200, "Record was not unlocked", data={"uuid": uuid}, reason="not_unlocked")
        return Outcome(200, "Record unlocked", data={"uuid": uuid})
