"""Record store: typed CRUD over every exhibit-scoped table.

One ``RecordRepository`` class serves all entity kinds; the kind selects the
ORM model and the columns that scope a record to its exhibit (and, for grid
and timeline items, to their container). The repository is the only code
that writes to the record tables. ``create`` commits its own transaction;
every other mutator flushes and leaves the commit to the calling service so a
multi-record operation lands as one unit.
"""

from __future__ import annotations

import enum
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterator, Mapping

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Query, Session

from . import models
from .errors import StorageError, StorageTimeoutError, VersionConflictError

LOGGER = logging.getLogger(__name__)

# purpose: replace per-table task classes with one store parameterized by entity kind
# status: active


class EntityKind(str, enum.Enum):
    EXHIBIT = "exhibit"
    HEADING = "heading"
    ITEM = "item"
    GRID = "grid"
    GRID_ITEM = "grid_item"
    TIMELINE = "timeline"
    TIMELINE_ITEM = "timeline_item"


@dataclass(frozen=True)
class KindSpec:
    model: type
    schema: str
    container_field: str | None = None
    container_kind: EntityKind | None = None


KIND_SPECS: dict[EntityKind, KindSpec] = {
    EntityKind.EXHIBIT: KindSpec(models.Exhibit, "exhibit_update"),
    EntityKind.HEADING: KindSpec(models.Heading, "heading"),
    EntityKind.ITEM: KindSpec(models.Item, "item"),
    EntityKind.GRID: KindSpec(models.Grid, "grid"),
    EntityKind.GRID_ITEM: KindSpec(
        models.GridItem, "grid_item", "is_member_of_grid", EntityKind.GRID
    ),
    EntityKind.TIMELINE: KindSpec(models.Timeline, "timeline"),
    EntityKind.TIMELINE_ITEM: KindSpec(
        models.TimelineItem, "timeline_item", "is_member_of_timeline", EntityKind.TIMELINE
    ),
}

# kinds that sit directly in an exhibit's content list
CONTENT_KINDS = (EntityKind.ITEM, EntityKind.HEADING, EntityKind.GRID, EntityKind.TIMELINE)

# server-owned columns that update() never writes
_IMMUTABLE_FIELDS = frozenset(
    {
        "id",
        "uuid",
        "is_member_of_exhibit",
        "is_member_of_grid",
        "is_member_of_timeline",
        "is_deleted",
        "version",
        "created",
        "created_by",
        "owner",
    }
)


@dataclass(frozen=True)
class RecordScope:
    """Owning exhibit and, for second-level kinds, the owning grid or timeline."""

    exhibit_id: str | None = None
    container_id: str | None = None


@contextmanager
def storage_errors(db: Session, operation: str) -> Iterator[None]:
    """Roll back and translate driver failures into StorageError."""

    try:
        yield
    except SQLAlchemyError as exc:
        db.rollback()
        LOGGER.error("Storage failure during %s", operation, exc_info=True)
        if isinstance(exc, OperationalError) and _is_timeout(exc):
            raise StorageTimeoutError(f"Timed out during {operation}") from exc
        if isinstance(exc, IntegrityError):
            raise StorageError(f"Duplicate or invalid record during {operation}") from exc
        raise StorageError(f"Unable to complete {operation}") from exc


def _is_timeout(exc: OperationalError) -> bool:
    text = str(exc.orig if exc.orig is not None else exc).lower()
    return any(marker in text for marker in ("timeout", "timed out", "database is locked", "canceling statement"))


class RecordRepository:
    def __init__(self, db: Session, kind: EntityKind):
        self.db = db
        self.kind = EntityKind(kind)
        self.spec = KIND_SPECS[self.kind]
        self.model = self.spec.model
        self.columns = frozenset(self.model.__table__.columns.keys())

    # -- query helpers -------------------------------------------------

    def _scoped(self, scope: RecordScope | None) -> Query:
        query = self.db.query(self.model)
        if scope is None:
            return query
        if scope.exhibit_id is not None:
            # an exhibit is scoped by its own uuid
            column = self.model.uuid if self.kind is EntityKind.EXHIBIT else self.model.is_member_of_exhibit
            query = query.filter(column == scope.exhibit_id)
        if scope.container_id is not None and self.spec.container_field:
            query = query.filter(getattr(self.model, self.spec.container_field) == scope.container_id)
        return query

    def _one(self, scope: RecordScope | None, uuid: str) -> Query:
        return self._scoped(scope).filter(self.model.uuid == uuid)

    # -- reads ---------------------------------------------------------

    def read(self, scope: RecordScope | None, uuid: str):
        with storage_errors(self.db, f"read {self.kind.value}"):
            return self._one(scope, uuid).filter(self.model.is_deleted == 0).first()

    def read_any(self, scope: RecordScope | None, uuid: str):
        """Fetch a record whether or not it is in the trash."""

        with storage_errors(self.db, f"read {self.kind.value}"):
            return self._one(scope, uuid).first()

    def read_many(self, scope: RecordScope | None = None) -> list:
        with storage_errors(self.db, f"list {self.kind.value}"):
            return self._scoped(scope).filter(self.model.is_deleted == 0).all()

    def read_trashed(self) -> list:
        with storage_errors(self.db, f"list trashed {self.kind.value}"):
            return (
                self.db.query(self.model)
                .filter(self.model.is_deleted == 1)
                .order_by(self.model.updated.desc())
                .all()
            )

    def count(self, scope: RecordScope | None) -> int:
        with storage_errors(self.db, f"count {self.kind.value}"):
            return (
                self._scoped(scope)
                .filter(self.model.is_deleted == 0)
                .with_entities(func.count(self.model.id))
                .scalar()
                or 0
            )

    def max_order(self, scope: RecordScope | None) -> int:
        with storage_errors(self.db, f"order {self.kind.value}"):
            value = (
                self._scoped(scope)
                .filter(self.model.is_deleted == 0)
                .with_entities(func.max(self.model.order))
                .scalar()
            )
        return value or 0

    # -- writes --------------------------------------------------------

    def create(self, record: Mapping[str, Any]):
        """Insert ``record`` with server defaults, commit, and return the stored row."""

        now = models.utcnow()
        values = {key: value for key, value in record.items() if key in self.columns and key != "id"}
        values.update(
            is_published=0,
            is_deleted=0,
            is_locked=0,
            locked_by_user=None,
            locked_at=None,
            version=1,
            created=now,
            updated=now,
        )
        row = self.model(**values)
        with storage_errors(self.db, f"create {self.kind.value}"):
            self.db.add(row)
            self.db.flush()
            row_id = row.id
            if row_id is None:
                self.db.rollback()
                raise StorageError(f"Insert returned no identifier for {self.kind.value}")
            self.db.commit()
            self.db.expire_all()
            stored = self.db.get(self.model, row_id)
        LOGGER.info("Created %s record %s", self.kind.value, stored.uuid)
        return stored

    def update(
        self,
        scope: RecordScope | None,
        uuid: str,
        values: Mapping[str, Any],
        *,
        expected_version: int | None = None,
    ) -> int:
        """Full-record update keyed by scope and uuid; returns matched rows.

        Zero matched rows is not an error unless ``expected_version`` was
        supplied for a record that exists, which signals a lost update.
        """

        changes = {key: value for key, value in values.items() if key in self.columns and key not in _IMMUTABLE_FIELDS}
        changes["updated"] = models.utcnow()
        changes["version"] = self.model.version + 1
        with storage_errors(self.db, f"update {self.kind.value}"):
            query = self._one(scope, uuid)
            if expected_version is not None:
                query = query.filter(self.model.version == expected_version)
            matched = query.update(changes, synchronize_session=False)
            self.db.flush()
        if matched == 0 and expected_version is not None and self.read_any(scope, uuid) is not None:
            raise VersionConflictError(
                f"{self.kind.value} {uuid} changed since version {expected_version}",
                data={"uuid": uuid, "expected_version": expected_version},
            )
        if matched == 0:
            LOGGER.info("Update matched no %s record for %s", self.kind.value, uuid)
        self.db.expire_all()
        return matched

    def set_flags(self, scope: RecordScope | None, uuid: str | None, **flags: Any) -> int:
        """Write state columns without bumping the record version."""

        flags.setdefault("updated", models.utcnow())
        with storage_errors(self.db, f"set flags on {self.kind.value}"):
            query = self._scoped(scope) if uuid is None else self._one(scope, uuid)
            matched = query.update(flags, synchronize_session=False)
            self.db.flush()
        self.db.expire_all()
        return matched

    def soft_delete(self, scope: RecordScope | None, uuid: str, *, deleted_by: str | None = None) -> bool:
        changes: dict[str, Any] = {"is_deleted": 1, "updated": models.utcnow()}
        if deleted_by is not None:
            changes["updated_by"] = deleted_by
        with storage_errors(self.db, f"soft delete {self.kind.value}"):
            matched = (
                self._one(scope, uuid)
                .filter(self.model.is_deleted == 0)
                .update(changes, synchronize_session=False)
            )
            self.db.flush()
        self.db.expire_all()
        return matched > 0

    def restore(self, scope: RecordScope | None, uuid: str) -> bool:
        with storage_errors(self.db, f"restore {self.kind.value}"):
            matched = (
                self._one(scope, uuid)
                .filter(self.model.is_deleted == 1)
                .update({"is_deleted": 0, "updated": models.utcnow()}, synchronize_session=False)
            )
            self.db.flush()
        self.db.expire_all()
        return matched > 0

    def purge(self, scope: RecordScope | None, uuid: str) -> bool:
        """Physically delete one trashed record."""

        with storage_errors(self.db, f"purge {self.kind.value}"):
            removed = (
                self._one(scope, uuid)
                .filter(self.model.is_deleted == 1)
                .delete(synchronize_session=False)
            )
            self.db.flush()
        return removed > 0

    def purge_scope(self, scope: RecordScope) -> int:
        """Physically delete every record in a scope regardless of state."""

        with storage_errors(self.db, f"purge {self.kind.value} scope"):
            removed = self._scoped(scope).delete(synchronize_session=False)
            self.db.flush()
        return removed

    def purge_trashed(self) -> int:
        with storage_errors(self.db, f"purge trashed {self.kind.value}"):
            removed = (
                self.db.query(self.model)
                .filter(self.model.is_deleted == 1)
                .delete(synchronize_session=False)
            )
            self.db.flush()
        return removed

    def set_published(self, scope: RecordScope, value: int) -> int:
        """Bulk publish or suppress every live record in ``scope``."""

        with storage_errors(self.db, f"set published on {self.kind.value}"):
            matched = (
                self._scoped(scope)
                .filter(self.model.is_deleted == 0)
                .update({"is_published": int(value), "updated": models.utcnow()}, synchronize_session=False)
            )
            self.db.flush()
        self.db.expire_all()
        return matched

    def set_lock(self, uuid: str, user_id: int | None, *, at: datetime | None = None) -> int:
        if user_id is None:
            flags = {"is_locked": 0, "locked_by_user": None, "locked_at": None}
        else:
            flags = {"is_locked": 1, "locked_by_user": user_id, "locked_at": at or models.utcnow()}
        return self.set_flags(None, uuid, **flags)

    def reorder(self, scope: RecordScope, uuid: str, order: int) -> int:
        return self.set_flags(scope, uuid, order=int(order))
