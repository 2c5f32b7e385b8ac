"""Trash: listing, restoring and purging soft-deleted records."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from .errors import ConflictError, InvalidTypeError, StorageError
from .repository import EntityKind, RecordRepository, RecordScope, storage_errors

LOGGER = logging.getLogger(__name__)

# purpose: one aggregated view over soft-deleted exhibits, headings and items
# status: active
# related_docs: DESIGN.md (open question on grids and timelines in trash)

TRASH_TYPES: dict[str, EntityKind] = {
    "exhibit": EntityKind.EXHIBIT,
    "heading": EntityKind.HEADING,
    "item": EntityKind.ITEM,
}

LISTING_KEYS: dict[EntityKind, str] = {
    EntityKind.EXHIBIT: "exhibit_records",
    EntityKind.HEADING: "exhibit_heading_records",
    EntityKind.ITEM: "exhibit_item_records",
}


def resolve_type(record_type: str) -> EntityKind:
    try:
        return TRASH_TYPES[record_type]
    except KeyError as exc:
        raise InvalidTypeError(
            f"Unknown record type '{record_type}'", data={"allowed": sorted(TRASH_TYPES)}
        ) from exc


@dataclass
class PurgeReport:
    removed: dict[str, int] = field(default_factory=dict)
    failed: list[str] = field(default_factory=list)


class TrashManager:
    def __init__(self, db: Session):
        self.db = db

    def list_trashed(self) -> dict[str, list]:
        """Trashed records keyed by kind; kinds with nothing trashed are absent."""

        listing: dict[str, list] = {}
        for kind, key in LISTING_KEYS.items():
            records = RecordRepository(self.db, kind).read_trashed()
            if records:
                listing[key] = records
        return listing

    def _purge_children(self, exhibit_id: str) -> None:
        # children of a purged exhibit would be unreachable orphans
        exhibit_scope = RecordScope(exhibit_id=exhibit_id)
        for child_kind in EntityKind:
            if child_kind is not EntityKind.EXHIBIT:
                RecordRepository(self.db, child_kind).purge_scope(exhibit_scope)

    def purge(self, scope: RecordScope, uuid: str, record_type: str) -> bool:
        kind = resolve_type(record_type)
        repo = RecordRepository(self.db, kind)
        removed = repo.purge(scope, uuid)
        if removed and kind is EntityKind.EXHIBIT:
            self._purge_children(uuid)
        with storage_errors(self.db, f"purge {kind.value}"):
            self.db.commit()
        if removed:
            LOGGER.info("Permanently deleted %s %s", kind.value, uuid)
        return removed

    def purge_all(self) -> PurgeReport:
        """Empty the trash table by table; a failing table does not undo the others."""

        report = PurgeReport()
        for kind in LISTING_KEYS:
            repo = RecordRepository(self.db, kind)
            try:
                if kind is EntityKind.EXHIBIT:
                    for exhibit in repo.read_trashed():
                        self._purge_children(exhibit.uuid)
                report.removed[kind.value] = repo.purge_trashed()
                with storage_errors(self.db, f"purge trashed {kind.value}"):
                    self.db.commit()
            except StorageError:
                LOGGER.error("Unable to empty trash for %s records", kind.value)
                report.failed.append(kind.value)
        LOGGER.info("Trash emptied: %s", report.removed)
        return report

    def restore(self, scope: RecordScope, uuid: str, record_type: str) -> bool:
        """Bring a record back from the trash.

        Restoring a record that is already live is a successful no-op. A child
        record cannot come back while its exhibit is still trashed.
        """

        kind = resolve_type(record_type)
        repo = RecordRepository(self.db, kind)
        record = repo.read_any(scope, uuid)
        if record is None:
            return False
        if not record.is_deleted:
            return True

        if kind is not EntityKind.EXHIBIT:
            exhibit = RecordRepository(self.db, EntityKind.EXHIBIT).read_any(None, record.is_member_of_exhibit)
            if exhibit is None or exhibit.is_deleted:
                raise ConflictError(
                    "Restore the exhibit before restoring its content",
                    data={"is_member_of_exhibit": record.is_member_of_exhibit},
                )

        repo.restore(scope, uuid)
        with storage_errors(self.db, f"restore {kind.value}"):
            self.db.commit()
        LOGGER.info("Restored %s %s", kind.value, uuid)
        return True
