"""Courtesy edit locks on exhibit-scoped records.

A lock marks who has a record open in an edit form. It never blocks reads
and does not by itself stop a direct ``update()``; writers that need a hard
guarantee pass ``expected_version`` to the record store instead.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy.orm import Session

from . import models
from .repository import EntityKind, RecordRepository, RecordScope, storage_errors

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class LockOutcome:
    record: Any
    granted: bool
    held_by: int | None


class LockManager:
    def __init__(self, db: Session, *, timeout_minutes: int = 20):
        self.db = db
        self.timeout = timedelta(minutes=timeout_minutes)

    def _is_stale(self, record, now: datetime) -> bool:
        locked_at = models.as_utc(record.locked_at)
        return locked_at is None or now - locked_at >= self.timeout

    def held_by_other(self, record, user_id: int) -> bool:
        """True while a live, non-stale lock on ``record`` belongs to someone else."""

        if record is None or not record.is_locked or record.locked_by_user == user_id:
            return False
        return not self._is_stale(record, models.utcnow())

    def lock_fields(self, record, user_id: int, requested: int) -> dict[str, Any]:
        """Lock columns an update may write for ``user_id``.

        Empty when another user holds a live lock; an update never takes over
        or clears that lock.
        """

        if self.held_by_other(record, user_id):
            LOGGER.warning(
                "User %s update left lock on %s held by user %s untouched",
                user_id,
                record.uuid,
                record.locked_by_user,
            )
            return {}
        if requested:
            return {"is_locked": 1, "locked_by_user": user_id, "locked_at": models.utcnow()}
        return {"is_locked": 0, "locked_by_user": None, "locked_at": None}

    def acquire(self, user_id: int, kind: EntityKind, scope: RecordScope | None, uuid: str) -> LockOutcome | None:
        """Lock ``uuid`` for ``user_id`` if nobody else holds a live lock.

        Returns ``None`` when the record does not exist. Otherwise the record
        is always returned; ``granted`` tells the caller whether to render it
        editable.
        """

        repo = RecordRepository(self.db, kind)
        record = repo.read(scope, uuid)
        if record is None:
            return None

        now = models.utcnow()
        if record.is_locked and record.locked_by_user == user_id:
            LOGGER.info("%s %s already locked by user %s", kind.value, uuid, user_id)
            return LockOutcome(record, True, user_id)

        if record.is_locked and not self._is_stale(record, now):
            LOGGER.warning(
                "%s %s is locked by user %s; user %s gets a read-only copy",
                kind.value,
                uuid,
                record.locked_by_user,
                user_id,
            )
            return LockOutcome(record, False, record.locked_by_user)

        if record.is_locked:
            LOGGER.warning(
                "Taking over stale lock on %s %s from user %s", kind.value, uuid, record.locked_by_user
            )
        repo.set_lock(uuid, user_id, at=now)
        with storage_errors(self.db, f"lock {kind.value}"):
            self.db.commit()
        LOGGER.info("%s %s locked for user %s", kind.value, uuid, user_id)
        return LockOutcome(repo.read(scope, uuid), True, user_id)

    def release(
        self,
        user_id: int,
        kind: EntityKind,
        scope: RecordScope | None,
        uuid: str,
        *,
        force: bool = False,
    ) -> bool:
        repo = RecordRepository(self.db, kind)
        record = repo.read_any(scope, uuid)
        if record is None or not record.is_locked:
            return False

        if record.locked_by_user != user_id:
            if not force:
                LOGGER.warning(
                    "User %s cannot release lock on %s %s held by user %s",
                    user_id,
                    kind.value,
                    uuid,
                    record.locked_by_user,
                )
                return False
            LOGGER.warning(
                "User %s force-released lock on %s %s held by user %s",
                user_id,
                kind.value,
                uuid,
                record.locked_by_user,
            )

        repo.set_lock(uuid, None)
        with storage_errors(self.db, f"unlock {kind.value}"):
            self.db.commit()
        LOGGER.info("%s %s unlocked", kind.value, uuid)
        return True
