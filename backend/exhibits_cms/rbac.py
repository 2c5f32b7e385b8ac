from __future__ import annotations

import logging
from typing import Protocol, Sequence

from fastapi import Depends
from sqlalchemy.orm import Session

from . import models
from .database import get_db
from .errors import AuthorizationError
from .repository import EntityKind, RecordRepository

LOGGER = logging.getLogger(__name__)

# purpose: decide allow/deny for a permission set against a record's ownership
# status: active


class AuthorizationGate(Protocol):
    def check_permission(
        self,
        user: models.User,
        permissions: Sequence[str],
        record_type: str | None = None,
        parent_id: str | None = None,
        child_id: str | None = None,
    ) -> bool: ...


def user_permissions(user: models.User) -> set[str]:
    if user.role is None:
        return set()
    return set(user.role.permissions or [])


class RoleAuthorizationGate:
    """Grant when the user's role holds every listed permission.

    Holding only some of them (the "own record" variant without the "any
    record" one) grants access to records the user owns.
    """

    def __init__(self, db: Session):
        self.db = db

    def _owner_of(self, record_type: str | None, parent_id: str | None, child_id: str | None) -> int | None:
        if child_id and record_type and record_type != EntityKind.EXHIBIT.value:
            try:
                kind = EntityKind(record_type)
            except ValueError:
                return None
            record = RecordRepository(self.db, kind).read_any(None, child_id)
            if record is not None and record.owner is not None:
                return record.owner
        if parent_id:
            exhibit = RecordRepository(self.db, EntityKind.EXHIBIT).read_any(None, parent_id)
            if exhibit is not None:
                return exhibit.owner
        return None

    def check_permission(
        self,
        user: models.User,
        permissions: Sequence[str],
        record_type: str | None = None,
        parent_id: str | None = None,
        child_id: str | None = None,
    ) -> bool:
        if user.is_admin:
            return True
        granted = user_permissions(user) & set(permissions)
        if not granted:
            return False
        if len(granted) == len(set(permissions)):
            return True
        return self._owner_of(record_type, parent_id, child_id) == user.id


def require_permission(
    gate: AuthorizationGate,
    user: models.User,
    permissions: Sequence[str],
    *,
    record_type: str | None = None,
    parent_id: str | None = None,
    child_id: str | None = None,
) -> None:
    if not gate.check_permission(user, permissions, record_type, parent_id, child_id):
        LOGGER.warning(
            "User %s denied %s on %s %s", user.id, list(permissions), record_type, child_id or parent_id
        )
        raise AuthorizationError("Unauthorized request")


def get_gate(db: Session = Depends(get_db)) -> AuthorizationGate:
    return RoleAuthorizationGate(db)
