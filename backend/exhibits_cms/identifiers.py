from __future__ import annotations

import uuid

# purpose: external record identifiers; integer primary keys stay internal to the store
# status: active


def new_uuid() -> str:
    return str(uuid.uuid4())


def is_uuid(value: object) -> bool:
    """Return True when ``value`` is a canonical hyphenated UUID string."""

    if not isinstance(value, str):
        return False
    try:
        parsed = uuid.UUID(value)
    except ValueError:
        return False
    return str(parsed) == value.lower()
