"""Field-level validation of inbound record payloads.

Schemas are plain ``field -> rule`` maps so they read like the record
definitions they guard. Each map is compiled once into a strict pydantic
model; pydantic does the type checking and the errors are reshaped into the
``{"field": ..., "message": ...}`` violations the API returns with a 400.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Mapping, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    StrictBool,
    StrictFloat,
    StrictInt,
    StrictStr,
    create_model,
)
from pydantic import ValidationError as PydanticValidationError

Violation = dict[str, str]

_RULE_TYPES: dict[str, Any] = {
    "string": StrictStr,
    "number": Union[StrictInt, StrictFloat],
    "integer": StrictInt,
    "boolean": StrictBool,
    # shape is not inspected beyond being a JSON container
    "object": Union[dict[str, Any], list[Any]],
}

_STATE_FIELDS = {
    "is_published": {"type": "integer"},
    "is_locked": {"type": "integer"},
}

_EXHIBIT_FIELDS = {
    "title": {"type": "string"},
    "subtitle": {"type": "string"},
    "banner_template": {"type": "string"},
    "about_the_curators": {"type": "string"},
    "alert_text": {"type": "string"},
    "hero_image": {"type": "string"},
    "thumbnail": {"type": "string"},
    "description": {"type": "string"},
    "page_layout": {"type": "string"},
    "exhibit_template": {"type": "string"},
    "styles": {"type": "object"},
    "order": {"type": "integer"},
    "is_featured": {"type": "integer"},
    "is_student_curated": {"type": "integer"},
}

_CHILD_FIELDS = {
    "uuid": {"type": "string", "required": True},
    "is_member_of_exhibit": {"type": "string", "required": True},
    "styles": {"type": "object"},
    "order": {"type": "integer"},
}

_MEDIA_FIELDS = {
    "item_type": {"type": "string"},
    "title": {"type": "string"},
    "caption": {"type": "string"},
    "description": {"type": "string"},
    "text": {"type": "string"},
    "media": {"type": "string"},
    "thumbnail": {"type": "string"},
    "mime_type": {"type": "string"},
    "layout": {"type": "string"},
}

SCHEMAS: dict[str, dict[str, dict[str, Any]]] = {
    "exhibit_create": {
        "uuid": {"type": "string", "required": True},
        **_EXHIBIT_FIELDS,
        "title": {"type": "string", "required": True},
    },
    "exhibit_update": {
        **_EXHIBIT_FIELDS,
        "is_published": {"type": "integer", "required": True},
        "is_locked": {"type": "integer", "required": True},
    },
    "heading": {
        **_CHILD_FIELDS,
        **_STATE_FIELDS,
        "text": {"type": "string"},
        "is_visible": {"type": "integer"},
        "is_anchor": {"type": "integer"},
    },
    "item": {
        **_CHILD_FIELDS,
        **_STATE_FIELDS,
        **_MEDIA_FIELDS,
        "wrap_text": {"type": "integer"},
        "media_width": {"type": "integer"},
        "alt_text": {"type": "string"},
        "is_alt_text_decorative": {"type": "integer"},
        "pdf_open_to_page": {"type": "integer"},
        "item_subjects": {"type": "string"},
        "columns": {"type": "integer"},
        "is_repo_item": {"type": "integer"},
        "is_kaltura_item": {"type": "integer"},
        "is_embedded": {"type": "integer"},
    },
    "grid": {
        **_CHILD_FIELDS,
        **_STATE_FIELDS,
        "title": {"type": "string"},
        "text": {"type": "string"},
        "columns": {"type": "integer"},
    },
    "grid_item": {
        **_CHILD_FIELDS,
        **_STATE_FIELDS,
        **_MEDIA_FIELDS,
        "is_member_of_grid": {"type": "string", "required": True},
        "date": {"type": "string"},
    },
    "timeline": {
        **_CHILD_FIELDS,
        **_STATE_FIELDS,
        "title": {"type": "string"},
        "text": {"type": "string"},
    },
    "timeline_item": {
        **_CHILD_FIELDS,
        **_STATE_FIELDS,
        "is_member_of_timeline": {"type": "string", "required": True},
        "item_type": {"type": "string"},
        "title": {"type": "string"},
        "date": {"type": "string"},
        "description": {"type": "string"},
        "text": {"type": "string"},
        "media": {"type": "string"},
        "thumbnail": {"type": "string"},
    },
}


def get_schema(name: str) -> dict[str, dict[str, Any]]:
    try:
        return SCHEMAS[name]
    except KeyError as exc:
        raise KeyError(f"Unknown validation schema: {name}") from exc


@lru_cache(maxsize=None)
def _compiled(name: str) -> type[BaseModel]:
    fields: dict[str, Any] = {}
    for field_name, rule in get_schema(name).items():
        annotation = _RULE_TYPES[rule["type"]]
        if rule.get("required"):
            fields[field_name] = (annotation, ...)
        else:
            fields[field_name] = (Optional[annotation], None)
    model_name = "".join(part.title() for part in name.split("_")) + "Payload"
    return create_model(model_name, __config__=ConfigDict(extra="ignore"), **fields)


def _describe(error: Mapping[str, Any], schema: Mapping[str, Mapping[str, Any]]) -> Violation:
    field_name = str(error["loc"][0]) if error.get("loc") else ""
    if error.get("type") == "missing":
        return {"field": field_name, "message": "is required"}
    rule = schema.get(field_name, {})
    expected = rule.get("type", "valid")
    article = "an" if expected[:1] in "aeiou" else "a"
    return {"field": field_name, "message": f"must be {article} {expected}"}


def validate(payload: Any, schema_name: str) -> bool | list[Violation]:
    """Return ``True`` when ``payload`` satisfies the named schema, else its violations."""

    if not isinstance(payload, Mapping):
        return [{"field": "", "message": "payload must be an object"}]
    if len(payload) == 0:
        return [{"field": "", "message": "payload is empty"}]

    schema = get_schema(schema_name)
    try:
        _compiled(schema_name).model_validate(dict(payload))
    except PydanticValidationError as exc:
        violations: list[Violation] = []
        seen: set[str] = set()
        for error in exc.errors():
            violation = _describe(error, schema)
            # union rules report one error per member; keep the first per field
            if violation["field"] in seen:
                continue
            seen.add(violation["field"])
            violations.append(violation)
        return violations
    return True


def whitelist(payload: Mapping[str, Any], schema_name: str) -> dict[str, Any]:
    """Drop every key the named schema does not declare."""

    schema = get_schema(schema_name)
    return {key: value for key, value in payload.items() if key in schema}
