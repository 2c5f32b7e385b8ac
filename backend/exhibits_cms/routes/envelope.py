from typing import Any

from fastapi import Response
from fastapi.responses import JSONResponse

from ..errors import ValidationError
from ..identifiers import is_uuid
from ..services.outcome import Outcome


def respond(outcome: Outcome) -> Response:
    """Render an outcome with its status echoed as the HTTP status code."""

    if outcome.status == 204:
        return Response(status_code=204)
    return JSONResponse(outcome.envelope(), status_code=outcome.status)


def ok(message: str, data: Any = None, status: int = 200) -> JSONResponse:
    body: dict[str, Any] = {"status": status, "message": message}
    if data is not None:
        body["data"] = data
    return JSONResponse(body, status_code=status)


def check_uuid(value: str, field: str = "uuid") -> str:
    if not is_uuid(value):
        raise ValidationError([{"field": field, "message": "must be a valid uuid"}], "Invalid identifier")
    return value
