"""Error taxonomy shared by the record store, managers and routes."""

from __future__ import annotations

from typing import Any

# purpose: one exception family that the API layer renders as {status, message, data}
# status: active


class ExhibitsError(Exception):
    status: int = 500
    message: str = "Unable to process request"

    def __init__(self, message: str | None = None, *, data: Any = None, status: int | None = None):
        self.message = message or self.message
        self.data = data
        if status is not None:
            self.status = status
        super().__init__(self.message)

    def envelope(self) -> dict[str, Any]:
        body: dict[str, Any] = {"status": self.status, "message": self.message}
        if self.data is not None:
            body["data"] = self.data
        return body


class ValidationError(ExhibitsError):
    status = 400
    message = "Invalid record data"

    def __init__(self, violations: list[dict[str, str]], message: str | None = None):
        super().__init__(message, data=violations)
        self.violations = violations


class InvalidTypeError(ExhibitsError):
    status = 400
    message = "Unknown record type"


class AuthorizationError(ExhibitsError):
    status = 403
    message = "Unauthorized request"


class NotFoundError(ExhibitsError):
    status = 404
    message = "Record not found"


class ConflictError(ExhibitsError):
    """Soft failure: the request was understood but the record state refuses it."""

    status = 200
    message = "Request conflicts with record state"


class VersionConflictError(ConflictError):
    status = 409
    message = "Record was modified by another request"


class StorageError(ExhibitsError):
    status = 500
    message = "Storage operation failed"


class StorageTimeoutError(StorageError):
    status = 504
    message = "Storage operation timed out"


class IndexingError(ExhibitsError):
    status = 502
    message = "Search index request failed"


class ConfigurationError(ExhibitsError):
    message = "Invalid configuration"
