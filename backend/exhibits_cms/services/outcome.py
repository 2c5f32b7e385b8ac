from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Outcome:
    """Result of a lifecycle operation, shaped like the response envelope.

    Soft refusals (delete guard, publish guard) are outcomes rather than
    exceptions; ``reason`` tells them apart from plain success.
    """

    status: int
    message: str
    data: Any = None
    reason: str | None = None

    @property
    def refused(self) -> bool:
        return self.reason is not None

    def envelope(self) -> dict[str, Any]:
        body: dict[str, Any] = {"status": self.status, "message": self.message}
        data = self.data
        if self.reason is not None:
            data = {"reason": self.reason, **(data or {})}
        if data is not None:
            body["data"] = data
        return body
