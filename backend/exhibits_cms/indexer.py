"""Search index collaborator used by publish, suppress and preview."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

from elasticsearch import ApiError, Elasticsearch, TransportError
from fastapi import Request

from .config import Settings
from .errors import IndexingError

LOGGER = logging.getLogger(__name__)

_EXHIBIT_FIELDS = (
    "uuid",
    "type",
    "title",
    "subtitle",
    "banner_template",
    "about_the_curators",
    "alert_text",
    "hero_image",
    "thumbnail",
    "description",
    "page_layout",
    "exhibit_template",
    "styles",
    "is_featured",
    "is_student_curated",
    "is_published",
    "is_preview",
)

_CONTENT_SKIP = {"id", "is_locked", "locked_by_user", "locked_at", "is_deleted", "version"}


def _content_doc(record) -> dict[str, Any]:
    doc: dict[str, Any] = {}
    for column in record.__table__.columns:
        if column.name in _CONTENT_SKIP:
            continue
        value = getattr(record, column.name)
        doc[column.name] = value.isoformat() if hasattr(value, "isoformat") else value
    return doc


def build_exhibit_document(exhibit, content: Iterable = ()) -> dict[str, Any]:
    doc = {name: getattr(exhibit, name, None) for name in _EXHIBIT_FIELDS}
    doc["items"] = [_content_doc(record) for record in content]
    return doc


class SearchIndex:
    """Thin wrapper over an Elasticsearch client; without a client every call is skipped."""

    def __init__(self, client: Optional[Elasticsearch], index_name: str = "exhibits"):
        self.client = client
        self.index_name = index_name

    def index_exhibit(self, document: dict[str, Any]) -> dict[str, str]:
        if not self.client:
            return {"status": "skipped"}
        try:
            self.client.index(index=self.index_name, id=document["uuid"], document=document)
        except (ApiError, TransportError) as exc:
            LOGGER.error("Unable to index exhibit %s", document["uuid"], exc_info=True)
            raise IndexingError(f"Unable to index exhibit {document['uuid']}") from exc
        return {"status": "indexed"}

    def delete_exhibit(self, uuid: str) -> dict[str, str]:
        if not self.client:
            return {"status": "skipped"}
        try:
            self.client.options(ignore_status=404).delete(index=self.index_name, id=uuid)
        except (ApiError, TransportError) as exc:
            LOGGER.error("Unable to remove exhibit %s from index", uuid, exc_info=True)
            raise IndexingError(f"Unable to remove exhibit {uuid} from index") from exc
        return {"status": "deleted"}

    def has_exhibit(self, uuid: str) -> bool:
        if not self.client:
            return False
        try:
            return bool(self.client.exists(index=self.index_name, id=uuid))
        except (ApiError, TransportError) as exc:
            raise IndexingError(f"Unable to query index for exhibit {uuid}") from exc


def build_index(settings: Settings) -> SearchIndex:
    client = Elasticsearch(settings.elasticsearch_url) if settings.elasticsearch_url else None
    return SearchIndex(client, settings.index_name)


def get_index(request: Request) -> SearchIndex:
    return request.app.state.index
