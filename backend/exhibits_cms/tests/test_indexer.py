import pytest
from elasticsearch import ConnectionError as ESConnectionError

from exhibits_cms.config import Settings
from exhibits_cms.errors import IndexingError
from exhibits_cms.identifiers import new_uuid
from exhibits_cms.indexer import SearchIndex, build_exhibit_document, build_index
from exhibits_cms.repository import EntityKind, RecordRepository


class RecordingClient:
    def __init__(self, fail=False):
        self.calls = []
        self.fail = fail

    def options(self, **kwargs):
        return self

    def index(self, index, id, document):
        if self.fail:
            raise ESConnectionError("cluster unreachable")
        self.calls.append(("index", index, id))

    def delete(self, index, id):
        if self.fail:
            raise ESConnectionError("cluster unreachable")
        self.calls.append(("delete", index, id))

    def exists(self, index, id):
        return ("index", index, id) in self.calls


def test_without_client_every_call_is_skipped():
    index = build_index(Settings())
    assert index.client is None
    assert index.index_exhibit({"uuid": "x"}) == {"status": "skipped"}
    assert index.delete_exhibit("x") == {"status": "skipped"}
    assert index.has_exhibit("x") is False


def test_index_and_delete_round_trip():
    client = RecordingClient()
    index = SearchIndex(client, "exhibits")
    assert index.index_exhibit({"uuid": "abc"}) == {"status": "indexed"}
    assert index.has_exhibit("abc")
    assert index.delete_exhibit("abc") == {"status": "deleted"}
    assert client.calls == [("index", "exhibits", "abc"), ("delete", "exhibits", "abc")]


def test_transport_failures_become_indexing_errors():
    index = SearchIndex(RecordingClient(fail=True), "exhibits")
    with pytest.raises(IndexingError):
        index.index_exhibit({"uuid": "abc"})
    with pytest.raises(IndexingError):
        index.delete_exhibit("abc")


def test_exhibit_document_includes_ordered_content(session):
    exhibit = RecordRepository(session, EntityKind.EXHIBIT).create({"uuid": new_uuid(), "title": "Doc"})
    item = RecordRepository(session, EntityKind.ITEM).create(
        {"uuid": new_uuid(), "is_member_of_exhibit": exhibit.uuid, "title": "Poster", "order": 1}
    )
    document = build_exhibit_document(exhibit, [item])
    assert document["uuid"] == exhibit.uuid
    assert document["title"] == "Doc"
    assert document["items"][0]["title"] == "Poster"
    assert "is_locked" not in document["items"][0]
    assert isinstance(document["items"][0]["created"], str)
