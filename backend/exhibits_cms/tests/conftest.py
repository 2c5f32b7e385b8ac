import os
os.environ["TESTING"] = "1"
os.environ.setdefault("EXHIBITS_SECRET_KEY", "test-secret")
import pytest
from fastapi.testclient import TestClient

import sys
from pathlib import Path

import uuid

sys.path.append(str(Path(__file__).resolve().parents[2]))

from exhibits_cms import models
from exhibits_cms.auth import create_access_token
from exhibits_cms.config import Settings
from exhibits_cms.database import Base
from exhibits_cms.errors import IndexingError
from exhibits_cms.main import create_app

ALL_PERMISSIONS = [
    "add_exhibit",
    "update_any_exhibit",
    "update_exhibit",
    "delete_any_exhibit",
    "delete_exhibit",
    "publish_any_exhibit",
    "publish_exhibit",
    "suppress_any_exhibit",
    "suppress_exhibit",
    "build_preview",
    "edit_exhibit",
    "add_item",
    "add_item_to_any_exhibit",
    "update_item",
    "update_any_item",
    "delete_item",
    "delete_any_item",
    "publish_item",
    "publish_any_item",
    "suppress_item",
    "suppress_any_item",
    "manage_trash",
    "view_audit_log",
]

class FakeIndex:
    """Records index calls; set ``fail`` to make every call raise."""

    def __init__(self):
        self.indexed: list[dict] = []
        self.deleted: list[str] = []
        self.fail = False

    def index_exhibit(self, document):
        if self.fail:
            raise IndexingError(f"Unable to index exhibit {document['uuid']}")
        self.indexed.append(document)
        return {"status": "indexed"}

    def delete_exhibit(self, uuid):
        if self.fail:
            raise IndexingError(f"Unable to remove exhibit {uuid} from index")
        self.deleted.append(uuid)
        return {"status": "deleted"}

    def has_exhibit(self, uuid):
        return any(doc["uuid"] == uuid for doc in self.indexed) and uuid not in self.deleted


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'test.db'}",
        storage_root=tmp_path / "storage",
        secret_key="test-secret",
        testing=True,
    )


@pytest.fixture
def fake_index():
    return FakeIndex()


@pytest.fixture
def app(settings, fake_index):
    application = create_app(settings)
    application.state.index = fake_index
    Base.metadata.create_all(bind=application.state.engine)
    yield application
    Base.metadata.drop_all(bind=application.state.engine)
    application.state.engine.dispose()


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def session(app):
    db = app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def make_user(session):
    def _make_user(permissions=None, *, is_admin=False, full_name="Test Curator"):
        role = None
        if permissions is not None:
            role = models.Role(name=f"role-{uuid.uuid4()}", permissions=list(permissions))
            session.add(role)
            session.flush()
        user = models.User(
            email=f"user-{uuid.uuid4()}@example.com",
            full_name=full_name,
            is_admin=1 if is_admin else 0,
            role_id=role.id if role else None,
        )
        session.add(user)
        session.commit()
        return user

    return _make_user


@pytest.fixture
def auth_headers(settings):
    def _auth_headers(user):
        token = create_access_token({"sub": str(user.id)}, settings)
        return {"Authorization": f"Bearer {token}"}

    return _auth_headers


@pytest.fixture
def editor(make_user):
    return make_user(ALL_PERMISSIONS)


@pytest.fixture
def editor_headers(editor, auth_headers):
    return auth_headers(editor)


@pytest.fixture
def second_editor(make_user):
    return make_user(ALL_PERMISSIONS, full_name="Second Curator")


@pytest.fixture
def new_exhibit(client, editor_headers):
    def _new_exhibit(headers=None, **fields):
        payload = {"title": "Spring 2024", **fields}
        resp = client.post("/api/exhibits", json=payload, headers=headers or editor_headers)
        assert resp.status_code == 201, resp.text
        return resp.json()["data"]["uuid"]

    return _new_exhibit


@pytest.fixture
def new_child(client, editor_headers):
    def _new_child(exhibit_id, segment, headers=None, **fields):
        resp = client.post(
            f"/api/exhibits/{exhibit_id}/{segment}", json=fields, headers=headers or editor_headers
        )
        assert resp.status_code == 201, resp.text
        return resp.json()["data"]["uuid"]

    return _new_child
