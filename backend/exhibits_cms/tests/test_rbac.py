import pytest

from exhibits_cms.errors import AuthorizationError
from exhibits_cms.identifiers import new_uuid
from exhibits_cms.rbac import RoleAuthorizationGate, require_permission
from exhibits_cms.repository import EntityKind, RecordRepository


@pytest.fixture
def gate(session):
    return RoleAuthorizationGate(session)


def seed_exhibit(session, owner):
    return RecordRepository(session, EntityKind.EXHIBIT).create(
        {"uuid": new_uuid(), "title": "Owned", "owner": owner.id}
    )


def test_full_permission_set_grants_any_record(gate, make_user, session):
    owner = make_user()
    exhibit = seed_exhibit(session, owner)
    editor = make_user(["update_exhibit", "update_any_exhibit"])
    assert gate.check_permission(editor, ["update_exhibit", "update_any_exhibit"], "exhibit", exhibit.uuid)


def test_partial_permission_set_needs_ownership(gate, make_user, session):
    curator = make_user(["update_exhibit"])
    stranger_exhibit = seed_exhibit(session, make_user())
    own_exhibit = seed_exhibit(session, curator)
    permissions = ["update_exhibit", "update_any_exhibit"]
    assert gate.check_permission(curator, permissions, "exhibit", own_exhibit.uuid)
    assert not gate.check_permission(curator, permissions, "exhibit", stranger_exhibit.uuid)


def test_child_ownership_takes_precedence(gate, make_user, session):
    curator = make_user(["update_item"])
    exhibit = seed_exhibit(session, make_user())
    item = RecordRepository(session, EntityKind.ITEM).create(
        {"uuid": new_uuid(), "is_member_of_exhibit": exhibit.uuid, "owner": curator.id}
    )
    permissions = ["update_item", "update_any_item"]
    assert gate.check_permission(curator, permissions, "item", exhibit.uuid, item.uuid)
    assert not gate.check_permission(curator, permissions, "item", exhibit.uuid)


def test_no_role_is_denied_and_admin_is_allowed(gate, make_user):
    assert not gate.check_permission(make_user(), ["manage_trash"])
    assert gate.check_permission(make_user(is_admin=True), ["manage_trash"])


def test_require_permission_raises(gate, make_user):
    with pytest.raises(AuthorizationError) as excinfo:
        require_permission(gate, make_user(["add_item"]), ["manage_trash"])
    assert excinfo.value.status == 403
