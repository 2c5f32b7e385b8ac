import pytest

from exhibits_cms.errors import VersionConflictError
from exhibits_cms.identifiers import new_uuid
from exhibits_cms.repository import EntityKind, RecordRepository, RecordScope


@pytest.fixture
def exhibits(session):
    return RecordRepository(session, EntityKind.EXHIBIT)


@pytest.fixture
def items(session):
    return RecordRepository(session, EntityKind.ITEM)


def seed_exhibit(exhibits, **fields):
    return exhibits.create({"uuid": new_uuid(), "title": "Spring 2024", **fields})


def seed_item(items, exhibit_uuid, **fields):
    return items.create({"uuid": new_uuid(), "is_member_of_exhibit": exhibit_uuid, **fields})


def test_create_assigns_server_metadata(exhibits):
    record = seed_exhibit(exhibits, is_published=1, is_deleted=1, is_locked=1)
    assert record.id is not None
    assert record.is_published == 0
    assert record.is_deleted == 0
    assert record.is_locked == 0
    assert record.locked_by_user is None
    assert record.version == 1
    assert record.created is not None and record.updated is not None


def test_create_ignores_keys_that_are_not_columns(exhibits):
    record = seed_exhibit(exhibits, evil_proto="x", metadata="y")
    assert not hasattr(record, "evil_proto")
    assert exhibits.read(None, record.uuid).title == "Spring 2024"


def test_read_is_scoped_and_hides_deleted(exhibits, items):
    exhibit = seed_exhibit(exhibits)
    other = seed_exhibit(exhibits)
    item = seed_item(items, exhibit.uuid, title="Poster")

    assert items.read(RecordScope(exhibit_id=exhibit.uuid), item.uuid).title == "Poster"
    assert items.read(RecordScope(exhibit_id=other.uuid), item.uuid) is None
    assert items.read(None, new_uuid()) is None

    assert items.soft_delete(RecordScope(exhibit_id=exhibit.uuid), item.uuid)
    items.db.commit()
    assert items.read(RecordScope(exhibit_id=exhibit.uuid), item.uuid) is None
    assert items.read_any(RecordScope(exhibit_id=exhibit.uuid), item.uuid).is_deleted == 1


def test_read_many_and_count_only_see_live_records(exhibits, items):
    exhibit = seed_exhibit(exhibits)
    first = seed_item(items, exhibit.uuid, order=1)
    seed_item(items, exhibit.uuid, order=2)
    scope = RecordScope(exhibit_id=exhibit.uuid)
    assert items.count(scope) == 2

    items.soft_delete(scope, first.uuid)
    items.db.commit()
    assert items.count(scope) == 1
    assert [record.order for record in items.read_many(scope)] == [2]
    assert items.max_order(scope) == 2


def test_update_bumps_version_and_skips_server_columns(exhibits):
    exhibit = seed_exhibit(exhibits)
    original_uuid = exhibit.uuid
    matched = exhibits.update(
        None,
        exhibit.uuid,
        {"title": "Summer", "uuid": new_uuid(), "is_deleted": 1, "created_by": "intruder"},
    )
    exhibits.db.commit()
    assert matched == 1
    stored = exhibits.read(None, original_uuid)
    assert stored.title == "Summer"
    assert stored.version == 2
    assert stored.is_deleted == 0
    assert stored.created_by is None


def test_update_of_missing_record_is_silent_noop(exhibits):
    assert exhibits.update(None, new_uuid(), {"title": "Ghost"}) == 0


def test_update_with_stale_version_conflicts(exhibits):
    exhibit = seed_exhibit(exhibits)
    exhibits.update(None, exhibit.uuid, {"title": "First"}, expected_version=1)
    exhibits.db.commit()

    with pytest.raises(VersionConflictError) as excinfo:
        exhibits.update(None, exhibit.uuid, {"title": "Second"}, expected_version=1)
    assert excinfo.value.status == 409
    exhibits.db.rollback()
    stored = exhibits.read(None, exhibit.uuid)
    assert stored.title == "First"
    assert stored.version == 2


def test_flag_writes_do_not_change_version(exhibits):
    exhibit = seed_exhibit(exhibits)
    exhibits.set_flags(None, exhibit.uuid, is_preview=1)
    exhibits.set_lock(exhibit.uuid, 7)
    exhibits.db.commit()
    stored = exhibits.read(None, exhibit.uuid)
    assert stored.is_preview == 1
    assert stored.is_locked == 1 and stored.locked_by_user == 7
    assert stored.version == 1

    exhibits.set_lock(exhibit.uuid, None)
    exhibits.db.commit()
    stored = exhibits.read(None, exhibit.uuid)
    assert stored.is_locked == 0 and stored.locked_by_user is None and stored.locked_at is None


def test_set_published_covers_whole_scope(exhibits, items):
    exhibit = seed_exhibit(exhibits)
    other = seed_exhibit(exhibits)
    seed_item(items, exhibit.uuid)
    seed_item(items, exhibit.uuid)
    outsider = seed_item(items, other.uuid)

    assert items.set_published(RecordScope(exhibit_id=exhibit.uuid), 1) == 2
    items.db.commit()
    assert all(record.is_published == 1 for record in items.read_many(RecordScope(exhibit_id=exhibit.uuid)))
    assert items.read(None, outsider.uuid).is_published == 0


def test_soft_delete_then_restore_round_trip(exhibits, items):
    exhibit = seed_exhibit(exhibits)
    item = seed_item(items, exhibit.uuid, title="Poster", order=3, caption="c")
    scope = RecordScope(exhibit_id=exhibit.uuid)
    before = {column: getattr(item, column) for column in ("uuid", "title", "order", "caption", "version")}

    assert items.soft_delete(scope, item.uuid)
    assert items.restore(scope, item.uuid)
    items.db.commit()
    after = items.read(scope, item.uuid)
    assert {column: getattr(after, column) for column in before} == before
    assert items.restore(scope, item.uuid) is False


def test_purge_only_removes_trashed_rows(exhibits, items):
    exhibit = seed_exhibit(exhibits)
    item = seed_item(items, exhibit.uuid)
    scope = RecordScope(exhibit_id=exhibit.uuid)
    assert items.purge(scope, item.uuid) is False

    items.soft_delete(scope, item.uuid)
    assert items.purge(scope, item.uuid) is True
    items.db.commit()
    assert items.read_any(scope, item.uuid) is None


def test_grid_items_are_scoped_to_their_grid(session, exhibits):
    exhibit = seed_exhibit(exhibits)
    grids = RecordRepository(session, EntityKind.GRID)
    grid_items = RecordRepository(session, EntityKind.GRID_ITEM)
    grid_a = grids.create({"uuid": new_uuid(), "is_member_of_exhibit": exhibit.uuid})
    grid_b = grids.create({"uuid": new_uuid(), "is_member_of_exhibit": exhibit.uuid})
    grid_items.create(
        {"uuid": new_uuid(), "is_member_of_exhibit": exhibit.uuid, "is_member_of_grid": grid_a.uuid}
    )

    assert grid_items.count(RecordScope(exhibit_id=exhibit.uuid, container_id=grid_a.uuid)) == 1
    assert grid_items.count(RecordScope(exhibit_id=exhibit.uuid, container_id=grid_b.uuid)) == 0
