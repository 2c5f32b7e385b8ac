from datetime import timedelta

import pytest

from exhibits_cms import models
from exhibits_cms.identifiers import new_uuid
from exhibits_cms.locks import LockManager
from exhibits_cms.repository import EntityKind, RecordRepository, RecordScope


@pytest.fixture
def exhibit(session):
    return RecordRepository(session, EntityKind.EXHIBIT).create({"uuid": new_uuid(), "title": "Locked"})


@pytest.fixture
def locks(session):
    return LockManager(session, timeout_minutes=20)


def current(session, uuid):
    return RecordRepository(session, EntityKind.EXHIBIT).read(None, uuid)


def test_acquire_unlocked_record_grants_lock(session, locks, exhibit):
    outcome = locks.acquire(1, EntityKind.EXHIBIT, None, exhibit.uuid)
    assert outcome.granted
    assert outcome.held_by == 1
    stored = current(session, exhibit.uuid)
    assert stored.is_locked == 1
    assert stored.locked_by_user == 1
    assert stored.locked_at is not None


def test_same_user_reacquire_is_noop(session, locks, exhibit):
    first = locks.acquire(1, EntityKind.EXHIBIT, None, exhibit.uuid)
    locked_at = first.record.locked_at
    second = locks.acquire(1, EntityKind.EXHIBIT, None, exhibit.uuid)
    assert second.granted
    assert current(session, exhibit.uuid).locked_at == locked_at


def test_other_user_gets_read_only_copy(session, locks, exhibit):
    locks.acquire(1, EntityKind.EXHIBIT, None, exhibit.uuid)
    outcome = locks.acquire(2, EntityKind.EXHIBIT, None, exhibit.uuid)
    assert outcome is not None
    assert not outcome.granted
    assert outcome.held_by == 1
    assert outcome.record.uuid == exhibit.uuid
    assert current(session, exhibit.uuid).locked_by_user == 1


def test_stale_lock_is_taken_over(session, locks, exhibit):
    repo = RecordRepository(session, EntityKind.EXHIBIT)
    repo.set_lock(exhibit.uuid, 1, at=models.utcnow() - timedelta(minutes=45))
    session.commit()

    outcome = locks.acquire(2, EntityKind.EXHIBIT, None, exhibit.uuid)
    assert outcome.granted
    assert current(session, exhibit.uuid).locked_by_user == 2


def test_acquire_missing_record_returns_none(locks):
    assert locks.acquire(1, EntityKind.EXHIBIT, None, new_uuid()) is None


def test_acquire_is_scoped(session, locks, exhibit):
    heading = RecordRepository(session, EntityKind.HEADING).create(
        {"uuid": new_uuid(), "is_member_of_exhibit": exhibit.uuid, "text": "Intro"}
    )
    assert locks.acquire(1, EntityKind.HEADING, RecordScope(exhibit_id=new_uuid()), heading.uuid) is None
    assert locks.acquire(1, EntityKind.HEADING, RecordScope(exhibit_id=exhibit.uuid), heading.uuid).granted


def test_release_by_owner(session, locks, exhibit):
    locks.acquire(1, EntityKind.EXHIBIT, None, exhibit.uuid)
    assert locks.release(1, EntityKind.EXHIBIT, None, exhibit.uuid)
    stored = current(session, exhibit.uuid)
    assert stored.is_locked == 0
    assert stored.locked_by_user is None


def test_release_by_other_user_requires_force(session, locks, exhibit):
    locks.acquire(1, EntityKind.EXHIBIT, None, exhibit.uuid)
    assert not locks.release(2, EntityKind.EXHIBIT, None, exhibit.uuid)
    assert current(session, exhibit.uuid).locked_by_user == 1

    assert locks.release(2, EntityKind.EXHIBIT, None, exhibit.uuid, force=True)
    assert current(session, exhibit.uuid).is_locked == 0


def test_release_unlocked_or_missing_record_fails_quietly(locks, exhibit):
    assert not locks.release(1, EntityKind.EXHIBIT, None, exhibit.uuid)
    assert not locks.release(1, EntityKind.EXHIBIT, None, new_uuid(), force=True)
