from datetime import timedelta

from exhibits_cms import audit, models


def test_history_records_lifecycle_actions(client, editor, editor_headers, new_exhibit, new_child):
    exhibit_id = new_exhibit()
    new_child(exhibit_id, "items", title="Poster")
    client.post(f"/api/exhibits/{exhibit_id}/publish", headers=editor_headers)

    resp = client.get(f"/api/audit/exhibit/{exhibit_id}", headers=editor_headers)
    assert resp.status_code == 200
    body = resp.json()
    assert body["message"] == "Record history"
    actions = [entry["action"] for entry in body["data"]]
    assert actions == ["create_exhibit", "publish_exhibit"]
    assert all(entry["user_id"] == editor.id for entry in body["data"])


def test_history_requires_permission(client, make_user, auth_headers, new_exhibit):
    exhibit_id = new_exhibit()
    viewer = make_user(["add_exhibit"])
    resp = client.get(f"/api/audit/exhibit/{exhibit_id}", headers=auth_headers(viewer))
    assert resp.status_code == 403
    assert resp.json()["status"] == 403


def test_history_filters_by_since(session):
    log = audit.log_action(session, None, "create_exhibit", "exhibit", "a" * 8)
    session.commit()
    later = models.as_utc(log.created_at) + timedelta(minutes=1)
    assert audit.history(session, "exhibit", "a" * 8) == [log]
    assert audit.history(session, "exhibit", "a" * 8, since=later) == []
