from datetime import timedelta

import pytest
from fastapi.routing import APIRoute

from exhibits_cms.auth import AuthenticationError, create_access_token, decode_access_token, get_current_user
from exhibits_cms.main import PUBLIC_PATHS


def test_token_round_trip(settings):
    token = create_access_token({"sub": "7"}, settings)
    assert decode_access_token(token, settings)["sub"] == "7"


def test_expired_token_is_rejected(settings):
    token = create_access_token({"sub": "7"}, settings, expires_delta=timedelta(minutes=-1))
    with pytest.raises(AuthenticationError):
        decode_access_token(token, settings)


def test_missing_token_returns_401_envelope(client):
    resp = client.get("/api/exhibits")
    assert resp.status_code == 401
    assert resp.json() == {"status": 401, "message": "Not authenticated"}


def test_unknown_user_is_rejected(client, settings):
    token = create_access_token({"sub": "9999"}, settings)
    resp = client.get("/api/exhibits", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401


def test_inactive_user_is_rejected(client, make_user, auth_headers, session):
    user = make_user()
    user.is_active = 0
    session.commit()
    resp = client.get("/api/exhibits", headers=auth_headers(user))
    assert resp.status_code == 401


def test_all_api_routes_require_auth(app):
    for route in app.routes:
        if isinstance(route, APIRoute) and route.path.startswith("/api") and route.path not in PUBLIC_PATHS:
            calls = [dep.call for dep in route.dependant.dependencies]
            assert get_current_user in calls, route.path


def test_health_and_metrics_are_public(client):
    assert client.get("/health").json() == {"status": 200, "message": "ok"}
    assert client.get("/metrics").status_code == 200
