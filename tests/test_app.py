from fastapi.testclient import TestClient

import steelerp.main
from steelerp.auth import issue_token
from steelerp.main import app


def test_health_endpoints(client) -> None:
    with client:
        assert client.get("/").json() == {"status": "ok"}
        assert client.get("/health").json() == {"status": "healthy"}


def test_session_cookie_is_accepted(client, admin) -> None:
    with client:
        client.cookies.set("token", issue_token(admin.id))
        resp = client.get("/api/dashboard/executive-summary")
        assert resp.status_code == 200


def test_token_for_deleted_user_is_rejected(client) -> None:
    with client:
        resp = client.get(
            "/api/dashboard/executive-summary",
            headers={"Authorization": f"Bearer {issue_token('ghost')}"},
        )
        assert resp.status_code == 401


def test_unexpected_failure_returns_generic_error(client, admin, auth, monkeypatch) -> None:
    def explode(db):
        raise RuntimeError("connection reset")

    monkeypatch.setattr(steelerp.main, "build_executive_summary", explode)
    with TestClient(app, raise_server_exceptions=False) as failing:
        resp = failing.get("/api/dashboard/executive-summary", headers=auth(admin))

    assert resp.status_code == 500
    assert resp.json() == {"error": "Internal Server Error"}
