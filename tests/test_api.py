from __future__ import annotations

import pytest
from fastapi import Request
from fastapi.testclient import TestClient

from user_service.domain.service import UserDirectory
from user_service.main import create_app

ADMIN = {"X-Role": "ADMIN"}


def _payload(**overrides):
    body = {
        "name": "Juan Carlos",
        "email": "carlos@example.com",
        "age": 28,
        "profile": {"id": 1, "code": "ADM", "displayName": "Administrador"},
    }
    body.update(overrides)
    return body


@pytest.fixture
def api_client():
    """Provide a FastAPI test client with an isolated directory."""
    directory = UserDirectory()
    app = create_app(directory)
    with TestClient(app) as client:
        yield client, directory


def test_list_starts_empty(api_client):
    client, _ = api_client
    response = client.get("/users")
    assert response.status_code == 200
    assert response.json() == []


def test_create_requires_admin_role(api_client):
    client, directory = api_client
    response = client.post("/users", json=_payload())
    assert response.status_code == 403
    body = response.json()
    assert body["statusCode"] == 403
    assert body["error"] == "Forbidden"
    assert "ADMIN" not in body["message"]
    assert body["path"] == "/users"
    assert directory.count() == 0


def test_create_rejects_user_role(api_client):
    client, _ = api_client
    response = client.post("/users", json=_payload(), headers={"X-Role": "user"})
    assert response.status_code == 403


def test_create_returns_user(api_client):
    client, _ = api_client
    response = client.post("/users", json=_payload(), headers=ADMIN)
    assert response.status_code == 201
    body = response.json()
    assert body["id"] == 1
    assert body["name"] == "Juan Carlos"
    assert body["email"] == "carlos@example.com"
    assert body["age"] == 28
    assert body["profile"] == {"id": 1, "code": "ADM", "displayName": "Administrador"}
    assert isinstance(body["createdAt"], str) and body["createdAt"]


def test_role_header_is_case_insensitive(api_client):
    client, _ = api_client
    response = client.post("/users", json=_payload(), headers={"x-role": "admin"})
    assert response.status_code == 201


def test_duplicate_email_conflicts(api_client):
    client, _ = api_client
    client.post("/users", json=_payload(), headers=ADMIN)
    response = client.post(
        "/users",
        json=_payload(name="Otro", email="CARLOS@EXAMPLE.COM"),
        headers=ADMIN,
    )
    assert response.status_code == 409
    body = response.json()
    assert body["error"] == "EmailAlreadyExists"
    assert body["field"] == "email"
    assert "carlos@example.com" in body["message"]
    assert body["timestamp"]


def test_create_rejects_missing_field(api_client):
    client, _ = api_client
    payload = _payload()
    del payload["name"]
    response = client.post("/users", json=payload, headers=ADMIN)
    assert response.status_code == 400
    body = response.json()
    assert body["statusCode"] == 400
    assert body["error"] == "ValidationError"
    assert any(message.startswith("body.name") for message in body["message"])


def test_create_rejects_unknown_fields(api_client):
    client, _ = api_client
    response = client.post("/users", json=_payload(role="ADMIN"), headers=ADMIN)
    assert response.status_code == 400
    assert any("body.role" in message for message in response.json()["message"])


@pytest.mark.parametrize(
    "overrides",
    [
        {"email": "not-an-email"},
        {"age": -1},
        {"age": "28"},
        {"name": ""},
        {"profile": {"id": 0, "code": "ADM", "displayName": "Administrador"}},
        {"profile": {"id": 1, "code": "ADM"}},
    ],
)
def test_create_rejects_invalid_values(api_client, overrides):
    client, directory = api_client
    response = client.post("/users", json=_payload(**overrides), headers=ADMIN)
    assert response.status_code == 400
    assert directory.count() == 0


def test_get_user(api_client):
    client, _ = api_client
    created = client.post("/users", json=_payload(), headers=ADMIN).json()
    response = client.get(f"/users/{created['id']}")
    assert response.status_code == 200
    assert response.json() == created


def test_get_unknown_user_returns_404(api_client):
    client, _ = api_client
    response = client.get("/users/999")
    assert response.status_code == 404
    body = response.json()
    assert body["error"] == "UserNotFound"
    assert "999" in body["message"]
    assert body["path"] == "/users/999"


def test_non_integer_id_is_rejected(api_client):
    client, _ = api_client
    response = client.get("/users/abc")
    assert response.status_code == 400
    assert response.json()["error"] == "ValidationError"


def test_list_filters_by_query(api_client):
    client, _ = api_client
    client.post("/users", json=_payload(), headers=ADMIN)
    client.post(
        "/users",
        json=_payload(
            name="Malta",
            email="malta@example.com",
            age=33,
            profile={"id": 2, "code": "USR", "displayName": "Usuario"},
        ),
        headers=ADMIN,
    )

    response = client.get("/users", params={"q": "adm"})
    assert response.status_code == 200
    body = response.json()
    assert len(body) == 1
    assert body[0]["profile"]["code"] == "ADM"

    assert len(client.get("/users", params={"q": "  "}).json()) == 2


def test_patch_merges_profile(api_client):
    client, _ = api_client
    created = client.post("/users", json=_payload(), headers=ADMIN).json()
    response = client.patch(
        f"/users/{created['id']}",
        json={"name": "Juan Carlos Updated", "profile": {"displayName": "Admin Global"}},
        headers=ADMIN,
    )
    assert response.status_code == 200
    body = response.json()
    assert body["name"] == "Juan Carlos Updated"
    assert body["profile"] == {"id": 1, "code": "ADM", "displayName": "Admin Global"}
    assert body["createdAt"] == created["createdAt"]


def test_patch_requires_admin_role(api_client):
    client, _ = api_client
    created = client.post("/users", json=_payload(), headers=ADMIN).json()
    response = client.patch(f"/users/{created['id']}", json={"name": "Nope"})
    assert response.status_code == 403
    assert client.get(f"/users/{created['id']}").json()["name"] == "Juan Carlos"


def test_patch_duplicate_email_conflicts(api_client):
    client, _ = api_client
    client.post("/users", json=_payload(), headers=ADMIN)
    second = client.post(
        "/users", json=_payload(name="Malta", email="malta@example.com"), headers=ADMIN
    ).json()

    conflict = client.patch(
        f"/users/{second['id']}", json={"email": "CARLOS@example.com"}, headers=ADMIN
    )
    assert conflict.status_code == 409
    assert conflict.json()["field"] == "email"

    ok = client.patch(f"/users/{second['id']}", json={"email": "new@example.com"}, headers=ADMIN)
    assert ok.status_code == 200
    assert ok.json()["email"] == "new@example.com"


def test_patch_unknown_user_returns_404(api_client):
    client, _ = api_client
    response = client.patch("/users/42", json={"name": "Ghost"}, headers=ADMIN)
    assert response.status_code == 404


def test_patch_rejects_unknown_profile_fields(api_client):
    client, _ = api_client
    created = client.post("/users", json=_payload(), headers=ADMIN).json()
    response = client.patch(
        f"/users/{created['id']}", json={"profile": {"display_name": "X"}}, headers=ADMIN
    )
    assert response.status_code == 400


def test_delete_then_get_returns_404(api_client):
    client, _ = api_client
    created = client.post("/users", json=_payload(), headers=ADMIN).json()

    assert client.delete(f"/users/{created['id']}").status_code == 403

    response = client.delete(f"/users/{created['id']}", headers=ADMIN)
    assert response.status_code == 204
    assert response.content == b""

    assert client.get(f"/users/{created['id']}").status_code == 404
    assert client.delete(f"/users/{created['id']}", headers=ADMIN).status_code == 404


def test_identity_role_used_when_header_absent():
    app = create_app(UserDirectory())

    @app.middleware("http")
    async def attach_identity(request: Request, call_next):
        request.state.identity = {"role": "admin"}
        return await call_next(request)

    with TestClient(app) as client:
        assert client.post("/users", json=_payload()).status_code == 201
        # the header takes precedence over the attached identity
        response = client.post(
            "/users", json=_payload(email="other@example.com"), headers={"X-Role": "USER"}
        )
        assert response.status_code == 403


def test_unexpected_error_is_hidden(api_client, monkeypatch):
    _, directory = api_client

    def boom(filter_text=None):
        raise RuntimeError("database exploded")

    monkeypatch.setattr(directory, "list_users", boom)
    app = create_app(directory)
    with TestClient(app, raise_server_exceptions=False) as client:
        response = client.get("/users")
    assert response.status_code == 500
    body = response.json()
    assert body["error"] == "RuntimeError"
    assert body["message"] == "Unexpected error"
    assert "exploded" not in response.text


def test_unknown_route_uses_envelope(api_client):
    client, _ = api_client
    response = client.get("/nowhere")
    assert response.status_code == 404
    assert response.json()["error"] == "NotFound"


def test_healthz_and_metrics(api_client):
    client, _ = api_client
    client.post("/users", json=_payload(), headers=ADMIN)

    health = client.get("/healthz")
    assert health.status_code == 200
    assert health.json() == {"status": "ok", "users": 1}

    metrics = client.get("/metrics")
    assert metrics.status_code == 200
    assert "user_directory_operations_total" in metrics.text
