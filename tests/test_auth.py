"""Authentication, permission and login throttling tests."""

from __future__ import annotations

from pathlib import Path

from freight_billing import AppConfig, create_app
from freight_billing.auth import limiter
from freight_billing.forms import UserFormData
from freight_billing.repositories import UserRepository


def test_reads_require_login(client) -> None:
    response = client.get("/api/customers")

    assert response.status_code == 401
    assert response.get_json() == {"message": "Authentication required"}


def test_login_logout_and_me(app, client) -> None:
    UserRepository(app.config["DB_ENGINE"]).create_user(
        UserFormData("clerk", "secret1", permissions={"can_create_bills": True})
    )

    bad = client.post("/api/auth/login", json={"username": "clerk", "password": "nope"})
    assert bad.status_code == 401

    response = client.post(
        "/api/auth/login", json={"username": "Clerk", "password": "secret1"}
    )
    assert response.status_code == 200
    assert response.get_json()["user"]["can_create_bills"] is True

    me = client.get("/api/auth/me").get_json()
    assert me["username"] == "clerk"
    assert "password_hash" not in me

    assert client.post("/api/auth/logout").status_code == 200
    assert client.get("/api/auth/me").status_code == 401


def test_login_requires_credentials(client) -> None:
    response = client.post("/api/auth/login", json={"username": "clerk"})

    assert response.status_code == 400
    assert response.get_json()["errors"] == ["Username and password are required."]


def test_login_rejects_non_object_body(client) -> None:
    response = client.post("/api/auth/login", json=["admin"])

    assert response.status_code == 400
    assert response.get_json() == {"message": "Request body must be a JSON object."}


def test_public_registration_cannot_grant_admin(client) -> None:
    response = client.post(
        "/api/auth/register",
        json={
            "username": "intruder",
            "password": "secret1",
            "role": "admin",
            "can_edit_bills": True,
        },
    )

    body = response.get_json()
    assert response.status_code == 201
    assert body["role"] == "user"
    assert body["can_edit_bills"] is False

    duplicate = client.post(
        "/api/auth/register", json={"username": "INTRUDER", "password": "secret1"}
    )
    assert duplicate.status_code == 400
    assert duplicate.get_json() == {"message": "Username already exists"}


def test_admin_registration_keeps_requested_flags(admin_client) -> None:
    response = admin_client.post(
        "/api/auth/register",
        json={"username": "manager", "password": "secret1", "can_edit_bills": True},
    )

    assert response.get_json()["can_edit_bills"] is True


def test_permission_flags_gate_writes(login_as) -> None:
    viewer = login_as("viewer")
    editor = login_as("editor", can_manage_categories=True)

    denied = viewer.post("/api/services", json={"name": "Sea Freight"})
    assert denied.status_code == 403
    assert denied.get_json() == {"message": "Permission denied"}
    assert viewer.get("/api/services").status_code == 200
    assert viewer.get("/api/dashboard").status_code == 403

    assert editor.post("/api/services", json={"name": "Sea Freight"}).status_code == 201


def test_user_management_is_admin_only(admin_client, login_as) -> None:
    clerk = login_as("clerk")
    assert clerk.get("/api/users").status_code == 403

    users = admin_client.get("/api/users").get_json()
    clerk_id = next(user["id"] for user in users if user["username"] == "clerk")

    response = admin_client.patch(
        f"/api/users/{clerk_id}", json={"can_view_revenue_pricing": True}
    )
    assert response.get_json()["can_view_revenue_pricing"] is True
    assert clerk.get("/api/dashboard").status_code == 200

    me = admin_client.get("/api/auth/me").get_json()
    assert admin_client.delete(f"/api/users/{me['id']}").status_code == 400
    assert admin_client.patch(
        f"/api/users/{me['id']}", json={"role": "user"}
    ).status_code == 400

    assert admin_client.delete(f"/api/users/{clerk_id}").get_json() == {
        "message": "User deleted successfully"
    }
    assert admin_client.delete(f"/api/users/{clerk_id}").status_code == 404


def test_create_user_validation_errors(admin_client) -> None:
    response = admin_client.post("/api/users", json={"username": "ab", "password": "1"})

    body = response.get_json()
    assert response.status_code == 400
    assert body["message"] == "Validation error"
    assert len(body["errors"]) == 2


def test_login_rate_limit_returns_429(tmp_path: Path) -> None:
    app = create_app(
        AppConfig(
            database_url=f"sqlite:///{tmp_path / 'limits.db'}",
            secret_key="testing",
            login_rate_limit="3 per minute",
        )
    )
    limiter.reset()
    client = app.test_client()
    credentials = {"username": "someone", "password": "wrong-pass"}
    try:
        for _ in range(3):
            assert client.post("/api/auth/login", json=credentials).status_code == 401
        response = client.post("/api/auth/login", json=credentials)
        assert response.status_code == 429
        assert "Too many" in response.get_json()["message"]

        # A different username is throttled separately.
        other = client.post(
            "/api/auth/login", json={"username": "another", "password": "wrong-pass"}
        )
        assert other.status_code == 401
    finally:
        limiter.reset()
        app.config["DB_ENGINE"].dispose()
