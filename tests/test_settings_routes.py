"""HTTP tests for application settings."""

from __future__ import annotations


def test_settings_round_trip(admin_client) -> None:
    saved = admin_client.put("/api/settings/company_name", json={"value": "Hana Logistics"})
    assert saved.status_code == 200
    assert saved.get_json()["value"] == "Hana Logistics"

    admin_client.put("/api/settings/company_name", json={"value": "Hana Co"})
    listed = admin_client.get("/api/settings").get_json()
    assert [(item["key"], item["value"]) for item in listed] == [("company_name", "Hana Co")]
    assert admin_client.get("/api/settings/company_name").get_json()["value"] == "Hana Co"

    assert admin_client.delete("/api/settings/company_name").get_json() == {
        "message": "Setting deleted successfully"
    }
    assert admin_client.get("/api/settings/company_name").status_code == 404


def test_setting_requires_value(admin_client) -> None:
    response = admin_client.put("/api/settings/company_name", json={})

    assert response.status_code == 400
    assert response.get_json()["errors"] == ["Setting value is required."]


def test_settings_writes_are_admin_only(login_as) -> None:
    clerk = login_as("clerk", can_manage_categories=True)

    assert clerk.get("/api/settings").status_code == 200
    assert clerk.put("/api/settings/theme", json={"value": "dark"}).status_code == 403
