"""HTTP tests for bills, costs and revenues."""

from __future__ import annotations

import pytest


@pytest.fixture()
def bill(admin_client, seed):
    response = admin_client.post(
        "/api/bills",
        json={
            "bill_no": "HAWB-100",
            "bill_date": "2024-05-01",
            "customer_id": seed["customer"],
            "service_id": seed["service"],
            "goods_type": "Sea",
            "package_count": 3,
        },
    )
    assert response.status_code == 201
    return response.get_json()


def _cost_payload(seed, bill, **overrides):
    payload = {
        "bill_id": bill["id"],
        "cost_type_id": seed["handling"],
        "supplier_id": seed["supplier"],
        "amount": "45.50",
        "cost_date": "2024-05-02",
    }
    payload.update(overrides)
    return payload


def test_create_bill_returns_names_and_defaults(bill) -> None:
    assert bill["customer_name"] == "Acme Trading"
    assert bill["service_name"] == "Air Freight"
    assert bill["status"] == "Pending"
    assert bill["trade_direction"] == "import"
    assert bill["goods_type"] == "Sea"
    assert bill["costs"] == []


def test_create_bill_validation(admin_client, seed) -> None:
    response = admin_client.post(
        "/api/bills",
        json={"bill_no": "", "bill_date": "2024-13-01", "customer_id": seed["customer"]},
    )

    assert response.status_code == 400
    assert response.get_json()["errors"] == [
        "Bill number is required.",
        "Bill date is required and must be YYYY-MM-DD.",
        "Service is required.",
    ]


def test_create_bill_with_unknown_customer(admin_client, seed) -> None:
    response = admin_client.post(
        "/api/bills",
        json={
            "bill_no": "X",
            "bill_date": "2024-05-01",
            "customer_id": 999,
            "service_id": seed["service"],
        },
    )

    assert response.status_code == 404
    assert response.get_json() == {"message": "Customer not found"}


def test_status_only_update_keeps_other_fields(admin_client, bill) -> None:
    response = admin_client.patch(f"/api/bills/{bill['id']}", json={"status": "Completed"})

    body = response.get_json()
    assert body["status"] == "Completed"
    assert body["goods_type"] == "Sea"
    assert body["package_count"] == 3

    invalid = admin_client.patch(f"/api/bills/{bill['id']}", json={"status": "Lost"})
    assert invalid.status_code == 400


def test_full_update_merges_payload(admin_client, bill) -> None:
    response = admin_client.patch(
        f"/api/bills/{bill['id']}",
        json={"invoice_no": "INV-9", "trade_direction": "export"},
    )

    body = response.get_json()
    assert body["invoice_no"] == "INV-9"
    assert body["trade_direction"] == "export"
    assert body["bill_no"] == "HAWB-100"


def test_list_bills_filters(admin_client, seed, bill) -> None:
    admin_client.post(
        "/api/bills",
        json={
            "bill_no": "HAWB-200",
            "bill_date": "2024-07-01",
            "customer_id": seed["customer"],
            "service_id": seed["service"],
            "status": "In Progress",
        },
    )

    def numbers(query: str):
        body = admin_client.get(f"/api/bills{query}").get_json()
        return [item["bill_no"] for item in body["bills"]]

    assert numbers("") == ["HAWB-200", "HAWB-100"]
    assert numbers("?status=in%20progress") == ["HAWB-200"]
    assert numbers("?status=all") == ["HAWB-200", "HAWB-100"]
    assert numbers("?start_date=2024-06-01") == ["HAWB-200"]
    assert numbers("?end_date=2024-05-01") == ["HAWB-100"]
    assert numbers("?search=100") == ["HAWB-100"]
    assert numbers("?limit=1") == ["HAWB-200"]
    assert admin_client.get("/api/bills?status=Lost").status_code == 400
    assert admin_client.get("/api/bills?start_date=yesterday").status_code == 400


def test_cost_lifecycle(admin_client, seed, bill) -> None:
    created = admin_client.post("/api/costs", json=_cost_payload(seed, bill))
    assert created.status_code == 201
    cost = created.get_json()
    assert cost["amount"] == 45.5
    assert cost["attribute"] == "invoice"
    assert cost["supplier_name"] == "Blue Line Logistics"

    updated = admin_client.patch(
        f"/api/costs/{cost['id']}", json={"attribute": "pay_on_behalf", "amount": 60}
    ).get_json()
    assert updated["attribute_label"] == "Pay on behalf"
    assert updated["amount"] == 60.0

    loaded = admin_client.get(f"/api/bills/{bill['id']}").get_json()
    assert [item["id"] for item in loaded["costs"]] == [cost["id"]]
    assert admin_client.get(f"/api/costs?bill_id={bill['id']}").get_json()[0]["id"] == cost["id"]

    assert admin_client.delete(f"/api/costs/{cost['id']}").get_json() == {
        "message": "Cost deleted successfully"
    }
    assert admin_client.get(f"/api/costs/{cost['id']}").status_code == 404


def test_cost_amount_must_be_positive(admin_client, seed, bill) -> None:
    response = admin_client.post("/api/costs", json=_cost_payload(seed, bill, amount=-1))

    assert response.status_code == 400
    assert response.get_json()["errors"] == ["Amount must be greater than 0."]


@pytest.mark.parametrize(
    ("amount", "message"),
    [
        ("0.001", "Amount must be greater than 0."),
        ("1e30", "Amount must be less than 10,000,000,000,000."),
    ],
)
def test_cost_amount_outside_storable_range_is_rejected(
    admin_client, seed, bill, amount: str, message: str
) -> None:
    response = admin_client.post(
        "/api/costs", json=_cost_payload(seed, bill, amount=amount)
    )

    assert response.status_code == 400
    assert response.get_json() == {"message": "Validation error", "errors": [message]}
    assert admin_client.get(f"/api/costs?bill_id={bill['id']}").get_json() == []


def test_cost_amount_is_rounded_to_cents(admin_client, seed, bill) -> None:
    response = admin_client.post(
        "/api/costs", json=_cost_payload(seed, bill, amount="12.345")
    )

    assert response.status_code == 201
    assert response.get_json()["amount"] == 12.35


def test_cost_batch_is_all_or_nothing(admin_client, seed, bill) -> None:
    failed = admin_client.post(
        "/api/costs/batch",
        json={
            "costs": [
                _cost_payload(seed, bill),
                _cost_payload(seed, bill, supplier_id=999),
            ]
        },
    )
    assert failed.status_code == 404
    assert admin_client.get("/api/costs").get_json() == []

    created = admin_client.post(
        "/api/costs/batch",
        json={
            "costs": [
                _cost_payload(seed, bill),
                _cost_payload(seed, bill, cost_type_id=seed["customs"], attribute="Trả hộ"),
            ]
        },
    )
    assert created.status_code == 201
    assert [item["attribute"] for item in created.get_json()] == ["invoice", "pay_on_behalf"]


def test_revenue_lifecycle(admin_client, seed, bill) -> None:
    created = admin_client.post(
        "/api/revenues",
        json={
            "bill_id": bill["id"],
            "service_id": seed["service"],
            "amount": "300",
            "revenue_date": "2024-05-03",
        },
    )
    assert created.status_code == 201
    revenue = created.get_json()

    updated = admin_client.patch(
        f"/api/revenues/{revenue['id']}", json={"notes": "Deposit"}
    ).get_json()
    assert updated["notes"] == "Deposit"
    assert updated["amount"] == 300.0

    loaded = admin_client.get(f"/api/bills/{bill['id']}").get_json()
    assert loaded["recorded_revenue"] == 300.0
    assert len(admin_client.get(f"/api/revenues?bill_id={bill['id']}").get_json()) == 1

    assert admin_client.delete(f"/api/revenues/{revenue['id']}").status_code == 200


def test_delete_bill_removes_children(admin_client, seed, bill) -> None:
    admin_client.post("/api/costs", json=_cost_payload(seed, bill))

    response = admin_client.delete(f"/api/bills/{bill['id']}")

    assert response.get_json() == {"message": "Bill deleted successfully"}
    assert admin_client.get("/api/costs").get_json() == []
    assert admin_client.get(f"/api/bills/{bill['id']}").status_code == 404


def test_bill_permissions(login_as, seed, bill) -> None:
    creator = login_as("creator", can_create_bills=True)

    assert creator.post("/api/costs", json=_cost_payload(seed, bill)).status_code == 201
    assert creator.patch(
        f"/api/bills/{bill['id']}", json={"status": "Completed"}
    ).status_code == 403
    assert creator.delete(f"/api/bills/{bill['id']}").status_code == 403
