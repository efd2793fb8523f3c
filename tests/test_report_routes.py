"""HTTP tests for the dashboard and report endpoints."""

from __future__ import annotations

import csv
import io

import pytest

RANGE = "?timeframe=custom&from=2024-05-01&to=2024-05-31"


@pytest.fixture()
def billed(admin_client, seed):
    bill = admin_client.post(
        "/api/bills",
        json={
            "bill_no": "HAWB-500",
            "bill_date": "2024-05-10",
            "customer_id": seed["customer"],
            "service_id": seed["service"],
        },
    ).get_json()
    for cost_type, amount, attribute in (
        ("handling", 40, "invoice"),
        ("handling", 20, "invoice"),
        ("customs", 15, "pay_on_behalf"),
    ):
        admin_client.post(
            "/api/costs",
            json={
                "bill_id": bill["id"],
                "cost_type_id": seed[cost_type],
                "supplier_id": seed["supplier"],
                "amount": amount,
                "cost_date": "2024-05-11",
                "attribute": attribute,
            },
        )
    return bill


def test_dashboard_totals(admin_client, billed) -> None:
    body = admin_client.get("/api/dashboard").get_json()

    assert body["total_bills"] == 1
    assert body["total_revenue"] == 150.0
    assert body["invoice_costs"] == 60.0
    assert body["on_behalf_costs"] == 15.0
    assert body["total_costs"] == 75.0
    assert body["total_profit"] == 90.0
    assert body["margin"] == 60.0
    assert body["customer_performance"][0]["name"] == "Acme Trading"
    assert body["service_performance"][0]["percentage"] == 100.0


def test_customer_report(admin_client, billed) -> None:
    body = admin_client.get(f"/api/reports/by-customer{RANGE}").get_json()

    assert body["date_range"] == {"from": "2024-05-01", "to": "2024-05-31"}
    (customer,) = body["customers"]
    assert customer["bill_count"] == 1
    assert customer["profit"] == 90.0

    export = admin_client.get(f"/api/reports/by-customer/export{RANGE}")
    assert export.mimetype == "text/csv"
    assert "customer-report.csv" in export.headers["Content-Disposition"]


def test_supplier_report_with_cost_type_filter(admin_client, seed, billed) -> None:
    body = admin_client.get(f"/api/reports/by-supplier{RANGE}").get_json()
    assert body["totals"]["total_amount"] == 75.0
    assert body["suppliers"][0]["cost_types"] == ["Handling", "Customs"]

    filtered = admin_client.get(
        f"/api/reports/by-supplier{RANGE}&cost_type_id={seed['customs']}"
    ).get_json()
    assert filtered["totals"] == {
        "transaction_count": 1,
        "invoice_amount": 0.0,
        "on_behalf_amount": 15.0,
        "total_amount": 15.0,
    }

    rows = list(
        csv.reader(io.StringIO(admin_client.get(f"/api/reports/by-supplier/export{RANGE}").get_data(as_text=True)))
    )
    assert rows[-1][1] == "TOTAL"


def test_profit_loss_report(admin_client, billed) -> None:
    body = admin_client.get(f"/api/reports/profit-loss{RANGE}").get_json()

    assert body["summary"]["net_profit"] == 90.0
    assert body["summary"]["total_costs"] == 75.0
    assert [(p["period"], p["label"]) for p in body["periods"]] == [
        ("2024-05", "May 2024")
    ]

    export = admin_client.get(f"/api/reports/profit-loss/export{RANGE}")
    rows = list(csv.reader(io.StringIO(export.get_data(as_text=True))))
    assert rows[1][0] == "May 2024"
    assert rows[-1][0] == "TOTAL"


def test_bill_detail_report_and_export(admin_client, billed) -> None:
    body = admin_client.get(f"/api/reports/bills{RANGE}").get_json()

    (bill,) = body["bills"]
    assert bill["revenue"] == 150.0
    assert bill["profit"] == 90.0
    handling, customs = bill["cost_types"]
    assert handling["count"] == 2
    assert handling["price_source"] == "cost_price"
    assert customs["price_source"] == "pay_on_behalf_only"
    assert body["totals"]["bill_count"] == 1

    export = admin_client.get(f"/api/reports/bills/export{RANGE}")
    assert (
        "bill-detail-2024-05-01-2024-05-31.csv"
        in export.headers["Content-Disposition"]
    )
    rows = list(csv.reader(io.StringIO(export.get_data(as_text=True))))
    assert len(rows) == 4
    assert rows[1][-2:] == ["150.00", "90.00"]


def test_range_outside_bills_is_empty(admin_client, billed) -> None:
    body = admin_client.get(
        "/api/reports/profit-loss?timeframe=custom&from=2023-01-01&to=2023-01-31"
    ).get_json()

    assert body["summary"]["bill_count"] == 0
    assert body["periods"] == []


def test_reversed_range_is_rejected(admin_client) -> None:
    response = admin_client.get(
        "/api/reports/by-customer?timeframe=custom&from=2024-06-01&to=2024-05-01"
    )

    assert response.status_code == 400
    assert response.get_json()["errors"] == ["from must not be after to."]
