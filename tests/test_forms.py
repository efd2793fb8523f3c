"""Tests for payload parsing helpers."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from freight_billing.forms import (
    is_status_only_update,
    parse_bill_payload,
    parse_bill_status,
    parse_cost_batch_payload,
    parse_cost_payload,
    parse_cost_price_payload,
    parse_customer_payload,
    parse_permissions_payload,
    parse_setting_payload,
    parse_user_payload,
)
from packages.freight_common import (
    Bill,
    BillStatus,
    CostAttribute,
    Customer,
    GoodsType,
    TradeDirection,
)


def _bill_payload(**overrides):
    payload = {
        "bill_no": "HAWB-100",
        "bill_date": "2024-04-01",
        "customer_id": 1,
        "service_id": 2,
    }
    payload.update(overrides)
    return payload


def test_parse_bill_payload_applies_defaults() -> None:
    bill, errors = parse_bill_payload(_bill_payload())

    assert errors == []
    assert bill.bill_date == date(2024, 4, 1)
    assert bill.status is BillStatus.PENDING
    assert bill.trade_direction is TradeDirection.IMPORT
    assert bill.goods_type is GoodsType.AIR


def test_parse_bill_payload_reports_every_problem() -> None:
    bill, errors = parse_bill_payload(
        {"bill_date": "01/04/2024", "goods_type": "Rail", "customer_id": "abc"}
    )

    assert bill is None
    assert "Bill number is required." in errors
    assert "Bill date is required and must be YYYY-MM-DD." in errors
    assert "Customer is required." in errors
    assert "Service is required." in errors
    assert any(error.startswith("Goods type must be one of") for error in errors)


def test_parse_bill_payload_accepts_legacy_direction_label() -> None:
    bill, errors = parse_bill_payload(_bill_payload(trade_direction="xuất"))

    assert errors == []
    assert bill.trade_direction is TradeDirection.EXPORT


def test_parse_bill_payload_merges_over_existing() -> None:
    existing = Bill(
        id=7,
        bill_no="OLD-1",
        bill_date=date(2024, 1, 1),
        customer_id=1,
        service_id=1,
        goods_type=GoodsType.SEA,
        notes="keep me",
    )

    bill, errors = parse_bill_payload({"bill_no": "NEW-1"}, existing)

    assert errors == []
    assert bill.id == 7
    assert bill.bill_no == "NEW-1"
    assert bill.goods_type is GoodsType.SEA
    assert bill.notes == "keep me"


def test_status_only_update_detection() -> None:
    assert is_status_only_update({"status": "Completed"})
    assert not is_status_only_update({"status": "Completed", "notes": "x"})

    status, errors = parse_bill_status({"status": "completed"})
    assert errors == []
    assert status is BillStatus.COMPLETED
    _, errors = parse_bill_status({"status": "Shipped"})
    assert errors


def test_parse_cost_payload_amount_and_attribute() -> None:
    cost, errors = parse_cost_payload(
        {
            "bill_id": 1,
            "cost_type_id": 2,
            "supplier_id": 3,
            "amount": "125.50",
            "cost_date": "2024-04-02",
            "attribute": "Trả hộ",
            "attribute_values": [{"attribute_id": 4, "value": "40HC"}],
        }
    )

    assert errors == []
    assert cost.amount == Decimal("125.50")
    assert cost.attribute is CostAttribute.PAY_ON_BEHALF
    assert [(item.attribute_id, item.value) for item in cost.attribute_values] == [
        (4, "40HC")
    ]


def test_parse_cost_payload_rejects_non_positive_amount() -> None:
    cost, errors = parse_cost_payload(
        {
            "bill_id": 1,
            "cost_type_id": 2,
            "supplier_id": 3,
            "amount": 0,
            "cost_date": "2024-04-02",
        }
    )

    assert cost is None
    assert errors == ["Amount must be greater than 0."]


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("0.004", ["Price must be greater than 0."]),
        ("NaN", ["Price must be greater than 0."]),
        ("-1e30", ["Price must be greater than 0."]),
        ("10000000000000", ["Price must be less than 10,000,000,000,000."]),
        ("Infinity", ["Price must be greater than 0."]),
    ],
)
def test_parse_cost_price_payload_rejects_unstorable_prices(raw, expected) -> None:
    item, errors = parse_cost_price_payload(
        {"customer_id": 1, "service_id": 2, "cost_type_id": 3, "price": raw}
    )

    assert item is None
    assert errors == expected


def test_parse_cost_price_payload_rounds_to_cents() -> None:
    item, errors = parse_cost_price_payload(
        {"customer_id": 1, "service_id": 2, "cost_type_id": 3, "price": "0.005"}
    )

    assert errors == []
    assert item.price == Decimal("0.01")


def test_parse_cost_batch_payload_prefixes_item_errors() -> None:
    costs, errors = parse_cost_batch_payload({"costs": [{"amount": "5"}]})

    assert costs is None
    assert "Cost 1: Bill is required." in errors

    costs, errors = parse_cost_batch_payload({"costs": []})
    assert errors == ["Costs must be a non-empty list."]


def test_parse_customer_payload_validates_name_and_email() -> None:
    customer, errors = parse_customer_payload({"name": "A", "email": "nope"})

    assert customer is None
    assert errors == [
        "Customer name must be at least 2 characters.",
        "Invalid email address.",
    ]

    existing = Customer(id=3, name="Acme", phone="123")
    customer, errors = parse_customer_payload({"email": "ops@acme.test"}, existing)
    assert errors == []
    assert (customer.name, customer.phone, customer.email) == (
        "Acme",
        "123",
        "ops@acme.test",
    )


def test_parse_user_and_permission_payloads() -> None:
    data, errors = parse_user_payload(
        {"username": "ops", "password": "secret1", "can_edit_bills": "true"}
    )
    assert errors == []
    assert data.role == "user"
    assert data.permissions["can_edit_bills"] is True
    assert data.permissions["can_create_bills"] is False

    _, errors = parse_user_payload({"username": "op", "password": "x", "role": "boss"})
    assert len(errors) == 3

    changes, errors = parse_permissions_payload({"can_create_bills": True})
    assert errors == []
    assert changes == {"can_create_bills": True}
    _, errors = parse_permissions_payload({})
    assert errors == ["Nothing to update."]


def test_parse_setting_payload_requires_value() -> None:
    setting, errors = parse_setting_payload("company_name", {"value": "Hana"})
    assert errors == []
    assert setting.value == "Hana"

    _, errors = parse_setting_payload("company_name", {})
    assert errors == ["Setting value is required."]
