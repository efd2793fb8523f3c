"""Tests for CSV report rendering."""

from __future__ import annotations

import csv
import io
from datetime import date
from decimal import Decimal

from freight_billing.exports import (
    _escape_for_csv,
    bill_detail_rows,
    export_bill_detail_report,
    export_customer_report,
    export_supplier_report,
)
from freight_billing.reports import DateRange
from packages.freight_common import (
    Bill,
    Cost,
    CostAttribute,
    PartySummary,
    PriceBook,
    summarize_bill,
    summarize_suppliers,
)


def _rows(content: str):
    return list(csv.reader(io.StringIO(content)))


def _cost(cost_type_id, name, amount, attribute=CostAttribute.INVOICE):
    return Cost(
        bill_id=1,
        cost_type_id=cost_type_id,
        supplier_id=5,
        amount=Decimal(amount),
        cost_date=date(2024, 3, 1),
        attribute=attribute,
        cost_type_name=name,
        supplier_name="Blue Line",
    )


def test_escape_for_csv_neutralises_formulas() -> None:
    assert _escape_for_csv("=SUM(A1:A2)") == "'=SUM(A1:A2)"
    assert _escape_for_csv("@cmd") == "'@cmd"
    assert _escape_for_csv("Acme") == "Acme"
    assert _escape_for_csv(None) == ""


def test_customer_export_headers_and_values() -> None:
    export = export_customer_report(
        [
            PartySummary(
                id=1,
                name="=Acme",
                bill_count=2,
                revenue=Decimal("200"),
                invoice_costs=Decimal("50"),
            )
        ]
    )

    rows = _rows(export.content)
    assert export.filename == "customer-report.csv"
    assert rows[0][0] == "Customer ID"
    assert rows[1] == [
        "1",
        "'=Acme",
        "2",
        "200.00",
        "50.00",
        "0.00",
        "50.00",
        "150.00",
        "75.00",
    ]


def test_supplier_export_appends_total_row() -> None:
    report = summarize_suppliers(
        [(5, "Blue Line")],
        [
            _cost(1, "Handling", "30.00"),
            _cost(2, "Customs", "10.00", CostAttribute.PAY_ON_BEHALF),
        ],
    )

    rows = _rows(export_supplier_report(report).content)

    assert rows[1][1:4] == ["Blue Line", "Handling, Customs", "2"]
    assert rows[-1] == ["", "TOTAL", "", "2", "30.00", "10.00", "40.00", "20.00", "100.00"]


def test_bill_detail_rows_show_revenue_once_per_cost_type() -> None:
    bill = Bill(
        bill_no="HAWB-9",
        bill_date=date(2024, 3, 1),
        customer_id=1,
        service_id=1,
        customer_name="Acme",
        service_name="Air",
        costs=[
            _cost(1, "Handling", "40.00"),
            _cost(1, "Handling", "10.00"),
            _cost(2, "Customs", "25.00", CostAttribute.PAY_ON_BEHALF),
        ],
    )
    summary = summarize_bill(bill, PriceBook({(1, 1, 1): Decimal("120.00")}))

    rows = bill_detail_rows([summary])

    assert [row[-4:] for row in rows] == [
        ["Invoice", "40.00", "120.00", "70.00"],
        ["Invoice", "10.00", "0.00", "0.00"],
        ["Pay on behalf", "25.00", "0.00", "0.00"],
    ]
    assert rows[0][:7] == ["HAWB-9", "2024-03-01", "Acme", "Air", "import", "Air", "N/A"]


def test_bill_without_costs_gets_placeholder_row() -> None:
    bill = Bill(bill_no="EMPTY", bill_date=date(2024, 3, 2), customer_id=1, service_id=1)
    export = export_bill_detail_report(
        [summarize_bill(bill, PriceBook())],
        DateRange(date(2024, 3, 1), date(2024, 3, 31)),
    )

    rows = _rows(export.content)
    assert export.filename == "bill-detail-2024-03-01-2024-03-31.csv"
    assert rows[1][2:4] == ["N/A", "N/A"]
    assert rows[1][7:] == ["N/A", "N/A", "N/A", "0.00", "0.00", "0.00"]

    response = export.to_response()
    assert response.mimetype == "text/csv"
    assert "attachment" in response.headers["Content-Disposition"]
