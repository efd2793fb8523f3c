"""CSV downloads for the reports."""

from __future__ import annotations

import csv
import io
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, List, Sequence

from flask import Response

from packages.freight_common import (
    CENTS,
    BillSummary,
    CostAttribute,
    PartySummary,
    ProfitLossReport,
    SupplierReport,
)

from .reports import DateRange

_FORMULA_PREFIXES = ("=", "+", "-", "@")
NOT_AVAILABLE = "N/A"


@dataclass(slots=True)
class CsvExport:
    filename: str
    content: str

    def to_response(self) -> Response:
        response = Response(self.content, mimetype="text/csv")
        response.headers["Content-Disposition"] = f"attachment; filename={self.filename}"
        return response


def _escape_for_csv(value: object) -> str:
    """Return text with spreadsheet formula prefixes neutralised.

    Text beginning with ``=``, ``+``, ``-`` or ``@`` is prefixed with an
    apostrophe so spreadsheet software renders it literally. ``None`` becomes
    an empty cell.
    """

    if value is None:
        return ""
    text = str(value)
    if text.startswith(_FORMULA_PREFIXES):
        return f"'{text}"
    return text


def _amount(value: Decimal) -> str:
    return str(value.quantize(CENTS))


def _render(header: Sequence[str], rows: Iterable[Sequence[object]]) -> str:
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(header)
    writer.writerows(rows)
    return output.getvalue()


def export_customer_report(summaries: Iterable[PartySummary]) -> CsvExport:
    header = [
        "Customer ID",
        "Customer",
        "Bills",
        "Revenue",
        "Invoice costs",
        "Pay-on-behalf costs",
        "Total costs",
        "Profit",
        "Margin (%)",
    ]
    rows = [
        [
            item.id,
            _escape_for_csv(item.name),
            item.bill_count,
            _amount(item.revenue),
            _amount(item.invoice_costs),
            _amount(item.on_behalf_costs),
            _amount(item.total_costs),
            _amount(item.profit),
            _amount(item.margin),
        ]
        for item in summaries
    ]
    return CsvExport("customer-report.csv", _render(header, rows))


def export_supplier_report(report: SupplierReport) -> CsvExport:
    """Render the supplier report followed by a ``TOTAL`` row."""

    header = [
        "Supplier ID",
        "Supplier",
        "Cost types",
        "Transactions",
        "Invoice costs",
        "Pay-on-behalf costs",
        "Total costs",
        "Average cost",
        "Percentage (%)",
    ]
    rows: List[List[object]] = [
        [
            item.id,
            _escape_for_csv(item.name),
            _escape_for_csv(", ".join(item.cost_type_names)),
            item.transaction_count,
            _amount(item.invoice_amount),
            _amount(item.on_behalf_amount),
            _amount(item.total_amount),
            _amount(item.average_cost),
            _amount(item.percentage),
        ]
        for item in report.suppliers
    ]
    transactions = report.transaction_count
    average = report.total / transactions if transactions else Decimal(0)
    rows.append(
        [
            "",
            "TOTAL",
            "",
            transactions,
            _amount(report.invoice_total),
            _amount(report.on_behalf_total),
            _amount(report.total),
            _amount(average),
            "100.00" if report.suppliers else "0.00",
        ]
    )
    return CsvExport("supplier-report.csv", _render(header, rows))


def export_profit_loss_report(report: ProfitLossReport) -> CsvExport:
    header = [
        "Period",
        "Bills",
        "Revenue",
        "Invoice costs",
        "Pay-on-behalf costs",
        "Total costs",
        "Profit",
        "Margin (%)",
    ]
    rows: List[List[object]] = []
    for period in [*report.periods, report.totals]:
        rows.append(
            [
                period.label if period is not report.totals else "TOTAL",
                period.bill_count,
                _amount(period.revenue),
                _amount(period.invoice_costs),
                _amount(period.on_behalf_costs),
                _amount(period.total_costs),
                _amount(period.profit),
                _amount(period.margin),
            ]
        )
    return CsvExport("profit-loss-report.csv", _render(header, rows))


def bill_detail_rows(summaries: Iterable[BillSummary]) -> List[List[object]]:
    """Flatten bill summaries into one CSV row per cost.

    Revenue and profit for a cost type appear on its first invoice cost only;
    pay-on-behalf rows always show zero. A bill without costs yields a single
    row with ``N/A`` placeholders.
    """

    rows: List[List[object]] = []
    zero = _amount(Decimal(0))
    for summary in summaries:
        bill = summary.bill
        prefix = [
            _escape_for_csv(bill.bill_no),
            bill.bill_date.isoformat(),
            _escape_for_csv(bill.customer_name or NOT_AVAILABLE),
            _escape_for_csv(bill.service_name or NOT_AVAILABLE),
            bill.trade_direction.value,
            bill.goods_type.value,
            _escape_for_csv(bill.invoice_no or NOT_AVAILABLE),
        ]
        if not summary.cost_types:
            rows.append(
                prefix
                + [NOT_AVAILABLE, NOT_AVAILABLE, NOT_AVAILABLE, zero, zero, zero]
            )
            continue
        for breakdown in summary.cost_types:
            for index, cost in enumerate(breakdown.invoice_costs):
                first = index == 0
                rows.append(
                    prefix
                    + [
                        _escape_for_csv(cost.supplier_name or NOT_AVAILABLE),
                        _escape_for_csv(breakdown.cost_type_name),
                        CostAttribute.INVOICE.label,
                        _amount(cost.amount),
                        _amount(breakdown.revenue) if first else zero,
                        _amount(breakdown.profit) if first else zero,
                    ]
                )
            for cost in breakdown.on_behalf_costs:
                rows.append(
                    prefix
                    + [
                        _escape_for_csv(cost.supplier_name or NOT_AVAILABLE),
                        _escape_for_csv(breakdown.cost_type_name),
                        CostAttribute.PAY_ON_BEHALF.label,
                        _amount(cost.amount),
                        zero,
                        zero,
                    ]
                )
    return rows


def export_bill_detail_report(
    summaries: Iterable[BillSummary], date_range: DateRange
) -> CsvExport:
    header = [
        "Bill no",
        "Date",
        "Customer",
        "Service",
        "Import/Export",
        "Goods type",
        "Invoice no",
        "Supplier",
        "Cost type",
        "Attribute",
        "Cost",
        "Revenue",
        "Profit",
    ]
    filename = (
        f"bill-detail-{date_range.start.isoformat()}-{date_range.end.isoformat()}.csv"
    )
    return CsvExport(filename, _render(header, bill_detail_rows(summaries)))
