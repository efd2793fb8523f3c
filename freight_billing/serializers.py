"""JSON renderings of domain objects and report results.

Amounts leave the API as numbers rounded to two decimals; dates use ISO
``YYYY-MM-DD``.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from packages.freight_common import (
    CENTS,
    Bill,
    BillSummary,
    Cost,
    CostAttributeValue,
    CostPrice,
    CostType,
    CostTypeAttribute,
    CostTypeBreakdown,
    Customer,
    PartySummary,
    PeriodSummary,
    Price,
    ProfitLossReport,
    Revenue,
    Service,
    Setting,
    Supplier,
    SupplierReport,
)

from .auth import User
from .forms import PERMISSION_FLAGS
from .reports import Dashboard, DateRange


def money(value: Optional[Decimal]) -> float:
    return float((value or Decimal(0)).quantize(CENTS))


def _iso(value: Optional[date | datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def contact_to_dict(party: Customer | Supplier) -> Dict[str, Any]:
    return {
        "id": party.id,
        "name": party.name,
        "contact_person": party.contact_person,
        "email": party.email,
        "phone": party.phone,
        "address": party.address,
        "created_at": _iso(party.created_at),
        "updated_at": _iso(party.updated_at),
    }


def category_to_dict(category: Service | CostType) -> Dict[str, Any]:
    return {
        "id": category.id,
        "name": category.name,
        "description": category.description,
        "created_at": _iso(category.created_at),
        "updated_at": _iso(category.updated_at),
    }


def attribute_to_dict(attribute: CostTypeAttribute) -> Dict[str, Any]:
    return {
        "id": attribute.id,
        "cost_type_id": attribute.cost_type_id,
        "cost_type_name": attribute.cost_type_name,
        "name": attribute.name,
        "created_at": _iso(attribute.created_at),
        "updated_at": _iso(attribute.updated_at),
    }


def attribute_value_to_dict(value: CostAttributeValue) -> Dict[str, Any]:
    return {
        "id": value.id,
        "cost_id": value.cost_id,
        "attribute_id": value.attribute_id,
        "attribute_name": value.attribute_name,
        "value": value.value,
        "created_at": _iso(value.created_at),
    }


def cost_to_dict(cost: Cost) -> Dict[str, Any]:
    return {
        "id": cost.id,
        "bill_id": cost.bill_id,
        "bill_no": cost.bill_no,
        "cost_type_id": cost.cost_type_id,
        "cost_type_name": cost.cost_type_name,
        "supplier_id": cost.supplier_id,
        "supplier_name": cost.supplier_name,
        "amount": money(cost.amount),
        "cost_date": _iso(cost.cost_date),
        "attribute": cost.attribute.value,
        "attribute_label": cost.attribute.label,
        "notes": cost.notes,
        "attribute_values": [
            attribute_value_to_dict(value) for value in cost.attribute_values
        ],
        "created_at": _iso(cost.created_at),
        "updated_at": _iso(cost.updated_at),
    }


def revenue_to_dict(revenue: Revenue) -> Dict[str, Any]:
    return {
        "id": revenue.id,
        "bill_id": revenue.bill_id,
        "service_id": revenue.service_id,
        "service_name": revenue.service_name,
        "amount": money(revenue.amount),
        "revenue_date": _iso(revenue.revenue_date),
        "notes": revenue.notes,
        "created_at": _iso(revenue.created_at),
        "updated_at": _iso(revenue.updated_at),
    }


def bill_to_dict(bill: Bill, *, include_children: bool = True) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "id": bill.id,
        "bill_no": bill.bill_no,
        "bill_date": _iso(bill.bill_date),
        "customer_id": bill.customer_id,
        "customer_name": bill.customer_name,
        "service_id": bill.service_id,
        "service_name": bill.service_name,
        "status": bill.status.value,
        "trade_direction": bill.trade_direction.value,
        "goods_type": bill.goods_type.value,
        "invoice_no": bill.invoice_no,
        "package_count": bill.package_count,
        "notes": bill.notes,
        "created_at": _iso(bill.created_at),
        "updated_at": _iso(bill.updated_at),
    }
    if include_children:
        payload["costs"] = [cost_to_dict(cost) for cost in bill.costs]
        payload["revenues"] = [revenue_to_dict(item) for item in bill.revenues]
        payload["recorded_revenue"] = money(bill.recorded_revenue())
    return payload


def price_to_dict(price: Price) -> Dict[str, Any]:
    return {
        "id": price.id,
        "customer_id": price.customer_id,
        "customer_name": price.customer_name,
        "service_id": price.service_id,
        "service_name": price.service_name,
        "price": money(price.price),
        "created_at": _iso(price.created_at),
        "updated_at": _iso(price.updated_at),
    }


def cost_price_to_dict(item: CostPrice) -> Dict[str, Any]:
    return {
        "id": item.id,
        "customer_id": item.customer_id,
        "customer_name": item.customer_name,
        "service_id": item.service_id,
        "service_name": item.service_name,
        "cost_type_id": item.cost_type_id,
        "cost_type_name": item.cost_type_name,
        "price": money(item.price),
        "created_at": _iso(item.created_at),
        "updated_at": _iso(item.updated_at),
    }


def setting_to_dict(setting: Setting) -> Dict[str, Any]:
    return {
        "id": setting.id,
        "key": setting.key,
        "value": setting.value,
        "updated_at": _iso(setting.updated_at),
    }


def user_to_dict(user: User) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "id": user.id,
        "username": user.username,
        "role": user.role,
        "created_at": _iso(user.created_at),
    }
    for flag in PERMISSION_FLAGS:
        payload[flag] = bool(getattr(user, flag))
    return payload


def range_to_dict(date_range: DateRange) -> Dict[str, str]:
    return {"from": date_range.start.isoformat(), "to": date_range.end.isoformat()}


def party_summary_to_dict(summary: PartySummary) -> Dict[str, Any]:
    return {
        "id": summary.id,
        "name": summary.name,
        "bill_count": summary.bill_count,
        "revenue": money(summary.revenue),
        "invoice_costs": money(summary.invoice_costs),
        "on_behalf_costs": money(summary.on_behalf_costs),
        "total_costs": money(summary.total_costs),
        "profit": money(summary.profit),
        "margin": money(summary.margin),
        "percentage": money(summary.share),
    }


def dashboard_to_dict(dashboard: Dashboard) -> Dict[str, Any]:
    return {
        "total_bills": dashboard.total_bills,
        "total_revenue": money(dashboard.revenue),
        "invoice_costs": money(dashboard.invoice_costs),
        "on_behalf_costs": money(dashboard.on_behalf_costs),
        "total_costs": money(dashboard.total_costs),
        "total_profit": money(dashboard.profit),
        "margin": money(dashboard.margin),
        "bills_trend": money(dashboard.trends.bills),
        "revenue_trend": money(dashboard.trends.revenue),
        "costs_trend": money(dashboard.trends.costs),
        "profit_trend": money(dashboard.trends.profit),
        "customer_performance": [
            party_summary_to_dict(item) for item in dashboard.top_customers
        ],
        "service_performance": [
            party_summary_to_dict(item) for item in dashboard.top_services
        ],
    }


def customer_report_to_dict(
    summaries: Iterable[PartySummary], date_range: DateRange
) -> Dict[str, Any]:
    return {
        "date_range": range_to_dict(date_range),
        "customers": [party_summary_to_dict(item) for item in summaries],
    }


def supplier_report_to_dict(
    report: SupplierReport, date_range: DateRange
) -> Dict[str, Any]:
    return {
        "date_range": range_to_dict(date_range),
        "suppliers": [
            {
                "id": item.id,
                "name": item.name,
                "transaction_count": item.transaction_count,
                "invoice_amount": money(item.invoice_amount),
                "on_behalf_amount": money(item.on_behalf_amount),
                "total_amount": money(item.total_amount),
                "average_cost": money(item.average_cost),
                "percentage": money(item.percentage),
                "cost_types": list(item.cost_type_names),
            }
            for item in report.suppliers
        ],
        "totals": {
            "transaction_count": report.transaction_count,
            "invoice_amount": money(report.invoice_total),
            "on_behalf_amount": money(report.on_behalf_total),
            "total_amount": money(report.total),
        },
    }


def _period_to_dict(period: PeriodSummary) -> Dict[str, Any]:
    return {
        "bill_count": period.bill_count,
        "revenue": money(period.revenue),
        "invoice_costs": money(period.invoice_costs),
        "on_behalf_costs": money(period.on_behalf_costs),
        "total_costs": money(period.total_costs),
        "profit": money(period.profit),
        "margin": money(period.margin),
    }


def profit_loss_to_dict(
    report: ProfitLossReport, date_range: DateRange
) -> Dict[str, Any]:
    summary = _period_to_dict(report.totals)
    summary["net_profit"] = summary.pop("profit")
    return {
        "date_range": range_to_dict(date_range),
        "summary": summary,
        "periods": [
            {"period": period.period, "label": period.label, **_period_to_dict(period)}
            for period in report.periods
        ],
    }


def _breakdown_to_dict(breakdown: CostTypeBreakdown) -> Dict[str, Any]:
    return {
        "cost_type_id": breakdown.cost_type_id,
        "cost_type_name": breakdown.cost_type_name,
        "count": breakdown.count,
        "invoice_amount": money(breakdown.invoice_amount),
        "on_behalf_amount": money(breakdown.on_behalf_amount),
        "total_amount": money(breakdown.total_amount),
        "unit_price": money(breakdown.unit_price),
        "revenue": money(breakdown.revenue),
        "profit": money(breakdown.profit),
        "price_source": breakdown.price_source,
        "invoice_costs": [cost_to_dict(cost) for cost in breakdown.invoice_costs],
        "on_behalf_costs": [cost_to_dict(cost) for cost in breakdown.on_behalf_costs],
    }


def bill_summary_to_dict(summary: BillSummary) -> Dict[str, Any]:
    payload = bill_to_dict(summary.bill, include_children=False)
    payload.update(
        {
            "revenue": money(summary.revenue),
            "invoice_cost": money(summary.invoice_cost),
            "on_behalf_cost": money(summary.on_behalf_cost),
            "total_cost": money(summary.total_cost),
            "profit": money(summary.profit),
            "cost_types": [_breakdown_to_dict(item) for item in summary.cost_types],
        }
    )
    return payload


def bill_detail_report_to_dict(
    summaries: List[BillSummary], date_range: DateRange
) -> Dict[str, Any]:
    return {
        "date_range": range_to_dict(date_range),
        "bills": [bill_summary_to_dict(item) for item in summaries],
        "totals": {
            "bill_count": len(summaries),
            "revenue": money(sum((item.revenue for item in summaries), Decimal(0))),
            "invoice_cost": money(
                sum((item.invoice_cost for item in summaries), Decimal(0))
            ),
            "on_behalf_cost": money(
                sum((item.on_behalf_cost for item in summaries), Decimal(0))
            ),
            "profit": money(sum((item.profit for item in summaries), Decimal(0))),
        },
    }
