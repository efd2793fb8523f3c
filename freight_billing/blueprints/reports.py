"""Dashboard and report routes with CSV downloads."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from .. import get_repository
from ..auth import permission_required
from ..exports import (
    export_bill_detail_report,
    export_customer_report,
    export_profit_loss_report,
    export_supplier_report,
)
from ..forms import parse_iso_date
from ..reports import DateRange, ReportService, resolve_date_range
from ..repositories import BillRepository, CatalogRepository, PricingRepository
from ..serializers import (
    bill_detail_report_to_dict,
    customer_report_to_dict,
    dashboard_to_dict,
    profit_loss_to_dict,
    supplier_report_to_dict,
)
from . import query_int, raise_for_errors

reports_bp = Blueprint("reports", __name__)

VIEW_PRICING = "can_view_revenue_pricing"


def get_report_service() -> ReportService:
    return ReportService(
        get_repository(BillRepository),
        get_repository(PricingRepository),
        get_repository(CatalogRepository),
    )


def _requested_range() -> DateRange:
    """Resolve ``timeframe``, ``from`` and ``to`` query arguments."""

    start = parse_iso_date(request.args.get("from"))
    end = parse_iso_date(request.args.get("to"))
    if start is not None and end is not None and start > end:
        raise_for_errors(["from must not be after to."])
    return resolve_date_range(
        request.args.get("timeframe"),
        start,
        end,
        default_days=current_app.config.get("REPORT_DAYS", 90),
    )


@reports_bp.get("/dashboard")
@permission_required(VIEW_PRICING)
def dashboard():
    return jsonify(dashboard_to_dict(get_report_service().dashboard()))


@reports_bp.get("/reports/by-customer")
@permission_required(VIEW_PRICING)
def customer_report():
    date_range = _requested_range()
    summaries = get_report_service().by_customer(date_range)
    return jsonify(customer_report_to_dict(summaries, date_range))


@reports_bp.get("/reports/by-customer/export")
@permission_required(VIEW_PRICING)
def export_customers():
    summaries = get_report_service().by_customer(_requested_range())
    return export_customer_report(summaries).to_response()


@reports_bp.get("/reports/by-supplier")
@permission_required(VIEW_PRICING)
def supplier_report():
    """Supplier spend over the range, optionally for one ``cost_type_id``."""

    date_range = _requested_range()
    report = get_report_service().by_supplier(date_range, query_int("cost_type_id"))
    return jsonify(supplier_report_to_dict(report, date_range))


@reports_bp.get("/reports/by-supplier/export")
@permission_required(VIEW_PRICING)
def export_suppliers():
    report = get_report_service().by_supplier(
        _requested_range(), query_int("cost_type_id")
    )
    return export_supplier_report(report).to_response()


@reports_bp.get("/reports/profit-loss")
@permission_required(VIEW_PRICING)
def profit_loss_report():
    date_range = _requested_range()
    report = get_report_service().profit_loss(date_range)
    return jsonify(profit_loss_to_dict(report, date_range))


@reports_bp.get("/reports/profit-loss/export")
@permission_required(VIEW_PRICING)
def export_profit_loss():
    report = get_report_service().profit_loss(_requested_range())
    return export_profit_loss_report(report).to_response()


@reports_bp.get("/reports/bills")
@permission_required(VIEW_PRICING)
def bill_detail_report():
    date_range = _requested_range()
    summaries = get_report_service().bill_details(date_range)
    return jsonify(bill_detail_report_to_dict(summaries, date_range))


@reports_bp.get("/reports/bills/export")
@permission_required(VIEW_PRICING)
def export_bill_details():
    """One CSV row per cost for every bill in the range."""

    date_range = _requested_range()
    summaries = get_report_service().bill_details(date_range)
    current_app.logger.info(
        "Exporting %d bills for %s", len(summaries), date_range.label
    )
    return export_bill_detail_report(summaries, date_range).to_response()
