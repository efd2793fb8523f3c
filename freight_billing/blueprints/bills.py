"""Routes for bills and the costs and revenues recorded against them."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from flask_login import login_required

from packages.freight_common import BillStatus

from .. import get_repository
from ..auth import permission_required
from ..forms import (
    is_status_only_update,
    parse_bill_payload,
    parse_bill_status,
    parse_cost_batch_payload,
    parse_cost_payload,
    parse_iso_date,
    parse_revenue_payload,
)
from ..repositories import BillRepository
from ..serializers import bill_to_dict, cost_to_dict, revenue_to_dict
from . import deleted, json_body, query_int, raise_for_errors

bills_bp = Blueprint("bills", __name__)

CREATE = "can_create_bills"
EDIT = "can_edit_bills"


def _bills() -> BillRepository:
    return get_repository(BillRepository)


def _date_arg(name: str, errors: list):
    raw = request.args.get(name)
    value = parse_iso_date(raw)
    if raw and value is None:
        errors.append(f"{name} must be YYYY-MM-DD.")
    return value


@bills_bp.get("/bills")
@login_required
def list_bills():
    """List bills newest first.

    Query arguments: ``customer_id``, ``service_id``, ``status`` (``all``
    disables the filter), ``start_date``, ``end_date``, ``search`` and
    ``limit``.
    """

    errors: list = []
    status = request.args.get("status") or None
    if status and status.lower() != "all":
        try:
            status = BillStatus.parse(status).value
        except ValueError:
            errors.append(f"status must be one of: {', '.join(BillStatus.values())}.")
    start = _date_arg("start_date", errors)
    end = _date_arg("end_date", errors)
    raise_for_errors(errors)
    found = _bills().list_bills(
        customer_id=query_int("customer_id"),
        service_id=query_int("service_id"),
        status=status,
        start=start,
        end=end,
        search=request.args.get("search") or None,
        limit=query_int("limit"),
    )
    return jsonify({"bills": [bill_to_dict(bill) for bill in found]})


@bills_bp.get("/bills/<int:bill_id>")
@login_required
def get_bill(bill_id: int):
    return jsonify(bill_to_dict(_bills().get_bill(bill_id)))


@bills_bp.post("/bills")
@permission_required(CREATE)
def create_bill():
    bill, errors = parse_bill_payload(json_body())
    raise_for_errors(errors)
    created = _bills().create_bill(bill)
    current_app.logger.info("Created bill %s (%s)", created.bill_no, created.id)
    return jsonify(bill_to_dict(created)), 201


@bills_bp.patch("/bills/<int:bill_id>")
@permission_required(EDIT)
def update_bill(bill_id: int):
    """Update a bill.

    A body holding only ``status`` changes the status alone; anything else
    is merged over the stored bill and validated as a whole.
    """

    payload = json_body()
    repo = _bills()
    if is_status_only_update(payload):
        status, errors = parse_bill_status(payload)
        raise_for_errors(errors)
        return jsonify(bill_to_dict(repo.update_bill_status(bill_id, status)))
    bill, errors = parse_bill_payload(payload, repo.get_bill(bill_id))
    raise_for_errors(errors)
    return jsonify(bill_to_dict(repo.update_bill(bill_id, bill)))


@bills_bp.delete("/bills/<int:bill_id>")
@permission_required(EDIT)
def delete_bill(bill_id: int):
    _bills().delete_bill(bill_id)
    return deleted("Bill")


# Costs


@bills_bp.get("/costs")
@login_required
def list_costs():
    return jsonify([cost_to_dict(cost) for cost in _bills().list_costs(query_int("bill_id"))])


@bills_bp.get("/costs/<int:cost_id>")
@login_required
def get_cost(cost_id: int):
    return jsonify(cost_to_dict(_bills().get_cost(cost_id)))


@bills_bp.post("/costs")
@permission_required(CREATE)
def create_cost():
    cost, errors = parse_cost_payload(json_body())
    raise_for_errors(errors)
    return jsonify(cost_to_dict(_bills().create_cost(cost))), 201


@bills_bp.post("/costs/batch")
@permission_required(CREATE)
def create_costs():
    """Create several costs at once; nothing is stored if any one fails."""

    cost_list, errors = parse_cost_batch_payload(json_body())
    raise_for_errors(errors)
    created = _bills().create_costs(cost_list)
    return jsonify([cost_to_dict(cost) for cost in created]), 201


@bills_bp.patch("/costs/<int:cost_id>")
@permission_required(EDIT)
def update_cost(cost_id: int):
    payload = json_body()
    repo = _bills()
    cost, errors = parse_cost_payload(payload, repo.get_cost(cost_id))
    raise_for_errors(errors)
    updated = repo.update_cost(
        cost_id, cost, replace_attribute_values="attribute_values" in payload
    )
    return jsonify(cost_to_dict(updated))


@bills_bp.delete("/costs/<int:cost_id>")
@permission_required(EDIT)
def delete_cost(cost_id: int):
    _bills().delete_cost(cost_id)
    return deleted("Cost")


# Revenues


@bills_bp.get("/revenues")
@login_required
def list_revenues():
    revenues = _bills().list_revenues(query_int("bill_id"))
    return jsonify([revenue_to_dict(item) for item in revenues])


@bills_bp.get("/revenues/<int:revenue_id>")
@login_required
def get_revenue(revenue_id: int):
    return jsonify(revenue_to_dict(_bills().get_revenue(revenue_id)))


@bills_bp.post("/revenues")
@permission_required(CREATE)
def create_revenue():
    revenue, errors = parse_revenue_payload(json_body())
    raise_for_errors(errors)
    return jsonify(revenue_to_dict(_bills().save_revenue(revenue))), 201


@bills_bp.patch("/revenues/<int:revenue_id>")
@permission_required(EDIT)
def update_revenue(revenue_id: int):
    repo = _bills()
    revenue, errors = parse_revenue_payload(json_body(), repo.get_revenue(revenue_id))
    raise_for_errors(errors)
    return jsonify(revenue_to_dict(repo.save_revenue(revenue, revenue_id)))


@bills_bp.delete("/revenues/<int:revenue_id>")
@permission_required(EDIT)
def delete_revenue(revenue_id: int):
    _bills().delete_revenue(revenue_id)
    return deleted("Revenue")
