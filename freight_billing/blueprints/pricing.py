"""Routes for service prices and per cost type prices."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from werkzeug.datastructures import FileStorage

from .. import get_repository
from ..auth import permission_required
from ..errors import ValidationFailed
from ..forms import (
    parse_cost_price_bulk_payload,
    parse_cost_price_payload,
    parse_price_payload,
)
from ..imports import import_cost_prices
from ..repositories import CatalogRepository, PricingRepository
from ..serializers import cost_price_to_dict, price_to_dict
from . import deleted, json_body, query_int, raise_for_errors

pricing_bp = Blueprint("pricing", __name__)

VIEW_PRICING = "can_view_revenue_pricing"


def _pricing() -> PricingRepository:
    return get_repository(PricingRepository)


@pricing_bp.get("/prices")
@permission_required(VIEW_PRICING)
def list_prices():
    prices = _pricing().list_prices(query_int("customer_id"), query_int("service_id"))
    return jsonify([price_to_dict(item) for item in prices])


@pricing_bp.get("/prices/<int:price_id>")
@permission_required(VIEW_PRICING)
def get_price(price_id: int):
    return jsonify(price_to_dict(_pricing().get_price(price_id)))


@pricing_bp.get("/prices/customer/<int:customer_id>/service/<int:service_id>")
@permission_required(VIEW_PRICING)
def find_price(customer_id: int, service_id: int):
    return jsonify(price_to_dict(_pricing().find_price(customer_id, service_id)))


@pricing_bp.post("/prices")
@permission_required(VIEW_PRICING)
def create_price():
    price, errors = parse_price_payload(json_body())
    raise_for_errors(errors)
    return jsonify(price_to_dict(_pricing().save_price(price))), 201


@pricing_bp.patch("/prices/<int:price_id>")
@permission_required(VIEW_PRICING)
def update_price(price_id: int):
    repo = _pricing()
    price, errors = parse_price_payload(json_body(), repo.get_price(price_id))
    raise_for_errors(errors)
    return jsonify(price_to_dict(repo.save_price(price, price_id)))


@pricing_bp.delete("/prices/<int:price_id>")
@permission_required(VIEW_PRICING)
def delete_price(price_id: int):
    _pricing().delete_price(price_id)
    return deleted("Price")


# Cost prices


@pricing_bp.get("/cost-prices")
@permission_required(VIEW_PRICING)
def list_cost_prices():
    items = _pricing().list_cost_prices(
        query_int("customer_id"), query_int("service_id"), query_int("cost_type_id")
    )
    return jsonify([cost_price_to_dict(item) for item in items])


@pricing_bp.get("/cost-prices/<int:cost_price_id>")
@permission_required(VIEW_PRICING)
def get_cost_price(cost_price_id: int):
    return jsonify(cost_price_to_dict(_pricing().get_cost_price(cost_price_id)))


@pricing_bp.get("/cost-prices/customer/<int:customer_id>/service/<int:service_id>")
@permission_required(VIEW_PRICING)
def cost_prices_for_pair(customer_id: int, service_id: int):
    """All cost type prices agreed for one customer and service."""

    items = _pricing().list_cost_prices(customer_id, service_id)
    return jsonify([cost_price_to_dict(item) for item in items])


@pricing_bp.post("/cost-prices")
@permission_required(VIEW_PRICING)
def create_cost_price():
    item, errors = parse_cost_price_payload(json_body())
    raise_for_errors(errors)
    return jsonify(cost_price_to_dict(_pricing().save_cost_price(item))), 201


@pricing_bp.patch("/cost-prices/<int:cost_price_id>")
@permission_required(VIEW_PRICING)
def update_cost_price(cost_price_id: int):
    repo = _pricing()
    item, errors = parse_cost_price_payload(
        json_body(), repo.get_cost_price(cost_price_id)
    )
    raise_for_errors(errors)
    return jsonify(cost_price_to_dict(repo.save_cost_price(item, cost_price_id)))


@pricing_bp.delete("/cost-prices/<int:cost_price_id>")
@permission_required(VIEW_PRICING)
def delete_cost_price(cost_price_id: int):
    _pricing().delete_cost_price(cost_price_id)
    return deleted("Cost price")


@pricing_bp.post("/cost-prices/bulk")
@permission_required(VIEW_PRICING)
def bulk_cost_prices():
    """Create or replace many cost prices in one transaction."""

    items, errors = parse_cost_price_bulk_payload(json_body())
    raise_for_errors(errors)
    created, updated = _pricing().upsert_cost_prices(items)
    return jsonify({"created": created, "updated": updated})


@pricing_bp.post("/cost-prices/import")
@permission_required(VIEW_PRICING)
def import_cost_price_sheet():
    """Upsert cost prices from an uploaded CSV sheet.

    The multipart field ``file`` must hold the sheet. Rows that reference an
    unknown customer, service or cost type are skipped and listed in
    ``errors``.
    """

    upload: FileStorage | None = request.files.get("file")
    if upload is None or not upload.filename:
        raise_for_errors(["A CSV file is required."])
    try:
        result = import_cost_prices(
            upload.stream, get_repository(CatalogRepository), _pricing()
        )
    except ValueError as exc:
        raise ValidationFailed([str(exc)]) from exc
    current_app.logger.info(
        "Imported %s: %d cost prices", upload.filename, result.imported
    )
    return jsonify(
        {
            "imported": result.imported,
            "created": result.created,
            "updated": result.updated,
            "errors": result.errors,
        }
    )
