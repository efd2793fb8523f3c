"""Routes for customers, suppliers, services, cost types and attributes."""

from __future__ import annotations

from flask import Blueprint, jsonify, request
from flask_login import login_required

from .. import get_repository
from ..auth import permission_required
from ..forms import (
    parse_cost_attribute_value_payload,
    parse_cost_type_attribute_payload,
    parse_cost_type_payload,
    parse_customer_payload,
    parse_service_payload,
    parse_supplier_payload,
)
from ..repositories import BillRepository, CatalogRepository
from ..serializers import (
    attribute_to_dict,
    attribute_value_to_dict,
    category_to_dict,
    contact_to_dict,
)
from . import deleted, json_body, query_int, raise_for_errors

catalog_bp = Blueprint("catalog", __name__)

MANAGE = "can_manage_categories"


def _catalog() -> CatalogRepository:
    return get_repository(CatalogRepository)


def _search() -> str | None:
    return request.args.get("search") or None


# Customers


@catalog_bp.get("/customers")
@login_required
def list_customers():
    return jsonify([contact_to_dict(item) for item in _catalog().list_customers(_search())])


@catalog_bp.get("/customers/<int:customer_id>")
@login_required
def get_customer(customer_id: int):
    return jsonify(contact_to_dict(_catalog().get_customer(customer_id)))


@catalog_bp.post("/customers")
@permission_required(MANAGE)
def create_customer():
    customer, errors = parse_customer_payload(json_body())
    raise_for_errors(errors)
    return jsonify(contact_to_dict(_catalog().create_customer(customer))), 201


@catalog_bp.patch("/customers/<int:customer_id>")
@permission_required(MANAGE)
def update_customer(customer_id: int):
    repo = _catalog()
    customer, errors = parse_customer_payload(json_body(), repo.get_customer(customer_id))
    raise_for_errors(errors)
    return jsonify(contact_to_dict(repo.update_customer(customer_id, customer)))


@catalog_bp.delete("/customers/<int:customer_id>")
@permission_required(MANAGE)
def delete_customer(customer_id: int):
    _catalog().delete_customer(customer_id)
    return deleted("Customer")


# Suppliers


@catalog_bp.get("/suppliers")
@login_required
def list_suppliers():
    return jsonify([contact_to_dict(item) for item in _catalog().list_suppliers(_search())])


@catalog_bp.get("/suppliers/<int:supplier_id>")
@login_required
def get_supplier(supplier_id: int):
    return jsonify(contact_to_dict(_catalog().get_supplier(supplier_id)))


@catalog_bp.post("/suppliers")
@permission_required(MANAGE)
def create_supplier():
    supplier, errors = parse_supplier_payload(json_body())
    raise_for_errors(errors)
    return jsonify(contact_to_dict(_catalog().create_supplier(supplier))), 201


@catalog_bp.patch("/suppliers/<int:supplier_id>")
@permission_required(MANAGE)
def update_supplier(supplier_id: int):
    repo = _catalog()
    supplier, errors = parse_supplier_payload(json_body(), repo.get_supplier(supplier_id))
    raise_for_errors(errors)
    return jsonify(contact_to_dict(repo.update_supplier(supplier_id, supplier)))


@catalog_bp.delete("/suppliers/<int:supplier_id>")
@permission_required(MANAGE)
def delete_supplier(supplier_id: int):
    _catalog().delete_supplier(supplier_id)
    return deleted("Supplier")


# Services


@catalog_bp.get("/services")
@login_required
def list_services():
    return jsonify([category_to_dict(item) for item in _catalog().list_services(_search())])


@catalog_bp.get("/services/<int:service_id>")
@login_required
def get_service(service_id: int):
    return jsonify(category_to_dict(_catalog().get_service(service_id)))


@catalog_bp.post("/services")
@permission_required(MANAGE)
def create_service():
    service, errors = parse_service_payload(json_body())
    raise_for_errors(errors)
    return jsonify(category_to_dict(_catalog().create_service(service))), 201


@catalog_bp.patch("/services/<int:service_id>")
@permission_required(MANAGE)
def update_service(service_id: int):
    repo = _catalog()
    service, errors = parse_service_payload(json_body(), repo.get_service(service_id))
    raise_for_errors(errors)
    return jsonify(category_to_dict(repo.update_service(service_id, service)))


@catalog_bp.delete("/services/<int:service_id>")
@permission_required(MANAGE)
def delete_service(service_id: int):
    _catalog().delete_service(service_id)
    return deleted("Service")


# Cost types


@catalog_bp.get("/cost-types")
@login_required
def list_cost_types():
    return jsonify([category_to_dict(item) for item in _catalog().list_cost_types(_search())])


@catalog_bp.get("/cost-types/<int:cost_type_id>")
@login_required
def get_cost_type(cost_type_id: int):
    return jsonify(category_to_dict(_catalog().get_cost_type(cost_type_id)))


@catalog_bp.post("/cost-types")
@permission_required(MANAGE)
def create_cost_type():
    cost_type, errors = parse_cost_type_payload(json_body())
    raise_for_errors(errors)
    return jsonify(category_to_dict(_catalog().create_cost_type(cost_type))), 201


@catalog_bp.patch("/cost-types/<int:cost_type_id>")
@permission_required(MANAGE)
def update_cost_type(cost_type_id: int):
    repo = _catalog()
    cost_type, errors = parse_cost_type_payload(
        json_body(), repo.get_cost_type(cost_type_id)
    )
    raise_for_errors(errors)
    return jsonify(category_to_dict(repo.update_cost_type(cost_type_id, cost_type)))


@catalog_bp.delete("/cost-types/<int:cost_type_id>")
@permission_required(MANAGE)
def delete_cost_type(cost_type_id: int):
    _catalog().delete_cost_type(cost_type_id)
    return deleted("Cost type")


# Cost type attributes


@catalog_bp.get("/cost-type-attributes")
@login_required
def list_attributes():
    attributes = _catalog().list_attributes(query_int("cost_type_id"), _search())
    return jsonify([attribute_to_dict(item) for item in attributes])


@catalog_bp.get("/cost-type-attributes/<int:attribute_id>")
@login_required
def get_attribute(attribute_id: int):
    return jsonify(attribute_to_dict(_catalog().get_attribute(attribute_id)))


@catalog_bp.post("/cost-type-attributes")
@permission_required(MANAGE)
def create_attribute():
    attribute, errors = parse_cost_type_attribute_payload(json_body())
    raise_for_errors(errors)
    return jsonify(attribute_to_dict(_catalog().save_attribute(attribute))), 201


@catalog_bp.patch("/cost-type-attributes/<int:attribute_id>")
@permission_required(MANAGE)
def update_attribute(attribute_id: int):
    repo = _catalog()
    attribute, errors = parse_cost_type_attribute_payload(
        json_body(), repo.get_attribute(attribute_id)
    )
    raise_for_errors(errors)
    return jsonify(attribute_to_dict(repo.save_attribute(attribute, attribute_id)))


@catalog_bp.delete("/cost-type-attributes/<int:attribute_id>")
@permission_required(MANAGE)
def delete_attribute(attribute_id: int):
    _catalog().delete_attribute(attribute_id)
    return deleted("Cost type attribute")


# Cost attribute values belong to costs, so bill permissions apply.


@catalog_bp.get("/cost-attribute-values")
@login_required
def list_attribute_values():
    values = get_repository(BillRepository).list_attribute_values(query_int("cost_id"))
    return jsonify([attribute_value_to_dict(item) for item in values])


@catalog_bp.get("/cost-attribute-values/<int:value_id>")
@login_required
def get_attribute_value(value_id: int):
    value = get_repository(BillRepository).get_attribute_value(value_id)
    return jsonify(attribute_value_to_dict(value))


@catalog_bp.post("/cost-attribute-values")
@permission_required("can_edit_bills")
def create_attribute_value():
    value, errors = parse_cost_attribute_value_payload(json_body())
    raise_for_errors(errors)
    created = get_repository(BillRepository).create_attribute_value(value)
    return jsonify(attribute_value_to_dict(created)), 201


@catalog_bp.delete("/cost-attribute-values/<int:value_id>")
@permission_required("can_edit_bills")
def delete_attribute_value(value_id: int):
    get_repository(BillRepository).delete_attribute_value(value_id)
    return deleted("Cost attribute value")
