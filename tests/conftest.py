"""Test fixtures for the billing API."""

from __future__ import annotations

from decimal import Decimal
from pathlib import Path
from typing import Callable, Dict

import pytest
from flask import Flask
from flask.testing import FlaskClient

from freight_billing import AppConfig, create_app
from freight_billing.auth import limiter
from freight_billing.forms import UserFormData
from freight_billing.repositories import (
    CatalogRepository,
    PricingRepository,
    UserRepository,
)
from packages.freight_common import CostPrice, CostType, Customer, Service, Supplier

ADMIN_PASSWORD = "admin-secret"
USER_PASSWORD = "user-secret"


@pytest.fixture()
def app(tmp_path: Path):
    """Return a Flask app backed by a throwaway SQLite database."""

    config = AppConfig(
        database_url=f"sqlite:///{tmp_path / 'test.db'}",
        secret_key="testing",
        log_level="DEBUG",
    )
    application = create_app(config)
    application.config.update(TESTING=True)
    limiter.reset()
    yield application
    limiter.reset()
    application.config["DB_ENGINE"].dispose()


@pytest.fixture()
def engine(app: Flask):
    return app.config["DB_ENGINE"]


@pytest.fixture()
def client(app: Flask) -> FlaskClient:
    return app.test_client()


@pytest.fixture()
def login_as(app: Flask, engine) -> Callable[..., FlaskClient]:
    """Return a factory creating an account and a client signed in as it."""

    def factory(username: str, role: str = "user", **flags: bool) -> FlaskClient:
        password = ADMIN_PASSWORD if role == "admin" else USER_PASSWORD
        UserRepository(engine).create_user(
            UserFormData(username, password, role, permissions=flags)
        )
        test_client = app.test_client()
        response = test_client.post(
            "/api/auth/login", json={"username": username, "password": password}
        )
        assert response.status_code == 200, response.get_json()
        return test_client

    return factory


@pytest.fixture()
def admin_client(login_as) -> FlaskClient:
    return login_as("admin", role="admin")


@pytest.fixture()
def seed(engine) -> Dict[str, int]:
    """Create one customer, service, supplier and two cost types."""

    catalog = CatalogRepository(engine)
    customer = catalog.create_customer(Customer(name="Acme Trading"))
    service = catalog.create_service(Service(name="Air Freight"))
    supplier = catalog.create_supplier(Supplier(name="Blue Line Logistics"))
    handling = catalog.create_cost_type(CostType(name="Handling"))
    customs = catalog.create_cost_type(CostType(name="Customs"))
    PricingRepository(engine).save_cost_price(
        CostPrice(
            customer_id=customer.id,
            service_id=service.id,
            cost_type_id=handling.id,
            price=Decimal("150.00"),
        )
    )
    return {
        "customer": customer.id,
        "service": service.id,
        "supplier": supplier.id,
        "handling": handling.id,
        "customs": customs.id,
    }
