"""Database setup utilities for the Freight Billing web app."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    create_engine,
    event,
    func,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

metadata = MetaData()


def _timestamps() -> list[Column]:
    return [
        Column(
            "created_at",
            DateTime(timezone=True),
            server_default=func.now(),
            nullable=False,
        ),
        Column(
            "updated_at",
            DateTime(timezone=True),
            server_default=func.now(),
            onupdate=func.now(),
            nullable=False,
        ),
    ]


users = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("username", String(120), nullable=False, unique=True),
    Column("password_hash", String(255), nullable=False),
    Column("role", String(20), nullable=False, default="user"),
    Column("can_manage_categories", Boolean, nullable=False, default=False),
    Column("can_edit_bills", Boolean, nullable=False, default=False),
    Column("can_create_bills", Boolean, nullable=False, default=False),
    Column("can_view_revenue_pricing", Boolean, nullable=False, default=False),
    *_timestamps(),
)

customers = Table(
    "customers",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("name", String(255), nullable=False),
    Column("contact_person", String(255)),
    Column("email", String(255)),
    Column("phone", String(64)),
    Column("address", Text),
    *_timestamps(),
)

suppliers = Table(
    "suppliers",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("name", String(255), nullable=False),
    Column("contact_person", String(255)),
    Column("email", String(255)),
    Column("phone", String(64)),
    Column("address", Text),
    *_timestamps(),
)

services = Table(
    "services",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("name", String(255), nullable=False),
    Column("description", Text),
    *_timestamps(),
)

cost_types = Table(
    "cost_types",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("name", String(255), nullable=False),
    Column("description", Text),
    *_timestamps(),
)

cost_type_attributes = Table(
    "cost_type_attributes",
    metadata,
    Column("id", Integer, primary_key=True),
    Column(
        "cost_type_id",
        ForeignKey("cost_types.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("name", String(255), nullable=False),
    *_timestamps(),
    UniqueConstraint("cost_type_id", "name", name="uq_cost_type_attribute_name"),
)

bills = Table(
    "bills",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("bill_no", String(100), nullable=False),
    Column("bill_date", Date, nullable=False),
    Column("customer_id", ForeignKey("customers.id"), nullable=False),
    Column("service_id", ForeignKey("services.id"), nullable=False),
    Column("status", String(32), nullable=False, default="Pending"),
    Column("trade_direction", String(16), nullable=False, default="import"),
    Column("goods_type", String(16), nullable=False, default="Air"),
    Column("invoice_no", String(100)),
    Column("package_count", Integer),
    Column("notes", Text),
    *_timestamps(),
)

costs = Table(
    "costs",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("bill_id", ForeignKey("bills.id", ondelete="CASCADE"), nullable=False),
    Column("cost_type_id", ForeignKey("cost_types.id"), nullable=False),
    Column("supplier_id", ForeignKey("suppliers.id"), nullable=False),
    Column("amount_cents", Integer, nullable=False),
    Column("cost_date", Date, nullable=False),
    Column("attribute", String(32), nullable=False, default="invoice"),
    Column("notes", Text),
    *_timestamps(),
)

cost_attribute_values = Table(
    "cost_attribute_values",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("cost_id", ForeignKey("costs.id", ondelete="CASCADE"), nullable=False),
    Column(
        "attribute_id",
        ForeignKey("cost_type_attributes.id"),
        nullable=False,
    ),
    Column("value", Text, nullable=False),
    Column(
        "created_at", DateTime(timezone=True), server_default=func.now(), nullable=False
    ),
    UniqueConstraint("cost_id", "attribute_id", name="uq_cost_attribute_value"),
)

revenues = Table(
    "revenues",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("bill_id", ForeignKey("bills.id", ondelete="CASCADE"), nullable=False),
    Column("service_id", ForeignKey("services.id"), nullable=False),
    Column("amount_cents", Integer, nullable=False),
    Column("revenue_date", Date, nullable=False),
    Column("notes", Text),
    *_timestamps(),
)

prices = Table(
    "prices",
    metadata,
    Column("id", Integer, primary_key=True),
    Column(
        "customer_id", ForeignKey("customers.id", ondelete="CASCADE"), nullable=False
    ),
    Column("service_id", ForeignKey("services.id"), nullable=False),
    Column("price_cents", Integer, nullable=False),
    *_timestamps(),
    UniqueConstraint("customer_id", "service_id", name="uq_price_customer_service"),
)

cost_prices = Table(
    "cost_prices",
    metadata,
    Column("id", Integer, primary_key=True),
    Column(
        "customer_id", ForeignKey("customers.id", ondelete="CASCADE"), nullable=False
    ),
    Column("service_id", ForeignKey("services.id", ondelete="CASCADE"), nullable=False),
    Column(
        "cost_type_id", ForeignKey("cost_types.id", ondelete="CASCADE"), nullable=False
    ),
    Column("price_cents", Integer, nullable=False),
    *_timestamps(),
    UniqueConstraint(
        "customer_id",
        "service_id",
        "cost_type_id",
        name="uq_cost_price_customer_service_type",
    ),
)

settings = Table(
    "settings",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("key", String(255), nullable=False, unique=True),
    Column("value", Text),
    *_timestamps(),
)


def _enable_sqlite_foreign_keys(dbapi_connection, _connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_db_engine(database_url: str) -> Engine:
    """Return a SQLAlchemy engine for the provided URL.

    SQLite connections get ``PRAGMA foreign_keys=ON`` so ``ON DELETE CASCADE``
    clauses behave as they do on PostgreSQL.
    """

    engine = create_engine(database_url, future=True)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def init_schema(engine: Engine) -> None:
    """Create database tables if they do not exist."""

    metadata.create_all(engine)


@contextmanager
def session_scope(engine: Engine) -> Iterator[Session]:
    """Context manager that yields a SQLAlchemy :class:`Session`."""

    with Session(engine, future=True) as session:
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
