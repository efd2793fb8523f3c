"""Price lists: customer/service prices and per cost type cost prices."""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import NoResultFound
from sqlalchemy.orm import Session

from packages.freight_common import CostPrice, Price, from_minor_units, to_minor_units

from ..database import (
    cost_prices,
    cost_types,
    customers,
    prices,
    services,
    session_scope,
)
from ..errors import ConflictError
from .base import BaseRepository

logger = logging.getLogger(__name__)

DUPLICATE_PRICE = "A price for this customer and service already exists"
DUPLICATE_COST_PRICE = (
    "A price with this combination of customer, service, and cost type already exists"
)


class PricingRepository(BaseRepository):
    """CRUD for both price lists plus the bulk upsert used by imports."""

    # Prices

    def _price_query(self):
        return (
            select(
                prices,
                customers.c.name.label("customer_name"),
                services.c.name.label("service_name"),
            )
            .join(customers, customers.c.id == prices.c.customer_id)
            .join(services, services.c.id == prices.c.service_id)
            .order_by(customers.c.name, services.c.name)
        )

    def list_prices(
        self, customer_id: Optional[int] = None, service_id: Optional[int] = None
    ) -> List[Price]:
        query = self._price_query()
        if customer_id is not None:
            query = query.where(prices.c.customer_id == customer_id)
        if service_id is not None:
            query = query.where(prices.c.service_id == service_id)
        with session_scope(self._engine) as session:
            rows = session.execute(query).all()
        return [self._row_to_price(row) for row in rows]

    def get_price(self, price_id: int) -> Price:
        with session_scope(self._engine) as session:
            row = session.execute(
                self._price_query().where(prices.c.id == price_id)
            ).one_or_none()
        if row is None:
            raise NoResultFound("Price not found")
        return self._row_to_price(row)

    def find_price(self, customer_id: int, service_id: int) -> Price:
        """Return the price for a customer and service.

        Raises:
            NoResultFound: If no price has been agreed for the pair.
        """

        found = self.list_prices(customer_id=customer_id, service_id=service_id)
        if not found:
            raise NoResultFound("Price not found")
        return found[0]

    def save_price(self, price: Price, price_id: Optional[int] = None) -> Price:
        values = {
            "customer_id": price.customer_id,
            "service_id": price.service_id,
            "price_cents": to_minor_units(price.price),
        }
        with session_scope(self._engine) as session:
            if price_id is not None:
                self._require(session, prices, price_id, "Price")
            self._require(session, customers, price.customer_id, "Customer")
            self._require(session, services, price.service_id, "Service")
            conditions = [
                prices.c.customer_id == price.customer_id,
                prices.c.service_id == price.service_id,
            ]
            if price_id is not None:
                conditions.append(prices.c.id != price_id)
            if self._exists(session, prices, *conditions):
                raise ConflictError(DUPLICATE_PRICE)
            if price_id is None:
                price_id = session.execute(
                    insert(prices).values(**values).returning(prices.c.id)
                ).scalar_one()
            else:
                session.execute(
                    update(prices).where(prices.c.id == price_id).values(**values)
                )
        return self.get_price(price_id)

    def delete_price(self, price_id: int) -> None:
        with session_scope(self._engine) as session:
            self._require(session, prices, price_id, "Price")
            session.execute(delete(prices).where(prices.c.id == price_id))
        self._log_delete("Price", price_id)

    # Cost prices

    def _cost_price_query(self):
        return (
            select(
                cost_prices,
                customers.c.name.label("customer_name"),
                services.c.name.label("service_name"),
                cost_types.c.name.label("cost_type_name"),
            )
            .join(customers, customers.c.id == cost_prices.c.customer_id)
            .join(services, services.c.id == cost_prices.c.service_id)
            .join(cost_types, cost_types.c.id == cost_prices.c.cost_type_id)
            .order_by(customers.c.name, services.c.name, cost_types.c.name)
        )

    def list_cost_prices(
        self,
        customer_id: Optional[int] = None,
        service_id: Optional[int] = None,
        cost_type_id: Optional[int] = None,
    ) -> List[CostPrice]:
        query = self._cost_price_query()
        if customer_id is not None:
            query = query.where(cost_prices.c.customer_id == customer_id)
        if service_id is not None:
            query = query.where(cost_prices.c.service_id == service_id)
        if cost_type_id is not None:
            query = query.where(cost_prices.c.cost_type_id == cost_type_id)
        with session_scope(self._engine) as session:
            rows = session.execute(query).all()
        return [self._row_to_cost_price(row) for row in rows]

    def get_cost_price(self, cost_price_id: int) -> CostPrice:
        with session_scope(self._engine) as session:
            row = session.execute(
                self._cost_price_query().where(cost_prices.c.id == cost_price_id)
            ).one_or_none()
        if row is None:
            raise NoResultFound("Cost price not found")
        return self._row_to_cost_price(row)

    def _check_cost_price_references(self, session: Session, item: CostPrice) -> None:
        self._require(session, customers, item.customer_id, "Customer")
        self._require(session, services, item.service_id, "Service")
        self._require(session, cost_types, item.cost_type_id, "Cost type")

    @staticmethod
    def _cost_price_key(item: CostPrice):
        return [
            cost_prices.c.customer_id == item.customer_id,
            cost_prices.c.service_id == item.service_id,
            cost_prices.c.cost_type_id == item.cost_type_id,
        ]

    def save_cost_price(
        self, item: CostPrice, cost_price_id: Optional[int] = None
    ) -> CostPrice:
        """Create or update a cost price.

        Raises:
            NoResultFound: If the cost price (on update), customer, service or
                cost type does not exist.
            ConflictError: If another row already prices the same customer,
                service and cost type.
        """

        values = {
            "customer_id": item.customer_id,
            "service_id": item.service_id,
            "cost_type_id": item.cost_type_id,
            "price_cents": to_minor_units(item.price),
        }
        with session_scope(self._engine) as session:
            if cost_price_id is not None:
                self._require(session, cost_prices, cost_price_id, "Cost price")
            self._check_cost_price_references(session, item)
            conditions = self._cost_price_key(item)
            if cost_price_id is not None:
                conditions.append(cost_prices.c.id != cost_price_id)
            if self._exists(session, cost_prices, *conditions):
                raise ConflictError(DUPLICATE_COST_PRICE)
            if cost_price_id is None:
                cost_price_id = session.execute(
                    insert(cost_prices).values(**values).returning(cost_prices.c.id)
                ).scalar_one()
            else:
                session.execute(
                    update(cost_prices)
                    .where(cost_prices.c.id == cost_price_id)
                    .values(**values)
                )
        return self.get_cost_price(cost_price_id)

    def upsert_cost_prices(self, items: Iterable[CostPrice]) -> Tuple[int, int]:
        """Insert or overwrite cost prices keyed on customer, service, cost type.

        The whole batch runs in one transaction.

        Returns:
            tuple[int, int]: Number of rows ``(created, updated)``.
        """

        created = updated = 0
        with session_scope(self._engine) as session:
            for item in items:
                self._check_cost_price_references(session, item)
                existing = session.execute(
                    select(cost_prices.c.id).where(*self._cost_price_key(item))
                ).scalar_one_or_none()
                cents = to_minor_units(item.price)
                if existing is None:
                    session.execute(
                        insert(cost_prices).values(
                            customer_id=item.customer_id,
                            service_id=item.service_id,
                            cost_type_id=item.cost_type_id,
                            price_cents=cents,
                        )
                    )
                    created += 1
                else:
                    session.execute(
                        update(cost_prices)
                        .where(cost_prices.c.id == existing)
                        .values(price_cents=cents)
                    )
                    updated += 1
        logger.info("Cost prices upserted: %d created, %d updated", created, updated)
        return created, updated

    def delete_cost_price(self, cost_price_id: int) -> None:
        with session_scope(self._engine) as session:
            self._require(session, cost_prices, cost_price_id, "Cost price")
            session.execute(delete(cost_prices).where(cost_prices.c.id == cost_price_id))
        self._log_delete("Cost price", cost_price_id)

    @staticmethod
    def _row_to_price(row) -> Price:
        values = row._mapping
        return Price(
            id=values["id"],
            customer_id=values["customer_id"],
            service_id=values["service_id"],
            price=from_minor_units(values["price_cents"]),
            customer_name=values["customer_name"],
            service_name=values["service_name"],
            created_at=values["created_at"],
            updated_at=values["updated_at"],
        )

    @staticmethod
    def _row_to_cost_price(row) -> CostPrice:
        values = row._mapping
        return CostPrice(
            id=values["id"],
            customer_id=values["customer_id"],
            service_id=values["service_id"],
            cost_type_id=values["cost_type_id"],
            price=from_minor_units(values["price_cents"]),
            customer_name=values["customer_name"],
            service_name=values["service_name"],
            cost_type_name=values["cost_type_name"],
            created_at=values["created_at"],
            updated_at=values["updated_at"],
        )
