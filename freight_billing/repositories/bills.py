"""Bills and the costs, attribute values and revenues recorded against them."""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from typing import Dict, Iterable, List, Optional

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import NoResultFound
from sqlalchemy.orm import Session

from packages.freight_common import (
    Bill,
    BillStatus,
    Cost,
    CostAttribute,
    CostAttributeValue,
    GoodsType,
    Revenue,
    TradeDirection,
    from_minor_units,
    to_minor_units,
)

from ..database import (
    bills,
    cost_attribute_values,
    cost_type_attributes,
    cost_types,
    costs,
    customers,
    revenues,
    services,
    session_scope,
    suppliers,
)
from ..errors import ConflictError
from .base import BaseRepository

logger = logging.getLogger(__name__)


class BillRepository(BaseRepository):
    """Provides CRUD operations for bills, costs and revenues."""

    # Bills

    def _bill_query(self):
        return (
            select(
                bills,
                customers.c.name.label("customer_name"),
                services.c.name.label("service_name"),
            )
            .join(customers, customers.c.id == bills.c.customer_id)
            .join(services, services.c.id == bills.c.service_id)
        )

    def list_bills(
        self,
        *,
        customer_id: Optional[int] = None,
        service_id: Optional[int] = None,
        status: Optional[str] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
        search: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Bill]:
        """Return bills, newest first, with their costs and revenues loaded.

        Args:
            customer_id: Only bills for this customer.
            service_id: Only bills for this service.
            status: Only bills in this status. ``"all"`` disables the filter.
            start: Inclusive lower bound on the bill date.
            end: Inclusive upper bound on the bill date.
            search: Case-insensitive substring of the bill number.
            limit: Maximum number of bills to return.
        """

        query = self._bill_query().order_by(bills.c.bill_date.desc(), bills.c.id.desc())
        if customer_id is not None:
            query = query.where(bills.c.customer_id == customer_id)
        if service_id is not None:
            query = query.where(bills.c.service_id == service_id)
        if status and status.lower() != "all":
            query = query.where(bills.c.status == status)
        if start is not None:
            query = query.where(bills.c.bill_date >= start)
        if end is not None:
            query = query.where(bills.c.bill_date <= end)
        if search:
            query = query.where(bills.c.bill_no.ilike(f"%{search.strip()}%"))
        if limit:
            query = query.limit(limit)

        with session_scope(self._engine) as session:
            rows = session.execute(query).all()
            result = [self._row_to_bill(row) for row in rows]
            self._attach_children(session, result)
        return result

    def get_bill(self, bill_id: int) -> Bill:
        """Fetch a single bill including costs and revenues."""

        with session_scope(self._engine) as session:
            row = session.execute(
                self._bill_query().where(bills.c.id == bill_id)
            ).one_or_none()
            if row is None:
                raise NoResultFound("Bill not found")
            bill = self._row_to_bill(row)
            self._attach_children(session, [bill])
        return bill

    def _check_bill_references(self, session: Session, bill: Bill) -> None:
        self._require(session, customers, bill.customer_id, "Customer")
        self._require(session, services, bill.service_id, "Service")

    @staticmethod
    def _bill_values(bill: Bill) -> Dict[str, object]:
        return {
            "bill_no": bill.bill_no,
            "bill_date": bill.bill_date,
            "customer_id": bill.customer_id,
            "service_id": bill.service_id,
            "status": bill.status.value,
            "trade_direction": bill.trade_direction.value,
            "goods_type": bill.goods_type.value,
            "invoice_no": bill.invoice_no,
            "package_count": bill.package_count,
            "notes": bill.notes,
        }

    def create_bill(self, bill: Bill) -> Bill:
        """Persist a new bill and return it with its ID and names."""

        with session_scope(self._engine) as session:
            self._check_bill_references(session, bill)
            bill_id = session.execute(
                insert(bills).values(**self._bill_values(bill)).returning(bills.c.id)
            ).scalar_one()
        return self.get_bill(bill_id)

    def update_bill(self, bill_id: int, bill: Bill) -> Bill:
        with session_scope(self._engine) as session:
            self._require(session, bills, bill_id, "Bill")
            self._check_bill_references(session, bill)
            session.execute(
                update(bills)
                .where(bills.c.id == bill_id)
                .values(**self._bill_values(bill))
            )
        return self.get_bill(bill_id)

    def update_bill_status(self, bill_id: int, status: BillStatus) -> Bill:
        with session_scope(self._engine) as session:
            self._require(session, bills, bill_id, "Bill")
            session.execute(
                update(bills).where(bills.c.id == bill_id).values(status=status.value)
            )
        return self.get_bill(bill_id)

    def delete_bill(self, bill_id: int) -> None:
        """Remove a bill together with its costs, attribute values and revenues."""

        with session_scope(self._engine) as session:
            self._require(session, bills, bill_id, "Bill")
            cost_ids = select(costs.c.id).where(costs.c.bill_id == bill_id)
            session.execute(
                delete(cost_attribute_values).where(
                    cost_attribute_values.c.cost_id.in_(cost_ids)
                )
            )
            session.execute(delete(costs).where(costs.c.bill_id == bill_id))
            session.execute(delete(revenues).where(revenues.c.bill_id == bill_id))
            session.execute(delete(bills).where(bills.c.id == bill_id))
        self._log_delete("Bill", bill_id)

    def _attach_children(self, session: Session, bill_list: List[Bill]) -> None:
        if not bill_list:
            return
        by_id = {bill.id: bill for bill in bill_list}
        for cost in self._load_costs(session, costs.c.bill_id.in_(list(by_id))):
            by_id[cost.bill_id].costs.append(cost)
        revenue_rows = session.execute(
            self._revenue_query()
            .where(revenues.c.bill_id.in_(list(by_id)))
            .order_by(revenues.c.revenue_date, revenues.c.id)
        ).all()
        for row in revenue_rows:
            revenue = self._row_to_revenue(row)
            by_id[revenue.bill_id].revenues.append(revenue)

    # Costs

    def _cost_query(self):
        return (
            select(
                costs,
                cost_types.c.name.label("cost_type_name"),
                suppliers.c.name.label("supplier_name"),
                bills.c.bill_no.label("bill_no"),
            )
            .join(cost_types, cost_types.c.id == costs.c.cost_type_id)
            .join(suppliers, suppliers.c.id == costs.c.supplier_id)
            .join(bills, bills.c.id == costs.c.bill_id)
        )

    def _load_costs(self, session: Session, *conditions, newest_first=False) -> List[Cost]:
        order = (
            (costs.c.cost_date.desc(), costs.c.id.desc())
            if newest_first
            else (costs.c.cost_date, costs.c.id)
        )
        rows = session.execute(
            self._cost_query().where(*conditions).order_by(*order)
        ).all()
        cost_list = [self._row_to_cost(row) for row in rows]
        if cost_list:
            by_id = {cost.id: cost for cost in cost_list}
            for value in self._load_attribute_values(
                session, cost_attribute_values.c.cost_id.in_(list(by_id))
            ):
                by_id[value.cost_id].attribute_values.append(value)
        return cost_list

    def list_costs(self, bill_id: Optional[int] = None) -> List[Cost]:
        conditions = [] if bill_id is None else [costs.c.bill_id == bill_id]
        with session_scope(self._engine) as session:
            return self._load_costs(session, *conditions, newest_first=True)

    def costs_between(self, start: date, end: date) -> List[Cost]:
        """Return costs dated within ``start`` and ``end`` inclusive."""

        with session_scope(self._engine) as session:
            return self._load_costs(
                session, costs.c.cost_date >= start, costs.c.cost_date <= end
            )

    def get_cost(self, cost_id: int) -> Cost:
        with session_scope(self._engine) as session:
            found = self._load_costs(session, costs.c.id == cost_id)
        if not found:
            raise NoResultFound("Cost not found")
        return found[0]

    def _check_cost_references(self, session: Session, cost: Cost) -> None:
        self._require(session, bills, cost.bill_id, "Bill")
        self._require(session, cost_types, cost.cost_type_id, "Cost type")
        self._require(session, suppliers, cost.supplier_id, "Supplier")

    @staticmethod
    def _cost_values(cost: Cost) -> Dict[str, object]:
        return {
            "bill_id": cost.bill_id,
            "cost_type_id": cost.cost_type_id,
            "supplier_id": cost.supplier_id,
            "amount_cents": to_minor_units(cost.amount),
            "cost_date": cost.cost_date,
            "attribute": cost.attribute.value,
            "notes": cost.notes,
        }

    def _insert_cost(self, session: Session, cost: Cost) -> int:
        self._check_cost_references(session, cost)
        cost_id = session.execute(
            insert(costs).values(**self._cost_values(cost)).returning(costs.c.id)
        ).scalar_one()
        for value in cost.attribute_values:
            self._insert_attribute_value(
                session, replace(value, cost_id=cost_id), cost.cost_type_id
            )
        return cost_id

    def create_cost(self, cost: Cost) -> Cost:
        """Persist a cost and any attribute values supplied with it."""

        with session_scope(self._engine) as session:
            cost_id = self._insert_cost(session, cost)
        return self.get_cost(cost_id)

    def create_costs(self, cost_list: Iterable[Cost]) -> List[Cost]:
        """Insert several costs in one transaction.

        Either every cost is stored or, when any of them fails validation
        against the database, none are.
        """

        with session_scope(self._engine) as session:
            cost_ids = [self._insert_cost(session, cost) for cost in cost_list]
        logger.info("Created %d costs in one batch", len(cost_ids))
        return [self.get_cost(cost_id) for cost_id in cost_ids]

    def update_cost(
        self, cost_id: int, cost: Cost, *, replace_attribute_values: bool = False
    ) -> Cost:
        with session_scope(self._engine) as session:
            existing = self._require(session, costs, cost_id, "Cost")
            self._check_cost_references(session, cost)
            session.execute(
                update(costs).where(costs.c.id == cost_id).values(**self._cost_values(cost))
            )
            type_changed = existing._mapping["cost_type_id"] != cost.cost_type_id
            if replace_attribute_values or type_changed:
                session.execute(
                    delete(cost_attribute_values).where(
                        cost_attribute_values.c.cost_id == cost_id
                    )
                )
            if replace_attribute_values:
                for value in cost.attribute_values:
                    self._insert_attribute_value(
                        session, replace(value, cost_id=cost_id), cost.cost_type_id
                    )
        return self.get_cost(cost_id)

    def delete_cost(self, cost_id: int) -> None:
        with session_scope(self._engine) as session:
            self._require(session, costs, cost_id, "Cost")
            session.execute(
                delete(cost_attribute_values).where(
                    cost_attribute_values.c.cost_id == cost_id
                )
            )
            session.execute(delete(costs).where(costs.c.id == cost_id))
        self._log_delete("Cost", cost_id)

    # Cost attribute values

    def _load_attribute_values(
        self, session: Session, *conditions
    ) -> List[CostAttributeValue]:
        rows = session.execute(
            select(
                cost_attribute_values,
                cost_type_attributes.c.name.label("attribute_name"),
            )
            .join(
                cost_type_attributes,
                cost_type_attributes.c.id == cost_attribute_values.c.attribute_id,
            )
            .where(*conditions)
            .order_by(cost_type_attributes.c.name)
        ).all()
        return [self._row_to_attribute_value(row) for row in rows]

    def list_attribute_values(
        self, cost_id: Optional[int] = None
    ) -> List[CostAttributeValue]:
        conditions = (
            [] if cost_id is None else [cost_attribute_values.c.cost_id == cost_id]
        )
        with session_scope(self._engine) as session:
            return self._load_attribute_values(session, *conditions)

    def get_attribute_value(self, value_id: int) -> CostAttributeValue:
        with session_scope(self._engine) as session:
            found = self._load_attribute_values(
                session, cost_attribute_values.c.id == value_id
            )
        if not found:
            raise NoResultFound("Cost attribute value not found")
        return found[0]

    def _insert_attribute_value(
        self, session: Session, value: CostAttributeValue, cost_type_id: int
    ) -> int:
        attribute = self._require(
            session, cost_type_attributes, value.attribute_id, "Cost type attribute"
        )
        if attribute._mapping["cost_type_id"] != cost_type_id:
            raise ConflictError("Attribute does not belong to the cost's cost type")
        if self._exists(
            session,
            cost_attribute_values,
            cost_attribute_values.c.cost_id == value.cost_id,
            cost_attribute_values.c.attribute_id == value.attribute_id,
        ):
            raise ConflictError("This attribute already has a value for the cost")
        return session.execute(
            insert(cost_attribute_values)
            .values(
                cost_id=value.cost_id,
                attribute_id=value.attribute_id,
                value=value.value,
            )
            .returning(cost_attribute_values.c.id)
        ).scalar_one()

    def create_attribute_value(self, value: CostAttributeValue) -> CostAttributeValue:
        """Attach an attribute value to an existing cost.

        Raises:
            NoResultFound: If the cost or the attribute does not exist.
            ConflictError: If the attribute belongs to another cost type or
                the cost already carries a value for it.
        """

        with session_scope(self._engine) as session:
            cost_row = self._require(session, costs, value.cost_id, "Cost")
            value_id = self._insert_attribute_value(
                session, value, cost_row._mapping["cost_type_id"]
            )
        return self.get_attribute_value(value_id)

    def delete_attribute_value(self, value_id: int) -> None:
        with session_scope(self._engine) as session:
            self._require(
                session, cost_attribute_values, value_id, "Cost attribute value"
            )
            session.execute(
                delete(cost_attribute_values).where(
                    cost_attribute_values.c.id == value_id
                )
            )
        self._log_delete("Cost attribute value", value_id)

    # Revenues

    def _revenue_query(self):
        return select(revenues, services.c.name.label("service_name")).join(
            services, services.c.id == revenues.c.service_id
        )

    def list_revenues(self, bill_id: Optional[int] = None) -> List[Revenue]:
        query = self._revenue_query().order_by(
            revenues.c.revenue_date.desc(), revenues.c.id.desc()
        )
        if bill_id is not None:
            query = query.where(revenues.c.bill_id == bill_id)
        with session_scope(self._engine) as session:
            rows = session.execute(query).all()
        return [self._row_to_revenue(row) for row in rows]

    def get_revenue(self, revenue_id: int) -> Revenue:
        with session_scope(self._engine) as session:
            row = session.execute(
                self._revenue_query().where(revenues.c.id == revenue_id)
            ).one_or_none()
        if row is None:
            raise NoResultFound("Revenue not found")
        return self._row_to_revenue(row)

    def save_revenue(self, revenue: Revenue, revenue_id: Optional[int] = None) -> Revenue:
        values = {
            "bill_id": revenue.bill_id,
            "service_id": revenue.service_id,
            "amount_cents": to_minor_units(revenue.amount),
            "revenue_date": revenue.revenue_date,
            "notes": revenue.notes,
        }
        with session_scope(self._engine) as session:
            if revenue_id is not None:
                self._require(session, revenues, revenue_id, "Revenue")
            self._require(session, bills, revenue.bill_id, "Bill")
            self._require(session, services, revenue.service_id, "Service")
            if revenue_id is None:
                revenue_id = session.execute(
                    insert(revenues).values(**values).returning(revenues.c.id)
                ).scalar_one()
            else:
                session.execute(
                    update(revenues).where(revenues.c.id == revenue_id).values(**values)
                )
        return self.get_revenue(revenue_id)

    def delete_revenue(self, revenue_id: int) -> None:
        with session_scope(self._engine) as session:
            self._require(session, revenues, revenue_id, "Revenue")
            session.execute(delete(revenues).where(revenues.c.id == revenue_id))
        self._log_delete("Revenue", revenue_id)

    @staticmethod
    def _row_to_bill(row) -> Bill:
        values = row._mapping
        return Bill(
            id=values["id"],
            bill_no=values["bill_no"],
            bill_date=values["bill_date"],
            customer_id=values["customer_id"],
            service_id=values["service_id"],
            status=BillStatus.parse(values["status"]),
            trade_direction=TradeDirection.parse(values["trade_direction"]),
            goods_type=GoodsType.parse(values["goods_type"]),
            invoice_no=values["invoice_no"],
            package_count=values["package_count"],
            notes=values["notes"],
            customer_name=values["customer_name"],
            service_name=values["service_name"],
            created_at=values["created_at"],
            updated_at=values["updated_at"],
        )

    @staticmethod
    def _row_to_cost(row) -> Cost:
        values = row._mapping
        return Cost(
            id=values["id"],
            bill_id=values["bill_id"],
            cost_type_id=values["cost_type_id"],
            supplier_id=values["supplier_id"],
            amount=from_minor_units(values["amount_cents"]),
            cost_date=values["cost_date"],
            attribute=CostAttribute.parse(values["attribute"]),
            notes=values["notes"],
            cost_type_name=values["cost_type_name"],
            supplier_name=values["supplier_name"],
            bill_no=values["bill_no"],
            created_at=values["created_at"],
            updated_at=values["updated_at"],
        )

    @staticmethod
    def _row_to_attribute_value(row) -> CostAttributeValue:
        values = row._mapping
        return CostAttributeValue(
            id=values["id"],
            cost_id=values["cost_id"],
            attribute_id=values["attribute_id"],
            value=values["value"],
            attribute_name=values["attribute_name"],
            created_at=values["created_at"],
        )

    @staticmethod
    def _row_to_revenue(row) -> Revenue:
        values = row._mapping
        return Revenue(
            id=values["id"],
            bill_id=values["bill_id"],
            service_id=values["service_id"],
            amount=from_minor_units(values["amount_cents"]),
            revenue_date=values["revenue_date"],
            notes=values["notes"],
            service_name=values["service_name"],
            created_at=values["created_at"],
            updated_at=values["updated_at"],
        )
