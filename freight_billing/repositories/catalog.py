"""Customers, suppliers, services, cost types and cost type attributes."""

from __future__ import annotations

from typing import List, Optional, Type, TypeVar

from sqlalchemy import Table, delete, insert, select, update
from sqlalchemy.exc import NoResultFound

from packages.freight_common import (
    CostType,
    CostTypeAttribute,
    Customer,
    Service,
    Supplier,
)

from ..database import (
    bills,
    cost_attribute_values,
    cost_type_attributes,
    cost_types,
    costs,
    customers,
    prices,
    revenues,
    services,
    session_scope,
    suppliers,
)
from ..errors import ConflictError
from .base import BaseRepository

PartyT = TypeVar("PartyT", Customer, Supplier)
CategoryT = TypeVar("CategoryT", Service, CostType)

_CONTACT_FIELDS = ("name", "contact_person", "email", "phone", "address")


class CatalogRepository(BaseRepository):
    """CRUD for the reference data bills and costs point at."""

    # Customers and suppliers share the same contact columns.

    def _list_parties(
        self, table: Table, model: Type[PartyT], search: Optional[str]
    ) -> List[PartyT]:
        query = select(table).order_by(table.c.name)
        if search:
            query = query.where(table.c.name.ilike(f"%{search.strip()}%"))
        with session_scope(self._engine) as session:
            rows = session.execute(query).all()
        return [self._row_to_party(row, model) for row in rows]

    def _get_party(self, table: Table, model: Type[PartyT], party_id: int) -> PartyT:
        with session_scope(self._engine) as session:
            row = self._require(session, table, party_id, model.__name__)
        return self._row_to_party(row, model)

    def _create_party(self, table: Table, party: PartyT) -> PartyT:
        label = type(party).__name__
        with session_scope(self._engine) as session:
            self._ensure_unique_name(session, table, party.name, label)
            party_id = session.execute(
                insert(table)
                .values(**{name: getattr(party, name) for name in _CONTACT_FIELDS})
                .returning(table.c.id)
            ).scalar_one()
            row = self._require(session, table, party_id, label)
        return self._row_to_party(row, type(party))

    def _update_party(self, table: Table, party_id: int, party: PartyT) -> PartyT:
        label = type(party).__name__
        with session_scope(self._engine) as session:
            self._require(session, table, party_id, label)
            self._ensure_unique_name(
                session, table, party.name, label, exclude_id=party_id
            )
            session.execute(
                update(table)
                .where(table.c.id == party_id)
                .values(**{name: getattr(party, name) for name in _CONTACT_FIELDS})
            )
            row = self._require(session, table, party_id, label)
        return self._row_to_party(row, type(party))

    def list_customers(self, search: Optional[str] = None) -> List[Customer]:
        return self._list_parties(customers, Customer, search)

    def get_customer(self, customer_id: int) -> Customer:
        return self._get_party(customers, Customer, customer_id)

    def create_customer(self, customer: Customer) -> Customer:
        return self._create_party(customers, customer)

    def update_customer(self, customer_id: int, customer: Customer) -> Customer:
        return self._update_party(customers, customer_id, customer)

    def delete_customer(self, customer_id: int) -> None:
        """Remove a customer that has no bills.

        Price list rows for the customer are removed with it.

        Raises:
            NoResultFound: If the customer does not exist.
            ConflictError: If bills still reference the customer.
        """

        with session_scope(self._engine) as session:
            self._require(session, customers, customer_id, "Customer")
            if self._exists(session, bills, bills.c.customer_id == customer_id):
                raise ConflictError("Cannot delete customer with existing bills")
            session.execute(delete(customers).where(customers.c.id == customer_id))
        self._log_delete("Customer", customer_id)

    def list_suppliers(self, search: Optional[str] = None) -> List[Supplier]:
        return self._list_parties(suppliers, Supplier, search)

    def get_supplier(self, supplier_id: int) -> Supplier:
        return self._get_party(suppliers, Supplier, supplier_id)

    def create_supplier(self, supplier: Supplier) -> Supplier:
        return self._create_party(suppliers, supplier)

    def update_supplier(self, supplier_id: int, supplier: Supplier) -> Supplier:
        return self._update_party(suppliers, supplier_id, supplier)

    def delete_supplier(self, supplier_id: int) -> None:
        with session_scope(self._engine) as session:
            self._require(session, suppliers, supplier_id, "Supplier")
            if self._exists(session, costs, costs.c.supplier_id == supplier_id):
                raise ConflictError("Cannot delete supplier with existing costs")
            session.execute(delete(suppliers).where(suppliers.c.id == supplier_id))
        self._log_delete("Supplier", supplier_id)

    # Services and cost types carry a name and a description.

    def _list_categories(
        self, table: Table, model: Type[CategoryT], search: Optional[str]
    ) -> List[CategoryT]:
        query = select(table).order_by(table.c.name)
        if search:
            query = query.where(table.c.name.ilike(f"%{search.strip()}%"))
        with session_scope(self._engine) as session:
            rows = session.execute(query).all()
        return [self._row_to_category(row, model) for row in rows]

    def _get_category(
        self, table: Table, model: Type[CategoryT], category_id: int, label: str
    ) -> CategoryT:
        with session_scope(self._engine) as session:
            row = self._require(session, table, category_id, label)
        return self._row_to_category(row, model)

    def _save_category(
        self,
        table: Table,
        category: CategoryT,
        label: str,
        category_id: Optional[int] = None,
    ) -> CategoryT:
        values = {"name": category.name, "description": category.description}
        with session_scope(self._engine) as session:
            if category_id is not None:
                self._require(session, table, category_id, label)
            self._ensure_unique_name(
                session, table, category.name, label, exclude_id=category_id
            )
            if category_id is None:
                category_id = session.execute(
                    insert(table).values(**values).returning(table.c.id)
                ).scalar_one()
            else:
                session.execute(
                    update(table).where(table.c.id == category_id).values(**values)
                )
            row = self._require(session, table, category_id, label)
        return self._row_to_category(row, type(category))

    def list_services(self, search: Optional[str] = None) -> List[Service]:
        return self._list_categories(services, Service, search)

    def get_service(self, service_id: int) -> Service:
        return self._get_category(services, Service, service_id, "Service")

    def create_service(self, service: Service) -> Service:
        return self._save_category(services, service, "Service")

    def update_service(self, service_id: int, service: Service) -> Service:
        return self._save_category(services, service, "Service", service_id)

    def delete_service(self, service_id: int) -> None:
        """Remove a service nothing references.

        Raises:
            NoResultFound: If the service does not exist.
            ConflictError: If bills, revenues or prices use the service.
        """

        with session_scope(self._engine) as session:
            self._require(session, services, service_id, "Service")
            in_use = (
                self._exists(session, bills, bills.c.service_id == service_id)
                or self._exists(session, revenues, revenues.c.service_id == service_id)
                or self._exists(session, prices, prices.c.service_id == service_id)
            )
            if in_use:
                raise ConflictError(
                    "Cannot delete service that is used by bills, revenues or prices"
                )
            session.execute(delete(services).where(services.c.id == service_id))
        self._log_delete("Service", service_id)

    def list_cost_types(self, search: Optional[str] = None) -> List[CostType]:
        return self._list_categories(cost_types, CostType, search)

    def get_cost_type(self, cost_type_id: int) -> CostType:
        return self._get_category(cost_types, CostType, cost_type_id, "Cost type")

    def create_cost_type(self, cost_type: CostType) -> CostType:
        return self._save_category(cost_types, cost_type, "Cost type")

    def update_cost_type(self, cost_type_id: int, cost_type: CostType) -> CostType:
        return self._save_category(cost_types, cost_type, "Cost type", cost_type_id)

    def delete_cost_type(self, cost_type_id: int) -> None:
        """Remove a cost type without costs along with its attributes."""

        with session_scope(self._engine) as session:
            self._require(session, cost_types, cost_type_id, "Cost type")
            if self._exists(session, costs, costs.c.cost_type_id == cost_type_id):
                raise ConflictError("Cannot delete cost type with existing costs")
            session.execute(delete(cost_types).where(cost_types.c.id == cost_type_id))
        self._log_delete("Cost type", cost_type_id)

    # Cost type attributes

    def _attribute_query(self):
        return (
            select(cost_type_attributes, cost_types.c.name.label("cost_type_name"))
            .join(cost_types, cost_types.c.id == cost_type_attributes.c.cost_type_id)
            .order_by(cost_type_attributes.c.name)
        )

    def list_attributes(
        self, cost_type_id: Optional[int] = None, search: Optional[str] = None
    ) -> List[CostTypeAttribute]:
        query = self._attribute_query()
        if cost_type_id is not None:
            query = query.where(cost_type_attributes.c.cost_type_id == cost_type_id)
        if search:
            query = query.where(
                cost_type_attributes.c.name.ilike(f"%{search.strip()}%")
            )
        with session_scope(self._engine) as session:
            rows = session.execute(query).all()
        return [self._row_to_attribute(row) for row in rows]

    def get_attribute(self, attribute_id: int) -> CostTypeAttribute:
        with session_scope(self._engine) as session:
            row = session.execute(
                self._attribute_query().where(
                    cost_type_attributes.c.id == attribute_id
                )
            ).one_or_none()
        if row is None:
            raise NoResultFound("Cost type attribute not found")
        return self._row_to_attribute(row)

    def save_attribute(
        self, attribute: CostTypeAttribute, attribute_id: Optional[int] = None
    ) -> CostTypeAttribute:
        """Create or update an attribute.

        Raises:
            NoResultFound: If the attribute (on update) or its cost type is
                missing.
            ConflictError: If the cost type already has an attribute with the
                same name.
        """

        values = {"cost_type_id": attribute.cost_type_id, "name": attribute.name}
        with session_scope(self._engine) as session:
            if attribute_id is not None:
                self._require(
                    session, cost_type_attributes, attribute_id, "Cost type attribute"
                )
            self._require(session, cost_types, attribute.cost_type_id, "Cost type")
            conditions = [
                cost_type_attributes.c.cost_type_id == attribute.cost_type_id,
                cost_type_attributes.c.name == attribute.name,
            ]
            if attribute_id is not None:
                conditions.append(cost_type_attributes.c.id != attribute_id)
            if self._exists(session, cost_type_attributes, *conditions):
                raise ConflictError(
                    "An attribute with this name already exists for this cost type"
                )
            if attribute_id is None:
                attribute_id = session.execute(
                    insert(cost_type_attributes)
                    .values(**values)
                    .returning(cost_type_attributes.c.id)
                ).scalar_one()
            else:
                session.execute(
                    update(cost_type_attributes)
                    .where(cost_type_attributes.c.id == attribute_id)
                    .values(**values)
                )
        return self.get_attribute(attribute_id)

    def delete_attribute(self, attribute_id: int) -> None:
        with session_scope(self._engine) as session:
            self._require(
                session, cost_type_attributes, attribute_id, "Cost type attribute"
            )
            if self._exists(
                session,
                cost_attribute_values,
                cost_attribute_values.c.attribute_id == attribute_id,
            ):
                raise ConflictError("Cannot delete attribute that is in use by costs")
            session.execute(
                delete(cost_type_attributes).where(
                    cost_type_attributes.c.id == attribute_id
                )
            )
        self._log_delete("Cost type attribute", attribute_id)

    @staticmethod
    def _row_to_party(row, model: Type[PartyT]) -> PartyT:
        values = row._mapping
        return model(
            id=values["id"],
            name=values["name"],
            contact_person=values["contact_person"],
            email=values["email"],
            phone=values["phone"],
            address=values["address"],
            created_at=values["created_at"],
            updated_at=values["updated_at"],
        )

    @staticmethod
    def _row_to_category(row, model: Type[CategoryT]) -> CategoryT:
        values = row._mapping
        return model(
            id=values["id"],
            name=values["name"],
            description=values["description"],
            created_at=values["created_at"],
            updated_at=values["updated_at"],
        )

    @staticmethod
    def _row_to_attribute(row) -> CostTypeAttribute:
        values = row._mapping
        return CostTypeAttribute(
            id=values["id"],
            cost_type_id=values["cost_type_id"],
            name=values["name"],
            cost_type_name=values["cost_type_name"],
            created_at=values["created_at"],
            updated_at=values["updated_at"],
        )
