"""Payload parsing and validation helpers.

Every ``parse_*_payload`` function accepts the decoded JSON body (or any
mapping) and returns ``(result, errors)``. ``result`` is ``None`` whenever
``errors`` is non-empty. Passing ``existing`` turns the parser into a partial
update: keys missing from the payload keep the existing record's values.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Dict, List, Mapping, Optional, Tuple, Type

from packages.freight_common import (
    CENTS,
    MAX_AMOUNT,
    Bill,
    BillStatus,
    Cost,
    CostAttribute,
    CostAttributeValue,
    CostPrice,
    CostType,
    CostTypeAttribute,
    Customer,
    GoodsType,
    Price,
    Revenue,
    Service,
    Setting,
    Supplier,
    TradeDirection,
)
from packages.freight_common.models import ChoiceEnum

DATE_INPUT_FORMAT = "%Y-%m-%d"
MIN_NAME_LENGTH = 2
MIN_USERNAME_LENGTH = 3
MIN_PASSWORD_LENGTH = 6
USER_ROLES = ("admin", "user")
PERMISSION_FLAGS = (
    "can_manage_categories",
    "can_edit_bills",
    "can_create_bills",
    "can_view_revenue_pricing",
)

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_MISSING = object()


@dataclass(slots=True)
class UserFormData:
    """Validated account details returned by :func:`parse_user_payload`."""

    username: str
    password: str
    role: str = "user"
    permissions: Dict[str, bool] = field(default_factory=dict)


def _raw(data: Mapping[str, Any], key: str, existing: Any, attr: str) -> Any:
    if key in data:
        return data[key]
    if existing is not None:
        return getattr(existing, attr)
    return _MISSING


def _optional_text(
    data: Mapping[str, Any], key: str, existing: Any = None, attr: str | None = None
) -> Optional[str]:
    value = _raw(data, key, existing, attr or key)
    if value is _MISSING or value is None:
        return None
    text = str(value).strip()
    return text or None


def _parse_date(value: Any) -> Optional[date]:
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value or "").strip(), DATE_INPUT_FORMAT).date()
    except ValueError:
        return None


def parse_iso_date(value: Any) -> Optional[date]:
    """Return ``value`` as a date or ``None`` when blank or malformed."""

    if value in (None, ""):
        return None
    return _parse_date(value)


def _parse_amount(value: Any, label: str, errors: List[str]) -> Optional[Decimal]:
    """Parse a money amount rounded to cents, recording a problem in ``errors``.

    Amounts that round to zero cents or reach :data:`MAX_AMOUNT` are rejected.
    """

    amount: Optional[Decimal] = None
    if value is not _MISSING and value is not None and not isinstance(value, bool):
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation:
            amount = None
    if amount is not None and amount.is_finite() and amount >= MAX_AMOUNT:
        errors.append(f"{label} must be less than {MAX_AMOUNT:,}.")
        return None
    if amount is None or not amount.is_finite() or amount <= 0:
        errors.append(f"{label} must be greater than 0.")
        return None
    amount = amount.quantize(CENTS, rounding=ROUND_HALF_UP)
    if not amount:
        errors.append(f"{label} must be greater than 0.")
        return None
    return amount


def _parse_id(value: Any) -> Optional[int]:
    if value is _MISSING or value is None or isinstance(value, bool):
        return None
    try:
        parsed = int(str(value).strip())
    except ValueError:
        return None
    return parsed if parsed > 0 else None


def _parse_choice(
    value: Any, enum_cls: Type[ChoiceEnum], default: ChoiceEnum, label: str
) -> Tuple[Optional[ChoiceEnum], Optional[str]]:
    if value is _MISSING or value in (None, ""):
        return default, None
    try:
        return enum_cls.parse(value), None
    except ValueError:
        allowed = ", ".join(enum_cls.values())
        return None, f"{label} must be one of: {allowed}."


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value or "").strip().lower() in {"1", "true", "yes", "y", "on"}


def _required_name(
    data: Mapping[str, Any], existing: Any, label: str, errors: List[str]
) -> str:
    name = _optional_text(data, "name", existing) or ""
    if len(name) < MIN_NAME_LENGTH:
        errors.append(f"{label} name must be at least {MIN_NAME_LENGTH} characters.")
    return name


def _parse_contact(
    data: Mapping[str, Any], existing: Any, label: str
) -> Tuple[Dict[str, Any], List[str]]:
    errors: List[str] = []
    name = _required_name(data, existing, label, errors)
    email = _optional_text(data, "email", existing)
    if email and not _EMAIL_RE.match(email):
        errors.append("Invalid email address.")
    values = {
        "name": name,
        "contact_person": _optional_text(data, "contact_person", existing),
        "email": email,
        "phone": _optional_text(data, "phone", existing),
        "address": _optional_text(data, "address", existing),
    }
    return values, errors


def parse_customer_payload(
    data: Mapping[str, Any], existing: Optional[Customer] = None
) -> Tuple[Optional[Customer], List[str]]:
    values, errors = _parse_contact(data, existing, "Customer")
    if errors:
        return None, errors
    return Customer(id=existing.id if existing else None, **values), []


def parse_supplier_payload(
    data: Mapping[str, Any], existing: Optional[Supplier] = None
) -> Tuple[Optional[Supplier], List[str]]:
    values, errors = _parse_contact(data, existing, "Supplier")
    if errors:
        return None, errors
    return Supplier(id=existing.id if existing else None, **values), []


def parse_service_payload(
    data: Mapping[str, Any], existing: Optional[Service] = None
) -> Tuple[Optional[Service], List[str]]:
    errors: List[str] = []
    name = _required_name(data, existing, "Service", errors)
    if errors:
        return None, errors
    return (
        Service(
            id=existing.id if existing else None,
            name=name,
            description=_optional_text(data, "description", existing),
        ),
        [],
    )


def parse_cost_type_payload(
    data: Mapping[str, Any], existing: Optional[CostType] = None
) -> Tuple[Optional[CostType], List[str]]:
    errors: List[str] = []
    name = _required_name(data, existing, "Cost type", errors)
    if errors:
        return None, errors
    return (
        CostType(
            id=existing.id if existing else None,
            name=name,
            description=_optional_text(data, "description", existing),
        ),
        [],
    )


def parse_cost_type_attribute_payload(
    data: Mapping[str, Any], existing: Optional[CostTypeAttribute] = None
) -> Tuple[Optional[CostTypeAttribute], List[str]]:
    errors: List[str] = []
    cost_type_id = _parse_id(_raw(data, "cost_type_id", existing, "cost_type_id"))
    if cost_type_id is None:
        errors.append("Cost type is required.")
    name = _optional_text(data, "name", existing)
    if not name:
        errors.append("Attribute name is required.")
    if errors:
        return None, errors
    return (
        CostTypeAttribute(
            id=existing.id if existing else None,
            cost_type_id=cost_type_id,
            name=name,
        ),
        [],
    )


def _parse_attribute_value_items(
    raw_items: Any, errors: List[str]
) -> List[CostAttributeValue]:
    if raw_items in (None, _MISSING):
        return []
    if not isinstance(raw_items, list):
        errors.append("Attribute values must be a list.")
        return []
    items: List[CostAttributeValue] = []
    for index, raw in enumerate(raw_items, start=1):
        if not isinstance(raw, Mapping):
            errors.append(f"Attribute value {index} must be an object.")
            continue
        attribute_id = _parse_id(raw.get("attribute_id"))
        value = str(raw.get("value") or "").strip()
        if attribute_id is None or not value:
            errors.append(f"Attribute value {index} needs an attribute and a value.")
            continue
        items.append(CostAttributeValue(cost_id=0, attribute_id=attribute_id, value=value))
    return items


def parse_cost_attribute_value_payload(
    data: Mapping[str, Any],
) -> Tuple[Optional[CostAttributeValue], List[str]]:
    errors: List[str] = []
    cost_id = _parse_id(data.get("cost_id"))
    attribute_id = _parse_id(data.get("attribute_id"))
    value = str(data.get("value") or "").strip()
    if cost_id is None:
        errors.append("Cost is required.")
    if attribute_id is None:
        errors.append("Attribute is required.")
    if not value:
        errors.append("Value is required.")
    if errors:
        return None, errors
    return CostAttributeValue(cost_id=cost_id, attribute_id=attribute_id, value=value), []


def parse_bill_payload(
    data: Mapping[str, Any], existing: Optional[Bill] = None
) -> Tuple[Optional[Bill], List[str]]:
    """Validate a bill body for creation or full update."""

    errors: List[str] = []
    bill_no = _optional_text(data, "bill_no", existing)
    if not bill_no:
        errors.append("Bill number is required.")
    bill_date = _parse_date(_raw(data, "bill_date", existing, "bill_date"))
    if bill_date is None:
        errors.append("Bill date is required and must be YYYY-MM-DD.")
    customer_id = _parse_id(_raw(data, "customer_id", existing, "customer_id"))
    if customer_id is None:
        errors.append("Customer is required.")
    service_id = _parse_id(_raw(data, "service_id", existing, "service_id"))
    if service_id is None:
        errors.append("Service is required.")

    status, error = _parse_choice(
        _raw(data, "status", existing, "status"),
        BillStatus,
        BillStatus.PENDING,
        "Status",
    )
    if error:
        errors.append(error)
    trade_direction, error = _parse_choice(
        _raw(data, "trade_direction", existing, "trade_direction"),
        TradeDirection,
        TradeDirection.IMPORT,
        "Trade direction",
    )
    if error:
        errors.append(error)
    goods_type, error = _parse_choice(
        _raw(data, "goods_type", existing, "goods_type"),
        GoodsType,
        GoodsType.AIR,
        "Goods type",
    )
    if error:
        errors.append(error)

    package_count = None
    raw_packages = _raw(data, "package_count", existing, "package_count")
    if raw_packages not in (_MISSING, None, ""):
        try:
            package_count = int(raw_packages)
        except (TypeError, ValueError):
            package_count = -1
        if package_count < 0:
            errors.append("Package count must be a whole number of zero or more.")

    if errors:
        return None, errors
    return (
        Bill(
            id=existing.id if existing else None,
            bill_no=bill_no,
            bill_date=bill_date,
            customer_id=customer_id,
            service_id=service_id,
            status=status,
            trade_direction=trade_direction,
            goods_type=goods_type,
            invoice_no=_optional_text(data, "invoice_no", existing),
            package_count=package_count,
            notes=_optional_text(data, "notes", existing),
        ),
        [],
    )


def is_status_only_update(data: Mapping[str, Any]) -> bool:
    """Return ``True`` when a bill update carries nothing but ``status``."""

    return set(data) == {"status"}


def parse_bill_status(data: Mapping[str, Any]) -> Tuple[Optional[BillStatus], List[str]]:
    status, error = _parse_choice(data.get("status"), BillStatus, None, "Status")
    if error or status is None:
        return None, [error or "Status is required."]
    return status, []


def parse_cost_payload(
    data: Mapping[str, Any], existing: Optional[Cost] = None
) -> Tuple[Optional[Cost], List[str]]:
    """Validate a supplier cost.

    ``attribute`` accepts ``invoice`` or ``pay_on_behalf`` (legacy labels such
    as ``"Hóa đơn"`` are also understood) and defaults to ``invoice``.
    ``attribute_values`` is an optional list of ``{"attribute_id", "value"}``
    objects stored alongside the cost.
    """

    errors: List[str] = []
    bill_id = _parse_id(_raw(data, "bill_id", existing, "bill_id"))
    if bill_id is None:
        errors.append("Bill is required.")
    cost_type_id = _parse_id(_raw(data, "cost_type_id", existing, "cost_type_id"))
    if cost_type_id is None:
        errors.append("Cost type is required.")
    supplier_id = _parse_id(_raw(data, "supplier_id", existing, "supplier_id"))
    if supplier_id is None:
        errors.append("Supplier is required.")
    amount = _parse_amount(_raw(data, "amount", existing, "amount"), "Amount", errors)
    cost_date = _parse_date(_raw(data, "cost_date", existing, "cost_date"))
    if cost_date is None:
        errors.append("Cost date is required and must be YYYY-MM-DD.")
    attribute, error = _parse_choice(
        _raw(data, "attribute", existing, "attribute"),
        CostAttribute,
        CostAttribute.INVOICE,
        "Attribute",
    )
    if error:
        errors.append(error)
    attribute_values = _parse_attribute_value_items(
        data.get("attribute_values"), errors
    )
    if errors:
        return None, errors
    return (
        Cost(
            id=existing.id if existing else None,
            bill_id=bill_id,
            cost_type_id=cost_type_id,
            supplier_id=supplier_id,
            amount=amount,
            cost_date=cost_date,
            attribute=attribute,
            notes=_optional_text(data, "notes", existing),
            attribute_values=attribute_values,
        ),
        [],
    )


def parse_cost_batch_payload(
    data: Any,
) -> Tuple[Optional[List[Cost]], List[str]]:
    """Validate ``{"costs": [...]}`` for all-or-nothing creation."""

    items = data.get("costs") if isinstance(data, Mapping) else data
    if not isinstance(items, list) or not items:
        return None, ["Costs must be a non-empty list."]
    costs: List[Cost] = []
    errors: List[str] = []
    for index, item in enumerate(items, start=1):
        if not isinstance(item, Mapping):
            errors.append(f"Cost {index}: must be an object.")
            continue
        cost, item_errors = parse_cost_payload(item)
        errors.extend(f"Cost {index}: {message}" for message in item_errors)
        if cost is not None:
            costs.append(cost)
    if errors:
        return None, errors
    return costs, []


def parse_revenue_payload(
    data: Mapping[str, Any], existing: Optional[Revenue] = None
) -> Tuple[Optional[Revenue], List[str]]:
    errors: List[str] = []
    bill_id = _parse_id(_raw(data, "bill_id", existing, "bill_id"))
    if bill_id is None:
        errors.append("Bill is required.")
    service_id = _parse_id(_raw(data, "service_id", existing, "service_id"))
    if service_id is None:
        errors.append("Service is required.")
    amount = _parse_amount(_raw(data, "amount", existing, "amount"), "Amount", errors)
    revenue_date = _parse_date(_raw(data, "revenue_date", existing, "revenue_date"))
    if revenue_date is None:
        errors.append("Revenue date is required and must be YYYY-MM-DD.")
    if errors:
        return None, errors
    return (
        Revenue(
            id=existing.id if existing else None,
            bill_id=bill_id,
            service_id=service_id,
            amount=amount,
            revenue_date=revenue_date,
            notes=_optional_text(data, "notes", existing),
        ),
        [],
    )


def parse_price_payload(
    data: Mapping[str, Any], existing: Optional[Price] = None
) -> Tuple[Optional[Price], List[str]]:
    errors: List[str] = []
    customer_id = _parse_id(_raw(data, "customer_id", existing, "customer_id"))
    if customer_id is None:
        errors.append("Customer is required.")
    service_id = _parse_id(_raw(data, "service_id", existing, "service_id"))
    if service_id is None:
        errors.append("Service is required.")
    price = _parse_amount(_raw(data, "price", existing, "price"), "Price", errors)
    if errors:
        return None, errors
    return (
        Price(
            id=existing.id if existing else None,
            customer_id=customer_id,
            service_id=service_id,
            price=price,
        ),
        [],
    )


def parse_cost_price_payload(
    data: Mapping[str, Any], existing: Optional[CostPrice] = None
) -> Tuple[Optional[CostPrice], List[str]]:
    errors: List[str] = []
    customer_id = _parse_id(_raw(data, "customer_id", existing, "customer_id"))
    if customer_id is None:
        errors.append("Customer is required.")
    service_id = _parse_id(_raw(data, "service_id", existing, "service_id"))
    if service_id is None:
        errors.append("Service is required.")
    cost_type_id = _parse_id(_raw(data, "cost_type_id", existing, "cost_type_id"))
    if cost_type_id is None:
        errors.append("Cost type is required.")
    price = _parse_amount(_raw(data, "price", existing, "price"), "Price", errors)
    if errors:
        return None, errors
    return (
        CostPrice(
            id=existing.id if existing else None,
            customer_id=customer_id,
            service_id=service_id,
            cost_type_id=cost_type_id,
            price=price,
        ),
        [],
    )


def parse_cost_price_bulk_payload(
    data: Any,
) -> Tuple[Optional[List[CostPrice]], List[str]]:
    """Validate ``{"prices": [...]}`` for a bulk upsert."""

    items = data.get("prices") if isinstance(data, Mapping) else data
    if not isinstance(items, list) or not items:
        return None, ["Prices must be a non-empty list."]
    parsed: List[CostPrice] = []
    errors: List[str] = []
    for index, item in enumerate(items, start=1):
        if not isinstance(item, Mapping):
            errors.append(f"Price {index}: must be an object.")
            continue
        cost_price, item_errors = parse_cost_price_payload(item)
        errors.extend(f"Price {index}: {message}" for message in item_errors)
        if cost_price is not None:
            parsed.append(cost_price)
    if errors:
        return None, errors
    return parsed, []


def parse_permissions_payload(
    data: Mapping[str, Any],
) -> Tuple[Optional[Dict[str, Any]], List[str]]:
    """Validate a permission update for an existing account.

    Only keys present in the payload are returned so unspecified flags keep
    their stored value.
    """

    changes: Dict[str, Any] = {}
    errors: List[str] = []
    for flag in PERMISSION_FLAGS:
        if flag in data:
            changes[flag] = _parse_bool(data[flag])
    if "role" in data:
        role = str(data["role"] or "").strip().lower()
        if role not in USER_ROLES:
            errors.append("Role must be either 'admin' or 'user'.")
        changes["role"] = role
    if "password" in data:
        password = str(data["password"] or "")
        if len(password) < MIN_PASSWORD_LENGTH:
            errors.append(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters."
            )
        changes["password"] = password
    if errors:
        return None, errors
    if not changes:
        return None, ["Nothing to update."]
    return changes, []


def parse_user_payload(
    data: Mapping[str, Any],
) -> Tuple[Optional[UserFormData], List[str]]:
    errors: List[str] = []
    username = str(data.get("username") or "").strip()
    password = str(data.get("password") or "")
    role = str(data.get("role") or "user").strip().lower()
    if len(username) < MIN_USERNAME_LENGTH:
        errors.append(
            f"Username must be at least {MIN_USERNAME_LENGTH} characters."
        )
    if len(password) < MIN_PASSWORD_LENGTH:
        errors.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")
    if role not in USER_ROLES:
        errors.append("Role must be either 'admin' or 'user'.")
    if errors:
        return None, errors
    permissions = {flag: _parse_bool(data.get(flag)) for flag in PERMISSION_FLAGS}
    return UserFormData(username, password, role, permissions), []


def parse_setting_payload(
    key: str, data: Mapping[str, Any]
) -> Tuple[Optional[Setting], List[str]]:
    key = (key or "").strip()
    if not key:
        return None, ["Setting key is required."]
    if "value" not in data:
        return None, ["Setting value is required."]
    value = data["value"]
    return Setting(key=key, value=None if value is None else str(value)), []
