"""Billing domain models shared by the web application and scripts.

These dataclasses describe the records a freight forwarder keeps for each
shipment: the bill itself, the supplier costs incurred while handling it, the
revenue entries recorded against it, and the price lists used to charge the
customer. They intentionally avoid persistence concerns so the profit
calculations in :mod:`packages.freight_common.profit` can run on plain
objects.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Dict, List, Optional

CENTS = Decimal("0.01")
# Exclusive upper bound for money amounts; its cents fit a signed 64-bit column.
MAX_AMOUNT = Decimal("10000000000000")


class ChoiceEnum(str, Enum):
    """String enum that accepts alternate spellings on input."""

    @classmethod
    def aliases(cls) -> Dict[str, "ChoiceEnum"]:
        return {}

    @classmethod
    def parse(cls, value: object) -> "ChoiceEnum":
        """Coerce ``value`` into a member, honouring :meth:`aliases`.

        Raises:
            ValueError: If ``value`` matches neither a member value nor an
                alias (comparison is case-insensitive).
        """

        if isinstance(value, cls):
            return value
        raw = str(value or "").strip()
        for member in cls:
            if member.value.lower() == raw.lower():
                return member
        alias = cls.aliases().get(raw.lower())
        if alias is not None:
            return alias
        allowed = ", ".join(member.value for member in cls)
        raise ValueError(f"Unsupported value {value!r}; expected one of: {allowed}")

    @classmethod
    def values(cls) -> List[str]:
        return [member.value for member in cls]


class BillStatus(ChoiceEnum):
    PENDING = "Pending"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class TradeDirection(ChoiceEnum):
    """Whether the shipment is inbound or outbound customs traffic."""

    IMPORT = "import"
    EXPORT = "export"

    @classmethod
    def aliases(cls) -> Dict[str, "ChoiceEnum"]:
        return {"nhập": cls.IMPORT, "xuất": cls.EXPORT}


class GoodsType(ChoiceEnum):
    AIR = "Air"
    SEA = "Sea"
    LCL = "LCL"
    DOM = "Dom"


class CostAttribute(ChoiceEnum):
    """Invoice classification of a supplier cost.

    ``invoice`` costs are billed through the forwarder's own invoice and
    reduce profit. ``pay_on_behalf`` costs are disbursements paid for the
    customer and passed through at cost, so they never affect profit.
    """

    INVOICE = "invoice"
    PAY_ON_BEHALF = "pay_on_behalf"

    @classmethod
    def aliases(cls) -> Dict[str, "ChoiceEnum"]:
        return {
            "hóa đơn": cls.INVOICE,
            "hoa don": cls.INVOICE,
            "trả hộ": cls.PAY_ON_BEHALF,
            "tra ho": cls.PAY_ON_BEHALF,
        }

    @property
    def label(self) -> str:
        return "Invoice" if self is CostAttribute.INVOICE else "Pay on behalf"


def to_minor_units(amount: Decimal) -> int:
    """Return ``amount`` expressed in cents.

    Monetary values are stored as integers to avoid floating point rounding
    issues. For example, ``Decimal('12.345')`` becomes ``1235``.
    """

    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_minor_units(cents: Optional[int]) -> Decimal:
    """Convert stored cents back into a two-place :class:`Decimal`."""

    return (Decimal(cents or 0) / Decimal(100)).quantize(CENTS)


@dataclass(slots=True)
class Customer:
    name: str
    contact_person: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(slots=True)
class Supplier:
    name: str
    contact_person: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(slots=True)
class Service:
    name: str
    description: Optional[str] = None
    id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(slots=True)
class CostType:
    name: str
    description: Optional[str] = None
    id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(slots=True)
class CostTypeAttribute:
    """Named attribute that can be attached to costs of one cost type."""

    cost_type_id: int
    name: str
    id: Optional[int] = None
    cost_type_name: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(slots=True)
class CostAttributeValue:
    cost_id: int
    attribute_id: int
    value: str
    id: Optional[int] = None
    attribute_name: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass(slots=True)
class Cost:
    """Supplier cost incurred while handling a bill."""

    bill_id: int
    cost_type_id: int
    supplier_id: int
    amount: Decimal
    cost_date: date
    attribute: CostAttribute = CostAttribute.INVOICE
    notes: Optional[str] = None
    id: Optional[int] = None
    cost_type_name: Optional[str] = None
    supplier_name: Optional[str] = None
    bill_no: Optional[str] = None
    attribute_values: List[CostAttributeValue] = field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_invoice(self) -> bool:
        return self.attribute is CostAttribute.INVOICE


@dataclass(slots=True)
class Revenue:
    """Revenue entry recorded manually against a bill."""

    bill_id: int
    service_id: int
    amount: Decimal
    revenue_date: date
    notes: Optional[str] = None
    id: Optional[int] = None
    service_name: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(slots=True)
class Bill:
    """Shipment file grouping the costs and revenues of one job."""

    bill_no: str
    bill_date: date
    customer_id: int
    service_id: int
    status: BillStatus = BillStatus.PENDING
    trade_direction: TradeDirection = TradeDirection.IMPORT
    goods_type: GoodsType = GoodsType.AIR
    invoice_no: Optional[str] = None
    package_count: Optional[int] = None
    notes: Optional[str] = None
    id: Optional[int] = None
    customer_name: Optional[str] = None
    service_name: Optional[str] = None
    costs: List[Cost] = field(default_factory=list)
    revenues: List[Revenue] = field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def recorded_revenue(self) -> Decimal:
        """Sum of the revenue entries captured for the bill."""

        return sum((revenue.amount for revenue in self.revenues), Decimal("0.00"))


@dataclass(slots=True)
class Price:
    """Standard price charged to a customer for a service."""

    customer_id: int
    service_id: int
    price: Decimal
    id: Optional[int] = None
    customer_name: Optional[str] = None
    service_name: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(slots=True)
class CostPrice:
    """Price charged to a customer for one cost type within a service.

    Cost prices drive revenue in every profit calculation: a bill earns the
    cost price of each cost type it carries invoice costs for.
    """

    customer_id: int
    service_id: int
    cost_type_id: int
    price: Decimal
    id: Optional[int] = None
    customer_name: Optional[str] = None
    service_name: Optional[str] = None
    cost_type_name: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(slots=True)
class Setting:
    key: str
    value: Optional[str] = None
    id: Optional[int] = None
    updated_at: Optional[datetime] = None
