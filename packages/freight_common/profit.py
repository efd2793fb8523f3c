"""Profit and loss aggregation over bills, costs and cost prices.

Revenue is never typed in directly for reporting purposes. Instead each bill
earns, for every distinct cost type carrying at least one *invoice* cost, the
cost price agreed with the customer for that service and cost type. Profit is
that revenue minus the invoice costs only; pay-on-behalf costs are passed
through to the customer and show up in cost totals without touching profit.

Every function here is pure and works in :class:`~decimal.Decimal` so the
results can be rendered by the API, exported to CSV, or checked in unit tests
without a database.
"""

from __future__ import annotations

import calendar
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .models import CENTS, Bill, Cost, CostPrice

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")
HUNDRED = Decimal(100)

PRICE_SOURCE_COST_PRICE = "cost_price"
PRICE_SOURCE_NONE = "none"
PRICE_SOURCE_PAY_ON_BEHALF_ONLY = "pay_on_behalf_only"


class PriceBook:
    """Lookup of cost prices keyed by customer, service and cost type."""

    def __init__(self, prices: Mapping[Tuple[int, int, int], Decimal] | None = None):
        self._prices: Dict[Tuple[int, int, int], Decimal] = dict(prices or {})

    @classmethod
    def from_cost_prices(cls, cost_prices: Iterable[CostPrice]) -> "PriceBook":
        return cls(
            {
                (item.customer_id, item.service_id, item.cost_type_id): item.price
                for item in cost_prices
            }
        )

    def lookup(
        self, customer_id: int, service_id: int, cost_type_id: int
    ) -> Optional[Decimal]:
        return self._prices.get((customer_id, service_id, cost_type_id))

    def __len__(self) -> int:
        return len(self._prices)


@dataclass(slots=True)
class CostTypeBreakdown:
    """Costs, revenue and profit for a single cost type on one bill."""

    cost_type_id: int
    cost_type_name: str
    invoice_costs: List[Cost] = field(default_factory=list)
    on_behalf_costs: List[Cost] = field(default_factory=list)
    invoice_amount: Decimal = ZERO
    on_behalf_amount: Decimal = ZERO
    unit_price: Decimal = ZERO
    revenue: Decimal = ZERO
    profit: Decimal = ZERO
    price_source: str = PRICE_SOURCE_NONE

    @property
    def total_amount(self) -> Decimal:
        return self.invoice_amount + self.on_behalf_amount

    @property
    def count(self) -> int:
        return len(self.invoice_costs) + len(self.on_behalf_costs)


@dataclass(slots=True)
class BillSummary:
    bill: Bill
    invoice_cost: Decimal
    on_behalf_cost: Decimal
    revenue: Decimal
    cost_types: List[CostTypeBreakdown] = field(default_factory=list)

    @property
    def total_cost(self) -> Decimal:
        return self.invoice_cost + self.on_behalf_cost

    @property
    def profit(self) -> Decimal:
        return self.revenue - self.invoice_cost


@dataclass(slots=True)
class PartySummary:
    """Totals for a customer or a service across a set of bills."""

    id: int
    name: str
    bill_count: int = 0
    revenue: Decimal = ZERO
    invoice_costs: Decimal = ZERO
    on_behalf_costs: Decimal = ZERO
    share: Decimal = ZERO

    @property
    def total_costs(self) -> Decimal:
        return self.invoice_costs + self.on_behalf_costs

    @property
    def profit(self) -> Decimal:
        return self.revenue - self.invoice_costs

    @property
    def margin(self) -> Decimal:
        return margin(self.profit, self.revenue)


@dataclass(slots=True)
class SupplierSummary:
    id: int
    name: str
    transaction_count: int
    invoice_amount: Decimal
    on_behalf_amount: Decimal
    average_cost: Decimal
    percentage: Decimal
    cost_type_names: List[str]

    @property
    def total_amount(self) -> Decimal:
        return self.invoice_amount + self.on_behalf_amount


@dataclass(slots=True)
class SupplierReport:
    suppliers: List[SupplierSummary]
    invoice_total: Decimal
    on_behalf_total: Decimal

    @property
    def total(self) -> Decimal:
        return self.invoice_total + self.on_behalf_total

    @property
    def transaction_count(self) -> int:
        return sum(item.transaction_count for item in self.suppliers)


@dataclass(slots=True)
class PeriodSummary:
    period: str
    bill_count: int = 0
    revenue: Decimal = ZERO
    invoice_costs: Decimal = ZERO
    on_behalf_costs: Decimal = ZERO

    @property
    def label(self) -> str:
        year, month = self.period.split("-")
        return f"{calendar.month_name[int(month)]} {year}"

    @property
    def total_costs(self) -> Decimal:
        return self.invoice_costs + self.on_behalf_costs

    @property
    def profit(self) -> Decimal:
        return self.revenue - self.invoice_costs

    @property
    def margin(self) -> Decimal:
        return margin(self.profit, self.revenue)


@dataclass(slots=True)
class ProfitLossReport:
    totals: PeriodSummary
    periods: List[PeriodSummary]
    bills: List[BillSummary] = field(default_factory=list)


def margin(profit: Decimal, revenue: Decimal) -> Decimal:
    """Return profit as a percentage of revenue, ``0`` without revenue."""

    if revenue <= 0:
        return ZERO
    return (profit / revenue * HUNDRED).quantize(CENTS)


def share(part: Decimal, whole: Decimal) -> Decimal:
    """Return ``part`` as a percentage of ``whole``, ``0`` when ``whole`` is 0."""

    if whole == 0:
        return ZERO
    return (part / whole * HUNDRED).quantize(CENTS)


def compare_trend(current: Decimal, previous: Decimal) -> Decimal:
    """Percent change from ``previous`` to ``current``.

    A period without a baseline reports ``0`` rather than an infinite change.
    """

    if previous == 0:
        return ZERO
    return ((current - previous) / abs(previous) * HUNDRED).quantize(CENTS)


def split_costs(costs: Iterable[Cost]) -> Tuple[Decimal, Decimal]:
    """Return ``(invoice_total, pay_on_behalf_total)`` for ``costs``."""

    invoice_total = ZERO
    on_behalf_total = ZERO
    for cost in costs:
        if cost.is_invoice:
            invoice_total += cost.amount
        else:
            on_behalf_total += cost.amount
    return invoice_total, on_behalf_total


def _invoiced_cost_type_ids(costs: Sequence[Cost]) -> List[int]:
    """Distinct cost types with invoice costs, in first-seen order."""

    seen: Dict[int, None] = {}
    for cost in costs:
        if cost.is_invoice:
            seen.setdefault(cost.cost_type_id, None)
    return list(seen)


def bill_revenue(bill: Bill, price_book: PriceBook) -> Decimal:
    """Revenue a bill earns from the price book."""

    total = ZERO
    for cost_type_id in _invoiced_cost_type_ids(bill.costs):
        price = price_book.lookup(bill.customer_id, bill.service_id, cost_type_id)
        if price is None:
            logger.debug(
                "Bill %s: no cost price for cost type %s", bill.bill_no, cost_type_id
            )
            continue
        total += price
    return total


def summarize_bill(bill: Bill, price_book: PriceBook) -> BillSummary:
    """Build the per-bill profit breakdown used by the detail report."""

    breakdowns: List[CostTypeBreakdown] = []
    invoiced_ids = _invoiced_cost_type_ids(bill.costs)
    for cost_type_id in invoiced_ids:
        type_costs = [cost for cost in bill.costs if cost.cost_type_id == cost_type_id]
        breakdown = _breakdown_for(cost_type_id, type_costs)
        price = price_book.lookup(bill.customer_id, bill.service_id, cost_type_id)
        if price is None:
            logger.debug(
                "Bill %s: no cost price for cost type %s", bill.bill_no, cost_type_id
            )
        else:
            breakdown.unit_price = price
            breakdown.revenue = price
            breakdown.price_source = PRICE_SOURCE_COST_PRICE
        breakdown.profit = breakdown.revenue - breakdown.invoice_amount
        breakdowns.append(breakdown)

    on_behalf_only: Dict[int, List[Cost]] = {}
    for cost in bill.costs:
        if not cost.is_invoice and cost.cost_type_id not in invoiced_ids:
            on_behalf_only.setdefault(cost.cost_type_id, []).append(cost)
    for cost_type_id, type_costs in on_behalf_only.items():
        breakdown = _breakdown_for(cost_type_id, type_costs)
        breakdown.price_source = PRICE_SOURCE_PAY_ON_BEHALF_ONLY
        breakdowns.append(breakdown)

    invoice_cost, on_behalf_cost = split_costs(bill.costs)
    revenue = sum((item.revenue for item in breakdowns), ZERO)
    return BillSummary(
        bill=bill,
        invoice_cost=invoice_cost,
        on_behalf_cost=on_behalf_cost,
        revenue=revenue,
        cost_types=breakdowns,
    )


def _breakdown_for(cost_type_id: int, costs: List[Cost]) -> CostTypeBreakdown:
    breakdown = CostTypeBreakdown(
        cost_type_id=cost_type_id,
        cost_type_name=next(
            (cost.cost_type_name for cost in costs if cost.cost_type_name), "Unknown"
        ),
    )
    for cost in costs:
        if cost.is_invoice:
            breakdown.invoice_costs.append(cost)
            breakdown.invoice_amount += cost.amount
        else:
            breakdown.on_behalf_costs.append(cost)
            breakdown.on_behalf_amount += cost.amount
    return breakdown


def summarize_parties(
    bills: Iterable[Bill],
    price_book: PriceBook,
    *,
    key: str,
    parties: Iterable[Tuple[int, str]] = (),
) -> List[PartySummary]:
    """Aggregate bills per customer or per service.

    Args:
        bills: Bills to aggregate, already filtered to the reporting window.
        price_book: Cost prices used to derive revenue.
        key: ``"customer"`` or ``"service"``.
        parties: Optional ``(id, name)`` pairs to report even when they have no
            bills in the window.

    Returns:
        list[PartySummary]: One entry per party ordered by profit, highest
        first. ``share`` holds each party's percentage of the combined profit.
    """

    if key not in {"customer", "service"}:
        raise ValueError(f"Unsupported grouping key: {key}")
    summaries: Dict[int, PartySummary] = {
        party_id: PartySummary(id=party_id, name=name) for party_id, name in parties
    }
    for bill in bills:
        if key == "customer":
            party_id, name = bill.customer_id, bill.customer_name
        else:
            party_id, name = bill.service_id, bill.service_name
        summary = summaries.setdefault(
            party_id, PartySummary(id=party_id, name=name or f"#{party_id}")
        )
        invoice_cost, on_behalf_cost = split_costs(bill.costs)
        summary.bill_count += 1
        summary.invoice_costs += invoice_cost
        summary.on_behalf_costs += on_behalf_cost
        summary.revenue += bill_revenue(bill, price_book)

    ordered = sorted(summaries.values(), key=lambda item: item.profit, reverse=True)
    total_profit = sum((item.profit for item in ordered), ZERO)
    for item in ordered:
        item.share = share(item.profit, total_profit)
    return ordered


def summarize_suppliers(
    suppliers: Iterable[Tuple[int, str]],
    costs: Iterable[Cost],
    *,
    cost_type_id: Optional[int] = None,
) -> SupplierReport:
    """Aggregate supplier spend, optionally limited to one cost type.

    Suppliers without a matching cost are omitted. Each supplier's
    ``percentage`` is its share of the grand total of the matching costs.
    """

    names = dict(suppliers)
    grouped: Dict[int, List[Cost]] = {}
    for cost in costs:
        if cost_type_id is not None and cost.cost_type_id != cost_type_id:
            continue
        grouped.setdefault(cost.supplier_id, []).append(cost)

    invoice_total, on_behalf_total = split_costs(
        cost for supplier_costs in grouped.values() for cost in supplier_costs
    )
    grand_total = invoice_total + on_behalf_total

    summaries: List[SupplierSummary] = []
    for supplier_id, supplier_costs in grouped.items():
        invoice_amount, on_behalf_amount = split_costs(supplier_costs)
        total_amount = invoice_amount + on_behalf_amount
        cost_type_names: Dict[int, str] = {}
        for cost in supplier_costs:
            cost_type_names.setdefault(
                cost.cost_type_id, cost.cost_type_name or "Unknown"
            )
        name = names.get(supplier_id) or next(
            (cost.supplier_name for cost in supplier_costs if cost.supplier_name),
            f"#{supplier_id}",
        )
        summaries.append(
            SupplierSummary(
                id=supplier_id,
                name=name,
                transaction_count=len(supplier_costs),
                invoice_amount=invoice_amount,
                on_behalf_amount=on_behalf_amount,
                average_cost=(total_amount / len(supplier_costs)).quantize(CENTS),
                percentage=share(total_amount, grand_total),
                cost_type_names=list(cost_type_names.values()),
            )
        )
    summaries.sort(key=lambda item: item.total_amount, reverse=True)
    return SupplierReport(
        suppliers=summaries,
        invoice_total=invoice_total,
        on_behalf_total=on_behalf_total,
    )


def summarize_profit_loss(
    bills: Iterable[Bill], price_book: PriceBook
) -> ProfitLossReport:
    """Compute the profit/loss summary and its monthly breakdown."""

    totals = PeriodSummary(period="total")
    periods: Dict[str, PeriodSummary] = {}
    summaries: List[BillSummary] = []
    for bill in bills:
        summary = summarize_bill(bill, price_book)
        summaries.append(summary)
        period_key = f"{bill.bill_date.year:04d}-{bill.bill_date.month:02d}"
        period = periods.setdefault(period_key, PeriodSummary(period=period_key))
        for bucket in (totals, period):
            bucket.bill_count += 1
            bucket.revenue += summary.revenue
            bucket.invoice_costs += summary.invoice_cost
            bucket.on_behalf_costs += summary.on_behalf_cost

    return ProfitLossReport(
        totals=totals,
        periods=[periods[key] for key in sorted(periods)],
        bills=summaries,
    )
