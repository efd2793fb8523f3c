"""Report builders combining repositories with the profit helpers."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from typing import Dict, List, Optional

from packages.freight_common import (
    Bill,
    BillSummary,
    PartySummary,
    PriceBook,
    ProfitLossReport,
    SupplierReport,
    compare_trend,
    margin,
    split_costs,
    summarize_bill,
    summarize_parties,
    summarize_profit_loss,
    summarize_suppliers,
)
from packages.freight_common.profit import ZERO, bill_revenue

from .repositories import BillRepository, CatalogRepository, PricingRepository

logger = logging.getLogger(__name__)

TIMEFRAME_DAYS: Dict[str, int] = {"week": 7, "month": 90, "quarter": 180}
TREND_WINDOW_DAYS = 30
TOP_PERFORMERS = 5


@dataclass(slots=True)
class DateRange:
    start: date
    end: date

    @property
    def label(self) -> str:
        return f"{self.start.isoformat()} to {self.end.isoformat()}"


def _one_year_before(day: date) -> date:
    try:
        return day.replace(year=day.year - 1)
    except ValueError:
        # 29 February
        return day.replace(year=day.year - 1, day=28)


def resolve_date_range(
    timeframe: Optional[str],
    start: Optional[date] = None,
    end: Optional[date] = None,
    *,
    today: Optional[date] = None,
    default_days: int = 90,
) -> DateRange:
    """Translate a report timeframe into an inclusive date range.

    Args:
        timeframe: ``week``, ``month``, ``quarter``, ``year`` or ``custom``.
            Unknown or missing values fall back to ``default_days``.
        start: First day for ``custom`` ranges.
        end: Last day for ``custom`` ranges.
        today: Reference day, defaults to :meth:`date.today`.
        default_days: Window used for unknown timeframes.

    Returns:
        DateRange: ``custom`` with both bounds uses them verbatim; every other
        timeframe ends on ``today``. ``month`` covers 90 days and ``quarter``
        180 days.
    """

    today = today or date.today()
    if timeframe == "custom" and start is not None and end is not None:
        return DateRange(start, end)
    if timeframe == "year":
        return DateRange(_one_year_before(today), today)
    days = TIMEFRAME_DAYS.get(timeframe or "", default_days)
    return DateRange(today - timedelta(days=days), today)


@dataclass(slots=True)
class Trends:
    bills: Decimal = ZERO
    revenue: Decimal = ZERO
    costs: Decimal = ZERO
    profit: Decimal = ZERO


@dataclass(slots=True)
class Dashboard:
    total_bills: int
    revenue: Decimal
    invoice_costs: Decimal
    on_behalf_costs: Decimal
    trends: Trends
    top_customers: List[PartySummary] = field(default_factory=list)
    top_services: List[PartySummary] = field(default_factory=list)

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
class _Window:
    bills: int = 0
    revenue: Decimal = ZERO
    invoice_costs: Decimal = ZERO
    on_behalf_costs: Decimal = ZERO

    def add(self, bill: Bill, price_book: PriceBook) -> None:
        invoice_cost, on_behalf_cost = split_costs(bill.costs)
        self.bills += 1
        self.revenue += bill_revenue(bill, price_book)
        self.invoice_costs += invoice_cost
        self.on_behalf_costs += on_behalf_cost

    @property
    def profit(self) -> Decimal:
        return self.revenue - self.invoice_costs


class ReportService:
    """Loads the records a report needs and hands them to the profit helpers."""

    def __init__(
        self,
        bills: BillRepository,
        pricing: PricingRepository,
        catalog: CatalogRepository,
    ):
        self._bills = bills
        self._pricing = pricing
        self._catalog = catalog

    def price_book(self) -> PriceBook:
        book = PriceBook.from_cost_prices(self._pricing.list_cost_prices())
        logger.debug("Loaded %d cost prices", len(book))
        return book

    def dashboard(self, today: Optional[date] = None) -> Dashboard:
        """Totals over every bill plus the top customers and services.

        Trends compare the last 30 days of bills with the 30 days before.
        """

        today = today or date.today()
        book = self.price_book()
        all_bills = self._bills.list_bills()
        overall = _Window()
        current = _Window()
        previous = _Window()
        current_start = today - timedelta(days=TREND_WINDOW_DAYS)
        previous_start = current_start - timedelta(days=TREND_WINDOW_DAYS)
        for bill in all_bills:
            overall.add(bill, book)
            if current_start < bill.bill_date <= today:
                current.add(bill, book)
            elif previous_start < bill.bill_date <= current_start:
                previous.add(bill, book)

        trends = Trends(
            bills=compare_trend(Decimal(current.bills), Decimal(previous.bills)),
            revenue=compare_trend(current.revenue, previous.revenue),
            costs=compare_trend(
                current.invoice_costs + current.on_behalf_costs,
                previous.invoice_costs + previous.on_behalf_costs,
            ),
            profit=compare_trend(current.profit, previous.profit),
        )
        customers = summarize_parties(all_bills, book, key="customer")
        services = summarize_parties(all_bills, book, key="service")
        return Dashboard(
            total_bills=overall.bills,
            revenue=overall.revenue,
            invoice_costs=overall.invoice_costs,
            on_behalf_costs=overall.on_behalf_costs,
            trends=trends,
            top_customers=customers[:TOP_PERFORMERS],
            top_services=services[:TOP_PERFORMERS],
        )

    def by_customer(self, date_range: DateRange) -> List[PartySummary]:
        """Per customer totals; customers without bills in range report zeros."""

        bills = self._bills.list_bills(start=date_range.start, end=date_range.end)
        parties = [(item.id, item.name) for item in self._catalog.list_customers()]
        return summarize_parties(bills, self.price_book(), key="customer", parties=parties)

    def by_supplier(
        self, date_range: DateRange, cost_type_id: Optional[int] = None
    ) -> SupplierReport:
        costs = self._bills.costs_between(date_range.start, date_range.end)
        suppliers = [(item.id, item.name) for item in self._catalog.list_suppliers()]
        return summarize_suppliers(suppliers, costs, cost_type_id=cost_type_id)

    def profit_loss(self, date_range: DateRange) -> ProfitLossReport:
        bills = self._bills.list_bills(start=date_range.start, end=date_range.end)
        return summarize_profit_loss(bills, self.price_book())

    def bill_details(self, date_range: DateRange) -> List[BillSummary]:
        bills = self._bills.list_bills(start=date_range.start, end=date_range.end)
        book = self.price_book()
        return [summarize_bill(bill, book) for bill in bills]
