"""Common billing models and profit helpers shared across Freight Billing apps."""

from .models import (
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
    from_minor_units,
    to_minor_units,
)
from .profit import (
    BillSummary,
    CostTypeBreakdown,
    PartySummary,
    PeriodSummary,
    PriceBook,
    ProfitLossReport,
    SupplierReport,
    SupplierSummary,
    bill_revenue,
    compare_trend,
    margin,
    share,
    split_costs,
    summarize_bill,
    summarize_parties,
    summarize_profit_loss,
    summarize_suppliers,
)

__all__ = [
    "CENTS",
    "MAX_AMOUNT",
    "Bill",
    "BillStatus",
    "BillSummary",
    "Cost",
    "CostAttribute",
    "CostAttributeValue",
    "CostPrice",
    "CostType",
    "CostTypeAttribute",
    "CostTypeBreakdown",
    "Customer",
    "GoodsType",
    "PartySummary",
    "PeriodSummary",
    "Price",
    "PriceBook",
    "ProfitLossReport",
    "Revenue",
    "Service",
    "Setting",
    "Supplier",
    "SupplierReport",
    "SupplierSummary",
    "TradeDirection",
    "bill_revenue",
    "compare_trend",
    "from_minor_units",
    "margin",
    "share",
    "split_costs",
    "summarize_bill",
    "summarize_parties",
    "summarize_profit_loss",
    "summarize_suppliers",
    "to_minor_units",
]
