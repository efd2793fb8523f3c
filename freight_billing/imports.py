"""Import cost prices from CSV price sheets."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from pathlib import Path
from typing import IO, Any, Dict, List, Optional, Tuple, Union

import numpy as np
import pandas as pd

from packages.freight_common import CENTS, MAX_AMOUNT, CostPrice

from .repositories import CatalogRepository, PricingRepository

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = {"customer", "service", "cost_type", "price"}

_CURRENCY_NOISE = re.compile(r"(?i)vnd|usd|[$€£₫đ\s]")


@dataclass(slots=True)
class ImportResult:
    """Outcome of a price sheet import."""

    created: int = 0
    updated: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def imported(self) -> int:
        return self.created + self.updated


def _parse_currency(value: Any) -> Optional[Decimal]:
    """Convert currency-formatted text to :class:`Decimal`.

    Both ``"$1,200.50"`` and ``"1.200.000"`` style inputs are understood. A
    single separator followed by exactly three digits is treated as a
    thousands separator.

    Returns:
        The parsed amount, or ``None`` if the input is missing or unparseable.
    """

    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return None
    if not isinstance(value, str):
        try:
            return Decimal(str(value))
        except InvalidOperation:
            return None

    cleaned = _CURRENCY_NOISE.sub("", value)
    if not cleaned:
        return None
    if "," in cleaned and "." in cleaned:
        decimal_sep = "," if cleaned.rfind(",") > cleaned.rfind(".") else "."
        thousands_sep = "." if decimal_sep == "," else ","
        cleaned = cleaned.replace(thousands_sep, "").replace(decimal_sep, ".")
    else:
        for separator in (",", "."):
            if separator not in cleaned:
                continue
            head, _, tail = cleaned.rpartition(separator)
            if cleaned.count(separator) > 1 or len(tail) == 3:
                cleaned = cleaned.replace(separator, "")
            else:
                cleaned = f"{head.replace(separator, '')}.{tail}"
    try:
        return Decimal(cleaned)
    except InvalidOperation:
        return None


def normalize_price_sheet(df: pd.DataFrame) -> pd.DataFrame:
    """Rename known headers and validate the required columns exist.

    Raises:
        ValueError: If any required column is missing after normalisation.
    """

    df.columns = [
        re.sub(r"[\s\-]+", "_", str(column).strip().lower()) for column in df.columns
    ]
    rename_map = {
        "customer_name": "customer",
        "customer_id": "customer",
        "service_name": "service",
        "service_id": "service",
        "costtype": "cost_type",
        "cost_type_name": "cost_type",
        "cost_type_id": "cost_type",
        "amount": "price",
        "unit_price": "price",
    }
    normalized = df.rename(columns=rename_map)
    missing = REQUIRED_COLUMNS.difference(normalized.columns)
    if missing:
        raise ValueError(f"Missing required columns: {', '.join(sorted(missing))}")
    return normalized.replace({np.nan: None, pd.NA: None})


def _lookup(value: Any, by_id: Dict[int, int], by_name: Dict[str, int]) -> Optional[int]:
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    if re.fullmatch(r"\d+(\.0+)?", text):
        return by_id.get(int(float(text)))
    return by_name.get(text.lower())


def load_cost_prices(
    df: pd.DataFrame, catalog: CatalogRepository
) -> Tuple[List[CostPrice], List[str]]:
    """Translate a price sheet into :class:`CostPrice` objects.

    Customers, services and cost types may be given by ID or by name (case
    insensitive). Rows with an unknown reference or a non-positive price are
    reported in the returned error list and skipped.
    """

    normalized = normalize_price_sheet(df)
    lookups = {}
    for column, items in (
        ("customer", catalog.list_customers()),
        ("service", catalog.list_services()),
        ("cost_type", catalog.list_cost_types()),
    ):
        lookups[column] = (
            {item.id: item.id for item in items},
            {item.name.strip().lower(): item.id for item in items},
        )

    prices: List[CostPrice] = []
    errors: List[str] = []
    for offset, row in enumerate(normalized.to_dict(orient="records")):
        line = offset + 2  # header is line 1
        if all(row.get(column) is None for column in REQUIRED_COLUMNS):
            continue
        resolved: Dict[str, Optional[int]] = {}
        row_errors: List[str] = []
        for column, label in (
            ("customer", "customer"),
            ("service", "service"),
            ("cost_type", "cost type"),
        ):
            resolved[column] = _lookup(row.get(column), *lookups[column])
            if resolved[column] is None:
                row_errors.append(f"unknown {label} {row.get(column)!r}")
        price = _parse_currency(row.get("price"))
        if price is not None and price.is_finite() and 0 < price < MAX_AMOUNT:
            price = price.quantize(CENTS, rounding=ROUND_HALF_UP)
        if price is None or not price.is_finite() or not 0 < price < MAX_AMOUNT:
            row_errors.append(f"invalid price {row.get('price')!r}")
        if row_errors:
            errors.append(f"Row {line}: " + "; ".join(row_errors))
            continue
        prices.append(
            CostPrice(
                customer_id=resolved["customer"],
                service_id=resolved["service"],
                cost_type_id=resolved["cost_type"],
                price=price,
            )
        )
    return prices, errors


def import_cost_prices(
    source: Union[str, Path, IO[Any]],
    catalog: CatalogRepository,
    pricing: PricingRepository,
) -> ImportResult:
    """Read a CSV price sheet and upsert every valid row.

    Args:
        source: Path or open file object containing CSV data.
        catalog: Repository used to resolve names and IDs.
        pricing: Repository receiving the upserted cost prices.

    Raises:
        ValueError: If the sheet lacks a required column or cannot be parsed.
    """

    try:
        df = pd.read_csv(source, dtype=str, skipinitialspace=True)
    except (pd.errors.EmptyDataError, pd.errors.ParserError) as exc:
        raise ValueError(f"Could not read price sheet: {exc}") from exc
    prices, errors = load_cost_prices(df, catalog)
    result = ImportResult(errors=errors)
    if prices:
        result.created, result.updated = pricing.upsert_cost_prices(prices)
    logger.info(
        "Imported price sheet: %d created, %d updated, %d rejected",
        result.created,
        result.updated,
        len(errors),
    )
    return result
