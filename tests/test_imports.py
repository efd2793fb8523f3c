"""Tests for the CSV cost price import."""

from __future__ import annotations

import io
from decimal import Decimal

import pandas as pd
import pytest

from freight_billing.imports import (
    _parse_currency,
    import_cost_prices,
    load_cost_prices,
    normalize_price_sheet,
)
from freight_billing.repositories import CatalogRepository, PricingRepository


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("$1,200.50", Decimal("1200.50")),
        ("1.200.000", Decimal("1200000")),
        ("1.200,75", Decimal("1200.75")),
        ("350 VND", Decimal("350")),
        ("12,5", Decimal("12.5")),
        (75, Decimal("75")),
        ("", None),
        ("abc", None),
        (None, None),
    ],
)
def test_parse_currency(raw, expected) -> None:
    assert _parse_currency(raw) == expected


def test_normalize_price_sheet_renames_and_requires_columns() -> None:
    df = pd.DataFrame(
        {"Customer Name": ["Acme"], "Service": ["Air"], "Cost Type": ["Handling"], "Amount": ["5"]}
    )

    normalized = normalize_price_sheet(df)
    assert {"customer", "service", "cost_type", "price"} <= set(normalized.columns)

    with pytest.raises(ValueError, match="Missing required columns: price"):
        normalize_price_sheet(pd.DataFrame({"customer": [], "service": [], "cost_type": []}))


def test_load_cost_prices_resolves_names_and_ids(engine, seed) -> None:
    df = pd.DataFrame(
        {
            "customer": ["acme trading", str(seed["customer"]), "Nobody"],
            "service": ["Air Freight", "Air Freight", "Air Freight"],
            "cost_type": ["Handling", str(seed["customs"]), "Handling"],
            "price": ["$180.00", "0", "10"],
        }
    )

    prices, errors = load_cost_prices(df, CatalogRepository(engine))

    assert [(item.cost_type_id, item.price) for item in prices] == [
        (seed["handling"], Decimal("180.00"))
    ]
    assert errors == [
        "Row 3: invalid price '0'",
        "Row 4: unknown customer 'Nobody'",
    ]


def test_import_cost_prices_upserts_rows(engine, seed) -> None:
    sheet = io.StringIO(
        "Customer,Service,Cost Type,Price\n"
        "Acme Trading,Air Freight,Handling,\"1,250.00\"\n"
        "Acme Trading,Air Freight,Customs,75\n"
        ",,,\n"
    )
    pricing = PricingRepository(engine)

    result = import_cost_prices(sheet, CatalogRepository(engine), pricing)

    assert (result.created, result.updated, result.errors) == (1, 1, [])
    assert result.imported == 2
    prices = {item.cost_type_name: item.price for item in pricing.list_cost_prices()}
    assert prices == {"Handling": Decimal("1250.00"), "Customs": Decimal("75.00")}


def test_import_cost_prices_rejects_empty_file(engine) -> None:
    with pytest.raises(ValueError, match="Could not read price sheet"):
        import_cost_prices(
            io.StringIO(""), CatalogRepository(engine), PricingRepository(engine)
        )


def test_load_cost_prices_rejects_prices_that_cannot_be_stored(engine, seed) -> None:
    df = pd.DataFrame(
        {
            "customer": ["Acme Trading"] * 3,
            "service": ["Air Freight"] * 3,
            "cost_type": ["Handling", "Customs", "Handling"],
            "price": ["0.0001", "1e30", "12.3456"],
        }
    )

    prices, errors = load_cost_prices(df, CatalogRepository(engine))

    assert [item.price for item in prices] == [Decimal("12.35")]
    assert errors == [
        "Row 2: invalid price '0.0001'",
        "Row 3: invalid price '1e30'",
    ]
