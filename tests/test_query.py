from __future__ import annotations

import math

import pytest
from conftest import record

from agrimap.indexer import build_index
from agrimap.query import QueryEngine


@pytest.fixture
def engine() -> QueryEngine:
    return QueryEngine(
        build_index(
            [
                record("FRA", 2020, "ble", 1.05),
                record("FRA", 2020, "lait", 0.8),
                record("FRA", 2019, "lait", 0.7),
                record("FRA", 2019, "volaille", None),
                record("DEU", 2018, "ble", math.nan),
            ]
        )
    )


def test_value_for_averages_available_products(engine: QueryEngine) -> None:
    assert engine.value_for("FRA", 2020, ["ble", "lait"]) == pytest.approx(0.925)


def test_value_for_missing_product_is_none(engine: QueryEngine) -> None:
    assert engine.value_for("FRA", 2020, ["volaille"]) is None


def test_value_for_excludes_missing_products_from_the_mean(engine: QueryEngine) -> None:
    assert engine.value_for("FRA", 2019, ["ble", "lait", "volaille"]) == pytest.approx(0.7)


@pytest.mark.parametrize(
    ("country_id", "year", "products"),
    [
        (None, 2020, ["ble"]),
        ("", 2020, ["ble"]),
        ("FRA", None, ["ble"]),
        ("FRA", 2020, []),
        ("FRA", 2021, ["ble"]),
        ("ESP", 2020, ["ble"]),
        ("DEU", 2018, ["ble"]),
    ],
)
def test_value_for_null_cases(engine: QueryEngine, country_id, year, products) -> None:
    assert engine.value_for(country_id, year, products) is None


def test_series_for_omits_years_without_values() -> None:
    engine = QueryEngine(build_index([record("FRA", 2020, "ble", 1.05), record("DEU", 2019, "ble", 1.1)]))
    assert engine.index.years == (2019, 2020)
    series = engine.series_for("FRA", ["ble"])
    assert [item.to_dict() for item in series] == [{"product": "ble", "values": [{"year": 2020, "value": 1.05}]}]


def test_series_for_keeps_request_order_and_empty_products(engine: QueryEngine) -> None:
    series = engine.series_for("FRA", ["volaille", "lait", "ble"])
    assert [item.product for item in series] == ["volaille", "lait", "ble"]
    assert series[0].is_empty
    assert [(p.year, p.value) for p in series[1].values] == [(2019, 0.7), (2020, 0.8)]
    assert [(p.year, p.value) for p in series[2].values] == [(2020, 1.05)]


def test_series_for_unknown_country_yields_empty_series(engine: QueryEngine) -> None:
    series = engine.series_for("ESP", ["ble", "lait"])
    assert [item.product for item in series] == ["ble", "lait"]
    assert all(item.is_empty for item in series)
    assert engine.series_for(None, ["ble"])[0].is_empty
