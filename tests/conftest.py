from __future__ import annotations

from typing import Any

import pytest

from agrimap.models import GeoFeature, ProductSpec, StatRecord


def square(lon: float, lat: float, half: float = 1.0) -> list[list[list[float]]]:
    """Closed square ring centred on (lon, lat), as Polygon coordinates."""
    return [
        [
            [lon - half, lat - half],
            [lon + half, lat - half],
            [lon + half, lat + half],
            [lon - half, lat + half],
            [lon - half, lat - half],
        ]
    ]


def make_feature(
    lon: float,
    lat: float,
    *,
    iso: Any = None,
    name: str | None = None,
    continent: str | None = None,
    half: float = 1.0,
) -> GeoFeature:
    props: dict[str, Any] = {}
    if iso is not None:
        props["ISO_A3"] = iso
    if name is not None:
        props["ADMIN"] = name
    if continent is not None:
        props["CONTINENT"] = continent
    return GeoFeature(properties=props, geometry={"type": "Polygon", "coordinates": square(lon, lat, half)})


def record(country_id: str | None, year: int | None, product: str | None, rate: float | None, name: str = "") -> StatRecord:
    return StatRecord(country_id=country_id, country_name=name, product=product, year=year, rate=rate)


@pytest.fixture
def products() -> tuple[ProductSpec, ...]:
    return (
        ProductSpec(key="volaille", label="Poultry", color="#cc5a24", source_names=("Meat of chickens, fresh or chilled",)),
        ProductSpec(key="ble", label="Wheat", color="#7a8f2a", source_names=("Wheat",)),
        ProductSpec(key="lait", label="Milk", color="#2b6cb0", source_names=("Raw milk of cattle",)),
    )


@pytest.fixture
def europe_features() -> list[GeoFeature]:
    return [
        make_feature(2.5, 46.5, iso="FRA", name="France", continent="Europe"),
        make_feature(10.0, 51.0, iso="DEU", name="Germany", continent="Europe"),
        make_feature(-3.7, 40.4, iso="ESP", name="Spain", continent="Europe"),
        make_feature(12.5, 42.5, iso="ITA", name="Italy", continent="Europe"),
        make_feature(9.0, 61.0, iso="NOR", name="Norway"),
        make_feature(8.2, 46.8, iso="CHE", name="Switzerland"),
        make_feature(-100.0, 40.0, iso="USA", name="United States of America", continent="North America"),
    ]


@pytest.fixture
def csv_rows() -> list[dict[str, str]]:
    return [
        {"country_id": "FRA", "country_name": "France", "product": "Wheat", "year": "2019", "self_sufficiency_rate": "1.6"},
        {"country_id": "FRA", "country_name": "France", "product": "Wheat", "year": "2020", "self_sufficiency_rate": "1.05"},
        {"country_id": "FRA", "country_name": "France", "product": "Raw milk of cattle", "year": "2020", "self_sufficiency_rate": "0.8"},
        {"country_id": "", "country_name": "Norway", "product": "Wheat", "year": "2020", "self_sufficiency_rate": "0.4"},
        {"country_id": "", "country": "Deutschland", "product": "Wheat", "year": "2021", "self_sufficiency_rate": ""},
        {"country_id": "", "country_name": "Germany", "product": "Wheat", "year": "2020", "self_sufficiency_rate": "1.2"},
        {"country_id": "", "country_name": "", "product": "Wheat", "year": "2020", "self_sufficiency_rate": "0.5"},
        {"country_id": "ESP", "country_name": "Spain", "product": "", "year": "2020", "self_sufficiency_rate": "0.5"},
        {"country_id": "ITA", "country_name": "Italy", "product": "Wheat", "year": "n/a", "self_sufficiency_rate": "0.5"},
    ]
