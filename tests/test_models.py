from __future__ import annotations

import pytest

from agrimap.models import GeoFeature, ProductSpec, StatRecord, coerce_number, coerce_year, product_key_table


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("2020", 2020), ("2020.0", 2020), (" 2019 ", 2019), (2018, 2018), ("2020.5", None), ("", None), ("abc", None), ("nan", None), (None, None)],
)
def test_coerce_year(raw: object, expected: int | None) -> None:
    assert coerce_year(raw) == expected


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("0.8", 0.8), ("1", 1.0), ("", None), ("  ", None), ("n/a", None), ("inf", None), ("NaN", None), (0.5, 0.5), (True, None)],
)
def test_coerce_number(raw: object, expected: float | None) -> None:
    assert coerce_number(raw) == expected


def test_from_row_maps_product_labels_and_coerces_fields() -> None:
    table = product_key_table((ProductSpec(key="ble", label="Wheat", color="#000", source_names=("Wheat",)),))
    rec = StatRecord.from_row(
        {
            "country_id": " FRA ",
            "country_name": " France ",
            "product": "Wheat",
            "year": "2020",
            "self_sufficiency_rate": "1.05",
            "production_tonnes": "",
            "imports_tonnes": "not a number",
        },
        table,
    )
    assert rec == StatRecord(
        country_id="FRA",
        country_name="France",
        product="ble",
        year=2020,
        rate=1.05,
        production_tonnes=None,
        imports_tonnes=None,
    )
    assert rec.is_indexable


def test_from_row_falls_back_to_country_column_and_raw_product() -> None:
    rec = StatRecord.from_row({"country": "Norway", "product": "Barley", "year": "2019", "self_sufficiency_rate": ""})
    assert rec.country_id is None
    assert rec.country_name == "Norway"
    assert rec.product == "Barley"
    assert rec.rate is None
    assert not rec.is_indexable
    assert rec.with_country_id("NOR").is_indexable


def test_product_key_table_accepts_keys_and_source_names() -> None:
    table = product_key_table(
        (ProductSpec(key="lait", label="Milk", color="#000", source_names=("Raw milk of cattle",)),)
    )
    assert table == {"lait": "lait", "Raw milk of cattle": "lait"}


@pytest.mark.parametrize(
    ("props", "feature_id", "expected"),
    [
        ({"ISO_A3": "FRA"}, None, "FRA"),
        ({"ISO_A3": "-99", "ADM0_A3": "FRA"}, None, "FRA"),
        ({"ISO_A3": -99, "iso3": "NOR"}, None, "NOR"),
        ({"ISO_A3": "-99"}, "XKX", "XKX"),
        ({"ISO_A3": "-99"}, -99, None),
        ({}, None, None),
    ],
)
def test_feature_iso3_skips_sentinels(props: dict, feature_id: object, expected: str | None) -> None:
    feature = GeoFeature(properties=props, geometry=None, id=feature_id)
    assert feature.iso3 == expected


def test_feature_names_and_continent() -> None:
    feature = GeoFeature.from_mapping(
        {
            "type": "Feature",
            "properties": {"ADMIN": "France", "name": "France (metropolitan)", "continent": "Europe"},
            "geometry": {"type": "Point", "coordinates": [2.0, 46.0]},
        }
    )
    assert feature.names == ("France", "France (metropolitan)")
    assert feature.display_name == "France"
    assert feature.continent == "Europe"
    assert feature.geometry_type == "Point"
    assert feature.to_geojson()["properties"]["ADMIN"] == "France"


def test_product_spec_requires_key() -> None:
    with pytest.raises(ValueError):
        ProductSpec.from_mapping({"label": "Wheat"})
