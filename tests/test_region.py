from __future__ import annotations

from conftest import make_feature, square

from agrimap.models import GeoFeature
from agrimap.region import EUROPE_BOUNDS, RegionBounds, RegionFilter


def _filter(**kwargs) -> RegionFilter:
    kwargs.setdefault("excluded_ids", ("GUY", "SJM"))
    kwargs.setdefault("excluded_names", ("Guyana", "French Guiana", "Svalbard"))
    return RegionFilter(**kwargs)


def test_continent_tag_accepts_regardless_of_centroid() -> None:
    feature = make_feature(-80.0, 40.0, name="Somewhere", continent="EUROPE")
    assert _filter().is_in_region(feature)


def test_centroid_inside_default_box_is_accepted() -> None:
    assert _filter().is_in_region(make_feature(10.0, 50.0, name="Middle"))


def test_centroid_outside_default_box_is_rejected() -> None:
    assert not _filter().is_in_region(make_feature(-80.0, 40.0, name="Far West"))


def test_exclusions_override_acceptance() -> None:
    region = _filter()
    assert not region.is_in_region(make_feature(15.0, 70.0, name="Svalbard", continent="Europe"))
    assert not region.is_in_region(make_feature(10.0, 50.0, iso="GUY", name="Anything"))
    assert not region.is_in_region(make_feature(10.0, 50.0, name="French Guiana"))


def test_feature_without_geometry_is_not_in_region() -> None:
    assert not _filter().is_in_region(GeoFeature(properties={"ADMIN": "Nowhere"}, geometry=None))


def test_bounds_contains_and_intersects() -> None:
    bounds = RegionBounds(lon_min=-31.0, lon_max=45.0, lat_min=34.0, lat_max=72.0)
    assert bounds == EUROPE_BOUNDS
    assert bounds.contains(-31.0, 72.0)
    assert not bounds.contains(45.1, 50.0)
    assert bounds.intersects((40.0, 30.0, 50.0, 35.0))
    assert not bounds.intersects((50.0, 30.0, 60.0, 35.0))


def test_trim_drops_multipolygon_parts_outside_region() -> None:
    metropole = square(2.5, 46.5)
    guiana = square(-53.0, 4.0)
    feature = GeoFeature(
        properties={"ADMIN": "France", "ISO_A3": "FRA"},
        geometry={"type": "MultiPolygon", "coordinates": [guiana, metropole]},
    )
    trimmed = _filter().trim_to_region(feature)
    assert trimmed is not None
    assert trimmed is not feature
    assert trimmed.geometry == {"type": "MultiPolygon", "coordinates": [metropole]}
    assert len(feature.geometry["coordinates"]) == 2


def test_trim_keeps_multipolygon_untouched_when_all_parts_intersect() -> None:
    feature = GeoFeature(
        properties={},
        geometry={"type": "MultiPolygon", "coordinates": [square(2.5, 46.5), square(9.0, 42.0)]},
    )
    assert _filter().trim_to_region(feature) is feature


def test_trim_drops_multipolygon_with_no_intersecting_parts() -> None:
    feature = GeoFeature(
        properties={},
        geometry={"type": "MultiPolygon", "coordinates": [square(-53.0, 4.0), square(-61.0, 14.6)]},
    )
    assert _filter().trim_to_region(feature) is None


def test_trim_single_polygon() -> None:
    region = _filter()
    inside = make_feature(10.0, 50.0)
    assert region.trim_to_region(inside) is inside
    assert region.trim_to_region(make_feature(-80.0, 40.0)) is None


def test_trim_passes_non_polygon_geometry_through() -> None:
    point = GeoFeature(properties={}, geometry={"type": "Point", "coordinates": [-80.0, 40.0]})
    assert _filter().trim_to_region(point) is point


def test_trim_treats_malformed_polygon_as_outside() -> None:
    broken = GeoFeature(properties={}, geometry={"type": "Polygon", "coordinates": [[[0.0, 0.0]]]})
    assert _filter().trim_to_region(broken) is None
    assert _filter().trim_to_region(GeoFeature(properties={}, geometry=None)) is None


def test_apply_filters_and_trims() -> None:
    features = [make_feature(5.0 + i, 48.0, name=f"Inside {i}") for i in range(6)]
    features += [make_feature(-100.0, 40.0, name="Outside A"), make_feature(120.0, 30.0, name="Outside B")]
    result = _filter().apply(features)
    assert not result.fallback_used
    assert result.kept_count == 6
    assert result.input_count == 8
    assert [f.display_name for f in result.features] == [f"Inside {i}" for i in range(6)]


def test_apply_falls_back_to_unfiltered_input_below_minimum() -> None:
    features = [make_feature(5.0 + i, 48.0, name=f"Inside {i}") for i in range(3)]
    features += [make_feature(-100.0 - i, 40.0, name=f"Outside {i}") for i in range(7)]
    result = _filter().apply(features)
    assert result.fallback_used
    assert result.kept_count == 3
    assert len(result.features) == 10
    assert list(result.features) == features


def test_apply_with_zero_minimum_never_falls_back() -> None:
    result = _filter(min_features=0).apply([make_feature(-100.0, 40.0)])
    assert not result.fallback_used
    assert result.features == ()
