"""Region membership tests and multipolygon trimming for map features."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Sequence

from shapely.errors import ShapelyError
from shapely.geometry import shape

from .models import GeoFeature
from .names import normalize_country_name

_LOGGER = logging.getLogger("agrimap.region")

_GEOMETRY_ERRORS = (ShapelyError, ValueError, TypeError, IndexError, KeyError, AttributeError)


@dataclass(frozen=True, slots=True)
class RegionBounds:
    """Longitude/latitude rectangle, inclusive on every edge."""

    lon_min: float
    lon_max: float
    lat_min: float
    lat_max: float

    def contains(self, lon: float, lat: float) -> bool:
        return self.lon_min <= lon <= self.lon_max and self.lat_min <= lat <= self.lat_max

    def intersects(self, bounds: tuple[float, float, float, float]) -> bool:
        min_lon, min_lat, max_lon, max_lat = bounds
        return not (
            max_lon < self.lon_min
            or min_lon > self.lon_max
            or max_lat < self.lat_min
            or min_lat > self.lat_max
        )


EUROPE_BOUNDS = RegionBounds(lon_min=-31.0, lon_max=45.0, lat_min=34.0, lat_max=72.0)


@dataclass(frozen=True, slots=True)
class RegionFilterResult:
    features: tuple[GeoFeature, ...]
    fallback_used: bool
    kept_count: int
    input_count: int


class RegionFilter:
    """Decide which features belong to a target region and trim the rest away."""

    def __init__(
        self,
        *,
        name: str = "Europe",
        bounds: RegionBounds = EUROPE_BOUNDS,
        excluded_ids: Iterable[str] = (),
        excluded_names: Iterable[str] = (),
        min_features: int = 5,
        aliases: Mapping[str, str] | None = None,
    ) -> None:
        if min_features < 0:
            raise ValueError("min_features must be >= 0")
        self.name = name
        self.bounds = bounds
        self.min_features = min_features
        self._aliases = aliases
        self._excluded_ids = frozenset(item.strip().upper() for item in excluded_ids if item.strip())
        self._excluded_names = frozenset(
            key for key in (normalize_country_name(item, aliases) for item in excluded_names) if key
        )

    def is_in_region(self, feature: GeoFeature) -> bool:
        if self._is_excluded(feature):
            return False
        if feature.continent.casefold() == self.name.casefold():
            return True
        centroid = _centroid(feature.geometry)
        if centroid is None:
            return False
        return self.bounds.contains(*centroid)

    def trim_to_region(self, feature: GeoFeature) -> GeoFeature | None:
        """Drop polygons whose bounding box misses the region; None if nothing is left."""
        geometry = feature.geometry
        if geometry is None:
            return None
        kind = feature.geometry_type
        coords = geometry.get("coordinates")
        if kind == "Polygon":
            return feature if self._polygon_intersects(coords) else None
        if kind == "MultiPolygon":
            if not isinstance(coords, Sequence):
                return None
            kept = [part for part in coords if self._polygon_intersects(part)]
            if not kept:
                return None
            if len(kept) == len(coords):
                return feature
            return feature.with_geometry({**geometry, "coordinates": kept})
        return feature

    def apply(self, features: Sequence[GeoFeature]) -> RegionFilterResult:
        """Trim and filter; fall back to the untouched input when too little survives."""
        kept: list[GeoFeature] = []
        for feature in features:
            trimmed = self.trim_to_region(feature)
            if trimmed is None:
                continue
            if self.is_in_region(trimmed):
                kept.append(trimmed)

        if len(kept) < self.min_features:
            _LOGGER.warning(
                "Region filter '%s' kept %d of %d features (minimum %d); using unfiltered geometry.",
                self.name,
                len(kept),
                len(features),
                self.min_features,
            )
            return RegionFilterResult(
                features=tuple(features),
                fallback_used=True,
                kept_count=len(kept),
                input_count=len(features),
            )

        _LOGGER.debug("Region filter '%s' kept %d of %d features", self.name, len(kept), len(features))
        return RegionFilterResult(
            features=tuple(kept),
            fallback_used=False,
            kept_count=len(kept),
            input_count=len(features),
        )

    def _is_excluded(self, feature: GeoFeature) -> bool:
        name_key = normalize_country_name(feature.display_name, self._aliases)
        if name_key and name_key in self._excluded_names:
            return True
        iso = feature.iso3
        return iso is not None and iso.upper() in self._excluded_ids

    def _polygon_intersects(self, coordinates: Any) -> bool:
        try:
            bounds = shape({"type": "Polygon", "coordinates": coordinates}).bounds
        except _GEOMETRY_ERRORS:
            return False
        if len(bounds) != 4 or any(b != b for b in bounds):
            return False
        return self.bounds.intersects(bounds)


def _centroid(geometry: Mapping[str, Any] | None) -> tuple[float, float] | None:
    if geometry is None:
        return None
    try:
        geom = shape(geometry)
        if geom.is_empty:
            return None
        point = geom.centroid
        return (float(point.x), float(point.y))
    except _GEOMETRY_ERRORS:
        return None
