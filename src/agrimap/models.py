"""Domain models shared across pipeline modules."""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Mapping


# Checked in order; the first present, non-sentinel value wins.
FEATURE_ISO_FIELDS = ("ISO_A3", "ISO3", "ADM0_A3", "iso_a3", "iso3", "id")
FEATURE_NAME_FIELDS = ("ADMIN", "NAME", "name")
FEATURE_CONTINENT_FIELDS = ("CONTINENT", "continent")
ISO_SENTINELS = frozenset({"-99", "-99.0"})


def _require_str(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Expected non-empty string for '{field_name}'")
    return value.strip()


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and math.isnan(value):
        return ""
    return str(value).strip()


def coerce_number(value: Any) -> float | None:
    """Parse numeric text; empty, malformed or non-finite input becomes None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    return number if math.isfinite(number) else None


def coerce_year(value: Any) -> int | None:
    number = coerce_number(value)
    if number is None or not number.is_integer():
        return None
    return int(number)


@dataclass(frozen=True, slots=True)
class ProductSpec:
    """One product of the statistical table and how it is displayed."""

    key: str
    label: str
    color: str
    source_names: tuple[str, ...] = ()

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ProductSpec:
        key = _require_str(data.get("key"), "key")
        label = _require_str(data.get("label", key), "label")
        color = _require_str(data.get("color", "#555555"), "color")
        names_raw = data.get("source_names", [])
        if names_raw is None:
            names_raw = []
        if not isinstance(names_raw, list):
            raise ValueError(f"Expected list for 'source_names' of product '{key}'")
        source_names = tuple(_require_str(item, "source_names[]") for item in names_raw)
        return cls(key=key, label=label, color=color, source_names=source_names)


def product_key_table(products: tuple[ProductSpec, ...]) -> dict[str, str]:
    """Map raw CSV product labels (and the keys themselves) to product keys."""
    table: dict[str, str] = {}
    for product in products:
        table.setdefault(product.key, product.key)
        for name in product.source_names:
            table.setdefault(name, product.key)
    return table


@dataclass(frozen=True, slots=True)
class StatRecord:
    """One observation of the self-sufficiency table."""

    country_id: str | None
    country_name: str
    product: str | None
    year: int | None
    rate: float | None
    production_tonnes: float | None = None
    imports_tonnes: float | None = None

    @classmethod
    def from_row(
        cls,
        row: Mapping[str, Any],
        product_keys: Mapping[str, str] | None = None,
    ) -> StatRecord:
        country_name = _text(row.get("country_name")) or _text(row.get("country"))
        raw_product = _text(row.get("product"))
        product = (product_keys or {}).get(raw_product, raw_product) or None
        return cls(
            country_id=_text(row.get("country_id")) or None,
            country_name=country_name,
            product=product,
            year=coerce_year(row.get("year")),
            rate=coerce_number(row.get("self_sufficiency_rate")),
            production_tonnes=coerce_number(row.get("production_tonnes")),
            imports_tonnes=coerce_number(row.get("imports_tonnes")),
        )

    @property
    def is_indexable(self) -> bool:
        return bool(self.country_id) and bool(self.product) and self.year is not None

    def with_country_id(self, country_id: str | None) -> StatRecord:
        return replace(self, country_id=country_id)


@dataclass(frozen=True, slots=True)
class GeoFeature:
    """A GeoJSON-like polygon feature with its properties bag."""

    properties: Mapping[str, Any]
    geometry: Mapping[str, Any] | None
    id: Any = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> GeoFeature:
        props = data.get("properties")
        geometry = data.get("geometry")
        return cls(
            properties=dict(props) if isinstance(props, Mapping) else {},
            geometry=geometry if isinstance(geometry, Mapping) else None,
            id=data.get("id"),
        )

    @property
    def geometry_type(self) -> str | None:
        if self.geometry is None:
            return None
        kind = self.geometry.get("type")
        return kind if isinstance(kind, str) else None

    @property
    def iso3(self) -> str | None:
        for field_name in FEATURE_ISO_FIELDS:
            value = _text(self.properties.get(field_name))
            if value and value not in ISO_SENTINELS:
                return value
        value = _text(self.id)
        if value and value not in ISO_SENTINELS:
            return value
        return None

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(
            name for name in (_text(self.properties.get(f)) for f in FEATURE_NAME_FIELDS) if name
        )

    @property
    def display_name(self) -> str:
        names = self.names
        return names[0] if names else ""

    @property
    def continent(self) -> str:
        for field_name in FEATURE_CONTINENT_FIELDS:
            value = _text(self.properties.get(field_name))
            if value:
                return value
        return ""

    def with_geometry(self, geometry: Mapping[str, Any]) -> GeoFeature:
        return replace(self, geometry=geometry)

    def to_geojson(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "type": "Feature",
            "properties": dict(self.properties),
            "geometry": dict(self.geometry) if self.geometry is not None else None,
        }
        if self.id is not None:
            out["id"] = self.id
        return out


@dataclass(frozen=True, slots=True)
class BuildManifest:
    """Build metadata used for deterministic audit trails."""

    generated_at_utc: str
    config_hash_sha256: str
    git_commit: str | None
    selection: Mapping[str, Any]
    artifacts: Mapping[str, str]
    region_fallback_used: bool = False

    @classmethod
    def create(
        cls,
        *,
        config_hash_sha256: str,
        git_commit: str | None,
        selection: Mapping[str, Any],
        artifacts: Mapping[str, str],
        region_fallback_used: bool = False,
    ) -> BuildManifest:
        now = datetime.now(timezone.utc).isoformat()
        return cls(
            generated_at_utc=now,
            config_hash_sha256=config_hash_sha256,
            git_commit=git_commit,
            selection=selection,
            artifacts=artifacts,
            region_fallback_used=region_fallback_used,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "generated_at_utc": self.generated_at_utc,
            "config_hash_sha256": self.config_hash_sha256,
            "git_commit": self.git_commit,
            "selection": dict(self.selection),
            "artifacts": dict(self.artifacts),
            "region_fallback_used": self.region_fallback_used,
        }
