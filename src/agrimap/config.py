"""Typed configuration loader for `config.yaml`."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, cast

import yaml

from .models import ProductSpec
from .region import RegionBounds
from .util import is_remote_source


def _mapping(value: Any, field_name: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ValueError(f"Expected mapping for '{field_name}'")
    return cast(Mapping[str, Any], value)


def _str(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Expected non-empty string for '{field_name}'")
    return value.strip()


def _int(value: Any, field_name: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError(f"Expected integer for '{field_name}'")
    return value


def _float(value: Any, field_name: str) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    raise ValueError(f"Expected float for '{field_name}'")


def _bool(value: Any, field_name: str) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"Expected bool for '{field_name}'")
    return value


def _str_list(value: Any, field_name: str) -> tuple[str, ...]:
    if not isinstance(value, list):
        raise ValueError(f"Expected list for '{field_name}'")
    out: list[str] = []
    for idx, item in enumerate(value):
        out.append(_str(item, f"{field_name}[{idx}]"))
    return tuple(out)


def _path_from_cfg(value: Any, field_name: str, root_dir: Path) -> Path:
    raw = _str(value, field_name)
    p = Path(raw)
    return p if p.is_absolute() else root_dir / p


def _source_list(value: Any, field_name: str, root_dir: Path) -> tuple[str, ...]:
    sources = _str_list(value, field_name)
    if not sources:
        raise ValueError(f"Expected at least one entry for '{field_name}'")
    return tuple(item if is_remote_source(item) else str(_path_from_cfg(item, field_name, root_dir)) for item in sources)


@dataclass(frozen=True, slots=True)
class ProjectConfig:
    name: str
    output_dir: Path

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], root_dir: Path) -> ProjectConfig:
        return cls(
            name=_str(raw.get("name"), "project.name"),
            output_dir=_path_from_cfg(raw.get("output_dir"), "project.output_dir", root_dir),
        )


@dataclass(frozen=True, slots=True)
class PathsConfig:
    country_names: Path
    build_root: Path
    logs_dir: Path

    @property
    def build_directories(self) -> tuple[Path, ...]:
        return (self.build_root, self.logs_dir)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], root_dir: Path) -> PathsConfig:
        return cls(
            country_names=_path_from_cfg(raw.get("country_names"), "paths.country_names", root_dir),
            build_root=_path_from_cfg(raw.get("build_root"), "paths.build_root", root_dir),
            logs_dir=_path_from_cfg(raw.get("logs_dir"), "paths.logs_dir", root_dir),
        )


@dataclass(frozen=True, slots=True)
class SourcesConfig:
    dataset: tuple[str, ...]
    geometry: tuple[str, ...]
    request_timeout_s: float
    user_agent: str

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], root_dir: Path) -> SourcesConfig:
        timeout = _float(raw.get("request_timeout_s", 30), "sources.request_timeout_s")
        if timeout <= 0:
            raise ValueError("sources.request_timeout_s must be > 0")
        return cls(
            dataset=_source_list(raw.get("dataset"), "sources.dataset", root_dir),
            geometry=_source_list(raw.get("geometry"), "sources.geometry", root_dir),
            request_timeout_s=timeout,
            user_agent=_str(raw.get("user_agent", "agrimap/0.1"), "sources.user_agent"),
        )


def _bounds_from_mapping(raw: Mapping[str, Any]) -> RegionBounds:
    bounds = RegionBounds(
        lon_min=_float(raw.get("lon_min"), "region.bounds.lon_min"),
        lon_max=_float(raw.get("lon_max"), "region.bounds.lon_max"),
        lat_min=_float(raw.get("lat_min"), "region.bounds.lat_min"),
        lat_max=_float(raw.get("lat_max"), "region.bounds.lat_max"),
    )
    if not -180.0 <= bounds.lon_min < bounds.lon_max <= 180.0:
        raise ValueError("region.bounds longitudes must satisfy -180 <= lon_min < lon_max <= 180")
    if not -90.0 <= bounds.lat_min < bounds.lat_max <= 90.0:
        raise ValueError("region.bounds latitudes must satisfy -90 <= lat_min < lat_max <= 90")
    return bounds


@dataclass(frozen=True, slots=True)
class RegionConfig:
    name: str
    bounds: RegionBounds
    excluded_ids: tuple[str, ...]
    excluded_names: tuple[str, ...]
    min_features: int

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> RegionConfig:
        min_features = _int(raw.get("min_features", 5), "region.min_features")
        if min_features < 0:
            raise ValueError("region.min_features must be >= 0")
        return cls(
            name=_str(raw.get("name"), "region.name"),
            bounds=_bounds_from_mapping(_mapping(raw.get("bounds"), "region.bounds")),
            excluded_ids=tuple(
                item.upper() for item in _str_list(raw.get("excluded_ids", []), "region.excluded_ids")
            ),
            excluded_names=_str_list(raw.get("excluded_names", []), "region.excluded_names"),
            min_features=min_features,
        )


def _products_from_list(value: Any) -> tuple[ProductSpec, ...]:
    if not isinstance(value, list) or not value:
        raise ValueError("Expected non-empty list for 'products'")
    products: list[ProductSpec] = []
    seen: set[str] = set()
    for idx, item in enumerate(value):
        try:
            product = ProductSpec.from_mapping(_mapping(item, f"products[{idx}]"))
        except ValueError as exc:
            raise ValueError(f"Invalid products[{idx}]: {exc}") from exc
        if product.key in seen:
            raise ValueError(f"Duplicate product key '{product.key}'")
        seen.add(product.key)
        products.append(product)
    return tuple(products)


@dataclass(frozen=True, slots=True)
class MapRenderConfig:
    width_px: int
    height_px: int
    dpi: int
    colormap: str
    no_data_color: str
    outline_color: str
    selected_outline_color: str

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> MapRenderConfig:
        return cls(
            width_px=_int(raw.get("width_px"), "render.map.width_px"),
            height_px=_int(raw.get("height_px"), "render.map.height_px"),
            dpi=_int(raw.get("dpi"), "render.map.dpi"),
            colormap=_str(raw.get("colormap", "YlGn"), "render.map.colormap"),
            no_data_color=_str(raw.get("no_data_color", "#d4d8db"), "render.map.no_data_color"),
            outline_color=_str(raw.get("outline_color", "#ffffff"), "render.map.outline_color"),
            selected_outline_color=_str(
                raw.get("selected_outline_color", "#1a1a1a"), "render.map.selected_outline_color"
            ),
        )


@dataclass(frozen=True, slots=True)
class ChartRenderConfig:
    width_px: int
    height_px: int
    dpi: int

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> ChartRenderConfig:
        return cls(
            width_px=_int(raw.get("width_px"), "render.charts.width_px"),
            height_px=_int(raw.get("height_px"), "render.charts.height_px"),
            dpi=_int(raw.get("dpi"), "render.charts.dpi"),
        )


@dataclass(frozen=True, slots=True)
class RenderConfig:
    map: MapRenderConfig
    charts: ChartRenderConfig

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> RenderConfig:
        return cls(
            map=MapRenderConfig.from_mapping(_mapping(raw.get("map"), "render.map")),
            charts=ChartRenderConfig.from_mapping(_mapping(raw.get("charts"), "render.charts")),
        )


@dataclass(frozen=True, slots=True)
class BuildConfig:
    write_manifest: bool

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> BuildConfig:
        return cls(write_manifest=_bool(raw.get("write_manifest"), "build.write_manifest"))


@dataclass(frozen=True, slots=True)
class AppConfig:
    source_path: Path
    project: ProjectConfig
    paths: PathsConfig
    sources: SourcesConfig
    region: RegionConfig
    products: tuple[ProductSpec, ...]
    render: RenderConfig
    build: BuildConfig

    @property
    def product_keys(self) -> tuple[str, ...]:
        return tuple(product.key for product in self.products)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], source_path: Path) -> AppConfig:
        root_dir = source_path.parent.resolve()
        return cls(
            source_path=source_path.resolve(),
            project=ProjectConfig.from_mapping(_mapping(raw.get("project"), "project"), root_dir),
            paths=PathsConfig.from_mapping(_mapping(raw.get("paths"), "paths"), root_dir),
            sources=SourcesConfig.from_mapping(_mapping(raw.get("sources"), "sources"), root_dir),
            region=RegionConfig.from_mapping(_mapping(raw.get("region"), "region")),
            products=_products_from_list(raw.get("products")),
            render=RenderConfig.from_mapping(_mapping(raw.get("render"), "render")),
            build=BuildConfig.from_mapping(_mapping(raw.get("build"), "build")),
        )


def load_config(path: str | Path) -> AppConfig:
    """Load and validate the YAML config file into typed settings."""
    cfg_path = Path(path).resolve()
    if not cfg_path.exists():
        raise FileNotFoundError(f"Config file not found: {cfg_path}")
    with cfg_path.open("r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh)
    if not isinstance(raw, Mapping):
        raise ValueError("Top-level config must be a YAML mapping")
    return AppConfig.from_mapping(cast(Mapping[str, Any], raw), cfg_path)
