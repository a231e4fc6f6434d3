"""Startup assembly: raw rows + raw features -> index, registry and defaults."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

from .config import AppConfig
from .indexer import DatasetIndex, FeatureRegistry, build_feature_registry, build_index
from .models import GeoFeature, ProductSpec, StatRecord, product_key_table
from .names import NameTables, load_name_tables
from .query import QueryEngine
from .region import RegionFilter
from .resolver import CountryResolver, build_geometry_name_index
from .selection import normalize_product_selection, pick_default_country, pick_default_year
from .sources import SourceLoadError, SourceRepository

_LOGGER = logging.getLogger("agrimap.pipeline")


@dataclass(frozen=True, slots=True)
class Atlas:
    """Everything the rendering layer reads; built once per load."""

    index: DatasetIndex
    registry: FeatureRegistry
    resolver: CountryResolver
    engine: QueryEngine
    products: tuple[ProductSpec, ...]
    selected_products: tuple[str, ...]
    default_year: int | None
    default_country: str | None
    region_fallback_used: bool = False
    dropped_rows: int = 0

    @property
    def product_keys(self) -> tuple[str, ...]:
        return tuple(product.key for product in self.products)

    def product(self, key: str) -> ProductSpec | None:
        for product in self.products:
            if product.key == key:
                return product
        return None


@dataclass(slots=True)
class AtlasReport:
    """Outcome of loading sources and assembling the atlas."""

    atlas: Atlas | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    infos: list[str] = field(default_factory=list)
    summary: dict[str, int] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors and self.atlas is not None

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)

    def add_info(self, msg: str) -> None:
        self.infos.append(msg)


def assemble_atlas(
    rows: Sequence[Mapping[str, Any]],
    features: Sequence[GeoFeature],
    *,
    names: NameTables,
    region_filter: RegionFilter,
    products: Sequence[ProductSpec],
    selected_products: Sequence[str] | None = None,
) -> Atlas:
    """Pure in-memory assembly; never raises on data quality problems."""
    product_keys = product_key_table(tuple(products))
    records = [StatRecord.from_row(row, product_keys) for row in rows]

    resolver = CountryResolver(names, geometry_index=build_geometry_name_index(features, names))
    resolved = resolver.resolve_records(records)
    index = build_index(resolved)

    resolver = resolver.with_country_names(index.country_names)
    region = region_filter.apply(features)
    registry = build_feature_registry(region.features, resolver)

    available = [product.key for product in products]
    chosen = normalize_product_selection(
        available if selected_products is None else selected_products,
        available,
    )
    engine = QueryEngine(index)
    return Atlas(
        index=index,
        registry=registry,
        resolver=resolver,
        engine=engine,
        products=tuple(products),
        selected_products=tuple(chosen),
        default_year=pick_default_year(engine, registry.mapped_country_ids, chosen),
        default_country=pick_default_country(index.country_ids, registry.by_country.keys()),
        region_fallback_used=region.fallback_used,
        dropped_rows=len(records) - len(resolved),
    )


def build_region_filter(cfg: AppConfig, names: NameTables) -> RegionFilter:
    return RegionFilter(
        name=cfg.region.name,
        bounds=cfg.region.bounds,
        excluded_ids=cfg.region.excluded_ids,
        excluded_names=cfg.region.excluded_names,
        min_features=cfg.region.min_features,
        aliases=names.aliases,
    )


def run_build_atlas(
    cfg: AppConfig,
    *,
    selected_products: Sequence[str] | None = None,
    repository: SourceRepository | None = None,
) -> AtlasReport:
    """Load both inputs, then assemble the atlas and summarize what happened."""
    report = AtlasReport()

    try:
        names = load_name_tables(cfg.paths.country_names)
    except Exception as exc:
        report.add_error(f"Failed parsing country name tables '{cfg.paths.country_names}': {exc}")
        return report
    report.add_info(f"Loaded {len(names.aliases)} aliases and {len(names.overrides)} name overrides")

    repo = repository or SourceRepository(
        cfg.sources.dataset,
        cfg.sources.geometry,
        request_timeout_s=cfg.sources.request_timeout_s,
        user_agent=cfg.sources.user_agent,
    )
    try:
        rows = repo.load_rows()
        features = repo.load_features()
    except SourceLoadError as exc:
        report.add_error(str(exc))
        return report

    unknown = [key for key in (selected_products or ()) if key not in cfg.product_keys]
    if unknown:
        report.add_warning("Ignoring unknown product keys: " + ", ".join(unknown))

    atlas = assemble_atlas(
        rows,
        features,
        names=names,
        region_filter=build_region_filter(cfg, names),
        products=cfg.products,
        selected_products=selected_products,
    )
    report.atlas = atlas

    if atlas.region_fallback_used:
        report.add_warning(
            f"Region filter '{cfg.region.name}' kept fewer than {cfg.region.min_features} "
            "features; the unfiltered geometry is shown."
        )
    if atlas.dropped_rows:
        report.add_warning(f"Dropped {atlas.dropped_rows} rows without country, product or year")
    if atlas.default_year is None:
        report.add_warning("Dataset has no years; no default year selected.")

    unmapped = sum(1 for country_id in atlas.registry.feature_ids if country_id is None)
    without_geometry = [
        country_id for country_id in atlas.index.country_ids if country_id not in atlas.registry.by_country
    ]
    report.summary = {
        "rows": len(rows),
        "indexed_rows": len(rows) - atlas.dropped_rows,
        "countries": len(atlas.index.country_ids),
        "years": len(atlas.index.years),
        "input_features": len(features),
        "renderable_features": len(atlas.registry.features),
        "unmapped_features": unmapped,
        "countries_without_geometry": len(without_geometry),
    }
    if without_geometry:
        report.add_info("Countries without geometry: " + _format_code_list(without_geometry))
    _LOGGER.debug("Atlas assembled: %s", report.summary)
    return report


def format_atlas_lines(report: AtlasReport) -> Sequence[str]:
    lines: list[str] = []
    for msg in report.infos:
        lines.append(f"[INFO] {msg}")
    for msg in report.warnings:
        lines.append(f"[WARN] {msg}")
    for msg in report.errors:
        lines.append(f"[ERROR] {msg}")
    if report.summary:
        summary = ", ".join(f"{key}={value}" for key, value in report.summary.items())
        lines.append(f"[SUMMARY] {summary}")
    if report.atlas is not None:
        atlas = report.atlas
        lines.append(
            "[DEFAULTS] "
            f"year={atlas.default_year}, country={atlas.default_country}, "
            f"products={','.join(atlas.selected_products)}"
        )
    if report.ok:
        lines.append("[OK] Atlas assembled with no errors.")
    return lines


def _format_code_list(values: list[str], limit: int = 12) -> str:
    if len(values) <= limit:
        return ", ".join(values)
    shown = ", ".join(values[:limit])
    return f"{shown}, ... (+{len(values) - limit} more)"
