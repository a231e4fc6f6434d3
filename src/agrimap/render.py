"""Choropleth and time-series chart rendering to PNG."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Sequence

from .config import ChartRenderConfig, MapRenderConfig, RenderConfig
from .pipeline import Atlas
from .query import ProductSeries

_LOGGER = logging.getLogger("agrimap.render")

NO_COUNTRY_MESSAGE = "Click a country on the map"
NO_SERIES_MESSAGE = "No time-series data for this selection"


@dataclass(slots=True)
class RenderReport:
    map_path: Path | None = None
    chart_path: Path | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    infos: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)

    def add_info(self, msg: str) -> None:
        self.infos.append(msg)


def chart_title(atlas: Atlas, country_id: str | None) -> str:
    if not country_id:
        return "Self-sufficiency time series"
    return f"Self-sufficiency - {atlas.index.country_names.get(country_id) or country_id}"


def chart_message(series: Sequence[ProductSeries], country_id: str | None) -> str | None:
    """Placeholder text for the chart panel, or None when there is something to draw."""
    if not country_id:
        return NO_COUNTRY_MESSAGE
    if not series or all(item.is_empty for item in series):
        return NO_SERIES_MESSAGE
    return None


def map_filename(year: int | None) -> str:
    return f"map_{year if year is not None else 'none'}.png"


def series_filename(country_id: str | None) -> str:
    return f"series_{country_id or 'none'}.png"


def map_values(atlas: Atlas, *, year: int | None, products: Sequence[str]) -> list[float | None]:
    """Fill value for each renderable feature, in registry order."""
    return [
        atlas.engine.value_for(country_id, year, products)
        for _, country_id in atlas.registry.items()
    ]


def render_choropleth(
    atlas: Atlas,
    *,
    year: int | None,
    products: Sequence[str],
    selected_country: str | None,
    output_path: Path,
    cfg: MapRenderConfig,
) -> Path:
    plt, _ = _require_matplotlib()
    gpd = _require_geopandas()

    geojson = [feature.to_geojson() for feature in atlas.registry.features]
    frame = gpd.GeoDataFrame.from_features(geojson, crs="EPSG:4326")
    frame["country_id"] = list(atlas.registry.feature_ids)
    frame["value"] = [
        math.nan if value is None else value
        for value in map_values(atlas, year=year, products=products)
    ]

    fig, ax = plt.subplots(figsize=(cfg.width_px / cfg.dpi, cfg.height_px / cfg.dpi), dpi=cfg.dpi)
    try:
        frame.plot(
            ax=ax,
            column="value",
            cmap=cfg.colormap,
            vmin=0.0,
            vmax=1.0,
            edgecolor=cfg.outline_color,
            linewidth=0.4,
            legend=True,
            legend_kwds={"label": "Self-sufficiency rate", "shrink": 0.6},
            missing_kwds={"color": cfg.no_data_color, "edgecolor": cfg.outline_color, "linewidth": 0.4},
        )
        if selected_country:
            selected = frame[frame["country_id"] == selected_country]
            if not selected.empty:
                selected.boundary.plot(ax=ax, color=cfg.selected_outline_color, linewidth=1.4)
        labels = ", ".join(_product_label(atlas, key) for key in products)
        ax.set_title(f"{year if year is not None else 'No year'} - {labels}")
        ax.set_axis_off()
        output_path.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(output_path, dpi=cfg.dpi, bbox_inches="tight")
    finally:
        plt.close(fig)
    return output_path


def render_series_chart(
    atlas: Atlas,
    *,
    country_id: str | None,
    products: Sequence[str],
    output_path: Path,
    cfg: ChartRenderConfig,
) -> Path:
    """Small multiples: one row per product, shared year axis, percent y axis."""
    plt, ticker = _require_matplotlib()
    series = atlas.engine.series_for(country_id, products) if country_id else []
    message = chart_message(series, country_id)
    figsize = (cfg.width_px / cfg.dpi, cfg.height_px / cfg.dpi)

    if message is not None:
        fig, ax = plt.subplots(figsize=figsize, dpi=cfg.dpi)
        ax.set_axis_off()
        ax.text(0.05, 0.9, message, transform=ax.transAxes, color="#555555")
        axes: Sequence[Any] = [ax]
    else:
        fig, grid = plt.subplots(len(series), 1, figsize=figsize, dpi=cfg.dpi, sharex=True, squeeze=False)
        axes = [row[0] for row in grid]
        years = atlas.index.years
        for ax, item in zip(axes, series):
            product = atlas.product(item.product)
            color = product.color if product else "#555555"
            ax.plot(
                [point.year for point in item.values],
                [point.value for point in item.values],
                color=color,
                linewidth=2.1,
            )
            ax.set_ylim(0.0, 1.0)
            if years:
                ax.set_xlim(years[0], years[-1])
            ax.yaxis.set_major_locator(ticker.MaxNLocator(4))
            ax.yaxis.set_major_formatter(ticker.PercentFormatter(xmax=1.0, decimals=0))
            ax.text(0.01, 0.85, _product_label(atlas, item.product), transform=ax.transAxes,
                    color=color, fontsize=9, fontweight="semibold")
        axes[-1].set_xlabel("Year")
        axes[-1].xaxis.set_major_locator(ticker.MaxNLocator(integer=True))
        fig.supylabel("Self-sufficiency rate")

    try:
        fig.suptitle(chart_title(atlas, country_id))
        output_path.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(output_path, dpi=cfg.dpi, bbox_inches="tight")
    finally:
        plt.close(fig)
    return output_path


def run_render(
    atlas: Atlas,
    cfg: RenderConfig,
    *,
    output_dir: Path,
    year: int | None = None,
    country_id: str | None = None,
    products: Sequence[str] | None = None,
) -> RenderReport:
    """Render the map and the charts for a selection, defaulting to the atlas defaults."""
    report = RenderReport()
    chosen_year = year if year is not None else atlas.default_year
    chosen_country = country_id or atlas.default_country
    chosen_products = list(products) if products else list(atlas.selected_products)

    if chosen_year is not None and chosen_year not in atlas.index.years:
        report.add_warning(f"Year {chosen_year} is not in the dataset; the map will show no data.")
    if chosen_country and chosen_country not in atlas.registry.by_country:
        report.add_warning(f"Country {chosen_country} has no map geometry.")

    try:
        report.map_path = render_choropleth(
            atlas,
            year=chosen_year,
            products=chosen_products,
            selected_country=chosen_country,
            output_path=output_dir / map_filename(chosen_year),
            cfg=cfg.map,
        )
        report.add_info(f"Map written to {report.map_path}")
    except Exception as exc:
        _LOGGER.exception("Map rendering failed")
        report.add_error(f"Map rendering failed: {exc}")

    try:
        report.chart_path = render_series_chart(
            atlas,
            country_id=chosen_country,
            products=chosen_products,
            output_path=output_dir / series_filename(chosen_country),
            cfg=cfg.charts,
        )
        report.add_info(f"Charts written to {report.chart_path}")
    except Exception as exc:
        _LOGGER.exception("Chart rendering failed")
        report.add_error(f"Chart rendering failed: {exc}")
    return report


def format_render_lines(report: RenderReport) -> Sequence[str]:
    lines = [f"[INFO] {msg}" for msg in report.infos]
    lines.extend(f"[WARN] {msg}" for msg in report.warnings)
    lines.extend(f"[ERROR] {msg}" for msg in report.errors)
    if report.ok:
        lines.append("[OK] Rendering completed with no errors.")
    return lines


def _product_label(atlas: Atlas, key: str) -> str:
    product = atlas.product(key)
    return product.label if product else key


def _require_matplotlib() -> tuple[Any, Any]:
    try:
        import matplotlib

        matplotlib.use("Agg", force=False)
        import matplotlib.pyplot as plt
        import matplotlib.ticker as ticker
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("matplotlib is required for map rendering") from exc
    return (plt, ticker)


def _require_geopandas() -> Any:
    try:
        import geopandas as gpd
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("geopandas is required for choropleth rendering") from exc
    return gpd
