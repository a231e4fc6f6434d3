"""CLI entrypoint for the self-sufficiency atlas."""

from __future__ import annotations

import argparse
import json
import logging
from typing import Sequence

from .config import AppConfig, load_config
from .inspect_report import generate_coverage_report
from .models import BuildManifest
from .pipeline import Atlas, format_atlas_lines, run_build_atlas
from .render import format_render_lines, run_render
from .selection import normalize_product_selection
from .util import detect_git_commit, ensure_directories, sha256_file, setup_logging, write_json

LOGGER = logging.getLogger("agrimap.cli")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="agrimap",
        description="Agricultural self-sufficiency map and time-series builder.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_common(p: argparse.ArgumentParser) -> None:
        p.add_argument("--config", default="config.yaml", help="Path to YAML config.")
        p.add_argument("--verbose", action="store_true", help="Enable debug logs.")
        p.add_argument(
            "--product",
            action="append",
            default=[],
            help="Product key to include. Can be repeated. Defaults to all products.",
        )

    build_p = subparsers.add_parser("build", help="Load data, render map and charts, write manifest.")
    add_common(build_p)
    build_p.add_argument("--year", type=int, default=None, help="Map year (default: heuristic).")
    build_p.add_argument("--country", default=None, help="Country id for the charts (default: heuristic).")

    query_p = subparsers.add_parser("query", help="Print the value and time series for one country.")
    add_common(query_p)
    query_p.add_argument("--country", required=True, help="Canonical country id, e.g. FRA.")
    query_p.add_argument("--year", type=int, default=None, help="Year for the point value.")

    inspect_p = subparsers.add_parser("inspect", help="Write the table/map coverage report.")
    add_common(inspect_p)

    return parser


def _load_and_setup(args: argparse.Namespace) -> AppConfig:
    cfg = load_config(args.config)
    setup_logging(cfg.paths.logs_dir / "build.log", verbose=args.verbose)
    ensure_directories(cfg.paths.build_directories)
    return cfg


def _load_atlas(cfg: AppConfig, products: Sequence[str]) -> Atlas | None:
    report = run_build_atlas(cfg, selected_products=products or None)
    for line in format_atlas_lines(report):
        LOGGER.info(line)
    if not report.ok:
        LOGGER.error("Atlas could not be assembled.")
        return None
    return report.atlas


def _country_arg(atlas: Atlas, country: str | None) -> str | None:
    """Accept ids case-insensitively when the upper-cased form is a known id."""
    if not country or not country.strip():
        return None
    raw = country.strip()
    if raw not in atlas.index.rates and raw.upper() in atlas.index.rates:
        return raw.upper()
    return raw


def _run_build(cfg: AppConfig, *, products: Sequence[str], year: int | None, country: str | None) -> int:
    LOGGER.info("Starting build pipeline.")
    atlas = _load_atlas(cfg, products)
    if atlas is None:
        return 1

    render_report = run_render(
        atlas,
        cfg.render,
        output_dir=cfg.project.output_dir,
        year=year,
        country_id=_country_arg(atlas, country),
        products=atlas.selected_products,
    )
    for line in format_render_lines(render_report):
        LOGGER.info(line)
    if not render_report.ok:
        LOGGER.error("Build aborted due to rendering errors.")
        return 1

    if cfg.build.write_manifest:
        manifest = BuildManifest.create(
            config_hash_sha256=sha256_file(cfg.source_path),
            git_commit=detect_git_commit(cfg.source_path.parent),
            selection={
                "year": year if year is not None else atlas.default_year,
                "country": _country_arg(atlas, country) or atlas.default_country,
                "products": list(atlas.selected_products),
            },
            artifacts={
                "map": str(render_report.map_path or ""),
                "charts": str(render_report.chart_path or ""),
            },
            region_fallback_used=atlas.region_fallback_used,
        )
        manifest_path = cfg.paths.build_root / "build_manifest.json"
        write_json(manifest_path, manifest.to_dict())
        LOGGER.info("Build manifest written to %s", manifest_path)

    LOGGER.info("Build finished.")
    return 0


def _run_query(cfg: AppConfig, *, products: Sequence[str], country: str, year: int | None) -> int:
    atlas = _load_atlas(cfg, products)
    if atlas is None:
        return 1
    country_id = _country_arg(atlas, country) or country.strip()
    chosen_year = year if year is not None else atlas.default_year
    payload = {
        "country_id": country_id,
        "name": atlas.index.country_names.get(country_id),
        "year": chosen_year,
        "products": list(atlas.selected_products),
        "value": atlas.engine.value_for(country_id, chosen_year, atlas.selected_products),
        "series": [item.to_dict() for item in atlas.engine.series_for(country_id, atlas.selected_products)],
    }
    print(json.dumps(payload, indent=2, ensure_ascii=False))
    if country_id not in atlas.index.rates:
        LOGGER.warning("No statistical data for country id '%s'.", country_id)
    return 0


def _run_inspect(cfg: AppConfig, *, products: Sequence[str]) -> int:
    atlas = _load_atlas(cfg, products)
    if atlas is None:
        return 1
    try:
        html_path, json_path = generate_coverage_report(
            atlas,
            output_dir=cfg.paths.build_root,
            products=atlas.selected_products,
        )
    except OSError as exc:
        LOGGER.error("Coverage report failed: %s", exc)
        return 1
    LOGGER.info("Coverage HTML report written to %s", html_path)
    LOGGER.info("Coverage JSON report written to %s", json_path)
    return 0


def _dispatch(args: argparse.Namespace) -> int:
    cfg = _load_and_setup(args)
    command = str(args.command)
    products = [str(item) for item in args.product]
    if products:
        known = normalize_product_selection(products, cfg.product_keys)
        if known != products:
            LOGGER.warning("Product selection normalized to: %s", ", ".join(known))
        products = known
    if command == "build":
        return _run_build(cfg, products=products, year=args.year, country=args.country)
    if command == "query":
        return _run_query(cfg, products=products, country=str(args.country), year=args.year)
    if command == "inspect":
        return _run_inspect(cfg, products=products)
    raise ValueError(f"Unknown command: {command}")


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    return _dispatch(args)


if __name__ == "__main__":
    raise SystemExit(main())
