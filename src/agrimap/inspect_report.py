"""Coverage report for the table <-> map join, for debugging data quality."""

from __future__ import annotations

from html import escape
from pathlib import Path
from typing import Any, Sequence

from .pipeline import Atlas
from .util import write_json


def build_coverage_rows(atlas: Atlas, *, products: Sequence[str] | None = None) -> list[dict[str, Any]]:
    """One row per statistical country id, in index order."""
    chosen = list(products) if products else list(atlas.selected_products)
    rows: list[dict[str, Any]] = []
    for country_id in atlas.index.country_ids:
        years_with_data = [
            year for year in atlas.index.years if atlas.engine.value_for(country_id, year, chosen) is not None
        ]
        latest_year = years_with_data[-1] if years_with_data else None
        rows.append(
            {
                "country_id": country_id,
                "name": atlas.index.country_names.get(country_id) or country_id,
                "has_geometry": country_id in atlas.registry.by_country,
                "years_with_data": len(years_with_data),
                "latest_year": latest_year,
                "latest_value": atlas.engine.value_for(country_id, latest_year, chosen),
            }
        )
    return rows


def unmatched_features(atlas: Atlas) -> list[dict[str, Any]]:
    """Renderable features whose id is unknown or absent from the table."""
    known = set(atlas.index.country_ids)
    out: list[dict[str, Any]] = []
    for feature, country_id in atlas.registry.items():
        if country_id is not None and country_id in known:
            continue
        out.append(
            {
                "country_id": country_id,
                "name": atlas.resolver.display_name(feature, country_id),
                "iso3": feature.iso3,
            }
        )
    return out


def generate_coverage_report(
    atlas: Atlas,
    *,
    output_dir: Path,
    products: Sequence[str] | None = None,
) -> tuple[Path, Path]:
    """Write coverage.json and coverage.html; returns both paths."""
    rows = build_coverage_rows(atlas, products=products)
    features = unmatched_features(atlas)
    payload = {
        "meta": {
            "countries": len(rows),
            "years": list(atlas.index.years),
            "products": list(products) if products else list(atlas.selected_products),
            "default_year": atlas.default_year,
            "default_country": atlas.default_country,
            "region_fallback_used": atlas.region_fallback_used,
        },
        "summary": {
            "with_geometry": sum(1 for row in rows if row["has_geometry"]),
            "without_geometry": sum(1 for row in rows if not row["has_geometry"]),
            "without_data": sum(1 for row in rows if row["years_with_data"] == 0),
            "unmatched_features": len(features),
        },
        "countries": rows,
        "unmatched_features": features,
    }
    json_path = output_dir / "coverage.json"
    html_path = output_dir / "coverage.html"
    write_json(json_path, payload)
    _write_html_report(payload=payload, output_html=html_path)
    return (html_path, json_path)


def _format_value(value: Any) -> str:
    if value is None:
        return "-"
    return f"{float(value):.1%}"


def _write_html_report(*, payload: dict[str, Any], output_html: Path) -> None:
    meta = payload["meta"]
    summary = payload["summary"]
    table_rows: list[str] = []
    for row in payload["countries"]:
        status = "ok" if row["has_geometry"] else "error"
        table_rows.append(
            "\n".join(
                [
                    "<tr>",
                    f"  <td>{escape(str(row['country_id']))}</td>",
                    f"  <td>{escape(str(row['name']))}</td>",
                    f"  <td class='{status}'>{'yes' if row['has_geometry'] else 'no'}</td>",
                    f"  <td>{row['years_with_data']}</td>",
                    f"  <td>{escape(str(row['latest_year'] or '-'))}</td>",
                    f"  <td>{escape(_format_value(row['latest_value']))}</td>",
                    "</tr>",
                ]
            )
        )
    feature_items = [
        f"    <li>{escape(str(item['name']))} ({escape(str(item['country_id'] or 'unmapped'))})</li>"
        for item in payload["unmatched_features"]
    ]

    html = "\n".join(
        [
            "<!doctype html>",
            "<html lang='en'>",
            "<head>",
            "  <meta charset='utf-8'>",
            "  <title>agrimap coverage report</title>",
            "  <style>",
            "    body { font-family: Segoe UI, Arial, sans-serif; margin: 20px; color: #111; }",
            "    .summary { margin: 0 0 18px 0; padding: 12px; border: 1px solid #ddd; border-radius: 8px; }",
            "    table { border-collapse: collapse; width: 100%; }",
            "    th, td { border: 1px solid #ddd; padding: 6px; text-align: left; }",
            "    th { background: #f4f4f4; }",
            "    td.ok { color: #1f7a1f; font-weight: 700; }",
            "    td.error { color: #b22d2d; font-weight: 700; }",
            "  </style>",
            "</head>",
            "<body>",
            "  <h1>Coverage Report</h1>",
            "  <div class='summary'>",
            f"    <div>Countries: {meta['countries']}</div>",
            f"    <div>Products: {escape(', '.join(meta['products']))}</div>",
            f"    <div>Default year: {escape(str(meta['default_year']))}</div>",
            f"    <div>Default country: {escape(str(meta['default_country']))}</div>",
            f"    <div>Region fallback used: {meta['region_fallback_used']}</div>",
            f"    <div>With geometry: {summary['with_geometry']}</div>",
            f"    <div>Without geometry: {summary['without_geometry']}</div>",
            f"    <div>Without data: {summary['without_data']}</div>",
            "  </div>",
            "  <table>",
            "    <thead>",
            "      <tr><th>Id</th><th>Country</th><th>Geometry</th><th>Years</th>"
            "<th>Latest year</th><th>Latest value</th></tr>",
            "    </thead>",
            "    <tbody>",
            *table_rows,
            "    </tbody>",
            "  </table>",
            f"  <h2>Map features without data ({summary['unmatched_features']})</h2>",
            "  <ul>",
            *feature_items,
            "  </ul>",
            "</body>",
            "</html>",
            "",
        ]
    )
    output_html.parent.mkdir(parents=True, exist_ok=True)
    output_html.write_text(html, encoding="utf-8")
