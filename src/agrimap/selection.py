"""Initial year/country/product selection when the atlas starts."""

from __future__ import annotations

from typing import Iterable, Sequence

from .query import QueryEngine


def pick_default_year(
    engine: QueryEngine,
    mapped_country_ids: Sequence[str],
    products: Sequence[str],
) -> int | None:
    """Most recent year in which any mapped country has a value; else the latest year."""
    for year in sorted(engine.index.years, reverse=True):
        if any(engine.value_for(country_id, year, products) is not None for country_id in mapped_country_ids):
            return year
    return engine.index.latest_year


def pick_default_country(
    country_ids: Iterable[str],
    registered_ids: Iterable[str],
) -> str | None:
    """First statistical id (index order) that also has geometry; else the first id."""
    registered = set(registered_ids)
    first: str | None = None
    for country_id in country_ids:
        if first is None:
            first = country_id
        if country_id in registered:
            return country_id
    return first


def normalize_product_selection(selected: Iterable[str], available: Sequence[str]) -> list[str]:
    """Keep known products in the given order; never return an empty selection."""
    known = set(available)
    out: list[str] = []
    for product in selected:
        if product in known and product not in out:
            out.append(product)
    if not out and available:
        out.append(available[0])
    return out
