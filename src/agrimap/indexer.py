"""Build the read-only country/year/product index and the feature registry."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable, Mapping, Sequence

from .models import GeoFeature, StatRecord
from .resolver import CountryResolver

_LOGGER = logging.getLogger("agrimap.indexer")

RateTable = Mapping[str, Mapping[int, Mapping[str, "float | None"]]]


@dataclass(frozen=True, slots=True)
class DatasetIndex:
    """country -> year -> product -> rate, plus the year axis and display names.

    An absent (country, year, product) triple means "no observation"; a
    present triple with a None rate means "observed but null".
    """

    rates: RateTable
    years: tuple[int, ...]
    country_names: Mapping[str, str]

    @property
    def country_ids(self) -> tuple[str, ...]:
        return tuple(self.rates.keys())

    @property
    def latest_year(self) -> int | None:
        return self.years[-1] if self.years else None

    def products_for(self, country_id: str, year: int) -> Mapping[str, float | None] | None:
        by_year = self.rates.get(country_id)
        if by_year is None:
            return None
        return by_year.get(year)


def build_index(records: Iterable[StatRecord]) -> DatasetIndex:
    """Single pass over resolved records; later duplicates overwrite earlier ones."""
    rates: dict[str, dict[int, dict[str, float | None]]] = {}
    names: dict[str, str] = {}
    years: set[int] = set()
    count = 0
    for record in records:
        if not record.is_indexable:
            continue
        country_id = str(record.country_id)
        year = int(record.year or 0)
        years.add(year)
        rates.setdefault(country_id, {}).setdefault(year, {})[str(record.product)] = record.rate
        names[country_id] = record.country_name
        count += 1

    frozen = MappingProxyType(
        {
            country_id: MappingProxyType(
                {year: MappingProxyType(products) for year, products in by_year.items()}
            )
            for country_id, by_year in rates.items()
        }
    )
    _LOGGER.debug("Indexed %d records for %d countries over %d years", count, len(rates), len(years))
    return DatasetIndex(
        rates=frozen,
        years=tuple(sorted(years)),
        country_names=MappingProxyType(names),
    )


@dataclass(frozen=True, slots=True)
class FeatureRegistry:
    """Renderable features, their resolved ids and the id -> feature lookup."""

    features: tuple[GeoFeature, ...]
    feature_ids: tuple[str | None, ...]
    by_country: Mapping[str, GeoFeature]

    @property
    def mapped_country_ids(self) -> tuple[str, ...]:
        return tuple(country_id for country_id in self.feature_ids if country_id)

    def items(self) -> Iterable[tuple[GeoFeature, str | None]]:
        return zip(self.features, self.feature_ids)


def build_feature_registry(
    features: Sequence[GeoFeature],
    resolver: CountryResolver,
) -> FeatureRegistry:
    """Resolve every feature; the first feature seen for an id is registered."""
    ids: list[str | None] = []
    by_country: dict[str, GeoFeature] = {}
    unmapped = 0
    for feature in features:
        country_id = resolver.resolve_feature(feature)
        ids.append(country_id)
        if country_id is None:
            unmapped += 1
            continue
        by_country.setdefault(country_id, feature)
    if unmapped:
        _LOGGER.debug("%d of %d features could not be mapped to a country id", unmapped, len(features))
    return FeatureRegistry(
        features=tuple(features),
        feature_ids=tuple(ids),
        by_country=MappingProxyType(by_country),
    )
