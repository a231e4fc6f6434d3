"""Map statistical records and geometry features onto one canonical country id."""

from __future__ import annotations

import logging
from typing import Iterable, Mapping, Sequence

from .models import GeoFeature, StatRecord
from .names import NameTables

_LOGGER = logging.getLogger("agrimap.resolver")


def build_geometry_name_index(
    features: Iterable[GeoFeature],
    names: NameTables,
) -> dict[str, str]:
    """Index normalized feature names to the feature's own ISO code.

    Features are visited in input order and the first feature to claim a
    normalized name keeps it.
    """
    index: dict[str, str] = {}
    for feature in features:
        iso = feature.iso3
        if not iso:
            continue
        for name in feature.names:
            key = names.normalize(name)
            if key:
                index.setdefault(key, iso)
    return index


class CountryResolver:
    """Priority-chain resolution shared by the table side and the map side.

    Records: explicit code, manual override, geometry name index, normalized name.
    Features: ISO property aliases, then the normalized display name matched
    against the country name table (first entry in table order wins).
    """

    def __init__(
        self,
        names: NameTables,
        *,
        geometry_index: Mapping[str, str] | None = None,
        country_names: Mapping[str, str] | None = None,
    ) -> None:
        self.names = names
        self.geometry_index = dict(geometry_index or {})
        self.country_names = dict(country_names or {})
        self._id_by_country_name: dict[str, str] = {}
        for country_id, name in self.country_names.items():
            key = names.normalize(name)
            if key:
                self._id_by_country_name.setdefault(key, country_id)

    def with_country_names(self, country_names: Mapping[str, str]) -> CountryResolver:
        return CountryResolver(
            self.names,
            geometry_index=self.geometry_index,
            country_names=country_names,
        )

    def resolve_record(self, record: StatRecord) -> str | None:
        if record.country_id:
            return record.country_id
        override = self.names.override_for(record.country_name)
        if override:
            return override
        key = self.names.normalize(record.country_name)
        if not key:
            return None
        return self.geometry_index.get(key, key)

    def resolve_records(self, records: Sequence[StatRecord]) -> list[StatRecord]:
        """Attach country ids and drop records that cannot be indexed."""
        resolved: list[StatRecord] = []
        dropped = 0
        for record in records:
            candidate = record.with_country_id(self.resolve_record(record))
            if not candidate.is_indexable:
                dropped += 1
                continue
            resolved.append(candidate)
        if dropped:
            _LOGGER.debug("Dropped %d of %d records without id, product or year", dropped, len(records))
        return resolved

    def resolve_feature(self, feature: GeoFeature) -> str | None:
        iso = feature.iso3
        if iso:
            return iso
        key = self.names.normalize(feature.display_name)
        if not key:
            return None
        return self._id_by_country_name.get(key)

    def display_name(self, feature: GeoFeature, country_id: str | None) -> str:
        name = self.country_names.get(country_id) if country_id else None
        if name:
            return name
        return feature.display_name or country_id or "Unknown"
