"""Point and range queries over a built dataset index."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Sequence

from .indexer import DatasetIndex


@dataclass(frozen=True, slots=True)
class SeriesPoint:
    year: int
    value: float

    def to_dict(self) -> dict[str, Any]:
        return {"year": self.year, "value": self.value}


@dataclass(frozen=True, slots=True)
class ProductSeries:
    product: str
    values: tuple[SeriesPoint, ...]

    @property
    def is_empty(self) -> bool:
        return not self.values

    def to_dict(self) -> dict[str, Any]:
        return {"product": self.product, "values": [point.to_dict() for point in self.values]}


def _usable(value: float | None) -> bool:
    return value is not None and math.isfinite(value)


class QueryEngine:
    """Read-only view used by the map colouring and the time-series charts."""

    def __init__(self, index: DatasetIndex) -> None:
        self.index = index

    def value_for(
        self,
        country_id: str | None,
        year: int | None,
        products: Sequence[str],
    ) -> float | None:
        """Mean of the recorded, finite rates among `products`; None when there are none.

        Products without a value for that year are left out of the mean, not
        counted as zero.
        """
        if not country_id or year is None or not products:
            return None
        recorded = self.index.products_for(country_id, year)
        if not recorded:
            return None
        values = [recorded[p] for p in products if p in recorded and _usable(recorded[p])]
        if not values:
            return None
        return sum(values) / len(values)

    def series_for(self, country_id: str | None, products: Sequence[str]) -> list[ProductSeries]:
        """One series per requested product, in request order, on the year axis."""
        by_year = self.index.rates.get(country_id) if country_id else None
        out: list[ProductSeries] = []
        for product in products:
            points: list[SeriesPoint] = []
            if by_year is not None:
                for year in self.index.years:
                    value = by_year.get(year, {}).get(product)
                    if _usable(value):
                        points.append(SeriesPoint(year=year, value=float(value)))
            out.append(ProductSeries(product=product, values=tuple(points)))
        return out
