"""Raw table and map geometry loading with ordered source fallback."""

from __future__ import annotations

import io
import json
import logging
from pathlib import Path
from typing import Any, Sequence

import pandas as pd
import requests

from .models import GeoFeature
from .util import is_remote_source

_LOGGER = logging.getLogger("agrimap.sources")


class SourceLoadError(RuntimeError):
    """Raised when every configured source for an input failed."""


class SourceRepository:
    """Thin wrapper around the dataset CSV and the map geometry sources.

    Each source list is tried in order. Local entries are file paths, other
    entries are fetched over HTTP.
    """

    def __init__(
        self,
        dataset_sources: Sequence[str],
        geometry_sources: Sequence[str],
        *,
        request_timeout_s: float = 30.0,
        user_agent: str = "agrimap/0.1",
        session: requests.Session | None = None,
    ) -> None:
        self.dataset_sources = tuple(dataset_sources)
        self.geometry_sources = tuple(geometry_sources)
        self.request_timeout_s = request_timeout_s
        self._session = session or requests.Session()
        self._session.headers.update({"User-Agent": user_agent})

    def load_rows(self) -> list[dict[str, str]]:
        """Decode the first dataset source that yields at least one row."""
        last_error: Exception | None = None
        for source in self.dataset_sources:
            try:
                rows = decode_csv_rows(self._read_bytes(source))
            except (OSError, requests.RequestException, ValueError, pd.errors.ParserError) as exc:
                _LOGGER.warning("Dataset source %s failed: %s", source, exc)
                last_error = exc
                continue
            if rows:
                _LOGGER.info("Loaded %d dataset rows from %s", len(rows), source)
                return rows
            _LOGGER.warning("Dataset source %s has no rows; trying next source.", source)
        raise SourceLoadError(_failure_message("dataset CSV", last_error))

    def load_features(self) -> list[GeoFeature]:
        """Decode the first geometry source that is a FeatureCollection or Topology."""
        last_error: Exception | None = None
        for source in self.geometry_sources:
            try:
                features = decode_geometry(self._read_bytes(source))
            except (OSError, requests.RequestException, ValueError, RuntimeError) as exc:
                _LOGGER.warning("Geometry source %s failed: %s", source, exc)
                last_error = exc
                continue
            if features is not None:
                _LOGGER.info("Loaded %d map features from %s", len(features), source)
                return features
            _LOGGER.warning("Geometry source %s is neither a Topology nor a FeatureCollection.", source)
        raise SourceLoadError(_failure_message("map geometry", last_error))

    def _read_bytes(self, source: str) -> bytes:
        if is_remote_source(source):
            response = self._session.get(source, timeout=self.request_timeout_s)
            response.raise_for_status()
            return response.content
        return Path(source).read_bytes()


def decode_csv_rows(payload: bytes) -> list[dict[str, str]]:
    """Decode CSV bytes into string-valued row dicts; empty cells stay ''."""
    if not payload.strip():
        return []
    frame = pd.read_csv(io.BytesIO(payload), dtype=str, keep_default_na=False, encoding="utf-8")
    return [{str(k): v for k, v in row.items()} for row in frame.to_dict(orient="records")]


def decode_geometry(payload: bytes) -> list[GeoFeature] | None:
    """Return features for a FeatureCollection or Topology payload, else None."""
    raw = json.loads(payload.decode("utf-8"))
    if not isinstance(raw, dict):
        return None
    kind = raw.get("type")
    if kind == "FeatureCollection":
        features = raw.get("features") or []
        return [GeoFeature.from_mapping(item) for item in features if isinstance(item, dict)]
    if kind == "Topology":
        objects = raw.get("objects")
        if not isinstance(objects, dict) or not objects:
            raise ValueError("Topology has no objects")
        return _topology_features(payload, layer=next(iter(objects)))
    return None


def _topology_features(payload: bytes, *, layer: str) -> list[GeoFeature]:
    gpd = _require_geopandas()
    frame = gpd.read_file(io.BytesIO(payload), layer=layer)
    # The frame index is a row counter, not a country code. A geometry id
    # present in the topology arrives as an "id" property column.
    collection: dict[str, Any] = frame.to_geo_dict(drop_id=True)
    return [GeoFeature.from_mapping(item) for item in collection.get("features", [])]


def _failure_message(what: str, last_error: Exception | None) -> str:
    details = f" ({last_error})" if last_error is not None else ""
    return f"Unable to load {what} from known sources{details}"


def _require_geopandas() -> Any:
    try:
        import geopandas as gpd
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("geopandas is required for TopoJSON geometry loading") from exc
    return gpd
