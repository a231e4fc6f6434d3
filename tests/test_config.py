from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
import yaml

from agrimap.config import load_config

REPO_CONFIG = Path(__file__).resolve().parents[1] / "config.yaml"


def _raw() -> dict[str, Any]:
    return yaml.safe_load(REPO_CONFIG.read_text(encoding="utf-8"))


def _write(tmp_path: Path, raw: dict[str, Any]) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(raw, sort_keys=False), encoding="utf-8")
    return path


def test_repo_config_loads() -> None:
    cfg = load_config(REPO_CONFIG)
    assert cfg.region.name == "Europe"
    assert (cfg.region.bounds.lon_min, cfg.region.bounds.lat_max) == (-31.0, 72.0)
    assert cfg.region.min_features == 5
    assert cfg.region.excluded_ids == ("GUY", "SJM")
    assert cfg.product_keys == ("volaille", "ble", "lait")
    assert cfg.products[0].source_names == ("Meat of chickens, fresh or chilled",)
    assert cfg.render.map.colormap == "YlGn"
    assert cfg.paths.country_names == REPO_CONFIG.parent / "data" / "country_names.yaml"


def test_relative_sources_resolve_against_config_dir(tmp_path: Path) -> None:
    cfg = load_config(_write(tmp_path, _raw()))
    assert cfg.sources.dataset[0] == str(tmp_path.resolve() / "data" / "agri_self_sufficiency_prepared.csv")
    assert cfg.sources.geometry[-1].startswith("https://")


def test_missing_config_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "nope.yaml")


def test_inverted_bounds_are_rejected(tmp_path: Path) -> None:
    raw = _raw()
    raw["region"]["bounds"]["lon_min"] = 50
    with pytest.raises(ValueError, match="lon_min < lon_max"):
        load_config(_write(tmp_path, raw))


def test_negative_min_features_is_rejected(tmp_path: Path) -> None:
    raw = _raw()
    raw["region"]["min_features"] = -1
    with pytest.raises(ValueError, match="min_features"):
        load_config(_write(tmp_path, raw))


def test_duplicate_product_keys_are_rejected(tmp_path: Path) -> None:
    raw = _raw()
    raw["products"].append(dict(raw["products"][0]))
    with pytest.raises(ValueError, match="Duplicate product key"):
        load_config(_write(tmp_path, raw))


def test_empty_source_list_is_rejected(tmp_path: Path) -> None:
    raw = _raw()
    raw["sources"]["dataset"] = []
    with pytest.raises(ValueError, match="sources.dataset"):
        load_config(_write(tmp_path, raw))


def test_wrong_type_names_the_field(tmp_path: Path) -> None:
    raw = _raw()
    raw["render"]["map"]["dpi"] = "high"
    with pytest.raises(ValueError, match="render.map.dpi"):
        load_config(_write(tmp_path, raw))
