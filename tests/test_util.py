from __future__ import annotations

import hashlib
import json
from pathlib import Path
from types import MappingProxyType

import pytest

from agrimap.util import is_remote_source, sha256_file, write_json


@pytest.mark.parametrize(
    ("source", "expected"),
    [
        ("https://cdn.jsdelivr.net/gh/datasets/geo-countries@master/data/countries.geojson", True),
        ("http://localhost:8000/europe.geojson", True),
        ("data/europe.geojson", False),
        ("/srv/agrimap/table.csv", False),
    ],
)
def test_is_remote_source(source: str, expected: bool) -> None:
    assert is_remote_source(source) is expected


def test_write_json_accepts_read_only_mappings_and_paths(tmp_path: Path) -> None:
    target = tmp_path / "nested" / "out.json"
    write_json(
        target,
        {"names": MappingProxyType({"FRA": "France"}), "map": tmp_path / "map.png", "years": (2019, 2020)},
    )
    payload = json.loads(target.read_text(encoding="utf-8"))
    assert payload == {"map": str(tmp_path / "map.png"), "names": {"FRA": "France"}, "years": [2019, 2020]}


def test_write_json_rejects_unknown_objects(tmp_path: Path) -> None:
    with pytest.raises(TypeError):
        write_json(tmp_path / "out.json", {"value": object()})


def test_sha256_file(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_bytes(b"region:\n  name: Europe\n")
    assert sha256_file(path) == hashlib.sha256(b"region:\n  name: Europe\n").hexdigest()
