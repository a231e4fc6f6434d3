"""Country name normalization and the alias/override tables used for joins."""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml


DEFAULT_COUNTRY_ALIASES: Mapping[str, str] = {
    "bolivia plurinational state of": "bolivia",
    "cabo verde": "cape verde",
    "congo democratic republic of the": "democratic republic of the congo",
    "congo": "republic of the congo",
    "cote d ivoire": "ivory coast",
    "iran islamic republic of": "iran",
    "korea republic of": "south korea",
    "korea democratic people s republic of": "north korea",
    "lao people s democratic republic": "laos",
    "micronesia federated states of": "micronesia",
    "moldova republic of": "moldova",
    "palestine state of": "palestine",
    "russian federation": "russia",
    "syrian arab republic": "syria",
    "tanzania united republic of": "tanzania",
    "united kingdom of great britain and northern ireland": "united kingdom",
    "united states of america": "united states",
    "venezuela bolivarian republic of": "venezuela",
    "viet nam": "vietnam",
}

# Names that carry no ISO code in the statistical table.
DEFAULT_NAME_OVERRIDES: Mapping[str, str] = {
    "Norway": "NOR",
    "Switzerland": "CHE",
}

_PUNCTUATION_RE = re.compile(r"['’.,()/\-]")
_WHITESPACE_RE = re.compile(r"\s+")


def fold_country_name(name: Any) -> str:
    """Fold casing, diacritics and punctuation without applying aliases."""
    if name is None:
        return ""
    text = str(name)
    if not text.strip():
        return ""
    decomposed = unicodedata.normalize("NFKD", text)
    without_marks = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    folded = without_marks.lower().replace("&", " and ")
    folded = _PUNCTUATION_RE.sub(" ", folded)
    return _WHITESPACE_RE.sub(" ", folded).strip()


def normalize_country_name(name: Any, aliases: Mapping[str, str] | None = None) -> str:
    """Return the comparable key for a free-text country name.

    An empty string means the name cannot be resolved. The result is stable
    under repeated application as long as alias targets are not alias keys.
    """
    folded = fold_country_name(name)
    table = DEFAULT_COUNTRY_ALIASES if aliases is None else aliases
    return table.get(folded, folded)


@dataclass(frozen=True, slots=True)
class NameTables:
    """Alias table plus the manual name->code overrides, keyed by normalized name."""

    aliases: Mapping[str, str] = field(default_factory=lambda: dict(DEFAULT_COUNTRY_ALIASES))
    overrides: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def default(cls) -> NameTables:
        return cls.build(DEFAULT_COUNTRY_ALIASES, DEFAULT_NAME_OVERRIDES)

    @classmethod
    def build(cls, aliases: Mapping[str, str], overrides: Mapping[str, str]) -> NameTables:
        checked = _validate_aliases(aliases)
        keyed: dict[str, str] = {}
        for raw_name, code in overrides.items():
            key = normalize_country_name(raw_name, checked)
            if key:
                keyed.setdefault(key, code.strip().upper())
        return cls(aliases=checked, overrides=keyed)

    def normalize(self, name: Any) -> str:
        return normalize_country_name(name, self.aliases)

    def override_for(self, name: Any) -> str | None:
        key = self.normalize(name)
        if not key:
            return None
        return self.overrides.get(key)


def load_name_tables(path: Path | None) -> NameTables:
    """Load optional alias/override additions and merge them over the defaults."""
    if path is None or not path.exists():
        return NameTables.default()
    with path.open("r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh)
    if raw is None:
        return NameTables.default()
    if not isinstance(raw, dict):
        raise ValueError(f"Expected mapping in {path}")

    aliases = dict(DEFAULT_COUNTRY_ALIASES)
    aliases.update(_str_mapping(raw.get("aliases"), "aliases", path))
    overrides = dict(DEFAULT_NAME_OVERRIDES)
    for name, code in _str_mapping(raw.get("overrides"), "overrides", path).items():
        if len(code) != 3 or not code.isalpha():
            raise ValueError(f"Invalid ISO3 override '{code}' for '{name}' in {path}")
        overrides[name] = code
    return NameTables.build(aliases, overrides)


def _str_mapping(value: Any, field_name: str, path: Path) -> dict[str, str]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"Expected mapping for '{field_name}' in {path}")
    out: dict[str, str] = {}
    for key, item in value.items():
        if not isinstance(key, str) or not key.strip():
            raise ValueError(f"Expected non-empty string key in '{field_name}' in {path}")
        if not isinstance(item, str) or not item.strip():
            raise ValueError(f"Expected non-empty string for '{field_name}.{key}' in {path}")
        out[key.strip()] = item.strip()
    return out


def _validate_aliases(aliases: Mapping[str, str]) -> dict[str, str]:
    checked: dict[str, str] = {}
    for source, target in aliases.items():
        key = fold_country_name(source)
        value = fold_country_name(target)
        if not key or not value:
            raise ValueError(f"Empty alias entry: '{source}' -> '{target}'")
        checked[key] = value
    for key, value in checked.items():
        if value in checked and checked[value] != value:
            raise ValueError(f"Alias target '{value}' for '{key}' is itself an alias key")
    return checked
