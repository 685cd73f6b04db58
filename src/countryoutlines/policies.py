"""Outline policy loading: classifier policy sets and the external asset table."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml

from .models import ClassificationPolicy

_POLICY_SET_KEYS = ("exclude_distant", "include_all_nearby", "extra_wide_proximity")
_KNOWN_KEYS = set(_POLICY_SET_KEYS) | {"extra_outline_files"}


@dataclass(frozen=True, slots=True)
class OutlinePolicies:
    countries: Mapping[str, ClassificationPolicy] = field(default_factory=dict)
    extra_outline_files: Mapping[str, str] = field(default_factory=dict)


def _name_list(value: Any, key: str, path: Path) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"Expected list of country names for '{key}' in {path}")
    names: list[str] = []
    for idx, item in enumerate(value):
        if not isinstance(item, str) or not item.strip():
            raise ValueError(f"Invalid country name at '{key}[{idx}]' in {path}")
        names.append(item.strip())
    return names


def _file_table(value: Any, path: Path) -> dict[str, str]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"Expected mapping for 'extra_outline_files' in {path}")
    table: dict[str, str] = {}
    for name, filename in value.items():
        if not isinstance(name, str) or not name.strip():
            raise ValueError(f"extra_outline_files key must be a country name in {path}")
        if not isinstance(filename, str) or not filename.strip():
            raise ValueError(f"extra_outline_files value for {name} must be a filename in {path}")
        table[name.strip()] = filename.strip()
    return table


def load_outline_policies(path: Path) -> OutlinePolicies:
    """Load the optional policy file; a missing file means default policies."""
    if not path.exists():
        return OutlinePolicies()
    with path.open("r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh)
    if raw is None:
        return OutlinePolicies()
    if not isinstance(raw, dict):
        raise ValueError(f"Expected mapping in {path}")
    unknown = sorted(str(key) for key in raw if key not in _KNOWN_KEYS)
    if unknown:
        raise ValueError(f"Unknown policy key(s) in {path}: {', '.join(unknown)}")

    members: dict[str, set[str]] = {}
    for key in _POLICY_SET_KEYS:
        for name in _name_list(raw.get(key), key, path):
            members.setdefault(name, set()).add(key)

    countries = {
        name: ClassificationPolicy(
            exclude_distant="exclude_distant" in keys,
            include_all_nearby="include_all_nearby" in keys,
            extra_wide_proximity="extra_wide_proximity" in keys,
        )
        for name, keys in members.items()
    }
    return OutlinePolicies(
        countries=countries,
        extra_outline_files=_file_table(raw.get("extra_outline_files"), path),
    )
