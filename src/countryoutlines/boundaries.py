"""Boundary dataset access: named country geometries by exact name."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable, Iterator, Mapping, Sequence

from .models import GeoFeature, polygons_as_tuples

_LOGGER = logging.getLogger("countryoutlines.boundaries")

_GEOJSON_SUFFIXES = {".geojson", ".json"}


class BoundaryDataError(ValueError):
    """Raised when a boundary dataset cannot be read as named polygons."""


def _first_existing_column(columns: Iterable[str], candidates: Sequence[str]) -> str | None:
    existing = {str(col).lower(): col for col in columns}
    for candidate in candidates:
        match = existing.get(candidate.lower())
        if match is not None:
            return match
    return None


class BoundaryStore:
    """Read-only lookup of country features keyed by ``properties.name``.

    Names are matched exactly (case and spelling). When a name occurs more than
    once the first feature wins.
    """

    NAME_COLUMNS = ("name", "NAME", "ADMIN", "NAME_EN", "NAME_LONG")

    def __init__(self, features: Iterable[GeoFeature], skipped: Sequence[str] = ()) -> None:
        self._features: dict[str, GeoFeature] = {}
        duplicates = 0
        for feature in features:
            if feature.name in self._features:
                duplicates += 1
                continue
            self._features[feature.name] = feature
        if duplicates:
            _LOGGER.warning("Ignored %d duplicate feature name(s) in boundary data", duplicates)
        self.skipped: tuple[str, ...] = tuple(skipped)

    def __len__(self) -> int:
        return len(self._features)

    def __contains__(self, name: object) -> bool:
        return name in self._features

    def __iter__(self) -> Iterator[GeoFeature]:
        return iter(self._features.values())

    def names(self) -> list[str]:
        return sorted(self._features)

    def get(self, name: str) -> GeoFeature | None:
        return self._features.get(name)

    @classmethod
    def from_geojson(cls, payload: Mapping[str, Any]) -> BoundaryStore:
        if not isinstance(payload, Mapping) or payload.get("type") != "FeatureCollection":
            raise BoundaryDataError("Boundary data must be a GeoJSON FeatureCollection")
        raw_features = payload.get("features")
        if not isinstance(raw_features, list):
            raise BoundaryDataError("FeatureCollection is missing its 'features' list")

        features: list[GeoFeature] = []
        skipped: list[str] = []
        for idx, raw in enumerate(raw_features):
            if not isinstance(raw, Mapping):
                skipped.append(f"features[{idx}]: not a mapping")
                continue
            try:
                features.append(GeoFeature.from_mapping(raw))
            except ValueError as exc:
                skipped.append(f"features[{idx}]: {exc}")
        if skipped:
            _LOGGER.warning("Skipped %d unusable boundary feature(s)", len(skipped))
            for reason in skipped:
                _LOGGER.debug("Skipped %s", reason)
        return cls(features, skipped)

    @classmethod
    def from_dataframe(cls, frame: Any, *, name_column: str | None = None) -> BoundaryStore:
        """Build a store from a GeoDataFrame (e.g. a Natural Earth shapefile)."""
        from shapely.geometry import mapping

        column = name_column or _first_existing_column(frame.columns, cls.NAME_COLUMNS)
        if column is None:
            cols = ", ".join(str(c) for c in frame.columns)
            raise BoundaryDataError(f"Could not detect a country name column. Available columns: {cols}")

        features: list[GeoFeature] = []
        skipped: list[str] = []
        for idx, (name_raw, geom) in enumerate(zip(frame[column], frame.geometry)):
            if not isinstance(name_raw, str) or not name_raw.strip():
                skipped.append(f"row {idx}: missing name")
                continue
            name = name_raw.strip()
            if geom is None or geom.is_empty:
                skipped.append(f"{name}: empty geometry")
                continue
            geo = mapping(geom)
            geometry_type = geo["type"]
            if geometry_type == "Polygon":
                raw_polygons = [geo["coordinates"]]
            elif geometry_type == "MultiPolygon":
                raw_polygons = list(geo["coordinates"])
            else:
                skipped.append(f"{name}: unsupported geometry type {geometry_type}")
                continue
            features.append(
                GeoFeature(
                    name=name,
                    geometry_type=geometry_type,
                    polygons=polygons_as_tuples(raw_polygons),
                )
            )
        if skipped:
            _LOGGER.warning("Skipped %d unusable boundary row(s)", len(skipped))
        return cls(features, skipped)

    @classmethod
    def load(cls, path: Path) -> BoundaryStore:
        """Load GeoJSON directly, anything else through GeoPandas."""
        if not path.exists():
            raise FileNotFoundError(f"Boundary dataset not found: {path}")
        if path.suffix.lower() in _GEOJSON_SUFFIXES:
            with path.open("r", encoding="utf-8") as fh:
                try:
                    payload = json.load(fh)
                except json.JSONDecodeError as exc:
                    raise BoundaryDataError(f"Invalid JSON in {path}: {exc}") from exc
            store = cls.from_geojson(payload)
        else:
            gpd = _require_geopandas()
            store = cls.from_dataframe(gpd.read_file(path))
        _LOGGER.info("Loaded %d country boundaries from %s", len(store), path)
        return store


def _require_geopandas() -> Any:
    try:
        import geopandas as gpd
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("geopandas is required for non-GeoJSON boundary datasets") from exc
    return gpd
