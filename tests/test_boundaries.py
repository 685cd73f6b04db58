from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from countryoutlines.boundaries import BoundaryDataError, BoundaryStore


class TestFromGeojson:
    def test_features_are_keyed_by_exact_name(self, sample_collection: dict[str, Any]) -> None:
        store = BoundaryStore.from_geojson(sample_collection)
        assert len(store) == 2
        assert store.names() == ["Islandia", "Testland"]
        feature = store.get("Testland")
        assert feature is not None
        assert feature.geometry_type == "Polygon"
        assert len(feature.polygons) == 1
        assert store.get("testland") is None

    def test_multipolygon_members_are_kept(self, sample_collection: dict[str, Any]) -> None:
        feature = BoundaryStore.from_geojson(sample_collection).get("Islandia")
        assert feature is not None
        assert len(feature.polygons) == 3

    def test_unusable_features_are_skipped(self, sample_collection: dict[str, Any]) -> None:
        sample_collection["features"].extend(
            [
                {"type": "Feature", "properties": {"name": "Pointland"}, "geometry": {"type": "Point", "coordinates": [1, 2]}},
                {"type": "Feature", "properties": {}, "geometry": {"type": "Polygon", "coordinates": []}},
                "not a feature",
            ]
        )
        store = BoundaryStore.from_geojson(sample_collection)
        assert len(store) == 2
        assert len(store.skipped) == 3
        assert "Pointland" not in store

    def test_first_duplicate_wins(self, square: Any) -> None:
        payload = {
            "type": "FeatureCollection",
            "features": [
                {"type": "Feature", "properties": {"name": "Twin"}, "geometry": {"type": "Polygon", "coordinates": [square(0, 0, 1)]}},
                {"type": "Feature", "properties": {"name": "Twin"}, "geometry": {"type": "Polygon", "coordinates": [square(50, 0, 1)]}},
            ],
        }
        feature = BoundaryStore.from_geojson(payload).get("Twin")
        assert feature is not None
        assert feature.polygons[0][0][0] == (-1.0, -1.0)

    def test_rejects_non_collections(self) -> None:
        with pytest.raises(BoundaryDataError):
            BoundaryStore.from_geojson({"type": "Feature"})
        with pytest.raises(BoundaryDataError):
            BoundaryStore.from_geojson({"type": "FeatureCollection"})


class TestLoad:
    def test_loads_geojson_file(self, tmp_path: Path, sample_collection: dict[str, Any]) -> None:
        path = tmp_path / "countries.geojson"
        path.write_text(json.dumps(sample_collection), encoding="utf-8")
        assert "Testland" in BoundaryStore.load(path)

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            BoundaryStore.load(tmp_path / "nope.geojson")

    def test_invalid_json(self, tmp_path: Path) -> None:
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(BoundaryDataError):
            BoundaryStore.load(path)


class TestFromDataframe:
    def test_detects_name_column_and_converts_geometries(self) -> None:
        gpd = pytest.importorskip("geopandas")
        from shapely.geometry import MultiPolygon, Point, Polygon

        frame = gpd.GeoDataFrame(
            {
                "ADMIN": ["Squareland", "Archipelago", "Dotland"],
                "geometry": [
                    Polygon([(0, 0), (2, 0), (2, 2), (0, 2)]),
                    MultiPolygon(
                        [
                            Polygon([(10, 10), (12, 10), (12, 12)]),
                            Polygon([(20, 20), (21, 20), (21, 21)]),
                        ]
                    ),
                    Point(5, 5),
                ],
            }
        )
        store = BoundaryStore.from_dataframe(frame)
        assert store.names() == ["Archipelago", "Squareland"]
        square = store.get("Squareland")
        assert square is not None
        assert square.polygons[0][0][0] == (0.0, 0.0)
        archipelago = store.get("Archipelago")
        assert archipelago is not None
        assert len(archipelago.polygons) == 2
        assert store.skipped == ("Dotland: unsupported geometry type Point",)

    def test_missing_name_column(self) -> None:
        gpd = pytest.importorskip("geopandas")
        from shapely.geometry import Polygon

        frame = gpd.GeoDataFrame({"code": ["X"], "geometry": [Polygon([(0, 0), (1, 0), (1, 1)])]})
        with pytest.raises(BoundaryDataError):
            BoundaryStore.from_dataframe(frame)
