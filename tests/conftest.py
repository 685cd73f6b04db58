from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable

import pytest


def _square(cx: float, cy: float, half: float) -> list[list[float]]:
    return [
        [cx - half, cy - half],
        [cx + half, cy - half],
        [cx + half, cy + half],
        [cx - half, cy + half],
        [cx - half, cy - half],
    ]


@pytest.fixture
def square() -> Callable[..., list[list[float]]]:
    """Closed square ring centred on (cx, cy)."""
    return _square


@pytest.fixture
def multipolygon_feature() -> Callable[..., dict[str, Any]]:
    def build(name: str, *rings: list[list[float]]) -> dict[str, Any]:
        return {
            "type": "Feature",
            "properties": {"name": name},
            "geometry": {"type": "MultiPolygon", "coordinates": [[ring] for ring in rings]},
        }

    return build


@pytest.fixture
def sample_collection() -> dict[str, Any]:
    return {
        "type": "FeatureCollection",
        "features": [
            {
                "type": "Feature",
                "properties": {"name": "Testland"},
                "geometry": {"type": "Polygon", "coordinates": [[[0, 0], [4, 0], [4, 2], [0, 2]]]},
            },
            {
                "type": "Feature",
                "properties": {"name": "Islandia"},
                "geometry": {
                    "type": "MultiPolygon",
                    "coordinates": [
                        [_square(10, 10, 2)],
                        [_square(11, 14, 0.5)],
                        [_square(60, 10, 1)],
                    ],
                },
            },
        ],
    }


@pytest.fixture
def project_dir(tmp_path: Path, sample_collection: dict[str, Any]) -> Path:
    """A config file plus data files laid out the way ``config.yaml`` expects."""
    data_dir = tmp_path / "data"
    assets_dir = data_dir / "extraoutlines"
    assets_dir.mkdir(parents=True)
    (data_dir / "world-countries.geojson").write_text(json.dumps(sample_collection), encoding="utf-8")
    (data_dir / "outline_policies.yaml").write_text(
        "include_all_nearby:\n"
        "  - Islandia\n"
        "extra_outline_files:\n"
        "  Monaco: Monaco.svg\n",
        encoding="utf-8",
    )
    (assets_dir / "Monaco.svg").write_text(
        "<svg xmlns='http://www.w3.org/2000/svg' viewBox='0 0 300 420'>"
        "<path d='M10 10 L200 10 L200 300 Z'/></svg>",
        encoding="utf-8",
    )
    (tmp_path / "config.yaml").write_text(
        "paths:\n"
        "  boundaries: data/world-countries.geojson\n"
        "  policies: data/outline_policies.yaml\n"
        "  qa_dir: build/qa\n"
        "  logs_dir: build/logs\n"
        "assets:\n"
        "  directory: data/extraoutlines\n",
        encoding="utf-8",
    )
    return tmp_path
