"""Polygon measurements: exterior area, extents and latitude correction."""

from __future__ import annotations

import math
from functools import lru_cache
from typing import Any, Sequence

from .models import Bounds, Coordinate, PolygonData


def ring_polygon(ring: Sequence[Coordinate]) -> Any | None:
    """Shapely polygon for a ring, or ``None`` when it has two points or fewer.

    An explicit closing point is not counted, and neither are repeats: a ring
    with two distinct points or fewer encloses nothing.
    """
    points = list(ring)
    if len(points) > 1 and points[0] == points[-1]:
        points.pop()
    if len(points) <= 2 or len(set(points)) <= 2:
        return None
    return _require_shapely_polygon_factory()(points)


def ring_area(ring: Sequence[Coordinate]) -> float:
    """Unsigned area of a ring; the last point wraps to the first."""
    polygon = ring_polygon(ring)
    if polygon is None:
        return 0.0
    return abs(float(polygon.area))


def ring_bounds(ring: Sequence[Coordinate]) -> Bounds:
    if not ring:
        raise ValueError("Cannot compute bounds of an empty ring")
    min_x, min_y, max_x, max_y = _require_shapely_multipoint_factory()(ring).bounds
    return Bounds(min_x=float(min_x), max_x=float(max_x), min_y=float(min_y), max_y=float(max_y))


def combined_bounds(polygons: Sequence[PolygonData]) -> Bounds:
    if not polygons:
        raise ValueError("Cannot compute bounds of empty polygon set")
    merged = polygons[0].bounds
    for polygon in polygons[1:]:
        merged = merged.union(polygon.bounds)
    return merged


def lat_correction_factor(center_lat: float) -> float:
    """Shrink factor for longitude spans at ``center_lat``.

    One degree of longitude covers ``cos(lat)`` times the ground distance of
    one degree of latitude, so spans are multiplied by this before an aspect
    ratio is taken.
    """
    return math.cos(math.radians(abs(center_lat)))


def build_polygon_data(rings: Sequence[Sequence[Coordinate]]) -> PolygonData | None:
    """Measure one polygon from its exterior (first) ring; ``None`` when degenerate.

    Interior rings are ignored. A polygon with no rings, an exterior ring of
    two points or fewer, or zero area is degenerate.
    """
    if not rings:
        return None
    exterior = tuple((float(x), float(y)) for x, y in rings[0])
    polygon = ring_polygon(exterior)
    if polygon is None:
        return None
    area = abs(float(polygon.area))
    if not area > 0.0:
        return None
    min_x, min_y, max_x, max_y = polygon.bounds
    bounds = Bounds(min_x=float(min_x), max_x=float(max_x), min_y=float(min_y), max_y=float(max_y))
    return PolygonData(exterior=exterior, area=area, bounds=bounds)


@lru_cache(maxsize=1)
def _require_shapely_polygon_factory() -> Any:
    try:
        from shapely.geometry import Polygon
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("shapely is required for polygon measurements") from exc
    return Polygon


@lru_cache(maxsize=1)
def _require_shapely_multipoint_factory() -> Any:
    try:
        from shapely.geometry import MultiPoint
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("shapely is required for polygon measurements") from exc
    return MultiPoint
