"""Domain models shared across the outline engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

Coordinate = tuple[float, float]
Ring = tuple[Coordinate, ...]

DEFAULT_VIEW_BOX = "0 0 600 450"


def _require_str(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Expected non-empty string for '{field_name}'")
    return value.strip()


@dataclass(frozen=True, slots=True)
class Bounds:
    min_x: float
    max_x: float
    min_y: float
    max_y: float

    @property
    def center_lat(self) -> float:
        return (self.min_y + self.max_y) / 2.0

    @property
    def center_lon(self) -> float:
        return (self.min_x + self.max_x) / 2.0

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    def union(self, other: Bounds) -> Bounds:
        return Bounds(
            min_x=min(self.min_x, other.min_x),
            max_x=max(self.max_x, other.max_x),
            min_y=min(self.min_y, other.min_y),
            max_y=max(self.max_y, other.max_y),
        )


@dataclass(frozen=True, slots=True)
class GeoFeature:
    """One named boundary feature as read from the dataset.

    ``polygons`` always holds a list of polygons, each a list of rings; a
    Polygon geometry is stored as a single-member list.
    """

    name: str
    geometry_type: str
    polygons: tuple[tuple[Ring, ...], ...]

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> GeoFeature:
        properties = data.get("properties")
        if not isinstance(properties, Mapping):
            raise ValueError("Expected mapping for 'properties'")
        name = _require_str(properties.get("name"), "properties.name")
        geometry = data.get("geometry")
        if not isinstance(geometry, Mapping):
            raise ValueError(f"Expected mapping for 'geometry' of feature '{name}'")
        geometry_type = _require_str(geometry.get("type"), "geometry.type")
        coordinates = geometry.get("coordinates")
        if geometry_type == "Polygon":
            polygons = (_parse_polygon(coordinates, name),)
        elif geometry_type == "MultiPolygon":
            if not isinstance(coordinates, list):
                raise ValueError(f"Expected list of polygons for '{name}'")
            polygons = tuple(_parse_polygon(item, name) for item in coordinates)
        else:
            raise ValueError(f"Unsupported geometry type '{geometry_type}' for '{name}'")
        return cls(name=name, geometry_type=geometry_type, polygons=polygons)


def _parse_polygon(raw: Any, name: str) -> tuple[Ring, ...]:
    if not isinstance(raw, list):
        raise ValueError(f"Expected list of rings for '{name}'")
    rings: list[Ring] = []
    for ring_raw in raw:
        if not isinstance(ring_raw, list):
            raise ValueError(f"Expected list of coordinates for '{name}'")
        ring: list[Coordinate] = []
        for point in ring_raw:
            if not isinstance(point, (list, tuple)) or len(point) < 2:
                raise ValueError(f"Invalid coordinate {point!r} in '{name}'")
            lon, lat = point[0], point[1]
            if not isinstance(lon, (int, float)) or not isinstance(lat, (int, float)):
                raise ValueError(f"Non-numeric coordinate {point!r} in '{name}'")
            ring.append((float(lon), float(lat)))
        rings.append(tuple(ring))
    return tuple(rings)


@dataclass(frozen=True, slots=True)
class PolygonData:
    """Derived geometry for one landmass.

    Only the exterior ring is kept; holes are not drawn.
    """

    exterior: Ring
    area: float
    bounds: Bounds

    @property
    def center_lat(self) -> float:
        return self.bounds.center_lat

    @property
    def center_lon(self) -> float:
        return self.bounds.center_lon


@dataclass(frozen=True, slots=True)
class ClassificationPolicy:
    """Per-country membership in the three classifier policy sets."""

    exclude_distant: bool = False
    include_all_nearby: bool = False
    extra_wide_proximity: bool = False


@dataclass(frozen=True, slots=True)
class ClassifiedPolygons:
    main: tuple[PolygonData, ...]
    secondary: tuple[PolygonData, ...]


@dataclass(frozen=True, slots=True)
class SvgDimensions:
    width: float
    height: float
    scale: float
    offset_x: float
    offset_y: float
    lat_correction: float

    @classmethod
    def square(cls, size: float, lat_correction: float = 1.0) -> SvgDimensions:
        return cls(
            width=size,
            height=size,
            scale=1.0,
            offset_x=0.0,
            offset_y=0.0,
            lat_correction=lat_correction,
        )

    def to_dict(self) -> dict[str, float]:
        return {
            "width": self.width,
            "height": self.height,
            "scale": self.scale,
            "offset_x": self.offset_x,
            "offset_y": self.offset_y,
            "lat_correction": self.lat_correction,
        }


@dataclass(frozen=True, slots=True)
class SecondaryOutline:
    path: str
    width: float
    height: float

    def to_dict(self) -> dict[str, Any]:
        return {"path": self.path, "width": self.width, "height": self.height}


@dataclass(frozen=True, slots=True)
class ExtraOutlineAsset:
    """Pre-traced outline document: its viewBox and per-element path data."""

    view_box: str
    raw_paths: tuple[str, ...]

    @property
    def view_box_size(self) -> tuple[float, float]:
        parts = self.view_box.replace(",", " ").split()
        try:
            values = [float(part) for part in parts]
        except ValueError:
            values = []
        default_w, default_h = (float(v) for v in DEFAULT_VIEW_BOX.split()[2:])
        width = values[2] if len(values) > 2 and values[2] > 0 else default_w
        height = values[3] if len(values) > 3 and values[3] > 0 else default_h
        return (width, height)

    def display_size(self, max_size: float) -> tuple[float, float]:
        vb_width, vb_height = self.view_box_size
        return (max_size, max_size * (vb_height / vb_width))

    def to_dict(self) -> dict[str, Any]:
        return {"view_box": self.view_box, "raw_paths": list(self.raw_paths)}


@dataclass(frozen=True, slots=True)
class OutlineResult:
    """The only value handed to a renderer."""

    main_path: str
    main_dimensions: SvgDimensions
    secondary_paths: tuple[SecondaryOutline, ...] = ()
    asset: ExtraOutlineAsset | None = None

    @classmethod
    def empty(cls, max_size: float) -> OutlineResult:
        return cls(main_path="", main_dimensions=SvgDimensions.square(max_size))

    @classmethod
    def from_asset(cls, asset: ExtraOutlineAsset, max_size: float) -> OutlineResult:
        width, height = asset.display_size(max_size)
        dims = SvgDimensions(
            width=width,
            height=height,
            scale=1.0,
            offset_x=0.0,
            offset_y=0.0,
            lat_correction=1.0,
        )
        return cls(main_path="", main_dimensions=dims, asset=asset)

    @property
    def is_empty(self) -> bool:
        return not self.main_path and self.asset is None

    def to_dict(self) -> dict[str, Any]:
        return {
            "main_path": self.main_path,
            "main_dimensions": self.main_dimensions.to_dict(),
            "secondary_paths": [item.to_dict() for item in self.secondary_paths],
            "asset": self.asset.to_dict() if self.asset is not None else None,
        }


@dataclass(slots=True)
class OutlineStats:
    """Counters collected while rendering a batch of outlines."""

    total: int = 0
    from_boundaries: int = 0
    from_assets: int = 0
    empty: int = 0
    names_empty: list[str] = field(default_factory=list)

    def record(self, name: str, result: OutlineResult) -> None:
        self.total += 1
        if result.main_path:
            self.from_boundaries += 1
        elif result.asset is not None:
            self.from_assets += 1
        else:
            self.empty += 1
            self.names_empty.append(name)


def polygons_as_tuples(raw: Sequence[Sequence[Sequence[Sequence[float]]]]) -> tuple[tuple[Ring, ...], ...]:
    """Normalize nested coordinate lists into the immutable ring layout."""
    return tuple(
        tuple(tuple((float(pt[0]), float(pt[1])) for pt in ring) for ring in polygon)
        for polygon in raw
    )
