"""Latitude-corrected linear fit of geographic bounds into an SVG box."""

from __future__ import annotations

from dataclasses import dataclass

from .models import Bounds, Coordinate, SvgDimensions
from .polygon_math import lat_correction_factor

MAIN_PADDING = 8.0
SECONDARY_PADDING = 4.0
MAIN_MIN_AXIS_RATIO = 0.35
SECONDARY_MIN_AXIS_RATIO = 0.4


def has_extent(bounds: Bounds) -> bool:
    """False when the corrected box collapses to a line or a point."""
    lat_correction = lat_correction_factor(bounds.center_lat)
    return bounds.width * lat_correction != 0 and bounds.height != 0


def fit_dimensions(
    bounds: Bounds,
    max_size: float,
    *,
    padding: float = MAIN_PADDING,
    min_axis_ratio: float = MAIN_MIN_AXIS_RATIO,
) -> SvgDimensions:
    """Size a box no larger than ``max_size`` on either side for ``bounds``.

    The minor axis never drops below ``max_size * min_axis_ratio`` so extreme
    aspect ratios still get a visible box. Zero-extent bounds get a plain
    ``max_size`` square.
    """
    if max_size <= 0:
        raise ValueError("max_size must be > 0")
    lat_correction = lat_correction_factor(bounds.center_lat)
    geo_width = bounds.width * lat_correction
    geo_height = bounds.height
    if geo_width == 0 or geo_height == 0:
        return SvgDimensions.square(max_size, lat_correction)

    aspect_ratio = geo_width / geo_height
    floor = max_size * min_axis_ratio
    if aspect_ratio > 1:
        width = max_size
        height = max(max_size / aspect_ratio, floor)
    else:
        height = max_size
        width = max(max_size * aspect_ratio, floor)

    available_width = width - padding * 2
    available_height = height - padding * 2
    scale = min(available_width / geo_width, available_height / geo_height)
    offset_x = padding + (available_width - geo_width * scale) / 2
    offset_y = padding + (available_height - geo_height * scale) / 2
    return SvgDimensions(
        width=width,
        height=height,
        scale=scale,
        offset_x=offset_x,
        offset_y=offset_y,
        lat_correction=lat_correction,
    )


@dataclass(frozen=True, slots=True)
class Projector:
    """Map (lon, lat) into the screen space of one fitted box."""

    bounds: Bounds
    dimensions: SvgDimensions

    def transform(self, lon: float, lat: float) -> Coordinate:
        dims = self.dimensions
        x = (lon - self.bounds.min_x) * dims.lat_correction * dims.scale + dims.offset_x
        # Screen y grows downward while latitude grows northward.
        y = (self.bounds.max_y - lat) * dims.scale + dims.offset_y
        return (x, y)


def fit_projector(
    bounds: Bounds,
    max_size: float,
    *,
    padding: float = MAIN_PADDING,
    min_axis_ratio: float = MAIN_MIN_AXIS_RATIO,
) -> Projector:
    dims = fit_dimensions(bounds, max_size, padding=padding, min_axis_ratio=min_axis_ratio)
    return Projector(bounds=bounds, dimensions=dims)
