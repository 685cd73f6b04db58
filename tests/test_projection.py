from __future__ import annotations

import math

import pytest

from countryoutlines.models import Bounds
from countryoutlines.projection import (
    SECONDARY_MIN_AXIS_RATIO,
    SECONDARY_PADDING,
    fit_dimensions,
    fit_projector,
    has_extent,
)


class TestFitDimensions:
    def test_wide_shape_hits_minor_axis_floor(self) -> None:
        dims = fit_dimensions(Bounds(0, 40, 0, 10), 100)
        assert dims.width == 100
        assert dims.height == pytest.approx(35.0)

    def test_tall_shape_fills_height(self) -> None:
        dims = fit_dimensions(Bounds(0, 5, 0, 8), 100)
        assert dims.height == 100
        expected_width = 100 * (5 * math.cos(math.radians(4)) / 8)
        assert dims.width == pytest.approx(expected_width)

    @pytest.mark.parametrize(
        "bounds",
        [
            Bounds(0, 40, 0, 10),
            Bounds(-170, 170, -60, 80),
            Bounds(10, 10.001, 50, 60),
            Bounds(100, 180, -50, -10),
            Bounds(-5, 5, 70, 71),
        ],
    )
    @pytest.mark.parametrize("max_size", [36, 100, 140])
    def test_never_exceeds_max_size(self, bounds: Bounds, max_size: float) -> None:
        dims = fit_dimensions(bounds, max_size)
        assert dims.width <= max_size
        assert dims.height <= max_size
        assert min(dims.width, dims.height) >= max_size * 0.35 - 1e-9

    def test_content_is_centred_in_box(self) -> None:
        bounds = Bounds(-20, 30, 35, 60)
        dims = fit_dimensions(bounds, 140)
        geo_width = bounds.width * dims.lat_correction
        assert 2 * dims.offset_x + geo_width * dims.scale == pytest.approx(dims.width)
        assert 2 * dims.offset_y + bounds.height * dims.scale == pytest.approx(dims.height)

    def test_zero_extent_gives_plain_square(self) -> None:
        dims = fit_dimensions(Bounds(3, 3, 10, 20), 80)
        assert (dims.width, dims.height, dims.scale, dims.offset_x, dims.offset_y) == (80, 80, 1, 0, 0)

    def test_rejects_non_positive_size(self) -> None:
        with pytest.raises(ValueError):
            fit_dimensions(Bounds(0, 1, 0, 1), 0)

    def test_secondary_settings_use_larger_floor(self) -> None:
        dims = fit_dimensions(
            Bounds(0, 40, 0, 2),
            36,
            padding=SECONDARY_PADDING,
            min_axis_ratio=SECONDARY_MIN_AXIS_RATIO,
        )
        assert dims.height == pytest.approx(36 * 0.4)


class TestProjector:
    def test_corners_land_inside_padding(self) -> None:
        bounds = Bounds(0, 40, 0, 10)
        projector = fit_projector(bounds, 100)
        dims = projector.dimensions
        x0, y0 = projector.transform(0, 10)
        x1, y1 = projector.transform(40, 0)
        assert (x0, y0) == pytest.approx((dims.offset_x, dims.offset_y))
        assert 8 - 1e-9 <= x0 and x1 <= dims.width - 8 + 1e-9
        assert 8 - 1e-9 <= y0 and y1 <= dims.height - 8 + 1e-9

    def test_north_is_up(self) -> None:
        projector = fit_projector(Bounds(0, 10, 0, 10), 100)
        _, y_north = projector.transform(5, 9)
        _, y_south = projector.transform(5, 1)
        assert y_north < y_south


def test_has_extent() -> None:
    assert has_extent(Bounds(0, 1, 0, 1))
    assert not has_extent(Bounds(0, 0, 0, 1))
    assert not has_extent(Bounds(0, 1, 5, 5))
