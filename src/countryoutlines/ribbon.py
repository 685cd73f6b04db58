"""Recover a fillable outer boundary from a traced border "ribbon" path.

Some small-country assets were traced from bitmaps as a single closed path
that walks out along one coastline, loops the far tip and walks back along a
parallel inner edge. Filling that path directly draws a thin band, so the
outer edge alone is pulled out as the silhouette:

* single ribbon: ``start -> far tip -> back to start``; keep ``0 -> tip``.
* two ribbons (for example a coast split by a bay): the path returns near its
  start part-way through. Keep the outer edge of the first ribbon up to its
  tip, then the outer edge of the second ribbon walked back from its tip to
  the near-start dip.

All sampling is done on a flattened polyline with arc-length arithmetic, so
no rendering surface is involved.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from .models import Coordinate
from .svg_path import PathDataError, count_subpaths, first_subpath, flatten_path

_LOGGER = logging.getLogger("countryoutlines.ribbon")


class RibbonExtractionError(ValueError):
    """Raised when a path has no usable ribbon structure."""


@dataclass(frozen=True, slots=True)
class RibbonSettings:
    samples: int = 400
    dip_threshold: float = 0.10
    search_start: float = 0.15
    search_end: float = 0.85
    boundary_intervals: int = 60
    turnaround_ratio: float = 0.999
    min_path_length: int = 500
    curve_segments: int = 16


DEFAULT_RIBBON_SETTINGS = RibbonSettings()


class PolylineSampler:
    """Point-at-fraction lookups along a polyline by arc length."""

    def __init__(self, points: Sequence[Coordinate]) -> None:
        if len(points) < 2:
            raise RibbonExtractionError("Need at least two points to sample a path")
        self._points = np.asarray(points, dtype=float)
        seg = np.hypot(*np.diff(self._points, axis=0).T)
        self._cumulative = np.concatenate(([0.0], np.cumsum(seg)))

    @property
    def total_length(self) -> float:
        return float(self._cumulative[-1])

    def point_at(self, fraction: float) -> Coordinate:
        total = self.total_length
        target = min(max(fraction, 0.0), 1.0) * total
        idx = int(np.searchsorted(self._cumulative, target, side="right"))
        idx = min(max(idx, 1), len(self._cumulative) - 1)
        seg_start = self._cumulative[idx - 1]
        seg_len = self._cumulative[idx] - seg_start
        p0 = self._points[idx - 1]
        p1 = self._points[idx]
        if seg_len <= 0:
            return (float(p1[0]), float(p1[1]))
        t = (target - seg_start) / seg_len
        return (float(p0[0] + (p1[0] - p0[0]) * t), float(p0[1] + (p1[1] - p0[1]) * t))


@dataclass(frozen=True, slots=True)
class RibbonBoundary:
    points: tuple[Coordinate, ...]
    two_ribbon: bool

    def to_path(self) -> str:
        parts = [
            f"{'M' if idx == 0 else 'L'}{x:.0f},{y:.0f}" for idx, (x, y) in enumerate(self.points)
        ]
        return " ".join(parts) + " Z"


class RibbonBoundaryExtractor:
    def __init__(self, settings: RibbonSettings = DEFAULT_RIBBON_SETTINGS) -> None:
        self.settings = settings

    def extract(self, d: str) -> RibbonBoundary:
        polylines = flatten_path(d, curve_segments=self.settings.curve_segments)
        points: list[Coordinate] = [pt for line in polylines for pt in line]
        sampler = PolylineSampler(points)
        if not math.isfinite(sampler.total_length):
            raise RibbonExtractionError("Path length is not finite")
        if sampler.total_length <= 0:
            raise RibbonExtractionError("Path has zero length")
        return self.extract_from_sampler(sampler)

    def extract_from_sampler(self, sampler: PolylineSampler) -> RibbonBoundary:
        cfg = self.settings
        n = cfg.samples
        fractions = [i / n for i in range(n + 1)]
        start_x, start_y = sampler.point_at(0.0)
        distances = [
            math.hypot(x - start_x, y - start_y)
            for x, y in (sampler.point_at(frac) for frac in fractions)
        ]
        max_distance = max(distances)
        if max_distance <= 0:
            raise RibbonExtractionError("Path never leaves its start point")

        dip = self._find_dip(fractions, distances, max_distance)
        if dip is not None:
            peak1 = _argmax_fraction(fractions, distances, lambda f: f <= dip)
            peak2 = _argmax_fraction(fractions, distances, lambda f: f >= dip)
            if peak1 <= 0:
                raise RibbonExtractionError("No usable peak before the near-start dip")
            outward = _sample_run(sampler, 0.0, peak1, cfg.boundary_intervals)
            backward = _sample_run(sampler, peak2, dip, cfg.boundary_intervals)
            _LOGGER.debug("Two-ribbon path: peak1=%.3f dip=%.3f peak2=%.3f", peak1, dip, peak2)
            return RibbonBoundary(points=tuple(outward + backward), two_ribbon=True)

        turnaround = 0.5
        limit = max_distance * cfg.turnaround_ratio
        for frac, dist in zip(fractions, distances):
            if dist >= limit:
                turnaround = frac
                break
        _LOGGER.debug("Single-ribbon path: turnaround=%.3f", turnaround)
        return RibbonBoundary(
            points=tuple(_sample_run(sampler, 0.0, turnaround, cfg.boundary_intervals)),
            two_ribbon=False,
        )

    def _find_dip(
        self,
        fractions: Sequence[float],
        distances: Sequence[float],
        max_distance: float,
    ) -> float | None:
        """Fraction of the deepest sample in the first near-start run, if any."""
        cfg = self.settings
        threshold = max_distance * cfg.dip_threshold
        first = int(math.floor(cfg.samples * cfg.search_start))
        last = int(math.floor(cfg.samples * cfg.search_end))
        i = first
        while i <= last:
            if distances[i] < threshold:
                min_idx = i
                while i <= last and distances[i] < threshold:
                    if distances[i] < distances[min_idx]:
                        min_idx = i
                    i += 1
                dip = fractions[min_idx]
                return dip if dip > 0 else None
            i += 1
        return None

    def outer_paths_for_element(self, d: str) -> str:
        """Pick the fillable outline for one ``<path>`` element's data.

        Two or more sub-paths mean an outer plus inner edge; keep the first.
        A long single sub-path is treated as a ribbon; a short one (atolls and
        other specks) is used as-is. Ribbon failures fall back to the raw data.
        """
        if count_subpaths(d) >= 2:
            return first_subpath(d)
        if len(d) <= self.settings.min_path_length:
            return d
        try:
            return self.extract(d).to_path()
        except (RibbonExtractionError, PathDataError) as exc:
            _LOGGER.warning("Ribbon extraction failed, using raw path: %s", exc)
            return d


def _argmax_fraction(fractions: Sequence[float], distances: Sequence[float], keep) -> float:
    best_frac = 0.0
    best_dist = 0.0
    for frac, dist in zip(fractions, distances):
        if keep(frac) and dist > best_dist:
            best_dist = dist
            best_frac = frac
    return best_frac


def _sample_run(sampler: PolylineSampler, begin: float, end: float, intervals: int) -> list[Coordinate]:
    return [sampler.point_at(begin + (end - begin) * (i / intervals)) for i in range(intervals + 1)]
