"""Outline engine: boundary lookup, classification, fitting and path output."""

from __future__ import annotations

import asyncio
import logging
from collections import OrderedDict
from dataclasses import dataclass
from typing import Iterable

from .boundaries import BoundaryStore
from .classify import DEFAULT_THRESHOLDS, ClassifierThresholds, PolygonClassifier, extract_polygons
from .config import AppConfig, OutlineConfig
from .extra_outlines import ExtraOutlineLoader
from .models import ClassifiedPolygons, OutlineResult, OutlineStats, PolygonData, SecondaryOutline
from .policies import OutlinePolicies, load_outline_policies
from .polygon_math import combined_bounds
from .projection import fit_projector, has_extent
from .ribbon import RibbonBoundaryExtractor
from .svg_path import build_svg_path

_LOGGER = logging.getLogger("countryoutlines.outline")


@dataclass(frozen=True, slots=True)
class _CountryGeometry:
    polygons: tuple[PolygonData, ...]
    classified: ClassifiedPolygons


class OutlineEngine:
    """Turn country names into card-sized SVG outlines.

    Per-country geometry is memoized in a bounded LRU cache. The synchronous
    ``outline`` only consults the boundary dataset; ``outline_async`` also
    falls back to pre-traced assets for countries the dataset cannot draw.
    """

    def __init__(
        self,
        store: BoundaryStore,
        policies: OutlinePolicies | None = None,
        settings: OutlineConfig | None = None,
        *,
        thresholds: ClassifierThresholds = DEFAULT_THRESHOLDS,
        loader: ExtraOutlineLoader | None = None,
    ) -> None:
        self.store = store
        self.policies = policies or OutlinePolicies()
        self.settings = settings or OutlineConfig()
        self.classifier = PolygonClassifier(self.policies.countries, thresholds)
        self.loader = loader
        self._cache: OrderedDict[str, _CountryGeometry] = OrderedDict()

    @classmethod
    def from_config(cls, cfg: AppConfig, store: BoundaryStore | None = None) -> OutlineEngine:
        store = store if store is not None else BoundaryStore.load(cfg.paths.boundaries)
        policies = load_outline_policies(cfg.paths.policies)
        loader = ExtraOutlineLoader.from_config(
            policies.extra_outline_files,
            cfg.assets,
            RibbonBoundaryExtractor(cfg.ribbon),
        )
        return cls(store, policies, cfg.outline, thresholds=cfg.classifier, loader=loader)

    def _geometry(self, country_name: str) -> _CountryGeometry:
        cached = self._cache.get(country_name)
        if cached is not None:
            self._cache.move_to_end(country_name)
            return cached

        feature = self.store.get(country_name)
        polygons = tuple(extract_polygons(feature)) if feature is not None else ()
        entry = _CountryGeometry(
            polygons=polygons,
            classified=self.classifier.classify(country_name, polygons),
        )
        self._cache[country_name] = entry
        while len(self._cache) > self.settings.cache_entries:
            self._cache.popitem(last=False)
        return entry

    def polygons(self, country_name: str) -> tuple[PolygonData, ...]:
        """Non-degenerate polygons of a country, largest first."""
        return self._geometry(country_name).polygons

    def classify(self, country_name: str) -> ClassifiedPolygons:
        return self._geometry(country_name).classified

    def clear_cache(self) -> None:
        self._cache.clear()
        if self.loader is not None:
            self.loader.clear_cache()

    def outline(
        self,
        country_name: str,
        *,
        max_size: float | None = None,
        secondary_size: float | None = None,
    ) -> OutlineResult:
        size = self.settings.max_size if max_size is None else max_size
        small = self.settings.secondary_size if secondary_size is None else secondary_size
        classified = self.classify(country_name)
        if not classified.main:
            if country_name not in self.store:
                _LOGGER.debug("No boundary feature named %r", country_name)
            return OutlineResult.empty(size)

        s = self.settings
        projector = fit_projector(
            combined_bounds(classified.main),
            size,
            padding=s.main_padding,
            min_axis_ratio=s.main_min_axis_ratio,
        )
        secondary: list[SecondaryOutline] = []
        for polygon in classified.secondary:
            item = self._secondary_outline(polygon, small)
            if item is not None:
                secondary.append(item)
        return OutlineResult(
            main_path=build_svg_path(classified.main, projector),
            main_dimensions=projector.dimensions,
            secondary_paths=tuple(secondary),
        )

    def _secondary_outline(self, polygon: PolygonData, size: float) -> SecondaryOutline | None:
        if not has_extent(polygon.bounds):
            return None
        s = self.settings
        projector = fit_projector(
            polygon.bounds,
            size,
            padding=s.secondary_padding,
            min_axis_ratio=s.secondary_min_axis_ratio,
        )
        path = build_svg_path((polygon,), projector)
        if not path:
            return None
        dims = projector.dimensions
        return SecondaryOutline(path=path, width=dims.width, height=dims.height)

    async def outline_async(
        self,
        country_name: str,
        *,
        max_size: float | None = None,
        secondary_size: float | None = None,
    ) -> OutlineResult:
        result = self.outline(country_name, max_size=max_size, secondary_size=secondary_size)
        if not result.is_empty or self.loader is None:
            return result
        asset = await self.loader.load(country_name)
        if asset is None:
            return result
        size = self.settings.max_size if max_size is None else max_size
        return OutlineResult.from_asset(asset, size)

    async def outline_many_async(
        self,
        country_names: Iterable[str],
        *,
        max_size: float | None = None,
        secondary_size: float | None = None,
    ) -> tuple[dict[str, OutlineResult], OutlineStats]:
        names = list(dict.fromkeys(country_names))
        results = await asyncio.gather(
            *(
                self.outline_async(name, max_size=max_size, secondary_size=secondary_size)
                for name in names
            )
        )
        stats = OutlineStats()
        by_name: dict[str, OutlineResult] = {}
        for name, result in zip(names, results):
            stats.record(name, result)
            by_name[name] = result
        return by_name, stats
