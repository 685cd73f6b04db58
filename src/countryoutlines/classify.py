"""Split a country's landmasses into main and secondary outlines."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping, Sequence

from .models import ClassificationPolicy, ClassifiedPolygons, GeoFeature, PolygonData
from .polygon_math import build_polygon_data

_LOGGER = logging.getLogger("countryoutlines.classify")

_DEFAULT_POLICY = ClassificationPolicy()


@dataclass(frozen=True, slots=True)
class ClassifierThresholds:
    """Proximity (degrees) and significance (share of anchor area) tuning.

    The values are empirical; revisit them if new country shapes classify
    poorly.
    """

    default_proximity_deg: float = 15.0
    exclude_distant_proximity_deg: float = 10.0
    extra_wide_proximity_deg: float = 35.0
    include_all_nearby_proximity_deg: float = 25.0
    default_significance: float = 0.03
    include_all_nearby_significance: float = 0.001
    max_secondary: int = 3

    def proximity_for(self, policy: ClassificationPolicy) -> float:
        if policy.exclude_distant:
            return self.exclude_distant_proximity_deg
        if policy.extra_wide_proximity:
            return self.extra_wide_proximity_deg
        if policy.include_all_nearby:
            return self.include_all_nearby_proximity_deg
        return self.default_proximity_deg

    def significance_for(self, policy: ClassificationPolicy) -> float:
        if policy.include_all_nearby:
            return self.include_all_nearby_significance
        return self.default_significance


DEFAULT_THRESHOLDS = ClassifierThresholds()


def extract_polygons(feature: GeoFeature) -> list[PolygonData]:
    """Measure every polygon of ``feature``, largest area first.

    Degenerate members are dropped. The sort is stable so equal-area members
    keep dataset order.
    """
    polygons: list[PolygonData] = []
    dropped = 0
    for rings in feature.polygons:
        data = build_polygon_data(rings)
        if data is None:
            dropped += 1
            continue
        polygons.append(data)
    if dropped:
        _LOGGER.debug("Dropped %d degenerate polygon(s) from %s", dropped, feature.name)
    polygons.sort(key=lambda item: -item.area)
    return polygons


class PolygonClassifier:
    """Anchor on the largest landmass and group the rest around it."""

    def __init__(
        self,
        policies: Mapping[str, ClassificationPolicy] | None = None,
        thresholds: ClassifierThresholds = DEFAULT_THRESHOLDS,
    ) -> None:
        self.policies = dict(policies or {})
        self.thresholds = thresholds

    def policy_for(self, country_name: str) -> ClassificationPolicy:
        return self.policies.get(country_name, _DEFAULT_POLICY)

    def classify(self, country_name: str, polygons: Sequence[PolygonData]) -> ClassifiedPolygons:
        """Classify area-descending ``polygons`` of one country.

        A polygon joins the main outline only when it is both close to the
        anchor on each axis and at least the significance share of its area.
        """
        if not polygons:
            return ClassifiedPolygons(main=(), secondary=())

        policy = self.policy_for(country_name)
        proximity = self.thresholds.proximity_for(policy)
        significance = self.thresholds.significance_for(policy)

        anchor = polygons[0]
        min_area = anchor.area * significance
        main: list[PolygonData] = [anchor]
        secondary: list[PolygonData] = []
        for polygon in polygons[1:]:
            lon_diff = abs(polygon.center_lon - anchor.center_lon)
            lat_diff = abs(polygon.center_lat - anchor.center_lat)
            is_close = lon_diff < proximity and lat_diff < proximity
            is_significant = polygon.area >= min_area
            if is_close and is_significant:
                main.append(polygon)
            else:
                secondary.append(polygon)

        kept = secondary[: self.thresholds.max_secondary]
        if len(secondary) > len(kept):
            _LOGGER.debug(
                "%s: %d secondary landmass(es) beyond the first %d not shown",
                country_name,
                len(secondary) - len(kept),
                self.thresholds.max_secondary,
            )
        return ClassifiedPolygons(main=tuple(main), secondary=tuple(kept))
