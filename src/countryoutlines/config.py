"""Typed configuration loader for `config.yaml`.

Every section is optional; a missing key falls back to the engine defaults.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, cast

import yaml

from .classify import DEFAULT_THRESHOLDS, ClassifierThresholds
from .projection import (
    MAIN_MIN_AXIS_RATIO,
    MAIN_PADDING,
    SECONDARY_MIN_AXIS_RATIO,
    SECONDARY_PADDING,
)
from .ribbon import DEFAULT_RIBBON_SETTINGS, RibbonSettings

DEFAULT_USER_AGENT = "country-outlines/0.1"


def _mapping(value: Any, field_name: str) -> Mapping[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ValueError(f"Expected mapping for '{field_name}'")
    return cast(Mapping[str, Any], value)


def _str(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Expected non-empty string for '{field_name}'")
    return value.strip()


def _opt_str(value: Any, field_name: str) -> str | None:
    if value is None:
        return None
    return _str(value, field_name)


def _int(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"Expected integer for '{field_name}'")
    return value


def _float(value: Any, field_name: str) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    raise ValueError(f"Expected float for '{field_name}'")


def _positive(value: float, field_name: str) -> float:
    if value <= 0:
        raise ValueError(f"{field_name} must be > 0")
    return value


def _ratio(value: float, field_name: str) -> float:
    if not 0 < value <= 1:
        raise ValueError(f"{field_name} must be in (0, 1]")
    return value


def _path_from_cfg(value: Any, field_name: str, root_dir: Path) -> Path:
    raw = _str(value, field_name)
    p = Path(raw)
    return p if p.is_absolute() else root_dir / p


@dataclass(frozen=True, slots=True)
class PathsConfig:
    boundaries: Path
    policies: Path
    qa_dir: Path
    logs_dir: Path

    @property
    def build_directories(self) -> tuple[Path, ...]:
        return (self.qa_dir, self.logs_dir)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], root_dir: Path) -> PathsConfig:
        return cls(
            boundaries=_path_from_cfg(
                raw.get("boundaries", "data/world-countries.geojson"), "paths.boundaries", root_dir
            ),
            policies=_path_from_cfg(
                raw.get("policies", "data/outline_policies.yaml"), "paths.policies", root_dir
            ),
            qa_dir=_path_from_cfg(raw.get("qa_dir", "build/qa"), "paths.qa_dir", root_dir),
            logs_dir=_path_from_cfg(raw.get("logs_dir", "build/logs"), "paths.logs_dir", root_dir),
        )


@dataclass(frozen=True, slots=True)
class OutlineConfig:
    max_size: float = 140.0
    secondary_size: float = 36.0
    main_padding: float = MAIN_PADDING
    secondary_padding: float = SECONDARY_PADDING
    main_min_axis_ratio: float = MAIN_MIN_AXIS_RATIO
    secondary_min_axis_ratio: float = SECONDARY_MIN_AXIS_RATIO
    cache_entries: int = 256

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> OutlineConfig:
        d = cls()
        max_size = _positive(_float(raw.get("max_size", d.max_size), "outline.max_size"), "outline.max_size")
        secondary_size = _positive(
            _float(raw.get("secondary_size", d.secondary_size), "outline.secondary_size"),
            "outline.secondary_size",
        )
        main_padding = _float(raw.get("main_padding", d.main_padding), "outline.main_padding")
        secondary_padding = _float(
            raw.get("secondary_padding", d.secondary_padding), "outline.secondary_padding"
        )
        if main_padding < 0 or secondary_padding < 0:
            raise ValueError("outline paddings must be >= 0")
        if main_padding * 2 >= max_size:
            raise ValueError("outline.main_padding leaves no room inside outline.max_size")
        if secondary_padding * 2 >= secondary_size:
            raise ValueError("outline.secondary_padding leaves no room inside outline.secondary_size")
        cache_entries = _int(raw.get("cache_entries", d.cache_entries), "outline.cache_entries")
        if cache_entries < 1:
            raise ValueError("outline.cache_entries must be >= 1")
        return cls(
            max_size=max_size,
            secondary_size=secondary_size,
            main_padding=main_padding,
            secondary_padding=secondary_padding,
            main_min_axis_ratio=_ratio(
                _float(raw.get("main_min_axis_ratio", d.main_min_axis_ratio), "outline.main_min_axis_ratio"),
                "outline.main_min_axis_ratio",
            ),
            secondary_min_axis_ratio=_ratio(
                _float(
                    raw.get("secondary_min_axis_ratio", d.secondary_min_axis_ratio),
                    "outline.secondary_min_axis_ratio",
                ),
                "outline.secondary_min_axis_ratio",
            ),
            cache_entries=cache_entries,
        )


def _thresholds_from_mapping(raw: Mapping[str, Any]) -> ClassifierThresholds:
    d = DEFAULT_THRESHOLDS
    degree_fields = (
        "default_proximity_deg",
        "exclude_distant_proximity_deg",
        "extra_wide_proximity_deg",
        "include_all_nearby_proximity_deg",
    )
    values: dict[str, Any] = {}
    for name in degree_fields:
        key = f"classifier.{name}"
        values[name] = _positive(_float(raw.get(name, getattr(d, name)), key), key)
    for name in ("default_significance", "include_all_nearby_significance"):
        key = f"classifier.{name}"
        values[name] = _ratio(_float(raw.get(name, getattr(d, name)), key), key)
    max_secondary = _int(raw.get("max_secondary", d.max_secondary), "classifier.max_secondary")
    if max_secondary < 0:
        raise ValueError("classifier.max_secondary must be >= 0")
    return ClassifierThresholds(max_secondary=max_secondary, **values)


def _ribbon_from_mapping(raw: Mapping[str, Any]) -> RibbonSettings:
    d = DEFAULT_RIBBON_SETTINGS
    samples = _int(raw.get("samples", d.samples), "ribbon.samples")
    boundary_intervals = _int(raw.get("boundary_intervals", d.boundary_intervals), "ribbon.boundary_intervals")
    min_path_length = _int(raw.get("min_path_length", d.min_path_length), "ribbon.min_path_length")
    curve_segments = _int(raw.get("curve_segments", d.curve_segments), "ribbon.curve_segments")
    if samples < 10:
        raise ValueError("ribbon.samples must be >= 10")
    if boundary_intervals < 1 or curve_segments < 1:
        raise ValueError("ribbon.boundary_intervals and ribbon.curve_segments must be >= 1")
    if min_path_length < 0:
        raise ValueError("ribbon.min_path_length must be >= 0")
    search_start = _float(raw.get("search_start", d.search_start), "ribbon.search_start")
    search_end = _float(raw.get("search_end", d.search_end), "ribbon.search_end")
    if not 0 <= search_start < search_end <= 1:
        raise ValueError("ribbon.search_start/search_end must satisfy 0 <= start < end <= 1")
    return RibbonSettings(
        samples=samples,
        dip_threshold=_ratio(
            _float(raw.get("dip_threshold", d.dip_threshold), "ribbon.dip_threshold"),
            "ribbon.dip_threshold",
        ),
        search_start=search_start,
        search_end=search_end,
        boundary_intervals=boundary_intervals,
        turnaround_ratio=_ratio(
            _float(raw.get("turnaround_ratio", d.turnaround_ratio), "ribbon.turnaround_ratio"),
            "ribbon.turnaround_ratio",
        ),
        min_path_length=min_path_length,
        curve_segments=curve_segments,
    )


@dataclass(frozen=True, slots=True)
class AssetsConfig:
    """Where pre-traced outline SVGs come from: a URL prefix or a directory."""

    base_url: str | None = None
    directory: Path | None = None
    request_timeout_s: float = 20.0
    user_agent: str = DEFAULT_USER_AGENT
    max_retries: int = 3
    retry_backoff_s: float = 1.0

    @property
    def enabled(self) -> bool:
        return self.base_url is not None or self.directory is not None

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], root_dir: Path) -> AssetsConfig:
        d = cls()
        directory_raw = raw.get("directory")
        directory = (
            None if directory_raw is None else _path_from_cfg(directory_raw, "assets.directory", root_dir)
        )
        max_retries = _int(raw.get("max_retries", d.max_retries), "assets.max_retries")
        if max_retries < 0:
            raise ValueError("assets.max_retries must be >= 0")
        return cls(
            base_url=_opt_str(raw.get("base_url"), "assets.base_url"),
            directory=directory,
            request_timeout_s=_positive(
                _float(raw.get("request_timeout_s", d.request_timeout_s), "assets.request_timeout_s"),
                "assets.request_timeout_s",
            ),
            user_agent=_str(raw.get("user_agent", d.user_agent), "assets.user_agent"),
            max_retries=max_retries,
            retry_backoff_s=_positive(
                _float(raw.get("retry_backoff_s", d.retry_backoff_s), "assets.retry_backoff_s"),
                "assets.retry_backoff_s",
            ),
        )


@dataclass(frozen=True, slots=True)
class AppConfig:
    source_path: Path | None
    paths: PathsConfig
    outline: OutlineConfig
    classifier: ClassifierThresholds
    ribbon: RibbonSettings
    assets: AssetsConfig

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], source_path: Path | None = None) -> AppConfig:
        root_dir = source_path.parent.resolve() if source_path is not None else Path.cwd()
        return cls(
            source_path=source_path.resolve() if source_path is not None else None,
            paths=PathsConfig.from_mapping(_mapping(raw.get("paths"), "paths"), root_dir),
            outline=OutlineConfig.from_mapping(_mapping(raw.get("outline"), "outline")),
            classifier=_thresholds_from_mapping(_mapping(raw.get("classifier"), "classifier")),
            ribbon=_ribbon_from_mapping(_mapping(raw.get("ribbon"), "ribbon")),
            assets=AssetsConfig.from_mapping(_mapping(raw.get("assets"), "assets"), root_dir),
        )


def load_config(path: str | Path) -> AppConfig:
    """Load and validate the YAML config file into typed settings."""
    cfg_path = Path(path).resolve()
    if not cfg_path.exists():
        raise FileNotFoundError(f"Config file not found: {cfg_path}")
    with cfg_path.open("r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh)
    if raw is None:
        raw = {}
    if not isinstance(raw, Mapping):
        raise ValueError("Top-level config must be a YAML mapping")
    return AppConfig.from_mapping(cast(Mapping[str, Any], raw), cfg_path)
