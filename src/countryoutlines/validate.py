"""Validation layer for config, policy tables and the boundary dataset."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from .boundaries import BoundaryDataError, BoundaryStore
from .classify import extract_polygons
from .config import AppConfig
from .extra_outlines import list_asset_files
from .policies import OutlinePolicies, load_outline_policies


@dataclass(slots=True)
class ValidationReport:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    infos: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)

    def add_info(self, msg: str) -> None:
        self.infos.append(msg)


class Validator:
    """Top-level input and schema validator."""

    def __init__(self, cfg: AppConfig) -> None:
        self.cfg = cfg

    def run(self) -> ValidationReport:
        report = ValidationReport()
        store = self._validate_boundaries(report)
        policies = self._validate_policies(report)
        if store is not None and policies is not None:
            self._validate_policy_names(report, store, policies)
        if policies is not None:
            self._validate_assets(report, store, policies)
        return report

    def _validate_boundaries(self, report: ValidationReport) -> BoundaryStore | None:
        path = self.cfg.paths.boundaries
        if not path.exists():
            report.add_error(f"Missing boundary dataset: {path}")
            return None
        try:
            store = BoundaryStore.load(path)
        except (BoundaryDataError, RuntimeError, OSError) as exc:
            report.add_error(f"Failed loading boundary dataset '{path}': {exc}")
            return None
        if len(store) == 0:
            report.add_error(f"Boundary dataset has no usable features: {path}")
            return store
        report.add_info(f"Loaded {len(store)} country boundaries from {path}")
        if store.skipped:
            report.add_warning(f"Skipped {len(store.skipped)} unusable feature(s) in {path}")

        undrawable = [feature.name for feature in store if not extract_polygons(feature)]
        if undrawable:
            report.add_warning(
                f"{len(undrawable)} feature(s) have only degenerate polygons: "
                + _format_name_list(sorted(undrawable))
            )
        return store

    def _validate_policies(self, report: ValidationReport) -> OutlinePolicies | None:
        path = self.cfg.paths.policies
        if not path.exists():
            report.add_warning(f"Policy file not found, using defaults: {path}")
            return OutlinePolicies()
        try:
            policies = load_outline_policies(path)
        except ValueError as exc:
            report.add_error(f"Failed parsing outline policies: {exc}")
            return None
        report.add_info(
            f"Loaded {len(policies.countries)} classifier policies and "
            f"{len(policies.extra_outline_files)} outline asset entries"
        )
        return policies

    def _validate_policy_names(
        self,
        report: ValidationReport,
        store: BoundaryStore,
        policies: OutlinePolicies,
    ) -> None:
        missing = sorted(name for name in policies.countries if name not in store)
        if missing:
            report.add_warning(
                "Classifier policies name countries absent from boundary data: "
                + _format_name_list(missing)
            )

    def _validate_assets(
        self,
        report: ValidationReport,
        store: BoundaryStore | None,
        policies: OutlinePolicies,
    ) -> None:
        table = policies.extra_outline_files
        if not table:
            return
        assets = self.cfg.assets
        if not assets.enabled:
            report.add_warning(
                "extra_outline_files is set but no assets.base_url or assets.directory is configured"
            )
            return
        if assets.directory is not None:
            if not assets.directory.is_dir():
                report.add_error(f"Outline asset directory not found: {assets.directory}")
                return
            available = list_asset_files(assets.directory)
            missing = sorted(name for name, filename in table.items() if filename not in available)
            if missing:
                report.add_error(
                    "Outline asset files missing for: " + _format_name_list(missing)
                )
        if store is not None:
            drawable = sorted(
                name
                for name in table
                if (feature := store.get(name)) is not None and extract_polygons(feature)
            )
            if drawable:
                report.add_info(
                    "Asset table entries shadowed by boundary data: " + _format_name_list(drawable)
                )


def format_report_lines(report: ValidationReport) -> Iterable[str]:
    if report.infos:
        for info in report.infos:
            yield f"[INFO] {info}"
    if report.warnings:
        for warning in report.warnings:
            yield f"[WARN] {warning}"
    if report.errors:
        for error in report.errors:
            yield f"[ERROR] {error}"
    if report.ok:
        yield "[OK] Validation completed with no errors."


def _format_name_list(values: list[str], limit: int = 12) -> str:
    if len(values) <= limit:
        return ", ".join(values)
    shown = ", ".join(values[:limit])
    return f"{shown}, ... (+{len(values) - limit} more)"
