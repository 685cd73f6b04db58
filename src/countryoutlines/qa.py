"""QA gallery: every requested outline drawn inline in one HTML page."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from html import escape
from pathlib import Path
from typing import Iterable, Mapping, Sequence

from .models import OutlineResult, OutlineStats
from .outline import OutlineEngine

_MAIN_STYLE = "fill='currentColor' stroke='currentColor' fill-opacity='0.2' stroke-opacity='0.7'"
_SECONDARY_STYLE = "fill='currentColor' stroke='currentColor' fill-opacity='0.15' stroke-opacity='0.5'"


@dataclass(slots=True)
class QaReport:
    output_html: Path | None = None
    stats: OutlineStats = field(default_factory=OutlineStats)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    infos: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def _fmt(value: float) -> str:
    return f"{value:.1f}"


def render_outline_svg(country_name: str, result: OutlineResult) -> str:
    """Inline SVG markup for one outline, or a placeholder when it is empty."""
    dims = result.main_dimensions
    label = escape(f"Outline of {country_name}", quote=True)
    if result.main_path:
        return (
            f"<svg viewBox='0 0 {_fmt(dims.width)} {_fmt(dims.height)}' "
            f"width='{_fmt(dims.width)}' height='{_fmt(dims.height)}' aria-label='{label}'>"
            f"<path d='{escape(result.main_path, quote=True)}' stroke-width='1.5' {_MAIN_STYLE}/>"
            "</svg>"
        )
    if result.asset is not None:
        _, vb_height = result.asset.view_box_size
        # Traced assets are in tenths of points with the y axis pointing up.
        paths = "".join(
            f"<path d='{escape(d, quote=True)}' stroke-width='1.5' {_MAIN_STYLE}/>"
            for d in result.asset.raw_paths
        )
        return (
            f"<svg viewBox='{escape(result.asset.view_box, quote=True)}' "
            f"width='{_fmt(dims.width)}' height='{_fmt(dims.height)}' aria-label='{label}'>"
            f"<g transform='translate(0,{vb_height:g}) scale(0.1,-0.1)'>{paths}</g>"
            "</svg>"
        )
    return (
        f"<div class='placeholder' style='width:{_fmt(dims.width)}px;height:{_fmt(dims.height)}px'>"
        "No outline</div>"
    )


def _render_secondaries(result: OutlineResult) -> str:
    if not result.secondary_paths:
        return ""
    items = [
        f"<svg viewBox='0 0 {_fmt(item.width)} {_fmt(item.height)}' "
        f"width='{_fmt(item.width)}' height='{_fmt(item.height)}'>"
        f"<path d='{escape(item.path, quote=True)}' stroke-width='1' {_SECONDARY_STYLE}/></svg>"
        for item in result.secondary_paths
    ]
    return "<div class='secondary'>" + "".join(items) + "</div>"


def _status(result: OutlineResult) -> tuple[str, str]:
    if result.main_path:
        return ("boundary", "BOUNDARY")
    if result.asset is not None:
        return ("asset", "ASSET")
    return ("empty", "NO_OUTLINE")


def write_qa_gallery(
    *,
    results: Mapping[str, OutlineResult],
    output_html: Path,
    max_columns: int = 4,
) -> Path:
    """Generate an HTML gallery for outline visual QA."""
    rows: list[str] = []
    for name in sorted(results, key=str.casefold):
        result = results[name]
        status, status_label = _status(result)
        rows.append(
            "\n".join(
                [
                    "<div class='card'>",
                    f"  <h3>{escape(name)}</h3>",
                    f"  <p class='status {status}'>{status_label}</p>",
                    "  <div class='outline'>",
                    f"    {render_outline_svg(name, result)}",
                    f"    {_render_secondaries(result)}",
                    "  </div>",
                    "</div>",
                ]
            )
        )

    html = "\n".join(
        [
            "<!doctype html>",
            "<html lang='en'>",
            "<head>",
            "  <meta charset='utf-8'>",
            "  <meta name='viewport' content='width=device-width, initial-scale=1'>",
            "  <title>country-outlines QA</title>",
            "  <style>",
            "    body { font-family: Arial, sans-serif; margin: 16px; color: #2a4d69; }",
            "    .grid { "
            f"display: grid; grid-template-columns: repeat({max_columns}, minmax(200px, 1fr)); "
            "gap: 16px; }",
            "    .card { border: 1px solid #ddd; border-radius: 8px; padding: 12px; }",
            "    .card h3 { margin: 0 0 8px 0; font-size: 16px; color: #222; }",
            "    .status { margin: 0 0 8px 0; font-weight: 700; font-size: 13px; }",
            "    .status.boundary { color: #197a2f; }",
            "    .status.asset { color: #99610f; }",
            "    .status.empty { color: #b22d2d; }",
            "    .outline { display: flex; align-items: center; gap: 8px; }",
            "    .secondary { display: flex; flex-direction: column; gap: 4px; opacity: 0.6; }",
            "    .placeholder {",
            "      display: flex;",
            "      align-items: center;",
            "      justify-content: center;",
            "      border: 1px dashed #bbb;",
            "      color: #666;",
            "      border-radius: 6px;",
            "      font-size: 12px;",
            "    }",
            "  </style>",
            "</head>",
            "<body>",
            "  <h1>Country Outlines QA</h1>",
            "  <div class='grid'>",
            *rows,
            "  </div>",
            "</body>",
            "</html>",
            "",
        ]
    )
    output_html.parent.mkdir(parents=True, exist_ok=True)
    output_html.write_text(html, encoding="utf-8")
    return output_html


def format_qa_lines(report: QaReport) -> Iterable[str]:
    stats = report.stats
    yield (
        f"[INFO] Outlines: total={stats.total} boundary={stats.from_boundaries} "
        f"asset={stats.from_assets} empty={stats.empty}"
    )
    if stats.names_empty:
        yield f"[WARN] No outline for: {_format_name_list(stats.names_empty)}"
    for info in report.infos:
        yield f"[INFO] {info}"
    for warning in report.warnings:
        yield f"[WARN] {warning}"
    for error in report.errors:
        yield f"[ERROR] {error}"
    if report.ok and report.output_html is not None:
        yield f"[OK] QA gallery written to {report.output_html}"


def _format_name_list(values: Sequence[str], limit: int = 12) -> str:
    if len(values) <= limit:
        return ", ".join(values)
    shown = ", ".join(values[:limit])
    return f"{shown}, ... (+{len(values) - limit} more)"


def run_qa(
    engine: OutlineEngine,
    *,
    output_html: Path,
    country_names: Sequence[str] = (),
    max_columns: int = 4,
) -> QaReport:
    """Outline the requested countries (all known ones by default) into a gallery."""
    report = QaReport()
    names = list(country_names)
    if not names:
        names = engine.store.names()
        if engine.loader is not None:
            names += sorted(name for name in engine.loader.files if name not in engine.store)
        report.infos.append(f"No country filter given; outlining all {len(names)} known names")
    unknown = [
        name
        for name in names
        if name not in engine.store
        and (engine.loader is None or engine.loader.filename_for(name) is None)
    ]
    if unknown:
        report.warnings.append(f"Not in boundary data or asset table: {_format_name_list(unknown)}")

    results, stats = asyncio.run(engine.outline_many_async(names))
    report.stats = stats
    report.output_html = write_qa_gallery(
        results=results,
        output_html=output_html,
        max_columns=max_columns,
    )
    return report
