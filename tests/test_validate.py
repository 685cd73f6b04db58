from __future__ import annotations

from pathlib import Path

from countryoutlines.config import load_config
from countryoutlines.validate import ValidationReport, Validator, format_report_lines


def _run(project_dir: Path) -> ValidationReport:
    return Validator(load_config(project_dir / "config.yaml")).run()


def test_clean_project_validates(project_dir: Path) -> None:
    report = _run(project_dir)
    assert report.ok
    assert report.errors == []
    assert report.warnings == []
    assert any("Loaded 2 country boundaries" in info for info in report.infos)
    assert list(format_report_lines(report))[-1] == "[OK] Validation completed with no errors."


def test_missing_boundary_dataset_is_an_error(project_dir: Path) -> None:
    (project_dir / "data" / "world-countries.geojson").unlink()
    report = _run(project_dir)
    assert not report.ok
    assert any("Missing boundary dataset" in error for error in report.errors)


def test_unreadable_boundary_dataset_is_an_error(project_dir: Path) -> None:
    (project_dir / "data" / "world-countries.geojson").write_text("[]", encoding="utf-8")
    report = _run(project_dir)
    assert any("Failed loading boundary dataset" in error for error in report.errors)


def test_missing_policy_file_is_a_warning(project_dir: Path) -> None:
    (project_dir / "data" / "outline_policies.yaml").unlink()
    report = _run(project_dir)
    assert report.ok
    assert any("Policy file not found" in warning for warning in report.warnings)


def test_broken_policy_file_is_an_error(project_dir: Path) -> None:
    (project_dir / "data" / "outline_policies.yaml").write_text("bogus: [1]\n", encoding="utf-8")
    report = _run(project_dir)
    assert any("Failed parsing outline policies" in error for error in report.errors)


def test_policy_names_missing_from_boundaries(project_dir: Path) -> None:
    (project_dir / "data" / "outline_policies.yaml").write_text(
        "exclude_distant: [Atlantis]\n", encoding="utf-8"
    )
    report = _run(project_dir)
    assert report.ok
    assert any("Atlantis" in warning for warning in report.warnings)


def test_missing_asset_file_is_an_error(project_dir: Path) -> None:
    (project_dir / "data" / "extraoutlines" / "Monaco.svg").unlink()
    report = _run(project_dir)
    lines = list(format_report_lines(report))
    assert "[ERROR] Outline asset files missing for: Monaco" in lines


def test_asset_table_without_source_is_a_warning(project_dir: Path) -> None:
    config = project_dir / "config.yaml"
    config.write_text(
        config.read_text(encoding="utf-8").replace("assets:\n  directory: data/extraoutlines\n", ""),
        encoding="utf-8",
    )
    report = _run(project_dir)
    assert report.ok
    assert any("no assets.base_url or assets.directory" in warning for warning in report.warnings)


def test_asset_entries_shadowed_by_boundaries(project_dir: Path) -> None:
    (project_dir / "data" / "outline_policies.yaml").write_text(
        "extra_outline_files:\n  Testland: Monaco.svg\n", encoding="utf-8"
    )
    report = _run(project_dir)
    assert any("shadowed by boundary data: Testland" in info for info in report.infos)
