"""CLI entrypoint for country-outlines."""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path
from typing import Sequence

from .boundaries import BoundaryDataError
from .config import AppConfig, load_config
from .outline import OutlineEngine
from .qa import format_qa_lines, run_qa
from .util import outline_json, prepare_build_directories, setup_logging, write_outline_json
from .validate import Validator, format_report_lines

LOGGER = logging.getLogger("countryoutlines.cli")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="country-outlines",
        description="Card-sized SVG country outlines from boundary data.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_common(p: argparse.ArgumentParser) -> None:
        p.add_argument("--config", default="config.yaml", help="Path to YAML config.")
        p.add_argument("--verbose", action="store_true", help="Enable debug logs.")

    outline_p = subparsers.add_parser("outline", help="Print one country's outline as JSON.")
    add_common(outline_p)
    outline_p.add_argument("name", help="Country name exactly as in the boundary dataset.")
    outline_p.add_argument("--max-size", type=float, default=None, help="Main outline box size.")
    outline_p.add_argument(
        "--secondary-size",
        type=float,
        default=None,
        help="Box size for each secondary landmass.",
    )
    outline_p.add_argument("--output", default=None, help="Write JSON here instead of stdout.")

    qa_p = subparsers.add_parser("qa", help="Write an HTML gallery of outlines.")
    add_common(qa_p)
    qa_p.add_argument(
        "--country",
        action="append",
        default=[],
        help="Country name filter. Can be repeated. Defaults to every known name.",
    )
    qa_p.add_argument("--max-columns", type=int, default=4, help="Gallery grid columns.")

    validate_p = subparsers.add_parser("validate", help="Validate config, policies and boundary data.")
    add_common(validate_p)

    return parser


def _load_and_setup(args: argparse.Namespace) -> AppConfig:
    cfg = load_config(args.config)
    setup_logging(cfg.paths.logs_dir / "outlines.log", verbose=args.verbose)
    for path in prepare_build_directories(cfg.paths):
        LOGGER.debug("Created %s", path)
    return cfg


def _load_engine(cfg: AppConfig) -> OutlineEngine | None:
    try:
        return OutlineEngine.from_config(cfg)
    except (FileNotFoundError, BoundaryDataError, RuntimeError, ValueError) as exc:
        LOGGER.error("Failed loading outline engine: %s", exc)
        return None


def _run_outline(
    cfg: AppConfig,
    *,
    name: str,
    max_size: float | None,
    secondary_size: float | None,
    output: str | None,
) -> int:
    if (max_size is not None and max_size <= 0) or (secondary_size is not None and secondary_size <= 0):
        LOGGER.error("--max-size and --secondary-size must be > 0")
        return 2
    engine = _load_engine(cfg)
    if engine is None:
        return 1
    result = asyncio.run(
        engine.outline_async(name, max_size=max_size, secondary_size=secondary_size)
    )
    if result.is_empty:
        LOGGER.warning("No outline available for %r", name)
    if output:
        written = write_outline_json(Path(output), name, result)
        LOGGER.info("Outline written to %s", written)
    else:
        print(outline_json(name, result))
    return 0


def _run_qa(cfg: AppConfig, *, countries: Sequence[str], max_columns: int) -> int:
    engine = _load_engine(cfg)
    if engine is None:
        return 1
    report = run_qa(
        engine,
        output_html=cfg.paths.qa_dir / "index.html",
        country_names=countries,
        max_columns=max(max_columns, 1),
    )
    for line in format_qa_lines(report):
        LOGGER.info(line)
    return 0 if report.ok else 1


def _run_validate(cfg: AppConfig) -> int:
    report = Validator(cfg).run()
    for line in format_report_lines(report):
        LOGGER.info(line)
    return 0 if report.ok else 1


def _dispatch(args: argparse.Namespace) -> int:
    cfg = _load_and_setup(args)
    command = str(args.command)
    if command == "outline":
        return _run_outline(
            cfg,
            name=str(args.name),
            max_size=args.max_size,
            secondary_size=args.secondary_size,
            output=args.output,
        )
    if command == "qa":
        countries = [str(item) for item in args.country]
        return _run_qa(cfg, countries=countries, max_columns=int(args.max_columns))
    if command == "validate":
        return _run_validate(cfg)
    raise ValueError(f"Unknown command: {command}")


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    return _dispatch(args)


if __name__ == "__main__":
    raise SystemExit(main())
