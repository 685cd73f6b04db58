"""Logging setup, build directories and outline JSON output."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from .config import PathsConfig
from .models import OutlineResult

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# Connection-pool chatter from asset downloads.
_NOISY_LOGGERS = ("urllib3",)


def setup_logging(log_file: Path | None = None, verbose: bool = False) -> None:
    """Configure root logging to console and optionally a file."""
    level = logging.DEBUG if verbose else logging.INFO
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if verbose else logging.WARNING)


def prepare_build_directories(paths: PathsConfig) -> tuple[Path, ...]:
    created = tuple(path for path in paths.build_directories if not path.is_dir())
    for path in paths.build_directories:
        path.mkdir(parents=True, exist_ok=True)
    return created


def outline_payload(country_name: str, result: OutlineResult) -> dict[str, Any]:
    """JSON-ready view of one outline; ``source`` tells where it came from."""
    if result.main_path:
        source = "boundary"
    elif result.asset is not None:
        source = "asset"
    else:
        source = "none"
    return {"country": country_name, "source": source, **result.to_dict()}


def outline_json(country_name: str, result: OutlineResult) -> str:
    return json.dumps(outline_payload(country_name, result), indent=2, ensure_ascii=False)


def write_outline_json(path: Path, country_name: str, result: OutlineResult) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(outline_json(country_name, result) + "\n", encoding="utf-8")
    return path
