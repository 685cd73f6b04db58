"""Pre-traced outline SVGs for countries missing from the boundary dataset."""

from __future__ import annotations

import asyncio
import logging
import time
from pathlib import Path
from typing import Any, Mapping
from urllib.parse import quote

import requests
from lxml import etree

from .config import AssetsConfig
from .models import DEFAULT_VIEW_BOX, ExtraOutlineAsset
from .ribbon import RibbonBoundaryExtractor

_RETRYABLE_HTTP_STATUS = {429, 500, 502, 503, 504}

_LOGGER = logging.getLogger("countryoutlines.extra_outlines")


class AssetFetcher:
    """Read outline documents from a local directory or over HTTP."""

    def __init__(self, cfg: AssetsConfig, session: requests.Session | None = None) -> None:
        self.cfg = cfg
        self._session = session or requests.Session()
        self._session.headers.update({"User-Agent": cfg.user_agent})
        self._max_retries = max(int(cfg.max_retries), 0)
        self._retry_backoff_s = max(float(cfg.retry_backoff_s), 0.01)

    def url_for(self, filename: str) -> str:
        if self.cfg.base_url is None:
            raise RuntimeError("assets.base_url is not configured")
        return f"{self.cfg.base_url.rstrip('/')}/{quote(filename)}"

    def fetch(self, filename: str) -> bytes:
        if self.cfg.directory is not None:
            return (self.cfg.directory / filename).read_bytes()
        return self._request_get(self.url_for(filename)).content

    def _request_get(self, url: str) -> requests.Response:
        attempts = self._max_retries + 1
        for attempt in range(attempts):
            response = self._session.get(url, timeout=self.cfg.request_timeout_s)
            if response.status_code not in _RETRYABLE_HTTP_STATUS:
                response.raise_for_status()
                return response
            if attempt >= self._max_retries:
                response.raise_for_status()
            delay_s = self._compute_retry_delay_s(response=response, attempt=attempt)
            _LOGGER.warning(
                "Retryable response %s for %s; retrying in %.1fs (%d/%d)",
                response.status_code,
                url,
                delay_s,
                attempt + 1,
                self._max_retries,
            )
            response.close()
            time.sleep(delay_s)
        raise RuntimeError("Unreachable retry loop in outline asset fetcher")

    def _compute_retry_delay_s(self, *, response: requests.Response, attempt: int) -> float:
        retry_after_s = _parse_retry_after_seconds(response.headers.get("Retry-After"))
        exponential_s = self._retry_backoff_s * (2**attempt)
        return min(max(exponential_s, retry_after_s), 60.0)


def _parse_retry_after_seconds(raw: str | None) -> float:
    if raw is None:
        return 0.0
    value = raw.strip()
    if not value:
        return 0.0
    try:
        parsed = float(value)
    except ValueError:
        return 0.0
    return max(parsed, 0.0)


def parse_outline_svg(
    content: bytes | str,
    extractor: RibbonBoundaryExtractor | None = None,
) -> ExtraOutlineAsset | None:
    """Pull the viewBox and one fillable outline per ``<path>`` from a document.

    Returns ``None`` when the document has no usable path data. Raises
    ``ValueError`` for documents that are not well-formed SVG.
    """
    extractor = extractor or RibbonBoundaryExtractor()
    data = content.encode("utf-8") if isinstance(content, str) else content
    parser = etree.XMLParser(resolve_entities=False, no_network=True, huge_tree=False)
    try:
        root: Any = etree.fromstring(data, parser=parser)
    except etree.XMLSyntaxError as exc:
        raise ValueError(f"Outline document is not well-formed XML: {exc}") from exc
    if root is None or etree.QName(root).localname != "svg":
        raise ValueError("Outline document root is not <svg>")

    view_box = (root.get("viewBox") or "").strip() or DEFAULT_VIEW_BOX
    paths: list[str] = []
    for element in root.iter("{*}path"):
        d = (element.get("d") or "").strip()
        if not d:
            continue
        paths.append(extractor.outer_paths_for_element(d))
    if not paths:
        return None
    return ExtraOutlineAsset(view_box=view_box, raw_paths=tuple(paths))


class ExtraOutlineLoader:
    """Async, de-duplicated loading of outline assets keyed by filename.

    Successful parses are cached for the loader's lifetime. Failures are
    logged and yield ``None`` so the caller renders "no outline"; they are not
    cached, so a later call retries.
    """

    def __init__(
        self,
        files: Mapping[str, str],
        fetcher: AssetFetcher | None,
        extractor: RibbonBoundaryExtractor | None = None,
    ) -> None:
        self.files = dict(files)
        self.fetcher = fetcher
        self.extractor = extractor or RibbonBoundaryExtractor()
        self._cache: dict[str, ExtraOutlineAsset] = {}
        self._inflight: dict[str, asyncio.Task[ExtraOutlineAsset | None]] = {}

    @classmethod
    def from_config(
        cls,
        files: Mapping[str, str],
        cfg: AssetsConfig,
        extractor: RibbonBoundaryExtractor | None = None,
    ) -> ExtraOutlineLoader:
        fetcher = AssetFetcher(cfg) if cfg.enabled else None
        return cls(files, fetcher, extractor)

    def filename_for(self, country_name: str) -> str | None:
        return self.files.get(country_name)

    def cached(self, filename: str) -> ExtraOutlineAsset | None:
        return self._cache.get(filename)

    def clear_cache(self) -> None:
        self._cache.clear()

    async def load(self, country_name: str) -> ExtraOutlineAsset | None:
        filename = self.filename_for(country_name)
        if filename is None:
            return None
        if self.fetcher is None:
            _LOGGER.debug("No asset source configured; skipping %s", filename)
            return None
        cached = self.cached(filename)
        if cached is not None:
            return cached

        task = self._inflight.get(filename)
        if task is None:
            task = asyncio.create_task(self._fetch_and_parse(filename, self.fetcher))
            self._inflight[filename] = task
            task.add_done_callback(lambda done, key=filename: self._forget(key, done))
        # A cancelled waiter must not cancel the fetch other waiters share.
        return await asyncio.shield(task)

    def _forget(self, filename: str, task: asyncio.Task[Any]) -> None:
        if self._inflight.get(filename) is task:
            del self._inflight[filename]

    async def _fetch_and_parse(self, filename: str, fetcher: AssetFetcher) -> ExtraOutlineAsset | None:
        try:
            content = await asyncio.to_thread(fetcher.fetch, filename)
            asset = parse_outline_svg(content, self.extractor)
        except (requests.RequestException, OSError, ValueError) as exc:
            _LOGGER.warning("Failed loading outline asset %s: %s", filename, exc)
            return None
        if asset is None:
            _LOGGER.warning("Outline asset %s has no path data", filename)
            return None
        self._cache[filename] = asset
        return asset


def list_asset_files(directory: Path) -> set[str]:
    if not directory.is_dir():
        return set()
    return {path.name for path in directory.iterdir() if path.is_file()}
