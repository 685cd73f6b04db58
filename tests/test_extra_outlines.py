from __future__ import annotations

import asyncio
import threading
import time
from pathlib import Path
from unittest import mock

import pytest
import requests

from countryoutlines.config import AssetsConfig
from countryoutlines.extra_outlines import (
    AssetFetcher,
    ExtraOutlineLoader,
    list_asset_files,
    parse_outline_svg,
)

SVG_NS = "http://www.w3.org/2000/svg"

MONACO_SVG = (
    f"<svg xmlns='{SVG_NS}' viewBox='0 0 300 420'>"
    "<g><path d='M10 10 L200 10 L200 300 Z M50 50 L60 60 Z'/></g>"
    "<path d='M1 1 L2 2 L3 1 Z'/>"
    "<path d=''/>"
    "</svg>"
).encode("utf-8")


class _FakeFetcher:
    def __init__(self, payloads: dict[str, bytes], *, delay_s: float = 0.0, failures: int = 0) -> None:
        self.payloads = payloads
        self.delay_s = delay_s
        self.failures = failures
        self.calls = 0
        self._lock = threading.Lock()

    def fetch(self, filename: str) -> bytes:
        with self._lock:
            self.calls += 1
            fail = self.failures > 0
            if fail:
                self.failures -= 1
        if self.delay_s:
            time.sleep(self.delay_s)
        if fail:
            raise requests.ConnectionError("network down")
        return self.payloads[filename]


def _response(status: int, content: bytes = b"", headers: dict[str, str] | None = None) -> mock.MagicMock:
    response = mock.MagicMock()
    response.status_code = status
    response.content = content
    response.headers = headers or {}
    if status >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"{status} error")
    return response


class TestParseOutlineSvg:
    def test_extracts_view_box_and_outer_paths(self) -> None:
        asset = parse_outline_svg(MONACO_SVG)
        assert asset is not None
        assert asset.view_box == "0 0 300 420"
        assert asset.raw_paths == ("M10 10 L200 10 L200 300 Z", "M1 1 L2 2 L3 1 Z")

    def test_default_view_box(self) -> None:
        asset = parse_outline_svg("<svg><path d='M0 0 L1 1 Z'/></svg>")
        assert asset is not None
        assert asset.view_box == "0 0 600 450"
        assert asset.view_box_size == (600.0, 450.0)
        assert asset.display_size(140) == pytest.approx((140.0, 105.0))

    def test_no_paths_returns_none(self) -> None:
        assert parse_outline_svg(f"<svg xmlns='{SVG_NS}'><rect/></svg>") is None

    def test_non_svg_root_is_rejected(self) -> None:
        with pytest.raises(ValueError):
            parse_outline_svg("<html><path d='M0 0 L1 1'/></html>")

    def test_malformed_document_is_rejected(self) -> None:
        with pytest.raises(ValueError):
            parse_outline_svg(b"<svg><path d='M0 0'")


class TestAssetFetcher:
    def test_url_quotes_filename(self) -> None:
        fetcher = AssetFetcher(AssetsConfig(base_url="https://example.test/extraoutlines/"), session=mock.MagicMock())
        assert fetcher.url_for("Cape Verde.svg") == "https://example.test/extraoutlines/Cape%20Verde.svg"

    def test_reads_local_directory(self, tmp_path: Path) -> None:
        (tmp_path / "Malta.svg").write_bytes(b"<svg/>")
        fetcher = AssetFetcher(AssetsConfig(directory=tmp_path), session=mock.MagicMock())
        assert fetcher.fetch("Malta.svg") == b"<svg/>"

    def test_retries_retryable_status(self, monkeypatch: pytest.MonkeyPatch) -> None:
        sleeps: list[float] = []
        monkeypatch.setattr("countryoutlines.extra_outlines.time.sleep", sleeps.append)
        session = mock.MagicMock()
        session.get.side_effect = [
            _response(503, headers={"Retry-After": "2"}),
            _response(200, content=b"<svg/>"),
        ]
        cfg = AssetsConfig(base_url="https://example.test", max_retries=2, retry_backoff_s=0.5)
        assert AssetFetcher(cfg, session=session).fetch("a.svg") == b"<svg/>"
        assert session.get.call_count == 2
        assert sleeps == [2.0]

    def test_gives_up_after_max_retries(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("countryoutlines.extra_outlines.time.sleep", lambda _s: None)
        session = mock.MagicMock()
        session.get.side_effect = [_response(503), _response(503)]
        cfg = AssetsConfig(base_url="https://example.test", max_retries=1)
        with pytest.raises(requests.HTTPError):
            AssetFetcher(cfg, session=session).fetch("a.svg")

    def test_client_errors_are_not_retried(self) -> None:
        session = mock.MagicMock()
        session.get.side_effect = [_response(404)]
        cfg = AssetsConfig(base_url="https://example.test", max_retries=3)
        with pytest.raises(requests.HTTPError):
            AssetFetcher(cfg, session=session).fetch("missing.svg")
        assert session.get.call_count == 1


class TestExtraOutlineLoader:
    def test_unknown_country_has_no_outline(self) -> None:
        loader = ExtraOutlineLoader({"Monaco": "Monaco.svg"}, _FakeFetcher({}))
        assert loader.filename_for("Atlantis") is None
        assert asyncio.run(loader.load("Atlantis")) is None

    def test_missing_source_yields_none(self) -> None:
        loader = ExtraOutlineLoader({"Monaco": "Monaco.svg"}, None)
        assert asyncio.run(loader.load("Monaco")) is None

    def test_successful_load_is_cached(self) -> None:
        fetcher = _FakeFetcher({"Monaco.svg": MONACO_SVG})
        loader = ExtraOutlineLoader({"Monaco": "Monaco.svg"}, fetcher)
        first = asyncio.run(loader.load("Monaco"))
        second = asyncio.run(loader.load("Monaco"))
        assert first is not None and first is second
        assert fetcher.calls == 1
        assert loader.cached("Monaco.svg") is first

    def test_concurrent_loads_share_one_fetch(self) -> None:
        fetcher = _FakeFetcher({"Monaco.svg": MONACO_SVG}, delay_s=0.05)
        loader = ExtraOutlineLoader({"Monaco": "Monaco.svg", "Monte Carlo": "Monaco.svg"}, fetcher)

        async def scenario() -> list[object]:
            return await asyncio.gather(
                loader.load("Monaco"),
                loader.load("Monaco"),
                loader.load("Monte Carlo"),
            )

        results = asyncio.run(scenario())
        assert fetcher.calls == 1
        assert results[0] is not None
        assert all(item is results[0] for item in results)

    def test_cancelled_waiter_does_not_cancel_shared_fetch(self) -> None:
        fetcher = _FakeFetcher({"Monaco.svg": MONACO_SVG}, delay_s=0.05)
        loader = ExtraOutlineLoader({"Monaco": "Monaco.svg"}, fetcher)

        async def scenario() -> tuple[asyncio.Task[object], object]:
            first = asyncio.create_task(loader.load("Monaco"))
            second = asyncio.create_task(loader.load("Monaco"))
            await asyncio.sleep(0)
            first.cancel()
            result = await second
            await asyncio.sleep(0)
            return first, result

        first, result = asyncio.run(scenario())
        assert first.cancelled()
        assert result is not None
        assert fetcher.calls == 1

    def test_failures_are_logged_and_not_cached(self, caplog: pytest.LogCaptureFixture) -> None:
        fetcher = _FakeFetcher({"Monaco.svg": MONACO_SVG}, failures=1)
        loader = ExtraOutlineLoader({"Monaco": "Monaco.svg"}, fetcher)
        assert asyncio.run(loader.load("Monaco")) is None
        assert "Failed loading outline asset Monaco.svg" in caplog.text
        assert asyncio.run(loader.load("Monaco")) is not None
        assert fetcher.calls == 2

    def test_unparseable_asset_yields_none(self) -> None:
        fetcher = _FakeFetcher({"Broken.svg": b"not xml at all"})
        loader = ExtraOutlineLoader({"Broken": "Broken.svg"}, fetcher)
        assert asyncio.run(loader.load("Broken")) is None

    def test_from_config_without_source_disables_fetching(self) -> None:
        loader = ExtraOutlineLoader.from_config({"Monaco": "Monaco.svg"}, AssetsConfig())
        assert loader.fetcher is None


def test_list_asset_files(tmp_path: Path) -> None:
    (tmp_path / "a.svg").write_text("<svg/>", encoding="utf-8")
    (tmp_path / "nested").mkdir()
    assert list_asset_files(tmp_path) == {"a.svg"}
    assert list_asset_files(tmp_path / "missing") == set()
