from __future__ import annotations

import asyncio
import base64

import httpx
import pytest
from prometheus_client import REGISTRY

from boxoffice.services.asset_fetcher import MAX_ASSET_BYTES, AssetFetcher

PNG = b"\x89PNG\r\n\x1a\nfake-logo"


def _handler(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path == "/logo.png":
        return httpx.Response(200, content=PNG, headers={"content-type": "image/png"})
    if path == "/page.html":
        return httpx.Response(200, text="<html></html>", headers={"content-type": "text/html"})
    if path == "/huge.png":
        return httpx.Response(
            200, content=b"x" * (MAX_ASSET_BYTES + 1), headers={"content-type": "image/png"}
        )
    if path == "/empty.png":
        return httpx.Response(200, content=b"", headers={"content-type": "image/png"})
    if path == "/timeout.png":
        raise httpx.ConnectTimeout("timed out", request=request)
    return httpx.Response(404)


def _fetch(url: str | None) -> str | None:
    fetcher = AssetFetcher(transport=httpx.MockTransport(_handler))
    return asyncio.run(fetcher.fetch_data_uri(url))


def test_image_becomes_data_uri() -> None:
    uri = _fetch("https://cdn.example.com/logo.png")
    assert uri == "data:image/png;base64," + base64.b64encode(PNG).decode()


def test_empty_url_is_skipped_without_counting_a_failure() -> None:
    before = REGISTRY.get_sample_value("asset_fetch_failures_total") or 0.0
    assert _fetch(None) is None
    assert _fetch("  ") is None
    assert (REGISTRY.get_sample_value("asset_fetch_failures_total") or 0.0) == before


def test_failures_degrade_to_none() -> None:
    before = REGISTRY.get_sample_value("asset_fetch_failures_total") or 0.0
    for path in ("/missing.png", "/page.html", "/huge.png", "/empty.png", "/timeout.png"):
        assert _fetch(f"https://cdn.example.com{path}") is None
    after = REGISTRY.get_sample_value("asset_fetch_failures_total") or 0.0
    assert after - before == 5


@pytest.mark.parametrize("url", ["http://[::1", "https://cdn.example.com:port/logo.png"])
def test_malformed_url_degrades_to_none(url: str) -> None:
    before = REGISTRY.get_sample_value("asset_fetch_failures_total") or 0.0
    assert _fetch(url) is None
    assert REGISTRY.get_sample_value("asset_fetch_failures_total") == before + 1


def test_shared_client_is_used_when_given() -> None:
    fetcher = AssetFetcher(transport=httpx.MockTransport(_handler))

    async def run() -> list[str | None]:
        async with fetcher.client() as client:
            return await asyncio.gather(
                fetcher.fetch_data_uri("https://cdn.example.com/logo.png", client),
                fetcher.fetch_data_uri("https://cdn.example.com/missing.png", client),
            )

    logo, missing = asyncio.run(run())
    assert logo is not None and missing is None
