"""Best-effort download of organizer and sponsor logos.

A missing logo is never a reason to fail a ticket run: every failure mode
(bad URL, timeout, 404, HTML error page) comes back as ``None`` and the
document simply prints the name instead.
"""

from __future__ import annotations

import base64
import logging

import httpx

from boxoffice.core.config import SETTINGS
from boxoffice.core.metrics import ASSET_FETCH_FAILURES

logger = logging.getLogger(__name__)

# Logos are small; refuse anything that looks like a full-size photo.
MAX_ASSET_BYTES = 2 * 1024 * 1024


class AssetFetcher:
    """Fetch images over HTTP and return them as data URIs."""

    def __init__(
        self,
        *,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._timeout = timeout if timeout is not None else SETTINGS.asset_fetch_timeout
        self._transport = transport

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self._timeout,
            transport=self._transport,
            follow_redirects=True,
        )

    async def fetch_data_uri(
        self, url: str | None, client: httpx.AsyncClient | None = None
    ) -> str | None:
        if not url or not url.strip():
            return None

        if client is None:
            async with self.client() as own_client:
                return await self._fetch(own_client, url.strip())
        return await self._fetch(client, url.strip())

    async def _fetch(self, client: httpx.AsyncClient, url: str) -> str | None:
        try:
            resp = await client.get(url)
            resp.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            return self._failed(url, f"{type(e).__name__}: {e}")

        content_type = resp.headers.get("content-type", "").split(";")[0].strip()
        if not content_type.startswith("image/"):
            return self._failed(url, f"unexpected content-type {content_type!r}")
        if not resp.content or len(resp.content) > MAX_ASSET_BYTES:
            return self._failed(url, f"unusable size {len(resp.content)} bytes")

        b64 = base64.b64encode(resp.content).decode("ascii")
        return f"data:{content_type};base64,{b64}"

    @staticmethod
    def _failed(url: str, reason: str) -> None:
        ASSET_FETCH_FAILURES.inc()
        logger.warning("Logo fetch failed, continuing without it  url=%s reason=%s", url, reason)
        return None
