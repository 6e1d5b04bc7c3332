from __future__ import annotations

import time

import httpx
from loguru import logger

from sitescout.config import settings
from sitescout.core.models.interfaces import FetchResult
from sitescout.core.scrape.browser import BrowserSession
from sitescout.core.scrape.heuristics import needs_javascript
from sitescout.services.logger import log_fetch


def default_headers() -> dict[str, str]:
    return {
        "User-Agent": settings.http_user_agent,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Language": settings.http_accept_language,
    }


class ScrapeService:
    """Cheapest-first page acquisition: plain HTTP, then a headless browser.

    The browser session is injected and shared; whoever owns this service is
    responsible for calling :meth:`close` exactly once at shutdown.
    """

    def __init__(
        self,
        *,
        browser: BrowserSession | None = None,
        http_client: httpx.AsyncClient | None = None,
        http_timeout: float | None = None,
        min_html_length: int | None = None,
        min_text_length: int | None = None,
    ):
        self.browser = browser or BrowserSession()
        self.http_timeout = max(
            float(http_timeout if http_timeout is not None else settings.http_timeout_seconds),
            1.0,
        )
        self.min_html_length = int(
            min_html_length if min_html_length is not None else settings.spa_min_html_length
        )
        self.min_text_length = int(
            min_text_length if min_text_length is not None else settings.spa_min_text_length
        )
        self._owns_client = http_client is None
        self._client = http_client

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.http_timeout,
                follow_redirects=True,
                headers=default_headers(),
            )
        return self._client

    def needs_javascript(self, html: str) -> bool:
        return needs_javascript(
            html,
            min_html_length=self.min_html_length,
            min_text_length=self.min_text_length,
        )

    async def fetch_http(self, url: str, *, timeout: float | None = None) -> tuple[str, int]:
        """Plain GET; returns ``(body, status)`` for any status, raises on network errors."""
        response = await self._http().get(
            url,
            headers=default_headers(),
            timeout=timeout or self.http_timeout,
        )
        return response.text, int(response.status_code)

    async def fetch_with_browser(self, url: str) -> tuple[str, int]:
        return await self.browser.render(url)

    async def fetch(self, url: str) -> FetchResult:
        started = time.monotonic()
        try:
            html, status = await self.fetch_http(url)
            if status == 200 and not self.needs_javascript(html):
                log_fetch(url, status, False, int((time.monotonic() - started) * 1000))
                return FetchResult(content=html, http_status=status, used_browser=False)
            logger.debug(f"HTTP tier insufficient for {url} (status={status}); rendering")
        except Exception as exc:
            logger.debug(f"HTTP tier failed for {url}: {exc!r}; rendering")

        try:
            html, status = await self.fetch_with_browser(url)
        except Exception as exc:
            log_fetch(
                url,
                0,
                True,
                int((time.monotonic() - started) * 1000),
                error=str(exc) or type(exc).__name__,
            )
            raise
        log_fetch(url, status, True, int((time.monotonic() - started) * 1000))
        return FetchResult(content=html, http_status=status, used_browser=True)

    async def close(self) -> None:
        client, self._client = self._client, None
        try:
            if client is not None and self._owns_client:
                await client.aclose()
        finally:
            await self.browser.close()
