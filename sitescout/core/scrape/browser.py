from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any

from loguru import logger

from sitescout.config import settings


@dataclass(frozen=True, slots=True)
class RenderPolicy:
    timeout_ms: int
    settle_ms: int
    scroll_steps: int
    scroll_pause_ms: int
    post_scroll_ms: int
    wait_until: str = "networkidle"


def default_render_policy() -> RenderPolicy:
    return RenderPolicy(
        timeout_ms=max(int(settings.browser_timeout_ms), 1000),
        settle_ms=max(int(settings.browser_settle_ms), 0),
        scroll_steps=max(int(settings.browser_scroll_steps), 0),
        scroll_pause_ms=max(int(settings.browser_scroll_pause_ms), 0),
        post_scroll_ms=max(int(settings.browser_post_scroll_ms), 0),
    )


_SCROLL_SCRIPT = """
async ([steps, pauseMs]) => {
    for (let i = 0; i < steps; i++) {
        window.scrollBy(0, window.innerHeight);
        await new Promise(r => setTimeout(r, pauseMs));
    }
    window.scrollTo(0, 0);
}
"""


class BrowserSession:
    """One shared headless Chromium, launched on first use and closed once.

    Every render gets its own browser context so cookies, storage and
    navigation state never leak between targets.
    """

    def __init__(
        self,
        *,
        headless: bool | None = None,
        policy: RenderPolicy | None = None,
    ):
        self.headless = settings.browser_headless if headless is None else bool(headless)
        self.policy = policy or default_render_policy()
        self._playwright: Any | None = None
        self._browser: Any | None = None
        self._lock = asyncio.Lock()
        self._closed = False

    @property
    def started(self) -> bool:
        return self._browser is not None

    async def _launch(self) -> tuple[Any, Any]:
        try:
            from playwright.async_api import async_playwright
        except Exception as exc:  # pragma: no cover - depends on optional browser install
            raise RuntimeError("Playwright is not installed") from exc

        playwright = await async_playwright().start()
        try:
            browser = await playwright.chromium.launch(headless=self.headless)
        except Exception:
            await playwright.stop()
            raise
        return playwright, browser

    async def _ensure_browser(self) -> Any:
        if self._closed:
            raise RuntimeError("Browser session is closed")
        async with self._lock:
            if self._browser is None:
                logger.info("Launching headless browser")
                self._playwright, self._browser = await self._launch()
        return self._browser

    async def render(self, url: str) -> tuple[str, int]:
        """Navigate to *url* in an isolated context and return ``(html, status)``."""
        browser = await self._ensure_browser()
        policy = self.policy
        context = await browser.new_context(
            user_agent=settings.browser_user_agent,
            viewport={
                "width": int(settings.browser_viewport_width),
                "height": int(settings.browser_viewport_height),
            },
            locale=settings.browser_locale,
        )
        try:
            page = await context.new_page()
            response = await page.goto(
                url,
                wait_until=policy.wait_until,
                timeout=policy.timeout_ms,
            )
            if policy.settle_ms:
                await page.wait_for_timeout(policy.settle_ms)
            if policy.scroll_steps:
                # Lazy-loaded sections only render once scrolled into view.
                await page.evaluate(_SCROLL_SCRIPT, [policy.scroll_steps, policy.scroll_pause_ms])
                if policy.post_scroll_ms:
                    await page.wait_for_timeout(policy.post_scroll_ms)
            html = await page.content()
            status = int(response.status) if response is not None else 200
            return html, status
        finally:
            await context.close()

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        async with self._lock:
            browser, playwright = self._browser, self._playwright
            self._browser = None
            self._playwright = None
            if browser is not None:
                try:
                    await browser.close()
                except Exception as exc:
                    logger.warning(f"Browser close failed: {exc}")
            if playwright is not None:
                try:
                    await playwright.stop()
                except Exception as exc:
                    logger.warning(f"Playwright stop failed: {exc}")
