from __future__ import annotations

from urllib.parse import urlsplit

import httpx
import pytest

from sitescout.core.scrape.service import ScrapeService

NOT_FOUND_HTML = "<html><head><title>404</title></head><body><h1>Not Found</h1></body></html>"


def _route_key(url: str) -> str:
    parts = urlsplit(url)
    key = f"{parts.netloc.lower()}{parts.path.rstrip('/')}"
    return f"{key}?{parts.query}" if parts.query else key


def page_html(title: str, sentence: str, *, extra: str = "", repeat: int = 12) -> str:
    """A static page with enough visible text to skip browser rendering."""
    body = " ".join([sentence] * repeat)
    return (
        f"<html><head><title>{title}</title>"
        f'<meta name="description" content="{title} description"></head>'
        f"<body><nav>Home | About</nav><main><h1>{title}</h1><p>{body}</p>{extra}</main>"
        "<footer>Footer links</footer></body></html>"
    )


class Router:
    """URL -> (status, body) map served through ``httpx.MockTransport``."""

    def __init__(self, routes: dict[str, tuple[int, str] | Exception] | None = None):
        self.routes = {_route_key(url): outcome for url, outcome in (routes or {}).items()}
        self.requested: list[str] = []

    def add(self, url: str, outcome: tuple[int, str] | Exception) -> None:
        self.routes[_route_key(url)] = outcome

    def handler(self, request: httpx.Request) -> httpx.Response:
        key = _route_key(str(request.url))
        self.requested.append(key)
        outcome = self.routes.get(key)
        if outcome is None:
            return httpx.Response(404, text=NOT_FOUND_HTML)
        if isinstance(outcome, Exception):
            raise outcome
        status, body = outcome
        return httpx.Response(status, text=body)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


class FakeBrowser:
    """Stands in for ``BrowserSession``; unknown URLs render as a 404 page."""

    def __init__(self, pages: dict[str, tuple[str, int] | Exception] | None = None):
        self.pages = {_route_key(url): outcome for url, outcome in (pages or {}).items()}
        self.calls: list[str] = []
        self.closed = 0

    async def render(self, url: str) -> tuple[str, int]:
        self.calls.append(url)
        outcome = self.pages.get(_route_key(url), (NOT_FOUND_HTML, 404))
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def close(self) -> None:
        self.closed += 1


@pytest.fixture
def make_scraper():
    def _make(
        routes: dict[str, tuple[int, str] | Exception] | None = None,
        browser_pages: dict[str, tuple[str, int] | Exception] | None = None,
    ) -> tuple[ScrapeService, Router, FakeBrowser]:
        router = Router(routes)
        browser = FakeBrowser(browser_pages)
        scraper = ScrapeService(browser=browser, http_client=router.client())
        return scraper, router, browser

    return _make
