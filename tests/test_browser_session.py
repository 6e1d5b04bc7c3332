from __future__ import annotations

import asyncio

import pytest

from sitescout.core.scrape.browser import BrowserSession, RenderPolicy


class FakeResponse:
    def __init__(self, status: int):
        self.status = status


class FakePage:
    def __init__(self, html: str, status: int | None, error: Exception | None = None):
        self.html = html
        self.status = status
        self.error = error
        self.gotos: list[tuple[str, str, int]] = []
        self.waits: list[int] = []
        self.scrolls: list[list[int]] = []

    async def goto(self, url, wait_until, timeout):
        self.gotos.append((url, wait_until, timeout))
        if self.error is not None:
            raise self.error
        return FakeResponse(self.status) if self.status is not None else None

    async def wait_for_timeout(self, ms):
        self.waits.append(ms)

    async def evaluate(self, _script, args):
        self.scrolls.append(args)

    async def content(self):
        return self.html


class FakeContext:
    def __init__(self, page: FakePage):
        self.page = page
        self.closed = False

    async def new_page(self):
        return self.page

    async def close(self):
        self.closed = True


class FakeChromium:
    def __init__(self, html="<html><body>rendered</body></html>", status=200, error=None):
        self.html = html
        self.status = status
        self.error = error
        self.contexts: list[FakeContext] = []
        self.context_options: list[dict] = []
        self.closed = 0

    async def new_context(self, **options):
        self.context_options.append(options)
        context = FakeContext(FakePage(self.html, self.status, self.error))
        self.contexts.append(context)
        return context

    async def close(self):
        self.closed += 1


class FakePlaywright:
    def __init__(self):
        self.stopped = 0

    async def stop(self):
        self.stopped += 1


POLICY = RenderPolicy(timeout_ms=5000, settle_ms=10, scroll_steps=3, scroll_pause_ms=5, post_scroll_ms=20)


def _session(monkeypatch, chromium: FakeChromium, playwright: FakePlaywright | None = None):
    session = BrowserSession(headless=True, policy=POLICY)
    launches: list[int] = []
    playwright = playwright or FakePlaywright()

    async def fake_launch():
        launches.append(1)
        return playwright, chromium

    monkeypatch.setattr(session, "_launch", fake_launch)
    return session, launches


@pytest.mark.asyncio
async def test_render_returns_html_and_status(monkeypatch):
    chromium = FakeChromium(html="<html><body>jobs</body></html>", status=201)
    session, _launches = _session(monkeypatch, chromium)

    html, status = await session.render("https://example.nl/careers")

    assert html == "<html><body>jobs</body></html>"
    assert status == 201
    page = chromium.contexts[0].page
    assert page.gotos == [("https://example.nl/careers", "networkidle", 5000)]
    assert page.scrolls == [[3, 5]]
    assert page.waits == [10, 20]
    assert chromium.contexts[0].closed


@pytest.mark.asyncio
async def test_missing_navigation_response_reports_200(monkeypatch):
    session, _launches = _session(monkeypatch, FakeChromium(status=None))
    _html, status = await session.render("https://example.nl/")
    assert status == 200


@pytest.mark.asyncio
async def test_browser_launches_once_and_isolates_contexts(monkeypatch):
    chromium = FakeChromium()
    session, launches = _session(monkeypatch, chromium)

    await asyncio.gather(
        session.render("https://a.nl/"),
        session.render("https://b.nl/"),
        session.render("https://c.nl/"),
    )

    assert launches == [1]
    assert session.started
    assert len(chromium.contexts) == 3
    assert all(context.closed for context in chromium.contexts)
    assert chromium.context_options[0]["locale"] == "nl-NL"
    assert chromium.context_options[0]["viewport"] == {"width": 1920, "height": 1080}


@pytest.mark.asyncio
async def test_context_closed_when_navigation_fails(monkeypatch):
    chromium = FakeChromium(error=TimeoutError("navigation timeout"))
    session, _launches = _session(monkeypatch, chromium)

    with pytest.raises(TimeoutError):
        await session.render("https://slow.example.nl/")

    assert chromium.contexts[0].closed


@pytest.mark.asyncio
async def test_close_is_idempotent_and_blocks_further_renders(monkeypatch):
    chromium = FakeChromium()
    playwright = FakePlaywright()
    session, _launches = _session(monkeypatch, chromium, playwright)
    await session.render("https://example.nl/")

    await session.close()
    await session.close()

    assert chromium.closed == 1
    assert playwright.stopped == 1
    assert not session.started
    with pytest.raises(RuntimeError):
        await session.render("https://example.nl/")


@pytest.mark.asyncio
async def test_close_without_launch_is_noop(monkeypatch):
    session, launches = _session(monkeypatch, FakeChromium())
    await session.close()
    assert launches == []
