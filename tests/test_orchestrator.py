from __future__ import annotations

import httpx
import pytest

from conftest import page_html
from sitescout.agents.orchestrator import AcquisitionOrchestrator
from sitescout.core.models.interfaces import ExtractionResult, Platform
from sitescout.platforms.registry import PlatformRegistry
from sitescout.services.cache import CacheService

CAREERS_LINKS = (
    '<a href="/careers/engineering">Engineering</a>'
    '<a href="/careers/sales">Sales</a>'
    '<a href="/careers/design">Design</a>'
)
CAREERS_HTML = page_html(
    "Werken bij Example",
    "We are hiring developers and designers in Utrecht.",
    extra=CAREERS_LINKS,
)
ENGINEERING_HTML = page_html("Engineering", "Our engineering team builds the ordering platform.")


class FakeExtractor:
    def __init__(self, entities=None, error: Exception | None = None):
        self.entities = entities if entities is not None else [{"title": "Developer"}]
        self.error = error
        self.calls: list[tuple[str, str, list[str] | None]] = []

    async def extract(self, normalized_text, source_url, related_urls=None):
        self.calls.append((normalized_text, source_url, related_urls))
        if self.error is not None:
            raise self.error
        return ExtractionResult(entities=list(self.entities), confidence=0.8)


class FakePlatformClient:
    def __init__(self, entities):
        self.entities = entities
        self.calls: list[str] = []

    async def parse(self, url):
        self.calls.append(url)
        return self.entities


class FakeRedis:
    def __init__(self):
        self.data = {}
        self.closed = 0

    async def get(self, key):
        return self.data.get(key)

    async def setex(self, key, ttl, value):
        self.data[key] = value

    async def aclose(self):
        self.closed += 1


@pytest.fixture
def build(make_scraper):
    def _build(routes=None, browser_pages=None, **kwargs):
        scraper, router, browser = make_scraper(routes, browser_pages)
        kwargs.setdefault("cache", CacheService())
        kwargs.setdefault("page_delay", 0)
        orchestrator = AcquisitionOrchestrator(scraper=scraper, **kwargs)
        return orchestrator, router, browser

    return _build


@pytest.mark.asyncio
async def test_scrape_extracts_and_serves_second_call_from_cache(build):
    extractor = FakeExtractor()
    orchestrator, router, _browser = build(
        {"https://example.nl/careers": (200, CAREERS_HTML)},
        extractor=extractor,
        department_page_limit=0,
    )

    first = await orchestrator.scrape("example.nl")
    requests_after_first = len(router.requested)
    second = await orchestrator.scrape("Example.NL")

    assert first.found and first.has_vacancies
    assert first.vacancy_count == 1
    assert first.confidence == 0.8
    assert first.source.method == "ai"
    assert first.source.career_page_url == "https://example.nl/careers"
    assert first.career_page is not None
    assert first.career_page.enrichment["entity_count"] == 1
    assert first.cached is False

    assert second.cached is True
    assert second.vacancies == first.vacancies
    assert len(extractor.calls) == 1
    assert len(router.requested) == requests_after_first


@pytest.mark.asyncio
async def test_not_found_result_is_cached(build, monkeypatch):
    orchestrator, _router, _browser = build(extractor=FakeExtractor())
    calls = []
    original = orchestrator.discovery.find_target_page

    async def counting_find(domain):
        calls.append(domain)
        return await original(domain)

    monkeypatch.setattr(orchestrator.discovery, "find_target_page", counting_find)

    first = await orchestrator.scrape("example.nl")
    second = await orchestrator.scrape("example.nl")

    assert first.found is False
    assert first.vacancy_count == 0
    assert second.found is False and second.cached is True
    assert calls == ["example.nl"]


@pytest.mark.asyncio
async def test_platform_client_preferred_over_extractor(build):
    html = page_html(
        "Careers",
        "Join our team of engineers and designers.",
        repeat=20,
        extra='<script src="https://d3ii2lldyojfer.cloudfront.net/widget.js"></script>',
    )
    client = FakePlatformClient([{"title": "Dev"}, {"title": "Ops"}])
    extractor = FakeExtractor()
    orchestrator, _router, _browser = build(
        {"https://example.nl/careers": (200, html)},
        extractor=extractor,
        platforms=PlatformRegistry({Platform.RECRUITEE: client}),
    )

    response = await orchestrator.scrape("example.nl")

    assert response.source.platform is Platform.RECRUITEE
    assert response.source.method == "parser"
    assert response.confidence == 1.0
    assert response.vacancy_count == 2
    assert response.career_page is None
    assert client.calls == ["https://example.nl/careers"]
    assert extractor.calls == []


@pytest.mark.asyncio
async def test_empty_platform_result_falls_back_to_extractor(build):
    html = page_html(
        "Careers",
        "Join our team of engineers and designers.",
        repeat=20,
        extra='<div class="lever-jobs"></div>',
    )
    extractor = FakeExtractor()
    orchestrator, _router, _browser = build(
        {"https://example.nl/careers": (200, html)},
        extractor=extractor,
        platforms=PlatformRegistry({Platform.LEVER: FakePlatformClient([])}),
    )

    response = await orchestrator.scrape("example.nl")

    assert response.source.platform is Platform.LEVER
    assert response.source.method == "ai"
    assert len(extractor.calls) == 1


@pytest.mark.asyncio
async def test_department_pages_feed_extractor_without_duplicates(build):
    extractor = FakeExtractor()
    orchestrator, _router, _browser = build(
        {
            "https://example.nl/careers": (200, CAREERS_HTML),
            "https://example.nl/careers/engineering": (200, ENGINEERING_HTML),
            "https://example.nl/careers/sales": httpx.ConnectError("connection reset"),
            "https://example.nl/careers/design": (200, ENGINEERING_HTML),
        },
        {"https://example.nl/careers/sales": RuntimeError("render failed")},
        extractor=extractor,
    )

    response = await orchestrator.scrape("example.nl")

    text, source_url, _related = extractor.calls[0]
    assert source_url == "https://example.nl/careers"
    assert "We are hiring developers" in text
    assert "Our engineering team builds the ordering platform." in text
    assert "Source: https://example.nl/careers/engineering" in text
    assert "Source: https://example.nl/careers/design" not in text
    assert response.career_page.enrichment["department_pages"] == ["https://example.nl/careers/engineering"]


@pytest.mark.asyncio
async def test_missing_extractor_is_an_error(build):
    orchestrator, _router, _browser = build({"https://example.nl/careers": (200, CAREERS_HTML)})

    with pytest.raises(RuntimeError, match="extractor"):
        await orchestrator.scrape("example.nl")


@pytest.mark.asyncio
async def test_extractor_failure_propagates_and_is_not_cached(build):
    orchestrator, _router, _browser = build(
        {"https://example.nl/careers": (200, CAREERS_HTML)},
        extractor=FakeExtractor(error=ValueError("model unavailable")),
        department_page_limit=0,
    )

    with pytest.raises(ValueError, match="model unavailable"):
        await orchestrator.scrape("example.nl")

    assert await orchestrator.cache.get(orchestrator.cache.key_for("example.nl")) is None


@pytest.mark.asyncio
async def test_malformed_cache_entry_is_ignored(build):
    extractor = FakeExtractor()
    orchestrator, _router, _browser = build(
        {"https://example.nl/careers": (200, CAREERS_HTML)},
        extractor=extractor,
        department_page_limit=0,
    )
    await orchestrator.cache.set(orchestrator.cache.key_for("example.nl"), {"unexpected": True})

    response = await orchestrator.scrape("example.nl")

    assert response.found is True
    assert response.cached is False
    assert len(extractor.calls) == 1


@pytest.mark.asyncio
async def test_building_blocks_are_exposed(build):
    orchestrator, _router, _browser = build({"https://example.nl/careers": (200, CAREERS_HTML)})

    target = await orchestrator.discover("example.nl")
    fetched = await orchestrator.fetch(target.url)
    page = orchestrator.normalize(fetched.content, target.url)

    assert target.url == "https://example.nl/careers"
    assert fetched.used_browser is False
    assert page.title == "Werken bij Example"
    assert page.headings == ["Werken bij Example"]


@pytest.mark.asyncio
async def test_close_releases_shared_resources_once(build):
    redis = FakeRedis()
    orchestrator, _router, browser = build(cache=CacheService(client=redis))

    async with orchestrator:
        pass
    await orchestrator.close()

    assert browser.closed == 1
    assert redis.closed == 1


def test_site_orchestrator_shares_components(build):
    orchestrator, _router, _browser = build()
    site = orchestrator.site

    assert site is orchestrator.site
    assert site.cache is orchestrator.cache
    assert site.scraper is orchestrator.scraper
    assert site.discovery is orchestrator.discovery
    assert site.page_delay == 0


@pytest.mark.asyncio
async def test_department_pages_are_fetched_with_a_delay_between(build, monkeypatch):
    delays: list[float] = []

    async def fake_sleep(seconds):
        delays.append(seconds)

    monkeypatch.setattr("sitescout.agents.orchestrator.asyncio.sleep", fake_sleep)
    extractor = FakeExtractor()
    orchestrator, _router, _browser = build(
        {
            "https://example.nl/careers": (200, CAREERS_HTML),
            "https://example.nl/careers/engineering": (200, ENGINEERING_HTML),
            "https://example.nl/careers/sales": (200, page_html("Sales", "Our sales team talks to restaurants daily.")),
            "https://example.nl/careers/design": (200, page_html("Design", "Our designers shape every screen we ship.")),
        },
        extractor=extractor,
        page_delay=0.25,
    )

    response = await orchestrator.scrape("example.nl")

    assert len(response.career_page.enrichment["department_pages"]) == 3
    assert delays == [0.25, 0.25]
