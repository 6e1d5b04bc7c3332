from __future__ import annotations

import asyncio

from loguru import logger
from pydantic import ValidationError

from sitescout.agents.site_orchestrator import SiteOrchestrator
from sitescout.config import settings
from sitescout.core.discover.service import DiscoveryService, extract_department_links
from sitescout.core.models.interfaces import (
    DiscoveryResult,
    ExtractionResult,
    FetchResult,
    Platform,
    VacancyExtractor,
)
from sitescout.core.normalize.service import NormalizeService
from sitescout.core.scrape.service import ScrapeService
from sitescout.models.schemas import NormalizedPage, VacancyScrapeResponse, VacancySource
from sitescout.platforms.registry import PlatformRegistry
from sitescout.services.cache import CacheService
from sitescout.services.logger import log_event


class AcquisitionOrchestrator:
    """Careers-page run for one domain.

    Flow:
      1. Cache lookup keyed on the domain
      2. Discover the careers page (sitemap -> conventional URLs -> homepage links)
      3. Structured platform client when one was fingerprinted and registered
      4. Otherwise normalize the page plus a few department pages and hand the
         text to the AI extractor
      5. Cache the response, found or not

    Owns the cache and acquirer it builds; :meth:`close` releases both once.
    """

    def __init__(
        self,
        *,
        extractor: VacancyExtractor | None = None,
        cache: CacheService | None = None,
        scraper: ScrapeService | None = None,
        discovery: DiscoveryService | None = None,
        normalizer: NormalizeService | None = None,
        platforms: PlatformRegistry | None = None,
        department_page_limit: int | None = None,
        page_delay: float | None = None,
        min_page_chars: int | None = None,
    ):
        self.extractor = extractor
        self.cache = cache or CacheService(settings.redis_url or None)
        self.scraper = scraper or ScrapeService()
        self.discovery = discovery or DiscoveryService(self.scraper)
        self.normalizer = normalizer or NormalizeService()
        self.platforms = platforms or PlatformRegistry()
        self.department_page_limit = max(
            int(department_page_limit if department_page_limit is not None else settings.department_page_limit),
            0,
        )
        self.page_delay = max(float(page_delay if page_delay is not None else settings.page_delay_seconds), 0.0)
        self.min_page_chars = max(int(min_page_chars if min_page_chars is not None else settings.min_page_chars), 0)
        self._closed = False
        self._site: SiteOrchestrator | None = None

    @property
    def site(self) -> SiteOrchestrator:
        """Content-pages run sharing this orchestrator's cache, acquirer and discovery."""
        if self._site is None:
            self._site = SiteOrchestrator(
                cache=self.cache,
                scraper=self.scraper,
                discovery=self.discovery,
                normalizer=self.normalizer,
                page_delay=self.page_delay,
                min_page_chars=self.min_page_chars,
            )
        return self._site

    async def __aenter__(self) -> "AcquisitionOrchestrator":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Exposed building blocks
    # ------------------------------------------------------------------

    async def discover(self, domain: str) -> DiscoveryResult | None:
        return await self.discovery.find_target_page(domain)

    async def fetch(self, url: str) -> FetchResult:
        return await self.scraper.fetch(url)

    def normalize(self, html: str, url: str) -> NormalizedPage:
        return self.normalizer.normalize(html, url)

    # ------------------------------------------------------------------
    # Careers run
    # ------------------------------------------------------------------

    async def scrape(self, domain: str) -> VacancyScrapeResponse:
        cache_key = self.cache.key_for(domain)
        cached = await self.cache.get(cache_key)
        if cached is not None:
            try:
                response = VacancyScrapeResponse.model_validate(cached)
                response.cached = True
                logger.info(f"Cache hit for {domain}")
                return response
            except ValidationError as exc:
                logger.warning(f"Ignoring malformed cache entry for {domain}: {exc}")

        target = await self.discovery.find_target_page(domain)
        if target is None:
            logger.info(f"No careers page found for {domain}")
            response = VacancyScrapeResponse(domain=domain, found=False)
            await self.cache.set(cache_key, response.model_dump(mode="json"))
            return response

        log_event("target_found", f"Careers page for {domain}", url=target.url, platform=target.platform.value)

        career_page: NormalizedPage | None = None
        entities = None
        confidence: float | None = None
        method = "ai"
        if target.platform is not Platform.NONE:
            entities = await self.platforms.parse(target.platform, target.url)
            if entities:
                method = "parser"
                confidence = 1.0

        if not entities:
            career_page, result = await self._extract(target)
            entities = result.entities
            confidence = result.confidence

        response = VacancyScrapeResponse(
            domain=domain,
            found=True,
            has_vacancies=len(entities) > 0,
            vacancy_count=len(entities),
            vacancies=list(entities),
            confidence=confidence,
            source=VacancySource(
                platform=target.platform,
                career_page_url=target.url,
                method=method,
            ),
            related_urls=target.related_urls,
            career_page=career_page,
        )
        await self.cache.set(cache_key, response.model_dump(mode="json"))
        return response

    async def _extract(self, target: DiscoveryResult) -> tuple[NormalizedPage, ExtractionResult]:
        if self.extractor is None:
            raise RuntimeError("No AI extractor configured")

        page = self.normalizer.normalize(target.content, target.url)
        seen_hashes = {page.content_hash}
        extra_pages = await self._collect_department_pages(target, seen_hashes)

        sections = [page.content]
        for extra in extra_pages:
            sections.append(f"# {extra.title}\nSource: {extra.url}\n\n{extra.content}")
        text = "\n\n".join(section for section in sections if section)

        result = await self.extractor.extract(text, target.url, target.related_urls)
        page.enrichment.update(
            {
                "extraction_confidence": result.confidence,
                "entity_count": len(result.entities),
                "department_pages": [extra.url for extra in extra_pages],
            }
        )
        return page, result

    async def _collect_department_pages(
        self,
        target: DiscoveryResult,
        seen_hashes: set[str],
    ) -> list[NormalizedPage]:
        if self.department_page_limit <= 0:
            return []
        links = [link for link in extract_department_links(target.content, target.url) if link != target.url]
        pages: list[NormalizedPage] = []
        for index, link in enumerate(links[: self.department_page_limit]):
            if index and self.page_delay:
                await asyncio.sleep(self.page_delay)
            try:
                fetched = await self.scraper.fetch(link)
            except Exception as exc:
                logger.warning(f"Skipping department page {link}: {exc!r}")
                continue
            if fetched.http_status >= 400:
                continue
            page = self.normalizer.normalize(fetched.content, link)
            if len(page.content) < self.min_page_chars or page.content_hash in seen_hashes:
                continue
            seen_hashes.add(page.content_hash)
            pages.append(page)
        return pages

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await asyncio.gather(self.cache.close(), self.scraper.close())
