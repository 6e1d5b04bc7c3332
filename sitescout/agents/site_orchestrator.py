from __future__ import annotations

import asyncio
import re
from urllib.parse import urlsplit

from bs4 import BeautifulSoup
from loguru import logger
from pydantic import ValidationError

from sitescout.config import settings
from sitescout.core.discover.service import DiscoveryService
from sitescout.core.normalize.service import NormalizeService
from sitescout.core.scrape.service import ScrapeService
from sitescout.models.schemas import NormalizedPage, SiteScrapeResponse
from sitescout.services.cache import CacheService
from sitescout.tools.web_utils import base_url, clean_domain, resolve_url

PRIORITY_PATTERNS = (
    re.compile(r"^/?$"),
    re.compile(r"/(about|over|over-ons|wie-zijn-wij)", re.IGNORECASE),
    re.compile(r"/(services?|diensten)", re.IGNORECASE),
    re.compile(r"/(products?|producten)", re.IGNORECASE),
    re.compile(r"/(pricing|prijzen|tarieven)", re.IGNORECASE),
    re.compile(r"/(faq|veelgestelde-vragen)", re.IGNORECASE),
    re.compile(r"/(contact)", re.IGNORECASE),
    re.compile(r"/(team|medewerkers)", re.IGNORECASE),
    re.compile(r"/(features?|functies|mogelijkheden)", re.IGNORECASE),
    re.compile(r"/(solutions?|oplossingen)", re.IGNORECASE),
    re.compile(r"/(how-it-works|hoe-werkt-het)", re.IGNORECASE),
    re.compile(r"/(blog|nieuws|news)/?$", re.IGNORECASE),
)

SKIP_PATTERNS = (
    re.compile(r"/(privacy|privacybeleid|privacy-policy|privacy-statement)", re.IGNORECASE),
    re.compile(r"/(cookie|cookies|cookiebeleid)", re.IGNORECASE),
    re.compile(r"/(terms|voorwaarden|algemene-voorwaarden|terms-of-service)", re.IGNORECASE),
    re.compile(r"/(login|inloggen|signin|sign-in)", re.IGNORECASE),
    re.compile(r"/(register|registreren|signup|sign-up)", re.IGNORECASE),
    re.compile(r"/(admin|dashboard|beheer)", re.IGNORECASE),
    re.compile(r"/(search|zoeken)", re.IGNORECASE),
    re.compile(r"/(cart|winkelwagen|checkout|afrekenen)", re.IGNORECASE),
    re.compile(r"/(account|profiel|profile)", re.IGNORECASE),
    re.compile(r"/(sitemap\.xml|robots\.txt)", re.IGNORECASE),
    re.compile(r"\.(pdf|jpg|jpeg|png|gif|svg|css|js|zip|doc|docx)$", re.IGNORECASE),
)

_PAGINATION_RE = re.compile(r"(^|&)(page|p)=\d", re.IGNORECASE)
_UNRANKED = len(PRIORITY_PATTERNS)


def _priority(path: str) -> int:
    for index, pattern in enumerate(PRIORITY_PATTERNS):
        if pattern.search(path):
            return index
    return _UNRANKED


def filter_and_prioritize(urls: list[str]) -> list[str]:
    """Drop utility/asset/paginated URLs, then order by section priority and URL length."""
    kept: list[tuple[int, int, str]] = []
    for url in dict.fromkeys(urls):
        try:
            parts = urlsplit(url)
        except ValueError:
            continue
        if not parts.scheme or not parts.netloc or parts.fragment:
            continue
        path = parts.path or "/"
        if any(pattern.search(path) for pattern in SKIP_PATTERNS):
            continue
        if _PAGINATION_RE.search(parts.query):
            continue
        kept.append((_priority(path), len(url), url))
    kept.sort(key=lambda item: (item[0], item[1]))
    return [url for _priority_rank, _length, url in kept]


class SiteOrchestrator:
    """Representative content-pages run for one domain.

    Shares the cache, acquirer and discovery engine of its owner; closing
    them is the owner's job.
    """

    def __init__(
        self,
        *,
        cache: CacheService,
        scraper: ScrapeService,
        discovery: DiscoveryService,
        normalizer: NormalizeService | None = None,
        page_delay: float | None = None,
        min_page_chars: int | None = None,
    ):
        self.cache = cache
        self.scraper = scraper
        self.discovery = discovery
        self.normalizer = normalizer or NormalizeService()
        self.page_delay = max(float(page_delay if page_delay is not None else settings.page_delay_seconds), 0.0)
        self.min_page_chars = max(int(min_page_chars if min_page_chars is not None else settings.min_page_chars), 0)

    async def scrape_site(self, domain: str, max_pages: int | None = None) -> SiteScrapeResponse:
        limit = max(int(max_pages if max_pages is not None else settings.site_max_pages), 1)
        cache_key = self.cache.key_for(f"{domain}|site|{limit}", prefix="site")
        cached = await self.cache.get(cache_key)
        if cached is not None:
            try:
                response = SiteScrapeResponse.model_validate(cached)
                response.cached = True
                return response
            except ValidationError as exc:
                logger.warning(f"Ignoring malformed site cache entry for {domain}: {exc}")

        root = base_url(domain)
        urls = await self.discovery.fetch_all_sitemap_urls(domain)
        logger.info(f"Found {len(urls)} URLs in sitemap for {domain}")
        if not urls:
            logger.info(f"No sitemap for {domain}; collecting homepage links")
            urls = await self.discover_links_from_homepage(root, domain)

        targets = filter_and_prioritize(urls)[:limit]
        logger.info(f"Scraping {len(targets)} pages for {domain} (filtered from {len(urls)})")

        pages = await self._collect_pages(targets)
        response = SiteScrapeResponse(domain=domain, page_count=len(pages), pages=pages)
        await self.cache.set(cache_key, response.model_dump(mode="json"))
        return response

    async def _collect_pages(self, targets: list[str]) -> list[NormalizedPage]:
        pages: list[NormalizedPage] = []
        seen_hashes: set[str] = set()
        for index, url in enumerate(targets):
            if index and self.page_delay:
                await asyncio.sleep(self.page_delay)
            logger.debug(f"[{index + 1}/{len(targets)}] {url}")
            try:
                fetched = await self.scraper.fetch(url)
            except Exception as exc:
                logger.warning(f"Skipping {url}: {exc!r}")
                continue
            if fetched.http_status >= 400:
                logger.debug(f"Skipped {url} (HTTP {fetched.http_status})")
                continue

            page = self.normalizer.normalize(fetched.content, url)
            if len(page.content) < self.min_page_chars:
                logger.debug(f"Skipped {url} (too short)")
                continue
            if page.content_hash in seen_hashes:
                logger.debug(f"Skipped {url} (duplicate content)")
                continue
            seen_hashes.add(page.content_hash)
            pages.append(page)
        return pages

    async def discover_links_from_homepage(self, root: str, domain: str) -> list[str]:
        """Homepage plus every internal link on it; just the homepage on failure."""
        try:
            html, status = await self.scraper.fetch_http(root)
        except Exception as exc:
            logger.debug(f"Homepage fetch failed for {root}: {exc!r}")
            return [root]
        if status >= 400:
            return [root]

        host = clean_domain(domain)
        links = [root]
        soup = BeautifulSoup(html or "", "html.parser")
        for anchor in soup.find_all("a", href=True):
            href = str(anchor.get("href") or "")
            if href.startswith("#"):
                continue
            resolved = resolve_url(href, root)
            if resolved and host in (urlsplit(resolved).hostname or "").lower():
                links.append(resolved)
        return list(dict.fromkeys(links))
