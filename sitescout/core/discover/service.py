from __future__ import annotations

import asyncio
from typing import Awaitable, Callable
from urllib.parse import urlsplit

from bs4 import BeautifulSoup
from loguru import logger

from sitescout.config import settings
from sitescout.core.discover.platforms import fingerprint
from sitescout.core.discover.sitemap import (
    SITEMAP_PATHS,
    has_keyword,
    is_sitemap_url,
    parse_locs,
    rank_urls,
)
from sitescout.core.models.interfaces import DiscoveryResult, FetchResult, StageOutcome
from sitescout.core.scrape.heuristics import extract_keyword_links
from sitescout.core.scrape.service import ScrapeService
from sitescout.services.logger import log_discovery
from sitescout.tools.web_utils import base_url, career_page_candidates, resolve_url

CAREER_INDICATORS = (
    "vacancy",
    "vacancies",
    "vacature",
    "vacatures",
    "job opening",
    "job listings",
    "open position",
    "we are hiring",
    "join our team",
    "career",
    "werken bij",
    "kom werken",
)

DEPARTMENT_KEYWORDS = (
    "tech",
    "engineering",
    "development",
    "software",
    "marketing",
    "sales",
    "finance",
    "hr",
    "legal",
    "operations",
    "logistics",
    "support",
    "service",
    "design",
    "product",
    "data",
    "analytics",
    "hoofdkantoor",
    "magazijn",
    "bezorging",
    "winkels",
    "klantenservice",
    "stage",
    "bijbanen",
)


def looks_like_target(html: str) -> bool:
    """Permissive substring test; extraction confidence filters false positives later."""
    lower = (html or "").lower()
    return any(indicator in lower for indicator in CAREER_INDICATORS)


def extract_department_links(html: str, base: str) -> list[str]:
    """Internal links whose href names a department or category."""
    host = (urlsplit(base).hostname or "").lower()
    if host.startswith("www."):
        host = host[4:]
    try:
        soup = BeautifulSoup(html or "", "html.parser")
    except Exception:
        return []

    links: list[str] = []
    for anchor in soup.find_all("a", href=True):
        href = str(anchor.get("href") or "")
        if not any(keyword in href.lower() for keyword in DEPARTMENT_KEYWORDS):
            continue
        resolved = resolve_url(href, base)
        if resolved is None:
            continue
        if host not in (urlsplit(resolved).hostname or "").lower():
            continue
        links.append(resolved)
    return list(dict.fromkeys(links))


class DiscoveryService:
    """Finds the careers page of a domain: sitemap, conventional URLs, homepage links."""

    def __init__(
        self,
        scraper: ScrapeService,
        *,
        sitemap_nested_limit: int | None = None,
        sitemap_probe_limit: int | None = None,
        related_urls_limit: int | None = None,
        candidate_batch_size: int | None = None,
        homepage_link_limit: int | None = None,
        site_sitemap_nested_limit: int | None = None,
    ):
        self.scraper = scraper
        self.sitemap_nested_limit = max(
            int(sitemap_nested_limit if sitemap_nested_limit is not None else settings.sitemap_nested_limit), 0
        )
        self.sitemap_probe_limit = max(
            int(sitemap_probe_limit if sitemap_probe_limit is not None else settings.sitemap_probe_limit), 1
        )
        self.related_urls_limit = max(
            int(related_urls_limit if related_urls_limit is not None else settings.related_urls_limit), 0
        )
        self.candidate_batch_size = max(
            int(candidate_batch_size if candidate_batch_size is not None else settings.candidate_batch_size), 1
        )
        self.homepage_link_limit = max(
            int(homepage_link_limit if homepage_link_limit is not None else settings.homepage_link_limit), 1
        )
        self.site_sitemap_nested_limit = max(
            int(
                site_sitemap_nested_limit
                if site_sitemap_nested_limit is not None
                else settings.site_sitemap_nested_limit
            ),
            0,
        )

    # ------------------------------------------------------------------
    # Sitemaps
    # ------------------------------------------------------------------

    async def _fetch_sitemap(self, url: str) -> list[str]:
        try:
            body, status = await self.scraper.fetch_http(url)
        except Exception as exc:
            logger.debug(f"Sitemap fetch failed for {url}: {exc!r}")
            return []
        if not 200 <= status < 300:
            return []
        return parse_locs(body)

    async def _collect_sitemap_urls(
        self,
        domain: str,
        *,
        nested_limit: int,
        nested_keywords_only: bool,
    ) -> list[str]:
        root = base_url(domain)
        for path in SITEMAP_PATHS:
            entries = await self._fetch_sitemap(f"{root}{path}")
            if not entries:
                continue

            nested = [url for url in entries if is_sitemap_url(url)]
            if nested_keywords_only:
                nested = [url for url in nested if has_keyword(url)]

            merged: list[str] = []
            for nested_url in nested[:nested_limit]:
                merged.extend(await self._fetch_sitemap(nested_url))
            merged.extend(entries)

            # The first sitemap location that answers with entries is authoritative.
            return list(dict.fromkeys(url for url in merged if not is_sitemap_url(url)))
        return []

    async def fetch_sitemap_urls(self, domain: str) -> list[str]:
        """Career-keyword URLs from the domain's sitemap, nested indexes included."""
        urls = await self._collect_sitemap_urls(
            domain,
            nested_limit=self.sitemap_nested_limit,
            nested_keywords_only=True,
        )
        return [url for url in urls if has_keyword(url)]

    async def fetch_all_sitemap_urls(self, domain: str) -> list[str]:
        """Every page URL in the domain's sitemap, following nested indexes."""
        return await self._collect_sitemap_urls(
            domain,
            nested_limit=self.site_sitemap_nested_limit,
            nested_keywords_only=False,
        )

    # ------------------------------------------------------------------
    # Probing
    # ------------------------------------------------------------------

    def looks_like_target(self, html: str) -> bool:
        return looks_like_target(html)

    def extract_department_links(self, html: str, base: str) -> list[str]:
        return extract_department_links(html, base)

    async def _probe(self, url: str) -> FetchResult | None:
        try:
            fetched = await self.scraper.fetch(url)
        except Exception as exc:
            logger.debug(f"Probe failed for {url}: {exc!r}")
            return None
        if fetched.http_status >= 400:
            return None
        return fetched

    def _accept(self, url: str, fetched: FetchResult | None, related: list[str]) -> DiscoveryResult | None:
        if fetched is None or not looks_like_target(fetched.content):
            return None
        return DiscoveryResult(
            url=url,
            content=fetched.content,
            platform=fingerprint(url, fetched.content),
            related_urls=[u for u in related if u != url][: self.related_urls_limit],
        )

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def _from_sitemap(self, ranked: list[str]) -> StageOutcome:
        for url in ranked[: self.sitemap_probe_limit]:
            found = self._accept(url, await self._probe(url), ranked)
            if found is not None:
                return StageOutcome(stage="sitemap", status="found", result=found)
        return StageOutcome(stage="sitemap", status="not_found")

    async def _from_candidates(self, domain: str, related: list[str]) -> StageOutcome:
        candidates = career_page_candidates(domain)
        size = self.candidate_batch_size
        for start in range(0, len(candidates), size):
            batch = candidates[start : start + size]
            fetched = await asyncio.gather(*(self._probe(url) for url in batch))
            for url, result in zip(batch, fetched):
                found = self._accept(url, result, related)
                if found is not None:
                    return StageOutcome(stage="candidates", status="found", result=found)
        return StageOutcome(stage="candidates", status="not_found")

    async def _from_homepage(self, domain: str, related: list[str]) -> StageOutcome:
        home = base_url(domain)
        homepage = await self._probe(home)
        if homepage is None:
            return StageOutcome(stage="homepage", status="not_found")
        links = [link for link in extract_keyword_links(homepage.content, home) if link.rstrip("/") != home]
        for link in links[: self.homepage_link_limit]:
            found = self._accept(link, await self._probe(link), related)
            if found is not None:
                return StageOutcome(stage="homepage", status="found", result=found)
        return StageOutcome(stage="homepage", status="not_found")

    async def _run_stage(
        self,
        domain: str,
        name: str,
        stage: Callable[[], Awaitable[StageOutcome]],
    ) -> StageOutcome:
        try:
            outcome = await stage()
        except Exception as exc:
            logger.warning(f"Discovery stage {name} failed for {domain}: {exc!r}")
            outcome = StageOutcome(stage=name, status="error", error=str(exc))
        log_discovery(domain, name, outcome.status, outcome.result.url if outcome.result else None)
        return outcome

    async def find_target_page(self, domain: str) -> DiscoveryResult | None:
        """Best careers page for *domain*, or ``None`` once every stage came up empty."""
        try:
            sitemap_urls = rank_urls(await self.fetch_sitemap_urls(domain))
        except Exception as exc:
            logger.warning(f"Sitemap discovery failed for {domain}: {exc!r}")
            sitemap_urls = []
        logger.info(f"Found {len(sitemap_urls)} career-related URLs in sitemap for {domain}")

        stages: tuple[tuple[str, Callable[[], Awaitable[StageOutcome]]], ...] = (
            ("sitemap", lambda: self._from_sitemap(sitemap_urls)),
            ("candidates", lambda: self._from_candidates(domain, sitemap_urls)),
            ("homepage", lambda: self._from_homepage(domain, sitemap_urls)),
        )
        for name, stage in stages:
            outcome = await self._run_stage(domain, name, stage)
            if outcome.found:
                return outcome.result
        return None
