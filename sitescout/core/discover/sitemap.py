from __future__ import annotations

import html
import re
from typing import Iterable

SITEMAP_PATHS = (
    "/sitemap.xml",
    "/sitemap_index.xml",
    "/sitemap-index.xml",
    "/sitemaps.xml",
)

CAREER_KEYWORDS = (
    "career",
    "careers",
    "job",
    "jobs",
    "vacatur",
    "vacancies",
    "vacancy",
    "werken",
    "werk",
    "hiring",
    "openings",
    "positions",
    "join",
    "recruitment",
    "talent",
    "opportunities",
    "sollicit",
)

# Overview pages end in the section itself, not in a single posting below it.
MAIN_PAGE_PATTERNS = (
    re.compile(r"/(careers?|jobs?|vacatures?|werken-bij|werkenbij)/?$", re.IGNORECASE),
    re.compile(r"/(careers?|jobs?|vacatures?)/(overview|all|list)?/?$", re.IGNORECASE),
)

_LOC_RE = re.compile(r"<loc>\s*(?:<!\[CDATA\[)?([^<\]]+?)(?:\]\]>)?\s*</loc>", re.IGNORECASE)


def parse_locs(xml: str) -> list[str]:
    """``<loc>`` values in document order; no XML parser needed for sitemaps."""
    return [html.unescape(match.group(1).strip()) for match in _LOC_RE.finditer(xml or "")]


def is_sitemap_url(url: str) -> bool:
    return url.lower().split("?", 1)[0].endswith(".xml")


def has_keyword(url: str, keywords: Iterable[str] = CAREER_KEYWORDS) -> bool:
    lower = url.lower()
    return any(keyword in lower for keyword in keywords)


def is_main_page(url: str) -> bool:
    return any(pattern.search(url) for pattern in MAIN_PAGE_PATTERNS)


def rank_urls(urls: Iterable[str]) -> list[str]:
    """Main-page patterns first, then shorter URLs; ties keep their input order."""
    return sorted(urls, key=lambda url: (not is_main_page(url), len(url)))
