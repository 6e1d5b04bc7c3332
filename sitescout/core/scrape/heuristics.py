from __future__ import annotations

import re
from typing import Iterable

from bs4 import BeautifulSoup

from sitescout.tools.web_utils import resolve_url

CAREER_LINK_KEYWORDS = (
    "career",
    "jobs",
    "vacatur",
    "werken",
    "join",
    "hiring",
    "openings",
)

# Markers of a served document whose content only appears after client-side rendering.
_SHELL_PATTERNS = (
    re.compile(r"<div[^>]+id=[\"'](?:root|app|__next)[\"'][^>]*>\s*</div>", re.IGNORECASE),
    re.compile(r"loading(?:\.\.\.|…)", re.IGNORECASE),
    re.compile(r"<noscript[^>]*>[\s\S]*?enable javascript", re.IGNORECASE),
    re.compile(r"<body[^>]*>\s*</body>", re.IGNORECASE),
    re.compile(r"data-reactroot", re.IGNORECASE),
    re.compile(r"ng-version=", re.IGNORECASE),
    re.compile(r"window\.__NEXT_DATA__", re.IGNORECASE),
    re.compile(r"window\.__nuxt__", re.IGNORECASE),
)

_SCRIPT_STYLE_RE = re.compile(r"<(script|style)[^>]*>[\s\S]*?</\1\s*>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]+>")
_WS_RE = re.compile(r"\s+")


def visible_text(html: str) -> str:
    """Markup-free text with script/style source removed and whitespace collapsed."""
    text = _SCRIPT_STYLE_RE.sub(" ", html or "")
    text = _TAG_RE.sub(" ", text)
    return _WS_RE.sub(" ", text).strip()


def has_shell_signature(html: str) -> bool:
    return any(pattern.search(html or "") for pattern in _SHELL_PATTERNS)


def needs_javascript(
    html: str,
    *,
    min_html_length: int = 1000,
    min_text_length: int = 500,
) -> bool:
    """Return ``True`` when *html* looks like a shell that needs a browser to render.

    A shell signature alone is not enough: pages that already carry at least
    ``min_text_length`` characters of visible text are treated as rendered.
    """
    html = html or ""
    if len(visible_text(html)) >= min_text_length:
        return False
    return len(html) < min_html_length or has_shell_signature(html)


def extract_keyword_links(
    html: str,
    base_url: str,
    keywords: Iterable[str] = CAREER_LINK_KEYWORDS,
) -> list[str]:
    """Absolute, deduplicated anchor URLs whose href or text mentions a keyword."""
    lowered_keywords = [kw.lower() for kw in keywords]
    try:
        soup = BeautifulSoup(html or "", "html.parser")
    except Exception:
        return []

    links: list[str] = []
    for anchor in soup.find_all("a", href=True):
        href = str(anchor.get("href") or "")
        text = anchor.get_text(" ", strip=True).lower()
        lower_href = href.lower()
        if not any(kw in lower_href or kw in text for kw in lowered_keywords):
            continue
        resolved = resolve_url(href, base_url)
        if resolved:
            links.append(resolved)
    return list(dict.fromkeys(links))
