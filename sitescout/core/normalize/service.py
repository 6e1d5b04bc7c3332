"""HTML -> clean markdown-like text, metadata, page type and content fingerprint.

Each step is a standalone function that never raises: malformed input yields
an empty string, ``None``, ``"Untitled"`` or :attr:`PageType.OTHER`.
"""

from __future__ import annotations

import hashlib
import re
from urllib.parse import urlsplit

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import CData, Comment, Declaration, Doctype, ProcessingInstruction
from loguru import logger

from sitescout.config import settings
from sitescout.core.models.interfaces import PageType
from sitescout.models.schemas import NormalizedPage

UNTITLED = "Untitled"
HASH_LENGTH = 16

_NON_CONTENT_TAGS = ["script", "style", "noscript", "svg", "iframe"]
_CHROME_TAGS = ["nav", "header", "footer", "aside", "form"]
_HEADING_PREFIX = {"h1": "#", "h2": "##", "h3": "###", "h4": "###", "h5": "###", "h6": "###"}
_BLOCK_TAGS = {
    "div",
    "section",
    "article",
    "main",
    "table",
    "tr",
    "blockquote",
    "dl",
    "dt",
    "dd",
    "figure",
    "figcaption",
}
_SKIPPED_STRINGS = (Comment, Doctype, Declaration, ProcessingInstruction, CData)

_PRIVATE_USE_RE = re.compile("[\ue000-\uf8ff\U000f0000-\U000ffffd]")
_PUNCT_ONLY_RE = re.compile(r"[\-|>•·→←*_=]+")
_WS_RE = re.compile(r"\s+")

# Exact path segments per page type; first table row with a matching segment wins.
PATH_KEYWORDS: tuple[tuple[PageType, frozenset[str]], ...] = (
    (PageType.ABOUT, frozenset({"about", "about-us", "over", "over-ons", "wie-zijn-wij"})),
    (PageType.TEAM, frozenset({"team", "our-team", "ons-team", "medewerkers"})),
    (PageType.CONTACT, frozenset({"contact", "contact-us", "contactgegevens", "neem-contact"})),
    (PageType.FAQ, frozenset({"faq", "faqs", "veelgestelde-vragen", "help", "support"})),
    (PageType.PRICING, frozenset({"pricing", "prijzen", "tarieven", "plans", "pakketten"})),
    (PageType.BLOG, frozenset({"blog", "nieuws", "news", "artikel", "article", "articles"})),
    (PageType.PRODUCT, frozenset({"product", "products", "producten"})),
    (
        PageType.SERVICE,
        frozenset({"service", "services", "dienst", "diensten", "oplossing", "oplossingen", "solution", "solutions"}),
    ),
)

SIGNAL_PATTERNS: tuple[tuple[PageType, re.Pattern[str]], ...] = (
    (PageType.CONTACT, re.compile(r"contact|bereik|bel ons|mail ons")),
    (PageType.FAQ, re.compile(r"faq|veelgestelde|frequently asked")),
    (PageType.PRICING, re.compile(r"prijs|tarief|pricing|pakket")),
    (PageType.ABOUT, re.compile(r"over ons|about us|wie zijn wij|ons verhaal")),
    (PageType.BLOG, re.compile(r"blog|artikel|geplaatst op|posted on")),
)


def _collapse(text: str) -> str:
    return _WS_RE.sub(" ", text or "").strip()


def _soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or "", "html.parser")


def _is_icon(tag: Tag) -> bool:
    classes = tag.get("class") or []
    if isinstance(classes, str):
        classes = [classes]
    return any("icon" in cls.lower() for cls in classes)


def strip_non_content(soup: BeautifulSoup) -> BeautifulSoup:
    """Remove scripts and embeds, then page chrome, then icons/images, then buttons."""
    for group in (_NON_CONTENT_TAGS, _CHROME_TAGS):
        for tag in soup.find_all(group):
            if not tag.decomposed:
                tag.decompose()
    for tag in soup.find_all(["i", "span"]):
        if not tag.decomposed and _is_icon(tag):
            tag.decompose()
    for tag in soup.find_all(["img", "button"]):
        if not tag.decomposed:
            tag.decompose()
    return soup


def extract_main_content(html: str) -> str:
    """Markup of the main region: ``<main>``, else ``<article>``, else ``<body>``, else everything."""
    try:
        soup = strip_non_content(_soup(html))
        container = soup.find("main") or soup.find("article") or soup.body
        if container is None:
            return str(soup)
        return container.decode_contents()
    except Exception as exc:
        logger.debug(f"Main content isolation failed: {exc!r}")
        return ""


def _render(node) -> str:
    if isinstance(node, _SKIPPED_STRINGS):
        return ""
    if isinstance(node, NavigableString):
        return _WS_RE.sub(" ", str(node))
    if not isinstance(node, Tag):
        return ""

    name = (node.name or "").lower()
    if name == "br":
        return "\n"

    inner = "".join(_render(child) for child in node.children)
    if name in _HEADING_PREFIX:
        text = _collapse(inner)
        return f"\n{_HEADING_PREFIX[name]} {text}\n\n" if text else ""
    if name == "li":
        text = _collapse(inner)
        return f"- {text}\n" if text else ""
    if name in ("ul", "ol"):
        return f"\n{inner}\n"
    if name == "p":
        return f"\n{inner}\n\n"
    if name in ("strong", "b"):
        clean = _collapse(inner)
        return f"**{clean}**" if clean else ""
    if name in ("em", "i"):
        clean = _collapse(inner)
        return f"*{clean}*" if clean else ""
    if name in _BLOCK_TAGS:
        return f"{inner}\n"
    return inner


def _tidy(text: str) -> str:
    text = text.replace("\xa0", " ")
    text = re.sub(r"\r\n?", "\n", text)
    text = _PRIVATE_USE_RE.sub("", text)
    text = re.sub(r"[ \t\f\v]+", " ", text)
    lines = [line.strip() for line in text.split("\n")]
    lines = [line for line in lines if not _PUNCT_ONLY_RE.fullmatch(line)]
    text = "\n".join(lines)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def html_to_markdown(html: str) -> str:
    """Convert markup to markdown-like text; links keep only their visible text."""
    try:
        soup = _soup(html)
        if soup.find() is None:
            # Plain text keeps its own line structure.
            return _tidy(soup.get_text())
        return _tidy(_render(soup))
    except Exception as exc:
        logger.debug(f"Markdown conversion failed: {exc!r}")
        return ""


def extract_headings(html: str) -> list[str]:
    try:
        soup = _soup(html)
        for br in soup.find_all("br"):
            br.replace_with(" ")
        headings = (_collapse(tag.get_text()) for tag in soup.find_all(list(_HEADING_PREFIX)))
        return [text for text in headings if text]
    except Exception:
        return []


def extract_title(html: str) -> str:
    try:
        soup = _soup(html)
        if soup.title is not None:
            title = _collapse(soup.title.get_text(" "))
            if title:
                return title
        h1 = soup.find("h1")
        if h1 is not None:
            title = _collapse(h1.get_text(" "))
            if title:
                return title
    except Exception as exc:
        logger.debug(f"Title extraction failed: {exc!r}")
    return UNTITLED


def extract_meta_description(html: str) -> str | None:
    try:
        soup = _soup(html)
        for meta in soup.find_all("meta"):
            if str(meta.get("name") or "").strip().lower() != "description":
                continue
            content = _collapse(str(meta.get("content") or ""))
            return content or None
    except Exception:
        return None
    return None


def truncate_content(content: str, max_chars: int = 3000) -> str:
    """Cut at the last sentence end or newline unless that would keep less than half."""
    if max_chars <= 0 or len(content) <= max_chars:
        return content
    truncated = content[:max_chars]
    last_sentence = truncated.rfind(". ")
    last_newline = truncated.rfind("\n")
    cut_point = max(last_sentence + 1, last_newline)
    if cut_point > max_chars * 0.5:
        return truncated[:cut_point].strip()
    return truncated.strip()


def content_hash(content: str) -> str:
    return hashlib.sha256((content or "").encode("utf-8")).hexdigest()[:HASH_LENGTH]


def classify_page(url: str, title: str, content: str) -> PageType:
    try:
        path = urlsplit(url or "").path.lower()
    except ValueError:
        path = ""
    segments = [segment for segment in path.split("/") if segment]
    if not segments:
        return PageType.HOME
    for page_type, keywords in PATH_KEYWORDS:
        if any(segment in keywords for segment in segments):
            return page_type

    signals = f"{(title or '').lower()} {(content or '')[:500].lower()}"
    for page_type, pattern in SIGNAL_PATTERNS:
        if pattern.search(signals):
            return page_type
    return PageType.OTHER


class NormalizeService:
    """Runs the normalization steps in their fixed order for one document."""

    def __init__(self, *, max_chars: int | None = None):
        self.max_chars = max(int(max_chars if max_chars is not None else settings.normalize_max_chars), 200)

    def normalize(self, raw_html: str, url: str) -> NormalizedPage:
        main_html = extract_main_content(raw_html)
        markdown = html_to_markdown(main_html)
        headings = extract_headings(main_html)
        title = extract_title(raw_html)
        content = truncate_content(markdown, self.max_chars)
        return NormalizedPage(
            url=url,
            title=title,
            content=content,
            meta_description=extract_meta_description(raw_html),
            headings=headings,
            page_type=classify_page(url, title, content),
            content_hash=content_hash(content),
        )
