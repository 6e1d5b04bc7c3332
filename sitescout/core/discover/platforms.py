from __future__ import annotations

from sitescout.core.models.interfaces import Platform

URL_PATTERNS: tuple[tuple[Platform, tuple[str, ...]], ...] = (
    (Platform.RECRUITEE, ("recruitee.com",)),
    (Platform.GREENHOUSE, ("greenhouse.io",)),
    (Platform.LEVER, ("lever.co",)),
    (Platform.WORKABLE, ("workable.com",)),
)

HTML_SIGNATURES: tuple[tuple[Platform, tuple[str, ...]], ...] = (
    (Platform.RECRUITEE, ("recruitee", "d3ii2lldyojfer.cloudfront.net")),
    (Platform.GREENHOUSE, ("greenhouse-jobboard", "boards.greenhouse.io")),
    (Platform.LEVER, ("lever-jobs", "jobs.lever.co")),
    (Platform.WORKABLE, ("workable-careers",)),
)


def detect_platform(url: str) -> Platform:
    lower = (url or "").lower()
    for platform, patterns in URL_PATTERNS:
        if any(pattern in lower for pattern in patterns):
            return platform
    return Platform.NONE


def detect_platform_from_html(html: str) -> Platform:
    lower = (html or "").lower()
    for platform, signatures in HTML_SIGNATURES:
        if any(signature in lower for signature in signatures):
            return platform
    return Platform.NONE


def fingerprint(url: str, html: str) -> Platform:
    """URL patterns win over markup signatures."""
    platform = detect_platform(url)
    if platform is Platform.NONE:
        platform = detect_platform_from_html(html)
    return platform
