from __future__ import annotations

import re
from urllib.parse import urljoin, urlsplit, urlunsplit

CAREER_PATHS = (
    "/vacatures",
    "/careers",
    "/jobs",
    "/werken-bij",
    "/werkenbij",
    "/werk",
    "/jobs/all",
    "/careers/jobs",
    "/nl/vacatures",
    "/nl/careers",
    "/en/careers",
    "/over-ons/vacatures",
    "/join-us",
    "/join",
    "/team",
    "/open-positions",
    "/job-openings",
)


def clean_domain(domain: str) -> str:
    """Strip scheme, leading ``www.``, path and trailing slash from a domain."""
    value = (domain or "").strip().lower()
    value = re.sub(r"^https?://", "", value)
    value = re.sub(r"^www\.", "", value)
    return value.split("/", 1)[0]


def base_url(domain: str) -> str:
    return f"https://{clean_domain(domain)}"


def resolve_url(href: str, base: str) -> str | None:
    """Absolute http(s) URL for *href* relative to *base*, without fragment."""
    try:
        absolute = urljoin(base, (href or "").strip())
        parsed = urlsplit(absolute)
    except ValueError:
        return None
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return None
    return urlunsplit((parsed.scheme, parsed.netloc, parsed.path or "/", parsed.query, ""))


def career_page_candidates(domain: str) -> list[str]:
    """Conventional careers URLs: path variants first, then career subdomains."""
    cleaned = clean_domain(domain)
    base = f"https://{cleaned}"
    base_name = cleaned.split(".")[0]

    candidates = [f"{base}{path}" for path in CAREER_PATHS]
    candidates.extend(
        [
            f"https://werkenbij{cleaned}",
            f"https://jobs.{cleaned}",
            f"https://careers.{cleaned}",
            f"https://werken.{cleaned}",
            f"https://werkenbij.{cleaned}",
            f"https://www.werkenbij{base_name}.nl",
            f"https://werkenbij{base_name}.nl",
        ]
    )
    return list(dict.fromkeys(candidates))
