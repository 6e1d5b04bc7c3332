from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field

from sitescout.core.models.interfaces import PageType, Platform


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


# --- Page records ---


class NormalizedPage(BaseModel):
    url: str
    title: str
    content: str
    meta_description: str | None = None
    headings: list[str] = Field(default_factory=list)
    page_type: PageType = PageType.OTHER
    content_hash: str
    extracted_at: datetime = Field(default_factory=_utc_now)
    # Filled by the orchestrator on records it owns (e.g. AI-derived fields).
    enrichment: dict[str, Any] = Field(default_factory=dict)


# --- Responses ---


class VacancySource(BaseModel):
    platform: Platform = Platform.NONE
    career_page_url: str = ""
    method: Literal["parser", "ai", "none"] = "none"


class VacancyScrapeResponse(BaseModel):
    domain: str
    found: bool
    has_vacancies: bool = False
    vacancy_count: int = 0
    vacancies: list[dict[str, Any]] = Field(default_factory=list)
    confidence: float | None = None
    source: VacancySource = Field(default_factory=VacancySource)
    related_urls: list[str] = Field(default_factory=list)
    career_page: NormalizedPage | None = None
    cached: bool = False
    scraped_at: datetime = Field(default_factory=_utc_now)


class SiteScrapeResponse(BaseModel):
    domain: str
    page_count: int = 0
    pages: list[NormalizedPage] = Field(default_factory=list)
    cached: bool = False
    scraped_at: datetime = Field(default_factory=_utc_now)
