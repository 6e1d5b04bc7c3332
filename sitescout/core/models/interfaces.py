from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal, Protocol


class Platform(str, Enum):
    NONE = "none"
    RECRUITEE = "recruitee"
    GREENHOUSE = "greenhouse"
    LEVER = "lever"
    WORKABLE = "workable"


class PageType(str, Enum):
    HOME = "home"
    ABOUT = "about"
    CONTACT = "contact"
    FAQ = "faq"
    PRICING = "pricing"
    BLOG = "blog"
    TEAM = "team"
    SERVICE = "service"
    PRODUCT = "product"
    OTHER = "other"


StageStatus = Literal["found", "not_found", "error"]


@dataclass(slots=True)
class FetchResult:
    content: str
    http_status: int
    used_browser: bool


@dataclass(slots=True)
class DiscoveryResult:
    url: str
    content: str
    platform: Platform = Platform.NONE
    related_urls: list[str] = field(default_factory=list)


@dataclass(slots=True)
class StageOutcome:
    """Result of one discovery stage; stages fall back on anything but ``found``."""

    stage: str
    status: StageStatus
    result: DiscoveryResult | None = None
    error: str | None = None

    @property
    def found(self) -> bool:
        return self.status == "found" and self.result is not None


@dataclass(slots=True)
class CacheEntry:
    key: str
    value: Any
    expires_at: float


@dataclass(slots=True)
class ExtractionResult:
    entities: list[dict[str, Any]]
    confidence: float


class VacancyExtractor(Protocol):
    async def extract(
        self,
        normalized_text: str,
        source_url: str,
        related_urls: list[str] | None = None,
    ) -> ExtractionResult: ...


class PlatformClient(Protocol):
    async def parse(self, url: str) -> list[dict[str, Any]] | None: ...
