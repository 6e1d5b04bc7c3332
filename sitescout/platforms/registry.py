from __future__ import annotations

from typing import Any, Mapping

from loguru import logger

from sitescout.core.models.interfaces import Platform, PlatformClient


class PlatformRegistry:
    """Structured-data clients keyed by fingerprinted platform."""

    def __init__(self, clients: Mapping[Platform, PlatformClient] | None = None):
        self._clients: dict[Platform, PlatformClient] = dict(clients or {})

    def register(self, platform: Platform, client: PlatformClient) -> None:
        if platform is Platform.NONE:
            raise ValueError("Cannot register a client for Platform.NONE")
        self._clients[platform] = client

    def get(self, platform: Platform) -> PlatformClient | None:
        return self._clients.get(platform)

    def supports(self, platform: Platform) -> bool:
        return platform in self._clients

    async def parse(self, platform: Platform, url: str) -> list[dict[str, Any]] | None:
        """Entities from the platform's client; ``None`` when unsupported or empty."""
        client = self.get(platform)
        if client is None:
            return None
        try:
            entities = await client.parse(url)
        except Exception as exc:
            logger.warning(f"{platform.value} client failed for {url}: {exc!r}")
            return None
        return entities or None
