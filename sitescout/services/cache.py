"""Two-tier cache: Redis when configured, process-local dict always."""

from __future__ import annotations

import json
import threading
import time
from hashlib import sha256
from typing import Any, Callable

from loguru import logger

from sitescout.config import settings
from sitescout.core.models.interfaces import CacheEntry

Clock = Callable[[], float]


class LocalStore:
    """Thread-safe in-process store with lazy expiry on read."""

    def __init__(self, clock: Clock = time.time):
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.expires_at <= self._clock():
                del self._entries[key]
                return None
            return entry.value

    def set(self, key: str, value: Any, ttl: int) -> None:
        with self._lock:
            self._entries[key] = CacheEntry(
                key=key,
                value=value,
                expires_at=self._clock() + ttl,
            )

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class CacheService:
    """Cache facade that never raises.

    Every primary-store failure (connection, timeout, serialization) is logged
    and the operation continues against the local store.
    """

    def __init__(
        self,
        redis_url: str | None = None,
        *,
        client: Any | None = None,
        default_ttl: int | None = None,
        key_prefix: str | None = None,
        clock: Clock = time.time,
    ):
        self.default_ttl = int(default_ttl if default_ttl is not None else settings.cache_ttl_seconds)
        self.key_prefix = key_prefix if key_prefix is not None else settings.cache_key_prefix
        self.local = LocalStore(clock=clock)
        self._client = client
        if self._client is None and redis_url:
            self._client = self._connect(redis_url)

    @staticmethod
    def _connect(redis_url: str) -> Any | None:
        try:
            from redis import asyncio as redis_asyncio

            return redis_asyncio.from_url(
                redis_url,
                decode_responses=True,
                socket_timeout=2.0,
                socket_connect_timeout=2.0,
            )
        except Exception as exc:
            logger.warning(f"Redis unavailable ({exc}); using local cache only")
            return None

    @property
    def has_primary(self) -> bool:
        return self._client is not None

    def key_for(self, raw: str, prefix: str | None = None) -> str:
        normalized = " ".join((raw or "").split()).lower()
        digest = sha256(normalized.encode("utf-8")).hexdigest()[:16]
        return f"{prefix or self.key_prefix}:{digest}"

    async def get(self, key: str) -> Any | None:
        if self._client is not None:
            try:
                data = await self._client.get(key)
                if data is not None:
                    return json.loads(data)
            except Exception as exc:
                logger.warning(f"Cache primary get failed for {key}: {exc}")
        return self.local.get(key)

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        expiry = int(ttl if ttl is not None else self.default_ttl)
        if self._client is not None:
            try:
                await self._client.setex(key, expiry, json.dumps(value))
                return
            except Exception as exc:
                logger.warning(f"Cache primary set failed for {key}: {exc}")
        self.local.set(key, value, expiry)

    async def close(self) -> None:
        if self._client is None:
            return
        client, self._client = self._client, None
        try:
            await client.aclose()
        except Exception as exc:
            logger.warning(f"Cache close failed: {exc}")
