"""In-process TTL cache shared by the country directory and the ranking engine."""

import time
from collections.abc import Callable
from typing import Any, Protocol

from loguru import logger

CACHE_KEY_ALL_COUNTRIES = "all_countries"
CACHE_KEY_TOP_COUNTRIES = "top_countries"
CACHE_KEY_COUNTRY_PREFIX = "country_"


def country_key(code: str) -> str:
    """Cache key for a single country looked up by its alpha-3 code."""
    return f"{CACHE_KEY_COUNTRY_PREFIX}{code.upper()}"


class Cache(Protocol):
    """Cache protocol with per-entry TTL."""

    async def get(self, key: str) -> Any | None:
        """Get cached value."""
        ...

    async def set(self, key: str, value: Any, ttl: float) -> None:
        """Set cached value with TTL in seconds."""
        ...

    async def delete(self, key: str) -> None:
        """Evict a cached value."""
        ...


class TTLCache:
    """Last-writer-wins in-memory map with per-entry expiry.

    The clock is injectable so expiry can be driven without sleeping.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic, max_size: int = 1000) -> None:
        self._entries: dict[str, tuple[Any, float]] = {}
        self._clock = clock
        self.max_size = max_size

    def __len__(self) -> int:
        return len(self._entries)

    async def get(self, key: str) -> Any | None:
        """Get value, dropping it if expired.

        Args:
            key: Cache key.

        Returns:
            Cached value if present and unexpired, None otherwise.
        """
        entry = self._entries.get(key)
        if entry is None:
            return None

        value, expires_at = entry
        if self._clock() >= expires_at:
            self._entries.pop(key, None)
            logger.debug(f"Cache expired for key {key}")
            return None

        logger.debug(f"Cache hit for key {key}")
        return value

    async def set(self, key: str, value: Any, ttl: float) -> None:
        """Set value with TTL.

        Args:
            key: Cache key.
            value: Data to cache.
            ttl: Time to live in seconds.
        """
        self._entries[key] = (value, self._clock() + ttl)

        if len(self._entries) > self.max_size:
            oldest_key = min(self._entries.items(), key=lambda item: item[1][1])[0]
            del self._entries[oldest_key]
            logger.debug(f"Evicted key {oldest_key} from cache")

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    async def exists(self, key: str) -> bool:
        return await self.get(key) is not None

    async def clear(self) -> None:
        self._entries.clear()

    async def health_check(self) -> bool:
        """Health check always returns True for in-memory."""
        return True
