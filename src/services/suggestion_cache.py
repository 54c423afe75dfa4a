"""In-memory TTL cache for AI reply suggestions."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from hashlib import md5
from threading import Lock
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from src.services.ai_service import Suggestion

logger = logging.getLogger(__name__)

KEY_PREFIX = "ai:suggestion:"


@dataclass
class CacheEntry:
    """A cached suggestion with expiration."""

    value: Any
    expires_at: float

    def is_expired(self) -> bool:
        return time.time() > self.expires_at


@dataclass
class SuggestionCacheConfig:
    """Configuration for suggestion caching."""

    max_size: int = 1000
    ttl_seconds: int = 300
    cleanup_interval_seconds: int = 60

    @classmethod
    def from_settings(cls) -> "SuggestionCacheConfig":
        """Create config from application settings."""
        from src.core.config import get_settings
        settings = get_settings()
        return cls(
            max_size=settings.suggestion_cache_size,
            ttl_seconds=settings.suggestion_cache_ttl,
        )


def suggestion_cache_key(trigger_message: str) -> str:
    """Cache key for a trigger message.

    Only the message text is hashed: history and channel are ignored, so
    identical customer sentences share one cached suggestion.
    """
    return KEY_PREFIX + md5(trigger_message.encode("utf-8")).hexdigest()


class SuggestionCache:
    """Thread-safe in-memory cache for suggestions with TTL.

    Writes always replace the whole entry; concurrent writers of the same
    key resolve as last write wins.
    """

    def __init__(self, config: SuggestionCacheConfig | None = None) -> None:
        self.config = config or SuggestionCacheConfig()
        self._cache: dict[str, CacheEntry] = {}
        self._lock = Lock()
        self._cleanup_task: asyncio.Task | None = None
        self._hits = 0
        self._misses = 0

    async def start_cleanup_task(self) -> None:
        """Start background cleanup task."""
        if self._cleanup_task is None:
            self._cleanup_task = asyncio.create_task(self._cleanup_loop())
            logger.info("Suggestion cache cleanup task started")

    async def stop_cleanup_task(self) -> None:
        """Stop background cleanup task."""
        if self._cleanup_task:
            self._cleanup_task.cancel()
            try:
                await self._cleanup_task
            except asyncio.CancelledError:
                pass
            self._cleanup_task = None
            logger.info("Suggestion cache cleanup task stopped")

    async def _cleanup_loop(self) -> None:
        while True:
            await asyncio.sleep(self.config.cleanup_interval_seconds)
            count = self.cleanup()
            if count > 0:
                logger.debug("Suggestion cache cleaned up %d expired entries", count)

    def get(self, key: str) -> "Suggestion | None":
        """Get a cached suggestion if present and not expired."""
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                self._misses += 1
                return None

            if entry.is_expired():
                del self._cache[key]
                self._misses += 1
                return None

            self._hits += 1
            return entry.value

    def set(self, key: str, suggestion: "Suggestion", ttl_seconds: int | None = None) -> None:
        """Cache a suggestion, replacing any previous value for the key."""
        ttl = ttl_seconds if ttl_seconds is not None else self.config.ttl_seconds
        expires_at = time.time() + ttl

        with self._lock:
            if key not in self._cache and len(self._cache) >= self.config.max_size:
                self._evict_oldest()
            self._cache[key] = CacheEntry(value=suggestion, expires_at=expires_at)

    def _evict_oldest(self) -> None:
        """Evict oldest entries to make room. Must be called with lock held."""
        expired_keys = [k for k, v in self._cache.items() if v.is_expired()]
        for key in expired_keys:
            del self._cache[key]

        if len(self._cache) >= self.config.max_size:
            sorted_entries = sorted(self._cache.items(), key=lambda x: x[1].expires_at)
            to_remove = max(1, len(self._cache) // 10)
            for key, _ in sorted_entries[:to_remove]:
                del self._cache[key]
            logger.debug("Evicted %d entries from suggestion cache", to_remove)

    def cleanup(self) -> int:
        """Remove all expired entries.

        Returns:
            Number of entries removed.
        """
        with self._lock:
            expired_keys = [k for k, v in self._cache.items() if v.is_expired()]
            for key in expired_keys:
                del self._cache[key]
            return len(expired_keys)

    def clear(self) -> int:
        """Clear all cached entries."""
        with self._lock:
            count = len(self._cache)
            self._cache.clear()
            logger.info("Cleared %d entries from suggestion cache", count)
            return count

    def get_stats(self) -> dict:
        """Get cache statistics for monitoring."""
        with self._lock:
            valid_count = sum(1 for v in self._cache.values() if not v.is_expired())
            return {
                "total_entries": len(self._cache),
                "valid_entries": valid_count,
                "hits": self._hits,
                "misses": self._misses,
                "max_size": self.config.max_size,
                "ttl_seconds": self.config.ttl_seconds,
            }


# Global singleton instance
_suggestion_cache: SuggestionCache | None = None


def get_suggestion_cache() -> SuggestionCache:
    """Get or create the global suggestion cache instance."""
    global _suggestion_cache
    if _suggestion_cache is None:
        _suggestion_cache = SuggestionCache(SuggestionCacheConfig.from_settings())
    return _suggestion_cache


async def init_suggestion_cache() -> SuggestionCache:
    """Initialize suggestion cache with cleanup task. Call at app startup."""
    cache = get_suggestion_cache()
    await cache.start_cleanup_task()
    return cache


async def shutdown_suggestion_cache() -> None:
    """Shutdown suggestion cache cleanup task. Call at app shutdown."""
    global _suggestion_cache
    if _suggestion_cache:
        await _suggestion_cache.stop_cleanup_task()
