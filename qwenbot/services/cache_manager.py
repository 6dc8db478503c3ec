"""Namespaced TTL cache with access-count eviction and a background sweep."""

import asyncio
import inspect
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional, TypeVar, Union

from qwenbot.config import CacheConfig
from qwenbot.constants import CacheDefaults, CacheNamespace
from qwenbot.utils import utcnow

logger = logging.getLogger(__name__)

T = TypeVar("T")

_MISSING = object()


@dataclass
class CacheEntry:
    """A cached value with its write time and TTL (seconds)."""

    value: Any
    timestamp: datetime
    ttl: float

    def is_expired(self, now: datetime) -> bool:
        return (now - self.timestamp).total_seconds() > self.ttl


def _format_bytes(size: int) -> str:
    if size <= 0:
        return "0 B"
    units = ["B", "KB", "MB", "GB"]
    value = float(size)
    index = 0
    while value >= 1024 and index < len(units) - 1:
        value /= 1024
        index += 1
    return f"{round(value, 2):g} {units[index]}"


class CacheManager:
    """
    Key-value cache keyed by ``"namespace:id"``.

    Features:
    - Per-namespace default TTL tiers (persona, conversation, api_response)
    - Lazy purge on read plus a periodic sweep
    - At capacity, a new key evicts the entry with the fewest reads
    """

    def __init__(
        self,
        config: Optional[CacheConfig] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.config = config or CacheConfig()
        self._clock = clock
        self._cache: dict[str, CacheEntry] = {}
        self._access_count: dict[str, int] = {}
        self._hits: dict[str, int] = {}
        self._misses: dict[str, int] = {}
        self._cleanup_task: Optional[asyncio.Task] = None

    @staticmethod
    def _key(namespace: str, id: str) -> str:
        return f"{namespace}:{id}"

    @staticmethod
    def _namespace_of(key: str) -> str:
        return key.split(":", 1)[0]

    def default_ttl(self, namespace: str) -> float:
        if namespace == CacheNamespace.PERSONA:
            return self.config.persona_ttl
        if namespace == CacheNamespace.CONVERSATION:
            return self.config.conversation_ttl
        return self.config.api_response_ttl

    def _drop(self, key: str) -> None:
        self._cache.pop(key, None)
        self._access_count.pop(key, None)

    def _evict_least_accessed(self) -> None:
        """Evict the entry with the fewest reads; ties go to the oldest insertion."""
        if not self._access_count:
            return

        victim = min(self._access_count, key=self._access_count.__getitem__)
        self._drop(victim)
        logger.debug("Evicted least accessed cache entry: %s", victim)

    # --- Core operations ---

    def set(self, namespace: str, id: str, value: Any, ttl: Optional[float] = None) -> None:
        key = self._key(namespace, id)

        if key not in self._cache and len(self._cache) >= self.config.max_size:
            self._evict_least_accessed()

        self._cache[key] = CacheEntry(
            value=value,
            timestamp=self._clock(),
            ttl=ttl if ttl is not None else self.default_ttl(namespace),
        )
        self._access_count[key] = 0

    def get(self, namespace: str, id: str, default: Any = None) -> Any:
        key = self._key(namespace, id)
        entry = self._cache.get(key)

        if entry is not None and entry.is_expired(self._clock()):
            self._drop(key)
            logger.debug("Cache entry expired: %s", key)
            entry = None

        if entry is None:
            self._misses[namespace] = self._misses.get(namespace, 0) + 1
            return default

        self._access_count[key] = self._access_count.get(key, 0) + 1
        self._hits[namespace] = self._hits.get(namespace, 0) + 1
        return entry.value

    def delete(self, namespace: str, id: str) -> bool:
        key = self._key(namespace, id)
        if key not in self._cache:
            return False
        self._drop(key)
        return True

    def clear_namespace(self, namespace: str) -> int:
        prefix = f"{namespace}:"
        keys = [key for key in list(self._cache) if key.startswith(prefix)]
        for key in keys:
            self._drop(key)
        logger.debug("Cleared %d entries from namespace %s", len(keys), namespace)
        return len(keys)

    def clear(self) -> None:
        size = len(self._cache)
        self._cache.clear()
        self._access_count.clear()
        self._hits.clear()
        self._misses.clear()
        logger.info("Cache cleared (%d entries)", size)

    def size(self) -> int:
        return len(self._cache)

    def cleanup_expired(self) -> int:
        """Remove expired entries, iterating over a snapshot."""
        now = self._clock()
        expired = [key for key, entry in list(self._cache.items()) if entry.is_expired(now)]
        for key in expired:
            self._drop(key)

        if expired:
            logger.debug("Cleaned up %d expired cache entries", len(expired))
        return len(expired)

    # --- Reporting ---

    def get_stats(self) -> dict[str, Any]:
        namespaces: dict[str, int] = {}
        for key in self._cache:
            ns = self._namespace_of(key)
            namespaces[ns] = namespaces.get(ns, 0) + 1

        return {
            "total_items": len(self._cache),
            "max_size": self.config.max_size,
            "namespaces": namespaces,
            "memory_usage": _format_bytes(len(self._cache) * CacheDefaults.ESTIMATED_BYTES_PER_ITEM),
        }

    def get_hit_rate(self) -> dict[str, float]:
        """Per-namespace ratio of hits to lookups, in percent."""
        rates = {}
        for ns in set(self._hits) | set(self._misses):
            hits = self._hits.get(ns, 0)
            total = hits + self._misses.get(ns, 0)
            rates[ns] = round(hits / total * 100, 2) if total else 0.0
        return rates

    def get_report(self) -> str:
        stats = self.get_stats()
        rates = self.get_hit_rate()

        lines = [
            "💾 缓存管理报告 / Cache Report",
            "=" * 40,
            f"总缓存项数 / Items: {stats['total_items']} / {stats['max_size']}",
            f"内存使用 / Memory: {stats['memory_usage']}",
            "",
            "命名空间统计 / Namespaces:",
        ]
        for ns, count in sorted(stats["namespaces"].items()):
            lines.append(f"  {ns}: {count} 项 (命中率: {rates.get(ns, 0.0):.2f}%)")
        return "\n".join(lines)

    # --- Background sweep ---

    def start_cleanup_task(self) -> None:
        """Start the background cleanup task."""
        if self._cleanup_task is not None and not self._cleanup_task.done():
            logger.warning("Cleanup task already running")
            return

        self._cleanup_task = asyncio.create_task(self._cleanup_loop())
        logger.debug("Started cache cleanup task")

    async def stop_cleanup_task(self) -> None:
        """Stop the background cleanup task."""
        if self._cleanup_task is not None and not self._cleanup_task.done():
            self._cleanup_task.cancel()
            try:
                await self._cleanup_task
            except asyncio.CancelledError:
                logger.debug("Cache cleanup task cancelled")
        self._cleanup_task = None

    async def _cleanup_loop(self) -> None:
        while True:
            try:
                await asyncio.sleep(self.config.cleanup_interval)
                self.cleanup_expired()
            except asyncio.CancelledError:
                logger.debug("Cache cleanup loop cancelled")
                break
            except Exception as e:
                logger.error("Error in cache cleanup loop: %s", e, exc_info=True)


async def cached_call(
    cache: CacheManager,
    namespace: str,
    key: str,
    factory: Callable[[], Union[T, Awaitable[T]]],
    ttl: Optional[float] = None,
) -> T:
    """Return the cached value for ``namespace:key`` or compute and store it.

    ``factory`` may be a plain or a coroutine function. ``None`` results are
    not cached.
    """
    cached = cache.get(namespace, key, _MISSING)
    if cached is not _MISSING:
        return cached

    result = factory()
    if inspect.isawaitable(result):
        result = await result

    if result is not None:
        cache.set(namespace, key, result, ttl)
    return result
