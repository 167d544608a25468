"""
In-memory TTL cache for read-mostly rule queries.

Entries expire after a per-entry time-to-live. Expired entries are evicted
lazily when read and in bulk by ``cleanup()``, which ``CacheSweeper`` runs
periodically on a background thread.
"""

import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar

from loguru import logger

T = TypeVar("T")


@dataclass
class CacheEntry(Generic[T]):
    """A cached value with its creation and absolute expiry times."""

    data: T
    created_at: float
    expires_at: float

    def is_expired(self, now: float) -> bool:
        """An entry is stale from the instant its TTL has elapsed."""
        return now >= self.expires_at


@dataclass
class CacheStats:
    """Cache hit/miss counters."""

    hits: int
    misses: int
    size: int
    hit_rate: float  # percentage, 0-100

    @property
    def total_requests(self) -> int:
        return self.hits + self.misses

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "hits": self.hits,
            "misses": self.misses,
            "size": self.size,
            "hit_rate": self.hit_rate,
        }


class TTLCache:
    """
    Key/value cache with per-entry expiry and hit/miss statistics.

    The store is guarded by a re-entrant lock: ``set``, the evict-on-read in
    ``get`` and ``cleanup`` all mutate it, and the sweeper runs on its own
    thread.

    Example:
        >>> cache = TTLCache()
        >>> cache.set("popular_rules:5", rules, ttl_seconds=600)
        >>> cache.get("popular_rules:5")
    """

    def __init__(
        self,
        default_ttl: int = 3600,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize an empty cache.

        Args:
            default_ttl: TTL in seconds used when ``set`` gets none
            clock: Time source returning seconds (injectable for tests)
        """
        self.default_ttl = default_ttl
        self._clock = clock
        self._store: Dict[str, CacheEntry[Any]] = {}
        self._lock = threading.RLock()
        self._hits = 0
        self._misses = 0

        logger.debug("Cache initialized")

    def get(self, key: str) -> Optional[Any]:
        """
        Get a value from the cache.

        Args:
            key: Cache key

        Returns:
            Cached value, or None if absent or expired
        """
        with self._lock:
            entry = self._store.get(key)

            if entry is None:
                self._misses += 1
                logger.debug(f"Cache miss: {key}")
                return None

            now = self._clock()
            if entry.is_expired(now):
                del self._store[key]
                self._misses += 1
                logger.debug(
                    f"Cache expired: {key} (age {round(now - entry.created_at)}s)"
                )
                return None

            self._hits += 1
            logger.debug(
                f"Cache hit: {key} (age {round(now - entry.created_at)}s, "
                f"ttl {round(entry.expires_at - now)}s)"
            )
            return entry.data

    def set(self, key: str, value: Any, ttl_seconds: Optional[float] = None) -> None:
        """
        Store a value, replacing any existing entry for ``key``.

        Args:
            key: Cache key
            value: Value to store
            ttl_seconds: Lifetime in seconds (default_ttl if None)
        """
        ttl = self.default_ttl if ttl_seconds is None else ttl_seconds

        with self._lock:
            now = self._clock()
            self._store[key] = CacheEntry(
                data=value,
                created_at=now,
                expires_at=now + ttl,
            )
            size = len(self._store)

        logger.debug(f"Cache set: {key} (ttl {ttl}s, size {size})")

    def delete(self, key: str) -> bool:
        """
        Remove an entry.

        Returns:
            True if the entry existed
        """
        with self._lock:
            existed = self._store.pop(key, None) is not None

        if existed:
            logger.debug(f"Cache delete: {key}")
        return existed

    def has(self, key: str) -> bool:
        """Whether ``key`` holds a fresh value. Counts as a read."""
        return self.get(key) is not None

    def get_or_set(
        self,
        key: str,
        factory: Callable[[], T],
        ttl_seconds: Optional[float] = None,
    ) -> T:
        """
        Return the cached value for ``key``, computing and storing it on a miss.

        ``None`` results from ``factory`` are not cached.
        """
        cached = self.get(key)
        if cached is not None:
            return cached

        value = factory()
        if value is not None:
            self.set(key, value, ttl_seconds)
        return value

    def clear(self) -> None:
        """Remove every entry."""
        with self._lock:
            removed = len(self._store)
            self._store.clear()

        logger.info(f"Cache cleared ({removed} entries removed)")

    def cleanup(self) -> int:
        """
        Evict all expired entries.

        Returns:
            Number of entries removed
        """
        with self._lock:
            now = self._clock()
            expired = [k for k, entry in self._store.items() if entry.is_expired(now)]
            for key in expired:
                del self._store[key]
            remaining = len(self._store)

        if expired:
            logger.debug(
                f"Cache cleanup removed {len(expired)} entries, {remaining} remaining"
            )
        return len(expired)

    def get_stats(self) -> CacheStats:
        """Get hit/miss statistics. hit_rate is a percentage rounded to 2 places."""
        with self._lock:
            total = self._hits + self._misses
            hit_rate = (self._hits / total) * 100 if total > 0 else 0.0
            return CacheStats(
                hits=self._hits,
                misses=self._misses,
                size=len(self._store),
                hit_rate=round(hit_rate, 2),
            )

    def reset_stats(self) -> None:
        """Zero the hit/miss counters."""
        with self._lock:
            self._hits = 0
            self._misses = 0
        logger.debug("Cache stats reset")

    def keys(self) -> List[str]:
        """All keys currently stored, including not yet swept expired ones."""
        with self._lock:
            return list(self._store.keys())

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)


class CacheSweeper:
    """
    Background thread that periodically calls ``cache.cleanup()``.

    Start it at process start and stop it at shutdown:

        >>> sweeper = CacheSweeper(cache, interval_seconds=600)
        >>> sweeper.start()
        >>> ...
        >>> sweeper.stop()
    """

    def __init__(self, cache: TTLCache, interval_seconds: float = 600.0):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.cache = cache
        self.interval_seconds = interval_seconds
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        """Check if the sweep thread is alive."""
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start sweeping in a daemon thread."""
        if self.is_running:
            logger.warning("Cache sweeper already running")
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run, name="cache-sweeper", daemon=True
        )
        self._thread.start()
        logger.info(f"Cache sweeper started (every {self.interval_seconds}s)")

    def stop(self, timeout: float = 2.0) -> None:
        """Stop the sweep thread and wait for it to exit."""
        if self._thread is None:
            return

        self._stop_event.set()
        self._thread.join(timeout=timeout)
        self._thread = None
        logger.info("Cache sweeper stopped")

    def _run(self) -> None:
        while not self._stop_event.wait(self.interval_seconds):
            try:
                self.cache.cleanup()
            except Exception as e:
                logger.error(f"Cache sweep failed: {e}")

    def __enter__(self) -> "CacheSweeper":
        self.start()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.stop()


class CacheKeys:
    """Builders for cache keys, so callers never collide by accident."""

    @staticmethod
    def popular_rules(limit: int) -> str:
        return f"popular_rules:{limit}"

    @staticmethod
    def rules_by_country_category(country_code: str, category: str) -> str:
        return f"rules:{country_code}:{category}"
