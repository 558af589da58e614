"""
In-memory cache with TTL expiry and pluggable eviction.

Used to memoize expensive derived values (stats, related-document lists).
Entries past their expiry are logically absent: ``get``/``has`` drop them
lazily and a background sweep removes the rest on a fixed interval, so
abandoned keys cannot pin memory forever.
"""

from __future__ import annotations

import functools
import threading
import time
from collections.abc import Awaitable, Callable, Hashable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from loguru import logger

from folio.core.exceptions import CacheError, ConfigurationError

_MISSING = object()


class EvictionPolicy(StrEnum):
    """Which entry to drop when a new key arrives at a full cache."""

    LRU = "lru"  # nearest expiry, used as a recency proxy
    LFU = "lfu"  # fewest hits
    FIFO = "fifo"  # earliest creation


@dataclass
class CacheEntry:
    value: Any
    created_at: float
    expires_at: float
    hits: int = 0

    def is_expired(self, now: float) -> bool:
        return self.expires_at < now


@dataclass(frozen=True)
class CacheStats:
    size: int
    hits: int
    misses: int

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0


def _check_key(key: Any) -> None:
    try:
        hash(key)
    except TypeError as e:
        raise CacheError(f"Cache key must be hashable, got {type(key).__name__}") from e


class MemoryCache:
    """Bounded key/value store with TTL expiry.

    Usage::

        cache = MemoryCache(default_ttl=60, max_size=100, policy=EvictionPolicy.LFU)
        cache.set("stats", compute_stats())
        cache.get("stats")

        fetch = cache.wrap(load_remote)   # async memoized loader
        value = await fetch("key")
    """

    def __init__(
        self,
        default_ttl: float = 3600.0,
        max_size: int = 1000,
        policy: EvictionPolicy | str = EvictionPolicy.LRU,
        sweep_interval: float | None = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            default_ttl: Seconds an entry lives when ``set`` gets no ttl.
            max_size: Entry cap; adding a new key beyond it evicts one entry.
            policy: Eviction policy (``lru``, ``lfu`` or ``fifo``).
            sweep_interval: Seconds between background sweeps. None disables
                the sweep thread (expired entries are then only dropped lazily).
            clock: Monotonic time source, injectable for tests.
        """
        if max_size < 1:
            raise ConfigurationError("max_size must be at least 1")
        if default_ttl <= 0:
            raise ConfigurationError("default_ttl must be greater than 0")
        if sweep_interval is not None and sweep_interval <= 0:
            raise ConfigurationError("sweep_interval must be greater than 0")
        try:
            self.policy = EvictionPolicy(policy)
        except ValueError:
            raise ConfigurationError(f"Unknown eviction policy: {policy!r}") from None

        self.default_ttl = default_ttl
        self.max_size = max_size
        self.sweep_interval = sweep_interval
        self._clock = clock
        self._entries: dict[Hashable, CacheEntry] = {}
        self._lock = threading.RLock()
        self._hits = 0
        self._misses = 0
        self._stop = threading.Event()
        self._sweeper: threading.Thread | None = None

        if sweep_interval is not None:
            self._start_sweeper()

    # ------------------------------------------------------------------
    # Basic operations
    # ------------------------------------------------------------------

    def get(self, key: Hashable, default: Any = None) -> Any:
        """Return the live value for *key*, or *default* when missing or expired."""
        _check_key(key)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return default
            if entry.is_expired(self._clock()):
                del self._entries[key]
                self._misses += 1
                return default
            entry.hits += 1
            self._hits += 1
            return entry.value

    def set(self, key: Hashable, value: Any, ttl: float | None = None) -> None:
        """Store *value*; evicts one entry first if *key* is new and the cache is full."""
        _check_key(key)
        ttl = self.default_ttl if ttl is None else ttl
        with self._lock:
            if key not in self._entries and len(self._entries) >= self.max_size:
                self._evict()
            now = self._clock()
            self._entries[key] = CacheEntry(value=value, created_at=now, expires_at=now + ttl)

    def has(self, key: Hashable) -> bool:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False
            if entry.is_expired(self._clock()):
                del self._entries[key]
                return False
            return True

    def delete(self, key: Hashable) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        """Drop every entry and reset hit/miss counters."""
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        return self.has(key)

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(size=len(self._entries), hits=self._hits, misses=self._misses)

    # ------------------------------------------------------------------
    # Eviction and expiry
    # ------------------------------------------------------------------

    def _evict(self) -> None:
        if not self._entries:
            return

        if self.policy is EvictionPolicy.LFU:
            rank: Callable[[CacheEntry], float] = lambda e: e.hits  # noqa: E731
        elif self.policy is EvictionPolicy.FIFO:
            rank = lambda e: e.created_at  # noqa: E731
        else:
            rank = lambda e: e.expires_at  # noqa: E731

        # min() keeps the first candidate on ties, i.e. the oldest in iteration order.
        victim = min(self._entries, key=lambda k: rank(self._entries[k]))
        del self._entries[victim]
        logger.debug(f"Evicted cache entry ({self.policy.value}): {victim!r}")

    def sweep(self) -> int:
        """Remove all expired entries. Returns how many were dropped."""
        with self._lock:
            now = self._clock()
            expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.debug(f"Swept {len(expired)} expired cache entries")
        return len(expired)

    def _start_sweeper(self) -> None:
        def _run() -> None:
            while not self._stop.wait(self.sweep_interval):
                self.sweep()

        self._sweeper = threading.Thread(target=_run, name="folio-cache-sweep", daemon=True)
        self._sweeper.start()

    def close(self) -> None:
        """Stop the background sweep thread."""
        self._stop.set()
        if self._sweeper is not None and self._sweeper is not threading.current_thread():
            self._sweeper.join(timeout=1.0)
        self._sweeper = None

    def __enter__(self) -> MemoryCache:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Memoization
    # ------------------------------------------------------------------

    def wrap(
        self,
        fn: Callable[[Hashable], Awaitable[Any]],
        ttl: float | None = None,
    ) -> Callable[[Hashable], Awaitable[Any]]:
        """Return a memoizing version of the async loader *fn*.

        Misses await ``fn(key)`` and store the result for *ttl* seconds
        (``default_ttl`` when omitted). A ``None`` result is cached too.
        """

        @functools.wraps(fn)
        async def _cached(key: Hashable) -> Any:
            value = self.get(key, _MISSING)
            if value is not _MISSING:
                logger.debug(f"Cache hit: {key!r}")
                return value
            logger.debug(f"Cache miss: {key!r}")
            result = await fn(key)
            self.set(key, result, ttl)
            return result

        return _cached
