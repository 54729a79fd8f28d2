"""In-process TTL cache for resolved playback URLs."""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from vidvault.shared.models import CacheStats

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 3600
DEFAULT_SWEEP_INTERVAL_SECONDS = 300


@dataclass(frozen=True)
class _Entry:
    value: Any
    expires_at: float


class TTLCache:
    """Thread-safe key/value cache with per-entry expiry.

    Expiry is checked lazily on ``get``/``has`` and swept in bulk by
    ``cleanup``, which ``CacheSweeper`` runs on a fixed interval so that keys
    written once and never read again do not accumulate.

    All TTLs are seconds on the ``clock`` timeline.
    """

    def __init__(
        self,
        default_ttl: float = DEFAULT_TTL_SECONDS,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._default_ttl = default_ttl
        self._clock = clock
        self._store: dict[str, _Entry] = {}
        self._lock = threading.Lock()

    @property
    def default_ttl(self) -> float:
        return self._default_ttl

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        """Store ``value`` under ``key``, replacing any existing entry.

        Args:
            key: Cache key.
            value: Value to store.
            ttl: Seconds until expiry; ``None`` uses the default TTL.
        """
        lifetime = self._default_ttl if ttl is None else ttl
        with self._lock:
            self._store[key] = _Entry(value=value, expires_at=self._clock() + lifetime)

    def get(self, key: str, default: Any = None) -> Any:
        """Return the live value for ``key``, or ``default`` if absent or expired."""
        with self._lock:
            entry = self._live_entry(key)
        return default if entry is None else entry.value

    def has(self, key: str) -> bool:
        """Return whether ``key`` holds a live entry."""
        with self._lock:
            return self._live_entry(key) is not None

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.has(key)

    def delete(self, key: str) -> bool:
        """Remove ``key``; return whether an entry was removed."""
        with self._lock:
            return self._store.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def cleanup(self) -> int:
        """Evict every expired entry.

        Returns:
            Number of entries evicted.
        """
        with self._lock:
            now = self._clock()
            expired = [key for key, entry in self._store.items() if now >= entry.expires_at]
            for key in expired:
                del self._store[key]
        return len(expired)

    def stats(self) -> CacheStats:
        """Count stored, live and expired-but-unswept entries."""
        with self._lock:
            now = self._clock()
            total = len(self._store)
            expired = sum(1 for entry in self._store.values() if now >= entry.expires_at)
        return CacheStats(total=total, active=total - expired, expired=expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    def _live_entry(self, key: str) -> _Entry | None:
        """Return the entry for ``key`` if unexpired. Must be called under lock."""
        entry = self._store.get(key)
        if entry is None:
            return None
        if self._clock() >= entry.expires_at:
            del self._store[key]
            return None
        return entry


class CacheSweeper:
    """Background task that periodically evicts expired cache entries."""

    def __init__(self, cache: TTLCache, *, interval: float = DEFAULT_SWEEP_INTERVAL_SECONDS) -> None:
        self._cache = cache
        self._interval = interval
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Schedule the sweep loop on the running event loop."""
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="ttl-cache-sweeper")
        logger.info("cache sweeper started (interval=%ss)", self._interval)

    async def stop(self) -> None:
        """Cancel the sweep loop and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("cache sweeper stopped")

    async def sweep_once(self) -> int:
        evicted = self._cache.cleanup()
        if evicted:
            logger.info("evicted %d expired cache entries", evicted)
        else:
            logger.debug("no expired cache entries")
        return evicted

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self.sweep_once()
            except Exception as exc:
                logger.exception("cache sweep error: %s", exc)
