"""Image proxy resolution cache.

Maps a requested image URL to the URL that last served it successfully.
The in-memory implementation is per-process; anything implementing
``ImageCache`` (e.g. a shared Redis-backed cache) can be swapped in through
``get_image_cache``.

Request handlers and the APScheduler sweep thread share the cache, so every
access to the entry map holds a ``threading.Lock``.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from app.core.config import settings

logger = logging.getLogger(__name__)


class ImageCache(Protocol):
    def get(self, url: str) -> str | None: ...

    def set(self, url: str, resolved_url: str) -> None: ...

    def purge_expired(self) -> int: ...


@dataclass
class _Entry:
    resolved_url: str
    stored_at: float


class InMemoryImageCache:
    """Dict-backed cache whose entries expire after ``ttl_seconds``."""

    def __init__(self, ttl_seconds: float | None = None, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl_seconds = (
            ttl_seconds if ttl_seconds is not None else settings.IMAGE_CACHE_TTL_HOURS * 3600
        )
        self._clock = clock
        self._entries: dict[str, _Entry] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _expired(self, entry: _Entry) -> bool:
        return self._clock() - entry.stored_at >= self.ttl_seconds

    def get(self, url: str) -> str | None:
        with self._lock:
            entry = self._entries.get(url)
            if entry is None:
                return None
            if self._expired(entry):
                self._entries.pop(url, None)
                return None
            return entry.resolved_url

    def set(self, url: str, resolved_url: str) -> None:
        with self._lock:
            self._entries[url] = _Entry(resolved_url, self._clock())

    def purge_expired(self) -> int:
        """Drop expired entries; returns how many were removed."""
        with self._lock:
            expired = [url for url, entry in self._entries.items() if self._expired(entry)]
            for url in expired:
                self._entries.pop(url, None)
            remaining = len(self._entries)
        if expired:
            logger.info("image_cache_purged", extra={"removed": len(expired), "remaining": remaining})
        return len(expired)


_cache: ImageCache | None = None


def get_image_cache() -> ImageCache:
    """FastAPI dependency returning the process-wide cache."""
    global _cache
    if _cache is None:
        _cache = InMemoryImageCache()
    return _cache
