"""
RecipeShare Backend — In-Memory Response Cache
================================================

What:  TTL cache for JSON bodies returned by the TheMealDB proxy routes.
How:   cachetools.TLRUCache keyed on the request path + query string. Every
       entry carries its own TTL (search results 5 min, categories 1 h, ...)
       and the cache is bounded; the least recently used entry is evicted
       when full.
Who:   routes/external.py through `cached_json()`; routes/cache.py for stats.

Rules:
    - Only successful bodies are stored. When the loader raises, nothing is
      cached and the error propagates to the global handlers.
    - A cached `None` (lookup of an unknown meal) is a hit, not a miss.
    - Single-process only. Each uvicorn worker keeps its own cache.
"""

import logging
import time
from typing import Any, Awaitable, Callable, Optional, Tuple

from cachetools import TLRUCache
from starlette.requests import Request
from starlette.responses import Response

from recipeshare.config import settings

logger = logging.getLogger(__name__)

_MISSING = object()


def _time_to_use(key: str, value: Tuple[float, Any], now: float) -> float:
    ttl, _ = value
    return now + ttl


class ResponseCache:
    """Bounded cache where each entry expires after its own TTL."""

    def __init__(
        self,
        max_entries: int = 1024,
        timer: Callable[[], float] = time.monotonic,
    ):
        self.max_entries = max_entries
        self._store: TLRUCache = TLRUCache(maxsize=max_entries, ttu=_time_to_use, timer=timer)
        self.hits = 0
        self.misses = 0

    def lookup(self, key: str) -> Tuple[bool, Any]:
        """Return (hit, body). Expired entries are reported as misses."""
        entry = self._store.get(key, _MISSING)
        if entry is _MISSING:
            self.misses += 1
            return False, None
        self.hits += 1
        return True, entry[1]

    def set(self, key: str, body: Any, ttl: float) -> None:
        if ttl <= 0:
            return
        self._store[key] = (ttl, body)

    def clear(self) -> int:
        """Drop every entry and reset counters. Returns how many live entries were dropped."""
        self._store.expire()
        dropped = len(self._store)
        self._store.clear()
        self.hits = 0
        self.misses = 0
        return dropped

    def __len__(self) -> int:
        self._store.expire()
        return len(self._store)

    def __contains__(self, key: str) -> bool:
        return key in self._store


def cache_key_for(request: Request) -> str:
    """Path plus raw query string, exactly as the client sent it."""
    query = request.url.query
    return f"{request.url.path}?{query}" if query else request.url.path


async def cached_json(
    request: Request,
    response: Response,
    ttl: float,
    loader: Callable[[], Awaitable[Any]],
    cache: Optional[ResponseCache] = None,
) -> Any:
    """
    Serve a JSON body from the cache, or load it and cache it on success.

    Sets X-Cache: HIT or MISS on the outgoing response.
    """
    if cache is None:
        cache = response_cache
    key = cache_key_for(request)

    hit, body = cache.lookup(key)
    if hit:
        logger.debug("Cache hit: %s", key)
        response.headers["X-Cache"] = "HIT"
        return body

    body = await loader()
    cache.set(key, body, ttl)
    logger.debug("Cache store: %s (ttl=%ss)", key, ttl)
    response.headers["X-Cache"] = "MISS"
    return body


# ── Singleton Instance ────────────────────────────────────────────────────
response_cache = ResponseCache(max_entries=settings.cache_max_entries)
