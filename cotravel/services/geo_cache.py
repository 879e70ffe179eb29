"""Short-lived memoization for provider calls (geocoding, routing, POIs).

Best-effort: a failed read or write is logged and treated as a miss, never raised.
Entries are never served past their expiry.
"""
import json
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Protocol, TypeVar

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from cotravel.config import Settings
from cotravel.services.geo import LatLng

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300

T = TypeVar("T")


def _encode(value: Any, precision: int) -> str:
    if isinstance(value, LatLng):
        return f"{_encode(value.lat, precision)},{_encode(value.lng, precision)}"
    if isinstance(value, bool) or value is None:
        return str(value)
    if isinstance(value, float):
        rounded = round(value, precision)
        # -0.0 and 0.0 must collide
        return f"{rounded + 0.0:.{precision}f}"
    if isinstance(value, (list, tuple)):
        return "[" + ";".join(_encode(v, precision) for v in value) + "]"
    if isinstance(value, dict):
        return "{" + ";".join(f"{k}={_encode(value[k], precision)}" for k in sorted(value)) + "}"
    return str(value)


def make_cache_key(kind: str, precision: int = 5, **params: Any) -> str:
    """Deterministic key from the query's semantic parameters; keyword order does not matter."""
    parts = [f"{name}={_encode(params[name], precision)}" for name in sorted(params)]
    return f"geo:{kind}:" + "|".join(parts)


def decode_hit(key: str, value: Any, decode: Callable[[Any], T]) -> T | None:
    """Decode a cached value; one of the wrong shape counts as a miss."""
    if value is None:
        return None
    try:
        return decode(value)
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        logger.warning("geo cache entry %s has an unexpected shape, ignoring it: %s", key, e)
        return None


def as_str(value: Any) -> str:
    if not isinstance(value, str):
        raise TypeError(f"expected str, got {type(value).__name__}")
    return value


def as_str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        raise TypeError(f"expected list, got {type(value).__name__}")
    return [as_str(v) for v in value]


class GeoCache(Protocol):
    async def get(self, key: str) -> Any | None:
        ...

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        ...

    def sweep(self) -> int:
        ...


@dataclass
class CacheEntry:
    value: Any
    expires_at: float


class MemoryGeoCache:
    """In-process cache. A lock guards the map so readers never see a half-swept state."""

    def __init__(self, default_ttl: int = DEFAULT_TTL_SECONDS, clock=time.monotonic) -> None:
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    async def get(self, key: str) -> Any | None:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.expires_at <= now:
                del self._entries[key]
                return None
            return entry.value

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        ttl = self.default_ttl if ttl is None else ttl
        with self._lock:
            self._entries[key] = CacheEntry(value=value, expires_at=self._clock() + ttl)

    def sweep(self) -> int:
        """Drop every expired entry. Returns how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._entries.items() if e.expires_at <= now]
            for k in expired:
                del self._entries[k]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class RedisGeoCache:
    """Redis-backed cache: JSON values written with SETEX so Redis enforces expiry."""

    def __init__(self, redis: aioredis.Redis, default_ttl: int = DEFAULT_TTL_SECONDS) -> None:
        self.redis = redis
        self.default_ttl = default_ttl

    async def get(self, key: str) -> Any | None:
        try:
            raw = await self.redis.get(key)
            if not raw:
                return None
            return json.loads(raw)
        except (RedisError, OSError, ValueError) as e:
            logger.warning("geo cache read failed for %s: %s", key, e)
            return None

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        ttl = self.default_ttl if ttl is None else ttl
        try:
            await self.redis.setex(key, ttl, json.dumps(value))
        except (RedisError, OSError, TypeError, ValueError) as e:
            logger.warning("geo cache write failed for %s: %s", key, e)

    def sweep(self) -> int:
        # Redis expires keys on its own
        return 0


def build_geo_cache(settings: Settings) -> MemoryGeoCache | RedisGeoCache:
    backend = settings.GEO_CACHE_BACKEND.lower()
    if backend == "redis":
        return RedisGeoCache(aioredis.from_url(settings.REDIS_URL), default_ttl=settings.GEO_CACHE_TTL_SECONDS)
    if backend != "memory":
        raise ValueError(f"Unknown GEO_CACHE_BACKEND: {settings.GEO_CACHE_BACKEND}")
    return MemoryGeoCache(default_ttl=settings.GEO_CACHE_TTL_SECONDS)
