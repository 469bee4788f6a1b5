"""Response cache with explicit invalidation.

Cached entries are keyed by resource kind, request path and sorted query
string (`"posts:/posts?limit=10&page=1"`). Services hold a reference to the
cache and invalidate the affected kinds synchronously after every write, so a
read issued after a mutation never observes the pre-mutation response.

Two backends share the same async contract:
- `MemoryResponseCache`: in-process dict guarded by a lock, TTL + max size
- `RedisResponseCache`: redis.asyncio, keys namespaced with a prefix
"""

import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

import orjson
import structlog
from redis.exceptions import WatchError


if TYPE_CHECKING:
    from redis.asyncio import Redis

    from src.config.settings import Settings


logger = structlog.get_logger(__name__)


class ResourceKind(str, Enum):
    """Resource kinds used as cache key namespaces."""

    POST = "posts"
    COMMENT = "comments"
    TAG = "tags"
    CATEGORY = "categories"
    REPORT = "reports"


# Writes to a kind invalidate these namespaces (the kind itself first)
INVALIDATION_MAP: dict[ResourceKind, tuple[ResourceKind, ...]] = {
    ResourceKind.POST: (ResourceKind.POST, ResourceKind.COMMENT, ResourceKind.TAG),
    ResourceKind.COMMENT: (ResourceKind.COMMENT, ResourceKind.POST),
    ResourceKind.TAG: (ResourceKind.TAG, ResourceKind.POST),
    ResourceKind.CATEGORY: (ResourceKind.CATEGORY, ResourceKind.POST),
    ResourceKind.REPORT: (ResourceKind.REPORT,),
}


def build_cache_key(
    kind: ResourceKind | str,
    path: str,
    query_params: Mapping[str, Any] | Iterable[tuple[str, Any]] | None = None,
) -> str:
    """Build a cache key from kind, path and query parameters.

    Query parameters are sorted so `?a=1&b=2` and `?b=2&a=1` share an entry.
    """
    kind_value = kind.value if isinstance(kind, ResourceKind) else kind
    items = query_params.items() if isinstance(query_params, Mapping) else query_params
    pairs = sorted((str(k), str(v)) for k, v in (items or ()))
    query = "&".join(f"{k}={v}" for k, v in pairs)
    return f"{kind_value}:{path}?{query}"


def kind_prefix(kind: ResourceKind | str) -> str:
    kind_value = kind.value if isinstance(kind, ResourceKind) else kind
    return f"{kind_value}:"


def key_kind(key_or_prefix: str) -> str:
    """Namespace part of a cache key (`"posts:/posts?"` -> `"posts"`)."""
    return key_or_prefix.partition(":")[0]


# ==============================================================================
# Base
# ==============================================================================


class ResponseCache(ABC):
    """Async cache contract shared by every backend.

    Each namespace carries a generation counter that every invalidation bumps.
    A fill records the generation before computing its value and is dropped
    when the namespace was invalidated in the meantime, so a slow read racing
    a write cannot park the pre-write body in the cache.
    """

    def __init__(self, default_ttl: int = 300, enabled: bool = True):
        self.default_ttl = default_ttl
        self.enabled = enabled

    @abstractmethod
    async def _get(self, key: str) -> bytes | None: ...

    @abstractmethod
    async def _set(self, key: str, raw: bytes, ttl: int) -> None: ...

    @abstractmethod
    async def _delete_prefix(self, prefix: str) -> int: ...

    @abstractmethod
    async def _clear(self) -> int: ...

    @abstractmethod
    async def _generation(self, kind: str) -> int | None: ...

    @abstractmethod
    async def _bump_generation(self, kind: str) -> None: ...

    @abstractmethod
    async def _bump_all_generations(self) -> None: ...

    @abstractmethod
    async def _set_if_generation(
        self, key: str, raw: bytes, ttl: int, kind: str, generation: int
    ) -> bool: ...

    def _resolve_ttl(self, ttl: int | None) -> int:
        return self.default_ttl if ttl is None else ttl

    async def get(self, key: str) -> Any | None:
        if not self.enabled:
            return None
        raw = await self._get(key)
        if raw is None:
            logger.debug("cache_miss", key=key)
            return None
        logger.debug("cache_hit", key=key)
        return orjson.loads(raw)

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        """Store `value`; an explicit `ttl=0` stores nothing."""
        ttl = self._resolve_ttl(ttl)
        if not self.enabled or ttl <= 0:
            return
        await self._set(key, orjson.dumps(value), ttl)

    async def generation(self, key: str) -> int | None:
        """Snapshot the generation of the namespace `key` belongs to.

        None means the generation could not be read; fills against it are
        skipped.
        """
        return await self._generation(key_kind(key))

    async def set_if_current(
        self,
        key: str,
        value: Any,
        generation: int | None,
        ttl: int | None = None,
    ) -> bool:
        """Store `value` unless the namespace was invalidated since `generation`."""
        ttl = self._resolve_ttl(ttl)
        if not self.enabled or ttl <= 0 or generation is None:
            return False
        stored = await self._set_if_generation(
            key, orjson.dumps(value), ttl, key_kind(key), generation
        )
        if not stored:
            logger.debug("cache_fill_discarded", key=key)
        return stored

    async def get_or_set(
        self,
        key: str,
        factory: Callable[[], Awaitable[Any]],
        ttl: int | None = None,
    ) -> Any:
        """Return the cached value, computing and storing it on a miss."""
        cached = await self.get(key)
        if cached is not None:
            return cached
        generation = await self.generation(key)
        value = await factory()
        await self.set_if_current(key, value, generation, ttl)
        return value

    async def invalidate(self, key_or_prefix: str) -> int:
        """Drop every entry whose key starts with `key_or_prefix`."""
        await self._bump_generation(key_kind(key_or_prefix))
        removed = await self._delete_prefix(key_or_prefix)
        logger.debug("cache_invalidated", prefix=key_or_prefix, removed=removed)
        return removed

    async def invalidate_all(self) -> int:
        await self._bump_all_generations()
        removed = await self._clear()
        logger.info("cache_cleared", removed=removed)
        return removed

    async def invalidate_resources(self, *kinds: ResourceKind) -> int:
        """Invalidate the namespaces affected by writes to `kinds`."""
        targets: list[ResourceKind] = []
        for kind in kinds:
            for target in INVALIDATION_MAP[ResourceKind(kind)]:
                if target not in targets:
                    targets.append(target)

        removed = 0
        for target in targets:
            removed += await self.invalidate(kind_prefix(target))
        return removed


# ==============================================================================
# In-process backend
# ==============================================================================


@dataclass
class CacheEntry:
    key: str
    value: bytes
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class MemoryResponseCache(ResponseCache):
    """Bounded in-process cache.

    Entries live in an insertion-ordered dict; when full, the oldest entry is
    evicted. The lock keeps the map consistent when handlers run in worker
    threads.
    """

    def __init__(
        self,
        default_ttl: int = 300,
        max_size: int = 1000,
        enabled: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ):
        super().__init__(default_ttl=default_ttl, enabled=enabled)
        self.max_size = max_size
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._generations: dict[str, int] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    async def _get(self, key: str) -> bytes | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.is_expired(self._clock()):
                del self._entries[key]
                return None
            return entry.value

    def _store(self, key: str, raw: bytes, ttl: int) -> None:
        # Caller holds the lock; re-inserting moves the key to the newest position
        self._entries.pop(key, None)
        while self._entries and len(self._entries) >= self.max_size:
            oldest = next(iter(self._entries))
            del self._entries[oldest]
            logger.debug("cache_evicted", key=oldest)
        if self.max_size > 0:
            self._entries[key] = CacheEntry(key, raw, self._clock() + ttl)

    async def _set(self, key: str, raw: bytes, ttl: int) -> None:
        with self._lock:
            self._store(key, raw, ttl)

    async def _generation(self, kind: str) -> int | None:
        with self._lock:
            return self._generations.setdefault(kind, 0)

    async def _bump_generation(self, kind: str) -> None:
        with self._lock:
            self._generations[kind] = self._generations.get(kind, 0) + 1

    async def _bump_all_generations(self) -> None:
        with self._lock:
            for kind in self._generations:
                self._generations[kind] += 1

    async def _set_if_generation(
        self, key: str, raw: bytes, ttl: int, kind: str, generation: int
    ) -> bool:
        with self._lock:
            if self._generations.get(kind, 0) != generation:
                return False
            self._store(key, raw, ttl)
            return True

    async def _delete_prefix(self, prefix: str) -> int:
        with self._lock:
            doomed = [key for key in self._entries if key.startswith(prefix)]
            for key in doomed:
                del self._entries[key]
            return len(doomed)

    async def _clear(self) -> int:
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            return count


# ==============================================================================
# Redis backend
# ==============================================================================


def _escape_glob(value: str) -> str:
    for char in ("\\", "*", "?", "[", "]"):
        value = value.replace(char, f"\\{char}")
    return value


class RedisResponseCache(ResponseCache):
    """Cache stored in Redis under `key_prefix`.

    Read and write failures are logged and treated as misses; a cold cache is
    always correct. Namespace generations live under `generation_prefix`,
    outside the entry namespace, so clearing entries never resets them.
    """

    def __init__(
        self,
        redis: "Redis",
        key_prefix: str = "inkwell:cache:",
        default_ttl: int = 300,
        enabled: bool = True,
        generation_prefix: str | None = None,
    ):
        super().__init__(default_ttl=default_ttl, enabled=enabled)
        self.redis = redis
        self.key_prefix = key_prefix
        self.generation_prefix = (
            generation_prefix or f"{key_prefix.rstrip(':')}-generation:"
        )

    def _generation_key(self, kind: str) -> str:
        return self.generation_prefix + kind

    async def _get(self, key: str) -> bytes | None:
        try:
            raw = await self.redis.get(self.key_prefix + key)
        except Exception as e:
            logger.warning("cache_read_failed", key=key, error=str(e))
            return None
        if raw is None:
            return None
        return raw.encode() if isinstance(raw, str) else raw

    async def _set(self, key: str, raw: bytes, ttl: int) -> None:
        try:
            await self.redis.set(self.key_prefix + key, raw, ex=ttl)
        except Exception as e:
            logger.warning("cache_write_failed", key=key, error=str(e))

    async def _delete_prefix(self, prefix: str) -> int:
        pattern = _escape_glob(self.key_prefix + prefix) + "*"
        keys = [key async for key in self.redis.scan_iter(match=pattern)]
        if not keys:
            return 0
        return await self.redis.delete(*keys)

    async def _clear(self) -> int:
        return await self._delete_prefix("")

    async def _generation(self, kind: str) -> int | None:
        try:
            raw = await self.redis.get(self._generation_key(kind))
        except Exception as e:
            logger.warning("cache_generation_read_failed", kind=kind, error=str(e))
            return None
        return int(raw or 0)

    async def _bump_generation(self, kind: str) -> None:
        await self.redis.incr(self._generation_key(kind))

    async def _bump_all_generations(self) -> None:
        pattern = _escape_glob(self.generation_prefix) + "*"
        keys = {key async for key in self.redis.scan_iter(match=pattern)}
        keys.update(self._generation_key(kind.value) for kind in ResourceKind)
        for key in keys:
            await self.redis.incr(key)

    async def _set_if_generation(
        self, key: str, raw: bytes, ttl: int, kind: str, generation: int
    ) -> bool:
        generation_key = self._generation_key(kind)
        try:
            async with self.redis.pipeline(transaction=True) as pipe:
                # WATCH aborts the write if an invalidation bumps the counter
                await pipe.watch(generation_key)
                if int(await pipe.get(generation_key) or 0) != generation:
                    return False
                pipe.multi()
                pipe.set(self.key_prefix + key, raw, ex=ttl)
                await pipe.execute()
        except WatchError:
            return False
        except Exception as e:
            logger.warning("cache_write_failed", key=key, error=str(e))
            return False
        return True


def build_response_cache(
    settings: "Settings", redis: "Redis | None" = None
) -> ResponseCache:
    """Construct the cache configured in settings.

    Falls back to the in-process backend when Redis was requested but no
    client is available.
    """
    if settings.cache_backend == "redis" and redis is not None:
        cache: ResponseCache = RedisResponseCache(
            redis,
            key_prefix=settings.redis_key_prefix,
            default_ttl=settings.cache_ttl_default,
            enabled=settings.cache_enabled,
        )
    else:
        if settings.cache_backend == "redis":
            logger.warning("cache_redis_unavailable", fallback="memory")
        cache = MemoryResponseCache(
            default_ttl=settings.cache_ttl_default,
            max_size=settings.cache_max_size,
            enabled=settings.cache_enabled,
        )
    logger.info(
        "response_cache_initialized",
        backend=type(cache).__name__,
        enabled=settings.cache_enabled,
    )
    return cache
