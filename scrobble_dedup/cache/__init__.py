from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

from ..errors import CacheError, ConfigurationError
from .file import FileCache
from .memory import InMemoryCache
from .remote import RedisCache

if TYPE_CHECKING:
    from ..config import Settings

log = logging.getLogger(__name__)


class Cache(Protocol):
    """Key/value store for looked-up track durations.

    ``get`` returns None on a miss; any other backend failure raises
    CacheError. A value set on an instance is returned by the next ``get``
    on that same instance.
    """

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...

    def close(self) -> None: ...


def open_cache(settings: Settings) -> Cache:
    """Build the cache backend selected by ``settings.cache_type``."""
    if settings.cache_type == "inmemory":
        log.info("Using in-memory cache")
        return InMemoryCache()
    if settings.cache_type == "file":
        log.info("Using file cache %s", settings.cache_file)
        return FileCache(settings.cache_file, flush_interval=settings.cache_flush_interval)
    if settings.cache_type == "redis":
        log.info("Using Redis cache")
        return RedisCache.from_url(settings.redis_url, timeout=settings.request_timeout)
    raise ConfigurationError(f"unsupported cache type: {settings.cache_type}")


__all__ = [
    "Cache",
    "CacheError",
    "FileCache",
    "InMemoryCache",
    "RedisCache",
    "open_cache",
]
