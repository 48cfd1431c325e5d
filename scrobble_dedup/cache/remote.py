from __future__ import annotations

import logging

import redis

from ..errors import CacheError

log = logging.getLogger(__name__)


class RedisCache:
    """Cache shared through a Redis server."""

    def __init__(self, client: redis.Redis):
        self.client = client

    @classmethod
    def from_url(cls, url: str, timeout: float = 30.0) -> RedisCache:
        """Connect to ``redis://[user:password@]host:port/db`` and check it answers."""
        client = redis.Redis.from_url(
            url,
            decode_responses=True,
            socket_timeout=timeout,
            socket_connect_timeout=timeout,
        )
        try:
            client.ping()
        except redis.RedisError as e:
            raise CacheError(f"failed to connect to Redis: {e}") from e
        return cls(client)

    def get(self, key: str) -> str | None:
        try:
            value = self.client.get(key)
        except redis.RedisError as e:
            raise CacheError(f"redis get {key} failed: {e}") from e
        if value is None:
            return None
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    def set(self, key: str, value: str) -> None:
        try:
            self.client.set(key, value)
        except redis.RedisError as e:
            raise CacheError(f"redis set {key} failed: {e}") from e

    def delete(self, key: str) -> None:
        try:
            self.client.delete(key)
        except redis.RedisError as e:
            raise CacheError(f"redis delete {key} failed: {e}") from e

    def close(self) -> None:
        try:
            self.client.close()
        except redis.RedisError as e:
            log.error("Failed to close redis client: %s", e)
