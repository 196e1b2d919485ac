# app/core/redis_client.py
from __future__ import annotations

"""
MoviesNow CMS — Redis Client (Async)
====================================
Central, **single source of truth** for Redis access in the app. The CMS uses
Redis only as a read-through cache for public series reads, so every helper
here is best-effort from the caller's point of view (see
`app.cache.public_series`).

Public API (imported as `redis_wrapper`)
----------------------------------------
- await redis_wrapper.connect() / await redis_wrapper.close() / await redis_wrapper.is_connected()
- redis_wrapper.client
- await redis_wrapper.json_set(key, value, ttl_seconds=None)
- await redis_wrapper.json_get(key, default=None)
- await redis_wrapper.delete(*keys)
"""

import asyncio
import json
import logging
import os
import random
from typing import Any, Optional, Protocol

import redis.asyncio as redis
from redis.exceptions import RedisError

from app.core.config import settings

logger = logging.getLogger("app.redis")

# ─────────────────────────────────────────────────────────────────────────────
# Tunables (env-aware sensible defaults)
# ─────────────────────────────────────────────────────────────────────────────
MAX_RETRIES = int(os.getenv("REDIS_CONNECT_MAX_RETRIES", "5"))
BASE_DELAY = float(os.getenv("REDIS_CONNECT_BASE_DELAY", "0.3"))  # seconds
HEALTH_CHECK_INTERVAL = int(os.getenv("REDIS_HEALTH_CHECK_INTERVAL", "30"))  # seconds
SOCKET_TIMEOUT = float(os.getenv("REDIS_SOCKET_TIMEOUT", "3"))
SOCKET_CONNECT_TIMEOUT = float(os.getenv("REDIS_SOCKET_CONNECT_TIMEOUT", "3"))
POOL_MAX_CONNECTIONS = int(os.getenv("REDIS_POOL_MAX_CONNECTIONS", "64"))
CLIENT_NAME = os.getenv("REDIS_CLIENT_NAME", "moviesnow-cms")


class _RedisProto(Protocol):
    async def ping(self) -> Any: ...
    async def set(self, name: str, value: Any, *, ex: Optional[int] = None) -> Any: ...
    async def get(self, name: str) -> Any: ...
    async def delete(self, *names: Any) -> Any: ...
    async def close(self) -> Any: ...


# ─────────────────────────────────────────────────────────────────────────────
# Client
# ─────────────────────────────────────────────────────────────────────────────
class RedisClient:
    """
    Singleton Redis connection manager (asyncio).

    Features
    --------
    • Resilient connect with exponential backoff + jitter
    • Pooled connections, health checks
    • JSON get/set helpers
    """

    def __init__(self, redis_url: str):
        self.redis_url = redis_url
        self._client: Optional[_RedisProto] = None

    # ── lifecycle ────────────────────────────────────────────────────────────
    async def connect(self) -> None:
        """
        Establish a connection with retries.

        Steps
        -----
        - **[Step 1]** Reuse a healthy client when possible.
        - **[Step 2]** Attempt connection with backoff and jitter.
        """
        # ── [Step 1] Reuse an existing healthy client ───────────────────────
        if self._client:
            try:
                await self._client.ping()
                logger.debug("Redis already connected.")
                return
            except RedisError:
                self._client = None  # stale client → reconnect

        last_err: Optional[Exception] = None

        # ── [Step 2] Retry with backoff ─────────────────────────────────────
        for attempt in range(1, MAX_RETRIES + 1):
            try:
                client = self._build_client()
                await client.ping()
                self._client = client
                logger.info("✅ Connected to Redis")
                return
            except (RedisError, OSError) as e:
                last_err = e
                delay = self._backoff(attempt)
                logger.warning(
                    "Redis connect attempt %s/%s failed: %r (retrying in %.2fs)",
                    attempt, MAX_RETRIES, e, delay,
                )
                await asyncio.sleep(delay)

        logger.error("❌ Redis connection failed after %s retries.", MAX_RETRIES)
        raise RuntimeError("Redis connection failed") from last_err

    async def close(self) -> None:
        """Gracefully close the connection & pool."""
        if not self._client:
            return
        try:
            await self._client.close()
            logger.info("🛑 Redis connection closed.")
        except RedisError as e:
            logger.warning("Error closing Redis connection: %s", e)
        finally:
            self._client = None

    async def is_connected(self) -> bool:
        """Return True if `PING` succeeds (healthy connection)."""
        if not self._client:
            return False
        try:
            return bool(await self._client.ping())
        except RedisError:
            return False

    @property
    def client(self) -> _RedisProto:
        """Low-level client; ensure `connect()` was called at startup."""
        if not self._client:
            raise RuntimeError("Redis client not initialized. Call connect() first.")
        return self._client

    @property
    def connected(self) -> bool:
        return self._client is not None

    # ── JSON helpers ─────────────────────────────────────────────────────────
    async def json_set(self, key: str, value: Any, *, ttl_seconds: Optional[int] = None) -> None:
        """Generic JSON setter with optional TTL."""
        data = json.dumps(value, separators=(",", ":"), ensure_ascii=False)
        if ttl_seconds:
            await self.client.set(key, data, ex=ttl_seconds)
        else:
            await self.client.set(key, data)

    async def json_get(self, key: str, default: Any = None) -> Any:
        """Generic JSON getter with sensible default on parse errors/None."""
        raw = await self.client.get(key)
        if raw is None:
            return default
        if isinstance(raw, (bytes, bytearray)):
            raw = raw.decode("utf-8", errors="replace")
        try:
            return json.loads(raw)
        except ValueError:
            return default

    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        return int(await self.client.delete(*keys) or 0)

    # ── internals ────────────────────────────────────────────────────────────
    def _build_client(self) -> _RedisProto:
        url = self.redis_url
        if settings.REDIS_USE_TLS and url.startswith("redis://"):
            url = "rediss://" + url[len("redis://"):]
        return redis.from_url(
            url,
            decode_responses=True,
            health_check_interval=HEALTH_CHECK_INTERVAL,
            socket_timeout=SOCKET_TIMEOUT,
            socket_connect_timeout=SOCKET_CONNECT_TIMEOUT,
            max_connections=POOL_MAX_CONNECTIONS,
            client_name=CLIENT_NAME,
        )

    @staticmethod
    def _backoff(attempt: int) -> float:
        return BASE_DELAY * (2 ** (attempt - 1)) + random.uniform(0, BASE_DELAY)


redis_wrapper = RedisClient(settings.REDIS_URL)

__all__ = ["RedisClient", "redis_wrapper"]
