# app/cache/public_series.py
from __future__ import annotations

"""
# MoviesNow CMS — Public series read cache (Redis)

Read-through cache for `GET /public/series/{id}`.

## Key properties
- Uses the shared `app.core.redis_client.redis_wrapper` (single pool).
- Only PUBLISHED public copies are cached; misses are not cached.
- Fail-open: Redis errors are logged and counted, never raised.
- Invalidated by every workflow transition, slug rename and series deletion.
"""

from typing import Any, Dict, Optional
import logging

from redis.exceptions import RedisError

from app.core.config import settings
from app.core.metrics import inc_redis_error
from app.core.redis_client import RedisClient, redis_wrapper

logger = logging.getLogger(__name__)

CACHE_NAMESPACE = "cms:public-series"


class PublicSeriesCache:
    def __init__(self, client: Optional[RedisClient] = None, *, ttl_seconds: Optional[int] = None) -> None:
        self.client = client or redis_wrapper
        self.ttl_seconds = settings.PUBLIC_SERIES_CACHE_TTL_SECONDS if ttl_seconds is None else ttl_seconds

    @staticmethod
    def key(series_id: str) -> str:
        return f"{CACHE_NAMESPACE}:{series_id}"

    @property
    def enabled(self) -> bool:
        return self.ttl_seconds > 0 and self.client.connected

    async def get(self, series_id: str) -> Optional[Dict[str, Any]]:
        if not self.enabled:
            return None
        try:
            return await self.client.json_get(self.key(series_id))
        except (RedisError, OSError) as e:
            inc_redis_error("public_series_get")
            logger.warning("Public series cache read failed for %s: %s", series_id, e)
            return None

    async def set(self, series_id: str, doc: Dict[str, Any]) -> None:
        if not self.enabled:
            return
        try:
            await self.client.json_set(self.key(series_id), doc, ttl_seconds=self.ttl_seconds)
        except (RedisError, OSError) as e:
            inc_redis_error("public_series_set")
            logger.warning("Public series cache write failed for %s: %s", series_id, e)

    async def invalidate(self, series_id: str) -> None:
        if not self.client.connected:
            return
        try:
            await self.client.delete(self.key(series_id))
        except (RedisError, OSError) as e:
            inc_redis_error("public_series_invalidate")
            logger.warning("Public series cache invalidation failed for %s: %s", series_id, e)


__all__ = ["PublicSeriesCache", "CACHE_NAMESPACE"]
