from __future__ import annotations

"""
MockRedisClient (async) — test-grade, wrapper-compatible
========================================================
Covers the subset of Redis the CMS touches through `redis_wrapper`:

KV      : get/set(ex=)/delete
Health  : ping/close/flushall
Faults  : `fail = True` makes every command raise `RedisError`

TTLs are recorded (`ttls`) but never expire on their own; tests assert on
them instead of sleeping.
"""

from typing import Any, Dict, Optional

from redis.exceptions import ConnectionError as RedisConnectionError


class MockRedisClient:
    def __init__(self) -> None:
        self.store: Dict[str, Any] = {}
        self.ttls: Dict[str, Optional[int]] = {}
        self.fail = False
        self.closed = False

    def _check(self) -> None:
        if self.fail:
            raise RedisConnectionError("mock redis is down")

    async def ping(self) -> bool:
        self._check()
        return True

    async def get(self, name: str) -> Any:
        self._check()
        return self.store.get(name)

    async def set(self, name: str, value: Any, *, ex: Optional[int] = None) -> bool:
        self._check()
        self.store[name] = value
        self.ttls[name] = ex
        return True

    async def delete(self, *names: str) -> int:
        self._check()
        removed = 0
        for name in names:
            if self.store.pop(name, None) is not None:
                removed += 1
            self.ttls.pop(name, None)
        return removed

    async def flushall(self) -> bool:
        self.store.clear()
        self.ttls.clear()
        return True

    async def close(self) -> None:
        self.closed = True
