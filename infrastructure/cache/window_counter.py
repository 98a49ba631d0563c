"""Fixed-window click counter on Redis.

``increment_and_check`` does INCR and EXPIRE NX in one MULTI/EXEC block: the
first hit in a window creates the key and its TTL, later hits only count.
The key vanishes on expiry, which opens the next window.
"""

from typing import Optional

import redis.asyncio as aioredis

from errors import ServiceUnavailableError


class RedisWindowCounter:
    def __init__(self, redis_client: Optional[aioredis.Redis]) -> None:
        self._redis = redis_client

    async def increment_and_check(self, key: str, window_seconds: int, cap: int) -> bool:
        """Count one hit on *key*; return True while the count is within *cap*.

        Raises ServiceUnavailableError when no client is configured. Redis
        errors propagate; the dedup gate decides how to degrade.
        """
        if self._redis is None:
            raise ServiceUnavailableError("redis is not configured")
        async with self._redis.pipeline(transaction=True) as pipe:
            pipe.incr(key)
            pipe.expire(key, window_seconds, nx=True)
            count, _ = await pipe.execute()
        return int(count) <= cap
