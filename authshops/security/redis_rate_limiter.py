"""Redis-backed sliding window limiter shared by every API worker."""

from __future__ import annotations

import time
import uuid

from redis import Redis


class RedisSlidingWindowRateLimiter:
    """Sliding window kept in one sorted set per key, scored by milliseconds.

    Each attempt is added optimistically inside a MULTI/EXEC pipeline; when the
    resulting cardinality exceeds the limit the attempt is removed again so
    rejected calls do not extend the lockout.
    """

    def __init__(
        self,
        client: Redis,
        *,
        max_requests: int,
        window_seconds: int,
        key_prefix: str = "authshops:throttle",
    ) -> None:
        self._client = client
        self._max_requests = max_requests
        self._window_ms = window_seconds * 1000
        self._key_prefix = key_prefix

    def allow(self, key: str) -> bool:
        now_ms = int(time.time() * 1000)
        redis_key = f"{self._key_prefix}:{key}"
        member = f"{now_ms}:{uuid.uuid4().hex}"

        pipe = self._client.pipeline(transaction=True)
        pipe.zremrangebyscore(redis_key, 0, now_ms - self._window_ms)
        pipe.zadd(redis_key, {member: now_ms})
        pipe.zcard(redis_key)
        pipe.pexpire(redis_key, self._window_ms)
        _, _, count, _ = pipe.execute()

        if int(count) > self._max_requests:
            self._client.zrem(redis_key, member)
            return False
        return True
