"""Token-bucket rate limiting.

Each client key owns a bucket of ``capacity`` tokens refilled at
``refill_rate`` per second; a request spends one.  Short bursts are
allowed (a scanner re-reading a smudged code three times in a second),
sustained hammering is not (guessing ticket ids, brute-forcing the admin
password).

The in-memory backend is per-process.  Behind a load balancer use the
Redis backend so every instance spends from the same bucket.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True, slots=True)
class RateLimitResult:
    """allowed / remaining tokens / capacity / seconds until the next token."""

    allowed: bool
    remaining: int
    limit: int
    retry_after: float


@dataclass(frozen=True, slots=True)
class RateLimitConfig:
    """capacity: burst size.  refill_rate: tokens per second."""

    capacity: int = 60
    refill_rate: float = 1.0


@runtime_checkable
class RateLimiter(Protocol):
    async def check(self, key: str, config: RateLimitConfig) -> RateLimitResult: ...
    async def reset(self, key: str) -> None: ...


class InMemoryRateLimiter:
    def __init__(self) -> None:
        # key -> (tokens, last_refill monotonic time)
        self._buckets: dict[str, tuple[float, float]] = {}

    async def check(self, key: str, config: RateLimitConfig) -> RateLimitResult:
        now = time.monotonic()

        if key not in self._buckets:
            self._buckets[key] = (config.capacity - 1, now)
            return RateLimitResult(
                allowed=True,
                remaining=config.capacity - 1,
                limit=config.capacity,
                retry_after=0,
            )

        tokens, last_refill = self._buckets[key]
        tokens = min(config.capacity, tokens + (now - last_refill) * config.refill_rate)

        if tokens >= 1:
            tokens -= 1
            self._buckets[key] = (tokens, now)
            return RateLimitResult(
                allowed=True,
                remaining=int(tokens),
                limit=config.capacity,
                retry_after=0,
            )

        self._buckets[key] = (tokens, now)
        return RateLimitResult(
            allowed=False,
            remaining=0,
            limit=config.capacity,
            retry_after=(1 - tokens) / config.refill_rate,
        )

    async def reset(self, key: str) -> None:
        self._buckets.pop(key, None)


class RedisRateLimiter:
    """Shared token bucket.  The Lua script makes read-refill-spend atomic."""

    _LUA_SCRIPT = """
    local key = KEYS[1]
    local capacity = tonumber(ARGV[1])
    local refill_rate = tonumber(ARGV[2])
    local now = tonumber(ARGV[3])
    local ttl = math.ceil(capacity / refill_rate) + 60

    local bucket = redis.call('HMGET', key, 'tokens', 'last_refill')
    local tokens = tonumber(bucket[1])
    local last_refill = tonumber(bucket[2])

    if tokens == nil then
        tokens = capacity - 1
        redis.call('HSET', key, 'tokens', tokens, 'last_refill', now)
        redis.call('EXPIRE', key, ttl)
        return {1, tokens, 0}
    end

    tokens = math.min(capacity, tokens + (now - last_refill) * refill_rate)

    if tokens >= 1 then
        tokens = tokens - 1
        redis.call('HSET', key, 'tokens', tokens, 'last_refill', now)
        redis.call('EXPIRE', key, ttl)
        return {1, math.floor(tokens), 0}
    end

    redis.call('HSET', key, 'tokens', tokens, 'last_refill', now)
    return {0, 0, math.ceil((1 - tokens) / refill_rate * 1000)}
    """

    def __init__(self, redis_client) -> None:
        self._redis = redis_client
        self._script = None

    async def check(self, key: str, config: RateLimitConfig) -> RateLimitResult:
        if self._script is None:
            self._script = self._redis.register_script(self._LUA_SCRIPT)
        allowed, remaining, retry_after_ms = await self._script(
            keys=[f"ratelimit:{key}"],
            args=[config.capacity, config.refill_rate, time.time()],
        )
        return RateLimitResult(
            allowed=bool(allowed),
            remaining=int(remaining),
            limit=config.capacity,
            retry_after=retry_after_ms / 1000,
        )

    async def reset(self, key: str) -> None:
        await self._redis.delete(f"ratelimit:{key}")
