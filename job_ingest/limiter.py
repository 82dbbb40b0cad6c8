"""Sliding-window rate limiter for inbound callers, backed by Redis sorted sets.

One sorted set per identifier (`rate_limit:<identifier>`): each admitted request
is a member scored with its arrival time in milliseconds. Trimming, adding,
counting and refreshing the TTL happen in a single MULTI pipeline so concurrent
API processes share one consistent count.

If Redis is unreachable the limiter fails open: the request is allowed, the
result is flagged `degraded` and a warning is logged.
"""

from __future__ import annotations

import logging
import time
import uuid
from typing import Callable

import redis
from redis.exceptions import RedisError

from .models import RateLimitResult

logger = logging.getLogger(__name__)


class SlidingWindowLimiter:
    def __init__(
        self,
        client: "redis.Redis",
        prefix: str = "rate_limit",
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.client = client
        self.prefix = prefix
        self._clock = clock

    @classmethod
    def from_url(cls, url: str, **kwargs) -> "SlidingWindowLimiter":
        # The client connects lazily, so an unreachable server only shows up on first use.
        return cls(redis.Redis.from_url(url, decode_responses=True, socket_timeout=2), **kwargs)

    def key(self, identifier: str) -> str:
        return f"{self.prefix}:{identifier}"

    def now_ms(self) -> int:
        return int(self._clock() * 1000)

    def check_limit(self, identifier: str, limit: int, window_ms: int) -> RateLimitResult:
        """Admit or reject one request for `identifier`."""
        now_ms = self.now_ms()
        key = self.key(identifier)
        member = f"{now_ms}-{uuid.uuid4().hex[:8]}"
        try:
            pipe = self.client.pipeline(transaction=True)
            pipe.zremrangebyscore(key, 0, now_ms - window_ms)
            pipe.zadd(key, {member: now_ms})
            pipe.zcard(key)
            pipe.pexpire(key, window_ms)
            _, _, count, _ = pipe.execute()

            if count > limit:
                return self._reject(identifier, key, member, count, limit, now_ms, window_ms)

            return RateLimitResult(
                allowed=True,
                remaining=max(limit - count, 0),
                reset_time=now_ms + window_ms,
            )
        except RedisError as exc:
            logger.warning("Rate limiter degraded, allowing %s: %s", identifier, exc)
            return RateLimitResult(
                allowed=True,
                remaining=limit,
                reset_time=now_ms + window_ms,
                degraded=True,
            )

    def _reject(
        self, identifier: str, key: str, member: str, count: int, limit: int, now_ms: int, window_ms: int
    ) -> RateLimitResult:
        # Rejected requests must not occupy a slot.
        reset_time = now_ms + window_ms
        try:
            self.client.zrem(key, member)
            oldest = self.client.zrange(key, 0, 0, withscores=True)
            if oldest:
                reset_time = int(oldest[0][1]) + window_ms
        except RedisError as exc:
            # The member expires with the key's TTL; the request is still over the limit.
            logger.warning("Rate limiter cleanup failed for %s: %s", identifier, exc)
        logger.info("Rate limit hit for %s (%s/%s)", identifier, count - 1, limit)
        return RateLimitResult(allowed=False, remaining=0, reset_time=reset_time)

    def status(self, identifier: str, limit: int, window_ms: int) -> RateLimitResult:
        """Current usage without consuming a slot."""
        now_ms = self.now_ms()
        try:
            count = self.client.zcount(self.key(identifier), now_ms - window_ms + 1, "+inf")
        except RedisError as exc:
            logger.warning("Rate limiter degraded, status unknown for %s: %s", identifier, exc)
            return RateLimitResult(allowed=True, remaining=limit, reset_time=now_ms + window_ms, degraded=True)
        return RateLimitResult(
            allowed=count < limit,
            remaining=max(limit - count, 0),
            reset_time=now_ms + window_ms,
        )

    def reset(self, identifier: str) -> bool:
        return bool(self.client.delete(self.key(identifier)))

    def sweep(self, window_ms: int) -> int:
        """Purge expired members from every limiter key and drop empty keys.

        Returns the number of members removed. Meant for a periodic maintenance job.
        """
        cutoff = self.now_ms() - window_ms
        removed = 0
        try:
            for key in self.client.scan_iter(match=f"{self.prefix}:*"):
                removed += self.client.zremrangebyscore(key, 0, cutoff)
                if self.client.zcard(key) == 0:
                    self.client.delete(key)
        except RedisError as exc:
            logger.warning("Rate limiter sweep aborted: %s", exc)
        if removed:
            logger.info("Rate limiter sweep removed %s expired entries", removed)
        return removed
