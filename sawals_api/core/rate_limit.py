"""
Sliding-window rate limiting.

Two backends with the same `hit()` contract: an in-process one for a single
worker and tests, and a Redis sorted-set one when several workers must share
counters. A hit is recorded only when it is allowed.
"""
import logging
import threading
import time
import uuid
from collections import deque
from dataclasses import dataclass

import redis

from sawals_api.core.config import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitRule:
    name: str
    limit: int
    window_seconds: int
    message: str


SEND_OTP_RULE = RateLimitRule(
    name="send_otp",
    limit=3,
    window_seconds=15 * 60,
    message="Too many OTP requests. Please try again in 15 minutes.",
)
VERIFY_OTP_RULE = RateLimitRule(
    name="verify_otp",
    limit=5,
    window_seconds=10 * 60,
    message="Too many verification attempts. Please try again in 10 minutes.",
)
USERNAME_CHECK_RULE = RateLimitRule(
    name="username_check",
    limit=20,
    window_seconds=5 * 60,
    message="Too many username checks. Please try again in 5 minutes.",
)
GENERAL_RULE = RateLimitRule(
    name="general",
    limit=100,
    window_seconds=15 * 60,
    message="Too many requests. Please try again later.",
)


@dataclass
class RateLimitInfo:
    allowed: bool
    remaining: int
    limit: int
    retry_after: int | None = None


class InMemorySlidingWindowLimiter:
    def __init__(self, clock=time.monotonic, sweep_interval: float = 60.0) -> None:
        self._clock = clock
        self._hits: dict[str, deque] = {}
        self._windows: dict[str, int] = {}
        self._sweep_interval = sweep_interval
        self._next_sweep = clock() + sweep_interval
        self._lock = threading.Lock()

    @property
    def key_count(self) -> int:
        return len(self._hits)

    def hit(self, key: str, limit: int, window_seconds: int) -> RateLimitInfo:
        now = self._clock()
        with self._lock:
            if now >= self._next_sweep:
                self._sweep(now)
            hits = self._hits.setdefault(key, deque())
            self._windows[key] = window_seconds
            while hits and hits[0] <= now - window_seconds:
                hits.popleft()
            if len(hits) >= limit:
                retry_after = int(hits[0] + window_seconds - now) + 1
                return RateLimitInfo(allowed=False, remaining=0, limit=limit, retry_after=retry_after)
            hits.append(now)
            return RateLimitInfo(allowed=True, remaining=limit - len(hits), limit=limit)

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()
            self._windows.clear()

    def _sweep(self, now: float) -> None:
        # Drop keys whose newest hit has left its window.
        stale = [k for k, hits in self._hits.items() if not hits or hits[-1] <= now - self._windows[k]]
        for key in stale:
            del self._hits[key]
            del self._windows[key]
        self._next_sweep = now + self._sweep_interval


class RedisSlidingWindowLimiter:
    def __init__(self, client: redis.Redis, prefix: str = "ratelimit") -> None:
        self.redis = client
        self.prefix = prefix

    def hit(self, key: str, limit: int, window_seconds: int) -> RateLimitInfo:
        rkey = f"{self.prefix}:{key}"
        now = time.time()
        member = f"{now}:{uuid.uuid4().hex}"
        try:
            pipe = self.redis.pipeline(transaction=True)
            pipe.zremrangebyscore(rkey, 0, now - window_seconds)
            pipe.zadd(rkey, {member: now})
            pipe.zcard(rkey)
            pipe.expire(rkey, window_seconds)
            _, _, count, _ = pipe.execute()
            if count > limit:
                self.redis.zrem(rkey, member)
                oldest = self.redis.zrange(rkey, 0, 0, withscores=True)
                retry_after = int(oldest[0][1] + window_seconds - now) + 1 if oldest else window_seconds
                return RateLimitInfo(allowed=False, remaining=0, limit=limit, retry_after=retry_after)
            return RateLimitInfo(allowed=True, remaining=limit - count, limit=limit)
        except redis.RedisError as e:
            # Fail open: a Redis outage must not lock everybody out of login.
            logger.error("Rate limit check failed key=%s error=%s", key, e)
            return RateLimitInfo(allowed=True, remaining=limit, limit=limit)


def build_rate_limiter(settings: Settings):
    if settings.rate_limit_backend == "redis":
        return RedisSlidingWindowLimiter(redis.Redis.from_url(settings.redis_url))
    return InMemorySlidingWindowLimiter()
