"""
Rate Limiters

Three independent algorithms built on engine entries:

- SlidingWindowLimiter: sorted set of request timestamps per identifier
- TokenBucketLimiter: hash {tokens, last_refill} per identifier, fractional
  tokens refilled from elapsed time
- FixedWindowLimiter: one counter per identifier per aligned window

Each decision runs as one atomic engine block.
"""

import logging
import math
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..config.settings import settings
from ..engine import KVEngine

logger = logging.getLogger(__name__)


@dataclass
class RateLimitResult:
    """Outcome of one rate-limit check."""
    allowed: bool
    remaining: int
    reset_at: float
    limit: float


def _check_window(limit, window_seconds) -> None:
    if limit < 0:
        raise ValueError("limit must not be negative")
    if window_seconds <= 0:
        raise ValueError("window_seconds must be positive")


class SlidingWindowLimiter:
    """
    Sliding-window log limiter.

    A request is allowed iff, after recording it and discarding entries
    older than the window, the window holds at most max_requests entries.
    A rejected request's entry is discarded again so it does not count
    against later calls.
    """

    prefix = "ratelimit:sliding:"

    def __init__(self, engine: KVEngine):
        self.engine = engine

    def key(self, identifier: str) -> str:
        return f"{self.prefix}{identifier}"

    def check(self, identifier: str, max_requests: int, window_seconds: float) -> RateLimitResult:
        _check_window(max_requests, window_seconds)
        key = self.key(identifier)
        zsets = self.engine.zsets
        with self.engine.atomic():
            now = self.engine.now()
            zsets.zrem_range_by_score(key, float("-inf"), now - window_seconds)
            member = f"{now!r}:{uuid.uuid4().hex}"
            zsets.zadd(key, [(now, member)])
            count = zsets.zcard(key)
            allowed = count <= max_requests
            if not allowed:
                zsets.zrem(key, member)
                count -= 1
            if self.engine.exists(key):
                self.engine.expire(key, window_seconds)
            oldest = zsets.zrange(key, 0, 0, with_scores=True)

        reset_at = oldest[0][1] + window_seconds if oldest else now + window_seconds
        if not allowed:
            logger.debug(f"Sliding window blocked {identifier} ({count}/{max_requests})")
        return RateLimitResult(
            allowed=allowed,
            remaining=max(0, max_requests - count),
            reset_at=reset_at,
            limit=max_requests,
        )

    def allow(self, identifier: str, max_requests: int, window_seconds: float) -> bool:
        return self.check(identifier, max_requests, window_seconds).allowed

    def status(self, identifier: str) -> Dict[str, Any]:
        key = self.key(identifier)
        with self.engine.atomic():
            oldest = self.engine.zsets.zrange(key, 0, 0, with_scores=True)
            return {
                "current_requests": self.engine.zsets.zcard(key),
                "oldest_request": oldest[0][1] if oldest else None,
            }

    def reset(self, identifier: str) -> bool:
        return self.engine.delete(self.key(identifier))


class TokenBucketLimiter:
    """
    Token bucket limiter.

    The bucket starts full at `capacity` tokens and refills continuously
    at `refill_rate` tokens per second, never above capacity. A request
    consumes one whole token; the stored count may be fractional.
    """

    prefix = "ratelimit:bucket:"

    def __init__(self, engine: KVEngine, capacity: float, refill_rate: float, ttl: float = None):
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        if refill_rate <= 0:
            raise ValueError("refill_rate must be positive")
        self.engine = engine
        self.capacity = float(capacity)
        self.refill_rate = float(refill_rate)
        self.ttl = ttl if ttl is not None else settings.TOKEN_BUCKET_TTL

    def key(self, identifier: str) -> str:
        return f"{self.prefix}{identifier}"

    def check(self, identifier: str) -> RateLimitResult:
        key = self.key(identifier)
        with self.engine.atomic():
            now = self.engine.now()
            tokens = self._refilled(self.engine.hashes.hgetall(key), now)
            allowed = tokens >= 1
            if allowed:
                tokens -= 1
            self.engine.hashes.hset_many(key, {"tokens": repr(tokens), "last_refill": repr(now)})
            self.engine.expire(key, self.ttl)

        if allowed:
            reset_at = now + 1 / self.refill_rate
        else:
            reset_at = now + (1 - tokens) / self.refill_rate
            logger.debug(f"Token bucket empty for {identifier}")
        return RateLimitResult(
            allowed=allowed,
            remaining=math.floor(tokens),
            reset_at=reset_at,
            limit=self.capacity,
        )

    def allow(self, identifier: str) -> bool:
        return self.check(identifier).allowed

    def status(self, identifier: str) -> Dict[str, Optional[float]]:
        state = self.engine.hashes.hgetall(self.key(identifier))
        return {
            "tokens": float(state["tokens"]) if "tokens" in state else None,
            "last_refill": float(state["last_refill"]) if "last_refill" in state else None,
        }

    def reset(self, identifier: str) -> bool:
        return self.engine.delete(self.key(identifier))

    def _refilled(self, state: Dict[str, str], now: float) -> float:
        if "tokens" not in state:
            return self.capacity
        tokens = float(state["tokens"])
        elapsed = max(0.0, now - float(state.get("last_refill", now)))
        return min(self.capacity, tokens + elapsed * self.refill_rate)


class FixedWindowLimiter:
    """
    Fixed-window counter limiter.

    Time is cut into aligned windows of window_seconds; each window has its
    own counter key that expires shortly after the window closes.
    """

    prefix = "ratelimit:fixed:"

    def __init__(self, engine: KVEngine):
        self.engine = engine

    def key(self, identifier: str, window_start: float) -> str:
        return f"{self.prefix}{identifier}:{int(window_start)}"

    def check(self, identifier: str, limit: int, window_seconds: float) -> RateLimitResult:
        _check_window(limit, window_seconds)
        with self.engine.atomic():
            now = self.engine.now()
            window_start = math.floor(now / window_seconds) * window_seconds
            key = self.key(identifier, window_start)
            count = self.engine.strings.incr(key)
            if count == 1:
                self.engine.expire(key, window_seconds * 2)
            allowed = count <= limit
            if not allowed:
                self.engine.strings.decr(key)
                count -= 1

        return RateLimitResult(
            allowed=allowed,
            remaining=max(0, limit - count),
            reset_at=window_start + window_seconds,
            limit=limit,
        )

    def allow(self, identifier: str, limit: int, window_seconds: float) -> bool:
        return self.check(identifier, limit, window_seconds).allowed
