"""Application patterns composed from the engine's stores."""

from .capped import CappedList
from .lock import DistributedLock
from .queue import Job, JobQueue
from .rate_limit import (
    FixedWindowLimiter,
    RateLimitResult,
    SlidingWindowLimiter,
    TokenBucketLimiter,
)
from .session import SessionStore

__all__ = [
    "CappedList",
    "DistributedLock",
    "FixedWindowLimiter",
    "Job",
    "JobQueue",
    "RateLimitResult",
    "SessionStore",
    "SlidingWindowLimiter",
    "TokenBucketLimiter",
]
