"""
KV-Engine: Embedded Key-Value Engine

An in-process, thread-safe key-value engine with TTL expiry, counters,
lists, sets, hashes, sorted sets, pub/sub fan-out and job-queue and
rate-limiting patterns built on top. An optional asyncio TCP server
exposes it over a simple text protocol.
"""

from .engine import KVEngine
from .errors import (
    HandlerError,
    InvalidRange,
    InvalidTTL,
    KeyNotFound,
    KVError,
    NotANumber,
    TypeMismatch,
)

__version__ = "1.0.0"

__all__ = [
    "HandlerError",
    "InvalidRange",
    "InvalidTTL",
    "KVEngine",
    "KVError",
    "KeyNotFound",
    "NotANumber",
    "TypeMismatch",
]
