"""
Distributed-Style Lock

Mutual exclusion keyed by name with an owner token and a lease TTL, the
SET-if-absent / compare-and-delete idiom expressed over the engine.
"""

import logging
from typing import Any, Dict, Optional

from ..engine import KVEngine

logger = logging.getLogger(__name__)


class DistributedLock:
    """
    Named leases held by an owner.

    Usage:
        locks = DistributedLock(engine)
        if locks.acquire("report", owner="worker-1", ttl=30):
            try:
                ...
            finally:
                locks.release("report", owner="worker-1")
    """

    def __init__(self, engine: KVEngine, prefix: str = "lock:", default_ttl: float = 30.0):
        self.engine = engine
        self.prefix = prefix
        self.default_ttl = default_ttl

    def key(self, name: str) -> str:
        return f"{self.prefix}{name}"

    def acquire(self, name: str, owner: str, ttl: float = None) -> bool:
        """Take the lock if nobody holds it; the lease expires after ttl seconds."""
        ttl = ttl if ttl is not None else self.default_ttl
        acquired = self.engine.strings.set(self.key(name), owner, ttl=ttl, nx=True)
        if acquired:
            logger.debug(f"Lock {name} acquired by {owner}")
        return acquired

    def release(self, name: str, owner: str) -> bool:
        """Release the lock only if `owner` holds it."""
        released = self.engine.keyspace.compare_and_delete(self.key(name), owner)
        if released:
            logger.debug(f"Lock {name} released by {owner}")
        return released

    def extend(self, name: str, owner: str, ttl: float = None) -> bool:
        """Reset the lease of a lock held by `owner`."""
        ttl = ttl if ttl is not None else self.default_ttl
        return self.engine.keyspace.compare_and_expire(self.key(name), owner, ttl)

    def owner(self, name: str) -> Optional[str]:
        return self.engine.strings.get(self.key(name))

    def status(self, name: str) -> Dict[str, Any]:
        with self.engine.atomic():
            holder = self.owner(name)
            return {
                "locked": holder is not None,
                "owner": holder,
                "ttl": self.engine.ttl_remaining(self.key(name)),
            }
