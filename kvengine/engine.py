"""
KV-Engine

One embedded engine instance: a keyspace, the typed stores over it, a
pub/sub router and the background expiry sweeper. Nothing here is global;
every caller (and every test) builds its own engine.
"""

from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, Optional

from .cache.expiry import ExpirySweeper
from .cache.hashes import HashStore
from .cache.keyspace import Keyspace
from .cache.lists import ListStore
from .cache.sets import SetStore
from .cache.strings import StringStore
from .cache.zsets import SortedSetStore
from .pubsub.router import PubSubRouter


class KVEngine:
    """
    Facade bundling every component over one shared keyspace.

    Usage:
        with KVEngine() as engine:
            engine.strings.incr_by("visits", 1)
            engine.lists.push_left("recent", "a", "b")
            engine.zsets.zadd("board", {"alice": 10})

    Attributes:
        keyspace: The Keyspace & Expiry Manager
        strings, lists, sets, hashes, zsets: Typed stores
        pubsub: In-process Pub/Sub Router
        sweeper: Background active-expiry thread (not started by default)
    """

    def __init__(self, clock: Callable[[], float] = None, sweep_interval: float = None):
        """
        Args:
            clock: Time source shared by every component (default time.time)
            sweep_interval: Seconds between active expiry passes
        """
        self.keyspace = Keyspace(clock=clock)
        self.strings = StringStore(self.keyspace)
        self.lists = ListStore(self.keyspace)
        self.sets = SetStore(self.keyspace)
        self.hashes = HashStore(self.keyspace)
        self.zsets = SortedSetStore(self.keyspace)
        self.pubsub = PubSubRouter()
        self.sweeper = ExpirySweeper(self.keyspace, interval=sweep_interval)

    # Keyspace shortcuts

    def set(self, key: str, value: Any, ttl: Optional[float] = None, **kwargs) -> bool:
        return self.keyspace.set(key, value, ttl=ttl, **kwargs)

    def get(self, key: str) -> Optional[Any]:
        return self.keyspace.get(key)

    def delete(self, key: str) -> bool:
        return self.keyspace.delete(key)

    def exists(self, key: str) -> bool:
        return self.keyspace.exists(key)

    def expire(self, key: str, ttl: float) -> bool:
        return self.keyspace.expire(key, ttl)

    def ttl_remaining(self, key: str) -> Optional[float]:
        return self.keyspace.ttl_remaining(key)

    def now(self) -> float:
        return self.keyspace.now()

    @contextmanager
    def atomic(self) -> Iterator["KVEngine"]:
        """Run a block of operations with no other caller interleaving."""
        with self.keyspace.lock:
            yield self

    # Lifecycle

    def start(self) -> "KVEngine":
        """Start the background expiry sweeper."""
        self.sweeper.start()
        return self

    def stop(self) -> None:
        self.sweeper.stop()

    def __enter__(self) -> "KVEngine":
        return self.start()

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()

    def get_stats(self) -> Dict[str, Any]:
        return {
            "keyspace": self.keyspace.get_stats(),
            "pubsub": {
                "channels": len(self.pubsub.channels()),
                "patterns": self.pubsub.numpat(),
                "published": self.pubsub.published,
                "handler_errors": self.pubsub.handler_errors,
            },
            "sweeper": {
                "running": self.sweeper.is_running(),
                "passes": self.sweeper.passes,
                "removed": self.sweeper.removed,
            },
        }
