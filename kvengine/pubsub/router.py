"""
Pub/Sub Router

In-process fan-out of published messages to subscriber callbacks.

Delivery model:
- publish() calls every matching handler synchronously, exact-channel
  subscribers first, then pattern subscribers, each group in
  subscription order
- Fire-and-forget: nothing is stored, a late subscriber never sees an
  earlier message
- A handler that raises is logged and skipped; the remaining handlers
  still run and the failed one still counts as delivered
"""

import itertools
import logging
import threading
from dataclasses import dataclass, field
from fnmatch import fnmatchcase
from typing import Any, Callable, Dict, Iterable, List, Optional

from ..errors import HandlerError

logger = logging.getLogger(__name__)

Handler = Callable[[str, Any], None]


@dataclass(eq=False)
class Subscription:
    """
    Handle returned by subscribe()/subscribe_pattern().

    Attributes:
        id: Unique token for this registration
        handler: Callable invoked as handler(channel, message)
        channel: Exact channel name, for channel subscriptions
        pattern: Glob pattern, for pattern subscriptions
    """
    id: int
    handler: Handler = field(repr=False)
    channel: Optional[str] = None
    pattern: Optional[str] = None


class PubSubRouter:
    """
    Registry of channel and pattern subscriptions.

    Usage:
        router = PubSubRouter()
        sub = router.subscribe("news", lambda channel, msg: print(msg))
        router.publish("news", "hello")   # 1
        router.unsubscribe("news", sub)
    """

    def __init__(self):
        self._channels: Dict[str, List[Subscription]] = {}
        self._patterns: Dict[str, List[Subscription]] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()
        self.published = 0
        self.handler_errors = 0

    def subscribe(self, channel: str, handler: Handler) -> Subscription:
        sub = Subscription(id=next(self._ids), handler=handler, channel=channel)
        with self._lock:
            self._channels.setdefault(channel, []).append(sub)
        logger.debug(f"Subscribed #{sub.id} to channel {channel}")
        return sub

    def subscribe_pattern(self, pattern: str, handler: Handler) -> Subscription:
        """Subscribe to every channel matching a glob pattern (e.g. 'chat:*')."""
        sub = Subscription(id=next(self._ids), handler=handler, pattern=pattern)
        with self._lock:
            self._patterns.setdefault(pattern, []).append(sub)
        logger.debug(f"Subscribed #{sub.id} to pattern {pattern}")
        return sub

    def unsubscribe(self, channel: str, handle: Subscription) -> bool:
        """Remove a channel subscription; False if it was not registered."""
        with self._lock:
            return self._discard(self._channels, channel, handle)

    def unsubscribe_pattern(self, pattern: str, handle: Subscription) -> bool:
        with self._lock:
            return self._discard(self._patterns, pattern, handle)

    def publish(self, channel: str, message: Any) -> int:
        """
        Deliver message to every matching subscriber.

        Returns:
            Number of handlers invoked (exact + pattern matches)
        """
        with self._lock:
            targets = list(self._channels.get(channel, ()))
            for pattern, subs in self._patterns.items():
                if fnmatchcase(channel, pattern):
                    targets.extend(subs)
            self.published += 1

        for sub in targets:
            try:
                sub.handler(channel, message)
            except Exception as exc:
                with self._lock:
                    self.handler_errors += 1
                error = HandlerError(channel, exc)
                logger.exception(f"Subscriber #{sub.id} failed: {error}")
        return len(targets)

    def publish_many(self, channels: Iterable[str], message: Any) -> int:
        """Publish the same message to several channels; returns total deliveries."""
        return sum(self.publish(channel, message) for channel in channels)

    def channels(self, pattern: str = "*") -> List[str]:
        """Channels with at least one exact subscriber, matching pattern."""
        with self._lock:
            return sorted(c for c in self._channels if fnmatchcase(c, pattern))

    def numsub(self, channel: str) -> int:
        with self._lock:
            return len(self._channels.get(channel, ()))

    def numpat(self) -> int:
        with self._lock:
            return sum(len(subs) for subs in self._patterns.values())

    @staticmethod
    def _discard(registry: Dict[str, List[Subscription]], name: str, handle: Subscription) -> bool:
        subs = registry.get(name)
        if not subs or handle not in subs:
            return False
        subs.remove(handle)
        if not subs:
            # A channel exists only while it has subscribers
            del registry[name]
        return True
