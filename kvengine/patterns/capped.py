"""Capped lists: keep only the newest N items under a key."""

from typing import List

from ..engine import KVEngine


class CappedList:
    """
    Bounded most-recent-first list, e.g. latest comments or activity feeds.

    Usage:
        feed = CappedList(engine, "feed:alice", max_len=50)
        feed.add("posted a photo")
        feed.items(10)
    """

    def __init__(self, engine: KVEngine, key: str, max_len: int, ttl: float = None):
        if max_len <= 0:
            raise ValueError("max_len must be positive")
        self.engine = engine
        self.key = key
        self.max_len = max_len
        self.ttl = ttl

    def add(self, item: str) -> int:
        """Prepend item, dropping the oldest beyond max_len; returns length."""
        with self.engine.atomic():
            length = self.engine.lists.push_capped(self.key, item, self.max_len)
            if self.ttl is not None:
                self.engine.expire(self.key, self.ttl)
        return length

    def items(self, count: int = None) -> List[str]:
        stop = (count if count is not None else self.max_len) - 1
        if stop < 0:
            return []
        return self.engine.lists.range(self.key, 0, stop)

    def __len__(self) -> int:
        return self.engine.lists.length(self.key)

    def clear(self) -> bool:
        return self.engine.delete(self.key)
