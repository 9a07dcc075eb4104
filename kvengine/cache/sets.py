"""
Set Store

Unordered collections of unique strings plus set algebra across keys.
Missing keys behave as empty sets.
"""

import random
from typing import Iterable, Optional, Set

from .keyspace import Keyspace, ValueType


class SetStore:
    """Set operations over the shared keyspace."""

    def __init__(self, keyspace: Keyspace, rng: random.Random = None):
        self.keyspace = keyspace
        self._rng = rng if rng is not None else random.Random()

    def add(self, key: str, *members: str) -> int:
        """Add members; returns how many were not already present."""
        with self.keyspace.open(key, ValueType.SET, create=True) as entry:
            before = len(entry.value)
            entry.value.update(str(m) for m in members)
            return len(entry.value) - before

    def remove(self, key: str, *members: str) -> int:
        """Remove members; returns how many were present."""
        with self.keyspace.open(key, ValueType.SET) as entry:
            if entry is None:
                return 0
            before = len(entry.value)
            entry.value.difference_update(str(m) for m in members)
            return before - len(entry.value)

    def is_member(self, key: str, member: str) -> bool:
        with self.keyspace.open(key, ValueType.SET, write=False) as entry:
            return entry is not None and str(member) in entry.value

    def members(self, key: str) -> Set[str]:
        with self.keyspace.open(key, ValueType.SET, write=False) as entry:
            return set(entry.value) if entry is not None else set()

    def cardinality(self, key: str) -> int:
        with self.keyspace.open(key, ValueType.SET, write=False) as entry:
            return len(entry.value) if entry is not None else 0

    def random_member(self, key: str) -> Optional[str]:
        with self.keyspace.open(key, ValueType.SET, write=False) as entry:
            if entry is None:
                return None
            return self._rng.choice(sorted(entry.value))

    def pop(self, key: str) -> Optional[str]:
        """Remove and return a random member."""
        with self.keyspace.open(key, ValueType.SET) as entry:
            if entry is None:
                return None
            member = self._rng.choice(sorted(entry.value))
            entry.value.discard(member)
            return member

    def move(self, source: str, destination: str, member: str) -> bool:
        """Atomically move member from one set to another."""
        with self.keyspace.lock:
            with self.keyspace.open(destination, ValueType.SET, write=False):
                pass  # type check before mutating source
            if not self.remove(source, member):
                return False
            self.add(destination, member)
            return True

    def union(self, keys: Iterable[str]) -> Set[str]:
        result: Set[str] = set()
        with self.keyspace.lock:
            for key in keys:
                result |= self.members(key)
        return result

    def intersect(self, keys: Iterable[str]) -> Set[str]:
        """Members present in every set; empty for an empty key list."""
        result: Optional[Set[str]] = None
        with self.keyspace.lock:
            for key in keys:
                members = self.members(key)
                result = members if result is None else result & members
        return result if result is not None else set()

    def diff(self, keys: Iterable[str]) -> Set[str]:
        """Members of the first set absent from all the others."""
        keys = list(keys)
        if not keys:
            return set()
        with self.keyspace.lock:
            result = self.members(keys[0])
            for key in keys[1:]:
                result -= self.members(key)
        return result
