"""
List Store

Ordered sequences of strings with push/pop at both ends, inclusive-range
reads and trims, and positional edits. Backed by collections.deque.
"""

from collections import deque
from itertools import islice
from typing import List, Optional

from ..errors import InvalidRange, KeyNotFound
from .keyspace import Keyspace, ValueType
from .ranges import check_index, normalize_range


class ListStore:
    """
    List operations over the shared keyspace.

    Index rules:
        range() and trim() take an inclusive stop. Negative indices count
        from the end, so range(key, 0, -1) returns the whole list.
    """

    def __init__(self, keyspace: Keyspace):
        self.keyspace = keyspace

    def push_left(self, key: str, *values: str) -> int:
        """Prepend values one by one; returns the new length."""
        with self.keyspace.open(key, ValueType.LIST, create=True) as entry:
            for value in values:
                entry.value.appendleft(str(value))
            return len(entry.value)

    def push_right(self, key: str, *values: str) -> int:
        """Append values; returns the new length."""
        with self.keyspace.open(key, ValueType.LIST, create=True) as entry:
            entry.value.extend(str(value) for value in values)
            return len(entry.value)

    def pop_left(self, key: str) -> Optional[str]:
        with self.keyspace.open(key, ValueType.LIST) as entry:
            if entry is None:
                return None
            return entry.value.popleft()

    def pop_right(self, key: str) -> Optional[str]:
        with self.keyspace.open(key, ValueType.LIST) as entry:
            if entry is None:
                return None
            return entry.value.pop()

    def range(self, key: str, start: int, stop: int) -> List[str]:
        with self.keyspace.open(key, ValueType.LIST, write=False) as entry:
            if entry is None:
                check_index(start, "start")
                check_index(stop, "stop")
                return []
            lo, hi = normalize_range(start, stop, len(entry.value))
            return list(islice(entry.value, lo, hi))

    def trim(self, key: str, start: int, stop: int) -> None:
        """Keep only the elements inside the inclusive range."""
        with self.keyspace.open(key, ValueType.LIST) as entry:
            if entry is None:
                check_index(start, "start")
                check_index(stop, "stop")
                return
            lo, hi = normalize_range(start, stop, len(entry.value))
            entry.value = deque(islice(entry.value, lo, hi))

    def length(self, key: str) -> int:
        with self.keyspace.open(key, ValueType.LIST, write=False) as entry:
            return len(entry.value) if entry is not None else 0

    def index(self, key: str, index: int) -> Optional[str]:
        index = check_index(index)
        with self.keyspace.open(key, ValueType.LIST, write=False) as entry:
            if entry is None:
                return None
            if not -len(entry.value) <= index < len(entry.value):
                return None
            return entry.value[index]

    def set_at(self, key: str, index: int, value: str) -> None:
        """
        Overwrite the element at index.

        Raises:
            KeyNotFound: If the list does not exist
            InvalidRange: If index is outside the list
        """
        index = check_index(index)
        with self.keyspace.open(key, ValueType.LIST) as entry:
            if entry is None:
                raise KeyNotFound(f"no such key: '{key}'")
            if not -len(entry.value) <= index < len(entry.value):
                raise InvalidRange(f"index {index} out of range")
            entry.value[index] = str(value)

    def insert_relative(self, key: str, pivot: str, value: str, before: bool = True) -> int:
        """
        Insert value next to the first occurrence of pivot.

        Returns:
            The new length, -1 if pivot was not found, 0 if the list is absent
        """
        with self.keyspace.open(key, ValueType.LIST) as entry:
            if entry is None:
                return 0
            try:
                position = entry.value.index(pivot)
            except ValueError:
                return -1
            entry.value.insert(position if before else position + 1, str(value))
            return len(entry.value)

    def remove(self, key: str, count: int, value: str) -> int:
        """
        Remove occurrences of value.

        count > 0 removes the first `count` from the head, count < 0 the
        last `abs(count)` from the tail, count == 0 removes all.

        Returns:
            Number of elements removed
        """
        count = check_index(count, "count")
        with self.keyspace.open(key, ValueType.LIST) as entry:
            if entry is None:
                return 0
            items = list(entry.value)
            limit = abs(count) if count else len(items)
            order = range(len(items) - 1, -1, -1) if count < 0 else range(len(items))
            doomed = set()
            for i in order:
                if len(doomed) >= limit:
                    break
                if items[i] == value:
                    doomed.add(i)
            if doomed:
                entry.value = deque(item for i, item in enumerate(items) if i not in doomed)
            return len(doomed)

    def push_capped(self, key: str, value: str, max_len: int) -> int:
        """
        Prepend value and trim the list to its newest max_len items.

        Returns:
            The resulting length (never above max_len)
        """
        max_len = check_index(max_len, "max_len")
        if max_len <= 0:
            raise InvalidRange("max_len must be positive")
        with self.keyspace.lock:
            self.push_left(key, value)
            self.trim(key, 0, max_len - 1)
            return self.length(key)
