"""
Keyspace & Expiry Manager

This module owns the single mapping from key to typed value. Every other
component reads and mutates values through it, so type checks and expiry
checks happen in exactly one place.

Features:
- Tagged values: each entry records which kind of value it holds
- TTL: entries carry an optional absolute expiry timestamp
- Lazy expiration: an expired entry is treated as absent and dropped on access
- Active expiration: sweep() removes expired entries nobody touches
- Versioning: every mutation stamps the entry with a fresh counter value

Internal Storage:
    Plain dict, key -> Entry(kind, value, expires_at, version).
    expires_at = None means no expiration.

Thread Safety:
    One re-entrant lock serializes every operation, so each operation is
    atomic. Composite operations in higher layers hold the same lock via
    the `lock` property.
"""

import itertools
import logging
import math
import threading
import time
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from fnmatch import fnmatchcase
from typing import Any, Callable, Dict, Iterator, List, Optional

from ..errors import InvalidTTL, KeyNotFound, TypeMismatch
from .sorted_set import SortedSet

logger = logging.getLogger(__name__)


class ValueType(Enum):
    """Kinds of value a key can hold."""
    STRING = "string"
    LIST = "list"
    SET = "set"
    HASH = "hash"
    ZSET = "zset"


_EMPTY: Dict[ValueType, Callable[[], Any]] = {
    ValueType.STRING: str,
    ValueType.LIST: deque,
    ValueType.SET: set,
    ValueType.HASH: dict,
    ValueType.ZSET: SortedSet,
}


@dataclass
class Entry:
    """The stored (value, expiry) pair behind one key."""
    kind: ValueType
    value: Any
    expires_at: Optional[float] = None
    version: int = 0

    def is_expired(self, now: float) -> bool:
        return self.expires_at is not None and self.expires_at <= now


def kind_of(value: Any) -> ValueType:
    """Map a Python value onto the kind of entry that stores it."""
    if isinstance(value, str):
        return ValueType.STRING
    if isinstance(value, SortedSet):
        return ValueType.ZSET
    if isinstance(value, (list, tuple, deque)):
        return ValueType.LIST
    if isinstance(value, (set, frozenset)):
        return ValueType.SET
    if isinstance(value, dict):
        return ValueType.HASH
    raise TypeMismatch(f"unsupported value type: {type(value).__name__}")


def _copy_value(kind: ValueType, value: Any, as_stored: bool) -> Any:
    """Copy a value in or out of the keyspace so callers never share it."""
    if kind is ValueType.STRING:
        return value
    if kind is ValueType.LIST:
        return deque(value) if as_stored else list(value)
    if kind is ValueType.SET:
        return set(value)
    if kind is ValueType.HASH:
        return {str(f): str(v) for f, v in value.items()}
    return value.copy()


def validate_ttl(ttl: Any) -> float:
    """Return ttl as float seconds, or raise InvalidTTL."""
    if isinstance(ttl, bool) or not isinstance(ttl, (int, float)):
        raise InvalidTTL(f"invalid expire time: {ttl!r}")
    if math.isnan(ttl) or ttl <= 0:
        raise InvalidTTL(f"invalid expire time: {ttl!r}")
    return float(ttl)


class Keyspace:
    """
    The shared keyspace every store operates on.

    Usage:
        ks = Keyspace()
        ks.set("greeting", "hello", ttl=60)
        ks.get("greeting")          # "hello"
        ks.ttl_remaining("greeting") # ~60.0

    Attributes:
        clock: Callable returning the current time in seconds
    """

    def __init__(self, clock: Callable[[], float] = None):
        """
        Initialize an empty keyspace.

        Args:
            clock: Time source (default time.time). Tests inject a fake one.
        """
        self.clock = clock if clock is not None else time.time
        self._entries: Dict[str, Entry] = {}
        self._lock = threading.RLock()
        self._versions = itertools.count(1)

    @property
    def lock(self) -> threading.RLock:
        """The lock that makes a block of operations atomic."""
        return self._lock

    def now(self) -> float:
        return self.clock()

    # ------------------------------------------------------------------
    # Internal helpers (callers must hold the lock)
    # ------------------------------------------------------------------

    def _live(self, key: str) -> Optional[Entry]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(self.clock()):
            # Lazy expiration
            del self._entries[key]
            return None
        return entry

    def _stamp(self, entry: Entry) -> None:
        entry.version = next(self._versions)

    # ------------------------------------------------------------------
    # Typed access for the stores
    # ------------------------------------------------------------------

    @contextmanager
    def open(
            self,
            key: str,
            kind: ValueType,
            create: bool = False,
            write: bool = True,
    ) -> Iterator[Optional[Entry]]:
        """
        Hold the lock and yield the live entry for key, checked against kind.

        Args:
            key: Key to open
            kind: Kind of value the caller operates on
            create: Create an empty entry if the key is absent
            write: The caller may mutate entry.value; stamp a new version
                   afterwards and drop collections left empty

        Yields:
            The Entry, or None if the key is absent and create is False

        Raises:
            TypeMismatch: If the key holds a different kind of value
        """
        with self._lock:
            entry = self._live(key)
            if entry is not None and entry.kind is not kind:
                raise TypeMismatch(
                    f"key '{key}' holds a {entry.kind.value}, not a {kind.value}"
                )
            created = False
            if entry is None and create:
                entry = Entry(kind=kind, value=_EMPTY[kind]())
                self._entries[key] = entry
                created = True
            try:
                yield entry
            except BaseException:
                if created:
                    self._entries.pop(key, None)
                raise
            if write and entry is not None and self._entries.get(key) is entry:
                if kind is not ValueType.STRING and not entry.value:
                    del self._entries[key]
                else:
                    self._stamp(entry)

    # ------------------------------------------------------------------
    # Generic key operations
    # ------------------------------------------------------------------

    def set(
            self,
            key: str,
            value: Any,
            ttl: Optional[float] = None,
            nx: bool = False,
            xx: bool = False,
    ) -> bool:
        """
        Store a value, replacing any prior entry regardless of its type.

        Args:
            key: The key to store
            value: str, list, set, dict or SortedSet
            ttl: Seconds until expiry (None = no expiration)
            nx: Only store if the key is absent
            xx: Only store if the key is present

        Returns:
            True if the value was written

        Raises:
            InvalidTTL: If ttl is given and not positive
        """
        expires_in = validate_ttl(ttl) if ttl is not None else None
        kind = kind_of(value)
        with self._lock:
            present = self._live(key) is not None
            if (nx and present) or (xx and not present):
                return False
            now = self.clock()
            entry = Entry(
                kind=kind,
                value=_copy_value(kind, value, as_stored=True),
                expires_at=now + expires_in if expires_in is not None else None,
            )
            if kind is not ValueType.STRING and not entry.value:
                self._entries.pop(key, None)
                return True
            self._stamp(entry)
            self._entries[key] = entry
            return True

    def get(self, key: str) -> Optional[Any]:
        """
        Return a copy of the value for key.

        Returns:
            The value if found and not expired, None otherwise
        """
        with self._lock:
            entry = self._live(key)
            if entry is None:
                return None
            return _copy_value(entry.kind, entry.value, as_stored=False)

    def delete(self, key: str) -> bool:
        """
        Delete a key.

        Returns:
            True if a live entry was removed, False otherwise
        """
        with self._lock:
            if self._live(key) is None:
                return False
            del self._entries[key]
            return True

    def exists(self, key: str) -> bool:
        with self._lock:
            return self._live(key) is not None

    def type_of(self, key: str) -> Optional[ValueType]:
        with self._lock:
            entry = self._live(key)
            return entry.kind if entry is not None else None

    def expire(self, key: str, ttl: float) -> bool:
        """
        Set or overwrite the expiry of a live key.

        Returns:
            False if the key is absent or expired

        Raises:
            InvalidTTL: If ttl is not positive
        """
        expires_in = validate_ttl(ttl)
        with self._lock:
            entry = self._live(key)
            if entry is None:
                return False
            entry.expires_at = self.clock() + expires_in
            self._stamp(entry)
            return True

    def expire_at(self, key: str, timestamp: float) -> bool:
        """Expire a live key at an absolute timestamp in the future."""
        with self._lock:
            return self.expire(key, timestamp - self.clock())

    def persist(self, key: str) -> bool:
        """Remove the expiry of a live key; False if it had none."""
        with self._lock:
            entry = self._live(key)
            if entry is None or entry.expires_at is None:
                return False
            entry.expires_at = None
            self._stamp(entry)
            return True

    def ttl_remaining(self, key: str) -> Optional[float]:
        """
        Seconds until key expires.

        Returns:
            None for absent, expired, or non-expiring keys
        """
        with self._lock:
            entry = self._live(key)
            if entry is None or entry.expires_at is None:
                return None
            return entry.expires_at - self.clock()

    def keys(self, pattern: str = "*") -> List[str]:
        """Live keys matching a glob pattern, sorted."""
        with self._lock:
            now = self.clock()
            return sorted(
                key for key, entry in self._entries.items()
                if not entry.is_expired(now) and fnmatchcase(key, pattern)
            )

    def rename(self, key: str, new_key: str) -> None:
        """
        Move an entry (value and expiry) to a new key.

        Raises:
            KeyNotFound: If key is absent
        """
        with self._lock:
            entry = self._live(key)
            if entry is None:
                raise KeyNotFound(f"no such key: '{key}'")
            if key == new_key:
                return
            del self._entries[key]
            self._stamp(entry)
            self._entries[new_key] = entry

    def version(self, key: str) -> int:
        """Modification counter of key; 0 if absent."""
        with self._lock:
            entry = self._live(key)
            return entry.version if entry is not None else 0

    def compare_and_delete(self, key: str, expected: str) -> bool:
        """Delete key only if it holds the string `expected`."""
        with self._lock:
            entry = self._live(key)
            if entry is None or entry.kind is not ValueType.STRING or entry.value != expected:
                return False
            del self._entries[key]
            return True

    def compare_and_expire(self, key: str, expected: str, ttl: float) -> bool:
        """Reset the TTL of key only if it holds the string `expected`."""
        expires_in = validate_ttl(ttl)
        with self._lock:
            entry = self._live(key)
            if entry is None or entry.kind is not ValueType.STRING or entry.value != expected:
                return False
            entry.expires_at = self.clock() + expires_in
            self._stamp(entry)
            return True

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def sweep(self, now: Optional[float] = None) -> int:
        """
        Remove all expired entries (active expiration).

        Args:
            now: Timestamp to compare against (default: the clock)

        Returns:
            Number of entries removed
        """
        with self._lock:
            now = self.clock() if now is None else now
            expired = [k for k, entry in self._entries.items() if entry.is_expired(now)]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.debug(f"Sweep removed {len(expired)} expired keys")
        return len(expired)

    def size(self) -> int:
        """
        Number of stored entries.

        Note: This may include expired entries that haven't been swept yet.
        """
        return len(self._entries)

    def clear(self) -> None:
        """Remove all entries."""
        with self._lock:
            self._entries.clear()

    def get_stats(self) -> Dict[str, Any]:
        """
        Get statistics about the keyspace.

        Returns:
            Dictionary containing:
            - total_keys: Entries currently stored
            - expired_keys: Expired but not yet removed
            - active_keys: Live entries
            - by_type: Live entry count per value kind
        """
        with self._lock:
            now = self.clock()
            total = len(self._entries)
            by_type = {kind.value: 0 for kind in ValueType}
            expired = 0
            for entry in self._entries.values():
                if entry.is_expired(now):
                    expired += 1
                else:
                    by_type[entry.kind.value] += 1

        return {
            "total_keys": total,
            "expired_keys": expired,
            "active_keys": total - expired,
            "by_type": by_type,
        }
