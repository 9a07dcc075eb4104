"""
String/Counter Store

Scalar string values and integer counters stored as decimal strings.
"""

import re
from typing import Dict, Iterable, List, Optional

from ..errors import NotANumber
from .keyspace import Keyspace, ValueType

_INTEGER = re.compile(r"-?[0-9]+")


def parse_int(value: str, what: str = "value", error=NotANumber) -> int:
    """Parse a plain decimal integer (optional minus sign, digits only) or raise error."""
    if not isinstance(value, str) or _INTEGER.fullmatch(value) is None:
        raise error(f"{what} is not an integer: {value!r}")
    return int(value)


def check_delta(delta) -> int:
    if isinstance(delta, bool) or not isinstance(delta, int):
        raise NotANumber(f"increment is not an integer: {delta!r}")
    return delta


class StringStore:
    """
    get/set/append/incr/decr over string entries.

    Counters:
        A missing key counts as 0. The stored string must parse as an
        integer, otherwise NotANumber is raised and nothing changes.
        Counter updates keep the key's existing TTL.
    """

    def __init__(self, keyspace: Keyspace):
        self.keyspace = keyspace

    def set(self, key: str, value: str, ttl: Optional[float] = None,
            nx: bool = False, xx: bool = False) -> bool:
        """Store a string value (clears any previous TTL)."""
        return self.keyspace.set(key, str(value), ttl=ttl, nx=nx, xx=xx)

    def get(self, key: str) -> Optional[str]:
        with self.keyspace.open(key, ValueType.STRING, write=False) as entry:
            return entry.value if entry is not None else None

    def get_set(self, key: str, value: str) -> Optional[str]:
        """Store value and return the previous one."""
        with self.keyspace.lock:
            old = self.get(key)
            self.set(key, value)
            return old

    def set_many(self, mapping: Dict[str, str]) -> None:
        with self.keyspace.lock:
            for key, value in mapping.items():
                self.set(key, value)

    def get_many(self, keys: Iterable[str]) -> List[Optional[str]]:
        """
        Values for several keys; None for absent keys and for keys that
        hold something other than a string.
        """
        result = []
        with self.keyspace.lock:
            for key in keys:
                if self.keyspace.type_of(key) is ValueType.STRING:
                    result.append(self.get(key))
                else:
                    result.append(None)
        return result

    def append(self, key: str, suffix: str) -> int:
        """Append to the value (creating it if absent); returns new length."""
        with self.keyspace.open(key, ValueType.STRING, create=True) as entry:
            entry.value = entry.value + str(suffix)
            return len(entry.value)

    def strlen(self, key: str) -> int:
        with self.keyspace.open(key, ValueType.STRING, write=False) as entry:
            return len(entry.value) if entry is not None else 0

    def incr_by(self, key: str, delta: int) -> int:
        """
        Add delta to the counter at key.

        Returns:
            The new value

        Raises:
            NotANumber: If the stored value or delta is not an integer
            TypeMismatch: If key holds a non-string value
        """
        delta = check_delta(delta)
        with self.keyspace.lock:
            current = self.get(key)
            result = (parse_int(current) if current is not None else 0) + delta
            with self.keyspace.open(key, ValueType.STRING, create=True) as entry:
                entry.value = str(result)
            return result

    def decr_by(self, key: str, delta: int) -> int:
        return self.incr_by(key, -check_delta(delta))

    def incr(self, key: str) -> int:
        return self.incr_by(key, 1)

    def decr(self, key: str) -> int:
        return self.incr_by(key, -1)
