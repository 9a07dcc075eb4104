"""
Hash Store

Field -> value maps stored under one key.
"""

from typing import Dict, List, Optional

from .keyspace import Keyspace, ValueType
from .strings import check_delta, parse_int


class HashStore:
    """Hash operations over the shared keyspace."""

    def __init__(self, keyspace: Keyspace):
        self.keyspace = keyspace

    def hset(self, key: str, field: str, value: str) -> int:
        """Set one field; returns 1 if the field is new, 0 if updated."""
        return self.hset_many(key, {field: value})

    def hset_many(self, key: str, mapping: Dict[str, str]) -> int:
        """Set several fields at once; returns how many were new."""
        if not mapping:
            # still type-checked
            with self.keyspace.open(key, ValueType.HASH, write=False):
                return 0
        with self.keyspace.open(key, ValueType.HASH, create=True) as entry:
            added = 0
            for field, value in mapping.items():
                field = str(field)
                if field not in entry.value:
                    added += 1
                entry.value[field] = str(value)
            return added

    def hget(self, key: str, field: str) -> Optional[str]:
        with self.keyspace.open(key, ValueType.HASH, write=False) as entry:
            return entry.value.get(str(field)) if entry is not None else None

    def hgetall(self, key: str) -> Dict[str, str]:
        with self.keyspace.open(key, ValueType.HASH, write=False) as entry:
            return dict(entry.value) if entry is not None else {}

    def hdel(self, key: str, *fields: str) -> int:
        with self.keyspace.open(key, ValueType.HASH) as entry:
            if entry is None:
                return 0
            removed = 0
            for field in fields:
                if entry.value.pop(str(field), None) is not None:
                    removed += 1
            return removed

    def hincr_by(self, key: str, field: str, delta: int) -> int:
        """
        Add delta to an integer field (missing field counts as 0).

        Raises:
            NotANumber: If the field value or delta is not an integer
        """
        delta = check_delta(delta)
        with self.keyspace.open(key, ValueType.HASH, create=True) as entry:
            current = entry.value.get(str(field))
            result = (parse_int(current, f"hash field '{field}'") if current is not None else 0) + delta
            entry.value[str(field)] = str(result)
            return result

    def hexists(self, key: str, field: str) -> bool:
        with self.keyspace.open(key, ValueType.HASH, write=False) as entry:
            return entry is not None and str(field) in entry.value

    def hkeys(self, key: str) -> List[str]:
        with self.keyspace.open(key, ValueType.HASH, write=False) as entry:
            return list(entry.value.keys()) if entry is not None else []

    def hvals(self, key: str) -> List[str]:
        with self.keyspace.open(key, ValueType.HASH, write=False) as entry:
            return list(entry.value.values()) if entry is not None else []

    def hlen(self, key: str) -> int:
        with self.keyspace.open(key, ValueType.HASH, write=False) as entry:
            return len(entry.value) if entry is not None else 0
