"""
Sorted-Set Store

Leaderboard-style collections: unique members ordered by score, ties
broken by member string ascending. Rank and range operations all follow
that single ordering (reversed for the descending variants).
"""

import math
from typing import Dict, Iterable, List, Optional, Tuple, Union

from ..errors import NotANumber
from .keyspace import Keyspace, ValueType
from .ranges import check_index, normalize_range

ScoreItems = Union[Dict[str, float], Iterable[Tuple[float, str]]]


def to_score(value) -> float:
    """Parse a score (number or numeric string such as '-inf')."""
    if isinstance(value, bool):
        raise NotANumber(f"score is not a number: {value!r}")
    try:
        score = float(value)
    except (TypeError, ValueError):
        raise NotANumber(f"score is not a number: {value!r}") from None
    if math.isnan(score):
        raise NotANumber("score is NaN")
    return score


class SortedSetStore:
    """Sorted-set operations over the shared keyspace."""

    def __init__(self, keyspace: Keyspace):
        self.keyspace = keyspace

    def zadd(self, key: str, items: ScoreItems) -> int:
        """
        Insert members or overwrite their scores.

        Args:
            key: Sorted-set key
            items: {member: score} or [(score, member), ...]

        Returns:
            Number of members that were not present before
        """
        if isinstance(items, dict):
            pairs = [(to_score(score), str(member)) for member, score in items.items()]
        else:
            pairs = [(to_score(score), str(member)) for score, member in items]
        if not pairs:
            with self.keyspace.open(key, ValueType.ZSET, write=False):
                return 0
        with self.keyspace.open(key, ValueType.ZSET, create=True) as entry:
            return sum(1 for score, member in pairs if entry.value.add(member, score))

    def zincr_by(self, key: str, delta: float, member: str) -> float:
        """Add delta to member's score (missing member starts at 0)."""
        delta = to_score(delta)
        with self.keyspace.open(key, ValueType.ZSET, create=True) as entry:
            score = (entry.value.score(str(member)) or 0.0) + delta
            if math.isnan(score):
                raise NotANumber("resulting score is NaN")
            entry.value.add(str(member), score)
            return score

    def zrem(self, key: str, *members: str) -> int:
        with self.keyspace.open(key, ValueType.ZSET) as entry:
            if entry is None:
                return 0
            return sum(1 for member in members if entry.value.remove(str(member)))

    def zscore(self, key: str, member: str) -> Optional[float]:
        with self.keyspace.open(key, ValueType.ZSET, write=False) as entry:
            return entry.value.score(str(member)) if entry is not None else None

    def zrank(self, key: str, member: str, reverse: bool = False) -> Optional[int]:
        with self.keyspace.open(key, ValueType.ZSET, write=False) as entry:
            return entry.value.rank(str(member), reverse=reverse) if entry is not None else None

    def zcard(self, key: str) -> int:
        with self.keyspace.open(key, ValueType.ZSET, write=False) as entry:
            return len(entry.value) if entry is not None else 0

    def zcount(self, key: str, min_score, max_score) -> int:
        lo, hi = to_score(min_score), to_score(max_score)
        with self.keyspace.open(key, ValueType.ZSET, write=False) as entry:
            return entry.value.count(lo, hi) if entry is not None else 0

    def zrange(
            self,
            key: str,
            start: int,
            stop: int,
            with_scores: bool = False,
            reverse: bool = False,
    ) -> List:
        """
        Members by rank, inclusive stop, negative indices from the end.

        Returns:
            [member, ...] or [(member, score), ...] when with_scores is set
        """
        with self.keyspace.open(key, ValueType.ZSET, write=False) as entry:
            if entry is None:
                check_index(start, "start")
                check_index(stop, "stop")
                return []
            length = len(entry.value)
            lo, hi = normalize_range(start, stop, length)
            if reverse:
                window = entry.value.slice(length - hi, length - lo)
                window.reverse()
            else:
                window = entry.value.slice(lo, hi)
        return window if with_scores else [member for member, _ in window]

    def zrevrange(self, key: str, start: int, stop: int, with_scores: bool = False) -> List:
        return self.zrange(key, start, stop, with_scores=with_scores, reverse=True)

    def zrange_by_score(self, key: str, min_score, max_score, with_scores: bool = False) -> List:
        """Members with min_score <= score <= max_score, ascending."""
        lo, hi = to_score(min_score), to_score(max_score)
        with self.keyspace.open(key, ValueType.ZSET, write=False) as entry:
            window = entry.value.range_by_score(lo, hi) if entry is not None else []
        return window if with_scores else [member for member, _ in window]

    def zpop_min(self, key: str, count: int = 1) -> List[Tuple[str, float]]:
        count = check_index(count, "count")
        with self.keyspace.open(key, ValueType.ZSET) as entry:
            if entry is None or count <= 0:
                return []
            return entry.value.pop_min(count)

    def zpop_max(self, key: str, count: int = 1) -> List[Tuple[str, float]]:
        count = check_index(count, "count")
        with self.keyspace.open(key, ValueType.ZSET) as entry:
            if entry is None or count <= 0:
                return []
            return entry.value.pop_max(count)

    def zrem_range_by_rank(self, key: str, start: int, stop: int) -> int:
        with self.keyspace.open(key, ValueType.ZSET) as entry:
            if entry is None:
                check_index(start, "start")
                check_index(stop, "stop")
                return 0
            lo, hi = normalize_range(start, stop, len(entry.value))
            return entry.value.remove_slice(lo, hi)

    def zrem_range_by_score(self, key: str, min_score, max_score) -> int:
        lo, hi = to_score(min_score), to_score(max_score)
        with self.keyspace.open(key, ValueType.ZSET) as entry:
            if entry is None:
                return 0
            return entry.value.remove_by_score(lo, hi)
