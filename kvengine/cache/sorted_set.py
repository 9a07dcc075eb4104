"""
Sorted Set Module

Score-ordered collection of unique members, the value type behind the
sorted-set store.

Ordering:
- Ascending by score
- Members sharing a score are ordered by the member string, ascending

Internal Storage:
    A dict member -> score for O(1) lookups, and a list of (score, member)
    tuples kept sorted with bisect. Tuple comparison gives the tie-break
    for free.
"""

from bisect import bisect_left, bisect_right, insort
from operator import itemgetter
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

_score = itemgetter(0)


class SortedSet:
    """
    Unique members with a float score each.

    Usage:
        zs = SortedSet()
        zs.add("alice", 10)
        zs.add("bob", 10)
        zs.items()  # [("alice", 10.0), ("bob", 10.0)]
    """

    def __init__(self, items: Iterable[Tuple[float, str]] = ()):
        self._scores: Dict[str, float] = {}
        self._order: List[Tuple[float, str]] = []
        for score, member in items:
            self.add(member, score)

    def __len__(self) -> int:
        return len(self._order)

    def __contains__(self, member: str) -> bool:
        return member in self._scores

    def __iter__(self) -> Iterator[str]:
        return (member for _, member in self._order)

    def __eq__(self, other) -> bool:
        if not isinstance(other, SortedSet):
            return NotImplemented
        return self._order == other._order

    def __repr__(self) -> str:
        return f"SortedSet({self.items()!r})"

    def add(self, member: str, score: float) -> bool:
        """
        Insert a member or overwrite its score.

        Returns:
            True if the member is new, False if it already existed
        """
        score = float(score)
        old = self._scores.get(member)
        if old is not None:
            if old == score:
                return False
            del self._order[bisect_left(self._order, (old, member))]
        self._scores[member] = score
        insort(self._order, (score, member))
        return old is None

    def remove(self, member: str) -> bool:
        old = self._scores.pop(member, None)
        if old is None:
            return False
        del self._order[bisect_left(self._order, (old, member))]
        return True

    def score(self, member: str) -> Optional[float]:
        return self._scores.get(member)

    def rank(self, member: str, reverse: bool = False) -> Optional[int]:
        """0-based position of member; reverse ranks by descending score."""
        score = self._scores.get(member)
        if score is None:
            return None
        idx = bisect_left(self._order, (score, member))
        return len(self._order) - 1 - idx if reverse else idx

    def slice(self, start: int, stop: int) -> List[Tuple[str, float]]:
        """Entries at positions [start, stop) in ascending order."""
        return [(member, score) for score, member in self._order[start:stop]]

    def range_by_score(self, min_score: float, max_score: float) -> List[Tuple[str, float]]:
        """Entries with min_score <= score <= max_score, ascending."""
        lo, hi = self._score_bounds(min_score, max_score)
        return [(member, score) for score, member in self._order[lo:hi]]

    def count(self, min_score: float, max_score: float) -> int:
        lo, hi = self._score_bounds(min_score, max_score)
        return max(0, hi - lo)

    def remove_slice(self, start: int, stop: int) -> int:
        """Remove entries at positions [start, stop); returns how many."""
        doomed = self._order[start:stop]
        del self._order[start:stop]
        for _, member in doomed:
            del self._scores[member]
        return len(doomed)

    def remove_by_score(self, min_score: float, max_score: float) -> int:
        lo, hi = self._score_bounds(min_score, max_score)
        if hi <= lo:
            return 0
        return self.remove_slice(lo, hi)

    def pop_min(self, count: int = 1) -> List[Tuple[str, float]]:
        popped = self.slice(0, count)
        self.remove_slice(0, count)
        return popped

    def pop_max(self, count: int = 1) -> List[Tuple[str, float]]:
        if count <= 0:
            return []
        start = max(0, len(self._order) - count)
        popped = self.slice(start, len(self._order))
        self.remove_slice(start, len(self._order))
        popped.reverse()
        return popped

    def items(self) -> List[Tuple[str, float]]:
        """All (member, score) pairs in ascending order."""
        return [(member, score) for score, member in self._order]

    def copy(self) -> "SortedSet":
        clone = SortedSet()
        clone._scores = dict(self._scores)
        clone._order = list(self._order)
        return clone

    def _score_bounds(self, min_score: float, max_score: float) -> Tuple[int, int]:
        lo = bisect_left(self._order, min_score, key=_score)
        hi = bisect_right(self._order, max_score, key=_score)
        return lo, hi
