"""Index helpers shared by the list and sorted-set stores."""

from typing import Tuple

from ..errors import InvalidRange


def check_index(value, name: str = "index") -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidRange(f"{name} is not an integer: {value!r}")
    return value


def normalize_range(start: int, stop: int, length: int) -> Tuple[int, int]:
    """
    Convert an inclusive [start, stop] range with negative indices into
    half-open slice bounds clamped to the sequence.

    Examples:
        >>> normalize_range(0, -1, 5)
        (0, 5)
        >>> normalize_range(-2, -1, 5)
        (3, 5)
        >>> normalize_range(4, 1, 5)
        (0, 0)
    """
    start = check_index(start, "start")
    stop = check_index(stop, "stop")
    if start < 0:
        start += length
    if stop < 0:
        stop += length
    start = max(start, 0)
    stop = min(stop, length - 1)
    if start > stop:
        return 0, 0
    return start, stop + 1
