"""Window planning.

All ranges are inclusive on both ends: [start, end].
"""

from __future__ import annotations

from collections.abc import Generator, Iterable, Sequence
from itertools import islice

from adrind.core.errors import InvalidRange
from adrind.core.models import Window


def iter_chunks(a: int, b: int, step: int) -> Generator[tuple[int, int], None, None]:
    """Yield inclusive [start, end] block ranges of size at most `step`."""
    x = a
    while x <= b:
        y = min(b, x + step - 1)
        yield (x, y)
        x = y + 1


def plan_windows(from_block: int, to_block: int, window_size: int) -> list[Window]:
    """Partition [from_block, to_block] into contiguous windows of at most `window_size` blocks.

    Raises
    ------
    InvalidRange
        If `from_block > to_block`; callers treat this as "already caught up".
    ValueError
        If `window_size < 1` or `from_block < 0`.
    """
    if window_size < 1:
        raise ValueError("window_size must be >= 1")
    if from_block < 0:
        raise ValueError("from_block must be >= 0")
    if from_block > to_block:
        raise InvalidRange(from_block, to_block)
    return [Window(a, b) for a, b in iter_chunks(from_block, to_block, window_size)]


def group_windows(windows: Iterable[Window], size: int) -> list[Sequence[Window]]:
    """Split windows into consecutive fan-out groups of at most `size`."""
    if size < 1:
        raise ValueError("size must be >= 1")
    it = iter(windows)
    groups: list[Sequence[Window]] = []
    while chunk := tuple(islice(it, size)):
        groups.append(chunk)
    return groups
