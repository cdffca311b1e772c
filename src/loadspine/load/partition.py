"""Split the work list into contiguous chunks sized to a target concurrency.

Chunk size is ``ceil(n / concurrency)`` and chunks are cut from the front,
so every chunk but the last holds exactly ``chunk_size`` items and the
number of chunks never exceeds ``concurrency``. Boundaries depend only on
``(n, concurrency)``; chunk indices (and therefore resource names) are
stable across retries of the same run.

Example:
    >>> [len(c) for c in partition(list(range(7)), 3)]
    [3, 3, 1]
"""

from __future__ import annotations

from collections.abc import Sequence

from loadspine.core.errors import InvalidConfigError
from loadspine.load.models import Chunk, WorkItem


def chunk_size_for(total: int, concurrency: int) -> int:
    """Ceiling division of ``total`` by ``concurrency``."""
    return (total + concurrency - 1) // concurrency


def partition(items: Sequence[WorkItem], concurrency: int) -> list[Chunk]:
    """Partition ``items`` into at most ``concurrency`` ordered chunks.

    Raises
    ------
    InvalidConfigError
        ``concurrency`` is not a positive integer.
    """
    if isinstance(concurrency, bool) or not isinstance(concurrency, int) or concurrency <= 0:
        raise InvalidConfigError(
            f"concurrency must be a positive integer, got {concurrency!r}"
        ).with_context(concurrency=concurrency)

    if not items:
        return []

    size = chunk_size_for(len(items), concurrency)
    return [
        Chunk(index=index, items=tuple(items[start:start + size]))
        for index, start in enumerate(range(0, len(items), size))
    ]
