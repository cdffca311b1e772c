"""Tests for the chunk partitioner."""

from __future__ import annotations

import pytest


class TestPartition:
    """Chunk boundaries and ordering."""

    @pytest.mark.parametrize(
        "n,c,sizes",
        [
            (7, 3, [3, 3, 1]),
            (10, 4, [3, 3, 3, 1]),
            (6, 3, [2, 2, 2]),
            (3, 5, [1, 1, 1]),
            (5, 1, [5]),
            (1, 1, [1]),
        ],
    )
    def test_sizes(self, make_items, n, c, sizes):
        from loadspine.load.partition import partition

        chunks = partition(make_items(n), c)
        assert [len(ch) for ch in chunks] == sizes

    def test_covers_every_item_once_in_order(self, make_items):
        from loadspine.load.partition import partition

        items = make_items(11)
        chunks = partition(items, 4)
        flattened = [item for chunk in chunks for item in chunk]
        assert flattened == items

    def test_indices_are_sequential(self, make_items):
        from loadspine.load.partition import partition

        assert [ch.index for ch in partition(make_items(7), 3)] == [0, 1, 2]

    def test_chunk_count_never_exceeds_concurrency(self, make_items):
        from loadspine.load.partition import partition

        for n in range(1, 20):
            for c in range(1, 8):
                chunks = partition(make_items(n), c)
                assert len(chunks) <= c
                assert all(len(ch) > 0 for ch in chunks)

    def test_non_last_chunks_equal(self, make_items):
        from loadspine.load.partition import partition

        chunks = partition(make_items(13), 5)
        assert len({len(ch) for ch in chunks[:-1]}) == 1
        assert len(chunks[-1]) <= len(chunks[0])

    def test_deterministic(self, make_items):
        from loadspine.load.partition import partition

        items = make_items(9)
        assert partition(items, 4) == partition(items, 4)

    def test_empty_input(self):
        from loadspine.load.partition import partition

        assert partition([], 3) == []

    def test_chunk_size_for(self):
        from loadspine.load.partition import chunk_size_for

        assert chunk_size_for(7, 3) == 3
        assert chunk_size_for(6, 3) == 2
        assert chunk_size_for(1, 10) == 1


class TestPartitionErrors:
    """Invalid concurrency values."""

    @pytest.mark.parametrize("concurrency", [0, -1, 2.5, "3", True, None])
    def test_invalid_concurrency(self, make_items, concurrency):
        from loadspine.core.errors import InvalidConfigError
        from loadspine.load.partition import partition

        with pytest.raises(InvalidConfigError):
            partition(make_items(3), concurrency)

    def test_invalid_concurrency_checked_before_empty(self):
        from loadspine.core.errors import InvalidConfigError
        from loadspine.load.partition import partition

        with pytest.raises(InvalidConfigError):
            partition([], 0)


class TestChunk:
    """Chunk model invariants."""

    def test_empty_chunk_rejected(self):
        from loadspine.load.models import Chunk

        with pytest.raises(ValueError):
            Chunk(index=0, items=())
