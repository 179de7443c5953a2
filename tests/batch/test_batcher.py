"""
Unit tests for core.batch.batcher module.
"""

import random
import pytest

from core.batch.batcher import Batch, create_batches
from core.layout_preserve.extractor import TextChunk


def chunks_of(*sizes):
    return [TextChunk(id=f"c{i}", text="x" * size) for i, size in enumerate(sizes)]


class TestCreateBatches:
    """Tests for greedy batching."""

    def test_empty_input(self):
        assert create_batches([], max_chars=100) == []

    def test_all_fit_in_one_batch(self):
        batches = create_batches(chunks_of(10, 20, 30), max_chars=100)
        assert len(batches) == 1
        assert batches[0].ids == ["c0", "c1", "c2"]
        assert batches[0].char_count == 60

    def test_exact_budget_fits(self):
        batches = create_batches(chunks_of(50, 50), max_chars=100)
        assert len(batches) == 1

    def test_overflow_opens_new_batch(self):
        batches = create_batches(chunks_of(60, 50, 40), max_chars=100)
        assert [batch.ids for batch in batches] == [["c0"], ["c1", "c2"]]
        assert [batch.index for batch in batches] == [0, 1]

    def test_oversized_chunk_is_singleton(self):
        batches = create_batches(chunks_of(10, 250, 10), max_chars=100)
        assert [batch.ids for batch in batches] == [["c0"], ["c1"], ["c2"]]

    def test_oversized_first_chunk(self):
        batches = create_batches(chunks_of(250, 10), max_chars=100)
        assert [batch.ids for batch in batches] == [["c0"], ["c1"]]

    def test_three_chunks_of_3000(self):
        """9000 characters with budget 4000 -> one chunk per batch."""
        batches = create_batches(chunks_of(3000, 3000, 3000), max_chars=4000)
        assert [len(batch) for batch in batches] == [1, 1, 1]

    def test_rejects_non_positive_budget(self):
        with pytest.raises(ValueError):
            create_batches(chunks_of(1), max_chars=0)

    def test_order_and_budget_properties(self):
        """Concatenated order equals input order; only singletons exceed the budget."""
        rng = random.Random(42)
        for _ in range(50):
            budget = rng.randint(1, 200)
            chunks = chunks_of(*[rng.randint(1, 300) for _ in range(rng.randint(0, 40))])

            batches = create_batches(chunks, max_chars=budget)

            flattened = [chunk.id for batch in batches for chunk in batch.chunks]
            assert flattened == [chunk.id for chunk in chunks]
            for batch in batches:
                assert len(batch) > 0
                assert batch.char_count <= budget or len(batch) == 1


class TestBatch:
    """Tests for Batch dataclass."""

    def test_len_and_ids(self):
        batch = Batch(index=3, chunks=chunks_of(1, 2))
        assert len(batch) == 2
        assert batch.ids == ["c0", "c1"]
        assert batch.char_count == 3
