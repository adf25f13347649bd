"""Tests for chunker.py."""

import numpy as np
import pytest

from parallel_parakeet.chunker import split_into_chunks
from parallel_parakeet.errors import ConfigurationError

SR = 100  # small rate keeps arrays tiny


class TestSplitIntoChunks:
    """Tests for split_into_chunks."""

    def test_empty_input_yields_no_chunks(self):
        assert split_into_chunks(np.zeros(0, dtype=np.float32), SR, 10.0, 1.0) == []

    def test_short_input_is_single_truncated_chunk(self):
        samples = np.ones(350, dtype=np.float32)
        chunks = split_into_chunks(samples, SR, 10.0, 1.0)
        assert len(chunks) == 1
        assert len(chunks[0].samples) == 350
        assert chunks[0].offset_seconds == 0.0

    def test_offsets_advance_by_stride(self):
        samples = np.zeros(30 * SR, dtype=np.float32)
        chunks = split_into_chunks(samples, SR, 10.0, 2.0)
        assert [c.offset_seconds for c in chunks] == [0.0, 8.0, 16.0, 24.0]
        assert [c.index for c in chunks] == [0, 1, 2, 3]

    def test_final_chunk_is_truncated_not_padded(self):
        samples = np.zeros(30 * SR, dtype=np.float32)
        chunks = split_into_chunks(samples, SR, 10.0, 2.0)
        assert len(chunks[-1].samples) == 6 * SR
        assert chunks[-1].end_seconds == pytest.approx(30.0)

    def test_chunks_cover_input_without_gaps(self):
        total = 12345
        samples = np.arange(total, dtype=np.float32)
        chunks = split_into_chunks(samples, SR, 7.0, 1.5)

        covered = np.zeros(total, dtype=bool)
        for chunk in chunks:
            start = int(round(chunk.offset_seconds * SR))
            np.testing.assert_array_equal(chunk.samples, samples[start:start + len(chunk.samples)])
            covered[start:start + len(chunk.samples)] = True
        assert covered.all()
        assert chunks[-1].end_seconds == pytest.approx(total / SR)

    def test_consecutive_chunks_overlap_by_configured_duration(self):
        samples = np.zeros(100 * SR, dtype=np.float32)
        chunks = split_into_chunks(samples, SR, 10.0, 3.0)
        for prev, nxt in zip(chunks[:-2], chunks[1:-1]):
            assert prev.end_seconds - nxt.offset_seconds == pytest.approx(3.0)

    def test_stops_when_chunk_reaches_end(self):
        # 18 s with 10 s chunks and 2 s overlap: [0,10) and [8,18) only
        samples = np.zeros(18 * SR, dtype=np.float32)
        chunks = split_into_chunks(samples, SR, 10.0, 2.0)
        assert len(chunks) == 2

    def test_tiny_stride_terminates(self):
        samples = np.zeros(5 * SR, dtype=np.float32)
        chunks = split_into_chunks(samples, SR, 1.0, 0.75)
        assert chunks[-1].end_seconds == pytest.approx(5.0)
        assert len(chunks) == 17

    @pytest.mark.parametrize("chunk, overlap", [(10.0, 10.0), (10.0, 12.0)])
    def test_overlap_not_smaller_than_chunk_rejected(self, chunk, overlap):
        with pytest.raises(ConfigurationError, match="overlap_duration"):
            split_into_chunks(np.zeros(1000, dtype=np.float32), SR, chunk, overlap)

    def test_non_positive_chunk_duration_rejected(self):
        with pytest.raises(ConfigurationError):
            split_into_chunks(np.zeros(1000, dtype=np.float32), SR, 0.0, 0.0)

    def test_configuration_error_is_value_error(self):
        with pytest.raises(ValueError):
            split_into_chunks(np.zeros(10, dtype=np.float32), SR, 1.0, -1.0)
