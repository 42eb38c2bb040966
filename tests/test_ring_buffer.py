"""
Unit tests for SampleRingBuffer.
Run with:  pytest tests/test_ring_buffer.py
"""

from __future__ import annotations

import numpy as np
import pytest

from inpulse.ring_buffer import SampleRingBuffer


class TestSampleRingBuffer:

    def test_starts_empty(self):
        buf = SampleRingBuffer(5)
        assert len(buf) == 0
        assert buf.snapshot().size == 0

    def test_grows_until_capacity(self):
        buf = SampleRingBuffer(5)
        for i in range(3):
            buf.append(float(i))
        assert len(buf) == 3
        np.testing.assert_array_equal(buf.snapshot(), [0.0, 1.0, 2.0])

    def test_size_never_exceeds_capacity(self):
        buf = SampleRingBuffer(300)
        for i in range(2_000):
            buf.append(float(i))
            assert len(buf) <= 300
        assert buf.is_full

    def test_is_full_tracks_capacity(self):
        buf = SampleRingBuffer(3)
        for v in (1.0, 2.0):
            buf.append(v)
        assert buf.is_full is False
        buf.append(3.0)
        assert buf.is_full is True
        buf.append(4.0)
        assert buf.is_full is True
        assert len(buf) == 3
        np.testing.assert_array_equal(buf.snapshot(), [2.0, 3.0, 4.0])

    def test_keeps_most_recent_samples(self):
        """FIFO eviction: the retained samples are the last *capacity* pushes."""
        buf = SampleRingBuffer(300)
        values = np.arange(1_037, dtype=np.float64)
        for v in values:
            buf.append(v)
        np.testing.assert_array_equal(buf.snapshot(), values[-300:])

    def test_snapshot_is_a_copy(self):
        buf = SampleRingBuffer(3)
        buf.append(1.0)
        snap = buf.snapshot()
        snap[0] = 99.0
        assert buf.snapshot()[0] == 1.0

    def test_clear(self):
        buf = SampleRingBuffer(3)
        for v in (1.0, 2.0, 3.0, 4.0):
            buf.append(v)
        buf.clear()
        assert len(buf) == 0
        buf.append(5.0)
        np.testing.assert_array_equal(buf.snapshot(), [5.0])

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            SampleRingBuffer(0)
