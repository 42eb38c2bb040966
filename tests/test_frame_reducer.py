"""
Unit tests for the frame reducer.
Run with:  pytest tests/test_frame_reducer.py
"""

from __future__ import annotations

import numpy as np
import pytest

from inpulse.frame_reducer import red_channel_mean, roi_bounds


class TestRoiBounds:

    def test_square_is_half_the_shorter_side(self):
        top, bottom, left, right = roi_bounds(480, 640)
        assert bottom - top == 240
        assert right - left == 240
        assert (top, left) == (120, 200)

    def test_degenerate_frame_gives_empty_region(self):
        top, bottom, left, right = roi_bounds(1, 1)
        assert top == bottom
        assert left == right


class TestRedChannelMean:

    def test_uniform_frame(self):
        frame = np.zeros((40, 60, 3), dtype=np.uint8)
        frame[:, :, 2] = 150
        assert red_channel_mean(frame) == pytest.approx(150.0)

    def test_only_centre_region_is_sampled(self):
        """A bright border must not leak into the ROI mean."""
        frame = np.zeros((80, 80, 3), dtype=np.uint8)
        frame[:, :, 2] = 255
        frame[20:60, 20:60, 2] = 10    # exactly the ROI
        assert red_channel_mean(frame) == pytest.approx(10.0)

    def test_rgb_order_reads_first_channel(self):
        frame = np.zeros((20, 20, 3), dtype=np.uint8)
        frame[:, :, 0] = 90
        frame[:, :, 2] = 30
        assert red_channel_mean(frame, channel_order="rgb") == pytest.approx(90.0)
        assert red_channel_mean(frame, channel_order="bgr") == pytest.approx(30.0)

    def test_ignores_other_channels(self):
        frame = np.zeros((16, 16, 3), dtype=np.uint8)
        frame[:, :, 0] = 200
        frame[:, :, 1] = 200
        assert red_channel_mean(frame) == 0.0

    def test_empty_region_returns_zero(self):
        frame = np.full((1, 1, 3), 255, dtype=np.uint8)
        assert red_channel_mean(frame) == 0.0

    def test_float_frames_accepted(self):
        frame = np.full((10, 10, 4), 0.5, dtype=np.float32)
        assert red_channel_mean(frame) == pytest.approx(0.5)

    def test_grayscale_frame_rejected(self):
        with pytest.raises(ValueError):
            red_channel_mean(np.zeros((10, 10), dtype=np.uint8))

    def test_too_few_channels_rejected(self):
        with pytest.raises(ValueError):
            red_channel_mean(np.zeros((10, 10, 2), dtype=np.uint8))
        # channel 0 exists, so RGB order still works on the same frame
        assert red_channel_mean(np.zeros((10, 10, 2)), channel_order="rgb") == 0.0

    def test_unknown_channel_order_rejected(self):
        with pytest.raises(ValueError):
            red_channel_mean(np.zeros((10, 10, 3), dtype=np.uint8), "hsv")
