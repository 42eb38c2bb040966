"""
Fixed-capacity sample buffer.

A preallocated numpy array indexed by a write cursor.  Appends are O(1) and
never allocate; once the buffer is full the oldest sample is overwritten.
"""

from __future__ import annotations

import numpy as np


class SampleRingBuffer:
    """
    FIFO ring buffer of scalar samples.

    Parameters
    ----------
    capacity:
        Maximum number of retained samples.  Must be at least 1.
    """

    def __init__(self, capacity: int = 300) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self.capacity = int(capacity)
        self._data = np.zeros(self.capacity, dtype=np.float64)
        self._head = 0      # next write position
        self._size = 0

    def __len__(self) -> int:
        return self._size

    @property
    def is_full(self) -> bool:
        return self._size == self.capacity

    def append(self, value: float) -> None:
        self._data[self._head] = value
        self._head = (self._head + 1) % self.capacity
        if not self.is_full:
            self._size += 1

    def snapshot(self) -> np.ndarray:
        """Return the retained samples oldest first, as a new array."""
        if not self.is_full:
            return self._data[: self._size].copy()
        # Full: the oldest sample sits at the write cursor.
        return np.concatenate((self._data[self._head:], self._data[: self._head]))

    def clear(self) -> None:
        self._head = 0
        self._size = 0
