"""
Fixed-capacity ring buffer backed by a preallocated numpy array.

Rows are written in place at a rotating index, so appending a sample never
allocates. Readers get a chronologically ordered copy via ``view()``.
"""

from typing import Sequence

import numpy as np


class RingBuffer:
    """
    Index-based circular buffer of fixed-width float rows.

    Usage:
        buf = RingBuffer(capacity=6, width=3)
        buf.append((x, y, z))
        window = buf.view()  # oldest first
    """

    def __init__(self, capacity: int, width: int = 1):
        if capacity < 1:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self.capacity = int(capacity)
        self.width = int(width)
        self._data = np.zeros((self.capacity, self.width), dtype=np.float64)
        self._start = 0
        self._size = 0

    def __len__(self) -> int:
        return self._size

    @property
    def is_full(self) -> bool:
        return self._size == self.capacity

    def append(self, row: Sequence[float]):
        """Write a row, evicting the oldest one when full."""
        end = (self._start + self._size) % self.capacity
        self._data[end] = row
        if self._size < self.capacity:
            self._size += 1
        else:
            self._start = (self._start + 1) % self.capacity

    def last(self, offset: int = 0) -> np.ndarray:
        """Row ``offset`` positions before the newest one."""
        if offset >= self._size:
            raise IndexError("ring buffer index out of range")
        idx = (self._start + self._size - 1 - offset) % self.capacity
        return self._data[idx]

    def mean(self) -> np.ndarray:
        """Column means of the stored rows (zeros when empty)."""
        if self._size == 0:
            return np.zeros(self.width)
        if self._size < self.capacity:
            return self._data[:self._size].mean(axis=0)
        return self._data.mean(axis=0)

    def view(self) -> np.ndarray:
        """Return stored rows oldest first (a copy)."""
        if self._size == 0:
            return np.empty((0, self.width))
        idx = (self._start + np.arange(self._size)) % self.capacity
        return self._data[idx]

    def drop_older_than(self, column: int, cutoff: float):
        """Evict leading rows whose ``column`` value is below ``cutoff``."""
        while self._size and self._data[self._start, column] < cutoff:
            self._start = (self._start + 1) % self.capacity
            self._size -= 1

    def clear(self):
        self._start = 0
        self._size = 0
