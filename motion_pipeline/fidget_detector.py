"""
Multi-evidence fidget pattern detection.

A movement in the fidget band is only treated as fidgeting when at least two
of three independent signatures agree inside a short rolling window:

1. Direction reversals: consecutive movement vectors pointing against each
   other (dot product below a negative threshold).
2. Repetition: the newest movement vector closely matches an earlier,
   non-adjacent vector in the window.
3. Alternation: the strokes between reversals go back and forth (A, B, A, B)
   for at least two full cycles.

Single signatures are common in incidental motion (a steady tilt repeats, a
bump reverses once), so no one of them is sufficient on its own.
"""

import logging
from dataclasses import dataclass

import numpy as np

from .motion_config import MotionConfig
from .ring_buffer import RingBuffer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FidgetEvidence:
    """Which fidget signatures are present in the current window."""
    reversals: bool = False
    repeating: bool = False
    alternating: bool = False

    @property
    def count(self) -> int:
        return int(self.reversals) + int(self.repeating) + int(self.alternating)

    def is_fidgeting(self, min_evidence: int = 2) -> bool:
        return self.count >= min_evidence


class FidgetPatternDetector:
    """
    Rolling-window pattern tracker over unit movement vectors.

    Work per update is bounded by ``pattern_capacity``; all windows are
    time-bounded by ``pattern_window_ms``.

    Usage:
        detector = FidgetPatternDetector(config)
        reversed_ = detector.update(timestamp_ms, unit_vector)
        evidence = detector.evaluate(timestamp_ms)
    """

    def __init__(self, config: MotionConfig):
        self.config = config
        capacity = config.pattern_capacity
        # rows: timestamp, ux, uy, uz
        self._vectors = RingBuffer(capacity, 4)
        self._strokes = RingBuffer(max(2 * config.min_alternating_cycles, 2), 4)
        self._reversals = RingBuffer(capacity, 1)
        self._repeats = RingBuffer(capacity, 1)

    def reset(self):
        self._vectors.clear()
        self._strokes.clear()
        self._reversals.clear()
        self._repeats.clear()

    def update(self, timestamp_ms: float, unit: np.ndarray) -> bool:
        """
        Add one normalized movement vector.

        Returns:
            True if this vector reverses the previous one
        """
        self._expire(timestamp_ms)

        reversed_ = False
        if len(self._vectors):
            previous = self._vectors.last()[1:]
            if float(np.dot(previous, unit)) < self.config.reversal_dot_threshold:
                reversed_ = True
                self._reversals.append((timestamp_ms,))
                self._strokes.append((timestamp_ms, *unit))

        # Skip the newest stored vector: adjacent pairs are not repetitions
        if len(self._vectors) >= 2:
            older = self._vectors.view()[:-1, 1:]
            if np.any(older @ unit >= self.config.repeat_similarity):
                self._repeats.append((timestamp_ms,))

        self._vectors.append((timestamp_ms, *unit))
        return reversed_

    def evaluate(self, timestamp_ms: float) -> FidgetEvidence:
        """Evidence present in the window ending at ``timestamp_ms``."""
        self._expire(timestamp_ms)
        return FidgetEvidence(
            reversals=len(self._reversals) >= self.config.min_reversals,
            repeating=len(self._repeats) >= self.config.min_repeat_pairs,
            alternating=self._is_alternating(),
        )

    def _expire(self, timestamp_ms: float):
        cutoff = timestamp_ms - self.config.pattern_window_ms
        self._vectors.drop_older_than(0, cutoff)
        self._strokes.drop_older_than(0, cutoff)
        self._reversals.drop_older_than(0, cutoff)
        self._repeats.drop_older_than(0, cutoff)

    def _is_alternating(self) -> bool:
        needed = 2 * self.config.min_alternating_cycles
        if len(self._strokes) < needed:
            return False

        strokes = self._strokes.view()[-needed:, 1:]
        similarity = self.config.repeat_similarity
        for k in range(2, needed):
            if float(np.dot(strokes[k], strokes[k - 2])) < similarity:
                return False
        return True
