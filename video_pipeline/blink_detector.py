"""
Debounced blink detection from per-frame eye-open probabilities.

A blink starts when both eyes were open and at least one closes, and ends
when both are open again. It is counted only if its duration is plausible
and the previous counted blink ended more than a refractory period earlier;
detector jitter otherwise produces flickering half-blinks and double counts.
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BlinkEvent:
    """A counted blink."""
    end_ms: float
    duration_ms: float
    rapid: bool


def _known(prob: Optional[float]) -> bool:
    return prob is not None and math.isfinite(prob) and prob >= 0.0


class BlinkDetector:
    """
    Two-state blink FSM (eyes open / blink in progress).

    Usage:
        detector = BlinkDetector()
        event = detector.update(timestamp_ms, left_prob, right_prob)
        if event is not None:
            ...
    """

    def __init__(
        self,
        eye_open_threshold: float = 0.5,
        min_duration_ms: float = 80.0,
        max_duration_ms: float = 400.0,
        refractory_ms: float = 300.0,
        rapid_ms: float = 150.0
    ):
        self.eye_open_threshold = eye_open_threshold
        self.min_duration_ms = min_duration_ms
        self.max_duration_ms = max_duration_ms
        self.refractory_ms = refractory_ms
        self.rapid_ms = rapid_ms
        self.reset()

    def reset(self):
        self.blink_count = 0
        self._both_open_last = True
        self._in_blink = False
        self._blink_start_ms = 0.0
        self._last_blink_end_ms = None

    def abort(self):
        """Drop a blink in progress (face lost mid-blink)."""
        self._in_blink = False
        self._both_open_last = True

    def update(
        self,
        timestamp_ms: float,
        left_open_prob: Optional[float],
        right_open_prob: Optional[float]
    ) -> Optional[BlinkEvent]:
        """Feed one frame; returns the blink counted on this frame, if any."""
        if not (_known(left_open_prob) and _known(right_open_prob)):
            return None

        both_open = (left_open_prob > self.eye_open_threshold and
                     right_open_prob > self.eye_open_threshold)

        event = None
        if self._both_open_last and not both_open:
            self._blink_start_ms = timestamp_ms
            self._in_blink = True
        elif self._in_blink and not self._both_open_last and both_open:
            self._in_blink = False
            event = self._complete(timestamp_ms)

        self._both_open_last = both_open
        return event

    def _complete(self, timestamp_ms: float) -> Optional[BlinkEvent]:
        duration = timestamp_ms - self._blink_start_ms
        if not (self.min_duration_ms <= duration <= self.max_duration_ms):
            return None
        if (self._last_blink_end_ms is not None and
                timestamp_ms - self._last_blink_end_ms <= self.refractory_ms):
            logger.debug(f"Blink within refractory period ignored ({duration:.0f}ms)")
            return None

        self.blink_count += 1
        self._last_blink_end_ms = timestamp_ms
        return BlinkEvent(
            end_ms=timestamp_ms,
            duration_ms=duration,
            rapid=duration < self.rapid_ms
        )
