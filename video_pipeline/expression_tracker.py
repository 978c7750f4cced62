"""
Expression classification and debounced variability tracking.

Each frame is mapped to a coarse expression label from smile probability,
eye openness and head tilt. Label changes count as "emotion changes" only
when enough time passed since the last counted change and the underlying
probabilities actually moved; near-threshold flicker between neighbouring
labels is ignored.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Expression(Enum):
    """Coarse expression labels."""
    NEUTRAL = "neutral"
    SLIGHT_SMILE = "slight smile"
    HAPPY = "happy"
    VERY_HAPPY = "very happy"
    CONFUSED = "confused"
    YAWNING = "yawning"


# How compatible each expression is with task engagement (0-1)
ENGAGEMENT = {
    Expression.NEUTRAL: 1.0,
    Expression.SLIGHT_SMILE: 1.0,
    Expression.HAPPY: 0.8,
    Expression.VERY_HAPPY: 0.6,
    Expression.CONFUSED: 0.6,
    Expression.YAWNING: 0.2,
}


def classify_expression(
    smile_prob: float,
    eye_open: Optional[float],
    pitch: float,
    roll: float,
    yawn_eye_threshold: float = 0.35,
    yawn_pitch_deg: float = 10.0,
    confused_roll_deg: float = 15.0
) -> Expression:
    """
    Classify one frame.

    Heuristics:
    - Yawning: eyes squeezed nearly shut with the head tipped back, no smile
    - Confused: clear head tilt without a smile
    - Otherwise smile probability bands
    """
    if (eye_open is not None and eye_open < yawn_eye_threshold and
            pitch > yawn_pitch_deg and smile_prob < 0.2):
        return Expression.YAWNING
    if abs(roll) > confused_roll_deg and smile_prob < 0.2:
        return Expression.CONFUSED
    if smile_prob > 0.8:
        return Expression.VERY_HAPPY
    if smile_prob > 0.5:
        return Expression.HAPPY
    if smile_prob > 0.2:
        return Expression.SLIGHT_SMILE
    return Expression.NEUTRAL


@dataclass(frozen=True)
class ExpressionUpdate:
    expression: Expression
    counted_change: bool
    spike: bool


class ExpressionTracker:
    """
    Tracks counted expression changes across frames.

    Usage:
        tracker = ExpressionTracker(debounce_ms=1500, min_delta=0.15)
        update = tracker.update(timestamp_ms, smile, eye_open, pitch, roll)
    """

    def __init__(
        self,
        debounce_ms: float = 1500.0,
        min_delta: float = 0.15,
        spike_delta: float = 0.6,
        max_changes: int = 15,
        yawn_eye_threshold: float = 0.35,
        yawn_pitch_deg: float = 10.0,
        confused_roll_deg: float = 15.0
    ):
        self.debounce_ms = debounce_ms
        self.min_delta = min_delta
        self.spike_delta = spike_delta
        self.max_changes = max_changes
        self.yawn_eye_threshold = yawn_eye_threshold
        self.yawn_pitch_deg = yawn_pitch_deg
        self.confused_roll_deg = confused_roll_deg
        self.reset()

    def reset(self):
        self.changes = 0
        self.samples = 0
        self.current = Expression.NEUTRAL
        self._last_change_ms = None
        self._anchor_smile = 0.0
        self._anchor_eye = None
        self._anchor_roll = 0.0
        self._previous_smile = 0.0

    def update(
        self,
        timestamp_ms: float,
        smile_prob: float,
        eye_open: Optional[float],
        pitch: float,
        roll: float
    ) -> ExpressionUpdate:
        self.samples += 1
        label = classify_expression(
            smile_prob, eye_open, pitch, roll,
            self.yawn_eye_threshold, self.yawn_pitch_deg, self.confused_roll_deg
        )

        frame_delta = abs(smile_prob - self._previous_smile)
        self._previous_smile = smile_prob

        counted = False
        spike = False
        if label != self.current:
            spike = frame_delta > self.spike_delta
            if self._debounced(timestamp_ms) and self._moved(smile_prob, eye_open, roll):
                if self.changes < self.max_changes:
                    self.changes += 1
                counted = True
                self.current = label
                self._last_change_ms = timestamp_ms
                self._anchor_smile = smile_prob
                self._anchor_eye = eye_open
                self._anchor_roll = roll

        return ExpressionUpdate(expression=label, counted_change=counted, spike=spike)

    def _debounced(self, timestamp_ms: float) -> bool:
        return (self._last_change_ms is None or
                timestamp_ms - self._last_change_ms > self.debounce_ms)

    def _moved(self, smile_prob: float, eye_open: Optional[float], roll: float) -> bool:
        # A 60 degree head tilt weighs like a full probability swing
        delta = max(abs(smile_prob - self._anchor_smile), abs(roll - self._anchor_roll) / 60.0)
        if eye_open is not None and self._anchor_eye is not None:
            delta = max(delta, abs(eye_open - self._anchor_eye))
        return delta >= self.min_delta
