"""
Confidence level from signal coverage.

Confidence reflects how much usable data backs a score, not how extreme the
score is. Short tasks, a face that was rarely visible, missing motion data
or a task with no responses each lower it.
"""

import logging
from typing import Dict, List, Tuple

import numpy as np

logger = logging.getLogger(__name__)

# (minimum, adjustment), checked top-down; first match wins
DURATION_STEPS: List[Tuple[float, int]] = [(120, 20), (60, 15), (30, 8), (0.001, 0)]
FACE_VISIBILITY_STEPS: List[Tuple[float, int]] = [(95, 20), (85, 15), (75, 8)]
MOTION_SAMPLE_STEPS: List[Tuple[float, int]] = [(250, 10), (5, 5)]
RESPONSE_STEPS: List[Tuple[float, int]] = [(20, 10), (5, 5), (1, 0)]

DEFAULT_CONFIDENCE = {
    'base': 40,
    'no_duration_penalty': -10,
    'low_visibility_penalty': -10,
    'no_face_penalty': -20,
    'no_motion_penalty': -15,
    'no_response_penalty': -25,
}


def _step(value: float, steps: List[Tuple[float, int]], fallback: int) -> int:
    for minimum, adjustment in steps:
        if value >= minimum:
            return adjustment
    return fallback


def compute_confidence_level(
    performance,
    face_metrics,
    motion_metrics,
    duration_seconds: float,
    config: Dict
) -> int:
    """
    Compute confidence (0-100) for one assessment.

    Args:
        performance: TaskPerformanceSummary
        face_metrics: Final FaceMetrics
        motion_metrics: Final MotionMetrics
        duration_seconds: Task duration
        config: Configuration dict (``scoring.confidence`` overrides)

    Returns:
        Confidence level 0-100
    """
    settings = dict(DEFAULT_CONFIDENCE)
    settings.update(config.get('scoring', {}).get('confidence', {}) or {})

    confidence = settings['base']
    confidence += _step(duration_seconds, DURATION_STEPS, settings['no_duration_penalty'])

    if face_metrics.processed_frames == 0:
        confidence += settings['no_face_penalty']
    else:
        confidence += _step(
            face_metrics.face_visible_percentage,
            FACE_VISIBILITY_STEPS,
            settings['low_visibility_penalty']
        )

    confidence += _step(motion_metrics.sample_count, MOTION_SAMPLE_STEPS, settings['no_motion_penalty'])
    confidence += _step(performance.total_trials, RESPONSE_STEPS, settings['no_response_penalty'])

    confidence = int(np.clip(confidence, 0, 100))
    logger.debug(f"Confidence level: {confidence}")
    return confidence
