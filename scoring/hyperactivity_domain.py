"""
Hyperactivity domain score.

Measures excess motor activity from the motion and face streams:
- Restlessness (share of time moving) and fidgeting (share of that time
  spent in small repetitive motion)
- General movement and direction-change frequency
- Facial/head movement and blink rate

Engineering approach:
- Motion terms dominate; face terms corroborate
- Each term normalized against a typical reference, 0-100 scale
"""

import logging
from typing import Dict

from .components import (
    Component,
    assess_coverage,
    component_settings,
    describe_components,
    per_minute,
    ramp,
    weighted_score
)

logger = logging.getLogger(__name__)

HYPERACTIVITY_DEFAULTS = {
    'restlessness': (0.30, (30.0, 80.0)),
    'fidgeting': (0.25, (40.0, 80.0)),
    'general_movement': (0.15, (20.0, 70.0)),
    'direction_change_rate': (0.10, (40.0, 200.0)),
    'facial_movement': (0.15, (45.0, 80.0)),
    'blink_rate': (0.05, (26.0, 40.0)),
}


def compute_hyperactivity_score(
    performance,
    face_metrics,
    motion_metrics,
    duration_seconds: float,
    config: Dict
) -> Dict:
    """
    Compute the hyperactivity domain score.

    Returns:
        Dictionary with score (0-100), available flag and component breakdown
    """
    coverage = assess_coverage(performance, face_metrics, motion_metrics, duration_seconds, config)
    settings = component_settings(config, 'hyperactivity', HYPERACTIVITY_DEFAULTS)

    def make(name: str, value: float, available: bool) -> Component:
        weight, (typical, elevated) = settings[name]
        return Component(name, ramp(value, typical, elevated), weight, available)

    components = [
        make('restlessness', motion_metrics.restlessness, coverage.motion),
        make('fidgeting', motion_metrics.fidgeting_score, coverage.motion),
        make('general_movement', motion_metrics.general_movement_score, coverage.motion),
        make('direction_change_rate',
             per_minute(motion_metrics.direction_changes, duration_seconds),
             coverage.motion and coverage.duration),
        make('facial_movement', face_metrics.facial_movement_score, coverage.face),
        make('blink_rate', face_metrics.blink_rate, coverage.face),
    ]

    score = weighted_score(components)
    available = any(c.available for c in components)
    if not available:
        logger.warning("No usable input for hyperactivity domain")

    logger.debug(f"Hyperactivity domain score: {score:.1f}/100")

    return {
        'score': score,
        'available': available,
        'components': describe_components(components),
    }
