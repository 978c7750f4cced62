"""
Impulsivity domain score.

- Commission errors (responding on no-go / non-target trials)
- Premature responses (false starts)
- Share of implausibly fast responses (responding before processing)
- Sudden movements and rapid expression changes
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

IMPULSIVITY_DEFAULTS = {
    'commission_rate': (0.30, (0.05, 0.35)),
    'premature_rate': (0.15, (0.02, 0.20)),
    'fast_responses': (0.15, (0.05, 0.30)),
    'sudden_movement_rate': (0.15, (2.0, 10.0)),
    'emotion_change_rate': (0.10, (2.0, 7.0)),
    'emotion_variability': (0.10, (45.0, 75.0)),
    'response_variability': (0.05, (120.0, 260.0)),
}

DEFAULT_FAST_RESPONSE_MS = 200.0


def compute_impulsivity_score(
    performance,
    face_metrics,
    motion_metrics,
    duration_seconds: float,
    config: Dict
) -> Dict:
    """
    Compute the impulsivity domain score.

    Returns:
        Dictionary with score (0-100), available flag and component breakdown
    """
    coverage = assess_coverage(performance, face_metrics, motion_metrics, duration_seconds, config)
    settings = component_settings(config, 'impulsivity', IMPULSIVITY_DEFAULTS)
    fast_ms = config.get('scoring', {}).get('impulsivity', {}).get(
        'fast_response_ms', DEFAULT_FAST_RESPONSE_MS
    )

    def make(name: str, value: float, available: bool) -> Component:
        weight, (typical, elevated) = settings[name]
        return Component(name, ramp(value, typical, elevated), weight, available)

    components = [
        make('commission_rate', performance.commission_rate,
             coverage.performance and performance.responses > 0),
        make('premature_rate', performance.premature_rate, coverage.performance),
        make('fast_responses', performance.fast_response_ratio(fast_ms),
             len(performance.response_times_ms) > 0),
        make('sudden_movement_rate',
             per_minute(motion_metrics.sudden_movements, duration_seconds),
             coverage.motion and coverage.duration),
        make('emotion_change_rate',
             per_minute(face_metrics.emotion_changes, duration_seconds),
             coverage.face and coverage.duration),
        make('emotion_variability', face_metrics.emotion_variability_score, coverage.face),
        make('response_variability', performance.response_variability,
             coverage.response_times and performance.response_variability > 0),
    ]

    score = weighted_score(components)
    available = any(c.available for c in components)
    if not available:
        logger.warning("No usable input for impulsivity domain")

    logger.debug(f"Impulsivity domain score: {score:.1f}/100")

    return {
        'score': score,
        'available': available,
        'components': describe_components(components),
    }
