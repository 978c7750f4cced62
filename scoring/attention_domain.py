"""
Attention domain score.

Combines task performance with face-derived attention signals:
- Accuracy and omission (missed target) rate
- Response time level and variability
- Sustained attention and distractibility from the face analyzer
- Look-away frequency

Score interpretation (higher = more inattention-associated behavior):
- 0-20: Consistent attention
- 21-40: Mostly typical with occasional lapses
- 41-60: Noticeable attention variability
- 61-100: Frequent lapses and inconsistent responding

Clinical rationale:
- Omissions and RT variability are the most replicated inattention markers
  in continuous performance tasks
- Looking away and short attending streaks corroborate task-level lapses
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

# component: (weight, (typical, elevated))
ATTENTION_DEFAULTS = {
    'accuracy': (0.20, (85.0, 50.0)),
    'missed_rate': (0.20, (0.05, 0.40)),
    'response_variability': (0.15, (120.0, 260.0)),
    'response_time': (0.05, (380.0, 750.0)),
    'sustained_attention': (0.15, (60.0, 20.0)),
    'distractibility': (0.15, (45.0, 90.0)),
    'look_away_rate': (0.10, (4.0, 12.0)),
}


def compute_attention_score(
    performance,
    face_metrics,
    motion_metrics,
    duration_seconds: float,
    config: Dict
) -> Dict:
    """
    Compute the attention domain score.

    Args:
        performance: TaskPerformanceSummary
        face_metrics: Final FaceMetrics
        motion_metrics: Final MotionMetrics (only used for coverage)
        duration_seconds: Task duration
        config: Configuration dict

    Returns:
        Dictionary with:
        - score: Attention domain score (0-100)
        - available: Whether any component had data
        - components: Per-component contributions (0-100 or None)
    """
    coverage = assess_coverage(performance, face_metrics, motion_metrics, duration_seconds, config)
    settings = component_settings(config, 'attention', ATTENTION_DEFAULTS)

    def make(name: str, value: float, available: bool) -> Component:
        weight, (typical, elevated) = settings[name]
        return Component(name, ramp(value, typical, elevated), weight, available)

    components = [
        make('accuracy', performance.accuracy, coverage.performance),
        make('missed_rate', performance.miss_rate, coverage.performance),
        make('response_variability', performance.response_variability,
             coverage.response_times and performance.response_variability > 0),
        make('response_time', performance.mean_response_time, coverage.response_times),
        make('sustained_attention', face_metrics.sustained_attention_score, coverage.face),
        make('distractibility', face_metrics.distractibility_index, coverage.face),
        make('look_away_rate',
             per_minute(face_metrics.look_away_count, duration_seconds),
             coverage.face and coverage.duration),
    ]

    score = weighted_score(components)
    available = any(c.available for c in components)
    if not available:
        logger.warning("No usable input for attention domain")

    logger.debug(f"Attention domain score: {score:.1f}/100")

    return {
        'score': score,
        'available': available,
        'components': describe_components(components),
    }
