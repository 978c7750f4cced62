"""
Behavioral scoring module.

This package turns final task counters plus motion and face metrics into
interpretable scores:
1. Attention Score (0-100): omissions, accuracy, response consistency, gaze
2. Hyperactivity Score (0-100): restlessness, fidgeting, movement
3. Impulsivity Score (0-100): commissions, false starts, sudden movement
4. Confidence Level (0-100): how much usable signal backs the scores
5. Behavioral Markers: one interpretable marker per tracked metric

All scores are:
- Interpretable (0-100 scale, higher = more ADHD-associated behavior)
- Explainable (weighted means of transparent components)
- Non-diagnostic (screening heuristic, not medical diagnosis)
"""

from .data_models import TaskPerformanceSummary, BehavioralMarker, AssessmentResult
from .attention_domain import compute_attention_score
from .hyperactivity_domain import compute_hyperactivity_score
from .impulsivity_domain import compute_impulsivity_score
from .confidence import compute_confidence_level
from .behavioral_markers import build_behavioral_markers, HIGHER_IS_BETTER, MARKER_DEFINITIONS
from .interpretation import (
    score_label,
    interpretation_text,
    confidence_label,
    metric_description,
    rank_markers
)

__all__ = [
    'TaskPerformanceSummary',
    'BehavioralMarker',
    'AssessmentResult',
    'compute_attention_score',
    'compute_hyperactivity_score',
    'compute_impulsivity_score',
    'compute_confidence_level',
    'build_behavioral_markers',
    'HIGHER_IS_BETTER',
    'MARKER_DEFINITIONS',
    'score_label',
    'interpretation_text',
    'confidence_label',
    'metric_description',
    'rank_markers',
]
