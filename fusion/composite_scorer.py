"""
Composite scoring of one completed task.

Fusion strategy:
- Task performance, face metrics and motion metrics each feed the three
  domain calculators (attention, hyperactivity, impulsivity)
- The overall probability is a weighted aggregate of the domain scores
- Domains without any usable input are left out of the aggregate rather
  than counted as zero
- Coverage drives the confidence level, never the probability itself

Decision rules:
1. Domain weights (attention 0.47, hyperactivity 0.33, impulsivity 0.20)
   renormalized over available domains
2. All outputs are integers clamped to [0, 100]
3. Degenerate input degrades to neutral values; the scorer never raises

Engineering approach:
- Weights, reference ranges and marker thresholds come from configuration
- Stateless: one call per completed task
"""

import logging
import math
from typing import Dict, Optional

import numpy as np

from motion_pipeline import MotionMetrics
from scoring import (
    AssessmentResult,
    TaskPerformanceSummary,
    build_behavioral_markers,
    compute_attention_score,
    compute_confidence_level,
    compute_hyperactivity_score,
    compute_impulsivity_score
)
from scoring.interpretation import confidence_label, domain_explanation, score_label
from video_pipeline import FaceMetrics

logger = logging.getLogger(__name__)

DEFAULT_DOMAIN_WEIGHTS = {
    'attention': 0.47,
    'hyperactivity': 0.33,
    'impulsivity': 0.20,
}


def _clamp_score(value: float) -> int:
    if value is None or not math.isfinite(value):
        return 0
    return int(np.clip(round(value), 0, 100))


class CompositeScorer:
    """
    Combine task performance with both signal streams into one assessment.

    Usage:
        scorer = CompositeScorer(config)
        result = scorer.score(performance, face_metrics, motion_metrics, 60.0)
    """

    def __init__(self, config: Optional[Dict] = None):
        """
        Initialize composite scorer.

        Args:
            config: Configuration dict with a ``scoring`` section
        """
        self.config = config or {}

        scoring_config = self.config.get('scoring', {}) or {}
        weights = dict(DEFAULT_DOMAIN_WEIGHTS)
        weights.update(scoring_config.get('domain_weights', {}) or {})
        self.domain_weights = {k: max(0.0, float(v)) for k, v in weights.items()}

        logger.info(
            f"Composite scorer initialized: "
            f"domain_weights=({self.domain_weights['attention']}, "
            f"{self.domain_weights['hyperactivity']}, "
            f"{self.domain_weights['impulsivity']})"
        )

    def score(
        self,
        performance: Optional[TaskPerformanceSummary],
        face_metrics: Optional[FaceMetrics],
        motion_metrics: Optional[MotionMetrics],
        task_duration_seconds: Optional[float] = None
    ) -> AssessmentResult:
        """
        Score one completed task.

        Args:
            performance: Final task counters (None treated as empty)
            face_metrics: Final face snapshot (None treated as no frames)
            motion_metrics: Final motion snapshot (None treated as no samples)
            task_duration_seconds: Task duration; falls back to the
                performance summary, then the face elapsed time

        Returns:
            AssessmentResult with all scores in [0, 100]
        """
        performance = performance or TaskPerformanceSummary()
        face_metrics = face_metrics or FaceMetrics()
        motion_metrics = motion_metrics or MotionMetrics()
        duration = self._resolve_duration(performance, face_metrics, task_duration_seconds)

        args = (performance, face_metrics, motion_metrics, duration, self.config)
        domains = {
            'attention': compute_attention_score(*args),
            'hyperactivity': compute_hyperactivity_score(*args),
            'impulsivity': compute_impulsivity_score(*args),
        }

        overall = self._aggregate(domains)
        confidence = compute_confidence_level(*args)
        markers = build_behavioral_markers(*args)

        attention = _clamp_score(domains['attention']['score'])
        hyperactivity = _clamp_score(domains['hyperactivity']['score'])
        impulsivity = _clamp_score(domains['impulsivity']['score'])
        probability = _clamp_score(overall)

        explanation = (
            f"{score_label(probability)}. "
            f"{domain_explanation(attention, hyperactivity, impulsivity)} "
            f"Confidence is {confidence_label(confidence)}."
        )

        logger.info(
            f"Assessment scored ({performance.task_type}): probability={probability}, "
            f"attention={attention}, hyperactivity={hyperactivity}, "
            f"impulsivity={impulsivity}, confidence={confidence}"
        )

        return AssessmentResult(
            adhd_probability_score=probability,
            confidence_level=confidence,
            attention_score=attention,
            hyperactivity_score=hyperactivity,
            impulsivity_score=impulsivity,
            behavioral_markers=tuple(markers),
            assessment_duration_ms=int(round(duration * 1000.0)),
            task_type=performance.task_type,
            explanation=explanation
        )

    def _resolve_duration(
        self,
        performance: TaskPerformanceSummary,
        face_metrics: FaceMetrics,
        task_duration_seconds: Optional[float]
    ) -> float:
        for candidate in (task_duration_seconds,
                          performance.duration_seconds,
                          face_metrics.elapsed_ms / 1000.0):
            if candidate is not None and math.isfinite(candidate) and candidate > 0:
                return float(candidate)

        logger.warning("Task duration unknown; rate-based components disabled")
        return 0.0

    def _aggregate(self, domains: Dict[str, Dict]) -> float:
        """Weighted mean of available domain scores (0 when none available)."""
        total_weight = 0.0
        weighted = 0.0
        for name, result in domains.items():
            weight = self.domain_weights.get(name, 0.0)
            if not result['available'] or weight <= 0:
                continue
            weighted += weight * result['score']
            total_weight += weight

        if total_weight <= 0:
            logger.warning("No domain had usable input; overall score defaults to 0")
            return 0.0
        return weighted / total_weight
