"""
Shared helpers for domain scoring.

Each domain score is a weighted mean of normalized components. A component
is mapped to [0, 1] with a linear ramp between a "typical" reference value
(0) and an "elevated" reference value (1); ramps may run downwards for
metrics where lower is worse (accuracy, sustained attention). Components
whose source modality produced no data are left out and the remaining
weights renormalized.
"""

import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import numpy as np

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Component:
    name: str
    value: float      # normalized 0-1
    weight: float
    available: bool = True


def ramp(value: float, typical: float, elevated: float) -> float:
    """Map ``value`` to [0, 1]: 0 at ``typical``, 1 at ``elevated``."""
    if not math.isfinite(value) or typical == elevated:
        return 0.0
    return float(np.clip((value - typical) / (elevated - typical), 0.0, 1.0))


def per_minute(count: float, duration_seconds: float) -> float:
    if duration_seconds <= 0:
        return 0.0
    return count * 60.0 / duration_seconds


def component_settings(
    config: Dict,
    domain: str,
    defaults: Dict[str, Tuple[float, Tuple[float, float]]]
) -> Dict[str, Tuple[float, Tuple[float, float]]]:
    """
    Resolve (weight, (typical, elevated)) per component.

    Config layout:
        scoring:
          <domain>:
            <component>:
              weight: 0.2
              range: [85, 50]
    """
    section = config.get('scoring', {}).get(domain, {}) or {}
    settings = {}
    for name, (weight, value_range) in defaults.items():
        override = section.get(name, {}) or {}
        settings[name] = (
            float(override.get('weight', weight)),
            tuple(float(v) for v in override.get('range', value_range)),
        )
    return settings


def weighted_score(components: List[Component]) -> float:
    """Weighted mean of available components on a 0-100 scale (0 if none)."""
    usable = [c for c in components if c.available and c.weight > 0]
    total_weight = sum(c.weight for c in usable)
    if total_weight <= 0:
        return 0.0
    score = sum(c.value * c.weight for c in usable) / total_weight * 100.0
    return float(np.clip(score, 0.0, 100.0))


def describe_components(components: List[Component]) -> Dict[str, Optional[float]]:
    """Per-component contribution (0-100) for explanations; None when unavailable."""
    return {
        c.name: (round(c.value * 100.0, 1) if c.available else None)
        for c in components
    }


@dataclass(frozen=True)
class Coverage:
    """Which inputs carry usable signal."""
    performance: bool
    response_times: bool
    face: bool
    motion: bool
    duration: bool


def assess_coverage(
    performance,
    face_metrics,
    motion_metrics,
    duration_seconds: float,
    config: Dict
) -> Coverage:
    """Decide which modalities have enough data to contribute to scoring."""
    scoring_config = config.get('scoring', {})
    min_face_coverage = scoring_config.get('min_face_coverage', 20)
    min_motion_samples = scoring_config.get('min_motion_samples', 5)

    return Coverage(
        performance=performance.total_trials > 0,
        response_times=performance.has_response_times,
        face=(face_metrics.processed_frames > 0 and
              face_metrics.elapsed_ms > 0 and
              face_metrics.face_visible_percentage >= min_face_coverage),
        motion=motion_metrics.sample_count >= min_motion_samples,
        duration=duration_seconds > 0,
    )
