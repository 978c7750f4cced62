"""
Human-readable interpretation for the presentation layer.

Nothing here feeds back into scoring. The wording is deliberately
non-diagnostic: the engine produces a screening heuristic.
"""

from typing import Iterable, List

from .behavioral_markers import MARKER_DEFINITIONS
from .data_models import BehavioralMarker


def score_label(score: float) -> str:
    if score >= 70:
        return "High likelihood of ADHD-related behavior patterns"
    elif score >= 40:
        return "Moderate indications of ADHD-related behavior patterns"
    elif score >= 20:
        return "Mild indications of ADHD-related behavior patterns"
    return "Very few ADHD-related behaviors detected"


def interpretation_text(score: float) -> str:
    if score >= 70:
        return (
            "The assessment detected behavioral patterns strongly associated with ADHD, "
            "with significant markers in attention, response consistency and movement. "
            "This is not a diagnosis. A professional evaluation is recommended."
        )
    elif score >= 40:
        return (
            "The assessment detected moderate behaviors that may be associated with ADHD, "
            "including variations in attention, response timing and activity level beyond "
            "typical ranges. Everyone shows some of these behaviors occasionally. Consider "
            "discussing the results with a healthcare professional if they cause challenges."
        )
    elif score >= 20:
        return (
            "The assessment detected mild behaviors that may be associated with ADHD. "
            "Performance showed mostly typical attention and response patterns, with some "
            "variation that is common in the general population."
        )
    return (
        "The assessment detected very few behaviors associated with ADHD. Attention, "
        "response patterns and activity levels were consistent throughout the task."
    )


def confidence_label(confidence: float) -> str:
    if confidence >= 80:
        return "high"
    elif confidence >= 50:
        return "moderate"
    return "low (insufficient data)"


def domain_explanation(attention: float, hyperactivity: float, impulsivity: float) -> str:
    """One-line summary of which domains are elevated."""
    elevated = [
        f"{name} ({value:.0f})"
        for name, value in (("inattention", attention),
                            ("hyperactivity", hyperactivity),
                            ("impulsivity", impulsivity))
        if value >= 50
    ]
    if elevated:
        return "Elevated domains: " + ", ".join(elevated) + "."
    return "No domain is elevated above the typical range."


def rank_markers(markers: Iterable[BehavioralMarker], limit: int = 0) -> List[BehavioralMarker]:
    """Order markers by ``BehavioralMarker.weight``, most concerning first."""
    ranked = sorted(markers, key=lambda m: m.weight, reverse=True)
    if limit > 0:
        return ranked[:limit]
    return ranked


def metric_description(name: str) -> str:
    """Description of a marker by display name ('' if unknown)."""
    definition = MARKER_DEFINITIONS.get(name)
    return definition[2] if definition else ""
