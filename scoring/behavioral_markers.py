"""
Behavioral marker construction.

Every tracked raw metric becomes a BehavioralMarker with a reference
("typical") threshold and a fixed significance weight. Ranking and filtering
are left to the presentation layer.
"""

import logging
from typing import Dict, List

from .components import per_minute
from .data_models import BehavioralMarker

logger = logging.getLogger(__name__)

# name: (threshold, significance, description)
MARKER_DEFINITIONS = {
    "Response Time": (
        550.0, 2,
        "Average time to respond to target stimuli. Longer times may indicate processing delays."
    ),
    "Response Variability": (
        180.0, 3,
        "Consistency of response timing. High variability is a key ADHD indicator."
    ),
    "Task Accuracy": (
        75.0, 2,
        "Percentage of correct responses. Lower accuracy may indicate attention difficulties."
    ),
    "Missed Responses": (
        8.0, 2,
        "Target stimuli that received no response. May indicate inattention."
    ),
    "Incorrect Responses": (
        5.0, 2,
        "Responses to stimuli that called for no response. Frequent errors can indicate impulsivity."
    ),
    "Premature Responses": (
        3.0, 2,
        "Responses given before the stimulus appeared."
    ),
    "Look Away Rate": (
        8.0, 2,
        "How often attention shifts away from the task. Natural to look away occasionally."
    ),
    "Sustained Attention": (
        50.0, 3,
        "Ability to maintain focus over time. Lower scores indicate difficulty maintaining attention."
    ),
    "Look Away Duration": (
        2000.0, 2,
        "How long attention typically stays away from task when distracted."
    ),
    "Attention Lapses": (
        5.0, 2,
        "Moments when attention completely breaks from the task."
    ),
    "Distractibility": (
        70.0, 2,
        "Overall measure of how easily distracted. Some distractibility is normal."
    ),
    "Blink Rate": (
        35.0, 1,
        "Blinks per minute. Excessive blinking can indicate stress or hyperactivity."
    ),
    "Face Visibility": (
        75.0, 1,
        "Percentage of frames with a clearly visible face."
    ),
    "Facial Movement": (
        65.0, 1,
        "Amount of facial movement during task. Some movement is completely normal."
    ),
    "Emotion Changes": (
        5.0, 1,
        "Frequency of emotional expression changes per minute. Rapid changes can indicate impulsivity."
    ),
    "Emotion Variability": (
        65.0, 1,
        "Intensity of emotional expression changes. Some variability is normal."
    ),
    "Fidgeting Score": (
        65.0, 3,
        "Share of restless time spent in small repeated movements. Some fidgeting is normal."
    ),
    "Direction Changes": (
        120.0, 1,
        "How often movement direction reverses per minute. Rapid shifts can indicate restlessness."
    ),
    "Sudden Movements": (
        6.0, 2,
        "Quick, unexpected movements per minute. Can indicate impulsivity if frequent."
    ),
    "Restlessness": (
        65.0, 3,
        "Share of time spent moving. Some movement during tasks is completely normal."
    ),
    "General Movement": (
        50.0, 1,
        "Frequency of medium and large movements, reflecting larger body movements."
    ),
}

# Markers where falling below the threshold is the concern
HIGHER_IS_BETTER = frozenset({"Task Accuracy", "Sustained Attention", "Face Visibility"})


def build_behavioral_markers(
    performance,
    face_metrics,
    motion_metrics,
    duration_seconds: float,
    config: Dict
) -> List[BehavioralMarker]:
    """
    Build one marker per tracked metric.

    Thresholds can be overridden with ``scoring.marker_thresholds``:
        scoring:
          marker_thresholds:
            Response Time: 600
    """
    overrides = config.get('scoring', {}).get('marker_thresholds', {}) or {}

    values = {
        "Response Time": performance.mean_response_time,
        "Response Variability": performance.response_variability,
        "Task Accuracy": performance.accuracy,
        "Missed Responses": float(performance.missed_responses),
        "Incorrect Responses": float(performance.incorrect_responses),
        "Premature Responses": float(performance.premature_responses),
        "Look Away Rate": per_minute(face_metrics.look_away_count, duration_seconds),
        "Sustained Attention": float(face_metrics.sustained_attention_score),
        "Look Away Duration": face_metrics.average_look_away_duration_ms,
        "Attention Lapses": face_metrics.attention_lapse_frequency,
        "Distractibility": float(face_metrics.distractibility_index),
        "Blink Rate": face_metrics.blink_rate,
        "Face Visibility": float(face_metrics.face_visible_percentage),
        "Facial Movement": float(face_metrics.facial_movement_score),
        "Emotion Changes": per_minute(face_metrics.emotion_changes, duration_seconds),
        "Emotion Variability": float(face_metrics.emotion_variability_score),
        "Fidgeting Score": float(motion_metrics.fidgeting_score),
        "Direction Changes": per_minute(motion_metrics.direction_changes, duration_seconds),
        "Sudden Movements": per_minute(motion_metrics.sudden_movements, duration_seconds),
        "Restlessness": float(motion_metrics.restlessness),
        "General Movement": float(motion_metrics.general_movement_score),
    }

    markers = []
    for name, (threshold, significance, description) in MARKER_DEFINITIONS.items():
        markers.append(BehavioralMarker(
            name=name,
            value=round(float(values[name]), 2),
            threshold=float(overrides.get(name, threshold)),
            significance=significance,
            description=description,
            higher_is_better=name in HIGHER_IS_BETTER
        ))

    logger.debug(f"Built {len(markers)} behavioral markers")
    return markers
