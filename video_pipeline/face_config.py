"""
Face analysis thresholds.

Angles are in degrees as reported by the face detector (Euler Y = yaw,
Euler X = pitch, Euler Z = roll). Probabilities are detector classifier
outputs in [0, 1]. Overridable from the ``face`` section of the YAML config.
"""

from dataclasses import dataclass, fields
from typing import Any, Dict


@dataclass(frozen=True)
class FaceConfig:
    # Face validity gate
    min_face_size_px: float = 100.0

    # Look-away
    yaw_threshold_deg: float = 36.0
    pitch_threshold_deg: float = 31.0
    recovery_history: int = 50

    # Frame timestamps further than this from start() are probably another time base
    clock_skew_warning_ms: float = 5000.0

    # Blink FSM
    eye_open_threshold: float = 0.5
    blink_min_ms: float = 80.0
    blink_max_ms: float = 400.0
    blink_refractory_ms: float = 300.0
    rapid_blink_ms: float = 150.0

    # Facial position movement
    facial_movement_threshold_px: float = 9.5
    large_jump_factor: float = 4.0
    max_facial_movement: int = 40
    facial_movement_scale: float = 0.65

    # Expression variability
    emotion_change_debounce_ms: float = 1500.0
    emotion_min_delta: float = 0.15
    emotion_spike_delta: float = 0.6
    max_emotion_changes: int = 15
    emotion_variability_scale: float = 0.7
    yawn_eye_threshold: float = 0.35
    yawn_pitch_deg: float = 10.0
    confused_roll_deg: float = 15.0

    # Attention quality
    quality_eye_weight: float = 0.45
    quality_pose_weight: float = 0.45
    quality_expression_weight: float = 0.1
    streak_weight: float = 0.6
    mean_quality_weight: float = 0.4

    # Distractibility
    max_distractibility_events: int = 30
    distractibility_attention_weight: float = 0.5
    distractibility_event_weight: float = 0.3
    distractibility_look_away_weight: float = 0.2
    look_away_rate_for_max: float = 10.0

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'FaceConfig':
        """Build from the ``face`` section of a loaded config dict."""
        section = (config or {}).get('face', {}) or {}
        overrides = {
            f.name: type(f.default)(section[f.name])
            for f in fields(cls)
            if f.name in section
        }
        return cls(**overrides)
