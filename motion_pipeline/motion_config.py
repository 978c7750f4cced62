"""
Motion analysis thresholds.

All values were tuned empirically on handheld phone accelerometers sampled at
~50 Hz (SENSOR_DELAY_GAME). Magnitudes are in m/s^2 of *filtered differential*
acceleration, not raw acceleration. Every field can be overridden from the
``motion`` section of the YAML config.
"""

from dataclasses import dataclass, fields
from typing import Any, Dict


@dataclass(frozen=True)
class MotionConfig:
    # Noise filtering
    filter_window_size: int = 6
    noise_threshold: float = 0.02

    # Stationary device detection
    stationary_run_length: int = 20
    stationary_release_factor: float = 1.5

    # Intensity buckets (ascending)
    meaningful_movement_threshold: float = 0.04
    fidget_threshold: float = 0.05
    medium_movement_threshold: float = 0.3
    large_movement_threshold: float = 0.8
    sudden_movement_threshold: float = 1.2
    large_movement_weight: float = 1.5

    # Restless state
    restless_exit_ms: float = 500.0
    max_sample_gap_ms: float = 1000.0

    # Fidget pattern evidence
    pattern_window_ms: float = 1500.0
    pattern_capacity: int = 128
    reversal_dot_threshold: float = -0.5
    min_reversals: int = 3
    repeat_similarity: float = 0.9
    min_repeat_pairs: int = 3
    min_alternating_cycles: int = 2
    min_evidence: int = 2

    # Event debouncing and caps
    direction_change_spacing_ms: float = 200.0
    sudden_movement_spacing_ms: float = 400.0
    max_direction_changes: int = 300
    max_sudden_movements: int = 60

    # Buffers
    buffer_capacity: int = 1500
    rotation_buffer_capacity: int = 500
    min_samples: int = 5

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'MotionConfig':
        """Build from the ``motion`` section of a loaded config dict."""
        section = (config or {}).get('motion', {}) or {}
        overrides = {
            f.name: type(f.default)(section[f.name])
            for f in fields(cls)
            if f.name in section
        }
        return cls(**overrides)
