"""
Motion analysis pipeline.

Turns a continuous accelerometer/gyroscope stream into bounded behavioral
metrics:
1. Restlessness (share of tracked time spent moving)
2. Fidgeting (share of restless time spent in repetitive small motion)
3. General movement, direction changes, sudden movements

All processing is online and per-reading bounded, so the analyzer can sit
directly behind a sensor callback.
"""

from .motion_config import MotionConfig
from .motion_analyzer import (
    MotionAnalyzer,
    MotionMetrics,
    MotionSample,
    SensorReading
)
from .fidget_detector import FidgetEvidence, FidgetPatternDetector
from .ring_buffer import RingBuffer

__all__ = [
    'MotionConfig',
    'MotionAnalyzer',
    'MotionMetrics',
    'MotionSample',
    'SensorReading',
    'FidgetEvidence',
    'FidgetPatternDetector',
    'RingBuffer',
]
