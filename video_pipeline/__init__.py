"""
Face analysis pipeline.

Consumes structured face-detector output (bounding box, head pose, eye-open
and smile probabilities) frame by frame:
1. Look-away tracking (attending / looking away state machine)
2. Debounced blink detection
3. Attention quality and sustained attention
4. Expression variability and distractibility

Camera acquisition and the detector model itself live outside this package.
"""

from .face_config import FaceConfig
from .face_analyzer import (
    FaceAnalyzer,
    FaceFrameObservation,
    FaceMetrics
)
from .blink_detector import BlinkDetector, BlinkEvent
from .expression_tracker import (
    Expression,
    ExpressionTracker,
    classify_expression
)

__all__ = [
    'FaceConfig',
    'FaceAnalyzer',
    'FaceFrameObservation',
    'FaceMetrics',
    'BlinkDetector',
    'BlinkEvent',
    'Expression',
    'ExpressionTracker',
    'classify_expression',
]
