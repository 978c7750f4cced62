"""
One task attempt: analyzers in, assessment out.

The task runner owns the analyzers and hands them to the session; nothing
here is process-wide. A session runs start -> ingest -> finish exactly once
per attempt. Starting a session always begins from clean analyzer state.
"""

import logging
from typing import Callable, Optional, Tuple

from motion_pipeline import MotionAnalyzer, MotionMetrics, SensorReading
from scoring import AssessmentResult, TaskPerformanceSummary
from video_pipeline import FaceAnalyzer, FaceFrameObservation, FaceMetrics

from .composite_scorer import CompositeScorer

logger = logging.getLogger(__name__)


class TaskSession:
    """
    Drive both analyzers and the scorer for one task attempt.

    Usage:
        session = TaskSession(motion, face, CompositeScorer(config), store=store)
        session.start()
        session.on_acceleration(reading)
        session.on_frame(observation)
        result = session.finish(performance)
    """

    def __init__(
        self,
        motion_analyzer: MotionAnalyzer,
        face_analyzer: FaceAnalyzer,
        scorer: CompositeScorer,
        store=None,
        on_result: Optional[Callable[[AssessmentResult], None]] = None
    ):
        self.motion = motion_analyzer
        self.face = face_analyzer
        self.scorer = scorer
        self.store = store
        self.on_result = on_result
        self.result: Optional[AssessmentResult] = None
        self._started = False

    @property
    def is_running(self) -> bool:
        return self._started and self.result is None

    def start(self, now_ms: Optional[float] = None):
        """Reset both analyzers and begin tracking."""
        self.result = None
        self.motion.stop_tracking()
        self.motion.start_tracking()
        self.face.start(now_ms)
        self._started = True
        logger.info("Task session started")

    def on_acceleration(self, reading: SensorReading):
        self.motion.ingest(reading)

    def on_rotation(self, reading: SensorReading):
        self.motion.ingest_rotation(reading)

    def on_frame(self, observation: Optional[FaceFrameObservation]):
        # Detector failures arrive as None
        if observation is None:
            self.face.ingest_no_face()
        else:
            self.face.ingest(observation)

    def snapshot(self) -> Tuple[MotionMetrics, FaceMetrics]:
        """Live metrics for UI feedback."""
        return self.motion.current_metrics(), self.face.current_metrics()

    def stop(self):
        """Stop both analyzers. Idempotent."""
        self.motion.stop_tracking()
        self.face.stop()

    def finish(
        self,
        performance: TaskPerformanceSummary,
        task_duration_seconds: Optional[float] = None
    ) -> AssessmentResult:
        """
        Stop tracking, score the attempt and hand the result to the store.

        Calling finish again returns the same result.
        """
        if self.result is not None:
            return self.result

        self.stop()
        motion_metrics = self.motion.final_metrics()
        face_metrics = self.face.final_metrics()

        self.result = self.scorer.score(
            performance, face_metrics, motion_metrics, task_duration_seconds
        )

        if self.store is not None:
            self.store.save(self.result.task_type, self.result)
        if self.on_result is not None:
            self.on_result(self.result)

        logger.info(
            f"Task session finished: {self.result.task_type} "
            f"probability={self.result.adhd_probability_score}"
        )
        return self.result
