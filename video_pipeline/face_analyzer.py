"""
Streaming face analysis from per-frame face-detector output.

Behavioral markers extracted:
1. Look-away episodes (count, total and average dwell, recovery time)
2. Blinks (debounced count and rate)
3. Sustained attention (longest attending streak + attention quality)
4. Expression variability (debounced label changes)
5. Distractibility (attention, flagged events, look-away frequency)

Engineering decisions:
- The detector runs elsewhere; this module only sees its structured output
- An undersized face, a missing face and a detector failure are all the same
  "no face" frame and count toward looking away
- Time comes from frame timestamps; snapshots are taken at the latest frame
- Bounded work per frame; one lock per analyzer instance

Clinical rationale:
- Frequent or long look-aways -> attention instability
- Short attending streaks -> difficulty sustaining focus
- Rapid blinks, expression spikes and head jumps -> distractibility
"""

import logging
import math
import threading
import time
from collections import deque
from dataclasses import dataclass, asdict
from typing import Callable, Dict, Optional

import numpy as np

from .blink_detector import BlinkDetector
from .expression_tracker import ENGAGEMENT, ExpressionTracker
from .face_config import FaceConfig

logger = logging.getLogger(__name__)


def _monotonic_ms() -> float:
    return time.monotonic() * 1000.0


@dataclass(frozen=True)
class FaceFrameObservation:
    """
    Face-detector output for one processed camera frame.

    Attributes:
        face_found: Whether the detector returned a face
        box_width, box_height: Bounding box size in pixels
        box_center_x, box_center_y: Bounding box center in pixels
        yaw, pitch, roll: Head Euler angles in degrees
        left_eye_open_prob, right_eye_open_prob: Eye-open probabilities (None if unknown)
        smile_prob: Smile probability (None if unknown)
        timestamp_ms: Frame time; the analyzer clock is used when omitted
    """
    face_found: bool
    box_width: float = 0.0
    box_height: float = 0.0
    box_center_x: float = 0.0
    box_center_y: float = 0.0
    yaw: float = 0.0
    pitch: float = 0.0
    roll: float = 0.0
    left_eye_open_prob: Optional[float] = None
    right_eye_open_prob: Optional[float] = None
    smile_prob: Optional[float] = None
    timestamp_ms: Optional[float] = None

    @classmethod
    def no_face(cls, timestamp_ms: Optional[float] = None) -> 'FaceFrameObservation':
        return cls(face_found=False, timestamp_ms=timestamp_ms)

    @classmethod
    def from_dict(cls, data: Dict) -> 'FaceFrameObservation':
        def opt(key):
            value = data.get(key)
            return None if value is None else float(value)

        return cls(
            face_found=bool(data.get('faceFound', data.get('face_found', False))),
            box_width=float(data.get('boxWidth', data.get('box_width', 0.0))),
            box_height=float(data.get('boxHeight', data.get('box_height', 0.0))),
            box_center_x=float(data.get('boxCenterX', data.get('box_center_x', 0.0))),
            box_center_y=float(data.get('boxCenterY', data.get('box_center_y', 0.0))),
            yaw=float(data.get('yaw', 0.0)),
            pitch=float(data.get('pitch', 0.0)),
            roll=float(data.get('roll', 0.0)),
            left_eye_open_prob=opt('leftEyeOpenProb') if 'leftEyeOpenProb' in data else opt('left_eye_open_prob'),
            right_eye_open_prob=opt('rightEyeOpenProb') if 'rightEyeOpenProb' in data else opt('right_eye_open_prob'),
            smile_prob=opt('smileProb') if 'smileProb' in data else opt('smile_prob'),
            timestamp_ms=opt('timestamp') if 'timestamp' in data else opt('timestamp_ms'),
        )


@dataclass(frozen=True)
class FaceMetrics:
    """
    Face snapshot. Durations in milliseconds, scores and percentages 0-100.

    Invariant: attention_duration_ms == elapsed_ms - total_look_away_time_ms >= 0
    """
    look_away_count: int = 0
    attention_duration_ms: int = 0
    total_look_away_time_ms: int = 0
    blink_count: int = 0
    blink_rate: float = 0.0
    emotion_changes: int = 0
    face_visible_percentage: int = 0
    average_look_away_duration_ms: float = 0.0
    facial_movement_score: int = 0
    emotion_variability_score: int = 0
    attention_lapse_frequency: float = 0.0
    focus_recovery_time_ms: float = 0.0
    sustained_attention_score: int = 0
    distractibility_index: int = 0
    elapsed_ms: int = 0
    processed_frames: int = 0

    def to_dict(self) -> Dict:
        return asdict(self)


def _eye_openness(obs: FaceFrameObservation) -> Optional[float]:
    probs = [
        p for p in (obs.left_eye_open_prob, obs.right_eye_open_prob)
        if p is not None and math.isfinite(p) and p >= 0.0
    ]
    if not probs:
        return None
    return float(np.clip(np.mean(probs), 0.0, 1.0))


class FaceAnalyzer:
    """
    Online face-behavior analyzer.

    Usage:
        analyzer = FaceAnalyzer(FaceConfig.from_config(config))
        analyzer.start()
        analyzer.ingest(observation)      # frame-analysis callback
        live = analyzer.current_metrics() # poller
        analyzer.stop()
        final = analyzer.final_metrics()

    Frame ``timestamp_ms`` values must share the analyzer clock's time base.
    When the camera stamps frames on its own clock, pass the first frame's
    time to ``start(now_ms=...)``; otherwise elapsed time is meaningless.
    """

    def __init__(
        self,
        config: Optional[FaceConfig] = None,
        clock: Callable[[], float] = _monotonic_ms
    ):
        """
        Initialize face analyzer.

        Args:
            config: Thresholds (defaults when None)
            clock: Millisecond clock used for start time and for frames
                   without their own timestamp
        """
        self.config = config or FaceConfig()
        self._clock = clock
        self._lock = threading.RLock()
        self._active = False

        cfg = self.config
        self._blinks = BlinkDetector(
            eye_open_threshold=cfg.eye_open_threshold,
            min_duration_ms=cfg.blink_min_ms,
            max_duration_ms=cfg.blink_max_ms,
            refractory_ms=cfg.blink_refractory_ms,
            rapid_ms=cfg.rapid_blink_ms
        )
        self._expressions = ExpressionTracker(
            debounce_ms=cfg.emotion_change_debounce_ms,
            min_delta=cfg.emotion_min_delta,
            spike_delta=cfg.emotion_spike_delta,
            max_changes=cfg.max_emotion_changes,
            yawn_eye_threshold=cfg.yawn_eye_threshold,
            yawn_pitch_deg=cfg.yawn_pitch_deg,
            confused_roll_deg=cfg.confused_roll_deg
        )
        self._clear_state(0.0)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_active(self) -> bool:
        return self._active

    def start(self, now_ms: Optional[float] = None):
        """Start a fresh attempt; restarts when already running."""
        start_ms = self._clock() if now_ms is None else now_ms
        with self._lock:
            self._clear_state(start_ms)
            self._active = True
        logger.info("Face analysis started")

    def stop(self):
        """Stop accepting frames. Idempotent."""
        with self._lock:
            if not self._active:
                return
            self._active = False
        logger.info("Face analysis stopped")

    def reset(self, now_ms: Optional[float] = None):
        """Discard all accumulated state, keeping the running flag."""
        start_ms = self._clock() if now_ms is None else now_ms
        with self._lock:
            self._clear_state(start_ms)
        logger.debug("Face analysis reset")

    def _clear_state(self, start_ms: float):
        self._start_ms = start_ms
        self._last_frame_ms = start_ms
        self._clock_checked = False

        self._total_frames = 0
        self._valid_frames = 0

        self._looking_away = False
        self._look_away_start_ms = 0.0
        self._look_away_count = 0
        self._closed_look_away_ms = 0.0
        self._recovery_times = deque(maxlen=self.config.recovery_history)

        self._consecutive_attending = 0
        self._longest_streak = 0
        self._quality_sum = 0.0
        self._quality_samples = 0

        self._last_position = None
        self._facial_movement_count = 0
        self._distractibility_events = 0

        self._blinks.reset()
        self._expressions.reset()

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    def ingest(self, observation: FaceFrameObservation):
        """Process one detector result."""
        with self._lock:
            if not self._active:
                return

            ts = self._frame_time(observation)
            self._total_frames += 1

            if not self._is_valid_face(observation):
                self._handle_no_face(ts)
                return

            self._valid_frames += 1
            self._track_position(observation)

            cfg = self.config
            head_away = (abs(observation.yaw) > cfg.yaw_threshold_deg or
                         abs(observation.pitch) > cfg.pitch_threshold_deg)
            self._update_look_away(head_away, ts)

            blink = self._blinks.update(
                ts, observation.left_eye_open_prob, observation.right_eye_open_prob
            )
            if blink is not None and blink.rapid:
                self._flag_distractibility()

            eye_open = _eye_openness(observation)
            smile = observation.smile_prob
            if smile is None or not math.isfinite(smile):
                smile = 0.0
            expression = self._expressions.update(
                ts, float(np.clip(smile, 0.0, 1.0)), eye_open,
                observation.pitch, observation.roll
            )
            if expression.spike:
                self._flag_distractibility()

            if self._looking_away:
                self._consecutive_attending = 0
            else:
                self._consecutive_attending += 1
                self._longest_streak = max(self._longest_streak, self._consecutive_attending)
                self._quality_sum += self._attention_quality(
                    observation, eye_open, ENGAGEMENT[expression.expression]
                )
                self._quality_samples += 1

    def ingest_no_face(self, timestamp_ms: Optional[float] = None):
        """Explicit no-face signal (no detection, detector failure, missing image)."""
        self.ingest(FaceFrameObservation.no_face(timestamp_ms))

    def _frame_time(self, observation: FaceFrameObservation) -> float:
        ts = observation.timestamp_ms
        if ts is None or not math.isfinite(ts):
            ts = self._clock()
        elif not self._clock_checked:
            self._clock_checked = True
            skew = ts - self._start_ms
            if abs(skew) > self.config.clock_skew_warning_ms:
                logger.warning(
                    f"First frame timestamp is {skew:.0f} ms from analysis start; "
                    f"frame times and start time likely use different clocks"
                )
        # Frames are processed in arrival order; never let time run backwards
        ts = max(ts, self._last_frame_ms)
        self._last_frame_ms = ts
        return ts

    def _is_valid_face(self, obs: FaceFrameObservation) -> bool:
        if not obs.face_found:
            return False
        values = (obs.box_width, obs.box_height, obs.box_center_x, obs.box_center_y,
                  obs.yaw, obs.pitch, obs.roll)
        if not all(math.isfinite(v) for v in values):
            return False
        size = self.config.min_face_size_px
        return obs.box_width >= size and obs.box_height >= size

    def _handle_no_face(self, ts: float):
        self._blinks.abort()
        self._last_position = None
        self._consecutive_attending = 0
        self._update_look_away(True, ts)

    def _update_look_away(self, looking_away: bool, ts: float):
        if looking_away and not self._looking_away:
            self._looking_away = True
            self._look_away_start_ms = ts
            self._look_away_count += 1
            logger.debug(f"Look away detected: {self._look_away_count}")
        elif not looking_away and self._looking_away:
            self._looking_away = False
            dwell = ts - self._look_away_start_ms
            self._closed_look_away_ms += dwell
            self._recovery_times.append(dwell)

    def _track_position(self, obs: FaceFrameObservation):
        position = (obs.box_center_x, obs.box_center_y)
        previous = self._last_position
        self._last_position = position
        if previous is None:
            return

        cfg = self.config
        movement = math.hypot(position[0] - previous[0], position[1] - previous[1])
        if movement <= cfg.facial_movement_threshold_px:
            return

        if self._facial_movement_count < cfg.max_facial_movement:
            self._facial_movement_count += 1
        if movement > cfg.facial_movement_threshold_px * cfg.large_jump_factor:
            self._flag_distractibility()

    def _flag_distractibility(self):
        if self._distractibility_events < self.config.max_distractibility_events:
            self._distractibility_events += 1

    def _attention_quality(
        self,
        obs: FaceFrameObservation,
        eye_open: Optional[float],
        engagement: float
    ) -> float:
        cfg = self.config
        deviation = 0.5 * (abs(obs.yaw) / cfg.yaw_threshold_deg +
                           abs(obs.pitch) / cfg.pitch_threshold_deg)
        pose_score = float(np.clip(1.0 - deviation, 0.0, 1.0))

        terms = [(pose_score, cfg.quality_pose_weight),
                 (engagement, cfg.quality_expression_weight)]
        if eye_open is not None:
            terms.append((eye_open, cfg.quality_eye_weight))

        total_weight = sum(w for _, w in terms)
        if total_weight <= 0:
            return 0.0
        return float(np.clip(sum(v * w for v, w in terms) / total_weight, 0.0, 1.0))

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def current_metrics(self) -> FaceMetrics:
        """Snapshot at the latest processed frame. Does not mutate state."""
        with self._lock:
            if self._total_frames == 0:
                return FaceMetrics()
            return self._compute_metrics()

    def final_metrics(self) -> FaceMetrics:
        metrics = self.current_metrics()
        logger.info(
            f"Final face metrics - look aways: {metrics.look_away_count}, "
            f"blinks: {metrics.blink_count}, "
            f"distractibility: {metrics.distractibility_index}%"
        )
        return metrics

    def _compute_metrics(self) -> FaceMetrics:
        cfg = self.config
        elapsed = max(0.0, self._last_frame_ms - self._start_ms)

        look_away_total = self._closed_look_away_ms
        if self._looking_away:
            look_away_total += self._last_frame_ms - self._look_away_start_ms
        look_away_total = float(np.clip(look_away_total, 0.0, elapsed))
        elapsed_ms = int(round(elapsed))
        look_away_ms = min(int(round(look_away_total)), elapsed_ms)

        minutes = elapsed / 60000.0

        def per_minute(count: float) -> float:
            return count / minutes if minutes > 0 else 0.0

        face_visible = int(round(self._valid_frames * 100.0 / self._total_frames))

        mean_quality = (self._quality_sum / self._quality_samples
                        if self._quality_samples else 0.0)
        streak_ratio = self._longest_streak / self._total_frames
        sustained = 100.0 * (cfg.streak_weight * streak_ratio +
                             cfg.mean_quality_weight * mean_quality)
        sustained = int(np.clip(round(sustained), 0, 100))

        look_away_rate = per_minute(self._look_away_count)
        if elapsed > 0:
            event_factor = self._distractibility_events * 100.0 / cfg.max_distractibility_events
            look_away_factor = min(100.0, look_away_rate * 100.0 / cfg.look_away_rate_for_max)
            distractibility = (
                cfg.distractibility_attention_weight * (100 - sustained) +
                cfg.distractibility_event_weight * event_factor +
                cfg.distractibility_look_away_weight * look_away_factor
            )
            distractibility = int(np.clip(round(distractibility), 0, 100))
        else:
            distractibility = 0

        facial_movement = per_minute(self._facial_movement_count) * cfg.facial_movement_scale
        samples = self._expressions.samples
        emotion_variability = (
            self._expressions.changes * 100.0 / samples * cfg.emotion_variability_scale
            if samples else 0.0
        )

        return FaceMetrics(
            look_away_count=self._look_away_count,
            attention_duration_ms=elapsed_ms - look_away_ms,
            total_look_away_time_ms=look_away_ms,
            blink_count=self._blinks.blink_count,
            blink_rate=per_minute(self._blinks.blink_count),
            emotion_changes=self._expressions.changes,
            face_visible_percentage=int(np.clip(face_visible, 0, 100)),
            average_look_away_duration_ms=(
                look_away_total / self._look_away_count if self._look_away_count else 0.0
            ),
            facial_movement_score=int(np.clip(round(facial_movement), 0, 100)),
            emotion_variability_score=int(np.clip(round(emotion_variability), 0, 100)),
            attention_lapse_frequency=look_away_rate,
            focus_recovery_time_ms=(
                float(np.mean(self._recovery_times)) if self._recovery_times else 0.0
            ),
            sustained_attention_score=sustained,
            distractibility_index=distractibility,
            elapsed_ms=elapsed_ms,
            processed_frames=self._total_frames
        )
