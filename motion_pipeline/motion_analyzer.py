"""
Streaming motion analysis from accelerometer and gyroscope readings.

Behavioral markers extracted:
1. Restlessness - share of tracked time spent moving
2. Fidgeting - share of restless time spent in small, repetitive motion
3. General movement - weighted frequency of medium/large movements
4. Direction changes and sudden movements - debounced event counts

Engineering decisions:
- Per-axis moving average, then the differential between consecutive
  filtered vectors; gravity and slow drift cancel out
- Everything runs online; no look-ahead and bounded work per reading
- Stationary device (phone put down) pauses restlessness and fidgeting
  accumulation and reports both as 0; earlier history is kept
- Fidgeting needs corroborating pattern evidence, not just small motion
- One lock per analyzer; sensor callbacks and metric queries may come from
  different threads
"""

import logging
import math
import threading
from dataclasses import dataclass, asdict
from typing import Dict, Optional

import numpy as np

from .fidget_detector import FidgetPatternDetector
from .motion_config import MotionConfig
from .ring_buffer import RingBuffer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SensorReading:
    """
    One raw accelerometer or gyroscope reading.

    Attributes:
        timestamp_ms: Reading time in milliseconds (monotonic)
        x, y, z: Axis values (m/s^2 for acceleration, rad/s for rotation)
    """
    timestamp_ms: float
    x: float
    y: float
    z: float

    def is_finite(self) -> bool:
        return all(math.isfinite(v) for v in (self.timestamp_ms, self.x, self.y, self.z))

    @classmethod
    def from_dict(cls, data: Dict) -> 'SensorReading':
        return cls(
            timestamp_ms=float(data.get('timestamp', data.get('timestamp_ms', float('nan')))),
            x=float(data.get('x', float('nan'))),
            y=float(data.get('y', float('nan'))),
            z=float(data.get('z', float('nan'))),
        )


@dataclass(frozen=True)
class MotionSample:
    """Filtered differential reading."""
    timestamp_ms: float
    x: float
    y: float
    z: float
    magnitude: float


@dataclass(frozen=True)
class MotionMetrics:
    """
    Motion snapshot.

    Attributes:
        fidgeting_score: Fidgeting time as % of restless time (0-100)
        general_movement_score: Weighted medium/large movement frequency (0-100)
        direction_changes: Debounced direction reversals (capped)
        sudden_movements: Debounced sudden movements (capped)
        movement_intensity: Mean differential magnitude over the buffer
        restlessness: Restless time as % of tracked time (0-100)
        rotation_intensity: Mean gyroscope angular speed (rad/s)
        sample_count: Buffered differential samples behind this snapshot
    """
    fidgeting_score: int = 0
    general_movement_score: int = 0
    direction_changes: int = 0
    sudden_movements: int = 0
    movement_intensity: float = 0.0
    restlessness: int = 0
    rotation_intensity: float = 0.0
    sample_count: int = 0

    def to_dict(self) -> Dict:
        return asdict(self)


def _percent(part: float, whole: float) -> int:
    if whole <= 0:
        return 0
    return int(np.clip(round(part * 100.0 / whole), 0, 100))


class MotionAnalyzer:
    """
    Online motion analyzer.

    Usage:
        analyzer = MotionAnalyzer(MotionConfig.from_config(config))
        analyzer.start_tracking()
        analyzer.ingest(SensorReading(t, x, y, z))       # sensor thread
        live = analyzer.current_metrics()                # poller thread
        analyzer.stop_tracking()
        final = analyzer.final_metrics()
    """

    def __init__(self, config: Optional[MotionConfig] = None):
        self.config = config or MotionConfig()
        self._lock = threading.RLock()
        self._active = False

        cfg = self.config
        self._filter = RingBuffer(cfg.filter_window_size, 3)
        # rows: timestamp, dx, dy, dz, magnitude
        self._samples = RingBuffer(cfg.buffer_capacity, 5)
        self._rotation = RingBuffer(cfg.rotation_buffer_capacity, 1)
        self._patterns = FidgetPatternDetector(cfg)
        self._clear_state()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_tracking(self) -> bool:
        return self._active

    @property
    def is_stationary(self) -> bool:
        return self._stationary

    def start_tracking(self):
        """Begin a fresh tracking attempt. No-op when already tracking."""
        with self._lock:
            if self._active:
                return
            self._clear_state()
            self._active = True
        logger.info("Motion tracking started")

    def stop_tracking(self):
        """Stop accepting readings. Idempotent; state is kept for final_metrics()."""
        with self._lock:
            if not self._active:
                return
            self._active = False
        logger.info("Motion tracking stopped")

    def reset_tracking(self):
        """Discard all accumulated state without changing the tracking flag."""
        with self._lock:
            self._clear_state()
        logger.debug("Motion tracking reset")

    def _clear_state(self):
        self._filter.clear()
        self._samples.clear()
        self._rotation.clear()
        self._patterns.reset()

        self._prev_filtered = None
        self._last_timestamp = None

        self._quiet_run = 0
        self._stationary = False

        self._tracked_ms = 0.0
        self._restless = False
        self._restless_ms = 0.0
        self._last_movement_ms = None
        self._fidgeting = False
        self._fidget_ms = 0.0

        self._direction_changes = 0
        self._last_direction_change_ms = None
        self._sudden_movements = 0
        self._last_sudden_ms = None

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    def ingest(self, reading: SensorReading):
        """Process one accelerometer reading."""
        if not reading.is_finite():
            logger.debug("Ignoring non-finite accelerometer reading")
            return

        with self._lock:
            if not self._active:
                return

            self._filter.append((reading.x, reading.y, reading.z))
            if not self._filter.is_full:
                return

            filtered = self._filter.mean()
            if self._prev_filtered is None:
                self._prev_filtered = filtered
                self._last_timestamp = reading.timestamp_ms
                return

            diff = filtered - self._prev_filtered
            self._prev_filtered = filtered
            magnitude = float(np.linalg.norm(diff))

            self._process(MotionSample(
                timestamp_ms=reading.timestamp_ms,
                x=float(diff[0]),
                y=float(diff[1]),
                z=float(diff[2]),
                magnitude=magnitude
            ))

    def ingest_rotation(self, reading: SensorReading):
        """Process one gyroscope reading."""
        if not reading.is_finite():
            logger.debug("Ignoring non-finite gyroscope reading")
            return

        with self._lock:
            if not self._active:
                return
            speed = math.sqrt(reading.x ** 2 + reading.y ** 2 + reading.z ** 2)
            self._rotation.append((speed,))

    def _process(self, sample: MotionSample):
        cfg = self.config
        ts = sample.timestamp_ms

        if self._last_timestamp is None:
            dt = 0.0
        else:
            dt = float(np.clip(ts - self._last_timestamp, 0.0, cfg.max_sample_gap_ms))
        self._last_timestamp = ts

        self._samples.append((ts, sample.x, sample.y, sample.z, sample.magnitude))

        self._update_stationary(sample.magnitude)
        if self._stationary:
            return

        self._tracked_ms += dt
        self._update_restlessness(sample, dt)

        if sample.magnitude >= cfg.noise_threshold:
            unit = np.array([sample.x, sample.y, sample.z]) / sample.magnitude
            if self._patterns.update(ts, unit):
                self._count_direction_change(ts)

        if sample.magnitude >= cfg.sudden_movement_threshold:
            self._count_sudden_movement(ts)

        self._update_fidgeting(sample, dt)

    def _update_stationary(self, magnitude: float):
        cfg = self.config
        if magnitude < cfg.noise_threshold:
            self._quiet_run += 1
            if not self._stationary and self._quiet_run >= cfg.stationary_run_length:
                self._enter_stationary()
            return

        self._quiet_run = 0
        if self._stationary and magnitude > cfg.noise_threshold * cfg.stationary_release_factor:
            self._stationary = False
            logger.debug("Device moving again, leaving stationary state")

    def _enter_stationary(self):
        # Accumulated time is kept; _process skips stationary samples entirely
        self._stationary = True
        self._restless = False
        self._last_movement_ms = None
        self._fidgeting = False
        self._patterns.reset()
        logger.debug("Device stationary, suppressing restlessness and fidgeting")

    def _update_restlessness(self, sample: MotionSample, dt: float):
        cfg = self.config
        if sample.magnitude >= cfg.meaningful_movement_threshold:
            self._restless = True
            self._last_movement_ms = sample.timestamp_ms
        elif self._restless and sample.timestamp_ms - self._last_movement_ms > cfg.restless_exit_ms:
            self._restless = False

        if self._restless:
            self._restless_ms += dt

    def _update_fidgeting(self, sample: MotionSample, dt: float):
        cfg = self.config
        magnitude = sample.magnitude
        in_band = cfg.fidget_threshold <= magnitude < cfg.medium_movement_threshold
        above_band = magnitude >= cfg.medium_movement_threshold

        # Movement above the band is deliberate and ends the fidget sub-state
        if not self._restless or above_band:
            self._fidgeting = False
        else:
            evidence = self._patterns.evaluate(sample.timestamp_ms)
            if not evidence.is_fidgeting(cfg.min_evidence):
                self._fidgeting = False
            elif in_band:
                self._fidgeting = True

        if self._fidgeting:
            self._fidget_ms += dt

    def _count_direction_change(self, ts: float):
        cfg = self.config
        if self._direction_changes >= cfg.max_direction_changes:
            return
        if (self._last_direction_change_ms is not None and
                ts - self._last_direction_change_ms < cfg.direction_change_spacing_ms):
            return
        self._direction_changes += 1
        self._last_direction_change_ms = ts

    def _count_sudden_movement(self, ts: float):
        cfg = self.config
        if self._sudden_movements >= cfg.max_sudden_movements:
            return
        if (self._last_sudden_ms is not None and
                ts - self._last_sudden_ms < cfg.sudden_movement_spacing_ms):
            return
        self._sudden_movements += 1
        self._last_sudden_ms = ts

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def current_metrics(self) -> MotionMetrics:
        """Compute a snapshot from the current buffers. Does not mutate state."""
        cfg = self.config
        with self._lock:
            n = len(self._samples)
            if n < cfg.min_samples:
                return MotionMetrics()

            magnitudes = self._samples.view()[:, 4]
            medium = int(np.count_nonzero(
                (magnitudes >= cfg.medium_movement_threshold) &
                (magnitudes < cfg.large_movement_threshold)
            ))
            large = int(np.count_nonzero(magnitudes >= cfg.large_movement_threshold))
            general = (medium + cfg.large_movement_weight * large) * 100.0 / n

            if self._stationary:
                restlessness = 0
                fidgeting = 0
            else:
                restlessness = _percent(self._restless_ms, self._tracked_ms)
                fidgeting = _percent(self._fidget_ms, self._restless_ms)

            rotation = float(self._rotation.mean()[0]) if len(self._rotation) else 0.0

            return MotionMetrics(
                fidgeting_score=fidgeting,
                general_movement_score=int(np.clip(round(general), 0, 100)),
                direction_changes=self._direction_changes,
                sudden_movements=self._sudden_movements,
                movement_intensity=float(np.mean(magnitudes)),
                restlessness=restlessness,
                rotation_intensity=rotation,
                sample_count=n
            )

    def final_metrics(self) -> MotionMetrics:
        """Snapshot intended for scoring once tracking has stopped."""
        metrics = self.current_metrics()
        logger.info(
            f"Final motion metrics - restlessness: {metrics.restlessness}, "
            f"fidgeting: {metrics.fidgeting_score}, "
            f"direction changes: {metrics.direction_changes}, "
            f"sudden movements: {metrics.sudden_movements}"
        )
        return metrics
