"""
Unit tests for motion pipeline modules.

Tests cover:
- Ring buffer
- Fidget pattern evidence
- Motion analyzer lifecycle, warm-up and snapshots
- Stationary device, drift and oscillation scenarios
- Event debouncing and caps
"""

import threading

import pytest # pyright: ignore[reportMissingImports]
import numpy as np
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from motion_pipeline import (
    FidgetEvidence,
    FidgetPatternDetector,
    MotionAnalyzer,
    MotionConfig,
    MotionMetrics,
    RingBuffer,
    SensorReading
)

SAMPLE_MS = 20.0  # 50 Hz


def feed(analyzer, xs, t0=0.0, dt_ms=SAMPLE_MS):
    """Feed x-axis values (gravity on z); returns the next timestamp."""
    for i, x in enumerate(xs):
        analyzer.ingest(SensorReading(t0 + i * dt_ms, float(x), 0.0, 9.81))
    return t0 + len(xs) * dt_ms


def oscillation(seconds: float, amplitude: float = 0.66, freq_hz: float = 2.0):
    t = np.arange(int(seconds * 1000 / SAMPLE_MS)) * SAMPLE_MS / 1000.0
    return amplitude * np.sin(2 * np.pi * freq_hz * t)


def square_wave(steps: int, height: float = 12.0, hold: int = 25):
    levels = []
    for k in range(steps + 1):
        levels.extend([height * (k % 2)] * hold)
    return levels


def tracking(config=None) -> MotionAnalyzer:
    analyzer = MotionAnalyzer(config)
    analyzer.start_tracking()
    return analyzer


class TestRingBuffer:
    """Test fixed-capacity ring buffer."""

    def test_append_and_evict(self):
        buf = RingBuffer(capacity=3, width=1)
        for v in range(5):
            buf.append((v,))

        assert len(buf) == 3
        assert buf.is_full
        assert buf.view()[:, 0].tolist() == [2.0, 3.0, 4.0]
        assert buf.last()[0] == 4.0
        assert buf.last(2)[0] == 2.0

    def test_mean_partial_and_full(self):
        buf = RingBuffer(capacity=4, width=2)
        assert buf.mean().tolist() == [0.0, 0.0]

        buf.append((1.0, 10.0))
        buf.append((3.0, 30.0))
        assert buf.mean().tolist() == [2.0, 20.0]

    def test_drop_older_than(self):
        buf = RingBuffer(capacity=5, width=2)
        for ts in (0, 100, 200, 300):
            buf.append((ts, 1.0))

        buf.drop_older_than(0, 150)
        assert buf.view()[:, 0].tolist() == [200.0, 300.0]

    def test_view_is_copy(self):
        buf = RingBuffer(capacity=2, width=1)
        buf.append((1.0,))
        snapshot = buf.view()
        snapshot[0, 0] = 99.0
        assert buf.last()[0] == 1.0

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            RingBuffer(capacity=0)

    def test_last_out_of_range(self):
        with pytest.raises(IndexError):
            RingBuffer(capacity=2).last()


class TestFidgetPatternDetector:
    """Test multi-evidence fidget detection."""

    def test_single_evidence_is_not_fidgeting(self):
        assert not FidgetEvidence(reversals=True).is_fidgeting()
        assert not FidgetEvidence(repeating=True).is_fidgeting()
        assert FidgetEvidence(reversals=True, repeating=True).is_fidgeting()

    def test_steady_direction_only_repeats(self):
        detector = FidgetPatternDetector(MotionConfig())
        unit = np.array([1.0, 0.0, 0.0])
        for i in range(10):
            assert detector.update(i * 100.0, unit) is False

        evidence = detector.evaluate(900.0)
        assert evidence.repeating
        assert not evidence.reversals
        assert not evidence.alternating
        assert evidence.count == 1

    def test_back_and_forth_has_all_evidence(self):
        detector = FidgetPatternDetector(MotionConfig())
        reversals = 0
        for i in range(8):
            unit = np.array([1.0 if i % 2 == 0 else -1.0, 0.0, 0.0])
            reversals += detector.update(i * 100.0, unit)

        evidence = detector.evaluate(700.0)
        assert reversals == 7
        assert evidence.reversals and evidence.repeating and evidence.alternating
        assert evidence.count == 3

    def test_evidence_expires(self):
        detector = FidgetPatternDetector(MotionConfig())
        for i in range(8):
            unit = np.array([1.0 if i % 2 == 0 else -1.0, 0.0, 0.0])
            detector.update(i * 100.0, unit)

        evidence = detector.evaluate(700.0 + 5000.0)
        assert evidence.count == 0


class TestMotionConfig:
    """Test configuration loading."""

    def test_defaults(self):
        cfg = MotionConfig.from_config({})
        assert cfg.noise_threshold == 0.02
        assert cfg.sudden_movement_threshold == 1.2

    def test_overrides(self):
        cfg = MotionConfig.from_config({'motion': {'max_sudden_movements': 10,
                                                   'noise_threshold': 0.05}})
        assert cfg.max_sudden_movements == 10
        assert isinstance(cfg.max_sudden_movements, int)
        assert cfg.noise_threshold == 0.05


class TestMotionAnalyzerLifecycle:
    """Test lifecycle, warm-up and snapshot semantics."""

    def test_metrics_before_start_are_defaults(self):
        analyzer = MotionAnalyzer()
        assert analyzer.current_metrics() == MotionMetrics()

        feed(analyzer, oscillation(2))
        assert analyzer.current_metrics() == MotionMetrics()

    def test_warm_up_needs_five_samples(self):
        analyzer = tracking()
        # 6 readings fill the filter, the 7th yields the first sample
        feed(analyzer, np.arange(10) * 0.1)
        assert analyzer.current_metrics() == MotionMetrics()

        analyzer = tracking()
        feed(analyzer, np.arange(11) * 0.1)
        assert analyzer.current_metrics().sample_count == 5

    def test_current_metrics_idempotent(self):
        analyzer = tracking()
        feed(analyzer, oscillation(3))
        assert analyzer.current_metrics() == analyzer.current_metrics()

    def test_stop_is_idempotent_and_suppresses_ingest(self):
        analyzer = tracking()
        next_ts = feed(analyzer, oscillation(3))
        analyzer.stop_tracking()
        analyzer.stop_tracking()
        before = analyzer.final_metrics()

        feed(analyzer, square_wave(4), t0=next_ts)
        assert analyzer.final_metrics() == before
        assert not analyzer.is_tracking

    def test_reset_law(self):
        analyzer = tracking()
        feed(analyzer, oscillation(3))
        analyzer.reset_tracking()
        assert analyzer.final_metrics() == MotionMetrics()

    def test_restart_discards_previous_attempt(self):
        analyzer = tracking()
        feed(analyzer, square_wave(4))
        analyzer.stop_tracking()
        analyzer.start_tracking()
        assert analyzer.current_metrics() == MotionMetrics()

    def test_non_finite_readings_ignored(self):
        xs = oscillation(3)
        clean = tracking()
        feed(clean, xs)

        noisy = tracking()
        for i, x in enumerate(xs):
            noisy.ingest(SensorReading(i * SAMPLE_MS, float(x), 0.0, 9.81))
            noisy.ingest(SensorReading(i * SAMPLE_MS + 1, float('nan'), 0.0, 9.81))

        assert noisy.current_metrics() == clean.current_metrics()

    def test_rotation_intensity(self):
        analyzer = tracking()
        for i in range(10):
            analyzer.ingest_rotation(SensorReading(i * SAMPLE_MS, 0.0, 0.3, 0.4))
        feed(analyzer, np.arange(20) * 0.1)

        assert analyzer.current_metrics().rotation_intensity == pytest.approx(0.5)


class TestMotionScenarios:
    """Test scoring behavior on synthetic signals."""

    def test_still_device_for_sixty_seconds(self):
        rng = np.random.default_rng(7)
        analyzer = tracking()
        feed(analyzer, rng.normal(0.0, 0.002, 3000))

        metrics = analyzer.final_metrics()
        assert analyzer.is_stationary
        assert metrics.fidgeting_score == 0
        assert metrics.restlessness == 0
        assert metrics.direction_changes == 0
        assert metrics.sudden_movements == 0
        assert metrics.general_movement_score == 0

    def test_oscillation_is_fidgeting(self):
        analyzer = tracking()
        feed(analyzer, oscillation(10))

        metrics = analyzer.current_metrics()
        assert metrics.restlessness >= 90
        assert metrics.fidgeting_score >= 60
        assert metrics.direction_changes > 10
        assert metrics.sudden_movements == 0
        assert metrics.general_movement_score == 0

    def test_steady_drift_is_restless_not_fidgeting(self):
        # Constant 0.1 step per sample: repeating vectors, no reversals
        analyzer = tracking()
        feed(analyzer, np.arange(500) * 0.1)

        metrics = analyzer.current_metrics()
        assert metrics.restlessness >= 95
        assert metrics.fidgeting_score == 0
        assert metrics.direction_changes == 0

    def test_stationary_reports_zero_and_keeps_history(self):
        analyzer = tracking()
        xs = oscillation(5)
        next_ts = feed(analyzer, xs)
        before = analyzer.current_metrics()
        assert before.fidgeting_score > 0

        next_ts = feed(analyzer, [xs[-1]] * 50, t0=next_ts)
        metrics = analyzer.current_metrics()
        assert analyzer.is_stationary
        assert metrics.restlessness == 0
        assert metrics.fidgeting_score == 0

        feed(analyzer, xs[-1] + oscillation(2), t0=next_ts)
        resumed = analyzer.current_metrics()
        assert not analyzer.is_stationary
        assert resumed.restlessness >= 80
        assert resumed.fidgeting_score > 0

    def test_short_pause_does_not_discard_earlier_restlessness(self):
        # 30 s restless drift, 1 s still, then 3 s of fidgeting
        analyzer = tracking()
        drift = np.arange(1500) * 0.1
        next_ts = feed(analyzer, drift)
        before = analyzer.current_metrics()
        assert before.restlessness >= 95
        assert before.fidgeting_score == 0

        next_ts = feed(analyzer, [drift[-1]] * 50, t0=next_ts)
        assert analyzer.is_stationary

        feed(analyzer, drift[-1] + oscillation(3), t0=next_ts)
        metrics = analyzer.final_metrics()
        assert metrics.restlessness >= 80
        assert metrics.fidgeting_score <= 30

    def test_sudden_movements_debounced(self):
        # Each step exceeds the sudden threshold on six consecutive samples
        analyzer = tracking()
        feed(analyzer, square_wave(10))

        metrics = analyzer.current_metrics()
        assert metrics.sudden_movements == 10
        assert metrics.direction_changes == 9
        assert metrics.general_movement_score > 0

    def test_event_caps(self):
        config = MotionConfig(max_sudden_movements=3, max_direction_changes=2)
        analyzer = tracking(config)
        feed(analyzer, square_wave(10))

        metrics = analyzer.current_metrics()
        assert metrics.sudden_movements == 3
        assert metrics.direction_changes == 2

    def test_metric_bounds_on_random_input(self):
        rng = np.random.default_rng(42)
        config = MotionConfig(max_sudden_movements=5, max_direction_changes=10)
        analyzer = tracking(config)
        for i in range(2000):
            x, y, z = rng.normal(0.0, 3.0, 3)
            analyzer.ingest(SensorReading(i * SAMPLE_MS, x, y, 9.81 + z))

        metrics = analyzer.current_metrics()
        for score in (metrics.fidgeting_score, metrics.general_movement_score,
                      metrics.restlessness):
            assert 0 <= score <= 100
        assert metrics.direction_changes <= 10
        assert metrics.sudden_movements <= 5
        assert np.isfinite(metrics.movement_intensity)


class TestMotionAnalyzerConcurrency:
    """Test ingest and snapshot calls from separate threads."""

    def test_ingest_poll_and_stop_from_threads(self):
        analyzer = tracking()
        rng = np.random.default_rng(11)
        readings = [
            SensorReading(i * SAMPLE_MS, x, y, 9.81 + z)
            for i, (x, y, z) in enumerate(rng.normal(0.0, 0.5, (6000, 3)))
        ]
        halfway = threading.Event()
        ingest_done = threading.Event()
        errors = []
        snapshots = []

        def ingest():
            try:
                for i, reading in enumerate(readings):
                    analyzer.ingest(reading)
                    if i == len(readings) // 2:
                        halfway.set()
            except Exception as e:
                errors.append(e)
            finally:
                halfway.set()
                ingest_done.set()

        def poll():
            try:
                while not ingest_done.is_set():
                    snapshots.append(analyzer.current_metrics())
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=ingest), threading.Thread(target=poll)]
        for thread in threads:
            thread.start()
        assert halfway.wait(10.0)
        analyzer.stop_tracking()
        for thread in threads:
            thread.join(10.0)

        assert errors == []
        assert snapshots
        for metrics in snapshots:
            for score in (metrics.fidgeting_score, metrics.general_movement_score,
                          metrics.restlessness):
                assert 0 <= score <= 100
            assert metrics.sample_count <= analyzer.config.buffer_capacity
            assert np.isfinite(metrics.movement_intensity)

        final = analyzer.final_metrics()
        feed(analyzer, oscillation(2), t0=len(readings) * SAMPLE_MS)
        assert analyzer.final_metrics() == final
        assert not analyzer.is_tracking
