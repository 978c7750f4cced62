"""
Unit tests for face analysis modules.

Tests cover:
- Blink detection and refractory debounce
- Expression classification and change debounce
- Face analyzer look-away, visibility and attention metrics
- Lifecycle and degenerate input
"""

import threading

import pytest # pyright: ignore[reportMissingImports]
import numpy as np
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from video_pipeline import (
    BlinkDetector,
    Expression,
    ExpressionTracker,
    FaceAnalyzer,
    FaceConfig,
    FaceFrameObservation,
    FaceMetrics,
    classify_expression
)

FRAME_MS = 100.0


def face(ts, yaw=0.0, pitch=0.0, roll=0.0, eyes=0.9, smile=0.1,
         size=200.0, cx=320.0, cy=240.0) -> FaceFrameObservation:
    return FaceFrameObservation(
        face_found=True,
        box_width=size,
        box_height=size,
        box_center_x=cx,
        box_center_y=cy,
        yaw=yaw,
        pitch=pitch,
        roll=roll,
        left_eye_open_prob=eyes,
        right_eye_open_prob=eyes,
        smile_prob=smile,
        timestamp_ms=ts
    )


def running(config=None) -> FaceAnalyzer:
    analyzer = FaceAnalyzer(config, clock=lambda: 0.0)
    analyzer.start(now_ms=0.0)
    return analyzer


class TestBlinkDetector:
    """Test blink FSM."""

    def test_single_blink(self):
        detector = BlinkDetector()
        assert detector.update(0, 0.9, 0.9) is None
        assert detector.update(50, 0.1, 0.1) is None
        event = detector.update(150, 0.9, 0.9)

        assert event is not None
        assert event.duration_ms == 100
        assert event.rapid is True
        assert detector.blink_count == 1

    def test_closures_within_refractory_count_once(self):
        detector = BlinkDetector()
        frames = [(0, 0.9), (50, 0.1), (100, 0.1), (150, 0.9),
                  (200, 0.1), (250, 0.1), (300, 0.9)]
        for ts, prob in frames:
            detector.update(ts, prob, prob)
        assert detector.blink_count == 1

        for ts, prob in [(800, 0.1), (850, 0.1), (900, 0.9)]:
            detector.update(ts, prob, prob)
        assert detector.blink_count == 2

    def test_duration_limits(self):
        detector = BlinkDetector()
        # 40 ms flicker and 1 s closure are not blinks
        for ts, prob in [(0, 0.9), (10, 0.1), (50, 0.9),
                         (1000, 0.1), (2000, 0.9)]:
            detector.update(ts, prob, prob)
        assert detector.blink_count == 0

    def test_unknown_probabilities_ignored(self):
        detector = BlinkDetector()
        assert detector.update(0, None, 0.9) is None
        assert detector.update(50, float('nan'), 0.1) is None
        assert detector.update(100, -1.0, -1.0) is None
        assert detector.blink_count == 0


class TestExpressionTracker:
    """Test expression classification and change counting."""

    def test_classification(self):
        assert classify_expression(0.9, 0.9, 0, 0) == Expression.VERY_HAPPY
        assert classify_expression(0.6, 0.9, 0, 0) == Expression.HAPPY
        assert classify_expression(0.3, 0.9, 0, 0) == Expression.SLIGHT_SMILE
        assert classify_expression(0.1, 0.9, 0, 0) == Expression.NEUTRAL
        assert classify_expression(0.1, 0.9, 0, 25) == Expression.CONFUSED
        assert classify_expression(0.1, 0.2, 15, 0) == Expression.YAWNING

    def test_changes_debounced(self):
        tracker = ExpressionTracker()
        assert not tracker.update(0, 0.1, 0.9, 0, 0).counted_change
        assert tracker.update(100, 0.9, 0.9, 0, 0).counted_change
        # Back to neutral inside the debounce window
        assert not tracker.update(200, 0.1, 0.9, 0, 0).counted_change
        assert tracker.update(1700, 0.1, 0.9, 0, 0).counted_change
        assert tracker.changes == 2
        assert tracker.samples == 4

    def test_small_probability_shift_not_counted(self):
        tracker = ExpressionTracker()
        tracker.update(0, 0.9, 0.9, 0, 0)
        # very happy -> happy with a 0.11 drop
        update = tracker.update(2000, 0.79, 0.9, 0, 0)
        assert update.expression == Expression.HAPPY
        assert not update.counted_change
        assert tracker.changes == 1

    def test_spike_flagged(self):
        tracker = ExpressionTracker()
        tracker.update(0, 0.1, 0.9, 0, 0)
        assert tracker.update(100, 0.95, 0.9, 0, 0).spike

    def test_change_cap(self):
        tracker = ExpressionTracker(max_changes=2)
        for k in range(6):
            tracker.update(k * 2000.0, 0.9 if k % 2 == 0 else 0.1, 0.9, 0, 0)
        assert tracker.changes == 2


class TestFaceAnalyzer:
    """Test face analyzer metrics."""

    def test_metrics_before_start_are_defaults(self):
        analyzer = FaceAnalyzer(clock=lambda: 0.0)
        analyzer.ingest(face(100))
        assert analyzer.current_metrics() == FaceMetrics()

    def test_zero_frames(self):
        analyzer = running()
        assert analyzer.final_metrics() == FaceMetrics()

    def test_attentive_face(self):
        analyzer = running()
        for i in range(101):
            analyzer.ingest(face(i * FRAME_MS))

        metrics = analyzer.final_metrics()
        assert metrics.look_away_count == 0
        assert metrics.face_visible_percentage == 100
        assert metrics.elapsed_ms == 10000
        assert metrics.attention_duration_ms == 10000
        assert metrics.sustained_attention_score >= 90
        assert metrics.processed_frames == 101

    def test_no_face_for_whole_task(self):
        analyzer = running()
        for i in range(601):
            analyzer.ingest_no_face(i * FRAME_MS)

        metrics = analyzer.final_metrics()
        assert metrics.look_away_count == 1
        assert metrics.face_visible_percentage == 0
        assert metrics.total_look_away_time_ms == pytest.approx(60000, abs=FRAME_MS)
        assert metrics.attention_duration_ms == 0
        assert metrics.sustained_attention_score == 0

    def test_undersized_face_counts_as_no_face(self):
        analyzer = running()
        for i in range(20):
            analyzer.ingest(face(i * FRAME_MS, size=60.0))

        metrics = analyzer.current_metrics()
        assert metrics.face_visible_percentage == 0
        assert metrics.look_away_count == 1

    def test_head_pose_look_away_and_recovery(self):
        analyzer = running()
        frames = (
            [face(t) for t in np.arange(0, 2100, FRAME_MS)] +
            [face(t, yaw=50.0) for t in np.arange(2100, 3100, FRAME_MS)] +
            [face(t) for t in np.arange(3100, 5100, FRAME_MS)]
        )
        for frame in frames:
            analyzer.ingest(frame)

        metrics = analyzer.final_metrics()
        assert metrics.look_away_count == 1
        assert metrics.total_look_away_time_ms == 1000
        assert metrics.attention_duration_ms == 4000
        assert metrics.focus_recovery_time_ms == pytest.approx(1000.0)
        assert metrics.average_look_away_duration_ms == pytest.approx(1000.0)
        assert metrics.face_visible_percentage == 100

    def test_open_look_away_counts_to_latest_frame(self):
        analyzer = running()
        analyzer.ingest(face(0))
        analyzer.ingest(face(1000, pitch=45.0))
        analyzer.ingest(face(2500, pitch=45.0))

        metrics = analyzer.current_metrics()
        assert metrics.total_look_away_time_ms == 1500
        assert metrics.attention_duration_ms == 1000

    def test_blinks_counted_through_analyzer(self):
        analyzer = running()
        ts = 0.0
        for _ in range(6):
            for eyes in (0.9, 0.9, 0.9, 0.9, 0.1, 0.1, 0.9, 0.9, 0.9, 0.9):
                analyzer.ingest(face(ts, eyes=eyes))
                ts += FRAME_MS

        metrics = analyzer.final_metrics()
        assert metrics.blink_count == 6
        assert metrics.blink_rate > 0

    def test_facial_movement_and_distractibility(self):
        analyzer = running()
        for i in range(50):
            # 100 px jumps every frame exceed 4 x the movement threshold
            analyzer.ingest(face(i * FRAME_MS, cx=300.0 + 100.0 * (i % 2)))

        metrics = analyzer.final_metrics()
        assert metrics.facial_movement_score > 0
        assert metrics.distractibility_index > 0

    def test_current_metrics_idempotent(self):
        analyzer = running()
        for i in range(30):
            analyzer.ingest(face(i * FRAME_MS, yaw=40.0 if i % 7 == 0 else 0.0))
        assert analyzer.current_metrics() == analyzer.current_metrics()

    def test_reset_law(self):
        analyzer = running()
        for i in range(30):
            analyzer.ingest(face(i * FRAME_MS, yaw=60.0 * (i % 2)))
        analyzer.reset(now_ms=5000.0)

        assert analyzer.final_metrics() == FaceMetrics()
        assert analyzer.is_active

    def test_stop_suppresses_ingest(self):
        analyzer = running()
        for i in range(10):
            analyzer.ingest(face(i * FRAME_MS))
        analyzer.stop()
        analyzer.stop()
        before = analyzer.final_metrics()

        analyzer.ingest_no_face(5000.0)
        assert analyzer.final_metrics() == before

    def test_out_of_order_frames_do_not_run_backwards(self):
        analyzer = running()
        analyzer.ingest(face(1000))
        analyzer.ingest(face(500))
        metrics = analyzer.current_metrics()
        assert metrics.elapsed_ms == 1000

    def test_metric_invariants_on_random_frames(self):
        rng = np.random.default_rng(3)
        analyzer = running(FaceConfig.from_config({'face': {'yaw_threshold_deg': 30}}))
        for i in range(500):
            ts = i * 33.0
            if rng.random() < 0.2:
                analyzer.ingest_no_face(ts)
            else:
                analyzer.ingest(face(
                    ts,
                    yaw=rng.normal(0, 25),
                    pitch=rng.normal(0, 20),
                    roll=rng.normal(0, 10),
                    eyes=rng.random(),
                    smile=rng.random(),
                    size=rng.uniform(50, 300),
                    cx=rng.uniform(0, 640)
                ))

            if i % 50 == 0:
                metrics = analyzer.current_metrics()
                assert metrics.attention_duration_ms == (
                    metrics.elapsed_ms - metrics.total_look_away_time_ms
                )
                assert metrics.attention_duration_ms >= 0
                assert 0 <= metrics.face_visible_percentage <= 100
                assert 0 <= metrics.sustained_attention_score <= 100
                assert 0 <= metrics.distractibility_index <= 100


class TestFaceFrameObservation:
    """Test detector output parsing."""

    def test_from_camel_case_dict(self):
        obs = FaceFrameObservation.from_dict({
            'faceFound': True, 'boxWidth': 150, 'boxHeight': 160,
            'yaw': 5, 'leftEyeOpenProb': 0.8, 'timestamp': 42
        })
        assert obs.face_found
        assert obs.box_height == 160.0
        assert obs.left_eye_open_prob == 0.8
        assert obs.right_eye_open_prob is None
        assert obs.timestamp_ms == 42.0

    def test_no_face(self):
        obs = FaceFrameObservation.no_face(10.0)
        assert not obs.face_found
        assert obs.timestamp_ms == 10.0


class TestFaceAnalyzerConcurrency:
    """Test ingest and snapshot calls from separate threads."""

    def test_ingest_poll_and_stop_from_threads(self):
        analyzer = running()
        rng = np.random.default_rng(5)
        frames = [
            face(i * 33.0, yaw=rng.normal(0, 30), pitch=rng.normal(0, 20),
                 eyes=rng.random(), smile=rng.random(), cx=rng.uniform(200, 440))
            if rng.random() > 0.1 else FaceFrameObservation.no_face(i * 33.0)
            for i in range(5000)
        ]
        halfway = threading.Event()
        ingest_done = threading.Event()
        errors = []
        snapshots = []

        def ingest():
            try:
                for i, frame in enumerate(frames):
                    analyzer.ingest(frame)
                    if i == len(frames) // 2:
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
        analyzer.stop()
        for thread in threads:
            thread.join(10.0)

        assert errors == []
        assert snapshots
        for metrics in snapshots:
            assert metrics.attention_duration_ms + metrics.total_look_away_time_ms == (
                metrics.elapsed_ms
            )
            assert 0 <= metrics.face_visible_percentage <= 100
            assert 0 <= metrics.sustained_attention_score <= 100
            assert 0 <= metrics.distractibility_index <= 100

        final = analyzer.final_metrics()
        assert len(frames) // 2 < final.processed_frames < len(frames) + 1
        analyzer.ingest_no_face(len(frames) * 33.0)
        assert analyzer.final_metrics() == final
        assert not analyzer.is_active


class TestFrameClock:
    """Test frame timestamps against the analysis start time."""

    def test_warns_when_first_frame_uses_another_clock(self, caplog):
        analyzer = running()
        with caplog.at_level('WARNING', logger='video_pipeline.face_analyzer'):
            analyzer.ingest(face(1.7e12))
            analyzer.ingest(face(1.7e12 + FRAME_MS))
        warnings = [r for r in caplog.records if 'different clocks' in r.getMessage()]
        assert len(warnings) == 1

    def test_matching_clock_does_not_warn(self, caplog):
        analyzer = FaceAnalyzer(clock=lambda: 0.0)
        analyzer.start(now_ms=1.7e12)
        with caplog.at_level('WARNING', logger='video_pipeline.face_analyzer'):
            analyzer.ingest(face(1.7e12 + FRAME_MS))
        assert not [r for r in caplog.records if 'different clocks' in r.getMessage()]
        assert analyzer.current_metrics().elapsed_ms == 100
