#!/usr/bin/env python3
"""
Replay script for the behavioral screening engine.

Feeds a recorded task session through the complete engine:
1. Motion analysis (accelerometer + gyroscope stream)
2. Face analysis (per-frame face-detector output)
3. Composite scoring (task counters + final motion/face metrics)
4. Optional persistence and a JSON report

Usage:
    python main.py --recording session.json --config configs/thresholds.yaml --output results/

Recording format (JSON):
    {
      "task_type": "cpt",
      "duration_seconds": 60,
      "start_ms": 0,
      "performance": {"correct_responses": 40, "missed_responses": 3, ...},
      "accelerometer": [{"timestamp_ms": 0, "x": 0.1, "y": 9.8, "z": 0.2}, ...],
      "gyroscope": [{"timestamp_ms": 0, "x": 0.0, "y": 0.01, "z": 0.0}, ...],
      "face_frames": [{"timestamp_ms": 0, "face_found": true, ...}, null, ...]
    }

A null face frame stands for a detector failure and is counted as no face.
"""

import argparse
import json
import logging
from pathlib import Path
import sys
from typing import Dict, Optional

from fusion import CompositeScorer, TaskSession
from motion_pipeline import MotionAnalyzer, MotionConfig, SensorReading
from scoring import TaskPerformanceSummary, interpretation_text, rank_markers
from utils.config_loader import load_config
from utils.results_store import ResultsStore
from video_pipeline import FaceAnalyzer, FaceConfig, FaceFrameObservation

logger = logging.getLogger(__name__)


def setup_logging(log_file: str = 'screening.log'):
    """Configure root logging: console plus log file."""
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler(sys.stdout)
        ]
    )


def load_recording(recording_path) -> Dict:
    recording_path = Path(recording_path)
    if not recording_path.exists():
        raise FileNotFoundError(f"Recording not found: {recording_path}")

    with open(recording_path, 'r') as f:
        recording = json.load(f)

    if not isinstance(recording, dict):
        raise ValueError(f"Recording root must be an object: {recording_path}")
    return recording


def _readings(entries, label: str):
    for entry in entries or []:
        try:
            yield SensorReading.from_dict(entry)
        except (TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Skipping malformed {label} entry: {e}")


def _frames(entries):
    """Parse face frames; untimed failures reuse the previous frame time."""
    last_ts = None
    for entry in entries or []:
        frame = None
        if entry is not None:
            try:
                frame = FaceFrameObservation.from_dict(entry)
            except (TypeError, ValueError, AttributeError) as e:
                logger.warning(f"Malformed face frame treated as no face: {e}")

        if frame is None:
            frame = FaceFrameObservation.no_face(last_ts)
        elif frame.timestamp_ms is not None:
            last_ts = frame.timestamp_ms
        yield frame


def replay_recording(
    recording: Dict,
    config: Dict,
    store: Optional[ResultsStore] = None
) -> Dict:
    """
    Replay one recorded task attempt and build the report.

    Args:
        recording: Parsed recording dict
        config: Configuration dictionary
        store: Optional results store to persist the result

    Returns:
        Report dictionary (result, final metrics, ranked markers, interpretation)
    """
    session_config = config.get('session', {}) or {}

    performance_data = dict(recording.get('performance', {}) or {})
    performance_data.setdefault('task_type', recording.get('task_type', 'cpt'))
    performance = TaskPerformanceSummary.from_dict(performance_data)

    duration = recording.get('duration_seconds')
    if duration is None:
        duration = performance.duration_seconds or session_config.get('default_task_duration_s')

    frames = list(_frames(recording.get('face_frames')))
    start_ms = recording.get('start_ms')
    if start_ms is None:
        # Default to the first timestamped frame
        start_ms = next((f.timestamp_ms for f in frames if f.timestamp_ms is not None), 0.0)
    start_ms = float(start_ms)

    # Recorded frames carry their own time; untimed frames never advance it
    session = TaskSession(
        MotionAnalyzer(MotionConfig.from_config(config)),
        FaceAnalyzer(FaceConfig.from_config(config), clock=lambda: start_ms),
        CompositeScorer(config),
        store=store
    )
    session.start(now_ms=start_ms)

    for reading in _readings(recording.get('accelerometer'), 'accelerometer'):
        session.on_acceleration(reading)
    for reading in _readings(recording.get('gyroscope'), 'gyroscope'):
        session.on_rotation(reading)
    for frame in frames:
        session.on_frame(frame)

    motion_metrics, face_metrics = session.snapshot()
    result = session.finish(performance, duration)

    report = {
        'task_type': result.task_type,
        'result': result.to_dict(),
        'interpretation': interpretation_text(result.adhd_probability_score),
        'top_markers': [m.to_dict() for m in rank_markers(result.behavioral_markers, limit=5)],
        'motion_metrics': motion_metrics.to_dict(),
        'face_metrics': face_metrics.to_dict(),
    }
    if store is not None:
        report['overall_probability'] = store.overall_probability()

    return report


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description='Behavioral screening engine - replay a recorded task session',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Basic usage
  python main.py --recording session.json --output results/

  # With custom config and persistent results
  python main.py --recording session.json --config custom.yaml --store data/results.db
        """
    )

    parser.add_argument(
        '--recording',
        type=str,
        required=True,
        help='Path to recorded session JSON'
    )

    parser.add_argument(
        '--config',
        type=str,
        default='configs/thresholds.yaml',
        help='Path to configuration YAML file (default: configs/thresholds.yaml)'
    )

    parser.add_argument(
        '--output',
        type=str,
        default='data/outputs',
        help='Output directory for the JSON report (default: data/outputs)'
    )

    parser.add_argument(
        '--store',
        type=str,
        default=None,
        help='SQLite results database (default: storage.db_path from config, else not persisted)'
    )

    parser.add_argument(
        '--log-file',
        type=str,
        default='screening.log',
        help='Log file path (default: screening.log)'
    )

    args = parser.parse_args()
    setup_logging(args.log_file)

    recording_path = Path(args.recording)
    if not recording_path.exists():
        logger.error(f"Recording not found: {recording_path}")
        sys.exit(1)

    config_path = Path(args.config)
    if not config_path.exists():
        logger.error(f"Config file not found: {config_path}")
        sys.exit(1)

    config = load_config(str(config_path))

    store = None
    db_path = args.store or (config.get('storage', {}) or {}).get('db_path')
    if db_path:
        store = ResultsStore(db_path)

    try:
        report = replay_recording(load_recording(recording_path), config, store=store)

        output_dir = Path(args.output)
        output_dir.mkdir(parents=True, exist_ok=True)
        report_path = output_dir / f"{recording_path.stem}_{report['task_type']}_report.json"
        with open(report_path, 'w') as f:
            json.dump(report, f, indent=2)

        result = report['result']
        logger.info("=" * 60)
        logger.info(f"ADHD probability score: {result['adhd_probability_score']}/100 "
                    f"(confidence {result['confidence_level']})")
        logger.info(f"  Attention: {result['attention_score']}  "
                    f"Hyperactivity: {result['hyperactivity_score']}  "
                    f"Impulsivity: {result['impulsivity_score']}")
        logger.info(f"  Report: {report_path}")
        logger.info("=" * 60)

        sys.exit(0)

    except KeyboardInterrupt:
        logger.warning("Replay interrupted by user")
        sys.exit(1)

    except Exception as e:
        logger.error(f"Replay failed: {type(e).__name__}: {str(e)}")
        logger.exception("Full traceback:")
        sys.exit(1)

    finally:
        if store is not None:
            store.close()


if __name__ == '__main__':
    main()
