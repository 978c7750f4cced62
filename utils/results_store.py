"""
Results store for completed assessments.

Keeps every AssessmentResult per task type in SQLite so the presentation
layer can show the latest result per task and an overall probability
across tasks.

Key features:
- One row per completed task attempt, full result kept as JSON
- Latest result per task type
- Overall probability: mean of the latest result of each task type
- Clear-all for a fresh screening
"""

import json
import logging
import sqlite3
import threading
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

import numpy as np

from scoring import AssessmentResult

logger = logging.getLogger(__name__)

MEMORY_DB = ":memory:"


class ResultsStore:
    """
    SQLite-backed assessment results.

    Usage:
        store = ResultsStore("data/results.db")
        store.save("cpt", result)
        latest = store.get_latest("cpt")
        overall = store.overall_probability()
    """

    def __init__(self, db_path: str = MEMORY_DB):
        """
        Initialize results store.

        Args:
            db_path: Path to SQLite database file, or ":memory:"
        """
        self.db_path = str(db_path)
        if self.db_path != MEMORY_DB:
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        self._lock = threading.Lock()
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._init_database()

        logger.info(f"Results store initialized: {self.db_path}")

    @classmethod
    def from_config(cls, config: Dict) -> 'ResultsStore':
        storage_config = config.get('storage', {}) or {}
        return cls(storage_config.get('db_path', MEMORY_DB))

    def _init_database(self):
        """Create tables if they don't exist."""
        with self._lock, self._conn:
            self._conn.execute("""
                CREATE TABLE IF NOT EXISTS results (
                    result_id INTEGER PRIMARY KEY AUTOINCREMENT,
                    task_type TEXT NOT NULL,
                    timestamp DATETIME NOT NULL,

                    adhd_probability_score INTEGER,
                    confidence_level INTEGER,
                    attention_score INTEGER,
                    hyperactivity_score INTEGER,
                    impulsivity_score INTEGER,

                    result_json TEXT NOT NULL
                )
            """)
            self._conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_results_task ON results(task_type, result_id)"
            )

    def save(self, task_type: str, result: AssessmentResult) -> int:
        """
        Store one result.

        Returns:
            Row id of the stored result
        """
        with self._lock, self._conn:
            cursor = self._conn.execute("""
                INSERT INTO results (
                    task_type, timestamp,
                    adhd_probability_score, confidence_level,
                    attention_score, hyperactivity_score, impulsivity_score,
                    result_json
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                task_type,
                datetime.now().isoformat(),
                result.adhd_probability_score,
                result.confidence_level,
                result.attention_score,
                result.hyperactivity_score,
                result.impulsivity_score,
                json.dumps(result.to_dict())
            ))
            result_id = cursor.lastrowid

        logger.info(f"Saved {task_type} result (id={result_id})")
        return result_id

    def get_latest(self, task_type: str) -> Optional[AssessmentResult]:
        """Most recent result for a task type, or None."""
        with self._lock:
            row = self._conn.execute(
                "SELECT result_json FROM results WHERE task_type = ? "
                "ORDER BY result_id DESC LIMIT 1",
                (task_type,)
            ).fetchone()

        if not row:
            return None
        return AssessmentResult.from_dict(json.loads(row['result_json']))

    def get_all_latest(self) -> Dict[str, AssessmentResult]:
        """Latest result of every task type."""
        with self._lock:
            rows = self._conn.execute("""
                SELECT task_type, result_json FROM results
                WHERE result_id IN (SELECT MAX(result_id) FROM results GROUP BY task_type)
                ORDER BY task_type
            """).fetchall()

        return {
            row['task_type']: AssessmentResult.from_dict(json.loads(row['result_json']))
            for row in rows
        }

    def history(self, task_type: str, limit: int = 20) -> List[Dict]:
        """Score summary rows for a task type, newest first."""
        with self._lock:
            rows = self._conn.execute("""
                SELECT result_id, timestamp, adhd_probability_score, confidence_level,
                       attention_score, hyperactivity_score, impulsivity_score
                FROM results WHERE task_type = ?
                ORDER BY result_id DESC LIMIT ?
            """, (task_type, limit)).fetchall()
        return [dict(row) for row in rows]

    def overall_probability(self) -> int:
        """Mean probability over the latest result of each task type (0 if empty)."""
        latest = self.get_all_latest()
        if not latest:
            return 0
        scores = [r.adhd_probability_score for r in latest.values()]
        return int(np.clip(round(float(np.mean(scores))), 0, 100))

    def clear_all(self):
        with self._lock, self._conn:
            self._conn.execute("DELETE FROM results")
        logger.info("Cleared all stored results")

    def close(self):
        with self._lock:
            self._conn.close()
