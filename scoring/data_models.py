"""
Data models for task performance input and assessment output.
"""

import math
from dataclasses import dataclass, field, asdict
from typing import Dict, List, Tuple

import numpy as np


def _count(value) -> int:
    try:
        value = float(value)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(value) or value < 0:
        return 0
    return int(value)


def _amount(value) -> float:
    try:
        value = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(value) or value < 0:
        return 0.0
    return value


@dataclass(frozen=True)
class TaskPerformanceSummary:
    """
    Final counters for one completed task, produced by the task runner.

    Attributes:
        task_type: Task identifier ('cpt', 'go_no_go', 'reading', ...)
        correct_responses: Correct responses to targets
        incorrect_responses: Commission errors (responses on non-targets / inhibit trials)
        missed_responses: Omission errors (targets without a response)
        premature_responses: False starts (responses before the stimulus)
        average_response_time_ms: Mean response time (0 if unknown)
        response_time_variability_ms: Response time standard deviation (0 if unknown)
        duration_seconds: Task duration
        response_times_ms: Individual response times, when available
    """
    task_type: str = "cpt"
    correct_responses: int = 0
    incorrect_responses: int = 0
    missed_responses: int = 0
    premature_responses: int = 0
    average_response_time_ms: float = 0.0
    response_time_variability_ms: float = 0.0
    duration_seconds: float = 0.0
    response_times_ms: Tuple[float, ...] = ()

    def __post_init__(self):
        # Degenerate counters become neutral values instead of faults
        for name in ('correct_responses', 'incorrect_responses',
                     'missed_responses', 'premature_responses'):
            object.__setattr__(self, name, _count(getattr(self, name)))
        for name in ('average_response_time_ms', 'response_time_variability_ms',
                     'duration_seconds'):
            object.__setattr__(self, name, _amount(getattr(self, name)))
        times = tuple(t for t in (_amount(t) for t in self.response_times_ms) if t > 0)
        object.__setattr__(self, 'response_times_ms', times)

    @property
    def total_trials(self) -> int:
        return self.correct_responses + self.incorrect_responses + self.missed_responses

    @property
    def responses(self) -> int:
        return self.correct_responses + self.incorrect_responses

    @property
    def accuracy(self) -> float:
        """Percent correct over all trials (0 when no trials)."""
        if self.total_trials == 0:
            return 0.0
        return self.correct_responses * 100.0 / self.total_trials

    @property
    def miss_rate(self) -> float:
        if self.total_trials == 0:
            return 0.0
        return self.missed_responses / self.total_trials

    @property
    def commission_rate(self) -> float:
        if self.responses == 0:
            return 0.0
        return self.incorrect_responses / self.responses

    @property
    def premature_rate(self) -> float:
        attempts = self.total_trials + self.premature_responses
        if attempts == 0:
            return 0.0
        return self.premature_responses / attempts

    @property
    def mean_response_time(self) -> float:
        if self.average_response_time_ms > 0:
            return self.average_response_time_ms
        if self.response_times_ms:
            return float(np.mean(self.response_times_ms))
        return 0.0

    @property
    def response_variability(self) -> float:
        if self.response_time_variability_ms > 0:
            return self.response_time_variability_ms
        if len(self.response_times_ms) >= 2:
            return float(np.std(self.response_times_ms))
        return 0.0

    @property
    def has_response_times(self) -> bool:
        return self.mean_response_time > 0

    def fast_response_ratio(self, fast_threshold_ms: float) -> float:
        """Share of recorded responses faster than ``fast_threshold_ms``."""
        if not self.response_times_ms:
            return 0.0
        fast = sum(1 for t in self.response_times_ms if t < fast_threshold_ms)
        return fast / len(self.response_times_ms)

    @classmethod
    def from_dict(cls, data: Dict) -> 'TaskPerformanceSummary':
        return cls(
            task_type=str(data.get('task_type', 'cpt')),
            correct_responses=data.get('correct_responses', 0),
            incorrect_responses=data.get('incorrect_responses', 0),
            missed_responses=data.get('missed_responses', 0),
            premature_responses=data.get('premature_responses', 0),
            average_response_time_ms=data.get('average_response_time_ms', 0.0),
            response_time_variability_ms=data.get('response_time_variability_ms', 0.0),
            duration_seconds=data.get('duration_seconds', 0.0),
            response_times_ms=tuple(data.get('response_times_ms', ())),
        )


@dataclass(frozen=True)
class BehavioralMarker:
    """
    One interpretable signal surfaced in the report.

    Attributes:
        name: Display name
        value: Observed value
        threshold: Reference "typical" value
        significance: Fixed importance weight (1 = mild, 3 = high)
        description: What the marker means
        higher_is_better: True for metrics where low values are the concern
                          (accuracy, sustained attention, face visibility)
    """
    name: str
    value: float
    threshold: float
    significance: int
    description: str = ""
    higher_is_better: bool = False

    @property
    def weight(self) -> float:
        """
        Ranking weight: significance x value / threshold.

        For higher-is-better markers the ratio is mirrored around the
        threshold (2 - value / threshold, floored at 0), so a shortfall ranks
        like an excess of the same size.
        """
        if self.threshold <= 0:
            return 0.0
        ratio = self.value / self.threshold
        if self.higher_is_better:
            ratio = max(0.0, 2.0 - ratio)
        return self.significance * ratio

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass(frozen=True)
class AssessmentResult:
    """
    Scored assessment for one completed task. All scores are 0-100.
    """
    adhd_probability_score: int
    confidence_level: int
    attention_score: int
    hyperactivity_score: int
    impulsivity_score: int
    behavioral_markers: Tuple[BehavioralMarker, ...] = field(default_factory=tuple)
    assessment_duration_ms: int = 0
    task_type: str = "cpt"
    explanation: str = ""

    def to_dict(self) -> Dict:
        data = asdict(self)
        data['behavioral_markers'] = [m.to_dict() for m in self.behavioral_markers]
        return data

    @classmethod
    def from_dict(cls, data: Dict) -> 'AssessmentResult':
        markers: List[BehavioralMarker] = [
            BehavioralMarker(**m) for m in data.get('behavioral_markers', [])
        ]
        return cls(
            adhd_probability_score=int(data['adhd_probability_score']),
            confidence_level=int(data['confidence_level']),
            attention_score=int(data['attention_score']),
            hyperactivity_score=int(data['hyperactivity_score']),
            impulsivity_score=int(data['impulsivity_score']),
            behavioral_markers=tuple(markers),
            assessment_duration_ms=int(data.get('assessment_duration_ms', 0)),
            task_type=str(data.get('task_type', 'cpt')),
            explanation=str(data.get('explanation', '')),
        )
