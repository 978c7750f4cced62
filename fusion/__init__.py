"""
Multimodal fusion module.

This package combines task performance with motion and face evidence:
- Domain scores from all three inputs, renormalized over what was observed
- Overall probability as a weighted aggregate of domain scores
- Confidence driven by signal coverage

Session handling:
- Analyzers are injected by the task runner; no shared global instances
- One session per task attempt, always starting from clean state
"""

from .composite_scorer import CompositeScorer, DEFAULT_DOMAIN_WEIGHTS
from .task_session import TaskSession

__all__ = [
    'CompositeScorer',
    'DEFAULT_DOMAIN_WEIGHTS',
    'TaskSession',
]
