"""Shared utilities for the behavioral screening engine."""

from .config_loader import load_config, merge_config, get_nested_config
from .metrics_poller import MetricsPoller
from .results_store import ResultsStore

__all__ = [
    'load_config',
    'merge_config',
    'get_nested_config',
    'MetricsPoller',
    'ResultsStore',
]
