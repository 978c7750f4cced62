"""Configuration management utilities."""

import copy
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

CONFIG_SECTIONS = ('motion', 'face', 'scoring', 'session', 'storage')


def load_config(config_path) -> Dict[str, Any]:
    """
    Load configuration from YAML file.

    Missing sections come back as empty dicts so callers can always do
    ``config['motion'].get(key, default)``.

    Args:
        config_path: Path to YAML configuration file (str or Path)

    Returns:
        Dictionary containing configuration

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If config file is malformed
        ValueError: If the top level is not a mapping
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    logger.info(f"Loading configuration from {config_path}")

    with open(config_path, 'r') as f:
        config = yaml.safe_load(f) or {}

    if not isinstance(config, dict):
        raise ValueError(f"Config root must be a mapping: {config_path}")

    for section in CONFIG_SECTIONS:
        if config.get(section) is None:
            config[section] = {}

    logger.debug(f"Loaded config keys: {list(config.keys())}")

    return config


def merge_config(base: Dict[str, Any], overrides: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Recursively merge ``overrides`` into a copy of ``base``.

    Example:
        merge_config(config, {'scoring': {'domain_weights': {'attention': 0.5}}})
    """
    merged = copy.deepcopy(base)
    for key, value in (overrides or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def get_nested_config(config: Dict[str, Any], key_path: str, default: Any = None) -> Any:
    """
    Get nested configuration value using dot notation.

    Example:
        get_nested_config(config, 'motion.noise_threshold', default=0.02)
    """
    value = config

    for key in key_path.split('.'):
        if isinstance(value, dict) and key in value:
            value = value[key]
        else:
            return default

    return value
