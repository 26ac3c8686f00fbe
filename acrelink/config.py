"""
Configuration loading.

Settings live in ``config/config.yaml``. Sections missing from the file
fall back to the defaults below, key by key.
"""

import copy
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parent.parent
DEFAULT_CONFIG_PATH = PROJECT_ROOT / 'config' / 'config.yaml'

DEFAULTS: Dict[str, Any] = {
    'technician': {'name': 'Parker'},
    'storage': {'path': 'data/service_storage.json'},
    'seed': {'random_seed': None},
    'sites': [
        {'id': 'demo-a', 'name': 'Demo Site A', 'info': 'Hay Farm', 'seed_count': 10,
         'center': [36.12, -115.17]},
        {'id': 'demo-b', 'name': 'Demo Site B', 'info': 'Orchard', 'seed_count': 12,
         'center': [36.73, -119.68]},
        {'id': 'demo-c', 'name': 'Demo Site C', 'info': 'Wheat Farm', 'seed_count': 8,
         'center': [36.87, -119.79]},
    ],
    'geolocation': {
        'provider': 'none',
        'enable_high_accuracy': False,
        'timeout_seconds': 10,
        'maximum_age_seconds': 0,
        'center': [36.12, -115.17],
        'accuracy_range_m': [3.0, 15.0],
    },
    'dashboard': {
        'refresh_interval_seconds': 10,
        'history_size': 20,
    },
    'report': {'output_dir': 'reports'},
    'logging': {
        'console': {'enabled': True},
        'file': {
            'enabled': True,
            'path': 'logs/service.log',
            'max_bytes': 10485760,
            'backup_count': 5,
        },
    },
}


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load configuration from YAML, layered over the defaults.

    Args:
        config_path: Path to config.yaml (defaults to config/config.yaml)

    Returns:
        Configuration dictionary
    """
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH

    if not path.exists():
        if config_path:
            raise FileNotFoundError(f"Configuration file not found: {path}")
        logger.info(f"No configuration file at {path}, using defaults")
        config = copy.deepcopy(DEFAULTS)
        config['project_root'] = str(Path.cwd())
        return config

    with open(path, 'r', encoding='utf-8') as f:
        loaded = yaml.safe_load(f) or {}

    if not isinstance(loaded, dict):
        raise ValueError(f"Configuration file {path} must contain a mapping")

    config = _merge(DEFAULTS, loaded)
    config.setdefault('project_root', str(path.resolve().parent.parent))
    return config


def resolve_path(config: Dict[str, Any], value: str) -> Path:
    """Resolve a configured path relative to the project root."""
    path = Path(value)
    if path.is_absolute():
        return path
    return Path(config.get('project_root', PROJECT_ROOT)) / path
