"""
Configuration Management

Load and validate configuration from YAML and environment variables,
and turn the ``matching`` section into the value object the engine uses.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import yaml
from dotenv import load_dotenv

from casamatch.core.exceptions import ConfigError

BASE_DIR = Path(__file__).parent.parent.parent

DEFAULT_KNOWN_CITIES = ('milano', 'roma', 'torino', 'firenze', 'napoli')
DEFAULT_PRIVATE_MARKERS = (
    'privato',
    'privata',
    'venditaprivata',
    'proprietario',
    'proprietaria',
)
DEFAULT_STREET_KEYWORDS = ('via', 'viale', 'piazza', 'corso')


def load_config(
    config_path: Optional[Union[str, Path]] = None,
    env_path: Optional[Union[str, Path]] = None
) -> Dict[str, Any]:
    """
    Load configuration from YAML file and environment variables.

    Environment variables override YAML values.

    Args:
        config_path: Path to YAML config file (default: config/config.yaml)
        env_path: Path to .env file (default: .env in the repo root)

    Returns:
        Configuration dictionary
    """
    if env_path is None:
        env_path = BASE_DIR / ".env"
    else:
        env_path = Path(env_path)

    if config_path is None:
        config_path = Path(os.environ.get('CASAMATCH_CONFIG', BASE_DIR / "config" / "config.yaml"))
    else:
        config_path = Path(config_path)

    if env_path.exists():
        load_dotenv(env_path)

    config = {}
    if config_path.exists():
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e

    if not isinstance(config, dict):
        raise ConfigError(f"Config root must be a mapping: {config_path}")

    # Expand environment variable references in config
    config = _expand_env_vars(config)

    # Override with direct environment variables
    config = _apply_env_overrides(config)

    config.setdefault('logging', {})
    config['logging'].setdefault('level', 'INFO')
    config.setdefault('matching', {})

    return config


def _expand_env_vars(obj: Any) -> Any:
    """Recursively expand ${VAR} references in config values."""
    if isinstance(obj, dict):
        return {k: _expand_env_vars(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_expand_env_vars(item) for item in obj]
    elif isinstance(obj, str) and obj.startswith('${') and obj.endswith('}'):
        var_name = obj[2:-1]
        return os.environ.get(var_name, obj)
    return obj


def _apply_env_overrides(config: Dict[str, Any]) -> Dict[str, Any]:
    """Apply direct environment variable overrides."""

    # Logging
    if os.environ.get('CASAMATCH_LOG_LEVEL'):
        config.setdefault('logging', {})['level'] = os.environ['CASAMATCH_LOG_LEVEL']

    # Matching
    if os.environ.get('CASAMATCH_MIN_SCORE'):
        try:
            min_score = int(os.environ['CASAMATCH_MIN_SCORE'])
        except ValueError as e:
            raise ConfigError(f"CASAMATCH_MIN_SCORE must be an integer: {e}") from e
        config.setdefault('matching', {})['min_score'] = min_score

    if os.environ.get('CASAMATCH_KNOWN_CITIES'):
        config.setdefault('matching', {})['known_cities'] = split_csv(os.environ['CASAMATCH_KNOWN_CITIES'])

    return config


@dataclass(frozen=True)
class MatchingConfig:
    """
    Tunable lists and thresholds for matching and deduplication.

    Every list the legacy code hard-coded lives here so callers can run
    the engine against synthetic data.
    """
    known_cities: Tuple[str, ...] = DEFAULT_KNOWN_CITIES
    private_markers: Tuple[str, ...] = DEFAULT_PRIVATE_MARKERS
    street_keywords: Tuple[str, ...] = DEFAULT_STREET_KEYWORDS

    # Scoring
    price_overage_tolerance: float = 0.10
    min_score: int = 50

    # Candidate gate (legacy tolerances)
    apply_tolerance_gate: bool = True
    size_tolerance: float = 0.20
    price_tolerance: float = 0.20

    # Search areas
    point_radius_m: float = 2000.0

    # Listing clusters
    cluster_distance_m: float = 500.0
    address_similarity_threshold: float = 65.0
    cluster_match_threshold: float = 70.0
    exclusivity_keywords: Tuple[str, ...] = ('esclusiva', 'esclusività', 'esclusivita')

    @classmethod
    def from_config(cls, config: Optional[Dict[str, Any]] = None) -> 'MatchingConfig':
        """Build from the ``matching`` section of :func:`load_config` output."""
        section = (config or {}).get('matching') or {}
        if not isinstance(section, dict):
            raise ConfigError("'matching' section must be a mapping")

        kwargs: Dict[str, Any] = {}
        for name in cls.__dataclass_fields__:
            if name not in section or section[name] is None:
                continue
            value = section[name]
            if isinstance(cls.__dataclass_fields__[name].default, tuple):
                if isinstance(value, str):
                    value = split_csv(value)
                if not isinstance(value, (list, tuple)):
                    raise ConfigError(f"'matching.{name}' must be a list")
                value = tuple(str(v).lower() for v in value)
            kwargs[name] = value

        try:
            return cls(**kwargs)
        except TypeError as e:
            raise ConfigError(f"Invalid matching config: {e}") from e

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        data: Dict[str, Any] = {}
        for name in self.__dataclass_fields__:
            value = getattr(self, name)
            data[name] = list(value) if isinstance(value, tuple) else value
        return data


def get_matching_config(config_path: Optional[Union[str, Path]] = None) -> MatchingConfig:
    """Load configuration from disk and return the matching section."""
    return MatchingConfig.from_config(load_config(config_path))


def get_log_level(config: Dict[str, Any]) -> str:
    """Get logging level from config."""
    return (config.get('logging') or {}).get('level') or 'INFO'


def split_csv(value: str) -> List[str]:
    """Split a comma separated CLI/env value into trimmed items."""
    return [item.strip() for item in value.split(',') if item.strip()]
