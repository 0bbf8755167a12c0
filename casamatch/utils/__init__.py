"""
casamatch Utilities Package

Shared utilities:
- Configuration management
- Logging setup
"""

from casamatch.utils.config import MatchingConfig, load_config
from casamatch.utils.logging import get_logger, setup_logging, setup_logging_from_config

__all__ = ["MatchingConfig", "load_config", "get_logger", "setup_logging", "setup_logging_from_config"]
