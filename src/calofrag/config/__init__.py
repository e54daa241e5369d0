"""Configuration loading system.

This package provides a YAML configuration loading system with:
- Hierarchical file includes with cycle detection
- Override semantics with dot-notation

Main Entry Point
----------------
load_config_file : Load a configuration file
"""

from .errors import (
    ConfigCycleError,
    ConfigError,
    ConfigIncludeError,
    ConfigTypeError,
    InvalidParameterError,
)
from .load import load_config, load_config_file

__all__ = [
    "load_config",
    "load_config_file",
    "ConfigError",
    "ConfigIncludeError",
    "ConfigCycleError",
    "ConfigTypeError",
    "InvalidParameterError",
]
