"""Main configuration loading functions.

This module provides the primary entry points for loading configurations:
- load_config(): Load from a YAML string
- load_config_file(): Load from a file path
- _load_config_recursive(): Internal recursive loader with include support

A configuration may pull in other files through a top-level `include` key,
which accepts a single path or a list of paths. Relative paths are resolved
with respect to the directory of the including file. The content of the
including file takes precedence over the content it includes.
"""

import os
from typing import Any, Dict, List, Optional

import yaml

from .errors import ConfigCycleError, ConfigIncludeError
from .operations import deep_merge, parse_value, set_nested_value

__all__ = ["load_config", "load_config_file"]

# Top-level key used to include other configuration files
INCLUDE_KEY = "include"


def _load_config_recursive(
    cfg_path: Optional[str] = None,
    config_string: Optional[str] = None,
    root_dir: Optional[str] = None,
    include_stack: Optional[List[str]] = None,
) -> Dict[str, Any]:
    """Recursively load config with cycle detection.

    Parameters
    ----------
    cfg_path : Optional[str]
        Path to configuration file (mutually exclusive with config_string)
    config_string : Optional[str]
        YAML configuration string (mutually exclusive with cfg_path)
    root_dir : Optional[str]
        Root directory for resolving relative include paths.
        Defaults to directory of cfg_path when loading from file.
    include_stack : Optional[List[str]]
        Stack of currently-loading files (for cycle detection)

    Returns
    -------
    Dict[str, Any]
        Configuration content, includes resolved

    Raises
    ------
    ConfigCycleError
        If circular include detected
    ConfigIncludeError
        If included file not found
    ValueError
        If both or neither cfg_path and config_string are provided
    """
    # Validate inputs
    if (cfg_path is None) == (config_string is None):
        raise ValueError("Must provide exactly one of cfg_path or config_string")

    # Determine the identifier for cycle detection and root directory
    if cfg_path is not None:
        cfg_path = os.path.abspath(cfg_path)
        identifier = cfg_path
        if root_dir is None:
            root_dir = os.path.dirname(cfg_path)
    else:
        identifier = "<string>"
        if root_dir is None:
            root_dir = os.getcwd()

    # Cycle detection
    if include_stack is None:
        include_stack = []

    if identifier in include_stack and cfg_path is not None:
        raise ConfigCycleError(include_stack + [identifier])

    include_stack = include_stack + [identifier]

    # Load YAML
    try:
        if cfg_path is not None:
            with open(cfg_path, "r", encoding="utf-8") as f:
                main_config = yaml.safe_load(f)
        else:
            main_config = yaml.safe_load(config_string)
    except FileNotFoundError as exc:
        raise ConfigIncludeError(f"Configuration file not found: {cfg_path}") from exc
    except yaml.YAMLError as exc:
        source = cfg_path if cfg_path else "<string>"
        raise ConfigIncludeError(f"Error loading {source}: {exc}") from exc

    if main_config is None:
        return {}

    if not isinstance(main_config, dict):
        raise ConfigIncludeError(
            f"The configuration in {identifier} must be a dictionary, "
            f"got {type(main_config).__name__}."
        )

    # Process includes, in order
    includes = main_config.pop(INCLUDE_KEY, None) or []
    if isinstance(includes, str):
        includes = [includes]

    config = {}
    for include_file in includes:
        include_path = os.path.expandvars(os.path.expanduser(include_file))
        if not os.path.isabs(include_path):
            include_path = os.path.join(root_dir, include_path)

        included_config = _load_config_recursive(
            cfg_path=include_path, include_stack=include_stack
        )
        config = deep_merge(config, included_config)

    # Merge main config content
    return deep_merge(config, main_config)


def _apply_overrides(config, overrides):
    """Applies a set of dot-notation overrides to a configuration."""
    for key_path, value in (overrides or {}).items():
        config = set_nested_value(config, key_path, parse_value(value))

    return config


def load_config(
    config_str: str,
    root_dir: Optional[str] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Load a configuration from a YAML string.

    Parameters
    ----------
    config_str : str
        YAML configuration string
    root_dir : Optional[str]
        Root directory for resolving relative include paths. If not provided,
        defaults to the current working directory.
    overrides : Optional[Dict[str, Any]]
        Values to set after loading, keyed by dot-separated paths

    Returns
    -------
    Dict[str, Any]
        Loaded and merged configuration

    Raises
    ------
    ConfigCycleError
        If circular include detected
    ConfigIncludeError
        If included file not found or can't be loaded

    Examples
    --------
    >>> config = load_config("reco:\\n  fragment_removal:\\n    max_chi2: 16")
    >>> config["reco"]["fragment_removal"]["max_chi2"]
    16
    """
    config = _load_config_recursive(config_string=config_str, root_dir=root_dir)

    return _apply_overrides(config, overrides)


def load_config_file(
    cfg_path: str, overrides: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """Load a configuration from a file.

    The file's directory is automatically used as root_dir for include
    resolution.

    Parameters
    ----------
    cfg_path : str
        Path to configuration file
    overrides : Optional[Dict[str, Any]]
        Values to set after loading, keyed by dot-separated paths

    Returns
    -------
    Dict[str, Any]
        Loaded and merged configuration

    Raises
    ------
    ConfigCycleError
        If circular include detected
    ConfigIncludeError
        If included file not found or can't be loaded
    """
    config = _load_config_recursive(cfg_path=cfg_path)

    return _apply_overrides(config, overrides)
