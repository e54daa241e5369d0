"""Operations on nested configuration dictionaries."""

from copy import deepcopy
from typing import Any, Dict

import yaml

from .errors import ConfigTypeError

__all__ = ["deep_merge", "parse_value", "set_nested_value"]


def deep_merge(
    base_dict: Dict[str, Any], override_dict: Dict[str, Any]
) -> Dict[str, Any]:
    """Recursively merge override_dict into base_dict.

    Parameters
    ----------
    base_dict : Dict[str, Any]
        Base dictionary
    override_dict : Dict[str, Any]
        Override dictionary

    Returns
    -------
    Dict[str, Any]
        Merged dictionary (new copy)
    """
    result = deepcopy(base_dict)

    for key, value in override_dict.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def parse_value(value_str: Any) -> Any:
    """Parse a string value into appropriate Python type.

    Parameters
    ----------
    value_str : Any
        Value to parse (if string, attempts YAML parsing)

    Returns
    -------
    Any
        Parsed value
    """
    if not isinstance(value_str, str):
        return value_str

    if value_str.strip() == "":
        return value_str

    try:
        return yaml.safe_load(value_str)
    except yaml.YAMLError:
        return value_str


def set_nested_value(
    config: Dict[str, Any], key_path: str, value: Any
) -> Dict[str, Any]:
    """Set a nested value using dot notation.

    Missing intermediate levels are created on the fly.

    Parameters
    ----------
    config : Dict[str, Any]
        Configuration dictionary
    key_path : str
        Dot-separated path (e.g., "reco.fragment_removal.max_chi2")
    value : Any
        Value to set

    Returns
    -------
    Dict[str, Any]
        Modified configuration

    Raises
    ------
    ConfigTypeError
        If path traverses non-dict value
    """
    keys = key_path.split(".")
    current = config

    # Navigate to parent
    for key in keys[:-1]:
        if key not in current or current[key] is None:
            current[key] = {}
        elif not isinstance(current[key], dict):
            raise ConfigTypeError(
                f"Cannot set '{key_path}': '{key}' is not a dictionary"
            )
        current = current[key]

    current[keys[-1]] = value

    return config
