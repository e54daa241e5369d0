"""Construct a geometry object from its name."""

from pathlib import Path
from typing import Dict, Optional, Union

import yaml

from .base import Geometry

# Get config directory relative to this module
GEO_CONFIG_DIR = Path(__file__).parent / "config"

__all__ = ["geo_factory"]


def geo_dict() -> Dict[Path, Dict[str, str]]:
    """Builds a dictionary of available geometry presets.

    Returns
    -------
    dict
        Dictionary of available geometry presets
    """
    # Gather all geometry yaml files from the config directory
    options = {}
    for path in GEO_CONFIG_DIR.glob("*/*_geometry.yaml"):
        with open(path, "r", encoding="utf-8") as f:
            cfg = yaml.safe_load(f)

        options[path] = {k: cfg[k] for k in ("name", "tag", "version")}
        options[path]["version"] = str(float(options[path]["version"]))

    return options


def geo_factory(
    detector: Optional[str] = None,
    tag: Optional[str] = None,
    version: Optional[Union[str, int, float]] = None,
    **kwargs,
) -> Geometry:
    """Instantiates a geometry object from a preset name or inline parameters.

    Parameters
    ----------
    detector : str, optional
        Name of the detector preset (e.g. "ild", "sid")
    tag : str, optional
        Geometry tag (e.g. "o2", "o1")
    version : str, optional
        Geometry version (e.g. "2", "1.5")
    **kwargs : dict, optional
        Inline geometry parameters, used when no preset name is provided

    Returns
    -------
    Geometry
         Initialized geometry object
    """
    # Inline geometry definition
    if detector is None:
        assert len(kwargs), "Must provide a detector preset name or its parameters."
        kwargs.setdefault("name", "custom")
        kwargs.setdefault("tag", None)
        kwargs.setdefault("version", 1)
        return Geometry(**kwargs)

    assert not len(kwargs), (
        "Cannot override preset geometry parameters. Provide either a "
        "`detector` name or a full inline geometry."
    )

    # Find a geometry configuration that matches the requested parameters
    options = geo_dict()
    paths, tags, versions = [], [], []
    for path, cfg in options.items():
        if cfg["name"].lower() == detector.lower():
            paths.append(path)
            tags.append(cfg.get("tag", None))
            versions.append(cfg.get("version", None))

    if len(paths) == 0:
        raise ValueError(f"No geometry found for detector '{detector}'.")

    # If a tag is specified, must find the exact tag or throw
    if tag is not None:
        if tag not in tags:
            raise ValueError(
                f"No geometry found for detector '{detector}' with tag '{tag}'. "
                f"Available tags are: {set(tags)}"
            )
        index = tags.index(tag)
        assert version is None or str(float(version)) == versions[index], (
            f"Geometry version '{version}' does not match found version "
            f"'{versions[index]}' for detector '{detector}' with tag '{tag}'."
        )
        file_path = paths[index]

    # If a version is specified, must match the major revision and, if it is
    # provided, the minor revision
    elif version is not None:
        version_parts = str(version).split(".")
        file_path = None
        for i, ver in enumerate(versions):
            ver_parts = ver.split(".")
            if version_parts == ver_parts[: len(version_parts)]:
                file_path = paths[i]
                break
        if file_path is None:
            raise ValueError(
                f"No geometry found for detector '{detector}' with version "
                f"'{version}'. Available versions are: {set(versions)}"
            )

    # If no tag or version is specified, return the most recent version
    else:
        index = versions.index(max(versions, key=float))
        file_path = paths[index]

    # Parse configuration file as a dictionary
    with open(file_path, "r", encoding="utf-8") as f:
        cfg = yaml.safe_load(f)

    return Geometry(**cfg)
