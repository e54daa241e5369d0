#!/usr/bin/env python3
"""Command line entry point which runs the fragment removal chain."""

import argparse
import pathlib
from typing import List

from calofrag.config import load_config_file
from calofrag.config.operations import parse_value, set_nested_value
from calofrag.version import __version__


def main(
    config: str,
    source: List[str],
    output: str,
    n: int,
    nskip: int,
    config_overrides: List[str],
):
    """Main driver for the reconstruction.

    Performs these basic functions:
    - Update the configuration with the command-line arguments
    - Run the driver over all the requested events

    Parameters
    ----------
    config : str
        Path to the configuration file
    source : List[str]
        List of paths to the input files
    output : str
        Path to the output file
    n : int
        Number of events to process
    nskip : int
        Number of events to skip
    config_overrides : List[str]
        List of config overrides in the form "key.path=value"

    Returns
    -------
    List[dict]
        Summary of each processed event
    """
    # Load the configuration file
    cfg = load_config_file(config)

    # If there is no base block, build one
    if cfg.get("base") is None:
        cfg["base"] = {}

    # Propagate the configuration parent directory to enable relative paths
    cfg["base"]["parent_path"] = str(pathlib.Path(config).parent)

    # The configuration must minimally contain an IO block with a reader
    if "io" not in cfg or cfg["io"].get("reader") is None:
        raise KeyError("Configuration file must contain an `io.reader` block.")

    # Override the input command-line information into the configuration
    io_mapping = {"file_keys": source, "n_entry": n, "n_skip": nskip}
    for io_key, io_value in io_mapping.items():
        if io_value is not None:
            cfg["io"]["reader"][io_key] = io_value

    # Override the output path if provided
    if output is not None:
        if cfg["io"].get("writer") is None:
            cfg["io"]["writer"] = {"name": "yaml"}
        cfg["io"]["writer"]["file_name"] = output

    # Apply any generic config overrides from --set arguments
    if config_overrides:
        for override in config_overrides:
            if "=" not in override:
                raise ValueError(
                    f"Invalid --set format: '{override}'. "
                    f"Expected format: 'key.path=value'"
                )

            key_path, value_str = override.split("=", 1)
            cfg = set_nested_value(cfg, key_path.strip(), parse_value(value_str.strip()))

    # The parent path is only used to resolve relative paths at this stage
    parent_path = cfg["base"].pop("parent_path")
    reader_cfg = cfg["io"]["reader"]
    reader_cfg["file_keys"] = resolve_paths(reader_cfg["file_keys"], parent_path)

    # Import the driver only when needed, it compiles the numba routines
    from calofrag.driver import Driver

    return Driver(cfg).run()


def resolve_paths(file_keys, parent_path):
    """Resolves relative input paths with respect to the configuration file.

    Paths which exist relative to the current directory are kept as is.

    Parameters
    ----------
    file_keys : Union[str, List[str]]
        Input file path(s) or glob pattern(s)
    parent_path : str
        Directory of the configuration file

    Returns
    -------
    Union[str, List[str]]
        Resolved file path(s)
    """
    if isinstance(file_keys, str):
        return resolve_paths([file_keys], parent_path)[0]

    resolved = []
    for key in file_keys:
        path = pathlib.Path(key)
        if not path.is_absolute() and not path.exists() and not list(
            pathlib.Path().glob(key)
        ):
            candidate = pathlib.Path(parent_path) / key
            if candidate.exists() or list(pathlib.Path(parent_path).glob(key)):
                key = str(candidate)
        resolved.append(key)

    return resolved


def cli():
    """Main command line entry point."""
    parser = argparse.ArgumentParser(
        description="calofrag - Calorimeter cluster fragment removal",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  calofrag --version                               Show version information
  calofrag -c config.yaml                          Run the configured chain
  calofrag -c config.yaml -s events.yaml -o out.yaml
  calofrag -c config.yaml --set reco.fragment_removal.max_global_chi2=9
""",
    )

    # Add a version command
    parser.add_argument(
        "--version", "-v", action="version", version=f"calofrag {__version__}"
    )

    # Add config file argument
    parser.add_argument(
        "-c", "--config", required=True, help="Path to the configuration file"
    )

    # Add source and output arguments
    parser.add_argument(
        "-s", "--source", nargs="+", type=str, help="List of paths to the input files"
    )
    parser.add_argument("-o", "--output", help="Path to the output file")

    # Add entry and skip arguments
    parser.add_argument("-n", "--iterations", type=int, help="Number of events to run")
    parser.add_argument("--nskip", type=int, help="Number of events to skip")

    # Add option to dynamically override any config parameter using dot notation
    parser.add_argument(
        "--set",
        action="append",
        dest="config_overrides",
        metavar="KEY=VALUE",
        help="Override any config parameter using dot notation "
        "(e.g., --set reco.fragment_removal.contact_weight=2). "
        "Can be used multiple times for multiple overrides.",
    )

    # Parse the arguments
    args = parser.parse_args()

    main(
        config=args.config,
        source=args.source,
        output=args.output,
        n=args.iterations,
        nskip=args.nskip,
        config_overrides=args.config_overrides,
    )


if __name__ == "__main__":
    cli()
