"""Helpers used when deciding on cluster merges.

This includes the track-cluster energy compatibility and the identification
of clusters which leave the calorimeter.
"""

import numpy as np

from calofrag.utils.errors import CompatibilityError

__all__ = [
    "track_cluster_compatibility",
    "track_cluster_chi2",
    "is_leaving_detector",
]

# Default stochastic term of the hadronic energy resolution (sigma/E = a/sqrt(E))
HADRONIC_ENERGY_RESOLUTION = 0.6


def track_cluster_compatibility(
    cluster_energy, track_energy, resolution=HADRONIC_ENERGY_RESOLUTION
):
    """Measures the compatibility of a cluster energy with a track energy.

    The compatibility is expressed as the number of standard deviations
    separating the cluster energy from the track energy, given the expected
    calorimetric resolution at the track energy.

    Parameters
    ----------
    cluster_energy : float
        Corrected hadronic energy of the cluster(s) (GeV)
    track_energy : float
        Energy of the track(s) at the point of closest approach (GeV)
    resolution : float, default 0.6
        Stochastic term of the hadronic energy resolution

    Returns
    -------
    float
        Signed compatibility, chi
    """
    if track_energy <= 0.0:
        raise CompatibilityError(
            f"Cannot compute compatibility with a non-positive track energy "
            f"({track_energy})."
        )

    sigma = resolution * np.sqrt(track_energy)

    return (cluster_energy - track_energy) / sigma


def track_cluster_chi2(
    cluster_energy, track_energy, resolution=HADRONIC_ENERGY_RESOLUTION
):
    """Squared form of :func:`track_cluster_compatibility`.

    Parameters
    ----------
    cluster_energy : float
        Corrected hadronic energy of the cluster(s) (GeV)
    track_energy : float
        Energy of the track(s) at the point of closest approach (GeV)
    resolution : float, default 0.6
        Stochastic term of the hadronic energy resolution

    Returns
    -------
    float
        Squared compatibility, chi^2
    """
    chi = track_cluster_compatibility(cluster_energy, track_energy, resolution)

    return chi * chi


def is_leaving_detector(cluster, outermost_layer, n_outer_layers=4, min_occupied=2):
    """Checks whether a cluster exits the instrumented calorimeter volume.

    Parameters
    ----------
    cluster : Cluster
        Cluster to check
    outermost_layer : int
        Outermost calorimeter pseudolayer
    n_outer_layers : int, default 4
        Number of outer pseudolayers which define the exit region
    min_occupied : int, default 2
        Minimum number of occupied pseudolayers in the exit region

    Returns
    -------
    bool
        `True` if the cluster leaves the calorimeter
    """
    first = outermost_layer - n_outer_layers
    if not cluster.n_hits or cluster.outer_layer <= first:
        return False

    n_occupied = sum(layer > first for layer in cluster.ordered_hits)

    return n_occupied >= min_occupied
