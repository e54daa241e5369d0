"""Geometric and energetic features of a (daughter, parent) cluster pair."""

from dataclasses import dataclass

import numpy as np

from calofrag.data.base import DataBase
from calofrag.math.distance import (
    close_fraction,
    closest_distance,
    cone_fraction,
    contact_layers,
)

__all__ = ["ContactParameters", "ClusterContact", "build_contact"]


@dataclass
class ContactParameters:
    """Parameters which control the cluster contact feature extraction.

    Attributes
    ----------
    contact_distance : float
        Distance below which two hits touch, in units of cell length
    cone_cosine_half_angle1 : float
        Cosine of the half-opening angle of the widest cone
    cone_cosine_half_angle2 : float
        Cosine of the half-opening angle of the intermediate cone
    cone_cosine_half_angle3 : float
        Cosine of the half-opening angle of the narrowest cone
    close_hit_distance1 : float
        Outer distance band used to count close daughter hits (mm)
    close_hit_distance2 : float
        Inner distance band used to count close daughter hits (mm)
    n_helix_comparison_layers : int
        Number of occupied daughter layers compared with the parent helices
    """

    contact_distance: float = 2.0
    cone_cosine_half_angle1: float = 0.9
    cone_cosine_half_angle2: float = 0.95
    cone_cosine_half_angle3: float = 0.985
    close_hit_distance1: float = 100.0
    close_hit_distance2: float = 50.0
    n_helix_comparison_layers: int = 9

    def __post_init__(self):
        """Checks the sanity of the parameters."""
        assert self.contact_distance > 0.0, "The contact distance must be positive."
        assert self.close_hit_distance1 >= self.close_hit_distance2, (
            "The first close hit distance band must enclose the second."
        )
        assert (
            self.n_helix_comparison_layers > 0
        ), "Must compare at least one layer with the parent helices."


@dataclass(eq=False)
class ClusterContact(DataBase):
    """Features describing how close a daughter cluster is to a parent.

    A contact is computed for an ordered (daughter, parent) pair and only
    lives for one iteration of the merging loop.

    Attributes
    ----------
    daughter_id : int
        ID of the candidate fragment cluster
    parent_id : int
        ID of the candidate absorbing cluster
    daughter_inner_layer : int
        Inner pseudolayer of the daughter when the contact was built
    n_contact_layers : int
        Number of pseudolayers in which the two clusters touch
    contact_fraction : float
        Fraction of the shared pseudolayers in which the clusters touch
    cone_fraction1 : float
        Fraction of daughter hits in the widest parent track cone
    cone_fraction2 : float
        Fraction of daughter hits in the intermediate parent track cone
    cone_fraction3 : float
        Fraction of daughter hits in the narrowest parent track cone
    close_hit_fraction1 : float
        Fraction of daughter hits close to a parent hit (outer band)
    close_hit_fraction2 : float
        Fraction of daughter hits close to a parent hit (inner band)
    closest_distance_to_helix : float
        Closest distance between a daughter hit and a parent track helix
    mean_distance_to_helix : float
        Mean distance between daughter hits and a parent track helix
    distance_to_closest_hit : float
        Distance between the closest pair of daughter and parent hits
    parent_track_energy : float
        Summed energy of the parent tracks at their closest approach
    """

    daughter_id: int = -1
    parent_id: int = -1
    daughter_inner_layer: int = -1
    n_contact_layers: int = 0
    contact_fraction: float = 0.0
    cone_fraction1: float = 0.0
    cone_fraction2: float = 0.0
    cone_fraction3: float = 0.0
    close_hit_fraction1: float = 0.0
    close_hit_fraction2: float = 0.0
    closest_distance_to_helix: float = np.inf
    mean_distance_to_helix: float = np.inf
    distance_to_closest_hit: float = np.inf
    parent_track_energy: float = 0.0


def helix_distances(points, tracks):
    """Closest and mean distances between points and a set of track helices.

    Parameters
    ----------
    points : np.ndarray
        (N, 3) Point coordinates
    tracks : List[Track]
        Tracks to compare the points with

    Returns
    -------
    float
        Smallest closest distance across tracks (infinite if no helix)
    float
        Smallest mean distance across tracks (infinite if no helix)
    """
    closest, mean = np.inf, np.inf
    if not len(points):
        return closest, mean

    for track in tracks:
        if track.helix is None:
            continue

        dists = np.array([track.helix.distance_to_point(p) for p in points])
        closest = min(closest, float(dists.min()))
        mean = min(mean, float(dists.mean()))

    return closest, mean


def build_contact(daughter, parent, parent_tracks, params=None):
    """Computes the contact features of a (daughter, parent) cluster pair.

    Parameters
    ----------
    daughter : Cluster
        Candidate fragment cluster
    parent : Cluster
        Candidate absorbing cluster
    parent_tracks : List[Track]
        Tracks associated with the parent cluster
    params : ContactParameters, optional
        Feature extraction parameters

    Returns
    -------
    ClusterContact
        Contact features
    """
    if params is None:
        params = ContactParameters()

    d_points, p_points = daughter.points, parent.points

    # Layers in which the two clusters touch
    n_contact, n_compared = contact_layers(
        d_points,
        daughter.layers,
        daughter.cell_lengths,
        p_points,
        parent.layers,
        params.contact_distance,
    )
    contact_fraction = n_contact / n_compared if n_compared > 0 else 0.0

    # Fraction of daughter hits in cones around the parent track directions
    cones = np.zeros(3, dtype=np.float64)
    cos_angles = (
        params.cone_cosine_half_angle1,
        params.cone_cosine_half_angle2,
        params.cone_cosine_half_angle3,
    )
    for track in parent_tracks:
        if track.helix is None:
            continue
        apex, axis = track.helix.reference_point, track.helix.momentum
        for i, cos in enumerate(cos_angles):
            cones[i] = max(cones[i], cone_fraction(d_points, apex, axis, cos))

    # Distances between the first daughter layers and the parent helices
    layers = list(daughter.ordered_hits)[: params.n_helix_comparison_layers]
    mask = np.isin(daughter.layers, layers)
    closest_helix, mean_helix = helix_distances(d_points[mask], parent_tracks)

    return ClusterContact(
        daughter_id=daughter.id,
        parent_id=parent.id,
        daughter_inner_layer=daughter.inner_layer,
        n_contact_layers=int(n_contact),
        contact_fraction=contact_fraction,
        cone_fraction1=cones[0],
        cone_fraction2=cones[1],
        cone_fraction3=cones[2],
        close_hit_fraction1=close_fraction(
            d_points, p_points, params.close_hit_distance1
        ),
        close_hit_fraction2=close_fraction(
            d_points, p_points, params.close_hit_distance2
        ),
        closest_distance_to_helix=closest_helix,
        mean_distance_to_helix=mean_helix,
        distance_to_closest_hit=closest_distance(d_points, p_points),
        parent_track_energy=float(sum(t.energy_at_dca for t in parent_tracks)),
    )
