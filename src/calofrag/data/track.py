"""Module with a data class object which represents a charged track."""

from dataclasses import dataclass
from typing import List, Optional

import numpy as np

from calofrag.math.helix import Helix

from .base import DataBase

__all__ = ["Track"]


@dataclass(eq=False)
class Track(DataBase):
    """Charged-particle trajectory reconstructed by the tracking system.

    Attributes
    ----------
    id : int
        Index of the track in the event
    energy_at_dca : float
        Energy at the distance of closest approach to the interaction point
    helix : Helix
        Helix fit at the calorimeter front face
    can_form_pfo : bool
        Whether the track can seed a particle flow object
    cluster_ids : List[int]
        IDs of the clusters associated with this track
    momentum_at_dca : np.ndarray
        (3) Momentum at the distance of closest approach, if known
    mass : float
        Mass hypothesis of the track (GeV/c^2)
    parent_track_ids : List[int]
        IDs of the tracks this track originates from (e.g. kinks)
    daughter_track_ids : List[int]
        IDs of the tracks originating from this track
    sibling_track_ids : List[int]
        IDs of the tracks sharing a parent with this track
    mc_particle_id : int
        ID of the simulated particle which produced the track
    """

    id: int = -1
    energy_at_dca: float = 0.0
    helix: Optional[Helix] = None
    can_form_pfo: bool = True
    cluster_ids: List[int] = None
    momentum_at_dca: Optional[np.ndarray] = None
    mass: float = 0.13957
    parent_track_ids: List[int] = None
    daughter_track_ids: List[int] = None
    sibling_track_ids: List[int] = None
    mc_particle_id: int = -1

    # Attributes that must never be exported
    _skip_attrs = ("helix",)

    def __post_init__(self):
        """Gives fresh defaults to the track relationship lists."""
        super().__post_init__()
        for attr in (
            "cluster_ids",
            "parent_track_ids",
            "daughter_track_ids",
            "sibling_track_ids",
        ):
            if getattr(self, attr) is None:
                setattr(self, attr, [])

        if self.momentum_at_dca is not None:
            self.momentum_at_dca = np.asarray(self.momentum_at_dca, dtype=np.float64)

    @property
    def has_associated_cluster(self):
        """Whether the track is associated with at least one cluster."""
        return len(self.cluster_ids) > 0

    @property
    def charge(self):
        """Charge of the particle, taken from its helix (0 without helix)."""
        return self.helix.charge if self.helix is not None else 0

    @property
    def momentum(self):
        """Best estimate of the momentum at the distance of closest approach.

        Returns
        -------
        np.ndarray
            (3) Momentum at the distance of closest approach, if provided,
            otherwise the momentum at the helix reference point
        """
        if self.momentum_at_dca is not None:
            return self.momentum_at_dca
        if self.helix is not None:
            return self.helix.momentum.copy()

        return np.zeros(3, dtype=np.float64)
