"""Module with a data class object which represents a reconstructed particle."""

from dataclasses import dataclass
from typing import List

import numpy as np

from .base import DataBase

__all__ = ["ParticleFlowObject"]


@dataclass(eq=False)
class ParticleFlowObject(DataBase):
    """Particle built from tracks and clusters.

    Attributes
    ----------
    id : int
        Index of the particle in the event
    pdg_code : int
        PDG code of the particle hypothesis
    charge : int
        Particle charge, in units of the elementary charge
    energy : float
        Energy of the particle (GeV)
    mass : float
        Mass of the particle (GeV/c^2)
    momentum : np.ndarray
        (3) Momentum of the particle (GeV/c)
    track_ids : List[int]
        IDs of the tracks which make up the particle
    cluster_ids : List[int]
        IDs of the clusters which make up the particle
    hit_ids : List[int]
        IDs of the hits in the clusters of the particle
    """

    id: int = -1
    pdg_code: int = 0
    charge: int = 0
    energy: float = 0.0
    mass: float = 0.0
    momentum: np.ndarray = None
    track_ids: List[int] = None
    cluster_ids: List[int] = None
    hit_ids: List[int] = None

    # Fixed-length attributes
    _fixed_length_attrs = (("momentum", 3),)

    def __post_init__(self):
        """Gives fresh defaults to the component lists."""
        super().__post_init__()
        for attr in ("track_ids", "cluster_ids", "hit_ids"):
            if getattr(self, attr) is None:
                setattr(self, attr, [])
