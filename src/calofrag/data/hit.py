"""Module with a data class object which represents a calorimeter hit."""

from dataclasses import dataclass
from enum import IntEnum

import numpy as np

from .base import DataBase

__all__ = ["HitType", "CaloHit"]


class HitType(IntEnum):
    """Detector subsystem in which a hit was recorded."""

    ECAL = 0
    HCAL = 1
    MUON = 2


@dataclass(eq=False)
class CaloHit(DataBase):
    """Calorimeter energy deposition.

    Attributes
    ----------
    id : int
        Index of the hit in the event
    position : np.ndarray
        (3) Position of the cell center (mm)
    pseudo_layer : int
        Discretized depth of the hit in the calorimeter
    hadronic_energy : float
        Energy of the hit under the hadronic hypothesis (GeV)
    electromagnetic_energy : float
        Energy of the hit under the electromagnetic hypothesis (GeV)
    cell_length_scale : float
        Typical lateral size of the cell (mm)
    hit_type : HitType
        Subsystem in which the hit was recorded
    is_mip : bool
        Whether the hit is compatible with a minimum ionizing particle
    is_isolated : bool
        Whether the hit is isolated from other hits
    is_endcap : bool
        Whether the hit was recorded in an endcap rather than in the barrel
    mc_particle_id : int
        ID of the simulated particle which contributed most to the hit
    """

    id: int = -1
    position: np.ndarray = None
    pseudo_layer: int = -1
    hadronic_energy: float = 0.0
    electromagnetic_energy: float = 0.0
    cell_length_scale: float = 10.0
    hit_type: HitType = HitType.ECAL
    is_mip: bool = False
    is_isolated: bool = False
    is_endcap: bool = False
    mc_particle_id: int = -1

    # Fixed-length attributes
    _fixed_length_attrs = (("position", 3),)

    def __post_init__(self):
        """Casts the hit type to its enumerated form."""
        super().__post_init__()
        self.hit_type = HitType(self.hit_type)

    @property
    def unit_vector(self):
        """Unit vector pointing from the origin to the hit.

        Returns
        -------
        np.ndarray
            (3) Unit position vector
        """
        return self.position / np.linalg.norm(self.position)
